# Middleware package init
"""
SubTrack Backend: Middleware Package
=======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID: Generate correlation ID for logging and error bodies
    2. Logging: Log request details with the generated request ID
    3. CORS: Applied by FastAPI's CORSMiddleware (handles preflight)

Authentication is not middleware: it is a FastAPI dependency attached to
the /api routers (see subtrack.auth), so /health and /docs stay public.
"""
