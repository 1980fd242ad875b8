"""
SubTrack Backend: Application Package Initializer
===================================================

What: Marks the `subtrack` directory as a Python package.
Why:  Enables module imports like `from subtrack.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend follows a layered layout:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Queries, cascades, invoice ingestion
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes validate a parameter, call one service method, and return its result.
    Services own every query and translate driver failures into DatabaseError.
"""

__version__ = "1.0.0"
