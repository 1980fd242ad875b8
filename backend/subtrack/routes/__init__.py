"""
SubTrack Backend: API Routes Package
=======================================

What:  HTTP route handlers that accept requests and return responses.
How:   One module per resource; every /api router depends on
       `get_current_user`, so unauthenticated calls never reach a handler.

Route Inventory:
    - subscriptions.py: /api/subscriptions (+ /bulk, /{id}/invoices,
                        /{id}/line-items, /{id}/services)
    - invoices.py:      /api/invoices      (list, ingest, edit, delete)
    - line_items.py:    /api/line-items    (+ /move-period)
    - services.py:      /api/services      (/{id}, /merge)
    - devices.py:       /api/devices
    - assignments.py:   /api/assignments   (?subscriptionId=, ?id=)
    - vendors.py:       /api/vendors       (confirm-first cascade delete, /merge)
    - team.py:          /api/team
    - users.py:         /api/users         (admin only, role changes)
    - dashboard.py:     /api/dashboard/summary
    - reports.py:       /api/reports/aggregated
    - export.py:        /api/export/subscriptions.csv, /api/export/csv
    - documents.py:     /api/documents/pdf-to-images
    - health.py:        /health            (no auth)

Design Principle:
    Routes are THIN. They pull values out of the request, call a service,
    and pick the status code. Errors are raised as SubTrackError
    subclasses and formatted by the handlers in main.py.
"""
