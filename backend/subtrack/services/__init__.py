# Services package init
"""
SubTrack Backend: Services Layer
===================================

What:  Business logic between the routes (HTTP) and the database.
How:   Each service is a class with a module-level singleton. Methods take
       the request's AsyncSession, flush but never commit (the session
       dependency commits or rolls back), and raise SubTrackError
       subclasses that main.py maps to status codes.

Service Inventory:
    - SubscriptionService: CRUD, bulk import, cascade delete, sub-listings
    - InvoiceService: ingestion of analysed invoices, invoice CRUD
    - LineItemService: manual line item edits
    - VendorService: spend roll-ups, confirm-first cascade delete
    - TeamService / DeviceService / AssignmentService: assets and licences
    - DashboardService: stat card figures
    - ExportService: CSV downloads
    - PdfService: PDF page rendering (synchronous, run in a thread)
"""
