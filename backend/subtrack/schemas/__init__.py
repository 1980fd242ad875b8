# Schemas package init
"""
SubTrack Backend: Pydantic Request/Response Schemas
======================================================

Schemas are separate from SQLAlchemy models: the API nests and renames
columns (camelCase, `owner {name, email}`) and adds computed fields such
as `vendorName` or `totalSpend` that no table stores.
"""
