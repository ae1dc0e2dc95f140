"""
Schemas module - Request/Response schemas for API endpoints.

Everything lives in `studentjobs.schemas.schemas`; import from there.
"""
