"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from studentjobs.api.routes.auth_routes import router as auth_router
from studentjobs.api.routes.user_routes import router as user_router
from studentjobs.api.routes.kyc_routes import router as kyc_router
from studentjobs.api.routes.employer_kyc_routes import router as employer_kyc_router
from studentjobs.api.routes.job_routes import router as job_router
from studentjobs.api.routes.application_routes import router as application_router
from studentjobs.api.routes.admin_routes import router as admin_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(user_router)
api_router.include_router(kyc_router)
api_router.include_router(employer_kyc_router)
api_router.include_router(job_router)
api_router.include_router(application_router)
api_router.include_router(admin_router)
