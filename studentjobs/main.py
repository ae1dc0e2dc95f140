"""
StudentJobs - Main Application

FastAPI backend with:
- MongoDB for every collection (users, KYC, jobs, applications, audits)
- JWT authentication for students, employers and admins
- KYC status reconciliation kept in step on every write

Run: uvicorn studentjobs.main:app --reload
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studentjobs import __version__
from studentjobs.api.routes import api_router
from studentjobs.core.config import get_settings
from studentjobs.core.exceptions import register_exception_handlers
from studentjobs.core.logging_config import configure_logging
from studentjobs.db.mongodb import init_mongo_indexes, test_mongo_connection

settings = get_settings()
configure_logging()
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="StudentJobs API",
    description="""
    Part-time job board for students.

    ## Features
    - **Authentication**: JWT-based auth for students, employers and admins
    - **KYC**: student and employer verification with admin review
    - **Jobs**: employer postings with admin approval
    - **Applications**: apply, shortlist, hire, rate
    - **Admin**: dashboard, user management, login audit, data repair
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    debug=settings.debug,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include API routes
app.include_router(api_router, prefix="/api")


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize MongoDB indexes on startup."""
    try:
        init_mongo_indexes()
    except Exception as e:
        logger.warning("MongoDB index initialization failed: %s", e)


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "StudentJobs API", "version": __version__}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    mongo_ok = test_mongo_connection()
    return {
        "status": "healthy" if mongo_ok else "degraded",
        "mongodb": "connected" if mongo_ok else "disconnected",
        "environment": settings.environment,
    }
