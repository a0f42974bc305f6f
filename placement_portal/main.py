"""
Placement Portal - Main Application

FastAPI backend with:
- PostgreSQL for structured data (SQLite for tests)
- Eligibility / admission-control policy for job applications
- JWT authentication with student, coordinator and admin roles

Run: uvicorn placement_portal.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from placement_portal.api.routes import api_router
from placement_portal.core.exceptions import PlacementError
from placement_portal.core.logging import setup_logging
from placement_portal.db.postgres import check_database_connection, init_db

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and the settings row on startup."""
    init_db()
    logger.info("Database initialised")
    yield


# Create FastAPI app
app = FastAPI(
    title="Placement Portal",
    description="""
    Campus placement management backend.

    ## Features
    - **Authentication**: JWT-based auth for students, coordinators and admins
    - **Students**: Profile registration, approval workflow, resume upload
    - **Companies**: Registration and approval
    - **Jobs**: Posting with eligibility thresholds, JAF upload, approval
    - **Applications**: Eligibility and admission control (A1/A2/Internship/FTE offers)
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PlacementError)
async def placement_error_handler(request: Request, exc: PlacementError):
    """Domain errors -> 400 / 404 / 422 with the reason code when there is one."""
    reason = getattr(exc, "reason", None)
    content = {"detail": exc.message}
    if reason is not None:
        content["reason"] = getattr(reason, "value", reason)
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal database error"})


# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    connected = check_database_connection()
    return {
        "status": "healthy" if connected else "degraded",
        "database": "connected" if connected else "disconnected",
    }
