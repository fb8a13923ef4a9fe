"""
Main FastAPI application for the Course Workload Scheduler.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from workload_scheduler import __version__
from workload_scheduler.api import routes
from workload_scheduler.core.config import CORS_ORIGINS
from workload_scheduler.core.logging_config import setup_logging

setup_logging()

app = FastAPI(
    title="Course Workload Scheduler API",
    description="API for building course schedules and checking instructor, cohort and quarter conflicts",
    version=__version__
)

# Enable CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(routes.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Course Workload Scheduler API",
        "version": __version__,
        "endpoints": {
            "store": "/api/store",
            "validation": "/api/validation",
            "workload": "/api/workload",
            "health": "/api/health"
        }
    }
