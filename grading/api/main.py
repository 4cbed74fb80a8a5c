"""
Submission Grading Results API.

Read-only access to the grading records produced by `scripts/run_grading.py`.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from grading.api.routers import results_router
from grading.db import init_db


tags_metadata = [
    {
        "name": "Results",
        "description": """
**Per-submission grading records.**

Each student backend is launched in isolation, probed for readiness and
exercised by the recipe API battery:
- **Server Startup**: the server answers HTTP within the readiness window (5)
- **Recipe API**: list, fetch, 404, create, validation, persistence and error handling (95)

Submissions whose server never became ready report every battery test as skipped.
        """,
    },
    {
        "name": "Health",
        "description": "Service health check endpoints.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    lifespan=lifespan,
    title="Submission Grading Results API",
    description="Automated grading results for student recipe backends",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    openapi_tags=tags_metadata,
)

# Read-only API allows all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(results_router)


@app.get(
    "/health",
    tags=["Health"],
    summary="Health Check",
    description="Check if the API service is healthy and responding.",
)
async def health_check():
    return {
        "status": "healthy",
        "service": "grading-results-api",
        "version": "1.0.0",
    }


@app.get("/", include_in_schema=False)
async def root():
    """API root - returns basic info and links to documentation."""
    return {
        "name": "Submission Grading Results API",
        "version": "1.0.0",
        "documentation": {
            "swagger": "/docs",
            "redoc": "/redoc",
            "openapi": "/openapi.json",
        },
        "endpoints": {
            "results": "/api/v1/results",
            "stats": "/api/v1/stats",
        },
    }
