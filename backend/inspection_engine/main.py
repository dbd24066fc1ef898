"""
PES Inspection Engine - FastAPI Application

Main entry point for the inspection lifecycle backend.

Architecture:
- Field Access Policy → who may edit which field, and when
- Status Transition Validator → legal status moves per role
- Change Diff & Audit Logger → append-only history of every edit
- Reprogramming Engine → closes a failed inspection, opens its successor
- Support Validation → CONECTADA or PENDIENTE CORRECCION
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .database import init_db
from .routers import inspections_router

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    init_db()
    yield

settings = get_settings()

# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="PES Inspection Engine",
    description="""
    PES Inspection Engine - Commissioning inspection lifecycle

    ## Lifecycle
    1. **Registration**: individual, massive or special requests
    2. **Scheduling**: confirmation, inspector assignment, visit window
    3. **Outcome**: approved, not approved, rejected or cancelled
    4. **Reprogramming**: failed inspections reopen as linked successors
    5. **Support Validation**: connection confirmed or sent back for correction

    ## Key Principles
    - Edit rights are fixed policy, evaluated per field
    - History is diffed against the server snapshot before each write
    - Reprogrammed records are never rewritten in place
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(inspections_router)


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "PES Inspection Engine",
        "version": settings.app_version,
        "description": "Commissioning inspection lifecycle",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.app_version}


# For running with: python -m inspection_engine.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
