from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from synlitics.core.deps import get_registry
from synlitics.db.session import init_db
from synlitics.routers.auth import router as auth_router
from synlitics.routers.flow import router as flow_router
from synlitics.routers.health import router as health_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield
    # Pending simulated completions must not outlive the process
    get_registry().close()


app = FastAPI(
    title="Synlitics API",
    description="Daily sales-export uploads from delivery platforms and report processing status for restaurant owners.",
    version="0.1.0",
    lifespan=lifespan,
)


# Global exception handler for unhandled errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected server errors with structured response."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later.",
            "request_id": request.headers.get("X-Request-ID"),
        }
    )

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for now
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health_router)
app.include_router(auth_router, prefix="/api")
app.include_router(flow_router, prefix="/api")


@app.get("/")
def read_root():
    return {
        "message": "Welcome to Synlitics API",
        "docs": "/docs",
        "health": "/health"
    }
