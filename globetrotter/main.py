import time
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from globetrotter.config import settings, cloud_config
from globetrotter.dependencies import get_firestore_client, get_firestore_service
from globetrotter.errors import GlobeTrotterError, ValidationFailed, errors_from_pydantic
from globetrotter.routers import admin, auth, dashboard, destinations, profile, trips
from globetrotter.services.admin_service import AdminService
from globetrotter.services.firestore_service import FirestoreService

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def connect_with_retry(attempts: int, backoff_seconds: float, sleep=time.sleep) -> FirestoreService:
    """Ping the store until it answers; exit the process after the last failed attempt."""
    for attempt in range(1, attempts + 1):
        try:
            fs = FirestoreService(get_firestore_client())
            fs.ping()
            logger.info(f"Connected to Firestore on attempt {attempt}")
            return fs
        except Exception as e:
            logger.error(f"Firestore connection attempt {attempt}/{attempts} failed: {e}")
            if attempt < attempts:
                sleep(backoff_seconds)
    logger.critical("Could not connect to Firestore, shutting down")
    raise SystemExit(1)


@asynccontextmanager
async def lifespan(app: FastAPI):
    connect_with_retry(settings.db_connect_retries, settings.db_connect_backoff_seconds)
    yield


# Initialize FastAPI app
app = FastAPI(
    title="GlobeTrotter API",
    version=API_VERSION,
    description="Trip planning API: trips, cities, activities, itineraries and budgets",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins if not cloud_config.IS_CLOUD_RUN else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GlobeTrotterError)
async def domain_error_handler(request: Request, exc: GlobeTrotterError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    failure = ValidationFailed(errors_from_pydantic(exc.errors()))
    return JSONResponse(status_code=failure.status_code, content=failure.to_dict())


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "kind": "error", "message": "Internal server error"},
    )


# Include routers
app.include_router(auth.router, prefix=f"{settings.api_prefix}/auth", tags=["auth"])
app.include_router(trips.router, prefix=f"{settings.api_prefix}/trips", tags=["trips"])
app.include_router(profile.router, prefix=f"{settings.api_prefix}/profile", tags=["profile"])
app.include_router(dashboard.router, prefix=f"{settings.api_prefix}/dashboard", tags=["dashboard"])
app.include_router(admin.router, prefix=f"{settings.api_prefix}/admin", tags=["admin"])
app.include_router(destinations.router, prefix=f"{settings.api_prefix}/destinations", tags=["destinations"])


@app.get("/health")
def health_check(fs: FirestoreService = Depends(get_firestore_service)):
    """Health check endpoint for Cloud Run and monitoring"""
    try:
        maintenance = AdminService(fs).get_settings()
        database = "connected"
    except Exception as e:
        logger.error(f"Health check could not read settings: {e}")
        maintenance = {"maintenance": False, "maintenanceMessage": ""}
        database = "unavailable"
    return {
        "status": "ok",
        "message": "GlobeTrotter API is running",
        "database": database,
        "maintenance": maintenance["maintenance"],
        "maintenanceMessage": maintenance["maintenanceMessage"],
        "environment": "cloud-run" if cloud_config.IS_CLOUD_RUN else "local",
    }


@app.get("/")
def root():
    """Root endpoint with API information"""
    return {
        "name": "GlobeTrotter API",
        "version": API_VERSION,
        "docs_url": "/docs",
        "health_url": "/health",
    }


# For Cloud Run, the port is set via environment variable
if __name__ == "__main__":
    import uvicorn
    port = cloud_config.PORT if cloud_config.IS_CLOUD_RUN else 8080
    uvicorn.run(app, host="0.0.0.0", port=port)
