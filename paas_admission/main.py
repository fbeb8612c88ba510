"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from paas_admission import __version__
from paas_admission.api import admission, coordination
from paas_admission.config import settings
from paas_admission.models.schemas import ErrorResponse, HealthResponse
from paas_admission.services.kubectl import KubectlClient, KubectlException

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

PUBLIC_PATHS = ["/health", "/docs", "/redoc", "/openapi.json"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting PaaS admission webhook service...")
    logger.info(f"Root namespace: {settings.root_namespace}")

    # Verify kubectl is available - FAIL FAST if not
    try:
        version = KubectlClient().get_version()
        logger.info(f"kubectl version: {version}")
    except KubectlException as e:
        logger.critical(f"kubectl not available: {e.message} - Service cannot start!")
        raise RuntimeError(f"kubectl is required but not available: {e.message}")

    yield

    logger.info("Shutting down PaaS admission webhook service...")


# Create FastAPI application
app = FastAPI(
    title="PaaS Admission Webhooks",
    description="Name uniqueness, placement and immutability checks for PaaS resources",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# Authentication middleware
@app.middleware("http")
async def verify_api_key(request: Request, call_next):
    """Verify API key for operator endpoints.

    Admission endpoints are called by the Kubernetes API server over mutual
    TLS and are not guarded by the API key.
    """
    path = request.url.path
    if path in PUBLIC_PATHS or path.startswith(admission.WEBHOOK_PATH_PREFIX):
        return await call_next(request)

    if not settings.api_key:
        logger.warning("API key not configured - authentication disabled")
        return await call_next(request)

    if request.headers.get("X-API-Key") != settings.api_key:
        client_host = request.client.host if request.client else "unknown"
        logger.warning(f"Invalid API key attempt from {client_host}")
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": "Invalid or missing API key"},
        )

    return await call_next(request)


# Exception handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            detail=exc.detail,
            error_type="HTTPException",
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            detail="Internal server error",
            error_type=type(exc).__name__,
        ).model_dump(),
    )


# Health check endpoint
@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
)
async def health_check():
    """Check service health and kubectl availability.

    Returns:
        Health status information
    """
    kubectl_version = None
    try:
        kubectl_version = KubectlClient().get_version()
    except KubectlException as e:
        logger.error(f"kubectl health check failed: {e.message}")

    return HealthResponse(
        status="healthy" if kubectl_version else "degraded",
        timestamp=datetime.utcnow(),
        kubectl_version=kubectl_version,
    )


# Include routers
app.include_router(admission.router)
app.include_router(coordination.router)


# Root endpoint
@app.get("/", tags=["root"])
async def root():
    """Root endpoint with service information."""
    return {
        "service": "PaaS Admission Webhooks",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "paas_admission.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
        ssl_certfile=settings.tls_cert_file,
        ssl_keyfile=settings.tls_key_file,
    )
