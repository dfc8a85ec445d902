"""
MediFlow Analysis Gateway - FastAPI Application

Endpoints:
- Patient analysis and assistant chat (single POST endpoint)
- Health checks
"""
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from fastapi import FastAPI, Depends, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from mediflow.config import (
    APP_NAME,
    APP_VERSION,
    CORS_ALLOW_HEADERS,
    CORS_ALLOW_ORIGINS,
    get_settings,
)
from mediflow.core.analysis import AnalysisGateway
from mediflow.models import HealthResponse
from mediflow.utils import get_logger, setup_logging

setup_logging(get_settings().log_level)
logger = get_logger(__name__)

START_TIME = datetime.now()

_gateway = AnalysisGateway()


def get_gateway() -> AnalysisGateway:
    """Gateway dependency; tests override it with a stubbed Gemini client."""
    return _gateway


# ---- Application Lifespan ----

@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if not settings.has_gemini_credential:
        logger.warning("GEMINI_API_KEY is not set - analysis requests will fail until it is configured")
    logger.info(f"{APP_NAME} {APP_VERSION} ready (model: {settings.gemini_model})")
    yield
    logger.info(f"{APP_NAME} shut down.")


# ---- FastAPI Application ----

app = FastAPI(
    title=APP_NAME,
    description="Structured clinical analysis of patient records via Gemini",
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Wildcard origin without credentials so "*" is echoed verbatim
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=CORS_ALLOW_HEADERS,
)


# ---- API Endpoints ----

def _health() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=APP_VERSION,
        timestamp=datetime.now().isoformat(),
        uptime_seconds=(datetime.now() - START_TIME).total_seconds(),
        gemini_configured=get_settings().has_gemini_credential,
    )


@app.get("/", response_model=HealthResponse, tags=["Health"])
async def root():
    """API root - health check."""
    return _health()


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return _health()


@app.post("/api/v1/analyze-patient", tags=["Analysis"])
@app.post("/functions/v1/analyze-patient", tags=["Analysis"], include_in_schema=False)
async def analyze_patient(request: Request, gateway: AnalysisGateway = Depends(get_gateway)):
    """
    Analyze a patient record, or answer an assistant chat question.

    Body: ``{"patient": {...}}`` or ``{"prompt": "...", "type": "chat"}``.
    Always returns an analysis-shaped JSON payload; failures carry ``error``
    and a non-success status.
    """
    body: Any
    try:
        body = await request.json()
    except ValueError:
        body = None

    result = await gateway.handle(body)
    return JSONResponse(status_code=result.status_code, content=result.payload)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("mediflow.main:app", host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
