"""
Creative Copycat FastAPI Application.

REST API for generating branded variations of competitor creatives.

Features:
- Generation endpoint running the creative generation pipeline
- Runs listing from the attempt store
- Rate limiting
- Health check endpoint
- Automatic OpenAPI documentation
"""

# Load environment variables FIRST before any other imports
from dotenv import load_dotenv
load_dotenv()

import base64
import binascii
import logging
import os
import time
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .. import __version__
from ..core.config import Config
from ..core.observability import is_logfire_configured, setup_logfire
from ..pipelines.creative_generation import PIPELINE_NODES, run_creative_generation
from ..pipelines.dependencies import PipelineDependencies
from ..pipelines.metadata import describe_pipeline
from ..services.errors import GenerationFailedError
from .models import (
    ErrorResponse,
    GenerateErrorResponse,
    GenerateRequest,
    GenerateResponse,
    HealthResponse,
    RunsResponse,
)

# ============================================================================
# Logging Configuration
# ============================================================================

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ============================================================================
# FastAPI Application Setup
# ============================================================================

app = FastAPI(
    title="Creative Copycat API",
    description="Branded variations of competitor ad creatives",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ============================================================================
# Dependencies
# ============================================================================

_pipeline_deps: Optional[PipelineDependencies] = None


def get_pipeline_dependencies() -> PipelineDependencies:
    """Shared pipeline dependencies, created on first use."""
    global _pipeline_deps
    if _pipeline_deps is None:
        _pipeline_deps = PipelineDependencies.create()
    return _pipeline_deps


def _json(model, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=model.model_dump(mode="json", by_alias=True))


# ============================================================================
# Health Check Endpoint
# ============================================================================

@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["System"],
    summary="Health check endpoint"
)
async def health_check():
    """
    Check API health and configuration of dependent services.
    """
    services = {
        "database": "configured" if Config.SUPABASE_URL and Config.SUPABASE_SERVICE_KEY else "missing",
        "openai": "configured" if Config.OPENAI_API_KEY else "missing",
        "openrouter": "configured" if Config.OPENROUTER_API_KEY else "missing",
        "logfire": "configured" if is_logfire_configured() else "disabled",
    }

    overall_status = "healthy" if services["database"] == "configured" else "degraded"

    return HealthResponse(
        status=overall_status,
        version=__version__,
        timestamp=datetime.now(),
        services=services
    )


@app.get("/pipeline", tags=["System"], summary="Describe the generation pipeline")
async def pipeline_info():
    return describe_pipeline(list(PIPELINE_NODES))


# ============================================================================
# Generation Endpoint
# ============================================================================

@app.post(
    "/generate",
    response_model=GenerateResponse,
    responses={
        400: {"model": GenerateErrorResponse, "description": "Invalid request"},
        429: {"model": ErrorResponse, "description": "Too many requests"},
        500: {"model": GenerateErrorResponse, "description": "Generation failed"}
    },
    tags=["Generation"],
    summary="Generate a branded variation of a creative"
)
@limiter.limit(os.getenv("GENERATE_RATE_LIMIT", "10/minute"))
async def generate(
    request: Request,
    generate_request: GenerateRequest,
    deps: PipelineDependencies = Depends(get_pipeline_dependencies),
):
    """
    Run the creative generation pipeline for one source creative.

    **Flow:** select edit policy, build mask, draft instruction (validated
    for the brand name, retried once), render, reconcile dimensions, store.

    Returns `resultUrl` and `attemptId` on success, or `error` and
    `attemptId` (when an attempt record exists) on failure.
    """
    start_time = time.time()

    source_bytes = None
    if generate_request.source_image_base64:
        try:
            source_bytes = base64.b64decode(generate_request.source_image_base64, validate=True)
        except (binascii.Error, ValueError):
            return _json(GenerateErrorResponse(error="sourceImageBase64 is not valid base64"), 400)

    if source_bytes is None and not generate_request.source_path:
        return _json(GenerateErrorResponse(error="sourcePath or sourceImageBase64 is required"), 400)

    logger.info(
        f"Generation requested - creative {generate_request.creative_id}, "
        f"mode {generate_request.copy_mode}, ratio {generate_request.aspect_ratio}"
    )

    try:
        result = await run_creative_generation(
            generate_request.copy_mode,
            source_image_bytes=source_bytes,
            source_path=generate_request.source_path,
            aspect_ratio=generate_request.aspect_ratio,
            regions=generate_request.regions,
            creative_id=generate_request.creative_id,
            generation_type=generate_request.generation_type,
            custom_instruction=generate_request.custom_prompt,
            brand_name=generate_request.brand_name,
            deps=deps,
        )
    except GenerationFailedError as e:
        execution_time = time.time() - start_time
        logger.error(f"Generation failed after {execution_time:.2f}s (attempt {e.attempt_id}): {e.message}")
        return _json(GenerateErrorResponse(error=e.message, attempt_id=e.attempt_id, stage=e.stage), 500)

    execution_time = time.time() - start_time
    logger.info(f"Generation completed in {execution_time:.2f}s: {result.result_url}")

    return _json(GenerateResponse(
        result_url=result.result_url,
        attempt_id=result.attempt_id,
        width=result.width,
        height=result.height,
        copy_mode=result.copy_mode,
        instruction=result.instruction,
        instruction_attempts=result.instruction_attempts,
        marker_present=result.marker_present,
        render_backend=result.render_backend,
        mask_path=result.mask_path,
        stage_history=result.stage_history,
    ))


# ============================================================================
# Runs Endpoint
# ============================================================================

@app.get("/runs", response_model=RunsResponse, tags=["Generation"], summary="List recent attempts")
async def list_runs(
    limit: int = Query(100, ge=1, le=500),
    status: Optional[str] = Query(None, description="pending, running, completed or failed"),
    deps: PipelineDependencies = Depends(get_pipeline_dependencies),
):
    runs = await deps.attempts.list_attempts(limit=limit, status=status)
    return RunsResponse(runs=runs, count=len(runs))


# ============================================================================
# Error Handlers
# ============================================================================

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with consistent error format."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=str(exc.detail),
            detail=str(exc),
        ).model_dump(mode="json")
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal server error",
            detail=str(exc),
        ).model_dump(mode="json")
    )


# ============================================================================
# Startup Events
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Configure observability and log startup information."""
    setup_logfire()
    logger.info("=" * 60)
    logger.info("Creative Copycat API Starting...")
    logger.info(f"API Version: {__version__}")
    logger.info(f"Providers: drafting={Config.DRAFT_PROVIDER}, recreation={Config.RECREATE_PROVIDER}")
    logger.info("=" * 60)


@app.get("/", tags=["System"])
async def root():
    """
    API root endpoint with basic information.
    """
    return {
        "name": "Creative Copycat API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "generate": "/generate",
            "runs": "/runs",
            "pipeline": "/pipeline",
        }
    }
