"""FastAPI application for the BioQuest paper generator."""

import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Union

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded  # type: ignore[import-not-found]

from bioquest.config import get_settings
from bioquest.db.supabase_client import get_supabase_client
from bioquest.middleware.logging import RequestLoggingMiddleware
from bioquest.middleware.rate_limit import get_limiter, rate_limit_exceeded_handler
from bioquest.middleware.request_id import RequestIDMiddleware
from bioquest.routers import generator, papers
from bioquest.services.gemini_client import get_gemini_client

# Application metadata
VERSION = "1.0.0"
COMMIT_HASH = "development"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Validate configuration on startup."""
    try:
        settings = get_settings()

        print(f"Starting BioQuest Paper API v{VERSION}")
        print(f"Model: {settings.model_name}")
        print(f"Fallback Gemini key configured: {settings.gemini_api_key is not None}")
        print("Environment validation: OK")

    except Exception as e:
        print(f"Startup validation failed: {e}")
        raise

    yield

    print("Shutting down BioQuest Paper API")


app = FastAPI(
    title="BioQuest Paper API",
    description="Question bank sampling and AI-assisted exam paper generation",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add rate limiter to app state (required by slowapi)
app.state.limiter = get_limiter()
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Last added runs first: request IDs are assigned before logging reads them
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this to the frontend origin
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", response_model=None)
async def health_check() -> Union[Dict[str, Any], Response]:
    """
    Health check endpoint that verifies the backing services.

    The Gemini check only reports whether a fallback key is configured;
    callers may still bring their own key.

    Status Codes:
        200: Supabase reachable
        503: Supabase unavailable
    """
    timestamp = datetime.now(timezone.utc).isoformat()
    services: Dict[str, str] = {}
    overall_healthy = True

    try:
        get_gemini_client()
        services["gemini_api"] = "healthy"
    except ValueError:
        services["gemini_api"] = "no fallback key (caller keys required)"
    except Exception as e:
        services["gemini_api"] = f"unhealthy: {str(e)}"

    try:
        supabase_client = get_supabase_client()
        response = supabase_client.table("questions").select("id").limit(1).execute()
        if response is not None:
            services["supabase"] = "healthy"
        else:
            services["supabase"] = "unhealthy: no response"
            overall_healthy = False
    except Exception as e:
        services["supabase"] = f"unhealthy: {str(e)}"
        overall_healthy = False

    response_data: Dict[str, Any] = {
        "status": "healthy" if overall_healthy else "unhealthy",
        "timestamp": timestamp,
        "services": services,
    }

    if not overall_healthy:
        return Response(
            content=json.dumps(response_data),
            status_code=503,
            media_type="application/json",
        )

    return response_data


@app.get("/version")
async def version_info() -> Dict[str, str]:
    """Get version information for the API."""
    return {
        "version": VERSION,
        "commit_hash": COMMIT_HASH,
    }


app.include_router(generator.router)
app.include_router(papers.router)
