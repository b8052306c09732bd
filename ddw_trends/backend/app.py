from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ddw_trends.backend.config import Settings, get_settings
from ddw_trends.backend.models import ErrorResponse, HealthResponse, MonthlyResponse
from ddw_trends.backend.monthly import monthly_credentials, monthly_mentions


SERVICE_NAME = "ddw-trends"
VERSION = "1.0.0"

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="[%(asctime)s] %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Deep & Dark Web Trends API",
    version=VERSION,
    description="Monthly mention and exposed-credential counts from a threat-intelligence search API.",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.allowed_origins),
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


async def get_http_client(settings: Settings = Depends(get_settings)) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=settings.upstream_timeout) as client:
        yield client


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _required_field(body: Any, field: str) -> Optional[str]:
    if not isinstance(body, dict):
        return None
    value = body.get(field)
    if not isinstance(value, str) or not value.strip():
        return None
    return value


@app.get("/api/health", response_model=HealthResponse)
async def health(settings: Settings = Depends(get_settings)):
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "configured": {
            "mentions": settings.mentions_configured,
            "credentials": settings.credentials_configured,
        },
    }


@app.post("/api/monthly", response_model=MonthlyResponse, responses=ERROR_RESPONSES)
async def monthly_endpoint(
    request: Request,
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """Deep and dark web mentions of a keyword, per month, for the last 12 full months."""
    try:
        body = await request.json()
        keyword = _required_field(body, "keyword")
        if keyword is None:
            return _error("Missing 'keyword' in request body.", 400)

        logger.info(f"Monthly mentions requested for {keyword!r}")
        data = await monthly_mentions(keyword, client, settings)
        logger.info(f"Monthly mentions completed for {keyword!r}: {sum(d['count'] for d in data)} total")
        return {"data": data}
    except Exception as e:
        logger.error(f"Monthly API error: {e!r}")
        return _error("Internal Server Error", 500)


@app.post("/api/credentials", response_model=MonthlyResponse, responses=ERROR_RESPONSES)
async def credentials_endpoint(
    request: Request,
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """Exposed-credential sightings for an email domain, per month, for the last 12 full months."""
    try:
        body = await request.json()
        domain = _required_field(body, "domain")
        if domain is None:
            return _error("Missing 'domain' in request body.", 400)

        logger.info(f"Credential counts requested for {domain!r}")
        data = await monthly_credentials(domain, client, settings)
        logger.info(f"Credential counts completed for {domain!r}: {sum(d['count'] for d in data)} total")
        return {"data": data}
    except Exception as e:
        logger.error(f"Credentials route error: {e!r}")
        return _error("Internal Server Error", 500)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("ddw_trends.backend.app:app", host="127.0.0.1", port=8000, reload=False)
