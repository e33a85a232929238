"""Long-running HTTP server relaying chat requests to OpenAI or Groq."""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .config import Settings, get_settings
from .errors import RelayError, UpstreamTransportError
from .keys import check_keys
from .models import HealthResponse
from .service import ChatRelay
from .static import serve_static
from .telemetry import configure_logging, configure_tracing, reset_correlation_id, set_correlation_id

logger = logging.getLogger("chat_relay")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Attach correlation identifiers and latency to responses."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))
        token = set_correlation_id(correlation_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled exception during request", extra={"path": request.url.path})
            raise
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.info(
                "Request completed",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            reset_correlation_id(token)

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Process-Time-ms"] = f"{duration_ms:.2f}"
        return response


def _error_response(status_code: int, error: str, detail: Optional[str] = None) -> JSONResponse:
    payload: Dict[str, Any] = {"error": error}
    if detail is not None:
        payload["detail"] = detail
    return JSONResponse(status_code=status_code, content=payload)


# Dependency factories -----------------------------------------------------

def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_relay(request: Request) -> ChatRelay:
    return request.app.state.relay


# Routes -------------------------------------------------------------------

router = APIRouter()


@router.get("/healthz", response_model=HealthResponse)
async def healthz(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    """Readiness check for container orchestrators."""

    keys = check_keys(settings.groq_api_key, settings.openai_api_key)
    return HealthResponse(status="ok", available_keys=keys.status())


@router.get("/api/test-key")
async def test_key(relay: ChatRelay = Depends(get_relay)) -> JSONResponse:
    try:
        result = await relay.test_key()
    except UpstreamTransportError as exc:
        return _error_response(500, "Test failed", exc.detail)
    except RelayError as exc:
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())
    except Exception as exc:
        logger.exception("API key test failed")
        return _error_response(500, "Test failed", str(exc))

    return JSONResponse(status_code=result.status_code, content=result.payload)


@router.post("/api/chat")
async def chat(request: Request, relay: ChatRelay = Depends(get_relay)) -> JSONResponse:
    try:
        body = await request.body()
        result = await relay.chat(body)
    except UpstreamTransportError as exc:
        return _error_response(500, "Proxy error", exc.detail)
    except RelayError as exc:
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())
    except Exception as exc:
        logger.exception("Chat relay failed")
        return _error_response(500, "Proxy error", str(exc))

    return JSONResponse(status_code=result.status_code, content=result.payload)


STATIC_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@router.api_route("/{path:path}", methods=STATIC_METHODS, include_in_schema=False)
async def static_files(path: str, settings: Settings = Depends(get_app_settings)) -> Response:
    return await asyncio.to_thread(serve_static, settings.static_dir, path)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the relay application around an explicit settings object."""

    configure_logging()
    settings = settings or get_settings()

    app = FastAPI(title="Chat Relay", version="1.0.0")
    app.state.settings = settings
    app.state.relay = ChatRelay(settings)
    app.add_middleware(CorrelationIdMiddleware)
    app.include_router(router)
    configure_tracing(app)
    return app


@lru_cache()
def get_app() -> FastAPI:
    """Return the default application, built on first use."""

    return create_app()


def __getattr__(name: str) -> Any:
    if name == "app":
        return get_app()
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
