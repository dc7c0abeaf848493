"""
Narration API Routes.

Endpoints:
    OPTIONS /v1/parent-voice/speak   - CORS preflight (204)
    POST    /v1/parent-voice/speak   - Narrate one page, returns {audioUrl, cached}
    *       /v1/parent-voice/speak   - Any other method: 405 (http_error_handler)
    GET     /v1/artifacts/{path}     - Signed download (local backend only)
    GET     /health                  - Health check
    GET     /metrics                 - Prometheus metrics

Request Flow (POST):
    1. Generate request id for log correlation
    2. Decode the JSON body (anything but an object counts as {})
    3. Run NarrationService.speak() on the threadpool
    4. Map NarrationError to its status and {"error", "detail"?} body

Every speak response carries Access-Control-Allow-Origin and X-Request-Id.

Example Usage:
    curl -X POST http://localhost:8000/v1/parent-voice/speak \\
        -H "Authorization: Bearer dev-token" \\
        -H "Content-Type: application/json" \\
        -d '{"storyId": "s1", "pageIndex": 0, "lang": "en",
             "voiceId": "21m00Tcm4TlvDq8ikWAM", "text": "Once upon a time"}'
"""
from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from narration_ms.api.dependencies import get_narration_service
from narration_ms.api.schemas import ErrorResponse, HealthResponse, SpeakRequest, SpeakResponse
from narration_ms.backends.local import DiskBlobStore
from narration_ms.core.errors import NarrationError
from narration_ms.core.logging import get_logger, info, request_context, warn
from narration_ms.core.metrics import metrics
from narration_ms.services.narration_service import NarrationService

router = APIRouter()

_LOG = get_logger("narration-ms.api")

SPEAK_PATH = "/v1/parent-voice/speak"


def _new_request_id() -> str:
    return str(uuid.uuid4())[:12]


def _speak_headers(service: NarrationService, rid: str) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": service.config.cors.allow_origin,
        "X-Request-Id": rid,
    }


async def _read_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except (ValueError, RecursionError):
        return {}
    return body if isinstance(body, dict) else {}


@router.options(SPEAK_PATH, status_code=204, response_class=Response)
def speak_preflight(service: NarrationService = Depends(get_narration_service)):
    """CORS preflight for the speak endpoint."""
    headers = _speak_headers(service, _new_request_id())
    headers.update({
        "Access-Control-Allow-Methods": "POST",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
        "Access-Control-Max-Age": str(service.config.cors.max_age),
    })
    return Response(status_code=204, headers=headers)


@router.post(
    SPEAK_PATH,
    response_model=SpeakResponse,
    responses={
        400: {"model": ErrorResponse}, 401: {"model": ErrorResponse},
        413: {"model": ErrorResponse}, 429: {"model": ErrorResponse},
        500: {"model": ErrorResponse}, 502: {"model": ErrorResponse},
    },
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": SpeakRequest.model_json_schema()}},
        }
    },
)
async def speak(request: Request, service: NarrationService = Depends(get_narration_service)):
    """
    Narrate one story page in the caller's chosen voice.

    Returns:
        200 {"audioUrl", "cached"} or an error body with the mapped status:
        400 invalid field, 401 bad credential, 413 text too long,
        429 rate limited, 500 misconfigured / internal, 502 provider failure.
    """
    rid = _new_request_id()
    headers = _speak_headers(service, rid)
    body = await _read_body(request)

    with request_context(request_id=rid):
        try:
            result = await run_in_threadpool(service.speak, request.headers, body)
        except NarrationError as e:
            return JSONResponse(status_code=e.status_code, content=e.to_dict(), headers=headers)

    payload = SpeakResponse(audioUrl=result.audio_url, cached=result.cached)
    return JSONResponse(content=payload.model_dump(), headers=headers)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """
    Registered on the app for HTTPException.

    A 405 on the speak path gets the speak error body and headers whatever
    the method; everything else keeps FastAPI's default response.
    """
    if exc.status_code != 405 or request.url.path != SPEAK_PATH:
        return await http_exception_handler(request, exc)

    resolve = request.app.dependency_overrides.get(get_narration_service, get_narration_service)
    headers = _speak_headers(resolve(), _new_request_id())
    headers["Allow"] = "POST, OPTIONS"
    return JSONResponse(status_code=405, content={"error": "Method not allowed"}, headers=headers)


@router.get("/v1/artifacts/{path:path}", response_class=Response)
def get_artifact(
    path: str,
    expires: Optional[str] = None,
    signature: Optional[str] = None,
    service: NarrationService = Depends(get_narration_service),
):
    """
    Serve a stored narration through a signed URL (local backend).

    Returns:
        Audio bytes; 403 for a missing, bad or expired signature; 404 when
        the backend does not serve blobs or the blob is absent.
    """
    blobs = service.backends.blobs
    if not isinstance(blobs, DiskBlobStore):
        return JSONResponse(status_code=404, content={"error": "Not found"})

    try:
        expires_at = int(expires or "")
    except ValueError:
        expires_at = 0
    if not signature or not blobs.verify_signature(path, expires_at, signature):
        warn(_LOG, "artifact_forbidden", path=path)
        return JSONResponse(status_code=403, content={"error": "Invalid or expired signature"})

    try:
        data = blobs.load(path)
    except ValueError:
        data = None
    if data is None:
        return JSONResponse(status_code=404, content={"error": "Not found"})

    info(_LOG, "artifact_served", path=path, bytes=len(data))
    return Response(content=data, media_type=service.config.artifacts.content_type)


@router.get("/health", response_model=HealthResponse)
def health(service: NarrationService = Depends(get_narration_service)):
    """Health endpoint for load balancers and liveness checks."""
    return service.get_health_info()


@router.get("/metrics")
def prometheus_metrics():
    """Prometheus metrics in text exposition format."""
    content, content_type = metrics.get_metrics_response()
    return Response(content=content, media_type=content_type)
