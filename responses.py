import datetime
import logging
import traceback
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from pydantic import BaseModel

from config import Settings
from errors import AgentError, SchemaError, UpstreamError

logger = logging.getLogger("responses")


@dataclass
class AgentResponse:
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Dict[str, Any]] = None


def cors_headers(settings: Settings) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": settings.allowed_origin,
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
        "Content-Type": "application/json",
    }


def _timestamp() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat().replace("+00:00", "Z")


def success_response(content: Any, settings: Settings, request_id: Optional[str] = None,
                     artifacts: Optional[Dict[str, Any]] = None, status_code: int = 200) -> AgentResponse:
    if isinstance(content, BaseModel):
        content = content.model_dump()
    body = {"success": True, "content": content, "timestamp": _timestamp()}
    if request_id:
        body["requestId"] = request_id
    if artifacts:
        body["artifacts"] = artifacts
    return AgentResponse(status_code, cors_headers(settings), body)


def error_response(exc: BaseException, settings: Settings, request_id: Optional[str] = None) -> AgentResponse:
    """Turn an exception into an error envelope.

    AgentError subclasses carry their own status and user-facing message. Anything
    else is an unexpected failure: 500 with a generic message, the real one only
    exposed in development mode.
    """
    if isinstance(exc, AgentError):
        status = exc.status_code
        message = exc.message
    else:
        status = 500
        message = "Internal Server Error"

    body: Dict[str, Any] = {"success": False, "error": message, "timestamp": _timestamp()}
    if request_id:
        body["requestId"] = request_id

    if settings.debug:
        details: Dict[str, Any] = {"type": exc.__class__.__name__, "message": str(exc)}
        if isinstance(exc, SchemaError) and exc.fields:
            details["fields"] = exc.fields
        if isinstance(exc, UpstreamError) and exc.upstream_status is not None:
            details["upstreamStatus"] = exc.upstream_status
        body["details"] = details
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    return AgentResponse(status, cors_headers(settings), body)


def preflight_response(settings: Settings) -> AgentResponse:
    return AgentResponse(204, cors_headers(settings), None)
