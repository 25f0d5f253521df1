import json
import logging
from typing import Literal, Optional, Union

from pydantic import BaseModel, StrictStr, ValidationError, ValidationInfo, field_validator

from config import Settings
from errors import BadRequest
from prompts import ACTIONS, PROFILES

logger = logging.getLogger("validator")


class AgentRequest(BaseModel):
    """Incoming request. Prompt bounds come from the ``settings`` validation context."""

    action: Literal["clarify", "generate"]
    prompt: StrictStr
    profile: Optional[StrictStr] = None

    @field_validator("prompt")
    @classmethod
    def prompt_within_bounds(cls, v: str, info: ValidationInfo) -> str:
        v = v.strip()
        if not v:
            raise ValueError("a non-blank prompt is required")
        settings = (info.context or {}).get("settings") or Settings()
        if len(v) < settings.min_prompt_length:
            raise ValueError(f"prompt must be at least {settings.min_prompt_length} characters")
        if len(v) > settings.max_prompt_length:
            raise ValueError(f"prompt must be at most {settings.max_prompt_length} characters")
        return v

    @field_validator("profile")
    @classmethod
    def known_profile(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in PROFILES:
            raise ValueError(f"Unknown profile {v!r}")
        return v


def _describe(e: ValidationError) -> str:
    """One readable message for the first problem pydantic found."""
    err = e.errors()[0]
    loc = err["loc"][0] if err["loc"] else None
    if loc in ("action", "prompt") and (err["type"] == "missing" or err.get("input") in (None, "")):
        return "Both action and prompt are required"
    if loc == "action" and err["type"] == "literal_error":
        return f"Invalid action {err.get('input')!r}; expected one of: {', '.join(ACTIONS)}"
    if err["type"] == "value_error":
        return str(err["ctx"]["error"])
    if loc is None:
        return "Request body must be a JSON object"
    return f"{loc}: {err['msg']}"


def validate_request(raw_body: Union[bytes, str, None], settings: Settings) -> AgentRequest:
    """Parse and check an incoming request body. Raises BadRequest on any problem."""
    if isinstance(raw_body, bytes):
        try:
            raw_body = raw_body.decode("utf-8")
        except UnicodeDecodeError:
            raise BadRequest("Request body must be UTF-8 encoded JSON")
    if not raw_body or not raw_body.strip():
        raise BadRequest("Request body is required")

    try:
        payload = json.loads(raw_body)
    except json.JSONDecodeError:
        logger.warning("Invalid JSON payload received")
        raise BadRequest("Invalid JSON payload")

    try:
        req = AgentRequest.model_validate(payload, context={"settings": settings})
    except ValidationError as e:
        logger.warning("Payload validation failed: %s", e)
        raise BadRequest(_describe(e))

    if req.profile is None:
        req.profile = settings.profile
    return req
