import logging
import time
import uuid
from typing import Optional, Union

from ai_client import CompletionProvider, clarify_prompt, generate_pwa, provider_from_settings
from config import Settings
from errors import AgentError, MethodNotAllowed
from prompts import CLARIFY
from publisher import publish_bundle
from responses import AgentResponse, error_response, preflight_response, success_response
from validator import validate_request

logger = logging.getLogger("pwa-agent")


def handle(method: str, body: Union[bytes, str, None], settings: Settings,
           provider: Optional[CompletionProvider] = None) -> AgentResponse:
    """Serve one agent request: preflight, method check, validation, dispatch.

    Every failure ends as an error envelope; nothing escapes to the caller.
    The provider is only built (and called) for valid POST requests.
    """
    method = (method or "").upper()
    if method == "OPTIONS":
        return preflight_response(settings)

    request_id = uuid.uuid4().hex
    started = time.monotonic()
    try:
        if method != "POST":
            raise MethodNotAllowed(method or "<none>")

        req = validate_request(body, settings)
        logger.info("[%s] %s request (profile=%s, %d chars)", request_id, req.action, req.profile, len(req.prompt))
        if provider is None:
            provider = provider_from_settings(settings)

        if req.action == CLARIFY:
            content = clarify_prompt(provider, req.prompt, req.profile)
            resp = success_response(content, settings, request_id)
        else:
            bundle = generate_pwa(provider, req.prompt, req.profile, json_mode=settings.json_mode)
            artifacts = publish_bundle(bundle, settings, request_id) if settings.publishing_enabled else None
            resp = success_response(bundle, settings, request_id, artifacts=artifacts)
    except AgentError as e:
        level = logging.WARNING if e.status_code < 500 else logging.ERROR
        logger.log(level, "[%s] %s failed with %s: %s", request_id, method, e.status_code, e.message)
        return error_response(e, settings, request_id)
    except Exception as e:
        logger.exception("[%s] Unexpected error during agent execution", request_id)
        return error_response(e, settings, request_id)

    logger.info("[%s] completed in %.2fs", request_id, time.monotonic() - started)
    return resp
