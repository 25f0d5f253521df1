import os
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from errors import ConfigError
from prompts import PROFILES

logger = logging.getLogger("config")

DEFAULT_API_URL = "https://llm.mdb.ai/chat/completions"
DEFAULT_MODEL = "chat"
DEFAULT_TIMEOUT = 60.0

TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Everything the agent needs for one request. Passed explicitly, never read globally."""

    api_url: str = DEFAULT_API_URL
    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    temperature: Optional[float] = None
    json_mode: bool = False
    timeout: float = DEFAULT_TIMEOUT

    provider: str = "http"
    local_model_command: Optional[str] = None

    allowed_origin: str = "*"
    debug: bool = False

    min_prompt_length: int = 20
    max_prompt_length: int = 3000
    profile: str = "default"

    output_dir: Optional[str] = None
    publish_zip: bool = False
    netlify_site_id: Optional[str] = None
    netlify_token: Optional[str] = None
    ipfs_api_url: Optional[str] = None
    ipfs_gateway: str = "https://ipfs.io/ipfs/"

    log_level: str = "INFO"

    @property
    def publishing_enabled(self) -> bool:
        return bool(self.output_dir or self.publish_zip or self.netlify_site_id or self.ipfs_api_url)


def _flag(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    value = env.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in TRUTHY


def _number(env: Mapping[str, str], name: str, cast, default):
    value = env.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        return cast(value)
    except ValueError:
        raise ConfigError(f"{name} must be a {cast.__name__}, got {value!r}")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from environment variables.

    When ``environ`` is omitted the process environment is used, after loading a
    local ``.env`` file if there is one. The older MINDSDB_* and NODE_ENV names
    are still honoured so existing deployments keep working.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ
    env = environ

    app_env = (env.get("APP_ENV") or env.get("NODE_ENV") or "production").lower()

    settings = Settings(
        api_url=env.get("CHAT_API_URL") or env.get("MINDSDB_API_URL") or DEFAULT_API_URL,
        api_key=env.get("CHAT_API_KEY") or env.get("MINDSDB_API_KEY"),
        model=env.get("CHAT_MODEL") or DEFAULT_MODEL,
        temperature=_number(env, "CHAT_TEMPERATURE", float, None),
        json_mode=_flag(env, "CHAT_JSON_MODE"),
        timeout=_number(env, "UPSTREAM_TIMEOUT", float, DEFAULT_TIMEOUT),
        provider=(env.get("COMPLETION_PROVIDER") or "http").lower(),
        local_model_command=env.get("LOCAL_MODEL_COMMAND"),
        allowed_origin=env.get("ALLOWED_ORIGIN") or "*",
        debug=app_env == "development",
        min_prompt_length=_number(env, "PROMPT_MIN_LENGTH", int, 20),
        max_prompt_length=_number(env, "PROMPT_MAX_LENGTH", int, 3000),
        profile=(env.get("PROMPT_PROFILE") or "default").lower(),
        output_dir=env.get("OUTPUT_DIR") or None,
        publish_zip=_flag(env, "PUBLISH_ZIP"),
        netlify_site_id=env.get("NETLIFY_SITE_ID") or None,
        netlify_token=env.get("NETLIFY_AUTH_TOKEN") or None,
        ipfs_api_url=env.get("IPFS_API_URL") or None,
        ipfs_gateway=env.get("IPFS_GATEWAY") or "https://ipfs.io/ipfs/",
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
    )

    if settings.timeout <= 0:
        raise ConfigError("UPSTREAM_TIMEOUT must be positive")
    if settings.min_prompt_length > settings.max_prompt_length:
        raise ConfigError("PROMPT_MIN_LENGTH cannot exceed PROMPT_MAX_LENGTH")
    if settings.provider not in ("http", "subprocess"):
        raise ConfigError(f"Unknown COMPLETION_PROVIDER {settings.provider!r}")
    if settings.provider == "subprocess" and not settings.local_model_command:
        raise ConfigError("LOCAL_MODEL_COMMAND is required when COMPLETION_PROVIDER=subprocess")
    if settings.profile not in PROFILES:
        raise ConfigError(f"Unknown PROMPT_PROFILE {settings.profile!r}")
    if bool(settings.netlify_site_id) != bool(settings.netlify_token):
        raise ConfigError("NETLIFY_SITE_ID and NETLIFY_AUTH_TOKEN must be set together")
    if not settings.api_key and settings.provider == "http":
        # The first upstream call fails with UpstreamError instead.
        logger.warning("CHAT_API_KEY not set. Upstream calls will fail unless provided at runtime.")
    return settings
