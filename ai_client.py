import json
import logging
import shlex
import subprocess
from typing import Dict, List, Optional

import requests

from config import Settings
from errors import UpstreamError
from extractor import parse_json_object
from prompts import CLARIFY, GENERATE, system_prompt, user_prompt
from schema import PWABundle, validate_bundle

logger = logging.getLogger("ai-client")

Message = Dict[str, str]

CONNECT_TIMEOUT = 10.0


def build_messages(action: str, prompt: str, profile: str = "default") -> List[Message]:
  return [
    {"role": "system", "content": system_prompt(action, profile)},
    {"role": "user", "content": user_prompt(action, prompt)},
  ]


class CompletionProvider:
  """Anything that turns a list of chat messages into completion text.

  Implementations make exactly one attempt and raise UpstreamError on failure.
  """

  def complete(self, messages: List[Message], options: Optional[dict] = None) -> str:
    raise NotImplementedError


class ChatCompletionProvider(CompletionProvider):
  """Hosted chat-completion API (MindsDB, OpenRouter, OpenAI-compatible proxies).

  A single POST per call with bearer auth; no retries.
  """

  def __init__(self, api_url: str, api_key: Optional[str], model: str = "chat", timeout: float = 60.0,
               temperature: Optional[float] = None):
    self.url = api_url
    self.token = api_key
    self.model = model
    self.timeout = timeout
    self.temperature = temperature

  def complete(self, messages: List[Message], options: Optional[dict] = None) -> str:
    if not self.token:
      raise UpstreamError("Completion API key is not configured")
    options = options or {}

    payload = {"model": options.get("model") or self.model, "messages": messages}
    temperature = options.get("temperature", self.temperature)
    if temperature is not None:
      payload["temperature"] = temperature
    if options.get("response_format"):
      payload["response_format"] = options["response_format"]
    headers = {"Authorization": f"Bearer {self.token}", "Content-Type": "application/json"}

    try:
      # requests applies the read limit per socket read, not to the whole body
      resp = requests.post(self.url, headers=headers, json=payload,
                           timeout=(min(CONNECT_TIMEOUT, self.timeout), self.timeout))
    except requests.Timeout:
      logger.error("Completion request timed out after %ss", self.timeout)
      raise UpstreamError(f"Completion request timed out after {self.timeout:g}s")
    except requests.RequestException as e:
      logger.exception("Completion request failed")
      raise UpstreamError(f"Completion request failed: {e.__class__.__name__}")

    if not 200 <= resp.status_code < 300:
      logger.error("LLM request failed: status=%s body=%.1000s", resp.status_code, resp.text)
      raise UpstreamError(f"Completion API returned status {resp.status_code}", upstream_status=resp.status_code)

    try:
      data = resp.json()
    except ValueError:
      logger.error("Completion API returned a non-JSON body: %.500s", resp.text)
      raise UpstreamError("Completion API returned a non-JSON body")

    choices = data.get("choices") if isinstance(data, dict) else None
    content = None
    if choices and isinstance(choices[0], dict):
      content = (choices[0].get("message") or {}).get("content")
    if not isinstance(content, str) or not content.strip():
      logger.error("Completion response had no content: %.500s", json.dumps(data)[:500])
      raise UpstreamError("Invalid response from completion API: empty content")
    return content.strip()


class SubprocessProvider(CompletionProvider):
  """Local model runner: messages go to the child's stdin as JSON, text comes back on stdout.

  The child is waited on synchronously and killed once ``timeout`` expires.
  """

  def __init__(self, command: str, timeout: float = 60.0):
    self.argv = shlex.split(command)
    self.timeout = timeout
    if not self.argv:
      raise ValueError("local model command is empty")

  def complete(self, messages: List[Message], options: Optional[dict] = None) -> str:
    request = json.dumps({"messages": messages, "options": options or {}})
    logger.info("Run: %s", " ".join(self.argv))
    try:
      # subprocess.run kills the child before re-raising TimeoutExpired
      r = subprocess.run(self.argv, input=request, capture_output=True, text=True, timeout=self.timeout)
    except subprocess.TimeoutExpired:
      logger.error("Local model timed out after %ss and was terminated", self.timeout)
      raise UpstreamError(f"Local model timed out after {self.timeout:g}s")
    except OSError as e:
      logger.exception("Failed to start local model")
      raise UpstreamError(f"Failed to start local model: {e.strerror or e}")

    if r.returncode != 0:
      logger.error("Local model exited with %s: %.1000s", r.returncode, r.stderr)
      raise UpstreamError(f"Local model exited with status {r.returncode}")
    text = (r.stdout or "").strip()
    if not text:
      raise UpstreamError("Local model produced no output")
    return text


def provider_from_settings(settings: Settings) -> CompletionProvider:
  if settings.provider == "subprocess":
    return SubprocessProvider(settings.local_model_command, timeout=settings.timeout)
  return ChatCompletionProvider(
    settings.api_url,
    settings.api_key,
    model=settings.model,
    timeout=settings.timeout,
    temperature=settings.temperature,
  )


def clarify_prompt(provider: CompletionProvider, prompt: str, profile: str = "default") -> str:
  return provider.complete(build_messages(CLARIFY, prompt, profile))


def generate_pwa(provider: CompletionProvider, prompt: str, profile: str = "default",
                 json_mode: bool = False) -> PWABundle:
  options = {"response_format": {"type": "json_object"}} if json_mode else None
  text = provider.complete(build_messages(GENERATE, prompt, profile), options)
  bundle = validate_bundle(parse_json_object(text))
  logger.info("Generated PWA bundle (%d bytes of html, %d bytes of js)", len(bundle.html), len(bundle.js))
  return bundle
