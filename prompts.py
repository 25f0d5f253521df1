"""System templates for the two agent actions, grouped by profile.

The ``medical`` profile only changes wording and asks for a visible disclaimer
in generated apps; it does not add any clinical logic.
"""
from typing import Dict

CLARIFY = "clarify"
GENERATE = "generate"
ACTIONS = (CLARIFY, GENERATE)

BUNDLE_FORMAT = """Return ONLY a single JSON object, no markdown fences and no extra prose:
{
  "html": "<full index.html document>",
  "js": "<contents of app.js>",
  "manifest": "<contents of manifest.json as a JSON string>",
  "sw": "<contents of service-worker.js>",
  "css": "<contents of style.css>"
}
Every value must be a string. The HTML must be a complete document with <html> and </html>,
link style.css and app.js by those exact names, and register service-worker.js."""

MEDICAL_DISCLAIMER = (
    "This app provides general health information only and is not a substitute for "
    "professional medical advice, diagnosis, or treatment."
)

PROFILES: Dict[str, Dict[str, str]] = {
    "default": {
        CLARIFY: "You help clarify vague app ideas into specific PWA requirements.",
        GENERATE: "You're a PWA generator. Build a small, accessible, mobile-first Progressive Web App.\n"
        + BUNDLE_FORMAT,
    },
    "medical": {
        CLARIFY: (
            "You help clinicians and health teams clarify vague app ideas into specific PWA requirements. "
            "Call out which data the app will handle and keep the scope to information and tracking, "
            "never diagnosis."
        ),
        GENERATE: (
            "You're a PWA generator for healthcare tools. Build a small, accessible, mobile-first "
            "Progressive Web App that works offline.\n"
            f'Show this disclaimer in the page footer verbatim: "{MEDICAL_DISCLAIMER}"\n'
            "Do not send any entered data to third-party services.\n" + BUNDLE_FORMAT
        ),
    },
}

USER_TEMPLATES = {
    CLARIFY: "Clarify this prompt so it's specific enough to generate a real PWA: \"{prompt}\"",
    GENERATE: "{prompt}",
}


def system_prompt(action: str, profile: str = "default") -> str:
    return PROFILES[profile][action]


def user_prompt(action: str, prompt: str) -> str:
    return USER_TEMPLATES[action].format(prompt=prompt)
