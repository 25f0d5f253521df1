import json

import pytest

from ai_client import CompletionProvider
from config import Settings


SAMPLE_BUNDLE = {
    "html": '<!doctype html>\n<html lang="en"><head><link rel="stylesheet" href="style.css"></head>'
            '<body><div data-x=\'{"a": 1}\'>Tracker "beta"</div><script src="app.js"></script></body></html>',
    "js": 'const state = {"items": []};\nfunction add(x) { state.items.push(`${x}"`); }\n'
          "if ('serviceWorker' in navigator) { navigator.serviceWorker.register('service-worker.js'); }\n",
    "manifest": json.dumps({"name": "Water Tracker", "short_name": "Water", "start_url": "/", "display": "standalone"}),
    "sw": "self.addEventListener('fetch', (e) => { e.respondWith(caches.match(e.request).then(r => r || fetch(e.request))); });",
    "css": 'body { font-family: system-ui; }\n.q::after { content: "}\\""; }\n',
}

LONG_PROMPT = "A water intake tracker that works offline and reminds me hourly"


class FakeProvider(CompletionProvider):
    def __init__(self, reply="ok"):
        self.reply = reply
        self.calls = []

    def complete(self, messages, options=None):
        self.calls.append((messages, options))
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


@pytest.fixture
def settings():
    return Settings(api_key="test-key", api_url="https://llm.example.test/chat/completions", timeout=5.0)


@pytest.fixture
def bundle_dict():
    return dict(SAMPLE_BUNDLE)


@pytest.fixture
def bundle_text():
    return "```json\n" + json.dumps(SAMPLE_BUNDLE) + "\n```"
