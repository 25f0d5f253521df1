import json
from dataclasses import replace

import pytest

import agent
from agent import handle
from errors import UpstreamError

from conftest import FakeProvider, LONG_PROMPT, SAMPLE_BUNDLE

CORS_KEYS = ("Access-Control-Allow-Origin", "Access-Control-Allow-Methods", "Access-Control-Allow-Headers")


def _body(**kw):
    return json.dumps(kw)


def test_options_never_touches_provider(settings, monkeypatch):
    monkeypatch.setattr(agent, "provider_from_settings", lambda s: pytest.fail("provider built on preflight"))
    fake = FakeProvider()
    resp = handle("OPTIONS", None, settings, fake)
    assert resp.status_code == 204
    assert resp.body is None
    assert fake.calls == []
    for key in CORS_KEYS:
        assert key in resp.headers


@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "PATCH"])
def test_other_methods_are_rejected(settings, method):
    fake = FakeProvider()
    resp = handle(method, _body(action="clarify", prompt=LONG_PROMPT), settings, fake)
    assert resp.status_code == 405
    assert resp.body["success"] is False
    assert "Not Allowed" in resp.body["error"]
    assert fake.calls == []
    for key in CORS_KEYS:
        assert key in resp.headers


@pytest.mark.parametrize("body", [_body(prompt=LONG_PROMPT), _body(action="generate"), _body()])
def test_missing_fields_are_400(settings, body):
    resp = handle("POST", body, settings, FakeProvider())
    assert resp.status_code == 400
    assert resp.body["success"] is False
    assert resp.body["timestamp"].endswith("Z")


def test_clarify_success_envelope(settings):
    fake = FakeProvider("Clarified: a hydration tracker with hourly notifications.")
    resp = handle("post", _body(action="clarify", prompt=LONG_PROMPT), settings, fake)
    assert resp.status_code == 200
    assert resp.body["success"] is True
    assert resp.body["content"] == "Clarified: a hydration tracker with hourly notifications."
    assert resp.body["requestId"]
    assert "artifacts" not in resp.body


def test_generate_success_envelope(settings, bundle_text):
    resp = handle("POST", _body(action="generate", prompt=LONG_PROMPT), settings, FakeProvider(bundle_text))
    assert resp.status_code == 200
    assert resp.body["content"] == SAMPLE_BUNDLE


def test_bundle_survives_json_round_trip(settings, bundle_text):
    resp = handle("POST", _body(action="generate", prompt=LONG_PROMPT), settings, FakeProvider(bundle_text))
    decoded = json.loads(json.dumps(resp.body))
    for field, value in SAMPLE_BUNDLE.items():
        assert decoded["content"][field] == value


def test_schema_error_is_500(settings, bundle_dict):
    del bundle_dict["sw"]
    resp = handle("POST", _body(action="generate", prompt=LONG_PROMPT), settings, FakeProvider(json.dumps(bundle_dict)))
    assert resp.status_code == 500
    assert "sw" in resp.body["error"]
    assert "stack" not in resp.body


def test_upstream_error_is_500(settings):
    fake = FakeProvider(UpstreamError("Completion request timed out after 60s"))
    resp = handle("POST", _body(action="clarify", prompt=LONG_PROMPT), settings, fake)
    assert resp.status_code == 500
    assert resp.body["error"] == "Completion request timed out after 60s"


def test_unexpected_error_hides_message_outside_development(settings):
    fake = FakeProvider(RuntimeError("secret internals"))
    resp = handle("POST", _body(action="clarify", prompt=LONG_PROMPT), settings, fake)
    assert resp.status_code == 500
    assert resp.body["error"] == "Internal Server Error"
    assert "details" not in resp.body


def test_development_mode_exposes_details_and_stack(settings, bundle_dict):
    debug = replace(settings, debug=True)
    del bundle_dict["sw"]
    resp = handle("POST", _body(action="generate", prompt=LONG_PROMPT), debug, FakeProvider(json.dumps(bundle_dict)))
    assert resp.body["details"]["type"] == "SchemaError"
    assert resp.body["details"]["fields"] == ["sw"]
    assert "Traceback" in resp.body["stack"]


def test_allowed_origin_is_echoed(settings):
    resp = handle("OPTIONS", None, replace(settings, allowed_origin="https://app.example.test"))
    assert resp.headers["Access-Control-Allow-Origin"] == "https://app.example.test"


def test_generate_publishes_when_configured(settings, bundle_text, tmp_path):
    configured = replace(settings, output_dir=str(tmp_path), publish_zip=True)
    resp = handle("POST", _body(action="generate", prompt=LONG_PROMPT), configured, FakeProvider(bundle_text))
    assert resp.status_code == 200
    artifacts = resp.body["artifacts"]
    assert (tmp_path / resp.body["requestId"] / "index.html").read_text(encoding="utf-8") == SAMPLE_BUNDLE["html"]
    assert artifacts["archive"].endswith(resp.body["requestId"] + ".zip")


def test_clarify_does_not_publish(settings, tmp_path, monkeypatch):
    monkeypatch.setattr(agent, "publish_bundle", lambda *a: pytest.fail("clarify must not publish"))
    configured = replace(settings, output_dir=str(tmp_path))
    resp = handle("POST", _body(action="clarify", prompt=LONG_PROMPT), configured, FakeProvider("text"))
    assert resp.status_code == 200
