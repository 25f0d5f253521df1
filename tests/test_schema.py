import pytest

from errors import SchemaError
from schema import FieldSpec, PWABundle, validate_bundle, validate_fields


def test_valid_bundle(bundle_dict):
    bundle = validate_bundle(bundle_dict)
    assert isinstance(bundle, PWABundle)
    assert bundle.sw == bundle_dict["sw"]


def test_missing_sw_is_reported_by_name(bundle_dict):
    del bundle_dict["sw"]
    with pytest.raises(SchemaError) as exc_info:
        validate_bundle(bundle_dict)
    assert exc_info.value.fields == ["sw"]
    assert "sw" in exc_info.value.message
    assert exc_info.value.status_code == 500


def test_every_problem_is_listed(bundle_dict):
    bundle_dict["html"] = "<div>no document</div>"
    bundle_dict["manifest"] = "not json"
    bundle_dict["css"] = 42
    del bundle_dict["js"]
    with pytest.raises(SchemaError) as exc_info:
        validate_bundle(bundle_dict)
    assert exc_info.value.fields == ["html", "js", "manifest", "css"]


def test_optional_fields_may_be_absent():
    fields = [FieldSpec("name"), FieldSpec("note", required=False)]
    assert validate_fields({"name": "x"}, fields) == {"name": "x"}


def test_type_mismatch_skips_content_check():
    calls = []
    fields = [FieldSpec("n", type=int, check=lambda v: calls.append(v) or True)]
    with pytest.raises(SchemaError):
        validate_fields({"n": "7"}, fields)
    assert calls == []


def test_non_object_rejected():
    with pytest.raises(SchemaError):
        validate_fields(["html"], [FieldSpec("html")])
