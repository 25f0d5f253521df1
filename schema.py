import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel

from errors import SchemaError

logger = logging.getLogger("schema")


@dataclass(frozen=True)
class FieldSpec:
    name: str
    required: bool = True
    type: type = str
    # Optional content predicate; only applied when the value has the right type.
    check: Optional[Callable[[Any], bool]] = None
    message: str = "failed content check"


class PWABundle(BaseModel):
    html: str
    js: str
    manifest: str
    sw: str
    css: str


def _is_html(value: str) -> bool:
    lowered = value.lower()
    return "<html" in lowered and "</html>" in lowered


def _is_manifest(value: str) -> bool:
    try:
        return isinstance(json.loads(value), dict)
    except json.JSONDecodeError:
        return False


def _is_service_worker(value: str) -> bool:
    return "addEventListener" in value or "self." in value


def _not_blank(value: str) -> bool:
    return bool(value.strip())


PWA_BUNDLE_FIELDS = (
    FieldSpec("html", check=_is_html, message="must contain an opening and closing <html> tag"),
    FieldSpec("js", check=_not_blank, message="must not be empty"),
    FieldSpec("manifest", check=_is_manifest, message="must be a JSON object"),
    FieldSpec("sw", check=_is_service_worker, message="must register service worker event listeners"),
    FieldSpec("css", check=_not_blank, message="must not be empty"),
)


def validate_fields(obj: Dict[str, Any], fields: Sequence[FieldSpec]) -> Dict[str, Any]:
    """Check ``obj`` against the field table and report every problem at once.

    Raises SchemaError whose ``fields`` lists the offending field names in table
    order. Returns ``obj`` unchanged on success.
    """
    if not isinstance(obj, dict):
        raise SchemaError(f"Expected an object, got {type(obj).__name__}")

    bad: List[str] = []
    problems: List[str] = []
    for entry in fields:
        if entry.name not in obj or obj[entry.name] is None:
            if entry.required:
                bad.append(entry.name)
                problems.append(f"{entry.name}: missing")
            continue
        value = obj[entry.name]
        if not isinstance(value, entry.type):
            bad.append(entry.name)
            problems.append(f"{entry.name}: expected {entry.type.__name__}, got {type(value).__name__}")
            continue
        if entry.check is not None and not entry.check(value):
            bad.append(entry.name)
            problems.append(f"{entry.name}: {entry.message}")

    if bad:
        logger.warning("Schema validation failed: %s", "; ".join(problems))
        raise SchemaError("Invalid or missing fields: " + "; ".join(problems), fields=bad)
    return obj


def validate_bundle(obj: Dict[str, Any]) -> PWABundle:
    validate_fields(obj, PWA_BUNDLE_FIELDS)
    return PWABundle(**{entry.name: obj[entry.name] for entry in PWA_BUNDLE_FIELDS})
