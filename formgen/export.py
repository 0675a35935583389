import json
import logging
from collections import OrderedDict
from typing import Any, Dict, Optional, Tuple

from formgen.models import FormSchema
from formgen.schema import load_json
from formgen.state import FormState

logger = logging.getLogger(__name__)

EXPORT_INDENT = 2
SUBMISSION_FILENAME = "form-data.json"
SCHEMA_EXPORT_FILENAME = "formatted-json.json"
PRETTIFY_ERROR_MESSAGE = "Invalid JSON, cannot prettify."

SAMPLE_SCHEMA: Dict[str, Any] = {
    "formTitle": "Project Requirements Survey",
    "formDescription": "Please fill out this survey about your project needs",
    "fields": [
        {
            "id": "name",
            "type": "text",
            "label": "Full Name",
            "required": True,
            "placeholder": "Enter your full name",
        }
    ],
}


def dumps(payload: Any, indent: int = EXPORT_INDENT) -> str:
    return json.dumps(payload, indent=indent, ensure_ascii=False)


def submission_values(schema: FormSchema, state: FormState) -> "OrderedDict[str, Any]":
    """Current values keyed by field id, in schema order, without render-blocked fields."""
    descriptors = schema.descriptors_by_id()
    result: "OrderedDict[str, Any]" = OrderedDict()
    for descriptor in schema.fields:
        field_id = descriptor.id
        if field_id in result or descriptors[field_id].render_blocked:
            continue
        result[field_id] = state.values.get(field_id, descriptors[field_id].default_value)
    return result


def serialize(schema: FormSchema, state: FormState, indent: int = EXPORT_INDENT) -> str:
    values = submission_values(schema, state)
    logger.debug("Serialized %d field values", len(values))
    return dumps(values, indent=indent)


def prettify(raw_text: str) -> Tuple[Optional[str], Optional[str]]:
    """Re-indent JSON text, returning ``(text, None)`` or ``(None, error)``."""
    try:
        document = load_json(raw_text or "")
    except (ValueError, RecursionError) as exc:
        logger.debug("Cannot prettify schema text: %s", exc)
        return None, PRETTIFY_ERROR_MESSAGE
    return dumps(document), None


def sample_schema_text() -> str:
    return dumps(SAMPLE_SCHEMA)
