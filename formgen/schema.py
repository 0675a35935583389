"""Parse raw schema text into a compiled `FormSchema`.

Nothing here raises for bad input: every failure comes back as a
`SchemaError` inside the returned `ParseOutcome`.
"""

import json
import logging
from typing import Any, List

from formgen.compiler import compile_field
from formgen.models import (
    FieldDescriptor,
    FormSchema,
    ParseOutcome,
    SchemaError,
    SchemaErrorKind,
)

logger = logging.getLogger(__name__)

NO_INPUT_MESSAGE = "No JSON data provided."
MISSING_FIELDS_MESSAGE = "Invalid JSON format: Missing or incorrect 'fields' array."


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON.
    raise ValueError(f"Unexpected token {name}")


def load_json(raw_text: str) -> Any:
    """Strict JSON decoding shared by the parser and the prettifier."""
    return json.loads(raw_text, parse_constant=_reject_constant)


def _syntax_error(exc: Exception) -> SchemaError:
    if isinstance(exc, json.JSONDecodeError):
        return SchemaError(
            kind=SchemaErrorKind.SYNTAX_ERROR,
            message=f"Invalid JSON input: {exc.msg} (line {exc.lineno}, column {exc.colno})",
            detail=str(exc),
            line=exc.lineno,
            column=exc.colno,
        )
    return SchemaError(
        kind=SchemaErrorKind.SYNTAX_ERROR,
        message=f"Invalid JSON input: {exc}",
        detail=str(exc),
    )


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def parse(raw_text: str, strict: bool = False) -> ParseOutcome:
    """Turn raw editor text into a compiled schema or a schema error.

    With ``strict`` the first malformed field rejects the whole document.
    Otherwise malformed fields are skipped and listed in ``schema.issues``.
    """
    if raw_text is None or not raw_text.strip():
        return ParseOutcome(
            error=SchemaError(kind=SchemaErrorKind.SYNTAX_ERROR, message=NO_INPUT_MESSAGE)
        )

    try:
        document = load_json(raw_text)
    except (ValueError, RecursionError) as exc:
        logger.debug("Schema text is not valid JSON: %s", exc)
        return ParseOutcome(error=_syntax_error(exc))

    if not isinstance(document, dict) or not isinstance(document.get("fields"), list):
        return ParseOutcome(
            error=SchemaError(kind=SchemaErrorKind.MISSING_FIELDS_ARRAY, message=MISSING_FIELDS_MESSAGE)
        )

    fields: List[FieldDescriptor] = []
    issues: List[SchemaError] = []
    seen_ids = set()

    for index, raw_field in enumerate(document["fields"]):
        descriptor, shape_error = compile_field(raw_field, index)
        if shape_error is not None:
            if strict:
                return ParseOutcome(error=shape_error)
            logger.debug("Skipping malformed field at index %d: %s", index, shape_error.message)
            issues.append(shape_error)
            continue

        if descriptor.id in seen_ids:
            logger.debug("Duplicate field id %s; the later definition wins", descriptor.id)
        seen_ids.add(descriptor.id)
        fields.append(descriptor)

    schema = FormSchema(
        title=_text(document.get("formTitle")),
        description=_text(document.get("formDescription")),
        fields=fields,
        issues=issues,
    )
    return ParseOutcome(schema=schema)
