import logging
import re
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from formgen.models import (
    DEFAULT_PATTERN_MESSAGE,
    FieldCompileError,
    FieldCompileErrorKind,
    FieldDescriptor,
    FieldOption,
    FieldType,
    SchemaError,
    SchemaErrorKind,
    ValidationRule,
)

logger = logging.getLogger(__name__)


class RawField(BaseModel):
    """Shape a `fields` entry must have before it can be compiled."""

    model_config = ConfigDict(extra="allow")

    id: str
    type: str
    label: str
    required: Optional[bool] = None
    placeholder: Optional[str] = None
    validation: Any = None
    options: Any = None

    @field_validator("id", "type")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value


def _describe_shape_errors(exc: ValidationError) -> str:
    problems: List[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "field"
        if error.get("type") == "missing":
            problems.append(f"missing '{location}'")
        else:
            problems.append(f"'{location}' {error.get('msg', 'is invalid').lower()}")
    return "; ".join(problems)


def check_shape(raw_field: Any, index: int) -> Tuple[Optional[RawField], Optional[SchemaError]]:
    """Validate one raw `fields` entry, returning the parsed entry or an error."""
    field_id = None
    if isinstance(raw_field, dict) and isinstance(raw_field.get("id"), str):
        field_id = raw_field["id"]

    if not isinstance(raw_field, dict):
        return None, SchemaError(
            kind=SchemaErrorKind.INVALID_FIELD_SHAPE,
            message=f"Field #{index + 1} must be an object.",
            field_index=index,
        )

    try:
        return RawField.model_validate(raw_field), None
    except ValidationError as exc:
        detail = _describe_shape_errors(exc)
        name = f"'{field_id}'" if field_id else f"#{index + 1}"
        return None, SchemaError(
            kind=SchemaErrorKind.INVALID_FIELD_SHAPE,
            message=f"Field {name} is malformed: {detail}.",
            detail=detail,
            field_index=index,
            field_id=field_id,
        )


_DIGIT = "0-9"
_WORD = "A-Za-z0-9_"
_CLASS_ESCAPES = {"d": _DIGIT, "w": _WORD}
_BARE_ESCAPES = {"d": f"[{_DIGIT}]", "D": f"[^{_DIGIT}]", "w": f"[{_WORD}]", "W": f"[^{_WORD}]"}


def translate_pattern(source: str) -> str:
    """Rewrite a browser-style pattern so Python matches it the same way.

    ``$`` only matches at the very end of the value, ``\\d`` and ``\\w`` are
    ASCII-only and ``(?<name>...)`` groups are accepted.
    """
    out: List[str] = []
    in_class = False
    i = 0
    while i < len(source):
        char = source[i]
        if char == "\\" and i + 1 < len(source):
            escaped = source[i + 1]
            if in_class and escaped in _CLASS_ESCAPES:
                out.append(_CLASS_ESCAPES[escaped])
            elif not in_class and escaped in _BARE_ESCAPES:
                out.append(_BARE_ESCAPES[escaped])
            else:
                out.append(source[i:i + 2])
            i += 2
            continue
        if in_class:
            if char == "]":
                in_class = False
            out.append(char)
        elif char == "[":
            negated = source[i + 1:i + 2] == "^"
            start = i + 2 if negated else i + 1
            if source[start:start + 1] == "]":
                # "[]" never matches, "[^]" matches anything.
                out.append(r"[\s\S]" if negated else "(?!)")
                i = start + 1
                continue
            in_class = True
            out.append("[^" if negated else "[")
            i = start
            continue
        elif char == "$":
            out.append(r"\Z")
        elif source.startswith("(?<", i) and source[i + 3:i + 4] not in ("=", "!"):
            out.append("(?P<")
            i += 3
            continue
        else:
            out.append(char)
        i += 1
    return "".join(out)


def _compile_rule(raw_validation: Any, field_id: str) -> Tuple[Optional[ValidationRule], List[FieldCompileError]]:
    if not isinstance(raw_validation, dict):
        return None, []
    pattern = raw_validation.get("pattern")
    if not isinstance(pattern, str) or not pattern:
        return None, []

    message = raw_validation.get("message")
    if not isinstance(message, str) or not message:
        message = DEFAULT_PATTERN_MESSAGE

    try:
        regex = re.compile(translate_pattern(pattern))
    except re.error as exc:
        logger.warning("Pattern for field %s does not compile: %s", field_id, exc)
        error = FieldCompileError(
            kind=FieldCompileErrorKind.PATTERN_COMPILE_ERROR,
            message=f"Invalid validation pattern: {exc}",
        )
        return ValidationRule(pattern=pattern, message=message), [error]

    return ValidationRule(pattern=pattern, message=message, regex=regex), []


def _option_text(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    return None


def _compile_options(raw_options: Any) -> Optional[List[FieldOption]]:
    if not isinstance(raw_options, list) or not raw_options:
        return None
    options: List[FieldOption] = []
    for item in raw_options:
        if not isinstance(item, dict):
            return None
        value = _option_text(item.get("value"))
        label = _option_text(item.get("label"))
        if value is None or label is None:
            return None
        options.append(FieldOption(value=value, label=label))
    return options


def _build_descriptor(entry: RawField) -> FieldDescriptor:
    field_type = FieldType.resolve(entry.type)
    if field_type.value != entry.type.strip().lower():
        logger.debug("Unknown field type %r for %s; rendering as %s", entry.type, entry.id, field_type.value)

    compile_errors: List[FieldCompileError] = []
    validation: Optional[ValidationRule] = None
    options: List[FieldOption] = []

    if field_type.is_choice:
        compiled_options = _compile_options(entry.options)
        if compiled_options is None:
            compile_errors.append(
                FieldCompileError(
                    kind=FieldCompileErrorKind.OPTIONS_MISSING,
                    message=f"Options are required for {entry.type.strip()} fields.",
                )
            )
        else:
            options = compiled_options
    else:
        validation, rule_errors = _compile_rule(entry.validation, entry.id)
        compile_errors.extend(rule_errors)

    return FieldDescriptor(
        id=entry.id,
        type=field_type,
        declared_type=entry.type,
        label=entry.label,
        required=bool(entry.required),
        placeholder=entry.placeholder,
        validation=validation,
        options=options,
        compile_errors=compile_errors,
    )


def compile_field(raw_field: Any, index: int = 0) -> Tuple[Optional[FieldDescriptor], Optional[SchemaError]]:
    """Build a descriptor from a raw field entry.

    Returns ``(descriptor, None)``, or ``(None, error)`` when the entry does
    not have the shape of a field. Pattern problems and missing options are
    attached to the descriptor as compile errors instead.
    """
    if isinstance(raw_field, RawField):
        return _build_descriptor(raw_field), None
    entry, shape_error = check_shape(raw_field, index)
    if shape_error is not None:
        return None, shape_error
    return _build_descriptor(entry), None
