import logging
from typing import Any, Dict, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from formgen.models import (
    REQUIRED_MESSAGE,
    FieldDescriptor,
    FieldValidationError,
    FieldValidationErrorKind,
)

logger = logging.getLogger(__name__)


class FormState(BaseModel):
    """Snapshot of a form's values and per-field error messages."""

    model_config = ConfigDict(frozen=True)

    values: Dict[str, Any] = Field(default_factory=dict)
    errors: Dict[str, Optional[str]] = Field(default_factory=dict)


def _is_empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) == 0
    return False


def _authoritative(fields: Sequence[FieldDescriptor]) -> Dict[str, FieldDescriptor]:
    return {descriptor.id: descriptor for descriptor in fields}


def check_value(descriptor: FieldDescriptor, value: Any) -> Optional[FieldValidationError]:
    """Validate a single value against its own field's rules."""
    if descriptor.render_blocked:
        return None

    if descriptor.required and _is_empty(value):
        return FieldValidationError(kind=FieldValidationErrorKind.REQUIRED, message=REQUIRED_MESSAGE)

    regex = descriptor.regex
    if regex is not None and isinstance(value, str) and value and regex.search(value) is None:
        return FieldValidationError(
            kind=FieldValidationErrorKind.PATTERN_MISMATCH,
            message=descriptor.validation.message,
        )

    return None


def _message(descriptor: FieldDescriptor, value: Any) -> Optional[str]:
    error = check_value(descriptor, value)
    return error.message if error is not None else None


def initial_state(fields: Sequence[FieldDescriptor]) -> FormState:
    descriptors = _authoritative(fields)
    return FormState(
        values={field_id: descriptor.default_value for field_id, descriptor in descriptors.items()},
        errors={field_id: None for field_id in descriptors},
    )


def apply_update(
    state: FormState, fields: Sequence[FieldDescriptor], field_id: str, value: Any
) -> FormState:
    """Return the state after one field edit; only that field is re-checked."""
    descriptor = _authoritative(fields).get(field_id)
    if descriptor is None:
        logger.warning("Ignoring update for unknown field %s", field_id)
        return state

    values = dict(state.values)
    values[field_id] = value
    errors = dict(state.errors)
    errors[field_id] = _message(descriptor, value)
    return FormState(values=values, errors=errors)


def apply_validate_all(state: FormState, fields: Sequence[FieldDescriptor]) -> FormState:
    descriptors = _authoritative(fields)
    errors = {
        field_id: _message(descriptor, state.values.get(field_id, descriptor.default_value))
        for field_id, descriptor in descriptors.items()
    }
    return FormState(values=dict(state.values), errors=errors)


def apply_rebind(state: FormState, fields: Sequence[FieldDescriptor]) -> FormState:
    """Carry values over to edited descriptors of the same fields.

    Fields the user has touched, or that already show an error, are checked
    against their new rules; untouched fields stay quiet.
    """
    descriptors = _authoritative(fields)
    values: Dict[str, Any] = {}
    errors: Dict[str, Optional[str]] = {}
    for field_id, descriptor in descriptors.items():
        value = state.values.get(field_id, descriptor.default_value)
        values[field_id] = value
        if state.errors.get(field_id) is not None or value != descriptor.default_value:
            errors[field_id] = _message(descriptor, value)
        else:
            errors[field_id] = None
    return FormState(values=values, errors=errors)


class FormStateStore:
    """Holds the current `FormState` for one active form.

    The store is the only mutable piece of the engine. Each method swaps in
    the state produced by the matching pure transition.
    """

    def __init__(self, fields: Sequence[FieldDescriptor] = ()):
        self._fields = list(fields)
        self._state = initial_state(self._fields)

    @property
    def state(self) -> FormState:
        return self._state

    @property
    def fields(self) -> Sequence[FieldDescriptor]:
        return tuple(self._fields)

    @property
    def values(self) -> Dict[str, Any]:
        return dict(self._state.values)

    @property
    def errors(self) -> Dict[str, Optional[str]]:
        return dict(self._state.errors)

    def initialize(self, fields: Sequence[FieldDescriptor]) -> FormState:
        self._fields = list(fields)
        self._state = initial_state(self._fields)
        return self._state

    def rebind(self, fields: Sequence[FieldDescriptor]) -> FormState:
        self._fields = list(fields)
        self._state = apply_rebind(self._state, self._fields)
        return self._state

    def update(self, field_id: str, value: Any) -> FormState:
        self._state = apply_update(self._state, self._fields, field_id, value)
        return self._state

    def validate_all(self) -> FormState:
        self._state = apply_validate_all(self._state, self._fields)
        return self._state

    def is_valid(self) -> bool:
        return not any(message is not None for message in self._state.errors.values())
