import hashlib
import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

REQUIRED_MESSAGE = "This field is required"
DEFAULT_PATTERN_MESSAGE = "Invalid input"


class FieldType(str, Enum):
    """Input kinds a form field can render as."""

    TEXT = "text"
    EMAIL = "email"
    PASSWORD = "password"
    NUMBER = "number"
    TEL = "tel"
    URL = "url"
    DATE = "date"
    DATETIME_LOCAL = "datetime-local"
    TIME = "time"
    MONTH = "month"
    WEEK = "week"
    COLOR = "color"
    RANGE = "range"
    SEARCH = "search"
    CHECKBOX = "checkbox"
    SELECT = "select"
    RADIO = "radio"
    TEXTAREA = "textarea"

    @classmethod
    def resolve(cls, raw: str) -> "FieldType":
        """Map a declared type string to a member, falling back to text."""
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return DEFAULT_FIELD_TYPE

    @property
    def is_choice(self) -> bool:
        return self in (FieldType.SELECT, FieldType.RADIO)

    @property
    def is_boolean(self) -> bool:
        return self is FieldType.CHECKBOX


# Unknown types render as a single-line text input.
DEFAULT_FIELD_TYPE = FieldType.TEXT


class SchemaErrorKind(str, Enum):
    SYNTAX_ERROR = "SyntaxError"
    MISSING_FIELDS_ARRAY = "MissingFieldsArray"
    INVALID_FIELD_SHAPE = "InvalidFieldShape"


class FieldCompileErrorKind(str, Enum):
    PATTERN_COMPILE_ERROR = "PatternCompileError"
    OPTIONS_MISSING = "OptionsMissing"


class FieldValidationErrorKind(str, Enum):
    REQUIRED = "Required"
    PATTERN_MISMATCH = "PatternMismatch"


class SchemaError(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: SchemaErrorKind
    message: str
    detail: Optional[str] = None
    field_index: Optional[int] = None
    field_id: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None


class FieldCompileError(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: FieldCompileErrorKind
    message: str


class FieldValidationError(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: FieldValidationErrorKind
    message: str


class FieldOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    label: str


class ValidationRule(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    pattern: str
    message: str = DEFAULT_PATTERN_MESSAGE
    # None when the pattern failed to compile.
    regex: Optional[re.Pattern] = Field(default=None, exclude=True, repr=False)


class FieldDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str
    type: FieldType = DEFAULT_FIELD_TYPE
    declared_type: str = DEFAULT_FIELD_TYPE.value
    label: str
    required: bool = False
    placeholder: Optional[str] = None
    validation: Optional[ValidationRule] = None
    options: List[FieldOption] = Field(default_factory=list)
    compile_errors: List[FieldCompileError] = Field(default_factory=list)

    @computed_field
    @property
    def render_blocked(self) -> bool:
        return any(
            error.kind is FieldCompileErrorKind.OPTIONS_MISSING for error in self.compile_errors
        )

    @property
    def default_value(self) -> Any:
        return False if self.type.is_boolean else ""

    @property
    def regex(self) -> Optional[re.Pattern]:
        return self.validation.regex if self.validation is not None else None


class FormSchema(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = Field(default="", alias="formTitle")
    description: str = Field(default="", alias="formDescription")
    fields: List[FieldDescriptor] = Field(default_factory=list)
    issues: List[SchemaError] = Field(default_factory=list)

    @property
    def fingerprint(self) -> str:
        """Identity of the schema; equal for re-parses of the same document."""
        payload = json.dumps(
            self.model_dump(mode="json", exclude={"issues"}),
            sort_keys=True,
            separators=(",", ":"),
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    @property
    def identity(self) -> str:
        """Field ids and resolved types in order.

        Edits to labels, messages, patterns, options or required flags keep
        the identity, so values typed so far survive them.
        """
        payload = json.dumps([[field.id, field.type.value] for field in self.fields])
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def descriptors_by_id(self) -> Dict[str, FieldDescriptor]:
        """Authoritative descriptor per id; the last one wins for duplicates."""
        return {descriptor.id: descriptor for descriptor in self.fields}


@dataclass(frozen=True)
class ParseOutcome:
    """Either a compiled schema or the error that prevented it."""

    schema: Optional[FormSchema] = None
    error: Optional[SchemaError] = None

    @property
    def ok(self) -> bool:
        return self.schema is not None and self.error is None
