import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from formgen.export import prettify, serialize
from formgen.models import FormSchema, SchemaError
from formgen.schema import parse
from formgen.state import FormState, FormStateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionResult:
    valid: bool
    errors: Dict[str, Optional[str]] = field(default_factory=dict)
    document: Optional[str] = None


class FormSession:
    """One editor/form pair: the latest schema text and the store behind it.

    Re-loading text whose fields keep their ids and types keeps what the user
    has typed and re-checks it against the edited rules; any other change
    starts again from default values.
    """

    def __init__(self, raw_text: str = "", strict: bool = False):
        self.strict = strict
        self.raw_text = ""
        self.schema: Optional[FormSchema] = None
        self.error: Optional[SchemaError] = None
        self.store = FormStateStore()
        self._identity: Optional[str] = None
        if raw_text:
            self.load(raw_text)

    @property
    def state(self) -> FormState:
        return self.store.state

    def load(self, raw_text: str) -> Optional[SchemaError]:
        self.raw_text = raw_text
        outcome = parse(raw_text, strict=self.strict)
        if not outcome.ok:
            self.schema = None
            self.error = outcome.error
            return self.error

        schema = outcome.schema
        identity = schema.identity
        self.schema = schema
        self.error = None
        if identity != self._identity:
            logger.info("Loaded schema %r with %d fields", schema.title, len(schema.fields))
            self._identity = identity
            self.store.initialize(schema.fields)
        else:
            self.store.rebind(schema.fields)
        return None

    def update(self, field_id: str, value: Any) -> FormState:
        if self.schema is None:
            logger.warning("Ignoring update for %s: no schema loaded", field_id)
            return self.store.state
        return self.store.update(field_id, value)

    def submit(self) -> SubmissionResult:
        if self.schema is None:
            return SubmissionResult(valid=False)
        state = self.store.validate_all()
        if not self.store.is_valid():
            return SubmissionResult(valid=False, errors=dict(state.errors))
        return SubmissionResult(valid=True, errors=dict(state.errors), document=serialize(self.schema, state))

    def prettify(self) -> Tuple[Optional[str], Optional[str]]:
        return prettify(self.raw_text)
