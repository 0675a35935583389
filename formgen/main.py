import logging
from typing import Any, Dict

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from formgen import config
from formgen.export import (
    SCHEMA_EXPORT_FILENAME,
    SUBMISSION_FILENAME,
    prettify,
    sample_schema_text,
)
from formgen.session import FormSession

app = FastAPI(title="formgen Form Service")
logger = logging.getLogger(__name__)
logging.getLogger("formgen").setLevel(config.log_level())

logger.info("Strict field shape checking: %s", config.strict_fields_enabled())


class SchemaText(BaseModel):
    text: str = ""


class FormValues(BaseModel):
    text: str = ""
    values: Dict[str, Any] = Field(default_factory=dict)


def _load_session(text: str) -> FormSession:
    session = FormSession(strict=config.strict_fields_enabled())
    error = session.load(text)
    if error is not None:
        logger.warning("Rejected schema (%s): %s", error.kind.value, error.message)
        raise HTTPException(status_code=422, detail=error.model_dump(mode="json"))
    return session


def _apply_values(session: FormSession, values: Dict[str, Any]) -> None:
    known = session.schema.descriptors_by_id()
    for field_id, value in values.items():
        if field_id not in known:
            logger.warning("Dropping value for unknown field %s", field_id)
            continue
        session.update(field_id, value)


@app.get("/health")
async def health():
    return {"ok": True, "service": "form-service"}


@app.get("/schema/sample")
async def schema_sample():
    return {"text": sample_schema_text(), "filename": SCHEMA_EXPORT_FILENAME}


@app.post("/schema/parse")
async def schema_parse(payload: SchemaText):
    session = _load_session(payload.text)
    schema = session.schema
    logger.info("Compiled schema %r with %d fields", schema.title, len(schema.fields))
    return {
        "title": schema.title,
        "description": schema.description,
        "fields": [descriptor.model_dump(mode="json") for descriptor in schema.fields],
        "issues": [issue.model_dump(mode="json") for issue in schema.issues],
        "defaults": session.store.values,
    }


@app.post("/schema/prettify")
async def schema_prettify(payload: SchemaText):
    text, error = prettify(payload.text)
    if error is not None:
        raise HTTPException(status_code=400, detail=error)
    return {"text": text, "filename": SCHEMA_EXPORT_FILENAME}


@app.post("/form/validate")
async def form_validate(payload: FormValues):
    session = _load_session(payload.text)
    _apply_values(session, payload.values)
    state = session.store.validate_all()
    return {
        "valid": session.store.is_valid(),
        "errors": state.errors,
        "values": state.values,
    }


@app.post("/form/export")
async def form_export(payload: FormValues):
    session = _load_session(payload.text)
    _apply_values(session, payload.values)
    result = session.submit()
    if not result.valid:
        logger.info("Export blocked by %d field errors", sum(1 for m in result.errors.values() if m))
        raise HTTPException(status_code=422, detail={"errors": result.errors})
    return {"filename": SUBMISSION_FILENAME, "content": result.document}
