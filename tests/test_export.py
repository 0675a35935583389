import json
import unittest

from formgen.export import (
    PRETTIFY_ERROR_MESSAGE,
    SAMPLE_SCHEMA,
    prettify,
    sample_schema_text,
    serialize,
    submission_values,
)
from formgen.schema import parse
from formgen.state import FormStateStore

SURVEY = json.dumps(
    {
        "formTitle": "Survey",
        "fields": [
            {"id": "name", "type": "text", "label": "Name", "required": True},
            {"id": "color", "type": "select", "label": "Color", "required": True, "options": []},
            {"id": "agree", "type": "checkbox", "label": "Agree"},
            {
                "id": "size",
                "type": "radio",
                "label": "Size",
                "options": [{"value": "s", "label": "Small"}, {"value": "l", "label": "Large"}],
            },
        ],
    }
)


class SerializeTests(unittest.TestCase):
    def setUp(self):
        self.schema = parse(SURVEY).schema
        self.store = FormStateStore(self.schema.fields)

    def test_email_scenario(self):
        text = (
            r'{"formTitle":"T","formDescription":"D","fields":[{"id":"email","type":"text",'
            r'"label":"Email","required":true,"validation":{"pattern":"^\\S+@\\S+$"}}]}'
        )
        schema = parse(text).schema
        store = FormStateStore(schema.fields)
        store.update("email", "bad")
        self.assertEqual(store.errors["email"], "Invalid input")
        store.update("email", "a@b.com")
        self.assertIsNone(store.errors["email"])
        self.assertEqual(serialize(schema, store.state), '{\n  "email": "a@b.com"\n}')

    def test_schema_order_without_blocked_fields(self):
        self.store.update("size", "l")
        self.store.update("name", "Ada")
        values = submission_values(self.schema, self.store.state)
        self.assertEqual(list(values), ["name", "agree", "size"])
        self.assertEqual(dict(values), {"name": "Ada", "agree": False, "size": "l"})

    def test_blocked_select_never_blocks_or_appears(self):
        self.store.update("name", "Ada")
        self.store.validate_all()
        self.assertTrue(self.store.is_valid())
        self.assertNotIn("color", json.loads(serialize(self.schema, self.store.state)))

    def test_serialize_leaves_state_alone(self):
        self.store.validate_all()
        before = self.store.state
        serialize(self.schema, before)
        self.assertIs(self.store.state, before)
        self.assertEqual(self.store.errors["name"], "This field is required")
        self.assertNotIn("errors", serialize(self.schema, before))

    def test_round_trip_through_fresh_store(self):
        self.store.update("name", "Zoë")
        self.store.update("agree", True)
        self.store.update("size", "s")
        exported = json.loads(serialize(self.schema, self.store.state))

        fresh = FormStateStore(self.schema.fields)
        for field_id, value in exported.items():
            fresh.update(field_id, value)
        self.assertEqual(fresh.values, self.store.values)

    def test_non_ascii_is_preserved(self):
        self.store.update("name", "Zoë")
        self.assertIn("Zoë", serialize(self.schema, self.store.state))

    def test_duplicate_id_exported_once(self):
        schema = parse(
            '{"fields": [{"id": "x", "type": "text", "label": "A"},'
            '{"id": "y", "type": "text", "label": "Y"},'
            '{"id": "x", "type": "checkbox", "label": "B"}]}'
        ).schema
        store = FormStateStore(schema.fields)
        store.update("x", True)
        self.assertEqual(serialize(schema, store.state, indent=None), '{"x": true, "y": ""}')


class EditorHelperTests(unittest.TestCase):
    def test_prettify_uses_two_spaces_and_keeps_key_order(self):
        text, error = prettify('{"b":1,"a":[true,null]}')
        self.assertIsNone(error)
        self.assertEqual(text, '{\n  "b": 1,\n  "a": [\n    true,\n    null\n  ]\n}')

    def test_prettify_rejects_invalid_json(self):
        for raw in ("{", "", "NaN"):
            with self.subTest(raw=raw):
                self.assertEqual(prettify(raw), (None, PRETTIFY_ERROR_MESSAGE))

    def test_sample_schema_parses(self):
        outcome = parse(sample_schema_text())
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.schema.title, SAMPLE_SCHEMA["formTitle"])
        self.assertEqual([field.id for field in outcome.schema.fields], ["name"])
        self.assertTrue(outcome.schema.fields[0].required)


if __name__ == "__main__":
    unittest.main()
