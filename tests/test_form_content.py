"""Tests for merging template fields with submitted values."""

from app.utils.form_content import merge_form_data, missing_required_fields


RADIO = {
    "name": "q1",
    "type": "radio",
    "label": "Compliant?",
    "required": True,
    "options": [{"value": "a", "label": "Yes"}, {"value": "b", "label": "No"}]
}


class TestMergeFormData:

    def test_option_value_is_replaced_by_its_label(self):
        merged = merge_form_data([RADIO], {"q1": "a"})
        assert merged[0]["submitted_value"] == "Yes"

    def test_unmatched_value_passes_through(self):
        merged = merge_form_data([RADIO], {"q1": "z"})
        assert merged[0]["submitted_value"] == "z"

    def test_field_definition_is_kept(self):
        merged = merge_form_data([RADIO], {"q1": "b"})
        assert merged[0]["name"] == "q1"
        assert merged[0]["label"] == "Compliant?"
        assert merged[0]["options"] == RADIO["options"]

    def test_missing_field_gets_none(self):
        merged = merge_form_data([RADIO], {})
        assert merged[0]["submitted_value"] is None

    def test_no_form_data_at_all(self):
        merged = merge_form_data([RADIO], None)
        assert merged == [dict(RADIO, submitted_value=None)]

    def test_field_without_options_keeps_raw_value(self):
        text = {"name": "notes", "type": "text", "label": "Notes", "required": False}
        merged = merge_form_data([text], {"notes": "all good"})
        assert merged[0]["submitted_value"] == "all good"

    def test_bare_string_options(self):
        select = {"name": "color", "type": "select", "label": "Color",
                  "required": False, "options": ["red", "blue"]}
        merged = merge_form_data([select], {"color": "blue"})
        assert merged[0]["submitted_value"] == "blue"

    def test_list_values_are_resolved_per_item(self):
        checkbox = {
            "name": "checks", "type": "checkbox", "label": "Checks", "required": False,
            "options": [{"value": "x", "label": "Pressure"}, {"value": "y", "label": "Leaks"}]
        }
        merged = merge_form_data([checkbox], {"checks": ["y", "unknown", "x"]})
        assert merged[0]["submitted_value"] == ["Leaks", "unknown", "Pressure"]

    def test_order_follows_template(self):
        fields = [
            {"name": "b", "type": "text", "label": "B", "required": False},
            {"name": "a", "type": "text", "label": "A", "required": False},
        ]
        merged = merge_form_data(fields, {"a": 1, "b": 2})
        assert [m["name"] for m in merged] == ["b", "a"]

    def test_does_not_mutate_template_fields(self):
        fields = [dict(RADIO)]
        merge_form_data(fields, {"q1": "a"})
        assert "submitted_value" not in fields[0]


class TestMissingRequiredFields:

    def test_all_present(self):
        assert missing_required_fields([RADIO], {"q1": "a"}) == []

    def test_empty_values_count_as_missing(self):
        assert missing_required_fields([RADIO], {"q1": ""}) == ["q1"]
        assert missing_required_fields([RADIO], {"q1": []}) == ["q1"]
        assert missing_required_fields([RADIO], {"q1": None}) == ["q1"]

    def test_optional_fields_are_ignored(self):
        optional = {"name": "notes", "type": "text", "label": "Notes", "required": False}
        assert missing_required_fields([optional], {}) == []

    def test_zero_and_false_are_values(self):
        number = {"name": "n", "type": "number", "label": "N", "required": True}
        assert missing_required_fields([number], {"n": 0}) == []
