"""Tests for mcp_server_milkee.tools: descriptors and argument models."""

import pydantic
import pytest

from mcp_server_milkee.tools import (
    ACCOUNT_TYPES,
    TAG_COLORS,
    TOOLS,
    TOOLS_BY_NAME,
    argument_model,
)


class TestRegistry:
    def test_names_are_unique(self):
        names = [tool.name for tool in TOOLS]
        assert len(names) == len(set(names))

    def test_names_are_prefixed(self):
        assert all(tool.name.startswith("milkee_") for tool in TOOLS)

    def test_every_tool_has_description_and_object_schema(self):
        for tool in TOOLS:
            assert tool.description, tool.name
            assert tool.inputSchema["type"] == "object", tool.name

    def test_required_fields_are_declared(self):
        for tool in TOOLS:
            properties = tool.inputSchema.get("properties", {})
            missing = set(tool.inputSchema.get("required", [])) - properties.keys()
            assert not missing, f"{tool.name} requires undeclared {missing}"

    def test_closed_vocabularies(self):
        tag_schema = TOOLS_BY_NAME["milkee_create_tag"].inputSchema
        assert tag_schema["properties"]["color"]["enum"] == TAG_COLORS
        assert len(TAG_COLORS) == 11
        account_schema = TOOLS_BY_NAME["milkee_create_account"].inputSchema
        assert account_schema["properties"]["type"]["enum"] == ACCOUNT_TYPES
        project_schema = TOOLS_BY_NAME["milkee_create_project"].inputSchema
        assert project_schema["properties"]["project_type"]["enum"] == ["byHour", "fixedBudget", "fixedPrice"]

    @pytest.mark.parametrize("name", [
        "milkee_get_timer",
        "milkee_start_timer",
        "milkee_stop_timer",
        "milkee_update_timer_description",
        "milkee_discard_timer",
        "milkee_bulk_archive_projects",
        "milkee_bulk_delete_entries",
        "milkee_bulk_update_entries",
        "milkee_get_next_entry_number",
        "milkee_convert_proposal_to_invoice",
        "milkee_get_company_summary",
    ])
    def test_special_operations_are_registered(self, name):
        assert name in TOOLS_BY_NAME


class TestArgumentModel:
    def test_required_field(self):
        with pytest.raises(pydantic.ValidationError):
            argument_model("milkee_create_task").model_validate({"title": "Docs"})

    def test_unknown_keys_are_ignored(self):
        model = argument_model("milkee_get_tag").model_validate({"id": 3, "colour": "red"})
        assert model.model_dump(exclude_unset=True) == {"id": 3}

    def test_enum_is_enforced(self):
        with pytest.raises(pydantic.ValidationError):
            argument_model("milkee_list_tasks").model_validate({"status": "blocked"})
        model = argument_model("milkee_list_tasks").model_validate({"status": "in-progress"})
        assert model.status == "in-progress"

    def test_numbers_keep_integers(self):
        model = argument_model("milkee_create_product").model_validate({"name": "Hosting", "price": 20})
        assert model.model_dump(exclude_unset=True) == {"name": "Hosting", "price": 20}
        assert isinstance(model.price, int)

    def test_array_items_are_typed(self):
        model = argument_model("milkee_bulk_delete_entries").model_validate({"ids": [1, "2"]})
        assert model.ids == [1, 2]

    def test_model_is_cached(self):
        assert argument_model("milkee_get_entry") is argument_model("milkee_get_entry")

    def test_no_argument_tool_accepts_empty(self):
        assert argument_model("milkee_stop_timer").model_validate({}).model_dump(exclude_unset=True) == {}
