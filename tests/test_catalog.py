from leasebot.prompts.templates import get_system_prompt
from leasebot.tools.catalog import CHART_TYPES, get_definitions, tool_names


def test_catalog_declarations_are_well_formed():
    names = tool_names()
    assert len(names) == len(set(names)) == 8
    for definition in get_definitions():
        assert set(definition) == {"name", "description", "input_schema"}
        assert definition["input_schema"]["type"] == "object"


def test_chart_tool_enumerates_chart_types():
    chart = next(d for d in get_definitions() if d["name"] == "create_individual_chart")
    assert chart["input_schema"]["properties"]["chart_type"]["enum"] == list(CHART_TYPES)
    assert chart["input_schema"]["required"] == ["chart_type"]


def test_system_prompt_names_server_and_tools():
    prompt = get_system_prompt("https://tools.example/sse")
    assert "https://tools.example/sse" in prompt
    assert "query_database" in prompt
