"""Static tool catalog offered to the model.

The tenant-leasing MCP server advertises its own catalog at connect time, but
that list is only logged. The declarations below are what the model sees; they
are a superset owned by this service so prompts stay stable even while the
tool server is unreachable.
"""
from __future__ import annotations

from typing import Any

CHART_TYPES = (
    "rent_histogram",
    "credit_pie",
    "pet_bar",
    "budget_histogram",
    "price_comparison",
    "activity_pie",
    "income_vs_rent",
    "similarity_rent",
)


def _schema(properties: dict[str, Any] | None = None, required: list[str] | None = None) -> dict[str, Any]:
    return {"type": "object", "properties": properties or {}, "required": required or []}


def _number(description: str) -> dict[str, Any]:
    return {"type": "number", "description": description}


TOOL_CATALOG: tuple[dict[str, Any], ...] = (
    {
        "name": "get_schema",
        "description": (
            "Get the full database schema showing all tables and columns. "
            "Use this first to understand the data model before writing queries."
        ),
        "input_schema": _schema(),
    },
    {
        "name": "query_database",
        "description": (
            "Execute a SQL query on the tenant leasing database. Available tables: guest_cards "
            "(prospective tenant inquiries), nearby_units (comparable rental listings). "
            "Only SELECT queries are allowed."
        ),
        "input_schema": _schema(
            {"query": {"type": "string", "description": "SQL SELECT query to execute"}},
            ["query"],
        ),
    },
    {
        "name": "guest_card_summary",
        "description": (
            "Get a comprehensive summary of all guest cards/inquiries. Shows total inquiries, "
            "activity breakdown, and prospect quality metrics."
        ),
        "input_schema": _schema(),
    },
    {
        "name": "qualified_prospects",
        "description": "Find qualified prospects based on income and credit requirements.",
        "input_schema": _schema(
            {
                "min_income": _number("Minimum monthly income (default: 7200 = 3x $2,400 rent)"),
                "min_credit": {"type": "string", "description": "Minimum credit score threshold (default: 660)"},
            }
        ),
    },
    {
        "name": "market_rent_analysis",
        "description": (
            "Analyze nearby rental market conditions and pricing. Shows rent distribution, "
            "comparisons, and market positioning."
        ),
        "input_schema": _schema(),
    },
    {
        "name": "generate_leasing_email",
        "description": "Generate a professional leasing update email based on actual guest card and market data.",
        "input_schema": _schema(
            {
                "recipient_name": {"type": "string", "description": "Name of email recipient"},
                "sender_name": {"type": "string", "description": "Name of sender"},
                "current_rate": _number("Current advertised rent rate"),
                "previous_rate": _number("Previous rent rate"),
                "showings_confirmed": _number("Number of confirmed showings"),
                "showings_attended": _number("Number who actually showed up"),
                "interested_parties": _number("Number who seemed interested"),
                "pending_applications": _number("Current pending applications"),
                "withdrawn_applications": _number("Applications that were withdrawn"),
                "upcoming_showings": _number("Scheduled upcoming showings"),
            }
        ),
    },
    {
        "name": "create_market_report",
        "description": (
            "Generate a comprehensive visual report with charts showing insights from guest cards "
            "and nearby advertised units."
        ),
        "input_schema": _schema(),
    },
    {
        "name": "create_individual_chart",
        "description": "Generate a specific chart. Types: " + ", ".join(CHART_TYPES),
        "input_schema": _schema(
            {
                "chart_type": {
                    "type": "string",
                    "description": "Type of chart to create",
                    "enum": list(CHART_TYPES),
                }
            },
            ["chart_type"],
        ),
    },
)


def get_definitions() -> tuple[dict[str, Any], ...]:
    """Return the tool declarations sent with every tool-enabled request."""
    return TOOL_CATALOG


def tool_names() -> list[str]:
    """Return the declared tool names, in catalog order."""
    return [t["name"] for t in TOOL_CATALOG]
