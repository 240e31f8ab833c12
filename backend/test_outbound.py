"""Truncation budgets on outbound messages."""
from foodbot.agent.outbound import (
    BUTTON_LABEL_BUDGET,
    MAX_BUTTONS,
    MAX_LIST_ROWS,
    ROW_DESCRIPTION_BUDGET,
    ROW_TITLE_BUDGET,
    SECTION_TITLE_BUDGET,
    ButtonMessage,
    ListMessage,
    ListRow,
    ListSection,
    truncate,
)


def test_truncate_keeps_short_text():
    assert truncate("Jollof Rice", 24) == "Jollof Rice"
    assert truncate("x" * 24, 24) == "x" * 24
    assert truncate(None, 10) == ""


def test_truncate_cuts_to_budget_with_ellipsis():
    result = truncate("Spicy Chicken Shawarma Deluxe", 24)
    assert result == "Spicy Chicken Shawarm..."
    assert len(result) == 24


def test_truncate_tiny_budget():
    assert truncate("abcdef", 2) == ".."


def test_button_labels_and_count():
    message = ButtonMessage.build("Pick", ["A very long button label indeed", "B", "C", "D", "E"])
    assert len(message.buttons) == MAX_BUTTONS
    assert len(message.buttons[0]) == BUTTON_LABEL_BUDGET
    assert message.buttons[0].endswith("...")
    assert message.buttons[1:] == ["B", "C", "D"]


def test_list_budgets():
    rows = [
        ListRow(id=f"food_{i}", title="Extra Large Pepperoni Pizza Special", description="d" * 100)
        for i in range(15)
    ]
    message = ListMessage.build(
        "Results",
        [ListSection(title="Search Results From Every Restaurant", rows=rows)],
        button="View All The Options Now",
    )
    section = message.sections[0]
    assert len(section.title) == SECTION_TITLE_BUDGET
    assert len(section.rows) == MAX_LIST_ROWS
    assert all(len(row.title) <= ROW_TITLE_BUDGET for row in section.rows)
    assert all(len(row.description) == ROW_DESCRIPTION_BUDGET for row in section.rows)
    assert len(message.button) <= BUTTON_LABEL_BUDGET
    # ids are never truncated
    assert message.row_ids == [f"food_{i}" for i in range(MAX_LIST_ROWS)]
