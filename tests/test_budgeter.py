"""
Context budgeter: greedy prefix packing and token estimation.
"""

from memlayer.core.budgeter import (
    DEFAULT_BUDGET_CHARS,
    estimate_tokens,
    pack_into_budget,
    resolve_budget,
)
from memlayer.core.schema import BudgetItem


def test_estimate_tokens():
    """Four characters per token, rounded up."""
    assert estimate_tokens("") == 0
    assert estimate_tokens(None) == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2
    assert estimate_tokens("a" * 40) == 10


def test_resolve_budget_precedence():
    assert resolve_budget(budget_tokens=10) == 40
    assert resolve_budget(budget_tokens=10, budget_chars=5) == 40
    assert resolve_budget(budget_chars=5) == 5
    assert resolve_budget() == DEFAULT_BUDGET_CHARS


def test_pack_drops_oversized_tail():
    """Short items fit; the 1000-char item does not."""
    items = [
        BudgetItem(id="1", text="short"),
        BudgetItem(id="2", text="also short"),
        BudgetItem(id="3", text="x" * 1000),
    ]
    result = pack_into_budget(items, budget_tokens=50)

    assert "[memory:1]\nshort" in result.packed
    assert "[memory:2]\nalso short" in result.packed
    assert "[memory:3]" not in result.packed
    assert result.dropped >= 1
    assert result.used <= 200


def test_pack_exact_accounting():
    items = [BudgetItem(id="a", text="hello"), BudgetItem(id="b", text="world")]
    result = pack_into_budget(items, budget_chars=100, include_ids=False)

    assert result.packed == "hello\n\nworld"
    assert result.used == len("hello") + len("\n\n") + len("world")
    assert result.dropped == 0


def test_pack_stops_at_first_overflow():
    """A later item that would fit is not considered after an overflow."""
    items = [
        BudgetItem(id="1", text="aaaa"),
        BudgetItem(id="2", text="b" * 50),
        BudgetItem(id="3", text="c"),
    ]
    result = pack_into_budget(items, budget_chars=10, include_ids=False)

    assert result.packed == "aaaa"
    assert result.dropped == 2


def test_pack_preserves_order():
    items = [BudgetItem(id=str(i), text=f"item-{i}") for i in range(5)]
    result = pack_into_budget(items, budget_chars=1000)

    positions = [result.packed.index(f"[memory:{i}]") for i in range(5)]
    assert positions == sorted(positions)


def test_pack_never_exceeds_budget():
    items = [BudgetItem(id=str(i), text="z" * (i * 7 % 23)) for i in range(20)]
    for budget in (0, 1, 15, 40, 99, 250):
        result = pack_into_budget(items, budget_chars=budget)
        assert result.used <= budget
        assert result.dropped == len(items) - result.packed.count("[memory:")


def test_pack_empty_input():
    result = pack_into_budget([], budget_tokens=10)
    assert result.packed == ""
    assert result.used == 0
    assert result.dropped == 0


def test_pack_custom_separator():
    items = [BudgetItem(id="a", text="one"), BudgetItem(id="b", text="two")]
    result = pack_into_budget(items, budget_chars=100, separator=" | ", include_ids=False)
    assert result.packed == "one | two"
    assert result.used == 9
