"""
Packs ranked memories into a token or character budget for context injection.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from .schema import BudgetItem

DEFAULT_SEPARATOR = "\n\n"
DEFAULT_BUDGET_CHARS = 8000
CHARS_PER_TOKEN = 4


@dataclass
class PackResult:
    packed: str
    used: int
    dropped: int


def resolve_budget(budget_tokens: Optional[int] = None, budget_chars: Optional[int] = None) -> int:
    """Character budget: tokens win over chars; 8000 chars when neither is given."""
    if budget_tokens is not None:
        return budget_tokens * CHARS_PER_TOKEN
    if budget_chars is not None:
        return budget_chars
    return DEFAULT_BUDGET_CHARS


def render_item(item: BudgetItem, include_ids: bool = True) -> str:
    prefix = f"[memory:{item.id}]\n" if include_ids else ""
    return prefix + item.text


def pack_into_budget(items: Sequence[BudgetItem],
                     budget_tokens: Optional[int] = None,
                     budget_chars: Optional[int] = None,
                     separator: str = DEFAULT_SEPARATOR,
                     include_ids: bool = True) -> PackResult:
    """
    Greedily accept items in the given order until one does not fit.

    Packing stops at the first item that would exceed the budget; later, smaller
    items are not considered. The separator is charged for every accepted item
    after the first.

    Args:
        items: Pre-ordered items, most relevant first
        budget_tokens: Token budget, converted at 4 characters per token
        budget_chars: Character budget, used when budget_tokens is None
        separator: Joiner placed between accepted items
        include_ids: Prefix each item with a "[memory:<id>]" header line

    Returns:
        PackResult with the joined text, characters used and number of items dropped
    """
    budget = resolve_budget(budget_tokens, budget_chars)

    used = 0
    parts = []
    for item in items:
        line = render_item(item, include_ids)
        need = len(line) + (len(separator) if parts else 0)
        if used + need > budget:
            break
        parts.append(line)
        used += need

    return PackResult(
        packed=separator.join(parts),
        used=used,
        dropped=len(items) - len(parts),
    )


def estimate_tokens(text: Optional[str]) -> int:
    """Approximate token count at 4 characters per token, rounded up."""
    return math.ceil(len(text or "") / CHARS_PER_TOKEN)
