"""
Quadrant item lists and the string-of-lines codec.

A quadrant list is the ordered set of free-text statements one owner (a
group, or the consolidated plan) wrote for one SWOT quadrant. Order is the
display order and identity is the position: two items with the same text
are still two items.

Persisted form is a newline-joined string. Lines made only of whitespace
are dropped on both encode and decode; interior whitespace is never touched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from swotplan.core.exceptions import CapacityError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

CONSOLIDATED_CAP = 5


class Quadrant(str, Enum):
    STRENGTHS = "strengths"
    WEAKNESSES = "weaknesses"
    OPPORTUNITIES = "opportunities"
    THREATS = "threats"

    @classmethod
    def parse(cls, raw) -> "Quadrant":
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise ValidationError(
                f"Unknown quadrant: {raw!r}",
                details={"quadrant": raw, "allowed": [q.value for q in cls]},
            ) from None


# ── Codec ────────────────────────────────────────────────────────────────────


def is_blank(text: str | None) -> bool:
    return text is None or text.strip() == ""


def parse_lines(text: str | None) -> list[str]:
    """Split a persisted quadrant string into its items, dropping blank lines."""
    if not text:
        return []
    return [line for line in text.split("\n") if not is_blank(line)]


def join_lines(items) -> str:
    """Join items into the persisted form, dropping blank ones."""
    return "\n".join(item for item in items if not is_blank(item))


def match_key(text: str | None) -> str:
    """Identity used to correlate free text across groups and stages."""
    return (text or "").strip().lower()


# ── List ─────────────────────────────────────────────────────────────────────


@dataclass
class QuadrantItem:
    text: str = ""

    @property
    def blank(self) -> bool:
        return is_blank(self.text)


class QuadrantItemList:
    """Ordered, position-identified items for one (owner, quadrant) pair.

    ``cap`` is ``None`` for group-level lists and ``CONSOLIDATED_CAP`` for
    the consolidated plan matrix.
    """

    def __init__(self, quadrant: Quadrant, items=None, cap: int | None = None):
        self.quadrant = Quadrant(quadrant)
        self.cap = cap
        self._items: list[QuadrantItem] = [QuadrantItem(t) for t in (items or [])]

    @classmethod
    def from_lines(cls, quadrant: Quadrant, text: str | None, cap: int | None = None):
        return cls(quadrant, parse_lines(text), cap=cap)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def __getitem__(self, index: int) -> QuadrantItem:
        return self._items[index]

    @property
    def at_cap(self) -> bool:
        return self.cap is not None and len(self._items) >= self.cap

    def texts(self) -> list[str]:
        """All item texts, blank ones included (editing view)."""
        return [item.text for item in self._items]

    def effective(self) -> list[str]:
        """Non-blank texts, in order. This is what grids and consolidation see."""
        return [item.text for item in self._items if not item.blank]

    def add(self) -> bool:
        """Append a blank item. Returns False (no-op) when the list is at its cap."""
        if self.at_cap:
            logger.debug("add() ignored: %s already at cap %s", self.quadrant.value, self.cap)
            return False
        self._items.append(QuadrantItem())
        return True

    def insert(self, text: str) -> QuadrantItem:
        """Append an item with text, raising CapacityError when at cap."""
        if self.at_cap:
            raise CapacityError(self.quadrant.value, self.cap)
        item = QuadrantItem(text)
        self._items.append(item)
        return item

    def update(self, index: int, text: str) -> QuadrantItem:
        item = self._get(index)
        item.text = text
        return item

    def remove(self, index: int) -> QuadrantItem:
        self._get(index)
        return self._items.pop(index)

    def to_lines(self) -> str:
        return join_lines(self.texts())

    def _get(self, index: int) -> QuadrantItem:
        if not 0 <= index < len(self._items):
            raise NotFoundError(f"{self.quadrant.value} item", index)
        return self._items[index]

    def __repr__(self):
        return f"<QuadrantItemList {self.quadrant.value} n={len(self._items)} cap={self.cap}>"
