"""
Consolidation engine — merges the groups' SWOT matrices into the plan's.

Inputs are read-only snapshots of every group. For each quadrant the
engine walks the filled groups in order, keeps only items the group marked
as *certain*, folds duplicates (trimmed, case-insensitive) into the first
spelling seen, and stops at the consolidated cap of 5.

The engine is not incremental: it consolidates whatever snapshots it is
given. A partial group list gives a best-effort matrix, not a complete one.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from swotplan.core.analysis import round_half_up
from swotplan.core.quadrants import CONSOLIDATED_CAP, Quadrant, is_blank, match_key, parse_lines
from swotplan.core.risk import RiskClassificationSet, STRATEGY_DOMAINS

logger = logging.getLogger(__name__)


class CertaintyMark(str, Enum):
    CERTAIN = "C"
    UNCERTAIN = "I"

    @classmethod
    def parse(cls, raw) -> "CertaintyMark | None":
        """Anything that is not an explicit C/I mark is unset."""
        if isinstance(raw, cls):
            return raw
        if raw is None:
            return None
        value = str(raw).strip().upper()
        aliases = {"CERTAIN": "C", "UNCERTAIN": "I"}
        value = aliases.get(value, value)
        try:
            return cls(value)
        except ValueError:
            return None


def parse_certainty_map(raw: dict | None) -> dict[int, CertaintyMark]:
    """Decode ``{"0": "C", "2": "I"}`` into ``{0: CERTAIN, 2: UNCERTAIN}``."""
    marks: dict[int, CertaintyMark] = {}
    for key, value in (raw or {}).items():
        try:
            index = int(key)
        except (TypeError, ValueError):
            continue
        mark = CertaintyMark.parse(value)
        if mark is not None:
            marks[index] = mark
    return marks


def dump_certainty_map(marks: dict[int, CertaintyMark]) -> dict[str, str]:
    return {str(i): CertaintyMark(m).value for i, m in sorted(marks.items())}


# ── Snapshots ────────────────────────────────────────────────────────────────


@dataclass
class GroupSnapshot:
    """Everything the engine needs from one group, at one instant."""

    id: int | None
    name: str
    quadrants: dict[Quadrant, list[str]] = field(default_factory=dict)
    certainty: dict[Quadrant, dict[int, CertaintyMark]] = field(default_factory=dict)
    classification: RiskClassificationSet | None = None
    swot_filled_at: datetime | None = None

    @classmethod
    def from_lines(cls, id, name, lines: dict, certainty: dict | None = None,
                   classification=None, swot_filled_at=None) -> "GroupSnapshot":
        certainty = certainty or {}
        return cls(
            id=id,
            name=name,
            quadrants={q: parse_lines(lines.get(q.value)) for q in Quadrant},
            certainty={q: parse_certainty_map(certainty.get(q.value)) for q in Quadrant},
            classification=classification,
            swot_filled_at=swot_filled_at,
        )

    @property
    def swot_filled(self) -> bool:
        return self.swot_filled_at is not None

    @property
    def classification_filled(self) -> bool:
        return self.classification is not None and self.classification.filled_at is not None

    @property
    def is_filled(self) -> bool:
        return self.swot_filled and self.classification_filled

    def items(self, quadrant: Quadrant) -> list[str]:
        return list(self.quadrants.get(Quadrant(quadrant), []))

    def certain_items(self, quadrant: Quadrant) -> list[str]:
        quadrant = Quadrant(quadrant)
        marks = self.certainty.get(quadrant, {})
        return [
            text
            for index, text in enumerate(self.items(quadrant))
            if marks.get(index) == CertaintyMark.CERTAIN and not is_blank(text)
        ]


@dataclass
class PlanSnapshot:
    id: int | None
    deadline: datetime | None = None
    groups: list[GroupSnapshot] = field(default_factory=list)

    def is_editable(self, now: datetime | None = None) -> bool:
        """Group data may be edited until the deadline has passed."""
        if self.deadline is None:
            return True
        return _aware(now or datetime.now(timezone.utc)) <= _aware(self.deadline)


def is_editable(deadline: datetime | None, now: datetime | None = None) -> bool:
    return PlanSnapshot(id=None, deadline=deadline).is_editable(now)


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


# ── Consolidation ────────────────────────────────────────────────────────────


@dataclass
class ConsolidatedItem:
    text: str
    sources: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"text": self.text, "sources": list(self.sources)}


@dataclass
class ConsolidatedMatrix:
    quadrants: dict[Quadrant, list[ConsolidatedItem]] = field(default_factory=dict)
    group_count: int = 0
    filled_count: int = 0

    def items(self, quadrant: Quadrant) -> list[str]:
        return [i.text for i in self.quadrants.get(Quadrant(quadrant), [])]

    @property
    def complete(self) -> bool:
        """True only when every group given to the engine was filled."""
        return self.group_count > 0 and self.filled_count == self.group_count

    def to_lines(self) -> dict[str, str]:
        return {q.value: "\n".join(self.items(q)) for q in Quadrant}

    def to_dict(self) -> dict:
        return {
            "quadrants": {
                q.value: [i.to_dict() for i in self.quadrants.get(q, [])] for q in Quadrant
            },
            "group_count": self.group_count,
            "filled_count": self.filled_count,
            "complete": self.complete,
        }


def consolidate(groups, cap: int = CONSOLIDATED_CAP) -> ConsolidatedMatrix:
    """Merge filled groups' certain items into a capped final matrix."""
    groups = list(groups)
    filled = [g for g in groups if g.is_filled]
    result = ConsolidatedMatrix(group_count=len(groups), filled_count=len(filled))

    for quadrant in Quadrant:
        merged: dict[str, ConsolidatedItem] = {}
        for group in filled:
            for text in group.certain_items(quadrant):
                key = match_key(text)
                if key in merged:
                    if group.name not in merged[key].sources:
                        merged[key].sources.append(group.name)
                elif len(merged) < cap:
                    merged[key] = ConsolidatedItem(text=text, sources=[group.name])
        result.quadrants[quadrant] = list(merged.values())

    logger.info(
        "Consolidated %d/%d filled groups: %s",
        len(filled), len(groups),
        {q.value: len(items) for q, items in result.quadrants.items()},
    )
    return result


# ── Who said what ────────────────────────────────────────────────────────────


@dataclass
class GroupResponse:
    group_id: int | None
    group_name: str
    quadrant: Quadrant
    item: str
    classification: object = None
    treatment: str = ""

    def to_dict(self) -> dict:
        return {
            "group_id": self.group_id,
            "group_name": self.group_name,
            "quadrant": self.quadrant.value,
            "item": self.item,
            "classification": self.classification.value if self.classification else None,
            "treatment": self.treatment,
        }


def responses_for(final_item_text: str, groups, quadrant: Quadrant | None = None) -> list[GroupResponse]:
    """Per-group classification and treatment for one consolidated item.

    Groups that never raised the item, or have no classification set, are
    left out.
    """
    quadrants = [Quadrant(quadrant)] if quadrant else list(STRATEGY_DOMAINS)
    responses = []
    for group in groups:
        if group.classification is None:
            continue
        for q in quadrants:
            matches = group.classification.find(final_item_text, q)
            if matches:
                entry = matches[0]
                responses.append(GroupResponse(
                    group_id=group.id,
                    group_name=group.name,
                    quadrant=q,
                    item=entry.item,
                    classification=entry.classification,
                    treatment=entry.treatment,
                ))
                break
    return responses


def seed_final_classification(final: ConsolidatedMatrix | dict, groups,
                              existing: RiskClassificationSet | None = None,
                              auto_seed: bool = True) -> RiskClassificationSet:
    """Build the plan's classification set from the consolidated items.

    Existing classifications survive for items whose text still matches.
    With ``auto_seed``, items still unclassified take the strategy most
    groups chose for them (ties go to the one raised first). Treatments
    are never copied.
    """
    opportunities = _final_items(final, Quadrant.OPPORTUNITIES)
    threats = _final_items(final, Quadrant.THREATS)
    if existing is not None:
        result = existing.reseed(opportunities, threats)
    else:
        result = RiskClassificationSet.seed(opportunities, threats)

    if auto_seed:
        groups = list(groups)
        for quadrant in STRATEGY_DOMAINS:
            for entry in result.items_for(quadrant):
                if entry.classified:
                    continue
                votes = [
                    r.classification
                    for r in responses_for(entry.item, groups, quadrant)
                    if r.classification is not None
                ]
                if votes:
                    counts = Counter(votes)
                    best = max(counts.values())
                    entry.classification = next(v for v in votes if counts[v] == best)
    return result


def _final_items(final, quadrant: Quadrant) -> list[str]:
    if isinstance(final, ConsolidatedMatrix):
        return final.items(quadrant)
    value = final.get(quadrant, final.get(quadrant.value))
    if isinstance(value, str):
        return parse_lines(value)
    return list(value or [])


def fill_progress(groups, classification: bool = False) -> int:
    """Whole-number percentage of groups whose SWOT (or classification) is filled."""
    groups = list(groups)
    if not groups:
        return 0
    if classification:
        done = sum(1 for g in groups if g.classification_filled)
    else:
        done = sum(1 for g in groups if g.swot_filled)
    return round_half_up(done / len(groups) * 100)
