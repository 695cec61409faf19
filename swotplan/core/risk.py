"""
Risk classification sets.

Each opportunity and threat of an owner (a group or the consolidated plan)
gets an optional treatment strategy plus free-text treatment notes:

    opportunities  explore | enhance | share | accept
    threats        avoid | transfer | mitigate | accept

Strategies arrive from the boundary as free strings and are parsed once,
by ``parse_strategy``, into closed enums. Items are matched by
``match_key`` (trimmed, case-insensitive), never by position, because the
same statement is re-typed and copied between workshop stages.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Union

from swotplan.core.analysis import round_half_up
from swotplan.core.exceptions import NotFoundError, ValidationError
from swotplan.core.quadrants import Quadrant, is_blank, match_key

logger = logging.getLogger(__name__)


class OpportunityStrategy(str, Enum):
    EXPLORE = "explore"
    ENHANCE = "enhance"
    SHARE = "share"
    ACCEPT = "accept"


class ThreatStrategy(str, Enum):
    AVOID = "avoid"
    TRANSFER = "transfer"
    MITIGATE = "mitigate"
    ACCEPT = "accept"


Strategy = Union[OpportunityStrategy, ThreatStrategy]

STRATEGY_DOMAINS = {
    Quadrant.OPPORTUNITIES: OpportunityStrategy,
    Quadrant.THREATS: ThreatStrategy,
}

# Values written by the first release of the workshop forms.
_LEGACY_ALIASES = {
    "explorar": "explore",
    "melhorar": "enhance",
    "compartilhar": "share",
    "aceitar": "accept",
    "evitar": "avoid",
    "transferir": "transfer",
    "mitigar": "mitigate",
}


def strategy_domain(quadrant: Quadrant):
    quadrant = Quadrant(quadrant)
    if quadrant not in STRATEGY_DOMAINS:
        raise ValidationError(
            f"Risk classification is only defined for opportunities and threats, not {quadrant.value}",
            details={"quadrant": quadrant.value},
        )
    return STRATEGY_DOMAINS[quadrant]


def parse_strategy(quadrant: Quadrant, raw) -> Strategy | None:
    """Parse a boundary value into the quadrant's strategy enum.

    ``None`` and blank strings mean "not classified".
    """
    domain = strategy_domain(quadrant)
    if raw is None or isinstance(raw, domain):
        return raw
    value = str(raw).strip().lower()
    if not value:
        return None
    value = _LEGACY_ALIASES.get(value, value)
    try:
        return domain(value)
    except ValueError:
        raise ValidationError(
            f"Invalid strategy {raw!r} for {Quadrant(quadrant).value}",
            details={
                "quadrant": Quadrant(quadrant).value,
                "value": raw,
                "allowed": [s.value for s in domain],
            },
        ) from None


@dataclass
class RiskClassificationItem:
    item: str
    classification: Strategy | None = None
    treatment: str = ""

    @property
    def key(self) -> str:
        return match_key(self.item)

    @property
    def classified(self) -> bool:
        return self.classification is not None

    @property
    def treated(self) -> bool:
        return not is_blank(self.treatment)

    def to_dict(self) -> dict:
        return {
            "item": self.item,
            "classification": self.classification.value if self.classification else None,
            "treatment": self.treatment,
        }

    @classmethod
    def from_dict(cls, quadrant: Quadrant, data: dict) -> "RiskClassificationItem":
        return cls(
            item=data.get("item") or "",
            classification=parse_strategy(quadrant, data.get("classification")),
            treatment=data.get("treatment") or "",
        )


@dataclass
class ClassificationProgress:
    classified_pct: int
    treated_pct: int

    def to_dict(self) -> dict:
        return {"classified_pct": self.classified_pct, "treated_pct": self.treated_pct}


@dataclass
class RiskClassificationSet:
    opportunities: list[RiskClassificationItem] = field(default_factory=list)
    threats: list[RiskClassificationItem] = field(default_factory=list)
    filled_at: datetime | None = None

    @classmethod
    def seed(cls, opportunities, threats) -> "RiskClassificationSet":
        """Create a blank set, one entry per non-blank item."""
        return cls(
            opportunities=[RiskClassificationItem(t) for t in opportunities if not is_blank(t)],
            threats=[RiskClassificationItem(t) for t in threats if not is_blank(t)],
        )

    @classmethod
    def from_dict(cls, data: dict | None) -> "RiskClassificationSet":
        data = data or {}
        return cls(
            opportunities=[
                RiskClassificationItem.from_dict(Quadrant.OPPORTUNITIES, d)
                for d in data.get("opportunities") or []
            ],
            threats=[
                RiskClassificationItem.from_dict(Quadrant.THREATS, d)
                for d in data.get("threats") or []
            ],
            filled_at=data.get("filled_at"),
        )

    def items_for(self, quadrant: Quadrant) -> list[RiskClassificationItem]:
        strategy_domain(quadrant)
        return self.opportunities if Quadrant(quadrant) == Quadrant.OPPORTUNITIES else self.threats

    def reseed(self, opportunities, threats) -> "RiskClassificationSet":
        """Re-align to the current item lists, keeping matching classifications.

        Entries whose text no longer appears are dropped; new items start blank.
        """
        self.opportunities = _realign(self.opportunities, opportunities)
        self.threats = _realign(self.threats, threats)
        return self

    def find(self, item_text: str, quadrant: Quadrant | None = None) -> list[RiskClassificationItem]:
        key = match_key(item_text)
        quadrants = [Quadrant(quadrant)] if quadrant else list(STRATEGY_DOMAINS)
        return [
            entry
            for q in quadrants
            for entry in self.items_for(q)
            if entry.key == key
        ]

    def classify(self, item_text: str, strategy: Strategy | None,
                 quadrant: Quadrant | None = None) -> list[RiskClassificationItem]:
        """Set (or clear, with ``None``) the strategy of every matching item."""
        if strategy is not None:
            target = Quadrant.OPPORTUNITIES if isinstance(strategy, OpportunityStrategy) else Quadrant.THREATS
            if quadrant is not None and Quadrant(quadrant) != target:
                raise ValidationError(
                    f"Strategy {strategy.value!r} does not apply to {Quadrant(quadrant).value}",
                    details={"quadrant": Quadrant(quadrant).value, "value": strategy.value},
                )
            quadrant = target
        matches = self.find(item_text, quadrant)
        if not matches:
            raise NotFoundError("ClassificationItem", item_text)
        for entry in matches:
            entry.classification = strategy
        return matches

    def set_treatment(self, item_text: str, text: str,
                      quadrant: Quadrant | None = None) -> list[RiskClassificationItem]:
        matches = self.find(item_text, quadrant)
        if not matches:
            raise NotFoundError("ClassificationItem", item_text)
        for entry in matches:
            entry.treatment = text or ""
        return matches

    def progress(self) -> ClassificationProgress:
        entries = self.opportunities + self.threats
        if not entries:
            return ClassificationProgress(0, 0)
        total = len(entries)
        classified = sum(1 for e in entries if e.classified)
        treated = sum(1 for e in entries if e.treated)
        return ClassificationProgress(
            classified_pct=round_half_up(classified / total * 100),
            treated_pct=round_half_up(treated / total * 100),
        )

    def to_dict(self) -> dict:
        return {
            "opportunities": [e.to_dict() for e in self.opportunities],
            "threats": [e.to_dict() for e in self.threats],
            "filled_at": self.filled_at.isoformat() if self.filled_at else None,
            "progress": self.progress().to_dict(),
        }


def _realign(existing: list[RiskClassificationItem], texts) -> list[RiskClassificationItem]:
    by_key: dict[str, RiskClassificationItem] = {}
    for entry in existing:
        by_key.setdefault(entry.key, entry)
    realigned = []
    for text in texts:
        if is_blank(text):
            continue
        previous = by_key.get(match_key(text))
        if previous is not None:
            realigned.append(RiskClassificationItem(text, previous.classification, previous.treatment))
        else:
            realigned.append(RiskClassificationItem(text))
    return realigned
