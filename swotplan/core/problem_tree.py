"""
Problem-tree GUT scoring and pain pillars.

Every topic of a problem tree is rated on three factors, each in [1, 5]
with one decimal:

    severity × urgency × trend = score   (the GUT score)

Topics scoring above the threshold (20 by default) are the plan's
"pain pillars", ranked across all trees for the executive summary.
Factor values typed in the workshop forms may use a decimal comma.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum

from swotplan.core.analysis import round_half_up
from swotplan.core.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

FACTOR_MIN = 1.0
FACTOR_MAX = 5.0
PAIN_PILLAR_THRESHOLD = 20


class Factor(str, Enum):
    SEVERITY = "severity"
    URGENCY = "urgency"
    TREND = "trend"

    @classmethod
    def parse(cls, raw) -> "Factor":
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise ValidationError(
                f"Unknown factor: {raw!r}",
                details={"factor": raw, "allowed": [f.value for f in cls]},
            ) from None


def parse_factor(raw, *, topic_id=None, factor: Factor | str | None = None) -> float | None:
    """Normalise a factor value: "3,5" -> 3.5. Blank means unset.

    Raises ValidationError for non-numeric input or values outside [1, 5].
    """
    details = {"topic_id": topic_id, "factor": getattr(factor, "value", factor), "value": raw}
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ValidationError("Factor must be a number", details=details)
    if isinstance(raw, str):
        text = raw.strip().replace(",", ".")
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            raise ValidationError(f"Factor must be a number, got {raw!r}", details=details) from None
    else:
        try:
            value = float(raw)
        except OverflowError:
            value = math.inf
        except (TypeError, ValueError):
            raise ValidationError(f"Factor must be a number, got {raw!r}", details=details) from None
    if not FACTOR_MIN <= value <= FACTOR_MAX:
        raise ValidationError(
            f"Factor must be between {FACTOR_MIN:g} and {FACTOR_MAX:g}, got {raw!r}",
            details=details,
        )
    return round_half_up(value, 1)


def gut_score(severity, urgency, trend) -> float | None:
    if None in (severity, urgency, trend):
        return None
    return round_half_up(severity * urgency * trend, 3)


def format_decimal(value) -> str:
    """Display form used in the workshop: 3.5 -> "3,5", None -> "-"."""
    if value is None:
        return "-"
    return str(value).replace(".", ",")


@dataclass
class ProblemTreeTopic:
    id: int
    topic: str
    guiding_question: str | None = None
    severity: float | None = None
    urgency: float | None = None
    trend: float | None = None
    score: float | None = None

    def recompute(self) -> float | None:
        self.score = gut_score(self.severity, self.urgency, self.trend)
        return self.score

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "topic": self.topic,
            "guiding_question": self.guiding_question,
            "severity": self.severity,
            "urgency": self.urgency,
            "trend": self.trend,
            "score": self.score,
        }


@dataclass
class ProblemTree:
    name: str
    id: int | None = None
    topics: list[ProblemTreeTopic] = field(default_factory=list)

    def add_topic(self, topic: str = "", guiding_question: str | None = None) -> ProblemTreeTopic:
        next_id = max((t.id for t in self.topics), default=0) + 1
        entry = ProblemTreeTopic(id=next_id, topic=topic, guiding_question=guiding_question)
        self.topics.append(entry)
        return entry

    def get_topic(self, topic_id: int) -> ProblemTreeTopic:
        for entry in self.topics:
            if entry.id == topic_id:
                return entry
        raise NotFoundError("ProblemTreeTopic", topic_id)

    def update_factor(self, topic_id: int, factor: Factor | str, raw_value) -> ProblemTreeTopic:
        entry = self.get_topic(topic_id)
        set_topic_factor(entry, factor, raw_value)
        return entry

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "topics": [t.to_dict() for t in self.topics]}


def set_topic_factor(topic, factor: Factor | str, raw_value):
    """Parse and store one factor on anything shaped like a topic, then rescore.

    Works for ``ProblemTreeTopic`` and for the persisted row, which share
    attribute names.
    """
    factor = Factor.parse(factor) if not isinstance(factor, Factor) else factor
    value = parse_factor(raw_value, topic_id=topic.id, factor=factor)
    setattr(topic, factor.value, value)
    topic.score = gut_score(topic.severity, topic.urgency, topic.trend)
    return topic


@dataclass
class PainPillar:
    tree_id: int | None
    tree_name: str
    topic: ProblemTreeTopic

    def to_dict(self) -> dict:
        data = self.topic.to_dict()
        data["tree_id"] = self.tree_id
        data["tree_name"] = self.tree_name
        return data


def pain_pillars(trees, threshold: float = PAIN_PILLAR_THRESHOLD) -> list[PainPillar]:
    """Topics scoring strictly above ``threshold``, best first, across all trees."""
    pillars = [
        PainPillar(tree_id=tree.id, tree_name=tree.name, topic=topic)
        for tree in trees
        for topic in tree.topics
        if topic.score is not None and topic.score > threshold
    ]
    pillars.sort(key=lambda p: p.topic.score, reverse=True)
    return pillars
