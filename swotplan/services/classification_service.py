"""Risk classification service: group and consolidated treatment strategies.

Transaction policy: flush only; the route handler commits.

Sets are stored as JSON lists of ``{item, classification, treatment}`` and
re-aligned to the owner's current opportunities/threats every time they are
loaded, so an item edited in the SWOT step keeps its strategy as long as its
text still matches (trimmed, case-insensitive).
"""
import logging
from datetime import datetime, timezone

from swotplan.core.consolidation import responses_for, seed_final_classification
from swotplan.core.exceptions import NotFoundError, ValidationError
from swotplan.core.quadrants import Quadrant, parse_lines
from swotplan.core.risk import STRATEGY_DOMAINS, parse_strategy
from swotplan.models import db
from swotplan.services import cache_service
from swotplan.services.planning_service import (
    assert_editable,
    classification_row,
    classification_set,
    group_snapshot,
)

logger = logging.getLogger(__name__)


def _utcnow():
    return datetime.now(timezone.utc)


def _owner_items(plan, group):
    if group is not None:
        return parse_lines(group.opportunities), parse_lines(group.threats)
    return parse_lines(plan.final_opportunities), parse_lines(plan.final_threats)


def _store(row, cset):
    row.opportunities = [e.to_dict() for e in cset.opportunities]
    row.threats = [e.to_dict() for e in cset.threats]
    row.filled_at = cset.filled_at


# ── Get-or-seed ──────────────────────────────────────────────────────────


def get_group_classification(group):
    """Return the group's set, seeded or re-aligned to its current items."""
    row = classification_row(group.plan_id, group.id, create=True)
    cset = classification_set(row).reseed(*_owner_items(group.plan, group))
    _store(row, cset)
    db.session.flush()
    return cset


def get_final_classification(plan):
    """Return the plan's consolidated set.

    A plan without one is seeded from its groups (majority strategy per
    item); an existing set is only re-aligned to the final items.
    """
    row = classification_row(plan.id, None)
    if row is None:
        return seed_final_from_groups(plan)
    cset = classification_set(row).reseed(*_owner_items(plan, None))
    _store(row, cset)
    db.session.flush()
    return cset


def seed_final_from_groups(plan, auto_seed=True):
    """(Re)build the consolidated set, keeping classifications whose text still matches."""
    row = classification_row(plan.id, None, create=True)
    snapshots = [group_snapshot(g) for g in plan.groups]
    cset = seed_final_classification(
        plan.final_lines(), snapshots, existing=classification_set(row), auto_seed=auto_seed,
    )
    _store(row, cset)
    db.session.flush()
    logger.info(
        "Final classification seeded: %d opportunities, %d threats",
        len(cset.opportunities), len(cset.threats), extra={"plan_id": plan.id},
    )
    return cset


# ── Updates ──────────────────────────────────────────────────────────────


def classify_item(cset, item_text, raw_strategy, quadrant=None):
    """Parse the boundary value and classify every matching item.

    Without ``quadrant`` the strategy is looked up in the opportunity
    domain first, then the threat domain ("accept" exists in both and
    resolves to whichever list holds the item).
    """
    if quadrant is not None:
        q = Quadrant.parse(quadrant)
        return cset.classify(item_text, parse_strategy(q, raw_strategy), quadrant=q)
    errors = []
    for q in STRATEGY_DOMAINS:
        if not cset.find(item_text, q):
            continue
        try:
            return cset.classify(item_text, parse_strategy(q, raw_strategy), quadrant=q)
        except ValidationError as exc:
            errors.append(exc)
    if errors:
        raise errors[0]
    raise NotFoundError("ClassificationItem", item_text)


def set_item_treatment(cset, item_text, text, quadrant=None):
    q = Quadrant.parse(quadrant) if quadrant is not None else None
    return cset.set_treatment(item_text, text, quadrant=q)


def _apply(cset, data, now=None):
    for q in STRATEGY_DOMAINS:
        entries = data.get(q.value)
        if entries is None:
            continue
        if not isinstance(entries, list):
            raise ValidationError(f"{q.value} must be a list", details={"quadrant": q.value})
        for entry in entries:
            if not isinstance(entry, dict) or not entry.get("item"):
                raise ValidationError(
                    f"Every {q.value} entry needs an item", details={"quadrant": q.value},
                )
            if "classification" in entry:
                classify_item(cset, entry["item"], entry["classification"], quadrant=q)
            if "treatment" in entry:
                set_item_treatment(cset, entry["item"], entry["treatment"], quadrant=q)
    if "mark_filled" in data:
        cset.filled_at = (now or _utcnow()) if data["mark_filled"] else None


def save_classification(plan, group, data, now=None):
    """Apply ``{opportunities: [...], threats: [...], mark_filled}`` to one owner's set."""
    if group is not None:
        assert_editable(plan, now)
        cset = get_group_classification(group)
        row = classification_row(plan.id, group.id)
    else:
        cset = get_final_classification(plan)
        row = classification_row(plan.id, None)
    _apply(cset, data, now)
    _store(row, cset)
    db.session.flush()
    cache_service.invalidate_plan(plan.id)
    return cset


# ── Queries ──────────────────────────────────────────────────────────────


def get_group_responses(plan, item_text, quadrant=None):
    """What each group decided for one consolidated item."""
    q = Quadrant.parse(quadrant) if quadrant else None
    snapshots = [group_snapshot(g) for g in plan.groups]
    return responses_for(item_text, snapshots, q)
