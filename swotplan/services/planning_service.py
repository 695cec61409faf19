"""Planning service layer: plans, groups, SWOT matrices, grids, consolidation.

Transaction policy: functions use flush() for ID generation, never commit().
Caller (route handler) is responsible for committing via db_commit_or_error().

Every write normalises through the core before anything is persisted:
quadrant texts go through the lines codec, grid cells through
``quantize_score``, and stored grids are reconciled against the current
item lists on every load.
"""
import logging
from datetime import datetime, timezone

from flask import current_app

from swotplan.core.analysis import ImpactAnalysis
from swotplan.core.consolidation import (
    GroupSnapshot,
    consolidate,
    dump_certainty_map,
    fill_progress,
    is_editable,
    parse_certainty_map,
)
from swotplan.core.exceptions import EditingClosedError, ValidationError
from swotplan.core.grid import CrossImpactGrid, GridKind, quantize_score
from swotplan.core.matrix import SwotMatrix
from swotplan.core.quadrants import (
    CONSOLIDATED_CAP,
    Quadrant,
    QuadrantItemList,
    is_blank,
    join_lines,
    parse_lines,
)
from swotplan.core.risk import RiskClassificationSet
from swotplan.models import db
from swotplan.models.planning import (
    PLAN_STATUSES,
    CrossImpactMatrix,
    PlanGroup,
    RiskClassification,
    StrategicPlan,
)
from swotplan.services import cache_service
from swotplan.utils.helpers import parse_datetime

logger = logging.getLogger(__name__)


def _utcnow():
    return datetime.now(timezone.utc)


def _consolidated_cap():
    return current_app.config.get("CONSOLIDATED_QUADRANT_CAP", CONSOLIDATED_CAP)


def _deadline(value):
    try:
        return parse_datetime(value)
    except ValueError as exc:
        raise ValidationError(str(exc), details={"field": "fill_deadline", "value": value}) from None


def _items(value, quadrant):
    """Accept a newline-joined string or a list of strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return parse_lines(value)
    if isinstance(value, (list, tuple)):
        if not all(v is None or isinstance(v, str) for v in value):
            raise ValidationError(
                f"Items of {quadrant.value} must be strings",
                details={"quadrant": quadrant.value},
            )
        return [v for v in value if not is_blank(v)]
    raise ValidationError(
        f"{quadrant.value} must be a string or a list of strings",
        details={"quadrant": quadrant.value},
    )


def _index(value, name):
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer", details={name: value})
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer", details={name: value}) from None


# ── Plans ────────────────────────────────────────────────────────────────


def create_plan(data):
    """Create a plan, optionally with its groups.

    ``data["groups"]`` may hold group names or group dicts.
    """
    status = data.get("status", "active")
    if status not in PLAN_STATUSES:
        raise ValidationError(
            f"Invalid status: {status!r}",
            details={"status": status, "allowed": sorted(PLAN_STATUSES)},
        )
    plan = StrategicPlan(
        title=data["title"],
        description=data.get("description", ""),
        status=status,
        fill_deadline=_deadline(data.get("fill_deadline")),
    )
    db.session.add(plan)
    db.session.flush()

    groups = data.get("groups") or []
    if not isinstance(groups, list):
        raise ValidationError("groups must be a list", details={"field": "groups"})
    for index, entry in enumerate(groups):
        if not isinstance(entry, (str, dict)):
            raise ValidationError(
                "Each group must be a name or an object",
                details={"field": f"groups[{index}]", "value": entry},
            )
        group_data = {"name": entry} if isinstance(entry, str) else dict(entry)
        group_data.setdefault("sort_order", index)
        create_group(plan, group_data)

    logger.info("Plan created: %s", plan.title, extra={"plan_id": plan.id})
    return plan


def update_plan(plan, data):
    for field in ("title", "description"):
        if field in data:
            setattr(plan, field, data[field])
    if "status" in data:
        if data["status"] not in PLAN_STATUSES:
            raise ValidationError(
                f"Invalid status: {data['status']!r}",
                details={"status": data["status"], "allowed": sorted(PLAN_STATUSES)},
            )
        plan.status = data["status"]
    if "fill_deadline" in data:
        plan.fill_deadline = _deadline(data["fill_deadline"])
    if "observations" in data:
        plan.observations = data["observations"] or ""
    db.session.flush()
    return plan


def assert_editable(plan, now=None):
    """Raise EditingClosedError once the plan's filling deadline has passed."""
    if not is_editable(plan.fill_deadline, now):
        raise EditingClosedError(plan.id, plan.fill_deadline)


def plan_detail(plan, now=None):
    d = plan.to_dict(include_groups=True)
    d["editable"] = is_editable(plan.fill_deadline, now)
    return d


# ── Groups ───────────────────────────────────────────────────────────────


def create_group(plan, data):
    group = PlanGroup(
        plan_id=plan.id,
        name=data["name"],
        members=data.get("members", ""),
        sort_order=data.get("sort_order", len(plan.groups)),
    )
    db.session.add(group)
    db.session.flush()
    cache_service.invalidate_plan(plan.id)
    return group


def save_group_swot(group, data, now=None):
    """Store a group's quadrant items, certainty marks and fill stamp.

    Accepted keys: the four quadrant names (string of lines or list of
    strings, at top level or under ``swot``), ``certainty`` (per-quadrant
    ``{"<index>": "C" | "I"}``), ``mark_filled``, ``name``, ``members``.
    """
    plan = group.plan
    assert_editable(plan, now)

    source = data.get("swot") or data
    changed = []
    for q in Quadrant:
        if q.value in source:
            setattr(group, q.value, join_lines(_items(source[q.value], q)))
            changed.append(q)

    certainty = data.get("certainty") or {}
    if not isinstance(certainty, dict):
        raise ValidationError("certainty must be an object", details={"certainty": certainty})
    for raw_quadrant, marks in certainty.items():
        q = Quadrant.parse(raw_quadrant)
        if marks is not None and not isinstance(marks, dict):
            raise ValidationError(
                f"certainty.{q.value} must be an object", details={"quadrant": q.value},
            )
        setattr(group, f"{q.value}_certainty", dump_certainty_map(parse_certainty_map(marks)))
        if q not in changed:
            changed.append(q)

    # Marks are positional; drop those pointing past the end of the list
    for q in changed:
        count = len(parse_lines(getattr(group, q.value)))
        marks = parse_certainty_map(getattr(group, f"{q.value}_certainty"))
        setattr(group, f"{q.value}_certainty",
                dump_certainty_map({i: m for i, m in marks.items() if i < count}))

    for field in ("name", "members"):
        if field in data:
            setattr(group, field, data[field])
    if "mark_filled" in data:
        group.swot_filled_at = (now or _utcnow()) if data["mark_filled"] else None

    _store_grids(plan, group, get_matrix(plan, group))
    db.session.flush()
    cache_service.invalidate_plan(plan.id)
    logger.info("Group SWOT saved", extra={"plan_id": plan.id, "group_id": group.id})
    return group


# ── Matrices & grids ─────────────────────────────────────────────────────


def _grid_row(plan_id, group_id, create=False):
    row = CrossImpactMatrix.query.filter_by(plan_id=plan_id, group_id=group_id).first()
    if row is None and create:
        row = CrossImpactMatrix(plan_id=plan_id, group_id=group_id)
        db.session.add(row)
        db.session.flush()
    return row


def get_matrix(plan, group=None):
    """Load one owner's lists and grids; stale stored grids are reconciled."""
    if group is not None:
        quadrants = {q: parse_lines(getattr(group, q.value)) for q in Quadrant}
        cap = None
    else:
        quadrants = {q: parse_lines(getattr(plan, f"final_{q.value}")) for q in Quadrant}
        cap = _consolidated_cap()
    row = _grid_row(plan.id, group.id if group is not None else None)
    grids = row.cells() if row is not None else {}
    return SwotMatrix(quadrants, grids, cap=cap)


def _store_grids(plan, group, matrix):
    row = _grid_row(plan.id, group.id if group is not None else None, create=True)
    for kind, cells in matrix.cells().items():
        setattr(row, kind, cells)
    return row


def set_grid_cell(plan, group, kind, row, col, value, now=None):
    """Set one cell. Returns (grid, stored_value)."""
    if group is not None:
        assert_editable(plan, now)
    kind = GridKind.parse(kind)
    matrix = get_matrix(plan, group)
    grid = matrix.grid(kind)
    stored = grid.set_cell(_index(row, "row"), _index(col, "col"), value)
    _store_grids(plan, group, matrix)
    db.session.flush()
    logger.debug(
        "Cell %s[%s][%s] = %s", kind.value, row, col, stored,
        extra={
            "plan_id": plan.id,
            "group_id": group.id if group is not None else None,
            "grid": kind.value,
        },
    )
    return grid, stored


def save_grids(plan, group, payload, now=None):
    """Replace whole cell matrices, keyed by grid kind.

    Every value must be a number; matrices whose shape does not match the
    current item lists are reconciled by position.
    """
    if group is not None:
        assert_editable(plan, now)
    grids = payload.get("grids", payload)
    if not isinstance(grids, dict):
        raise ValidationError("grids must be an object keyed by grid kind")
    matrix = get_matrix(plan, group)
    for raw_kind, cells in grids.items():
        kind = GridKind.parse(raw_kind)
        if not isinstance(cells, list) or not all(isinstance(r, list) for r in cells):
            raise ValidationError(
                f"{kind.value} cells must be a list of rows", details={"kind": kind.value},
            )
        quantized = [[quantize_score(v) for v in r] for r in cells]
        current = matrix.grid(kind)
        matrix.grids[kind] = CrossImpactGrid.from_cells(kind, current.rows, current.cols, quantized)
    _store_grids(plan, group, matrix)
    db.session.flush()
    return matrix


def get_impact_analysis(plan, group, quadrant):
    return ImpactAnalysis.from_matrix(get_matrix(plan, group), Quadrant.parse(quadrant))


# ── Consolidated matrix ──────────────────────────────────────────────────


def save_final_matrix(plan, data):
    """Manual override of the consolidated quadrants (cap enforced)."""
    source = data.get("swot") or data
    cap = _consolidated_cap()
    for q in Quadrant:
        if q.value in source:
            items = QuadrantItemList(q, cap=cap)
            for text in _items(source[q.value], q):
                items.insert(text)
            setattr(plan, f"final_{q.value}", items.to_lines())
    if "observations" in data:
        plan.observations = data["observations"] or ""
    _store_grids(plan, None, get_matrix(plan))
    db.session.flush()
    return plan


def insert_final_item(plan, quadrant, text):
    q = Quadrant.parse(quadrant)
    if is_blank(text):
        raise ValidationError("Item text must not be blank", details={"quadrant": q.value})
    matrix = get_matrix(plan)
    matrix.insert_item(q, text)
    setattr(plan, f"final_{q.value}", matrix.lists[q].to_lines())
    _store_grids(plan, None, matrix)
    db.session.flush()
    logger.info("Final item added", extra={"plan_id": plan.id, "quadrant": q.value})
    return matrix


def classification_row(plan_id, group_id, create=False):
    row = RiskClassification.query.filter_by(plan_id=plan_id, group_id=group_id).first()
    if row is None and create:
        row = RiskClassification(plan_id=plan_id, group_id=group_id, opportunities=[], threats=[])
        db.session.add(row)
        db.session.flush()
    return row


def classification_set(row):
    if row is None:
        return None
    return RiskClassificationSet.from_dict({
        "opportunities": row.opportunities,
        "threats": row.threats,
        "filled_at": row.filled_at,
    })


def group_snapshot(group):
    return GroupSnapshot.from_lines(
        group.id,
        group.name,
        group.lines(),
        group.certainty(),
        classification=classification_set(classification_row(group.plan_id, group.id)),
        swot_filled_at=group.swot_filled_at,
    )


def consolidate_plan(plan, now=None):
    """Rebuild the plan's final matrix from its filled groups and persist it."""
    snapshots = [group_snapshot(g) for g in plan.groups]
    result = consolidate(snapshots, cap=_consolidated_cap())
    plan.set_final_lines(result.to_lines())
    plan.consolidated_at = now or _utcnow()
    _store_grids(plan, None, get_matrix(plan))
    db.session.flush()
    cache_service.invalidate_plan(plan.id)
    if not result.complete:
        logger.warning(
            "Consolidated with %d of %d groups filled",
            result.filled_count, result.group_count, extra={"plan_id": plan.id},
        )
    return result


# ── Progress ─────────────────────────────────────────────────────────────


def _progress_summary(plan):
    snapshots = [group_snapshot(g) for g in plan.groups]
    return {
        "plan_id": plan.id,
        "group_count": len(snapshots),
        "swot_pct": fill_progress(snapshots),
        "classification_pct": fill_progress(snapshots, classification=True),
        "groups": [
            {
                "id": s.id,
                "name": s.name,
                "swot_filled": s.swot_filled,
                "classification_filled": s.classification_filled,
                "filled": s.is_filled,
            }
            for s in snapshots
        ],
    }


def get_fill_progress(plan):
    """Fill progress of a plan's groups, cache-aside."""
    ttl = current_app.config.get("PROGRESS_CACHE_TTL", cache_service.DEFAULT_TTL)
    return cache_service.get_cached(
        cache_service.progress_key(plan.id), ttl=ttl, loader=lambda: _progress_summary(plan),
    )
