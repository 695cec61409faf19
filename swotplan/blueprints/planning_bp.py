"""
SWOT Planning Workshop Platform
Planning blueprint: plans, groups, SWOT matrices, grids, analysis, classification.

Endpoints summary:
    PLAN      /api/v1/plans                                  POST
              /api/v1/plans/<pid>                            GET, PUT
              /api/v1/plans/<pid>/groups                     POST
              /api/v1/plans/<pid>/progress                   GET   (cached)

    GROUP     /api/v1/groups/<gid>                           GET
              /api/v1/groups/<gid>/swot                      PUT   (deadline enforced)

    FINAL     /api/v1/plans/<pid>/consolidate                POST
              /api/v1/plans/<pid>/final-matrix               GET, PUT
              /api/v1/plans/<pid>/final-matrix/<q>/items     POST

    GRIDS     /api/v1/{plans/<pid>|groups/<gid>}/grids                    GET, PUT
              /api/v1/{plans/<pid>|groups/<gid>}/grids/<kind>/cells       PATCH
              /api/v1/{plans/<pid>|groups/<gid>}/analysis/<quadrant>      GET

    RISK      /api/v1/{plans/<pid>|groups/<gid>}/classification           GET, PUT
              /api/v1/plans/<pid>/classification/seed                     POST
              /api/v1/plans/<pid>/classification/responses                GET
"""

import logging

from flask import Blueprint, jsonify, request

from swotplan.blueprints import register_error_handlers
from swotplan.models.planning import PlanGroup, StrategicPlan
from swotplan.services import classification_service, planning_service
from swotplan.utils.errors import E, api_error
from swotplan.utils.helpers import db_commit_or_error, get_or_404

logger = logging.getLogger(__name__)

planning_bp = Blueprint("planning", __name__, url_prefix="/api/v1")
register_error_handlers(planning_bp)


# ── Helpers ──────────────────────────────────────────────────────────────────

def _json():
    return request.get_json(silent=True) or {}


def _required(data, *fields):
    missing = [f for f in fields if data.get(f) is None or str(data.get(f)).strip() == ""]
    if missing:
        return api_error(
            E.VALIDATION_REQUIRED, f"{', '.join(missing)} is required",
            details={"fields": missing},
        )
    return None


def _get_plan(pid):
    return get_or_404(StrategicPlan, pid, "Plan")


def _get_group(gid):
    return get_or_404(PlanGroup, gid, "Group")


# ═══════════════════════════════════════════════════════════════════════════
#  PLANS & GROUPS
# ═══════════════════════════════════════════════════════════════════════════

@planning_bp.route("/plans", methods=["POST"])
def create_plan():
    data = _json()
    err = _required(data, "title")
    if err:
        return err
    groups = data.get("groups")
    missing = [
        f"groups[{i}].name"
        for i, entry in enumerate(groups if isinstance(groups, list) else [])
        if isinstance(entry, (str, dict))
        and not str((entry.get("name") if isinstance(entry, dict) else entry) or "").strip()
    ]
    if missing:
        return api_error(
            E.VALIDATION_REQUIRED, "Every group needs a name", details={"fields": missing},
        )
    plan = planning_service.create_plan(data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(planning_service.plan_detail(plan)), 201


@planning_bp.route("/plans/<int:plan_id>", methods=["GET"])
def get_plan(plan_id):
    plan, err = _get_plan(plan_id)
    if err:
        return err
    return jsonify(planning_service.plan_detail(plan)), 200


@planning_bp.route("/plans/<int:plan_id>", methods=["PUT"])
def update_plan(plan_id):
    plan, err = _get_plan(plan_id)
    if err:
        return err
    planning_service.update_plan(plan, _json())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(planning_service.plan_detail(plan)), 200


@planning_bp.route("/plans/<int:plan_id>/groups", methods=["POST"])
def create_group(plan_id):
    plan, err = _get_plan(plan_id)
    if err:
        return err
    data = _json()
    err = _required(data, "name")
    if err:
        return err
    group = planning_service.create_group(plan, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(group.to_dict()), 201


@planning_bp.route("/plans/<int:plan_id>/progress", methods=["GET"])
def get_progress(plan_id):
    plan, err = _get_plan(plan_id)
    if err:
        return err
    return jsonify(planning_service.get_fill_progress(plan)), 200


@planning_bp.route("/groups/<int:group_id>", methods=["GET"])
def get_group(group_id):
    group, err = _get_group(group_id)
    if err:
        return err
    return jsonify(group.to_dict()), 200


@planning_bp.route("/groups/<int:group_id>/swot", methods=["PUT"])
def save_group_swot(group_id):
    group, err = _get_group(group_id)
    if err:
        return err
    planning_service.save_group_swot(group, _json())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(group.to_dict()), 200


# ═══════════════════════════════════════════════════════════════════════════
#  CONSOLIDATED MATRIX
# ═══════════════════════════════════════════════════════════════════════════

@planning_bp.route("/plans/<int:plan_id>/consolidate", methods=["POST"])
def consolidate(plan_id):
    plan, err = _get_plan(plan_id)
    if err:
        return err
    result = planning_service.consolidate_plan(plan)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result.to_dict()), 200


def _final_matrix_payload(plan):
    matrix = planning_service.get_matrix(plan)
    return {
        "plan_id": plan.id,
        "quadrants": {q.value: matrix.items(q) for q in matrix.lists},
        "cap": matrix.cap,
        "observations": plan.observations,
        "consolidated_at": plan.consolidated_at.isoformat() if plan.consolidated_at else None,
    }


@planning_bp.route("/plans/<int:plan_id>/final-matrix", methods=["GET"])
def get_final_matrix(plan_id):
    plan, err = _get_plan(plan_id)
    if err:
        return err
    return jsonify(_final_matrix_payload(plan)), 200


@planning_bp.route("/plans/<int:plan_id>/final-matrix", methods=["PUT"])
def save_final_matrix(plan_id):
    plan, err = _get_plan(plan_id)
    if err:
        return err
    planning_service.save_final_matrix(plan, _json())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(_final_matrix_payload(plan)), 200


@planning_bp.route("/plans/<int:plan_id>/final-matrix/<quadrant>/items", methods=["POST"])
def insert_final_item(plan_id, quadrant):
    plan, err = _get_plan(plan_id)
    if err:
        return err
    data = _json()
    err = _required(data, "text")
    if err:
        return err
    planning_service.insert_final_item(plan, quadrant, data["text"])
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(_final_matrix_payload(plan)), 201


# ═══════════════════════════════════════════════════════════════════════════
#  GRIDS & ANALYSIS (plan-level and group-level share the handlers)
# ═══════════════════════════════════════════════════════════════════════════

def _owner(plan_id=None, group_id=None):
    """Resolve (plan, group) for either URL family."""
    if group_id is not None:
        group, err = _get_group(group_id)
        if err:
            return None, None, err
        return group.plan, group, None
    plan, err = _get_plan(plan_id)
    return plan, None, err


@planning_bp.route("/plans/<int:plan_id>/grids", methods=["GET"])
@planning_bp.route("/groups/<int:group_id>/grids", methods=["GET"])
def get_grids(plan_id=None, group_id=None):
    plan, group, err = _owner(plan_id, group_id)
    if err:
        return err
    return jsonify(planning_service.get_matrix(plan, group).to_dict()), 200


@planning_bp.route("/plans/<int:plan_id>/grids", methods=["PUT"])
@planning_bp.route("/groups/<int:group_id>/grids", methods=["PUT"])
def save_grids(plan_id=None, group_id=None):
    plan, group, err = _owner(plan_id, group_id)
    if err:
        return err
    matrix = planning_service.save_grids(plan, group, _json())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(matrix.to_dict()), 200


@planning_bp.route("/plans/<int:plan_id>/grids/<kind>/cells", methods=["PATCH"])
@planning_bp.route("/groups/<int:group_id>/grids/<kind>/cells", methods=["PATCH"])
def set_grid_cell(kind, plan_id=None, group_id=None):
    plan, group, err = _owner(plan_id, group_id)
    if err:
        return err
    data = _json()
    err = _required(data, "row", "col", "value")
    if err:
        return err
    grid, stored = planning_service.set_grid_cell(
        plan, group, kind, data["row"], data["col"], data["value"],
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"value": stored, "grid": grid.to_dict()}), 200


@planning_bp.route("/plans/<int:plan_id>/analysis/<quadrant>", methods=["GET"])
@planning_bp.route("/groups/<int:group_id>/analysis/<quadrant>", methods=["GET"])
def get_analysis(quadrant, plan_id=None, group_id=None):
    """Impact analysis of threats or opportunities.

    Query params: item (optional row index) adds that row's score breakdown.
    """
    plan, group, err = _owner(plan_id, group_id)
    if err:
        return err
    analysis = planning_service.get_impact_analysis(plan, group, quadrant)
    body = analysis.to_dict()
    item = request.args.get("item", type=int)
    if item is not None:
        body["breakdown"] = analysis.breakdown(item)
    return jsonify(body), 200


# ═══════════════════════════════════════════════════════════════════════════
#  RISK CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════

@planning_bp.route("/plans/<int:plan_id>/classification", methods=["GET"])
@planning_bp.route("/groups/<int:group_id>/classification", methods=["GET"])
def get_classification(plan_id=None, group_id=None):
    plan, group, err = _owner(plan_id, group_id)
    if err:
        return err
    if group is not None:
        cset = classification_service.get_group_classification(group)
    else:
        cset = classification_service.get_final_classification(plan)
    # Loading may seed or re-align the stored set
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(cset.to_dict()), 200


@planning_bp.route("/plans/<int:plan_id>/classification", methods=["PUT"])
@planning_bp.route("/groups/<int:group_id>/classification", methods=["PUT"])
def save_classification(plan_id=None, group_id=None):
    plan, group, err = _owner(plan_id, group_id)
    if err:
        return err
    cset = classification_service.save_classification(plan, group, _json())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(cset.to_dict()), 200


@planning_bp.route("/plans/<int:plan_id>/classification/seed", methods=["POST"])
def seed_classification(plan_id):
    plan, err = _get_plan(plan_id)
    if err:
        return err
    data = _json()
    cset = classification_service.seed_final_from_groups(
        plan, auto_seed=bool(data.get("auto_seed", True)),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(cset.to_dict()), 200


@planning_bp.route("/plans/<int:plan_id>/classification/responses", methods=["GET"])
def get_responses(plan_id):
    """Query params: item (required), quadrant (opportunities|threats, optional)."""
    plan, err = _get_plan(plan_id)
    if err:
        return err
    item = request.args.get("item", "")
    if not item.strip():
        return api_error(E.VALIDATION_REQUIRED, "item is required")
    responses = classification_service.get_group_responses(
        plan, item, request.args.get("quadrant") or None,
    )
    return jsonify({
        "item": item,
        "responses": [r.to_dict() for r in responses],
        "total": len(responses),
    }), 200
