"""
SWOT Planning Workshop Platform
Problem-tree blueprint: trees, GUT-scored topics and pain pillars.

Endpoints summary:
    /api/v1/plans/<pid>/problem-trees               GET, POST
    /api/v1/problem-trees/<tid>                     GET
    /api/v1/problem-trees/<tid>/topics              POST
    /api/v1/topics/<topic_id>                       PUT
    /api/v1/topics/<topic_id>/factors/<factor>      PATCH
    /api/v1/plans/<pid>/pain-pillars                GET   (?threshold=)
"""

import logging

from flask import Blueprint, jsonify, request

from swotplan.blueprints import register_error_handlers
from swotplan.core.problem_tree import format_decimal
from swotplan.models.planning import StrategicPlan
from swotplan.models.problem_tree import ProblemTree, ProblemTreeTopic
from swotplan.services import problem_tree_service
from swotplan.utils.errors import E, api_error
from swotplan.utils.helpers import db_commit_or_error, get_or_404

logger = logging.getLogger(__name__)

problem_tree_bp = Blueprint("problem_tree", __name__, url_prefix="/api/v1")
register_error_handlers(problem_tree_bp)


def _json():
    return request.get_json(silent=True) or {}


@problem_tree_bp.route("/plans/<int:plan_id>/problem-trees", methods=["GET"])
def list_trees(plan_id):
    plan, err = get_or_404(StrategicPlan, plan_id, "Plan")
    if err:
        return err
    trees = (
        ProblemTree.query.filter_by(plan_id=plan.id)
        .order_by(ProblemTree.sort_order, ProblemTree.id)
        .all()
    )
    return jsonify({"items": [t.to_dict() for t in trees], "total": len(trees)}), 200


@problem_tree_bp.route("/plans/<int:plan_id>/problem-trees", methods=["POST"])
def create_tree(plan_id):
    plan, err = get_or_404(StrategicPlan, plan_id, "Plan")
    if err:
        return err
    data = _json()
    if not (data.get("name") or "").strip():
        return api_error(E.VALIDATION_REQUIRED, "name is required")
    tree = problem_tree_service.create_tree(plan, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(tree.to_dict()), 201


@problem_tree_bp.route("/problem-trees/<int:tree_id>", methods=["GET"])
def get_tree(tree_id):
    tree, err = get_or_404(ProblemTree, tree_id, "ProblemTree")
    if err:
        return err
    return jsonify(tree.to_dict()), 200


@problem_tree_bp.route("/problem-trees/<int:tree_id>/topics", methods=["POST"])
def add_topic(tree_id):
    tree, err = get_or_404(ProblemTree, tree_id, "ProblemTree")
    if err:
        return err
    topic = problem_tree_service.add_topic(tree, _json())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(topic.to_dict()), 201


@problem_tree_bp.route("/topics/<int:topic_id>", methods=["PUT"])
def update_topic(topic_id):
    topic, err = get_or_404(ProblemTreeTopic, topic_id, "ProblemTreeTopic")
    if err:
        return err
    problem_tree_service.update_topic(topic, _json())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(topic.to_dict()), 200


@problem_tree_bp.route("/topics/<int:topic_id>/factors/<factor>", methods=["PATCH"])
def update_factor(topic_id, factor):
    """Body: {"value": 3.5 | "3,5" | "" | null}. Blank clears the factor."""
    topic, err = get_or_404(ProblemTreeTopic, topic_id, "ProblemTreeTopic")
    if err:
        return err
    data = _json()
    if "value" not in data:
        return api_error(E.VALIDATION_REQUIRED, "value is required")
    problem_tree_service.update_topic_factor(topic, factor, data["value"])
    err = db_commit_or_error()
    if err:
        return err
    body = topic.to_dict()
    body["score_display"] = format_decimal(topic.score)
    return jsonify(body), 200


@problem_tree_bp.route("/plans/<int:plan_id>/pain-pillars", methods=["GET"])
def pain_pillars(plan_id):
    plan, err = get_or_404(StrategicPlan, plan_id, "Plan")
    if err:
        return err
    pillars = problem_tree_service.get_pain_pillars(plan.id, request.args.get("threshold"))
    return jsonify({
        "items": [p.to_dict() for p in pillars],
        "total": len(pillars),
    }), 200
