"""Problem-tree service: trees, topics, GUT factors and pain pillars.

Transaction policy: flush only; the route handler commits.
"""
import logging

from flask import current_app

from swotplan.core import problem_tree as scorer
from swotplan.core.exceptions import ValidationError
from swotplan.models import db
from swotplan.models.problem_tree import ProblemTree, ProblemTreeTopic

logger = logging.getLogger(__name__)


def create_tree(plan, data):
    tree = ProblemTree(
        plan_id=plan.id,
        name=data["name"],
        sort_order=data.get("sort_order", ProblemTree.query.filter_by(plan_id=plan.id).count()),
    )
    db.session.add(tree)
    db.session.flush()
    for index, entry in enumerate(data.get("topics") or []):
        topic_data = {"topic": entry} if isinstance(entry, str) else dict(entry)
        topic_data.setdefault("sort_order", index)
        add_topic(tree, topic_data)
    return tree


def add_topic(tree, data):
    """Add a topic; factors given at creation go through the same parser as updates."""
    topic = ProblemTreeTopic(
        tree_id=tree.id,
        topic=data.get("topic", ""),
        guiding_question=data.get("guiding_question"),
        sort_order=data.get("sort_order", len(tree.topics)),
    )
    db.session.add(topic)
    db.session.flush()
    for factor in scorer.Factor:
        if factor.value in data:
            scorer.set_topic_factor(topic, factor, data[factor.value])
    db.session.flush()
    return topic


def update_topic(topic, data):
    for field in ("topic", "guiding_question", "sort_order"):
        if field in data:
            setattr(topic, field, data[field])
    for factor in scorer.Factor:
        if factor.value in data:
            scorer.set_topic_factor(topic, factor, data[factor.value])
    db.session.flush()
    return topic


def update_topic_factor(topic, factor, raw_value):
    """Set one factor ("3,5" is accepted) and recompute the score."""
    factor = scorer.Factor.parse(factor)
    scorer.set_topic_factor(topic, factor, raw_value)
    db.session.flush()
    logger.debug("Topic %s: %s=%s score=%s", topic.id, factor.value,
                 getattr(topic, factor.value), topic.score)
    return topic


def _threshold(raw):
    if raw is None or raw == "":
        return current_app.config.get("PAIN_PILLAR_THRESHOLD", scorer.PAIN_PILLAR_THRESHOLD)
    try:
        return float(str(raw).replace(",", "."))
    except ValueError:
        raise ValidationError("threshold must be a number", details={"threshold": raw}) from None


def get_pain_pillars(plan_id, threshold=None):
    """Topics across all of a plan's trees scoring above the threshold, best first."""
    trees = (
        ProblemTree.query.filter_by(plan_id=plan_id)
        .order_by(ProblemTree.sort_order, ProblemTree.id)
        .all()
    )
    snapshots = [
        scorer.ProblemTree(
            name=t.name,
            id=t.id,
            topics=[
                scorer.ProblemTreeTopic(
                    id=tp.id,
                    topic=tp.topic,
                    guiding_question=tp.guiding_question,
                    severity=tp.severity,
                    urgency=tp.urgency,
                    trend=tp.trend,
                    score=tp.score,
                )
                for tp in t.topics
            ],
        )
        for t in trees
    ]
    return scorer.pain_pillars(snapshots, _threshold(threshold))
