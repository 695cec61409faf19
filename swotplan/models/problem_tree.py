"""
SWOT Planning Workshop Platform
Problem-tree models: GUT-scored topics under named trees.

Models:
    - ProblemTree: a named tree attached to a plan
    - ProblemTreeTopic: topic, guiding question, severity/urgency/trend
      factors and the derived score
"""

from datetime import datetime, timezone

from swotplan.models import db


def _utcnow():
    return datetime.now(timezone.utc)


class ProblemTree(db.Model):
    __tablename__ = "problem_trees"

    id = db.Column(db.Integer, primary_key=True)
    plan_id = db.Column(
        db.Integer, db.ForeignKey("strategic_plans.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    sort_order = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    topics = db.relationship(
        "ProblemTreeTopic", backref="tree", lazy="select",
        cascade="all, delete-orphan",
        order_by="ProblemTreeTopic.sort_order, ProblemTreeTopic.id",
    )

    def to_dict(self, include_topics=True):
        d = {
            "id": self.id,
            "plan_id": self.plan_id,
            "name": self.name,
            "sort_order": self.sort_order,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_topics:
            d["topics"] = [t.to_dict() for t in self.topics]
        return d

    def __repr__(self):
        return f"<ProblemTree {self.id}: {self.name[:40]}>"


class ProblemTreeTopic(db.Model):
    """One scored topic. ``score`` is NULL until all three factors are set."""

    __tablename__ = "problem_tree_topics"

    id = db.Column(db.Integer, primary_key=True)
    tree_id = db.Column(
        db.Integer, db.ForeignKey("problem_trees.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    topic = db.Column(db.Text, default="")
    guiding_question = db.Column(db.Text, nullable=True)
    severity = db.Column(db.Float, nullable=True, comment="G: 1.0–5.0")
    urgency = db.Column(db.Float, nullable=True, comment="U: 1.0–5.0")
    trend = db.Column(db.Float, nullable=True, comment="T: 1.0–5.0")
    score = db.Column(db.Float, nullable=True, comment="severity × urgency × trend")
    sort_order = db.Column(db.Integer, default=0)

    def to_dict(self):
        return {
            "id": self.id,
            "tree_id": self.tree_id,
            "topic": self.topic,
            "guiding_question": self.guiding_question,
            "severity": self.severity,
            "urgency": self.urgency,
            "trend": self.trend,
            "score": self.score,
            "sort_order": self.sort_order,
        }

    def __repr__(self):
        return f"<ProblemTreeTopic {self.id}: {(self.topic or '')[:40]}>"
