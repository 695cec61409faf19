"""
SWOT Planning Workshop Platform
Strategic-planning domain models.

Models:
    - StrategicPlan: one planning engagement, its filling deadline and the
      consolidated SWOT matrix (stored as newline-joined quadrant texts)
    - PlanGroup: one departmental/workshop group and its own SWOT matrix,
      with per-item certainty marks
    - CrossImpactMatrix: the four scoring grids of a group, or of the plan
      when group_id is NULL
    - RiskClassification: treatment strategy per opportunity/threat, for a
      group or (group_id NULL) for the consolidated plan

Architecture chain: StrategicPlan → PlanGroup → CrossImpactMatrix / RiskClassification
"""

from datetime import datetime, timezone

from swotplan.core.quadrants import Quadrant
from swotplan.models import db


PLAN_STATUSES = {"active", "completed", "cancelled"}


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


# ═══════════════════════════════════════════════════════════════════════════
#  PLAN
# ═══════════════════════════════════════════════════════════════════════════

class StrategicPlan(db.Model):
    """A strategic-planning engagement run as a group workshop."""

    __tablename__ = "strategic_plans"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    status = db.Column(db.String(20), default="active", index=True)
    fill_deadline = db.Column(
        db.DateTime(timezone=True), nullable=True,
        comment="After this instant group-level data is read-only",
    )

    # Consolidated SWOT matrix (≤5 items per quadrant, newline-joined)
    final_strengths = db.Column(db.Text, default="")
    final_weaknesses = db.Column(db.Text, default="")
    final_opportunities = db.Column(db.Text, default="")
    final_threats = db.Column(db.Text, default="")
    observations = db.Column(db.Text, default="")
    consolidated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    groups = db.relationship(
        "PlanGroup", backref="plan", lazy="select",
        cascade="all, delete-orphan", order_by="PlanGroup.sort_order, PlanGroup.id",
    )

    def final_lines(self) -> dict:
        return {q.value: getattr(self, f"final_{q.value}") or "" for q in Quadrant}

    def set_final_lines(self, lines: dict):
        for q in Quadrant:
            if q.value in lines:
                setattr(self, f"final_{q.value}", lines[q.value] or "")

    def to_dict(self, include_groups=False):
        d = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "fill_deadline": _iso(self.fill_deadline),
            "final_matrix": self.final_lines(),
            "observations": self.observations,
            "consolidated_at": _iso(self.consolidated_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_groups:
            d["groups"] = [g.to_dict() for g in self.groups]
        return d

    def __repr__(self):
        return f"<StrategicPlan {self.id}: {self.title[:40]}>"


# ═══════════════════════════════════════════════════════════════════════════
#  GROUP
# ═══════════════════════════════════════════════════════════════════════════

class PlanGroup(db.Model):
    """A respondent group filling its own SWOT matrix."""

    __tablename__ = "plan_groups"

    id = db.Column(db.Integer, primary_key=True)
    plan_id = db.Column(
        db.Integer, db.ForeignKey("strategic_plans.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(150), nullable=False)
    members = db.Column(db.Text, default="")
    sort_order = db.Column(db.Integer, default=0)

    strengths = db.Column(db.Text, default="")
    weaknesses = db.Column(db.Text, default="")
    opportunities = db.Column(db.Text, default="")
    threats = db.Column(db.Text, default="")

    # {"<item index>": "C" | "I"} per quadrant
    strengths_certainty = db.Column(db.JSON, default=dict)
    weaknesses_certainty = db.Column(db.JSON, default=dict)
    opportunities_certainty = db.Column(db.JSON, default=dict)
    threats_certainty = db.Column(db.JSON, default=dict)

    swot_filled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def lines(self) -> dict:
        return {q.value: getattr(self, q.value) or "" for q in Quadrant}

    def certainty(self) -> dict:
        return {q.value: dict(getattr(self, f"{q.value}_certainty") or {}) for q in Quadrant}

    def to_dict(self):
        return {
            "id": self.id,
            "plan_id": self.plan_id,
            "name": self.name,
            "members": self.members,
            "sort_order": self.sort_order,
            "swot": self.lines(),
            "certainty": self.certainty(),
            "swot_filled_at": _iso(self.swot_filled_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<PlanGroup {self.id}: {self.name[:40]}>"


# ═══════════════════════════════════════════════════════════════════════════
#  CROSS-IMPACT GRIDS
# ═══════════════════════════════════════════════════════════════════════════

class CrossImpactMatrix(db.Model):
    """Stored cell matrices of the four grids of one owner."""

    __tablename__ = "cross_impact_matrices"
    __table_args__ = (
        db.UniqueConstraint("plan_id", "group_id", name="uq_cross_impact_owner"),
    )

    id = db.Column(db.Integer, primary_key=True)
    plan_id = db.Column(
        db.Integer, db.ForeignKey("strategic_plans.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    group_id = db.Column(
        db.Integer, db.ForeignKey("plan_groups.id", ondelete="CASCADE"),
        nullable=True, index=True, comment="NULL = consolidated plan grids",
    )
    leverage = db.Column(db.JSON, default=list, comment="opportunities × strengths")
    defense = db.Column(db.JSON, default=list, comment="threats × strengths")
    constraint = db.Column(db.JSON, default=list, comment="opportunities × weaknesses")
    problem = db.Column(db.JSON, default=list, comment="threats × weaknesses")

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def cells(self) -> dict:
        return {
            "leverage": self.leverage or [],
            "defense": self.defense or [],
            "constraint": self.constraint or [],
            "problem": self.problem or [],
        }

    def __repr__(self):
        return f"<CrossImpactMatrix plan={self.plan_id} group={self.group_id}>"


# ═══════════════════════════════════════════════════════════════════════════
#  RISK CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════

class RiskClassification(db.Model):
    """Treatment strategies for one owner's opportunities and threats."""

    __tablename__ = "risk_classifications"
    __table_args__ = (
        db.UniqueConstraint("plan_id", "group_id", name="uq_risk_classification_owner"),
    )

    id = db.Column(db.Integer, primary_key=True)
    plan_id = db.Column(
        db.Integer, db.ForeignKey("strategic_plans.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    group_id = db.Column(
        db.Integer, db.ForeignKey("plan_groups.id", ondelete="CASCADE"),
        nullable=True, index=True, comment="NULL = consolidated plan classification",
    )
    opportunities = db.Column(db.JSON, default=list, comment="[{item, classification, treatment}]")
    threats = db.Column(db.JSON, default=list, comment="[{item, classification, treatment}]")
    filled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<RiskClassification plan={self.plan_id} group={self.group_id}>"
