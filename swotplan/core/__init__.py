"""
Planning core — the SWOT aggregation engine.

Pure, synchronous functions and classes over in-memory snapshots. Nothing
in this package imports Flask or SQLAlchemy; the service layer builds
snapshots from the database and persists what the core returns.
"""

from swotplan.core.analysis import ImpactAnalysis, round_half_up  # noqa: F401
from swotplan.core.consolidation import (  # noqa: F401
    CertaintyMark,
    ConsolidatedMatrix,
    GroupSnapshot,
    PlanSnapshot,
    consolidate,
    fill_progress,
    is_editable,
    responses_for,
    seed_final_classification,
)
from swotplan.core.grid import CrossImpactGrid, GridKind, quantize_score  # noqa: F401
from swotplan.core.matrix import SwotMatrix  # noqa: F401
from swotplan.core.problem_tree import (  # noqa: F401
    Factor,
    ProblemTree,
    ProblemTreeTopic,
    pain_pillars,
    parse_factor,
)
from swotplan.core.quadrants import (  # noqa: F401
    CONSOLIDATED_CAP,
    Quadrant,
    QuadrantItemList,
    join_lines,
    match_key,
    parse_lines,
)
from swotplan.core.risk import (  # noqa: F401
    OpportunityStrategy,
    RiskClassificationSet,
    ThreatStrategy,
    parse_strategy,
)
