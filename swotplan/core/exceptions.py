"""
Planning-engine exception hierarchy.

All core and service code raises these types. Blueprints register handlers
against them once and map each to a stable error code and HTTP status, so
the UI can show a localized warning instead of a stack trace.

Usage:
    from swotplan.core.exceptions import CapacityError, ValidationError

    raise ValidationError("severity must be between 1 and 5",
                          details={"topic_id": 3, "factor": "severity"})
    raise CapacityError(quadrant="opportunities", cap=5)
"""

from __future__ import annotations


class NotFoundError(Exception):
    """Raised when a requested plan, group, tree, topic or item does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Plan", "ClassificationItem").
        resource_id: The key that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id!r}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when a value violates a range or format rule.

    Typical sources: problem-tree factors outside [1, 5], malformed numeric
    strings, unknown strategies, out-of-range grid indices.

    Args:
        message: Human-readable explanation of what failed.
        details: Field-level breakdown identifying the offending input
                 (topic id, factor, row/col, raw value...).
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class CapacityError(Exception):
    """Raised on an explicit insert past a quadrant's item cap.

    The consolidated matrix caps each quadrant at 5 items. The soft
    ``QuadrantItemList.add()`` path never raises this; only ``insert()`` does.
    """

    def __init__(self, quadrant: str, cap: int) -> None:
        self.quadrant = quadrant
        self.cap = cap
        super().__init__(f"Maximum of {cap} items reached for {quadrant}")


class InconsistentGridError(Exception):
    """Raised when a grid's cell dimensions disagree with its item lists.

    Never surfaces past the core: ``CrossImpactGrid.ensure_shape()`` catches
    it, logs it and reconciles the grid in place.
    """

    def __init__(self, kind: str, expected: tuple[int, int], actual: tuple[int, ...]) -> None:
        self.kind = kind
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{kind} grid shape {actual} does not match items {expected}"
        )


class EditingClosedError(Exception):
    """Raised at the boundary when group data is written after the plan deadline."""

    def __init__(self, plan_id: int | None, deadline=None) -> None:
        self.plan_id = plan_id
        self.deadline = deadline
        msg = "The filling deadline for this plan has passed"
        if deadline is not None:
            msg += f" ({deadline.isoformat()})"
        super().__init__(msg)
