"""
SWOT Planning Workshop Platform
Blueprint registry and shared error handling.
"""

import logging

from flask import request
from werkzeug.exceptions import HTTPException

from swotplan.core.exceptions import (
    CapacityError,
    EditingClosedError,
    NotFoundError,
    ValidationError,
)
from swotplan.models import db
from swotplan.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def register_error_handlers(bp):
    """Map the planning exceptions to the standard JSON error envelope.

    The session is rolled back first: services flush before they raise.
    """

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        db.session.rollback()
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @bp.errorhandler(CapacityError)
    def _handle_capacity(error: CapacityError):
        db.session.rollback()
        return api_error(
            E.CAPACITY_EXCEEDED, str(error),
            details={"quadrant": error.quadrant, "cap": error.cap},
        )

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        db.session.rollback()
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(EditingClosedError)
    def _handle_editing_closed(error: EditingClosedError):
        db.session.rollback()
        return api_error(
            E.EDITING_CLOSED, str(error),
            details={
                "plan_id": error.plan_id,
                "deadline": error.deadline.isoformat() if error.deadline else None,
            },
        )

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return error
        db.session.rollback()
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        return api_error(E.INTERNAL, "Internal server error")

    return bp
