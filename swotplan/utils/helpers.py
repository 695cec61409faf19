"""Shared utility functions for the planning blueprints.

get_or_404:          tuple-return lookup, never abort()
parse_datetime:      ISO / DD.MM.YYYY deadlines, always timezone-aware
db_commit_or_error:  commit with rollback and a ready-made error response
"""
import logging
from datetime import date, datetime, time, timezone

from sqlalchemy.exc import IntegrityError, OperationalError

from swotplan.models import db
from swotplan.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def get_or_404(model, pk, label=None):
    """Fetch a model instance by primary key or return a 404 error tuple.

    - Success: (obj, None)
    - Failure: (None, (response, 404))

        plan, err = get_or_404(StrategicPlan, plan_id)
        if err:
            return err
    """
    label = label or model.__name__
    obj = db.session.get(model, pk)
    if not obj:
        return None, api_error(E.NOT_FOUND, f"{label} not found")
    return obj, None


def parse_datetime(value):
    """Parse a deadline into an aware datetime (UTC when no offset is given).

    Accepts datetime/date objects, ISO strings (``Z`` suffix included) and
    DD.MM.YYYY. A bare date means the end of that day.

    Raises ValueError on anything else.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.max)
    else:
        raw = str(value).strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
            if len(raw) == 10:
                parsed = datetime.combine(parsed.date(), time.max)
        except ValueError:
            try:
                parsed = datetime.combine(datetime.strptime(raw, "%d.%m.%Y").date(), time.max)
            except ValueError as exc:
                raise ValueError(
                    "Invalid date format. Use ISO 8601 or DD.MM.YYYY."
                ) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ── Database commit helper ───────────────────────────────────────────────────

def db_commit_or_error():
    """Commit the current SQLAlchemy session, returning an error response on failure.

    Returns:
        None on success.
        (response, status_code) tuple on failure, ready for ``return``.

    IntegrityError → 409 (duplicate / constraint violation)
    OperationalError → 500 (connection / lock issues)
    """
    try:
        db.session.commit()
        return None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return api_error(E.CONFLICT_STATE, "Duplicate or constraint violation")
    except OperationalError:
        db.session.rollback()
        logger.exception("Database operational error on commit")
        return api_error(E.DATABASE, "Database error")
