"""Derivation of the Hebrew-calendar fields stored on a birthday."""

import logging
from datetime import date
from typing import Any

from birthdays.calendars.hebrew import current_hebrew_year, project_anniversaries, to_hebrew
from birthdays.models import Birthday
from .constants import YEARS_AHEAD

logger = logging.getLogger(__name__)


def compute_hebrew_fields(
    birth_date: date, after_sunset: bool, today: date | None = None
) -> dict[str, Any]:
    """Compute the derived Hebrew fields for a Gregorian birth date.

    Returns a dict ready to be written onto the birthday record.
    """
    today = today or date.today()
    info = to_hebrew(birth_date, after_sunset)
    anniversaries = project_anniversaries(
        current_hebrew_year(today), info.month, info.day, YEARS_AHEAD
    )

    fields: dict[str, Any] = {
        "birth_date_hebrew_string": info.display,
        "hebrew_year": info.year,
        "hebrew_month": info.month,
        "hebrew_day": info.day,
        "future_hebrew_birthdays": [
            {"gregorian": a.gregorian_date, "hebrew_year": a.hebrew_year}
            for a in anniversaries
        ],
        "next_upcoming_hebrew_birthday": None,
        "next_upcoming_hebrew_year": None,
    }
    if anniversaries:
        upcoming = next(
            (a for a in anniversaries if a.gregorian_date >= today), anniversaries[0]
        )
        fields["next_upcoming_hebrew_birthday"] = upcoming.gregorian_date
        fields["next_upcoming_hebrew_year"] = upcoming.hebrew_year

    logger.debug(
        f"Computed Hebrew data: birth_date={birth_date}, after_sunset={after_sunset}, "
        f"hebrew={info.day} {info.month} {info.year}, anniversaries={len(anniversaries)}"
    )
    return fields


def should_recalculate(before: Birthday | None, after: Birthday) -> bool:
    """Whether a write needs the Hebrew fields recomputed."""
    if before is None:
        return not after.has_hebrew_data()
    if (
        before.birth_date_gregorian != after.birth_date_gregorian
        or before.after_sunset != after.after_sunset
    ):
        return True
    return not after.has_hebrew_data()


def apply_hebrew_fields(birthday: Birthday, fields: dict[str, Any]) -> Birthday:
    """Return a copy of ``birthday`` carrying freshly computed Hebrew fields."""
    return Birthday.model_validate({**birthday.model_dump(), **fields})
