"""Gregorian <-> Hebrew date conversion and anniversary projection.

Month names follow the transliteration used throughout the app
(``Nisan``, ``Iyyar``, ... ``Adar``, ``Adar I``, ``Adar II``) rather than
pyluach's own spelling, so stored records do not depend on the library.
"""

import logging
from datetime import date, timedelta
from typing import NamedTuple

from pyluach import dates, hebrewcal

logger = logging.getLogger(__name__)

# pyluach numbers months from Nisan (1) to Adar / Adar I (12) and Adar II (13).
MONTH_NUMBERS: dict[str, int] = {
    "Nisan": 1,
    "Iyyar": 2,
    "Sivan": 3,
    "Tamuz": 4,
    "Av": 5,
    "Elul": 6,
    "Tishrei": 7,
    "Cheshvan": 8,
    "Kislev": 9,
    "Tevet": 10,
    "Sh'vat": 11,
    "Adar": 12,
    "Adar I": 12,
    "Adar II": 13,
}
_NAMES_BY_NUMBER = {
    number: name for name, number in MONTH_NUMBERS.items() if not name.startswith("Adar")
}


class HebrewDateInfo(NamedTuple):
    year: int
    month: str
    day: int
    display: str


class Anniversary(NamedTuple):
    gregorian_date: date
    hebrew_year: int


def is_leap_year(year: int) -> bool:
    return hebrewcal.Year(year).leap


def month_name(year: int, month: int) -> str:
    """Name of a pyluach month number within a given Hebrew year."""
    if month == 12:
        return "Adar I" if is_leap_year(year) else "Adar"
    if month == 13:
        return "Adar II"
    return _NAMES_BY_NUMBER[month]


def to_hebrew(gregorian_date: date, after_sunset: bool = False) -> HebrewDateInfo:
    """Convert a Gregorian date to its Hebrew date.

    The Hebrew day starts at sunset, so a birth after sunset belongs to the
    following Hebrew day.
    """
    if after_sunset:
        gregorian_date = gregorian_date + timedelta(days=1)
    hdate = dates.HebrewDate.from_pydate(gregorian_date)
    return HebrewDateInfo(
        year=hdate.year,
        month=month_name(hdate.year, hdate.month),
        day=hdate.day,
        display=hdate.hebrew_date_string(),
    )


def current_hebrew_year(today: date | None = None) -> int:
    return dates.HebrewDate.from_pydate(today or date.today()).year


def _exact_month(month: str, year: int) -> int | None:
    """Month number for ``month`` in ``year``, or None if it doesn't exist that year."""
    leap = is_leap_year(year)
    if month == "Adar":
        return None if leap else 12
    if month in ("Adar I", "Adar II"):
        return MONTH_NUMBERS[month] if leap else None
    return MONTH_NUMBERS.get(month)


def _substitute_month(month: str, year: int) -> int | None:
    """Month used in place of a leap-dependent Adar that doesn't exist in ``year``."""
    leap = is_leap_year(year)
    if month in ("Adar I", "Adar II") and not leap:
        return 12
    if month == "Adar" and leap:
        return 13
    return None


def _make_date(year: int, month: int | None, day: int) -> dates.HebrewDate | None:
    if month is None:
        return None
    try:
        hdate = dates.HebrewDate(year, month, day)
    except ValueError:
        return None
    # Round-trip through the Gregorian date so an overflowing day 30 can't slip through.
    roundtrip = dates.HebrewDate.from_pydate(hdate.to_pydate())
    if (roundtrip.month, roundtrip.day) != (month, day):
        return None
    return hdate


def resolve_anniversary(year: int, month: str, day: int) -> dates.HebrewDate | None:
    """Find the date a (month, day) anniversary falls on in a given Hebrew year.

    Tried in order: the exact date; day 29 when day 30 doesn't exist; the
    substitute Adar for leap/non-leap mismatches (again falling back to 29).
    """
    exact = _exact_month(month, year)
    substitute = _substitute_month(month, year)
    candidates = [(exact, day)]
    if day == 30:
        candidates.append((exact, 29))
    candidates.append((substitute, day))
    if day == 30:
        candidates.append((substitute, 29))

    for candidate_month, candidate_day in candidates:
        hdate = _make_date(year, candidate_month, candidate_day)
        if hdate is not None:
            return hdate
    return None


def project_anniversaries(
    start_year: int, month: str, day: int, count: int
) -> list[Anniversary]:
    """Project ``count + 1`` consecutive Hebrew anniversaries into Gregorian dates.

    Years in which the anniversary can't be resolved are skipped, so the
    result may hold fewer than ``count + 1`` entries.
    """
    results: list[Anniversary] = []
    for year in range(start_year, start_year + count + 1):
        try:
            hdate = resolve_anniversary(year, month, day)
        except (ValueError, KeyError) as e:
            logger.warning(
                f"Could not project Hebrew anniversary: year={year}, month={month}, "
                f"day={day}, exception_type={type(e).__name__}, error={e}"
            )
            continue
        if hdate is None:
            logger.debug(f"No anniversary for {day} {month} in Hebrew year {year}")
            continue
        results.append(Anniversary(gregorian_date=hdate.to_pydate(), hebrew_year=year))
    return results
