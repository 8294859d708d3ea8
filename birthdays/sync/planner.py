"""Planning of the calendar events a birthday should have.

The planner is pure: given a birthday and its context it returns the full
desired event list for the current year onward. The reconciler diffs that
list against what already exists in Google Calendar.
"""

import logging
from datetime import date, timedelta
from typing import Iterable

from birthdays.calendars import zodiac
from birthdays.models import (
    APP_EVENT_TAG,
    Birthday,
    CalendarPreference,
    CalendarSystem,
    Group,
    Language,
    SyncEvent,
    Tenant,
    WishlistItem,
)
from .constants import REMINDER_MINUTES, YEARS_AHEAD

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {"high": 3, "medium": 2, "low": 1}

LABELS: dict[Language, dict[str, str]] = {
    "en": {
        "wishlist": "🎁 Wishlist:",
        "gregorian_date": "Gregorian Birth Date",
        "hebrew_date": "Hebrew Birth Date",
        "after_sunset": "⚠️ After Sunset",
        "groups": "Groups",
        "notes": "Notes",
        "zodiac": "Zodiac Sign",
        "gregorian_title": "Birthday 🎂",
        "hebrew_title": "Hebrew Birthday 🎂",
    },
    "he": {
        "wishlist": "🎁 רשימת משאלות:",
        "gregorian_date": "תאריך לידה לועזי",
        "hebrew_date": "תאריך לידה עברי",
        "after_sunset": "⚠️ לאחר השקיעה",
        "groups": "קבוצות",
        "notes": "הערות",
        "zodiac": "מזל",
        "gregorian_title": "יום הולדת לועזי 🎂",
        "hebrew_title": "יום הולדת עברי 🎂",
    },
}


def resolve_preference(
    birthday: Birthday, tenant: Tenant | None, groups: Iterable[Group]
) -> CalendarPreference:
    """Effective calendar preference: record override, group, tenant, then both."""
    if birthday.calendar_preference_override:
        return birthday.calendar_preference_override
    for group in groups:
        if group.calendar_preference:
            return group.calendar_preference
    if tenant and tenant.default_calendar_preference:
        return tenant.default_calendar_preference
    return "both"


def build_description(
    birthday: Birthday,
    groups: list[Group],
    wishlist_items: list[WishlistItem],
    language: Language,
) -> str:
    labels = LABELS[language]
    description = ""

    if wishlist_items:
        ranked = sorted(
            wishlist_items,
            key=lambda item: PRIORITY_ORDER.get(item.priority, 0),
            reverse=True,
        )
        lines = [f"{i}. {item.item_name}" for i, item in enumerate(ranked, start=1)]
        description += labels["wishlist"] + "\n" + "\n".join(lines) + "\n\n"

    description += (
        f"{labels['gregorian_date']}: {birthday.birth_date_gregorian.isoformat()}\n"
        f"{labels['hebrew_date']}: {birthday.birth_date_hebrew_string or ''}\n"
    )
    if birthday.after_sunset:
        description += labels["after_sunset"] + "\n"
    if groups:
        names = ", ".join(group.display_name for group in groups)
        description += f"\n{labels['groups']}: {names}"
    if birthday.notes:
        description += f"\n\n{labels['notes']}: {birthday.notes}"
    return description


def _with_zodiac(description: str, sign: zodiac.ZodiacSign | None, language: Language) -> str:
    if sign is None:
        return description
    return f"{description}\n\n{LABELS[language]['zodiac']}: {zodiac.sign_name(sign, language)}"


def _gregorian_anniversary(birth_date: date, year: int) -> date:
    try:
        return birth_date.replace(year=year)
    except ValueError:
        # Feb 29 in a common year rolls over to Mar 1.
        return date(year, 2, 28) + timedelta(days=1)


def build_events(
    birthday: Birthday,
    tenant: Tenant | None,
    groups: list[Group],
    wishlist_items: list[WishlistItem],
    today: date | None = None,
) -> list[SyncEvent]:
    """Build every calendar event that should exist for a birthday.

    Archived birthdays get no events at all.
    """
    if birthday.archived:
        return []

    today = today or date.today()
    language: Language = tenant.default_language if tenant else "he"
    labels = LABELS[language]
    preference = resolve_preference(birthday, tenant, groups)
    description = build_description(birthday, groups, wishlist_items, language)
    properties = {
        "createdByApp": APP_EVENT_TAG,
        "tenantId": birthday.tenant_id,
        "birthdayId": birthday.id,
    }

    def make_event(
        title: str, start: date, system: CalendarSystem, year: int, desc: str
    ) -> SyncEvent:
        return SyncEvent(
            summary=title,
            description=desc,
            calendar_system=system,
            year=year,
            start=start,
            end=start + timedelta(days=1),
            reminder_minutes=REMINDER_MINUTES,
            private_properties=properties,
        )

    events: list[SyncEvent] = []

    if preference in ("gregorian", "both"):
        desc = _with_zodiac(
            description, zodiac.gregorian_sign(birthday.birth_date_gregorian), language
        )
        birth_year = birthday.birth_date_gregorian.year
        for year in range(today.year, today.year + YEARS_AHEAD + 1):
            try:
                start = _gregorian_anniversary(birthday.birth_date_gregorian, year)
            except (ValueError, OverflowError) as e:
                logger.warning(
                    f"Skipping Gregorian anniversary: birthday_id={birthday.id}, year={year}, "
                    f"exception_type={type(e).__name__}, error={e}"
                )
                continue
            title = f"{birthday.full_name} | {year - birth_year} | {labels['gregorian_title']}"
            events.append(make_event(title, start, "gregorian", year, desc))

    if preference in ("hebrew", "both"):
        desc = _with_zodiac(description, zodiac.hebrew_sign(birthday.hebrew_month), language)
        for anniversary in birthday.future_hebrew_birthdays[:YEARS_AHEAD]:
            age = (
                anniversary.hebrew_year - birthday.hebrew_year
                if birthday.hebrew_year
                else 0
            )
            title = f"{birthday.full_name} | {age} | {labels['hebrew_title']}"
            events.append(
                make_event(
                    title, anniversary.gregorian, "hebrew", anniversary.hebrew_year, desc
                )
            )

    logger.debug(
        f"Planned events: birthday_id={birthday.id}, preference={preference}, "
        f"count={len(events)}"
    )
    return events
