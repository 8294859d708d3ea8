"""Tests for the event planner."""

from datetime import date, timedelta

import pytest

from birthdays.models import WishlistItem
from birthdays.sync.hebrew_data import apply_hebrew_fields, compute_hebrew_fields
from birthdays.sync.planner import build_description, build_events, resolve_preference

TODAY = date(2024, 1, 1)


@pytest.fixture
def birthday(birthday_factory):
    fields = compute_hebrew_fields(date(1990, 5, 15), False, today=TODAY)
    return apply_hebrew_fields(birthday_factory.make(), fields)


@pytest.fixture
def tenant(tenant_factory):
    return tenant_factory.make({"default_language": "en"})


class TestResolvePreference:
    def test_override_wins(self, birthday, tenant, group_factory):
        birthday = birthday.model_copy(update={"calendar_preference_override": "hebrew"})
        groups = [group_factory.make({"calendar_preference": "gregorian"})]
        assert resolve_preference(birthday, tenant, groups) == "hebrew"

    def test_group_before_tenant(self, birthday, tenant, group_factory):
        tenant = tenant.model_copy(update={"default_calendar_preference": "hebrew"})
        groups = [
            group_factory.make({"id": "g0", "calendar_preference": None}),
            group_factory.make({"id": "g1", "calendar_preference": "gregorian"}),
        ]
        assert resolve_preference(birthday, tenant, groups) == "gregorian"

    def test_tenant_default(self, birthday, tenant):
        tenant = tenant.model_copy(update={"default_calendar_preference": "hebrew"})
        assert resolve_preference(birthday, tenant, []) == "hebrew"

    def test_falls_back_to_both(self, birthday):
        assert resolve_preference(birthday, None, []) == "both"


class TestBuildEvents:
    def test_both_calendars(self, birthday, tenant):
        events = build_events(birthday, tenant, [], [], today=TODAY)

        gregorian = [e for e in events if e.calendar_system == "gregorian"]
        hebrew = [e for e in events if e.calendar_system == "hebrew"]
        assert [e.year for e in gregorian] == list(range(2024, 2035))
        assert len(hebrew) == 10
        assert len({e.key for e in events}) == len(events)

    def test_gregorian_event_shape(self, birthday, tenant):
        events = build_events(birthday, tenant, [], [], today=TODAY)
        event = next(e for e in events if e.key == "gregorian_2025")

        assert event.summary == "Dana Levi | 35 | Birthday 🎂"
        assert event.start == date(2025, 5, 15)
        assert event.end == event.start + timedelta(days=1)
        assert event.reminder_minutes == (1440, 60)
        assert event.private_properties == {
            "createdByApp": "hebbirthday",
            "tenantId": "tenant_1",
            "birthdayId": "bday_1",
        }
        assert "Zodiac Sign: Taurus" in event.description

    def test_hebrew_event_shape(self, birthday, tenant):
        events = build_events(birthday, tenant, [], [], today=TODAY)
        event = next(e for e in events if e.key == "hebrew_5784")

        assert event.summary == "Dana Levi | 34 | Hebrew Birthday 🎂"
        assert event.start == date(2024, 5, 28)
        assert event.end == date(2024, 5, 29)
        assert "Zodiac Sign: Taurus" in event.description

    def test_preference_limits_calendars(self, birthday, tenant):
        only_hebrew = birthday.model_copy(update={"calendar_preference_override": "hebrew"})
        events = build_events(only_hebrew, tenant, [], [], today=TODAY)
        assert {e.calendar_system for e in events} == {"hebrew"}

        only_gregorian = birthday.model_copy(update={"calendar_preference_override": "gregorian"})
        events = build_events(only_gregorian, tenant, [], [], today=TODAY)
        assert {e.calendar_system for e in events} == {"gregorian"}

    def test_archived_birthday_has_no_events(self, birthday, tenant):
        archived = birthday.model_copy(update={"archived": True})
        assert build_events(archived, tenant, [], [], today=TODAY) == []

    def test_feb_29_in_common_year_moves_to_march_1(self, birthday, tenant):
        leapling = birthday.model_copy(
            update={
                "birth_date_gregorian": date(1992, 2, 29),
                "calendar_preference_override": "gregorian",
            }
        )
        events = {e.year: e for e in build_events(leapling, tenant, [], [], today=TODAY)}
        assert events[2024].start == date(2024, 2, 29)
        assert events[2025].start == date(2025, 3, 1)

    def test_hebrew_titles_are_localized(self, birthday, tenant_factory):
        tenant = tenant_factory.make({"default_language": "he"})
        events = build_events(birthday, tenant, [], [], today=TODAY)
        hebrew = next(e for e in events if e.calendar_system == "hebrew")
        assert hebrew.summary.endswith("יום הולדת עברי 🎂")


class TestBuildDescription:
    def test_full_description(self, birthday, group_factory):
        birthday = birthday.model_copy(update={"after_sunset": True, "notes": "Allergic to nuts"})
        wishlist = [
            WishlistItem(id="w1", birthday_id="bday_1", item_name="Socks", priority="low"),
            WishlistItem(id="w2", birthday_id="bday_1", item_name="Bike", priority="high"),
            WishlistItem(id="w3", birthday_id="bday_1", item_name="Book", priority="medium"),
        ]
        description = build_description(birthday, [group_factory.make()], wishlist, "en")

        assert description.startswith("🎁 Wishlist:\n1. Bike\n2. Book\n3. Socks\n\n")
        assert "Gregorian Birth Date: 1990-05-15\n" in description
        assert f"Hebrew Birth Date: {birthday.birth_date_hebrew_string}\n" in description
        assert "⚠️ After Sunset" in description
        assert "Groups: Family: Cousins" in description
        assert description.endswith("Notes: Allergic to nuts")

    def test_minimal_description(self, birthday):
        description = build_description(birthday, [], [], "en")
        assert "Wishlist" not in description
        assert "Groups" not in description
        assert "Notes" not in description
