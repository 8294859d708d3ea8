"""Tests for birthday database operations."""

import json
from datetime import date, datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from birthdays.db.birthdays import (
    _COLUMNS,
    clear_sync_data_for_tenant,
    create_birthday,
    delete_birthday,
    get_birthday,
    get_birthdays_by_sync_status,
    mark_failed_syncs_unrecoverable,
    update_birthday,
    update_birthday_fields,
)
from birthdays.models import BirthdayWrite, SyncMetadata

_MOD = "birthdays.db.birthdays"


def _mock_cursor(mock_get_cursor: MagicMock) -> MagicMock:
    mock_cursor = MagicMock()
    mock_get_cursor.return_value.__enter__.return_value = mock_cursor
    return mock_cursor


def _row(**overrides) -> tuple:
    values = {
        "id": "bday_1",
        "tenant_id": "tenant_1",
        "first_name": "Dana",
        "last_name": "Levi",
        "birth_date_gregorian": date(1990, 5, 15),
        "after_sunset": False,
        "gender": None,
        "notes": None,
        "group_ids": ["group_1"],
        "archived": False,
        "calendar_preference_override": None,
        "is_synced": True,
        "hebrew_year": 5750,
        "hebrew_month": "Iyyar",
        "hebrew_day": 20,
        "birth_date_hebrew_string": "כ׳ אייר ה׳תש״נ",
        "next_upcoming_hebrew_birthday": date(2024, 5, 28),
        "next_upcoming_hebrew_year": 5784,
        "future_hebrew_birthdays": [{"gregorian": "2024-05-28", "hebrew_year": 5784}],
        "calendar_events_map": {"gregorian_2024": "evt_1"},
        "sync_metadata": {"status": "PARTIAL_SYNC", "retry_count": 2, "failed_keys": ["hebrew_5785"]},
        "last_synced_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return tuple(values[column] for column in _COLUMNS)


class TestGetBirthday:
    @patch(f"{_MOD}.get_db_cursor")
    def test_converts_row(self, mock_get_cursor):
        mock_cursor = _mock_cursor(mock_get_cursor)
        mock_cursor.fetchone.return_value = _row()

        birthday = get_birthday("bday_1")

        assert birthday is not None
        assert birthday.group_ids == ["group_1"]
        assert birthday.future_hebrew_birthdays[0].gregorian == date(2024, 5, 28)
        assert birthday.calendar_events_map == {"gregorian_2024": "evt_1"}
        assert birthday.sync_metadata == SyncMetadata(
            status="PARTIAL_SYNC", retry_count=2, failed_keys=["hebrew_5785"]
        )
        assert mock_cursor.execute.call_args[0][1] == ("bday_1",)

    @patch(f"{_MOD}.get_db_cursor")
    def test_json_text_and_nulls(self, mock_get_cursor):
        mock_cursor = _mock_cursor(mock_get_cursor)
        mock_cursor.fetchone.return_value = _row(
            group_ids=None,
            calendar_events_map=json.dumps({"hebrew_5785": "evt_2"}),
            sync_metadata=None,
        )

        birthday = get_birthday("bday_1")

        assert birthday.group_ids == []
        assert birthday.calendar_events_map == {"hebrew_5785": "evt_2"}
        assert birthday.sync_metadata is None

    @patch(f"{_MOD}.get_db_cursor")
    def test_not_found(self, mock_get_cursor):
        _mock_cursor(mock_get_cursor).fetchone.return_value = None
        assert get_birthday("missing") is None


@patch(f"{_MOD}.get_db_cursor")
def test_get_birthdays_by_sync_status(mock_get_cursor):
    mock_cursor = _mock_cursor(mock_get_cursor)
    mock_cursor.fetchall.return_value = [_row(), _row(id="bday_2")]

    birthdays = get_birthdays_by_sync_status(("PARTIAL_SYNC", "ERROR"), 100, 3)

    assert [b.id for b in birthdays] == ["bday_1", "bday_2"]
    assert mock_cursor.execute.call_args[0][1] == (["PARTIAL_SYNC", "ERROR"], 3, 100)


class TestWrites:
    @patch(f"{_MOD}.get_db_cursor")
    def test_create_birthday(self, mock_get_cursor):
        mock_cursor = _mock_cursor(mock_get_cursor)
        data = BirthdayWrite(
            tenant_id="tenant_1",
            first_name="Dana",
            birth_date_gregorian=date(1990, 5, 15),
            group_ids=["group_1"],
        )

        birthday = create_birthday(data, birthday_id="bday_new")

        assert birthday.id == "bday_new"
        assert birthday.first_name == "Dana"
        params = mock_cursor.execute.call_args[0][1]
        assert params[0] == "bday_new"
        assert json.dumps(["group_1"]) in params

    @patch(f"{_MOD}.get_db_cursor")
    def test_create_birthday_generates_id(self, mock_get_cursor):
        _mock_cursor(mock_get_cursor)
        data = BirthdayWrite(
            tenant_id="tenant_1", first_name="Dana", birth_date_gregorian=date(1990, 5, 15)
        )
        assert create_birthday(data).id

    @patch(f"{_MOD}.get_db_cursor")
    def test_update_birthday_fields_serializes_json_columns(self, mock_get_cursor):
        mock_cursor = _mock_cursor(mock_get_cursor)
        mock_cursor.rowcount = 1
        attempted_at = datetime(2024, 1, 1, tzinfo=timezone.utc)

        update_birthday_fields(
            "bday_1",
            {
                "calendar_events_map": {"gregorian_2024": "evt_1"},
                "sync_metadata": SyncMetadata(status="SYNCED", last_attempt_at=attempted_at),
                "last_synced_at": attempted_at,
                "future_hebrew_birthdays": [{"gregorian": date(2024, 5, 28), "hebrew_year": 5784}],
            },
        )

        params = mock_cursor.execute.call_args[0][1]
        assert json.loads(params[0]) == {"gregorian_2024": "evt_1"}
        assert json.loads(params[1])["status"] == "SYNCED"
        assert params[2] == attempted_at
        assert json.loads(params[3]) == [{"gregorian": "2024-05-28", "hebrew_year": 5784}]
        assert params[-1] == "bday_1"

    def test_update_birthday_fields_rejects_unknown_columns(self):
        with pytest.raises(ValueError, match="Unknown birthday fields"):
            update_birthday_fields("bday_1", {"tenant_id": "other"})

    @patch(f"{_MOD}.get_db_cursor")
    def test_update_birthday_fields_ignores_empty_update(self, mock_get_cursor):
        update_birthday_fields("bday_1", {})
        mock_get_cursor.assert_not_called()

    @patch(f"{_MOD}.get_db_cursor")
    def test_update_birthday_reports_missing(self, mock_get_cursor):
        mock_cursor = _mock_cursor(mock_get_cursor)
        mock_cursor.rowcount = 0
        data = BirthdayWrite(
            tenant_id="tenant_1", first_name="Dana", birth_date_gregorian=date(1990, 5, 15)
        )
        assert update_birthday("missing", data) is False

    @patch(f"{_MOD}.get_db_cursor")
    def test_delete_birthday(self, mock_get_cursor):
        mock_cursor = _mock_cursor(mock_get_cursor)
        mock_cursor.rowcount = 1

        assert delete_birthday("bday_1") is True
        assert "DELETE FROM birthdays" in mock_cursor.execute.call_args[0][0]


class TestBulkSyncState:
    @patch(f"{_MOD}.get_db_cursor")
    def test_clear_sync_data_for_tenant(self, mock_get_cursor):
        mock_cursor = _mock_cursor(mock_get_cursor)
        mock_cursor.rowcount = 4

        assert clear_sync_data_for_tenant("tenant_1") == 4
        query, params = mock_cursor.execute.call_args[0]
        assert "is_synced = FALSE" in query
        assert params == ("tenant_1",)

    @patch(f"{_MOD}.get_db_cursor")
    def test_mark_failed_syncs_unrecoverable(self, mock_get_cursor):
        mock_cursor = _mock_cursor(mock_get_cursor)
        mock_cursor.rowcount = 2

        assert mark_failed_syncs_unrecoverable("owner_1") == 2
        query, params = mock_cursor.execute.call_args[0]
        assert "owner_id = %s" in query
        assert params == (999, "owner_1")
