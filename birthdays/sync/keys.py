"""Stable identifiers used to match desired events with existing ones."""

import hashlib
import json

from birthdays.models import Birthday, CalendarPreference


def deterministic_event_id(birthday_id: str, key: str) -> str:
    """Google event id derived purely from the birthday and identity key.

    Google event ids must use base32hex characters (a-v, 0-9); an md5 hex
    digest with an ``hb`` prefix satisfies that.
    """
    digest = hashlib.md5(f"{birthday_id}_{key}".encode("utf-8")).hexdigest()
    return f"hb{digest}"


def sync_data_hash(birthday: Birthday, preference: CalendarPreference) -> str:
    """Hash of every field that changes the generated events."""
    data = {
        "first_name": birthday.first_name,
        "last_name": birthday.last_name,
        "date": birthday.birth_date_gregorian.isoformat(),
        "sunset": birthday.after_sunset,
        "prefs": preference,
        "archived": birthday.archived,
        "notes": birthday.notes,
        "groups": list(birthday.group_ids),
    }
    payload = json.dumps(data, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
