from typing import Literal

from pydantic import BaseModel

from .birthday import CalendarPreference

Language = Literal["he", "en"]
WishlistPriority = Literal["high", "medium", "low"]


class Tenant(BaseModel):
    id: str
    owner_id: str | None = None
    name: str | None = None
    default_language: Language = "he"
    default_calendar_preference: CalendarPreference | None = None


class Group(BaseModel):
    id: str
    tenant_id: str
    name: str
    parent_name: str | None = None
    calendar_preference: CalendarPreference | None = None

    @property
    def display_name(self) -> str:
        return f"{self.parent_name}: {self.name}" if self.parent_name else self.name


class WishlistItem(BaseModel):
    id: str
    birthday_id: str
    item_name: str
    priority: WishlistPriority = "medium"
