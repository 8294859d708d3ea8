from .birthday import BirthdayFactory
from .tenant import TenantFactory, GroupFactory
from .calendar_token import CalendarTokenFactory

__all__ = [
    "BirthdayFactory",
    "TenantFactory",
    "GroupFactory",
    "CalendarTokenFactory",
]
