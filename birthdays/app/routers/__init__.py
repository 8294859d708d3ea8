from .birthdays import router as birthdays_router
from .sync import router as sync_router

__all__ = [
    "birthdays_router",
    "sync_router",
]
