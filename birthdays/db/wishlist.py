"""Database operations for wishlist items."""

from birthdays.models import WishlistItem
from .connection import get_db_cursor


def get_wishlist_items(birthday_id: str) -> list[WishlistItem]:
    """Get a birthday's wishlist items, in the order they were added."""
    with get_db_cursor() as cursor:
        cursor.execute(
            """
            SELECT id, birthday_id, item_name, priority
            FROM wishlist_items
            WHERE birthday_id = %s
            ORDER BY created_at
            """,
            (birthday_id,),
        )
        return [
            WishlistItem(id=id_, birthday_id=bid, item_name=item_name, priority=priority)
            for id_, bid, item_name, priority in cursor.fetchall()
        ]
