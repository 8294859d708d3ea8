"""CRUD routes for birthdays.

Every write is followed by the write handler, which keeps the Hebrew fields
and the calendar in step with the stored record.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from birthdays.db.birthdays import (
    create_birthday,
    delete_birthday,
    get_birthday,
    get_birthdays_for_tenant,
    update_birthday,
)
from birthdays.models import Birthday, BirthdayWrite
from birthdays.sync.triggers import BirthdayWriteHandler
from ..dependencies import write_handler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/birthdays", tags=["birthdays"])


@router.get("/", response_model=list[Birthday])
def list_birthdays(tenant_id: str) -> list[Birthday]:
    return get_birthdays_for_tenant(tenant_id)


@router.post("/", response_model=Birthday, status_code=status.HTTP_201_CREATED)
async def create_new_birthday(
    data: BirthdayWrite, handler: BirthdayWriteHandler = Depends(write_handler)
) -> Birthday:
    birthday = create_birthday(data)
    stored = await handler.on_write(birthday.id, None, birthday)
    return stored or birthday


@router.get("/{birthday_id}", response_model=Birthday)
def read_birthday(birthday_id: str) -> Birthday:
    birthday = get_birthday(birthday_id)
    if birthday is None:
        raise HTTPException(status_code=404, detail=f"Birthday {birthday_id} not found")
    return birthday


@router.put("/{birthday_id}", response_model=Birthday)
async def edit_birthday(
    birthday_id: str,
    data: BirthdayWrite,
    handler: BirthdayWriteHandler = Depends(write_handler),
) -> Birthday:
    """Replace a birthday's editable fields."""
    before = get_birthday(birthday_id)
    if before is None:
        raise HTTPException(status_code=404, detail=f"Birthday {birthday_id} not found")
    if data.tenant_id != before.tenant_id:
        raise HTTPException(status_code=400, detail="A birthday can't move between tenants")

    update_birthday(birthday_id, data)
    after = get_birthday(birthday_id)
    if after is None:
        raise HTTPException(status_code=404, detail=f"Birthday {birthday_id} not found")
    stored = await handler.on_write(birthday_id, before, after)
    return stored or after


@router.delete("/{birthday_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_birthday(
    birthday_id: str, handler: BirthdayWriteHandler = Depends(write_handler)
) -> None:
    """Delete a birthday, removing its calendar events while the record still exists."""
    before = get_birthday(birthday_id)
    if before is None:
        raise HTTPException(status_code=404, detail=f"Birthday {birthday_id} not found")
    await handler.on_write(birthday_id, before, None)
    if not delete_birthday(birthday_id):
        raise HTTPException(status_code=404, detail=f"Birthday {birthday_id} not found")
