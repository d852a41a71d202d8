"""Presence routes."""

from typing import Dict

from fastapi import APIRouter, Depends

from campusknot.api.deps import get_current_user, get_hub
from campusknot.live.hub import ConnectionHub
from campusknot.utils.database import UserDB

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}/online")
def is_online(
    user_id: int, _: UserDB = Depends(get_current_user), hub: ConnectionHub = Depends(get_hub)
) -> Dict[str, bool]:
    return {"online": hub.is_online(user_id)}
