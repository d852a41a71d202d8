"""Live channel: per-user connection registry and event fan-out.

Frames are JSON objects ``{"event": <name>, "data": <payload>}``. Every
notification is addressed to specific users; only presence changes go to
every connection.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Protocol, Set

from pydantic import BaseModel

from campusknot.utils.logging import get_logger

logger = get_logger(__name__)


class Event(str, Enum):
    """Live channel event names."""

    REGISTER = "register"
    ONLINE_STATUS = "online_status"
    TYPING_START = "typing_start"
    TYPING_STOP = "typing_stop"
    MATCH_FOUND = "match_found"
    SUPER_LIKE_RECEIVED = "super_like_received"
    NEW_MESSAGE = "new_message"
    MESSAGE_SENT = "message_sent"
    MESSAGE_DELETED = "message_deleted"
    MESSAGES_READ = "messages_read"
    ERROR = "error"


TYPING_EVENTS = {Event.TYPING_START, Event.TYPING_STOP}


class Connection(Protocol):
    """Anything that can push a JSON frame to one client session."""

    async def send_json(self, data: Any) -> None: ...


def build_frame(event: Event, data: Any) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    return {"event": event.value, "data": data}


class ConnectionHub:
    """
    Registry of live connections keyed by user identity.

    A user may hold several sessions at once; the user counts as online while
    at least one of them is registered. Delivery is at-most-once: a session
    whose send fails is dropped.
    """

    def __init__(self) -> None:
        self._connections: Set[Connection] = set()
        self._user_connections: Dict[int, Set[Connection]] = {}
        self._identities: Dict[Connection, int] = {}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def connect(self, conn: Connection) -> None:
        """Track an accepted connection that has not registered yet."""
        self._connections.add(conn)

    def user_of(self, conn: Connection) -> Optional[int]:
        return self._identities.get(conn)

    def is_online(self, user_id: int) -> bool:
        return bool(self._user_connections.get(user_id))

    def online_users(self) -> Set[int]:
        return {user_id for user_id, conns in self._user_connections.items() if conns}

    async def register(self, conn: Connection, user_id: int) -> None:
        """Bind a connection to a user and announce the user as online."""
        current = self._identities.get(conn)
        if current == user_id:
            return
        if current is not None:
            await self._unbind(conn)

        self._connections.add(conn)
        self._identities[conn] = user_id
        self._user_connections.setdefault(user_id, set()).add(conn)
        logger.debug("Live connection registered", user_id=user_id)

        await self.broadcast(Event.ONLINE_STATUS, {"userId": user_id, "online": True})

    async def disconnect(self, conn: Connection) -> None:
        """Forget a connection; announce the user offline if it was their last one."""
        self._connections.discard(conn)
        if conn in self._identities:
            await self._unbind(conn)

    async def _unbind(self, conn: Connection) -> None:
        user_id = self._identities.pop(conn)
        sessions = self._user_connections.get(user_id, set())
        sessions.discard(conn)
        if sessions:
            return
        self._user_connections.pop(user_id, None)
        logger.debug("User went offline", user_id=user_id)
        await self.broadcast(Event.ONLINE_STATUS, {"userId": user_id, "online": False})

    async def send_to_user(self, user_id: int, event: Event, data: Any) -> int:
        """
        Send an event to every session of one user.

        Returns:
            int: Number of sessions the frame was delivered to.
        """
        sessions = list(self._user_connections.get(user_id, ()))
        return await self._deliver(sessions, build_frame(event, data))

    async def send_to_users(self, user_ids: Iterable[int], event: Event, data: Any) -> int:
        delivered = 0
        for user_id in dict.fromkeys(user_ids):
            delivered += await self.send_to_user(user_id, event, data)
        return delivered

    async def broadcast(self, event: Event, data: Any) -> int:
        """Send an event to every open connection, registered or not."""
        return await self._deliver(list(self._connections), build_frame(event, data))

    async def relay_typing(self, from_user_id: int, to_user_id: int, event: Event) -> int:
        """Forward a typing indicator to the named recipient only."""
        if event not in TYPING_EVENTS:
            raise ValueError(f"Not a typing event: {event}")
        return await self.send_to_user(to_user_id, event, {"fromUserId": from_user_id})

    async def _deliver(self, sessions: List[Connection], frame: Dict[str, Any]) -> int:
        delivered = 0
        dead: List[Connection] = []
        for conn in sessions:
            try:
                await conn.send_json(frame)
                delivered += 1
            except Exception as e:
                logger.warning("Dropping live connection after failed send", frame_event=frame["event"], error=str(e))
                dead.append(conn)
        for conn in dead:
            await self.disconnect(conn)
        return delivered
