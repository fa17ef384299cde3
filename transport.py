from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple
from exceptions import MembershipLookupError
from logging_config import get_logger

logger = get_logger(__name__)


class Transport(ABC):
    """Room grouping and delivery primitives the relay is built on."""

    @abstractmethod
    async def join(self, sid: str, room: str):
        ...

    @abstractmethod
    async def leave(self, sid: str, room: str):
        ...

    @abstractmethod
    async def members(self, room: str) -> List[str]:
        """Connection ids currently in ``room``, in membership order.

        Raises MembershipLookupError if the membership cannot be read.
        """

    @abstractmethod
    async def send_to(self, sid: str, event: str, data: Any):
        ...

    @abstractmethod
    async def broadcast(self, room: str, event: str, data: Any, skip_sid: Optional[str] = None):
        ...


class SocketIOTransport(Transport):
    def __init__(self, sio, namespace: str = "/"):
        self.sio = sio
        self.namespace = namespace

    async def join(self, sid: str, room: str):
        await self.sio.enter_room(sid, room, namespace=self.namespace)

    async def leave(self, sid: str, room: str):
        await self.sio.leave_room(sid, room, namespace=self.namespace)

    async def members(self, room: str) -> List[str]:
        # TODO: with AsyncRedisManager this only sees participants connected to this worker
        try:
            manager = self.sio.manager
            # some python-socketio 5.x managers raise KeyError for a room nobody is in
            if room not in manager.rooms.get(self.namespace, {}):
                return []
            return [sid for sid, _ in manager.get_participants(self.namespace, room)]
        except Exception as e:
            raise MembershipLookupError(room, e) from e

    async def send_to(self, sid: str, event: str, data: Any):
        # an unknown sid addresses an empty room, so the emit is a no-op
        await self.sio.emit(event, data, to=sid, namespace=self.namespace)

    async def broadcast(self, room: str, event: str, data: Any, skip_sid: Optional[str] = None):
        await self.sio.emit(event, data, to=room, skip_sid=skip_sid, namespace=self.namespace)


class LocalTransport(Transport):
    """In-process transport: an explicit room id -> ordered set of connection ids.

    Every delivery is appended to ``outbox`` as ``(recipient, event, data)``.
    """

    def __init__(self):
        self.connected: Dict[str, None] = {}
        self.rooms: Dict[str, Dict[str, None]] = {}
        self.outbox: List[Tuple[str, str, Any]] = []

    def connect(self, sid: str):
        self.connected[sid] = None

    def disconnect(self, sid: str):
        self.connected.pop(sid, None)
        for room_id in list(self.rooms):
            self._discard(sid, room_id)

    def _discard(self, sid: str, room: str):
        members = self.rooms.get(room)
        if members is None:
            return
        members.pop(sid, None)
        if not members:
            del self.rooms[room]

    def inbox(self, sid: str, event: Optional[str] = None) -> List[Any]:
        return [data for recipient, name, data in self.outbox
                if recipient == sid and (event is None or name == event)]

    async def join(self, sid: str, room: str):
        self.rooms.setdefault(room, {})[sid] = None

    async def leave(self, sid: str, room: str):
        self._discard(sid, room)

    async def members(self, room: str) -> List[str]:
        return list(self.rooms.get(room, {}))

    async def send_to(self, sid: str, event: str, data: Any):
        if sid not in self.connected:
            logger.debug(f"Dropping {event} for unknown connection {sid}")
            return
        self.outbox.append((sid, event, data))

    async def broadcast(self, room: str, event: str, data: Any, skip_sid: Optional[str] = None):
        for sid in list(self.rooms.get(room, {})):
            if sid != skip_sid:
                self.outbox.append((sid, event, data))
