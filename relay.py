from typing import Any
from events import (
    ERROR_USER_EXIST, USER_JOIN, RECEIVE_CALL, CALL_ACCEPTED,
    RECEIVE_MESSAGE, USER_LEAVE, TOGGLE_CAMERA,
)
from exceptions import MembershipLookupError
from registry import ConnectionRegistry
from schemas.signaling import Outcome, Presence
from transport import Transport
from logging_config import get_logger

logger = get_logger(__name__)


class RoomRelay:
    """Room membership, presence and call-signal routing between connections.

    Holds no state of its own: presence lives in ``registry`` and room
    membership in ``transport``. Handlers never raise for protocol-level
    failures; they return an Outcome and leave logging to the caller.
    """

    def __init__(self, registry: ConnectionRegistry, transport: Transport):
        self.registry = registry
        self.transport = transport

    def _info(self, sid: str):
        presence = self.registry.get(sid)
        return presence.to_wire() if presence is not None else None

    def on_connect(self, sid: str) -> Outcome:
        self.registry.on_connect(sid)
        logger.info(f"New user connected: {sid}")
        return Outcome()

    def on_disconnect(self, sid: str) -> Outcome:
        # no user-leave broadcast here, only an explicit leave announces itself
        self.registry.on_disconnect(sid)
        logger.info(f"User disconnected: {sid}")
        return Outcome()

    async def check_user(self, sid: str, room_id: str, user_name: str) -> Outcome:
        """Tell ``sid`` whether ``user_name`` is already taken in ``room_id``.

        Advisory only: nothing stops a concurrent join with the same name.
        """
        try:
            members = await self.transport.members(room_id)
        except MembershipLookupError as e:
            logger.error(f"Error checking user {user_name!r} in room {room_id}: {e}", exc_info=True)
            await self.transport.send_to(sid, ERROR_USER_EXIST, {"err": True})
            return Outcome.failed(str(e))

        taken = False
        for member in members:
            presence = self.registry.get(member)
            if presence is not None and presence.display_name == user_name:
                taken = True
                break
        logger.debug(f"Name check for {user_name!r} in room {room_id}: taken={taken}")
        await self.transport.send_to(sid, ERROR_USER_EXIST, {"error": taken})
        return Outcome()

    async def join_room(self, sid: str, room_id: str, user_name: str) -> Outcome:
        await self.transport.join(sid, room_id)
        # media flags go back to defaults on every join
        self.registry.set(sid, Presence(display_name=user_name))
        logger.info(f"User {sid} ({user_name}) joined room {room_id}")

        try:
            members = await self.transport.members(room_id)
        except MembershipLookupError as e:
            logger.error(f"Error joining room {room_id} for {sid}: {e}", exc_info=True)
            await self.transport.send_to(sid, ERROR_USER_EXIST, {"err": True})
            return Outcome.failed(str(e))

        users = [{"userId": member, "info": self._info(member)} for member in members]
        await self.transport.broadcast(room_id, USER_JOIN, users, skip_sid=sid)
        logger.debug(f"Announced {sid} to room {room_id} ({len(users)} members)")
        return Outcome()

    async def call_user(self, sid: str, user_to_call: str, from_: Any, signal: Any) -> Outcome:
        await self.transport.send_to(user_to_call, RECEIVE_CALL, {
            "signal": signal,
            "from": from_,
            "info": self._info(sid),
        })
        logger.debug(f"Relayed call from {sid} to {user_to_call}")
        return Outcome()

    async def accept_call(self, sid: str, to: str, signal: Any) -> Outcome:
        await self.transport.send_to(to, CALL_ACCEPTED, {"signal": signal, "answerId": sid})
        logger.debug(f"Relayed call answer from {sid} to {to}")
        return Outcome()

    async def send_message(self, sid: str, room_id: str, msg: Any, sender: Any) -> Outcome:
        await self.transport.broadcast(room_id, RECEIVE_MESSAGE, {"msg": msg, "sender": sender})
        logger.debug(f"Relayed chat message from {sid} to room {room_id}")
        return Outcome()

    async def leave_room(self, sid: str, room_id: str, leaver: str) -> Outcome:
        # registry first, then announce while still a member, then leave
        self.registry.on_disconnect(sid)
        await self.transport.broadcast(room_id, USER_LEAVE, {"userId": sid, "userName": leaver}, skip_sid=sid)
        await self.transport.leave(sid, room_id)
        logger.info(f"User {sid} ({leaver}) left room {room_id}")
        return Outcome()

    async def toggle_media(self, sid: str, room_id: str, switch_target: str) -> Outcome:
        if sid not in self.registry:
            return Outcome.failed(f"No presence for {sid}, ignoring {switch_target} toggle")
        value = self.registry.toggle(sid, switch_target)
        await self.transport.broadcast(room_id, TOGGLE_CAMERA, {"userId": sid, "switchTarget": switch_target}, skip_sid=sid)
        logger.info(f"User {sid} toggled {switch_target} to {'on' if value else 'off'} in room {room_id}")
        return Outcome()
