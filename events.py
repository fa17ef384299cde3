from pydantic import ValidationError
from constants import INBOUND_EVENT_PREFIX, OUTBOUND_EVENT_PREFIX
from schemas.signaling import (
    CheckUserRequest, JoinRoomRequest, CallUserRequest, AcceptCallRequest,
    SendMessageRequest, LeaveRoomRequest, ToggleMediaRequest,
)
from logging_config import get_logger

logger = get_logger(__name__)

# client -> relay
CHECK_USER = f"{INBOUND_EVENT_PREFIX}check-user"
JOIN_ROOM = f"{INBOUND_EVENT_PREFIX}join-room"
CALL_USER = f"{INBOUND_EVENT_PREFIX}call-user"
ACCEPT_CALL = f"{INBOUND_EVENT_PREFIX}accept-call"
SEND_MESSAGE = f"{INBOUND_EVENT_PREFIX}send-message"
LEAVE_ROOM = f"{INBOUND_EVENT_PREFIX}leave-room"
TOGGLE_CAMERA_AUDIO = f"{INBOUND_EVENT_PREFIX}toggle-camera-audio"

# relay -> client
ERROR_USER_EXIST = f"{OUTBOUND_EVENT_PREFIX}error-user-exist"
USER_JOIN = f"{OUTBOUND_EVENT_PREFIX}user-join"
RECEIVE_CALL = f"{OUTBOUND_EVENT_PREFIX}receive-call"
CALL_ACCEPTED = f"{OUTBOUND_EVENT_PREFIX}call-accepted"
RECEIVE_MESSAGE = f"{OUTBOUND_EVENT_PREFIX}receive-message"
USER_LEAVE = f"{OUTBOUND_EVENT_PREFIX}user-leave"
TOGGLE_CAMERA = f"{OUTBOUND_EVENT_PREFIX}toggle-camera"


def _bind(sio, event, schema, call, namespace):
    async def handler(sid, data=None):
        try:
            payload = schema.model_validate(data if data is not None else {})
        except ValidationError as e:
            logger.warning(f"Dropping malformed {event} from {sid}: {e.errors()}")
            return
        try:
            outcome = await call(sid, payload)
        except Exception as e:
            logger.error(f"Error handling {event} from {sid}: {e}", exc_info=True)
            return
        if not outcome.ok:
            logger.warning(f"{event} from {sid} not completed: {outcome.error}")

    sio.on(event, handler, namespace=namespace)


def register_handlers(sio, relay, namespace: str = "/"):
    """Wire Socket.IO lifecycle and protocol events to ``relay``."""

    async def connect(sid, environ, auth=None):
        try:
            relay.on_connect(sid)
        except Exception as e:
            logger.error(f"Error registering connection {sid}: {e}", exc_info=True)

    async def disconnect(sid, reason=None):
        try:
            relay.on_disconnect(sid)
        except Exception as e:
            logger.error(f"Error unregistering connection {sid}: {e}", exc_info=True)

    sio.on("connect", connect, namespace=namespace)
    sio.on("disconnect", disconnect, namespace=namespace)

    _bind(sio, CHECK_USER, CheckUserRequest,
          lambda sid, p: relay.check_user(sid, p.room_id, p.user_name), namespace)
    _bind(sio, JOIN_ROOM, JoinRoomRequest,
          lambda sid, p: relay.join_room(sid, p.room_id, p.user_name), namespace)
    _bind(sio, CALL_USER, CallUserRequest,
          lambda sid, p: relay.call_user(sid, p.user_to_call, p.from_, p.signal), namespace)
    _bind(sio, ACCEPT_CALL, AcceptCallRequest,
          lambda sid, p: relay.accept_call(sid, p.to, p.signal), namespace)
    _bind(sio, SEND_MESSAGE, SendMessageRequest,
          lambda sid, p: relay.send_message(sid, p.room_id, p.msg, p.sender), namespace)
    _bind(sio, LEAVE_ROOM, LeaveRoomRequest,
          lambda sid, p: relay.leave_room(sid, p.room_id, p.leaver), namespace)
    _bind(sio, TOGGLE_CAMERA_AUDIO, ToggleMediaRequest,
          lambda sid, p: relay.toggle_media(sid, p.room_id, p.switch_target), namespace)

    logger.info(f"Registered signaling handlers on namespace {namespace}")
