class RelayError(Exception):
    """Base class for errors raised inside the signaling relay."""


class MembershipLookupError(RelayError):
    """Room membership could not be enumerated."""

    def __init__(self, room_id: str, cause: Exception = None):
        self.room_id = room_id
        self.cause = cause
        super().__init__(f"Could not list members of room {room_id}: {cause}")


class UnknownRegistryBackend(RelayError, ValueError):
    def __init__(self, backend: str):
        self.backend = backend
        super().__init__(f"Unknown registry backend: {backend!r} (expected 'memory' or 'redis')")
