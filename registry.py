import redis
from abc import ABC, abstractmethod
from typing import Dict, Iterator, Optional
from constants import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD, PRESENCE_TTL, REGISTRY_BACKEND, REGISTRY_INSTANCE_ID
from redis_keys import REDIS_PRESENCE_KEY, REDIS_OWNER_KEY
from exceptions import UnknownRegistryBackend
from schemas.signaling import Presence
from logging_config import get_logger

logger = get_logger(__name__)

MEDIA_TARGETS = ("video", "audio")


class ConnectionRegistry(ABC):
    """Process-wide table of connection id -> Presence.

    Mutated only from relay handlers. Every mutation is synchronous, so a
    handler's get-then-set is never interleaved with another handler.
    """

    def on_connect(self, connection_id: str):
        logger.debug(f"Registering connection {connection_id}")
        self.set(connection_id, Presence())

    @abstractmethod
    def on_disconnect(self, connection_id: str):
        ...

    @abstractmethod
    def get(self, connection_id: str) -> Optional[Presence]:
        ...

    @abstractmethod
    def set(self, connection_id: str, presence: Presence):
        ...

    @abstractmethod
    def toggle(self, connection_id: str, target: str) -> bool:
        """Flip ``video`` or ``audio`` for one connection and return the new value."""

    @abstractmethod
    def ids(self) -> Iterator[str]:
        """Connection ids registered through this registry."""

    @abstractmethod
    def clear(self):
        ...

    def __contains__(self, connection_id: str) -> bool:
        return self.get(connection_id) is not None

    def __len__(self) -> int:
        return sum(1 for _ in self.ids())


def _check_target(target: str):
    if target not in MEDIA_TARGETS:
        raise ValueError(f"Unknown media target: {target!r}")


class InMemoryRegistry(ConnectionRegistry):
    def __init__(self):
        self._entries: Dict[str, Presence] = {}

    def on_disconnect(self, connection_id: str):
        removed = self._entries.pop(connection_id, None)
        logger.debug(f"Unregistered connection {connection_id} (existed={removed is not None})")

    def get(self, connection_id: str) -> Optional[Presence]:
        return self._entries.get(connection_id)

    def set(self, connection_id: str, presence: Presence):
        self._entries[connection_id] = presence

    def toggle(self, connection_id: str, target: str) -> bool:
        _check_target(target)
        presence = self._entries[connection_id]
        value = not getattr(presence, target)
        setattr(presence, target, value)
        return value

    def ids(self) -> Iterator[str]:
        return iter(list(self._entries))

    def clear(self):
        self._entries.clear()

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class RedisRegistry(ConnectionRegistry):
    """Presence stored as one Redis hash per connection (``presence:{connection_id}``).

    Any worker can read any connection's presence. Each registry also records the
    ids it registered in its owner set, and ``ids()``/``clear()`` only cover those,
    so a worker starting up never purges presence held by another live worker.
    Every mutation is a MULTI/EXEC transaction; ``toggle`` retries under WATCH.
    """

    def __init__(self, redis_client, instance_id: str = REGISTRY_INSTANCE_ID, ttl: int = PRESENCE_TTL):
        self.redis_client = redis_client
        self.instance_id = instance_id
        self.owner_key = REDIS_OWNER_KEY.format(instance_id=instance_id)
        self.ttl = ttl
        logger.info(f"Initializing RedisRegistry instance {instance_id} (ttl={ttl or 'none'})")

    @staticmethod
    def _key(connection_id: str) -> str:
        return REDIS_PRESENCE_KEY.format(connection_id=connection_id)

    @staticmethod
    def _encode(presence: Presence) -> dict:
        return {k: ("1" if v else "0") if isinstance(v, bool) else str(v) for k, v in presence.to_wire().items()}

    @staticmethod
    def _decode(data: dict) -> Presence:
        return Presence(
            display_name=data.get("userName"),
            video=data.get("video", "1") == "1",
            audio=data.get("audio", "1") == "1",
        )

    def on_disconnect(self, connection_id: str):
        pipe = self.redis_client.pipeline(transaction=True)
        pipe.delete(self._key(connection_id))
        pipe.srem(self.owner_key, connection_id)
        deleted, _ = pipe.execute()
        logger.debug(f"Unregistered connection {connection_id} (existed={bool(deleted)})")

    def get(self, connection_id: str) -> Optional[Presence]:
        data = self.redis_client.hgetall(self._key(connection_id))
        if not data:
            return None
        return self._decode(data)

    def set(self, connection_id: str, presence: Presence):
        key = self._key(connection_id)
        pipe = self.redis_client.pipeline(transaction=True)
        # replace, so a display name from an earlier record cannot linger
        pipe.delete(key)
        pipe.hset(key, mapping=self._encode(presence))
        pipe.sadd(self.owner_key, connection_id)
        if self.ttl:
            pipe.expire(key, self.ttl)
        pipe.execute()

    def toggle(self, connection_id: str, target: str) -> bool:
        _check_target(target)
        key = self._key(connection_id)
        with self.redis_client.pipeline(transaction=True) as pipe:
            while True:
                try:
                    pipe.watch(key)
                    current = pipe.hget(key, target)
                    if current is None:
                        raise KeyError(connection_id)
                    value = current != "1"
                    pipe.multi()
                    pipe.hset(key, target, "1" if value else "0")
                    if self.ttl:
                        pipe.expire(key, self.ttl)
                    pipe.execute()
                    return value
                except redis.exceptions.WatchError:
                    logger.debug(f"Presence of {connection_id} changed during {target} toggle, retrying")

    def ids(self) -> Iterator[str]:
        return iter(sorted(self.redis_client.smembers(self.owner_key)))

    def clear(self):
        owned = self.redis_client.smembers(self.owner_key)
        pipe = self.redis_client.pipeline(transaction=True)
        for connection_id in owned:
            pipe.delete(self._key(connection_id))
        pipe.delete(self.owner_key)
        pipe.execute()
        logger.info(f"Cleared {len(owned)} presence entries owned by instance {self.instance_id}")

    def __contains__(self, connection_id: str) -> bool:
        return bool(self.redis_client.exists(self._key(connection_id)))


def connect_redis():
    try:
        client = redis.Redis(host=REDIS_HOST, port=REDIS_PORT, password=REDIS_PASSWORD, decode_responses=True)
        client.ping()
        logger.info(f"Redis client connected successfully to {REDIS_HOST}:{REDIS_PORT}")
        return client
    except Exception as e:
        logger.error(f"Failed to connect to Redis at {REDIS_HOST}:{REDIS_PORT}: {e}", exc_info=True)
        raise


def create_registry(backend: str = REGISTRY_BACKEND, redis_client=None,
                    instance_id: str = REGISTRY_INSTANCE_ID) -> ConnectionRegistry:
    """Build an empty registry. Entries left by an earlier run of this instance are purged."""
    backend = (backend or "memory").lower()
    if backend == "memory":
        registry = InMemoryRegistry()
    elif backend == "redis":
        client = redis_client if redis_client is not None else connect_redis()
        registry = RedisRegistry(client, instance_id=instance_id)
    else:
        raise UnknownRegistryBackend(backend)
    registry.clear()
    logger.info(f"Connection registry ready (backend={backend})")
    return registry
