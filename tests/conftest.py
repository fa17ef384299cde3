import pytest
from redis.exceptions import ConnectionError as RedisConnectionError, WatchError
from registry import InMemoryRegistry
from relay import RoomRelay
from transport import LocalTransport


class StubRedis:
    """The redis-py hash, set and key commands the registry uses, kept in dicts.

    Every write bumps a per-key version so pipelines can honour WATCH.
    ``before_execute`` runs just before a transaction is applied and
    ``fail_execute`` makes the next one fail without applying anything.
    """

    def __init__(self):
        self.hashes = {}
        self.sets = {}
        self.ttls = {}
        self.versions = {}
        self.before_execute = None
        self.fail_execute = False

    def _touch(self, key):
        self.versions[key] = self.versions.get(key, 0) + 1

    def ping(self):
        return True

    def pipeline(self, transaction=True):
        return StubPipeline(self)

    def hset(self, key, field=None, value=None, mapping=None):
        entry = self.hashes.setdefault(key, {})
        added = 0
        if field is not None:
            added += field not in entry
            entry[field] = value
        for k, v in (mapping or {}).items():
            added += k not in entry
            entry[k] = v
        self._touch(key)
        return added

    def hget(self, key, field):
        return self.hashes.get(key, {}).get(field)

    def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    def sadd(self, key, *members):
        entry = self.sets.setdefault(key, set())
        added = len(set(members) - entry)
        entry.update(members)
        self._touch(key)
        return added

    def srem(self, key, *members):
        entry = self.sets.get(key, set())
        removed = len(entry & set(members))
        entry.difference_update(members)
        if not entry:
            self.sets.pop(key, None)
        self._touch(key)
        return removed

    def smembers(self, key):
        return set(self.sets.get(key, set()))

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.hashes.pop(key, None) is not None or self.sets.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
            self._touch(key)
        return removed

    def exists(self, *keys):
        return sum(1 for key in keys if key in self.hashes or key in self.sets)

    def expire(self, key, ttl):
        if key not in self.hashes and key not in self.sets:
            return False
        self.ttls[key] = ttl
        return True


class StubPipeline:
    """MULTI/EXEC pipeline: commands queue up and apply together on ``execute``.

    After ``watch`` the pipeline runs commands immediately until ``multi``.
    """

    def __init__(self, client):
        self.client = client
        self.reset()

    def reset(self):
        self.queued = []
        self.watched = {}
        self.immediate = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.reset()

    def watch(self, *keys):
        self.watched = {key: self.client.versions.get(key, 0) for key in keys}
        self.immediate = True

    def multi(self):
        self.immediate = False

    def _command(self, name, *args, **kwargs):
        if self.immediate:
            return getattr(self.client, name)(*args, **kwargs)
        self.queued.append((name, args, kwargs))
        return self

    def hset(self, *args, **kwargs):
        return self._command("hset", *args, **kwargs)

    def hget(self, *args, **kwargs):
        return self._command("hget", *args, **kwargs)

    def sadd(self, *args, **kwargs):
        return self._command("sadd", *args, **kwargs)

    def srem(self, *args, **kwargs):
        return self._command("srem", *args, **kwargs)

    def delete(self, *args, **kwargs):
        return self._command("delete", *args, **kwargs)

    def expire(self, *args, **kwargs):
        return self._command("expire", *args, **kwargs)

    def execute(self):
        try:
            if self.client.before_execute is not None:
                hook, self.client.before_execute = self.client.before_execute, None
                hook()
            if self.client.fail_execute:
                self.client.fail_execute = False
                raise RedisConnectionError("connection lost before EXEC")
            for key, version in self.watched.items():
                if self.client.versions.get(key, 0) != version:
                    raise WatchError(f"Watched variable changed: {key}")
            return [getattr(self.client, name)(*args, **kwargs) for name, args, kwargs in self.queued]
        finally:
            self.reset()


@pytest.fixture
def registry():
    return InMemoryRegistry()


@pytest.fixture
def transport():
    return LocalTransport()


@pytest.fixture
def relay(registry, transport):
    return RoomRelay(registry, transport)


@pytest.fixture
def stub_redis():
    return StubRedis()


@pytest.fixture
def connect(relay, transport):
    """Open a connection on both the transport and the relay."""
    def _connect(sid):
        transport.connect(sid)
        relay.on_connect(sid)
        return sid
    return _connect
