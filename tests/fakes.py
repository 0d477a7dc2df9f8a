"""Test doubles for the ports that talk to the outside world."""

from fnmatch import fnmatch

from tasksync.ports.services import EmailSender, Hasher, OutgoingEmail


class FakeHasher(Hasher):
    """Reversible 'hash' so tests don't pay for bcrypt rounds."""

    async def hash(self, plain: str) -> str:
        return f"{plain}-hashed"

    async def compare(self, plain: str, hashed: str) -> bool:
        return f"{plain}-hashed" == hashed


class FakeEmailSender(EmailSender):
    """Records outgoing mail. Fails the first `fail_times` sends."""

    def __init__(self, fail_times: int = 0):
        self.sent: list[OutgoingEmail] = []
        self.attempts = 0
        self.fail_times = fail_times

    async def send(self, email: OutgoingEmail) -> None:
        self.attempts += 1
        if self.attempts <= self.fail_times:
            raise ConnectionError("SMTP server unavailable")
        self.sent.append(email)


class FakeRedis:
    """String, set and pipeline commands over dicts. TTLs are recorded, not enforced."""

    def __init__(self):
        self.strings: dict[str, str] = {}
        self.sets: dict[str, set[str]] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key):
        return self.strings.get(key)

    async def set(self, key, value, ex=None):
        self.strings[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            found = self.strings.pop(key, None) is not None
            found = self.sets.pop(key, None) is not None or found
            self.ttls.pop(key, None)
            removed += found
        return removed

    async def scan_iter(self, match="*"):
        for key in list(self.strings):
            if fnmatch(key, match):
                yield key

    async def sadd(self, key, *members):
        self.sets.setdefault(key, set()).update(members)
        return len(members)

    async def srem(self, key, *members):
        self.sets.get(key, set()).difference_update(members)
        return len(members)

    async def smembers(self, key):
        return set(self.sets.get(key, set()))

    async def expire(self, key, seconds):
        self.ttls[key] = seconds
        return True

    def pipeline(self, transaction=True):
        return FakePipeline(self)


class FakePipeline:
    """Buffers commands and runs them in order on execute()."""

    def __init__(self, redis: FakeRedis):
        self.redis = redis
        self.commands = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        self.commands = []

    def __getattr__(self, name):
        command = getattr(self.redis, name)

        def buffer(*args, **kwargs):
            self.commands.append((command, args, kwargs))
            return self

        return buffer

    async def execute(self):
        return [await command(*args, **kwargs) for command, args, kwargs in self.commands]
