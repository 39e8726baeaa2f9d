from __future__ import annotations

from dataclasses import dataclass

import redis  # type: ignore[import-untyped]

from storefront.services._shared.ports.mail_queue import MailMessage, MailQueue


@dataclass(slots=True)
class RedisMailQueue(MailQueue):
    """
    Mail jobs on a Redis list: producers ``LPUSH``, the worker ``BRPOP``.

    :param r: A Redis client (already connected).
    :param name: List key.
    """

    r: redis.Redis
    name: str = "mail_queue"

    def enqueue(self, message: MailMessage) -> None:
        self.r.lpush(self.name, message.to_json())

    def pop(self, *, timeout: int = 0) -> MailMessage | None:
        """Pop the oldest job; block up to ``timeout`` seconds (``0`` = no wait)."""
        if timeout > 0:
            item = self.r.brpop([self.name], timeout=timeout)
            raw = item[1] if item else None
        else:
            raw = self.r.rpop(self.name)
        if raw is None:
            return None
        return MailMessage.from_json(raw)
