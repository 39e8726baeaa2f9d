from __future__ import annotations

import json
import threading
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Any, Protocol


class MailPayloadError(ValueError):
    """A queued job could not be decoded into a :class:`MailMessage`."""


@dataclass(frozen=True, slots=True)
class MailMessage:
    """
    Queue payload consumed by the mail worker.

    :param to: Recipient address.
    :type to: str
    :param subject: Subject line.
    :type subject: str
    :param template: Template name (``verify-email``, ``password-reset``).
    :type template: str
    :param data: Template variables.
    :type data: dict[str, Any]
    """

    to: str
    subject: str
    template: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str | bytes) -> MailMessage:
        """
        :raises MailPayloadError: Not JSON, or a required key is missing.
        """
        try:
            data = json.loads(raw)
            return cls(
                to=str(data["to"]),
                subject=str(data["subject"]),
                template=str(data["template"]),
                data=dict(data.get("data") or {}),
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise MailPayloadError(str(exc)) from exc


class MailQueue(Protocol):
    """At-least-once delivery channel towards the mail worker."""

    def enqueue(self, message: MailMessage) -> None: ...
    def pop(self, *, timeout: int = 0) -> MailMessage | None: ...


class InMemoryMailQueue(MailQueue):
    """FIFO queue kept in process memory."""

    def __init__(self) -> None:
        self._items: deque[str] = deque()
        self._lock = threading.Lock()

    def enqueue(self, message: MailMessage) -> None:
        with self._lock:
            self._items.append(message.to_json())

    def pop(self, *, timeout: int = 0) -> MailMessage | None:
        with self._lock:
            if not self._items:
                return None
            raw = self._items.popleft()
        return MailMessage.from_json(raw)

    def __len__(self) -> int:
        return len(self._items)
