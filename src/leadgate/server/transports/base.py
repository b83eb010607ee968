"""Transport contract shared by the pipe and push-stream bindings.

A Session owns exactly one Transport. It pulls raw inbound messages with
``receive`` and pushes encoded responses with ``deliver``. ``stop_receiving``
ends the inbound side only, so a call already in flight can still answer.
``close`` releases both sides. Both are idempotent and wake a pending
``receive``, which then returns None.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class TransportError(Exception):
    """Fatal I/O failure on the underlying channel. Ends the session."""


class Transport(ABC):
    """Abstract message channel for one session."""

    @abstractmethod
    async def receive(self) -> str | bytes | None:
        """Next raw inbound message, or None on EOF / close."""

    @abstractmethod
    async def deliver(self, message: str) -> None:
        """Send one encoded outbound message.

        Raises:
            TransportError: The channel failed and cannot be used again
        """

    @abstractmethod
    def stop_receiving(self) -> None:
        """Stop reading: wake a pending ``receive`` and return None from now on. ``deliver`` keeps working."""

    @property
    @abstractmethod
    def is_open(self) -> bool: ...

    @abstractmethod
    async def close(self) -> None:
        """Release the channel. Safe to call more than once."""
