"""Exceptions raised by fluenthttp."""

from __future__ import annotations


class ClientError(RuntimeError):
    """Raised when the client is misused or cannot operate at all.

    Transport failures never raise this; they are reported through
    ``Client.error_code`` and ``Client.error_message`` instead.
    """


__all__ = ["ClientError"]
