"""Routing error types and cancellation support."""

from __future__ import annotations

import threading


class RouteValidationError(ValueError):
    """Raised when a routing request cannot be served as given (too few or invalid points)."""


class RemoteRoutingError(ConnectionError):
    """The remote engine could not produce a usable answer.

    Covers network errors, timeouts, non-2xx responses, non-"Ok" engine codes and
    malformed payloads. The routing service always recovers from it by degrading
    to the fallback planner.
    """


class RoutingCancelled(RemoteRoutingError):
    """The caller cancelled the request before the remote answer was used."""


class CancellationToken:
    """Caller-owned flag that aborts rate-limit waits and discards late replies.

    A request already on the wire is not interrupted: the client checks the
    token before sending and again once the reply arrives, so a cancel issued
    mid-request takes effect only after the reply or the configured timeout.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block for up to ``timeout`` seconds; return True if cancelled meanwhile."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RoutingCancelled("Routing request was cancelled.")
