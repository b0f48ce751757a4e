"""
Change notification primitives.

A ``ReloadToken`` fires its callbacks at most once. Providers which support
reloading hand out a token, and on reload swap in a fresh one before firing
the old one, so listeners re-subscribe to the new token.

``on_change`` keeps a consumer subscribed across those swaps. Upstream
watchers may signal more than once for one logical change, so consumers must
be idempotent.
"""

import threading
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ChangeToken(Protocol):
    """Anything that can notify registered callbacks of a change."""

    @property
    def has_changed(self) -> bool: ...

    def register_change_callback(
        self, callback: Callable[[Any], None], state: Any = None
    ) -> "CallbackRegistration": ...


class CallbackRegistration:
    """Handle returned by ``ReloadToken.register_change_callback``."""

    def __init__(self, token: "ReloadToken", callback: Callable[[Any], None], state: Any):
        self._token = token
        self._callback = callback
        self._state = state
        self.disposed = False

    def invoke(self) -> None:
        if not self.disposed:
            self._callback(self._state)

    def dispose(self) -> None:
        if not self.disposed:
            self.disposed = True
            self._token._unregister(self)

    def __enter__(self) -> "CallbackRegistration":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.dispose()


class ReloadToken:
    """A one-shot change token."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._callbacks: list[CallbackRegistration] = []
        self._has_changed = False

    @property
    def has_changed(self) -> bool:
        return self._has_changed

    def register_change_callback(
        self, callback: Callable[[Any], None], state: Any = None
    ) -> CallbackRegistration:
        """Register ``callback(state)``; it runs immediately if the token already fired."""
        registration = CallbackRegistration(self, callback, state)
        with self._lock:
            fired = self._has_changed
            if not fired:
                self._callbacks.append(registration)
        if fired:
            registration.invoke()
        return registration

    def _unregister(self, registration: CallbackRegistration) -> None:
        with self._lock:
            if registration in self._callbacks:
                self._callbacks.remove(registration)

    def on_reload(self) -> None:
        """Fire every registered callback once."""
        with self._lock:
            if self._has_changed:
                return
            self._has_changed = True
            callbacks = list(self._callbacks)
            self._callbacks.clear()

        for registration in callbacks:
            registration.invoke()


class ChangeTokenRegistration:
    """Subscription created by ``on_change``; keeps re-registering on fresh tokens."""

    def __init__(
        self,
        token_producer: Callable[[], ChangeToken | None],
        consumer: Callable[[Any], None],
        state: Any = None,
    ):
        self._token_producer = token_producer
        self._consumer = consumer
        self._state = state
        self._lock = threading.Lock()
        self._registration: CallbackRegistration | None = None
        self._disposed = False

        token = token_producer()
        if token is not None:
            self._register(token)

    def _on_change_token_fired(self, _: Any) -> None:
        token = self._token_producer()
        try:
            self._consumer(self._state)
        finally:
            if token is not None:
                self._register(token)

    def _register(self, token: ChangeToken) -> None:
        if self._disposed:
            return

        registration = token.register_change_callback(self._on_change_token_fired)

        with self._lock:
            if self._disposed:
                dispose_now = True
            else:
                dispose_now = False
                previous, self._registration = self._registration, registration
        if dispose_now:
            registration.dispose()
        elif previous is not None and previous is not registration:
            previous.dispose()

    def dispose(self) -> None:
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            registration, self._registration = self._registration, None
        if registration is not None:
            registration.dispose()

    def __enter__(self) -> "ChangeTokenRegistration":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.dispose()


def on_change(
    token_producer: Callable[[], ChangeToken | None],
    consumer: Callable[[Any], None],
    state: Any = None,
) -> ChangeTokenRegistration:
    """Call ``consumer(state)`` every time the token produced by ``token_producer`` fires."""
    return ChangeTokenRegistration(token_producer, consumer, state)
