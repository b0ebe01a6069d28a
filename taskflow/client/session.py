"""Client-side session state with persistence and a hydration gate."""

import json
import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass, replace
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from taskflow.client.transport import ApiClient

logger = logging.getLogger("taskflow.client")

SESSION_NAMESPACE = "taskflow-session"
PERSIST_VERSION = 0


class Storage(Protocol):
    def get_item(self, name: str) -> str | None: ...

    def set_item(self, name: str, value: str) -> None: ...

    def remove_item(self, name: str) -> None: ...


class HydrationPhase(StrEnum):
    PENDING = "pending"
    HYDRATED = "hydrated"
    CHECKED = "checked"


@dataclass(frozen=True)
class SessionState:
    user: dict[str, Any] | None = None
    is_authenticated: bool = False
    is_checking: bool = True


Listener = Callable[[SessionState, SessionState], None]


class SessionStore:
    """Single shared session for one running client.

    Create one instance and inject it wherever it is needed. Nothing that
    depends on authentication should render until ``ready`` is true, which
    happens only after ``hydrate()`` and one ``check_auth()`` have completed.
    """

    def __init__(self, storage: Storage, namespace: str = SESSION_NAMESPACE) -> None:
        self._storage = storage
        self._namespace = namespace
        self._state = SessionState()
        self._phase = HydrationPhase.PENDING
        self._listeners: list[Listener] = []
        self._check_started = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def phase(self) -> HydrationPhase:
        return self._phase

    @property
    def ready(self) -> bool:
        return self._phase is HydrationPhase.CHECKED and not self._state.is_checking

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener(new_state, previous_state)``. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, persist: bool = True, **changes: Any) -> None:
        previous = self._state
        self._state = replace(previous, **changes)
        if persist:
            self._persist()
        for listener in list(self._listeners):
            listener(self._state, previous)

    def _persist(self) -> None:
        snapshot = {"user": self._state.user, "isAuthenticated": self._state.is_authenticated}
        self._storage.set_item(self._namespace, json.dumps({"state": snapshot, "version": PERSIST_VERSION}))

    # --- lifecycle ---

    def hydrate(self) -> None:
        """Restore persisted state. Runs once; later calls are no-ops."""
        if self._phase is not HydrationPhase.PENDING:
            return

        raw = self._storage.get_item(self._namespace)
        restored: dict[str, Any] = {}
        if raw:
            try:
                stored = json.loads(raw).get("state") or {}
                restored = {"user": stored.get("user"), "is_authenticated": bool(stored.get("isAuthenticated"))}
            except (ValueError, AttributeError):
                logger.warning("Discarding unreadable session data in %s", self._namespace)
                self._storage.remove_item(self._namespace)

        self._phase = HydrationPhase.HYDRATED
        self._set(persist=False, **restored)

    async def check_auth(self, api: "ApiClient") -> None:
        """Confirm the session with the server; any failure leaves the user signed out."""
        if self._phase is HydrationPhase.PENDING:
            raise RuntimeError("hydrate() must complete before check_auth()")

        self._set(persist=False, is_checking=True)
        try:
            user = await api.profile()
        except Exception as exc:
            logger.info("Auth check failed: %s", exc)
            self._phase = HydrationPhase.CHECKED
            self._set(user=None, is_authenticated=False, is_checking=False)
            return

        self._phase = HydrationPhase.CHECKED
        self._set(user=user, is_authenticated=True, is_checking=False)

    async def bootstrap(self, api: "ApiClient") -> None:
        """Hydrate, then verify with the server exactly once."""
        self.hydrate()
        if self._check_started:
            return
        self._check_started = True
        await self.check_auth(api)

    # --- mutations ---

    def set_auth(self, user: dict[str, Any]) -> None:
        self._set(user=user, is_authenticated=True, is_checking=False)

    def update_user(self, changes: dict[str, Any]) -> None:
        self._set(user={**(self._state.user or {}), **changes})

    def logout(self) -> None:
        """Clear state and wipe the persisted namespace before any navigation happens."""
        self._storage.remove_item(self._namespace)
        self._set(persist=False, user=None, is_authenticated=False)

    def as_dict(self) -> dict[str, Any]:
        return {**asdict(self._state), "phase": str(self._phase)}
