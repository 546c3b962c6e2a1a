from __future__ import annotations

import copy
import uuid
from typing import Any, MutableMapping, Protocol

SESSION_ID_KEY = "sid"


class KeyValueStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class InMemoryStore:
    """Dict-backed store. Values are copied in and out, never shared."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def clear(self) -> None:
        self._data.clear()


_session_data: dict[str, InMemoryStore] = {}


class SessionStore:
    """Store bound to one browser session.

    The signed session cookie only carries an id; the values live in a
    process-level registry so snapshots do not bloat the cookie.
    """

    def __init__(
        self,
        session: MutableMapping[str, Any],
        registry: dict[str, InMemoryStore] | None = None,
    ) -> None:
        self._session = session
        self._registry = _session_data if registry is None else registry

    @property
    def session_id(self) -> str:
        sid = self._session.get(SESSION_ID_KEY)
        if not sid:
            sid = uuid.uuid4().hex
            self._session[SESSION_ID_KEY] = sid
        return sid

    def _backend(self) -> InMemoryStore:
        return self._registry.setdefault(self.session_id, InMemoryStore())

    def get(self, key: str, default: Any = None) -> Any:
        return self._backend().get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._backend().set(key, value)


def clear_sessions() -> None:
    _session_data.clear()
