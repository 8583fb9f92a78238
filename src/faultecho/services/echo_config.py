"""Process-wide fault-injection config record."""

import threading

from faultecho.contracts import EchoConfig, EchoConfigUpdate


class EchoConfigStore:
    """Holds the current ``EchoConfig``; reads return copies."""

    def __init__(self, initial: EchoConfig | None = None) -> None:
        self._lock = threading.Lock()
        self._config = initial or EchoConfig()

    def get(self) -> EchoConfig:
        with self._lock:
            return self._config.model_copy()

    def update(self, update: EchoConfigUpdate) -> EchoConfig:
        """Apply the fields set on ``update`` and return the new config."""
        changes = update.model_dump(exclude_none=True)
        with self._lock:
            self._config = self._config.model_copy(update=changes)
            return self._config.model_copy()


_config_store: EchoConfigStore | None = None


def init_echo_config(initial: EchoConfig | None = None) -> EchoConfigStore:
    global _config_store
    _config_store = EchoConfigStore(initial)
    return _config_store


def get_echo_config_store() -> EchoConfigStore:
    """Return the config store, creating a default one on first use."""
    global _config_store
    if _config_store is None:
        _config_store = EchoConfigStore()
    return _config_store
