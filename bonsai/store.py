"""Per-account persistence of ``GameState``.

Records are JSON strings kept in any string-to-string mapping: a plain dict
in memory, or ``JsonFileBackend`` for a file on disk. Reads never raise on
bad data; a corrupt record reads as a fresh, unplanted state.
"""

import json
import logging
import os
from collections.abc import MutableMapping

from bonsai.constants import STORAGE_PREFIX
from bonsai.errors import StorageError
from bonsai.growth import GameState, refresh

logger = logging.getLogger(__name__)


def storage_key(account):
    return STORAGE_PREFIX + account.lower()


class JsonFileBackend(MutableMapping):
    """A string mapping persisted as one JSON object in ``path``."""

    def __init__(self, path):
        self.path = path
        self._data = self._read()

    def _read(self):
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("ignoring unreadable store file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("ignoring store file %s: not a JSON object", self.path)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data):
        tmp = self.path + ".tmp"
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        finally:
            if os.path.exists(tmp):
                os.remove(tmp)
        self._data = data

    def __getitem__(self, key):
        return self._data[key]

    def __setitem__(self, key, value):
        data = dict(self._data)
        data[key] = value
        self._write(data)

    def __delitem__(self, key):
        data = dict(self._data)
        del data[key]
        self._write(data)

    def __iter__(self):
        return iter(self._data)

    def __len__(self):
        return len(self._data)


class StateStore:
    """Game state per account over a string mapping.

    Corrupt records read as a fresh state. A backend that fails to read or
    write raises ``StorageError``.
    """

    def __init__(self, backend=None):
        self.backend = backend if backend is not None else {}

    def load(self, account):
        """Stored state for ``account``, or a zero-value state."""
        try:
            raw = self.backend.get(storage_key(account))
        except Exception as e:
            raise StorageError("Couldn't read your saved tree.") from e
        if not raw:
            return GameState()
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("corrupt state for %s, starting fresh", account)
            return GameState()
        return GameState.from_dict(data)

    def save(self, account, state):
        try:
            self.backend[storage_key(account)] = json.dumps(state.to_dict())
        except Exception as e:
            raise StorageError("Couldn't save your tree.") from e

    def load_fresh(self, account, now):
        """Load, recompute decay against ``now`` and write the result back."""
        state = refresh(self.load(account), now)
        self.save(account, state)
        return state
