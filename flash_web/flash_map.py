"""
FlashMap: values handed from one request to the next, then discarded.

Entries are flagged when read and unflagged when written or kept; sweep() drops
whatever is still flagged. A value written by request N and read by request N+1
is therefore gone after N+1, while a value nobody reads stays until somebody does.
"""
import logging
import threading
from collections.abc import Iterator, MutableMapping
from typing import Any

from flash_web.keys import KeyAdapter

logger = logging.getLogger(__name__)


class FlashMap(MutableMapping):
    """
    Thread-safe flash storage shared by every request of one session.
    Keys go through a KeyAdapter, so str, bytes and Enum keys are interchangeable.
    """

    def __init__(self, key_adapter: KeyAdapter | None = None):
        self._key = key_adapter or KeyAdapter()
        self._entries: dict[str, Any] = {}
        self._flagged: set[str] = set()
        self._lock = threading.RLock()

    def put(self, key: Any, value: Any) -> None:
        """Add an entry for this request and the next. Clears the sweep flag for the key."""
        k = self._key(key)
        with self._lock:
            self._flagged.discard(k)
            self._entries[k] = value

    def put_now(self, key: Any, value: Any) -> None:
        """
        Set a value for the current request only. It is already flagged, so the
        sweep at the end of this request removes it unless it is explicitly kept.
        """
        k = self._key(key)
        with self._lock:
            self._flagged.add(k)
            self._entries[k] = value

    def get(self, key: Any, default: Any = None) -> Any:
        """Return the value for key (or default) and flag it to be swept."""
        k = self._key(key)
        with self._lock:
            self._flagged.add(k)
            return self._entries.get(k, default)

    def remove(self, key: Any) -> None:
        """Drop an entry now. It is no longer available for this request or the next."""
        k = self._key(key)
        with self._lock:
            self._entries.pop(k, None)

    def iterate(self) -> Iterator[tuple[str, Any]]:
        """
        Yield (key, value) pairs for the entries present at call time.
        Each key is flagged as its pair is produced, so a partly consumed
        iteration flags only what was actually handed out.
        """
        with self._lock:
            snapshot = list(self._entries.items())
        return self._flag_as_read(snapshot)

    def _flag_as_read(self, pairs: list[tuple[str, Any]]) -> Iterator[tuple[str, Any]]:
        for k, value in pairs:
            with self._lock:
                self._flagged.add(k)
            yield k, value

    def sweep(self) -> None:
        """Remove all flagged entries."""
        with self._lock:
            swept = [k for k in self._flagged if k in self._entries]
            for k in swept:
                del self._entries[k]
            self._flagged.clear()
        if swept:
            logger.debug("Swept %d flash entries: %s", len(swept), sorted(swept))

    def keep_all(self) -> None:
        """Clear all flags so no entries are removed on the next sweep."""
        with self._lock:
            self._flagged.clear()

    def keep(self, key: Any) -> None:
        """Clear the flag for one key so its entry survives the next sweep."""
        k = self._key(key)
        with self._lock:
            self._flagged.discard(k)

    def flag_all(self) -> None:
        """Flag every current key so the whole map is cleared on the next sweep."""
        with self._lock:
            self._flagged.update(self._entries)

    def is_flagged(self, key: Any) -> bool:
        k = self._key(key)
        with self._lock:
            return k in self._flagged

    # MutableMapping protocol. Reads flag, writes unflag, same as the named methods.

    def __getitem__(self, key: Any) -> Any:
        k = self._key(key)
        with self._lock:
            self._flagged.add(k)
            return self._entries[k]

    def __setitem__(self, key: Any, value: Any) -> None:
        self.put(key, value)

    def __delitem__(self, key: Any) -> None:
        k = self._key(key)
        with self._lock:
            del self._entries[k]

    def __contains__(self, key: Any) -> bool:
        k = self._key(key)
        with self._lock:
            self._flagged.add(k)
            return k in self._entries

    def __iter__(self) -> Iterator[str]:
        for k, _ in self.iterate():
            yield k

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __getstate__(self) -> dict:
        with self._lock:
            return {"key": self._key, "entries": dict(self._entries), "flagged": set(self._flagged)}

    def __setstate__(self, state: dict) -> None:
        self._key = state["key"]
        self._entries = state["entries"]
        self._flagged = state["flagged"]
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        with self._lock:
            return f"FlashMap(entries={self._entries!r}, flagged={sorted(self._flagged)!r})"
