"""
Indifferent-access keys for the flash map.
"notice", b"notice" and an Enum member whose value is "notice" all address the same entry.
"""
from enum import Enum
from typing import Any

from flash_web.config import FLASH_KEYS_CASE_INSENSITIVE


class KeyAdapter:
    """Maps the key forms callers use to the one string the flash map stores under."""

    def __init__(self, case_insensitive: bool = FLASH_KEYS_CASE_INSENSITIVE):
        self.case_insensitive = case_insensitive

    def __call__(self, key: Any) -> str:
        if isinstance(key, Enum):
            key = key.value if isinstance(key.value, str) else key.name
        elif isinstance(key, bytes):
            key = key.decode("utf-8")
        if not isinstance(key, str):
            raise TypeError(f"flash keys must be str, bytes or Enum, not {type(key).__name__}")
        return key.casefold() if self.case_insensitive else key

    def __eq__(self, other: object) -> bool:
        return isinstance(other, KeyAdapter) and other.case_insensitive == self.case_insensitive

    def __hash__(self) -> int:
        return hash((KeyAdapter, self.case_insensitive))

    def __repr__(self) -> str:
        return f"KeyAdapter(case_insensitive={self.case_insensitive})"
