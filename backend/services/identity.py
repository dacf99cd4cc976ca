"""
Static API key allow-list
"""
import hashlib
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional


def fingerprint(api_key: str) -> str:
    """SHA-256 of the key; the raw key never reaches storage or logs"""
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class Identity:
    key: str

    @property
    def fingerprint(self) -> str:
        return fingerprint(self.key)

    @property
    def log_id(self) -> str:
        return self.fingerprint[:12]

    def __repr__(self) -> str:
        return f"Identity({self.log_id})"


class IdentityStore:
    """Keys valid for the lifetime of the process"""

    def __init__(self, keys: Iterable[str]):
        self._keys: FrozenSet[str] = frozenset(k.strip() for k in keys if k and k.strip())

    def is_valid(self, key: Optional[str]) -> bool:
        if not key:
            return False
        return key in self._keys

    def resolve(self, key: Optional[str]) -> Optional[Identity]:
        if not self.is_valid(key):
            return None
        return Identity(key)

    @property
    def count(self) -> int:
        return len(self._keys)
