"""User key generation and per-account persistence.

The user key is the per-account index identifier embedded in every keyed
request path. It is generated locally and stored in a small YAML file.
A key that is not exactly 32 alphanumeric characters counts as "not
configured" and suppresses all index and search traffic.
"""

from __future__ import annotations

import logging
import secrets
import string
from pathlib import Path
from typing import TYPE_CHECKING

import yaml

if TYPE_CHECKING:
    from config import Config

logger = logging.getLogger(__name__)

KEY_LENGTH = 32
KEY_CHARSET = string.ascii_uppercase + string.ascii_lowercase + string.digits
UNSET = "UNSET"


def generate_user_key() -> str:
    """Generate a fresh 32-character key from [A-Za-z0-9]."""
    return "".join(secrets.choice(KEY_CHARSET) for _ in range(KEY_LENGTH))


def is_configured_key(key: str | None) -> bool:
    """Return True only for a 32-character alphanumeric key.

    Stricter than a length check: the key is embedded in request paths, so
    a 32-character key containing any other character counts as unset.

    Examples:
        >>> is_configured_key("UNSET")
        False
        >>> is_configured_key("a" * 32)
        True
    """
    if not key or len(key) != KEY_LENGTH:
        return False
    return all(c in KEY_CHARSET for c in key)


class KeyStore:
    """YAML-backed mapping of account -> user key."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        data = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed key store", extra={"path": str(self.path)})
            return {}
        # An account listed without a value (`alice:`) has no key yet
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _save(self, keys: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            yaml.safe_dump(keys, sort_keys=True, default_flow_style=False),
            encoding="utf-8",
        )

    def get(self, account: str) -> str | None:
        return self._load().get(account)

    def set(self, account: str, key: str) -> None:
        if not is_configured_key(key):
            raise ValueError(f"user key must be {KEY_LENGTH} alphanumeric characters")
        keys = self._load()
        keys[account] = key
        self._save(keys)

    def get_or_create(self, account: str) -> str:
        """Return the stored key for ``account``, generating one on first use."""
        existing = self.get(account)
        if existing is not None and existing != UNSET:
            return existing
        key = generate_user_key()
        self.set(account, key)
        logger.info("Generated new user key for account %s", account)
        return key


def resolve_user_key(cfg: Config, store: KeyStore | None = None) -> str:
    """Explicit USER_KEY wins; otherwise the key store entry for ACCOUNT."""
    if cfg.USER_KEY:
        return cfg.USER_KEY
    store = store or KeyStore(cfg.keys_path)
    return store.get_or_create(cfg.ACCOUNT)


__all__ = [
    "KEY_LENGTH",
    "UNSET",
    "generate_user_key",
    "is_configured_key",
    "KeyStore",
    "resolve_user_key",
]
