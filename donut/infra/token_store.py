# donut/infra/token_store.py
from __future__ import annotations

import json
import logging
import os
import threading
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from donut.core.errors import TokenStoreError

from .settings import TOKEN_STORE_PATH, ensure_600

logger = logging.getLogger(__name__)

SERVICE_NAME = "com.timedonut.app"


class TokenKey(str, Enum):
    ACCESS_TOKEN = "donut.accessToken"
    REFRESH_TOKEN = "donut.refreshToken"
    USER_EMAIL = "donut.userEmail"


class _RWLock:
    """Many readers or one writer."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    def acquire_read(self):
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1

    def release_read(self):
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self):
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True

    def release_write(self):
        with self._cond:
            self._writing = False
            self._cond.notify_all()


class TokenStore:
    """Secrets kept in a 0600 JSON file under a single service namespace.

    Layout: ``{"com.timedonut.app": {"donut.accessToken": "...", ...}}``
    """

    def __init__(self, path: Path = TOKEN_STORE_PATH):
        self.path = Path(path)
        self._lock = _RWLock()

    # ---- raw file access (callers hold the lock) ----
    def _read_all(self) -> Dict[str, Dict[str, str]]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            raise TokenStoreError(f"Failed to read token store {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise TokenStoreError(f"Token store {self.path} is not a JSON object")
        return data

    def _write_all(self, data: Dict[str, Dict[str, str]]) -> None:
        try:
            if not data:
                if self.path.exists():
                    self.path.unlink()
                return
            tmp = self.path.with_suffix(".tmp")
            tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            ensure_600(tmp)
            os.replace(tmp, self.path)
        except OSError as e:
            raise TokenStoreError(f"Failed to write token store {self.path}: {e}") from e

    # ---- public API ----
    def save(self, key: TokenKey, value: str) -> None:
        self._lock.acquire_write()
        try:
            data = self._read_all()
            data.setdefault(SERVICE_NAME, {})[TokenKey(key).value] = value
            self._write_all(data)
        finally:
            self._lock.release_write()
        logger.debug("Saved %s", TokenKey(key).name)

    def retrieve(self, key: TokenKey) -> Optional[str]:
        self._lock.acquire_read()
        try:
            return self._read_all().get(SERVICE_NAME, {}).get(TokenKey(key).value)
        finally:
            self._lock.release_read()

    def delete(self, key: TokenKey) -> None:
        self._lock.acquire_write()
        try:
            data = self._read_all()
            entries = data.get(SERVICE_NAME, {})
            entries.pop(TokenKey(key).value, None)
            if not entries:
                data.pop(SERVICE_NAME, None)
            self._write_all(data)
        finally:
            self._lock.release_write()

    def delete_all(self) -> None:
        """Remove every entry of the namespace; an unreadable file is removed outright."""
        self._lock.acquire_write()
        try:
            try:
                data = self._read_all()
            except TokenStoreError:
                logger.warning("Token store %s unreadable, removing it", self.path)
                data = {}
            entries = data.get(SERVICE_NAME, {})
            for key in TokenKey:
                entries.pop(key.value, None)
            if not entries:
                data.pop(SERVICE_NAME, None)
            self._write_all(data)
        finally:
            self._lock.release_write()
        logger.debug("Token store cleared")
