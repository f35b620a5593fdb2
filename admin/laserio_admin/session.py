"""
Administrator session and its on-disk token store.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional

import portalocker

from .errors import SessionStoreError

if TYPE_CHECKING:
    from .api_client import CatalogApiClient, LoginResult

logger = logging.getLogger(__name__)

DEFAULT_SESSION_FILE = Path.home() / ".laserio_admin" / "session.json"


def with_file_lock(func):
    """Decorator ensuring exclusive access to the session file."""

    def wrapper(self, *args, **kwargs):
        with self._file_lock:
            return func(self, *args, **kwargs)

    return wrapper


class SessionStore:
    """JSON file holding the bearer token between application runs."""

    ENCODING = "utf-8"

    def __init__(self, path: Optional[Path] = None):
        self._file_path = Path(path) if path else DEFAULT_SESSION_FILE
        self._file_lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._file_path

    @contextmanager
    def _open_file(self, mode: str):
        temp_path: Optional[Path] = None
        file_obj = None
        try:
            if "w" in mode:
                self._file_path.parent.mkdir(parents=True, exist_ok=True)
                temp_path = self._file_path.with_suffix(".tmp")
                file_obj = open(temp_path, mode, encoding=self.ENCODING)
                portalocker.lock(file_obj, portalocker.LOCK_EX)
            else:
                file_obj = open(self._file_path, mode, encoding=self.ENCODING)
                portalocker.lock(file_obj, portalocker.LOCK_SH)
            yield file_obj
            if "w" in mode and file_obj:
                file_obj.flush()
                os.fsync(file_obj.fileno())
        except OSError as exc:
            raise SessionStoreError(
                f"Не удалось открыть файл сессии {self._file_path}: {exc}"
            ) from exc
        finally:
            if file_obj:
                try:
                    portalocker.unlock(file_obj)
                except Exception as exc:  # noqa: BLE001
                    logger.debug("Could not release session file lock: %s", exc)
                file_obj.close()
            if temp_path and temp_path.exists():
                try:
                    os.replace(temp_path, self._file_path)
                except OSError as exc:
                    raise SessionStoreError(
                        f"Не удалось сохранить файл сессии: {exc}"
                    ) from exc

    @with_file_lock
    def load(self) -> Optional[Dict[str, Any]]:
        """Return the stored session data, or None when nothing is stored."""
        if not self._file_path.exists():
            return None
        with self._open_file("r") as handle:
            try:
                raw = json.load(handle)
            except json.JSONDecodeError as exc:
                raise SessionStoreError(
                    f"Повреждён файл сессии {self._file_path}: {exc}"
                ) from exc
        if not isinstance(raw, dict) or not raw.get("access_token"):
            return None
        return raw

    @with_file_lock
    def save(self, data: Dict[str, Any]) -> None:
        with self._open_file("w") as handle:
            json.dump(data, handle, indent=2, ensure_ascii=False)

    @with_file_lock
    def clear(self) -> None:
        try:
            self._file_path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise SessionStoreError(
                f"Не удалось удалить файл сессии {self._file_path}: {exc}"
            ) from exc


class AdminSession:
    """Holds the current bearer token.

    Created explicitly at startup and passed to whoever needs it; login
    starts the session and logout tears it down. Expiry is not tracked.
    """

    def __init__(self, store: Optional[SessionStore] = None):
        self.store = store
        self.token: Optional[str] = None
        self.expires_in: Optional[int] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def restore(self) -> bool:
        """Reload a previously stored token. Returns True when one was found."""
        if not self.store:
            return False
        try:
            data = self.store.load()
        except SessionStoreError as exc:
            logger.warning("Ignoring unreadable session store: %s", exc)
            return False
        if not data:
            return False
        self.token = str(data["access_token"])
        expires_in = data.get("expires_in")
        self.expires_in = expires_in if isinstance(expires_in, int) else None
        logger.info("Restored stored admin session")
        return True

    def start(self, result: "LoginResult") -> None:
        self.token = result.access_token
        self.expires_in = result.expires_in
        if self.store:
            try:
                self.store.save(
                    {"access_token": self.token, "expires_in": self.expires_in}
                )
            except SessionStoreError as exc:
                logger.warning("Session token not persisted: %s", exc)

    def login(self, client: "CatalogApiClient", email: str, password: str) -> None:
        """Authenticate against the API; raises ApiError on failure."""
        result = client.login(email.strip(), password)
        self.start(result)
        logger.info("Administrator %s logged in", email.strip())

    def logout(self) -> None:
        self.token = None
        self.expires_in = None
        if self.store:
            try:
                self.store.clear()
            except SessionStoreError as exc:
                logger.warning("Could not clear stored session: %s", exc)
        logger.info("Administrator logged out")
