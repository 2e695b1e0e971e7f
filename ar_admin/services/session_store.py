"""Persistence of the signed-in session between console invocations."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ar_admin.models.users import AuthSession

logger = logging.getLogger(__name__)


class SessionStore:
    """
    JSON file holding the auth session and an optional impersonation record.

    File layout::

        {
          "session": {...AuthSession...},
          "impersonation": {"impersonated_user_id": "...",
                            "original_user_id": "..."}
        }

    The file is created with mode 0600 since it holds bearer tokens.
    """

    def __init__(self, path):
        self.path = Path(path).expanduser()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.chmod(self.path, 0o600)

    def load(self) -> Optional[AuthSession]:
        """Return the stored session, or None when absent or malformed."""
        raw = self._read().get("session")
        if not raw:
            return None
        try:
            return AuthSession(**raw)
        except ValidationError as e:
            logger.warning(f"Discarding malformed stored session: {e}")
            return None

    def save(self, session: AuthSession) -> None:
        data = self._read()
        data["session"] = session.model_dump()
        self._write(data)
        logger.debug(f"Session saved to {self.path}")

    def clear(self) -> None:
        """Forget the session and any impersonation record."""
        if self.path.exists():
            self.path.unlink()
            logger.debug(f"Session file {self.path} removed")

    def load_impersonation(self) -> Optional[Dict[str, str]]:
        record = self._read().get("impersonation")
        if not isinstance(record, dict):
            return None
        if not record.get("impersonated_user_id") or not record.get("original_user_id"):
            return None
        return record

    def save_impersonation(
        self, impersonated_user_id: str, original_user_id: str
    ) -> None:
        data = self._read()
        data["impersonation"] = {
            "impersonated_user_id": impersonated_user_id,
            "original_user_id": original_user_id,
        }
        self._write(data)

    def clear_impersonation(self) -> None:
        data = self._read()
        if data.pop("impersonation", None) is not None:
            self._write(data)
