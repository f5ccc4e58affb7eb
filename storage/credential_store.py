"""
Registered users and their WebAuthn credentials.

The directory is a JSON file (path from WEBAUTHN_USERS_FILE):

    {
      "users": [
        {
          "id": "u-1",
          "email": "alice@example.com",
          "name": "Alice",
          "roles": ["admin"],
          "webauthn_credentials": [
            {"credential_id": "<base64url>", "public_key": "<base64url>", "sign_count": 0}
          ]
        }
      ]
    }
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from dataclasses import asdict, dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class StoredCredential:
    credential_id: str
    public_key: str
    sign_count: int = 0


@dataclass
class StoredUser:
    id: str
    email: str
    name: str | None = None
    roles: list[str] = field(default_factory=list)
    webauthn_credentials: list[StoredCredential] = field(default_factory=list)

    def find_credential(self, credential_id: str) -> StoredCredential | None:
        for cred in self.webauthn_credentials:
            if cred.credential_id == credential_id:
                return cred
        return None


class CredentialStore:
    """Thin wrapper around the JSON user directory."""

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._lock = threading.Lock()
        self._users: list[StoredUser] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> list[StoredUser]:
        if self._users is not None:
            return self._users

        if not self._path.exists():
            logger.warning("WebAuthn user directory not found: %s", self._path)
            self._users = []
            return self._users

        with self._path.open("r", encoding="utf-8") as f:
            raw = json.load(f)

        users = []
        for entry in raw.get("users", []):
            creds = [
                StoredCredential(
                    credential_id=c["credential_id"],
                    public_key=c["public_key"],
                    sign_count=int(c.get("sign_count", 0)),
                )
                for c in entry.get("webauthn_credentials", [])
            ]
            users.append(
                StoredUser(
                    id=str(entry["id"]),
                    email=entry["email"],
                    name=entry.get("name"),
                    roles=list(entry.get("roles", [])),
                    webauthn_credentials=creds,
                )
            )
        self._users = users
        return users

    def _save(self, users: list[StoredUser]) -> None:
        """Write the directory back, replacing the file atomically."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"users": [asdict(u) for u in users]}
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp, self._path)
        except BaseException:
            os.unlink(tmp)
            raise

    def get_user_by_email(self, email: str) -> StoredUser | None:
        if not email:
            return None
        wanted = email.strip().lower()
        with self._lock:
            for user in self._load():
                if user.email.lower() == wanted:
                    return user
        return None

    def update_sign_count(self, credential_id: str, sign_count: int) -> None:
        """
        Persist the authenticator's new signature counter.

        Raises ValueError for unknown credentials or a counter that goes
        backwards (a cloned authenticator or replayed assertion).
        """
        with self._lock:
            users = self._load()
            for user in users:
                cred = user.find_credential(credential_id)
                if cred is None:
                    continue
                if sign_count < cred.sign_count:
                    raise ValueError(
                        f"Sign count for credential {credential_id} went backwards "
                        f"({cred.sign_count} -> {sign_count})"
                    )
                cred.sign_count = sign_count
                self._save(users)
                return
        raise ValueError(f"Unknown credential: {credential_id}")
