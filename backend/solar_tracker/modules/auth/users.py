"""
User directories.

Two sources feed the login check:

- StaticUserProvider: read-only users injected through configuration
  (AUTH_USER_<n>_USERNAME / AUTH_USER_<n>_PASSWORD). Built once, never mutated.
- UserFileStore: users created at runtime, persisted as a JSON array.
"""

import json
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

import aiofiles
import aiofiles.os

from solar_tracker.core.exceptions import StorageError
from solar_tracker.core.logging_config import logger
from solar_tracker.core.security import get_password_hash
from solar_tracker.services.installation_validator import utc_now_iso


STATIC_USER_USERNAME_PATTERN = re.compile(r'^AUTH_USER_(\d+)_USERNAME$', re.IGNORECASE)


@dataclass(frozen=True)
class StoredUser:
    id: str
    username: str
    password_hash: str
    created_at: str
    managed_by_env: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoredUser":
        return cls(
            id=data["id"],
            username=data["username"],
            password_hash=data["passwordHash"],
            created_at=data.get("createdAt", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Persisted shape, including the hash"""
        return {
            "id": self.id,
            "username": self.username,
            "passwordHash": self.password_hash,
            "createdAt": self.created_at,
        }

    def to_public_dict(self) -> Dict[str, Any]:
        """API shape - never carries the hash"""
        data: Dict[str, Any] = {
            "id": self.id,
            "username": self.username,
            "createdAt": self.created_at,
        }
        if self.managed_by_env:
            data["managedByEnv"] = True
        return data


class StaticUserProvider:
    """Immutable, case-insensitive map of configuration-defined users"""

    def __init__(self, users: Tuple[StoredUser, ...] = ()):
        self._users: Mapping[str, StoredUser] = MappingProxyType(
            {user.username.lower(): user for user in users}
        )

    @classmethod
    def from_environ(cls, environ: Mapping[str, str], rounds: Optional[int] = None) -> "StaticUserProvider":
        """
        Collect AUTH_USER_<n>_USERNAME/PASSWORD pairs.

        Empty usernames, missing passwords and duplicate names are skipped
        with a warning; the first definition of a name wins. Entries are
        visited in ascending <n> order.
        """
        candidates = []
        for key, value in environ.items():
            match = STATIC_USER_USERNAME_PATTERN.match(key)
            if match:
                candidates.append((int(match.group(1)), match.group(1), key, value))
        candidates.sort()

        # Password lookup mirrors the case-insensitive username key match
        upper_environ = {key.upper(): value for key, value in environ.items()}

        users: List[StoredUser] = []
        seen = set()
        created_at = utc_now_iso()
        for _, index, key, value in candidates:
            username = (value or "").strip()
            password_key = f"AUTH_USER_{index}_PASSWORD"
            password = upper_environ.get(password_key)

            if not username:
                logger.warning(f"Environment variable {key} is set but empty; skipping static user.")
                continue

            if not password:
                logger.warning(f"Environment variable {password_key} is missing for static user {username}; skipping.")
                continue

            if username.lower() in seen:
                logger.warning(f'Duplicate static user detected for username "{username}"; later definition will be ignored.')
                continue

            seen.add(username.lower())
            users.append(StoredUser(
                id=f"env-{index}",
                username=username,
                password_hash=get_password_hash(password, rounds=rounds),
                created_at=created_at,
                managed_by_env=True,
            ))

        if users:
            logger.info(f"Loaded {len(users)} static user(s) from configuration")
        return cls(tuple(users))

    def get(self, username: str) -> Optional[StoredUser]:
        return self._users.get(username.lower())

    def all(self) -> List[StoredUser]:
        return list(self._users.values())

    def __len__(self) -> int:
        return len(self._users)


class UserFileStore:
    """JSON-array user file, rewritten wholesale on every change"""

    def __init__(self, path: Path):
        self.path = Path(path)

    async def _ensure_file(self) -> None:
        if not await aiofiles.os.path.exists(self.path):
            await self.write([])

    async def read(self) -> List[StoredUser]:
        await self._ensure_file()
        async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
            raw = await f.read()
        try:
            data = json.loads(raw)
            return [StoredUser.from_dict(item) for item in data]
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise StorageError(f"User file is corrupt: {e}", path=str(self.path))

    async def write(self, users: List[StoredUser]) -> None:
        await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
        async with aiofiles.open(self.path, "w", encoding="utf-8") as f:
            await f.write(json.dumps([user.to_dict() for user in users], indent=2))

    async def find(self, username: str) -> Optional[StoredUser]:
        wanted = username.lower()
        for user in await self.read():
            if user.username.lower() == wanted:
                return user
        return None

    async def append(self, username: str, password_hash: str) -> StoredUser:
        users = await self.read()
        user = StoredUser(
            id=str(uuid.uuid4()),
            username=username,
            password_hash=password_hash,
            created_at=utc_now_iso(),
        )
        users.append(user)
        await self.write(users)
        return user
