"""
File-backed installation store.

Each partition is one JSON array on disk: either the shared file, or one file
per user when per-user storage is enabled. Every mutation reads the whole
array, changes it in memory and writes the whole array back. There is no
append log and no atomic rename; a per-partition lock serializes mutations
within this process only, so separate processes can still lose updates.
"""

import asyncio
import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles
import aiofiles.os

from solar_tracker.core.config import Settings
from solar_tracker.core.exceptions import InstallationNotFoundError, StorageError
from solar_tracker.core.logging_config import logger
from solar_tracker.modules.auth.identity import UserIdentity
from solar_tracker.services.installation_validator import utc_now_iso


UNSAFE_USERNAME_CHARS = re.compile(r'[^a-z0-9_-]')

# Keys an update payload can never change
PROTECTED_FIELDS = ("id", "createdAt", "ownerId", "ownerUsername")


def sanitize_username(username: str = "") -> str:
    """Lower-case and replace anything outside [a-z0-9_-] with '-'"""
    return UNSAFE_USERNAME_CHARS.sub("-", username.lower().strip())


def _dumps(records: List[Dict[str, Any]]) -> str:
    return json.dumps(records, indent=2, ensure_ascii=False)


class InstallationStore:
    """
    Reads and writes installation partitions.

    Args:
        config: Settings providing the shared file, per-user directory,
            environment name and per-user toggle.
    """

    def __init__(self, config: Settings):
        self.shared_path: Path = config.SHARED_DATA_PATH
        self.per_user_dir: Path = config.PER_USER_DATA_DIR
        self.per_user: bool = config.INSTALLATIONS_PER_USER
        self.environment_name: str = config.ENVIRONMENT_NAME
        self._locks: Dict[Path, asyncio.Lock] = {}

    # ==================== PARTITIONS ====================

    def partition_for(self, identity: Optional[UserIdentity]) -> Path:
        """Pick the partition file for the caller"""
        if not self.per_user or identity is None or not identity.username:
            return self.shared_path
        safe_username = sanitize_username(identity.username)
        return self.per_user_dir / f"{safe_username}.{self.environment_name}.json"

    def _lock_for(self, partition: Path) -> asyncio.Lock:
        lock = self._locks.get(partition)
        if lock is None:
            lock = self._locks[partition] = asyncio.Lock()
        return lock

    # ==================== RAW I/O ====================

    async def _read_json(self, path: Path) -> List[Dict[str, Any]]:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            raw = await f.read()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageError(f"Data file is not valid JSON: {e}", path=str(path))
        if not isinstance(data, list):
            raise StorageError("Data file must contain a JSON array", path=str(path))
        return data

    async def write(self, partition: Path, records: List[Dict[str, Any]]) -> None:
        """Overwrite the partition with the full record list"""
        await aiofiles.os.makedirs(partition.parent, exist_ok=True)
        async with aiofiles.open(partition, "w", encoding="utf-8") as f:
            await f.write(_dumps(records))
        logger.log_storage_event("write", str(partition), records=len(records))

    async def _seed_from_shared(
        self,
        partition: Path,
        identity: UserIdentity
    ) -> Optional[List[Dict[str, Any]]]:
        """
        Copy the caller's records out of the legacy shared file into a new
        per-user partition. Best effort: a missing shared file is silent,
        anything else is logged and the partition starts empty.
        """
        try:
            shared = await self._read_json(self.shared_path)
        except FileNotFoundError:
            return None
        except (OSError, StorageError) as e:
            logger.warning(
                f"Unable to seed per-user installations for {identity.username}: {e}",
                extra={"event_type": "storage_migration_failed", "storage_path": str(partition)}
            )
            return None

        owned = [
            record for record in shared
            if isinstance(record, dict) and (
                record.get("ownerId") == identity.id
                or record.get("ownerUsername") == identity.username
            )
        ]
        await self.write(partition, owned)
        logger.info(
            f"Seeded {len(owned)} installations for {identity.username} from shared file",
            extra={"event_type": "storage_migration", "records": len(owned)}
        )
        return owned

    async def read(self, partition: Path, identity: Optional[UserIdentity] = None) -> List[Dict[str, Any]]:
        """Load the full record list, creating the partition lazily"""
        try:
            return await self._load_existing(partition)
        except FileNotFoundError:
            pass

        # Partition creation runs under the partition lock
        async with self._lock_for(partition):
            return await self._load(partition, identity)

    async def _load_existing(self, partition: Path) -> List[Dict[str, Any]]:
        records = await self._read_json(partition)
        logger.log_storage_event("read", str(partition), records=len(records))
        return records

    async def _load(self, partition: Path, identity: Optional[UserIdentity]) -> List[Dict[str, Any]]:
        """Read or create the partition; caller holds the partition lock"""
        try:
            return await self._load_existing(partition)
        except FileNotFoundError:
            pass

        await aiofiles.os.makedirs(partition.parent, exist_ok=True)

        if self.per_user and identity is not None and partition != self.shared_path:
            seeded = await self._seed_from_shared(partition, identity)
            if seeded is not None:
                return seeded

        await self.write(partition, [])
        return []

    # ==================== RECORD OPERATIONS ====================

    async def find(
        self,
        installation_id: str,
        partition: Path,
        identity: Optional[UserIdentity] = None
    ) -> Optional[Dict[str, Any]]:
        records = await self.read(partition, identity)
        return next((record for record in records if record.get("id") == installation_id), None)

    async def add(
        self,
        installation: Dict[str, Any],
        partition: Path,
        identity: Optional[UserIdentity] = None
    ) -> Dict[str, Any]:
        async with self._lock_for(partition):
            records = await self._load(partition, identity)
            records.append(installation)
            await self.write(partition, records)
        return installation

    async def add_many(
        self,
        installations: List[Dict[str, Any]],
        partition: Path,
        identity: Optional[UserIdentity] = None
    ) -> List[Dict[str, Any]]:
        """Append a whole batch with a single read and a single write"""
        async with self._lock_for(partition):
            records = await self._load(partition, identity)
            records.extend(installations)
            await self.write(partition, records)
        return installations

    async def update(
        self,
        installation_id: str,
        updated_data: Dict[str, Any],
        partition: Path,
        identity: Optional[UserIdentity] = None
    ) -> Dict[str, Any]:
        async with self._lock_for(partition):
            records = await self._load(partition, identity)
            index = self._index_of(records, installation_id)

            current = records[index]
            merged = {**current, **updated_data}
            for key in PROTECTED_FIELDS:
                if key in current:
                    merged[key] = current[key]
                else:
                    merged.pop(key, None)
            merged["updatedAt"] = utc_now_iso()

            records[index] = merged
            await self.write(partition, records)
        return merged

    async def delete(
        self,
        installation_id: str,
        partition: Path,
        identity: Optional[UserIdentity] = None
    ) -> bool:
        async with self._lock_for(partition):
            records = await self._load(partition, identity)
            index = self._index_of(records, installation_id)
            del records[index]
            await self.write(partition, records)
        return True

    @staticmethod
    def _index_of(records: List[Dict[str, Any]], installation_id: str) -> int:
        for index, record in enumerate(records):
            if record.get("id") == installation_id:
                return index
        raise InstallationNotFoundError(installation_id)
