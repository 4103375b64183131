"""
Binding Registry

Keeps the device <-> user mapping as two key-value indices:

    device-user/{deviceId}  -> userId
    users/{userId}/deviceId -> deviceId

Both directions stay partial functions because every rebind runs under
a per-user lock and then per-device locks for the old and new device.
"""

import logging
from typing import Any, List, Optional, Tuple

from config import DEVICE_ID_LENGTH
from database.kv_store import KeyValueStore
from utils.keyed_lock import KeyedLock
from .results import ErrorKind, OperationResult, ServiceError, returns_result

logger = logging.getLogger(__name__)


def device_owner_path(device_id: str) -> str:
    return f"device-user/{device_id}"


def user_device_path(user_id: str) -> str:
    return f"users/{user_id}/deviceId"


class BindingRegistry:
    """Bijective device-id <-> user-id registry with atomic reassignment."""

    def __init__(self, kv_store: KeyValueStore, locks: KeyedLock = None):
        self._kv = kv_store
        self._locks = locks or KeyedLock()

    async def resolve_user_by_device(self, device_id: str) -> Optional[str]:
        if not device_id:
            return None
        return await self._kv.get(device_owner_path(device_id))

    async def resolve_device_by_user(self, user_id: str) -> Optional[str]:
        if not user_id:
            return None
        return await self._kv.get(user_device_path(user_id))

    @returns_result("Get device")
    async def get_device(self, user_id: str) -> OperationResult:
        device_id = await self.resolve_device_by_user(user_id)
        if device_id is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "No device is bound to this user")
        return OperationResult.ok("Device found", data={'device_id': device_id})

    @returns_result("Rebind device")
    async def rebind(self, user_id: str, new_device_id: str) -> OperationResult:
        """
        Bind user_id to new_device_id, releasing the user's previous device.

        Fails with INVALID_ARGUMENT for a malformed id and CONFLICT when the
        device belongs to another user. Either all writes land or the
        previous bindings are restored.
        """
        if not new_device_id or len(new_device_id) != DEVICE_ID_LENGTH:
            raise ServiceError(ErrorKind.INVALID_ARGUMENT, f"Device id must be {DEVICE_ID_LENGTH} characters!")

        async with self._locks.acquire(f"user:{user_id}"):
            old_device_id = await self._kv.get(user_device_path(user_id))
            device_keys = [f"device:{new_device_id}"]
            if old_device_id and old_device_id != new_device_id:
                device_keys.append(f"device:{old_device_id}")

            async with self._locks.acquire(*device_keys):
                owner_path = device_owner_path(new_device_id)
                owner = await self._kv.get(owner_path) if await self._kv.exists(owner_path) else None

                if owner is not None and owner != user_id:
                    raise ServiceError(ErrorKind.CONFLICT, "This id is already owned!")

                if owner == user_id and old_device_id == new_device_id:
                    return OperationResult.ok("Device id unchanged")

                writes = []
                if old_device_id and old_device_id != new_device_id:
                    # Only release the old device while it still points back at this user
                    if await self._kv.get(device_owner_path(old_device_id)) == user_id:
                        writes.append((device_owner_path(old_device_id), None, user_id))
                writes.append((user_device_path(user_id), new_device_id, old_device_id))
                writes.append((owner_path, user_id, owner))

                await self._apply(writes)

        logger.info(f"User {user_id} bound to device {new_device_id} (previous: {old_device_id})")
        return OperationResult.ok("Successfully updated")

    async def _apply(self, writes: List[Tuple[str, Any, Any]]):
        """Run (path, new, previous) writes in order, restoring applied ones on failure."""
        applied = []
        try:
            for path, value, previous in writes:
                await self._kv.set(path, value)
                applied.append((path, previous))
        except Exception:
            for path, previous in reversed(applied):
                try:
                    await self._kv.set(path, previous)
                except Exception:
                    logger.exception(f"Failed to restore binding at {path}")
            raise
