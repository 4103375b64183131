"""
Location Relay

Request/report handshake between a tracking device and the user bound
to it:

1. The device asks for the user's location -> users/{userId}/locationRequested = True
2. The user's app reports lat/lng -> appended to locations/{deviceId}, flag cleared

There is no expiry; an unanswered request stays set until a report
arrives or the flag is reset.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from database.kv_store import KeyValueStore
from utils.keyed_lock import KeyedLock
from .binding_registry import BindingRegistry
from .results import ErrorKind, OperationResult, ServiceError, returns_result

logger = logging.getLogger(__name__)


def location_request_path(user_id: str) -> str:
    return f"users/{user_id}/locationRequested"


def location_reports_path(device_id: str) -> str:
    return f"locations/{device_id}"


@dataclass
class LocationReport:
    """A single accepted location report"""
    lat: float
    lng: float
    time: datetime

    def to_dict(self) -> Dict:
        return {
            'lat': self.lat,
            'lng': self.lng,
            'time': self.time.isoformat()
        }


class LocationRelay:
    """Orchestrates location requests and reports through the binding registry."""

    def __init__(
        self,
        kv_store: KeyValueStore,
        registry: BindingRegistry,
        clock: Callable[[], datetime] = None
    ):
        self._kv = kv_store
        self._registry = registry
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._locks = KeyedLock()

    @returns_result("Request location")
    async def request_location(self, device_id: Optional[str]) -> OperationResult:
        if not device_id:
            raise ServiceError(ErrorKind.NOT_FOUND, "Device id is required")

        user_id = await self._registry.resolve_user_by_device(device_id)
        if user_id is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "No user is bound to this device")

        await self._kv.set(location_request_path(user_id), True)
        logger.info(f"Location of user {user_id} requested by device {device_id}")
        return OperationResult.ok("Location requested")

    @returns_result("Report location")
    async def report_location(self, user_id: str, lat: float, lng: float) -> OperationResult:
        device_id = await self._registry.resolve_device_by_user(user_id)
        if device_id is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "No device is bound to this user")

        report = LocationReport(lat=lat, lng=lng, time=self._clock())
        path = location_reports_path(device_id)

        async with self._locks.acquire(path):
            reports = await self._kv.get(path) or []
            reports.append(report.to_dict())
            await self._kv.set(path, reports)

        await self._kv.set(location_request_path(user_id), False)
        logger.info(f"User {user_id} reported location for device {device_id}")
        return OperationResult.ok("Location reported", data=report.to_dict())

    @returns_result("Reset location request")
    async def reset_location_request(self, user_id: str) -> OperationResult:
        await self._kv.set(location_request_path(user_id), False)
        return OperationResult.ok("Location request reset")

    @returns_result("Get location request")
    async def get_location_request(self, user_id: str) -> OperationResult:
        requested = await self._kv.get(location_request_path(user_id))
        return OperationResult.ok("Location request status", data={'requested': bool(requested)})

    @returns_result("Get location reports")
    async def get_location_reports(self, device_id: Optional[str], limit: int = None) -> OperationResult:
        if not device_id:
            raise ServiceError(ErrorKind.NOT_FOUND, "Device id is required")

        reports = await self._kv.get(location_reports_path(device_id)) or []
        if limit is not None:
            reports = reports[-limit:] if limit > 0 else []
        return OperationResult.ok(f"{len(reports)} location report(s)", data=reports)
