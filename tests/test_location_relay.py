import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from services.binding_registry import BindingRegistry
from services.location_relay import LocationRelay, location_reports_path, location_request_path
from services.results import ErrorKind

START = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class StepClock:
    """Advances one minute per call"""

    def __init__(self):
        self.now = START

    def __call__(self):
        current = self.now
        self.now += timedelta(minutes=1)
        return current


@pytest.fixture
def registry(kv_store):
    return BindingRegistry(kv_store)


@pytest.fixture
def relay(kv_store, registry):
    asyncio.run(registry.rebind("user1", "AB12CD"))
    return LocationRelay(kv_store, registry, clock=StepClock())


class TestRequestLocation:

    def test_unbound_device_not_found(self, kv_store, registry):
        relay = LocationRelay(kv_store, registry)
        result = asyncio.run(relay.request_location("AB12CD"))
        assert not result.success
        assert result.error is ErrorKind.NOT_FOUND
        assert result.status_code == 404

    @pytest.mark.parametrize("device_id", [None, ""])
    def test_missing_device_id_not_found(self, relay, device_id):
        result = asyncio.run(relay.request_location(device_id))
        assert result.error is ErrorKind.NOT_FOUND

    def test_sets_flag_on_bound_user(self, relay, kv_store):
        result = asyncio.run(relay.request_location("AB12CD"))
        assert result.success
        assert kv_store.data[location_request_path("user1")] is True

        status = asyncio.run(relay.get_location_request("user1"))
        assert status.data == {'requested': True}

    def test_request_is_idempotent(self, relay, kv_store):
        asyncio.run(relay.request_location("AB12CD"))
        once = dict(kv_store.data)
        asyncio.run(relay.request_location("AB12CD"))
        assert kv_store.data == once


class TestReportLocation:

    def test_user_without_device_not_found(self, relay):
        result = asyncio.run(relay.report_location("user2", 10.0, 20.0))
        assert result.error is ErrorKind.NOT_FOUND

    def test_report_appends_and_clears_flag(self, relay, kv_store):
        asyncio.run(relay.request_location("AB12CD"))
        result = asyncio.run(relay.report_location("user1", 21.0285, 105.8542))

        assert result.success
        assert result.data == {'lat': 21.0285, 'lng': 105.8542, 'time': START.isoformat()}
        assert kv_store.data[location_request_path("user1")] is False
        assert kv_store.data[location_reports_path("AB12CD")] == [result.data]

    def test_reports_keep_append_order(self, relay):
        asyncio.run(relay.report_location("user1", 1.0, 1.0))
        asyncio.run(relay.report_location("user1", 2.0, 2.0))
        asyncio.run(relay.report_location("user1", 3.0, 3.0))

        reports = asyncio.run(relay.get_location_reports("AB12CD")).data
        assert [r['lat'] for r in reports] == [1.0, 2.0, 3.0]
        assert [r['time'] for r in reports] == sorted(r['time'] for r in reports)

        latest = asyncio.run(relay.get_location_reports("AB12CD", limit=2)).data
        assert [r['lat'] for r in latest] == [2.0, 3.0]

    def test_coordinates_are_passed_through(self, relay):
        result = asyncio.run(relay.report_location("user1", 123.4, -500.0))
        assert result.success
        assert (result.data['lat'], result.data['lng']) == (123.4, -500.0)

    def test_concurrent_reports_are_all_kept(self, relay):
        async def scenario():
            await asyncio.gather(*(relay.report_location("user1", float(i), 0.0) for i in range(10)))
            return await relay.get_location_reports("AB12CD")

        reports = asyncio.run(scenario()).data
        assert sorted(r['lat'] for r in reports) == [float(i) for i in range(10)]

    def test_reports_follow_the_bound_device(self, relay, registry):
        asyncio.run(relay.report_location("user1", 1.0, 1.0))
        asyncio.run(registry.rebind("user1", "ZZ99ZZ"))
        asyncio.run(relay.report_location("user1", 2.0, 2.0))

        assert len(asyncio.run(relay.get_location_reports("AB12CD")).data) == 1
        assert len(asyncio.run(relay.get_location_reports("ZZ99ZZ")).data) == 1


class TestResetLocationRequest:

    def test_reset_clears_pending_request(self, relay):
        asyncio.run(relay.request_location("AB12CD"))
        assert asyncio.run(relay.reset_location_request("user1")).success
        assert asyncio.run(relay.get_location_request("user1")).data == {'requested': False}

    def test_unrequested_user_reports_false(self, relay):
        assert asyncio.run(relay.get_location_request("nobody")).data == {'requested': False}

    def test_reports_require_device_id(self, relay):
        assert asyncio.run(relay.get_location_reports("")).error is ErrorKind.NOT_FOUND
