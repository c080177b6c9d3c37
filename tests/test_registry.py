import asyncio
from datetime import timedelta

import pytest

from conftest import FakeChannel
from sweepro.domain.notifications.health import HealthMonitor
from sweepro.domain.notifications.registry import Connection, ConnectionState
from sweepro.domain.notifications.types import Role, RoleClass
from sweepro.shared.timeutils import utcnow


def assert_counters_match(registry):
    assert registry.active_connections == len(registry._clients)
    assert registry.admin_connections == len(registry._admin_clients)
    assert registry.maid_connections == len(registry._maid_clients)
    assert registry.customer_connections == len(registry._customer_clients)


def test_register_places_connection_in_role_container(registry):
    customer = Connection(FakeChannel())
    maid = Connection(FakeChannel())
    floating = Connection(FakeChannel())
    supervisor = Connection(FakeChannel())

    registry.register(customer, 1, Role.CUSTOMER, "Asha")
    registry.register(maid, 2, Role.MAID, "Meera")
    registry.register(floating, 3, Role.FLOATING_MAID, "Lata")
    registry.register(supervisor, 4, Role.SUPERVISOR, "Ravi")

    assert registry.connections_for(RoleClass.CUSTOMER) == [customer]
    assert set(registry.connections_for(RoleClass.MAID)) == {maid, floating}
    assert registry.connections_for(RoleClass.ADMIN) == [supervisor]
    assert all(c.state is ConnectionState.LIVE for c in (customer, maid, floating, supervisor))
    assert registry.total_connections == 4
    assert_counters_match(registry)


def test_reconnect_replaces_global_entry(registry):
    first = Connection(FakeChannel())
    second = Connection(FakeChannel())

    registry.register(first, 7, Role.MAID, "Meera")
    previous = registry.register(second, 7, Role.MAID, "Meera")

    assert previous is first
    assert registry.get(7) is second
    assert len(registry) == 1
    assert registry.connections_for(RoleClass.MAID) == [second]
    assert registry.total_connections == 2
    assert_counters_match(registry)


def test_closing_replaced_connection_keeps_newer_one(registry):
    first = Connection(FakeChannel())
    second = Connection(FakeChannel())
    registry.register(first, 7, Role.CUSTOMER, "Asha")
    registry.register(second, 7, Role.CUSTOMER, "Asha")

    registry.remove(first)

    assert registry.get(7) is second
    assert second in registry
    assert first.state is ConnectionState.CLOSED
    assert_counters_match(registry)


@pytest.mark.asyncio
async def test_health_sweep_closes_idle_connection_replaced_by_reconnect(registry):
    now = utcnow()
    old_channel = FakeChannel()
    old, new = Connection(old_channel), Connection(FakeChannel())
    registry.register(old, 7, Role.CUSTOMER, "Asha")
    registry.register(new, 7, Role.CUSTOMER, "Asha")
    old.last_activity = now - timedelta(hours=5)

    evicted = await HealthMonitor(registry, inactivity_threshold_seconds=1800).sweep(now=now)

    assert evicted == [old]
    assert old.state is ConnectionState.CLOSED
    assert old_channel.close_code == 1000
    assert registry.get(7) is new
    assert registry.all_connections() == [new]
    assert_counters_match(registry)


@pytest.mark.asyncio
async def test_close_all_reaches_replaced_connection(registry):
    old_channel, new_channel = FakeChannel(), FakeChannel()
    registry.register(Connection(old_channel), 3, Role.MAID, "Meera")
    registry.register(Connection(new_channel), 3, Role.MAID, "Meera")

    assert await registry.close_all() == 2
    assert old_channel.close_code == 1001
    assert new_channel.close_code == 1001
    assert registry.all_connections() == []


def test_admin_set_may_hold_replaced_connection_until_it_closes(registry):
    first = Connection(FakeChannel())
    second = Connection(FakeChannel())
    registry.register(first, 9, Role.ADMIN, "Root")
    registry.register(second, 9, Role.ADMIN, "Root")

    assert registry.active_connections == 1
    assert registry.admin_connections == 2

    registry.remove(first)
    assert registry.admin_connections == 1
    assert registry.connections_for(RoleClass.ADMIN) == [second]
    assert_counters_match(registry)


def test_role_change_on_reconnect_leaves_no_stale_entry(registry):
    first = Connection(FakeChannel())
    second = Connection(FakeChannel())
    registry.register(first, 5, Role.CUSTOMER, "Asha")
    registry.register(second, 5, Role.MAID, "Asha")

    assert registry.customer_connections == 0
    assert registry.connections_for(RoleClass.MAID) == [second]
    assert_counters_match(registry)


def test_remove_is_idempotent(registry):
    connection = Connection(FakeChannel())
    registry.register(connection, 1, Role.CUSTOMER, "Asha")

    assert registry.remove(connection) is True
    assert registry.remove(connection) is False
    assert len(registry) == 0
    assert_counters_match(registry)


def test_remove_unauthenticated_connection_is_noop(registry):
    connection = Connection(FakeChannel())

    assert registry.remove(connection) is False
    assert registry.stats()["activeConnections"] == 0


def test_stats_report_counters(registry):
    registry.register(Connection(FakeChannel()), 1, Role.CUSTOMER, "Asha")
    registry.register(Connection(FakeChannel()), 2, Role.MAID, "Meera")
    registry.register(Connection(FakeChannel()), 3, Role.ADMIN, "Root")

    stats = registry.stats()

    assert stats["totalConnections"] == 3
    assert stats["activeConnections"] == 3
    assert stats["adminConnections"] == 1
    assert stats["maidConnections"] == 1
    assert stats["customerConnections"] == 1
    assert stats["timestamp"].endswith("Z")


def test_evict_idle_removes_from_every_container(registry):
    now = utcnow()
    stale_admin = Connection(FakeChannel())
    stale_maid = Connection(FakeChannel())
    fresh = Connection(FakeChannel())
    registry.register(stale_admin, 1, Role.ADMIN, "Root")
    registry.register(stale_maid, 2, Role.MAID, "Meera")
    registry.register(fresh, 3, Role.CUSTOMER, "Asha")
    stale_admin.last_activity = now - timedelta(minutes=45)
    stale_maid.last_activity = now - timedelta(minutes=31)
    fresh.last_activity = now - timedelta(minutes=5)

    evicted = registry.evict_idle(timedelta(minutes=30), now=now)

    assert set(evicted) == {stale_admin, stale_maid}
    assert registry.get(1) is None
    assert registry.get(2) is None
    assert registry.get(3) is fresh
    assert registry.admin_connections == 0
    assert registry.maid_connections == 0
    assert_counters_match(registry)


@pytest.mark.asyncio
async def test_close_all_closes_channels_with_going_away(registry):
    channels = [FakeChannel(), FakeChannel()]
    registry.register(Connection(channels[0]), 1, Role.CUSTOMER, "Asha")
    registry.register(Connection(channels[1]), 2, Role.ADMIN, "Root")

    closed = await registry.close_all()

    assert closed == 2
    assert len(registry) == 0
    assert [c.close_code for c in channels] == [1001, 1001]
    assert_counters_match(registry)


# ---------------------------------------------------------------------------
# Health monitor
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_health_sweep_evicts_and_closes_idle_connection(registry):
    now = utcnow()
    channel = FakeChannel()
    idle = Connection(channel)
    registry.register(idle, 1, Role.CUSTOMER, "Asha")
    idle.last_activity = now - timedelta(seconds=1801)

    monitor = HealthMonitor(registry, interval_seconds=3600, inactivity_threshold_seconds=1800)
    evicted = await monitor.sweep(now=now)

    assert evicted == [idle]
    assert idle not in registry
    assert channel.close_code == 1000
    assert channel.close_reason == "Inactive connection"
    assert_counters_match(registry)


@pytest.mark.asyncio
async def test_ping_within_threshold_keeps_connection(registry):
    now = utcnow()
    channel = FakeChannel()
    connection = Connection(channel)
    registry.register(connection, 1, Role.MAID, "Meera")
    connection.last_activity = now - timedelta(hours=2)

    connection.touch(now - timedelta(minutes=10))
    monitor = HealthMonitor(registry, inactivity_threshold_seconds=1800)
    evicted = await monitor.sweep(now=now)

    assert evicted == []
    assert registry.get(1) is connection
    assert channel.close_code is None


@pytest.mark.asyncio
async def test_health_monitor_start_and_stop(registry):
    monitor = HealthMonitor(registry, interval_seconds=3600)

    task = monitor.start()
    assert monitor.start() is task

    await monitor.stop()
    assert task.cancelled()


@pytest.mark.asyncio
async def test_health_monitor_loop_sweeps_on_its_period(registry):
    channel = FakeChannel()
    idle = Connection(channel)
    registry.register(idle, 1, Role.CUSTOMER, "Asha")
    idle.last_activity = utcnow() - timedelta(hours=1)

    monitor = HealthMonitor(registry, interval_seconds=0.01, inactivity_threshold_seconds=1800)
    monitor.start()
    try:
        for _ in range(100):
            if channel.close_code is not None:
                break
            await asyncio.sleep(0.01)
    finally:
        await monitor.stop()

    assert channel.close_code == 1000
    assert idle.state is ConnectionState.CLOSED
    assert len(registry) == 0
