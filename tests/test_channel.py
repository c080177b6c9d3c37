import json
from datetime import timedelta

import pytest
from starlette.websockets import WebSocketDisconnect

from conftest import FakeChannel
from sweepro.domain.notifications.channel import handle_channel_message
from sweepro.domain.notifications.registry import Connection, ConnectionState
from sweepro.domain.notifications.types import Role, RoleClass
from sweepro.security_utils import create_jwt_token
from sweepro.shared.timeutils import utcnow


@pytest.mark.asyncio
async def test_auth_binds_connection_and_acknowledges(registry, handshake, make_user, token_for):
    maid = make_user(Role.MAID, name="Meera")
    channel = FakeChannel()
    connection = Connection(channel)

    keep_reading = await handle_channel_message(
        connection, handshake, json.dumps({"type": "auth", "token": token_for(maid)})
    )

    assert keep_reading is True
    assert connection.state is ConnectionState.LIVE
    assert registry.get(maid.id) is connection
    assert registry.connections_for(RoleClass.MAID) == [connection]
    assert channel.frames == [
        {"type": "auth_success", "user": {"id": maid.id, "name": "Meera", "role": "MAID"}}
    ]


@pytest.mark.asyncio
async def test_auth_accepts_user_id_claim(registry, handshake, make_user):
    customer = make_user(Role.CUSTOMER)
    token = create_jwt_token({"userId": customer.id})
    connection = Connection(FakeChannel())

    assert await handshake.authenticate(connection, token) is True
    assert registry.get(customer.id) is connection


@pytest.mark.asyncio
@pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
async def test_invalid_token_closes_with_policy_code(registry, handshake, token):
    channel = FakeChannel()
    connection = Connection(channel)

    keep_reading = await handle_channel_message(
        connection, handshake, json.dumps({"type": "auth", "token": token})
    )

    assert keep_reading is False
    assert channel.close_code == 1008
    assert channel.sent == []
    assert len(registry) == 0
    assert registry.total_connections == 0


@pytest.mark.asyncio
async def test_expired_token_is_rejected(registry, handshake, make_user, token_for):
    user = make_user(Role.CUSTOMER)
    channel = FakeChannel()

    ok = await handshake.authenticate(Connection(channel), token_for(user, timedelta(seconds=-5)))

    assert ok is False
    assert channel.close_code == 1008
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_unknown_or_inactive_user_is_rejected(registry, handshake, make_user, token_for):
    inactive = make_user(Role.CUSTOMER, is_active=False)
    ghost_token = create_jwt_token({"id": 999999})

    for token in (token_for(inactive), ghost_token):
        channel = FakeChannel()
        assert await handshake.authenticate(Connection(channel), token) is False
        assert channel.close_code == 1008

    assert len(registry) == 0


@pytest.mark.asyncio
async def test_ping_refreshes_activity_and_answers_pong(handshake):
    channel = FakeChannel()
    connection = Connection(channel)
    connection.last_activity = utcnow() - timedelta(hours=1)
    before = connection.last_activity

    keep_reading = await handle_channel_message(connection, handshake, '{"type": "ping"}')

    assert keep_reading is True
    assert connection.last_activity > before
    assert connection.state is ConnectionState.UNAUTHENTICATED
    assert channel.frames == [{"type": "pong"}]


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["not json", "[1, 2]", '{"type": "subscribe"}', '{"token": "x"}'])
async def test_other_frames_are_ignored(handshake, raw):
    channel = FakeChannel()
    connection = Connection(channel)

    assert await handle_channel_message(connection, handshake, raw) is True
    assert channel.sent == []
    assert channel.close_code is None


# ---------------------------------------------------------------------------
# End-to-end over the /ws endpoint
# ---------------------------------------------------------------------------


def test_websocket_auth_ping_and_disconnect(client, make_user, token_for):
    customer = make_user(Role.CUSTOMER, name="Asha")
    registry = client.app.state.connection_registry

    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}

        ws.send_json({"type": "auth", "token": token_for(customer)})
        ack = ws.receive_json()
        assert ack["type"] == "auth_success"
        assert ack["user"] == {"id": customer.id, "name": "Asha", "role": "CUSTOMER"}
        assert registry.get(customer.id) is not None

        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}


def test_websocket_rejects_bad_token_with_1008(client):
    registry = client.app.state.connection_registry

    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "auth", "token": "garbage"})
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_json()

    assert exc_info.value.code == 1008
    assert registry.active_connections == 0
