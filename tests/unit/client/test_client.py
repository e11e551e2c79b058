"""
Unit tests for client.client module.

Tests:
- Construction: keys copy, initial contacts, owned pool
- Contacts: ordered, duplicate-free add/remove
- Relay operations delegate to the pool unchanged
- delete_event() validation and publishing
- handle_notifications(): ordering, lag skip, re-subscribe, stop, failure
- Factory methods and bootstrap()
"""

import asyncio
import json
import os
from unittest.mock import AsyncMock, patch

import pytest
from nostr_sdk import Keys

from relaykit.client import Client, ClientConfig
from relaykit.core.exceptions import (
    ConfigurationError,
    ConnectivityError,
    ParseError,
    RelayNotFoundError,
)
from relaykit.core.pool import RelayPool
from relaykit.models import (
    Contact,
    EventReceived,
    MessageReceived,
    PoolShutdown,
    RelayStatus,
    RelayStatusChanged,
)
from relaykit.utils.keys import ENV_PRIVATE_KEY
from tests.conftest import RELAY_A, RELAY_B, VALID_HEX_KEY, settle


EVENT_ID = "b" * 64


def message(n: int) -> MessageReceived:
    return MessageReceived(relay_url=RELAY_A, message=f"msg-{n}")


# ============================================================================
# Construction
# ============================================================================


class TestInit:
    async def test_new_client_has_no_contacts(self, keys, pool):
        client = Client(keys, pool=pool)
        assert client.contacts == []

    async def test_keys_are_copied(self, keys, pool):
        client = Client(keys, pool=pool)
        assert client.keys is not keys
        assert client.keys.public_key().to_hex() == keys.public_key().to_hex()

    async def test_initial_contacts_deduplicated(self, keys, pool, alice, bob):
        client = Client(keys, [alice, bob, alice], pool=pool)
        assert client.contacts == [alice, bob]

    def test_owns_new_pool_from_config(self, keys):
        config = ClientConfig(pool={"notification_capacity": 32})
        client = Client(keys, config=config)
        assert isinstance(client.pool, RelayPool)
        assert client.pool.config.notification_capacity == 32

    async def test_uses_given_pool(self, keys, pool):
        assert Client(keys, pool=pool).pool is pool

    def test_generate_keys(self):
        assert isinstance(Client.generate_keys(), Keys)

    async def test_repr(self, client, keys):
        assert keys.public_key().to_hex() in repr(client)


# ============================================================================
# Contacts
# ============================================================================


class TestContacts:
    async def test_add_contact(self, client, alice):
        await client.add_contact(alice)
        assert client.contacts == [alice]

    async def test_add_duplicate_keeps_one(self, client, alice):
        await client.add_contact(alice)
        await client.add_contact(Contact("a" * 64, relay_url=RELAY_A, alias="alice"))
        assert client.contacts == [alice]

    async def test_insertion_order(self, client, alice, bob):
        await client.add_contact(bob)
        await client.add_contact(alice)
        assert client.contacts == [bob, alice]

    async def test_remove_contact(self, client, alice, bob):
        await client.add_contact(alice)
        await client.add_contact(bob)
        await client.remove_contact(alice)
        assert client.contacts == [bob]

    async def test_remove_absent_is_noop(self, client, alice, bob):
        await client.add_contact(bob)
        await client.remove_contact(alice)
        assert client.contacts == [bob]

    async def test_snapshot_not_live(self, client, alice, bob):
        await client.add_contact(alice)
        snapshot = client.contacts
        await client.add_contact(bob)
        assert snapshot == [alice]


# ============================================================================
# Relay pool delegation
# ============================================================================


class TestRelayDelegation:
    async def test_add_and_connect(self, client, connector):
        await client.add_relay(RELAY_A)
        await client.connect_relay(RELAY_A)
        assert client.relays == {RELAY_A: RelayStatus.CONNECTED}
        assert connector.attempts == [RELAY_A]

    async def test_proxy_forwarded(self, client, connector):
        await client.add_relay(RELAY_A, proxy="socks5://127.0.0.1:9050")
        await client.connect_all()
        assert connector.clients[RELAY_A].proxy_url == "socks5://127.0.0.1:9050"

    async def test_errors_propagate_unchanged(self, client, pool):
        error = ConnectivityError("boom")
        with patch.object(pool, "connect_all", new_callable=AsyncMock, side_effect=error):
            with pytest.raises(ConnectivityError) as exc_info:
                await client.connect_all()
        assert exc_info.value is error

    async def test_unknown_relay(self, client):
        with pytest.raises(RelayNotFoundError):
            await client.disconnect_relay(RELAY_A)

    async def test_remove_relay(self, client):
        await client.add_relay(RELAY_A)
        await client.remove_relay(RELAY_A)
        assert client.relays == {}

    async def test_disconnect_relay(self, client):
        await client.add_relay(RELAY_A)
        await client.connect_relay(RELAY_A)
        await client.disconnect_relay(RELAY_A)
        assert client.relays == {RELAY_A: RelayStatus.DISCONNECTED}

    async def test_subscribe_and_send(self, client, pool):
        with (
            patch.object(pool, "subscribe", new_callable=AsyncMock) as mock_subscribe,
            patch.object(pool, "send_event", new_callable=AsyncMock) as mock_send,
        ):
            await client.subscribe(["f"])
            await client.send_event("event")
        mock_subscribe.assert_awaited_once_with(["f"])
        mock_send.assert_awaited_once_with("event")


# ============================================================================
# delete_event
# ============================================================================


class TestDeleteEvent:
    async def test_invalid_id_never_reaches_pool(self, client, pool):
        with patch.object(pool, "send_event", new_callable=AsyncMock) as mock_send:
            with pytest.raises(ParseError):
                await client.delete_event("not-hex")
        mock_send.assert_not_awaited()

    async def test_publishes_kind_5(self, client, pool, keys):
        with patch.object(pool, "send_event", new_callable=AsyncMock) as mock_send:
            await client.delete_event(EVENT_ID)

        event = mock_send.await_args.args[0]
        data = json.loads(event.as_json())
        assert data["kind"] == 5
        assert ["e", EVENT_ID] in data["tags"]
        assert data["pubkey"] == keys.public_key().to_hex()

    async def test_sent_to_connected_relay(self, client, connector):
        await client.add_relay(RELAY_A)
        await client.connect_relay(RELAY_A)
        await client.delete_event(EVENT_ID)
        assert len(connector.clients[RELAY_A].sent) == 1

    async def test_no_relays_raises_connectivity_error(self, client):
        with pytest.raises(ConnectivityError, match="no connected relays"):
            await client.delete_event(EVENT_ID)

    async def test_contacts_untouched(self, client, pool, alice):
        await client.add_contact(alice)
        with patch.object(pool, "send_event", new_callable=AsyncMock):
            await client.delete_event(EVENT_ID)
        assert client.contacts == [alice]


# ============================================================================
# Notifications
# ============================================================================


class TestNotifications:
    async def test_subscriptions_are_independent(self, client, pool):
        first = await client.notifications()
        second = await client.notifications()
        pool._publish(message(1))
        assert await first.recv() == message(1)
        assert await second.recv() == message(1)


class TestHandleNotifications:
    async def test_callback_sees_notifications_in_order(self, client, pool):
        seen = []

        def callback(notification):
            seen.append(notification)
            return len(seen) == 3

        task = asyncio.create_task(client.handle_notifications(callback))
        await settle()
        for n in range(3):
            pool._publish(message(n))

        await asyncio.wait_for(task, timeout=1.0)
        assert seen == [message(0), message(1), message(2)]

    async def test_callback_failure_stops_loop(self, client, pool):
        seen = []

        def callback(notification):
            seen.append(notification)
            if len(seen) == 2:
                raise ValueError("callback failed")

        task = asyncio.create_task(client.handle_notifications(callback))
        await settle()
        pool._publish(message(1))
        pool._publish(message(2))
        pool._publish(message(3))

        with pytest.raises(ValueError, match="callback failed"):
            await asyncio.wait_for(task, timeout=1.0)
        assert seen == [message(1), message(2)]

    async def test_async_callback(self, client, pool):
        seen = []

        async def callback(notification):
            await asyncio.sleep(0)
            seen.append(notification)
            return True

        task = asyncio.create_task(client.handle_notifications(callback))
        await settle()
        pool._publish(message(1))

        await asyncio.wait_for(task, timeout=1.0)
        assert seen == [message(1)]

    async def test_lag_is_skipped(self, client, pool):
        seen = []
        capacity = pool.config.notification_capacity
        total = capacity + 2

        def callback(notification):
            seen.append(notification)
            return notification == message(total - 1)

        task = asyncio.create_task(client.handle_notifications(callback))
        await settle()
        for n in range(total):
            pool._publish(message(n))

        await asyncio.wait_for(task, timeout=1.0)
        assert seen == [message(n) for n in range(2, total)]

    async def test_resubscribes_after_shutdown(self, client, pool):
        seen = []

        def callback(notification):
            seen.append(notification)
            return isinstance(notification, MessageReceived)

        task = asyncio.create_task(client.handle_notifications(callback))
        await settle()
        await client.shutdown()
        await settle()
        assert not task.done()

        pool._publish(message(1))
        await asyncio.wait_for(task, timeout=1.0)
        assert seen == [PoolShutdown(), message(1)]

    async def test_receives_relay_events(self, client, connector):
        await client.add_relay(RELAY_A)
        await client.connect_relay(RELAY_A)
        await settle()

        received = []

        def callback(notification):
            received.append(notification)
            return isinstance(notification, EventReceived)

        task = asyncio.create_task(client.handle_notifications(callback))
        await settle()
        await connector.clients[RELAY_A].handler.handle(None, "sub-1", "event")

        await asyncio.wait_for(task, timeout=1.0)
        assert received == [EventReceived(RELAY_A, "sub-1", "event")]

    async def test_cancellation_stops_loop(self, client):
        task = asyncio.create_task(client.handle_notifications(lambda n: None))
        await settle()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


# ============================================================================
# Factory methods and bootstrap
# ============================================================================


class TestFactories:
    def test_from_dict_with_keys(self, keys):
        client = Client.from_dict({"keys_env": "UNUSED"}, keys=keys)
        assert client.keys.public_key().to_hex() == keys.public_key().to_hex()

    def test_from_dict_loads_keys_from_env(self):
        with patch.dict(os.environ, {"RELAYKIT_KEY": VALID_HEX_KEY}):  # pragma: allowlist secret
            client = Client.from_dict({"keys_env": "RELAYKIT_KEY"})
        assert client.keys.secret_key().to_hex() == VALID_HEX_KEY

    def test_from_dict_default_keys_env(self):
        with patch.dict(os.environ, {ENV_PRIVATE_KEY: VALID_HEX_KEY}, clear=True):
            client = Client.from_dict({})
        assert client.config.keys_env == ENV_PRIVATE_KEY
        assert client.keys.secret_key().to_hex() == VALID_HEX_KEY

    def test_from_dict_missing_env(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ConfigurationError, match="RELAYKIT_KEY"):
                Client.from_dict({"keys_env": "RELAYKIT_KEY"})

    def test_from_yaml(self, tmp_path, keys):
        path = tmp_path / "client.yaml"
        path.write_text("pool:\n  notification_capacity: 64\nrelays:\n  - url: wss://nos.lol\n")
        client = Client.from_yaml(str(path), keys=keys)
        assert client.config.pool.notification_capacity == 64
        assert client.pool.config.notification_capacity == 64
        assert [r.url for r in client.config.relays] == [RELAY_B]

    async def test_from_dict_accepts_pool(self, keys, pool):
        assert Client.from_dict({}, keys=keys, pool=pool).pool is pool


class TestBootstrap:
    async def test_adds_and_connects_configured_relays(self, keys, pool, connector):
        data = {
            "relays": [
                {"url": RELAY_A},
                {"url": RELAY_B, "proxy": "socks5://127.0.0.1:9050"},
            ]
        }
        client = Client.from_dict(data, keys=keys, pool=pool)
        await client.bootstrap()

        assert client.relays == {RELAY_A: RelayStatus.CONNECTED, RELAY_B: RelayStatus.CONNECTED}
        assert connector.clients[RELAY_B].proxy_url == "socks5://127.0.0.1:9050"

    async def test_idempotent(self, keys, pool, connector):
        client = Client.from_dict({"relays": [{"url": RELAY_A}]}, keys=keys, pool=pool)
        await client.bootstrap()
        await client.bootstrap()
        assert connector.attempts == [RELAY_A]


class TestLifecycle:
    async def test_context_manager_shuts_down(self, keys, pool):
        sub = pool.notifications()
        async with Client(keys, pool=pool) as client:
            await client.add_relay(RELAY_A)
            await client.connect_relay(RELAY_A)
        assert client.relays == {RELAY_A: RelayStatus.DISCONNECTED}

        received = [await sub.recv() for _ in range(4)]
        assert received[-2:] == [
            RelayStatusChanged(RELAY_A, RelayStatus.DISCONNECTED),
            PoolShutdown(),
        ]
