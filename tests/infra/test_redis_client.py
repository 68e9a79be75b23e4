# tests/infra/test_redis_client.py
"""
Тесты для клиента Redis.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.infra.redis_client import RedisClient


class TestRedisClient:
    """Тесты RedisClient поверх замоканного redis.asyncio."""

    @pytest.fixture
    def raw(self) -> AsyncMock:
        raw = AsyncMock()
        raw.set = AsyncMock(return_value=True)
        raw.delete = AsyncMock(return_value=1)
        raw.publish = AsyncMock(return_value=2)
        raw.ping = AsyncMock(return_value=True)
        raw.pubsub = MagicMock(return_value="pubsub")
        return raw

    @pytest.fixture
    def client(self, raw: AsyncMock) -> RedisClient:
        RedisClient._instance = None
        client = RedisClient()
        client._client = raw
        client._namespace = "wash"
        yield client
        client._client = None
        RedisClient._instance = None

    def test_not_connected(self) -> None:
        RedisClient._instance = None
        client = RedisClient()
        try:
            assert client.is_connected is False
            with pytest.raises(RuntimeError):
                _ = client.client
        finally:
            RedisClient._instance = None

    @pytest.mark.asyncio
    async def test_set_nx_first_time(self, client: RedisClient, raw: AsyncMock) -> None:
        assert await client.set_nx("webhook:evt_1", "1", ttl=60) is True

        raw.set.assert_awaited_once_with("wash:webhook:evt_1", "1", ex=60, nx=True)

    @pytest.mark.asyncio
    async def test_set_nx_existing_key(self, client: RedisClient, raw: AsyncMock) -> None:
        raw.set.return_value = None

        assert await client.set_nx("webhook:evt_1", "1") is False

    @pytest.mark.asyncio
    async def test_keys_are_namespaced(self, client: RedisClient, raw: AsyncMock) -> None:
        await client.delete("webhook:evt_1")

        raw.delete.assert_awaited_once_with("wash:webhook:evt_1")

    @pytest.mark.asyncio
    async def test_publish_channel_not_namespaced(self, client: RedisClient, raw: AsyncMock) -> None:
        """Каналы pub/sub передаются как есть: префикс уже в имени."""
        receivers = await client.publish("wash:rt:room:u-1", {"event": "notification", "data": {}})

        assert receivers == 2
        channel, message = raw.publish.await_args.args
        assert channel == "wash:rt:room:u-1"
        assert '"event": "notification"' in message

    def test_pubsub(self, client: RedisClient) -> None:
        assert client.pubsub() == "pubsub"

    @pytest.mark.asyncio
    async def test_health_check_failure(self, client: RedisClient, raw: AsyncMock) -> None:
        raw.ping.side_effect = ConnectionError("down")

        assert await client.health_check() is False

    @pytest.mark.asyncio
    async def test_connect_uses_from_url(self, raw: AsyncMock) -> None:
        RedisClient._instance = None
        client = RedisClient()
        try:
            with patch("src.infra.redis_client.redis.from_url", return_value=raw) as from_url:
                await client.connect(url="redis://localhost:6379/0", max_connections=5, namespace="test")

            from_url.assert_called_once()
            raw.ping.assert_awaited_once()
            assert client._make_key("k") == "test:k"

            await client.disconnect()
            raw.aclose.assert_awaited_once()
            assert client.is_connected is False
        finally:
            client._client = None
            RedisClient._instance = None
