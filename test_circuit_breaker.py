import unittest
from unittest.mock import AsyncMock, patch

import httpx

from infrastructure.circuit_breaker import (
    HealthCheckRegistry,
    NotionHealthChecker,
    RedisHealthChecker,
    SlackHealthChecker,
)
from infrastructure.notion_client import NotionClient
from infrastructure.slack_client import SlackClient


class TestHealthCheckers(unittest.IsolatedAsyncioTestCase):

    async def test_slack_auth_test(self):
        ok = SlackClient("t", base_url="https://slack.test/api",
                         transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"ok": True})))
        bad = SlackClient("t", base_url="https://slack.test/api",
                          transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"ok": False,
                                                                                              "error": "invalid_auth"})))
        self.assertTrue(await SlackHealthChecker(ok).is_alive())
        self.assertFalse(await SlackHealthChecker(bad).is_alive())
        await ok.close()
        await bad.close()

    async def test_notion_users_me(self):
        ok = NotionClient("k", base_url="https://notion.test/v1",
                          transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"object": "user"})))
        bad = NotionClient("k", base_url="https://notion.test/v1",
                           transport=httpx.MockTransport(lambda r: httpx.Response(401, json={"object": "error"})))
        self.assertTrue(await NotionHealthChecker(ok).is_alive())
        self.assertFalse(await NotionHealthChecker(bad).is_alive())
        await ok.close()
        await bad.close()

    async def test_redis_ping(self):
        redis = AsyncMock()
        self.assertTrue(await RedisHealthChecker(redis).is_alive())
        redis.ping.side_effect = ConnectionError("refused")
        self.assertFalse(await RedisHealthChecker(redis).is_alive())


class TestHealthCheckRegistry(unittest.IsolatedAsyncioTestCase):

    async def test_failure_then_recovery_is_tracked(self):
        checker = AsyncMock()
        checker.is_alive.side_effect = [False, False, True]
        registry = HealthCheckRegistry(checker)

        self.assertFalse(await registry.is_healthy())
        self.assertFalse(await registry.is_healthy())
        self.assertEqual(list(registry.recovery_attempts.values()), [1])
        self.assertTrue(await registry.is_healthy())
        self.assertEqual(registry.last_failures, {})

    @patch("infrastructure.circuit_breaker.asyncio.sleep", new_callable=AsyncMock)
    async def test_backoff_waits_before_rechecking(self, sleep):
        checker = AsyncMock()
        checker.is_alive.side_effect = [False, True]
        registry = HealthCheckRegistry(checker)

        self.assertTrue(await registry.check_with_backoff(max_wait=30, initial_delay=2))
        sleep.assert_awaited_once_with(2)


if __name__ == '__main__':
    unittest.main()
