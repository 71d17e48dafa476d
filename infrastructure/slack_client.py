# infrastructure/slack_client.py
import httpx

from config.settings import settings
from core.exceptions import MessageSourceError
from core.logger import logger


class SlackClient:
    """
    Thin async wrapper over the Slack Web API methods the digest needs.

    Every call returns the decoded JSON body. HTTP and transport failures
    surface as httpx errors; a body with `ok: false` raises MessageSourceError.
    """

    def __init__(self, token: str, base_url: str = None, timeout: float = None, transport=None):
        self.base_url = (base_url or settings.SLACK_BASE_URL).rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout or settings.HTTP_TIMEOUT,
            transport=transport,
        )

    async def _call(self, method: str, params: dict = None) -> dict:
        response = await self.client.get(f"/{method}", params=params or {})
        response.raise_for_status()
        body = response.json()
        if not body.get("ok"):
            raise MessageSourceError(f"Slack {method} failed: {body.get('error', 'unknown_error')}")
        return body

    async def conversations_history(self, channel: str, oldest: str, limit: int = 200, cursor: str = None) -> dict:
        params = {"channel": channel, "oldest": oldest, "limit": limit}
        if cursor:
            params["cursor"] = cursor
        logger.debug(f"conversations.history channel={channel} oldest={oldest} cursor={cursor}")
        return await self._call("conversations.history", params)

    async def auth_test(self) -> dict:
        return await self._call("auth.test")

    async def close(self):
        await self.client.aclose()
