# infrastructure/notion_client.py
import httpx

from config.settings import settings
from core.logger import logger

PAGE_SIZE = 100


class NotionClient:
    """Async access to the Notion block endpoints used for document storage."""

    def __init__(self, api_key: str, base_url: str = None, version: str = None, timeout: float = None,
                 transport=None):
        self.base_url = (base_url or settings.NOTION_BASE_URL).rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Notion-Version": version or settings.NOTION_VERSION,
                "Content-Type": "application/json",
            },
            timeout=timeout or settings.HTTP_TIMEOUT,
            transport=transport,
        )

    async def list_children(self, block_id: str) -> list[dict]:
        """Returns every child block under `block_id`, following pagination."""
        blocks = []
        cursor = None
        while True:
            params = {"page_size": PAGE_SIZE}
            if cursor:
                params["start_cursor"] = cursor
            response = await self.client.get(f"/blocks/{block_id}/children", params=params)
            response.raise_for_status()
            body = response.json()
            blocks.extend(body.get("results", []))
            cursor = body.get("next_cursor")
            if not body.get("has_more") or not cursor:
                break
        logger.debug(f"Listed {len(blocks)} blocks under {block_id}")
        return blocks

    async def delete_block(self, block_id: str):
        response = await self.client.delete(f"/blocks/{block_id}")
        response.raise_for_status()

    async def append_children(self, block_id: str, children: list[dict]) -> dict:
        response = await self.client.patch(f"/blocks/{block_id}/children", json={"children": children})
        response.raise_for_status()
        return response.json()

    async def users_me(self) -> dict:
        response = await self.client.get("/users/me")
        response.raise_for_status()
        return response.json()

    async def close(self):
        await self.client.aclose()
