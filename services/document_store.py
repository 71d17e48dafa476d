# services/document_store.py
import httpx

from core.exceptions import DocumentStoreError
from core.logger import logger

MAX_SEGMENT_LENGTH = 2000  # Notion limit per rich text object
MAX_SEGMENTS = 100  # Notion limit per rich text array

# Transport failures plus bodies that are not JSON or not shaped like Notion blocks
STORE_ERRORS = (httpx.HTTPError, ValueError, KeyError, AttributeError, TypeError)

TEXT_BLOCK_TYPES = {
    "paragraph",
    "heading_1",
    "heading_2",
    "heading_3",
    "bulleted_list_item",
    "numbered_list_item",
    "quote",
    "callout",
    "to_do",
    "toggle",
    "code",
}


def block_text(block: dict) -> str | None:
    """Plain text of a text-bearing block, None for any other block type."""
    block_type = block.get("type")
    if block_type not in TEXT_BLOCK_TYPES:
        return None
    rich_text = (block.get(block_type) or {}).get("rich_text") or []
    return "".join(
        item.get("plain_text") or (item.get("text") or {}).get("content", "")
        for item in rich_text
    )


def paragraph_block(text: str) -> dict:
    """One paragraph block carrying `text`, split into segments Notion accepts."""
    segments = [text[i:i + MAX_SEGMENT_LENGTH] for i in range(0, len(text), MAX_SEGMENT_LENGTH)]
    return {
        "object": "block",
        "type": "paragraph",
        "paragraph": {
            "rich_text": [{"type": "text", "text": {"content": segment}} for segment in segments]
        },
    }


class NotionDocumentStore:
    """
    Stores each document as the child blocks of a Notion page.

    `replace` deletes every child and then appends one paragraph. The two
    phases are not atomic: a failure after the deletes leaves the page
    empty until the next successful run.
    """

    def __init__(self, client):
        self.client = client

    async def read(self, document_id: str) -> str:
        try:
            blocks = await self.client.list_children(document_id)
            parts = [block_text(block) for block in blocks]
        except STORE_ERRORS as e:
            logger.error(f"Error reading Notion page {document_id}: {e}")
            return ""

        return "\n\n".join(part for part in parts if part).strip()

    async def replace(self, document_id: str, text: str):
        if len(text) > MAX_SEGMENT_LENGTH * MAX_SEGMENTS:
            raise DocumentStoreError(document_id, f"document of {len(text)} characters exceeds the block limit")

        try:
            existing = await self.client.list_children(document_id)
            for block in existing:
                await self.client.delete_block(block["id"])
            await self.client.append_children(document_id, [paragraph_block(text)])
        except STORE_ERRORS as e:
            raise DocumentStoreError(document_id, f"replace failed: {e}") from e

        logger.info(f"Replaced {len(existing)} blocks in Notion page {document_id}")
