# services/message_source.py
import httpx

from config.settings import settings
from core.exceptions import MessageSourceError
from core.logger import logger
from models.digest import Message
from services.checkpoint_store import format_timestamp


def order_newest_first(messages: list[Message]) -> list[Message]:
    """Sorts by numeric timestamp, newest first, warning if the input was in any other order."""
    ordered = sorted(messages, key=lambda m: m.timestamp, reverse=True)
    if ordered != messages:
        logger.warning(f"Message batch of {len(messages)} was not newest-first; reordered")
    return ordered


class SlackMessageSource:
    """
    Yields channel messages newer than a checkpoint.

    Contract: `fetch` returns messages strictly newer than `since`, newest
    first. Any API failure raises MessageSourceError.
    """

    def __init__(self, client, channel_id: str, page_size: int = None):
        self.client = client
        self.channel_id = channel_id
        self.page_size = page_size or settings.SLACK_PAGE_SIZE

    async def fetch(self, since: float) -> list[Message]:
        payloads = []
        cursor = None
        pages = 0
        try:
            while True:
                body = await self.client.conversations_history(
                    self.channel_id, oldest=format_timestamp(since), limit=self.page_size, cursor=cursor
                )
                payloads.extend(body.get("messages") or [])
                pages += 1
                cursor = (body.get("response_metadata") or {}).get("next_cursor")
                if not body.get("has_more") or not cursor:
                    break
        except httpx.HTTPError as e:
            raise MessageSourceError(f"Slack history request failed: {e}") from e
        except (ValueError, AttributeError, TypeError) as e:
            raise MessageSourceError(f"Slack history response is malformed: {e}") from e

        messages = []
        for payload in payloads:
            try:
                message = Message.from_payload(payload)
            except ValueError as e:
                logger.warning(f"Dropping message: {e}")
                continue
            except (AttributeError, TypeError) as e:
                raise MessageSourceError(f"Slack message is not an object: {payload!r}") from e
            if message.timestamp > since:
                messages.append(message)

        logger.info(f"Fetched {len(messages)} new messages from {self.channel_id} in {pages} page(s)")
        return order_newest_first(messages)
