# services/merge_engine.py
import re
from datetime import date

from core.exceptions import MergeParseError
from core.logger import logger
from models.digest import Message, MergeResult

TOPICS_HEADER = "UPDATED TOPICS SUMMARY"
CHANGELOG_HEADER = "UPDATED CHANGELOG"

SYSTEM_PROMPT = "You are a helpful assistant that organizes and summarizes information."

USER_PROMPT = """You are an AI assistant helping to organize and summarize Slack messages.

Here are the new Slack messages:
{messages}

Current Topics Summary:
{topics}

Current Changelog:
{changelog}

Please update both the Topics Summary and the Changelog based on the new messages.
For the Topics Summary, integrate new information into existing topics or create new topics as needed.
For the Changelog, add a new section for {today} with a summary of key updates.

Respond with two sections: {topics_header} and {changelog_header}.
"""

# Headers are upper case and may arrive wrapped in Markdown, e.g. "## UPDATED CHANGELOG" or "**UPDATED CHANGELOG:**"
_DECORATION = r"[ \t#*]*"
_TRAILER = r"[ \t*:]*"


def _header_patterns(header: str) -> tuple[re.Pattern, re.Pattern]:
    words = r"[ \t]+".join(header.split())
    return (
        re.compile(rf"^{_DECORATION}{words}{_TRAILER}", re.MULTILINE),
        re.compile(rf"{_DECORATION}{words}{_TRAILER}"),
    )


_CHANGELOG_PATTERNS = _header_patterns(CHANGELOG_HEADER)
_TOPICS_PATTERNS = _header_patterns(TOPICS_HEADER)


def _find_header(patterns, text: str):
    """First header that starts a line, else the first inline occurrence."""
    line_pattern, inline_pattern = patterns
    return line_pattern.search(text) or inline_pattern.search(text)


def build_prompt(messages: list[Message], topics: str, changelog: str, today: date = None) -> str:
    # Messages arrive newest-first; the model reads them in the order they were written
    text = "\n".join(message.text for message in reversed(messages))
    return USER_PROMPT.format(
        messages=text,
        topics=topics,
        changelog=changelog,
        today=(today or date.today()).isoformat(),
        topics_header=TOPICS_HEADER,
        changelog_header=CHANGELOG_HEADER,
    )


def parse_merge_response(response: str) -> tuple[str, str]:
    """
    Splits a completion into (topics, changelog).

    Anything before the topics header (a model preamble) is discarded.
    Raises MergeParseError when the changelog header is missing or either
    section comes back empty.
    """
    changelog_match = _find_header(_CHANGELOG_PATTERNS, response)
    if not changelog_match:
        raise MergeParseError(f"Response has no {CHANGELOG_HEADER} section")

    head = response[:changelog_match.start()]
    topics_match = _find_header(_TOPICS_PATTERNS, head)
    topics = (head[topics_match.end():] if topics_match else head).strip()
    changelog = response[changelog_match.end():].strip()
    if not topics:
        raise MergeParseError("Updated topics summary is empty")
    if not changelog:
        raise MergeParseError("Updated changelog is empty")
    return topics, changelog


class MergeEngine:
    """Folds new messages into both documents; falls back to the originals on any failure."""

    def __init__(self, llm, clock=date.today):
        self.llm = llm
        self.clock = clock

    async def merge(self, messages: list[Message], topics: str, changelog: str) -> MergeResult:
        prompt = build_prompt(messages, topics, changelog, today=self.clock())
        try:
            response = await self.llm.complete(SYSTEM_PROMPT, prompt)
            updated_topics, updated_changelog = parse_merge_response(response)
        except Exception as e:
            logger.error(f"Merge failed, keeping current documents: {e}")
            return MergeResult(topics=topics, changelog=changelog, merged=False)

        logger.info(f"Merged {len(messages)} messages "
                    f"(topics {len(topics)}->{len(updated_topics)} chars, "
                    f"changelog {len(changelog)}->{len(updated_changelog)} chars)")
        return MergeResult(topics=updated_topics, changelog=updated_changelog)
