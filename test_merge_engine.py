import unittest
from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai

from core.exceptions import MergeError, MergeParseError
from infrastructure.llm_client import LLMClient
from models.digest import Message
from services.merge_engine import SYSTEM_PROMPT, MergeEngine, build_prompt, parse_merge_response

MESSAGES = [Message("A", "200"), Message("B", "100")]


class TestParseMergeResponse(unittest.TestCase):

    def test_plain_sections(self):
        topics, changelog = parse_merge_response("UPDATED TOPICS SUMMARY T1 UPDATED CHANGELOG C1")
        self.assertEqual((topics, changelog), ("T1", "C1"))

    def test_markdown_headings(self):
        response = (
            "## UPDATED TOPICS SUMMARY\n\n- Deploys: moved to Fridays\n\n"
            "**UPDATED CHANGELOG:**\n\n### 2026-10-19\n- Deploy day changed"
        )
        topics, changelog = parse_merge_response(response)
        self.assertEqual(topics, "- Deploys: moved to Fridays")
        self.assertEqual(changelog, "### 2026-10-19\n- Deploy day changed")

    def test_missing_delimiter(self):
        with self.assertRaises(MergeParseError):
            parse_merge_response("UPDATED TOPICS SUMMARY everything in one blob")

    def test_empty_changelog_section(self):
        with self.assertRaises(MergeParseError):
            parse_merge_response("UPDATED TOPICS SUMMARY T1\nUPDATED CHANGELOG\n   ")

    def test_empty_topics_section(self):
        with self.assertRaises(MergeParseError):
            parse_merge_response("UPDATED TOPICS SUMMARY\nUPDATED CHANGELOG C1")

    def test_lower_case_words_in_prose_are_not_a_header(self):
        response = "UPDATED TOPICS SUMMARY\n- Tooling: the team updated changelog tooling.\n\nUPDATED CHANGELOG\nC1"
        topics, changelog = parse_merge_response(response)
        self.assertEqual(topics, "- Tooling: the team updated changelog tooling.")
        self.assertEqual(changelog, "C1")

    def test_header_on_its_own_line_wins_over_inline_mention(self):
        response = "UPDATED TOPICS SUMMARY\n- Docs: see UPDATED CHANGELOG below\n\nUPDATED CHANGELOG\nC1"
        topics, changelog = parse_merge_response(response)
        self.assertEqual(topics, "- Docs: see UPDATED CHANGELOG below")
        self.assertEqual(changelog, "C1")

    def test_preamble_before_topics_header_is_dropped(self):
        response = "Sure, here you go.\n\nUPDATED TOPICS SUMMARY\nT1\n\nUPDATED CHANGELOG\nC1"
        self.assertEqual(parse_merge_response(response), ("T1", "C1"))

    def test_lower_case_headers_are_not_recognised(self):
        with self.assertRaises(MergeParseError):
            parse_merge_response("updated topics summary T1 updated changelog C1")


class TestBuildPrompt(unittest.TestCase):

    def test_prompt_embeds_messages_oldest_first_and_documents(self):
        prompt = build_prompt(MESSAGES, "T0", "C0", today=date(2026, 10, 19))
        self.assertLess(prompt.index("B\nA"), prompt.index("Current Topics Summary:"))
        self.assertIn("Current Topics Summary:\nT0", prompt)
        self.assertIn("Current Changelog:\nC0", prompt)
        self.assertIn("2026-10-19", prompt)
        self.assertIn("UPDATED TOPICS SUMMARY and UPDATED CHANGELOG", prompt)


class TestMergeEngine(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.llm = AsyncMock()
        self.engine = MergeEngine(self.llm, clock=lambda: date(2026, 10, 19))

    async def test_successful_merge(self):
        self.llm.complete.return_value = "UPDATED TOPICS SUMMARY T1 UPDATED CHANGELOG C1"

        result = await self.engine.merge(MESSAGES, "T0", "C0")

        self.assertEqual((result.topics, result.changelog, result.merged), ("T1", "C1", True))
        system_prompt, user_prompt = self.llm.complete.call_args[0]
        self.assertEqual(system_prompt, SYSTEM_PROMPT)
        self.assertIn("T0", user_prompt)

    async def test_missing_delimiter_falls_back_to_originals(self):
        self.llm.complete.return_value = "Here is a summary without sections"

        result = await self.engine.merge(MESSAGES, "T0", "C0")

        self.assertEqual((result.topics, result.changelog, result.merged), ("T0", "C0", False))

    async def test_call_failure_falls_back_to_originals(self):
        self.llm.complete.side_effect = MergeError("No response from AI")
        result = await self.engine.merge(MESSAGES, "T0", "C0")
        self.assertEqual((result.topics, result.changelog), ("T0", "C0"))
        self.assertFalse(result.merged)

    async def test_unexpected_response_shape_falls_back(self):
        self.llm.complete.return_value = None
        result = await self.engine.merge(MESSAGES, "T0", "C0")
        self.assertFalse(result.merged)


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class TestLLMClient(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.openai = MagicMock()
        self.openai.chat.completions.create = AsyncMock()
        self.llm = LLMClient(model="gpt-4", temperature=0.2, client=self.openai)

    async def test_complete_sends_system_and_user_messages(self):
        self.openai.chat.completions.create.return_value = completion("hello")

        self.assertEqual(await self.llm.complete("sys", "user"), "hello")

        kwargs = self.openai.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "gpt-4")
        self.assertEqual(kwargs["temperature"], 0.2)
        self.assertEqual(kwargs["messages"], [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "user"},
        ])

    async def test_empty_reply_raises(self):
        self.openai.chat.completions.create.return_value = completion("")
        with self.assertRaises(MergeError):
            await self.llm.complete("sys", "user")

    async def test_no_choices_raises(self):
        self.openai.chat.completions.create.return_value = SimpleNamespace(choices=[])
        with self.assertRaises(MergeError):
            await self.llm.complete("sys", "user")

    async def test_api_error_is_wrapped(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        self.openai.chat.completions.create.side_effect = openai.APIConnectionError(request=request)
        with self.assertRaises(MergeError):
            await self.llm.complete("sys", "user")


if __name__ == '__main__':
    unittest.main()
