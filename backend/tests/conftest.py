"""Pytest configuration for ensuring project modules resolve correctly."""

from __future__ import annotations

import json
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
	sys.path.insert(0, str(PROJECT_ROOT))

import httpx
import pytest

from lingua_quiz.llm_client import CHAT_COMPLETION, GEMINI, ProviderConfig
from lingua_quiz.models import Question


def chat_response(content, status_code: int = 200) -> httpx.Response:
	return httpx.Response(status_code, json={"choices": [{"message": {"content": content}}]})


def gemini_response(text, status_code: int = 200) -> httpx.Response:
	return httpx.Response(status_code, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def items_json(*items) -> str:
	return json.dumps(list(items))


class FakeProvider:
	"""Stands in for a ProviderClient inside QuestionService tests."""

	def __init__(self, name: str, result=None, error: Exception | None = None) -> None:
		self.name = name
		self.result = result or []
		self.error = error
		self.calls = []
		self.closed = False

	async def generate_questions(self, prompt: str, count: int):
		self.calls.append((prompt, count))
		if self.error is not None:
			raise self.error
		return self.result

	async def aclose(self) -> None:
		self.closed = True


async def no_sleep(_seconds: float) -> None:
	return None


@pytest.fixture()
def chat_config() -> ProviderConfig:
	return ProviderConfig("OpenAI", CHAT_COMPLETION, "OPENAI_API_KEY", "sk-test", "gpt-4.1-mini", "https://llm.test/v1/chat/completions")


@pytest.fixture()
def gemini_config() -> ProviderConfig:
	return ProviderConfig("Gemini", GEMINI, "GEMINI_API_KEY", "g-test", "gemini-2.5-flash", "https://gemini.test/v1beta/models")


@pytest.fixture()
def sample_questions():
	return [
		Question(
			question="Hello",
			answer="Bonjour",
			options=["Salut", "Bonjour", "Merci"],
			type="multiple-choice",
			direction="en-to-target",
			questionLanguage="en",
			explanation="Bonjour is the standard greeting.",
		),
		Question(
			question="Translate: thank you",
			answer="Merci",
			type="type-answer",
			direction="en-to-target",
			questionLanguage="en",
			explanation="Merci means thank you.",
		),
		Question(
			question="Je ___ français.",
			answer="parle",
			options=["parle", "parles", "parlons"],
			type="fill-in-the-blanks",
			direction="target-to-target",
			questionLanguage="target",
			explanation="First person singular of parler.",
		),
	]
