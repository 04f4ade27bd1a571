"""Tests for vendor HTTP calls, retry budgets and credential handling."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from conftest import chat_response, gemini_response, items_json, no_sleep
from lingua_quiz.errors import (
	EmptyModelOutput,
	MalformedJSON,
	MissingCredential,
	NoUsableQuestions,
	ProviderHTTPError,
)
from lingua_quiz.llm_client import (
	ChatCompletionClient,
	GeminiClient,
	ProviderClient,
	ProviderConfig,
	build_client,
	resolve_provider_configs,
)
from lingua_quiz.settings import Settings

GOOD_ITEMS = items_json({"question": "Hello", "answer": "Bonjour", "options": ["Bonjour", "Salut"]})


def _scripted(responses, seen=None):
	queue = list(responses)

	def handler(request: httpx.Request) -> httpx.Response:
		if seen is not None:
			seen.append(request)
		return queue.pop(0)

	return httpx.MockTransport(handler)


def _sleep_recorder():
	delays = []

	async def sleep(seconds: float) -> None:
		delays.append(seconds)

	return sleep, delays


def test_missing_key_raises(chat_config):
	config = ProviderConfig("Groq", chat_config.kind, "GROQ_API_KEY", None, "m", "https://x.test")
	with pytest.raises(MissingCredential) as exc_info:
		ChatCompletionClient(config)
	assert str(exc_info.value) == "GROQ_API_KEY is not set"


def test_chat_request_shape(chat_config):
	seen = []
	client = ChatCompletionClient(chat_config, transport=_scripted([chat_response("  hi  ")], seen), sleep=no_sleep)
	assert asyncio.run(client.complete("prompt text")) == "hi"
	request = seen[0]
	assert request.headers["Authorization"] == "Bearer sk-test"
	body = json.loads(request.content)
	assert body["model"] == "gpt-4.1-mini"
	assert body["messages"] == [{"role": "user", "content": "prompt text"}]
	assert body["temperature"] == 0.2


def test_gemini_request_shape(gemini_config):
	seen = []
	client = GeminiClient(gemini_config, transport=_scripted([gemini_response("[]")], seen), sleep=no_sleep)
	assert asyncio.run(client.complete("prompt text")) == "[]"
	request = seen[0]
	assert request.url.path == "/v1beta/models/gemini-2.5-flash:generateContent"
	assert request.url.params["key"] == "g-test"
	body = json.loads(request.content)
	assert body["contents"][0]["parts"][0]["text"] == "prompt text"
	assert body["generationConfig"]["response_mime_type"] == "application/json"


def test_gemini_output_text_fallback(gemini_config):
	response = httpx.Response(200, json={"candidates": [{"output_text": "[1]"}]})
	client = GeminiClient(gemini_config, transport=_scripted([response]), sleep=no_sleep)
	assert asyncio.run(client.complete("p")) == "[1]"


@pytest.mark.parametrize("status", [429, 503])
def test_transient_status_is_retried_with_fixed_delay(chat_config, status):
	sleep, delays = _sleep_recorder()
	transport = _scripted([httpx.Response(status), httpx.Response(status), chat_response("ok")])
	client = ChatCompletionClient(chat_config, transport=transport, sleep=sleep, http_retries=2, retry_delay=2.0)
	assert asyncio.run(client.complete("p")) == "ok"
	assert delays == [2.0, 2.0]


def test_retry_budget_is_bounded(chat_config):
	seen = []
	sleep, delays = _sleep_recorder()
	transport = _scripted([httpx.Response(429)] * 5, seen)
	client = ChatCompletionClient(chat_config, transport=transport, sleep=sleep, http_retries=2)
	with pytest.raises(ProviderHTTPError) as exc_info:
		asyncio.run(client.complete("p"))
	assert exc_info.value.status == 429
	assert len(seen) == 3
	assert len(delays) == 2


def test_other_errors_fail_immediately(chat_config):
	seen = []
	transport = _scripted([httpx.Response(401, text="bad key"), chat_response("never")], seen)
	client = ChatCompletionClient(chat_config, transport=transport, sleep=no_sleep)
	with pytest.raises(ProviderHTTPError) as exc_info:
		asyncio.run(client.complete("p"))
	assert exc_info.value.status == 401
	assert str(exc_info.value) == "OpenAI HTTP 401"
	assert len(seen) == 1


@pytest.mark.parametrize("content", ["", "   ", None])
def test_blank_output_raises(chat_config, content):
	client = ChatCompletionClient(chat_config, transport=_scripted([chat_response(content)]), sleep=no_sleep)
	with pytest.raises(EmptyModelOutput):
		asyncio.run(client.complete("p"))


def test_malformed_json_is_retried_once(chat_config):
	seen = []
	transport = _scripted([chat_response("[{oops"), chat_response(GOOD_ITEMS)], seen)
	client = ChatCompletionClient(chat_config, transport=transport, sleep=no_sleep)
	questions = asyncio.run(client.generate_questions("p", 6))
	assert [q.answer for q in questions] == ["Bonjour"]
	assert len(seen) == 2


def test_persistent_malformed_json_propagates(chat_config):
	seen = []
	transport = _scripted([chat_response("[{oops"), chat_response("[{still broken"), chat_response(GOOD_ITEMS)], seen)
	client = ChatCompletionClient(chat_config, transport=transport, sleep=no_sleep)
	with pytest.raises(MalformedJSON):
		asyncio.run(client.generate_questions("p", 6))
	assert len(seen) == 2


def test_other_sanitizer_errors_are_not_retried(chat_config):
	seen = []
	transport = _scripted([chat_response(items_json({"question": ""})), chat_response(GOOD_ITEMS)], seen)
	client = ChatCompletionClient(chat_config, transport=transport, sleep=no_sleep)
	with pytest.raises(NoUsableQuestions):
		asyncio.run(client.generate_questions("p", 6))
	assert len(seen) == 1


def test_resolve_provider_configs_keeps_priority_order(monkeypatch):
	for var in ("GEMINI_API_KEY", "OPENAI_API_KEY", "GROQ_API_KEY", "PERPLEXITY_API_KEY"):
		monkeypatch.delenv(var, raising=False)
	cfg = Settings(PERPLEXITY_API_KEY="p", GEMINI_API_KEY="g", GROQ_API_KEY="q", _env_file=None)
	names = [c.name for c in resolve_provider_configs(cfg)]
	assert names == ["Gemini", "Groq", "Perplexity"]
	assert len(resolve_provider_configs(cfg, include_missing=True)) == 4


def test_build_client_picks_vendor_class(chat_config, gemini_config):
	assert isinstance(build_client(gemini_config), GeminiClient)
	assert isinstance(build_client(chat_config), ChatCompletionClient)


def test_base_client_cannot_be_instantiated(chat_config):
	with pytest.raises(TypeError):
		ProviderClient(chat_config)
