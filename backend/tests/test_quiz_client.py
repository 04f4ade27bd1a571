"""Tests for the quiz HTTP client and the controller that feeds the state machine."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from conftest import FakeProvider, chat_response, no_sleep
from lingua_quiz.errors import QuestionFetchError
from lingua_quiz.llm_client import CHAT_COMPLETION, ChatCompletionClient, ProviderConfig
from lingua_quiz.main import create_app
from lingua_quiz.models import Language, Level
from lingua_quiz.question_service import QuestionService
from lingua_quiz.quiz.api_client import QuestionsAPI
from lingua_quiz.quiz.controller import QuizController
from lingua_quiz.quiz.machine import QuizMachine, QuizPhase, Screen


def _api_for(service: QuestionService, **kwargs) -> QuestionsAPI:
	transport = httpx.ASGITransport(app=create_app(service))
	return QuestionsAPI("http://quiz.test", transport=transport, **kwargs)


def _machine_at_band_select() -> QuizMachine:
	machine = QuizMachine(questions_per_band=6)
	machine.start()
	machine.select_language(Language.FRENCH)
	machine.select_level(Level.BASIC)
	return machine


def test_fetch_questions_round_trip(sample_questions):
	provider = FakeProvider("Gemini", result=sample_questions)

	async def run():
		async with _api_for(QuestionService([provider])) as api:
			return await api.fetch_questions(Language.FRENCH, Level.BASIC, 1, 3)

	questions = asyncio.run(run())
	assert questions == sample_questions


def test_server_error_message_is_surfaced():
	def handler(request: httpx.Request) -> httpx.Response:
		return httpx.Response(500, json={"error": "Gemini HTTP 503", "hint": "retry"})

	async def run():
		async with QuestionsAPI("http://quiz.test", transport=httpx.MockTransport(handler)) as api:
			await api.fetch_questions(Language.FRENCH, Level.BASIC, 1, 6)

	with pytest.raises(QuestionFetchError) as exc_info:
		asyncio.run(run())
	assert exc_info.value.reason == "Gemini HTTP 503"
	assert exc_info.value.status == 500


def test_timeout_is_reported():
	def handler(request: httpx.Request) -> httpx.Response:
		raise httpx.ReadTimeout("slow", request=request)

	async def run():
		async with QuestionsAPI("http://quiz.test", timeout=20, transport=httpx.MockTransport(handler)) as api:
			await api.fetch_questions(Language.FRENCH, Level.BASIC, 1, 6)

	with pytest.raises(QuestionFetchError) as exc_info:
		asyncio.run(run())
	assert exc_info.value.reason == "Request timed out after 20s"


def test_malformed_payload_is_rejected():
	def handler(request: httpx.Request) -> httpx.Response:
		return httpx.Response(200, json=[{"question": "no answer"}])

	async def run():
		async with QuestionsAPI("http://quiz.test", transport=httpx.MockTransport(handler)) as api:
			await api.fetch_questions(Language.FRENCH, Level.BASIC, 1, 6)

	with pytest.raises(QuestionFetchError):
		asyncio.run(run())


def test_controller_loads_band(sample_questions):
	machine = _machine_at_band_select()
	provider = FakeProvider("Gemini", result=sample_questions)

	async def run():
		async with _api_for(QuestionService([provider])) as api:
			return await QuizController(machine, api).begin_band(2)

	assert asyncio.run(run()) is True
	assert machine.phase == QuizPhase.READY
	assert machine.progress == (1, 3)
	assert provider.calls[0][1] == 6


def test_empty_model_output_ends_on_error_screen():
	def handler(request: httpx.Request) -> httpx.Response:
		return chat_response("```json\n```")

	clients = [
		ChatCompletionClient(
			ProviderConfig(name, CHAT_COMPLETION, "KEY", "key", "m", "https://llm.test/v1"),
			transport=httpx.MockTransport(handler),
			sleep=no_sleep,
		)
		for name in ("OpenAI", "Perplexity")
	]
	machine = _machine_at_band_select()

	async def run():
		async with _api_for(QuestionService(clients, fallback=True)) as api:
			await QuizController(machine, api).begin_band(1)

	asyncio.run(run())
	assert machine.screen == Screen.QUIZ
	assert machine.phase == QuizPhase.ERROR
	assert machine.current_question is None
	assert "empty" in machine.error


def test_controller_timeout_aborts_fetch():
	class SlowAPI:
		async def fetch_questions(self, *args):
			await asyncio.sleep(5)

	machine = _machine_at_band_select()
	asyncio.run(QuizController(machine, SlowAPI(), timeout=0.05).begin_band(1))
	assert machine.phase == QuizPhase.ERROR
	assert "timed out" in machine.error


def test_export_report_via_server(sample_questions):
	machine = _machine_at_band_select()
	request = machine.select_band(1)
	machine.questions_loaded(request, sample_questions)
	for answer in ("Bonjour", "merci!", "parles"):
		machine.submit_answer(answer)
		machine.next_question()

	async def run():
		async with _api_for(QuestionService([])) as api:
			return await api.export_report("Sam", Language.FRENCH, Level.BASIC, machine.history)

	filename, content = asyncio.run(run())
	assert filename.startswith("lingua-quiz-report-french-basic-")
	assert content.startswith(b"%PDF")


def test_controller_export_needs_history():
	controller = QuizController(_machine_at_band_select(), api=None)
	with pytest.raises(ValueError):
		controller.export_report("Sam")


def test_request_payload_shape():
	seen = []

	def handler(request: httpx.Request) -> httpx.Response:
		seen.append(json.loads(request.content))
		return httpx.Response(200, json=[])

	async def run():
		async with QuestionsAPI("http://quiz.test", transport=httpx.MockTransport(handler)) as api:
			return await api.fetch_questions(Language.ITALIAN, Level.ADVANCED, 4, 6)

	assert asyncio.run(run()) == []
	assert seen == [{"language": "Italian", "level": "Advanced", "band": 4, "count": 6}]
