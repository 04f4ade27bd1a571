from __future__ import annotations
import asyncio
import logging
from typing import Optional

from ..errors import QuestionFetchError
from ..report import RenderedReport, render_report
from ..settings import settings
from .api_client import QuestionsAPI
from .machine import FetchRequest, QuizMachine

logger = logging.getLogger(__name__)


class QuizController:
	"""Runs the fetches a QuizMachine asks for and feeds the results back into it."""

	def __init__(self, machine: QuizMachine, api: QuestionsAPI, *, timeout: Optional[float] = None) -> None:
		self.machine = machine
		self.api = api
		self.timeout = timeout or settings.client_timeout_seconds

	async def _load(self, request: FetchRequest) -> bool:
		try:
			questions = await asyncio.wait_for(
				self.api.fetch_questions(request.language, request.level, request.band, request.count),
				timeout=self.timeout,
			)
		except asyncio.TimeoutError:
			return self.machine.fetch_failed(request, f"Request timed out after {self.timeout:.0f}s")
		except QuestionFetchError as e:
			return self.machine.fetch_failed(request, e.reason)
		return self.machine.questions_loaded(request, questions)

	async def begin_band(self, band: int) -> bool:
		return await self._load(self.machine.select_band(band))

	async def retry(self) -> bool:
		return await self._load(self.machine.retry())

	async def next_band(self) -> bool:
		return await self._load(self.machine.next_band())

	def export_report(self, learner: str) -> RenderedReport:
		machine = self.machine
		if not machine.history or machine.language is None or machine.level is None:
			raise ValueError("No completed bands to export yet")
		return render_report(machine.history, learner=learner, language=machine.language, level=machine.level)
