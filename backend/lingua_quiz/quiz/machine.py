"""
Client-side quiz flow.

Screens move welcome -> language-select -> level-select -> band-select ->
quiz -> report through an explicit transition table; any other move raises
InvalidTransition. Inside the quiz screen a band is loading, ready or in
error. Finished bands are folded into BandReports kept in the session
history until the learner changes language or resets.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from ..errors import InvalidTransition
from ..models import AnswerRecord, BandReport, Language, Level, MAX_BAND, MIN_BAND, Question

logger = logging.getLogger(__name__)


class Screen(str, Enum):
	WELCOME = "welcome"
	LANGUAGE_SELECT = "language-select"
	LEVEL_SELECT = "level-select"
	BAND_SELECT = "band-select"
	QUIZ = "quiz"
	REPORT = "report"


class QuizPhase(str, Enum):
	LOADING = "loading"
	READY = "ready"
	ERROR = "error"


TRANSITIONS: Dict[Screen, FrozenSet[Screen]] = {
	Screen.WELCOME: frozenset({Screen.WELCOME, Screen.LANGUAGE_SELECT}),
	Screen.LANGUAGE_SELECT: frozenset({Screen.WELCOME, Screen.LEVEL_SELECT}),
	Screen.LEVEL_SELECT: frozenset({Screen.WELCOME, Screen.LANGUAGE_SELECT, Screen.BAND_SELECT}),
	Screen.BAND_SELECT: frozenset({Screen.WELCOME, Screen.LANGUAGE_SELECT, Screen.LEVEL_SELECT, Screen.QUIZ}),
	Screen.QUIZ: frozenset(
		{Screen.WELCOME, Screen.LANGUAGE_SELECT, Screen.LEVEL_SELECT, Screen.BAND_SELECT, Screen.QUIZ, Screen.REPORT}
	),
	Screen.REPORT: frozenset(
		{Screen.WELCOME, Screen.LANGUAGE_SELECT, Screen.LEVEL_SELECT, Screen.BAND_SELECT, Screen.QUIZ}
	),
}

_PUNCTUATION = re.compile(r"[^\w\s]|_")


def normalize_answer(text: Optional[str]) -> str:
	"""Lowercase, drop punctuation and collapse whitespace ("Bonjour !" -> "bonjour")."""
	text = _PUNCTUATION.sub("", (text or "").casefold())
	return " ".join(text.split())


def is_correct(submitted: str, answer: str) -> bool:
	return normalize_answer(submitted) == normalize_answer(answer)


@dataclass(frozen=True)
class FetchRequest:
	"""Ticket for one question-batch fetch; results for an outdated ticket are ignored."""

	ticket: int
	language: Language
	level: Level
	band: int
	count: int


@dataclass
class QuizRun:
	ticket: int
	band: int
	level: Level
	language: Language
	phase: QuizPhase = QuizPhase.LOADING
	questions: List[Question] = field(default_factory=list)
	records: List[Optional[AnswerRecord]] = field(default_factory=list)
	index: int = 0
	error: Optional[str] = None


class QuizMachine:
	def __init__(self, questions_per_band: int = 6) -> None:
		self.questions_per_band = questions_per_band
		self.screen = Screen.WELCOME
		self.language: Optional[Language] = None
		self.level: Optional[Level] = None
		self.band: Optional[int] = None
		self.run: Optional[QuizRun] = None
		self.history: List[BandReport] = []
		self.last_report: Optional[BandReport] = None
		self._ticket = 0

	# ---- internals ----

	def _go(self, action: str, target: Screen) -> None:
		if target not in TRANSITIONS[self.screen]:
			raise InvalidTransition(action, self.screen.value)
		if target != self.screen:
			logger.debug("%s -> %s (%s)", self.screen.value, target.value, action)
		self.screen = target

	def _require(self, action: str, *screens: Screen) -> None:
		if self.screen not in screens:
			raise InvalidTransition(action, self.screen.value)

	def _require_phase(self, action: str, phase: QuizPhase) -> QuizRun:
		self._require(action, Screen.QUIZ)
		run = self.run
		if run is None or run.phase != phase:
			current = run.phase.value if run else "no quiz"
			raise InvalidTransition(action, f"{self.screen.value}/{current}")
		return run

	def _begin_band(self, action: str, band: int) -> FetchRequest:
		if self.language is None or self.level is None:
			raise InvalidTransition(action, self.screen.value)
		self._go(action, Screen.QUIZ)
		self._ticket += 1
		self.band = band
		self.run = QuizRun(ticket=self._ticket, band=band, level=self.level, language=self.language)
		return FetchRequest(self._ticket, self.language, self.level, band, self.questions_per_band)

	def _is_current(self, request: FetchRequest) -> bool:
		run = self.run
		current = (
			self.screen == Screen.QUIZ
			and run is not None
			and run.ticket == request.ticket
			and run.phase == QuizPhase.LOADING
		)
		if not current:
			logger.info("Ignoring result of abandoned fetch #%d", request.ticket)
		return current

	def _finish_band(self, run: QuizRun) -> BandReport:
		records = [r for r in run.records if r is not None]
		report = BandReport(
			band=run.band,
			level=run.level,
			language=run.language,
			records=records,
			score=sum(1 for r in records if r.correct),
			total=len(records),
		)
		# Re-entering a band overwrites its previous report
		self.history = [r for r in self.history if r.key != report.key]
		self.history.append(report)
		self.last_report = report
		self._go("finish the band", Screen.REPORT)
		logger.info(
			"Band %d %s/%s finished: %d/%d", run.band, run.language.value, run.level.value, report.score, report.total
		)
		return report

	# ---- navigation ----

	def start(self) -> None:
		self._go("start", Screen.LANGUAGE_SELECT)

	def select_language(self, language: Language) -> None:
		self._require("select a language", Screen.LANGUAGE_SELECT)
		if self.language is not None and self.language != language:
			self.history = []
		self.language = Language(language)
		self.level = None
		self.band = None
		self._go("select a language", Screen.LEVEL_SELECT)

	def select_level(self, level: Level) -> None:
		self._require("select a level", Screen.LEVEL_SELECT)
		self.level = Level(level)
		self._go("select a level", Screen.BAND_SELECT)

	def select_band(self, band: int) -> FetchRequest:
		self._require("select a band", Screen.BAND_SELECT)
		if not (MIN_BAND <= band <= MAX_BAND):
			raise ValueError(f"band must be between {MIN_BAND} and {MAX_BAND}")
		return self._begin_band("select a band", band)

	def questions_loaded(self, request: FetchRequest, questions: Sequence[Question]) -> bool:
		if not self._is_current(request):
			return False
		if not questions:
			return self.fetch_failed(request, "The server returned no questions")
		run = self.run
		run.questions = list(questions)
		run.records = [None] * len(run.questions)
		run.index = 0
		run.phase = QuizPhase.READY
		return True

	def fetch_failed(self, request: FetchRequest, reason: str) -> bool:
		if not self._is_current(request):
			return False
		self.run.phase = QuizPhase.ERROR
		self.run.error = reason
		logger.warning("Loading band %d failed: %s", request.band, reason)
		return True

	def retry(self) -> FetchRequest:
		"""Fetch the current band again, from the error screen or from the band report."""
		if self.screen == Screen.QUIZ:
			self._require_phase("retry", QuizPhase.ERROR)
		else:
			self._require("retry", Screen.REPORT)
		return self._begin_band("retry", self.band)

	def next_band(self) -> FetchRequest:
		self._require("move to the next band", Screen.REPORT)
		return self._begin_band("move to the next band", min(self.band + 1, MAX_BAND))

	def change_level(self, level: Optional[Level] = None) -> None:
		"""Leave the quiz for another level; session history is kept."""
		self._require("change level", Screen.BAND_SELECT, Screen.QUIZ, Screen.REPORT)
		self.run = None
		if level is None:
			self._go("change level", Screen.LEVEL_SELECT)
			return
		self.level = Level(level)
		self._go("change level", Screen.BAND_SELECT)

	def change_language(self) -> None:
		"""Back to the language list; quiz state and session history are discarded."""
		self._require("change language", Screen.LEVEL_SELECT, Screen.BAND_SELECT, Screen.QUIZ, Screen.REPORT)
		self.run = None
		self.history = []
		self.last_report = None
		self.language = None
		self.level = None
		self.band = None
		self._go("change language", Screen.LANGUAGE_SELECT)

	def reset(self) -> None:
		self._go("reset", Screen.WELCOME)
		self.run = None
		self.history = []
		self.last_report = None
		self.language = None
		self.level = None
		self.band = None

	# ---- answering ----

	def submit_answer(self, text: str) -> AnswerRecord:
		run = self._require_phase("submit an answer", QuizPhase.READY)
		if run.records[run.index] is not None:
			raise InvalidTransition("submit an answer", "answered question")
		question = run.questions[run.index]
		record = AnswerRecord(question=question, submitted=text, correct=is_correct(text, question.answer))
		run.records[run.index] = record
		return record

	def next_question(self) -> Optional[BandReport]:
		"""Advance; on the last question the band is folded into a report and returned."""
		run = self._require_phase("go to the next question", QuizPhase.READY)
		if run.records[run.index] is None:
			raise InvalidTransition("go to the next question", "unanswered question")
		if run.index < len(run.questions) - 1:
			run.index += 1
			return None
		return self._finish_band(run)

	def previous_question(self) -> Optional[AnswerRecord]:
		"""Step back one question; returns the answer already given there (read-only)."""
		run = self._require_phase("go to the previous question", QuizPhase.READY)
		if run.index == 0:
			raise InvalidTransition("go to the previous question", "first question")
		run.index -= 1
		return run.records[run.index]

	# ---- views ----

	@property
	def phase(self) -> Optional[QuizPhase]:
		return self.run.phase if self.run and self.screen == Screen.QUIZ else None

	@property
	def error(self) -> Optional[str]:
		return self.run.error if self.phase == QuizPhase.ERROR else None

	@property
	def current_question(self) -> Optional[Question]:
		if self.phase != QuizPhase.READY:
			return None
		return self.run.questions[self.run.index]

	@property
	def current_record(self) -> Optional[AnswerRecord]:
		if self.phase != QuizPhase.READY:
			return None
		return self.run.records[self.run.index]

	@property
	def progress(self) -> Tuple[int, int]:
		if self.phase != QuizPhase.READY:
			return (0, 0)
		return (self.run.index + 1, len(self.run.questions))

	@property
	def band_score(self) -> Tuple[int, int]:
		"""(correct, answered) for the band in progress."""
		if self.run is None:
			return (0, 0)
		answered = [r for r in self.run.records if r is not None]
		return (sum(1 for r in answered if r.correct), len(answered))

	@property
	def session_score(self) -> Tuple[int, int]:
		return (sum(r.score for r in self.history), sum(r.total for r in self.history))
