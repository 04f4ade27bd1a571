from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Language(str, Enum):
	FRENCH = "French"
	GERMAN = "German"
	SPANISH = "Spanish"
	ITALIAN = "Italian"


class Level(str, Enum):
	BASIC = "Basic"
	MODERATE = "Moderate"
	ADVANCED = "Advanced"


class Direction(str, Enum):
	EN_TO_TARGET = "en-to-target"
	TARGET_TO_EN = "target-to-en"
	# Only used by fill-in-the-blanks items written entirely in the target language
	TARGET_TO_TARGET = "target-to-target"


class QuestionType(str, Enum):
	MULTIPLE_CHOICE = "multiple-choice"
	TYPE_ANSWER = "type-answer"
	FILL_IN_THE_BLANKS = "fill-in-the-blanks"


class QuestionLanguage(str, Enum):
	EN = "en"
	TARGET = "target"


MIN_BAND = 1
MAX_BAND = 5

# Option caps per question type
MAX_OPTIONS = {
	QuestionType.MULTIPLE_CHOICE: 5,
	QuestionType.FILL_IN_THE_BLANKS: 4,
}

CHOICE_TYPES = (QuestionType.MULTIPLE_CHOICE, QuestionType.FILL_IN_THE_BLANKS)


class Question(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	question: str
	answer: str
	options: Optional[List[str]] = None
	direction: Direction = Direction.EN_TO_TARGET
	type: QuestionType = QuestionType.TYPE_ANSWER
	question_language: QuestionLanguage = Field(default=QuestionLanguage.EN, alias="questionLanguage")
	explanation: str = ""

	@property
	def is_choice(self) -> bool:
		return self.type in CHOICE_TYPES


class AnswerRecord(BaseModel):
	"""One submitted answer; never mutated after the learner submits it."""

	model_config = ConfigDict(frozen=True)

	question: Question
	submitted: str
	correct: bool
	answered_at: datetime = Field(default_factory=datetime.now)


class BandReport(BaseModel):
	band: int = Field(ge=MIN_BAND, le=MAX_BAND)
	level: Level
	language: Language
	records: List[AnswerRecord] = Field(default_factory=list)
	score: int = 0
	total: int = 0
	completed_at: datetime = Field(default_factory=datetime.now)

	@property
	def key(self) -> Tuple[int, Level, Language]:
		return (self.band, self.level, self.language)

	@property
	def accuracy(self) -> int:
		return accuracy_percent(self.score, self.total)


class ReportExportRequest(BaseModel):
	learner: str = "Learner"
	language: Language
	level: Level
	history: List[BandReport]


def accuracy_percent(correct: int, total: int) -> int:
	if total <= 0:
		return 0
	return round(correct / total * 100)
