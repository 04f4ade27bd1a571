"""
Turn whatever text an LLM returned into validated Question records.

Models are asked for a bare JSON array but routinely wrap it in markdown
fences, add a sentence before or after, omit fields or repeat options. This
module strips that noise, parses the array and fills every gap with a safe
default. Items that cannot be repaired are skipped; the call only fails when
nothing usable is left.
"""

from __future__ import annotations

import json
import logging
import random
from typing import Any, Dict, List, Optional

from .errors import EmptyResponse, MalformedJSON, NoUsableQuestions, NotAnArray
from .models import (
	CHOICE_TYPES,
	MAX_OPTIONS,
	Direction,
	Question,
	QuestionLanguage,
	QuestionType,
)

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 400

DEFAULT_EXPLANATION = "Review the correct answer and compare it with your response."
DEFAULT_FILL_EXPLANATION = "The missing word is the one that completes the sentence correctly."

_DIRECTIONS = {d.value: d for d in Direction}


def strip_code_fences(text: str) -> str:
	return text.replace("```json", "").replace("```", "").strip()


def extract_array_span(text: str) -> str:
	"""Return the text between the first '[' and the last ']', or the text unchanged."""
	first = text.find("[")
	last = text.rfind("]")
	if first != -1 and last > first:
		return text[first : last + 1]
	return text


def _clean_text(value: Any) -> Optional[str]:
	if not isinstance(value, str):
		return None
	value = value.strip()
	return value or None


def _resolve_type(item: Dict[str, Any]) -> QuestionType:
	raw_type = item.get("type")
	if raw_type == QuestionType.FILL_IN_THE_BLANKS.value:
		return QuestionType.FILL_IN_THE_BLANKS
	options = item.get("options")
	if (isinstance(options, list) and len(options) > 0) or raw_type == QuestionType.MULTIPLE_CHOICE.value:
		return QuestionType.MULTIPLE_CHOICE
	return QuestionType.TYPE_ANSWER


def normalize_options(raw_options: Any, answer: str, qtype: QuestionType, rng: random.Random) -> List[str]:
	"""Build the final option list: unique, contains answer exactly once, shuffled, capped."""
	options: List[str] = []
	seen = set()
	for raw in raw_options if isinstance(raw_options, list) else []:
		if raw is None:
			continue
		option = str(raw).strip()
		if not option or option in seen:
			continue
		seen.add(option)
		options.append(option)

	distractors = [o for o in options if o != answer]
	rng.shuffle(distractors)
	# The answer always survives the cap; distractors fill the remaining slots
	final = distractors[: MAX_OPTIONS[qtype] - 1] + [answer]
	rng.shuffle(final)
	return final


def _sanitize_item(item: Any, rng: random.Random) -> Optional[Question]:
	if not isinstance(item, dict):
		return None
	question_text = _clean_text(item.get("question"))
	answer = _clean_text(item.get("answer"))
	if question_text is None or answer is None:
		return None

	raw_direction = item.get("direction")
	direction = _DIRECTIONS.get(raw_direction, Direction.EN_TO_TARGET) if isinstance(raw_direction, str) else Direction.EN_TO_TARGET
	question_language = (
		QuestionLanguage.TARGET if item.get("questionLanguage") == QuestionLanguage.TARGET.value else QuestionLanguage.EN
	)
	qtype = _resolve_type(item)

	options: Optional[List[str]] = None
	if qtype in CHOICE_TYPES:
		options = normalize_options(item.get("options"), answer, qtype, rng)
		if len(options) < 2:
			return None

	explanation = _clean_text(item.get("explanation"))
	if explanation is None:
		explanation = DEFAULT_FILL_EXPLANATION if qtype == QuestionType.FILL_IN_THE_BLANKS else DEFAULT_EXPLANATION

	return Question(
		question=question_text,
		answer=answer,
		options=options,
		direction=direction,
		type=qtype,
		question_language=question_language,
		explanation=explanation,
	)


def parse_questions_from_text(
	raw_text: str,
	count: int,
	source: str = "LLM",
	rng: Optional[random.Random] = None,
) -> List[Question]:
	rng = rng or random.Random()
	content = extract_array_span(strip_code_fences(raw_text or ""))
	if not content:
		logger.warning("%s returned nothing after stripping code fences", source)
		raise EmptyResponse(source)

	try:
		parsed = json.loads(content)
	except json.JSONDecodeError as e:
		snippet = content[:SNIPPET_LENGTH]
		logger.warning("Failed to parse JSON from %s: %s; text starts with %r", source, e, snippet)
		raise MalformedJSON(source, snippet) from e

	if not isinstance(parsed, list):
		raise NotAnArray(source)
	if len(parsed) == 0:
		raise EmptyResponse(source)

	questions: List[Question] = []
	for idx, item in enumerate(parsed):
		if len(questions) >= count:
			break
		q = _sanitize_item(item, rng)
		if q is None:
			logger.debug("Skipping unusable item %d from %s", idx, source)
			continue
		questions.append(q)

	if not questions:
		raise NoUsableQuestions(source)
	logger.info("%s produced %d usable question(s) out of %d item(s)", source, len(questions), len(parsed))
	return questions
