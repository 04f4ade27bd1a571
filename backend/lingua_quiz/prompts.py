from __future__ import annotations
from typing import Dict

from .models import Language, Level, MAX_BAND, MIN_BAND


def difficulty_descriptor(band: int) -> str:
	if band <= 1:
		return "very basic A1 starter difficulty"
	if band == 2:
		return "basic A1-A2 difficulty, slightly harder than band 1"
	if band == 3:
		return "intermediate B1 difficulty, clearly harder than band 2"
	if band == 4:
		return "upper-intermediate B2 difficulty, clearly harder than band 3"
	return "advanced C1 difficulty, clearly harder than band 4"


# Basic bands each get their own vocabulary cluster so batches never overlap.
BASIC_TOPICS: Dict[int, str] = {
	1: "greetings, numbers 1-20, colours and everyday objects",
	2: "family members, food and drink, days of the week and months",
	3: "home and furniture, clothing, weather and the seasons",
	4: "travel and transport, shops and money, parts of the body and health",
	5: "work and professions, feelings and personality, nature and the environment",
}

MODERATE_FOCUS: Dict[int, str] = {
	1: "one-line exchanges: introducing yourself, asking how someone is, saying thank you and goodbye",
	2: "ordering in a cafe or restaurant, asking prices, simple questions about time and place",
	3: "asking for and giving directions, making plans with friends, talking about yesterday and tomorrow",
	4: "booking hotels and tickets, solving small problems (a late train, a wrong order), giving short opinions",
	5: "longer everyday conversations: polite disagreement, making suggestions, describing experiences with past and future tenses",
}

ADVANCED_FOCUS: Dict[int, str] = {
	1: "describing your job, role and daily responsibilities",
	2: "presenting your team, your company and its products",
	3: "meetings and negotiations: proposing, objecting, summarising decisions",
	4: "pitching a project: goals, budget, timelines, risks and results",
	5: "strategy and vision: long-term plans, market trends, leadership and change",
}

_QUESTION_KEYS = '"question", "answer", "options", "direction", "type", "questionLanguage", "explanation"'


def _format_contract(language: Language, options_hint: str, types: str) -> str:
	return (
		"Return ONLY a pure JSON array, no markdown, no code fences, no explanations before or after the array.\n"
		f"Each item must strictly have exactly these keys: {_QUESTION_KEYS}.\n"
		"{\n"
		'  "question": "string",\n'
		'  "answer": "string",\n'
		f'  "options": {options_hint},\n'
		'  "direction": "en-to-target" | "target-to-en" | "target-to-target",\n'
		f'  "type": {types},\n'
		'  "questionLanguage": "en" | "target",\n'
		'  "explanation": "one short sentence explaining the answer"\n'
		"}\n"
		f'"direction" "target-to-target" is only allowed for fill-in-the-blanks items written entirely in {language.value}.\n'
		'"options" must contain the exact "answer" string once, and no duplicates.'
	)


_CHOICE_OPTIONS_HINT = '["opt1","opt2","opt3"] or null for type-answer'
_MIXED_TYPES = '"multiple-choice" | "type-answer" | "fill-in-the-blanks"'


def _basic_instruction(language: Language, band: int, count: int, difficulty: str) -> str:
	contract = _format_contract(language, '["opt1","opt2","opt3","opt4","opt5"]', '"multiple-choice"')
	return f"""
You are a {language.value} language teacher.
Generate EXACTLY {count} vocabulary questions for skill band {band} of 5.

Requirements:
- Difficulty: {difficulty}
- Target user is an English speaker learning {language.value}.
- Topic cluster for this band: {BASIC_TOPICS[band]}. Do not use topics from other bands.
- Vocabulary only: single words or very short phrases (no long sentences).
- Mix directions:
  - At least half English -> {language.value}
  - The rest {language.value} -> English
- Each question must be multiple choice with 4-5 plausible options.
- Options must be real plausible words, not nonsense.
- Make sure questions for this band are DIFFERENT from earlier bands conceptually.

{contract}
""".strip()


def _moderate_instruction(language: Language, band: int, count: int, difficulty: str) -> str:
	contract = _format_contract(language, _CHOICE_OPTIONS_HINT, _MIXED_TYPES)
	return f"""
You are a {language.value} language teacher.
Generate EXACTLY {count} conversational questions for skill band {band} of 5.

Requirements:
- Difficulty: {difficulty}
- Phrases and short sentences used in everyday conversations.
- Conversational focus for this band: {MODERATE_FOCUS[band]}.
- Mix of question types (approximately):
  - 50% multiple choice questions (3 plausible options)
  - 20% type-answer questions (no options, the learner types the translation)
  - 30% fill-in-the-blanks: a {language.value} sentence with "___" for the missing word, 3-4 options
- Mix directions:
  - Some English -> {language.value}
  - Some {language.value} -> English
- Make this band clearly more challenging than earlier bands.

{contract}
""".strip()


def _advanced_instruction(language: Language, band: int, count: int, difficulty: str) -> str:
	contract = _format_contract(language, _CHOICE_OPTIONS_HINT, _MIXED_TYPES)
	return f"""
You are a {language.value} language teacher.
Generate EXACTLY {count} advanced questions for skill band {band} of 5.

Requirements:
- Difficulty: {difficulty}
- Professional or elevator-pitch style sentences or short paragraphs.
- Topic for this band: {ADVANCED_FOCUS[band]}.
- Mix of question types (approximately):
  - 40% multiple choice questions (3 plausible options)
  - 30% type-answer questions (no options) so the learner must produce full sentences
  - 30% fill-in-the-blanks in {language.value} with 3-4 options
- Mix directions:
  - Some English -> {language.value}
  - Some {language.value} -> English
- Make sure this band is clearly more advanced than earlier bands.

{contract}
""".strip()


def build_task_instruction(language: Language, level: Level, band: int, count: int) -> str:
	if not (MIN_BAND <= band <= MAX_BAND):
		raise ValueError(f"band must be between {MIN_BAND} and {MAX_BAND}, got {band}")
	if count < 1:
		raise ValueError(f"count must be positive, got {count}")
	difficulty = difficulty_descriptor(band)
	if level == Level.BASIC:
		return _basic_instruction(language, band, count, difficulty)
	if level == Level.MODERATE:
		return _moderate_instruction(language, band, count, difficulty)
	return _advanced_instruction(language, band, count, difficulty)
