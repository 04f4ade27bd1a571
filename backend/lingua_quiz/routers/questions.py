from __future__ import annotations
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..errors import AllProvidersFailed, ConfigurationError
from ..models import Language, Level, MAX_BAND, MIN_BAND
from ..question_service import QuestionService
from ..settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["questions"])

MAX_COUNT = 20

CONFIG_HINT = "Set at least one of GEMINI_API_KEY, OPENAI_API_KEY, GROQ_API_KEY or PERPLEXITY_API_KEY on the server."
RETRY_HINT = "The question generator is unavailable right now. Please retry in a moment or pick another level."


def get_question_service(request: Request) -> QuestionService:
	return request.app.state.question_service


def _error(status_code: int, message: str, hint: Optional[str] = None) -> JSONResponse:
	body = {"error": message}
	if hint:
		body["hint"] = hint
	return JSONResponse(status_code=status_code, content=body)


def _coerce_int(value: Any) -> Optional[int]:
	# Numbers or numeric strings; booleans and fractions are rejected
	if isinstance(value, bool):
		return None
	if isinstance(value, int):
		return value
	if isinstance(value, float):
		return int(value) if value.is_integer() else None
	if isinstance(value, str):
		try:
			return int(value.strip())
		except ValueError:
			return None
	return None


@router.post("/generate-questions")
async def generate_questions(request: Request, service: QuestionService = Depends(get_question_service)):
	try:
		body = await request.json()
	except ValueError:
		return _error(400, "Request body must be JSON")
	if not isinstance(body, dict):
		return _error(400, "Request body must be a JSON object")

	raw_language = body.get("language")
	raw_level = body.get("level")
	band = _coerce_int(body.get("band"))
	count = _coerce_int(body.get("count")) if body.get("count") is not None else settings.questions_per_band

	if not raw_language or not raw_level or not band or not count:
		return _error(400, "Missing language, level, band, or count")
	try:
		language = Language(raw_language)
	except ValueError:
		return _error(400, f"Unsupported language: {raw_language}")
	try:
		level = Level(raw_level)
	except ValueError:
		return _error(400, f"Unsupported level: {raw_level}")
	if not (MIN_BAND <= band <= MAX_BAND):
		return _error(400, f"band must be between {MIN_BAND} and {MAX_BAND}")
	if not (1 <= count <= MAX_COUNT):
		return _error(400, f"count must be between 1 and {MAX_COUNT}")

	try:
		result = await service.generate(language, level, band, count)
	except ConfigurationError as e:
		logger.error("Question generation is not configured: %s", e)
		return _error(500, str(e), CONFIG_HINT)
	except AllProvidersFailed as e:
		return _error(500, str(e), RETRY_HINT)
	except Exception:
		logger.exception("Error in /generate-questions")
		return _error(500, "Internal server error")

	return JSONResponse(
		status_code=200,
		content=[q.model_dump(mode="json", by_alias=True) for q in result.questions],
		headers={"x-llm-provider": result.provider},
	)
