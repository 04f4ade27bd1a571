from __future__ import annotations
import logging
from typing import Any, List, Optional, Sequence, Tuple

import httpx
from pydantic import ValidationError

from ..errors import QuestionFetchError
from ..models import BandReport, Language, Level, Question
from ..settings import settings

logger = logging.getLogger(__name__)


def _error_message(r: httpx.Response) -> str:
	try:
		data = r.json()
	except ValueError:
		data = None
	if isinstance(data, dict) and data.get("error"):
		return str(data["error"])
	return f"Server error: HTTP {r.status_code}"


class QuestionsAPI:
	"""HTTP client for the question server, as used by the quiz front end."""

	def __init__(
		self,
		base_url: Optional[str] = None,
		*,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.base_url = (base_url or settings.server_url).rstrip("/")
		self.timeout = timeout or settings.client_timeout_seconds
		self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=transport)

	async def _post(self, path: str, payload: Any) -> httpx.Response:
		try:
			r = await self._client.post(path, json=payload)
		except httpx.TimeoutException as e:
			raise QuestionFetchError(f"Request timed out after {self.timeout:.0f}s") from e
		except httpx.RequestError as e:
			raise QuestionFetchError(f"Could not reach the server: {e}") from e
		if r.is_error:
			raise QuestionFetchError(_error_message(r), status=r.status_code)
		return r

	async def fetch_questions(self, language: Language, level: Level, band: int, count: int) -> List[Question]:
		r = await self._post(
			"/generate-questions",
			{"language": language.value, "level": level.value, "band": band, "count": count},
		)
		try:
			data = r.json()
		except ValueError as e:
			raise QuestionFetchError("Server returned a non-JSON response") from e
		if not isinstance(data, list):
			raise QuestionFetchError("Server returned an unexpected payload")
		try:
			questions = [Question.model_validate(item) for item in data]
		except ValidationError as e:
			raise QuestionFetchError(f"Server returned malformed questions: {e.error_count()} error(s)") from e
		logger.info("Fetched %d question(s) via %s", len(questions), r.headers.get("x-llm-provider", "unknown provider"))
		return questions

	async def export_report(
		self, learner: str, language: Language, level: Level, history: Sequence[BandReport]
	) -> Tuple[str, bytes]:
		payload = {
			"learner": learner,
			"language": language.value,
			"level": level.value,
			"history": [h.model_dump(mode="json", by_alias=True) for h in history],
		}
		r = await self._post("/reports/export", payload)
		disposition = r.headers.get("content-disposition", "")
		filename = disposition.split("filename=")[-1].strip('"') if "filename=" in disposition else "report.pdf"
		return filename, r.content

	async def aclose(self) -> None:
		await self._client.aclose()

	async def __aenter__(self) -> "QuestionsAPI":
		return self

	async def __aexit__(self, *exc_info: Any) -> None:
		await self.aclose()
