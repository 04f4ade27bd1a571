from __future__ import annotations
import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

from .errors import EmptyModelOutput, MalformedJSON, MissingCredential, ProviderError, ProviderHTTPError
from .models import Question
from .sanitizer import parse_questions_from_text
from .settings import Settings, settings

logger = logging.getLogger(__name__)

GEMINI = "gemini"
CHAT_COMPLETION = "chat-completion"

# Statuses worth retrying with the same request
RETRY_STATUSES = (429, 503)
# Extra full attempts when the model output is not parseable JSON
JSON_RETRIES = 1


@dataclass(frozen=True)
class ProviderConfig:
	name: str
	kind: str
	env_var: str
	api_key: Optional[str]
	model: str
	base_url: str


def resolve_provider_configs(cfg: Settings = settings, *, include_missing: bool = False) -> List[ProviderConfig]:
	"""Provider configs in fixed priority order; unconfigured vendors are left out unless asked for."""
	configs = [
		ProviderConfig("Gemini", GEMINI, "GEMINI_API_KEY", cfg.gemini_api_key, cfg.gemini_model, cfg.gemini_base_url),
		ProviderConfig("OpenAI", CHAT_COMPLETION, "OPENAI_API_KEY", cfg.openai_api_key, cfg.openai_model, cfg.openai_base_url),
		ProviderConfig("Groq", CHAT_COMPLETION, "GROQ_API_KEY", cfg.groq_api_key, cfg.groq_model, cfg.groq_base_url),
		ProviderConfig("Perplexity", CHAT_COMPLETION, "PERPLEXITY_API_KEY", cfg.perplexity_api_key, cfg.perplexity_model, cfg.perplexity_base_url),
	]
	if include_missing:
		return configs
	return [c for c in configs if c.api_key]


class ProviderClient(ABC):
	def __init__(
		self,
		config: ProviderConfig,
		*,
		http_retries: Optional[int] = None,
		retry_delay: Optional[float] = None,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
		sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
	) -> None:
		if not config.api_key:
			raise MissingCredential(config.name, config.env_var)
		self.config = config
		self.name = config.name
		self.model = config.model
		self.api_key = config.api_key
		self.http_retries = settings.llm_http_retries if http_retries is None else http_retries
		self.retry_delay = settings.llm_retry_delay_seconds if retry_delay is None else retry_delay
		self._client = httpx.AsyncClient(timeout=timeout or settings.llm_timeout_seconds, transport=transport)
		self._sleep = sleep or asyncio.sleep

	@abstractmethod
	def _build_request(self, prompt: str) -> Tuple[str, Dict[str, Any], Dict[str, str], Dict[str, Any]]:
		...

	@abstractmethod
	def _extract_text(self, data: Any) -> Optional[str]:
		...

	async def complete(self, prompt: str) -> str:
		url, params, headers, payload = self._build_request(prompt)
		attempts = 1 + max(0, self.http_retries)
		for attempt in range(1, attempts + 1):
			logger.info("Calling %s (model: %s), attempt %d/%d", self.name, self.model, attempt, attempts)
			started = time.perf_counter()
			try:
				r = await self._client.post(url, params=params, headers=headers, json=payload)
			except httpx.RequestError as net_err:
				raise ProviderError(self.name, f"{self.name} request failed: {net_err}") from net_err
			duration_ms = (time.perf_counter() - started) * 1000
			if r.status_code in RETRY_STATUSES and attempt < attempts:
				logger.warning(
					"%s HTTP %d after %.0fms; retrying in %.1fs", self.name, r.status_code, duration_ms, self.retry_delay
				)
				await self._sleep(self.retry_delay)
				continue
			if r.is_error:
				logger.error("%s HTTP error %d: %s", self.name, r.status_code, r.text[:400])
				raise ProviderHTTPError(self.name, r.status_code, r.text[:400])
			logger.info("Response from %s (%.0fms)", self.name, duration_ms)
			break

		try:
			data = r.json()
		except ValueError as e:
			raise ProviderError(self.name, f"Unexpected {self.name} response: {r.text[:400]}") from e
		text = self._extract_text(data)
		if not isinstance(text, str) or not text.strip():
			raise EmptyModelOutput(self.name)
		return text.strip()

	async def generate_questions(self, prompt: str, count: int) -> List[Question]:
		"""Call the model and sanitize its reply, asking once more if the reply is not valid JSON."""
		for parse_attempt in range(JSON_RETRIES + 1):
			raw = await self.complete(prompt)
			try:
				return parse_questions_from_text(raw, count, source=self.name)
			except MalformedJSON:
				if parse_attempt >= JSON_RETRIES:
					raise
				logger.warning("%s returned malformed JSON; asking again", self.name)
		raise AssertionError("unreachable")

	async def aclose(self) -> None:
		await self._client.aclose()

	async def __aenter__(self) -> "ProviderClient":
		return self

	async def __aexit__(self, *exc_info: Any) -> None:
		await self.aclose()


class GeminiClient(ProviderClient):
	def _build_request(self, prompt: str) -> Tuple[str, Dict[str, Any], Dict[str, str], Dict[str, Any]]:
		# Google AI Studio (Generative Language API), key in the query string
		url = f"{self.config.base_url.rstrip('/')}/{self.model}:generateContent"
		payload: Dict[str, Any] = {
			"contents": [{"role": "user", "parts": [{"text": prompt}]}],
			# Nudges Gemini to answer with parseable JSON only
			"generationConfig": {"response_mime_type": "application/json"},
		}
		return url, {"key": self.api_key}, {"Content-Type": "application/json"}, payload

	def _extract_text(self, data: Any) -> Optional[str]:
		try:
			candidate = data["candidates"][0]
		except (KeyError, IndexError, TypeError):
			return None
		try:
			return candidate["content"]["parts"][0]["text"]
		except (KeyError, IndexError, TypeError):
			return candidate.get("output_text") if isinstance(candidate, dict) else None


class ChatCompletionClient(ProviderClient):
	"""OpenAI-compatible chat completion endpoint (OpenAI, Groq, Perplexity)."""

	temperature = 0.2

	def _build_request(self, prompt: str) -> Tuple[str, Dict[str, Any], Dict[str, str], Dict[str, Any]]:
		headers = {
			"Authorization": f"Bearer {self.api_key}",
			"Content-Type": "application/json",
		}
		payload: Dict[str, Any] = {
			"model": self.model,
			"messages": [{"role": "user", "content": prompt}],
			"temperature": self.temperature,
		}
		return self.config.base_url, {}, headers, payload

	def _extract_text(self, data: Any) -> Optional[str]:
		try:
			return data["choices"][0]["message"]["content"]
		except (KeyError, IndexError, TypeError):
			return None


def build_client(config: ProviderConfig, **kwargs: Any) -> ProviderClient:
	if config.kind == GEMINI:
		return GeminiClient(config, **kwargs)
	return ChatCompletionClient(config, **kwargs)
