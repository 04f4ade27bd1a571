from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .errors import AllProvidersFailed, NoProvidersConfigured
from .llm_client import ProviderClient, build_client, resolve_provider_configs
from .models import Language, Level, Question
from .prompts import build_task_instruction
from .settings import Settings, settings

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
	questions: List[Question]
	provider: str


class QuestionService:
	"""Builds the instruction once and asks the configured providers for a question batch.

	In single-provider mode (the default) only the highest-priority client is
	queried. With ``fallback=True`` every client is tried in priority order and
	the first non-empty batch wins.
	"""

	def __init__(self, clients: Sequence[ProviderClient], *, fallback: bool = False) -> None:
		self.clients = list(clients)
		self.fallback = fallback

	@classmethod
	def from_settings(cls, cfg: Settings = settings, **client_kwargs: Any) -> "QuestionService":
		options: Dict[str, Any] = {
			"http_retries": cfg.llm_http_retries,
			"retry_delay": cfg.llm_retry_delay_seconds,
			"timeout": cfg.llm_timeout_seconds,
		}
		options.update(client_kwargs)
		clients = [build_client(c, **options) for c in resolve_provider_configs(cfg)]
		return cls(clients, fallback=cfg.llm_fallback)

	@property
	def provider_names(self) -> List[str]:
		return [c.name for c in self.clients]

	async def generate(self, language: Language, level: Level, band: int, count: int) -> GenerationResult:
		if not self.clients:
			raise NoProvidersConfigured()
		instruction = build_task_instruction(language, level, band, count)
		candidates = self.clients if self.fallback else self.clients[:1]

		last_error: Optional[Exception] = None
		for client in candidates:
			try:
				questions = await client.generate_questions(instruction, count)
			except Exception as err:
				logger.error("Provider %s failed: %s", client.name, err)
				last_error = err
				continue
			if questions:
				logger.info(
					"Served %d %s/%s band %d question(s) via %s",
					len(questions), language.value, level.value, band, client.name,
				)
				return GenerationResult(questions=questions, provider=client.name)
		raise AllProvidersFailed(last_error)

	async def aclose(self) -> None:
		for client in self.clients:
			await client.aclose()
