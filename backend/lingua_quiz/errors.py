from __future__ import annotations
from typing import Optional


class QuizError(Exception):
	"""Base class for every error raised by lingua_quiz."""


# ---- Configuration ----

class ConfigurationError(QuizError):
	pass


class NoProvidersConfigured(ConfigurationError):
	def __init__(self, message: str = "No LLM API keys configured on server") -> None:
		super().__init__(message)


class MissingCredential(ConfigurationError):
	def __init__(self, provider: str, env_var: str) -> None:
		self.provider = provider
		self.env_var = env_var
		super().__init__(f"{env_var} is not set")


# ---- Provider calls ----

class ProviderError(QuizError):
	def __init__(self, provider: str, message: str) -> None:
		self.provider = provider
		super().__init__(message)


class ProviderHTTPError(ProviderError):
	def __init__(self, provider: str, status: int, body: str = "") -> None:
		self.status = status
		self.body = body
		super().__init__(provider, f"{provider} HTTP {status}")


class EmptyModelOutput(ProviderError):
	def __init__(self, provider: str) -> None:
		super().__init__(provider, f"{provider} returned empty text")


# ---- Sanitizer ----

class InvalidResponse(QuizError):
	def __init__(self, source: str, message: str) -> None:
		self.source = source
		super().__init__(message)


class MalformedJSON(InvalidResponse):
	def __init__(self, source: str, snippet: str) -> None:
		# First ~400 characters of the offending text, for diagnostics
		self.snippet = snippet
		super().__init__(source, f"{source} returned invalid JSON")


class NotAnArray(InvalidResponse):
	def __init__(self, source: str) -> None:
		super().__init__(source, f"{source} returned JSON that is not an array")


class EmptyResponse(InvalidResponse):
	def __init__(self, source: str) -> None:
		super().__init__(source, f"{source} returned an empty array")


class NoUsableQuestions(InvalidResponse):
	def __init__(self, source: str) -> None:
		super().__init__(source, f"{source} did not produce any usable questions")


# ---- Orchestration ----

class AllProvidersFailed(QuizError):
	def __init__(self, last_error: Optional[Exception]) -> None:
		self.last_error = last_error
		message = str(last_error) if last_error else "All LLM providers failed. Check server logs for details."
		super().__init__(message)


# ---- Client ----

class QuestionFetchError(QuizError):
	def __init__(self, reason: str, status: Optional[int] = None) -> None:
		self.reason = reason
		self.status = status
		super().__init__(reason)


class InvalidTransition(QuizError):
	def __init__(self, action: str, screen: str) -> None:
		self.action = action
		self.screen = screen
		super().__init__(f"cannot {action} from {screen}")
