from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# Gemini (Generative Language API, key passed in the query string)
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	gemini_base_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta/models", validation_alias="GEMINI_BASE_URL")

	# OpenAI-compatible chat completion vendors (bearer token)
	openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
	openai_model: str = Field(default="gpt-4.1-mini", validation_alias="OPENAI_MODEL")
	openai_base_url: str = Field(default="https://api.openai.com/v1/chat/completions", validation_alias="OPENAI_BASE_URL")

	groq_api_key: str | None = Field(default=None, validation_alias="GROQ_API_KEY")
	groq_model: str = Field(default="llama-3.1-70b-versatile", validation_alias="GROQ_MODEL")
	groq_base_url: str = Field(default="https://api.groq.com/openai/v1/chat/completions", validation_alias="GROQ_BASE_URL")

	perplexity_api_key: str | None = Field(default=None, validation_alias="PERPLEXITY_API_KEY")
	perplexity_model: str = Field(default="llama-3.1-sonar-small-128k-chat", validation_alias="PERPLEXITY_MODEL")
	perplexity_base_url: str = Field(default="https://api.perplexity.ai/chat/completions", validation_alias="PERPLEXITY_BASE_URL")

	# When false only the first configured provider is queried
	llm_fallback: bool = Field(default=False, validation_alias="LLM_FALLBACK")
	llm_http_retries: int = Field(default=2, validation_alias="LLM_HTTP_RETRIES")
	llm_retry_delay_seconds: float = Field(default=2.0, validation_alias="LLM_RETRY_DELAY_SECONDS")
	llm_timeout_seconds: float = Field(default=30.0, validation_alias="LLM_TIMEOUT_SECONDS")

	# Quiz client
	questions_per_band: int = Field(default=6, validation_alias="QUESTIONS_PER_BAND")
	client_timeout_seconds: float = Field(default=20.0, validation_alias="CLIENT_TIMEOUT_SECONDS")
	server_url: str = Field(default="http://127.0.0.1:8000", validation_alias="LINGUA_QUIZ_SERVER_URL")

	# Logging
	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
	log_json: bool = Field(default=False, validation_alias="LOG_JSON")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
