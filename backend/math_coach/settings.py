from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	# Problem generation model
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	# Feedback on incorrect answers uses a separate, faster model
	gemini_feedback_model: str = Field(default="gemini-2.0-flash-exp", validation_alias="GEMINI_FEEDBACK_MODEL")
	# Vertex configuration
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")
	request_timeout_seconds: float = Field(default=30, validation_alias="REQUEST_TIMEOUT_SECONDS")

	# OpenRouter fallback configuration (optional)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="x-ai/grok-4-fast:free", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="Primary Math Coach", validation_alias="OPENROUTER_TITLE")

	# Sampling
	problem_temperature: float = Field(default=0.7, validation_alias="PROBLEM_TEMPERATURE")
	feedback_temperature: float = Field(default=0.8, validation_alias="FEEDBACK_TEMPERATURE")
	feedback_max_output_tokens: int = Field(default=150, validation_alias="FEEDBACK_MAX_OUTPUT_TOKENS")

	# Expiring key-value store: "memory", "file" or "database"
	storage_backend: str = Field(default="memory", validation_alias="STORAGE_BACKEND")
	storage_path: str = Field(default="./math_coach_storage.json", validation_alias="STORAGE_PATH")
	# 12 hours
	storage_expiry_seconds: int = Field(default=12 * 60 * 60, validation_alias="STORAGE_EXPIRY_SECONDS")
	history_key: str = Field(default="math_history", validation_alias="HISTORY_KEY")
	scores_key: str = Field(default="math_scores", validation_alias="SCORES_KEY")

	# Database (only used by the "database" storage backend)
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
