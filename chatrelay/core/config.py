from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    STORE_URL: str | None = None
    DATA_DIR: str = "./data/threads"
    STORE_LOCK_TIMEOUT_SECONDS: float = 5.0

    COMPLETION_API_KEY: str | None = None
    COMPLETION_BASE_URL: str = "https://api.groq.com/openai/v1"
    COMPLETION_MODEL: str = "llama-3.1-8b-instant"
    COMPLETION_TEMPERATURE: float = 0.2
    COMPLETION_MAX_TOKENS: int = 512
    COMPLETION_TIMEOUT_SECONDS: float = 20.0
    SYSTEM_PROMPT: str | None = None
    SYSTEM_PROMPT_FILE: str | None = None

    CONTEXT_MAX_CHARS: int = 6000
    CONTEXT_MAX_MESSAGES: int = 0

    WHATSAPP_TOKEN: str | None = None
    WHATSAPP_PHONE_NUMBER_ID: str = ""
    WHATSAPP_GRAPH_API_VERSION: str = "v19.0"
    WHATSAPP_API_BASE_URL: str = "https://graph.facebook.com"
    WHATSAPP_TIMEOUT_SECONDS: float = 10.0
    WHATSAPP_APP_SECRET: str | None = None

    WEBHOOK_VERIFY_TOKEN: str = ""

    DEDUPE_EVENTS: bool = False
    DEDUPE_WINDOW: int = 100


settings = Settings()
