from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
    APP_NAME: str = "Fashion Sense API"
    APP_ENV: str = "dev"
    API_PREFIX: str = "/api"
    CORS_ORIGINS: str = "*"
    # Upload limits
    MAX_UPLOAD_FILES: int = 10
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    # LLM flags ("demo" serves mock data when no key is configured)
    LLM_PROVIDER: str = "demo"
    OPENAI_API_KEY: Optional[str] = None
    LLM_MODEL_VISION: str = "gpt-4o-mini"
    LLM_MODEL_TEXT: str = "gpt-4o-mini"
    LLM_TIMEOUT_MS: int = 60000
    LLM_RETRIES: int = 2
    LLM_RETRY_BACKOFF_S: float = 1.0
    # Client-side storage
    LOCAL_STORE_URL: str = "sqlite+aiosqlite:///./fashion_sense.db"
    KV_BACKEND: str = "memory"
    REDIS_URL: str = "redis://localhost:6379/0"
    # Client transport
    CLIENT_API_BASE_URL: str = "http://localhost:3000/api"
    CLIENT_TIMEOUT_S: float = 120.0

    @property
    def cors_origin_list(self) -> List[str]:
        val = self.CORS_ORIGINS
        if not val: return []
        if val == "*": return ["*"]
        return [v.strip() for v in val.split(",")]

    @property
    def demo_mode(self) -> bool:
        if (self.LLM_PROVIDER or "demo").lower() == "demo":
            return True
        key = self.OPENAI_API_KEY or ""
        return key in ("", "YOUR_API_KEY_HERE")

settings = Settings()
