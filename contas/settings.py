import logging

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="CONTAS_", extra="ignore")

    db_url: str = "sqlite:///contas.db"

    storage_backend: str = "local"
    storage_local_path: str = "./attachments"
    storage_prefix: str = "bills"

    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"

    import_request_delay: float = 4.0  # seconds before each parse request
    import_max_attempts: int = 4

    postpone_default_days: int = 7

    log_level: str = "INFO"
    log_json: bool = False

    def get_gemini_api_key(self) -> str:
        if not self.gemini_api_key:
            logger.warning("CONTAS_GEMINI_API_KEY is not set; document import is unavailable.")
            raise ValueError("Gemini API key not configured")
        return self.gemini_api_key


settings = Settings()
