from typing import List, Literal
from pydantic import computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App Config
    PROJECT_NAME: str = "SlicerLens"
    ENVIRONMENT: Literal["dev", "prod"] = "dev"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173"]

    # LLM Provider
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o"
    OPENAI_TEMPERATURE: float = 0.2

    # Preset Catalog
    PROFILE_ROOT: str = "https://obico-public.s3.amazonaws.com/slicer-profiles/"
    PRESET_CATALOG_FILE: str = "presets.json"

    # Outbound fetch policy
    FETCH_MAX_ATTEMPTS: int = 3
    FETCH_RETRY_DELAY_S: float = 1.0
    FETCH_TIMEOUT_S: float = 5.0

    # Upload limits
    MAX_3MF_UPLOAD_BYTES: int = int(4.5 * 1024 * 1024)
    MAX_GCODE_DECOMPRESSED_BYTES: int = 20 * 1024 * 1024

    @field_validator("PROFILE_ROOT")
    @classmethod
    def ensure_trailing_slash(cls, v: str) -> str:
        # sub_path values are appended verbatim
        return v if v.endswith("/") else v + "/"

    @computed_field
    @property
    def PRESET_CATALOG_URL(self) -> str:
        """Full URL of the preset catalog document."""
        return f"{self.PROFILE_ROOT}{self.PRESET_CATALOG_FILE}"

    @computed_field
    @property
    def OPENAI_KEY_PREVIEW(self) -> str | None:
        """Masked API key, safe for logs and status endpoints."""
        if not self.OPENAI_API_KEY:
            return None
        return f"{self.OPENAI_API_KEY[:4]}...{self.OPENAI_API_KEY[-4:]}"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


# Globally accessible settings instance
settings = Settings()
