from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import AnyHttpUrl, field_validator
from pydantic_settings import BaseSettings

ROOT_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = True
    cors_origins: List[AnyHttpUrl] | List[str] = ["http://localhost:3000"]

    aws_region: str = "us-east-1"
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    bedrock_model_id: str = "anthropic.claude-3-haiku-20240307-v1:0"
    llm_temperature: float = 0.3
    llm_timeout_seconds: int = 60
    extraction_max_tokens: int = 800
    summary_max_tokens: int = 1500

    store_path: str = str(ROOT_DIR / "data" / "store.json")

    auth_jwt_secret: str = ""
    auth_jwt_algorithm: str = "HS256"
    auth_jwt_audience: str | None = None

    log_level: str = "INFO"
    log_dir: str | None = None

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors(cls, value: str | list[str]) -> list[str] | list[AnyHttpUrl]:
        if isinstance(value, str):
            items = [item.strip() for item in value.split(",") if item.strip()]
            default_value = cls.model_fields["cors_origins"].default  # type: ignore[index]
            return items or default_value
        return value

    class Config:
        env_file = str(ROOT_DIR / ".env")
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()
