from functools import lru_cache

import boto3
from botocore.config import Config

from opsroom.config import get_settings


@lru_cache
def get_session() -> boto3.Session:
    settings = get_settings()
    session_kwargs = {"region_name": settings.aws_region}
    if settings.aws_access_key_id and settings.aws_secret_access_key:
        session_kwargs.update(
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
        )
    return boto3.Session(**session_kwargs)


def bedrock_runtime_client():
    """Bedrock runtime client with the caller-side LLM timeout applied."""
    settings = get_settings()
    config = Config(
        connect_timeout=min(10, settings.llm_timeout_seconds),
        read_timeout=settings.llm_timeout_seconds,
        retries={"mode": "standard", "max_attempts": 2},
    )
    return get_session().client("bedrock-runtime", region_name=settings.aws_region, config=config)
