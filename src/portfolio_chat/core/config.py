# src/portfolio_chat/core/config.py
import os
from dataclasses import dataclass, field

# Only try to load .env locally; in Lambda, env vars are injected by the deploy
if os.environ.get("APP_ENV", "local") == "local":
    from dotenv import load_dotenv
    load_dotenv()


def _env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _env_int(name: str, default: int) -> int:
    return int(_env(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(_env(name, str(default)))


@dataclass
class AppConfig:
    # Environment
    app_env: str = field(default_factory=lambda: _env("APP_ENV", "local"))
    aws_region: str = field(default_factory=lambda: _env("AWS_REGION", "us-east-1"))
    bedrock_region: str = field(default_factory=lambda: _env("BEDROCK_REGION") or _env("AWS_REGION", "us-east-1"))

    # Blob storage (S3)
    knowledge_bucket: str = field(default_factory=lambda: _env("KNOWLEDGE_BUCKET"))
    settings_key: str = field(default_factory=lambda: _env("SETTINGS_KEY", "knowledge-base/bot-settings.json"))
    knowledge_key: str = field(default_factory=lambda: _env("KNOWLEDGE_KEY", "knowledge-base/embeddings.json"))

    # Embeddings
    embed_provider: str = field(default_factory=lambda: _env("EMBED_PROVIDER", "bedrock").lower())
    embed_model_id: str = field(default_factory=lambda: _env("EMBED_MODEL_ID", "amazon.titan-embed-text-v1"))
    local_embed_model: str = field(default_factory=lambda: _env("LOCAL_EMBED_MODEL", "sentence-transformers/all-MiniLM-L6-v2"))

    # LLM
    llm_model_id: str = field(default_factory=lambda: _env("LLM_MODEL_ID", "anthropic.claude-3-sonnet-20240229-v1:0"))
    max_tokens: int = field(default_factory=lambda: _env_int("MAX_TOKENS", 1000))
    temperature: float = field(default_factory=lambda: _env_float("TEMPERATURE", 0.2))

    # Remote call bounds (seconds)
    llm_timeout_sec: float = field(default_factory=lambda: _env_float("LLM_TIMEOUT_SEC", 45))
    embed_timeout_sec: float = field(default_factory=lambda: _env_float("EMBED_TIMEOUT_SEC", 10))
    s3_timeout_sec: float = field(default_factory=lambda: _env_float("S3_TIMEOUT_SEC", 5))
    max_retries: int = field(default_factory=lambda: _env_int("MAX_RETRIES", 2))

    # Optional tools
    projects_table: str = field(default_factory=lambda: _env("PROJECTS_TABLE"))
    about_me_text: str = field(default_factory=lambda: os.getenv("ABOUT_ME_TEXT", ""))
    tool_workers: int = field(default_factory=lambda: _env_int("TOOL_WORKERS", 4))

    @property
    def is_lambda(self) -> bool:
        return bool(os.getenv("AWS_LAMBDA_FUNCTION_NAME"))
