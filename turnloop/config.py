"""
Configuration management for turnloop.

Loads all configuration from environment variables with sensible defaults
for local development.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _optional_int(name: str) -> int | None:
    value = os.getenv(name, "")
    return int(value) if value else None


@dataclass
class ProviderConfig:
    """Configuration for the OpenAI-compatible completion endpoint."""
    base_url: str = os.getenv("TURNLOOP_BASE_URL", "http://localhost:8001/v1")
    model: str = os.getenv("TURNLOOP_MODEL", "Qwen/Qwen3-8B")
    api_key: str = os.getenv("TURNLOOP_API_KEY", "not-needed")  # vLLM does not require auth
    temperature: float = float(os.getenv("TURNLOOP_TEMPERATURE", "0.7"))
    max_tokens: int | None = _optional_int("TURNLOOP_MAX_TOKENS")
    timeout: float = float(os.getenv("TURNLOOP_TIMEOUT", "120"))


@dataclass
class AgentConfig:
    """Configuration for the default agent."""
    preamble: str = os.getenv("TURNLOOP_PREAMBLE", "You are good at using tools.")
    max_depth: int = int(os.getenv("TURNLOOP_MAX_DEPTH", "0"))


@dataclass
class ServerConfig:
    """Configuration for the FastAPI server."""
    host: str = os.getenv("SERVER_HOST", "0.0.0.0")
    port: int = int(os.getenv("SERVER_PORT", "8000"))
    workers: int = int(os.getenv("SERVER_WORKERS", "1"))
    reload: bool = os.getenv("SERVER_RELOAD", "false").lower() == "true"


@dataclass
class LangfuseConfig:
    """Configuration for Langfuse observability.

    Tracing auto-enables when both public_key and secret_key are provided.
    """
    public_key: str = os.getenv("LANGFUSE_PUBLIC_KEY", "")
    secret_key: str = os.getenv("LANGFUSE_SECRET_KEY", "")
    host: str = os.getenv("LANGFUSE_HOST", "")
    debug: bool = os.getenv("LANGFUSE_DEBUG", "false").lower() == "true"

    @property
    def enabled(self) -> bool:
        """Auto-enable when both keys are configured."""
        return bool(self.public_key and self.secret_key)


@dataclass
class Config:
    """Main configuration container."""
    provider: ProviderConfig
    agent: AgentConfig
    server: ServerConfig
    langfuse: LangfuseConfig
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def get_config() -> Config:
    """Get the application configuration."""
    return Config(
        provider=ProviderConfig(),
        agent=AgentConfig(),
        server=ServerConfig(),
        langfuse=LangfuseConfig(),
    )


# Global config instance
config = get_config()
