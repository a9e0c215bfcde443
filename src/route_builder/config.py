"""Centralized configuration loaded from .env."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _load_env() -> None:
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)
    else:
        load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name, "")
    if not value:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    # Key-value store (Upstash Redis REST)
    store_backend: str = "upstash"  # "upstash" or "memory"
    upstash_url: str = ""
    upstash_token: str = ""

    # Public surface
    api_route: str = "http://localhost:8000"
    api_key: str = ""
    cors_origins: str = "*"

    # Search (Serper)
    serper_api_key: str = ""
    search_results: int = 10

    # Page fetching (ScraperAPI)
    scraper_api_key: str = ""
    scraper_timeout: int = 60
    render_js: bool = True

    # AI provider keys
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    anthropic_api_key: str = ""
    claude_model: str = "claude-haiku-4-5-20251001"

    # Ollama config
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "phi4-mini"

    # Groq config (OpenAI-compatible, free tier)
    groq_api_key: str = ""
    groq_model: str = "llama-3.1-8b-instant"

    # Gemini config (generous free tier, large context)
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"

    # Provider selection
    default_provider: str = "openai"
    schema_provider: str = ""  # empty = use default_provider for schema generation
    temperature: float = 0.1

    http_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> Settings:
        _load_env()
        return cls(
            store_backend=os.getenv("STORE_BACKEND", "upstash"),
            upstash_url=os.getenv("UPSTASH_REDIS_REST_URL", ""),
            upstash_token=os.getenv("UPSTASH_REDIS_REST_TOKEN", ""),
            api_route=os.getenv("API_ROUTE", "http://localhost:8000"),
            api_key=os.getenv("API_KEY", ""),
            cors_origins=os.getenv("CORS_ORIGINS", "*"),
            serper_api_key=os.getenv("SERPER_API_KEY", ""),
            search_results=int(os.getenv("SEARCH_RESULTS", "10")),
            scraper_api_key=os.getenv("SCRAPER_API_KEY", ""),
            render_js=_env_bool("RENDER_JS", True),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
            claude_model=os.getenv("CLAUDE_MODEL", "claude-haiku-4-5-20251001"),
            ollama_base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434"),
            ollama_model=os.getenv("OLLAMA_MODEL", "phi4-mini"),
            groq_api_key=os.getenv("GROQ_API_KEY", ""),
            groq_model=os.getenv("GROQ_MODEL", "llama-3.1-8b-instant"),
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
            default_provider=os.getenv("DEFAULT_PROVIDER", "openai"),
            schema_provider=os.getenv("SCHEMA_PROVIDER", ""),
            http_timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
        )
