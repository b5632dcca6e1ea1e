from __future__ import annotations

import os
from typing import Any, Optional

from pydantic import BaseModel, Field

from utils import mask_secret


class Configuration(BaseModel):
    # Geoapify (geocoding + places)
    geoapify_api_key: Optional[str] = Field(default=None)
    geoapify_base_url: str = Field(default="https://api.geoapify.com")
    geoapify_timeout: int = Field(default=15)
    geoapify_max_results: int = Field(default=20)
    lang_default: str = Field(default="fr")

    # Places
    default_radius_m: int = Field(default=5000)
    places_limit: int = Field(default=10)

    # LLM (openrouter | google | ollama)
    llm_provider: str = Field(default="openrouter")
    llm_api_key: Optional[str] = Field(default=None)
    llm_base_url: str = Field(default="https://openrouter.ai/api/v1")
    llm_model_id: str = Field(default="google/gemma-3-27b-it")
    # native ollama base (without /v1)
    ollama_base_url: str = Field(default="http://localhost:11434")
    llm_timeout: float = Field(default=15.0)
    llm_temperature: float = Field(default=0.2)
    llm_max_tokens: int = Field(default=1500)

    # OpenAgenda (events, room prompt only)
    openagenda_api_key: Optional[str] = Field(default=None)
    openagenda_base_url: str = Field(default="https://api.openagenda.com/v2")
    openagenda_timeout: int = Field(default=10)
    events_limit: int = Field(default=20)

    # Community catalogue override
    community_ideas_path: Optional[str] = Field(default=None)

    @classmethod
    def from_env(cls, overrides: Optional[dict[str, Any]] = None) -> "Configuration":
        raw: dict[str, Any] = {}

        env_map = {
            "geoapify_api_key": os.getenv("GEOAPIFY_API_KEY"),
            "geoapify_base_url": os.getenv("GEOAPIFY_BASE_URL"),
            "geoapify_timeout": os.getenv("GEOAPIFY_TIMEOUT"),
            "geoapify_max_results": os.getenv("GEOAPIFY_MAX_RESULTS"),
            "lang_default": os.getenv("LANG_DEFAULT"),
            "default_radius_m": os.getenv("DEFAULT_RADIUS_M"),
            "places_limit": os.getenv("PLACES_LIMIT"),
            # LLM
            "llm_provider": os.getenv("LLM_PROVIDER"),
            "llm_api_key": os.getenv("LLM_API_KEY") or os.getenv("OPENROUTER_API_KEY"),
            "llm_base_url": os.getenv("LLM_BASE_URL"),
            "llm_model_id": os.getenv("LLM_MODEL_ID"),
            "ollama_base_url": os.getenv("OLLAMA_BASE_URL"),
            "llm_timeout": os.getenv("LLM_TIMEOUT"),
            "llm_temperature": os.getenv("LLM_TEMPERATURE"),
            "llm_max_tokens": os.getenv("LLM_MAX_TOKENS"),
            # Events
            "openagenda_api_key": os.getenv("OPENAGENDA_API_KEY"),
            "openagenda_base_url": os.getenv("OPENAGENDA_BASE_URL"),
            "openagenda_timeout": os.getenv("OPENAGENDA_TIMEOUT"),
            "events_limit": os.getenv("EVENTS_LIMIT"),
            "community_ideas_path": os.getenv("COMMUNITY_IDEAS_PATH"),
        }

        for k, v in env_map.items():
            if v is None or v == "":
                continue
            raw[k] = v

        if overrides:
            raw.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**raw)

    @property
    def provider(self) -> str:
        return (self.llm_provider or "openrouter").lower()

    def has_llm_credential(self) -> bool:
        # ollama runs locally and needs no key
        if self.provider == "ollama":
            return True
        return bool(self.llm_api_key)

    def require_geoapify(self) -> None:
        if not self.geoapify_api_key:
            raise ValueError("GEOAPIFY_API_KEY is required")

    def require_openagenda(self) -> None:
        if not self.openagenda_api_key:
            raise ValueError("OPENAGENDA_API_KEY is required")

    def log_summary(self) -> str:
        return (
            "geoapify=%s base=%s timeout=%s lang_default=%s api_key=%s llm_provider=%s llm_model=%s llm_key=%s openagenda=%s"
            % (
                bool(self.geoapify_api_key),
                self.geoapify_base_url,
                self.geoapify_timeout,
                self.lang_default,
                mask_secret(self.geoapify_api_key),
                self.provider,
                self.llm_model_id,
                mask_secret(self.llm_api_key),
                bool(self.openagenda_api_key),
            )
        )

    def sanitized_ollama_url(self) -> str:
        base = (self.ollama_base_url or "http://localhost:11434").rstrip("/")
        if not base.endswith("/v1"):
            base = f"{base}/v1"
        return base

    def chat_base_url(self) -> str:
        if self.provider == "ollama":
            return self.sanitized_ollama_url()
        return self.llm_base_url.rstrip("/")
