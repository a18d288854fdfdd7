"""Resolver configuration: YAML loader and Pydantic models."""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator


# ── Contact & Credentials ────────────────────────────────────────────


class ContactConfig(BaseModel):
    """Identification sent to NCBI / OpenAlex with every request."""

    email: str = "default@example.com"
    tool: str = "citeflow"
    ncbi_api_key: Optional[str] = None
    openalex_api_key: Optional[str] = None


# ── HTTP ─────────────────────────────────────────────────────────────


class HttpConfig(BaseModel):
    """Per-call transport settings."""

    timeout_seconds: float = Field(default=10.0, description="Per-branch timeout")
    user_agent: str = "citeflow/0.1"

    @field_validator("timeout_seconds")
    @classmethod
    def positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {v}")
        return v


# ── Content Thresholds ───────────────────────────────────────────────


class Thresholds(BaseModel):
    """Minimum lengths for a normalized payload to count as content."""

    min_content_chars: int = Field(default=200, ge=1)
    min_abstract_chars: int = Field(default=1, ge=1)
    excerpt_chars: int = Field(
        default=0, ge=0, description="Prefix of resolved text stored as excerpt; 0 = none"
    )


# ── LLM-backed Stages ────────────────────────────────────────────────


class ExtractorConfig(BaseModel):
    """Structured-output metadata extraction via Ollama."""

    use_llm: bool = False
    model: str = "qwen3:8b"


class AISearchConfig(BaseModel):
    """Web-search-backed PMCID finder and abstract fallback."""

    enabled: bool = False
    model: str = "qwen3:8b"
    max_results: int = Field(default=3, ge=1, le=10)
    timeout_seconds: float = Field(default=30.0, gt=0)
    host: Optional[str] = None


class StoreConfig(BaseModel):
    db_path: Path = Path("data/citations.db")


# ── Top-level ────────────────────────────────────────────────────────


class ResolverConfig(BaseModel):
    """Top-level configuration for the citation waterfall."""

    contact: ContactConfig = Field(default_factory=ContactConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    thresholds: Thresholds = Field(default_factory=Thresholds)
    deadline_seconds: Optional[float] = Field(
        default=None, description="Wall-clock budget for the content stages"
    )
    extractor: ExtractorConfig = Field(default_factory=ExtractorConfig)
    ai_search: AISearchConfig = Field(default_factory=AISearchConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)

    @field_validator("deadline_seconds")
    @classmethod
    def positive_deadline(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError(f"deadline_seconds must be positive, got {v}")
        return v


def load_config(path: str | Path | None = None) -> ResolverConfig:
    """Load a YAML resolver config from disk; defaults when path is None."""
    if path is None:
        return ResolverConfig()
    path = Path(path)
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    return ResolverConfig.model_validate(raw)
