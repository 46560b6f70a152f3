from __future__ import annotations

import platform
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

LINUX_BUILD_SHA = "2d9f1f26377add8aeb1075a9c2973f962c4f09fd"
MACOS_BUILD_SHA = "cead25079874084f62182a551b7393616cd33d87"


def _expand_optional(value: Optional[str | Path]) -> Optional[Path]:
    if value is None:
        return None
    return Path(value).expanduser().resolve()


class LibrarySettings(BaseModel):
    roots: List[Path] = Field(default_factory=list)
    include_extensions: List[str] = Field(default_factory=lambda: [".mp3", ".flac", ".m4a", ".ogg"])
    exclude_patterns: List[str] = Field(default_factory=list)

    @field_validator("roots", mode="before")
    @classmethod
    def _expand_roots(cls, values: List[str]) -> List[Path]:
        return [Path(v).expanduser().resolve() for v in values or []]


class ProviderSettings(BaseModel):
    acoustid_api_key: Optional[str] = None
    musicbrainz_useragent: str = "abz-submit/0.1 (unknown@example.com)"
    network_retries: int = 1
    network_retry_backoff_seconds: float = 0.5
    min_search_score: int = 90


class ExtractorSettings(BaseModel):
    binary: Optional[Path] = None
    essentia_build_sha: Optional[str] = None
    scratch_dir: Optional[Path] = None

    @field_validator("binary", "scratch_dir", mode="before")
    @classmethod
    def _expand_paths(cls, value: Optional[str | Path]) -> Optional[Path]:
        return _expand_optional(value)

    def build_sha(self) -> str:
        if self.essentia_build_sha:
            return self.essentia_build_sha
        return MACOS_BUILD_SHA if platform.system() == "Darwin" else LINUX_BUILD_SHA


class SubmitSettings(BaseModel):
    base_url: str = "https://acousticbrainz.org"
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 10.0
    user_agent: Optional[str] = None
    gzip_payload: bool = False

    @field_validator("base_url")
    @classmethod
    def _strip_slash(cls, value: str) -> str:
        return value.rstrip("/")


class DaemonSettings(BaseModel):
    worker_concurrency: int = 2
    pipeline_disable: List[str] = Field(default_factory=list)


class Settings(BaseModel):
    library: LibrarySettings = LibrarySettings()
    providers: ProviderSettings = ProviderSettings()
    extractor: ExtractorSettings = ExtractorSettings()
    submit: SubmitSettings = SubmitSettings()
    daemon: DaemonSettings = DaemonSettings()

    @classmethod
    def load(cls, path: Path) -> "Settings":
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
        return cls.model_validate(raw or {})


def find_config(explicit_path: Optional[Path]) -> Optional[Path]:
    if explicit_path:
        if not explicit_path.exists():
            raise FileNotFoundError(f"Config file {explicit_path} does not exist.")
        return explicit_path
    cwd = Path.cwd()
    for candidate in (cwd / "config.yaml", cwd / "config.yml"):
        if candidate.exists():
            return candidate
    return None
