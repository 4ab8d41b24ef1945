from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, HttpUrl, ValidationError, field_validator

from . import __version__

DEFAULT_API_BASE = "https://crates.io/api/v1/crates"
DEFAULT_USER_AGENT = f"squatter-spotter {__version__}"


class ConfigError(RuntimeError):
    """設定ファイルを読み込めない場合に送出される。"""


class SpotterConfig(BaseModel):
    work_dir: Path
    user_file: Path
    output_file: Path
    untar_exec: Path
    tokei_exec: Path
    api_base: HttpUrl = Field(default=DEFAULT_API_BASE, validate_default=True)
    user_agent: str = DEFAULT_USER_AGENT
    rate_limit_seconds: float = 1.0
    request_timeout: Optional[float] = 30.0
    language: str = "Rust"
    user_id_column: int = 3
    per_page: int = Field(default=100, ge=1, le=100)

    @field_validator("rate_limit_seconds")
    @classmethod
    def _validate_rate_limit(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("rate_limit_seconds は 0 より大きい値を指定してください。")
        return value

    @field_validator("user_id_column")
    @classmethod
    def _validate_column(cls, value: int) -> int:
        if value < 0:
            raise ValueError("user_id_column は 0 以上を指定してください。")
        return value

    @field_validator("language")
    @classmethod
    def _validate_language(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("language を空にすることはできません。")
        return value.strip()


def load_config(path: Path) -> SpotterConfig:
    """YAML (または JSON) の設定ファイルを読み込む。"""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"設定ファイルを読み込めません: {path}") from exc

    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"設定ファイルの解析に失敗しました: {path}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"設定ファイルの形式が不正です: {path}")

    try:
        return SpotterConfig(**data)
    except ValidationError as exc:
        raise ConfigError(f"設定の検証に失敗しました: {path}") from exc
