from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PackageIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


class PackageMetric(BaseModel):
    name: str
    version: str
    account_id: int
    lines_of_code: int = Field(ge=0)


class Measurement(BaseModel):
    """1 パッケージの計測結果。

    extracted が False の場合はアーカイブを展開できなかったことを表し、
    lines_of_code は 0 になる（行は出力される）。
    """

    lines_of_code: int = Field(ge=0)
    extracted: bool = True


class ListingEntry(BaseModel):
    name: str
    max_version: str


class ListingMeta(BaseModel):
    total: Optional[int] = None
    next_page: Optional[str] = None


class ListingPage(BaseModel):
    crates: List[Any] = Field(default_factory=list)
    meta: ListingMeta = Field(default_factory=ListingMeta)


class RunSummary(BaseModel):
    accounts: int
    failed_accounts: int = 0
    measured: int
    degraded: int
    skipped: int
    start_time: datetime
    end_time: datetime
    duration_seconds: float
