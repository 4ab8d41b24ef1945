from __future__ import annotations

import csv
import logging
import os
from pathlib import Path
from typing import Iterable

from .models import PackageMetric

logger = logging.getLogger(__name__)

FIELDNAMES = ["name", "version", "account_id", "lines_of_code"]


class SinkError(RuntimeError):
    """計測結果ファイルを作成・追記できない場合に送出される。"""


class MetricsSink:
    """計測結果を CSV に追記する。既存の内容は書き換えない。"""

    def __init__(self, path: Path) -> None:
        self.path = path

    def ensure(self) -> None:
        if self.path.exists():
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("x", newline="", encoding="utf-8") as fp:
                csv.DictWriter(fp, fieldnames=FIELDNAMES, lineterminator="\n").writeheader()
        except FileExistsError:
            return
        except OSError as exc:
            raise SinkError(f"出力ファイルを作成できません: {self.path}") from exc
        logger.info("新しい出力ファイルにヘッダを書き込みました: %s", self.path)

    def append(self, metrics: Iterable[PackageMetric]) -> int:
        self.ensure()
        count = 0
        try:
            with self.path.open("a", newline="", encoding="utf-8") as fp:
                writer = csv.DictWriter(fp, fieldnames=FIELDNAMES, lineterminator="\n")
                for metric in metrics:
                    writer.writerow(metric.model_dump(include=set(FIELDNAMES)))
                    count += 1
                fp.flush()
                os.fsync(fp.fileno())
        except OSError as exc:
            raise SinkError(f"出力ファイルへの追記に失敗しました: {self.path}") from exc
        return count
