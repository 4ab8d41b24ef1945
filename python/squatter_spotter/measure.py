"""
パッケージのアーカイブを取得・展開し、ソースコード行数を計測する。

展開に失敗したアーカイブは「コードなし」として 0 行を返す（行は出力される）。
計測ツールの失敗やレポートの解析失敗は MeasurementError として呼び出し元に伝え、
そのパッケージは出力しない。
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Sequence, Tuple

from .client import FetchError, PoliteClient
from .models import Measurement, PackageIdentity
from .workspace import ScratchWorkspace

logger = logging.getLogger(__name__)


class MeasurementError(RuntimeError):
    """1 パッケージの計測を完了できなかったことを表す。"""

    def __init__(self, package: PackageIdentity, message: str) -> None:
        super().__init__(f"{package}: {message}")
        self.package = package


class DownloadError(MeasurementError):
    pass


class ToolError(MeasurementError):
    pass


class ReportError(MeasurementError):
    pass


class ArchiveMeasurer:
    def __init__(
        self,
        client: PoliteClient,
        workspace: ScratchWorkspace,
        *,
        untar_exec: Path,
        tokei_exec: Path,
        language: str = "Rust",
    ) -> None:
        self._client = client
        self._workspace = workspace
        self._untar_exec = untar_exec
        self._tokei_exec = tokei_exec
        self._language = language

    def tokei_args(self) -> List[str]:
        return [
            str(self._tokei_exec),
            "-C",
            "-t",
            self._language,
            "-o",
            "json",
            str(self._workspace.root),
        ]

    def untar_args(self) -> List[str]:
        return [
            str(self._untar_exec),
            "-xf",
            str(self._workspace.archive_path),
            "-C",
            str(self._workspace.root),
        ]

    async def measure(self, package: PackageIdentity) -> Measurement:
        with self._workspace.occupied():
            await self._download(package)

            returncode, _ = await self._run(package, self.untar_args(), capture=False)
            if returncode != 0:
                logger.warning("%s の展開に失敗しました (終了コード %s)。0 行として記録します。", package, returncode)
                return Measurement(lines_of_code=0, extracted=False)

            returncode, stdout = await self._run(package, self.tokei_args(), capture=True)
            if returncode != 0:
                raise ToolError(package, f"計測ツールが終了コード {returncode} で終了しました")

            lines = parse_report(package, stdout, self._language)
            return Measurement(lines_of_code=lines, extracted=True)

    async def _download(self, package: PackageIdentity) -> None:
        try:
            body = await self._client.fetch([package.name, package.version, "download"])
        except FetchError as exc:
            raise DownloadError(package, "アーカイブのダウンロードに失敗しました") from exc
        try:
            self._workspace.archive_path.write_bytes(body)
        except OSError as exc:
            raise DownloadError(package, "アーカイブを書き込めません") from exc

    async def _run(
        self,
        package: PackageIdentity,
        args: Sequence[str],
        *,
        capture: bool,
    ) -> Tuple[int, bytes]:
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE if capture else asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            raise ToolError(package, f"{args[0]} を起動できません") from exc
        stdout, _ = await process.communicate()
        return process.returncode, stdout or b""


def parse_report(package: PackageIdentity, stdout: bytes, language: str) -> int:
    """計測ツールの JSON レポートから指定言語のコード行数を取り出す。"""
    try:
        report = json.loads(stdout)
    except ValueError as exc:
        raise ReportError(package, "計測レポートを JSON として解析できません") from exc

    stats = report.get(language) if isinstance(report, dict) else None
    code = stats.get("code") if isinstance(stats, dict) else None
    if isinstance(code, bool) or not isinstance(code, int) or code < 0:
        raise ReportError(package, f"計測レポートに {language} のコード行数がありません")
    return code
