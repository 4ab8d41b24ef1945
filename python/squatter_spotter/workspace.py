from __future__ import annotations

import logging
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

ARCHIVE_FILENAME = "download"


class WorkspaceError(RuntimeError):
    """作業ディレクトリを準備・消去できない場合に送出される。"""


class ScratchWorkspace:
    """アーカイブを 1 つずつ展開するための使い回しの作業ディレクトリ。"""

    def __init__(self, root: Path) -> None:
        self.root = root

    @property
    def archive_path(self) -> Path:
        return self.root / ARCHIVE_FILENAME

    def prepare(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WorkspaceError(f"作業ディレクトリを作成できません: {self.root}") from exc
        if not self.is_empty():
            logger.info("作業ディレクトリに残っていたファイルを削除します: %s", self.root)
            self.clear()

    def is_empty(self) -> bool:
        try:
            return not any(self.root.iterdir())
        except OSError as exc:
            raise WorkspaceError(f"作業ディレクトリを一覧できません: {self.root}") from exc

    def clear(self) -> None:
        try:
            entries = list(self.root.iterdir())
        except OSError as exc:
            raise WorkspaceError(f"作業ディレクトリを一覧できません: {self.root}") from exc

        for entry in entries:
            try:
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
            except OSError as exc:
                raise WorkspaceError(f"削除に失敗しました: {entry}") from exc

    @contextmanager
    def occupied(self) -> Iterator[Path]:
        """作業ディレクトリを 1 パッケージ分占有する。終了時は必ず空に戻す。"""
        if not self.is_empty():
            self.clear()
        try:
            yield self.root
        finally:
            self.clear()
