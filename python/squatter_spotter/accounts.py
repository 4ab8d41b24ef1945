from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional

logger = logging.getLogger(__name__)


class AccountListError(RuntimeError):
    """アカウント一覧ファイルを読み込めない場合に送出される。"""


class StartingAccountNotFound(RuntimeError):
    """開始アカウントが一覧に見つからなかった場合に送出される。"""


def read_accounts(path: Path, *, column: int = 3) -> Iterator[int]:
    """CSV のアカウント一覧からアカウントIDを順に返す。1 行目はヘッダとして読み飛ばす。"""
    try:
        fp = path.open("r", newline="", encoding="utf-8")
    except OSError as exc:
        raise AccountListError(f"アカウント一覧ファイルを開けません: {path}") from exc

    with fp:
        reader = csv.reader(fp)
        try:
            next(reader, None)
            for row in reader:
                yield _parse_account_id(row, column, reader.line_num)
        except (csv.Error, UnicodeDecodeError) as exc:
            raise AccountListError(f"アカウント一覧ファイルの読み込みに失敗しました: {path}") from exc


def _parse_account_id(row: list[str], column: int, line_num: int) -> int:
    if column >= len(row):
        raise AccountListError(f"不正なアカウント行です ({line_num} 行目): {row!r}")
    try:
        account_id = int(row[column])
    except ValueError as exc:
        raise AccountListError(
            f"アカウントIDを数値として解析できません ({line_num} 行目): {row[column]!r}"
        ) from exc
    if account_id < 0:
        raise AccountListError(f"アカウントIDが負の値です ({line_num} 行目): {account_id}")
    return account_id


def skip_to(accounts: Iterable[int], start_id: Optional[int]) -> Iterator[int]:
    """start_id に一致するアカウントまで読み飛ばし、そこから先を返す。"""
    iterator = iter(accounts)
    if start_id is not None:
        logger.info("アカウント %s まで読み飛ばします", start_id)
        for account_id in iterator:
            if account_id == start_id:
                yield account_id
                break
        else:
            raise StartingAccountNotFound(
                f"開始アカウント {start_id} が見つからないままアカウント一覧の終わりに達しました"
            )
    yield from iterator
