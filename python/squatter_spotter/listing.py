from __future__ import annotations

import logging
from typing import AsyncIterator

from pydantic import ValidationError

from .client import FetchError, PoliteClient
from .models import ListingEntry, ListingPage, PackageIdentity

logger = logging.getLogger(__name__)


class ListingError(RuntimeError):
    """アカウントのパッケージ一覧を取得できない場合に送出される。"""


async def list_packages(
    client: PoliteClient,
    account_id: int,
    *,
    per_page: int = 100,
) -> AsyncIterator[PackageIdentity]:
    """アカウントが所有するパッケージを (名前, 最新バージョン) として順に返す。

    ページングは meta.next_page が空になるまで続ける。解析できないエントリは
    読み飛ばす。
    """
    page = 1
    while True:
        params = {
            "user_id": account_id,
            "page": page,
            "per_page": per_page,
            "sort": "alpha",
        }
        try:
            body = await client.fetch_json([], params)
        except FetchError as exc:
            raise ListingError(
                f"パッケージ一覧の取得に失敗しました (account={account_id}, page={page})"
            ) from exc

        try:
            listing = ListingPage.model_validate(body)
        except ValidationError as exc:
            raise ListingError(
                f"パッケージ一覧の形式が不正です (account={account_id}, page={page})"
            ) from exc

        for raw in listing.crates:
            try:
                entry = ListingEntry.model_validate(raw)
            except ValidationError as exc:
                logger.debug("一覧のエントリを読み飛ばします (account=%s): %s", account_id, exc)
                continue
            yield PackageIdentity(name=entry.name, version=entry.max_version)

        if not listing.crates or not listing.meta.next_page:
            return
        page += 1
