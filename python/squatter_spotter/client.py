"""
リクエスト間隔を空けて送信する HTTP クライアント。

各リクエストの送信時に「次に送信してよい時刻」を interval 後に設定し、
次のリクエストはその時刻まで待ってから送信する。
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Mapping, Optional, Sequence
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)


class FetchError(RuntimeError):
    """リクエストの送信またはレスポンスの取得に失敗した場合に送出される。"""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url


class PoliteClient:
    def __init__(
        self,
        base_url: str,
        interval: float,
        *,
        user_agent: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        url = httpx.URL(str(base_url))
        if url.scheme not in {"http", "https"} or not url.host:
            raise ValueError(f"ベースURLが不正です: {base_url}")
        if interval < 0:
            raise ValueError("interval は 0 以上を指定してください。")

        self._base_url = str(url).rstrip("/")
        self._interval = interval
        self._next_allowed: Optional[float] = None
        options: dict = {}
        if timeout is not None:
            options["timeout"] = timeout
        self._client = httpx.AsyncClient(
            headers={"User-Agent": user_agent},
            follow_redirects=True,
            transport=transport,
            **options,
        )

    @property
    def interval(self) -> float:
        return self._interval

    async def __aenter__(self) -> "PoliteClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def build_url(self, path_segments: Sequence[str]) -> str:
        if not path_segments:
            return self._base_url
        suffix = "/".join(quote(segment, safe="") for segment in path_segments)
        return f"{self._base_url}/{suffix}"

    async def fetch(
        self,
        path_segments: Sequence[str],
        params: Optional[Mapping[str, Any]] = None,
    ) -> bytes:
        url = self.build_url(path_segments)
        logger.info("取得中: %s", url)

        await self._wait_turn()
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                f"HTTP {exc.response.status_code} が返されました: {url}", url
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"リクエストの送信に失敗しました: {url}", url) from exc
        return response.content

    async def fetch_json(
        self,
        path_segments: Sequence[str],
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        body = await self.fetch(path_segments, params)
        try:
            return json.loads(body)
        except ValueError as exc:
            url = self.build_url(path_segments)
            raise FetchError(f"JSON の解析に失敗しました: {url}", url) from exc

    async def _wait_turn(self) -> None:
        if self._next_allowed is not None:
            # asyncio.sleep はクロック分解能の分だけ早く戻ることがある
            remaining = self._next_allowed - time.monotonic()
            while remaining > 0:
                await asyncio.sleep(remaining)
                remaining = self._next_allowed - time.monotonic()
        self._next_allowed = time.monotonic() + self._interval
