from __future__ import annotations

import json
import stat
import time
from pathlib import Path
from typing import Dict, List, Tuple, Union

import httpx
import pytest

from squatter_spotter.client import PoliteClient

API_BASE = "https://crates.io/api/v1/crates"

# 展開ツールの代わり: アーカイブをそのまま pkg/report.json として「展開」する。
# アーカイブに CORRUPT が含まれていれば展開失敗とする。
FAKE_UNTAR = """#!/bin/sh
if grep -q CORRUPT "$2"; then
  exit 2
fi
mkdir -p "$4/pkg"
cp "$2" "$4/pkg/report.json"
"""

# 計測ツールの代わり: 展開された report.json を JSON レポートとして出力する。
FAKE_TOKEI = """#!/bin/sh
if grep -q FAIL "$6/pkg/report.json"; then
  echo "tokei failed" >&2
  exit 3
fi
cat "$6/pkg/report.json"
"""


def write_script(path: Path, body: str) -> Path:
    path.write_text(body, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def rust_report(code: int) -> bytes:
    return json.dumps({"Rust": {"blanks": 1, "code": code, "comments": 0}}).encode("utf-8")


class FakeRegistry:
    """crates.io の一覧 API とダウンロード API を模したハンドラ。"""

    def __init__(self, *, per_page: int = 100) -> None:
        self.per_page = per_page
        self.accounts: Dict[int, List[dict]] = {}
        self.downloads: Dict[Tuple[str, str], Union[bytes, int]] = {}
        self.requests: List[httpx.Request] = []
        self.request_times: List[float] = []

    def add_package(self, account_id: int, name: str, version: str, body: Union[bytes, int]) -> None:
        self.accounts.setdefault(account_id, []).append({"name": name, "max_version": version})
        self.downloads[(name, version)] = body

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.request_times.append(time.monotonic())
        self.requests.append(request)

        path = request.url.path
        if path == "/api/v1/crates":
            return self._listing(request)

        parts = path[len("/api/v1/crates/"):].split("/")
        if len(parts) == 3 and parts[2] == "download":
            body = self.downloads.get((parts[0], parts[1]), 404)
            if isinstance(body, int):
                return httpx.Response(body)
            return httpx.Response(200, content=body)
        return httpx.Response(404)

    def _listing(self, request: httpx.Request) -> httpx.Response:
        account_id = int(request.url.params["user_id"])
        page = int(request.url.params.get("page", "1"))
        crates = self.accounts.get(account_id, [])
        start = (page - 1) * self.per_page
        chunk = crates[start:start + self.per_page]
        has_next = start + self.per_page < len(crates)
        next_page = f"?page={page + 1}&user_id={account_id}" if has_next else None
        return httpx.Response(
            200,
            json={"crates": chunk, "meta": {"total": len(crates), "next_page": next_page}},
        )

    def listing_requests(self) -> List[httpx.Request]:
        return [req for req in self.requests if req.url.path == "/api/v1/crates"]

    def client(self, interval: float = 0.0) -> PoliteClient:
        return PoliteClient(
            API_BASE,
            interval,
            user_agent="squatter-spotter-test",
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def tools(tmp_path: Path) -> Tuple[Path, Path]:
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    untar = write_script(bin_dir / "fake-untar", FAKE_UNTAR)
    tokei = write_script(bin_dir / "fake-tokei", FAKE_TOKEI)
    return untar, tokei


@pytest.fixture(name="rust_report")
def rust_report_fixture():
    return rust_report
