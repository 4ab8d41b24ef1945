from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from .accounts import skip_to
from .client import PoliteClient
from .listing import ListingError, list_packages
from .measure import ArchiveMeasurer, MeasurementError
from .models import PackageMetric, RunSummary
from .reporting import build_summary, format_cause_chain
from .sink import MetricsSink

logger = logging.getLogger(__name__)


class BatchDriver:
    """アカウント一覧を順に処理し、アカウント単位で計測結果を書き出す。"""

    def __init__(
        self,
        client: PoliteClient,
        measurer: ArchiveMeasurer,
        sink: MetricsSink,
        *,
        per_page: int = 100,
    ) -> None:
        self._client = client
        self._measurer = measurer
        self._sink = sink
        self._per_page = per_page
        self._reset_counters()

    def _reset_counters(self) -> None:
        self._accounts = 0
        self._failed_accounts = 0
        self._measured = 0
        self._degraded = 0
        self._skipped = 0

    async def run(self, accounts: Iterable[int], start_id: Optional[int] = None) -> RunSummary:
        self._reset_counters()
        start_time = datetime.now(timezone.utc)
        for account_id in skip_to(accounts, start_id):
            await self.process_account(account_id)
        end_time = datetime.now(timezone.utc)

        return build_summary(
            accounts=self._accounts,
            failed_accounts=self._failed_accounts,
            measured=self._measured,
            degraded=self._degraded,
            skipped=self._skipped,
            start_time=start_time,
            end_time=end_time,
        )

    async def process_account(self, account_id: int) -> List[PackageMetric]:
        logger.info("アカウント %s のパッケージ情報を取得します", account_id)

        batch: List[PackageMetric] = []
        try:
            await self._measure_listing(account_id, batch)
        except ListingError as exc:
            # 一覧の取得が途中で失敗しても、計測済みの行は書き出す
            logger.warning("アカウント %s の処理を中断しました: %s", account_id, format_cause_chain(exc))
            self._failed_accounts += 1

        if batch:
            self._sink.append(batch)
        self._accounts += 1
        return batch

    async def _measure_listing(self, account_id: int, batch: List[PackageMetric]) -> None:
        async for package in list_packages(self._client, account_id, per_page=self._per_page):
            try:
                measurement = await self._measurer.measure(package)
            except MeasurementError as exc:
                logger.warning("パッケージ情報を取得できませんでした: %s", format_cause_chain(exc))
                self._skipped += 1
                continue

            if measurement.extracted:
                self._measured += 1
            else:
                self._degraded += 1
            batch.append(
                PackageMetric(
                    name=package.name,
                    version=package.version,
                    account_id=account_id,
                    lines_of_code=measurement.lines_of_code,
                )
            )
