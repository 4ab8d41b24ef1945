from __future__ import annotations

from datetime import datetime

from .models import RunSummary


def build_summary(
    *,
    accounts: int,
    failed_accounts: int = 0,
    measured: int,
    degraded: int,
    skipped: int,
    start_time: datetime,
    end_time: datetime,
) -> RunSummary:
    duration = (end_time - start_time).total_seconds()
    return RunSummary(
        accounts=accounts,
        failed_accounts=failed_accounts,
        measured=measured,
        degraded=degraded,
        skipped=skipped,
        start_time=start_time,
        end_time=end_time,
        duration_seconds=duration,
    )


def format_cause_chain(exc: BaseException) -> str:
    """例外とその原因 (__cause__ / __context__) を ': ' で連結した文字列にする。"""
    messages = []
    current: BaseException | None = exc
    seen = set()
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        message = str(current) or type(current).__name__
        messages.append(message)
        current = current.__cause__ or current.__context__
    return ": ".join(messages)
