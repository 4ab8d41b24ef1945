from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .accounts import read_accounts
from .client import PoliteClient
from .config import SpotterConfig, load_config
from .driver import BatchDriver
from .measure import ArchiveMeasurer
from .models import RunSummary
from .reporting import format_cause_chain
from .sink import MetricsSink
from .workspace import ScratchWorkspace

app = typer.Typer(help="レジストリのアカウントが公開しているパッケージのコード行数を計測するツール")
console = Console()
err_console = Console(stderr=True)


def configure_logging(level: str) -> None:
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise typer.BadParameter(f"不明なログレベルです: {level}")
    logging.basicConfig(
        level=numeric_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.command()
def run(
    config_path: Path = typer.Argument(..., help="YAML (または JSON) 形式の設定ファイル"),
    start_id: Optional[int] = typer.Argument(
        None,
        help="処理を開始するアカウントID（省略時は先頭から）",
    ),
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        envvar="SQUATTER_SPOTTER_LOG",
        help="ログレベル (DEBUG, INFO, WARNING, ERROR)",
    ),
) -> None:
    configure_logging(log_level)

    try:
        config = load_config(config_path)
        summary = asyncio.run(_run_batch(config, start_id))
    except Exception as exc:
        err_console.print(
            f"[red]処理に失敗しました:[/] {escape(format_cause_chain(exc))}",
            highlight=False,
            soft_wrap=True,
        )
        raise typer.Exit(code=1) from exc

    _print_summary(summary)
    console.print(f"[green]完了しました。出力先: {config.output_file}[/]")


async def _run_batch(config: SpotterConfig, start_id: Optional[int]) -> RunSummary:
    sink = MetricsSink(config.output_file)
    sink.ensure()

    workspace = ScratchWorkspace(config.work_dir)
    workspace.prepare()

    accounts = read_accounts(config.user_file, column=config.user_id_column)

    async with PoliteClient(
        str(config.api_base),
        config.rate_limit_seconds,
        user_agent=config.user_agent,
        timeout=config.request_timeout,
    ) as client:
        measurer = ArchiveMeasurer(
            client,
            workspace,
            untar_exec=config.untar_exec,
            tokei_exec=config.tokei_exec,
            language=config.language,
        )
        driver = BatchDriver(client, measurer, sink, per_page=config.per_page)
        return await driver.run(accounts, start_id)


def _print_summary(summary: RunSummary) -> None:
    table = Table(title="計測結果サマリ")
    table.add_column("項目")
    table.add_column("値", justify="right")
    for label, value in [
        ("処理アカウント数", summary.accounts),
        ("一覧取得に失敗したアカウント数", summary.failed_accounts),
        ("計測済みパッケージ数", summary.measured),
        ("展開失敗 (0 行)", summary.degraded),
        ("スキップ", summary.skipped),
        ("処理時間（秒）", f"{summary.duration_seconds:.1f}"),
        ("開始時刻", summary.start_time.isoformat()),
        ("終了時刻", summary.end_time.isoformat()),
    ]:
        table.add_row(label, str(value))
    console.print(table)


if __name__ == "__main__":
    app()
