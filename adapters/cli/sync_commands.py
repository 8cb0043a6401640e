"""
동기화 CLI 명령어

SyncOrchestrator를 CLI 명령으로 노출하는 어댑터입니다.
엔티티/계정 단위 실패는 로그와 결과 표로만 보고하며, 실행은 항상 정상 종료합니다.
"""

import asyncio
import logging

import typer
from rich.console import Console
from rich.table import Table

from core.domain.entities import SyncRunReport, SyncStatus
from adapters.db.database import initialize_database
from adapters.factory import get_adapter_factory

# CLI 앱 생성
app = typer.Typer(name="sync", help="HubSpot 동기화 명령어")
console = Console()


def print_report(report: SyncRunReport) -> None:
    """동기화 결과 표를 출력합니다."""
    if not report.histories and not report.failures:
        console.print("[yellow]동기화한 계정이 없습니다.[/yellow]")
        return

    table = Table(title="동기화 결과")
    table.add_column("Hub ID", style="cyan")
    table.add_column("엔티티", style="green")
    table.add_column("상태", style="yellow")
    table.add_column("레코드", justify="right")
    table.add_column("액션", justify="right")
    table.add_column("페이지", justify="right")
    table.add_column("구간 재시작", justify="right")
    table.add_column("오류", style="red")

    for history in report.histories:
        status_style = "green" if history.status == SyncStatus.SUCCESS else "red"
        table.add_row(
            history.hub_id,
            history.entity_name,
            f"[{status_style}]{history.status.value}[/{status_style}]",
            str(history.processed_count),
            str(history.action_count),
            str(history.page_count),
            str(history.rollover_count),
            history.error_message or "-",
        )

    console.print(table)

    for failure in report.failures:
        console.print(f"[red]✗ {failure.hub_id} ({failure.operation}): {failure.error_message}[/red]")

    console.print(f"전송된 액션 수: {report.submitted_action_count}")
    if report.failed_count:
        console.print(f"[yellow]실패 건수: {report.failed_count}[/yellow]")


@app.command("run")
def run_sync():
    """등록된 모든 HubSpot 계정의 변경분을 동기화합니다."""

    async def _run():
        factory = get_adapter_factory()
        config = factory.get_config()

        db_adapter = initialize_database(config)
        await db_adapter.initialize()

        try:
            await db_adapter.create_tables()
            orchestrator = factory.create_sync_orchestrator(db_adapter)
            report = await orchestrator.run()
        finally:
            await db_adapter.close()

        print_report(report)

    try:
        asyncio.run(_run())
    except Exception as e:
        # 설정 오류에서도 종료 코드는 0
        logging.getLogger("hubspot_sync").error(f"동기화 실행 실패: {str(e)}")
        console.print(f"[red]오류: {str(e)}[/red]")
