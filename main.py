"""
HubSpot 증분 동기화 시스템

메인 진입점 파일입니다.
"""

import typer
from rich.console import Console

from adapters.cli.account_commands import app as account_app
from adapters.cli.db_commands import app as db_app
from adapters.cli.sync_commands import app as sync_app
from config.adapters import get_config

__version__ = "1.0.0"

# 메인 CLI 앱
app = typer.Typer(
    name="hubspot-sync",
    help="HubSpot CRM 증분 동기화 시스템",
    no_args_is_help=True,
)

# 서브 명령어 추가
app.add_typer(sync_app, name="sync")
app.add_typer(account_app, name="account")
app.add_typer(db_app, name="db")

console = Console()


@app.command("version")
def show_version():
    """버전 정보를 표시합니다."""
    console.print("[bold]HubSpot CRM 증분 동기화 시스템[/bold]")
    console.print(f"버전: {__version__}")


@app.command("config")
def show_config():
    """현재 설정을 표시합니다."""
    try:
        config = get_config()
        sync_config = config.get_sync_config()

        console.print("[bold]현재 설정[/bold]")
        console.print(f"환경: {config.get_environment()}")
        console.print(f"디버그 모드: {config.is_debug()}")
        console.print(f"데이터베이스 URL: {config.get_database_url()}")
        console.print(f"HubSpot API URL: {config.get_hubspot_base_url()}")
        console.print(f"분석 싱크 URL: {config.get_analytics_sink_url() or '(메모리 싱크)'}")
        console.print(f"로그 레벨: {config.get_log_level()}")
        console.print(f"검색 페이지 크기: {sync_config['search_page_size']}")
        console.print(f"페이지네이션 오프셋 한도: {sync_config['pagination_offset_ceiling']}")
        console.print(f"배치 전송 임계값: {sync_config['batch_flush_threshold']}")
        console.print(f"동시 전송 배치 수: {sync_config['max_in_flight_batches']}")
        console.print(f"재시도 횟수: {sync_config['retry_max_attempts']}")
        console.print(f"재시도 기본 지연(ms): {sync_config['retry_base_delay_ms']}")

    except Exception as e:
        console.print(f"[red]오류: {str(e)}[/red]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
