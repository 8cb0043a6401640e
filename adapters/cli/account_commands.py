"""
계정 관리 CLI 명령어

AccountManagementUseCase를 CLI 명령으로 노출하는 어댑터입니다.
"""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from core.domain.entities import AccountStatus
from core.usecases.transformation import ENTITIES_TO_PROCESS
from adapters.db.database import initialize_database
from adapters.factory import get_adapter_factory

# CLI 앱 생성
app = typer.Typer(name="account", help="계정 관리 명령어")
console = Console()


@app.command("register")
def register_account(
    hub_id: str = typer.Argument(..., help="HubSpot 포털 ID"),
    refresh_token: str = typer.Option(..., help="OAuth 리프레시 토큰"),
    access_token: Optional[str] = typer.Option(None, help="현재 액세스 토큰"),
    api_key: Optional[str] = typer.Option(None, help="도메인 API 키 (첫 계정 등록 시 필수)"),
):
    """새로운 HubSpot 계정을 등록합니다."""

    async def _register():
        try:
            # 설정 및 데이터베이스 초기화
            factory = get_adapter_factory()
            db_adapter = initialize_database(factory.get_config())
            await db_adapter.initialize()
            await db_adapter.create_tables()

            usecase = factory.create_account_management_usecase(db_adapter)
            account = await usecase.register_account(
                hub_id=hub_id,
                refresh_token=refresh_token,
                access_token=access_token,
                api_key=api_key,
            )

            console.print("[green]✓ 계정이 성공적으로 등록되었습니다![/green]")
            console.print(f"Hub ID: {account.hub_id}")
            console.print(f"상태: {account.status.value}")

            await db_adapter.close()

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_register())


@app.command("list")
def list_accounts():
    """등록된 계정과 엔티티별 워터마크를 조회합니다."""

    async def _list():
        try:
            factory = get_adapter_factory()
            db_adapter = initialize_database(factory.get_config())
            await db_adapter.initialize()

            usecase = factory.create_account_management_usecase(db_adapter)
            accounts = await usecase.list_accounts()

            await db_adapter.close()

            if not accounts:
                console.print("[yellow]등록된 계정이 없습니다.[/yellow]")
                return

            # 테이블 생성
            table = Table(title="등록된 계정 목록")
            table.add_column("Hub ID", style="cyan")
            table.add_column("상태", style="yellow")
            for descriptor in ENTITIES_TO_PROCESS:
                table.add_column(descriptor.name, style="green")
            table.add_column("마지막 동기화", style="dim")

            for account in accounts:
                watermarks = []
                for descriptor in ENTITIES_TO_PROCESS:
                    watermark = account.get_watermark(descriptor.name)
                    watermarks.append(watermark.strftime("%Y-%m-%d %H:%M") if watermark else "-")

                table.add_row(
                    account.hub_id,
                    account.status.value,
                    *watermarks,
                    account.last_sync_at.strftime("%Y-%m-%d %H:%M") if account.last_sync_at else "-",
                )

            console.print(table)

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_list())


@app.command("reset-watermark")
def reset_watermark(
    hub_id: str = typer.Argument(..., help="HubSpot 포털 ID"),
    entity: str = typer.Argument(..., help="엔티티 타입 (contacts, companies, meetings)"),
):
    """엔티티 타입의 워터마크를 초기화하여 다음 동기화에서 전체를 다시 조회합니다."""

    async def _reset():
        try:
            factory = get_adapter_factory()
            db_adapter = initialize_database(factory.get_config())
            await db_adapter.initialize()

            usecase = factory.create_account_management_usecase(db_adapter)
            removed = await usecase.reset_watermark(hub_id, entity)

            await db_adapter.close()

            if removed:
                console.print(f"[green]✓ 워터마크가 초기화되었습니다: {hub_id} / {entity}[/green]")
            else:
                console.print(f"[yellow]워터마크가 없습니다: {hub_id} / {entity}[/yellow]")

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_reset())


@app.command("set-status")
def set_account_status(
    hub_id: str = typer.Argument(..., help="HubSpot 포털 ID"),
    status: str = typer.Argument(..., help="새 상태 (active, inactive, error)"),
):
    """계정 상태를 변경합니다. active 상태의 계정만 동기화됩니다."""

    try:
        status_enum = AccountStatus(status)
    except ValueError:
        console.print("[red]오류: 잘못된 상태입니다. (active, inactive, error)[/red]")
        raise typer.Exit(1)

    async def _set_status():
        try:
            factory = get_adapter_factory()
            db_adapter = initialize_database(factory.get_config())
            await db_adapter.initialize()

            usecase = factory.create_account_management_usecase(db_adapter)
            account = await usecase.set_account_status(hub_id, status_enum)

            await db_adapter.close()

            console.print(f"[green]✓ 계정 상태가 변경되었습니다: {account.hub_id} → {account.status.value}[/green]")

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_set_status())


if __name__ == "__main__":
    app()
