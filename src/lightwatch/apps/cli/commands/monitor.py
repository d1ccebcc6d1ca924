import asyncio
from typing import Optional

import typer
from rich import print

from lightwatch.apps.bootstrap import get_ctx, reload_ctx
from lightwatch.services.monitor import MonitorServer


def run(
    host: Optional[str] = typer.Option(None, "--host", help="Адрес для прослушивания"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="TCP-порт монитора (по умолчанию 5000)"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Сколько секунд тишины считать отказом ноды"),
    sweep_period: Optional[float] = typer.Option(None, "--sweep-period", help="Период обхода реестра, сек"),
):
    """Запустить монитор: принимает подключения нод и объявляет отказавшие."""
    if any(v is not None for v in (host, port, timeout, sweep_period)):
        ctx = reload_ctx(host=host, port=port, heartbeat_timeout=timeout, sweep_period=sweep_period)
    else:
        ctx = get_ctx()

    def _announce(node_id: str) -> None:
        print(f"[bold red]Node {node_id} FAILED[/bold red]: no heartbeat for {ctx.settings.heartbeat_timeout:g} seconds")

    server = MonitorServer(ctx.settings, ctx.registry, ctx.bus, on_failed=_announce)
    print(f"[cyan]monitor listening on {ctx.settings.host}:{ctx.settings.port}[/cyan]")
    try:
        asyncio.run(server.serve_forever())
    except KeyboardInterrupt:
        print("[yellow]monitor stopped[/yellow]")
