import asyncio
from typing import Optional

import typer
from rich import print

from lightwatch.apps.bootstrap import get_ctx, reload_ctx
from lightwatch.config import const
from lightwatch.services.fleet import run_node, stdin_lines


def run(
    node_id: str = typer.Argument(const.DEFAULT_NODE_ID, help="Идентификатор ноды (Node1, Node2, ...)"),
    host: Optional[str] = typer.Option(None, "--host", help="Адрес монитора"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Порт монитора"),
):
    """Запустить одну ноду-светофор. Команда `fail` в stdin имитирует отказ."""
    ctx = reload_ctx(host=host, port=port) if host is not None or port is not None else get_ctx()
    print(f"Enter 'fail' to simulate node failure for {node_id}:")
    try:
        asyncio.run(run_node(ctx.settings, node_id, stdin_lines()))
    except (ConnectionError, OSError) as e:
        print(f"[red]cannot connect to {ctx.settings.host}:{ctx.settings.port}: {e}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        pass
