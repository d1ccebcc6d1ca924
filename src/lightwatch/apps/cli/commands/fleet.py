import asyncio
from typing import List, Optional

import typer
from rich import print

from lightwatch.apps.bootstrap import get_ctx, reload_ctx
from lightwatch.services.fleet import fleet_ids, run_fleet


def run(
    count: int = typer.Option(3, "--count", "-n", min=1, help="Сколько нод запустить (Node1..NodeN)"),
    fail: List[str] = typer.Option([], "--fail", help="Нода, которую уронить (можно несколько раз)"),
    fail_after: float = typer.Option(15.0, "--fail-after", min=0.0, help="Через сколько секунд ронять ноды из --fail"),
    host: Optional[str] = typer.Option(None, "--host", help="Адрес монитора"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Порт монитора"),
):
    """Запустить несколько нод в одном процессе (симуляция перекрёстка)."""
    ctx = reload_ctx(host=host, port=port) if host is not None or port is not None else get_ctx()
    ids = fleet_ids(count)
    missing = [n for n in fail if n not in ids]
    if missing:
        raise typer.BadParameter(f"unknown node(s): {', '.join(missing)}", param_hint="--fail")
    print(f"[cyan]starting fleet: {', '.join(ids)}[/cyan]")
    try:
        nodes = asyncio.run(run_fleet(ctx.settings, ids, {n: fail_after for n in fail}))
    except KeyboardInterrupt:
        return
    for node_id, node in nodes.items():
        print(f"{node_id}: {'active' if node.active else 'inactive'} ({node.current_state.value})")
