import typer
from rich.console import Console
from rich.table import Table

from lightwatch.apps.bootstrap import get_ctx

app = typer.Typer(help="Настройки")


@app.command("show")
def show():
    """Показать действующие настройки (ENV > .env > YAML > значения по умолчанию)."""
    table = Table(title="lightwatch settings")
    table.add_column("key")
    table.add_column("value")
    for k, v in get_ctx().settings.as_dict().items():
        table.add_row(k, str(v))
    Console().print(table)
