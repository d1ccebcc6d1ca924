# src/lightwatch/apps/cli/app.py
from __future__ import annotations

import os
import traceback
from typing import Optional

import typer
from dotenv import load_dotenv, find_dotenv

# загружаем .env один раз
load_dotenv(find_dotenv(usecwd=True))

from lightwatch.apps.bootstrap import init_ctx
from lightwatch.errors import ConfigError
from lightwatch.services.settings import Settings
from lightwatch.apps.cli.commands import monitor, node, fleet, config

app = typer.Typer(help="lightwatch: светофоры с монитором живости")


def _run_safe(func):
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception:
            if os.getenv("LIGHTWATCH_CLI_DEBUG") == "1":
                traceback.print_exc()
            raise

    return wrapper


@_run_safe
@app.callback()
def main(
    env_file: Optional[str] = typer.Option(".env", "--env-file", help="Файл с LIGHTWATCH_* переменными"),
    config_file: Optional[str] = typer.Option(None, "--config", "-c", help="YAML с настройками"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG/INFO/WARNING/..."),
):
    try:
        settings = Settings.from_sources(env_file=env_file, config_file=config_file).with_overrides(log_level=log_level)
    except ConfigError as e:
        raise typer.BadParameter(str(e))
    init_ctx(settings)


app.command("monitor")(monitor.run)
app.command("node")(node.run)
app.command("fleet")(fleet.run)
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
