import asyncio
import inspect
import logging

import typer
import uvicorn
from dotenv import load_dotenv
from InquirerPy import inquirer
from pydantic import ValidationError

from dex_indexer.app.config import get_settings
from dex_indexer.app.interface.tasks import TASKS
from dex_indexer.app.interface.tasks.backfill_task import backfill_task
from dex_indexer.app.interface.tasks.listen_task import listen_task

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

logger = logging.getLogger("dex_indexer.cli")

app = typer.Typer()
indexer_app = typer.Typer(help="cli for indexing DEX contract events from CSPR.cloud.")
api_app = typer.Typer(help="read API over indexed DEX data.")
app.add_typer(indexer_app, name="indexer")
app.add_typer(api_app, name="api")


def _load_settings_or_exit() -> None:
    try:
        get_settings()
    except ValidationError as exc:
        logger.error("Invalid configuration:\n%s", exc)
        raise typer.Exit(code=1)


@indexer_app.command("run")
def run() -> None:
    _load_settings_or_exit()

    task_name = inquirer.select(
        message="Select task:",
        choices=list(TASKS.keys()),
        pointer="❯",
        instruction="Use ↑/↓ to move, Enter to select",
    ).execute()

    task = TASKS[task_name]

    kwargs: dict[str, object] = {}
    params = inspect.signature(task).parameters

    if "max_pages" in params:
        max_pages = inquirer.text(
            message="Max pages per contract (optional, empty = all):",
            default="",
        ).execute()
        kwargs["max_pages"] = int(max_pages) if max_pages.strip() else None

    asyncio.run(task(**kwargs))


@indexer_app.command("listen")
def listen() -> None:
    """Stream live events of every monitored contract until interrupted."""
    _load_settings_or_exit()
    asyncio.run(listen_task())


@indexer_app.command("backfill")
def backfill(
    max_pages: int = typer.Option(0, help="Max pages per contract (0 = all)."),
) -> None:
    """Replay historical events of the exchange core and the position manager."""
    _load_settings_or_exit()
    asyncio.run(backfill_task(max_pages=max_pages or None))


@api_app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address."),
    port: int = typer.Option(0, help="Port (0 = HTTP_PORT from settings)."),
    reload: bool = typer.Option(False, help="Auto-reload on code changes."),
) -> None:
    _load_settings_or_exit()
    uvicorn.run(
        "dex_indexer.app.interface.api.main:app",
        host=host,
        port=port or get_settings().http_port,
        reload=reload,
    )


if __name__ == "__main__":
    LOGO = r"""
     ____  _______  __   ___           _
    |  _ \| ____\ \/ /  |_ _|_ __   __| | _____  _____ _ __
    | | | |  _|  \  /    | || '_ \ / _` |/ _ \ \/ / _ \ '__|
    | |_| | |___ /  \    | || | | | (_| |  __/>  <  __/ |
    |____/|_____/_/\_\  |___|_| |_|\__,_|\___/_/\_\___|_|

      --- CSPR.cloud DEX Event Indexer CLI ---
    """
    typer.echo(LOGO)
    app()
