from __future__ import annotations

from collections.abc import Awaitable, Callable

from .backfill_task import backfill_task
from .listen_task import listen_task

TaskFn = Callable[..., Awaitable[None]]

TASKS: dict[str, TaskFn] = {
    "listen_task": listen_task,
    "backfill_task": backfill_task,
}
