"""Kanban board state: cached task list and optimistic mutations."""

import logging
from collections.abc import Iterable
from typing import Any

from taskflow.client.cache import QueryCache
from taskflow.client.transport import ApiClient

logger = logging.getLogger("taskflow.client")

TODOS_KEY = ("todos",)
COLUMNS = ("todo", "in-progress", "done")


def _find(tasks: Iterable[dict[str, Any]], task_id: Any) -> dict[str, Any] | None:
    return next((t for t in tasks if t.get("id") == task_id), None)


def resolve_drop_status(tasks: list[dict[str, Any]], active_id: Any, over_id: Any) -> str | None:
    """Work out the status a dragged task should move to, or None for no change.

    Dropping on a column yields that column's status. Dropping on another task
    yields that task's status. Empty space, unknown targets and drops that keep
    the current status are no-ops.
    """
    if over_id is None:
        return None
    task = _find(tasks, active_id)
    if task is None:
        return None

    if over_id in COLUMNS:
        new_status = over_id
    else:
        over_task = _find(tasks, over_id)
        if over_task is None:
            return None
        new_status = over_task["status"]

    if task.get("status") == new_status:
        return None
    return new_status


class TodoBoard:
    """Task list bound to the ``todos`` query, with optimistic status changes."""

    def __init__(self, api: ApiClient, cache: QueryCache | None = None) -> None:
        self.api = api
        self.cache = cache or QueryCache()
        self.cache.register(TODOS_KEY, api.list_todos)

    @property
    def tasks(self) -> list[dict[str, Any]]:
        return self.cache.get_data(TODOS_KEY) or []

    async def load(self) -> list[dict[str, Any]]:
        return await self.cache.fetch(TODOS_KEY)

    async def update_status(self, task_id: Any, status: str) -> dict[str, Any]:
        return await self._mutate_optimistically(task_id, {"status": status})

    async def update_task(self, task_id: Any, changes: dict[str, Any]) -> dict[str, Any]:
        return await self._mutate_optimistically(task_id, changes)

    async def _mutate_optimistically(self, task_id: Any, changes: dict[str, Any]) -> dict[str, Any]:
        # An in-flight refetch finishing after the optimistic write would undo it
        await self.cache.cancel(TODOS_KEY)
        snapshot = self.cache.get_data(TODOS_KEY)

        self.cache.set_data(
            TODOS_KEY,
            lambda old: [{**t, **changes} if t.get("id") == task_id else t for t in (old or [])],
        )

        try:
            return await self.api.update_todo(task_id, changes)
        except Exception:
            self.cache.set_data(TODOS_KEY, snapshot)
            logger.info("Rolled back optimistic update of task %s", task_id)
            raise
        finally:
            self.cache.invalidate(TODOS_KEY)

    async def drop(self, active_id: Any, over_id: Any) -> dict[str, Any] | None:
        """Handle the end of a drag. Returns the updated task, or None when nothing changed."""
        new_status = resolve_drop_status(self.tasks, active_id, over_id)
        if new_status is None:
            return None
        return await self.update_status(active_id, new_status)

    async def create(self, todo: dict[str, Any]) -> dict[str, Any]:
        created = await self.api.create_todo(todo)
        self.cache.invalidate(TODOS_KEY)
        return created

    async def delete(self, task_id: Any) -> None:
        await self.api.delete_todo(task_id)
        self.cache.invalidate(TODOS_KEY)
