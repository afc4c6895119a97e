"""
tether.services.todo_service — Personal To-Do Lists
====================================================

Small CRUD layer behind ``/addtodo``, ``/listtodos``, ``/donetodo`` and
``/deltodo``.  Item IDs come from the table's autoincrement key, so they
are unique across members and never reused.  Every item is purged at the
daily rollover.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import Engine, delete, select, update

from tether.database.engine import get_session
from tether.database.models import TodoItem

logger = logging.getLogger(__name__)

MAX_TODO_LENGTH = 500


@dataclass(frozen=True, slots=True)
class TodoView:
    """Read-only view of a to-do item for command replies."""
    id: int
    text: str
    completed: bool


def add_todo(engine: Engine, guild_id: int, user_id: int, text: str) -> TodoView:
    text = text.strip()
    if not text:
        raise ValueError("Task text cannot be empty.")
    if len(text) > MAX_TODO_LENGTH:
        raise ValueError(f"Task text is limited to {MAX_TODO_LENGTH} characters.")

    with get_session(engine) as session:
        item = TodoItem(guild_id=guild_id, user_id=user_id, text=text, completed=False)
        session.add(item)
        session.flush()
        return TodoView(id=item.id, text=item.text, completed=item.completed)


def list_todos(engine: Engine, guild_id: int, user_id: int) -> list[TodoView]:
    with get_session(engine) as session:
        items = session.scalars(
            select(TodoItem)
            .where(TodoItem.guild_id == guild_id, TodoItem.user_id == user_id)
            .order_by(TodoItem.id)
        ).all()
        return [TodoView(id=i.id, text=i.text, completed=i.completed) for i in items]


def complete_todo(engine: Engine, guild_id: int, user_id: int, todo_id: int) -> bool:
    """Mark one of the member's items done.  False if it isn't theirs / doesn't exist."""
    with get_session(engine) as session:
        result = session.execute(
            update(TodoItem)
            .where(
                TodoItem.id == todo_id,
                TodoItem.guild_id == guild_id,
                TodoItem.user_id == user_id,
            )
            .values(completed=True)
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)


def delete_todo(engine: Engine, guild_id: int, user_id: int, todo_id: int) -> bool:
    with get_session(engine) as session:
        result = session.execute(
            delete(TodoItem)
            .where(
                TodoItem.id == todo_id,
                TodoItem.guild_id == guild_id,
                TodoItem.user_id == user_id,
            )
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)


def clear_all_todos(engine: Engine) -> int:
    """Delete every to-do item for every member.  Returns rows removed."""
    with get_session(engine) as session:
        result = session.execute(
            delete(TodoItem).execution_options(synchronize_session=False)
        )
        removed = result.rowcount or 0
    logger.info("Cleared %d to-do items", removed)
    return removed
