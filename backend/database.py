import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from config import get_settings
from models import Task

logger = logging.getLogger(__name__)

DATABASE_PATH = get_settings().database_path

# Columns a PATCH may touch; everything else is managed here
UPDATABLE_FIELDS = {"title", "description", "due_date", "priority", "estimated_time", "category", "completed"}


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db():
    """Initialize database by running Alembic migrations."""
    import subprocess
    import os

    # Run alembic upgrade from the backend directory
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=backend_dir,
        check=True,
        env={**os.environ, "DATABASE_PATH": os.path.abspath(DATABASE_PATH)},
    )


def _to_db_value(value):
    # Aware datetimes are stored in UTC so ISO strings sort and compare chronologically
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value


def _row_to_task(row) -> Task:
    """Convert a database row to a Task model."""
    return Task(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        due_date=row["due_date"],
        priority=row["priority"] or "medium",
        estimated_time=row["estimated_time"],
        category=row["category"],
        completed=bool(row["completed"]),
        created_at=row["created_at"],
    )


def get_all_tasks(due_from: Optional[datetime] = None, due_to: Optional[datetime] = None) -> list[Task]:
    """List tasks, dated ones first by due date.

    With a range, only tasks due within [due_from, due_to) are returned
    (calendar view). Aware bounds are converted to UTC like stored values.
    """
    clauses = []
    params = []
    if due_from is not None:
        clauses.append("due_date >= ?")
        params.append(_to_db_value(due_from))
    if due_to is not None:
        clauses.append("due_date < ?")
        params.append(_to_db_value(due_to))
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    with get_db() as conn:
        rows = conn.execute(f"""
            SELECT * FROM tasks
            {where}
            ORDER BY
                CASE WHEN due_date IS NULL THEN 1 ELSE 0 END,
                due_date,
                created_at
        """, params).fetchall()
        return [_row_to_task(row) for row in rows]


def get_task_db(task_id: str) -> Optional[Task]:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(row) if row else None


def create_task_db(
    task_id: str,
    title: str,
    description: Optional[str] = None,
    due_date: Optional[datetime] = None,
    priority: str = "medium",
    estimated_time: Optional[int] = None,
    category: Optional[str] = None,
) -> Task:
    """Insert a new task and return it."""
    created_at = datetime.now().isoformat()

    with get_db() as conn:
        conn.execute(
            """INSERT INTO tasks
               (id, title, description, due_date, priority, estimated_time, category, completed, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?)""",
            (task_id, title, description, _to_db_value(due_date), priority, estimated_time, category, created_at)
        )
        conn.commit()

    logger.info("Created task %s: %s", task_id, title)
    return Task(
        id=task_id,
        title=title,
        description=description,
        due_date=due_date,
        priority=priority,
        estimated_time=estimated_time,
        category=category,
        completed=False,
        created_at=created_at,
    )


def update_task_db(task_id: str, **updates) -> Optional[Task]:
    """
    Update a task with any fields provided.
    Only updates fields that differ from current values.

    Args:
        task_id: Task ID to update
        **updates: Field names and values to update (see UPDATABLE_FIELDS)
    """
    with get_db() as conn:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if not row:
            return None

        # Filter updates: only include fields that differ from current values
        changes = {}
        for field, new_value in updates.items():
            if field not in UPDATABLE_FIELDS:
                continue
            new_value = _to_db_value(new_value)
            if new_value != row[field]:
                changes[field] = new_value

        # Execute UPDATE only if there are actual changes
        if changes:
            set_clause = ", ".join(f"{field} = ?" for field in changes.keys())
            values = list(changes.values()) + [task_id]
            conn.execute(f"UPDATE tasks SET {set_clause} WHERE id = ?", values)
            conn.commit()

        # Return updated task (re-fetch to get current state)
        updated_row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return _row_to_task(updated_row)


def delete_task_db(task_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        conn.commit()
        return cursor.rowcount > 0
