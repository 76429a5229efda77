from datetime import datetime, tzinfo
from typing import Optional

from models import DEFAULT_PRIORITY, ParsedTask


def format_due_date(due: datetime, tz: Optional[tzinfo] = None) -> str:
    """Format as e.g. "Mon, Mar 10, 5:00 PM"."""
    if tz is not None and due.tzinfo is not None:
        due = due.astimezone(tz)
    hour = due.hour % 12 or 12
    meridiem = "AM" if due.hour < 12 else "PM"
    return f"{due:%a}, {due:%b} {due.day}, {hour}:{due:%M} {meridiem}"


def render_confirmation(task: ParsedTask, tz: Optional[tzinfo] = None) -> str:
    """Generate a friendly confirmation message for a created task."""
    lines = [f'Created task: "{task.title}"']

    if task.due_date:
        lines.append(f"Due: {format_due_date(task.due_date, tz)}")

    if task.priority != DEFAULT_PRIORITY:
        lines.append(f"Priority: {task.priority}")

    if task.estimated_time:
        lines.append(f"Estimated: {task.estimated_time} minutes")

    if task.category:
        lines.append(f"Category: {task.category}")

    return "\n".join(lines)
