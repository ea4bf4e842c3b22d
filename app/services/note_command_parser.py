# app/services/note_command_parser.py
from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta, timezone

from app.schemas.task import MentionCandidate, PendingTask, TaskPriority, TaskRead

COMMAND_MARKER = "/"
TASK_PREFIX = "/task "
DEFAULT_DUE_IN_DAYS = 3

MENTION_REGEX = re.compile(r"@\[([^\]]+)\]\(([^)]+)\)")
DUE_DATE_REGEX = re.compile(r"(?:due:|on:)\s*(\S+)", re.IGNORECASE)
PRIORITY_REGEX = re.compile(r"(?:priority:|p:)\s*(\S+)", re.IGNORECASE)
ISO_DATE_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")
WHITESPACE_REGEX = re.compile(r"\s+")


def parse_due_date(token: str, today: date, default_days: int = DEFAULT_DUE_IN_DAYS) -> date:
    """
    Resolve a ``due:`` word. Unknown words fall back to ``today + default_days``.
    """
    word = token.lower()
    if word == "today":
        return today
    if word in ("tomorrow", "tmw"):
        return today + timedelta(days=1)
    if ISO_DATE_REGEX.match(word):
        try:
            return date.fromisoformat(word)
        except ValueError:
            # e.g. 2025-02-30
            pass
    return today + timedelta(days=default_days)


def parse_priority(token: str) -> TaskPriority:
    word = token.lower()
    if word in ("high", "hi"):
        return TaskPriority.HIGH
    if word in ("low", "lo"):
        return TaskPriority.LOW
    return TaskPriority.MEDIUM


def extract_command_text(line: str) -> str | None:
    """
    Return the text after the command marker, or None when ``line`` is not a
    task line. A doubled marker (``//``) marks a comment.
    """
    trimmed = line.strip()
    if trimmed.lower().startswith(TASK_PREFIX):
        return trimmed[len(TASK_PREFIX) - 1:].strip()
    if trimmed.startswith(COMMAND_MARKER) and not trimmed.startswith(COMMAND_MARKER * 2):
        return trimmed[len(COMMAND_MARKER):].strip()
    return None


def parse_notes(
    text: str,
    mention_candidates: Iterable[MentionCandidate] = (),
    fallback_assignee_ids: Iterable[str] = (),
    today: date | None = None,
    default_due_in_days: int = DEFAULT_DUE_IN_DAYS,
) -> list[PendingTask]:
    """
    Turn session notes into pending tasks, one per command line.

    Grammar (per line, after the marker)
    ------------------------------------
    - ``@[Name](user-id)`` mentions -> assignees, in order, duplicates kept.
      Without mentions the fallback assignees (e.g. all attendees) are used.
    - ``due:<word>`` / ``on:<word>`` -> today, tomorrow/tmw, YYYY-MM-DD;
      anything else means ``today + default_due_in_days``.
    - ``priority:<word>`` / ``p:<word>`` -> high/hi, low/lo, else Medium.
    - The rest of the line is the title; lines left without a title are
      dropped.

    The parser is pure and never raises on malformed input.
    """
    if today is None:
        today = datetime.now(tz=timezone.utc).date()

    names_by_id = {c.id: c.display_name for c in mention_candidates}
    fallback = list(fallback_assignee_ids)
    pending: list[PendingTask] = []

    for line in text.splitlines():
        task_text = extract_command_text(line)
        if not task_text:
            continue

        assignee_ids: list[str] = []
        assignee_names: list[str] = []
        due_date = today + timedelta(days=default_due_in_days)
        priority = TaskPriority.MEDIUM

        # Mentions go first, their display names may contain token keywords
        mentions = MENTION_REGEX.findall(task_text)
        if mentions:
            for name, user_id in mentions:
                assignee_ids.append(user_id)
                assignee_names.append(names_by_id.get(user_id, name))
            task_text = MENTION_REGEX.sub("", task_text)
        elif fallback:
            assignee_ids = list(fallback)
            assignee_names = [names_by_id.get(uid, uid) for uid in fallback]

        due_match = DUE_DATE_REGEX.search(task_text)
        if due_match:
            due_date = parse_due_date(due_match.group(1), today, default_due_in_days)
            task_text = task_text.replace(due_match.group(0), "", 1)

        priority_match = PRIORITY_REGEX.search(task_text)
        if priority_match:
            priority = parse_priority(priority_match.group(1))
            task_text = task_text.replace(priority_match.group(0), "", 1)

        title = WHITESPACE_REGEX.sub(" ", task_text).strip()
        if not title:
            continue

        pending.append(
            PendingTask(
                title=title,
                assignee_ids=assignee_ids,
                assignee_names=assignee_names,
                due_date=due_date,
                priority=priority,
            )
        )

    return pending


def build_task_command(task: TaskRead, names: Mapping[str, str] | None = None) -> str:
    """
    Render an open task as a command line that parses back to the same
    title, assignees, due date and priority. Used to carry tasks over into
    the next session's notes.

    ``names`` maps assignee ids to display names; unknown ids are shown as-is.
    Medium priority is the parser default and is left out.
    """
    names = names or {}
    parts = [f"{TASK_PREFIX}{task.title}"]
    parts.extend(f"@[{names.get(uid, uid)}]({uid})" for uid in task.assignee_ids)
    parts.append(f"due:{task.due_date.isoformat()}")
    if task.priority != TaskPriority.MEDIUM:
        parts.append(f"priority:{task.priority.value.lower()}")
    return " ".join(parts)
