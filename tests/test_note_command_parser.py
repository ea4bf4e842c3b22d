# tests/test_note_command_parser.py
from datetime import date, timedelta

from app.schemas.task import MentionCandidate, TaskPriority, TaskRead, TaskStatus, TaskType
from app.services.note_command_parser import (
    build_task_command,
    parse_due_date,
    parse_notes,
    parse_priority,
)

TODAY = date(2025, 11, 14)


def test_task_line_with_mention_and_due_tomorrow():
    tasks = parse_notes(
        "/task Finalize slides due:tomorrow @[Priya](u123)",
        mention_candidates=[],
        fallback_assignee_ids=[],
        today=TODAY,
    )

    assert len(tasks) == 1
    task = tasks[0]
    assert task.title == "Finalize slides"
    assert task.assignee_ids == ["u123"]
    assert task.assignee_names == ["Priya"]
    assert task.due_date == TODAY + timedelta(days=1)
    assert task.priority == TaskPriority.MEDIUM


def test_bare_marker_uses_fallback_assignees_and_defaults():
    tasks = parse_notes(
        "/ Review budget priority:high",
        mention_candidates=[],
        fallback_assignee_ids=["u1", "u2"],
        today=TODAY,
    )

    assert len(tasks) == 1
    task = tasks[0]
    assert task.title == "Review budget"
    assert task.assignee_ids == ["u1", "u2"]
    assert task.priority == TaskPriority.HIGH
    assert task.due_date == TODAY + timedelta(days=3)


def test_doubled_marker_is_a_comment():
    assert parse_notes("//", [], ["u1"], today=TODAY) == []
    assert parse_notes("// not a task due:today", [], ["u1"], today=TODAY) == []


def test_prose_lines_are_ignored_and_line_order_is_preserved():
    text = "\n".join(
        [
            "Meeting Notes for Weekly Sync",
            "",
            "Discussed the roadmap.",
            "/task First thing",
            "  /TASK Second thing  ",
            "/Third thing p:lo",
        ]
    )

    tasks = parse_notes(text, [], [], today=TODAY)

    assert [t.title for t in tasks] == ["First thing", "Second thing", "Third thing"]
    assert tasks[2].priority == TaskPriority.LOW


def test_line_without_title_after_token_stripping_is_dropped():
    text = "/task @[Priya](u123) due:today p:high\n/\n/   p:low"

    assert parse_notes(text, [], [], today=TODAY) == []


def test_bare_task_keyword_becomes_the_title():
    tasks = parse_notes("/task", [], [], today=TODAY)

    assert [t.title for t in tasks] == ["task"]


def test_mentions_override_fallback_and_keep_duplicates():
    candidates = [MentionCandidate(id="u7", display_name="Sam Lee")]

    tasks = parse_notes(
        "/task Pair on @[Sam](u7) migration with @[Sam](u7)",
        mention_candidates=candidates,
        fallback_assignee_ids=["u1", "u2"],
        today=TODAY,
    )

    assert tasks[0].assignee_ids == ["u7", "u7"]
    assert tasks[0].assignee_names == ["Sam Lee", "Sam Lee"]
    assert tasks[0].title == "Pair on migration with"


def test_fallback_list_is_copied_per_task():
    fallback = ["u1"]

    tasks = parse_notes("/a\n/b", [], fallback, today=TODAY)

    tasks[0].assignee_ids.append("u9")
    assert tasks[1].assignee_ids == ["u1"]
    assert fallback == ["u1"]


def test_due_date_variants():
    assert parse_due_date("today", TODAY) == TODAY
    assert parse_due_date("TMW", TODAY) == TODAY + timedelta(days=1)
    assert parse_due_date("2025-12-01", TODAY) == date(2025, 12, 1)
    assert parse_due_date("friday", TODAY) == TODAY + timedelta(days=3)
    # Shape matches but the date does not exist
    assert parse_due_date("2025-02-30", TODAY) == TODAY + timedelta(days=3)


def test_on_keyword_and_case_insensitive_tokens():
    tasks = parse_notes("/task Ship release ON:2025-11-20 Priority:HI", [], [], today=TODAY)

    assert tasks[0].title == "Ship release"
    assert tasks[0].due_date == date(2025, 11, 20)
    assert tasks[0].priority == TaskPriority.HIGH


def test_malformed_tokens_fall_back_without_failing_the_line():
    tasks = parse_notes("/task Write docs due:someday p:urgent", [], [], today=TODAY)

    assert tasks[0].title == "Write docs"
    assert tasks[0].due_date == TODAY + timedelta(days=3)
    assert tasks[0].priority == TaskPriority.MEDIUM


def test_dangling_keyword_stays_in_title():
    tasks = parse_notes("/task Check invoices due:", [], [], today=TODAY)

    assert tasks[0].title == "Check invoices due:"


def test_priority_variants():
    assert parse_priority("high") == TaskPriority.HIGH
    assert parse_priority("Lo") == TaskPriority.LOW
    assert parse_priority("medium") == TaskPriority.MEDIUM
    assert parse_priority("") == TaskPriority.MEDIUM


def test_custom_default_due_days():
    tasks = parse_notes("/task Follow up", [], [], today=TODAY, default_due_in_days=7)

    assert tasks[0].due_date == TODAY + timedelta(days=7)


def _open_task(priority: TaskPriority, *assignees: str) -> TaskRead:
    return TaskRead(
        id=4,
        title="Send recap",
        description="",
        due_date=date(2025, 11, 20),
        priority=priority,
        status=TaskStatus.IN_PROGRESS,
        assignee_ids=list(assignees),
        task_type=TaskType.TEAM if len(assignees) > 1 else TaskType.DIRECT,
        created_by="manager-1",
        series_id=1,
    )


def test_carried_over_task_parses_back_unchanged():
    task = _open_task(TaskPriority.HIGH, "u123", "u7")

    line = build_task_command(task, names={"u123": "Priya"})
    assert line == "/task Send recap @[Priya](u123) @[u7](u7) due:2025-11-20 priority:high"

    # A different "today" proves the due date comes from the line itself
    parsed = parse_notes(line, fallback_assignee_ids=["u1"], today=date(2026, 1, 1))
    assert len(parsed) == 1
    assert parsed[0].title == task.title
    assert parsed[0].assignee_ids == ["u123", "u7"]
    assert parsed[0].assignee_names == ["Priya", "u7"]
    assert parsed[0].due_date == task.due_date
    assert parsed[0].priority == TaskPriority.HIGH


def test_carried_over_medium_task_without_assignees():
    line = build_task_command(_open_task(TaskPriority.MEDIUM))

    assert line == "/task Send recap due:2025-11-20"
    parsed = parse_notes(line, fallback_assignee_ids=["u1"], today=TODAY)[0]
    assert parsed.assignee_ids == ["u1"]
    assert parsed.priority == TaskPriority.MEDIUM
    assert parsed.due_date == date(2025, 11, 20)
