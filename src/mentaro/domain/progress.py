"""
mentaro.domain.progress

Enrollment progress bookkeeping.

Responsibilities:
- Compute the progress percentage from completed vs total lessons.
- Insert-or-update a completed lesson entry and refresh derived fields.
- Produce a per-chapter progress breakdown.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Protocol


class EnrollmentLike(Protocol):
    progress: int
    completed_lessons: list[dict[str, Any]]
    total_watch_time: int
    is_completed: bool
    completed_at: datetime | None


def compute_progress(completed_count: int, total_lessons: int) -> int:
    if total_lessons <= 0:
        return 0
    pct = (Decimal(100) * completed_count / total_lessons).quantize(
        Decimal(1), rounding=ROUND_HALF_UP
    )
    return max(0, min(100, int(pct)))


def record_lesson_completion(
    enrollment: EnrollmentLike,
    *,
    lesson_id: str,
    watch_time: int | None,
    total_lessons: int,
    now: datetime,
) -> None:
    entries = [dict(e) for e in (enrollment.completed_lessons or [])]
    existing = next((e for e in entries if e.get("lesson_id") == lesson_id), None)
    if existing is None:
        entries.append(
            {"lesson_id": lesson_id, "completed_at": now.isoformat(), "watch_time": watch_time or 0}
        )
    elif watch_time:
        existing["watch_time"] = watch_time

    # Reassign so the JSON column is flagged dirty.
    enrollment.completed_lessons = entries
    enrollment.total_watch_time = sum(int(e.get("watch_time") or 0) for e in entries)

    # Never lower progress: a course that grew new lessons keeps the figure already earned.
    progress = compute_progress(len(entries), total_lessons)
    enrollment.progress = max(enrollment.progress or 0, progress)

    if enrollment.progress >= 100 and not enrollment.is_completed:
        enrollment.is_completed = True
        enrollment.completed_at = now


def chapter_progress(
    chapters: Iterable[dict[str, Any]], completed_ids: set[str]
) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for chapter in chapters:
        lessons = chapter.get("lessons") or []
        done = sum(1 for lesson in lessons if lesson.get("id") in completed_ids)
        out.append(
            {
                "chapter_id": chapter.get("id"),
                "chapter_title": chapter.get("title"),
                "total_lessons": len(lessons),
                "completed_lessons": done,
                "progress": compute_progress(done, len(lessons)),
            }
        )
    return out


# --- Module Notes -----------------------------------------------------------
# There is no "un-complete lesson" path, so progress is monotonic by construction;
# the max() above additionally guards against total_lessons growing after enrollment.
