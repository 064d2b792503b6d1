"""
tests.test_domain_progress

Unit tests for progress bookkeeping: percentage, lesson upserts and per-chapter rollups.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from mentaro.domain.progress import chapter_progress, compute_progress, record_lesson_completion

NOW = datetime(2026, 3, 1, 12, 0, 0)


@dataclass
class Progress:
    progress: int = 0
    completed_lessons: list[dict[str, Any]] = field(default_factory=list)
    total_watch_time: int = 0
    is_completed: bool = False
    completed_at: datetime | None = None


def test_compute_progress_rounds_and_clamps() -> None:
    assert compute_progress(1, 3) == 33
    assert compute_progress(2, 3) == 67
    assert compute_progress(5, 3) == 100
    assert compute_progress(1, 0) == 0


def test_completing_all_lessons_marks_course_complete() -> None:
    e = Progress()
    record_lesson_completion(e, lesson_id="a", watch_time=30, total_lessons=2, now=NOW)
    assert e.progress == 50
    assert not e.is_completed

    record_lesson_completion(e, lesson_id="b", watch_time=40, total_lessons=2, now=NOW)
    assert e.progress == 100
    assert e.is_completed
    assert e.completed_at == NOW
    assert e.total_watch_time == 70


def test_repeat_completion_updates_watch_time_only() -> None:
    e = Progress()
    record_lesson_completion(e, lesson_id="a", watch_time=30, total_lessons=4, now=NOW)
    record_lesson_completion(e, lesson_id="a", watch_time=45, total_lessons=4, now=NOW)
    assert len(e.completed_lessons) == 1
    assert e.total_watch_time == 45
    assert e.progress == 25


def test_progress_never_decreases_when_course_grows() -> None:
    e = Progress()
    record_lesson_completion(e, lesson_id="a", watch_time=None, total_lessons=2, now=NOW)
    record_lesson_completion(e, lesson_id="b", watch_time=None, total_lessons=10, now=NOW)
    assert e.progress == 50


def test_chapter_breakdown() -> None:
    chapters = [
        {"id": "c1", "title": "One", "lessons": [{"id": "a"}, {"id": "b"}]},
        {"id": "c2", "title": "Two", "lessons": []},
    ]
    out = chapter_progress(chapters, {"a"})
    assert out[0] == {
        "chapter_id": "c1",
        "chapter_title": "One",
        "total_lessons": 2,
        "completed_lessons": 1,
        "progress": 50,
    }
    assert out[1]["progress"] == 0
