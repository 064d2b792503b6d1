"""
mentaro.domain.catalog

Course document helpers.

Responsibilities:
- Normalize incoming chapters/lessons (ids, ordering, defaults).
- Recompute the denormalized aggregates (duration, lesson count, rating) from nested arrays.
- Locate lessons by id.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from typing import Any, Protocol


class CourseLike(Protocol):
    chapters: list[dict[str, Any]]
    reviews: list[dict[str, Any]]
    total_duration: int
    total_lessons: int
    rating_average: float
    rating_count: int


def new_id() -> str:
    return str(uuid.uuid4())


def normalize_lesson(raw: dict[str, Any], index: int) -> dict[str, Any]:
    return {
        "id": str(raw.get("id") or new_id()),
        "title": raw.get("title") or f"Lesson {index + 1}",
        "description": raw.get("description") or "",
        "video_url": raw.get("video_url") or "",
        "duration": int(raw.get("duration") or 0),
        "order": index + 1,
        "is_preview": bool(raw.get("is_preview", False)),
        "resources": list(raw.get("resources") or []),
    }


def normalize_chapter(raw: dict[str, Any], index: int) -> dict[str, Any]:
    return {
        "id": str(raw.get("id") or new_id()),
        "title": raw.get("title") or f"Chapter {index + 1}",
        "description": raw.get("description") or "",
        "order": index + 1,
        "lessons": [normalize_lesson(lesson, i) for i, lesson in enumerate(raw.get("lessons") or [])],
    }


def normalize_chapters(raw: Iterable[dict[str, Any]] | None) -> list[dict[str, Any]]:
    return [normalize_chapter(chapter, i) for i, chapter in enumerate(raw or [])]


def iter_lessons(chapters: Iterable[dict[str, Any]]) -> Iterable[dict[str, Any]]:
    for chapter in chapters:
        yield from chapter.get("lessons") or []


def find_lesson(chapters: Iterable[dict[str, Any]], lesson_id: str) -> dict[str, Any] | None:
    return next((lesson for lesson in iter_lessons(chapters) if lesson.get("id") == lesson_id), None)


def recompute_aggregates(course: CourseLike) -> None:
    lessons = list(iter_lessons(course.chapters or []))
    course.total_lessons = len(lessons)
    course.total_duration = sum(int(lesson.get("duration") or 0) for lesson in lessons)

    reviews = course.reviews or []
    if reviews:
        course.rating_average = round(sum(int(r["rating"]) for r in reviews) / len(reviews), 2)
        course.rating_count = len(reviews)
    else:
        course.rating_average = 0.0
        course.rating_count = 0


# --- Module Notes -----------------------------------------------------------
# `CourseRepo.save` calls `recompute_aggregates` before every flush; no other code path
# writes total_duration / total_lessons / rating_*.
