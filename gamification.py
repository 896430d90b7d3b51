"""Streaks, points, levels and achievements."""
from __future__ import annotations

import logging
from datetime import date, datetime

from models import UserAchievement, UserPoints, UserProgress
from settings import settings
from storage import NotFoundError, Storage

logger = logging.getLogger(__name__)

STREAK = "streak"
TOPIC_COMPLETION = "topic_completion"
COURSE_COMPLETION = "course_completion"
QUIZ_MASTERY = "quiz_mastery"
PERFECT_SCORE = "perfect_score"
ACHIEVEMENT_TYPES = (STREAK, TOPIC_COMPLETION, COURSE_COMPLETION, QUIZ_MASTERY, PERFECT_SCORE)


def level_for_points(points: int) -> int:
    return points // settings.level_points + 1


def next_streak(current: int | None, last_active: datetime | None, today: date) -> int:
    """Streak after completing a topic on ``today``.

    Days are compared as calendar dates, so 23:59 and 00:01 the next
    morning are one day apart.
    """
    if current is None or last_active is None:
        return 1
    gap = (today - last_active.date()).days
    if gap <= 0:
        return current
    if gap == 1:
        return current + 1
    return 1


def mark_topic_complete(
    storage: Storage, user_id: int, topic_id: int, is_completed: bool, now: datetime | None = None
) -> UserProgress:
    now = now or datetime.now()
    progress = storage.upsert_progress(user_id, topic_id, is_completed, now if is_completed else None)
    if not is_completed:
        return progress

    streak = storage.get_user_streak(user_id)
    if streak:
        value = next_streak(streak.current_streak, streak.last_active, now.date())
    else:
        value = 1
    if not streak or value != streak.current_streak:
        logger.info("user %s streak -> %s", user_id, value)
    storage.set_user_streak(user_id, value, now)

    if settings.auto_unlock_progress_achievements:
        check_progress_achievements(storage, user_id, now)
    return progress


def add_user_points(storage: Storage, user_id: int, delta: int) -> UserPoints:
    if delta < 0:
        raise ValueError("points can only be added")
    row = storage.get_user_points(user_id)
    points = (row.points if row else 0) + delta
    return storage.save_user_points(user_id, points, level_for_points(points))


def unlock_achievement(
    storage: Storage, user_id: int, achievement_id: int, now: datetime | None = None
) -> UserAchievement:
    existing = storage.get_user_achievement(user_id, achievement_id)
    if existing:
        return existing

    achievement = storage.get_achievement(achievement_id)
    if not achievement:
        raise NotFoundError(f"Achievement not found: {achievement_id}")

    add_user_points(storage, user_id, achievement.points)
    logger.info("user %s unlocked achievement %r (+%d points)", user_id, achievement.title, achievement.points)
    return storage.create_user_achievement(user_id, achievement_id, now or datetime.now())


def _unlock_reached(storage: Storage, user_id: int, achievement_type: str, value: int, now: datetime | None):
    unlocked = []
    for achievement in storage.get_achievements_by_type(achievement_type):
        if value >= achievement.threshold:
            unlocked.append(unlock_achievement(storage, user_id, achievement.id, now))
    return unlocked


def check_quiz_achievements(storage: Storage, user_id: int, now: datetime | None = None) -> list[UserAchievement]:
    attempts = storage.get_user_quiz_attempts(user_id)
    perfect = sum(1 for a in attempts if a.score == a.max_score)
    return (
        _unlock_reached(storage, user_id, PERFECT_SCORE, perfect, now)
        + _unlock_reached(storage, user_id, QUIZ_MASTERY, len(attempts), now)
    )


def check_progress_achievements(storage: Storage, user_id: int, now: datetime | None = None) -> list[UserAchievement]:
    streak = storage.get_user_streak(user_id)
    completed_topics = len(storage.get_user_completed_topics(user_id))
    completed_courses = sum(
        1 for _, done, total in storage.get_course_completion(user_id) if total and done == total
    )
    return (
        _unlock_reached(storage, user_id, STREAK, streak.current_streak if streak else 0, now)
        + _unlock_reached(storage, user_id, TOPIC_COMPLETION, completed_topics, now)
        + _unlock_reached(storage, user_id, COURSE_COMPLETION, completed_courses, now)
    )
