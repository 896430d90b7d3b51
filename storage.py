"""Repository over the entity store.

Engine modules and route handlers read and write entities only through
:class:`Storage`. It flushes but never commits; the caller owns the
transaction.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from graph import find_cycle
from models import (
    Achievement,
    CommunityNote,
    Course,
    NoteVote,
    PomodoroSession,
    Quiz,
    QuizQuestion,
    Resource,
    Task,
    Topic,
    User,
    UserAchievement,
    UserPoints,
    UserProgress,
    UserQuizAnswer,
    UserQuizAttempt,
    UserStreak,
)

logger = logging.getLogger(__name__)


class StoreError(Exception):
    pass


class NotFoundError(StoreError):
    pass


class ConflictError(StoreError):
    pass


class ValidationError(StoreError):
    pass


class Storage:
    def __init__(self, db: Session):
        self.db = db

    def commit(self) -> None:
        self.db.commit()

    def _add(self, obj):
        self.db.add(obj)
        self.db.flush()
        return obj

    @staticmethod
    def _apply(obj, changes: dict[str, Any]):
        for key, value in changes.items():
            setattr(obj, key, value)
        return obj

    # users

    def get_user(self, user_id: int) -> User | None:
        return self.db.get(User, user_id)

    def get_user_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == email).first()

    def get_user_by_google_id(self, google_id: str) -> User | None:
        return self.db.query(User).filter(User.google_id == google_id).first()

    def create_user(self, **fields) -> User:
        if self.get_user_by_email(fields["email"]):
            raise ConflictError("User with this email already exists")
        if fields.get("google_id") and self.get_user_by_google_id(fields["google_id"]):
            raise ConflictError("User with this Google ID already exists")
        return self._add(User(**fields))

    def update_user(self, user_id: int, changes: dict[str, Any]) -> User | None:
        user = self.get_user(user_id)
        if not user:
            return None
        email = changes.get("email")
        if email and email != user.email and self.get_user_by_email(email):
            raise ConflictError("User with this email already exists")
        self._apply(user, changes)
        self.db.flush()
        return user

    # courses and topics

    def get_courses(self) -> list[Course]:
        return self.db.query(Course).order_by(Course.id).all()

    def get_course(self, course_id: int) -> Course | None:
        return self.db.get(Course, course_id)

    def get_courses_by_ids(self, ids: list[int]) -> list[Course]:
        found = [self.get_course(course_id) for course_id in ids]
        return [c for c in found if c is not None]

    def create_course(self, **fields) -> Course:
        return self._add(Course(**fields))

    def get_topics(self, course_id: int) -> list[Topic]:
        return self.db.query(Topic).filter(Topic.course_id == course_id).order_by(Topic.order, Topic.id).all()

    def get_topic(self, topic_id: int) -> Topic | None:
        return self.db.get(Topic, topic_id)

    def _check_prerequisites(self, course_id: int, topic_id: int | None, prerequisites: list[int]) -> None:
        siblings = {t.id: t for t in self.get_topics(course_id)}
        unknown = [p for p in prerequisites if p not in siblings]
        if unknown:
            raise ValidationError(f"prerequisites must be topics of course {course_id}: {unknown}")
        if topic_id is None:
            return
        edges = {tid: list(t.prerequisites or []) for tid, t in siblings.items()}
        edges[topic_id] = prerequisites
        cycle = find_cycle(edges)
        if cycle:
            logger.warning("rejected prerequisites for topic %s: cycle %s", topic_id, cycle)
            raise ValidationError(f"prerequisites would form a cycle: {cycle}")

    def create_topic(self, **fields) -> Topic:
        fields["prerequisites"] = list(dict.fromkeys(fields.get("prerequisites") or []))
        if not self.get_course(fields["course_id"]):
            raise NotFoundError("Course not found")
        # a topic that does not exist yet cannot close a cycle
        self._check_prerequisites(fields["course_id"], None, fields["prerequisites"])
        return self._add(Topic(**fields))

    def update_topic(self, topic_id: int, changes: dict[str, Any]) -> Topic | None:
        topic = self.get_topic(topic_id)
        if not topic:
            return None
        if changes.get("prerequisites") is not None:
            changes["prerequisites"] = list(dict.fromkeys(changes["prerequisites"]))
            self._check_prerequisites(topic.course_id, topic_id, changes["prerequisites"])
        else:
            changes.pop("prerequisites", None)
        self._apply(topic, changes)
        self.db.flush()
        return topic

    # resources

    def get_resources_by_topic(self, topic_id: int) -> list[Resource]:
        return self.db.query(Resource).filter(Resource.topic_id == topic_id).order_by(Resource.id).all()

    def create_resource(self, **fields) -> Resource:
        return self._add(Resource(**fields))

    # community notes

    def get_notes_by_topic(self, topic_id: int) -> list[CommunityNote]:
        return self.db.query(CommunityNote).filter(CommunityNote.topic_id == topic_id).order_by(CommunityNote.id).all()

    def get_note(self, note_id: int) -> CommunityNote | None:
        return self.db.get(CommunityNote, note_id)

    def create_note(self, **fields) -> CommunityNote:
        return self._add(CommunityNote(likes=0, dislikes=0, **fields))

    def get_note_vote(self, note_id: int, user_id: int) -> NoteVote | None:
        return self.db.query(NoteVote).filter(NoteVote.note_id == note_id, NoteVote.user_id == user_id).first()

    def vote_note(self, note_id: int, user_id: int, value: int) -> NoteVote:
        """Record a like (1) or dislike (-1); a user's later vote replaces their earlier one."""
        if value not in (1, -1):
            raise ValidationError("vote must be 1 or -1")
        note = self.get_note(note_id)
        if not note:
            raise NotFoundError("Note not found")

        existing = self.get_note_vote(note_id, user_id)
        if existing:
            if existing.vote == 1:
                note.likes = max(0, note.likes - 1)
            else:
                note.dislikes = max(0, note.dislikes - 1)
            existing.vote = value
            vote = existing
        else:
            vote = NoteVote(note_id=note_id, user_id=user_id, vote=value)
            self.db.add(vote)

        if value == 1:
            note.likes += 1
        else:
            note.dislikes += 1
        self.db.flush()
        return vote

    # progress

    def get_user_topic_progress(self, user_id: int, topic_id: int) -> UserProgress | None:
        return self.db.query(UserProgress).filter(UserProgress.user_id == user_id, UserProgress.topic_id == topic_id).first()

    def get_user_progress(self, user_id: int) -> list[UserProgress]:
        return self.db.query(UserProgress).filter(UserProgress.user_id == user_id).order_by(UserProgress.id).all()

    def upsert_progress(self, user_id: int, topic_id: int, is_completed: bool, completed_at: datetime | None) -> UserProgress:
        item = self.get_user_topic_progress(user_id, topic_id)
        if not item:
            item = UserProgress(user_id=user_id, topic_id=topic_id)
            self.db.add(item)
        item.is_completed = is_completed
        item.completed_at = completed_at
        self.db.flush()
        return item

    def get_user_completed_topics(self, user_id: int) -> list[UserProgress]:
        rows = (
            self.db.query(UserProgress)
            .filter(UserProgress.user_id == user_id, UserProgress.is_completed.is_(True))
            .all()
        )
        return sorted(rows, key=lambda p: p.completed_at or datetime.min, reverse=True)

    def get_completed_topic_ids(self, user_id: int) -> set[int]:
        return {p.topic_id for p in self.get_user_completed_topics(user_id)}

    def get_course_completion(self, user_id: int) -> list[tuple[Course, int, int]]:
        """(course, completed, total) for every course the user has progress rows in."""
        completed_ids = self.get_completed_topic_ids(user_id)
        touched = {p.topic_id for p in self.get_user_progress(user_id)}
        course_ids: list[int] = []
        for topic_id in sorted(touched):
            topic = self.get_topic(topic_id)
            if topic and topic.course_id not in course_ids:
                course_ids.append(topic.course_id)

        result = []
        for course in self.get_courses_by_ids(course_ids):
            topics = self.get_topics(course.id)
            done = sum(1 for t in topics if t.id in completed_ids)
            result.append((course, done, len(topics)))
        return result

    def get_user_in_progress_courses(self, user_id: int) -> list[tuple[Course, int, int]]:
        return [row for row in self.get_course_completion(user_id) if 0 < row[1] < row[2]]

    # streaks

    def get_user_streak(self, user_id: int) -> UserStreak | None:
        return self.db.query(UserStreak).filter(UserStreak.user_id == user_id).first()

    def set_user_streak(self, user_id: int, current_streak: int, last_active: datetime) -> UserStreak:
        streak = self.get_user_streak(user_id)
        if not streak:
            streak = UserStreak(user_id=user_id)
            self.db.add(streak)
        streak.current_streak = current_streak
        streak.last_active = last_active
        self.db.flush()
        return streak

    # pomodoro

    def create_pomodoro_session(self, **fields) -> PomodoroSession:
        return self._add(PomodoroSession(**fields))

    def get_user_pomodoro_sessions(self, user_id: int) -> list[PomodoroSession]:
        return (
            self.db.query(PomodoroSession)
            .filter(PomodoroSession.user_id == user_id)
            .order_by(PomodoroSession.start_time.desc())
            .all()
        )

    # tasks

    def get_user_tasks(self, user_id: int) -> list[Task]:
        return self.db.query(Task).filter(Task.user_id == user_id).order_by(Task.id).all()

    def get_task(self, task_id: int) -> Task | None:
        return self.db.get(Task, task_id)

    def create_task(self, **fields) -> Task:
        return self._add(Task(**fields))

    def update_task(self, task_id: int, changes: dict[str, Any]) -> Task | None:
        task = self.get_task(task_id)
        if not task:
            return None
        self._apply(task, changes)
        self.db.flush()
        return task

    def delete_task(self, task_id: int) -> bool:
        task = self.get_task(task_id)
        if not task:
            return False
        self.db.delete(task)
        self.db.flush()
        return True

    # quizzes

    def get_quizzes_by_topic(self, topic_id: int) -> list[Quiz]:
        return self.db.query(Quiz).filter(Quiz.topic_id == topic_id).order_by(Quiz.id).all()

    def get_quiz(self, quiz_id: int) -> Quiz | None:
        return self.db.get(Quiz, quiz_id)

    def create_quiz(self, **fields) -> Quiz:
        return self._add(Quiz(**fields))

    def get_questions_by_quiz(self, quiz_id: int) -> list[QuizQuestion]:
        return self.db.query(QuizQuestion).filter(QuizQuestion.quiz_id == quiz_id).order_by(QuizQuestion.id).all()

    def get_question(self, question_id: int) -> QuizQuestion | None:
        return self.db.get(QuizQuestion, question_id)

    def create_quiz_question(self, **fields) -> QuizQuestion:
        if fields["correct_answer"] not in fields["options"]:
            raise ValidationError("correct answer must be one of the options")
        return self._add(QuizQuestion(**fields))

    def create_quiz_attempt(self, **fields) -> UserQuizAttempt:
        return self._add(UserQuizAttempt(**fields))

    def get_user_quiz_attempts(self, user_id: int, quiz_id: int | None = None) -> list[UserQuizAttempt]:
        q = self.db.query(UserQuizAttempt).filter(UserQuizAttempt.user_id == user_id)
        if quiz_id is not None:
            q = q.filter(UserQuizAttempt.quiz_id == quiz_id)
        return q.order_by(UserQuizAttempt.completed_at.desc(), UserQuizAttempt.id.desc()).all()

    def save_quiz_answer(self, **fields) -> UserQuizAnswer:
        return self._add(UserQuizAnswer(**fields))

    # achievements and points

    def get_achievements(self) -> list[Achievement]:
        return self.db.query(Achievement).order_by(Achievement.id).all()

    def get_achievement(self, achievement_id: int) -> Achievement | None:
        return self.db.get(Achievement, achievement_id)

    def get_achievements_by_type(self, achievement_type: str) -> list[Achievement]:
        return self.db.query(Achievement).filter(Achievement.type == achievement_type).order_by(Achievement.id).all()

    def create_achievement(self, **fields) -> Achievement:
        return self._add(Achievement(**fields))

    def get_user_achievement(self, user_id: int, achievement_id: int) -> UserAchievement | None:
        return (
            self.db.query(UserAchievement)
            .filter(UserAchievement.user_id == user_id, UserAchievement.achievement_id == achievement_id)
            .first()
        )

    def get_user_achievements(self, user_id: int) -> list[tuple[Achievement, datetime]]:
        rows = self.db.query(UserAchievement).filter(UserAchievement.user_id == user_id).all()
        result = []
        for ua in rows:
            achievement = self.get_achievement(ua.achievement_id)
            if not achievement:
                raise NotFoundError(f"Achievement not found: {ua.achievement_id}")
            result.append((achievement, ua.unlocked_at))
        return sorted(result, key=lambda pair: pair[1], reverse=True)

    def create_user_achievement(self, user_id: int, achievement_id: int, unlocked_at: datetime) -> UserAchievement:
        return self._add(UserAchievement(user_id=user_id, achievement_id=achievement_id, unlocked_at=unlocked_at))

    def get_user_points(self, user_id: int) -> UserPoints | None:
        return self.db.query(UserPoints).filter(UserPoints.user_id == user_id).first()

    def save_user_points(self, user_id: int, points: int, level: int) -> UserPoints:
        row = self.get_user_points(user_id)
        if not row:
            row = UserPoints(user_id=user_id)
            self.db.add(row)
        row.points = points
        row.level = level
        self.db.flush()
        return row
