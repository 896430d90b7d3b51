"""Request and response bodies. Field names are snake_case in Python and camelCase on the wire."""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def _naive_local(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# requests

class RegisterRequest(CamelModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)
    age: int | None = Field(default=None, ge=0)
    bio: str | None = None
    profile_pic_url: str | None = None


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class GoogleAuthRequest(CamelModel):
    google_id: str = Field(min_length=1)
    email: EmailStr
    name: str | None = None
    profile_pic_url: str | None = None


class UserUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1)
    email: EmailStr | None = None
    age: int | None = Field(default=None, ge=0)
    bio: str | None = None
    profile_pic_url: str | None = None


class CourseCreate(CamelModel):
    title: str = Field(min_length=1)
    description: str
    image_url: str | None = None


class TopicCreate(CamelModel):
    title: str = Field(min_length=1)
    description: str
    order: int
    prerequisites: list[int] = Field(default_factory=list)


class TopicUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    order: int | None = None
    prerequisites: list[int] | None = None


class ResourceCreate(CamelModel):
    title: str = Field(min_length=1)
    url: str = Field(min_length=1)
    type: Literal["web", "video"]


class NoteCreate(CamelModel):
    user_id: int
    content: str = Field(min_length=1)


class VoteRequest(CamelModel):
    user_id: int
    vote: Literal[1, -1]


class ProgressUpdate(CamelModel):
    topic_id: int
    is_completed: bool = False


class PomodoroCreate(CamelModel):
    start_time: datetime
    end_time: datetime
    work_minutes: int = Field(ge=1)
    break_minutes: int = Field(ge=0)

    @field_validator("start_time", "end_time")
    @classmethod
    def to_local_time(cls, value):
        return _naive_local(value)

    @model_validator(mode="after")
    def check_end_after_start(self):
        if self.end_time < self.start_time:
            raise ValueError("endTime must not be before startTime")
        return self


class TaskCreate(CamelModel):
    title: str = Field(min_length=1)
    topic_id: int | None = None
    scheduled_date: datetime | None = None
    due_date: datetime | None = None
    importance: int = Field(default=1, ge=1, le=3)
    is_completed: bool = False

    @field_validator("scheduled_date", "due_date")
    @classmethod
    def to_local_time(cls, value):
        return _naive_local(value)


class TaskUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1)
    topic_id: int | None = None
    scheduled_date: datetime | None = None
    due_date: datetime | None = None
    importance: int | None = Field(default=None, ge=1, le=3)
    is_completed: bool | None = None

    @field_validator("scheduled_date", "due_date")
    @classmethod
    def to_local_time(cls, value):
        return _naive_local(value)


class AnswerIn(CamelModel):
    question_id: int
    user_answer: str
    is_correct: bool | None = None


class AttemptRequest(CamelModel):
    user_id: int
    score: int = Field(ge=0)
    max_score: int = Field(gt=0)
    answers: list[AnswerIn]

    @model_validator(mode="after")
    def check_score_within_max(self):
        if self.score > self.max_score:
            raise ValueError("score must not exceed maxScore")
        return self


# responses

class UserOut(CamelModel):
    id: int
    name: str
    email: str
    age: int | None = None
    bio: str | None = None
    profile_pic_url: str | None = None
    google_id: str | None = None
    created_at: datetime


class AuthUserOut(UserOut):
    token: str


class CourseOut(CamelModel):
    id: int
    title: str
    description: str
    image_url: str | None = None
    created_at: datetime


class TopicOut(CamelModel):
    id: int
    course_id: int
    title: str
    description: str
    order: int
    prerequisites: list[int]
    created_at: datetime


class ResourceOut(CamelModel):
    id: int
    topic_id: int
    title: str
    url: str
    type: str
    created_at: datetime


class NoteOut(CamelModel):
    id: int
    topic_id: int
    user_id: int
    content: str
    likes: int
    dislikes: int
    created_at: datetime


class NoteVoteOut(CamelModel):
    id: int
    note_id: int
    user_id: int
    vote: int
    created_at: datetime


class ProgressOut(CamelModel):
    id: int
    user_id: int
    topic_id: int
    is_completed: bool
    completed_at: datetime | None = None
    created_at: datetime


class CourseProgressOut(CamelModel):
    course: CourseOut
    completed_topics: int
    total_topics: int


class StreakOut(CamelModel):
    id: int | None = None
    user_id: int
    current_streak: int
    last_active: datetime


class PomodoroOut(CamelModel):
    id: int
    user_id: int
    start_time: datetime
    end_time: datetime
    work_minutes: int
    break_minutes: int
    created_at: datetime


class TaskOut(CamelModel):
    id: int
    user_id: int
    title: str
    topic_id: int | None = None
    scheduled_date: datetime | None = None
    due_date: datetime | None = None
    importance: int
    is_completed: bool
    created_at: datetime


class QuizOut(CamelModel):
    id: int
    topic_id: int
    title: str
    description: str
    difficulty: int
    points_to_earn: int
    created_at: datetime


class QuestionOut(CamelModel):
    id: int
    quiz_id: int
    question_text: str
    question_type: str
    options: list[str]
    correct_answer: str
    explanation: str
    created_at: datetime


class QuizDetailOut(CamelModel):
    quiz: QuizOut
    questions: list[QuestionOut]


class AttemptOut(CamelModel):
    id: int
    user_id: int
    quiz_id: int
    score: int
    max_score: int
    completed_at: datetime
    created_at: datetime


class AnswerOut(CamelModel):
    id: int
    attempt_id: int
    question_id: int
    user_answer: str
    is_correct: bool
    created_at: datetime


class AttemptResultOut(CamelModel):
    attempt: AttemptOut
    answers: list[AnswerOut]


class AchievementOut(CamelModel):
    id: int
    title: str
    description: str
    type: str
    threshold: int
    points: int
    badge_url: str
    created_at: datetime


class UserAchievementOut(CamelModel):
    achievement: AchievementOut
    unlocked_at: datetime


class PointsOut(CamelModel):
    id: int | None = None
    user_id: int
    points: int
    level: int


class FlowchartNodeOut(CamelModel):
    topic_id: int
    title: str
    level: int
    position: int
    x: float
    y: float
    is_locked: bool
    is_completed: bool


class FlowchartEdgeOut(CamelModel):
    from_id: int
    to_id: int


class FlowchartOut(CamelModel):
    course_id: int
    nodes: list[FlowchartNodeOut]
    edges: list[FlowchartEdgeOut]
