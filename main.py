from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from db import Base, SessionLocal, engine, get_db
from gamification import mark_topic_complete
from graph import PrerequisiteCycleError, build_flowchart
from models import Course, Topic, User
from quizzes import AnswerSubmission, generate_quiz_for_topic, record_attempt
from schemas import (
    AchievementOut,
    AttemptOut,
    AttemptRequest,
    AttemptResultOut,
    AuthUserOut,
    CourseCreate,
    CourseOut,
    CourseProgressOut,
    FlowchartOut,
    GoogleAuthRequest,
    LoginRequest,
    NoteCreate,
    NoteOut,
    NoteVoteOut,
    PointsOut,
    PomodoroCreate,
    PomodoroOut,
    ProgressOut,
    ProgressUpdate,
    QuizDetailOut,
    QuizOut,
    RegisterRequest,
    ResourceCreate,
    ResourceOut,
    StreakOut,
    TaskCreate,
    TaskOut,
    TaskUpdate,
    TopicCreate,
    TopicOut,
    TopicUpdate,
    UserAchievementOut,
    UserOut,
    UserUpdate,
    VoteRequest,
)
from seed import seed_all
from settings import settings
from storage import ConflictError, NotFoundError, Storage, ValidationError

logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version=settings.app_version)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
security = HTTPBearer(auto_error=False)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds)

NULLABLE_TASK_FIELDS = {"topic_id", "scheduled_date", "due_date"}


def get_storage(db: Session = Depends(get_db)) -> Storage:
    return Storage(db)


# errors

def _error(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message}, headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def request_validation_error(request: Request, exc: RequestValidationError):
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return _error(400, "; ".join(parts) or "invalid request")


@app.exception_handler(NotFoundError)
async def not_found_error(request: Request, exc: NotFoundError):
    return _error(404, str(exc))


@app.exception_handler(ConflictError)
@app.exception_handler(ValidationError)
@app.exception_handler(PrerequisiteCycleError)
async def bad_request_error(request: Request, exc: Exception):
    return _error(400, str(exc))


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


# auth helpers

def _create_access_token(user_id: int) -> str:
    expires = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {"sub": str(user_id), "exp": expires}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _verify_password(plain_password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(plain_password, password_hash)


def _hash_password(password: str) -> str:
    return pwd_context.hash(password)


def _auth_payload(user: User) -> dict:
    return {**UserOut.model_validate(user).model_dump(), "token": _create_access_token(user.id)}


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    store: Storage = Depends(get_storage),
) -> User:
    if credentials is None:
        raise HTTPException(status_code=401, detail="not authenticated", headers={"WWW-Authenticate": "Bearer"})
    try:
        payload = jwt.decode(credentials.credentials, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        user_id = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=401, detail="invalid token") from exc
    user = store.get_user(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="user not found")
    return user


# lookups

def _user_or_404(store: Storage, user_id: int) -> User:
    user = store.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _course_or_404(store: Storage, course_id: int) -> Course:
    course = store.get_course(course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


def _topic_or_404(store: Storage, topic_id: int) -> Topic:
    topic = store.get_topic(topic_id)
    if not topic:
        raise HTTPException(status_code=404, detail="Topic not found")
    return topic


@app.on_event("startup")
def on_startup() -> None:
    Base.metadata.create_all(bind=engine)
    if not settings.seed_on_startup:
        return
    with SessionLocal() as db:
        if seed_all(Storage(db), _hash_password):
            db.commit()
            logger.info("seeded sample data")


@app.get("/")
def read_root():
    return {"app": settings.app_name, "version": settings.app_version, "status": "ok"}


# auth

@app.post("/api/auth/register", status_code=201, response_model=AuthUserOut)
def register(req: RegisterRequest, store: Storage = Depends(get_storage)):
    if store.get_user_by_email(req.email):
        raise HTTPException(status_code=400, detail="User with this email already exists")
    fields = req.model_dump(exclude={"password"})
    user = store.create_user(password_hash=_hash_password(req.password), **fields)
    store.commit()
    logger.info("registered user %s", user.id)
    return _auth_payload(user)


@app.post("/api/auth/login", response_model=AuthUserOut)
def login(req: LoginRequest, store: Storage = Depends(get_storage)):
    user = store.get_user_by_email(req.email)
    if not user or not _verify_password(req.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return _auth_payload(user)


@app.post("/api/auth/google", response_model=AuthUserOut)
def google_auth(req: GoogleAuthRequest, store: Storage = Depends(get_storage)):
    user = store.get_user_by_google_id(req.google_id)
    if not user:
        user = store.get_user_by_email(req.email)
        if user:
            user = store.update_user(user.id, {"google_id": req.google_id})
        else:
            user = store.create_user(
                name=req.name or req.email.split("@")[0],
                email=req.email,
                google_id=req.google_id,
                profile_pic_url=req.profile_pic_url,
                password_hash=None,
            )
            logger.info("registered user %s via google", user.id)
        store.commit()
    return _auth_payload(user)


@app.get("/api/auth/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user


# users

@app.get("/api/users/{user_id}", response_model=UserOut)
def get_user(user_id: int, store: Storage = Depends(get_storage)):
    return _user_or_404(store, user_id)


@app.patch("/api/users/{user_id}", response_model=UserOut)
def update_user(user_id: int, req: UserUpdate, store: Storage = Depends(get_storage)):
    _user_or_404(store, user_id)
    changes = req.model_dump(exclude_unset=True)
    if changes.get("name") is None:
        changes.pop("name", None)
    if changes.get("email") is None:
        changes.pop("email", None)
    user = store.update_user(user_id, changes)
    store.commit()
    return user


# courses and topics

@app.get("/api/courses", response_model=list[CourseOut])
def list_courses(store: Storage = Depends(get_storage)):
    return store.get_courses()


@app.post("/api/courses", status_code=201, response_model=CourseOut)
def create_course(req: CourseCreate, store: Storage = Depends(get_storage)):
    course = store.create_course(**req.model_dump())
    store.commit()
    return course


@app.get("/api/courses/{course_id}", response_model=CourseOut)
def get_course(course_id: int, store: Storage = Depends(get_storage)):
    return _course_or_404(store, course_id)


@app.get("/api/courses/{course_id}/topics", response_model=list[TopicOut])
def list_topics(course_id: int, store: Storage = Depends(get_storage)):
    return store.get_topics(course_id)


@app.post("/api/courses/{course_id}/topics", status_code=201, response_model=TopicOut)
def create_topic(course_id: int, req: TopicCreate, store: Storage = Depends(get_storage)):
    _course_or_404(store, course_id)
    topic = store.create_topic(course_id=course_id, **req.model_dump())
    store.commit()
    return topic


@app.get("/api/courses/{course_id}/flowchart", response_model=FlowchartOut)
def course_flowchart(
    course_id: int, user_id: int | None = Query(None, alias="userId"), store: Storage = Depends(get_storage)
):
    _course_or_404(store, course_id)
    completed = store.get_completed_topic_ids(user_id) if user_id is not None else set()
    return {"course_id": course_id, **build_flowchart(store.get_topics(course_id), completed)}


@app.get("/api/topics/{topic_id}", response_model=TopicOut)
def get_topic(topic_id: int, store: Storage = Depends(get_storage)):
    return _topic_or_404(store, topic_id)


@app.patch("/api/topics/{topic_id}", response_model=TopicOut)
def update_topic(topic_id: int, req: TopicUpdate, store: Storage = Depends(get_storage)):
    _topic_or_404(store, topic_id)
    changes = {k: v for k, v in req.model_dump(exclude_unset=True).items() if v is not None}
    topic = store.update_topic(topic_id, changes)
    store.commit()
    return topic


@app.get("/api/topics/{topic_id}/resources", response_model=list[ResourceOut])
def list_resources(topic_id: int, store: Storage = Depends(get_storage)):
    return store.get_resources_by_topic(topic_id)


@app.post("/api/topics/{topic_id}/resources", status_code=201, response_model=ResourceOut)
def create_resource(topic_id: int, req: ResourceCreate, store: Storage = Depends(get_storage)):
    _topic_or_404(store, topic_id)
    resource = store.create_resource(topic_id=topic_id, **req.model_dump())
    store.commit()
    return resource


# community notes

@app.get("/api/topics/{topic_id}/notes", response_model=list[NoteOut])
def list_notes(topic_id: int, store: Storage = Depends(get_storage)):
    return store.get_notes_by_topic(topic_id)


@app.post("/api/topics/{topic_id}/notes", status_code=201, response_model=NoteOut)
def create_note(topic_id: int, req: NoteCreate, store: Storage = Depends(get_storage)):
    _topic_or_404(store, topic_id)
    _user_or_404(store, req.user_id)
    note = store.create_note(topic_id=topic_id, **req.model_dump())
    store.commit()
    return note


@app.post("/api/notes/{note_id}/vote", response_model=NoteVoteOut)
def vote_note(note_id: int, req: VoteRequest, store: Storage = Depends(get_storage)):
    _user_or_404(store, req.user_id)
    vote = store.vote_note(note_id, req.user_id, req.vote)
    store.commit()
    return vote


# progress and streaks

@app.get("/api/users/{user_id}/progress", response_model=list[ProgressOut])
def list_progress(user_id: int, store: Storage = Depends(get_storage)):
    return store.get_user_progress(user_id)


@app.get("/api/users/{user_id}/progress/{topic_id}", response_model=ProgressOut)
def get_progress(user_id: int, topic_id: int, store: Storage = Depends(get_storage)):
    progress = store.get_user_topic_progress(user_id, topic_id)
    if not progress:
        raise HTTPException(status_code=404, detail="Progress not found")
    return progress


@app.post("/api/users/{user_id}/progress", response_model=ProgressOut)
def update_progress(user_id: int, req: ProgressUpdate, store: Storage = Depends(get_storage)):
    _user_or_404(store, user_id)
    _topic_or_404(store, req.topic_id)
    progress = mark_topic_complete(store, user_id, req.topic_id, req.is_completed)
    store.commit()
    return progress


@app.get("/api/users/{user_id}/completed-topics", response_model=list[ProgressOut])
def completed_topics(user_id: int, store: Storage = Depends(get_storage)):
    return store.get_user_completed_topics(user_id)


@app.get("/api/users/{user_id}/in-progress-courses", response_model=list[CourseProgressOut])
def in_progress_courses(user_id: int, store: Storage = Depends(get_storage)):
    return [
        {"course": course, "completed_topics": done, "total_topics": total}
        for course, done, total in store.get_user_in_progress_courses(user_id)
    ]


@app.get("/api/users/{user_id}/streak", response_model=StreakOut)
def get_streak(user_id: int, store: Storage = Depends(get_storage)):
    streak = store.get_user_streak(user_id)
    if not streak:
        return {"user_id": user_id, "current_streak": 0, "last_active": datetime.now()}
    return streak


# pomodoro

@app.post("/api/users/{user_id}/pomodoro-sessions", status_code=201, response_model=PomodoroOut)
def create_pomodoro_session(user_id: int, req: PomodoroCreate, store: Storage = Depends(get_storage)):
    _user_or_404(store, user_id)
    session = store.create_pomodoro_session(user_id=user_id, **req.model_dump())
    store.commit()
    return session


@app.get("/api/users/{user_id}/pomodoro-sessions", response_model=list[PomodoroOut])
def list_pomodoro_sessions(user_id: int, store: Storage = Depends(get_storage)):
    return store.get_user_pomodoro_sessions(user_id)


# tasks

@app.get("/api/users/{user_id}/tasks", response_model=list[TaskOut])
def list_tasks(user_id: int, store: Storage = Depends(get_storage)):
    return store.get_user_tasks(user_id)


@app.post("/api/users/{user_id}/tasks", status_code=201, response_model=TaskOut)
def create_task(user_id: int, req: TaskCreate, store: Storage = Depends(get_storage)):
    _user_or_404(store, user_id)
    task = store.create_task(user_id=user_id, **req.model_dump())
    store.commit()
    return task


@app.patch("/api/tasks/{task_id}", response_model=TaskOut)
def update_task(task_id: int, req: TaskUpdate, store: Storage = Depends(get_storage)):
    changes = {k: v for k, v in req.model_dump(exclude_unset=True).items() if v is not None or k in NULLABLE_TASK_FIELDS}
    task = store.update_task(task_id, changes)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    store.commit()
    return task


@app.delete("/api/tasks/{task_id}", status_code=204)
def delete_task(task_id: int, store: Storage = Depends(get_storage)):
    if not store.delete_task(task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    store.commit()
    return Response(status_code=204)


# quizzes

@app.get("/api/topics/{topic_id}/quizzes", response_model=list[QuizOut])
def list_quizzes(topic_id: int, store: Storage = Depends(get_storage)):
    return store.get_quizzes_by_topic(topic_id)


@app.get("/api/quizzes/{quiz_id}", response_model=QuizDetailOut)
def get_quiz(quiz_id: int, store: Storage = Depends(get_storage)):
    quiz = store.get_quiz(quiz_id)
    if not quiz:
        raise HTTPException(status_code=404, detail="Quiz not found")
    return {"quiz": quiz, "questions": store.get_questions_by_quiz(quiz_id)}


@app.post("/api/topics/{topic_id}/generate-quiz", status_code=201, response_model=QuizDetailOut)
def generate_quiz(topic_id: int, store: Storage = Depends(get_storage)):
    quiz, questions = generate_quiz_for_topic(store, topic_id)
    store.commit()
    return {"quiz": quiz, "questions": questions}


@app.post("/api/quizzes/{quiz_id}/attempt", status_code=201, response_model=AttemptResultOut)
def submit_attempt(quiz_id: int, req: AttemptRequest, store: Storage = Depends(get_storage)):
    answers = [AnswerSubmission(a.question_id, a.user_answer, a.is_correct) for a in req.answers]
    attempt, saved = record_attempt(store, req.user_id, quiz_id, req.score, req.max_score, answers)
    store.commit()
    return {"attempt": attempt, "answers": saved}


@app.get("/api/users/{user_id}/quiz-attempts", response_model=list[AttemptOut])
def list_quiz_attempts(
    user_id: int, quiz_id: int | None = Query(None, alias="quizId"), store: Storage = Depends(get_storage)
):
    return store.get_user_quiz_attempts(user_id, quiz_id)


# achievements and points

@app.get("/api/achievements", response_model=list[AchievementOut])
def list_achievements(store: Storage = Depends(get_storage)):
    return store.get_achievements()


@app.get("/api/users/{user_id}/achievements", response_model=list[UserAchievementOut])
def user_achievements(user_id: int, store: Storage = Depends(get_storage)):
    return [{"achievement": a, "unlocked_at": at} for a, at in store.get_user_achievements(user_id)]


@app.get("/api/users/{user_id}/points", response_model=PointsOut)
def user_points(user_id: int, store: Storage = Depends(get_storage)):
    points = store.get_user_points(user_id)
    if not points:
        return {"user_id": user_id, "points": 0, "level": 1}
    return points
