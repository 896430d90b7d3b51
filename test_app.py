from fastapi.testclient import TestClient

from db import SessionLocal
from main import app
from models import NoteVote
from storage import Storage


client = TestClient(app)


def _register(email="student@example.com", password="secret123"):
    return client.post("/api/auth/register", json={"name": "Student", "email": email, "password": password})


def test_root():
    res = client.get("/")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_register_login_and_me():
    res = _register()
    assert res.status_code == 201
    body = res.json()
    assert body["email"] == "student@example.com"
    assert body["token"]
    assert "password" not in body and "passwordHash" not in body

    login = client.post("/api/auth/login", json={"email": "student@example.com", "password": "secret123"})
    assert login.status_code == 200
    token = login.json()["token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["id"] == body["id"]


def test_register_duplicate_and_invalid():
    assert _register().status_code == 201
    dup = _register()
    assert dup.status_code == 400
    assert dup.json() == {"message": "User with this email already exists"}

    short = _register(email="other@example.com", password="123")
    assert short.status_code == 400
    assert "message" in short.json()


def test_login_rejects_bad_password():
    res = client.post("/api/auth/login", json={"email": "john@example.com", "password": "wrong"})
    assert res.status_code == 401
    assert res.json() == {"message": "Invalid email or password"}
    ok = client.post("/api/auth/login", json={"email": "john@example.com", "password": "password123"})
    assert ok.status_code == 200
    assert ok.json()["id"] == 1


def test_me_requires_token():
    assert client.get("/api/auth/me").status_code == 401
    bad = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert bad.status_code == 401


def test_google_auth_creates_then_finds_user():
    first = client.post("/api/auth/google", json={"googleId": "g-1", "email": "new@example.com"})
    assert first.status_code == 200
    assert first.json()["name"] == "new"
    assert first.json()["googleId"] == "g-1"

    again = client.post("/api/auth/google", json={"googleId": "g-1", "email": "new@example.com"})
    assert again.json()["id"] == first.json()["id"]


def test_google_auth_links_existing_email():
    res = client.post("/api/auth/google", json={"googleId": "g-john", "email": "john@example.com", "name": "J"})
    assert res.status_code == 200
    assert res.json()["id"] == 1
    assert res.json()["name"] == "John Doe"
    assert client.get("/api/users/1").json()["googleId"] == "g-john"


def test_users():
    res = client.get("/api/users/1")
    assert res.status_code == 200
    assert res.json()["profilePicUrl"] == "https://i.pravatar.cc/150?u=john"

    missing = client.get("/api/users/999")
    assert missing.status_code == 404
    assert missing.json() == {"message": "User not found"}

    patched = client.patch("/api/users/2", json={"bio": "Updated", "name": None})
    assert patched.status_code == 200
    assert patched.json()["bio"] == "Updated"
    assert patched.json()["name"] == "Jane Smith"

    taken = client.patch("/api/users/2", json={"email": "john@example.com"})
    assert taken.status_code == 400


def test_courses_and_topics():
    courses = client.get("/api/courses").json()
    assert len(courses) == 10
    assert courses[0]["title"] == "Web Development Fundamentals"
    assert client.get("/api/courses/999").status_code == 404

    topics = client.get("/api/courses/1/topics").json()
    assert len(topics) == 8
    assert [t["order"] for t in topics] == list(range(1, 9))
    assert topics[0]["prerequisites"] == []
    assert topics[2]["title"] == "JavaScript Essentials"
    assert topics[2]["prerequisites"] == [1, 2]
    assert client.get("/api/courses/6/topics").json() == []

    assert client.get("/api/topics/3").json()["courseId"] == 1
    assert client.get("/api/topics/999").status_code == 404

    resources = client.get("/api/topics/1/resources").json()
    assert {r["type"] for r in resources} == {"web", "video"}


def test_catalog_authoring():
    course = client.post("/api/courses", json={"title": "Rust", "description": "Systems"})
    assert course.status_code == 201
    course_id = course.json()["id"]
    assert course_id == 11

    a = client.post(f"/api/courses/{course_id}/topics", json={"title": "A", "description": "a", "order": 1}).json()
    b = client.post(
        f"/api/courses/{course_id}/topics",
        json={"title": "B", "description": "b", "order": 2, "prerequisites": [a["id"], a["id"]]},
    ).json()
    assert b["prerequisites"] == [a["id"]]

    foreign = client.post(
        f"/api/courses/{course_id}/topics", json={"title": "C", "description": "c", "order": 3, "prerequisites": [1]}
    )
    assert foreign.status_code == 400

    cycle = client.patch(f"/api/topics/{a['id']}", json={"prerequisites": [b["id"]]})
    assert cycle.status_code == 400
    assert "cycle" in cycle.json()["message"]

    renamed = client.patch(f"/api/topics/{a['id']}", json={"title": "A2"})
    assert renamed.json()["title"] == "A2"
    assert renamed.json()["prerequisites"] == []

    resource = client.post(
        f"/api/topics/{a['id']}/resources", json={"title": "Book", "url": "https://example.com", "type": "web"}
    )
    assert resource.status_code == 201
    bad_type = client.post(
        f"/api/topics/{a['id']}/resources", json={"title": "Book", "url": "https://example.com", "type": "pdf"}
    )
    assert bad_type.status_code == 400

    assert client.post("/api/courses/999/topics", json={"title": "X", "description": "x", "order": 1}).status_code == 404


def test_notes_and_votes():
    notes = client.get("/api/topics/1/notes").json()
    assert len(notes) == 1
    assert (notes[0]["likes"], notes[0]["dislikes"]) == (5, 0)

    created = client.post("/api/topics/1/notes", json={"userId": 2, "content": "Use semantic tags"})
    assert created.status_code == 201
    assert (created.json()["likes"], created.json()["dislikes"]) == (0, 0)

    like = client.post("/api/notes/1/vote", json={"userId": 2, "vote": 1})
    assert like.status_code == 200
    assert like.json()["vote"] == 1
    note = client.get("/api/topics/1/notes").json()[0]
    assert (note["likes"], note["dislikes"]) == (6, 0)

    client.post("/api/notes/1/vote", json={"userId": 2, "vote": -1})
    note = client.get("/api/topics/1/notes").json()[0]
    assert (note["likes"], note["dislikes"]) == (5, 1)

    client.post("/api/notes/1/vote", json={"userId": 2, "vote": -1})
    note = client.get("/api/topics/1/notes").json()[0]
    assert (note["likes"], note["dislikes"]) == (5, 1)

    with SessionLocal() as db:
        votes = db.query(NoteVote).filter(NoteVote.note_id == 1, NoteVote.user_id == 2).all()
        assert [v.vote for v in votes] == [-1]
        assert Storage(db).get_note_vote(1, 2).vote == -1

    assert client.post("/api/notes/1/vote", json={"userId": 2, "vote": 0}).status_code == 400
    assert client.post("/api/notes/999/vote", json={"userId": 2, "vote": 1}).status_code == 404
    assert client.post("/api/notes/1/vote", json={"userId": 999, "vote": 1}).status_code == 404


def test_progress_and_in_progress_courses():
    progress = client.get("/api/users/1/progress").json()
    assert len(progress) == 3

    completed = client.get("/api/users/1/completed-topics").json()
    assert [p["topicId"] for p in completed] == [2, 1]

    courses = client.get("/api/users/1/in-progress-courses").json()
    assert len(courses) == 1
    assert courses[0]["course"]["id"] == 1
    assert (courses[0]["completedTopics"], courses[0]["totalTopics"]) == (2, 8)

    assert client.get("/api/users/1/progress/3").json()["isCompleted"] is False
    assert client.get("/api/users/1/progress/9").status_code == 404
    assert client.get("/api/users/2/in-progress-courses").json() == []


def test_update_progress_validates():
    assert client.post("/api/users/1/progress", json={"topicId": 999, "isCompleted": True}).status_code == 404
    assert client.post("/api/users/999/progress", json={"topicId": 1, "isCompleted": True}).status_code == 404
    assert client.post("/api/users/1/progress", json={"isCompleted": True}).status_code == 400


def test_streak_and_points_defaults():
    assert client.get("/api/users/1/streak").json()["currentStreak"] == 3

    streak = client.get("/api/users/999/streak").json()
    assert (streak["userId"], streak["currentStreak"]) == (999, 0)

    assert client.get("/api/users/1/points").json()["points"] == 250
    points = client.get("/api/users/999/points").json()
    assert (points["points"], points["level"]) == (0, 1)


def test_pomodoro_sessions():
    body = {"startTime": "2024-03-10T09:00:00", "endTime": "2024-03-10T09:30:00", "workMinutes": 25, "breakMinutes": 5}
    res = client.post("/api/users/1/pomodoro-sessions", json=body)
    assert res.status_code == 201
    assert res.json()["startTime"] == "2024-03-10T09:00:00"

    later = dict(body, startTime="2024-03-11T09:00:00", endTime="2024-03-11T09:30:00")
    client.post("/api/users/1/pomodoro-sessions", json=later)
    sessions = client.get("/api/users/1/pomodoro-sessions").json()
    assert [s["startTime"] for s in sessions] == ["2024-03-11T09:00:00", "2024-03-10T09:00:00"]

    backwards = dict(body, endTime="2024-03-10T08:00:00")
    assert client.post("/api/users/1/pomodoro-sessions", json=backwards).status_code == 400


def test_tasks_crud():
    assert len(client.get("/api/users/1/tasks").json()) == 2

    created = client.post("/api/users/1/tasks", json={"title": "Read docs", "dueDate": "2024-03-12T17:00:00"})
    assert created.status_code == 201
    task = created.json()
    assert (task["importance"], task["isCompleted"]) == (1, False)

    patched = client.patch(f"/api/tasks/{task['id']}", json={"isCompleted": True, "title": None, "dueDate": None})
    assert patched.status_code == 200
    assert patched.json()["isCompleted"] is True
    assert patched.json()["title"] == "Read docs"
    assert patched.json()["dueDate"] is None

    assert client.patch(f"/api/tasks/{task['id']}", json={"importance": 4}).status_code == 400
    assert client.patch("/api/tasks/999", json={"title": "x"}).status_code == 404

    assert client.delete(f"/api/tasks/{task['id']}").status_code == 204
    assert client.delete(f"/api/tasks/{task['id']}").status_code == 404
    assert len(client.get("/api/users/1/tasks").json()) == 2


def test_quizzes():
    quizzes = client.get("/api/topics/1/quizzes").json()
    assert [q["title"] for q in quizzes] == ["HTML Basics Quiz"]

    detail = client.get("/api/quizzes/2").json()
    assert detail["quiz"]["pointsToEarn"] == 15
    assert len(detail["questions"]) == 2
    assert detail["questions"][0]["correctAnswer"] == "Integer"

    assert client.get("/api/quizzes/999").status_code == 404
    assert client.post("/api/topics/999/generate-quiz").status_code == 404


def test_quiz_attempt_validation():
    over = client.post("/api/quizzes/1/attempt", json={"userId": 1, "score": 4, "maxScore": 3, "answers": []})
    assert over.status_code == 400
    missing = client.post("/api/quizzes/999/attempt", json={"userId": 1, "score": 1, "maxScore": 3, "answers": []})
    assert missing.status_code == 404


def test_achievements():
    achievements = client.get("/api/achievements").json()
    assert len(achievements) == 5
    assert {a["type"] for a in achievements} == {
        "streak", "topic_completion", "course_completion", "quiz_mastery", "perfect_score"
    }

    unlocked = client.get("/api/users/1/achievements").json()
    assert len(unlocked) == 1
    assert unlocked[0]["achievement"]["title"] == "Streak Master"
    assert unlocked[0]["unlockedAt"]
    assert client.get("/api/users/2/achievements").json() == []


def test_flowchart():
    chart = client.get("/api/courses/1/flowchart", params={"userId": 1}).json()
    assert chart["courseId"] == 1
    nodes = {n["topicId"]: n for n in chart["nodes"]}
    assert len(nodes) == 8
    assert nodes[1]["level"] == 0 and nodes[1]["isCompleted"]
    assert nodes[3]["level"] == 2 and not nodes[3]["isLocked"]
    assert nodes[5]["isLocked"]
    assert nodes[8]["level"] == 5
    assert {"fromId": 1, "toId": 2} in chart["edges"]

    anonymous = client.get("/api/courses/1/flowchart").json()
    assert not any(n["isCompleted"] for n in anonymous["nodes"])
    assert client.get("/api/courses/999/flowchart").status_code == 404


def test_learning_session_end_to_end():
    done = client.post("/api/users/1/progress", json={"topicId": 3, "isCompleted": True})
    assert done.status_code == 200
    assert done.json()["isCompleted"] is True
    assert done.json()["completedAt"]
    assert client.get("/api/users/1/streak").json()["currentStreak"] == 3

    courses = client.get("/api/users/1/in-progress-courses").json()
    assert courses[0]["completedTopics"] == 3

    generated = client.post("/api/topics/3/generate-quiz")
    assert generated.status_code == 201
    quiz = generated.json()["quiz"]
    questions = generated.json()["questions"]
    assert quiz["title"] == "Quiz on JavaScript Essentials"
    assert len(questions) == 5

    answers = [{"questionId": q["id"], "userAnswer": q["correctAnswer"]} for q in questions]
    attempt = client.post(
        f"/api/quizzes/{quiz['id']}/attempt", json={"userId": 1, "score": 5, "maxScore": 5, "answers": answers}
    )
    assert attempt.status_code == 201
    assert all(a["isCorrect"] for a in attempt.json()["answers"])

    points = client.get("/api/users/1/points").json()
    assert (points["points"], points["level"]) == (260, 3)

    attempts = client.get("/api/users/1/quiz-attempts", params={"quizId": quiz["id"]}).json()
    assert len(attempts) == 1
    assert attempts[0]["score"] == 5
    assert client.get("/api/users/1/quiz-attempts", params={"quizId": 1}).json() == []

    chart = client.get("/api/courses/1/flowchart", params={"userId": 1}).json()
    nodes = {n["topicId"]: n for n in chart["nodes"]}
    assert not nodes[5]["isLocked"]

    undone = client.post("/api/users/1/progress", json={"topicId": 3, "isCompleted": False})
    assert undone.json()["completedAt"] is None
    assert client.get("/api/users/1/streak").json()["currentStreak"] == 3
