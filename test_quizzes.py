from datetime import datetime, timedelta

import pytest

from quizzes import (
    MULTIPLE_CHOICE,
    TRUE_FALSE,
    AnswerSubmission,
    QuestionDraft,
    generate_quiz_for_topic,
    points_for_score,
    record_attempt,
    template_questions,
)
from storage import NotFoundError, ValidationError

JOHN, JANE = 1, 2
HTML_QUIZ = 1
QUIZ_WIZARD = 4


def test_template_questions(store):
    topic = store.get_topic(1)
    drafts = template_questions(topic)
    assert len(drafts) == 5
    assert [d.question_type for d in drafts] == [MULTIPLE_CHOICE, TRUE_FALSE, MULTIPLE_CHOICE, TRUE_FALSE, MULTIPLE_CHOICE]
    assert all(d.correct_answer in d.options for d in drafts)
    assert all("HTML Basics" in d.question_text for d in drafts)


def test_generate_quiz_for_topic(store):
    quiz, questions = generate_quiz_for_topic(store, 2)
    assert quiz.title == "Quiz on CSS Styling"
    assert quiz.description == "Test your knowledge on CSS Styling"
    assert (quiz.difficulty, quiz.points_to_earn) == (1, 10)
    assert len(questions) == 5
    assert {q.quiz_id for q in questions} == {quiz.id}
    assert [q.id for q in store.get_quizzes_by_topic(2)] == [quiz.id]


def test_generate_quiz_with_custom_generator(store):
    def one_question(topic):
        return [QuestionDraft(f"{topic.title}?", TRUE_FALSE, ["True", "False"], "True", "yes")]

    _, questions = generate_quiz_for_topic(store, 1, generator=one_question)
    assert [q.question_text for q in questions] == ["HTML Basics?"]


def test_generate_quiz_for_unknown_topic(store):
    with pytest.raises(NotFoundError):
        generate_quiz_for_topic(store, 999)


def test_points_for_score_rounds_half_up():
    assert points_for_score(10, 3, 3) == 10
    assert points_for_score(10, 2, 3) == 7
    assert points_for_score(15, 1, 2) == 8
    assert points_for_score(10, 1, 4) == 3
    assert points_for_score(10, 0, 3) == 0


def test_record_attempt_awards_points(store):
    answers = [
        AnswerSubmission(1, "Hyper Text Markup Language", True),
        AnswerSubmission(2, "<link>", False),
        AnswerSubmission(3, "True", True),
    ]
    attempt, saved = record_attempt(store, JOHN, HTML_QUIZ, 2, 3, answers)
    assert (attempt.score, attempt.max_score) == (2, 3)
    assert [a.is_correct for a in saved] == [True, False, True]
    assert {a.attempt_id for a in saved} == {attempt.id}
    assert store.get_user_points(JOHN).points == 257


def test_record_attempt_grades_missing_flags(store):
    answers = [AnswerSubmission(2, "<a>"), AnswerSubmission(3, "False"), AnswerSubmission(404, "x")]
    _, saved = record_attempt(store, JANE, HTML_QUIZ, 1, 3, answers)
    assert [a.is_correct for a in saved] == [True, False, False]


def test_record_attempt_zero_score_awards_nothing(store):
    record_attempt(store, JANE, HTML_QUIZ, 0, 3, [])
    assert store.get_user_points(JANE).points == 100


def test_record_attempt_validates(store):
    with pytest.raises(ValidationError):
        record_attempt(store, JOHN, HTML_QUIZ, 4, 3, [])
    with pytest.raises(ValidationError):
        record_attempt(store, JOHN, HTML_QUIZ, 0, 0, [])
    with pytest.raises(NotFoundError):
        record_attempt(store, JOHN, 999, 1, 3, [])
    with pytest.raises(NotFoundError):
        record_attempt(store, 999, HTML_QUIZ, 1, 3, [])


def test_fifth_perfect_score_unlocks_quiz_wizard(store):
    start = datetime.now()
    for i in range(4):
        record_attempt(store, JANE, HTML_QUIZ, 3, 3, [], now=start + timedelta(minutes=i))
    assert store.get_user_achievement(JANE, QUIZ_WIZARD) is None
    assert store.get_user_points(JANE).points == 140

    record_attempt(store, JANE, HTML_QUIZ, 3, 3, [], now=start + timedelta(minutes=4))
    assert store.get_user_achievement(JANE, QUIZ_WIZARD) is not None
    points = store.get_user_points(JANE)
    assert (points.points, points.level) == (350, 4)

    record_attempt(store, JANE, HTML_QUIZ, 3, 3, [], now=start + timedelta(minutes=5))
    assert store.get_user_points(JANE).points == 360
    assert len(store.get_user_quiz_attempts(JANE, HTML_QUIZ)) == 6
