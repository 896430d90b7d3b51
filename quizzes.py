"""Quiz generation and attempt scoring."""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from gamification import add_user_points, check_quiz_achievements
from models import Quiz, QuizQuestion, Topic, UserQuizAnswer, UserQuizAttempt
from storage import NotFoundError, Storage, ValidationError

logger = logging.getLogger(__name__)

MULTIPLE_CHOICE = "multiple_choice"
TRUE_FALSE = "true_false"
TRUE_FALSE_OPTIONS = ["True", "False"]


@dataclass
class QuestionDraft:
    question_text: str
    question_type: str
    options: list[str]
    correct_answer: str
    explanation: str


@dataclass
class AnswerSubmission:
    question_id: int
    user_answer: str
    is_correct: bool | None = None


QuizGenerator = Callable[[Topic], list[QuestionDraft]]


def template_questions(topic: Topic) -> list[QuestionDraft]:
    title = topic.title
    return [
        QuestionDraft(
            f"What is the main purpose of {title}?",
            MULTIPLE_CHOICE,
            [
                "To improve application performance",
                "To enhance security features",
                "To simplify complex processes",
                "To standardize coding practices",
            ],
            "To simplify complex processes",
            f"The main purpose of {title} is to simplify complex processes, making development more efficient.",
        ),
        QuestionDraft(
            f"Is {title} commonly used in modern web development?",
            TRUE_FALSE,
            list(TRUE_FALSE_OPTIONS),
            "True",
            f"Yes, {title} is widely adopted in modern web development practices.",
        ),
        QuestionDraft(
            f"Which of the following is NOT associated with {title}?",
            MULTIPLE_CHOICE,
            ["Code reusability", "Automated testing", "Manual deployment processes", "Continuous integration"],
            "Manual deployment processes",
            f"{title} promotes automation and efficiency, so manual deployment processes "
            "are generally not associated with it.",
        ),
        QuestionDraft(
            f"{title} requires specialized hardware to implement.",
            TRUE_FALSE,
            list(TRUE_FALSE_OPTIONS),
            "False",
            f"{title} is a software/methodological approach that doesn't typically require specialized hardware.",
        ),
        QuestionDraft(
            f"Which of these companies is known for pioneering {title}?",
            MULTIPLE_CHOICE,
            ["Google", "Amazon", "Microsoft", "All of the above"],
            "All of the above",
            f"Google, Amazon, and Microsoft have all made significant contributions to the development "
            f"and adoption of {title}.",
        ),
    ]


def generate_quiz_for_topic(
    storage: Storage, topic_id: int, generator: QuizGenerator = template_questions
) -> tuple[Quiz, list[QuizQuestion]]:
    topic = storage.get_topic(topic_id)
    if not topic:
        raise NotFoundError(f"Topic not found: {topic_id}")

    quiz = storage.create_quiz(
        topic_id=topic_id,
        title=f"Quiz on {topic.title}",
        description=f"Test your knowledge on {topic.title}",
        difficulty=1,
        points_to_earn=10,
    )
    questions = [
        storage.create_quiz_question(
            quiz_id=quiz.id,
            question_text=d.question_text,
            question_type=d.question_type,
            options=d.options,
            correct_answer=d.correct_answer,
            explanation=d.explanation,
        )
        for d in generator(topic)
    ]
    logger.info("generated quiz %s with %d questions for topic %s", quiz.id, len(questions), topic_id)
    return quiz, questions


def points_for_score(points_to_earn: int, score: int, max_score: int) -> int:
    # half-up, not Python's banker's rounding
    exact = Decimal(points_to_earn) * Decimal(score) / Decimal(max_score)
    return int(exact.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def record_attempt(
    storage: Storage,
    user_id: int,
    quiz_id: int,
    score: int,
    max_score: int,
    answers: list[AnswerSubmission],
    now: datetime | None = None,
) -> tuple[UserQuizAttempt, list[UserQuizAnswer]]:
    if max_score <= 0:
        raise ValidationError("maxScore must be positive")
    if not 0 <= score <= max_score:
        raise ValidationError("score must be between 0 and maxScore")
    if not storage.get_user(user_id):
        raise NotFoundError("User not found")
    quiz = storage.get_quiz(quiz_id)
    if not quiz:
        raise NotFoundError("Quiz not found")

    now = now or datetime.now()
    attempt = storage.create_quiz_attempt(
        user_id=user_id, quiz_id=quiz_id, score=score, max_score=max_score, completed_at=now
    )

    saved = []
    for answer in answers:
        is_correct = answer.is_correct
        if is_correct is None:
            question = storage.get_question(answer.question_id)
            is_correct = bool(question) and question.correct_answer == answer.user_answer
        saved.append(storage.save_quiz_answer(
            attempt_id=attempt.id,
            question_id=answer.question_id,
            user_answer=answer.user_answer,
            is_correct=is_correct,
        ))

    awarded = points_for_score(quiz.points_to_earn, score, max_score)
    if awarded > 0:
        add_user_points(storage, user_id, awarded)

    check_quiz_achievements(storage, user_id, now)
    return attempt, saved
