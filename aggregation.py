"""Combines per-item results into lesson-level scores."""
from typing import List, Optional, Sequence

from errors import ValidationError
from evaluation import percentage
from schemas import EvaluationResult, QuizQuestionResult, QuizResult, TaskBatchResult


def score_message(score: int, correct: int, total: int) -> str:
    return f"You scored {score}% ({correct}/{total})"


def aggregate(results: List[EvaluationResult]) -> TaskBatchResult:
    """Scores gradable results only; None when nothing was gradable."""
    graded = [r for r in results if r.has_score]
    total = len(graded)
    correct = sum(1 for r in graded if r.is_correct)

    overall: Optional[int] = percentage(correct, total) if total > 0 else None
    message = (
        score_message(overall, correct, total)
        if overall is not None
        else "Tasks submitted successfully"
    )
    return TaskBatchResult(
        overall_score=overall,
        correct_answers=correct,
        total_questions=total,
        results=results,
        message=message,
    )


def score_quiz(questions: Sequence[dict], answers: Sequence[int]) -> QuizResult:
    """Compare answers to `quizquestion` documents position by position."""
    if len(answers) != len(questions):
        raise ValidationError("Invalid number of answers provided")

    correct = 0
    rows = []
    for question, answer in zip(questions, answers):
        is_correct = answer == question["correct_option_index"]
        if is_correct:
            correct += 1
        rows.append(QuizQuestionResult(
            question_id=str(question["_id"]),
            question=question["question"],
            options=question.get("options", []),
            user_answer=answer,
            correct_answer=question["correct_option_index"],
            is_correct=is_correct,
        ))

    score = percentage(correct, len(questions))
    return QuizResult(
        score=score,
        correct_answers=correct,
        total_questions=len(questions),
        results=rows,
        message=score_message(score, correct, len(questions)),
    )
