"""
Lesson operations: reading content, completing lessons and grading quiz
and task submissions. Every function receives the database and the id of
the authenticated user explicitly.
"""
import logging
from typing import List, Optional

from bson import ObjectId

from aggregation import aggregate, score_quiz
from catalog import load_lesson_tasks, public_task, to_obj_id
from database import get_documents
from errors import Forbidden, NotFound
from evaluation import evaluate
from progress import record_activity, update_streak
from schemas import QuizResult, TaskBatchResult, TaskSubmission
from submissions import pair_submissions

logger = logging.getLogger(__name__)


def require_paid_user(db, user_id: str) -> dict:
    user = db["user"].find_one({"_id": to_obj_id(user_id, "user id")})
    if not user or not user.get("is_paid"):
        raise Forbidden("Payment required to access lessons")
    return user


def _find_lesson(db, lesson_id: str) -> Optional[dict]:
    return db["lesson"].find_one({"_id": to_obj_id(lesson_id, "lesson id")})


def _quiz_questions(db, lesson_id: ObjectId) -> List[dict]:
    return get_documents(db, "quizquestion", {"lesson_id": lesson_id}, sort_field="order")


def _serialize_lesson(lesson: dict) -> dict:
    doc = dict(lesson)
    doc["id"] = str(doc.pop("_id"))
    doc["section_id"] = str(doc["section_id"])
    return doc


def get_lesson(db, lesson_id: str, user_id: str) -> dict:
    """Lesson content for a paying user, with answer keys left out."""
    require_paid_user(db, user_id)
    lesson = _find_lesson(db, lesson_id)
    if not lesson:
        raise NotFound("Lesson not found")

    result = _serialize_lesson(lesson)
    if lesson.get("type") == "Quiz":
        result["questions"] = [
            {
                "id": str(q["_id"]),
                "question": q["question"],
                "options": q.get("options", []),
                "order": q.get("order"),
            }
            for q in _quiz_questions(db, lesson["_id"])
        ]
    else:
        result["tasks"] = [public_task(t) for t in load_lesson_tasks(db, lesson["_id"])]
    return result


def complete_lesson(db, lesson_id: str, user_id: str) -> dict:
    user = require_paid_user(db, user_id)
    lesson = _find_lesson(db, lesson_id)
    if not lesson:
        raise NotFound("Lesson not found")

    record_activity(db, user["_id"], lesson, "completed")
    update_streak(db, user["_id"])
    return {"message": "Lesson completed successfully"}


def submit_quiz(db, lesson_id: str, user_id: str, answers: List[int]) -> QuizResult:
    user = require_paid_user(db, user_id)
    lesson = _find_lesson(db, lesson_id)
    if not lesson or lesson.get("type") != "Quiz":
        raise NotFound("Quiz not found")

    result = score_quiz(_quiz_questions(db, lesson["_id"]), answers)
    record_activity(
        db, user["_id"], lesson, "quiz_attempted",
        quiz_score=result.score, quiz_answers=list(answers),
    )
    return result


def submit_tasks(db, lesson_id: str, user_id: str, submissions: List[TaskSubmission]) -> TaskBatchResult:
    """Grade a full batch of task submissions for one lesson."""
    user = require_paid_user(db, user_id)
    lesson = _find_lesson(db, lesson_id)
    if not lesson:
        raise NotFound("Lesson not found")

    tasks = load_lesson_tasks(db, lesson["_id"])
    pairs = pair_submissions(tasks, submissions)
    results = [evaluate(task, item.submission) for task, item in pairs]
    batch = aggregate(results)
    logger.info(
        "Lesson %s graded for user %s: %s/%s gradable tasks correct",
        lesson_id, user_id, batch.correct_answers, batch.total_questions,
    )

    record_activity(db, user["_id"], lesson, "tasks_attempted", quiz_score=batch.overall_score)
    return batch
