"""
Progress & streak updates run after every graded or completed activity.

Course progress is always recomputed from the full activity log instead of
being incremented, so replaying the same history gives the same numbers.
"""
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

from bson import ObjectId
from pymongo import ReturnDocument

from database import create_document, utcnow
from errors import IntegrityError
from evaluation import percentage
from schemas import UserActivity

logger = logging.getLogger(__name__)

# activity types that count as a finished lesson
COMPLETION_ACTIVITIES = ("completed", "quiz_attempted")

# fixed set of lock stripes; a (user, course) pair always maps to the same one
PROGRESS_LOCK_STRIPES = 64
_progress_locks = [threading.Lock() for _ in range(PROGRESS_LOCK_STRIPES)]


def _progress_lock(user_id, course_id):
    return _progress_locks[hash((user_id, course_id)) % PROGRESS_LOCK_STRIPES]


# ------------------ Progress ------------------

def resolve_course_id(db, lesson: dict) -> ObjectId:
    """Walk lesson -> section -> unit -> course."""
    section = db["section"].find_one({"_id": lesson.get("section_id")})
    if not section:
        raise IntegrityError(f"Section not found for lesson {lesson.get('_id')}")
    unit = db["unit"].find_one({"_id": section.get("unit_id")})
    if not unit:
        raise IntegrityError(f"Unit not found for section {section['_id']}")
    course = db["course"].find_one({"_id": unit.get("course_id")}, {"_id": 1})
    if not course:
        raise IntegrityError(f"Course not found for unit {unit['_id']}")
    return course["_id"]


def count_course_lessons(db, course_id: ObjectId) -> int:
    unit_ids = [u["_id"] for u in db["unit"].find({"course_id": course_id}, {"_id": 1})]
    if not unit_ids:
        return 0
    section_ids = [s["_id"] for s in db["section"].find({"unit_id": {"$in": unit_ids}}, {"_id": 1})]
    if not section_ids:
        return 0
    return db["lesson"].count_documents({"section_id": {"$in": section_ids}})


def recompute_progress(db, user_id: ObjectId, course_id: ObjectId, now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    with _progress_lock(user_id, course_id):
        completed = db["useractivity"].count_documents({
            "user_id": user_id,
            "course_id": course_id,
            "activity_type": {"$in": list(COMPLETION_ACTIVITIES)},
        })
        total = count_course_lessons(db, course_id)
        progress_percentage = percentage(completed, total)

        progress = db["userprogress"].find_one_and_update(
            {"user_id": user_id, "course_id": course_id},
            {
                "$set": {
                    "completed_lessons": completed,
                    "total_lessons": total,
                    "progress_percentage": progress_percentage,
                    "last_accessed": now,
                    "updated_at": now,
                },
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
    logger.info(
        "Progress for user %s in course %s: %s/%s (%s%%)",
        user_id, course_id, completed, total, progress_percentage,
    )
    return progress


def record_activity(
    db,
    user_id: ObjectId,
    lesson: dict,
    activity_type: str,
    quiz_score: Optional[int] = None,
    quiz_answers: Optional[list] = None,
) -> dict:
    """Append one activity record and refresh course progress."""
    course_id = resolve_course_id(db, lesson)
    activity = UserActivity(
        user_id=user_id,
        lesson_id=lesson["_id"],
        course_id=course_id,
        activity_type=activity_type,
        quiz_score=quiz_score,
        quiz_answers=quiz_answers,
    )
    activity_id = create_document(db, "useractivity", activity)
    logger.info("Recorded %s activity %s for user %s", activity_type, activity_id, user_id)
    return recompute_progress(db, user_id, course_id)


# ------------------ Streak ------------------

def _as_utc_date(value):
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).date()


def update_streak(db, user_id: ObjectId, now: Optional[datetime] = None) -> Optional[int]:
    """At most one increment per UTC calendar day. None if the user is missing."""
    now = now or utcnow()
    user = db["user"].find_one({"_id": user_id})
    if not user:
        return None

    today = _as_utc_date(now)
    last = user.get("last_activity_date")
    current = user.get("current_streak") or 0

    if last is None:
        streak = 1
    else:
        last_day = _as_utc_date(last)
        if last_day == today:
            return current
        if last_day == today - timedelta(days=1):
            streak = current + 1
        else:
            streak = 1

    db["user"].update_one(
        {"_id": user_id},
        {"$set": {"current_streak": streak, "last_activity_date": now, "updated_at": now}},
    )
    return streak
