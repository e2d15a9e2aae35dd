"""
Course read side and ratings.

Visitors (no user id) see course summaries; a signed-in user also gets the
stored progress for each course.
"""
import logging
import math
from typing import List, Optional

from bson import ObjectId
from pymongo import ReturnDocument

from catalog import to_obj_id
from database import get_documents, utcnow
from errors import NotFound
from lessons import require_paid_user
from progress import count_course_lessons
from schemas import CourseRating

logger = logging.getLogger(__name__)


def _find_course(db, course_id: str) -> dict:
    course = db["course"].find_one({"_id": to_obj_id(course_id, "course id")})
    if not course:
        raise NotFound("Course not found")
    return course


def _progress_view(progress: Optional[dict]) -> Optional[dict]:
    if not progress:
        return None
    return {
        "completedLessons": progress.get("completed_lessons", 0),
        "totalLessons": progress.get("total_lessons", 0),
        "progressPercentage": progress.get("progress_percentage", 0),
        "lastAccessed": progress.get("last_accessed"),
    }


def _user_progress(db, user_oid: ObjectId, course_oid: ObjectId) -> Optional[dict]:
    return _progress_view(
        db["userprogress"].find_one({"user_id": user_oid, "course_id": course_oid})
    )


def _course_summary(db, course: dict) -> dict:
    return {
        "id": str(course["_id"]),
        "title": course.get("title"),
        "description": course.get("description"),
        "rating": course.get("rating", 0),
        "ratingCount": course.get("rating_count", 0),
        "duration": course.get("duration"),
        "level": course.get("level"),
        "picture": course.get("picture"),
        "totalLessons": count_course_lessons(db, course["_id"]),
    }


def _outline_item(doc: dict) -> dict:
    return {
        "id": str(doc["_id"]),
        "title": doc.get("title"),
        "description": doc.get("description"),
        "order": doc.get("order"),
    }


def list_courses(db, user_id: Optional[str] = None) -> List[dict]:
    user_oid = to_obj_id(user_id, "user id") if user_id else None
    result = []
    for course in get_documents(db, "course"):
        item = _course_summary(db, course)
        if user_oid is not None:
            item["progress"] = _user_progress(db, user_oid, course["_id"])
        result.append(item)
    return result


def get_course(db, course_id: str, user_id: Optional[str] = None) -> dict:
    """Course summary with its units and their sections, both in order."""
    course = _find_course(db, course_id)
    result = _course_summary(db, course)

    units = []
    for unit in get_documents(db, "unit", {"course_id": course["_id"]}, sort_field="order"):
        item = _outline_item(unit)
        item["sections"] = [
            _outline_item(s)
            for s in get_documents(db, "section", {"unit_id": unit["_id"]}, sort_field="order")
        ]
        units.append(item)
    result["units"] = units

    if user_id:
        result["progress"] = _user_progress(db, to_obj_id(user_id, "user id"), course["_id"])
    return result


def get_course_progress(db, course_id: str, user_id: str) -> Optional[dict]:
    course = _find_course(db, course_id)
    return _user_progress(db, to_obj_id(user_id, "user id"), course["_id"])


# ------------------ Ratings ------------------

def _round_rating(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


def update_course_rating(db, course_id: ObjectId) -> dict:
    """Recompute the course's rating fields from every stored rating."""
    ratings = [r["rating"] for r in db["courserating"].find({"course_id": course_id}, {"rating": 1})]
    total = sum(ratings)
    average = total / len(ratings) if ratings else 0
    return db["course"].find_one_and_update(
        {"_id": course_id},
        {"$set": {
            "rating": _round_rating(average),
            "rating_count": len(ratings),
            "total_rating": total,
            "updated_at": utcnow(),
        }},
        return_document=ReturnDocument.AFTER,
    )


def rate_course(db, course_id: str, user_id: str, rating: float, review: Optional[str] = None) -> dict:
    user = require_paid_user(db, user_id)
    course = _find_course(db, course_id)

    entry = CourseRating(user_id=user["_id"], course_id=course["_id"], rating=rating, review=review)
    now = utcnow()
    db["courserating"].update_one(
        {"user_id": entry.user_id, "course_id": entry.course_id},
        {
            "$set": {"rating": entry.rating, "review": entry.review, "updated_at": now},
            "$setOnInsert": {"created_at": now},
        },
        upsert=True,
    )
    updated = update_course_rating(db, course["_id"])
    logger.info(
        "User %s rated course %s: %s (average %s over %s)",
        user_id, course_id, rating, updated.get("rating"), updated.get("rating_count"),
    )
    return {"message": "Course rated successfully"}
