import mongomock
import pytest
from bson import ObjectId

from catalog import parse_task


@pytest.fixture()
def db():
    return mongomock.MongoClient()["lessons_test"]


@pytest.fixture()
def make_task():
    def _make(**fields):
        doc = {"_id": ObjectId(), "lesson_id": ObjectId(), "order": 1}
        doc.update(fields)
        return parse_task(doc)
    return _make


@pytest.fixture()
def course_tree(db):
    """One course, one unit, one section holding a quiz lesson and a task lesson."""
    course_id = db["course"].insert_one({
        "title": "IELTS Foundations", "description": "d", "duration": "4 weeks", "level": "Beginner",
    }).inserted_id
    unit_id = db["unit"].insert_one({
        "course_id": course_id, "title": "Unit 1", "description": "d", "order": 1,
    }).inserted_id
    section_id = db["section"].insert_one({
        "unit_id": unit_id, "title": "Section 1", "description": "d", "order": 1,
    }).inserted_id
    quiz_lesson_id = db["lesson"].insert_one({
        "section_id": section_id, "title": "Quiz", "description": "d", "type": "Quiz", "order": 1,
    }).inserted_id
    task_lesson_id = db["lesson"].insert_one({
        "section_id": section_id, "title": "Tasks", "description": "d", "type": "Text", "order": 2,
    }).inserted_id
    user_id = db["user"].insert_one({
        "name": "Student", "email": "student@example.com", "is_paid": True, "current_streak": 0,
    }).inserted_id
    return {
        "course_id": course_id,
        "unit_id": unit_id,
        "section_id": section_id,
        "quiz_lesson_id": quiz_lesson_id,
        "task_lesson_id": task_lesson_id,
        "user_id": user_id,
    }
