import logging
import os
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import courses
import lessons
from catalog import to_obj_id
from database import create_document, ensure_indexes, get_db
from errors import ServiceError
from schemas import (
    Course,
    Lesson,
    QuizAnswers,
    QuizQuestion,
    RateCourse,
    Section,
    TaskBatchSubmission,
    Unit,
    User,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Lesson Grading API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
def handle_service_error(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# Utilities
def database(db=Depends(get_db)):
    if db is None:
        raise HTTPException(status_code=503, detail="Database not available")
    return db


def current_user_id(x_user_id: str = Header(..., description="Authenticated user id set by the auth layer")) -> str:
    return x_user_id


def optional_user_id(x_user_id: Optional[str] = Header(None, description="Set for signed-in users")) -> Optional[str]:
    return x_user_id


@app.get("/")
def root():
    return {"message": "Lesson Grading API is running"}


@app.get("/test")
def test_database(db=Depends(get_db)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": None,
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }

    try:
        if db is not None:
            response["database"] = "✅ Available"
            response["database_url"] = "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set"
            response["database_name"] = getattr(db, 'name', None) or "Unknown"
            response["connection_status"] = "Connected"
            try:
                collections = db.list_collection_names()
                response["collections"] = collections[:10]
                response["database"] = "✅ Connected & Working"
            except Exception as e:
                logger.error("Listing collections failed: %s", e)
                response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"
        else:
            response["database"] = "⚠️  Available but not initialized"
    except Exception as e:
        logger.error("Database diagnostics failed: %s", e)
        response["database"] = f"❌ Error: {str(e)[:50]}"

    return response


# ------------------ Lessons ------------------
@app.get("/api/lessons/{lesson_id}", response_model=dict)
def get_lesson(lesson_id: str, db=Depends(database), user_id: str = Depends(current_user_id)):
    return lessons.get_lesson(db, lesson_id, user_id)


@app.post("/api/lessons/{lesson_id}/complete", response_model=dict)
def complete_lesson(lesson_id: str, db=Depends(database), user_id: str = Depends(current_user_id)):
    return lessons.complete_lesson(db, lesson_id, user_id)


# ------------------ Grading ------------------
@app.post("/api/lessons/{lesson_id}/quiz", response_model=dict)
def submit_quiz(
    lesson_id: str,
    payload: QuizAnswers,
    db=Depends(database),
    user_id: str = Depends(current_user_id),
):
    result = lessons.submit_quiz(db, lesson_id, user_id, payload.answers)
    return result.model_dump(by_alias=True)


@app.post("/api/lessons/{lesson_id}/tasks/submit", response_model=dict)
def submit_tasks(
    lesson_id: str,
    payload: TaskBatchSubmission,
    db=Depends(database),
    user_id: str = Depends(current_user_id),
):
    result = lessons.submit_tasks(db, lesson_id, user_id, payload.submissions)
    return result.model_dump(by_alias=True)


# ------------------ Courses ------------------
@app.get("/api/courses", response_model=List[dict])
def list_courses(db=Depends(database), user_id: Optional[str] = Depends(optional_user_id)):
    return courses.list_courses(db, user_id)


@app.get("/api/courses/{course_id}", response_model=dict)
def get_course(course_id: str, db=Depends(database), user_id: Optional[str] = Depends(optional_user_id)):
    return courses.get_course(db, course_id, user_id)


@app.get("/api/courses/{course_id}/progress", response_model=Optional[dict])
def course_progress(course_id: str, db=Depends(database), user_id: str = Depends(current_user_id)):
    return courses.get_course_progress(db, course_id, user_id)


@app.post("/api/courses/{course_id}/rate", response_model=dict)
def rate_course(
    course_id: str,
    payload: RateCourse,
    db=Depends(database),
    user_id: str = Depends(current_user_id),
):
    return courses.rate_course(db, course_id, user_id, payload.rating, payload.review)


# Seed endpoint to create a sample course for demo
@app.post("/api/seed", response_model=dict)
def seed_sample(db=Depends(database)):
    ensure_indexes(db)
    course_id = create_document(db, "course", Course(
        title="IELTS Foundations",
        description="Core listening and reading skills with short graded practice.",
        duration="4 weeks",
        level="Beginner",
    ))
    unit_id = create_document(db, "unit", Unit(
        course_id=course_id, title="Weather and Climate", description="Vocabulary and listening", order=1,
    ))
    section_id = create_document(db, "section", Section(
        unit_id=unit_id, title="Warm-up", description="Check what you already know", order=1,
    ))

    quiz_id = create_document(db, "lesson", Lesson(
        section_id=section_id, title="Vocabulary Check", description="Two quick questions", type="Quiz", order=1,
    ))
    for i, (question, options, correct) in enumerate([
        ("Which word describes long-term weather patterns?", ["Weather", "Climate", "Forecast", "Season"], 1),
        ("Rain, snow and hail are all forms of...", ["Humidity", "Pressure", "Precipitation", "Wind"], 2),
    ]):
        create_document(db, "quizquestion", QuizQuestion(
            lesson_id=quiz_id, question=question, options=options, correct_option_index=correct, order=i + 1,
        ))

    practice_id = create_document(db, "lesson", Lesson(
        section_id=section_id, title="Practice Tasks", description="Interactive exercises", type="Text", order=2,
    ))
    for task in [
        {"type": "Lead-in", "order": 1, "title": "Think About It",
         "text_prompt": "What is the weather like where you live?"},
        {"type": "Listening (Audio + MCQ)", "order": 2, "title": "Airport Announcement",
         "audio_url": "https://www.soundhelix.com/examples/mp3/SoundHelix-Song-1.mp3",
         "options": ["Gate 12", "Gate 15", "Gate 18", "Gate 22"], "correct_option_index": 1},
        {"type": "Matching", "order": 3, "title": "Match Definitions",
         "pairs": [{"left": "Climate", "right": "Weather patterns over time"},
                   {"left": "Weather", "right": "Current atmospheric conditions"}],
         "correct_pairs": [{"left_index": 0, "right_index": 0}, {"left_index": 1, "right_index": 1}]},
        {"type": "Fill-in-the-Blank", "order": 4, "title": "Complete the Sentence",
         "text_template": "The __1__ is very __2__ today.",
         "word_bank": ["weather", "sunny", "climate", "temperature"],
         "correct_answers": {"1": "weather", "2": "sunny"}},
        {"type": "True/False", "order": 5, "title": "Facts About Rain",
         "statements": ["Drizzle is heavy rain.", "Hail is frozen precipitation."],
         "correct_flags": [False, True]},
    ]:
        task["lesson_id"] = to_obj_id(practice_id)
        create_document(db, "task", task)

    user_id = create_document(db, "user", User(name="Demo Student", email="demo@example.com", is_paid=True))
    return {"course_id": course_id, "quiz_lesson_id": quiz_id, "task_lesson_id": practice_id, "user_id": user_id}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
