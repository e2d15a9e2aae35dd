"""
Task catalog: turns stored task documents into typed task variants and
produces the public view of a task with its answer key removed.
"""
import logging
from typing import List

from bson import ObjectId
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import to_jsonable_python

from errors import ValidationError
from schemas import AnyTask, Task, UnrecognizedTask

logger = logging.getLogger(__name__)

_task_adapter = TypeAdapter(Task)


def to_obj_id(id_str, label: str = "id") -> ObjectId:
    if isinstance(id_str, ObjectId):
        return id_str
    try:
        return ObjectId(id_str)
    except Exception:
        raise ValidationError(f"Invalid {label}")


def parse_task(doc: dict) -> AnyTask:
    """Parse a `task` document. Never raises for bad task data."""
    data = {k: v for k, v in doc.items() if k != "_id"}
    data["id"] = doc.get("_id")
    try:
        return _task_adapter.validate_python(data)
    except PydanticValidationError as e:
        logger.warning(
            "Task %s (type %r) does not match a known variant, grading as ungraded: %s",
            doc.get("_id"), doc.get("type"), e.errors(include_url=False),
        )
        return UnrecognizedTask.model_construct(**data)


def public_task(task: AnyTask) -> dict:
    if isinstance(task, UnrecognizedTask):
        # built with model_construct, so fields may be missing or untyped
        fields = dict(task.__dict__)
        fields.update(task.model_extra or {})
        return {
            k: to_jsonable_python(v, fallback=str)
            for k, v in fields.items()
            if v is not None and not k.startswith("correct_") and k != "model_answer"
        }
    return task.model_dump(mode="json", exclude=set(task.ANSWER_KEY_FIELDS), exclude_none=True)


def load_lesson_tasks(db, lesson_id: ObjectId) -> List[AnyTask]:
    docs = db["task"].find({"lesson_id": lesson_id}).sort("order", 1)
    return [parse_task(doc) for doc in docs]
