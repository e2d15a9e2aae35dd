"""
Database Schemas for the Lesson Grading Backend

Each Pydantic model represents a collection in MongoDB. The collection name is the lowercase of the class name.
References between documents are stored as ObjectIds.
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Tuple, Union

from bson import ObjectId
from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    PlainSerializer,
    PlainValidator,
    StrictBool,
    StrictInt,
    Tag,
    WithJsonSchema,
)
from pydantic.alias_generators import to_camel


def _coerce_object_id(value: Any) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise ValueError(f"Invalid ObjectId: {value!r}")


PyObjectId = Annotated[
    ObjectId,
    PlainValidator(_coerce_object_id),
    PlainSerializer(str, when_used="json"),
    WithJsonSchema({"type": "string"}),
]

LessonKind = Literal["Video", "Text", "Quiz", "File"]
CourseLevel = Literal["Beginner", "Intermediate", "Advanced"]
ActivityType = Literal["started", "completed", "quiz_attempted", "tasks_attempted"]

# ------------------ Course structure ------------------

class Course(BaseModel):
    title: str
    description: str
    duration: str
    level: CourseLevel
    picture: Optional[str] = None
    rating: float = Field(0, ge=0, le=5, description="Average rating, one decimal")
    rating_count: int = 0
    total_rating: float = 0


class CourseRating(BaseModel):
    user_id: PyObjectId
    course_id: PyObjectId
    rating: float = Field(..., ge=1, le=5)
    review: Optional[str] = None


class Unit(BaseModel):
    course_id: PyObjectId
    title: str
    description: str
    order: int


class Section(BaseModel):
    unit_id: PyObjectId
    title: str
    description: str
    order: int


class Lesson(BaseModel):
    section_id: PyObjectId
    title: str
    description: str
    type: LessonKind
    order: int = Field(..., description="Lesson order in section")
    video_url: Optional[str] = None
    text_content: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None


class QuizQuestion(BaseModel):
    lesson_id: PyObjectId
    question: str
    options: List[str]
    correct_option_index: int = Field(..., ge=0, le=3, description="Index of the correct option")
    order: int


# ------------------ Users ------------------

class User(BaseModel):
    name: str
    email: str
    role: Literal["student", "admin"] = "student"
    is_paid: bool = False
    current_streak: int = 0
    last_activity_date: Optional[datetime] = None


class UserActivity(BaseModel):
    user_id: PyObjectId
    lesson_id: PyObjectId
    course_id: PyObjectId
    activity_type: ActivityType
    quiz_score: Optional[int] = None
    quiz_answers: Optional[List[int]] = None


class UserProgress(BaseModel):
    user_id: PyObjectId
    course_id: PyObjectId
    completed_lessons: int = 0
    total_lessons: int = 0
    progress_percentage: int = 0
    last_accessed: Optional[datetime] = None


# ------------------ Tasks ------------------

LEAD_IN = "Lead-in"
VIDEO = "Video"
TEXT = "Text"
FILE = "File"
LISTENING_MCQ = "Listening (Audio + MCQ)"
RECORDING = "Recording (Speaking Prompt)"
MATCHING = "Matching"
RANKING = "Ranking"
FILL_IN_BLANK = "Fill-in-the-Blank"
MULTIPLE_CHOICE = "Multiple Choice (Reading)"
TRUE_FALSE = "True/False"
SUMMARY_CLOZE = "Summary (Cloze)"
DRAG_DROP = "Drag-and-Drop (Categorization)"
PARAPHRASE = "Paraphrase (Typing Input)"
SENTENCE_REORDERING = "Sentence Reordering"
SPEAKING_PART2_CUE_CARD = "Speaking – Part 2 Cue Card"
SPEAKING_PART3_DISCUSSION = "Speaking – Part 3 Discussion"


class TaskBase(BaseModel):
    ANSWER_KEY_FIELDS: ClassVar[Tuple[str, ...]] = ()

    id: Optional[PyObjectId] = None
    lesson_id: PyObjectId
    order: int = Field(..., description="Task order in lesson")
    title: Optional[str] = None
    description: Optional[str] = None


class SingleChoiceTask(TaskBase):
    ANSWER_KEY_FIELDS: ClassVar[Tuple[str, ...]] = ("correct_option_index",)

    type: Literal["Listening (Audio + MCQ)", "Multiple Choice (Reading)"]
    audio_url: Optional[str] = None
    text_prompt: Optional[str] = None
    options: List[str] = Field(default_factory=list)
    correct_option_index: int = Field(..., ge=0)


class MultiChoiceTask(TaskBase):
    ANSWER_KEY_FIELDS: ClassVar[Tuple[str, ...]] = ("correct_option_indices",)

    type: Literal["Multiple Choice (Reading)"]
    text_prompt: Optional[str] = None
    options: List[str] = Field(default_factory=list)
    correct_option_indices: List[int]


class MatchPair(BaseModel):
    left: str
    right: str


class PairIndex(BaseModel):
    left_index: int
    right_index: int


class MatchingTask(TaskBase):
    ANSWER_KEY_FIELDS: ClassVar[Tuple[str, ...]] = ("correct_pairs",)

    type: Literal["Matching"]
    pairs: List[MatchPair] = Field(default_factory=list)
    correct_pairs: List[PairIndex]


class OrderingTask(TaskBase):
    ANSWER_KEY_FIELDS: ClassVar[Tuple[str, ...]] = ("correct_order",)

    type: Literal["Ranking", "Sentence Reordering"]
    items: List[str] = Field(default_factory=list)
    segments: List[str] = Field(default_factory=list)
    correct_order: List[int]


class ClozeTask(TaskBase):
    ANSWER_KEY_FIELDS: ClassVar[Tuple[str, ...]] = ("correct_answers",)

    type: Literal["Fill-in-the-Blank", "Summary (Cloze)"]
    text_template: Optional[str] = Field(None, description='Template with placeholders like "__1__"')
    word_bank: List[str] = Field(default_factory=list)
    correct_answers: Dict[str, str]


class TrueFalseTask(TaskBase):
    ANSWER_KEY_FIELDS: ClassVar[Tuple[str, ...]] = ("correct_flags",)

    type: Literal["True/False"]
    statements: List[str] = Field(default_factory=list)
    correct_flags: List[bool]


class DragDropTask(TaskBase):
    ANSWER_KEY_FIELDS: ClassVar[Tuple[str, ...]] = ("correct_mapping",)

    type: Literal["Drag-and-Drop (Categorization)"]
    categories: List[str] = Field(default_factory=list)
    items: List[str] = Field(default_factory=list)
    correct_mapping: Dict[str, List[str]]


class ParaphraseTask(TaskBase):
    ANSWER_KEY_FIELDS: ClassVar[Tuple[str, ...]] = ("model_answer",)

    type: Literal["Paraphrase (Typing Input)"]
    text_prompt: Optional[str] = None
    base_sentence: Optional[str] = None
    model_answer: Optional[str] = None


class ParticipationTask(TaskBase):
    type: Literal[
        "Lead-in",
        "Recording (Speaking Prompt)",
        "Speaking – Part 2 Cue Card",
        "Speaking – Part 3 Discussion",
        "Video",
        "Text",
        "File",
    ]
    text_prompt: Optional[str] = None
    image_url: Optional[str] = None
    audio_url: Optional[str] = None
    prompt_text: Optional[str] = None
    max_duration: Optional[int] = Field(None, description="Seconds")
    sample_answer_audio_url: Optional[str] = None
    cue_card_text: Optional[str] = None
    notes_hint: List[str] = Field(default_factory=list)
    question_text: Optional[str] = None
    key_points: List[str] = Field(default_factory=list)


class UnrecognizedTask(TaskBase):
    """A stored task whose type or fields match no known variant."""
    model_config = ConfigDict(extra="allow")

    type: str = ""


_TAG_BY_TYPE = {
    LISTENING_MCQ: "single_choice",
    MATCHING: "matching",
    RANKING: "ordering",
    SENTENCE_REORDERING: "ordering",
    FILL_IN_BLANK: "cloze",
    SUMMARY_CLOZE: "cloze",
    TRUE_FALSE: "true_false",
    DRAG_DROP: "drag_drop",
    PARAPHRASE: "paraphrase",
    LEAD_IN: "participation",
    RECORDING: "participation",
    SPEAKING_PART2_CUE_CARD: "participation",
    SPEAKING_PART3_DISCUSSION: "participation",
    VIDEO: "participation",
    TEXT: "participation",
    FILE: "participation",
}


def _task_tag(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        task_type = value.get("type")
        multi_key = value.get("correct_option_indices")
    else:
        task_type = getattr(value, "type", None)
        multi_key = getattr(value, "correct_option_indices", None)
    if task_type == MULTIPLE_CHOICE:
        # Reading MCQs are multi-select when the key is a list of indices
        return "multi_choice" if multi_key is not None else "single_choice"
    return _TAG_BY_TYPE.get(task_type)


Task = Annotated[
    Union[
        Annotated[SingleChoiceTask, Tag("single_choice")],
        Annotated[MultiChoiceTask, Tag("multi_choice")],
        Annotated[MatchingTask, Tag("matching")],
        Annotated[OrderingTask, Tag("ordering")],
        Annotated[ClozeTask, Tag("cloze")],
        Annotated[TrueFalseTask, Tag("true_false")],
        Annotated[DragDropTask, Tag("drag_drop")],
        Annotated[ParaphraseTask, Tag("paraphrase")],
        Annotated[ParticipationTask, Tag("participation")],
    ],
    Discriminator(_task_tag),
]

TASK_VARIANTS = (
    SingleChoiceTask,
    MultiChoiceTask,
    MatchingTask,
    OrderingTask,
    ClozeTask,
    TrueFalseTask,
    DragDropTask,
    ParaphraseTask,
    ParticipationTask,
)

AnyTask = Union[
    SingleChoiceTask,
    MultiChoiceTask,
    MatchingTask,
    OrderingTask,
    ClozeTask,
    TrueFalseTask,
    DragDropTask,
    ParaphraseTask,
    ParticipationTask,
    UnrecognizedTask,
]


# ------------------ Submission payloads ------------------

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskSubmission(CamelModel):
    task_id: str = Field(..., min_length=1)
    submission: Dict[str, Any] = Field(..., description="Task-specific submission data")


class TaskBatchSubmission(CamelModel):
    submissions: List[TaskSubmission]


class QuizAnswers(CamelModel):
    answers: List[Annotated[int, Field(ge=0, le=3)]] = Field(
        ..., description="Selected option index for each question, in question order"
    )


class RateCourse(CamelModel):
    rating: float = Field(..., ge=1, le=5)
    review: Optional[str] = None


class SingleChoiceSubmission(CamelModel):
    selected_option: StrictInt


class MultiChoiceSubmission(CamelModel):
    selected_options: List[StrictInt]


class MatchingSubmission(CamelModel):
    pairs: List[Tuple[StrictInt, StrictInt]] = Field(..., description="Array of [leftIndex, rightIndex] pairs")


class OrderingSubmission(CamelModel):
    order: List[StrictInt]


class ClozeSubmission(CamelModel):
    answers: Dict[str, str] = Field(..., description="Map of position -> word")


class TrueFalseSubmission(CamelModel):
    answers: List[StrictBool]


class DragDropSubmission(CamelModel):
    mapping: Dict[str, List[str]] = Field(..., description="Map of category -> items")


# ------------------ Results ------------------

class EvaluationResult(CamelModel):
    task_id: str
    type: str
    is_correct: bool
    score: int = Field(..., ge=0, le=100)
    feedback: str
    has_score: bool = True


class TaskBatchResult(CamelModel):
    overall_score: Optional[int] = None
    correct_answers: int
    total_questions: int
    results: List[EvaluationResult] = Field(default_factory=list)
    message: str


class QuizQuestionResult(CamelModel):
    question_id: str
    question: str
    options: List[str]
    user_answer: Optional[int] = None
    correct_answer: int
    is_correct: bool


class QuizResult(CamelModel):
    score: int
    correct_answers: int
    total_questions: int
    results: List[QuizQuestionResult] = Field(default_factory=list)
    message: str
