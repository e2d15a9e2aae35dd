"""Scores one task submission against its answer key. No I/O, never raises."""
import logging
import math
from typing import Any, Dict, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from schemas import (
    AnyTask,
    ClozeSubmission,
    ClozeTask,
    DragDropSubmission,
    DragDropTask,
    EvaluationResult,
    MatchingSubmission,
    MatchingTask,
    MultiChoiceSubmission,
    MultiChoiceTask,
    OrderingSubmission,
    OrderingTask,
    ParaphraseTask,
    ParticipationTask,
    SingleChoiceSubmission,
    SingleChoiceTask,
    TrueFalseSubmission,
    TrueFalseTask,
    UnrecognizedTask,
)

logger = logging.getLogger(__name__)


def percentage(part: int, whole: int) -> int:
    """Whole-number percentage rounded half up; 0 when whole is 0."""
    if whole <= 0:
        return 0
    return int(math.floor(part * 100 / whole + 0.5))


def _result(task, is_correct, score, feedback, has_score=True):
    return EvaluationResult(
        task_id=str(task.id),
        type="" if task.type is None else str(task.type),
        is_correct=is_correct,
        score=max(0, min(score, 100)),
        feedback=feedback,
        has_score=has_score,
    )


def _binary(task, is_correct):
    return _result(task, is_correct, 100 if is_correct else 0, "Correct!" if is_correct else "Incorrect")


# ------------------ Scorers ------------------

def _score_single_choice(task: SingleChoiceTask, sub: SingleChoiceSubmission) -> EvaluationResult:
    return _binary(task, sub.selected_option == task.correct_option_index)


def _score_multi_choice(task: MultiChoiceTask, sub: MultiChoiceSubmission) -> EvaluationResult:
    # order-sensitive on purpose: [1, 0] does not match a [0, 1] key
    return _binary(task, sub.selected_options == task.correct_option_indices)


def _score_matching(task: MatchingTask, sub: MatchingSubmission) -> EvaluationResult:
    key = {(p.left_index, p.right_index) for p in task.correct_pairs}
    total = len(task.correct_pairs)
    # duplicates and extra pairs are counted as submitted, not penalized
    matched = sum(1 for pair in sub.pairs if tuple(pair) in key)
    return _result(
        task,
        matched == total,
        percentage(matched, total),
        f"{matched} of {total} pairs matched correctly",
    )


def _score_ordering(task: OrderingTask, sub: OrderingSubmission) -> EvaluationResult:
    return _binary(task, sub.order == task.correct_order)


def _score_cloze(task: ClozeTask, sub: ClozeSubmission) -> EvaluationResult:
    total = len(task.correct_answers)
    correct = 0
    for label, expected in task.correct_answers.items():
        given = sub.answers.get(label)
        if given is not None and given.lower() == expected.lower():
            correct += 1
    return _result(
        task,
        correct == total,
        percentage(correct, total),
        f"{correct} of {total} blanks filled correctly",
    )


def _score_true_false(task: TrueFalseTask, sub: TrueFalseSubmission) -> EvaluationResult:
    total = len(task.correct_flags)
    correct = sum(1 for given, expected in zip(sub.answers, task.correct_flags) if given == expected)
    return _result(
        task,
        correct == total,
        percentage(correct, total),
        f"{correct} of {total} statements judged correctly",
    )


def _score_drag_drop(task: DragDropTask, sub: DragDropSubmission) -> EvaluationResult:
    key_items = 0
    placed = 0
    for category, expected in task.correct_mapping.items():
        key_items += len(expected)
        expected_set = set(expected)
        placed += sum(1 for item in sub.mapping.get(category, []) if item in expected_set)
    return _result(
        task,
        placed == key_items,
        percentage(placed, key_items),
        f"{placed} of {key_items} items placed correctly",
    )


def _score_paraphrase(task: ParaphraseTask, payload: Dict[str, Any]) -> EvaluationResult:
    return _result(task, True, 100, "Paraphrase submitted for review", has_score=False)


def _score_participation(task: AnyTask, payload: Dict[str, Any]) -> EvaluationResult:
    return _result(task, True, 100, "Task completed", has_score=False)


# variant -> (submission model or None for raw payload, scorer)
SCORERS: Dict[Type[BaseModel], tuple] = {
    SingleChoiceTask: (SingleChoiceSubmission, _score_single_choice),
    MultiChoiceTask: (MultiChoiceSubmission, _score_multi_choice),
    MatchingTask: (MatchingSubmission, _score_matching),
    OrderingTask: (OrderingSubmission, _score_ordering),
    ClozeTask: (ClozeSubmission, _score_cloze),
    TrueFalseTask: (TrueFalseSubmission, _score_true_false),
    DragDropTask: (DragDropSubmission, _score_drag_drop),
    ParaphraseTask: (None, _score_paraphrase),
    ParticipationTask: (None, _score_participation),
    UnrecognizedTask: (None, _score_participation),
}


def evaluate(task: AnyTask, payload: Dict[str, Any]) -> EvaluationResult:
    entry = SCORERS.get(type(task))
    if entry is None:
        return _score_participation(task, payload)

    submission_model, scorer = entry
    if submission_model is None:
        return scorer(task, payload)

    try:
        submission = submission_model.model_validate(payload or {})
    except PydanticValidationError as e:
        logger.warning(
            "Malformed submission for task %s (%s): %s",
            task.id, task.type, e.errors(include_url=False),
        )
        return _result(task, False, 0, "Invalid submission format")
    return scorer(task, submission)
