"""Pairs a batch of task submissions with the lesson's stored tasks."""
from typing import List, Sequence, Tuple

from errors import ValidationError
from schemas import AnyTask, TaskSubmission


def pair_submissions(
    tasks: Sequence[AnyTask], submissions: Sequence[TaskSubmission]
) -> List[Tuple[AnyTask, TaskSubmission]]:
    """
    Match every task to the submission carrying its id.

    The batch must cover the lesson exactly: no partial grading, and no
    extra or missing submissions. Pairs come back in task order.
    """
    if len(submissions) != len(tasks):
        raise ValidationError(
            f"Invalid submission count: expected {len(tasks)}, got {len(submissions)}"
        )

    by_task_id = {}
    for item in submissions:
        by_task_id.setdefault(item.task_id, item)

    pairs = []
    for task in tasks:
        task_id = str(task.id)
        submission = by_task_id.get(task_id)
        if submission is None:
            raise ValidationError(f"Missing submission for task {task_id}")
        pairs.append((task, submission))
    return pairs
