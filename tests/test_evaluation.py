import pytest

from evaluation import SCORERS, evaluate, percentage
from schemas import TASK_VARIANTS, UnrecognizedTask


def test_every_task_variant_has_a_scorer():
    for variant in TASK_VARIANTS + (UnrecognizedTask,):
        assert variant in SCORERS, variant.__name__


def test_percentage_rounds_half_up():
    assert percentage(1, 8) == 13
    assert percentage(2, 4) == 50
    assert percentage(1, 3) == 33
    assert percentage(3, 0) == 0


@pytest.mark.parametrize("selected,correct", [(1, True), (0, False), (3, False)])
def test_listening_mcq_is_binary(make_task, selected, correct):
    task = make_task(type="Listening (Audio + MCQ)", options=["a", "b", "c", "d"], correct_option_index=1)
    result = evaluate(task, {"selectedOption": selected})
    assert result.is_correct is correct
    assert result.score == (100 if correct else 0)
    assert result.has_score
    assert result.task_id == str(task.id)


def test_reading_mcq_with_single_key(make_task):
    task = make_task(type="Multiple Choice (Reading)", options=["a", "b"], correct_option_index=0)
    assert evaluate(task, {"type": "Multiple Choice", "selectedOption": 0}).is_correct


def test_multi_select_is_order_sensitive(make_task):
    task = make_task(type="Multiple Choice (Reading)", options=["a", "b", "c"], correct_option_indices=[0, 1])
    assert evaluate(task, {"selectedOptions": [0, 1]}).score == 100
    swapped = evaluate(task, {"selectedOptions": [1, 0]})
    assert not swapped.is_correct
    assert swapped.score == 0


def test_string_option_index_is_not_coerced(make_task):
    task = make_task(type="Listening (Audio + MCQ)", options=["a", "b"], correct_option_index=1)
    result = evaluate(task, {"selectedOption": "1"})
    assert not result.is_correct
    assert result.has_score
    assert result.feedback == "Invalid submission format"


def test_matching_partial_credit(make_task):
    task = make_task(
        type="Matching",
        correct_pairs=[
            {"left_index": 0, "right_index": 1},
            {"left_index": 1, "right_index": 2},
            {"left_index": 2, "right_index": 0},
            {"left_index": 3, "right_index": 3},
        ],
    )
    result = evaluate(task, {"pairs": [[0, 1], [1, 2], [2, 2]]})
    assert result.score == 50
    assert not result.is_correct


def test_matching_duplicates_are_counted_but_capped(make_task):
    task = make_task(
        type="Matching",
        correct_pairs=[{"left_index": 0, "right_index": 0}, {"left_index": 1, "right_index": 1}],
    )
    # a repeated correct pair counts twice
    result = evaluate(task, {"pairs": [[0, 0], [0, 0]]})
    assert result.is_correct
    assert result.score == 100

    tripled = evaluate(task, {"pairs": [[0, 0], [0, 0], [1, 1]]})
    assert tripled.score == 100
    assert not tripled.is_correct


def test_matching_all_pairs(make_task):
    task = make_task(
        type="Matching",
        correct_pairs=[{"left_index": 0, "right_index": 1}, {"left_index": 1, "right_index": 0}],
    )
    result = evaluate(task, {"pairs": [[1, 0], [0, 1]]})
    assert result.is_correct
    assert result.score == 100


@pytest.mark.parametrize("task_type", ["Ranking", "Sentence Reordering"])
def test_ordering_requires_exact_sequence(make_task, task_type):
    task = make_task(type=task_type, items=["a", "b", "c", "d"], correct_order=[2, 1, 0, 3])
    assert evaluate(task, {"order": [2, 1, 0, 3]}).score == 100
    assert evaluate(task, {"order": [2, 1, 0]}).score == 0
    assert evaluate(task, {"order": [2, 1, 3, 0]}).is_correct is False


@pytest.mark.parametrize("task_type", ["Fill-in-the-Blank", "Summary (Cloze)"])
def test_cloze_is_case_insensitive(make_task, task_type):
    task = make_task(type=task_type, correct_answers={"1": "weather", "2": "sunny"})
    assert evaluate(task, {"answers": {"1": "Weather", "2": "SUNNY"}}).is_correct
    half = evaluate(task, {"answers": {"1": "Weather"}})
    assert half.score == 50
    assert not half.is_correct


def test_cloze_does_not_trim(make_task):
    task = make_task(type="Fill-in-the-Blank", correct_answers={"1": "weather"})
    assert not evaluate(task, {"answers": {"1": " weather"}}).is_correct


def test_cloze_without_blanks_scores_zero(make_task):
    task = make_task(type="Fill-in-the-Blank", correct_answers={})
    result = evaluate(task, {"answers": {}})
    assert result.score == 0
    assert result.is_correct


def test_true_false_short_submission_gets_partial_credit(make_task):
    task = make_task(type="True/False", statements=["a", "b", "c", "d"], correct_flags=[True, False, True, True])
    assert evaluate(task, {"answers": [True, False, True, True]}).score == 100
    short = evaluate(task, {"answers": [True, False]})
    assert short.score == 50
    assert not short.is_correct


def test_drag_drop_counts_items_in_key_categories(make_task):
    task = make_task(
        type="Drag-and-Drop (Categorization)",
        categories=["Fruit", "Vegetable"],
        correct_mapping={"Fruit": ["apple", "pear"], "Vegetable": ["carrot", "leek"]},
    )
    result = evaluate(task, {"mapping": {
        "Fruit": ["apple", "carrot"],
        "Vegetable": ["leek"],
        "Other": ["pear"],
    }})
    assert result.score == 50
    assert not result.is_correct

    full = evaluate(task, {"mapping": {"Fruit": ["pear", "apple"], "Vegetable": ["carrot", "leek"]}})
    assert full.is_correct
    assert full.score == 100


def test_paraphrase_is_sent_for_review(make_task):
    task = make_task(type="Paraphrase (Typing Input)", base_sentence="It is cold.", model_answer="The weather is chilly.")
    result = evaluate(task, {"answer": "anything"})
    assert result.is_correct
    assert result.score == 100
    assert not result.has_score
    assert "submitted for review" in result.feedback


@pytest.mark.parametrize("task_type", [
    "Lead-in",
    "Recording (Speaking Prompt)",
    "Speaking – Part 2 Cue Card",
    "Speaking – Part 3 Discussion",
])
def test_participation_tasks_are_ungraded(make_task, task_type):
    result = evaluate(make_task(type=task_type), {})
    assert result.is_correct
    assert result.score == 100
    assert not result.has_score
    assert result.feedback == "Task completed"


def test_unknown_type_falls_back_to_ungraded(make_task):
    task = make_task(type="Crossword", grid=[[1, 2]])
    assert isinstance(task, UnrecognizedTask)
    result = evaluate(task, {"whatever": 1})
    assert not result.has_score
    assert result.type == "Crossword"


def test_task_missing_its_key_falls_back_to_ungraded(make_task):
    task = make_task(type="True/False", statements=["a"])
    assert isinstance(task, UnrecognizedTask)
    assert evaluate(task, {"answers": [True]}).has_score is False


def test_malformed_submission_is_graded_wrong(make_task):
    task = make_task(type="True/False", correct_flags=[True])
    result = evaluate(task, {"answers": "yes"})
    assert result.has_score
    assert not result.is_correct
    assert result.score == 0


def test_binary_types_score_100_only_when_correct(make_task):
    tasks_and_payloads = [
        (make_task(type="Listening (Audio + MCQ)", correct_option_index=2), [{"selectedOption": 2}, {"selectedOption": 0}]),
        (make_task(type="Ranking", correct_order=[1, 0]), [{"order": [1, 0]}, {"order": [0, 1]}]),
        (make_task(type="Sentence Reordering", correct_order=[0, 2, 1]), [{"order": [0, 2, 1]}, {"order": []}]),
    ]
    for task, payloads in tasks_and_payloads:
        for payload in payloads:
            result = evaluate(task, payload)
            assert 0 <= result.score <= 100
            assert (result.score == 100) == result.is_correct
