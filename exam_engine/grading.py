"""
Grading engine.

One grader per question variant, dispatched through GRADERS. Graders never
raise: an absent or unparseable submission is graded as incorrect.
"""
import json
import logging
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from exam_engine import schemas

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


# -------------------------------------------------
# Submission decoding
# -------------------------------------------------
def parse_int(value: Any) -> Optional[int]:
    """Lenient integer parse: 2, "2", " 2 ", "2)" -> 2. Anything else -> None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        m = _LEADING_INT.match(value)
        return int(m.group(1)) if m else None
    return None


def _maybe_json(value: Any) -> Any:
    """Stringified arrays / objects are decoded; anything else is returned as-is."""
    if isinstance(value, str):
        s = value.strip()
        if s[:1] in ("[", "{"):
            try:
                return json.loads(s)
            except (json.JSONDecodeError, RecursionError):
                return None
    return value


def parse_int_list(value: Any) -> List[int]:
    """Order-preserving, de-duplicated list of the integers found in the submission."""
    value = _maybe_json(value)
    if value is None or value == "":
        return []
    if not isinstance(value, (list, tuple, set)):
        value = [value]
    result: List[int] = []
    for item in value:
        n = parse_int(item)
        if n is not None and n not in result:
            result.append(n)
    return result


def parse_int_mapping(value: Any) -> Dict[int, int]:
    """{"0": "2", 1: 0} -> {0: 2, 1: 0}; entries with a non-integer key or value are dropped."""
    value = _maybe_json(value)
    if isinstance(value, (list, tuple)):
        value = dict(enumerate(value))
    if not isinstance(value, Mapping):
        return {}
    result: Dict[int, int] = {}
    for k, v in value.items():
        key, target = parse_int(k), parse_int(v)
        if key is not None and target is not None:
            result[key] = target
    return result


def as_text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return ""
    return str(value)


def texts_match(user_text: Any, correct_text: Optional[str]) -> bool:
    """Case-insensitive, trimmed equality; a missing correct text never matches."""
    if not correct_text or not correct_text.strip():
        return False
    user = as_text(user_text).strip().lower()
    return bool(user) and user == correct_text.strip().lower()


def _parse_bool(value: Any) -> Optional[bool]:
    if value is None or value == "":
        return None
    if value is True or value == "true":
        return True
    return False


# -------------------------------------------------
# Per-variant graders
# -------------------------------------------------
def _grade_multiple_choice(q: schemas.MultipleChoiceQuestion, raw: Any) -> schemas.MultipleChoiceResult:
    user_index = parse_int(raw)
    is_correct = (
        user_index is not None
        and q.correct_option_index is not None
        and user_index == q.correct_option_index
    )
    return schemas.MultipleChoiceResult(
        question_text=q.question_text,
        is_correct=is_correct,
        options=list(q.options),
        correct_option_index=q.correct_option_index,
        user_answer=user_index,
    )


def _grade_multiple_answer(q: schemas.MultipleAnswerQuestion, raw: Any) -> schemas.MultipleAnswerResult:
    user_answers = parse_int_list(raw)
    correct = q.correct_answers or []
    is_correct = q.correct_answers is not None and set(user_answers) == set(correct)
    return schemas.MultipleAnswerResult(
        question_text=q.question_text,
        is_correct=is_correct,
        options=list(q.options),
        correct_answers=list(correct),
        user_answers=user_answers,
    )


def _grade_fill_blank(q: schemas.FillBlankQuestion, raw: Any) -> schemas.FillBlankResult:
    return schemas.FillBlankResult(
        question_text=q.question_text,
        is_correct=texts_match(raw, q.correct_text),
        correct_text=q.correct_text,
        user_answer=as_text(raw),
    )


def _grade_descriptive(q: schemas.DescriptiveQuestion, raw: Any) -> schemas.DescriptiveResult:
    # Not auto-graded; marked correct for display and left out of the score
    return schemas.DescriptiveResult(
        question_text=q.question_text,
        is_correct=True,
        user_answer=as_text(raw),
        sample_answer=q.sample_answer or None,
    )


def _grade_matching(q: schemas.MatchingQuestion, raw: Any) -> schemas.MatchingResult:
    selected = parse_int_mapping(raw)
    rows = [i for i in selected if 0 <= i < len(q.left_column)]
    user_matches: List[Optional[int]] = [None] * (max(rows) + 1 if rows else 0)
    for i in rows:
        user_matches[i] = selected[i]

    correct = q.correct_matches or []
    is_correct = (
        len(correct) > 0
        and len(user_matches) == len(correct)
        and all(
            pair.left_index < len(user_matches) and user_matches[pair.left_index] == pair.right_index
            for pair in correct
        )
    )
    return schemas.MatchingResult(
        question_text=q.question_text,
        is_correct=is_correct,
        left_column=list(q.left_column),
        right_column=list(q.right_column),
        correct_matches=list(correct),
        user_matches=user_matches,
    )


def _grade_composite(q: schemas.CompositeQuestion, raw: Any) -> schemas.CompositeResult:
    answer = _maybe_json(raw)
    if not isinstance(answer, Mapping):
        answer = {}
    user_mcq = parse_int(answer.get("mcq"))
    user_fill = as_text(answer.get("fill"))

    mcq_correct = (
        user_mcq is not None
        and q.correct_option_index is not None
        and user_mcq == q.correct_option_index
    )
    fill_correct = texts_match(user_fill, q.fill_in_correct_text)
    return schemas.CompositeResult(
        question_text=q.question_text,
        is_correct=mcq_correct and fill_correct,
        options=list(q.options),
        correct_option_index=q.correct_option_index,
        user_mcq_answer=user_mcq,
        fill_in_prompt=q.fill_in_prompt,
        fill_in_correct_text=q.fill_in_correct_text,
        user_fill_answer=user_fill,
        is_mcq_correct=mcq_correct,
        is_fill_correct=fill_correct,
    )


def _grade_true_false(q: schemas.TrueFalseQuestion, raw: Any) -> schemas.TrueFalseResult:
    user_answer = _parse_bool(raw)
    is_correct = (
        user_answer is not None
        and q.correct_answer is not None
        and user_answer == q.correct_answer
    )
    return schemas.TrueFalseResult(
        question_text=q.question_text,
        is_correct=is_correct,
        correct_answer=q.correct_answer,
        user_answer=user_answer,
    )


def _grade_sequencing(q: schemas.SequencingQuestion, raw: Any) -> schemas.SequencingResult:
    # submission: item index -> 1-based position
    positions = parse_int_mapping(raw)
    by_position: Dict[int, int] = {}
    for item in sorted(positions):
        if 0 <= item < len(q.items):
            by_position.setdefault(positions[item], item)
    user_order = [by_position[p] for p in sorted(by_position) if 1 <= p <= len(q.items)]

    correct = q.correct_order
    is_correct = bool(correct) and len(user_order) == len(correct) and user_order == list(correct)
    return schemas.SequencingResult(
        question_text=q.question_text,
        is_correct=is_correct,
        items=list(q.items),
        correct_order=list(correct) if correct is not None else None,
        user_order=user_order,
    )


GRADERS = {
    schemas.MultipleChoiceQuestion: _grade_multiple_choice,
    schemas.MultipleAnswerQuestion: _grade_multiple_answer,
    schemas.FillBlankQuestion: _grade_fill_blank,
    schemas.DescriptiveQuestion: _grade_descriptive,
    schemas.MatchingQuestion: _grade_matching,
    schemas.CompositeQuestion: _grade_composite,
    schemas.TrueFalseQuestion: _grade_true_false,
    schemas.SequencingQuestion: _grade_sequencing,
}


def grade(question: schemas.QuestionVariant, submitted_answer: Any, question_id: Optional[str] = None):
    """Grade one question. Returns the matching *Result model; never raises on bad input."""
    grader = GRADERS.get(type(question))
    if grader is None:
        raise TypeError(f"no grader for {type(question).__name__}")
    result = grader(question, submitted_answer)
    if question_id is not None:
        result = result.model_copy(update={"question_id": question_id})
    return result


# -------------------------------------------------
# Test-level aggregation
# -------------------------------------------------
def compute_score(correct_count: int, gradable_count: int) -> float:
    """100 * correct / gradable, rounded half-up to 2 places; 0 when nothing is gradable."""
    if gradable_count <= 0:
        return 0.0
    raw = Decimal(100 * correct_count) / Decimal(gradable_count)
    return float(raw.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def collect_answer(question_id: str, question: schemas.QuestionVariant, answers: Mapping[str, Any]) -> Any:
    """
    Pull the raw answer for one question out of a submission.
    Matching rows arrive under "<questionId>_<leftIndex>" keys.
    """
    raw = answers.get(question_id)
    if not isinstance(question, schemas.MatchingQuestion):
        return raw

    selected = parse_int_mapping(raw)
    for left_index in range(len(question.left_column)):
        value = answers.get(f"{question_id}_{left_index}")
        if value is None or value == "":
            continue
        right_index = parse_int(value)
        if right_index is not None:
            selected[left_index] = right_index
    return selected


def summarize(results: Sequence[Any]) -> schemas.GradingResponse:
    gradable = [r for r in results if r.question_type != "descriptive"]
    correct_count = sum(1 for r in gradable if r.is_correct)
    return schemas.GradingResponse(
        results=list(results),
        score=compute_score(correct_count, len(gradable)),
        correct_count=correct_count,
        total_count=len(gradable),
        descriptive_count=len(results) - len(gradable),
    )


def grade_submission(
    questions: Sequence[Tuple[Any, schemas.QuestionVariant]],
    answers: Mapping[str, Any],
) -> schemas.GradingResponse:
    """
    questions: (question id, variant) pairs in test order.
    answers: question id -> raw answer, plus "<id>_<leftIndex>" keys for matching.
    """
    if not isinstance(answers, Mapping):
        answers = {}
    results = []
    for question_id, question in questions:
        qid = str(question_id)
        results.append(grade(question, collect_answer(qid, question, answers), question_id=qid))

    response = summarize(results)
    logger.info(
        "[grade] %d/%d correct (score=%.2f, descriptive=%d)",
        response.correct_count, response.total_count, response.score, response.descriptive_count,
    )
    return response
