"""
Flattened persistence shape of a question.

Every variant is stored in the same set of columns; JSON-bearing columns hold
serialized arrays. `correctText` carries the fill_blank answer, the descriptive
sample answer and the composite fill-in answer.
"""
import json
from typing import Any, Dict, Optional

from exam_engine import schemas

# record key -> ORM attribute
RECORD_COLUMNS = {
    "questionType": "question_type",
    "questionText": "question_text",
    "order": "order",
    "answerProvided": "answer_provided",
    "options": "options",
    "correctOptionIndex": "correct_option_index",
    "correctAnswers": "correct_answers",
    "correctText": "correct_text",
    "correctAnswer": "correct_answer",
    "matchingPairs": "matching_pairs",
    "correctMatches": "correct_matches",
    "hasFillInPart": "has_fill_in_part",
    "fillInPrompt": "fill_in_prompt",
    "correctOrder": "correct_order",
}


def ensure_json_str(value) -> Optional[str]:
    """ensure_ascii=False keeps non-ASCII option text readable in the DB."""
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def _json_loads_or_none(s):
    if s is None or s == "":
        return None
    try:
        return json.loads(s)
    except (TypeError, ValueError):
        return None


def _pairs_json(pairs) -> Optional[str]:
    if pairs is None:
        return None
    return ensure_json_str([{"leftIndex": p.left_index, "rightIndex": p.right_index} for p in pairs])


def to_record(question: schemas.QuestionVariant, order: int) -> Dict[str, Any]:
    record: Dict[str, Any] = {key: None for key in RECORD_COLUMNS}
    record.update(
        questionType=question.question_type,
        questionText=question.question_text,
        order=order,
        answerProvided=question.answer_provided,
        hasFillInPart=False,
    )

    if isinstance(question, schemas.MultipleChoiceQuestion):
        record["options"] = ensure_json_str(question.options)
        record["correctOptionIndex"] = question.correct_option_index
    elif isinstance(question, schemas.MultipleAnswerQuestion):
        record["options"] = ensure_json_str(question.options)
        record["correctAnswers"] = ensure_json_str(question.correct_answers)
    elif isinstance(question, schemas.FillBlankQuestion):
        record["correctText"] = question.correct_text
    elif isinstance(question, schemas.DescriptiveQuestion):
        record["correctText"] = question.sample_answer
    elif isinstance(question, schemas.MatchingQuestion):
        # padded with None so a right column longer than the left one survives the zip
        size = max(len(question.left_column), len(question.right_column))
        pairs = [
            {
                "left": question.left_column[i] if i < len(question.left_column) else None,
                "right": question.right_column[i] if i < len(question.right_column) else None,
            }
            for i in range(size)
        ]
        record["matchingPairs"] = ensure_json_str(pairs)
        record["correctMatches"] = _pairs_json(question.correct_matches)
    elif isinstance(question, schemas.CompositeQuestion):
        record["options"] = ensure_json_str(question.options)
        record["correctOptionIndex"] = question.correct_option_index
        record["hasFillInPart"] = True
        record["fillInPrompt"] = question.fill_in_prompt
        record["correctText"] = question.fill_in_correct_text
    elif isinstance(question, schemas.TrueFalseQuestion):
        record["correctAnswer"] = question.correct_answer
    elif isinstance(question, schemas.SequencingQuestion):
        record["options"] = ensure_json_str(question.items)
        record["correctOrder"] = ensure_json_str(question.correct_order)
    else:
        raise TypeError(f"cannot store {type(question).__name__}")

    return record


def from_record(record: Dict[str, Any]) -> schemas.QuestionVariant:
    """Inverse of to_record. Raises pydantic's ValidationError on a corrupt row."""
    qtype = record.get("questionType")
    data: Dict[str, Any] = {
        "questionType": qtype,
        "questionText": record.get("questionText") or "",
        "answerProvided": bool(record.get("answerProvided")),
    }
    options = _json_loads_or_none(record.get("options")) or []

    if qtype in ("multiple_choice", "composite"):
        data["options"] = options
        data["correctOptionIndex"] = record.get("correctOptionIndex")
        if qtype == "composite":
            data["fillInPrompt"] = record.get("fillInPrompt") or ""
            data["fillInCorrectText"] = record.get("correctText")
    elif qtype == "multiple_answer":
        data["options"] = options
        data["correctAnswers"] = _json_loads_or_none(record.get("correctAnswers"))
    elif qtype == "fill_blank":
        data["correctText"] = record.get("correctText")
    elif qtype == "descriptive":
        data["sampleAnswer"] = record.get("correctText")
    elif qtype == "matching":
        pairs = _json_loads_or_none(record.get("matchingPairs")) or []
        data["leftColumn"] = [p.get("left") for p in pairs if p.get("left") is not None]
        data["rightColumn"] = [p.get("right") for p in pairs if p.get("right") is not None]
        data["correctMatches"] = _json_loads_or_none(record.get("correctMatches"))
    elif qtype == "true_false":
        data["correctAnswer"] = record.get("correctAnswer")
    elif qtype == "sequencing":
        data["items"] = options
        data["correctOrder"] = _json_loads_or_none(record.get("correctOrder"))

    model = schemas.VARIANTS_BY_TYPE.get(qtype)
    if model is None:
        raise ValueError(f"unknown questionType in record: {qtype!r}")
    return model.model_validate(data)


def record_to_columns(record: Dict[str, Any]) -> Dict[str, Any]:
    return {RECORD_COLUMNS[k]: v for k, v in record.items() if k in RECORD_COLUMNS}


def columns_to_record(row) -> Dict[str, Any]:
    return {key: getattr(row, attr) for key, attr in RECORD_COLUMNS.items()}
