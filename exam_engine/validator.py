import logging
import re
from typing import Any, List, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError

from exam_engine.errors import UnknownQuestionType, ValidationError
from exam_engine.schemas import VARIANTS_BY_TYPE, QuestionVariant

logger = logging.getLogger(__name__)

NO_QUESTIONS = "No questions found in the response"

_ONLY_NUMBERS = re.compile(r"^[\d.\s]+$")
_VALUE_ERROR_PREFIX = "Value error, "


def _describe(exc: PydanticValidationError) -> str:
    """Flatten pydantic errors into one readable line."""
    parts = []
    for err in exc.errors():
        msg = err.get("msg", "")
        if msg.startswith(_VALUE_ERROR_PREFIX):
            msg = msg[len(_VALUE_ERROR_PREFIX):]
        loc = ".".join(str(x) for x in err.get("loc", ()))
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


def validate_question(q: Any, position: int, min_question_chars: int = 0) -> QuestionVariant:
    """
    Build the typed variant for one canonical question dict.
    Raises ValidationError (or UnknownQuestionType) with the 1-based position.
    """
    if not isinstance(q, dict):
        raise ValidationError(position, "Question must be an object")

    qtype = q.get("questionType")
    if not qtype:
        raise ValidationError(position, "Missing questionType")

    model = VARIANTS_BY_TYPE.get(qtype) if isinstance(qtype, str) else None
    if model is None:
        raise UnknownQuestionType(position, qtype)

    text = q.get("questionText")
    if not isinstance(text, str) or not text.strip():
        raise ValidationError(position, "Missing or empty questionText")

    if min_question_chars:
        stripped = text.strip()
        if len(stripped) < min_question_chars:
            raise ValidationError(position, f"questionText shorter than {min_question_chars} characters")
        if _ONLY_NUMBERS.match(stripped):
            raise ValidationError(position, "questionText contains only numbers")

    try:
        return model.model_validate(q)
    except PydanticValidationError as e:
        raise ValidationError(position, _describe(e)) from e


def validate_questions(
    questions: Sequence[Any],
    min_question_chars: int = 0,
) -> Tuple[List[QuestionVariant], List[str]]:
    """
    Returns (accepted, errors). Never raises: a bad question is dropped and
    its error collected, the rest of the batch survives.
    """
    if not isinstance(questions, (list, tuple)) or not questions:
        return [], [NO_QUESTIONS]

    accepted: List[QuestionVariant] = []
    errors: List[str] = []
    for position, q in enumerate(questions, start=1):
        try:
            accepted.append(validate_question(q, position, min_question_chars))
        except ValidationError as e:
            logger.warning("[validate] %s", e)
            errors.append(str(e))

    return accepted, errors
