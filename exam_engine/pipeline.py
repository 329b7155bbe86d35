import logging

from pydantic import ValidationError as PydanticValidationError

from exam_engine.canonicalizer import canonicalize_batch
from exam_engine.normalizer import normalize_response
from exam_engine.schemas import IngestionResult, InvalidQuestion
from exam_engine.validator import validate_questions

logger = logging.getLogger(__name__)


def _invalid_questions(entries) -> list:
    if not isinstance(entries, list):
        return []
    parsed = []
    for entry in entries:
        try:
            parsed.append(InvalidQuestion.model_validate(entry))
        except PydanticValidationError:
            logger.warning("ignoring malformed invalidQuestions entry: %r", entry)
    return parsed


def ingest_response(raw_text: str, min_question_chars: int = 0) -> IngestionResult:
    """
    Raw model text -> accepted canonical questions.

    MalformedResponse / MissingQuestionsField propagate (the batch is lost);
    per-question problems come back in `errors` next to the accepted questions.
    """
    parsed = normalize_response(raw_text)

    invalid = _invalid_questions(parsed.get("invalidQuestions"))
    if invalid:
        logger.warning(
            "%d question(s) could not be parsed due to missing or ambiguous answers:", len(invalid)
        )
        for item in invalid:
            logger.warning("  - Question %s: %s", item.question_number or "unknown", item.reason)

    canonical = canonicalize_batch(parsed["questions"])
    accepted, errors = validate_questions(canonical, min_question_chars=min_question_chars)
    logger.info("[ingest] accepted %d of %d question(s)", len(accepted), len(canonical))

    return IngestionResult(questions=accepted, invalid_questions=invalid, errors=errors)
