from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from typing import Optional

from exam_engine.config import Settings
from exam_engine.pipeline import ingest_response
from exam_engine.schemas import IngestionResult

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You parse test documents into structured questions. Only use answers that are explicitly "
    "marked in the document; never guess. Questions without an answer go to \"invalidQuestions\" "
    "with questionNumber, reason and rawText. "
    "Return one JSON object: {\"questions\": [...], \"invalidQuestions\": [...]}. "
    "Each question has questionType (multiple_choice, multiple_answer, fill_blank, descriptive, "
    "matching, composite, true_false, sequencing), questionText and answerProvided, plus: "
    "options + correctOptionIndex (0-based) for multiple_choice; options + correctAnswers for "
    "multiple_answer; correctText for fill_blank; sampleAnswer for descriptive; leftColumn, "
    "rightColumn and correctMatches as \"1-3, 2-1\" (1-based) for matching; options, "
    "correctOptionIndex, fillInPrompt and fillInCorrectText for composite; correctAnswer for "
    "true_false; items and correctOrder (0-based) for sequencing. Return JSON only."
)


def request_questions(document_text: str, settings: Settings) -> Optional[str]:
    """
    Ask Gemini to structure the document. Returns the raw response text, or
    None when the SDK/key is unavailable, the call fails or times out.
    """
    if not settings.gemini_api_key:
        return None

    try:
        import google.generativeai as genai  # type: ignore
    except ImportError:
        logger.error("google-generativeai is not installed")
        return None

    try:
        genai.configure(api_key=settings.gemini_api_key)
        model = genai.GenerativeModel(settings.llm_model, system_instruction=SYSTEM_PROMPT)

        def _call_gen():
            return model.generate_content(
                f"Text to parse:\n{document_text}",
                generation_config={"temperature": 0.1, "response_mime_type": "application/json"},
            )

        # Not a context manager: a timed-out call is abandoned, not awaited
        ex = ThreadPoolExecutor(max_workers=1)
        fut = ex.submit(_call_gen)
        try:
            response = fut.result(timeout=settings.llm_timeout_seconds)
        except FuturesTimeout:
            logger.error("LLM call timed out after %.0fs", settings.llm_timeout_seconds)
            return None
        finally:
            ex.shutdown(wait=False)

        return getattr(response, "text", None) or None
    except Exception as e:
        logger.error("LLM call failed: %s", e)
        return None


def extract_questions(document_text: str, settings: Settings) -> Optional[IngestionResult]:
    """
    Document text -> canonical questions. None when the model gave no answer;
    MalformedResponse / MissingQuestionsField propagate from ingestion.
    """
    logger.info("Starting question extraction from text (%d characters)", len(document_text))
    raw = request_questions(document_text, settings)
    if raw is None:
        return None
    return ingest_response(raw, min_question_chars=settings.min_question_chars)
