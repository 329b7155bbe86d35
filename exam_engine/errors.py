from typing import Optional

PREVIEW_CHARS = 500


class ExamEngineError(Exception):
    """Base class for every error raised by the engine."""


class MalformedResponse(ExamEngineError):
    """
    The model output could not be parsed into a JSON object.
    Only a bounded preview of the raw text is kept, for diagnostics.
    """

    def __init__(self, raw_text: str, reason: str = "", preview_chars: int = PREVIEW_CHARS):
        self.preview = (raw_text or "")[:preview_chars]
        self.reason = reason
        message = "Invalid JSON response from LLM"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MissingQuestionsField(ExamEngineError):
    def __init__(self):
        super().__init__("LLM response missing questions array")


class ValidationError(ExamEngineError):
    """A single question failed validation. Non-fatal for the batch."""

    def __init__(self, position: Optional[int], message: str):
        self.position = position
        self.message = message
        if position is None:
            super().__init__(message)
        else:
            super().__init__(f"Question {position}: {message}")


class UnknownQuestionType(ValidationError):
    def __init__(self, position: Optional[int], question_type):
        self.question_type = question_type
        super().__init__(position, f'Unknown questionType "{question_type}"')
