from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """snake_case attributes, camelCase on the wire (the model/storage contract)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


def _require_min_items(items: list, minimum: int, message: str) -> None:
    if len(items) < minimum:
        raise ValueError(message)


def _check_index(index: Optional[int], options: list, field: str) -> None:
    if index is None:
        return
    if index < 0 or index >= len(options):
        raise ValueError(f"{field} ({index}) is out of range (0-{len(options) - 1})")


# -------------------------------------------------
# Question variants
# -------------------------------------------------
class QuestionBase(CamelModel):
    question_text: str
    # true only when the source document carried an explicit answer marker
    answer_provided: bool = False

    @field_validator("question_text")
    @classmethod
    def _text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Missing or empty questionText")
        return v


class MultipleChoiceQuestion(QuestionBase):
    question_type: Literal["multiple_choice"] = "multiple_choice"
    options: List[str]
    correct_option_index: Optional[int] = None

    @model_validator(mode="after")
    def _check_answer(self):
        _require_min_items(self.options, 2, "Multiple choice must have at least 2 options")
        _check_index(self.correct_option_index, self.options, "correctOptionIndex")
        return self


class MultipleAnswerQuestion(QuestionBase):
    question_type: Literal["multiple_answer"] = "multiple_answer"
    options: List[str]
    correct_answers: Optional[List[int]] = None

    @model_validator(mode="after")
    def _check_answers(self):
        _require_min_items(self.options, 2, "Multiple answer must have at least 2 options")
        if self.correct_answers is None:
            return self
        if not self.correct_answers:
            raise ValueError("Invalid correctAnswers array")
        invalid = [i for i in self.correct_answers if i < 0 or i >= len(self.options)]
        if invalid:
            raise ValueError(f"Invalid correctAnswers indices: {', '.join(str(i) for i in invalid)}")
        if len(set(self.correct_answers)) != len(self.correct_answers):
            raise ValueError("correctAnswers contains duplicate indices")
        return self


class FillBlankQuestion(QuestionBase):
    question_type: Literal["fill_blank"] = "fill_blank"
    correct_text: Optional[str] = None


class DescriptiveQuestion(QuestionBase):
    question_type: Literal["descriptive"] = "descriptive"
    sample_answer: Optional[str] = None


class MatchPair(CamelModel):
    left_index: int
    right_index: int


class MatchingQuestion(QuestionBase):
    question_type: Literal["matching"] = "matching"
    left_column: List[str]
    right_column: List[str]
    # None means "no correct matches known", distinct from an empty list
    correct_matches: Optional[List[MatchPair]] = None

    @model_validator(mode="after")
    def _check_matches(self):
        _require_min_items(self.left_column, 2, "Matching question must have at least 2 left column items")
        _require_min_items(self.right_column, 2, "Matching question must have at least 2 right column items")
        for name, column in (("leftColumn", self.left_column), ("rightColumn", self.right_column)):
            blank = [i for i, item in enumerate(column) if not item.strip()]
            if blank:
                raise ValueError(f"{name} has empty items at {', '.join(str(i) for i in blank)}")
        if self.correct_matches is None:
            return self
        seen = set()
        for pair in self.correct_matches:
            _check_index(pair.left_index, self.left_column, "correctMatches leftIndex")
            _check_index(pair.right_index, self.right_column, "correctMatches rightIndex")
            if pair.left_index in seen:
                raise ValueError(f"correctMatches leftIndex {pair.left_index} is used more than once")
            seen.add(pair.left_index)
        return self


class CompositeQuestion(QuestionBase):
    question_type: Literal["composite"] = "composite"
    options: List[str]
    correct_option_index: Optional[int] = None
    fill_in_prompt: str
    fill_in_correct_text: Optional[str] = None

    @model_validator(mode="after")
    def _check_parts(self):
        _require_min_items(self.options, 2, "Composite question must have at least 2 options")
        if not self.fill_in_prompt.strip():
            raise ValueError("Composite question must have a fillInPrompt")
        _check_index(self.correct_option_index, self.options, "correctOptionIndex")
        return self


class TrueFalseQuestion(QuestionBase):
    question_type: Literal["true_false"] = "true_false"
    correct_answer: Optional[bool] = None


class SequencingQuestion(QuestionBase):
    question_type: Literal["sequencing"] = "sequencing"
    items: List[str]
    correct_order: Optional[List[int]] = None

    @model_validator(mode="after")
    def _check_order(self):
        _require_min_items(self.items, 2, "Sequencing question must have at least 2 items")
        if self.correct_order is not None and sorted(self.correct_order) != list(range(len(self.items))):
            raise ValueError(
                f"correctOrder must be a permutation of 0-{len(self.items) - 1}"
            )
        return self


QuestionVariant = Annotated[
    Union[
        MultipleChoiceQuestion,
        MultipleAnswerQuestion,
        FillBlankQuestion,
        DescriptiveQuestion,
        MatchingQuestion,
        CompositeQuestion,
        TrueFalseQuestion,
        SequencingQuestion,
    ],
    Field(discriminator="question_type"),
]

VARIANTS_BY_TYPE = {
    "multiple_choice": MultipleChoiceQuestion,
    "multiple_answer": MultipleAnswerQuestion,
    "fill_blank": FillBlankQuestion,
    "descriptive": DescriptiveQuestion,
    "matching": MatchingQuestion,
    "composite": CompositeQuestion,
    "true_false": TrueFalseQuestion,
    "sequencing": SequencingQuestion,
}


class InvalidQuestion(CamelModel):
    """A question the model could not give an answer for; never graded."""

    question_number: Optional[str] = None
    reason: str
    raw_text: str = ""

    @field_validator("question_number", mode="before")
    @classmethod
    def _number_as_str(cls, v):
        if v is None or isinstance(v, str):
            return v
        return str(v)


# -------------------------------------------------
# Grading results
# -------------------------------------------------
class ResultBase(CamelModel):
    question_id: Optional[str] = None
    question_text: str
    is_correct: bool = False


class MultipleChoiceResult(ResultBase):
    question_type: Literal["multiple_choice"] = "multiple_choice"
    options: List[str]
    correct_option_index: Optional[int] = None
    user_answer: Optional[int] = None


class MultipleAnswerResult(ResultBase):
    question_type: Literal["multiple_answer"] = "multiple_answer"
    options: List[str]
    correct_answers: List[int] = Field(default_factory=list)
    user_answers: List[int] = Field(default_factory=list)


class FillBlankResult(ResultBase):
    question_type: Literal["fill_blank"] = "fill_blank"
    correct_text: Optional[str] = None
    user_answer: str = ""


class DescriptiveResult(ResultBase):
    question_type: Literal["descriptive"] = "descriptive"
    user_answer: str = ""
    sample_answer: Optional[str] = None


class MatchingResult(ResultBase):
    question_type: Literal["matching"] = "matching"
    left_column: List[str]
    right_column: List[str]
    correct_matches: List[MatchPair] = Field(default_factory=list)
    # indexed by leftIndex; None marks an unanswered row
    user_matches: List[Optional[int]] = Field(default_factory=list)


class CompositeResult(ResultBase):
    question_type: Literal["composite"] = "composite"
    options: List[str]
    correct_option_index: Optional[int] = None
    user_mcq_answer: Optional[int] = None
    fill_in_prompt: str
    fill_in_correct_text: Optional[str] = None
    user_fill_answer: str = ""
    is_mcq_correct: bool = False
    is_fill_correct: bool = False


class TrueFalseResult(ResultBase):
    question_type: Literal["true_false"] = "true_false"
    correct_answer: Optional[bool] = None
    user_answer: Optional[bool] = None


class SequencingResult(ResultBase):
    question_type: Literal["sequencing"] = "sequencing"
    items: List[str]
    correct_order: Optional[List[int]] = None
    user_order: List[int] = Field(default_factory=list)


GradingResult = Annotated[
    Union[
        MultipleChoiceResult,
        MultipleAnswerResult,
        FillBlankResult,
        DescriptiveResult,
        MatchingResult,
        CompositeResult,
        TrueFalseResult,
        SequencingResult,
    ],
    Field(discriminator="question_type"),
]


class GradingResponse(CamelModel):
    results: List[GradingResult] = Field(default_factory=list)
    score: float = 0.0
    correct_count: int = 0
    total_count: int = 0
    descriptive_count: int = 0


class IngestionResult(CamelModel):
    questions: List[QuestionVariant] = Field(default_factory=list)
    invalid_questions: List[InvalidQuestion] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


# -------------------------------------------------
# API payloads
# -------------------------------------------------
class StoredQuestion(CamelModel):
    id: int
    order: int
    question: QuestionVariant


class QuestionSheet(CamelModel):
    share_link: str
    title: str
    questions: List[StoredQuestion] = Field(default_factory=list)


class CreateTestRequest(CamelModel):
    title: str
    text: str


class ImportTestRequest(CamelModel):
    title: str
    response: str


class UploadResult(CamelModel):
    test_id: int
    share_link: str
    question_count: int
    invalid_questions: List[InvalidQuestion] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class SubmissionRequest(CamelModel):
    answers: Dict[str, Any]


# --- Admin/Config Schemas ---
class GeminiKeyPayload(CamelModel):
    api_key: str


class KeyStatus(CamelModel):
    gemini_key_set: bool
