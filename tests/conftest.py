"""
Shared fixtures: a realistic model response and one canonical question per variant.
No network calls; the API tests run against in-memory SQLite.
"""
import pytest

from exam_engine import schemas

RAW_RESPONSE = """Sure! Here is the structured test:
```json
{
  "questions": [
    {
      "questionType": "multiple_choice",
      "questionText": "What is the capital of France? (1) Paris 2) Lyon 3) Nice 4) Lille)",
      "options": ["A) Paris", "B) Lyon", "C) Nice", "D) Lille"],
      "correctOptionIndex": 0,
      "answerProvided": true
    },
    {
      "questionType": "multiple_answer",
      "questionText": "Which numbers are even?",
      "options": ["1. Two", "2. Three", "3. Four"],
      "correctAnswers": [0, 2],
      "answerProvided": true
    },
    {
      "questionType": "fill_blank",
      "questionText": "The chemical symbol for gold is ___.",
      "correctText": "Au",
      "answerProvided": true
    },
    {
      "questionType": "descriptive",
      "questionText": "Explain photosynthesis.",
      "sampleAnswer": "Plants turn light into chemical energy.",
      "answerProvided": true
    },
    {
      "questionType": "matching",
      "questionText": "Match the author to the book.",
      "leftColumn": ["Tolstoy", "Orwell", "Austen"],
      "rightColumn": ["Emma", "War and Peace", "1984"],
      "correctMatches": "1-2, 2-3, 3-1",
      "answerProvided": true
    }
  ],
  "invalidQuestions": [
    {"questionNumber": 6, "reason": "Answer missing", "rawText": "6. Name a prime number."}
  ]
}
```
Let me know if you need anything else."""


@pytest.fixture
def raw_response() -> str:
    return RAW_RESPONSE


@pytest.fixture
def mc_question() -> schemas.MultipleChoiceQuestion:
    return schemas.MultipleChoiceQuestion(
        question_text="What is the capital of France?",
        options=["Paris", "Lyon"],
        correct_option_index=0,
        answer_provided=True,
    )


@pytest.fixture
def sample_questions():
    """One valid question of every variant."""
    return [
        schemas.MultipleChoiceQuestion(
            question_text="Capital of France?", options=["Paris", "Lyon"], correct_option_index=0,
        ),
        schemas.MultipleAnswerQuestion(
            question_text="Even numbers?", options=["2", "3", "4"], correct_answers=[0, 2],
        ),
        schemas.FillBlankQuestion(question_text="Symbol for gold?", correct_text="Au"),
        schemas.DescriptiveQuestion(question_text="Explain osmosis.", sample_answer="Water moves."),
        schemas.MatchingQuestion(
            question_text="Match author and book.",
            left_column=["Tolstoy", "Orwell", "Austen"],
            right_column=["Emma", "War and Peace", "1984"],
            correct_matches=[
                schemas.MatchPair(left_index=0, right_index=1),
                schemas.MatchPair(left_index=1, right_index=2),
                schemas.MatchPair(left_index=2, right_index=0),
            ],
        ),
        schemas.CompositeQuestion(
            question_text="Pick the city and name its river.",
            options=["Paris", "Rome"],
            correct_option_index=0,
            fill_in_prompt="River:",
            fill_in_correct_text="Seine",
        ),
        schemas.TrueFalseQuestion(question_text="The earth is round.", correct_answer=True),
        schemas.SequencingQuestion(
            question_text="Order the steps.", items=["mix", "bake", "serve"], correct_order=[0, 1, 2],
        ),
    ]
