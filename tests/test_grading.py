import pytest

from exam_engine import schemas
from exam_engine.grading import GRADERS, compute_score, grade, grade_submission, parse_int

GARBAGE = [None, "", "garbage", "{not json", "[1,", 42, -1, 3.7, [], {}, {"mcq": []}, ["x"], True, object()]


def _by_type(sample_questions, qtype):
    return next(q for q in sample_questions if q.question_type == qtype)


class TestDispatch:
    def test_every_variant_has_a_grader(self):
        assert set(GRADERS) == set(schemas.VARIANTS_BY_TYPE.values())

    def test_grading_is_total(self, sample_questions):
        for question in sample_questions:
            for raw in GARBAGE:
                result = grade(question, raw)
                assert isinstance(result.is_correct, bool)
                assert result.question_type == question.question_type

    def test_question_id_is_echoed(self, mc_question):
        assert grade(mc_question, "0", question_id="17").question_id == "17"


class TestParseInt:
    @pytest.mark.parametrize("raw, expected", [(2, 2), ("2", 2), (" 2 ", 2), ("2)", 2), (2.0, 2), ("-1", -1)])
    def test_parses(self, raw, expected):
        assert parse_int(raw) == expected

    @pytest.mark.parametrize("raw", [None, True, False, "", "abc", 2.5, [1], {}])
    def test_rejects(self, raw):
        assert parse_int(raw) is None


class TestMultipleChoice:
    def test_correct_index(self, mc_question):
        result = grade(mc_question, "0")
        assert result.is_correct is True
        assert result.user_answer == 0
        assert result.correct_option_index == 0
        assert result.options == ["Paris", "Lyon"]

    def test_wrong_index(self, mc_question):
        assert grade(mc_question, "1").is_correct is False

    def test_absent_answer(self, mc_question):
        result = grade(mc_question, None)
        assert result.is_correct is False
        assert result.user_answer is None

    def test_missing_correct_answer_is_always_incorrect(self):
        q = schemas.MultipleChoiceQuestion(question_text="Q", options=["a", "b"])
        assert grade(q, "0").is_correct is False
        assert grade(q, None).is_correct is False


class TestMultipleAnswer:
    @pytest.fixture
    def question(self, sample_questions):
        return _by_type(sample_questions, "multiple_answer")

    @pytest.mark.parametrize("raw", [[2, 0], "[2, 0]", ["0", "2"], "[0,2,2]"])
    def test_same_set_in_any_order(self, question, raw):
        assert grade(question, raw).is_correct is True

    @pytest.mark.parametrize("raw", [[0], [0, 1, 2], "[]", None, "garbage"])
    def test_different_set(self, question, raw):
        assert grade(question, raw).is_correct is False

    def test_echo(self, question):
        result = grade(question, "[2, 0]")
        assert result.user_answers == [2, 0]
        assert result.correct_answers == [0, 2]


class TestTextAnswers:
    def test_fill_blank_ignores_case_and_whitespace(self, sample_questions):
        q = _by_type(sample_questions, "fill_blank")
        assert grade(q, "  aU ").is_correct is True
        assert grade(q, "Ag").is_correct is False
        assert grade(q, "").is_correct is False

    def test_fill_blank_without_answer_key(self):
        q = schemas.FillBlankQuestion(question_text="Q")
        assert grade(q, "").is_correct is False
        assert grade(q, "anything").is_correct is False

    def test_descriptive_is_always_correct(self, sample_questions):
        q = _by_type(sample_questions, "descriptive")
        result = grade(q, "My essay")
        assert result.is_correct is True
        assert result.user_answer == "My essay"
        assert result.sample_answer == "Water moves."


class TestTrueFalse:
    @pytest.mark.parametrize("raw", [True, "true"])
    def test_true_submissions(self, sample_questions, raw):
        assert grade(_by_type(sample_questions, "true_false"), raw).is_correct is True

    @pytest.mark.parametrize("raw", [False, "false", "yes", None, ""])
    def test_other_submissions(self, sample_questions, raw):
        assert grade(_by_type(sample_questions, "true_false"), raw).is_correct is False

    def test_false_answer_key(self):
        q = schemas.TrueFalseQuestion(question_text="The sun is cold.", correct_answer=False)
        assert grade(q, "false").is_correct is True
        assert grade(q, None).is_correct is False


class TestMatching:
    @pytest.fixture
    def question(self, sample_questions):
        return _by_type(sample_questions, "matching")

    def test_all_rows_correct(self, question):
        result = grade(question, {0: 1, 1: 2, 2: 0})
        assert result.is_correct is True
        assert result.user_matches == [1, 2, 0]

    def test_string_keys_and_values(self, question):
        assert grade(question, {"0": "1", "1": "2", "2": "0"}).is_correct is True

    def test_missing_row(self, question):
        result = grade(question, {"0": "1", "1": "2"})
        assert result.is_correct is False
        assert result.user_matches == [1, 2]

    def test_unfilled_row_leaves_a_hole(self, question):
        result = grade(question, {0: 1, 2: 0})
        assert result.user_matches == [1, None, 0]
        assert result.is_correct is False

    def test_wrong_row(self, question):
        assert grade(question, {0: 1, 1: 0, 2: 0}).is_correct is False

    def test_no_known_pairs_is_never_correct(self):
        for matches in (None, []):
            q = schemas.MatchingQuestion(
                question_text="Match", left_column=["a", "b"], right_column=["x", "y"], correct_matches=matches,
            )
            assert grade(q, {}).is_correct is False
            assert grade(q, {0: 0, 1: 1}).is_correct is False


class TestComposite:
    @pytest.fixture
    def question(self, sample_questions):
        return _by_type(sample_questions, "composite")

    @pytest.mark.parametrize("raw", [{"mcq": "0", "fill": " seine "}, '{"mcq": 0, "fill": "Seine"}'])
    def test_both_parts_correct(self, question, raw):
        result = grade(question, raw)
        assert result.is_correct is True
        assert result.is_mcq_correct is True
        assert result.is_fill_correct is True

    def test_fill_part_wrong(self, question):
        result = grade(question, {"mcq": 0, "fill": "Thames"})
        assert result.is_correct is False
        assert result.is_mcq_correct is True
        assert result.is_fill_correct is False
        assert result.user_fill_answer == "Thames"

    def test_mcq_part_wrong(self, question):
        result = grade(question, {"mcq": 1, "fill": "Seine"})
        assert result.is_correct is False
        assert result.is_fill_correct is True


class TestSequencing:
    @pytest.fixture
    def question(self):
        return schemas.SequencingQuestion(
            question_text="Order the steps.", items=["mix", "bake", "serve"], correct_order=[2, 0, 1],
        )

    def test_positions_are_inverted_into_order(self, question):
        result = grade(question, {"2": 1, "0": 2, "1": 3})
        assert result.user_order == [2, 0, 1]
        assert result.is_correct is True

    def test_json_string_submission(self, question):
        assert grade(question, '{"2": "1", "0": "2", "1": "3"}').is_correct is True

    def test_unfilled_position_is_skipped(self, question):
        result = grade(question, {"2": 1, "1": 3})
        assert result.user_order == [2, 1]
        assert result.is_correct is False

    def test_wrong_order(self, question):
        assert grade(question, {"0": 1, "1": 2, "2": 3}).is_correct is False

    def test_no_answer_key(self):
        q = schemas.SequencingQuestion(question_text="Order", items=["a", "b"])
        assert grade(q, {"0": 1, "1": 2}).is_correct is False


class TestScore:
    @pytest.mark.parametrize(
        "correct, gradable, expected",
        [(2, 3, 66.67), (1, 3, 33.33), (3, 3, 100.0), (0, 0, 0.0), (1, 8, 12.5), (1, 800, 0.13)],
    )
    def test_compute_score(self, correct, gradable, expected):
        assert compute_score(correct, gradable) == expected


class TestGradeSubmission:
    def test_three_gradable_two_correct(self, sample_questions):
        questions = [
            ("1", _by_type(sample_questions, "multiple_choice")),
            ("2", _by_type(sample_questions, "fill_blank")),
            ("3", _by_type(sample_questions, "true_false")),
            ("4", _by_type(sample_questions, "descriptive")),
        ]
        response = grade_submission(questions, {"1": "0", "2": "au", "3": "false", "4": "An essay"})
        assert response.correct_count == 2
        assert response.total_count == 3
        assert response.descriptive_count == 1
        assert response.score == 66.67
        assert [r.question_id for r in response.results] == ["1", "2", "3", "4"]

    def test_matching_rows_from_suffixed_keys(self, sample_questions):
        questions = [(9, _by_type(sample_questions, "matching"))]
        response = grade_submission(questions, {"9_0": "1", "9_1": "2", "9_2": "0"})
        assert response.results[0].is_correct is True
        assert response.score == 100.0

    def test_empty_string_row_is_unanswered(self, sample_questions):
        questions = [(9, _by_type(sample_questions, "matching"))]
        response = grade_submission(questions, {"9_0": "1", "9_1": "", "9_2": "0"})
        assert response.results[0].user_matches == [1, None, 0]

    def test_garbage_submission_scores_zero(self, sample_questions):
        questions = [(i, q) for i, q in enumerate(sample_questions)]
        response = grade_submission(questions, "not a mapping")
        assert response.correct_count == 0
        assert response.total_count == len(sample_questions) - 1
        assert response.score == 0.0

    def test_only_descriptive(self, sample_questions):
        response = grade_submission([("1", _by_type(sample_questions, "descriptive"))], {})
        assert response.total_count == 0
        assert response.score == 0.0

    def test_serializes_with_wire_names(self, mc_question):
        payload = grade_submission([("1", mc_question)], {"1": "0"}).model_dump(by_alias=True)
        assert set(payload) == {"results", "score", "correctCount", "totalCount", "descriptiveCount"}
        assert payload["results"][0]["questionType"] == "multiple_choice"
        assert payload["results"][0]["isCorrect"] is True
