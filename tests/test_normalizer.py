import pytest

from exam_engine.errors import PREVIEW_CHARS, MalformedResponse, MissingQuestionsField
from exam_engine.normalizer import normalize_response, strip_code_fence


class TestStripCodeFence:
    def test_strips_fence_with_language_tag(self):
        assert strip_code_fence('```json\n{"questions": []}\n```') == '{"questions": []}'

    def test_strips_bare_fence(self):
        assert strip_code_fence('  ```\n{"a": 1}\n```  ') == '{"a": 1}'

    def test_leaves_mid_document_fence(self):
        text = "intro\n```\nbody"
        assert strip_code_fence(text) == text


class TestNormalizeResponse:
    def test_plain_json(self):
        parsed = normalize_response('{"questions": [{"questionType": "fill_blank"}]}')
        assert parsed["questions"] == [{"questionType": "fill_blank"}]

    def test_fenced_json(self):
        parsed = normalize_response('```json\n{"questions": [], "invalidQuestions": []}\n```')
        assert parsed == {"questions": [], "invalidQuestions": []}

    def test_prose_around_object_falls_back_to_brace_span(self, raw_response):
        parsed = normalize_response(raw_response)
        assert len(parsed["questions"]) == 5
        assert parsed["invalidQuestions"][0]["questionNumber"] == 6

    def test_braces_inside_strings_survive(self):
        parsed = normalize_response('Result: {"questions": [{"questionText": "What is {x}?"}]} done')
        assert parsed["questions"][0]["questionText"] == "What is {x}?"

    def test_unparseable_raises_malformed_with_bounded_preview(self):
        raw = "not json at all " * 100
        with pytest.raises(MalformedResponse) as exc_info:
            normalize_response(raw)
        assert len(exc_info.value.preview) == PREVIEW_CHARS
        assert raw.startswith(exc_info.value.preview)

    def test_broken_json_raises_malformed(self):
        with pytest.raises(MalformedResponse):
            normalize_response('{"questions": [1, 2,')

    def test_empty_raises_malformed(self):
        with pytest.raises(MalformedResponse):
            normalize_response("   ")

    def test_missing_questions_field(self):
        with pytest.raises(MissingQuestionsField):
            normalize_response('{"items": []}')

    def test_questions_not_a_list(self):
        with pytest.raises(MissingQuestionsField):
            normalize_response('{"questions": "none"}')

    def test_top_level_array(self):
        with pytest.raises(MissingQuestionsField):
            normalize_response("[1, 2, 3]")
