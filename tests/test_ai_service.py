"""Tests for prompt building and AI reply parsing."""
import pytest

from quizgen.schemas.quiz import QuizGenerateRequest, QuizQuestion, QuizType
from quizgen.services.ai_service import (
    QuizGenerationError,
    build_quiz_prompt,
    parse_quiz_response,
    strip_json_fences,
)


class TestStripJsonFences:
    def test_fenced(self):
        assert strip_json_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_json_fences('```\n[1]\n```  ') == "[1]"

    def test_unfenced(self):
        assert strip_json_fences('  {"a": 1} ') == '{"a": 1}'


class TestBuildQuizPrompt:
    def test_includes_format_for_type(self):
        prompt = build_quiz_prompt("Some notes", QuizType.ANSWER)
        assert "Some notes" in prompt
        assert "3-4 descriptive questions" in prompt
        assert "Important topics" not in prompt

    def test_topic_hint(self):
        prompt = build_quiz_prompt("Some notes", QuizType.MCQ, "cell walls")
        assert "Important topics to focus on: cell walls" in prompt

    def test_long_text_truncated(self, monkeypatch):
        from quizgen.core.config import settings
        monkeypatch.setattr(settings, "max_prompt_chars", 10)
        prompt = build_quiz_prompt("0123456789ABCDEF", QuizType.FILL_BLANK)
        assert "0123456789" in prompt
        assert "ABCDEF" not in prompt


class TestParseQuizResponse:
    def test_missing_type_defaults_to_requested(self):
        quiz = parse_quiz_response('{"questions": [{"question": "Q?"}], "summary": "S"}', QuizType.ANSWER)
        assert quiz.questions[0].type == QuizType.ANSWER
        assert quiz.summary == "S"

    def test_not_json(self):
        with pytest.raises(QuizGenerationError):
            parse_quiz_response("no json here", QuizType.MCQ)

    def test_questions_not_a_list(self):
        with pytest.raises(QuizGenerationError):
            parse_quiz_response('{"questions": "none"}', QuizType.MCQ)

    def test_invalid_question(self):
        with pytest.raises(QuizGenerationError):
            parse_quiz_response('{"questions": [{"type": "mcq"}]}', QuizType.MCQ)


class TestSchemas:
    def test_request_accepts_camel_and_snake_case(self):
        camel = QuizGenerateRequest(**{"pdfText": "x", "quizType": "answer", "importantTopics": "t"})
        snake = QuizGenerateRequest(pdf_text="x", quiz_type="answer", important_topics="t")
        assert camel == snake

    def test_request_defaults(self):
        request = QuizGenerateRequest()
        assert request.pdf_text == ""
        assert request.quiz_type == QuizType.MCQ

    def test_fill_blank_question_drops_choices(self):
        question = QuizQuestion(question="The ___ sat.", type="fillblank", options=["cat"], correctAnswer="cat")
        assert question.options is None
        assert question.correct_answer is None
