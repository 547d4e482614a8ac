"""
AI Service for generating quizzes and summaries using Anthropic Claude.
"""
import json
import re
import time

import anthropic
from pydantic import ValidationError

from quizgen.core.config import settings
from quizgen.core.logging_config import get_logger
from quizgen.schemas.quiz import QuizQuestion, QuizResponse, QuizType

logger = get_logger(__name__)


class QuizGenerationError(Exception):
    """Raised when a quiz cannot be produced; the message is safe to show."""
    pass


class AIConfigurationError(QuizGenerationError):
    pass


SYSTEM_PROMPTS = {
    QuizType.MCQ: (
        "You are an expert quiz generator. Create multiple choice questions "
        "based on the provided PDF content."
    ),
    QuizType.ANSWER: (
        "You are an expert quiz generator. Create descriptive answer questions "
        "(5 marks each) based on the provided PDF content."
    ),
    QuizType.FILL_BLANK: (
        "You are an expert quiz generator. Create fill-in-the-blank questions "
        "based on the provided PDF content."
    ),
}

QUESTION_FORMATS = {
    QuizType.MCQ: """Generate 5 multiple choice questions in this exact JSON format:
{
  "questions": [
    {
      "question": "Question text here?",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correctAnswer": "Option A",
      "type": "mcq"
    }
  ],
  "summary": "Brief summary of the PDF content"
}""",
    QuizType.ANSWER: """Generate 3-4 descriptive questions in this exact JSON format:
{
  "questions": [
    {
      "question": "Explain the key concepts discussed in the text and their practical applications. (5 marks)",
      "type": "answer"
    }
  ],
  "summary": "Brief summary of the PDF content"
}""",
    QuizType.FILL_BLANK: """Generate 5 fill-in-the-blank questions in this exact JSON format:
{
  "questions": [
    {
      "question": "The ________ algorithm is used for optimization problems.",
      "type": "fillblank"
    }
  ],
  "summary": "Brief summary of the PDF content"
}""",
}

QUIZ_TYPE_LABELS = {
    QuizType.MCQ: ("Multiple choice", "5"),
    QuizType.ANSWER: ("Descriptive answer (5 marks)", "3-4"),
    QuizType.FILL_BLANK: ("Fill in the blank", "5"),
}


def get_anthropic_client() -> anthropic.Anthropic:
    """Get configured Anthropic client."""
    if not settings.anthropic_api_key:
        logger.error("Anthropic API key not configured")
        raise AIConfigurationError("AI API key not configured")
    return anthropic.Anthropic(api_key=settings.anthropic_api_key)


async def generate_content(
    prompt: str,
    system_prompt: str = "You are an educational assistant helping students learn effectively.",
    max_tokens: int = 2000,
    temperature: float = 0.7,
) -> str:
    """
    Generate content using Anthropic Claude API.

    Args:
        prompt: The user prompt/question
        system_prompt: The system context for the AI
        max_tokens: Maximum tokens in response
        temperature: Creativity level (0-1)

    Returns:
        Generated text content
    """
    start_time = time.time()
    logger.info(f"Starting AI content generation | model={settings.claude_model} | max_tokens={max_tokens}")
    logger.debug(f"Prompt length: {len(prompt)} chars")

    client = get_anthropic_client()
    try:
        message = client.messages.create(
            model=settings.claude_model,
            max_tokens=max_tokens,
            system=system_prompt,
            messages=[
                {"role": "user", "content": prompt}
            ],
            temperature=temperature,
        )
    except anthropic.APIError as e:
        duration_ms = (time.time() - start_time) * 1000
        logger.error(f"AI generation failed | duration={duration_ms:.2f}ms | error={str(e)}")
        raise QuizGenerationError("Failed to generate quiz") from e

    duration_ms = (time.time() - start_time) * 1000
    content = message.content[0].text

    logger.info(
        f"AI generation completed | duration={duration_ms:.2f}ms | "
        f"input_tokens={message.usage.input_tokens} | output_tokens={message.usage.output_tokens}"
    )

    return content


def strip_json_fences(text: str) -> str:
    """Strip markdown code fences (```json ... ```) from AI responses."""
    stripped = re.sub(r"^```(?:json)?\s*\n?", "", text.strip())
    stripped = re.sub(r"\n?```\s*$", "", stripped)
    return stripped.strip()


def build_quiz_prompt(pdf_text: str, quiz_type: QuizType, important_topics: str | None = None) -> str:
    if len(pdf_text) > settings.max_prompt_chars:
        logger.info(f"Truncating study text from {len(pdf_text)} to {settings.max_prompt_chars} chars")
        pdf_text = pdf_text[:settings.max_prompt_chars]

    topics = f"Important topics to focus on: {important_topics}" if important_topics else ""

    return f"""
PDF Content:
{pdf_text}

{topics}

{QUESTION_FORMATS[quiz_type]}

Make sure the questions are directly based on the content provided in the PDF. Return only valid JSON."""


def parse_quiz_response(raw: str, quiz_type: QuizType) -> QuizResponse:
    """
    Turn the model's reply into a QuizResponse.

    Questions without a type get the requested one; a reply that is not JSON
    or has no question list raises QuizGenerationError.
    """
    try:
        data = json.loads(strip_json_fences(raw))
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse AI response: {e}")
        raise QuizGenerationError("Failed to parse AI response") from e

    if not isinstance(data, dict) or not isinstance(data.get("questions"), list):
        logger.error("Invalid response format from AI: missing questions list")
        raise QuizGenerationError("Failed to parse AI response")

    try:
        questions = [
            QuizQuestion(**{"type": quiz_type.value, **q})
            for q in data["questions"]
            if isinstance(q, dict)
        ]
    except (ValidationError, TypeError) as e:
        logger.error(f"Invalid question in AI response: {e}")
        raise QuizGenerationError("Failed to parse AI response") from e

    summary = data.get("summary") or ""
    return QuizResponse(questions=questions, summary=str(summary))


async def generate_quiz(
    pdf_text: str,
    quiz_type: QuizType = QuizType.MCQ,
    important_topics: str | None = None,
) -> QuizResponse:
    """
    Generate quiz questions and a summary from study text.

    Args:
        pdf_text: Text pasted by the user or extracted from a PDF
        quiz_type: mcq, answer or fillblank
        important_topics: Optional hint about what to focus on

    Returns:
        QuizResponse with the questions and a summary
    """
    logger.info(f"Generating quiz | type={quiz_type.value} | text_chars={len(pdf_text)}")
    raw = await generate_content(
        build_quiz_prompt(pdf_text, quiz_type, important_topics),
        SYSTEM_PROMPTS[quiz_type],
        max_tokens=settings.quiz_max_tokens,
        temperature=settings.quiz_temperature,
    )
    logger.debug(f"Raw AI response: {raw[:500]}")
    quiz = parse_quiz_response(raw, quiz_type)
    logger.info(f"Generated quiz | questions={len(quiz.questions)}")
    return quiz
