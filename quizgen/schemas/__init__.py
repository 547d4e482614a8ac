from quizgen.schemas.quiz import (
    QuizType,
    QuizGenerateRequest,
    QuizQuestion,
    QuizResponse,
    ExtractTextResponse,
    QuizTypeInfo,
)

__all__ = [
    "QuizType", "QuizGenerateRequest", "QuizQuestion", "QuizResponse",
    "ExtractTextResponse", "QuizTypeInfo",
]
