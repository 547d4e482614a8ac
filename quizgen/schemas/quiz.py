from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator


class QuizType(str, Enum):
    MCQ = "mcq"
    ANSWER = "answer"
    FILL_BLANK = "fillblank"


class QuizGenerateRequest(BaseModel):
    """Request to generate a quiz from study text."""
    pdf_text: str = Field("", alias="pdfText")
    quiz_type: QuizType = Field(QuizType.MCQ, alias="quizType")
    important_topics: str | None = Field(None, alias="importantTopics")

    class Config:
        populate_by_name = True

    @field_validator("quiz_type", mode="before")
    @classmethod
    def default_to_fill_blank(cls, value):
        # Anything that is not mcq/answer is treated as fill-in-the-blank
        if isinstance(value, QuizType):
            return value
        if value in (QuizType.MCQ.value, QuizType.ANSWER.value):
            return value
        return QuizType.FILL_BLANK


class QuizQuestion(BaseModel):
    """A single quiz question; options and answer only exist for mcq."""
    question: str
    type: QuizType
    options: list[str] | None = None
    correct_answer: str | None = Field(None, alias="correctAnswer")

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def drop_choices_for_open_questions(self):
        if self.type != QuizType.MCQ:
            self.options = None
            self.correct_answer = None
        return self


class QuizResponse(BaseModel):
    """Generated questions plus a summary of the source text."""
    questions: list[QuizQuestion]
    summary: str = ""


class ExtractTextResponse(BaseModel):
    """Text recovered from an uploaded PDF."""
    text: str
    filename: str
    size: int


class QuizTypeInfo(BaseModel):
    type: QuizType
    label: str
    question_count: str
