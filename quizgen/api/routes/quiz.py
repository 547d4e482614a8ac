from fastapi import APIRouter, File, HTTPException, Request, UploadFile, status
from starlette.concurrency import run_in_threadpool

from quizgen.core.config import settings
from quizgen.core.logging_config import get_logger
from quizgen.core.rate_limit import limiter
from quizgen.schemas.quiz import (
    ExtractTextResponse,
    QuizGenerateRequest,
    QuizResponse,
    QuizTypeInfo,
)
from quizgen.services.ai_service import (
    QUIZ_TYPE_LABELS,
    QuizGenerationError,
    generate_quiz,
)
from quizgen.services.file_processor import (
    FileProcessingError,
    get_supported_formats,
    process_pdf_upload,
)

router = APIRouter(tags=["Quiz"])

logger = get_logger(__name__)


@router.get("/upload/formats")
def get_upload_formats():
    """Get information about supported file upload formats."""
    return get_supported_formats()


@router.get("/quiz-types", response_model=list[QuizTypeInfo])
def list_quiz_types():
    return [
        QuizTypeInfo(type=quiz_type, label=label, question_count=count)
        for quiz_type, (label, count) in QUIZ_TYPE_LABELS.items()
    ]


@router.post("/extract-pdf-text", response_model=ExtractTextResponse)
@limiter.limit(settings.upload_rate_limit)
async def extract_pdf_text(
    request: Request,
    file: UploadFile | None = File(None),
):
    """
    Extract text from an uploaded PDF.

    The PDF is read without a PDF library, so results are best effort; when
    nothing readable is found the text field carries a message asking the
    user to paste the text manually instead.
    """
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")

    try:
        file_content = await file.read()
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Failed to read file: {str(e)}")

    filename = file.filename or "unknown"
    try:
        # CPU-bound; keep it off the event loop
        result = await run_in_threadpool(process_pdf_upload, file_content, filename, file.content_type)
    except FileProcessingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    return ExtractTextResponse(**result)


@router.post(
    "/generate-quiz",
    response_model=QuizResponse,
    response_model_exclude_none=True,
)
@limiter.limit(settings.generate_rate_limit)
async def generate_quiz_endpoint(request: Request, quiz_request: QuizGenerateRequest):
    """Generate quiz questions and a summary from pasted or extracted text."""
    if not quiz_request.pdf_text.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="PDF text is required")

    try:
        return await generate_quiz(
            pdf_text=quiz_request.pdf_text,
            quiz_type=quiz_request.quiz_type,
            important_topics=quiz_request.important_topics,
        )
    except QuizGenerationError as e:
        logger.warning(f"Quiz generation failed | type={quiz_request.quiz_type.value} | error={e}")
        raise HTTPException(status_code=500, detail=str(e))
