"""
File processor service for uploaded study material.
Validates PDF uploads and runs the heuristic text extractor on them.
"""

import hashlib
import threading
from collections import OrderedDict

from quizgen.core.config import settings
from quizgen.core.logging_config import get_logger
from quizgen.services.pdf_extractor import ExtractionConfig, extract_pdf

PDF_CONTENT_TYPE = "application/pdf"
SUPPORTED_EXTENSIONS = {".pdf"}

logger = get_logger(__name__)


class FileProcessingError(Exception):
    """Raised when an upload is rejected before extraction."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class ExtractionCache:
    """Thread-safe LRU of sha256(file, config) -> extracted text."""

    def __init__(self, max_entries: int):
        self.max_entries = max_entries
        self._entries: OrderedDict[str, str] = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def fingerprint(file_content: bytes, config: ExtractionConfig | None = None) -> str:
        digest = hashlib.sha256(file_content)
        if config is not None:
            # Results depend on the thresholds they were computed with
            digest.update(repr(config).encode("utf-8"))
        return digest.hexdigest()

    def get(self, key: str) -> str | None:
        with self._lock:
            text = self._entries.get(key)
            if text is not None:
                self._entries.move_to_end(key)
            return text

    def put(self, key: str, text: str) -> None:
        if self.max_entries <= 0:
            return
        with self._lock:
            self._entries[key] = text
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


extraction_cache = ExtractionCache(settings.pdf_result_cache_size)


def build_extraction_config() -> ExtractionConfig:
    """Extraction thresholds from application settings."""
    return ExtractionConfig(
        min_output_chars=settings.pdf_min_output_chars,
        min_alpha_ratio=settings.pdf_min_alpha_ratio,
        heuristic_alpha_ratio=settings.pdf_heuristic_alpha_ratio,
        plain_text_max_matches=settings.pdf_plain_text_max_matches,
        byte_walk_trigger_chars=settings.pdf_byte_walk_trigger_chars,
        byte_walk_max_bytes=settings.pdf_byte_walk_max_bytes,
        byte_walk_max_chars=settings.pdf_byte_walk_max_chars,
        inflate_streams=settings.pdf_inflate_streams,
        max_inflated_bytes=settings.pdf_max_inflated_bytes,
    )


def validate_pdf_upload(file_content: bytes, filename: str, content_type: str | None) -> None:
    """Reject uploads that are not declared as PDF or exceed the size ceiling."""
    file_size_mb = len(file_content) / (1024 * 1024)
    logger.debug(f"Validating upload: {filename}, type: {content_type}, size: {file_size_mb:.2f} MB")

    if content_type != PDF_CONTENT_TYPE:
        logger.warning(f"Rejected non-PDF upload: {filename} ({content_type})")
        raise FileProcessingError("File must be a PDF")

    if len(file_content) > settings.max_upload_size_bytes:
        logger.warning(f"File too large: {filename} ({file_size_mb:.2f} MB)")
        raise FileProcessingError(
            f"File size exceeds maximum allowed size of {settings.max_upload_size_mb} MB",
            status_code=413,
        )


def extract_pdf_text(file_content: bytes) -> str:
    """Run the extractor, reusing the result for byte-identical uploads under the same config."""
    config = build_extraction_config()
    key = ExtractionCache.fingerprint(file_content, config)
    cached = extraction_cache.get(key)
    if cached is not None:
        logger.debug(f"Extraction cache hit: {key[:12]}")
        return cached

    result = extract_pdf(file_content, config)
    extraction_cache.put(key, result.text)
    return result.text


def process_pdf_upload(file_content: bytes, filename: str, content_type: str | None) -> dict:
    """
    Validate an uploaded PDF and extract its text.

    Args:
        file_content: Raw bytes of the upload
        filename: Original filename, echoed back
        content_type: MIME type declared by the client

    Returns:
        {"text": ..., "filename": ..., "size": ...}

    Raises:
        FileProcessingError: If the upload is rejected
    """
    logger.info(f"Processing PDF file: {filename}, size: {len(file_content)} bytes")
    validate_pdf_upload(file_content, filename, content_type)

    text = extract_pdf_text(file_content)
    logger.info(f"Extracted text length: {len(text)} characters")
    logger.debug(f"First 200 characters: {text[:200]}")

    return {"text": text, "filename": filename, "size": len(file_content)}


def get_supported_formats() -> dict:
    """Return information about supported file formats."""
    return {
        "documents": sorted(SUPPORTED_EXTENSIONS),
        "content_types": [PDF_CONTENT_TYPE],
        "max_file_size_mb": settings.max_upload_size_mb,
    }
