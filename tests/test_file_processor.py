"""Tests for upload validation and the extraction cache."""
import pytest

from quizgen.services.file_processor import (
    ExtractionCache,
    FileProcessingError,
    build_extraction_config,
    get_supported_formats,
    process_pdf_upload,
    validate_pdf_upload,
)
from quizgen.services.pdf_extractor import FALLBACK_MESSAGE


class TestValidatePdfUpload:
    def test_accepts_pdf(self):
        validate_pdf_upload(b"%PDF-1.4", "notes.pdf", "application/pdf")

    def test_rejects_other_content_type(self):
        with pytest.raises(FileProcessingError) as exc:
            validate_pdf_upload(b"hello", "notes.txt", "text/plain")
        assert str(exc.value) == "File must be a PDF"
        assert exc.value.status_code == 400

    def test_rejects_missing_content_type(self):
        with pytest.raises(FileProcessingError):
            validate_pdf_upload(b"%PDF-1.4", "notes.pdf", None)

    def test_rejects_oversized(self, monkeypatch):
        from quizgen.core.config import settings
        monkeypatch.setattr(settings, "max_upload_size_mb", 1)
        with pytest.raises(FileProcessingError) as exc:
            validate_pdf_upload(b"x" * (1024 * 1024 + 1), "big.pdf", "application/pdf")
        assert exc.value.status_code == 413
        assert "1 MB" in str(exc.value)


class TestProcessPdfUpload:
    def test_envelope(self, make_pdf):
        pdf = make_pdf(b"BT (Cells divide by mitosis and meiosis) Tj ET")
        result = process_pdf_upload(pdf, "biology.pdf", "application/pdf")
        assert result["filename"] == "biology.pdf"
        assert result["size"] == len(pdf)
        assert "Cells divide by mitosis" in result["text"]

    def test_unreadable_pdf_gets_fallback_text(self):
        blob = bytes(i % 64 for i in range(4096))
        result = process_pdf_upload(blob, "scan.pdf", "application/pdf")
        assert result["text"] == FALLBACK_MESSAGE

    def test_repeat_upload_uses_cache(self, make_pdf, monkeypatch):
        import quizgen.services.file_processor as file_processor

        pdf = make_pdf(b"BT (Repeated upload of the same notes) Tj ET")
        first = process_pdf_upload(pdf, "a.pdf", "application/pdf")

        def fail(*args, **kwargs):
            raise AssertionError("extractor should not run on a cache hit")

        monkeypatch.setattr(file_processor, "extract_pdf", fail)
        second = process_pdf_upload(pdf, "b.pdf", "application/pdf")
        assert second["text"] == first["text"]
        assert second["filename"] == "b.pdf"

    def test_config_change_bypasses_cache(self, make_pdf, monkeypatch):
        from quizgen.core.config import settings

        pdf = make_pdf(b"BT (Thresholds changed between uploads) Tj ET")
        first = process_pdf_upload(pdf, "a.pdf", "application/pdf")
        assert first["text"] != FALLBACK_MESSAGE

        monkeypatch.setattr(settings, "pdf_min_output_chars", 100_000)
        second = process_pdf_upload(pdf, "a.pdf", "application/pdf")
        assert second["text"] == FALLBACK_MESSAGE


class TestExtractionCache:
    def test_evicts_least_recently_used(self):
        cache = ExtractionCache(max_entries=2)
        cache.put("a", "A")
        cache.put("b", "B")
        assert cache.get("a") == "A"
        cache.put("c", "C")
        assert cache.get("b") is None
        assert cache.get("a") == "A"
        assert len(cache) == 2

    def test_disabled_when_size_zero(self):
        cache = ExtractionCache(max_entries=0)
        cache.put("a", "A")
        assert cache.get("a") is None

    def test_fingerprint_is_stable(self):
        assert ExtractionCache.fingerprint(b"abc") == ExtractionCache.fingerprint(b"abc")
        assert ExtractionCache.fingerprint(b"abc") != ExtractionCache.fingerprint(b"abd")

    def test_fingerprint_includes_config(self):
        from quizgen.services.pdf_extractor import ExtractionConfig

        loose = ExtractionCache.fingerprint(b"abc", ExtractionConfig(min_alpha_ratio=0.3))
        strict = ExtractionCache.fingerprint(b"abc", ExtractionConfig(min_alpha_ratio=0.6))
        assert loose != strict


class TestSettingsWiring:
    def test_config_follows_settings(self, monkeypatch):
        from quizgen.core.config import settings
        monkeypatch.setattr(settings, "pdf_plain_text_max_matches", 7)
        monkeypatch.setattr(settings, "pdf_inflate_streams", False)
        config = build_extraction_config()
        assert config.plain_text_max_matches == 7
        assert config.inflate_streams is False

    def test_supported_formats(self):
        formats = get_supported_formats()
        assert formats["documents"] == [".pdf"]
        assert formats["max_file_size_mb"] == 10
