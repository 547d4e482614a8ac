"""
Best-effort text recovery from raw PDF bytes, without a PDF library.

The document is viewed as latin-1 text (one character per byte, so no byte is
lost) and handed to an ordered list of independent strategies, from the most
structured (text objects and their text-show operators) to the least (runs of
printable bytes). Their fragments are merged, cleaned and deduplicated.

Every scan is linear in the input: text-object and stream boundaries are
paired from a single token pass, and every regular expression bounds its
repetitions, so adversarial input cannot trigger runaway backtracking.
Nothing in here raises to the caller; the worst outcome is FALLBACK_MESSAGE
or ERROR_MESSAGE.
"""

import re
import time
import zlib
from dataclasses import dataclass, field
from functools import cached_property
from itertools import islice
from typing import Callable, Iterator

from quizgen.core.logging_config import get_logger
from quizgen.services.text_utils import (
    clean_and_deduplicate,
    decode_pdf_string,
    is_readable_text,
)

logger = get_logger(__name__)

FALLBACK_MESSAGE = (
    "This PDF appears to be image-based, encrypted, or uses a format not "
    "supported by this extractor. Please try copying and pasting the text "
    "manually, or use an OCR tool for image-based PDFs."
)
ERROR_MESSAGE = "Error extracting text from PDF. Please try pasting the text manually."

# Upper bounds on a single match; they keep every scan linear
MAX_LITERAL_CHARS = 4096
MAX_ARRAY_CHARS = 16384
MAX_PLAIN_RUN_CHARS = 4096


@dataclass(frozen=True)
class ExtractionConfig:
    """Tunable thresholds for the extraction pipeline."""
    min_output_chars: int = 10
    min_alpha_ratio: float = 0.3
    heuristic_alpha_ratio: float = 0.5
    plain_text_max_matches: int = 50
    byte_walk_trigger_chars: int = 50
    byte_walk_max_bytes: int = 500_000
    byte_walk_max_chars: int = 10_000
    inflate_streams: bool = True
    max_inflated_bytes: int = 2 * 1024 * 1024


@dataclass
class ExtractionStats:
    """Counters for one extraction call."""
    input_bytes: int = 0
    text_objects: int = 0
    show_operators: int = 0
    streams: int = 0
    inflated_streams: int = 0
    plain_text_matches: int = 0
    byte_walk_used: bool = False
    fragments: dict[str, int] = field(default_factory=dict)
    failed_strategies: list[str] = field(default_factory=list)
    duration_ms: float = 0.0


@dataclass
class ExtractionResult:
    text: str
    fallback: bool
    stats: ExtractionStats


@dataclass(frozen=True)
class PdfDocument:
    """Read-only view over the uploaded bytes."""
    data: bytes

    @cached_property
    def text(self) -> str:
        return self.data.decode("latin-1")


Strategy = Callable[[PdfDocument, ExtractionConfig, ExtractionStats], list[str]]


# ============================================
# Patterns
# ============================================

# (literal) Tj | (literal) ' | (literal) " | [ (a) -20 (b) ] TJ
_SHOW_TEXT_RE = re.compile(
    r"\((?P<literal>(?:[^\\()]|\\.){0,%d})\)\s*(?:Tj|'|\")"
    r"|\[(?P<array>[^\[\]]{0,%d})\]\s*TJ" % (MAX_LITERAL_CHARS, MAX_ARRAY_CHARS),
    re.DOTALL,
)
_ARRAY_ITEM_RE = re.compile(
    r"\((?P<literal>(?:[^\\()]|\\.){0,%d})\)|(?P<offset>-?\d+(?:\.\d+)?)" % MAX_LITERAL_CHARS,
    re.DOTALL,
)
_BARE_LITERAL_RE = re.compile(
    r"\(((?:[^\\()]|\\.){2,%d})\)" % MAX_LITERAL_CHARS,
    re.DOTALL,
)
_TEXT_OBJECT_TOKEN_RE = re.compile(r"(?<![A-Za-z])(BT|ET)(?![A-Za-z])")
_STREAM_TOKEN_RE = re.compile(r"(?<![A-Za-z])(endstream|stream)(?![A-Za-z])")
_PLAIN_TEXT_RE = re.compile(
    r"[A-Za-z]{3,}[\w\s.,;:!?'\"()&-]{20,%d}" % MAX_PLAIN_RUN_CHARS,
    re.ASCII,
)
_PRINTABLE_RUN_RE = re.compile(rb"[\x20-\x7e]{3,}")

# Words that mark a plain-text match as structure rather than prose
_STRUCTURAL_KEYWORDS = ("endobj", "stream", "xref")

# TJ offsets at or below this (thousandths of an em) read as a word gap
_WORD_GAP_OFFSET = -200


# ============================================
# Scanning helpers
# ============================================


def _paired_regions(text: str, token_re: re.Pattern, open_token: str) -> Iterator[tuple[int, int]]:
    """
    Yield (start, end) spans between an opening token and the next closing
    token, non-overlapping and in document order. Openers seen while a region
    is already open belong to that region; closers with nothing open are
    ignored.
    """
    start = None
    for match in token_re.finditer(text):
        if match.group(1) == open_token:
            if start is None:
                start = match.end()
        elif start is not None:
            yield start, match.start()
            start = None


def _accept(text: str, ratio: float) -> str | None:
    text = text.strip()
    if text and is_readable_text(text, ratio):
        return text
    return None


def _join_array(array_body: str) -> str:
    """Glue the strings of a TJ array; large negative offsets become spaces."""
    parts = []
    for item in _ARRAY_ITEM_RE.finditer(array_body):
        literal = item.group("literal")
        if literal is not None:
            parts.append(decode_pdf_string(literal))
        elif parts and float(item.group("offset")) <= _WORD_GAP_OFFSET:
            parts.append(" ")
    return "".join(parts)


def _show_operator_fragments(content: str, config: ExtractionConfig, stats: ExtractionStats) -> list[str]:
    fragments = []
    for match in _SHOW_TEXT_RE.finditer(content):
        stats.show_operators += 1
        literal = match.group("literal")
        if literal is not None:
            decoded = decode_pdf_string(literal)
        else:
            decoded = _join_array(match.group("array"))
        accepted = _accept(decoded, config.min_alpha_ratio)
        if accepted:
            fragments.append(accepted)
    return fragments


def _text_object_fragments(content: str, config: ExtractionConfig, stats: ExtractionStats) -> list[str]:
    fragments = []
    for start, end in _paired_regions(content, _TEXT_OBJECT_TOKEN_RE, "BT"):
        stats.text_objects += 1
        fragments.extend(_show_operator_fragments(content[start:end], config, stats))
    return fragments


def _stream_bodies(text: str) -> Iterator[str]:
    for start, end in _paired_regions(text, _STREAM_TOKEN_RE, "stream"):
        body = text[start:end]
        # The keyword is followed by CRLF or LF; the body ends with an EOL
        if body.startswith("\r\n"):
            body = body[2:]
        elif body.startswith(("\n", "\r")):
            body = body[1:]
        yield body.rstrip("\r\n")


def _inflate(body: str, budget: int) -> str | None:
    """Try FlateDecode on a stream body, producing at most ``budget`` bytes."""
    if budget <= 0 or len(body) < 2:
        return None
    try:
        inflated = zlib.decompressobj().decompress(body.encode("latin-1"), budget)
    except zlib.error:
        return None
    return inflated.decode("latin-1") if inflated else None


def _stream_content_fragments(content: str, config: ExtractionConfig, stats: ExtractionStats) -> list[str]:
    fragments = _text_object_fragments(content, config, stats)
    for match in _BARE_LITERAL_RE.finditer(content):
        accepted = _accept(decode_pdf_string(match.group(1)), config.min_alpha_ratio)
        if accepted:
            fragments.append(accepted)
    return fragments


# ============================================
# Strategies
# ============================================


def scan_text_objects(document: PdfDocument, config: ExtractionConfig, stats: ExtractionStats) -> list[str]:
    """Text-show operators inside BT ... ET text objects."""
    return _text_object_fragments(document.text, config, stats)


def scan_show_operators(document: PdfDocument, config: ExtractionConfig, stats: ExtractionStats) -> list[str]:
    """Text-show operators anywhere, for text objects with broken delimiters."""
    return _show_operator_fragments(document.text, config, stats)


def scan_streams(document: PdfDocument, config: ExtractionConfig, stats: ExtractionStats) -> list[str]:
    """Text objects and bare literals inside stream ... endstream regions."""
    fragments = []
    inflate_budget = config.max_inflated_bytes
    for body in _stream_bodies(document.text):
        stats.streams += 1
        fragments.extend(_stream_content_fragments(body, config, stats))

        if not config.inflate_streams:
            continue
        inflated = _inflate(body, inflate_budget)
        if inflated is None:
            continue
        stats.inflated_streams += 1
        inflate_budget -= len(inflated)
        fragments.extend(_stream_content_fragments(inflated, config, stats))
    return fragments


def scan_plain_text(document: PdfDocument, config: ExtractionConfig, stats: ExtractionStats) -> list[str]:
    """Long runs of letters and punctuation that no operator accounts for."""
    fragments = []
    matches = islice(_PLAIN_TEXT_RE.finditer(document.text), config.plain_text_max_matches)
    for match in matches:
        stats.plain_text_matches += 1
        candidate = match.group(0)
        if any(keyword in candidate for keyword in _STRUCTURAL_KEYWORDS):
            continue
        accepted = _accept(candidate, config.heuristic_alpha_ratio)
        if accepted:
            fragments.append(accepted)
    return fragments


def walk_printable_bytes(document: PdfDocument, config: ExtractionConfig, stats: ExtractionStats) -> list[str]:
    """
    Last resort: every run of printable ASCII bytes longer than two
    characters that passes the readability filter. Control bytes, tabs and
    line breaks all end a run.
    """
    stats.byte_walk_used = True
    fragments = []
    total = 0
    window = document.data[:config.byte_walk_max_bytes]
    for match in _PRINTABLE_RUN_RE.finditer(window):
        accepted = _accept(match.group(0).decode("ascii"), config.heuristic_alpha_ratio)
        if not accepted or len(accepted) < 3:
            continue
        fragments.append(accepted[:config.byte_walk_max_chars - total])
        total += len(accepted) + 1
        if total >= config.byte_walk_max_chars:
            break
    return fragments


STRATEGIES: tuple[Strategy, ...] = (
    scan_text_objects,
    scan_show_operators,
    scan_streams,
    scan_plain_text,
)
FALLBACK_STRATEGY: Strategy = walk_printable_bytes


# ============================================
# Pipeline
# ============================================


def _run_strategy(
    strategy: Strategy,
    document: PdfDocument,
    config: ExtractionConfig,
    stats: ExtractionStats,
) -> list[str]:
    name = strategy.__name__
    try:
        fragments = strategy(document, config, stats)
    except Exception as e:
        logger.warning(f"Extraction strategy failed | strategy={name} | error={e}")
        stats.failed_strategies.append(name)
        return []
    stats.fragments[name] = len(fragments)
    logger.debug(f"Strategy {name} produced {len(fragments)} fragments")
    return fragments


def run_pipeline(
    document: PdfDocument,
    config: ExtractionConfig,
    stats: ExtractionStats,
    strategies: tuple[Strategy, ...] = STRATEGIES,
    fallback_strategy: Strategy | None = FALLBACK_STRATEGY,
) -> str:
    """Run the strategies in order and return their merged, raw output."""
    fragments: list[str] = []
    for strategy in strategies:
        fragments.extend(_run_strategy(strategy, document, config, stats))

    combined = " ".join(fragments)
    if fallback_strategy is not None and len(combined) < config.byte_walk_trigger_chars:
        logger.debug(f"Only {len(combined)} chars recovered, walking raw bytes")
        extra = _run_strategy(fallback_strategy, document, config, stats)
        combined = " ".join([combined, *extra])
    return combined


def extract_pdf(data: bytes, config: ExtractionConfig | None = None) -> ExtractionResult:
    """
    Extract readable text from raw PDF bytes.

    Args:
        data: The uploaded file contents
        config: Thresholds; defaults to ExtractionConfig()

    Returns:
        ExtractionResult whose text is the cleaned text, or FALLBACK_MESSAGE
        (fallback=True) when too little was recovered. Never raises.
    """
    config = config or ExtractionConfig()
    stats = ExtractionStats()
    start_time = time.time()

    try:
        document = PdfDocument(bytes(data))
        stats.input_bytes = len(document.data)
        logger.info(f"Starting PDF text extraction | bytes={stats.input_bytes}")

        cleaned = clean_and_deduplicate(run_pipeline(document, config, stats)).strip()
        stats.duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"PDF text extraction finished | chars={len(cleaned)} | "
            f"text_objects={stats.text_objects} | operators={stats.show_operators} | "
            f"streams={stats.streams} | inflated={stats.inflated_streams} | "
            f"plain_matches={stats.plain_text_matches} | byte_walk={stats.byte_walk_used} | "
            f"duration={stats.duration_ms:.2f}ms"
        )

        if len(cleaned) < config.min_output_chars:
            logger.info("No readable text found; PDF may be image-based or encrypted")
            return ExtractionResult(FALLBACK_MESSAGE, fallback=True, stats=stats)
        return ExtractionResult(cleaned, fallback=False, stats=stats)

    except Exception as e:
        stats.duration_ms = (time.time() - start_time) * 1000
        logger.error(f"PDF extraction error: {e}", exc_info=True)
        return ExtractionResult(ERROR_MESSAGE, fallback=True, stats=stats)


def extract_text_from_pdf(data: bytes, config: ExtractionConfig | None = None) -> str:
    """Extract readable text from raw PDF bytes; always returns a non-empty string."""
    return extract_pdf(data, config).text
