"""
Text helpers shared by the PDF extraction strategies: literal-string
unescaping, the readability filter and the final cleanup/dedup pass.
"""

import re

from quizgen.core.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MIN_ALPHA_RATIO = 0.3

# Tokens that only show up in PDF structure, never in extracted prose
PDF_ARTIFACTS = (
    "endobj", "endstream", "stream", "xref", "trailer", "startxref", "obj",
)
# Dictionary key names, matched as prefixes so FontDescriptor and FontBBox count too
PDF_KEY_PREFIXES = (
    "Type", "Font", "Width", "Height", "BitsPerComponent",
)
_ARTIFACT_RE = re.compile(
    r"\b(?:%s)\b|\b(?:%s)" % ("|".join(PDF_ARTIFACTS), "|".join(PDF_KEY_PREFIXES))
)

_ALPHA_RE = re.compile(r"[A-Za-z]")

_SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "(": "(",
    ")": ")",
    "\\": "\\",
    "'": "'",
    '"': '"',
}

_ESCAPE_RE = re.compile(
    r"\\(?:(?P<simple>[nrt()\\'\"])|(?P<octal>[0-7]{1,3})|u(?P<hex>[0-9a-fA-F]{4}))"
)

_HORIZONTAL_WS_RE = re.compile(r"[^\S\n]+")
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")


def _replace_escape(match: re.Match) -> str:
    if match.group("simple") is not None:
        return _SIMPLE_ESCAPES[match.group("simple")]
    if match.group("octal") is not None:
        code = int(match.group("octal"), 8)
        # Only printable ASCII survives; control bytes are glyph noise
        return chr(code) if 31 < code < 127 else ""
    code = int(match.group("hex"), 16)
    # Lone surrogates cannot be encoded as UTF-8
    return "" if 0xD800 <= code <= 0xDFFF else chr(code)


def decode_pdf_string(raw: str) -> str:
    """
    Resolve the backslash escapes of a PDF literal string.

    Handles \\n \\r \\t \\( \\) \\\\ \\' \\", octal \\ddd (kept only when it
    names a printable ASCII character) and \\uXXXX. Unknown escapes are left
    as they are. Never raises: on any failure the input comes back unchanged.
    """
    if not raw:
        return ""
    try:
        return _ESCAPE_RE.sub(_replace_escape, raw)
    except Exception as e:
        logger.debug(f"Failed to decode PDF string literal: {e}")
        return raw


def alpha_ratio(text: str) -> float:
    if not text:
        return 0.0
    return len(_ALPHA_RE.findall(text)) / len(text)


def is_readable_text(text: str, min_alpha_ratio: float = DEFAULT_MIN_ALPHA_RATIO) -> bool:
    """
    Decide whether a recovered fragment looks like prose.

    A fragment passes when it is at least two characters long, has at least
    one ASCII letter, letters make up at least ``min_alpha_ratio`` of it and
    it carries none of the PDF structure tokens or key names.
    """
    if not text or len(text) < 2:
        return False
    if not _ALPHA_RE.search(text):
        return False
    if alpha_ratio(text) < min_alpha_ratio:
        return False
    return _ARTIFACT_RE.search(text) is None


def normalize_whitespace(text: str) -> str:
    """Collapse horizontal whitespace runs and limit blank lines to one."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _HORIZONTAL_WS_RE.sub(" ", text)
    return _EXCESS_NEWLINES_RE.sub("\n\n", text)


def deduplicate_words(words) -> list[str]:
    """Keep the first case-insensitive occurrence of every word, in order."""
    seen = set()
    unique = []
    for word in words:
        key = word.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(word)
    return unique


def clean_and_deduplicate(text: str) -> str:
    """
    Final merge step for text gathered by several extraction strategies.

    Strategies rediscover the same words from overlapping regions, so after
    whitespace normalisation the text is reduced to its unique words in
    first-seen order. Applying this to its own output changes nothing.
    """
    if not text:
        return ""
    words = normalize_whitespace(text).split()
    return " ".join(deduplicate_words(words))
