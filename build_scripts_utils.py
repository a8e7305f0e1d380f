"""
Shared text helpers for the transcript pipeline and the exporters.
"""

import re
from datetime import date

# ------------- SECTION SPLITTING -------------

_BLANK_LINE_SPLIT_RE = re.compile(r"\n\s*\n")


def split_into_chunks(text: str) -> list[str]:
    """Split text on blank-line boundaries, dropping empty chunks."""
    if not text:
        return []
    chunks = _BLANK_LINE_SPLIT_RE.split(str(text).replace("\r\n", "\n"))
    return [c.strip() for c in chunks if c.strip()]


def split_sections(text: str) -> tuple[str, str]:
    """
    Split a script into (first_sections, last_sections) by chunk count.

    With N blank-line separated chunks, the first half gets N // 2 chunks and the
    second half the remaining ceil(N / 2); both are rejoined with blank lines.
    The split is positional only: it does not look at word counts or headings.
    """
    chunks = split_into_chunks(text)
    mid_point = len(chunks) // 2
    return "\n\n".join(chunks[:mid_point]), "\n\n".join(chunks[mid_point:])


# ------------- MARKDOWN NORMALIZATION -------------

_FENCE_RE = re.compile(r"^\s*(```|~~~)")
_HR_RE = re.compile(r"^\s*([-*_])(\s*\1){2,}\s*$")
_HEADING_RE = re.compile(r"^\s*#{1,6}(\s+|$)")
_BLOCKQUOTE_RE = re.compile(r"^\s*>\s?")
_BULLET_RE = re.compile(r"^\s*[-*+]\s+")
_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
_LINK_RE = re.compile(r"\[([^\]]*)\]\([^)]*\)")
_INLINE_CODE_RE = re.compile(r"`+([^`]*?)`+")
_STAR_EMPHASIS_RE = re.compile(r"(\*{1,3})(?=\S)(.+?)(?<=\S)\1")
_UNDERSCORE_EMPHASIS_RE = re.compile(r"(?<!\w)(_{1,3})(?=\S)(.+?)(?<=\S)\1(?!\w)")
_EXTRA_BLANK_LINES_RE = re.compile(r"\n{3,}")


def _strip_line_markers(line: str) -> str | None:
    """Remove block-level markers from one line. None means drop the line."""
    if _FENCE_RE.match(line):
        return None
    if _HR_RE.match(line):
        return ""
    line = _HEADING_RE.sub("", line, count=1)
    line = _BLOCKQUOTE_RE.sub("", line, count=1)
    line = _BULLET_RE.sub("", line, count=1)
    return line.rstrip()


def _plain_text_pass(text: str) -> str:
    lines = []
    for line in text.split("\n"):
        stripped = _strip_line_markers(line)
        if stripped is not None:
            lines.append(stripped)
    text = "\n".join(lines)
    text = _IMAGE_RE.sub(r"\1", text)
    text = _LINK_RE.sub(r"\1", text)
    text = _INLINE_CODE_RE.sub(r"\1", text)
    text = _STAR_EMPHASIS_RE.sub(r"\2", text)
    text = _UNDERSCORE_EMPHASIS_RE.sub(r"\2", text)
    text = _EXTRA_BLANK_LINES_RE.sub("\n\n", text)
    return text.strip()


def markdown_to_plain_text(markdown) -> str:
    """
    Convert lightweight markdown to plain text for spreadsheets and clipboard copy.

    Strips heading, emphasis, link, bullet, code and blockquote markers and
    horizontal rules, then collapses runs of blank lines. Numbered list prefixes
    are kept because outlines use them as section numbers. Passes repeat until
    nothing changes, so applying this twice gives the same result as once.
    """
    if not markdown:
        return ""
    text = str(markdown).replace("\r\n", "\n")
    while True:
        cleaned = _plain_text_pass(text)
        if cleaned == text:
            return cleaned
        text = cleaned


# ------------- SCRIPT TEXT -------------

def format_script_for_copy(outline: str, first_sections: str, last_sections: str) -> str:
    """Full script text used for clipboard copy and .txt download."""
    return f"""ĐỀ CƯƠNG KỊCH BẢN:

{outline or ''}


KỊCH BẢN ĐẦY ĐỦ:

{first_sections or ''}

{last_sections or ''}"""


def script_filename(day: date | None = None, extension: str = "txt") -> str:
    """Download name for a script, e.g. kich_ban_2024-05-01.txt."""
    day = day or date.today()
    return f"kich_ban_{day.isoformat()}.{extension}"
