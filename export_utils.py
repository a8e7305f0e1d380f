"""
Spreadsheet and document export for processed transcripts.

- .xlsx in/out with openpyxl (one transcript per row, 'transcript' column required)
- .docx with python-docx (markdown-ish model output rendered as real headings, lists, etc.)
- .txt with the copy-ready layout from build_scripts_utils

Every builder returns the file as bytes so the Flask app can stream it and the
CLIs can write it to disk.
"""

import json
import re
from datetime import datetime
from io import BytesIO
from typing import Any, Iterable, Optional, Union

from docx import Document
from docx.shared import Pt
from openpyxl import Workbook, load_workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Font

from batch_runner import BatchResultItem, is_truthy_flag
from build_scripts_utils import format_script_for_copy, markdown_to_plain_text
from errors import ValidationError

XLSX_SHEET_TITLE = "Processed Transcripts"
XLSX_COLUMNS = ["transcript", "outline", "firstSections", "lastSections", "fullContent", "processed", "error"]
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
DOCX_MIMETYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
EXCEL_CELL_LIMIT = 32767  # Max characters Excel accepts in one cell

REPORT_TITLE = "Generated Data Report"
CODE_FONT = "Courier New"

ItemLike = Union[BatchResultItem, dict]


def xml_safe(text: str) -> str:
    """Drop control characters that XML (and so xlsx and docx) cannot store."""
    return ILLEGAL_CHARACTERS_RE.sub("", text or "")


# ------------- SPREADSHEET -------------

def _header_name(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _cell_value(value: Any) -> Any:
    """Keep JSON-friendly scalars; anything else (dates, times) becomes text."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def parse_transcript_workbook(data: bytes) -> list[BatchResultItem]:
    """
    Read batch items from the first sheet of an .xlsx file.

    The first row is the header and must contain a 'transcript' column
    (case-insensitive). Fully blank rows are skipped. Columns written by
    export_batch_to_xlsx (outline, firstSections, lastSections, processed, error)
    are read back so an exported sheet can be resumed; any other column is
    kept in BatchResultItem.extra.

    Raises:
        ValidationError: unreadable file, no data rows, or no 'transcript' column.
    """
    try:
        workbook = load_workbook(BytesIO(data), read_only=True, data_only=True)
    except Exception as e:
        raise ValidationError(f"Could not read the Excel file: {e}") from e

    try:
        sheet = workbook.worksheets[0]
        rows = list(sheet.iter_rows(values_only=True))
    finally:
        workbook.close()

    if not rows:
        raise ValidationError("No data found in the Excel file")
    headers = [_header_name(h) for h in rows[0]]
    data_rows = [r for r in rows[1:] if any(v is not None and str(v).strip() for v in r)]
    if not data_rows:
        raise ValidationError("No data found in the Excel file")

    by_key = {h.lower(): i for i, h in enumerate(headers) if h}
    if "transcript" not in by_key:
        raise ValidationError("The Excel file must have a 'transcript' column")

    def cell(row, key):
        i = by_key.get(key.lower())
        if i is None or i >= len(row):
            return None
        return row[i]

    def text(row, key) -> str:
        value = cell(row, key)
        return "" if value is None else str(value)

    known = {c.lower() for c in XLSX_COLUMNS}
    items = []
    for row in data_rows:
        extra = {
            name: _cell_value(row[i])
            for i, name in enumerate(headers)
            if name and name.lower() not in known and i < len(row)
        }
        processed = is_truthy_flag(cell(row, "processed"))
        items.append(BatchResultItem(
            transcript=text(row, "transcript"),
            outline=text(row, "outline"),
            first_sections=text(row, "firstSections"),
            last_sections=text(row, "lastSections"),
            processed=processed,
            error=(text(row, "error") or None) if not processed else None,
            extra=extra,
        ))
    return items


def _as_items(items: Iterable[ItemLike]) -> list[BatchResultItem]:
    return [i if isinstance(i, BatchResultItem) else BatchResultItem.from_dict(i) for i in items]


def _excel_text(text: Any) -> Any:
    if not isinstance(text, str):
        return text
    text = xml_safe(text)
    if len(text) > EXCEL_CELL_LIMIT:
        print(f"[EXPORT] WARNING: Cell text truncated from {len(text)} to {EXCEL_CELL_LIMIT} characters")
        return text[:EXCEL_CELL_LIMIT]
    return text


def export_batch_to_xlsx(items: Iterable[ItemLike]) -> bytes:
    """
    Write batch results to a single-sheet workbook.

    Generated text is converted to plain text; fullContent is both halves
    joined. Extra input columns follow the fixed ones.
    """
    items = _as_items(items)
    if not items:
        raise ValidationError("No results to export")

    extra_columns: list[str] = []
    for item in items:
        for key in item.extra:
            if key not in extra_columns:
                extra_columns.append(key)

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = XLSX_SHEET_TITLE
    sheet.append(XLSX_COLUMNS + extra_columns)
    for cell in sheet[1]:
        cell.font = Font(bold=True)

    for item in items:
        first = markdown_to_plain_text(item.first_sections)
        last = markdown_to_plain_text(item.last_sections)
        full = "\n\n".join(p for p in (first, last) if p)
        row = [
            _excel_text(item.transcript),
            _excel_text(markdown_to_plain_text(item.outline)),
            _excel_text(first),
            _excel_text(last),
            _excel_text(full),
            "Yes" if item.processed else "No",
            _excel_text(item.error or ""),
        ]
        row.extend(_excel_text(_cell_value(item.extra.get(key))) for key in extra_columns)
        sheet.append(row)

    for column in ("A", "B", "C", "D", "E"):
        sheet.column_dimensions[column].width = 60
    for row in sheet.iter_rows(min_row=2):
        for cell in row:
            cell.alignment = Alignment(wrap_text=True, vertical="top")

    buffer = BytesIO()
    workbook.save(buffer)
    print(f"[EXPORT] Spreadsheet with {len(items)} row(s)")
    return buffer.getvalue()


# ------------- DOCUMENTS -------------

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
_BULLET_RE = re.compile(r"^\s*[-*+]\s+(.*)$")
_NUMBERED_RE = re.compile(r"^\s*\d+[.)]\s+(.*)$")
_QUOTE_RE = re.compile(r"^\s*>\s?(.*)$")
_RULE_RE = re.compile(r"^\s*([-*_])(\s*\1){2,}\s*$")
_FENCE_RE = re.compile(r"^\s*(```|~~~)")
_LINK_RE = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")
_INLINE_RE = re.compile(r"(\*\*[^*]+\*\*|__[^_]+__|\*[^*\s][^*]*\*|(?<!\w)_[^_\s][^_]*_(?!\w)|`[^`]+`)")


def _add_inline_runs(paragraph, text: str) -> None:
    """Add text to paragraph, turning **bold**, *italic* and `code` spans into styled runs."""
    text = _LINK_RE.sub(r"\1", text)
    for token in _INLINE_RE.split(text):
        if not token:
            continue
        if (token.startswith("**") and token.endswith("**")) or (token.startswith("__") and token.endswith("__")):
            paragraph.add_run(token[2:-2]).bold = True
        elif token.startswith("`") and token.endswith("`") and len(token) > 1:
            paragraph.add_run(token[1:-1]).font.name = CODE_FONT
        elif len(token) > 1 and token[0] == token[-1] and token[0] in "*_":
            paragraph.add_run(token[1:-1]).italic = True
        else:
            paragraph.add_run(token)


def _add_code_block(document, lines: list[str]) -> None:
    paragraph = document.add_paragraph()
    run = paragraph.add_run(xml_safe("\n".join(lines)))
    run.font.name = CODE_FONT
    run.font.size = Pt(9)


def render_markdown_to_docx(document, markdown: str) -> None:
    """
    Append markdown to a python-docx Document.

    Handles headings (1-6), bullet and numbered lists, blockquotes, fenced code
    blocks, horizontal rules and bold/italic spans. Anything else becomes a
    plain paragraph.
    """
    code_lines: Optional[list[str]] = None
    for line in xml_safe(markdown).splitlines():
        if _FENCE_RE.match(line):
            if code_lines is None:
                code_lines = []
            else:
                _add_code_block(document, code_lines)
                code_lines = None
            continue
        if code_lines is not None:
            code_lines.append(line)
            continue

        if not line.strip() or _RULE_RE.match(line):
            continue

        heading = _HEADING_RE.match(line)
        if heading:
            document.add_heading(_LINK_RE.sub(r"\1", heading.group(2)).replace("**", ""), level=len(heading.group(1)))
            continue

        for pattern, style in ((_QUOTE_RE, "Quote"), (_BULLET_RE, "List Bullet"), (_NUMBERED_RE, "List Number")):
            match = pattern.match(line)
            if match:
                _add_inline_runs(document.add_paragraph(style=style), match.group(1).strip())
                break
        else:
            _add_inline_runs(document.add_paragraph(), line.strip())

    # Unclosed fence: keep what was collected
    if code_lines:
        _add_code_block(document, code_lines)


def _document_bytes(document) -> bytes:
    buffer = BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def build_markdown_docx(markdown: str, title: Optional[str] = None) -> bytes:
    document = Document()
    if title:
        document.add_heading(xml_safe(title), level=0)
    render_markdown_to_docx(document, markdown)
    return _document_bytes(document)


def _add_batch_sections(document, items: list[BatchResultItem]) -> None:
    for i, item in enumerate(items, 1):
        document.add_heading(f"Transcript {i}", level=1)
        document.add_heading("Transcript:", level=2)
        document.add_paragraph(xml_safe(item.transcript))
        if item.error and not item.processed:
            document.add_paragraph().add_run(f"Error: {xml_safe(item.error)}").italic = True
            continue
        document.add_heading("Đề Cương:", level=2)
        render_markdown_to_docx(document, item.outline)
        document.add_heading("Phần Đầu:", level=2)
        render_markdown_to_docx(document, item.first_sections)
        document.add_heading("Phần Cuối:", level=2)
        render_markdown_to_docx(document, item.last_sections)
        if i < len(items):
            document.add_page_break()


def build_batch_docx(items: Iterable[ItemLike], title: str = XLSX_SHEET_TITLE) -> bytes:
    """One document with a section per batch item."""
    items = _as_items(items)
    if not items:
        raise ValidationError("No results to export")
    document = Document()
    document.add_heading(xml_safe(title), level=0)
    _add_batch_sections(document, items)
    print(f"[EXPORT] Document with {len(items)} transcript(s)")
    return _document_bytes(document)


def _looks_like_items(data: Any) -> bool:
    return isinstance(data, list) and bool(data) and all(isinstance(d, dict) and "transcript" in d for d in data)


def build_report_docx(data: Any, now: Optional[datetime] = None) -> bytes:
    """
    Generic report: title, timestamp, then the data.

    A string is rendered as markdown, a list of batch items as per-item
    sections, and anything else as pretty-printed JSON.
    """
    now = now or datetime.now()
    document = Document()
    document.add_heading(REPORT_TITLE, level=0)
    document.add_paragraph().add_run(f"Generated on: {now.strftime('%Y-%m-%d %H:%M:%S')}").italic = True

    if isinstance(data, str):
        render_markdown_to_docx(document, data)
    elif _looks_like_items(data):
        _add_batch_sections(document, _as_items(data))
    else:
        _add_code_block(document, json.dumps(data, indent=2, ensure_ascii=False).splitlines())
    return _document_bytes(document)


def build_script_docx(outline: str, first_sections: str, last_sections: str) -> bytes:
    document = Document()
    document.add_heading("ĐỀ CƯƠNG KỊCH BẢN", level=1)
    render_markdown_to_docx(document, outline)
    document.add_page_break()
    document.add_heading("KỊCH BẢN ĐẦY ĐỦ", level=1)
    render_markdown_to_docx(document, first_sections)
    render_markdown_to_docx(document, last_sections)
    return _document_bytes(document)


def build_script_txt(outline: str, first_sections: str, last_sections: str) -> bytes:
    return format_script_for_copy(outline, first_sections, last_sections).encode("utf-8")
