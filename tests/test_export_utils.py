"""
Tests for export_utils.py: spreadsheet parsing/export and .docx rendering.
Workbooks and documents are built and read back in memory.
"""

import unittest
import sys
from datetime import datetime
from io import BytesIO
from pathlib import Path

from docx import Document
from openpyxl import Workbook, load_workbook

sys.path.insert(0, str(Path(__file__).parent.parent))

import export_utils
from batch_runner import BatchResultItem
from errors import ValidationError


def make_workbook(rows):
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class TestParseTranscriptWorkbook(unittest.TestCase):

    def test_two_rows(self):
        data = make_workbook([
            ["transcript", "channel"],
            ["First transcript", "A"],
            [None, None],
            ["Second transcript", "B"],
        ])
        items = export_utils.parse_transcript_workbook(data)
        self.assertEqual([i.transcript for i in items], ["First transcript", "Second transcript"])
        self.assertEqual([i.extra for i in items], [{"channel": "A"}, {"channel": "B"}])
        self.assertTrue(all(i.status == "pending" for i in items))

    def test_missing_transcript_column(self):
        data = make_workbook([["text", "channel"], ["First transcript", "A"]])
        with self.assertRaises(ValidationError) as ctx:
            export_utils.parse_transcript_workbook(data)
        self.assertEqual(str(ctx.exception), "The Excel file must have a 'transcript' column")

    def test_header_only(self):
        with self.assertRaises(ValidationError) as ctx:
            export_utils.parse_transcript_workbook(make_workbook([["transcript"]]))
        self.assertEqual(str(ctx.exception), "No data found in the Excel file")

    def test_not_a_workbook(self):
        with self.assertRaises(ValidationError):
            export_utils.parse_transcript_workbook(b"not a spreadsheet")

    def test_exported_sheet_can_be_resumed(self):
        items = [
            BatchResultItem("done one", "O", "F", "L", processed=True),
            BatchResultItem("failed one", error="model refused"),
        ]
        parsed = export_utils.parse_transcript_workbook(export_utils.export_batch_to_xlsx(items))
        self.assertEqual([i.status for i in parsed], ["done", "error"])
        self.assertEqual(parsed[0].first_sections, "F")
        self.assertEqual(parsed[1].error, "model refused")
        self.assertEqual(parsed[0].extra, {})


class TestExportBatchToXlsx(unittest.TestCase):

    def test_columns_and_plain_text(self):
        items = [
            BatchResultItem("t1", "## Outline", "**First** half", "Last *half*", processed=True, extra={"channel": "A"}),
            BatchResultItem("t2", error="model refused"),
        ]
        workbook = load_workbook(BytesIO(export_utils.export_batch_to_xlsx(items)))
        sheet = workbook.active
        self.assertEqual(sheet.title, "Processed Transcripts")

        rows = list(sheet.iter_rows(values_only=True))
        self.assertEqual(list(rows[0]), export_utils.XLSX_COLUMNS + ["channel"])
        self.assertEqual(rows[1][:6], ("t1", "Outline", "First half", "Last half", "First half\n\nLast half", "Yes"))
        self.assertEqual(rows[1][7], "A")
        self.assertEqual(rows[2][5], "No")
        self.assertEqual(rows[2][6], "model refused")

    def test_accepts_dicts(self):
        data = export_utils.export_batch_to_xlsx([{"transcript": "t1", "processed": False}])
        rows = list(load_workbook(BytesIO(data)).active.iter_rows(values_only=True))
        self.assertEqual(rows[1][0], "t1")

    def test_empty(self):
        with self.assertRaises(ValidationError) as ctx:
            export_utils.export_batch_to_xlsx([])
        self.assertEqual(str(ctx.exception), "No results to export")

    def test_long_text_truncated_to_cell_limit(self):
        item = BatchResultItem("x" * (export_utils.EXCEL_CELL_LIMIT + 10))
        rows = list(load_workbook(BytesIO(export_utils.export_batch_to_xlsx([item]))).active.iter_rows(values_only=True))
        self.assertEqual(len(rows[1][0]), export_utils.EXCEL_CELL_LIMIT)


class TestDocxRendering(unittest.TestCase):

    def read(self, payload):
        return Document(BytesIO(payload))

    def test_markdown_blocks(self):
        markdown = (
            "# Heading One\n"
            "### Heading Three\n"
            "Some **bold** and *italic* text\n"
            "- bullet item\n"
            "2. numbered item\n"
            "> a quote\n"
            "```\n"
            "code line\n"
            "```\n"
        )
        document = self.read(export_utils.build_markdown_docx(markdown, title="Doc"))
        by_text = {p.text: p for p in document.paragraphs}

        self.assertEqual(by_text["Doc"].style.name, "Title")
        self.assertEqual(by_text["Heading One"].style.name, "Heading 1")
        self.assertEqual(by_text["Heading Three"].style.name, "Heading 3")
        self.assertEqual(by_text["bullet item"].style.name, "List Bullet")
        self.assertEqual(by_text["numbered item"].style.name, "List Number")
        self.assertEqual(by_text["a quote"].style.name, "Quote")
        self.assertEqual(by_text["code line"].runs[0].font.name, "Courier New")

        runs = by_text["Some bold and italic text"].runs
        self.assertTrue(any(r.text == "bold" and r.bold for r in runs))
        self.assertTrue(any(r.text == "italic" and r.italic for r in runs))

    def test_report_with_markdown_string(self):
        payload = export_utils.build_report_docx("## Findings", now=datetime(2024, 5, 1, 9, 30))
        texts = [p.text for p in self.read(payload).paragraphs]
        self.assertEqual(texts[0], "Generated Data Report")
        self.assertEqual(texts[1], "Generated on: 2024-05-01 09:30:00")
        self.assertIn("Findings", texts)

    def test_report_with_items_and_other_data(self):
        items_doc = self.read(export_utils.build_report_docx([{"transcript": "t1", "outline": "O", "processed": True}]))
        self.assertIn("Đề Cương:", [p.text for p in items_doc.paragraphs])

        json_doc = self.read(export_utils.build_report_docx({"count": 2}))
        self.assertTrue(any('"count": 2' in p.text for p in json_doc.paragraphs))

    def test_batch_docx_sections(self):
        items = [
            BatchResultItem("t1", "Outline text", "First text", "Last text", processed=True),
            BatchResultItem("t2", error="model refused"),
        ]
        texts = [p.text for p in self.read(export_utils.build_batch_docx(items)).paragraphs]
        for label in ("Transcript:", "Đề Cương:", "Phần Đầu:", "Phần Cuối:", "First text", "Error: model refused"):
            self.assertIn(label, texts)

    def test_script_docx_and_txt(self):
        texts = [p.text for p in self.read(export_utils.build_script_docx("O", "F", "L")).paragraphs]
        self.assertIn("ĐỀ CƯƠNG KỊCH BẢN", texts)
        self.assertIn("KỊCH BẢN ĐẦY ĐỦ", texts)
        txt = export_utils.build_script_txt("O", "F", "L").decode("utf-8")
        self.assertTrue(txt.startswith("ĐỀ CƯƠNG KỊCH BẢN:\n\nO"))


class TestControlCharacters(unittest.TestCase):
    """Transcripts and model output can carry form feeds, vertical tabs or NULs."""

    def setUp(self):
        self.item = BatchResultItem(
            "Page one\x0cpage 2\x0b",
            "1. Intro\x00",
            "First\x0bhalf",
            "Last half",
            processed=True,
            extra={"channel": "A\x01"},
        )

    def test_xlsx_export_strips_them(self):
        data = export_utils.export_batch_to_xlsx([self.item, BatchResultItem("t", error="bad\x0cerror")])
        rows = list(load_workbook(BytesIO(data)).active.iter_rows(values_only=True))
        self.assertEqual(rows[1][0], "Page onepage 2")
        self.assertEqual(rows[1][2], "Firsthalf")
        self.assertEqual(rows[1][7], "A")
        self.assertEqual(rows[2][6], "baderror")

    def test_docx_exports_strip_them(self):
        texts = [p.text for p in Document(BytesIO(export_utils.build_batch_docx([self.item], title="Batch\x0b"))).paragraphs]
        self.assertIn("Page onepage 2", texts)
        self.assertIn("Firsthalf", texts)
        self.assertIn("Batch", texts)

        report = Document(BytesIO(export_utils.build_report_docx("Note a\x0cb\n```\ncode\x00 line\n```")))
        texts = [p.text for p in report.paragraphs]
        self.assertIn("Note ab", texts)
        self.assertIn("code line", texts)

    def test_xml_safe_keeps_newlines_and_tabs(self):
        self.assertEqual(export_utils.xml_safe("a\tb\nc\x0bd"), "a\tb\ncd")


if __name__ == "__main__":
    unittest.main()
