"""
Tests for spreadsheet question-bank import, de-duplication and quiz export.
"""
import io
import json

import pytest
from openpyxl import Workbook
from openpyxl.styles import Font

from importers.question_bank import (
    DatasetLoadError,
    DatasetValidationError,
    export_quiz,
    load_question_bank,
    normalize_question_text,
    remove_duplicates,
)
from models.quiz import Question, Quiz

HEADER = ["Question", "Option_A", "Option_B", "Option_C", "Option_D"]

CSV_BANK = (
    "Question,Option_A,Option_B,Option_C,Option_D,Correct,Points,Explanation\n"
    "What is 2+2?,3,4,5,6,B,2,Basic sums\n"
    "Capital of France?,Paris,Rome,Berlin,Madrid,paris,,\n"
).encode()


def _xlsx(rows, bold_cells):
    """rows: option rows under HEADER; bold_cells: (row index, column index) pairs, 0-based."""
    wb = Workbook()
    ws = wb.active
    ws.append(HEADER)
    for row in rows:
        ws.append(row)
    for r, c in bold_cells:
        ws.cell(row=r + 2, column=c + 1).font = Font(bold=True)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


class TestCsv:

    def test_correct_by_label_or_text(self):
        report = load_question_bank(CSV_BANK, filename="bank.csv")
        first, second = report.questions
        assert first.options == ["3", "4", "5", "6"]
        assert first.correct_answer == "4"
        assert first.points == 2
        assert first.explanation == "Basic sums"
        assert second.correct_answer == "Paris"
        assert second.points == 1

    def test_unknown_answer(self):
        data = b"Question,Option_A,Option_B,Option_C,Option_D,Correct\nQ?,a,b,c,d,Z\n"
        with pytest.raises(DatasetValidationError):
            load_question_bank(data, filename="bank.csv")
        report = load_question_bank(data, filename="bank.csv", skip_invalid=True)
        assert report.questions == [] and report.skipped_rows == [2]

    def test_numeric_options_keep_their_text(self):
        data = (
            b"Question,Option_A,Option_B,Option_C,Option_D,Correct\n"
            b"What is 2+2?,3,4,5,6,B\n"
            b"Pick one,1,2,,,A\n"
        )
        first, second = load_question_bank(data, filename="bank.csv").questions
        assert first.options == ["3", "4", "5", "6"]
        assert first.correct_answer == "4"
        assert second.options == ["1", "2"]
        assert second.correct_answer == "1"

    def test_invalid_points(self):
        data = b"Question,Option_A,Option_B,Option_C,Option_D,Correct,Points\nQ?,a,b,c,d,A,lots\n"
        with pytest.raises(DatasetValidationError, match="Invalid Points in row 2"):
            load_question_bank(data, filename="bank.csv")
        report = load_question_bank(data, filename="bank.csv", skip_invalid=True)
        assert report.questions == [] and report.skipped_rows == [2]

    def test_missing_columns(self):
        with pytest.raises(DatasetValidationError, match="Option_D"):
            load_question_bank(b"Question,Option_A,Option_B,Option_C,Correct\nQ?,a,b,c,A\n", filename="bank.csv")

    def test_csv_needs_correct_column(self):
        with pytest.raises(DatasetValidationError):
            load_question_bank(b"Question,Option_A,Option_B,Option_C,Option_D\nQ?,a,b,c,d\n", filename="bank.csv")

    def test_unsupported_extension(self):
        with pytest.raises(DatasetLoadError):
            load_question_bank(b"", filename="bank.txt")

    def test_missing_file(self, tmp_path):
        with pytest.raises(DatasetLoadError):
            load_question_bank(tmp_path / "nope.csv")

    def test_reads_path(self, tmp_path):
        path = tmp_path / "bank.csv"
        path.write_bytes(CSV_BANK)
        assert len(load_question_bank(path).questions) == 2


class TestXlsx:

    def test_bold_marks_correct_option(self):
        data = _xlsx(
            [["Largest planet?", "Mars", "Jupiter", "Venus", "Earth"], ["Red planet?", "Mars", "Jupiter", "Venus", "Earth"]],
            bold_cells=[(0, 2), (1, 1)],
        )
        report = load_question_bank(data, filename="planets.xlsx")
        assert [q.correct_answer for q in report.questions] == ["Jupiter", "Mars"]

    def test_file_object(self):
        data = _xlsx([["Largest planet?", "Mars", "Jupiter", "Venus", "Earth"]], bold_cells=[(0, 2)])
        report = load_question_bank(io.BytesIO(data), filename="planets.xlsx")
        assert report.questions[0].correct_answer == "Jupiter"

    def test_multiple_bold_cells(self):
        data = _xlsx([["Q?", "a", "b", "c", "d"]], bold_cells=[(0, 1), (0, 2)])
        with pytest.raises(DatasetValidationError, match="Multiple bold"):
            load_question_bank(data, filename="bank.xlsx")

    def test_row_without_bold_is_skipped(self):
        data = _xlsx([["Q1?", "a", "b", "c", "d"], ["Q2?", "a", "b", "c", "d"]], bold_cells=[(0, 1)])
        report = load_question_bank(data, filename="bank.xlsx", skip_invalid=True)
        assert len(report.questions) == 1
        assert report.skipped_rows == [3]


class TestDuplicates:

    def test_normalized_text(self):
        assert normalize_question_text("  What is   ROI? ") == "what is roi"

    def test_first_copy_wins(self):
        a = [Question(id="1", text="What is ROI?", correct_answer="x"), Question(id="2", text="Define EBIT", correct_answer="y")]
        b = [Question(id="3", text="what is roi", correct_answer="z")]
        merged, dropped = remove_duplicates([a, b])
        assert [q.id for q in merged] == ["1", "2"]
        assert dropped == {"What is ROI?": 1}


class TestExport:

    @pytest.fixture
    def quiz(self):
        return Quiz(
            id="q", title="Sums", description="Arithmetic", subject="Math", created_by="u",
            questions=[
                Question(id="1", text="2+2?", options=["3", "4"], correct_answer="4", explanation="Basic"),
                Question(id="2", text="Name a prime", type="short-answer", correct_answer="7"),
            ],
        )

    def test_csv_reloads(self, quiz):
        body, media_type = export_quiz(quiz, "csv")
        assert media_type == "text/csv"
        report = load_question_bank(body.encode(), filename="sums.csv", skip_invalid=True)
        assert report.questions[0].text == "2+2?"
        assert report.questions[0].correct_answer == "4"
        assert report.questions[0].explanation == "Basic"

    def test_json(self, quiz):
        body, media_type = export_quiz(quiz, "JSON")
        data = json.loads(body)
        assert media_type == "application/json"
        assert data["category"] == "Math"
        assert data["questions"][0]["correctAnswer"] == "4"

    def test_markdown(self, quiz):
        body, _ = export_quiz(quiz, "markdown")
        assert body.startswith("# Sums")
        assert "- B. 4 **(correct)**" in body
        assert "Answer: 7" in body

    def test_unknown_format(self, quiz):
        with pytest.raises(ValueError):
            export_quiz(quiz, "pdf")
