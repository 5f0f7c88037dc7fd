"""
question_bank.py

Load a spreadsheet question bank (.csv or .xlsx) into quiz questions.
- Required columns: Question, Option_A .. Option_D
- The correct option comes from a `Correct` column (a label A-D or the option
  text) or, for .xlsx, from the bold option cell
- Duplicate questions across banks can be dropped
- A quiz can be exported back out as CSV, JSON or Markdown
"""
from __future__ import annotations
import io
import json
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd
from openpyxl import load_workbook

from models.base import new_id
from models.quiz import Question, QuestionType, Quiz

logger = logging.getLogger(__name__)

# --------------------------- Exceptions --------------------------------------
class DatasetLoadError(Exception):
    """Raised when the bank fails to load due to IO or parsing issues."""


class DatasetValidationError(Exception):
    """Raised when the bank loads but violates the expected layout."""


# --------------------------- Helpers -----------------------------------------
OPTION_LABELS: Tuple[str, ...] = ("A", "B", "C", "D")
QUESTION_COLUMN = "Question"
CORRECT_COLUMN = "Correct"
EXPORT_FORMATS = ("csv", "json", "markdown")

Source = Union[str, Path, bytes, BinaryIO]


def option_column(label: str) -> str:
    return f"Option_{label}"


REQUIRED_COLUMNS: Tuple[str, ...] = (QUESTION_COLUMN,) + tuple(option_column(l) for l in OPTION_LABELS)


@dataclass
class ImportReport:
    questions: List[Question] = field(default_factory=list)
    skipped_rows: List[int] = field(default_factory=list)


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value).strip()


def normalize_question_text(text: str) -> str:
    return re.sub(r"\s+", " ", re.sub(r"[^\w\s]", "", text.lower())).strip()


def _read(source: Source, ext: str) -> pd.DataFrame:
    data = io.BytesIO(source) if isinstance(source, bytes) else source
    try:
        if ext == ".csv":
            return pd.read_csv(data, dtype=str)
        return pd.read_excel(data, sheet_name=0, dtype=str)
    except Exception as e:
        raise DatasetLoadError(f"Failed to read {ext} question bank: {e!r}") from e


def _validate_required_columns(df: pd.DataFrame) -> None:
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise DatasetValidationError(
            f"Missing required column(s): {', '.join(missing)}. "
            f"Available columns: {list(df.columns)}"
        )


def _bold_correct_labels(source: Source) -> Dict[int, str]:
    """Row position (0-based, header excluded) -> label of the single bold option cell."""
    data = io.BytesIO(source) if isinstance(source, bytes) else source
    workbook = load_workbook(data, data_only=True)
    try:
        sheet = workbook.active
        header_cells = next(sheet.iter_rows(min_row=1, max_row=1))
        header_map = {
            cell.value.strip(): idx for idx, cell in enumerate(header_cells) if isinstance(cell.value, str)
        }

        lookup: Dict[int, str] = {}
        for position, row in enumerate(sheet.iter_rows(min_row=2)):
            bold: List[str] = []
            for label in OPTION_LABELS:
                idx = header_map.get(option_column(label))
                if idx is None:
                    continue
                cell = row[idx]
                if cell.font and cell.font.bold:
                    bold.append(label)
            if len(bold) > 1:
                raise DatasetValidationError(f"Multiple bold options in row {position + 2}: {bold}")
            if bold:
                lookup[position] = bold[0]
        return lookup
    finally:
        workbook.close()


def _resolve_correct(raw: str, options: Dict[str, str]) -> Optional[str]:
    value = raw.strip()
    if value.upper() in options:
        return options[value.upper()]
    for text in options.values():
        if text.lower() == value.lower():
            return text
    return None


# --------------------------- Public API --------------------------------------
def load_question_bank(
    source: Source,
    *,
    filename: Optional[str] = None,
    skip_invalid: bool = False,
) -> ImportReport:
    """
    Parse a question bank into quiz questions.

    Parameters
    ----------
    source : path, raw bytes or binary file object
    filename : used to pick the reader when `source` is not a path
    skip_invalid : drop rows with no determinable answer instead of raising
    """
    name = filename or (str(source) if isinstance(source, (str, Path)) else "")
    ext = Path(name).suffix.lower()
    if ext not in (".csv", ".xlsx"):
        raise DatasetLoadError(f"Unsupported file extension {ext!r}. Use .csv or .xlsx.")
    if isinstance(source, (str, Path)) and not Path(source).is_file():
        raise DatasetLoadError(f"File not found: {source!s}")

    df = _read(source, ext)
    df.columns = [str(c).strip() for c in df.columns]
    _validate_required_columns(df)

    bold: Dict[int, str] = {}
    if CORRECT_COLUMN not in df.columns:
        if ext != ".xlsx":
            raise DatasetValidationError(f"A {CORRECT_COLUMN!r} column is required for .csv banks")
        if not isinstance(source, (str, Path, bytes)):
            source.seek(0)
        bold = _bold_correct_labels(source)

    report = ImportReport()
    for position, row in enumerate(df.to_dict(orient="records")):
        text = _cell_text(row.get(QUESTION_COLUMN))
        options = {label: _cell_text(row.get(option_column(label))) for label in OPTION_LABELS}
        options = {label: value for label, value in options.items() if value}
        if not text:
            report.skipped_rows.append(position + 2)
            continue

        if CORRECT_COLUMN in df.columns:
            answer = _resolve_correct(_cell_text(row.get(CORRECT_COLUMN)), options)
        else:
            answer = options.get(bold.get(position, ""))

        if answer is None or len(options) < 2:
            if skip_invalid:
                report.skipped_rows.append(position + 2)
                continue
            raise DatasetValidationError(f"No determinable correct option for row {position + 2}: {text!r}")

        points_raw = _cell_text(row.get("Points"))
        try:
            points = max(1, int(float(points_raw))) if points_raw else 1
        except (ValueError, OverflowError):
            if skip_invalid:
                report.skipped_rows.append(position + 2)
                continue
            raise DatasetValidationError(f"Invalid Points in row {position + 2}: {points_raw!r}")

        report.questions.append(Question(
            id=new_id(),
            text=text,
            type=QuestionType.MULTIPLE_CHOICE,
            options=list(options.values()),
            correct_answer=answer,
            points=points,
            explanation=_cell_text(row.get("Explanation")) or None,
        ))

    if report.skipped_rows:
        logger.info("Question bank: skipped rows %s", report.skipped_rows)
    logger.info("Question bank loaded: %d questions", len(report.questions))
    return report


def remove_duplicates(banks: Sequence[Sequence[Question]]) -> Tuple[List[Question], Dict[str, int]]:
    """
    Merge banks keeping the first copy of each question (by normalized text).

    Returns the merged list and, for each duplicated question text, how many
    extra copies were dropped.
    """
    seen: Dict[str, Question] = {}
    dropped: Counter = Counter()
    for bank in banks:
        for question in bank:
            key = normalize_question_text(question.text)
            if key in seen:
                dropped[seen[key].text] += 1
            else:
                seen[key] = question
    return list(seen.values()), dict(dropped)


def export_quiz(quiz: Quiz, fmt: str) -> Tuple[str, str]:
    """Returns (body, media type)."""
    fmt = fmt.lower()
    if fmt == "csv":
        rows = []
        for q in quiz.questions:
            row: Dict[str, Any] = {QUESTION_COLUMN: q.text}
            for label, opt in zip(OPTION_LABELS, q.options or []):
                row[option_column(label)] = opt
            row[CORRECT_COLUMN] = q.correct_answer if isinstance(q.correct_answer, str) else "; ".join(q.correct_answer)
            row["Points"] = q.points
            row["Explanation"] = q.explanation or ""
            rows.append(row)
        columns = list(REQUIRED_COLUMNS) + [CORRECT_COLUMN, "Points", "Explanation"]
        return pd.DataFrame(rows, columns=columns).to_csv(index=False), "text/csv"
    if fmt == "json":
        body = {
            "title": quiz.title,
            "description": quiz.description,
            "category": quiz.subject,
            "questions": [
                {"id": q.id, "text": q.text, "options": q.options, "correctAnswer": q.correct_answer}
                for q in quiz.questions
            ],
        }
        return json.dumps(body, indent=2), "application/json"
    if fmt == "markdown":
        lines = [f"# {quiz.title}", "", quiz.description, ""]
        for number, q in enumerate(quiz.questions, start=1):
            lines.append(f"## {number}. {q.text}")
            lines.append("")
            correct = q.correct_answer if isinstance(q.correct_answer, list) else [q.correct_answer]
            for label, opt in zip(OPTION_LABELS + tuple("EFGH"), q.options or []):
                mark = " **(correct)**" if opt in correct else ""
                lines.append(f"- {label}. {opt}{mark}")
            if not q.options:
                lines.append(f"Answer: {', '.join(correct)}")
            if q.explanation:
                lines.append("")
                lines.append(f"_{q.explanation}_")
            lines.append("")
        return "\n".join(lines), "text/markdown"
    raise ValueError(f"Unsupported export format {fmt!r}. Use one of: {', '.join(EXPORT_FORMATS)}")
