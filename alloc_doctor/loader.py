"""
loader.py: entity file loader for alloc-doctor

Supports: .csv .tsv .txt .xlsx .xlsm .json

Public API:
    result  = load_entities("clients.csv", "client")
    records = result["records"]

Result dict keys:
    records          : list of header-named dicts, normalized for the entity kind
    kind             : "client", "worker" or "task"
    detected_format  : "csv", "xlsx", "json", ...
    detected_encoding: encoding name for text files; None for workbooks
    delimiter        : "," for .csv, "\t" for .tsv; None otherwise
    sheet_name       : sheet used for workbooks; None otherwise
    columns          : header row as read
    warnings         : list of warning strings
"""

from __future__ import annotations

import io
import json
from pathlib import Path
from typing import Any, Optional

import chardet
import pandas as pd

from alloc_doctor.models import (
    ENTITY_KINDS,
    HEADERS_BY_KIND,
    ID_FIELD_BY_KIND,
    is_blank,
    normalize_record,
)

# ── Format groups ──────────────────────────────────────────────────────────────
TEXT_FORMATS = {".csv", ".tsv", ".txt"}
EXCEL_FORMATS = {".xlsx", ".xlsm"}
JSON_FORMATS = {".json"}
ALL_FORMATS = TEXT_FORMATS | EXCEL_FORMATS | JSON_FORMATS
TEXT_DELIMITERS = {".csv": ",", ".tsv": "\t"}

SHEET_NAMES_BY_KIND = {"client": "Clients", "worker": "Workers", "task": "Tasks"}


# ══════════════════════════════════════════════════════════════════════════════
# TEXT DECODING
# ══════════════════════════════════════════════════════════════════════════════

def _detect_encoding(raw: bytes) -> tuple[str, float]:
    result = chardet.detect(raw)
    detected = result.get("encoding") or "utf-8"
    return detected, round(result.get("confidence") or 0.0, 2)


def _read_text_safely(raw: bytes, preferred_encoding: str) -> str:
    """
    Decode raw bytes line by line.

    Each line tries UTF-8, then the detected encoding, then latin-1, and
    finally CP1252 with replacement. Embedded null bytes are dropped.
    """
    if raw.startswith(b"\xef\xbb\xbf"):
        raw = raw[3:]
    decoded_lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: str | None = None
        for enc in ("utf-8", preferred_encoding, "latin-1"):
            if not enc:
                continue
            try:
                decoded = raw_line.decode(enc)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded.replace("\x00", ""))
    return "\n".join(decoded_lines)


# ══════════════════════════════════════════════════════════════════════════════
# FORMAT LOADERS
# ══════════════════════════════════════════════════════════════════════════════

def _load_text(path: Path, suffix: str) -> dict:
    raw = path.read_bytes()
    encoding, confidence = _detect_encoding(raw)
    text = _read_text_safely(raw, encoding)
    # .txt leaves the delimiter to pandas' python-engine sniffer.
    delimiter = TEXT_DELIMITERS.get(suffix)

    if not text.strip():
        df = pd.DataFrame()
    else:
        try:
            df = pd.read_csv(
                io.StringIO(text),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                sep=delimiter,
                engine="c" if delimiter else "python",
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeError) as exc:
            raise ValueError(f"Could not parse {suffix} file: {exc}") from exc

    warnings = []
    if encoding.lower().replace("-", "") not in ("utf8", "ascii") and confidence < 0.5:
        warnings.append(f"Encoding guessed as {encoding} with low confidence ({confidence})")

    return {
        "dataframe": df,
        "detected_format": suffix.lstrip("."),
        "detected_encoding": encoding,
        "delimiter": delimiter,
        "sheet_name": None,
        "warnings": warnings,
    }


def _pick_sheet(all_sheets: list[str], kind: str, sheet_name: Optional[str]) -> tuple[str, list[str]]:
    warnings: list[str] = []
    if sheet_name is not None:
        if sheet_name not in all_sheets:
            raise ValueError(f"Sheet '{sheet_name}' not found. Available: {all_sheets}")
        return sheet_name, warnings
    if len(all_sheets) == 1:
        return all_sheets[0], warnings

    wanted = SHEET_NAMES_BY_KIND[kind].lower()
    for name in all_sheets:
        if name.strip().lower() == wanted:
            return name, warnings

    chosen = all_sheets[0]
    others = [name for name in all_sheets if name != chosen]
    warnings.append(
        f"Multiple sheets found ({len(all_sheets)} total); used '{chosen}'. Ignored: {others}"
    )
    return chosen, warnings


def _load_excel(path: Path, suffix: str, kind: str, sheet_name: Optional[str]) -> dict:
    try:
        with pd.ExcelFile(path, engine="openpyxl") as xf:
            all_sheets = list(xf.sheet_names)
    except Exception as exc:
        raise ValueError(f"Could not open workbook: {exc}") from exc

    chosen, warnings = _pick_sheet(all_sheets, kind, sheet_name)
    try:
        df = pd.read_excel(path, sheet_name=chosen, dtype=str, engine="openpyxl")
    except Exception as exc:
        raise ValueError(f"Could not load sheet '{chosen}': {exc}") from exc

    return {
        "dataframe": df,
        "detected_format": suffix.lstrip("."),
        "detected_encoding": None,
        "delimiter": None,
        "sheet_name": chosen,
        "warnings": warnings,
    }


def _json_cell(value: Any) -> Any:
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"))
    return value


def _load_json(path: Path) -> dict:
    """
    Load a .json file holding an array of row objects.

    A top-level object is searched for its first array value, so exported
    payloads like ``{"clients": [...]}`` load directly.
    """
    raw = path.read_bytes()
    encoding, _ = _detect_encoding(raw)
    text = _read_text_safely(raw, encoding)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON: {exc}") from exc

    warnings: list[str] = []
    if isinstance(data, dict):
        list_keys = [key for key, value in data.items() if isinstance(value, list)]
        if not list_keys:
            raise ValueError("JSON object has no array of rows")
        warnings.append(f"Nested JSON: used array at top-level key '{list_keys[0]}'")
        data = data[list_keys[0]]
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ValueError("JSON root must be an array of objects")

    # Nested lists/objects become compact JSON text, like a spreadsheet cell.
    rows = [{key: _json_cell(value) for key, value in item.items()} for item in data]
    return {
        "dataframe": pd.DataFrame(rows),
        "detected_format": "json",
        "detected_encoding": encoding,
        "delimiter": None,
        "sheet_name": None,
        "warnings": warnings,
    }


# ══════════════════════════════════════════════════════════════════════════════
# RECORD EXTRACTION
# ══════════════════════════════════════════════════════════════════════════════

def _clean_cell(value: Any) -> Any:
    if is_blank(value):
        return ""
    if isinstance(value, str):
        return value.strip()
    return value


def dataframe_to_records(df: pd.DataFrame, kind: str) -> tuple[list[dict[str, Any]], list[str]]:
    """Header-named, normalized rows for one entity kind plus column warnings."""
    df = df.rename(columns=lambda column: str(column).strip())
    columns = list(df.columns)
    key_column = ID_FIELD_BY_KIND[kind]
    if key_column not in columns:
        raise ValueError(f"{kind} file has no '{key_column}' column. Columns found: {columns}")

    expected = HEADERS_BY_KIND[kind]
    warnings = []
    missing = [header for header in expected if header not in columns]
    if missing:
        warnings.append(f"{kind} file is missing columns: {', '.join(missing)}")
    extra = [column for column in columns if column not in expected]
    if extra:
        warnings.append(f"{kind} file has unexpected columns: {', '.join(extra)}")

    records = []
    for row in df.to_dict(orient="records"):
        cleaned = {key: _clean_cell(value) for key, value in row.items()}
        if all(value == "" for value in cleaned.values()):
            continue
        records.append(normalize_record(cleaned))
    return records, warnings


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════════════════════

def load_file(path: "str | Path", kind: str = "client", sheet_name: Optional[str] = None) -> dict:
    """
    Read a supported file into a pandas DataFrame without interpreting rows.

    ``kind`` only steers sheet selection in multi-sheet workbooks.

    Raises:
        FileNotFoundError  if the file does not exist.
        ValueError         if the format is unsupported or unreadable.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    if suffix not in ALL_FORMATS:
        supported = ", ".join(sorted(ALL_FORMATS))
        raise ValueError(f"Unsupported format '{suffix}'. Supported: {supported}")

    if suffix in TEXT_FORMATS:
        return _load_text(path, suffix)
    if suffix in EXCEL_FORMATS:
        return _load_excel(path, suffix, kind, sheet_name)
    return _load_json(path)


def load_entities(path: "str | Path", kind: str, sheet_name: Optional[str] = None) -> dict:
    """Load one entity file into normalized header-named records."""
    if kind not in ENTITY_KINDS:
        raise ValueError(f"Unknown entity kind '{kind}'. Expected one of: {', '.join(ENTITY_KINDS)}")
    loaded = load_file(path, kind, sheet_name)
    df = loaded["dataframe"]
    if df.columns.empty:
        raise ValueError(f"{kind} file {path} is empty")

    records, column_warnings = dataframe_to_records(df, kind)
    return {
        "records": records,
        "kind": kind,
        "detected_format": loaded["detected_format"],
        "detected_encoding": loaded["detected_encoding"],
        "delimiter": loaded["delimiter"],
        "sheet_name": loaded["sheet_name"],
        "columns": [str(column).strip() for column in df.columns],
        "warnings": loaded["warnings"] + column_warnings,
    }


def load_workbook_entities(path: "str | Path") -> dict:
    """
    Load all three kinds from one workbook with Clients/Workers/Tasks sheets.

    A kind whose sheet is absent comes back as an empty list with a warning.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if path.suffix.lower() not in EXCEL_FORMATS:
        raise ValueError(f"Expected an .xlsx/.xlsm workbook, got '{path.suffix}'")

    try:
        with pd.ExcelFile(path, engine="openpyxl") as xf:
            sheets = {name.strip().lower(): name for name in xf.sheet_names}
    except Exception as exc:
        raise ValueError(f"Could not open workbook: {exc}") from exc

    result: dict[str, Any] = {"warnings": []}
    for kind in ENTITY_KINDS:
        sheet = sheets.get(SHEET_NAMES_BY_KIND[kind].lower())
        if sheet is None:
            result[kind] = []
            result["warnings"].append(f"Workbook has no '{SHEET_NAMES_BY_KIND[kind]}' sheet")
            continue
        loaded = load_entities(path, kind, sheet_name=sheet)
        result[kind] = loaded["records"]
        result["warnings"].extend(loaded["warnings"])
    return result
