import logging
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from core.errors import SourceFileError
from importers.header_aliases import HeaderMap, is_uid_header


logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".csv", ".xlsx", ".xlsm")

# Exports sometimes carry a title block above the real header row
HEADER_SCAN_ROWS = 15


class StatementSheet:
    """One sheet of an uploaded statement: verbatim headers and string rows."""

    def __init__(self, name: str, headers: List[str], rows: List[Dict[str, str]], erip_hint: bool = False):
        self.name = name
        self.headers = headers
        self.rows = rows
        self.header_map = HeaderMap(headers)
        self.erip_hint = erip_hint or self.header_map.looks_like_erip

    def __len__(self) -> int:
        return len(self.rows)

    def __repr__(self) -> str:
        return f"StatementSheet({self.name!r}, rows={len(self.rows)}, erip={self.erip_hint})"


def _unique_headers(cells: List[str]) -> List[str]:
    headers = []
    seen: Dict[str, int] = {}
    for cell in cells:
        header = str(cell).strip()
        if not header:
            headers.append("")
            continue
        if header in seen:
            seen[header] += 1
            header = f"{header}.{seen[header]}"
        else:
            seen[header] = 0
        headers.append(header)
    return headers


def _find_header_row(frame: pd.DataFrame) -> Optional[int]:
    for index in range(min(HEADER_SCAN_ROWS, len(frame))):
        if any(is_uid_header(cell) for cell in frame.iloc[index].tolist()):
            return index
    return None


def _frame_to_sheet(name: str, frame: pd.DataFrame) -> Optional[StatementSheet]:
    frame = frame.fillna("")
    header_index = _find_header_row(frame)
    if header_index is None:
        logger.info(f"Sheet '{name}' has no UID column, skipping")
        return None

    headers = _unique_headers(frame.iloc[header_index].tolist())
    rows = []
    for values in frame.iloc[header_index + 1:].itertuples(index=False):
        row = {
            header: str(value).strip()
            for header, value in zip(headers, values)
            if header
        }
        if any(row.values()):
            rows.append(row)

    lowered = name.lower()
    erip_hint = "erip" in lowered or "ерип" in lowered
    return StatementSheet(name, [h for h in headers if h], rows, erip_hint=erip_hint)


def read_statement(source_path: str) -> List[StatementSheet]:
    """
    Read a bePaid statement (CSV or XLSX) into sheets of string-keyed rows.

    Raises SourceFileError when the file cannot be read, has no sheet with a
    UID column, or holds no data rows.
    """
    path = Path(source_path)
    if not path.exists():
        raise SourceFileError(f"File not found: {source_path}")

    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise SourceFileError(f"Unsupported file type '{suffix}', expected one of {', '.join(SUPPORTED_EXTENSIONS)}")

    try:
        if suffix == ".csv":
            frames = {
                path.stem: pd.read_csv(
                    source_path,
                    sep=None,
                    engine="python",
                    header=None,
                    dtype=str,
                    keep_default_na=False,
                    encoding="utf-8-sig",
                )
            }
        else:
            frames = pd.read_excel(source_path, sheet_name=None, header=None, dtype=str)
    except Exception as e:
        raise SourceFileError(f"Cannot read {path.name}: {e}") from e

    sheets = []
    for name, frame in frames.items():
        sheet = _frame_to_sheet(str(name), frame)
        if sheet is not None:
            sheets.append(sheet)

    if not sheets:
        raise SourceFileError(f"No sheet with a UID column found in {path.name}")
    if not any(len(sheet) for sheet in sheets):
        raise SourceFileError(f"No data rows found in {path.name}")

    return sheets
