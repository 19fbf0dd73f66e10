"""CSV text to spreadsheet conversion used by the exportData bridge operation.

The backend's CSV is split naively: lines on ``\\n``, fields on ``,``. Quoted
fields containing commas or newlines are not supported and come out split.
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

logger = logging.getLogger(__name__)

SHEET_TITLE = "Transactions"
HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(fill_type="solid", start_color="ADD8E6", end_color="ADD8E6")
MAX_COLUMN_WIDTH = 60


def parse_rows(text: str) -> List[List[str]]:
    """Split delimited text into rows of fields. Row 0 is the header."""
    return [line.split(",") for line in text.split("\n")]


def export_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"GoldTrading_Export_{now:%Y%m%d_%H%M%S}.xlsx"


def documents_dir() -> Path:
    """The user's documents folder, or the home directory if there is none."""
    docs = Path.home() / "Documents"
    return docs if docs.is_dir() else Path.home()


def write_workbook(text: str, path: Union[str, Path]) -> Path:
    """
    Write CSV text into a new xlsx file.

    Field j of line i lands in cell (i + 1, j + 1). The header row is bold
    with a light blue fill.

    Args:
        text: Delimited text, first line is the header
        path: Destination file; its directory must exist

    Returns:
        The absolute path of the written file
    """
    rows = parse_rows(text)

    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    widths = {}
    for i, fields in enumerate(rows):
        for j, value in enumerate(fields):
            cell = ws.cell(row=i + 1, column=j + 1, value=value)
            if i == 0:
                cell.font = HEADER_FONT
                cell.fill = HEADER_FILL
            widths[j] = max(widths.get(j, 0), len(value))

    for j, width in widths.items():
        ws.column_dimensions[get_column_letter(j + 1)].width = min(width + 2, MAX_COLUMN_WIDTH)

    target = Path(path).resolve()
    wb.save(target)
    logger.info(f"Wrote {len(rows)} rows to {target}")
    return target
