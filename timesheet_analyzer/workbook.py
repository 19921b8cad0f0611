"""
Upload boundary: reads the first sheet of an uploaded workbook as raw rows
"""

import logging
import zipfile
from io import BytesIO
from typing import Any, List

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .exceptions import WorkbookReadError


logger = logging.getLogger(__name__)


def read_first_sheet(data: bytes) -> List[List[Any]]:
    """
    Flatten the first worksheet to a list of rows

    Row 1 is returned as ordinary data. Cells keep their native types
    (str, int, float, datetime or None), which is the shape the report
    parser consumes.

    Raises:
        WorkbookReadError: the bytes are not a readable workbook
    """
    if not data:
        raise WorkbookReadError("Uploaded file is empty")

    try:
        workbook = load_workbook(BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        raise WorkbookReadError(f"Could not open workbook: {e}") from e

    try:
        sheet = workbook.worksheets[0]
        rows = [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()

    logger.info("Read %d rows from sheet %r", len(rows), sheet.title)
    return rows
