"""
Spreadsheet Renderer for form S1a-HKD

Produces the revenue book as an .xlsx byte stream laid out like the
printed regulatory template:

    Mẫu số S1a-HKD
    SỔ CHI TIẾT DOANH THU BÁN HÀNG HÓA, DỊCH VỤ
    <one row per taxpayer info field>
    Ngày tháng | Giao dịch | Số tiền
    <one row per transaction, document order>
    Tổng cộng  |           | <sum>

CRITICAL: Output is byte-for-byte deterministic. openpyxl stamps the
document properties and every zip entry with the current time, so both are
pinned here. Amount cells are plain integers (number format "0") so tax
tooling can read them back without locale parsing.
"""

import io
import os
from datetime import datetime
from zipfile import ZIP_DEFLATED, ZipFile, ZipInfo

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter
from openpyxl.writer.excel import ExcelWriter

from voice_ledger.models.ledger import INFO_FIELD_LABELS, INFO_FIELDS, LedgerDocument


XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

FORM_CODE = "Mẫu số S1a-HKD"
FORM_TITLE = "SỔ CHI TIẾT DOANH THU BÁN HÀNG HÓA, DỊCH VỤ"
COLUMN_HEADERS = ("Ngày tháng", "Giao dịch", "Số tiền")
TOTAL_LABEL = "Tổng cộng"
SHEET_TITLE = "S1a-HKD"

AMOUNT_FORMAT = "0"
COLUMN_WIDTHS = (16, 48, 18)

# Pinned so re-rendering an unchanged ledger gives identical bytes
FIXED_TIMESTAMP = datetime(2000, 1, 1, 0, 0, 0)
ZIP_TIMESTAMP = (1980, 1, 1, 0, 0, 0)


class _ReproducibleZipFile(ZipFile):
    """ZipFile that stamps every entry with a fixed date."""

    def write(self, filename, arcname=None, compress_type=None, compresslevel=None):
        # Worksheets arrive as temp files whose mtime would leak into the entry
        with open(filename, "rb") as handle:
            data = handle.read()
        self.writestr(
            arcname or os.path.basename(filename),
            data,
            compress_type=compress_type,
            compresslevel=compresslevel,
        )

    def writestr(self, zinfo_or_arcname, data, compress_type=None, compresslevel=None):
        if not isinstance(zinfo_or_arcname, ZipInfo):
            zinfo = ZipInfo(filename=zinfo_or_arcname, date_time=ZIP_TIMESTAMP)
            zinfo.compress_type = self.compression
            zinfo.external_attr = 0o600 << 16
            zinfo_or_arcname = zinfo
        super().writestr(
            zinfo_or_arcname,
            data,
            compress_type=compress_type,
            compresslevel=compresslevel,
        )


def build_workbook(document: LedgerDocument) -> Workbook:
    """Lay the ledger out on a single worksheet."""
    workbook = Workbook()
    workbook.properties.creator = "Voice Ledger"
    workbook.properties.lastModifiedBy = "Voice Ledger"
    workbook.properties.title = FORM_TITLE
    workbook.properties.created = FIXED_TIMESTAMP
    workbook.properties.modified = FIXED_TIMESTAMP

    sheet = workbook.active
    sheet.title = SHEET_TITLE
    bold = Font(bold=True)

    sheet.append(["", "", FORM_CODE])
    sheet.cell(row=1, column=3).font = Font(italic=True)
    sheet.cell(row=1, column=3).alignment = Alignment(horizontal="right")

    sheet.append([FORM_TITLE])
    sheet.merge_cells(start_row=2, start_column=1, end_row=2, end_column=3)
    sheet.cell(row=2, column=1).font = Font(bold=True, size=14)
    sheet.cell(row=2, column=1).alignment = Alignment(horizontal="center")

    sheet.append([])

    info = document.info
    for field in INFO_FIELDS:
        sheet.append([INFO_FIELD_LABELS[field], getattr(info, field)])
        row = sheet.max_row
        sheet.cell(row=row, column=1).font = bold
        sheet.merge_cells(start_row=row, start_column=2, end_row=row, end_column=3)

    sheet.append([])

    sheet.append(list(COLUMN_HEADERS))
    header_row = sheet.max_row
    for column in range(1, len(COLUMN_HEADERS) + 1):
        cell = sheet.cell(row=header_row, column=column)
        cell.font = bold
        cell.alignment = Alignment(horizontal="center")

    for transaction in document.transactions:
        sheet.append([transaction.date, transaction.description, int(transaction.amount)])
        sheet.cell(row=sheet.max_row, column=3).number_format = AMOUNT_FORMAT

    sheet.append([TOTAL_LABEL, "", int(document.total_amount)])
    total_row = sheet.max_row
    sheet.cell(row=total_row, column=1).font = bold
    total_cell = sheet.cell(row=total_row, column=3)
    total_cell.font = bold
    total_cell.number_format = AMOUNT_FORMAT

    for index, width in enumerate(COLUMN_WIDTHS, start=1):
        sheet.column_dimensions[get_column_letter(index)].width = width

    return workbook


def render_spreadsheet(document: LedgerDocument) -> bytes:
    """
    Render the ledger into .xlsx bytes.

    Pure function: same document in, same bytes out.
    """
    workbook = build_workbook(document)
    buffer = io.BytesIO()
    archive = _ReproducibleZipFile(buffer, "w", ZIP_DEFLATED, allowZip64=True)
    # ExcelWriter.save() closes the archive
    ExcelWriter(workbook, archive).save()
    return buffer.getvalue()
