"""
Export Service — spreadsheet and CSV downloads of the ledger.

The XLSX sheet keeps markup, margin, profit and both reverse prices as live
formulas over the cost/price cells, so the file stays consistent when it is
edited outside the application. The CSV export is a flat fallback with
computed values.
"""

from __future__ import annotations

import csv
import io
import logging
import re
import unicodedata
from datetime import date
from typing import Iterable

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from margin_calculator.config import get_settings
from margin_calculator.models.schemas import ClientInfo, ProductRow

logger = logging.getLogger(__name__)

HEADER_ROW = 6
DATA_START_ROW = HEADER_ROW + 1

# (header, column width, header fill, header font colour)
COLUMNS: list[tuple[str, int, str, str]] = [
    ("Code", 12, "1F4E79", "FFFFFF"),
    ("Product", 35, "1F4E79", "FFFFFF"),
    ("Cost", 15, "2E7D32", "FFFFFF"),
    ("Price", 16, "D84315", "FFFFFF"),
    ("Markup (%)", 12, "1565C0", "FFFFFF"),
    ("Margin (%)", 12, "6A1B9A", "FFFFFF"),
    ("Profit", 14, "2E7D32", "FFFFFF"),
    ("", 3, "E0E0E0", "000000"),
    ("Enter %", 12, "F57F17", "000000"),
    ("Price from Markup", 18, "E65100", "FFFFFF"),
    ("Enter %", 12, "F57F17", "000000"),
    ("Price from Margin", 18, "388E3C", "FFFFFF"),
]

FORMULA_NOTES = [
    "FORMULAS:",
    "• Markup (%) = (Price - Cost) / Cost × 100 → e.g. (12.50-10)/10×100 = 25%",
    "• Margin (%) = (Price - Cost) / Price × 100 → e.g. (12.50-10)/12.50×100 = 20%",
    "• Profit = Price - Cost → e.g. 12.50 - 10 = 2.50",
    "",
    "--- REVERSE CALCULATION ---",
    "• Price from Markup = Cost × (1 + Markup%) → e.g. 10 × (1 + 0.25) = 12.50",
    "• Price from Margin = Cost / (1 - Margin%) → e.g. 10 / (1 - 0.20) = 12.50",
    "",
    "NOTE: markup measures profit over cost, margin measures profit over price.",
    "NOTE: a margin of 100% or more leaves Price from Margin empty.",
]

CSV_HEADERS = ["Code", "Product", "Cost", "Price", "Markup (%)", "Margin (%)", "Profit"]

# Leading characters a spreadsheet would evaluate as a formula
FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")

_THIN = Side(style="thin")
_DASHED = Side(style="dashed")


class ExportError(ValueError):
    """Raised when there is nothing to export."""


def _fill(argb: str) -> PatternFill:
    return PatternFill(fill_type="solid", fgColor=argb)


def _text_cell(ws, row: int, column: int, value: str):
    """Write free text as a literal string, never as a formula."""
    cell = ws.cell(row=row, column=column, value=value)
    if value:
        cell.data_type = "s"
    return cell


# ── Formulas (row-relative) ──────────────────────────────

def markup_formula(r: int) -> str:
    return f'=IF(AND(C{r}<>"",D{r}<>""),IF(C{r}=0,0,(D{r}-C{r})/C{r}),"")'


def margin_formula(r: int) -> str:
    return f'=IF(AND(C{r}<>"",D{r}<>""),IF(D{r}=0,0,(D{r}-C{r})/D{r}),"")'


def profit_formula(r: int) -> str:
    return f'=IF(AND(C{r}<>"",D{r}<>""),D{r}-C{r},"")'


def price_from_markup_formula(r: int) -> str:
    return f'=IF(AND(C{r}<>"",I{r}<>""),C{r}*(1+I{r}),"")'


def price_from_margin_formula(r: int) -> str:
    return f'=IF(AND(C{r}<>"",K{r}<>"",K{r}<1),C{r}/(1-K{r}),"")'


# ── XLSX ─────────────────────────────────────────────────

def build_workbook(
    rows: Iterable[ProductRow],
    client: ClientInfo | None = None,
    today: date | None = None,
) -> Workbook:
    rows = list(rows)
    if not rows:
        raise ExportError("No products to export")

    settings = get_settings()
    client = client or ClientInfo()
    today = today or date.today()
    money = settings.export_currency_format
    percent = settings.export_percentage_format

    wb = Workbook()
    ws = wb.active
    ws.title = settings.export_sheet_title[:31]

    # Client block
    for r, (label, value) in enumerate(
        [
            ("CLIENT:", client.name),
            ("DOCUMENT:", client.document),
            ("TAX ID:", client.tax_id),
            ("DATE:", today.isoformat()),
        ],
        start=1,
    ):
        ws.cell(row=r, column=1, value=label).font = Font(bold=True)
        _text_cell(ws, r, 2, value)

    # Header
    for col, (title, width, fill, font_color) in enumerate(COLUMNS, start=1):
        cell = ws.cell(row=HEADER_ROW, column=col, value=title)
        cell.font = Font(bold=True, color=font_color, size=11)
        cell.alignment = Alignment(horizontal="center", vertical="center")
        cell.fill = _fill(fill)
        cell.border = Border(top=_THIN, left=_THIN, right=_THIN, bottom=_THIN)
        ws.column_dimensions[cell.column_letter].width = width

    # Data
    for offset, product in enumerate(rows):
        r = DATA_START_ROW + offset
        _text_cell(ws, r, 1, product.code)
        _text_cell(ws, r, 2, product.name)

        cells = [
            (3, product.cost, money, "E2EFDA", False),
            (4, product.price, money, "FCE4D6", False),
            (5, markup_formula(r), percent, "DDEBF7", False),
            (6, margin_formula(r), percent, "E9D7F3", False),
            (7, profit_formula(r), money, "C6EFCE", True),
            (10, price_from_markup_formula(r), money, "FCE4D6", True),
            (12, price_from_margin_formula(r), money, "E2EFDA", True),
        ]
        for col, value, number_format, fill, bold in cells:
            cell = ws.cell(row=r, column=col, value=value)
            cell.number_format = number_format
            cell.alignment = Alignment(horizontal="right")
            cell.fill = _fill(fill)
            if bold:
                cell.font = Font(bold=True)

        ws.cell(row=r, column=8).fill = _fill("F0F0F0")
        for col in (9, 11):  # percentage inputs for the reverse calculation
            cell = ws.cell(row=r, column=col)
            cell.number_format = percent
            cell.alignment = Alignment(horizontal="right")
            cell.fill = _fill("FFF2CC")
            cell.border = Border(top=_DASHED, bottom=_DASHED)

    # Formula legend
    note_row = DATA_START_ROW + len(rows) + 2
    for i, text in enumerate(FORMULA_NOTES):
        cell = ws.cell(row=note_row + i, column=1, value=text or None)
        cell.font = Font(bold=True, size=11) if i == 0 else Font(size=10, color="666666")

    return wb


def export_xlsx(
    rows: Iterable[ProductRow],
    client: ClientInfo | None = None,
    today: date | None = None,
) -> bytes:
    wb = build_workbook(rows, client, today)
    buffer = io.BytesIO()
    wb.save(buffer)
    wb.close()
    logger.info(f"Exported XLSX ({buffer.tell()} bytes)")
    return buffer.getvalue()


# ── CSV ──────────────────────────────────────────────────

def _fmt(value: float | None) -> str:
    return "" if value is None else f"{value:.2f}"


def _csv_text(value: str) -> str:
    """Quote free text that a spreadsheet would otherwise run as a formula."""
    return f"'{value}" if value.startswith(FORMULA_PREFIXES) else value


def export_csv(rows: Iterable[ProductRow], client: ClientInfo | None = None) -> str:
    rows = list(rows)
    if not rows:
        raise ExportError("No products to export")

    client = client or ClientInfo()
    out = io.StringIO()
    writer = csv.writer(out, quoting=csv.QUOTE_ALL, lineterminator="\n")

    for label, value in (("Client", client.name), ("Document", client.document), ("Tax ID", client.tax_id)):
        if value:
            writer.writerow([f"{label}:", _csv_text(value)])

    writer.writerow(CSV_HEADERS)
    for product in rows:
        writer.writerow([
            _csv_text(product.code),
            _csv_text(product.name),
            _fmt(product.cost),
            _fmt(product.price),
            _fmt(product.markup_pct),
            _fmt(product.margin_pct),
            _fmt(product.profit),
        ])

    logger.info(f"Exported CSV ({len(rows)} rows)")
    return out.getvalue()


def client_slug(name: str) -> str:
    """ASCII-only slug of a client name, safe inside an HTTP header."""
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9_-]+", "_", ascii_name.lower()).strip("_")


def export_filename(client: ClientInfo | None, extension: str, today: date | None = None) -> str:
    """margin_calculator[_<client>]_<YYYY-MM-DD>.<ext>"""
    today = today or date.today()
    slug = client_slug(client.name) if client else ""
    suffix = f"_{slug}" if slug else ""
    return f"margin_calculator{suffix}_{today.isoformat()}.{extension}"
