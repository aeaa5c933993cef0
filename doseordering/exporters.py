"""
Order report export (.xlsx).

版式与页面上 "Export to Excel" 一致：说明行 → 表头 → 每个 isotope 一行 → 汇总行。
金额写成数字 + 货币格式，而不是 "$500" 字符串，方便在 Excel 里继续计算。
"""

import io
import logging
from datetime import date, datetime

from openpyxl import Workbook
from openpyxl.styles import Font

from .services import summarize_orders

logger = logging.getLogger(__name__)

SHEET_TITLE = 'Orders'
REPORT_HEADER = [
    'Isotope', 'Quantity', 'Vendor', 'Unit Price', 'Total Cost', 'Avg Reimbursement %', 'Profit Margin',
]
CURRENCY_FORMAT = '"$"#,##0.00'
PERCENT_FORMAT = '0.0"%"'
DATA_SOURCE_NOTE = 'Data Source: Live Schedule, Vendor, and Insurance Data'


def report_filename(day=None):
    day = day or date.today()
    return f"dose-ordering-{day.isoformat()}.xlsx"


def build_order_report(result, generated_at=None):
    """Build the Orders workbook for one recommendation snapshot."""
    generated_at = generated_at or datetime.now()
    summary = summarize_orders(result.recommendations)

    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    ws.append(['Dose Ordering Report'])
    ws['A1'].font = Font(bold=True, size=14)
    ws.append([f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S')}"])
    ws.append([f"Date Filter: {result.date_filter.label}"])
    ws.append(['Based on Confirmed Appointments Only'])
    ws.append([DATA_SOURCE_NOTE])
    ws.append([])

    ws.append(REPORT_HEADER)
    for cell in ws[ws.max_row]:
        cell.font = Font(bold=True)

    for rec in result.recommendations:
        ws.append([
            rec.substance_name,
            rec.quantity,
            rec.vendor_name,
            rec.unit_price,
            rec.total_cost,
            rec.average_reimbursement,
            rec.profit_margin,
        ])
        row = ws[ws.max_row]
        row[3].number_format = CURRENCY_FORMAT
        row[4].number_format = CURRENCY_FORMAT
        row[5].number_format = PERCENT_FORMAT
        row[6].number_format = CURRENCY_FORMAT

    ws.append([])
    ws.append(['Total Quantity', summary['total_quantity']])
    ws.append(['Total Order Cost', summary['total_order_cost']])
    ws[ws.max_row][1].number_format = CURRENCY_FORMAT
    ws.append(['Total Profit Margin', summary['total_profit_margin']])
    ws[ws.max_row][1].number_format = CURRENCY_FORMAT

    ws.column_dimensions['A'].width = 36
    ws.column_dimensions['C'].width = 32

    logger.info("[build_order_report] %d order rows, filter=%s", len(result.recommendations), result.date_filter.label)
    return wb


def render_order_report(result, generated_at=None):
    """Workbook → .xlsx bytes."""
    buffer = io.BytesIO()
    build_order_report(result, generated_at=generated_at).save(buffer)
    return buffer.getvalue()
