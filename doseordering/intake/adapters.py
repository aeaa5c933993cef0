"""
具体 Adapter 实现。

新增数据源：在此文件添加一个类，然后在 factory.py 注册即可。

已注册数据源：
  dose_board  — DoseBoardAdapter   (JSON, 浏览器内存状态, camelCase 命名)
  workbook    — WorkbookAdapter    (.xlsx, 页面自己导出的 Schedule / Vendors 报表)
"""

import io
import json
import logging
import zipfile
from datetime import date, datetime
from typing import Any, Optional

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ..exceptions import ValidationError
from .base import BaseIntakeAdapter, build_date_filter, parse_price
from .types import (
    Appointment,
    AppointmentStatus,
    InsuranceProvider,
    OrderRequest,
    VendorPriceList,
)

logger = logging.getLogger(__name__)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def _status(label: Any, field: str, errors: list) -> Optional[AppointmentStatus]:
    try:
        return AppointmentStatus.from_label(_text(label))
    except ValueError:
        errors.append({
            "field": field,
            "message": f"Unknown status {label!r}; expected one of {[s.value for s in AppointmentStatus]}.",
        })
        return None


def _raise_if_errors(errors: list) -> None:
    if errors:
        raise ValidationError.from_field_errors(errors)


def _records(raw: dict, key: str, errors: list, fallback: str = "") -> list[tuple[int, dict]]:
    """
    raw[key] 必须是对象数组。返回 [(下标, 对象), ...]；
    容器或元素类型不对时记一条错误并跳过，不抛异常。
    """
    value = raw.get(key)
    if value is None and fallback:
        key, value = fallback, raw.get(fallback)
    if value is None:
        return []
    if not isinstance(value, list):
        errors.append({"field": key, "message": f"Expected a list of objects, got {type(value).__name__}."})
        return []
    records = []
    for i, item in enumerate(value):
        if isinstance(item, dict):
            records.append((i, item))
        else:
            errors.append({"field": f"{key}[{i}]", "message": f"Expected an object, got {type(item).__name__}."})
    return records


# ── DoseBoardAdapter ───────────────────────────────────────────────────────
#
# 外部格式示例（JSON，浏览器里 DoseOrdering 页面持有的状态）:
# {
#   "schedules": [
#     { "id": "SCH001", "patientName": "John Doe", "date": "2025-11-10", "scanTime": "09:00 AM",
#       "isotope": "F18 FDG (Fluorodeoxyglucose)", "status": "Confirmed", "insurance": "Blue Cross" }
#   ],
#   "vendors": [
#     { "id": "V001", "name": "Cardinal Health", "paymentTerms": "Net 30", "deliveryWindow": "24-48 hours",
#       "pricing": { "F18 FDG (Fluorodeoxyglucose)": 500 } }
#   ],
#   "insurances": [ { "id": "INS001", "name": "Blue Cross", "reimbursementPercentage": 92 } ],
#   "dateRange": "range", "selectedDate": "", "startDate": "2025-11-01", "endDate": "2025-11-10"
# }

class DoseBoardAdapter(BaseIntakeAdapter):
    source = "dose_board"

    def parse(self) -> Any:
        if isinstance(self._raw_body, (bytes, str)):
            try:
                raw = json.loads(self._raw_body or "{}")
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                raise ValidationError(
                    message="Request body is not valid JSON.",
                    code="INVALID_JSON",
                    detail={"error": str(exc)},
                )
        else:
            raw = self._raw_body
        if not isinstance(raw, dict):
            raise ValidationError(message="Request body must be a JSON object.", code="INVALID_JSON")
        self._parsed = raw
        return raw

    def transform(self) -> OrderRequest:
        raw = self._parsed
        errors = []

        appointments = []
        for i, item in _records(raw, "schedules", errors, fallback="appointments"):
            status = _status(item.get("status"), f"appointments[{i}].status", errors)
            appointments.append(Appointment(
                identifier=_text(item.get("id")),
                patient_name=_text(item.get("patientName")),
                patient_identifier=_text(item.get("patientId")) or None,
                date=_text(item.get("date")),
                scan_time=_text(item.get("scanTime")),
                substance_name=_text(item.get("isotope") or item.get("substance")),
                insurance_name=_text(item.get("insurance")),
                status=status,
            ))

        vendors = []
        for i, item in _records(raw, "vendors", errors):
            raw_pricing = item.get("pricing") or {}
            if not isinstance(raw_pricing, dict):
                errors.append({
                    "field": f"vendors[{i}].pricing",
                    "message": f"Pricing must be an object of isotope -> price, got {type(raw_pricing).__name__}.",
                })
                raw_pricing = {}
            pricing = {}
            for substance, value in raw_pricing.items():
                price = parse_price(value)
                pricing[_text(substance)] = value if price is None else price
            vendors.append(VendorPriceList(
                identifier=_text(item.get("id")),
                vendor_name=_text(item.get("name")),
                payment_terms=_text(item.get("paymentTerms")),
                delivery_window=_text(item.get("deliveryWindow")),
                unit_price_by_substance=pricing,
            ))

        insurances = []
        for _i, item in _records(raw, "insurances", errors):
            rate = parse_price(str(item.get("reimbursementPercentage", "")).replace("%", ""))
            insurances.append(InsuranceProvider(
                identifier=_text(item.get("id")),
                name=_text(item.get("name")),
                reimbursement_percentage=rate if rate is not None else item.get("reimbursementPercentage"),
                contact_email=_text(item.get("contactEmail")),
                contact_phone=_text(item.get("contactPhone")),
            ))

        _raise_if_errors(errors)

        return OrderRequest(
            source=self.source,
            raw_payload=raw,                          # 保留原始数据
            appointments=appointments,
            vendors=vendors,
            insurances=insurances,
            date_filter=build_date_filter(
                _text(raw.get("dateRange")),
                selected=_text(raw.get("selectedDate")),
                start=_text(raw.get("startDate")),
                end=_text(raw.get("endDate")),
            ),
        )


# ── WorkbookAdapter ────────────────────────────────────────────────────────
#
# 页面上 "Export to Excel" 导出的报表，合并到一个 .xlsx 里上传：
#
#   Schedule 表:  标题行 / Generated 行 / 空行 /
#                 ID | Patient Name | Date | Scan Time | Isotope | Insurance | Status
#                 ...数据行... / 空行 / 各状态计数行（忽略）
#   Vendors 表:   ID | Vendor Name | Payment Terms | Delivery Window | Available Isotopes | Pricing
#                 Pricing 形如 "F18 FDG (Fluorodeoxyglucose): $500; F18 NaF (Sodium Fluoride): $450"
#   Insurance 表（可选）: ID | Name | Reimbursement %
#
# 日期筛选不在文件里，来自 query params: date_range / selected_date / start_date / end_date

SCHEDULE_HEADER = ["ID", "Patient Name", "Date", "Scan Time", "Isotope", "Insurance", "Status"]
VENDOR_HEADER = ["ID", "Vendor Name", "Payment Terms", "Delivery Window", "Available Isotopes", "Pricing"]
INSURANCE_HEADER = ["ID", "Name", "Reimbursement %"]


class WorkbookAdapter(BaseIntakeAdapter):
    source = "workbook"

    def parse(self) -> Any:
        body = self._raw_body.encode("latin-1") if isinstance(self._raw_body, str) else self._raw_body
        try:
            self._parsed = load_workbook(io.BytesIO(body), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
            raise ValidationError(
                message="Upload is not a readable .xlsx workbook.",
                code="INVALID_WORKBOOK",
                detail={"error": str(exc)},
            )
        return self._parsed

    def process(self) -> OrderRequest:
        """read-only 模式的 workbook 持有文件句柄，用完必须 close()。"""
        try:
            return super().process()
        finally:
            if self._parsed is not None:
                self._parsed.close()

    def _sheet(self, name: str, required: bool = True):
        for sheet_name in self._parsed.sheetnames:
            if sheet_name.strip().lower() == name.lower():
                return self._parsed[sheet_name]
        if required:
            raise ValidationError(
                message=f"Workbook has no {name!r} sheet.",
                code="MISSING_SHEET",
                detail={"sheets": list(self._parsed.sheetnames)},
            )
        return None

    @staticmethod
    def _table(sheet, header: list[str]) -> list[tuple]:
        """
        定位表头行，返回表头之后到第一个空行之前的数据行。
        只比较表头前几列，容忍导出时追加的额外列。
        """
        rows = sheet.iter_rows(values_only=True)
        for row in rows:
            cells = [_text(c) for c in row[:len(header)]]
            if cells == header:
                break
        else:
            raise ValidationError(
                message=f"Sheet {sheet.title!r} has no header row {header}.",
                code="MISSING_HEADER",
            )

        table = []
        for row in rows:
            if not any(_text(c) for c in row):
                break
            table.append(tuple(row) + (None,) * (len(header) - len(row)))
        return table

    @staticmethod
    def _pricing(cell: Any) -> dict:
        """'A: $500; B: $450' → {'A': 500, 'B': 450}"""
        pricing = {}
        for part in _text(cell).split(";"):
            if ":" not in part:
                continue
            substance, price_text = part.rsplit(":", 1)
            price = parse_price(price_text)
            pricing[substance.strip()] = price_text.strip() if price is None else price
        return pricing

    def transform(self) -> OrderRequest:
        errors = []

        appointments = []
        for i, row in enumerate(self._table(self._sheet("Schedule"), SCHEDULE_HEADER)):
            ident, patient, day, scan_time, isotope, insurance, status = row[:7]
            appointments.append(Appointment(
                identifier=_text(ident),
                patient_name=_text(patient),
                date=_text(day),
                scan_time=_text(scan_time),
                substance_name=_text(isotope),
                insurance_name=_text(insurance),
                status=_status(status, f"appointments[{i}].status", errors),
            ))

        vendors = []
        for row in self._table(self._sheet("Vendors"), VENDOR_HEADER):
            ident, name, terms, window, _available, pricing = row[:6]
            vendors.append(VendorPriceList(
                identifier=_text(ident),
                vendor_name=_text(name),
                payment_terms=_text(terms),
                delivery_window=_text(window),
                unit_price_by_substance=self._pricing(pricing),
            ))

        insurances = []
        insurance_sheet = self._sheet("Insurance", required=False)
        if insurance_sheet is not None:
            for row in self._table(insurance_sheet, INSURANCE_HEADER):
                ident, name, rate = row[:3]
                parsed_rate = parse_price(_text(rate).replace("%", ""))
                insurances.append(InsuranceProvider(
                    identifier=_text(ident),
                    name=_text(name),
                    reimbursement_percentage=parsed_rate if parsed_rate is not None else rate,
                ))

        _raise_if_errors(errors)
        logger.info(
            "[WorkbookAdapter] sheets=%s appointments=%d vendors=%d insurances=%d",
            self._parsed.sheetnames, len(appointments), len(vendors), len(insurances),
        )

        return OrderRequest(
            source=self.source,
            raw_payload=self._raw_body,               # 保留原始 .xlsx 字节
            appointments=appointments,
            vendors=vendors,
            insurances=insurances,
            date_filter=build_date_filter(
                self._params.get("date_range"),
                selected=self._params.get("selected_date", ""),
                start=self._params.get("start_date", ""),
                end=self._params.get("end_date", ""),
            ),
        )
