"""
BaseIntakeAdapter — 所有数据源 Adapter 的抽象基类。

每个新数据源只需：
1. 继承 BaseIntakeAdapter
2. 实现 parse() 和 transform()
3. 在 factory.py 的 _build_registry() 注册一行

推荐引擎无需任何改动。
"""

import math
import re
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Optional

from ..exceptions import ValidationError
from .types import DateFilter, OrderRequest

# ── 共用校验正则（Adapter 可直接复用） ─────────────────────────────────────
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_iso_date(value: str) -> bool:
    if not isinstance(value, str) or not ISO_DATE_RE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def build_date_filter(mode: str, selected: str = "", start: str = "", end: str = "") -> DateFilter:
    """
    把前端的 dateRange 单选状态转成 DateFilter。

    "range" 但起止日期缺一个 → 不按日期过滤（与页面上的行为一致）。
    """
    mode = (mode or DateFilter.ALL).strip().lower()
    selected, start, end = (selected or "").strip(), (start or "").strip(), (end or "").strip()

    if mode == DateFilter.SINGLE:
        if not selected:
            raise ValidationError(
                message="A single-date filter needs a selected date.",
                code="MISSING_DATE",
                detail={"errors": [{"field": "date_filter.selected", "message": "Date is required."}]},
            )
        return DateFilter.single(selected)
    if mode == DateFilter.RANGE:
        if start and end:
            return DateFilter.range(start, end)
        return DateFilter.all()
    if mode == DateFilter.ALL:
        return DateFilter.all()

    raise ValidationError(
        message=f"Unknown date range mode: {mode!r}.",
        code="UNKNOWN_DATE_RANGE",
        detail={"known_modes": [DateFilter.ALL, DateFilter.SINGLE, DateFilter.RANGE]},
    )


def is_amount(value: Any) -> bool:
    """有限、非负的数字（bool 不算）。NaN / Infinity 一律拒绝。"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= 0


def parse_price(value: Any) -> Optional[float]:
    """'$500' / '500' / 500 → 500；无法识别或不是有限数返回 None。"""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    text = str(value or "").strip().replace("$", "").replace(",", "")
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


class BaseIntakeAdapter(ABC):
    """
    三步流水线：parse → transform → validate

    子类必须实现 parse() 和 transform()；
    validate() 提供通用的日期 / 价格 / vendor 校验，子类可 super() 后追加检查。
    """

    # 子类声明自己对应的 source 标识符（与 factory 注册键一致）
    source: str = ""

    def __init__(self, raw_body: bytes | str, content_type: str = "", params: Optional[dict] = None):
        self._raw_body = raw_body
        self._content_type = content_type
        self._params = params or {}
        self._parsed = None

    # ── 必须实现 ───────────────────────────────────────────────────────────

    @abstractmethod
    def parse(self) -> Any:
        """
        解析原始数据（bytes / str）→ 中间结构（dict 或 openpyxl Workbook）。
        应将解析结果赋值给 self._parsed 以便 transform() 使用。
        """

    @abstractmethod
    def transform(self) -> OrderRequest:
        """
        将 self._parsed 转换为 OrderRequest。
        必须把原始数据存入 OrderRequest.raw_payload。
        """

    # ── 提供默认实现，子类可 override ──────────────────────────────────────

    def validate(self, request: OrderRequest) -> None:
        """
        校验 OrderRequest 中的通用字段。
        一次收集全部错误，抛出 ValidationError。
        """
        errors = []

        for i, appt in enumerate(request.appointments):
            if not is_iso_date(appt.date):
                errors.append({
                    "field": f"appointments[{i}].date",
                    "message": f"Date must be ISO 8601 (YYYY-MM-DD), got {appt.date!r}.",
                })
            if not appt.substance_name:
                errors.append({"field": f"appointments[{i}].isotope", "message": "Isotope is required."})

        seen_vendors = set()
        for i, vendor in enumerate(request.vendors):
            if not vendor.vendor_name:
                errors.append({"field": f"vendors[{i}].name", "message": "Vendor name is required."})
            elif vendor.vendor_name in seen_vendors:
                errors.append({
                    "field": f"vendors[{i}].name",
                    "message": f"Duplicate vendor name: {vendor.vendor_name!r}.",
                })
            seen_vendors.add(vendor.vendor_name)

            for substance, price in vendor.unit_price_by_substance.items():
                if not is_amount(price):
                    errors.append({
                        "field": f"vendors[{i}].pricing[{substance!r}]",
                        "message": f"Price must be a finite non-negative number, got {price!r}.",
                    })

        for i, insurance in enumerate(request.insurances):
            if not is_amount(insurance.reimbursement_percentage):
                errors.append({
                    "field": f"insurances[{i}].reimbursementPercentage",
                    "message": "Reimbursement percentage must be a finite non-negative number.",
                })

        date_filter = request.date_filter
        if date_filter.mode != DateFilter.ALL:
            bounds_ok = True
            for name, value in (("start", date_filter.start), ("end", date_filter.end)):
                if not is_iso_date(value):
                    bounds_ok = False
                    errors.append({
                        "field": f"date_filter.{name}",
                        "message": f"Date must be ISO 8601 (YYYY-MM-DD), got {value!r}.",
                    })
            if bounds_ok and date_filter.start > date_filter.end:
                errors.append({"field": "date_filter", "message": "Start date is after end date."})

        if errors:
            raise ValidationError.from_field_errors(errors)

    # ── 对外统一入口 ───────────────────────────────────────────────────────

    def process(self) -> OrderRequest:
        """parse → transform → validate，返回校验通过的 OrderRequest。"""
        self.parse()
        request = self.transform()
        self.validate(request)
        return request
