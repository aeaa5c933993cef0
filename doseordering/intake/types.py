"""
标准内部记录 — 业务逻辑唯一认识的格式。

所有 Adapter 的 transform() 必须返回 OrderRequest。
业务层（services.py）只消费这些 dataclass，永远不碰外部原始数据。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class AppointmentStatus(str, Enum):
    """Schedule status; the values are the labels the dose board shows."""

    CONFIRMED = "Confirmed"
    PENDING_AUTHORIZATION = "Pending Auth"
    SCHEDULED = "Scheduled"
    CANCELED = "Canceled"

    @classmethod
    def from_label(cls, label: str) -> "AppointmentStatus":
        # 兼容 "PendingAuthorization" / "pending auth" 等写法
        key = "".join(ch for ch in (label or "").lower() if ch.isalnum())
        for status in cls:
            if key in (status.name.replace("_", "").lower(), status.value.replace(" ", "").lower()):
                return status
        raise ValueError(f"Unknown appointment status: {label!r}")


@dataclass(frozen=True)
class Appointment:
    identifier: str
    patient_name: str
    date: str              # ISO 8601: "YYYY-MM-DD"
    scan_time: str         # "09:00 AM"
    substance_name: str
    insurance_name: str
    status: AppointmentStatus
    patient_identifier: Optional[str] = None


@dataclass(frozen=True)
class VendorPriceList:
    vendor_name: str
    unit_price_by_substance: dict[str, float] = field(default_factory=dict)
    payment_terms: str = ""
    delivery_window: str = ""
    identifier: str = ""

    @property
    def available_substances(self) -> list[str]:
        return list(self.unit_price_by_substance)

    def price_for(self, substance_name: str) -> Optional[float]:
        """None means the vendor does not offer the substance."""
        return self.unit_price_by_substance.get(substance_name)


@dataclass(frozen=True)
class InsuranceProvider:
    name: str
    reimbursement_percentage: float
    identifier: str = ""
    contact_email: str = ""
    contact_phone: str = ""


@dataclass(frozen=True)
class DateFilter:
    """
    日期筛选：All / Single(date) / Range(start, end)。

    ISO 日期字符串直接按字典序比较，"YYYY-MM-DD" 的字典序即日历顺序。
    Range 两端都包含。
    """

    ALL = "all"
    SINGLE = "single"
    RANGE = "range"

    mode: str = ALL
    start: Optional[str] = None
    end: Optional[str] = None

    @classmethod
    def all(cls) -> "DateFilter":
        return cls(mode=cls.ALL)

    @classmethod
    def single(cls, day: str) -> "DateFilter":
        return cls(mode=cls.SINGLE, start=day, end=day)

    @classmethod
    def range(cls, start: str, end: str) -> "DateFilter":
        return cls(mode=cls.RANGE, start=start, end=end)

    def matches(self, day: str) -> bool:
        if self.mode == self.SINGLE:
            return day == self.start
        if self.mode == self.RANGE:
            return self.start <= day <= self.end
        return True

    @property
    def label(self) -> str:
        if self.mode == self.SINGLE:
            return self.start
        if self.mode == self.RANGE:
            return f"{self.start} to {self.end}"
        return "All Dates"


@dataclass(frozen=True)
class OrderRecommendation:
    substance_name: str
    quantity: int
    vendor_name: str
    unit_price: float
    total_cost: float
    average_reimbursement: float = 0.0   # 百分比，例如 92.0
    profit_margin: float = 0.0


@dataclass(frozen=True)
class Notice:
    code: str
    message: str


NO_MATCHING_APPOINTMENTS = Notice(
    code="NO_MATCHING_APPOINTMENTS",
    message="No confirmed appointments match the selected dates.",
)


@dataclass
class RecommendationResult:
    """
    一次 "Calculate Orders" 的快照。

    notice              为 None 表示正常；否则是信息性提示（不是错误）。
    unpriced_substances 有确认需求但没有任何 vendor 报价的 isotope。
    """

    recommendations: list[OrderRecommendation]
    date_filter: DateFilter = field(default_factory=DateFilter.all)
    notice: Optional[Notice] = None
    unpriced_substances: list[str] = field(default_factory=list)
    confirmed_count: int = 0
    vendor_count: int = 0
    insurance_count: int = 0
    status_counts: dict[str, int] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.recommendations


@dataclass
class OrderRequest:
    """
    标准内部请求格式。

    raw_payload  保存原始数据（dict / bytes），用于排查问题，不参与业务逻辑。
    source       标识数据来源（"dose_board" / "workbook"）。
    """

    appointments: list[Appointment]
    vendors: list[VendorPriceList]
    insurances: list[InsuranceProvider] = field(default_factory=list)
    date_filter: DateFilter = field(default_factory=DateFilter.all)
    source: str = ""
    raw_payload: Any = field(default=None, repr=False)
