"""
Dose-ordering 推荐引擎。

输入：确认过的预约 + vendor 报价单（+ 可选的保险报销比例）。
输出：每个 isotope 的采购建议（数量、最便宜的 vendor、单价、总价）。

纯函数：不读全局状态、不修改入参、不做 I/O（只写日志）。
"""

import logging
from collections import Counter

from .exceptions import BlockError
from .intake.types import (
    NO_MATCHING_APPOINTMENTS,
    AppointmentStatus,
    DateFilter,
    OrderRecommendation,
    RecommendationResult,
)

logger = logging.getLogger(__name__)


def filter_confirmed_appointments(appointments, date_filter=None):
    """Confirmed appointments inside the date filter, in input order."""
    date_filter = date_filter or DateFilter.all()
    return [
        appt for appt in appointments
        if appt.status == AppointmentStatus.CONFIRMED and date_filter.matches(appt.date)
    ]


def group_by_substance(appointments):
    """
    按 substance_name 分组，保持首次出现的顺序。
    返回 {substance_name: [appointment, ...]}。
    """
    groups = {}
    for appt in appointments:
        groups.setdefault(appt.substance_name, []).append(appt)
    return groups


def find_lowest_cost_vendor(substance_name, vendors):
    """
    返回 (vendor, unit_price)；没有任何 vendor 报价时返回 (None, None)。

    按 vendors 的输入顺序扫描，只有严格更低的价格才替换，
    所以同价时第一个遇到的 vendor 胜出。
    """
    best_vendor, best_price = None, None
    for vendor in vendors:
        price = vendor.price_for(substance_name)
        if price is None:
            continue
        if best_price is None or price < best_price:
            best_vendor, best_price = vendor, price
    return best_vendor, best_price


def average_reimbursement(appointments, insurances):
    """
    Mean reimbursement percentage over the insurers named on the appointments.
    An insurer with no reimbursement record counts as 0.
    """
    if not appointments:
        return 0.0
    rates = {ins.name: ins.reimbursement_percentage for ins in insurances}
    return sum(rates.get(appt.insurance_name, 0) for appt in appointments) / len(appointments)


def count_appointments_by_status(appointments):
    counts = Counter(appt.status for appt in appointments)
    return {status.value: counts.get(status, 0) for status in AppointmentStatus}


def summarize_orders(recommendations):
    """Totals row of the order table."""
    return {
        'total_substances': len(recommendations),
        'total_quantity': sum(rec.quantity for rec in recommendations),
        'total_order_cost': sum(rec.total_cost for rec in recommendations),
        'total_profit_margin': sum(rec.profit_margin for rec in recommendations),
    }


def calculate_order_recommendations(appointments, vendors, date_filter=None, insurances=()):
    """
    计算采购建议。

    1. 只保留 Confirmed 预约，再按 date_filter 过滤
    2. 过滤后为空 → 空结果 + NO_MATCHING_APPOINTMENTS 提示（不是错误）
    3. 按 isotope 分组计数
    4. 每个 isotope 找最低价 vendor；没有报价的 isotope 不出现在结果里
    5. total_cost = unit_price × quantity
    6. 按数量降序排序（稳定排序，同数量保持分组顺序）
    """
    date_filter = date_filter or DateFilter.all()
    appointments = list(appointments)
    vendors = list(vendors)
    insurances = list(insurances)

    result = RecommendationResult(
        recommendations=[],
        date_filter=date_filter,
        confirmed_count=sum(1 for a in appointments if a.status == AppointmentStatus.CONFIRMED),
        vendor_count=len(vendors),
        insurance_count=len(insurances),
        status_counts=count_appointments_by_status(appointments),
    )

    matching = filter_confirmed_appointments(appointments, date_filter)
    logger.info(
        "[calculate_order_recommendations] filter=%s confirmed=%d matching=%d vendors=%d",
        date_filter.label, result.confirmed_count, len(matching), len(vendors),
    )

    if not matching:
        result.notice = NO_MATCHING_APPOINTMENTS
        return result

    recommendations = []
    for substance_name, group in group_by_substance(matching).items():
        vendor, unit_price = find_lowest_cost_vendor(substance_name, vendors)
        if vendor is None:
            result.unpriced_substances.append(substance_name)
            continue

        quantity = len(group)
        total_cost = unit_price * quantity
        avg_reimbursement = average_reimbursement(group, insurances)
        recommendations.append(OrderRecommendation(
            substance_name=substance_name,
            quantity=quantity,
            vendor_name=vendor.vendor_name,
            unit_price=unit_price,
            total_cost=total_cost,
            average_reimbursement=avg_reimbursement,
            profit_margin=(avg_reimbursement / 100) * total_cost - total_cost,
        ))

    if result.unpriced_substances:
        logger.info(
            "[calculate_order_recommendations] no vendor pricing for %s, omitted",
            ", ".join(result.unpriced_substances),
        )

    result.recommendations = sorted(recommendations, key=lambda rec: rec.quantity, reverse=True)
    return result


def recommend_orders(order_request):
    """Run the engine over an intake OrderRequest."""
    return calculate_order_recommendations(
        order_request.appointments,
        order_request.vendors,
        date_filter=order_request.date_filter,
        insurances=order_request.insurances,
    )


def prepare_order_export(order_request):
    """
    导出前先算一遍。没有任何推荐行时阻止导出（页面上此时也没有导出按钮）。
    """
    result = recommend_orders(order_request)
    if result.is_empty:
        detail = {'date_filter': result.date_filter.label, 'unpriced_isotopes': result.unpriced_substances}
        if result.notice is not None:
            detail['notice'] = result.notice.code
        raise BlockError(
            message='No order recommendations to export for the selected dates.',
            code='NO_ORDERS_TO_EXPORT',
            detail=detail,
        )
    return result
