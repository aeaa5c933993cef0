"""
Response serializers — RecommendationResult → JSON-able dict。

只负责「输出格式化」，不做任何解析或校验。
输入解析和校验在 doseordering/intake/ adapter 系统。
key 用 camelCase，与前端订单表的列对应。
"""

from .services import summarize_orders


def serialize_recommendation(rec):
    return {
        'isotope': rec.substance_name,
        'quantity': rec.quantity,
        'vendor': rec.vendor_name,
        'unitPrice': rec.unit_price,
        'totalCost': rec.total_cost,
        'avgReimbursement': rec.average_reimbursement,
        'profitMargin': rec.profit_margin,
    }


def serialize_date_filter(date_filter):
    return {
        'mode': date_filter.mode,
        'startDate': date_filter.start,
        'endDate': date_filter.end,
        'label': date_filter.label,
    }


def serialize_recommendation_result(result):
    """Serialize one "Calculate Orders" snapshot for the 200 response."""
    summary = summarize_orders(result.recommendations)
    response = {
        'orders': [serialize_recommendation(rec) for rec in result.recommendations],
        'dateFilter': serialize_date_filter(result.date_filter),
        'summary': {
            'totalIsotopes': summary['total_substances'],
            'totalQuantity': summary['total_quantity'],
            'totalOrderCost': summary['total_order_cost'],
            'totalProfitMargin': summary['total_profit_margin'],
            'confirmedAppointments': result.confirmed_count,
            'activeVendors': result.vendor_count,
            'insuranceProviders': result.insurance_count,
            'statusCounts': result.status_counts,
        },
        'unpricedIsotopes': list(result.unpriced_substances),
        'notice': None,
    }

    if result.notice is not None:
        response['notice'] = {
            'code': result.notice.code,
            'message': result.notice.message,
        }

    return response
