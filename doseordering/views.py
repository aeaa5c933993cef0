import logging

from django.conf import settings
from django.http import HttpResponse, JsonResponse
from rest_framework.views import APIView

from .exporters import render_order_report, report_filename
from .intake import get_adapter
from .serializers import serialize_recommendation_result
from .services import prepare_order_export, recommend_orders

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def load_order_request(request):
    """
    选 Adapter（Header X-Order-Source，缺省 settings.DOSE_ORDERING_DEFAULT_SOURCE），
    跑 parse → transform → validate，返回 OrderRequest。
    """
    source = request.headers.get('X-Order-Source') or settings.DOSE_ORDERING_DEFAULT_SOURCE
    adapter = get_adapter(
        source,
        request.body,
        content_type=request.content_type or '',
        params=request.query_params.dict(),
    )
    order_request = adapter.process()
    logger.info(
        "[load_order_request] source=%s appointments=%d vendors=%d insurances=%d",
        source, len(order_request.appointments), len(order_request.vendors), len(order_request.insurances),
    )
    return order_request


class OrderRecommendationView(APIView):
    """POST /api/orders/recommendations/ - Calculate Orders"""

    def post(self, request):
        result = recommend_orders(load_order_request(request))
        return JsonResponse(serialize_recommendation_result(result))


class OrderExportView(APIView):
    """POST /api/orders/recommendations/export - Download the order report (.xlsx)"""

    def post(self, request):
        result = prepare_order_export(load_order_request(request))

        response = HttpResponse(render_order_report(result), content_type=XLSX_CONTENT_TYPE)
        response['Content-Disposition'] = f'attachment; filename="{report_filename()}"'
        return response
