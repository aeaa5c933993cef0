"""
统一异常处理器。

挂到 DRF 的 EXCEPTION_HANDLER setting 上。
前端用同一套逻辑判断：
  response.type === 'error' / 'validation_error' / 'block'  → 出问题了
  没有 type 字段  → 成功（包括 "没有匹配预约" 的空结果）

统一错误响应格式：
{
    "type":    "validation_error" | "block",
    "code":    "INVALID_DATE",
    "message": "Request validation failed.",
    "detail":  { ... }  // 可选
}
"""

import logging

from django.http import JsonResponse
from rest_framework.exceptions import ParseError as DRFParseError
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.views import exception_handler as drf_default_handler

from .exceptions import BaseAppException, ValidationError

logger = logging.getLogger(__name__)


def unified_exception_handler(exc, context):
    """
    DRF exception handler entry point.

    优先级：
    1. BaseAppException 及其子类 → 统一格式
    2. DRF 自带的 ValidationError / ParseError → 转成统一格式
    3. 其他异常 → 交给 DRF 默认处理
    """

    # --- 1. 我们自己的异常体系 ---
    if isinstance(exc, BaseAppException):
        logger.info("[exception_handler] %s %s: %s", exc.type, exc.code, exc.message)
        return JsonResponse(exc.to_body(), status=exc.http_status)

    # --- 2. DRF 自带的校验 / 解析错误 ---
    if isinstance(exc, (DRFValidationError, DRFParseError)):
        converted = ValidationError('Request validation failed', detail=exc.detail)
        return JsonResponse(converted.to_body(), status=converted.http_status)

    # --- 3. 其他的交给 DRF 默认处理 ---
    return drf_default_handler(exc, context)
