"""
统一异常体系。

所有业务异常继承 BaseAppException，包含：
- type:        错误类型标识（validation_error / block）
- code:        业务错误码（INVALID_DATE / UNKNOWN_SOURCE / NO_ORDERS_TO_EXPORT / ...）
- message:     人类可读的描述
- detail:      可选的附加信息（dict / list / None）
- http_status: HTTP 状态码

View 层只需 raise，exception_handler 统一捕获并格式化响应。
注意：推荐引擎本身从不抛异常，"没有匹配的预约" 是正常的空结果。
"""


class BaseAppException(Exception):
    """所有业务异常的基类。"""

    type = 'error'
    code = 'UNKNOWN_ERROR'
    http_status = 500

    def __init__(self, message, code=None, detail=None, http_status=None):
        super().__init__(message)
        self.message = message
        self.detail = detail
        # 只在显式传入时覆盖类上的默认值
        self.code = code or type(self).code
        self.http_status = http_status or type(self).http_status

    def to_body(self):
        """响应体：{type, code, message, detail?}，detail 为 None 时不输出。"""
        body = {'type': self.type, 'code': self.code, 'message': self.message}
        if self.detail is not None:
            body['detail'] = self.detail
        return body


class ValidationError(BaseAppException):
    """输入解析或校验失败。intake 层抛出，400。"""

    type = 'validation_error'
    code = 'VALIDATION_ERROR'
    http_status = 400

    @classmethod
    def from_field_errors(cls, errors, message='Request validation failed.'):
        """intake 一次收集的 [{field, message}, ...] → 一个异常。"""
        return cls(message=message, code=cls.code, detail={'errors': list(errors)})


class BlockError(BaseAppException):
    """业务规则阻止操作（例如没有可导出的订单）。409。"""

    type = 'block'
    code = 'BUSINESS_BLOCK'
    http_status = 409
