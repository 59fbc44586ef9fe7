"""
分析错误分类

把传输层 / 服务端 / 解析阶段的各种异常归为固定的几类，
规则按顺序匹配，第一个命中的规则决定类型。
"""
import json
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

import httpx

from .models import ResultDecodeError

# 响应解析阶段的异常，消息里可能带有模型输出的内容
DECODE_ERRORS = (json.JSONDecodeError, UnicodeDecodeError, ResultDecodeError)


class ErrorKind(Enum):
    """分析错误类型（值即提示语的键）"""
    MISSING_CREDENTIAL = "missing_credential"
    NETWORK = "network"
    RATE_LIMITED = "rate_limited"
    OVERLOADED = "overloaded"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    AUTH = "auth"
    SAFETY_BLOCKED = "safety_blocked"
    MALFORMED_RESPONSE = "malformed_response"
    UNKNOWN = "unknown"


class InferenceServiceError(Exception):
    """服务端返回的错误（非 2xx）"""

    def __init__(self, status_code: int, message: str, status: str = ""):
        super().__init__(f"[{status_code} {status}] {message}".replace(" ]", "]"))
        self.status_code = status_code
        self.status = status
        self.message = message


class ContentBlockedError(Exception):
    """内容被安全策略拦截"""


class EmptyResponseError(Exception):
    """服务端没有返回任何内容"""


@dataclass
class ErrorInfo:
    """从异常中提取的分类依据"""
    error: BaseException
    status_code: Optional[int]
    text: str  # 小写的类型名 + 状态 + 消息

    @classmethod
    def from_exception(cls, error: BaseException) -> 'ErrorInfo':
        status_code = getattr(error, "status_code", None)
        if status_code is None and isinstance(error, httpx.HTTPStatusError):
            status_code = error.response.status_code

        if isinstance(error, DECODE_ERRORS):
            # 只按类型归类，不做关键字匹配
            return cls(error=error, status_code=None, text="")

        parts = [type(error).__name__, getattr(error, "status", "") or "", str(error)]
        return cls(error=error, status_code=status_code, text=" ".join(parts).lower())

    def has_code(self, *codes: int) -> bool:
        return self.status_code in codes

    def mentions(self, *needles: str) -> bool:
        return any(needle in self.text for needle in needles)


Rule = Tuple[Callable[[ErrorInfo], bool], ErrorKind]

RULES: List[Rule] = [
    (lambda e: isinstance(e.error, httpx.TransportError)
        or e.mentions("fetch failed", "network", "connection"),
     ErrorKind.NETWORK),
    (lambda e: e.has_code(429)
        or e.mentions("quota", "too many requests", "exhausted"),
     ErrorKind.RATE_LIMITED),
    (lambda e: e.has_code(500, 503)
        or e.mentions("overloaded", "service unavailable", "internal server error"),
     ErrorKind.OVERLOADED),
    (lambda e: e.has_code(413)
        or e.mentions("rpc failed", "too large", "payload"),
     ErrorKind.PAYLOAD_TOO_LARGE),
    (lambda e: e.has_code(400, 401, 403)
        or e.mentions("api key", "permission"),
     ErrorKind.AUTH),
    (lambda e: isinstance(e.error, ContentBlockedError)
        or e.mentions("safety", "blocked", "policy"),
     ErrorKind.SAFETY_BLOCKED),
    (lambda e: isinstance(e.error, DECODE_ERRORS),
     ErrorKind.MALFORMED_RESPONSE),
]


def classify_error(error: BaseException) -> ErrorKind:
    """按规则顺序归类异常，全部不匹配时返回 UNKNOWN"""
    info = ErrorInfo.from_exception(error)
    for predicate, kind in RULES:
        if predicate(info):
            return kind
    return ErrorKind.UNKNOWN
