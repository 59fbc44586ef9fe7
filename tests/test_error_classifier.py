import json

import httpx
import pytest

from halal_scanner.ai import ErrorKind, classify_error
from halal_scanner.ai.error_classifier import (
    ContentBlockedError,
    EmptyResponseError,
    InferenceServiceError,
)
from halal_scanner.ai.models import ResultDecodeError


def _decode_error():
    try:
        json.loads("{not json")
    except json.JSONDecodeError as e:
        return e


@pytest.mark.parametrize("error, kind", [
    (httpx.ConnectError("Connection refused"), ErrorKind.NETWORK),
    (httpx.ReadTimeout("timed out"), ErrorKind.NETWORK),
    (InferenceServiceError(429, "Resource has been exhausted", "RESOURCE_EXHAUSTED"), ErrorKind.RATE_LIMITED),
    (InferenceServiceError(503, "The model is overloaded.", "UNAVAILABLE"), ErrorKind.OVERLOADED),
    (InferenceServiceError(500, "Internal error encountered.", "INTERNAL"), ErrorKind.OVERLOADED),
    (InferenceServiceError(413, "Request Entity Too Large"), ErrorKind.PAYLOAD_TOO_LARGE),
    (InferenceServiceError(403, "The caller does not have access.", "PERMISSION_DENIED"), ErrorKind.AUTH),
    (InferenceServiceError(400, "API key not valid.", "INVALID_ARGUMENT"), ErrorKind.AUTH),
    (ContentBlockedError("Prompt blocked: SAFETY"), ErrorKind.SAFETY_BLOCKED),
    (RuntimeError("request violated the content policy"), ErrorKind.SAFETY_BLOCKED),
    (_decode_error(), ErrorKind.MALFORMED_RESPONSE),
    (ResultDecodeError("缺少字段: confidence"), ErrorKind.MALFORMED_RESPONSE),
    (EmptyResponseError("No response from AI"), ErrorKind.UNKNOWN),
    (RuntimeError("weird"), ErrorKind.UNKNOWN),
])
def test_classification(error, kind):
    assert classify_error(error) == kind


def test_rules_are_evaluated_in_order():
    # 429 优先于安全拦截关键字
    error = InferenceServiceError(429, "quota exceeded by safety system")
    assert classify_error(error) == ErrorKind.RATE_LIMITED

    # 网络错误优先于状态码
    error = InferenceServiceError(429, "network error while streaming")
    assert classify_error(error) == ErrorKind.NETWORK


def test_message_keywords_without_status_code():
    assert classify_error(RuntimeError("Too Many Requests")) == ErrorKind.RATE_LIMITED
    assert classify_error(RuntimeError("service unavailable")) == ErrorKind.OVERLOADED
    assert classify_error(RuntimeError("payload exceeds limit")) == ErrorKind.PAYLOAD_TOO_LARGE
    assert classify_error(RuntimeError("missing api key")) == ErrorKind.AUTH


def test_http_status_error_code_is_used():
    request = httpx.Request("POST", "https://example.test")
    response = httpx.Response(503, request=request)
    error = httpx.HTTPStatusError("server said no", request=request, response=response)
    assert classify_error(error) == ErrorKind.OVERLOADED


@pytest.mark.parametrize("error", [
    UnicodeDecodeError("utf-8", b"\xff\xfe", 0, 1, "invalid start byte"),
    ResultDecodeError("未知状态: 'BLOCKED'"),
    ResultDecodeError("未知状态: 'network payload'"),
])
def test_decode_errors_ignore_message_keywords(error):
    assert classify_error(error) == ErrorKind.MALFORMED_RESPONSE
