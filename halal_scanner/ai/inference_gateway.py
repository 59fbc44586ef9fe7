"""
推理网关

基于 Gemini generateContent REST API 的配料表分析
"""
import json
import os
import time
from typing import Any, Dict, Optional

import httpx

from halal_scanner.common import Logger
from halal_scanner.messages import get_message
from .ai_config import AIConfig
from .error_classifier import (
    ContentBlockedError,
    EmptyResponseError,
    ErrorKind,
    InferenceServiceError,
    classify_error,
)
from .models import AnalysisResult, ResultDecodeError
from .request_builder import AnalysisRequest

# 候选结果因这些原因结束时视为被拦截
BLOCKED_FINISH_REASONS = {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII", "IMAGE_SAFETY"}


class InferenceGateway:
    """推理网关

    职责：
    1. 检查 API Key（缺失时不发请求）
    2. 发送图片 + Schema + Prompt
    3. 解析 JSON 响应
    4. 把所有失败归类为固定的错误类型

    analyze() 从不抛出异常，失败时返回 NON_FOOD / 置信度 0 的结果。
    """

    def __init__(self, config: AIConfig, client: Optional[httpx.Client] = None):
        """
        Args:
            config: AI 配置对象
            client: HTTP 客户端（可选）；不传时每次请求临时创建
        """
        self.config = config
        self.client = client
        self.logger = Logger(config.log_dir)

    def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """分析图片

        Args:
            request: 分析请求

        Returns:
            AnalysisResult（失败时也返回合法结构）
        """
        api_key = self._resolve_api_key()
        if not api_key:
            self.logger.log("ai", "error", f"未配置 API Key ({self.config.api_key_env})")
            return self._failure(ErrorKind.MISSING_CREDENTIAL)

        start_time = time.time()
        try:
            response_json = self._call_api(api_key, request)
            text = self._extract_text(response_json)
            result = AnalysisResult.from_dict(json.loads(text))
        except Exception as e:
            kind = classify_error(e)
            self.logger.log("ai", "error", f"分析失败 [{kind.value}]: {e}",
                            error_type=type(e).__name__)
            return self._failure(kind)

        elapsed = time.time() - start_time
        self.logger.log("ai", "info",
                        f"分析完成 (耗时: {elapsed:.2f}s): {result.status.value}, 置信度 {result.confidence}")
        return result

    def has_credential(self) -> bool:
        return bool(self._resolve_api_key())

    def _resolve_api_key(self) -> str:
        """每次分析时读取 API Key"""
        return self.config.api_key or os.getenv(self.config.api_key_env, "")

    def _failure(self, kind: ErrorKind) -> AnalysisResult:
        return AnalysisResult.failure(get_message(kind.value, self.config.language), kind.value)

    def build_payload(self, request: AnalysisRequest) -> Dict[str, Any]:
        """构建请求体"""
        image_data = request.image.to_base64()
        generation = request.generation

        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {
                            "inline_data": {
                                "mime_type": request.image.mime_type,
                                "data": image_data,
                            }
                        },
                        {
                            "text": request.prompt
                        },
                    ],
                }
            ],
            "generationConfig": {
                "responseMimeType": generation.response_mime_type,
                "responseSchema": request.schema,
                "temperature": generation.temperature,
                "topP": generation.top_p,
                "topK": generation.top_k,
            },
        }

    def _call_api(self, api_key: str, request: AnalysisRequest) -> Dict[str, Any]:
        """调用 Gemini API

        Raises:
            InferenceServiceError: 服务端返回非 2xx
            httpx.TransportError: 网络错误
        """
        url = f"{self.config.base_url}/models/{self.config.model}:generateContent"

        headers = {
            "x-goog-api-key": api_key,
            "Content-Type": "application/json"
        }

        data = self.build_payload(request)
        self.logger.log("ai", "info",
                        f"开始分析图片: {request.image.width}x{request.image.height}, "
                        f"{len(request.image.data)} 字节")

        if self.client is not None:
            response = self.client.post(url, json=data, headers=headers, timeout=self.config.timeout)
        else:
            with httpx.Client(timeout=self.config.timeout) as client:
                response = client.post(url, json=data, headers=headers)

        if response.is_error:
            raise self._service_error(response)

        return response.json()

    @staticmethod
    def _service_error(response: httpx.Response) -> InferenceServiceError:
        """从错误响应中提取 code / status / message"""
        status = ""
        message = response.text
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            error = body["error"]
            status = str(error.get("status", ""))
            message = str(error.get("message", message))

        return InferenceServiceError(response.status_code, message, status)

    @staticmethod
    def _extract_text(response_json: Any) -> str:
        """提取第一个候选结果的文本

        Raises:
            ContentBlockedError: 被安全策略拦截
            ResultDecodeError: 响应结构不符合 generateContent 格式
            EmptyResponseError: 没有返回内容
        """
        if not isinstance(response_json, dict):
            raise ResultDecodeError("响应必须是 JSON 对象")

        feedback = response_json.get("promptFeedback") or {}
        if not isinstance(feedback, dict):
            raise ResultDecodeError("promptFeedback 格式错误")
        if feedback.get("blockReason"):
            raise ContentBlockedError(f"Prompt blocked: {feedback['blockReason']}")

        candidates = response_json.get("candidates") or []
        if not isinstance(candidates, list):
            raise ResultDecodeError("candidates 必须是数组")
        if not candidates:
            raise EmptyResponseError("No response from AI")

        candidate = candidates[0]
        if not isinstance(candidate, dict):
            raise ResultDecodeError("候选结果必须是对象")
        finish_reason = candidate.get("finishReason")
        if isinstance(finish_reason, str) and finish_reason in BLOCKED_FINISH_REASONS:
            raise ContentBlockedError(f"Response blocked: {finish_reason}")

        content = candidate.get("content") or {}
        if not isinstance(content, dict):
            raise ResultDecodeError("content 必须是对象")
        parts = content.get("parts") or []
        if not isinstance(parts, list) or not all(isinstance(part, dict) for part in parts):
            raise ResultDecodeError("parts 格式错误")
        texts = [part.get("text", "") for part in parts]
        if not all(isinstance(item, str) for item in texts):
            raise ResultDecodeError("text 必须是字符串")
        text = "".join(texts)
        if not text.strip():
            raise EmptyResponseError("No response from AI")

        return text

    def test_connection(self) -> bool:
        """测试 API 连接

        Returns:
            是否连接成功
        """
        api_key = self._resolve_api_key()
        if not api_key:
            return False

        url = f"{self.config.base_url}/models/{self.config.model}"
        headers = {"x-goog-api-key": api_key}
        try:
            if self.client is not None:
                response = self.client.get(url, headers=headers, timeout=self.config.timeout)
            else:
                response = httpx.get(url, headers=headers, timeout=self.config.timeout)
            response.raise_for_status()

            self.logger.log("ai", "info", "API 连接测试成功")
            return True

        except httpx.HTTPError as e:
            self.logger.log("ai", "error", f"API 连接测试失败: {e}")
            return False
