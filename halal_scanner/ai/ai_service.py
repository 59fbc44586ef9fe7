"""
AI 服务 - 统一的 AI 功能入口

职责：
1. 管理请求构建器和推理网关
2. 共享配置
3. 提供统一的入口
"""
from typing import Optional

import httpx

from halal_scanner.common import Logger
from halal_scanner.messages import get_message
from .ai_config import AIConfig
from .inference_gateway import InferenceGateway
from .models import AnalysisResult
from .request_builder import InferenceRequestBuilder, ImageInput


class AIService:
    """AI 服务（统一入口）

    设计原则：
    - 延迟初始化：缺少 API Key 时也能正常创建
    - 配置共享：构建器和网关共享同一份配置
    - 不使用全局单例，可以随时用新配置重建
    """

    def __init__(self, config: AIConfig, client: Optional[httpx.Client] = None):
        """
        Args:
            config: AI 配置对象
            client: HTTP 客户端（可选，测试时注入）
        """
        self.config = config
        self.client = client
        self.logger = Logger(config.log_dir)

        # 延迟初始化
        self._builder: Optional[InferenceRequestBuilder] = None
        self._gateway: Optional[InferenceGateway] = None

        self.logger.log("ai", "info", f"AIService 初始化 - provider: gemini, model: {config.model}")

    def builder(self) -> InferenceRequestBuilder:
        """获取请求构建器"""
        if self._builder is None:
            self._builder = InferenceRequestBuilder(
                max_width=self.config.max_dimension,
                max_height=self.config.max_dimension,
                language=self.config.language,
                log_dir=self.config.log_dir
            )
        return self._builder

    def gateway(self) -> InferenceGateway:
        """获取推理网关"""
        if self._gateway is None:
            self._gateway = InferenceGateway(self.config, client=self.client)
        return self._gateway

    def analyze_image(self, image: ImageInput,
                      enhance: bool = False,
                      downscale: bool = False) -> AnalysisResult:
        """预处理并分析一张图片（不抛出异常）

        Args:
            image: CapturedImage / 图片字节 / data URL
            enhance: 是否增强
            downscale: 是否缩小

        Returns:
            AnalysisResult
        """
        try:
            request = self.builder().build(image, enhance=enhance, downscale=downscale)
        except (TypeError, ValueError) as e:
            self.logger.log("ai", "error", f"图片无法读取: {e}")
            return AnalysisResult.failure(get_message("invalid_image", self.config.language), "invalid_image")
        return self.gateway().analyze(request)

    def test_connection(self) -> bool:
        return self.gateway().test_connection()

    def get_status(self) -> dict:
        """获取服务状态

        Returns:
            状态字典
        """
        return {
            "provider": "gemini",
            "model": self.config.model,
            "language": self.config.language,
            "api_key_configured": self.gateway().has_credential()
        }


# ==================== 工厂函数 ====================

def create_ai_service(config: AIConfig, client: Optional[httpx.Client] = None) -> AIService:
    """创建 AI 服务

    Args:
        config: AI 配置对象
        client: HTTP 客户端（可选）

    Returns:
        AIService 实例
    """
    return AIService(config, client=client)
