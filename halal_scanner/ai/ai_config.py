"""
AI 服务配置类
"""
from dataclasses import dataclass
from typing import Optional

from halal_scanner.common import Config


@dataclass
class AIConfig:
    """AI 服务配置对象

    统一管理所有 AI 功能的配置
    """
    # Gemini API 配置
    api_key: Optional[str] = None  # 为空时每次分析从环境变量读取
    api_key_env: str = "GEMINI_API_KEY"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-3-pro-preview"

    # 超时配置
    timeout: int = 120  # API 请求超时（秒）

    # 预处理配置
    max_dimension: int = 2000

    # 提示语言（reason、配料名称、错误提示）
    language: str = "ar"

    # 日志配置
    log_dir: Optional[str] = "logs"

    @classmethod
    def from_config(cls, config: Config) -> 'AIConfig':
        """从全局配置创建"""
        return cls(
            api_key=config.gemini.api_key or None,
            base_url=config.gemini.base_url,
            model=config.gemini.model,
            timeout=config.gemini.timeout,
            max_dimension=config.scan.max_dimension,
            language=config.scan.language,
            log_dir=str(config.log_dir),
        )
