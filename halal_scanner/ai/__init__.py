"""
AI 模块 - 配料表分析的统一入口

架构：
┌─────────────────────────────────────┐
│          AIService (统一入口)        │
├─────────────────────────────────────┤
│  builder() → InferenceRequestBuilder │  ← 缩放 + 增强 + Schema + Prompt
│  gateway() → InferenceGateway        │  ← 发送请求、解析结果、错误分类
├─────────────────────────────────────┤
│  AIConfig (配置层)                   │  ← API Key, 模型配置
└─────────────────────────────────────┘

使用示例：
```python
from halal_scanner.ai import create_ai_service, AIConfig

ai = create_ai_service(AIConfig(api_key="your_api_key", language="en"))
result = ai.analyze_image(open("label.jpg", "rb").read(), enhance=True, downscale=True)
print(result.to_dict())
# {
#   "status": "HARAM",
#   "reason": "Contains pork gelatin.",
#   "ingredientsDetected": [{"name": "Pork Gelatin", "status": "HARAM"}],
#   "confidence": 95
# }
```
"""

from .ai_config import AIConfig
from .ai_service import AIService, create_ai_service
from .error_classifier import ErrorKind, classify_error
from .inference_gateway import InferenceGateway
from .models import AnalysisResult, HalalStatus, IngredientFinding
from .request_builder import (
    AnalysisRequest,
    GenerationParams,
    InferenceRequestBuilder,
    RESPONSE_SCHEMA,
)

__all__ = [
    # 配置
    'AIConfig',

    # 服务
    'AIService',
    'create_ai_service',
    'InferenceGateway',
    'InferenceRequestBuilder',

    # 数据
    'AnalysisRequest',
    'GenerationParams',
    'AnalysisResult',
    'HalalStatus',
    'IngredientFinding',
    'RESPONSE_SCHEMA',

    # 错误
    'ErrorKind',
    'classify_error',
]
