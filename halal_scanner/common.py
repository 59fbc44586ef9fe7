"""
通用工具类
"""
import os
import json
from pathlib import Path
from datetime import datetime
from typing import Optional
from dotenv import load_dotenv
from dataclasses import dataclass

# 项目根目录
BASE_DIR = Path(__file__).parent.parent

# 加载 .env 文件
load_dotenv(os.path.join(BASE_DIR, '.env'))


def env_flag(name: str, default: bool = False) -> bool:
    """读取布尔型环境变量"""
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ('true', '1', 'yes', 'on')


class Logger:
    """简单日志工具"""

    def __init__(self, log_dir=None):
        self.log_dir = Path(log_dir) if log_dir else None

    def log(self, module: str, level: str, message: str, **kwargs):
        """记录日志"""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        log_entry = {
            "timestamp": timestamp,
            "module": module,
            "level": level,
            "message": message,
            **kwargs
        }

        # 输出到控制台
        print(f"[{timestamp}] [{module}] {level}: {message}")

        # 输出到文件（可选）
        if self.log_dir:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            log_file = self.log_dir / f"{datetime.now().strftime('%Y%m%d')}.log"
            try:
                with open(log_file, "a", encoding="utf-8") as f:
                    f.write(json.dumps(log_entry, ensure_ascii=False, default=str) + "\n")
            except OSError as e:
                print(f"写入日志失败: {e}")


@dataclass
class GeminiConfig:
    """Gemini Vision API 配置"""
    api_key: str
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-3-pro-preview"
    timeout: int = 120


@dataclass
class CameraConfig:
    """摄像头配置"""
    camera_index: int = 0
    resolution: tuple = (1280, 720)  # 首选分辨率
    shutter_delay: float = 0.15  # 快门效果延迟（秒）


@dataclass
class ScanConfig:
    """扫描流程配置"""
    enhance_image: bool = False  # 对比度 + 锐化
    downscale_image: bool = False  # 超过上限时缩小
    max_dimension: int = 2000
    language: str = "ar"  # 用户提示语言: ar / en


class Config:
    """全局配置类"""

    def __init__(self, log_dir: Optional[Path] = None):
        # Gemini 配置
        self.gemini = GeminiConfig(
            api_key=os.getenv("GEMINI_API_KEY", ""),
            base_url=os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"),
            model=os.getenv("GEMINI_MODEL", "gemini-3-pro-preview"),
            timeout=int(os.getenv("GEMINI_TIMEOUT", "120"))
        )

        # 摄像头配置
        self.camera = CameraConfig(
            camera_index=int(os.getenv("CAMERA_INDEX", "0")),
            resolution=tuple(map(int, os.getenv("RESOLUTION", "1280,720").split(","))),
            shutter_delay=float(os.getenv("SHUTTER_DELAY", "0.15"))
        )

        # 扫描配置
        self.scan = ScanConfig(
            enhance_image=env_flag("SCAN_ENHANCE_IMAGE"),
            downscale_image=env_flag("SCAN_DOWNSCALE_IMAGE"),
            max_dimension=int(os.getenv("SCAN_MAX_DIMENSION", "2000")),
            language=os.getenv("SCANNER_LANGUAGE", "ar")
        )

        # 项目路径
        self.log_dir = Path(log_dir) if log_dir else BASE_DIR / "logs"
