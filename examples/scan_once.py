"""
单次扫描 - 命令行入口

用法:
    python examples/scan_once.py                # 使用摄像头拍照
    python examples/scan_once.py label.jpg      # 分析已有图片
"""
import json
import sys
from pathlib import Path

# Windows 控制台 UTF-8 编码
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding='utf-8')

# 添加项目根目录到 Python 路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from halal_scanner.common import Config
from halal_scanner.scanner import create_capture_device, create_scan_service
from halal_scanner.vision import CapturedImage


def main() -> int:
    config = Config()
    service = create_scan_service(config)

    print("=" * 60)
    print("Halal Scanner - 单次扫描")
    print("=" * 60)
    print(f"  - API Key: {'已配置' if config.gemini.api_key else '未配置'}")
    print(f"  - 模型: {config.gemini.model}")
    print(f"  - 增强: {config.scan.enhance_image}, 缩放: {config.scan.downscale_image}")

    if len(sys.argv) > 1:
        image_path = Path(sys.argv[1])
        if not image_path.exists():
            print(f"[错误] 图片不存在: {image_path}")
            return 1
        outcome = service.scan_image(CapturedImage.from_file(image_path))
    else:
        device = create_capture_device(config)
        try:
            outcome = service.scan_from_camera(device)
        finally:
            device.close()

    print(json.dumps(outcome.to_dict(), ensure_ascii=False, indent=2))
    return 0 if outcome.ok else 2


if __name__ == "__main__":
    sys.exit(main())
