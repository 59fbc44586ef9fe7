"""
Scanner 模块 - 单次扫描流程
"""

from .scan_service import (
    ScanOutcome,
    ScanService,
    create_capture_device,
    create_scan_service,
)

__all__ = [
    'ScanOutcome',
    'ScanService',
    'create_capture_device',
    'create_scan_service',
]
