import pytest

from halal_scanner.ai import AIConfig
from halal_scanner.vision import CapturedImage

from tests.fakes import make_jpeg


@pytest.fixture
def jpeg_image() -> CapturedImage:
    return CapturedImage.from_bytes(make_jpeg(64, 48))


@pytest.fixture
def ai_config(tmp_path) -> AIConfig:
    return AIConfig(api_key="test-key", language="en", log_dir=str(tmp_path / "logs"))
