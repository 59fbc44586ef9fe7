import json

import pytest

from halal_scanner.common import Config, Logger, env_flag
from halal_scanner.messages import MESSAGES, get_message
from halal_scanner.vision import CapturedImage, split_data_url

from tests.fakes import make_jpeg


class TestCapturedImage:

    def test_from_bytes_probes_size(self):
        image = CapturedImage.from_bytes(make_jpeg(33, 17))
        assert (image.width, image.height) == (33, 17)
        assert image.decode().shape == (17, 33, 3)

    def test_undecodable_bytes(self):
        image = CapturedImage.from_bytes(b"not an image")
        assert (image.width, image.height) == (0, 0)
        assert image.decode() is None

    @pytest.mark.parametrize("prefix, mime_type", [
        ("data:image/png;base64,", "image/png"),
        ("data:image/jpg;base64,", "image/jpeg"),
        ("", "image/jpeg"),
    ])
    def test_from_data_url(self, prefix, mime_type):
        raw = CapturedImage.from_bytes(make_jpeg(8, 6))
        image = CapturedImage.from_data_url(prefix + raw.to_base64())

        assert image.mime_type == mime_type
        assert image.data == raw.data

    def test_invalid_base64(self):
        with pytest.raises(ValueError):
            CapturedImage.from_data_url("data:image/jpeg;base64,%%%")

    def test_split_data_url(self):
        assert split_data_url("data:image/webp;base64,QUJD") == ("image/webp", "QUJD")
        assert split_data_url("QUJD") == ("image/jpeg", "QUJD")

    def test_from_file(self, tmp_path):
        path = tmp_path / "label.PNG"
        path.write_bytes(make_jpeg(5, 5))
        assert CapturedImage.from_file(path).mime_type == "image/png"


class TestMessages:

    def test_languages_share_keys(self):
        assert set(MESSAGES["ar"]) == set(MESSAGES["en"])

    def test_unknown_language_falls_back_to_arabic(self):
        assert get_message("network", "fr") == MESSAGES["ar"]["network"]

    def test_unknown_key(self):
        assert get_message("nope", "en") == MESSAGES["ar"]["unknown"]


class TestConfig:

    def test_env_flag(self, monkeypatch):
        monkeypatch.setenv("SOME_FLAG", "Yes")
        assert env_flag("SOME_FLAG") is True
        monkeypatch.setenv("SOME_FLAG", "off")
        assert env_flag("SOME_FLAG", default=True) is False
        monkeypatch.delenv("SOME_FLAG")
        assert env_flag("SOME_FLAG", default=True) is True

    def test_values_from_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("RESOLUTION", "640,480")
        monkeypatch.setenv("SHUTTER_DELAY", "0")
        monkeypatch.setenv("GEMINI_MODEL", "gemini-test")
        monkeypatch.setenv("SCAN_MAX_DIMENSION", "1000")

        config = Config(log_dir=tmp_path)

        assert config.camera.resolution == (640, 480)
        assert config.camera.shutter_delay == 0.0
        assert config.gemini.model == "gemini-test"
        assert config.scan.max_dimension == 1000
        assert config.log_dir == tmp_path


def test_logger_writes_json_lines(tmp_path, capsys):
    Logger(tmp_path).log("scan", "info", "完成", confidence=90)

    assert "[scan] info: 完成" in capsys.readouterr().out
    lines = next(tmp_path.glob("*.log")).read_text(encoding="utf-8").splitlines()
    entry = json.loads(lines[-1])
    assert entry["module"] == "scan"
    assert entry["confidence"] == 90
