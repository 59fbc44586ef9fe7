import threading

import pytest

from halal_scanner.messages import get_message
from halal_scanner.vision import (
    CameraAcquisitionError,
    CaptureDevice,
    DeviceErrorKind,
    DeviceState,
    StreamConstraints,
    TrackCapabilities,
)
from halal_scanner.vision.camera_backend import FacingMode, classify_acquisition_error

from tests.fakes import FakeBackend, FakeStream, RecordingSurface


class NotAllowedError(Exception):
    pass


class NotFoundError(Exception):
    pass


class NotReadableError(Exception):
    pass


def _device(backend, tmp_path, **kwargs):
    kwargs.setdefault("shutter_delay", 0)
    return CaptureDevice(backend, log_dir=tmp_path, **kwargs)


def _zoom_torch_stream(**kwargs):
    caps = TrackCapabilities(torch=True, zoom_supported=True, zoom_min=1.0, zoom_max=8.0, zoom=1.0)
    return FakeStream(capabilities=caps, **kwargs)


class TestOpen:

    def test_open_uses_preferred_profile(self, tmp_path):
        stream = FakeStream(1280, 720)
        backend = FakeBackend([stream])
        surface = RecordingSurface()
        device = _device(backend, tmp_path, surface=surface)

        assert device.open() is True
        assert device.state == DeviceState.STREAMING
        assert device.stream is stream
        assert surface.bound is stream

        requested = backend.requests[0]
        assert requested.facing_mode == FacingMode.ENVIRONMENT
        assert (requested.width, requested.height) == (1280, 720)
        assert requested.continuous_focus is True

    def test_fallback_to_minimal_request_and_probe(self, tmp_path):
        stream = _zoom_torch_stream()
        backend = FakeBackend([OverflowError("constraints not satisfiable"), stream])
        device = _device(backend, tmp_path)

        assert device.open() is True
        assert backend.requests[1] == StreamConstraints.minimal()
        assert backend.requests[1].is_minimal
        # 回退路径同样探测能力
        assert device.capabilities.supports_torch is True
        assert device.capabilities.supports_zoom is True
        assert device.capabilities.zoom_max == 8.0

    @pytest.mark.parametrize("error, kind", [
        (NotAllowedError("Permission dismissed"), DeviceErrorKind.PERMISSION_DENIED),
        (PermissionError("nope"), DeviceErrorKind.PERMISSION_DENIED),
        (NotFoundError("Requested device not found"), DeviceErrorKind.NOT_FOUND),
        (NotReadableError("Could not start video source"), DeviceErrorKind.BUSY),
        (CameraAcquisitionError("x", DeviceErrorKind.BUSY), DeviceErrorKind.BUSY),
        (RuntimeError("something odd"), DeviceErrorKind.UNKNOWN),
    ])
    def test_second_failure_is_classified(self, tmp_path, error, kind):
        backend = FakeBackend([RuntimeError("first"), error])
        device = _device(backend, tmp_path, language="en")

        assert device.open() is False
        assert device.state == DeviceState.ERRORED
        assert device.error_kind == kind
        assert device.error_message == get_message(kind.value, "en")
        assert len(backend.requests) == 2

    def test_unsupported_platform(self, tmp_path):
        backend = FakeBackend(supported=False)
        device = _device(backend, tmp_path)

        assert device.open() is False
        assert device.state == DeviceState.ERRORED
        assert device.error_kind == DeviceErrorKind.UNSUPPORTED_PLATFORM
        assert backend.requests == []

    def test_open_twice_keeps_single_stream(self, tmp_path):
        backend = FakeBackend([FakeStream(), FakeStream()])
        device = _device(backend, tmp_path)

        assert device.open() is True
        assert device.open() is True
        assert len(backend.requests) == 1

    def test_support_check_error_is_unsupported_platform(self, tmp_path):
        class BrokenBackend(FakeBackend):
            def is_supported(self):
                raise RuntimeError("mediaDevices missing")

        backend = BrokenBackend()
        device = _device(backend, tmp_path)

        assert device.open() is False
        assert device.state == DeviceState.ERRORED
        assert device.error_kind == DeviceErrorKind.UNSUPPORTED_PLATFORM
        assert backend.requests == []

    def test_surface_bind_error_still_streams(self, tmp_path):
        class BrokenSurface(RecordingSurface):
            def bind(self, stream):
                raise RuntimeError("surface gone")

            def unbind(self):
                raise RuntimeError("surface gone")

        stream = FakeStream()
        device = _device(FakeBackend([stream]), tmp_path, surface=BrokenSurface())

        assert device.open() is True
        assert device.state == DeviceState.STREAMING

        image = device.capture()
        assert image is not None
        assert device.state == DeviceState.CLOSED
        assert stream.stop_calls == 1


def test_classifier_falls_back_to_first_error():
    kind = classify_acquisition_error(RuntimeError("odd"), NotFoundError("gone"))
    assert kind == DeviceErrorKind.NOT_FOUND


class TestCapabilities:

    def test_no_capabilities(self, tmp_path):
        device = _device(FakeBackend([FakeStream()]), tmp_path)
        device.open()

        caps = device.capabilities
        assert caps.supports_torch is False
        assert caps.supports_zoom is False

    def test_zoom_max_defaults_to_five(self, tmp_path):
        stream = FakeStream(capabilities=TrackCapabilities(zoom_supported=True, zoom_min=1.0))
        device = _device(FakeBackend([stream]), tmp_path)
        device.open()

        assert device.capabilities.supports_zoom is True
        assert device.capabilities.zoom_max == 5.0
        assert device.capabilities.zoom_level == 1.0

    def test_toggle_torch(self, tmp_path):
        stream = _zoom_torch_stream()
        device = _device(FakeBackend([stream]), tmp_path)
        device.open()

        device.toggle_torch()
        assert device.capabilities.torch_on is True
        device.toggle_torch()
        assert device.capabilities.torch_on is False
        assert stream.applied == [("torch", True), ("torch", False)]

    def test_toggle_torch_failure_keeps_state(self, tmp_path):
        stream = _zoom_torch_stream(failing_constraints={"torch"})
        device = _device(FakeBackend([stream]), tmp_path)
        device.open()

        device.toggle_torch()
        assert device.capabilities.torch_on is False

    def test_toggle_torch_unsupported_is_noop(self, tmp_path):
        stream = FakeStream()
        device = _device(FakeBackend([stream]), tmp_path)
        device.open()

        device.toggle_torch()
        assert stream.applied == []

    def test_set_zoom(self, tmp_path):
        stream = _zoom_torch_stream()
        device = _device(FakeBackend([stream]), tmp_path)
        device.open()

        device.set_zoom(2.5)
        assert device.capabilities.zoom_level == 2.5
        assert stream.applied == [("zoom", 2.5)]

    def test_set_zoom_failure_keeps_level(self, tmp_path):
        stream = _zoom_torch_stream(failing_constraints={"zoom"})
        device = _device(FakeBackend([stream]), tmp_path)
        device.open()

        device.set_zoom(3.0)
        assert device.capabilities.zoom_level == 1.0


class TestCapture:

    def test_capture_encodes_frame_and_closes(self, tmp_path):
        stream = _zoom_torch_stream(width=320, height=240)
        surface = RecordingSurface()
        device = _device(FakeBackend([stream]), tmp_path, surface=surface)
        device.open()

        image = device.capture()

        assert image is not None
        assert image.mime_type == "image/jpeg"
        assert (image.width, image.height) == (320, 240)
        assert image.data[:2] == b"\xff\xd8"
        assert device.state == DeviceState.CLOSED
        assert stream.stop_calls == 1
        assert surface.unbind_calls == 1
        assert device.capabilities.supports_torch is False
        assert device.capabilities.supports_zoom is False

    def test_controls_are_noop_after_capture(self, tmp_path):
        stream = _zoom_torch_stream()
        device = _device(FakeBackend([stream]), tmp_path)
        device.open()
        device.capture()

        device.toggle_torch()
        device.set_zoom(2.0)
        assert stream.applied == []

    def test_second_capture_is_ignored_while_first_in_flight(self, tmp_path):
        stream = FakeStream()
        stream.gate = threading.Event()
        device = _device(FakeBackend([stream]), tmp_path)
        device.open()

        results = []
        worker = threading.Thread(target=lambda: results.append(device.capture()))
        worker.start()
        assert stream.entered.wait(timeout=5)

        assert device.is_capturing is True
        assert device.capture() is None

        stream.gate.set()
        worker.join(timeout=5)

        assert len(results) == 1 and results[0] is not None
        assert stream.read_calls == 1
        assert device.state == DeviceState.CLOSED

    def test_capture_twice_in_sequence_yields_one_image(self, tmp_path):
        device = _device(FakeBackend([FakeStream()]), tmp_path)
        device.open()

        first = device.capture()
        second = device.capture()

        assert first is not None
        assert second is None

    def test_failed_frame_read_returns_to_streaming(self, tmp_path):
        stream = FakeStream(frame=False)
        device = _device(FakeBackend([stream]), tmp_path)
        device.open()

        assert device.capture() is None
        assert device.state == DeviceState.STREAMING
        assert device.is_capturing is False
        assert stream.stop_calls == 0

    def test_capture_before_open_is_ignored(self, tmp_path):
        device = _device(FakeBackend([FakeStream()]), tmp_path)
        assert device.capture() is None
        assert device.state == DeviceState.IDLE


class TestClose:

    def test_close_is_idempotent(self, tmp_path):
        stream = _zoom_torch_stream()
        surface = RecordingSurface()
        device = _device(FakeBackend([stream]), tmp_path, surface=surface)
        device.open()

        device.close()
        device.close()

        assert device.state == DeviceState.CLOSED
        assert stream.stop_calls == 1
        assert surface.unbind_calls == 1
        assert device.capabilities.supports_torch is False

    def test_close_during_capture_discards_image(self, tmp_path):
        stream = FakeStream()
        stream.gate = threading.Event()
        device = _device(FakeBackend([stream]), tmp_path)
        device.open()

        results = []
        worker = threading.Thread(target=lambda: results.append(device.capture()))
        worker.start()
        assert stream.entered.wait(timeout=5)

        device.close()
        stream.gate.set()
        worker.join(timeout=5)

        assert results == [None]
        assert device.state == DeviceState.CLOSED
        assert device.is_capturing is False

    def test_closed_device_cannot_reopen(self, tmp_path):
        backend = FakeBackend([FakeStream(), FakeStream()])
        device = _device(backend, tmp_path)
        device.close()

        assert device.open() is False
        assert backend.requests == []

    def test_errored_device_stays_errored_after_close(self, tmp_path):
        device = _device(FakeBackend(supported=False), tmp_path)
        device.open()
        device.close()
        assert device.state == DeviceState.ERRORED
