# snap2spoon/app/infra/camera/opencv_backend.py
"""
Local camera backend using OpenCV.
Frames are grabbed on a worker thread and reported JPEG-encoded through the
capture delegate.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Optional

import cv2

from snap2spoon.app.config import settings
from snap2spoon.app.domain.errors import CaptureFailedError
from snap2spoon.app.infra.camera.base import (
    AuthorizationStatus,
    CameraBackend,
    CaptureSession,
    PhotoCaptureDelegate,
    PhotoOutput,
)

logger = logging.getLogger(__name__)

JPEG_QUALITY = 80
WARMUP_FRAMES = 3


class OpenCVCameraInput:
    def __init__(self, capture: cv2.VideoCapture):
        self.capture = capture
        self.lock = threading.Lock()

    def read_jpeg(self) -> bytes:
        with self.lock:
            ok, frame = self.capture.read()
        if not ok or frame is None:
            raise CaptureFailedError("Camera returned no frame")

        encoded_ok, buffer = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), JPEG_QUALITY])
        if not encoded_ok:
            raise CaptureFailedError("Unable to encode camera frame")
        return buffer.tobytes()

    def release(self) -> None:
        with self.lock:
            self.capture.release()


class OpenCVPhotoOutput(PhotoOutput):
    def __init__(self) -> None:
        self.camera_input: Optional[OpenCVCameraInput] = None

    def capture_photo(self, delegate: PhotoCaptureDelegate) -> None:
        camera_input = self.camera_input
        if camera_input is None:
            delegate.photo_output(None, CaptureFailedError("Photo output is not connected"))
            return

        def _grab() -> None:
            try:
                photo = camera_input.read_jpeg()
            except CaptureFailedError as error:
                delegate.photo_output(None, error)
                return
            except cv2.error as error:
                delegate.photo_output(None, CaptureFailedError(str(error)))
                return
            delegate.photo_output(photo, None)

        threading.Thread(target=_grab, name="opencv-photo-capture", daemon=True).start()


class OpenCVCaptureSession(CaptureSession):
    def __init__(self) -> None:
        self.camera_input: Optional[OpenCVCameraInput] = None
        self.output: Optional[OpenCVPhotoOutput] = None
        self.running = False
        self._configuring = False

    def begin_configuration(self) -> None:
        self._configuring = True

    def commit_configuration(self) -> None:
        self._configuring = False
        if self.output is not None:
            self.output.camera_input = self.camera_input

    def can_add_input(self, camera_input: Any) -> bool:
        return isinstance(camera_input, OpenCVCameraInput) and self.camera_input is None

    def add_input(self, camera_input: Any) -> None:
        self.camera_input = camera_input

    def can_add_output(self, output: PhotoOutput) -> bool:
        return isinstance(output, OpenCVPhotoOutput) and self.output is None

    def add_output(self, output: PhotoOutput) -> None:
        self.output = output  # type: ignore[assignment]

    def start_running(self) -> None:
        if self.camera_input is None:
            return
        # let auto-exposure settle before the first real capture
        for _ in range(WARMUP_FRAMES):
            with self.camera_input.lock:
                self.camera_input.capture.read()
        self.running = True
        logger.info("Camera session running")

    def stop_running(self) -> None:
        if self.camera_input is not None:
            self.camera_input.release()
        self.running = False


class OpenCVCameraBackend(CameraBackend):
    def __init__(self, camera_index: Optional[int] = None):
        self.camera_index = settings.CAMERA_INDEX if camera_index is None else camera_index

    def authorization_status(self) -> AuthorizationStatus:
        # desktop platforms gate camera access at the OS level, not per app
        return AuthorizationStatus.AUTHORIZED

    def request_access(self) -> bool:
        return True

    def default_camera(self) -> Optional[cv2.VideoCapture]:
        capture = cv2.VideoCapture(self.camera_index)
        if capture.isOpened():
            return capture
        capture.release()
        logger.warning("No camera found at index %d", self.camera_index)
        return None

    def open_input(self, camera: Any) -> OpenCVCameraInput:
        if not isinstance(camera, cv2.VideoCapture) or not camera.isOpened():
            raise OSError("Camera handle is not open")
        return OpenCVCameraInput(camera)

    def create_session(self) -> OpenCVCaptureSession:
        return OpenCVCaptureSession()

    def create_photo_output(self) -> OpenCVPhotoOutput:
        return OpenCVPhotoOutput()

    def release_camera(self, camera: Any) -> None:
        if isinstance(camera, cv2.VideoCapture):
            camera.release()
