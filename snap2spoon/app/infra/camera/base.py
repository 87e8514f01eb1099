# snap2spoon/app/infra/camera/base.py
"""
Hardware boundary for photo capture.

The camera reports results through a delegate callback, at most once per
capture request, on whatever thread the backend uses. Everything above this
module only sees CaptureBridge futures.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional


class AuthorizationStatus(str, Enum):
    AUTHORIZED = "authorized"
    DENIED = "denied"
    NOT_DETERMINED = "not_determined"


class PhotoCaptureDelegate(ABC):
    @abstractmethod
    def photo_output(self, photo: Optional[bytes], error: Optional[Exception]) -> None:
        """
        Called by the backend when a capture finishes.

        Args:
            photo: Encoded image bytes, or None on failure
            error: The failure reported by the hardware, or None
        """
        pass


class PhotoOutput(ABC):
    @abstractmethod
    def capture_photo(self, delegate: PhotoCaptureDelegate) -> None:
        """
        Trigger a single exposure. Returns immediately; the result is
        delivered later through `delegate.photo_output`.
        """
        pass


class CaptureSession(ABC):
    @abstractmethod
    def begin_configuration(self) -> None:
        pass

    @abstractmethod
    def commit_configuration(self) -> None:
        pass

    @abstractmethod
    def can_add_input(self, camera_input: Any) -> bool:
        pass

    @abstractmethod
    def add_input(self, camera_input: Any) -> None:
        pass

    @abstractmethod
    def can_add_output(self, output: PhotoOutput) -> bool:
        pass

    @abstractmethod
    def add_output(self, output: PhotoOutput) -> None:
        pass

    @abstractmethod
    def start_running(self) -> None:
        """Start the pipeline. May block while the hardware spins up."""
        pass

    @abstractmethod
    def stop_running(self) -> None:
        pass


class CameraBackend(ABC):
    """
    Platform camera access.

    Implementations:
    - OpenCVCameraBackend: local camera through OpenCV
    """

    @abstractmethod
    def authorization_status(self) -> AuthorizationStatus:
        pass

    @abstractmethod
    def request_access(self) -> bool:
        """Ask the user or platform for camera access. Blocking."""
        pass

    @abstractmethod
    def default_camera(self) -> Optional[Any]:
        """Return a handle to the default camera, or None if there is none."""
        pass

    @abstractmethod
    def open_input(self, camera: Any) -> Any:
        """Open an input for the camera handle. May raise OSError."""
        pass

    @abstractmethod
    def create_session(self) -> CaptureSession:
        pass

    @abstractmethod
    def create_photo_output(self) -> PhotoOutput:
        pass

    @abstractmethod
    def release_camera(self, camera: Any) -> None:
        """Give back a handle from default_camera() that never reached a running session."""
        pass
