from __future__ import annotations


class Snap2SpoonError(Exception):
    pass


class CaptureError(Snap2SpoonError):
    pass


class DeviceNotFoundError(CaptureError):
    def __init__(self, message: str = "No camera device available"):
        super().__init__(message)


class InputRejectedError(CaptureError):
    def __init__(self, reason: str = "Capture session rejected the camera input"):
        super().__init__(reason)
        self.reason = reason


class OutputRejectedError(CaptureError):
    def __init__(self, reason: str = "Capture session rejected the photo output"):
        super().__init__(reason)
        self.reason = reason


class CaptureFailedError(CaptureError):
    def __init__(self, reason: str = "Photo capture failed"):
        super().__init__(reason)
        self.reason = reason


class AuthorizationDeniedError(CaptureError):
    def __init__(self, message: str = "Camera access not authorized"):
        super().__init__(message)


class CaptureInProgressError(CaptureError):
    def __init__(self, message: str = "A capture is already pending"):
        super().__init__(message)


class ExtractError(Snap2SpoonError):
    pass


class MalformedResponseError(ExtractError):
    def __init__(self, raw_snippet: str):
        super().__init__(f"Model response could not be parsed as recipes: {raw_snippet!r}")
        self.raw_snippet = raw_snippet


class SyncError(Snap2SpoonError):
    pass


class RemoteUnavailableError(SyncError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Remote store unavailable during {operation}: {reason}")
        self.operation = operation
        self.reason = reason
