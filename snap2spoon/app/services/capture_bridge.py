# snap2spoon/app/services/capture_bridge.py
"""
Adapts the callback-shaped camera into awaitable, single-result operations.

Each `capture()` registers one waiter and one transient delegate. The delegate
carries a one-time latch: the first hardware callback resolves the waiter,
anything after that is dropped. The delegate is released on first resolution
so nothing from a finished capture can reach the next one.
"""
from __future__ import annotations

import asyncio
import io
import logging
import threading
from typing import Any, Callable, Optional

from PIL import Image, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from snap2spoon.app.domain.errors import (
    CaptureFailedError,
    CaptureInProgressError,
    DeviceNotFoundError,
    InputRejectedError,
    OutputRejectedError,
)
from snap2spoon.app.domain.models import CaptureImage
from snap2spoon.app.infra.camera.base import (
    AuthorizationStatus,
    CameraBackend,
    CaptureSession,
    PhotoCaptureDelegate,
    PhotoOutput,
)

logger = logging.getLogger(__name__)

JPEG_QUALITY = 80

CaptureCallback = Callable[[Optional[CaptureImage], Optional[Exception]], None]


def decode_photo(photo: Optional[bytes]) -> CaptureImage:
    """Decode hardware bytes into a normalized JPEG capture."""
    if not photo:
        raise CaptureFailedError("Camera returned no image data")

    try:
        with Image.open(io.BytesIO(photo)) as image:
            rgb = image.convert("RGB")
    except (UnidentifiedImageError, OSError) as error:
        raise CaptureFailedError(f"Unable to decode captured image: {error}") from error

    buffer = io.BytesIO()
    rgb.save(buffer, format="JPEG", quality=JPEG_QUALITY)
    return CaptureImage(data=buffer.getvalue(), width=rgb.width, height=rgb.height)


class LatchedPhotoDelegate(PhotoCaptureDelegate):
    def __init__(self, on_complete: CaptureCallback):
        self._on_complete: Optional[CaptureCallback] = on_complete
        self._lock = threading.Lock()
        self._completed = False

    @property
    def completed(self) -> bool:
        return self._completed

    def photo_output(self, photo: Optional[bytes], error: Optional[Exception]) -> None:
        with self._lock:
            if self._completed:
                logger.debug("Dropping duplicate capture callback")
                return
            self._completed = True
            on_complete, self._on_complete = self._on_complete, None

        if on_complete is None:
            return

        if error is not None:
            on_complete(None, error)
            return

        try:
            image = decode_photo(photo)
        except CaptureFailedError as decode_error:
            on_complete(None, decode_error)
            return
        on_complete(image, None)


class CaptureBridge:
    def __init__(self, backend: CameraBackend):
        self._backend = backend
        self._session: Optional[CaptureSession] = None
        self._output: Optional[PhotoOutput] = None
        self._delegate: Optional[LatchedPhotoDelegate] = None
        self._pending: Optional[asyncio.Future[CaptureImage]] = None

    @property
    def is_prepared(self) -> bool:
        return self._session is not None and self._output is not None

    async def authorize(self) -> bool:
        try:
            status = await run_in_threadpool(self._backend.authorization_status)
            if status == AuthorizationStatus.AUTHORIZED:
                return True
            if status == AuthorizationStatus.NOT_DETERMINED:
                return bool(await run_in_threadpool(self._backend.request_access))
        except Exception:
            logger.exception("Camera authorization check failed")
        return False

    async def prepare(self) -> CaptureSession:
        camera = await run_in_threadpool(self._backend.default_camera)
        if camera is None:
            raise DeviceNotFoundError()

        try:
            session = self._backend.create_session()
            output = self._backend.create_photo_output()
            self._configure(session, output, camera)
            await run_in_threadpool(session.start_running)
        except Exception:
            self._release_camera(camera)
            raise

        self._session = session
        self._output = output
        logger.info("Capture session prepared")
        return session

    def _configure(self, session: CaptureSession, output: PhotoOutput, camera: Any) -> None:
        session.begin_configuration()
        try:
            try:
                camera_input = self._backend.open_input(camera)
            except OSError as error:
                raise InputRejectedError(str(error)) from error
            if not session.can_add_input(camera_input):
                raise InputRejectedError()
            session.add_input(camera_input)

            if not session.can_add_output(output):
                raise OutputRejectedError()
            session.add_output(output)
        finally:
            session.commit_configuration()

    def _release_camera(self, camera: Any) -> None:
        try:
            self._backend.release_camera(camera)
        except Exception:
            logger.exception("Releasing camera after failed prepare failed")

    async def capture(self) -> CaptureImage:
        if self._output is None:
            raise CaptureFailedError("Capture session is not prepared")
        if self._pending is not None and not self._pending.done():
            raise CaptureInProgressError()

        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[CaptureImage] = loop.create_future()

        def _resolve(image: Optional[CaptureImage], error: Optional[Exception]) -> None:
            try:
                loop.call_soon_threadsafe(self._settle, waiter, image, error)
            except RuntimeError:
                logger.debug("Capture finished after its event loop closed")

        delegate = LatchedPhotoDelegate(_resolve)
        self._pending = waiter
        self._delegate = delegate

        try:
            self._output.capture_photo(delegate)
            return await waiter
        finally:
            self._delegate = None
            self._pending = None

    @staticmethod
    def _settle(
        waiter: asyncio.Future[CaptureImage],
        image: Optional[CaptureImage],
        error: Optional[Exception],
    ) -> None:
        if waiter.done():
            # the caller gave up waiting
            return
        if error is not None:
            waiter.set_exception(error)
        else:
            waiter.set_result(image)

    async def close(self) -> None:
        if self._session is not None:
            await run_in_threadpool(self._session.stop_running)
        self._session = None
        self._output = None
