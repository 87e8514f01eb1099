# snap2spoon/app/services/generation_orchestrator.py
"""
Runs one recipe generation at a time for a session.

State machine: Idle -> Requesting -> Succeeded | Failed -> Idle. A request that
arrives while another is Requesting is rejected, not queued. The background
task turns every failure into a published GenerationError.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Callable, Optional

from starlette.concurrency import run_in_threadpool

from snap2spoon.app.domain.errors import (
    AuthorizationDeniedError,
    CaptureError,
    CaptureFailedError,
    MalformedResponseError,
    SyncError,
)
from snap2spoon.app.domain.models import (
    CameraCapture,
    CaptureImage,
    ErrorKind,
    GenerationError,
    GenerationInput,
    GenerationPhase,
    GenerationRequest,
    IngredientList,
    RecipeRecord,
    Session,
    kind_for_input,
)
from snap2spoon.app.domain.state import OrchestratorState, StatePublisher
from snap2spoon.app.services.capture_bridge import CaptureBridge
from snap2spoon.app.services.sync_engine import DualStoreSyncEngine
from snap2spoon.services.errors import RateLimitedError, ServiceError
from snap2spoon.services.recipe_agent import RecipeModelClient
from snap2spoon.services.response_extractor import ResponseExtractor

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "A recipe is already being generated. Please wait for it to finish."
EMPTY_INGREDIENTS_MESSAGE = "Please enter at least one ingredient."
EMPTY_IMAGE_MESSAGE = "The captured image is empty."
SIGNED_OUT_MESSAGE = "Sign in to generate recipes."
MALFORMED_MESSAGE = "The recipe service returned a response that could not be read. Please try again."
UNEXPECTED_MESSAGE = "Something went wrong while generating recipes."


def empty_input_message(payload: GenerationInput) -> Optional[str]:
    if isinstance(payload, IngredientList) and not payload.cleaned_items:
        return EMPTY_INGREDIENTS_MESSAGE
    if isinstance(payload, CaptureImage) and not payload.data:
        return EMPTY_IMAGE_MESSAGE
    return None


def describe_failure(error: Exception) -> GenerationError:
    if isinstance(error, CaptureError):
        return GenerationError(ErrorKind.CAPTURE, str(error))
    if isinstance(error, MalformedResponseError):
        return GenerationError(ErrorKind.MALFORMED_RESPONSE, MALFORMED_MESSAGE)
    if isinstance(error, RateLimitedError):
        return GenerationError(ErrorKind.RATE_LIMITED, str(error))
    if isinstance(error, ServiceError):
        return GenerationError(ErrorKind.MODEL_UNAVAILABLE, str(error))
    if isinstance(error, SyncError):
        return GenerationError(ErrorKind.REMOTE_UNAVAILABLE, str(error))
    return GenerationError(ErrorKind.MODEL_UNAVAILABLE, UNEXPECTED_MESSAGE)


class GenerationOrchestrator:
    def __init__(
        self,
        session: Session,
        model_client: RecipeModelClient,
        sync_engine: DualStoreSyncEngine,
        extractor: Optional[ResponseExtractor] = None,
        capture_bridge: Optional[CaptureBridge] = None,
    ):
        self.session = session
        self._model = model_client
        self._sync = sync_engine
        self._extractor = extractor or ResponseExtractor()
        self._capture_bridge = capture_bridge
        self._publisher: StatePublisher[OrchestratorState] = StatePublisher(OrchestratorState())
        self._active: Optional[GenerationRequest] = None
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def state(self) -> OrchestratorState:
        return self._publisher.current

    @property
    def is_busy(self) -> bool:
        return self._active is not None

    def subscribe(self, callback: Callable[[OrchestratorState], None]) -> Callable[[], None]:
        return self._publisher.subscribe(callback)

    def start(self, payload: GenerationInput) -> GenerationRequest:
        """
        Begin a generation. Returns immediately; the outcome arrives through
        the published state.

        Must be called from inside a running event loop.
        """
        request = GenerationRequest(kind=kind_for_input(payload), payload=payload)

        if self._active is not None:
            logger.info("Rejecting %s request, %s still in flight", request.kind.value, self._active.request_id)
            request.phase = GenerationPhase.FAILED
            request.error = GenerationError(ErrorKind.BUSY, BUSY_MESSAGE)
            return request

        if not self.session.is_signed_in:
            return self._fail_immediately(request, GenerationError(ErrorKind.SIGNED_OUT, SIGNED_OUT_MESSAGE))

        empty_message = empty_input_message(payload)
        if empty_message is not None:
            return self._fail_immediately(request, GenerationError(ErrorKind.EMPTY_INPUT, empty_message))

        loop = asyncio.get_running_loop()
        request.phase = GenerationPhase.REQUESTING
        self._active = request
        self._update(
            phase=GenerationPhase.REQUESTING,
            loading=True,
            request_kind=request.kind,
            last_error=None,
        )
        logger.info("Generation %s started (%s)", request.request_id, request.kind.value)
        self._task = loop.create_task(self._run(request))
        return request

    async def join(self) -> None:
        task = self._task
        if task is not None and not task.done():
            await task

    async def _run(self, request: GenerationRequest) -> None:
        try:
            records = await self._generate(request)
        except Exception as error:
            failure = describe_failure(error)
            if failure.message == UNEXPECTED_MESSAGE:
                logger.exception("Generation %s failed unexpectedly", request.request_id)
            else:
                logger.warning("Generation %s failed (%s): %s", request.request_id, failure.kind.value, error)
            self._finish(request, GenerationPhase.FAILED, last_error=failure)
            return

        logger.info("Generation %s produced %d recipe(s)", request.request_id, len(records))
        self._finish(request, GenerationPhase.SUCCEEDED, last_result=tuple(records))

    async def _generate(self, request: GenerationRequest) -> list[RecipeRecord]:
        payload = request.payload
        image: Optional[CaptureImage] = None
        if isinstance(payload, CameraCapture):
            image = await self._capture()
        elif isinstance(payload, CaptureImage):
            image = payload

        raw = await run_in_threadpool(self._model.generate_recipes, payload, image)
        records = self._extractor.extract(raw, self.session.user_id)
        self._sync.commit(records)
        return records

    async def _capture(self) -> CaptureImage:
        bridge = self._capture_bridge
        if bridge is None:
            raise CaptureFailedError("No camera is configured")
        if not await bridge.authorize():
            raise AuthorizationDeniedError()

        try:
            if not bridge.is_prepared:
                await bridge.prepare()
            return await bridge.capture()
        except CaptureError:
            raise
        except Exception as error:
            raise CaptureFailedError(str(error)) from error

    def _fail_immediately(self, request: GenerationRequest, error: GenerationError) -> GenerationRequest:
        logger.info("Generation %s not started: %s", request.request_id, error.kind.value)
        self._finish(request, GenerationPhase.FAILED, last_error=error)
        return request

    def _finish(
        self,
        request: GenerationRequest,
        phase: GenerationPhase,
        *,
        last_error: Optional[GenerationError] = None,
        last_result: Optional[tuple[RecipeRecord, ...]] = None,
    ) -> None:
        request.phase = phase
        request.error = last_error
        changes: dict[str, Any] = {"last_error": last_error}
        if last_result is not None:
            changes["last_result"] = last_result

        self._update(phase=phase, loading=False, request_kind=request.kind, **changes)
        if self._active is request:
            self._active = None
        self._update(phase=GenerationPhase.IDLE, loading=False, request_kind=None)

    def _update(self, **changes: Any) -> None:
        self._publisher.publish(dataclasses.replace(self._publisher.current, **changes))
