"""
Scan session: the state machine for one capture-to-confirmation cycle.

States:
    IDLE -> CAPTURING -> PREPROCESSING -> RECOGNIZING(progress)
         -> AWAITING_CONFIRMATION(resolution)
         -> CONFIRMED(value) | CANCELLED | FAILED(reason)

The session owns its captured and prepared images and drops them as soon
as recognition finishes or the session ends. Observers subscribe to be
pushed every state or progress change. Retrying after FAILED or CANCELLED
means starting a fresh session.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from src.config import OCR_LANG
from src.errors import (
    DecodeError,
    InvalidTransitionError,
    RecognitionError,
    ScanFailureReason,
)
from src.ocr.base_ocr import BaseOCRService
from src.ocr.candidate_extractor import Number
from src.ocr.reading_resolver import ReadingResolution, read_odometer
from src.ocr.recognition import ErrorEvent, ProgressEvent, TextEvent, recognize_stream
from src.preprocessing import CapturedImage, PreparedImage, prepare_image

logger = logging.getLogger(__name__)


class ScanState(str, Enum):
    """Scan session state"""
    IDLE = "idle"
    CAPTURING = "capturing"
    PREPROCESSING = "preprocessing"
    RECOGNIZING = "recognizing"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    FAILED = "failed"


# States after which no more work happens; outcome() resolves on these
TERMINAL_STATES = frozenset({ScanState.CONFIRMED, ScanState.CANCELLED, ScanState.FAILED})

# dismiss() moves these straight to CANCELLED
DISMISSABLE_STATES = frozenset({
    ScanState.IDLE,
    ScanState.CAPTURING,
    ScanState.PREPROCESSING,
    ScanState.AWAITING_CONFIRMATION,
    ScanState.FAILED,
})

ScanListener = Callable[["ScanSession"], None]


@dataclass(frozen=True)
class ScanSnapshot:
    """Immutable view of a session at one point in time."""
    session_id: str
    state: ScanState
    progress: int
    resolution: Optional[ReadingResolution]
    failure_reason: Optional[ScanFailureReason]
    confirmed_value: Optional[Number]
    reference_value: Optional[Number]


class ScanSession:
    """
    One user-initiated odometer scan.

    Usage:
        session = ScanSession(TesseractOCRService(), reference_value=45210)
        session.subscribe(lambda s: print(s.state, s.progress))
        session.capture(capture_from_file("odometer.jpg"))
        await session.run()
        if session.state is ScanState.AWAITING_CONFIRMATION:
            session.accept(session.resolution.best_candidate)
        value = await session.outcome()
    """

    def __init__(
        self,
        engine: BaseOCRService,
        reference_value: Optional[Number] = None,
        lang: str = OCR_LANG
    ):
        """
        Args:
            engine: OCR service used for recognition
            reference_value: Previously recorded odometer value, if known
            lang: OCR language code
        """
        self.session_id = uuid.uuid4().hex
        self.created_at = datetime.utcnow()
        self.updated_at = self.created_at
        self.engine = engine
        self.reference_value = reference_value
        self.lang = lang

        self.state = ScanState.IDLE
        self.progress = 0
        self.resolution: Optional[ReadingResolution] = None
        self.failure_reason: Optional[ScanFailureReason] = None
        self.error: Optional[Exception] = None
        self.confirmed_value: Optional[Number] = None

        self._captured: Optional[CapturedImage] = None
        self._prepared: Optional[PreparedImage] = None
        self._listeners: List[ScanListener] = []
        self._done: Optional[asyncio.Event] = None

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def captured_image(self) -> Optional[CapturedImage]:
        return self._captured

    def subscribe(self, listener: ScanListener) -> Callable[[], None]:
        """
        Register a listener called after every state or progress change.

        Returns:
            Function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> ScanSnapshot:
        return ScanSnapshot(
            session_id=self.session_id,
            state=self.state,
            progress=self.progress,
            resolution=self.resolution,
            failure_reason=self.failure_reason,
            confirmed_value=self.confirmed_value,
            reference_value=self.reference_value,
        )

    async def outcome(self) -> Optional[Number]:
        """
        Wait for a terminal state.

        Returns:
            The confirmed value, or None if the scan was cancelled or failed
        """
        if not self.is_terminal:
            if self._done is None:
                self._done = asyncio.Event()
            await self._done.wait()
        return self.confirmed_value

    def _notify(self) -> None:
        self.updated_at = datetime.utcnow()
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.exception(f"Scan {self.session_id}: listener failed: {e}")

    def _set_state(self, state: ScanState) -> None:
        previous = self.state
        self.state = state
        logger.info(f"Scan {self.session_id}: {previous.value} -> {state.value}")

        if state in TERMINAL_STATES:
            self._release_images()
            if self._done is not None:
                self._done.set()

        self._notify()

    def _release_images(self) -> None:
        self._captured = None
        self._prepared = None

    def _fail(self, reason: ScanFailureReason, error: Optional[Exception] = None) -> None:
        self.failure_reason = reason
        self.error = error
        logger.warning(f"Scan {self.session_id}: failed ({reason.value}): {error}")
        self._set_state(ScanState.FAILED)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def capture(self, image: CapturedImage) -> None:
        """IDLE -> CAPTURING with the photo from the capture source."""
        if self.state is not ScanState.IDLE:
            raise InvalidTransitionError("capture", self.state)
        if image is None:
            # Capture source produced nothing; stay idle
            logger.info(f"Scan {self.session_id}: no image captured")
            return

        self._captured = image
        self._set_state(ScanState.CAPTURING)

    async def run(self) -> ScanState:
        """
        Preprocess and recognize the captured photo.

        Ends in AWAITING_CONFIRMATION, FAILED, or CANCELLED (if the user
        dismissed the session while it was preprocessing).

        Returns:
            The state the session is in afterwards
        """
        if self.state is not ScanState.CAPTURING:
            raise InvalidTransitionError("run", self.state)

        prepared = await self._preprocess()
        if prepared is None:
            return self.state

        text = await self._recognize(prepared)
        if text is None:
            return self.state

        self.resolution = read_odometer(text, self.reference_value)
        if not self.resolution.found:
            self._fail(ScanFailureReason.NO_READING_FOUND)
            return self.state

        logger.info(
            f"Scan {self.session_id}: best={self.resolution.best_candidate} "
            f"alternatives={list(self.resolution.alternatives)}"
        )
        self._set_state(ScanState.AWAITING_CONFIRMATION)
        return self.state

    async def _preprocess(self) -> Optional[PreparedImage]:
        captured = self._captured
        self._set_state(ScanState.PREPROCESSING)
        if self.state is not ScanState.PREPROCESSING:
            return None

        loop = asyncio.get_running_loop()

        try:
            prepared = await loop.run_in_executor(None, prepare_image, captured)
        except DecodeError as e:
            if self.state is ScanState.PREPROCESSING:
                self._fail(ScanFailureReason.DECODE_ERROR, e)
            return None
        except Exception as e:
            logger.exception(f"Scan {self.session_id}: preprocessing raised unexpectedly: {e}")
            if self.state is ScanState.PREPROCESSING:
                self._fail(ScanFailureReason.DECODE_ERROR, DecodeError(str(e)))
            return None

        if self.state is not ScanState.PREPROCESSING:
            # Dismissed while the image was being prepared
            return None

        self._prepared = prepared
        return prepared

    async def _recognize(self, prepared: PreparedImage) -> Optional[str]:
        self.progress = 0
        self._set_state(ScanState.RECOGNIZING)

        text = None
        error = None
        async for event in recognize_stream(self.engine, prepared, self.lang):
            if isinstance(event, ProgressEvent):
                if event.percent > self.progress:
                    self.progress = event.percent
                    self._notify()
            elif isinstance(event, TextEvent):
                text = event.text
            elif isinstance(event, ErrorEvent):
                error = event.error

        self._prepared = None
        if error is not None:
            self._fail(ScanFailureReason.RECOGNITION_ERROR, error)
            return None
        if text is None:
            self._fail(
                ScanFailureReason.RECOGNITION_ERROR,
                RecognitionError("Recognition ended without a result")
            )
        return text

    def accept(self, value: Number) -> Number:
        """
        AWAITING_CONFIRMATION -> CONFIRMED with the chosen value.

        Args:
            value: The best candidate or one of the alternatives

        Returns:
            The confirmed value

        Raises:
            InvalidTransitionError: If no reading is awaiting confirmation
            ValueError: If value is not one of the offered choices
        """
        if self.state is not ScanState.AWAITING_CONFIRMATION:
            raise InvalidTransitionError("accept", self.state)

        for choice in self.resolution.choices:
            if choice == value:
                self.confirmed_value = choice
                self._set_state(ScanState.CONFIRMED)
                return choice

        raise ValueError(f"{value} is not one of the offered readings {list(self.resolution.choices)}")

    def dismiss(self) -> bool:
        """
        Dismiss the session.

        A scan in flight cannot be aborted: dismissing while RECOGNIZING is a
        no-op. Dismissing a CONFIRMED or CANCELLED session is also a no-op.

        Returns:
            True if the session moved to CANCELLED
        """
        if self.state not in DISMISSABLE_STATES:
            logger.info(f"Scan {self.session_id}: dismiss ignored while {self.state.value}")
            return False

        self._set_state(ScanState.CANCELLED)
        return True
