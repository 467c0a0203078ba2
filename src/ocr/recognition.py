"""
Recognition adapter: runs a blocking OCR engine off the event loop and
streams its progress.

The engine call executes in the default thread pool executor. Progress
callbacks from the worker thread are pushed into an asyncio.Queue with
loop.call_soon_threadsafe, so consumers observe them in order without
polling. The stream always ends with exactly one terminal event.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Union

from src.config import OCR_LANG
from src.errors import RecognitionError
from src.ocr.base_ocr import BaseOCRService
from src.preprocessing import PreparedImage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    """Recognition progress in percent, 0-100."""
    percent: int


@dataclass(frozen=True)
class TextEvent:
    """Terminal event: the engine returned text."""
    text: str


@dataclass(frozen=True)
class ErrorEvent:
    """Terminal event: the engine failed."""
    error: RecognitionError


RecognitionEvent = Union[ProgressEvent, TextEvent, ErrorEvent]

_DONE = object()


def fraction_to_percent(fraction: float) -> int:
    """Convert an engine progress fraction to a clamped whole percentage."""
    try:
        percent = int(round(float(fraction) * 100))
    except (TypeError, ValueError):
        return 0
    return max(0, min(100, percent))


async def recognize_stream(
    engine: BaseOCRService,
    image: PreparedImage,
    lang: str = OCR_LANG
) -> AsyncIterator[RecognitionEvent]:
    """
    Recognize text in a prepared image, yielding progress then a terminal event.

    Progress events are weakly increasing: regressions reported by the
    engine are dropped. The terminal event is a TextEvent or an ErrorEvent,
    never both and never more than one. The generator is single use.

    Args:
        engine: OCR service to run
        image: Prepared image from the preprocessor
        lang: OCR language code

    Yields:
        ProgressEvent zero or more times, then TextEvent or ErrorEvent
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def report(fraction: float) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, fraction)

    future = loop.run_in_executor(
        None,
        lambda: engine.recognize(image, lang=lang, on_progress=report)
    )
    future.add_done_callback(lambda _: queue.put_nowait(_DONE))

    last_percent = 0
    while True:
        item = await queue.get()
        if item is _DONE:
            break

        percent = fraction_to_percent(item)
        if percent < last_percent:
            logger.debug(f"Dropping progress regression {last_percent}% -> {percent}%")
            continue
        last_percent = percent
        yield ProgressEvent(percent)

    error = future.exception()
    if error is not None:
        if not isinstance(error, RecognitionError):
            logger.error(f"OCR engine raised {type(error).__name__}: {error}")
            wrapped = RecognitionError(f"OCR engine failed: {error}")
            wrapped.__cause__ = error
            error = wrapped
        yield ErrorEvent(error)
        return

    text = future.result() or ""
    logger.debug(f"Recognized text: {text!r}")
    yield TextEvent(str(text))
