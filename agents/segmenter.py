# agents/segmenter.py
"""
Alfredo Voice — Utterance Segmenter
===================================
Turns a stream of speech-recognition fragments into complete utterances.

- Interim fragments are exposed for live display, never flushed.
- Final fragments are appended to `final_accumulated`.
- Every batch containing a final fragment (re)starts the silence timer.
  When it fires, the accumulated text is flushed as one Utterance,
  unless the owner reports it is busy processing the previous one.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Iterable, Optional

from config.settings import VOICE_CONFIG
from tools.schemas import SpeechFragment, Utterance

logger = logging.getLogger(__name__)


class ListeningState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"


class UtteranceSegmenter:
    """Debounces final fragments into utterances. Must be used inside a running event loop."""

    def __init__(
        self,
        on_utterance: Callable[[Utterance], None],
        is_busy: Callable[[], bool] = lambda: False,
        silence_timeout: Optional[float] = None,
    ):
        self._on_utterance = on_utterance
        self._is_busy = is_busy
        self.silence_timeout = (
            VOICE_CONFIG["silence_timeout_sec"] if silence_timeout is None else silence_timeout
        )
        self.state = ListeningState.IDLE
        self.interim = ""
        self.final_accumulated = ""
        self._timer: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Recognition lifecycle
    # ------------------------------------------------------------------
    def on_start(self) -> None:
        self.clear_transcript()
        self.state = ListeningState.LISTENING

    def on_error(self, error: object = None) -> None:
        logger.warning("🎙️ Speech recognition error: %s", error)
        self._go_idle()

    def on_end(self) -> None:
        self._go_idle()

    def _go_idle(self) -> None:
        # A partial utterance is never flushed on error or end-of-stream.
        self.cancel()
        self.interim = ""
        self.state = ListeningState.IDLE

    # ------------------------------------------------------------------
    # Fragments
    # ------------------------------------------------------------------
    @property
    def live_transcript(self) -> str:
        return self.final_accumulated + self.interim

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def feed(self, fragments: Iterable[SpeechFragment]) -> None:
        """Consume one batch of recognition results."""
        interim = ""
        final_update = ""
        for fragment in fragments:
            if fragment.is_final:
                final_update += fragment.transcript
            else:
                interim += fragment.transcript

        self.interim = interim
        if final_update:
            self.final_accumulated += final_update
            self._restart_timer()

    def flush(self) -> Optional[Utterance]:
        """Emit the accumulated text as an Utterance if it is non-blank and the owner is idle."""
        text = self.final_accumulated.strip()
        if not text:
            return None
        if self._is_busy():
            logger.debug("Segmenter: busy, holding %r", text)
            return None

        utterance = Utterance(text=text)
        self.clear_transcript()
        self._on_utterance(utterance)
        return utterance

    def clear_transcript(self) -> None:
        self.interim = ""
        self.final_accumulated = ""

    # ------------------------------------------------------------------
    # Silence timer
    # ------------------------------------------------------------------
    def _restart_timer(self) -> None:
        self.cancel()
        self._timer = asyncio.create_task(self._flush_after_silence())

    async def _flush_after_silence(self) -> None:
        await asyncio.sleep(self.silence_timeout)
        # Past this point the timer can no longer be cancelled by a new fragment.
        self._timer = None
        self.flush()

    def cancel(self) -> None:
        """Cancel a pending silence timer, if any."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None


__all__ = ["ListeningState", "UtteranceSegmenter"]
