# agents/voice_session.py
"""
Alfredo Voice — Voice Session
=============================
One VoiceSession per open voice interface. It owns everything that must
not be shared between sessions: the segmenter and its silence timer,
the conversation history, the processing guard, the current recipe and
the status line.

Lifecycle:
    async with VoiceSession(orchestrator, source) as session:
        session.on_start()
        session.on_result([...fragments...])
        ...
    # stopped, timer cancelled, transcript cleared

Recognition callbacks (on_start / on_result / on_error / on_end) are
plain methods and must be called from inside the running event loop.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional

from agents.orchestrator import CommandOrchestrator
from agents.segmenter import ListeningState, UtteranceSegmenter
from tools.schemas import ClassifiedCommand, RecipeSuggestion, SpeechFragment, Utterance

logger = logging.getLogger(__name__)

STATUS_IDLE = "Tap to start speaking..."
STATUS_LISTENING = "Listening... speak now"
STATUS_PROCESSING = "Processing your request..."
STATUS_ERROR = "Speech recognition error. Try again."

SessionListener = Callable[[str, Dict[str, Any]], None]


# =============================================================================
# SPEECH SOURCES
# =============================================================================
class SpeechSource(ABC):
    """Push-based recognition source. It reports back through the session's on_* methods."""

    @abstractmethod
    async def start(self, session: "VoiceSession") -> None:
        ...

    @abstractmethod
    async def stop(self) -> None:
        ...


class ManualSpeechSource(SpeechSource):
    """Fragments are fed by hand (tests, typed input, external bridges)."""

    def __init__(self):
        self.session: Optional["VoiceSession"] = None

    async def start(self, session: "VoiceSession") -> None:
        self.session = session
        session.on_start()

    async def stop(self) -> None:
        self.session = None


# =============================================================================
# SESSION
# =============================================================================
class VoiceSession:

    def __init__(
        self,
        orchestrator: CommandOrchestrator,
        source: Optional[SpeechSource] = None,
        silence_timeout: Optional[float] = None,
        listener: Optional[SessionListener] = None,
    ):
        self.orchestrator = orchestrator
        self.source = source or ManualSpeechSource()
        self.history: List[ClassifiedCommand] = []
        self.processing = False
        self.status = STATUS_IDLE
        self.closed = False

        self._listener = listener
        self._dispatch_task: Optional[asyncio.Task] = None
        self.segmenter = UtteranceSegmenter(
            on_utterance=self._accept,
            is_busy=lambda: self.processing,
            silence_timeout=silence_timeout,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self) -> None:
        if self.closed:
            raise RuntimeError("Voice session is closed")
        await self.source.start(self)

    async def aclose(self) -> None:
        """Stop the source, cancel the timer, clear transcript, wait for in-flight dispatch."""
        if self.closed:
            return
        self.closed = True
        try:
            await self.source.stop()
        finally:
            self.segmenter.cancel()
            self.segmenter.clear_transcript()
            self.segmenter.state = ListeningState.IDLE
            if self._dispatch_task is not None and not self._dispatch_task.done():
                await self._dispatch_task
            logger.info("🎙️ Voice session closed (%d commands)", len(self.history))

    async def __aenter__(self) -> "VoiceSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Recognition events
    # ------------------------------------------------------------------
    @property
    def is_listening(self) -> bool:
        return self.segmenter.state == ListeningState.LISTENING

    @property
    def current_recipe(self) -> Optional[RecipeSuggestion]:
        return self.orchestrator.current_recipe

    def on_start(self) -> None:
        if self.closed:
            return
        self.segmenter.on_start()
        self._set_status(STATUS_LISTENING)

    def on_result(self, fragments: Iterable[SpeechFragment]) -> None:
        if self.closed:
            return
        self.segmenter.feed(fragments)
        self._emit_transcript()

    def on_error(self, error: object = None) -> None:
        if self.closed:
            return
        self.segmenter.on_error(error)
        self._set_status(STATUS_ERROR)

    def on_end(self) -> None:
        if self.closed:
            return
        self.segmenter.on_end()
        if not self.processing:
            self._set_status(STATUS_IDLE)

    async def submit_text(self, text: str) -> Optional[ClassifiedCommand]:
        """Process a typed command directly. Returns None when blank or busy."""
        text = (text or "").strip()
        if not text or self.closed:
            return None
        if self.processing:
            logger.info("Voice session busy, dropping typed command %r", text[:50])
            return None

        # Typed input supersedes pending speech; its transcript is cleared after the run.
        self.segmenter.cancel()
        self.processing = True
        return await self._run(Utterance(text=text))

    async def wait_idle(self) -> None:
        """Wait for the in-flight dispatch, if any."""
        if self._dispatch_task is not None and not self._dispatch_task.done():
            await self._dispatch_task

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def _accept(self, utterance: Utterance) -> None:
        # Guard is taken before the task is scheduled so no second flush can slip in.
        self.processing = True
        self._dispatch_task = asyncio.create_task(self._run(utterance))

    async def _run(self, utterance: Utterance) -> Optional[ClassifiedCommand]:
        self._set_status(STATUS_PROCESSING)
        command = None
        try:
            command = await self.orchestrator.process(utterance, self.history)
            self._emit("command", command.model_dump(mode="json"))
        except Exception:
            logger.exception("❌ Voice session dispatch failed for %r", utterance.text)
        finally:
            self.processing = False
            self.segmenter.clear_transcript()
            self._set_status(STATUS_IDLE)
            self._emit_transcript()
        return command

    # ------------------------------------------------------------------
    # Listener
    # ------------------------------------------------------------------
    def _set_status(self, status: str) -> None:
        self.status = status
        self._emit("status", {"status": status, "listening": self.is_listening})

    def _emit_transcript(self) -> None:
        self._emit(
            "transcript",
            {"interim": self.segmenter.interim, "final": self.segmenter.final_accumulated},
        )

    def _emit(self, kind: str, payload: Dict[str, Any]) -> None:
        if self._listener is None:
            return
        try:
            self._listener(kind, payload)
        except Exception as e:
            logger.warning("⚠️ Session listener failed on %s: %s", kind, e)


__all__ = [
    "STATUS_IDLE",
    "STATUS_LISTENING",
    "STATUS_PROCESSING",
    "STATUS_ERROR",
    "SpeechSource",
    "ManualSpeechSource",
    "VoiceSession",
]
