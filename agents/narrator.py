# agents/narrator.py
"""
Alfredo Voice — Response Narrator
=================================
Hands response text to a speech-synthesis sink. Fire-and-forget:
a missing or failing sink never affects the conversation.
"""

import inspect
import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from config.settings import VOICE_CONFIG

logger = logging.getLogger(__name__)

# Words per minute at rate 1.0 for the local TTS commands.
BASE_WORDS_PER_MINUTE = 175
# espeak pitch range is 0-99 with 50 as the neutral voice.
ESPEAK_NEUTRAL_PITCH = 50


# =============================================================================
# SINKS
# =============================================================================
class SpeechSink(ABC):
    """Anything that can say a sentence out loud."""

    enabled = True

    @abstractmethod
    async def speak(self, text: str, rate: float, pitch: float) -> None:
        ...


class LocalSpeechSink(SpeechSink):
    """
    TTS through the OS `say` (macOS) or `espeak` (Linux) command.

    The API speaks through the browser instead; pass this sink to a
    ResponseNarrator when running the pipeline from a local script.
    """

    def __init__(self, voice_name: Optional[str] = None):
        self.voice_name = voice_name
        self.backend = None

        if shutil.which("say"):
            self.backend = "say"
        elif shutil.which("espeak"):
            self.backend = "espeak"
        else:
            logger.info("🔇 No TTS backend found (`say`/`espeak`). Narration disabled.")

        self.enabled = self.backend is not None

    def build_command(self, text: str, rate: float, pitch: float) -> list:
        words_per_minute = str(int(BASE_WORDS_PER_MINUTE * rate))
        cmd = [self.backend]
        if self.voice_name:
            cmd += ["-v", self.voice_name]
        if self.backend == "say":
            cmd += ["-r", words_per_minute]
        else:
            cmd += ["-s", words_per_minute, "-p", str(int(ESPEAK_NEUTRAL_PITCH * pitch))]
        cmd.append(text)
        return cmd

    async def speak(self, text: str, rate: float, pitch: float) -> None:
        if not self.enabled:
            return
        # Popen returns immediately; the process speaks in the background.
        subprocess.Popen(
            self.build_command(text, rate, pitch),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )


class CallbackSpeechSink(SpeechSink):
    """Forwards speech requests to a callable (sync or async), e.g. a WebSocket send."""

    def __init__(self, callback: Callable[[str, float, float], Any]):
        self._callback = callback

    async def speak(self, text: str, rate: float, pitch: float) -> None:
        result = self._callback(text, rate, pitch)
        if inspect.isawaitable(result):
            await result


class NullSpeechSink(SpeechSink):
    enabled = False

    async def speak(self, text: str, rate: float, pitch: float) -> None:
        return None


# =============================================================================
# NARRATOR
# =============================================================================
class ResponseNarrator:
    """Speaks responses with a fixed rate / pitch."""

    def __init__(
        self,
        sink: Optional[SpeechSink] = None,
        rate: float = VOICE_CONFIG["speech_rate"],
        pitch: float = VOICE_CONFIG["speech_pitch"],
    ):
        self.sink = sink or NullSpeechSink()
        self.rate = rate
        self.pitch = pitch

    async def narrate(self, text: str) -> None:
        if not text or not self.sink.enabled:
            return
        try:
            await self.sink.speak(text, self.rate, self.pitch)
        except Exception as e:
            logger.warning("⚠️ Speech sink failed: %s", e)


__all__ = [
    "SpeechSink",
    "LocalSpeechSink",
    "CallbackSpeechSink",
    "NullSpeechSink",
    "ResponseNarrator",
]
