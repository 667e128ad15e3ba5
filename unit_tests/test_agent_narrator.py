# unit_tests/test_agent_narrator.py
"""
Unit Tests for the Response Narrator and speech sinks
Run with: python -m pytest unit_tests/test_agent_narrator.py -v
"""

import asyncio

from agents.narrator import CallbackSpeechSink, LocalSpeechSink, NullSpeechSink, ResponseNarrator, SpeechSink


class ExplodingSink(SpeechSink):
    async def speak(self, text, rate, pitch):
        raise OSError("audio device busy")


def test_narrator_uses_fixed_rate_and_pitch(sink):
    narrator = ResponseNarrator(sink, rate=0.9, pitch=1.0)

    asyncio.run(narrator.narrate("Hello"))

    assert sink.spoken == [("Hello", 0.9, 1.0)]


def test_empty_text_is_not_spoken(sink):
    asyncio.run(ResponseNarrator(sink).narrate(""))

    assert sink.spoken == []


def test_sink_failure_is_dropped():
    # Must not raise
    asyncio.run(ResponseNarrator(ExplodingSink()).narrate("Hello"))


def test_no_sink_is_a_silent_no_op():
    narrator = ResponseNarrator()

    asyncio.run(narrator.narrate("Hello"))

    assert isinstance(narrator.sink, NullSpeechSink)


def test_callback_sink_accepts_sync_and_async_callbacks():
    received = []

    async def async_callback(text, rate, pitch):
        received.append(("async", text))

    asyncio.run(CallbackSpeechSink(lambda t, r, p: received.append(("sync", t))).speak("a", 1.0, 1.0))
    asyncio.run(CallbackSpeechSink(async_callback).speak("b", 1.0, 1.0))

    assert received == [("sync", "a"), ("async", "b")]


def test_local_sink_command_line(monkeypatch):
    monkeypatch.setattr("agents.narrator.shutil.which", lambda name: "/usr/bin/espeak" if name == "espeak" else None)

    sink = LocalSpeechSink()

    assert sink.enabled
    assert sink.build_command("Hi", 0.9, 1.0) == ["espeak", "-s", "157", "-p", "50", "Hi"]


def test_local_sink_disabled_without_backend(monkeypatch):
    monkeypatch.setattr("agents.narrator.shutil.which", lambda name: None)

    sink = LocalSpeechSink()

    assert not sink.enabled
    asyncio.run(sink.speak("Hi", 0.9, 1.0))
