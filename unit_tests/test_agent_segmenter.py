# unit_tests/test_agent_segmenter.py
"""
Unit Tests for the Utterance Segmenter (silence-debounced flushing)
Run with: python -m pytest unit_tests/test_agent_segmenter.py -v
"""

import asyncio

from agents.segmenter import ListeningState, UtteranceSegmenter
from tools.schemas import SpeechFragment

TIMEOUT = 0.05


def final(text):
    return SpeechFragment(transcript=text, is_final=True)


def interim(text):
    return SpeechFragment(transcript=text, is_final=False)


def make_segmenter(busy=lambda: False):
    flushed = []
    segmenter = UtteranceSegmenter(on_utterance=flushed.append, is_busy=busy, silence_timeout=TIMEOUT)
    return segmenter, flushed


def test_finals_within_window_flush_once_in_order():
    async def scenario():
        segmenter, flushed = make_segmenter()
        segmenter.on_start()
        segmenter.feed([final("I ate ")])
        await asyncio.sleep(TIMEOUT / 3)
        segmenter.feed([final("an apple")])
        await asyncio.sleep(TIMEOUT * 3)
        return segmenter, flushed

    segmenter, flushed = asyncio.run(scenario())

    assert [u.text for u in flushed] == ["I ate an apple"]
    assert segmenter.final_accumulated == ""


def test_interim_text_is_displayed_but_never_flushed():
    async def scenario():
        segmenter, flushed = make_segmenter()
        segmenter.on_start()
        segmenter.feed([interim("I ate a")])
        live = segmenter.live_transcript
        await asyncio.sleep(TIMEOUT * 3)
        return live, segmenter, flushed

    live, segmenter, flushed = asyncio.run(scenario())

    assert live == "I ate a"
    assert flushed == []
    assert not segmenter.timer_pending


def test_interim_resets_on_every_batch():
    async def scenario():
        segmenter, _ = make_segmenter()
        segmenter.feed([interim("hel")])
        segmenter.feed([final("hello "), interim("wor")])
        state = (segmenter.final_accumulated, segmenter.interim)
        segmenter.cancel()
        return state

    assert asyncio.run(scenario()) == ("hello ", "wor")


def test_whitespace_only_is_not_flushed():
    async def scenario():
        segmenter, flushed = make_segmenter()
        segmenter.feed([final("   ")])
        await asyncio.sleep(TIMEOUT * 3)
        return flushed

    assert asyncio.run(scenario()) == []


def test_busy_guard_blocks_flush():
    async def scenario():
        segmenter, flushed = make_segmenter(busy=lambda: True)
        segmenter.feed([final("check my pantry")])
        await asyncio.sleep(TIMEOUT * 3)
        return segmenter, flushed

    segmenter, flushed = asyncio.run(scenario())

    assert flushed == []
    assert segmenter.final_accumulated == "check my pantry"


def test_error_goes_idle_without_flushing():
    async def scenario():
        segmenter, flushed = make_segmenter()
        segmenter.on_start()
        segmenter.feed([final("I ate two"), interim(" eggs")])
        segmenter.on_error("network")
        await asyncio.sleep(TIMEOUT * 3)
        return segmenter, flushed

    segmenter, flushed = asyncio.run(scenario())

    assert flushed == []
    assert segmenter.state == ListeningState.IDLE
    assert segmenter.interim == ""


def test_end_of_stream_goes_idle_without_flushing():
    async def scenario():
        segmenter, flushed = make_segmenter()
        segmenter.on_start()
        segmenter.feed([final("hello")])
        segmenter.on_end()
        await asyncio.sleep(TIMEOUT * 3)
        return segmenter, flushed

    segmenter, flushed = asyncio.run(scenario())

    assert flushed == []
    assert segmenter.state == ListeningState.IDLE


def test_start_clears_previous_transcript():
    async def scenario():
        segmenter, _ = make_segmenter()
        segmenter.feed([final("old words")])
        segmenter.on_end()
        segmenter.on_start()
        return segmenter

    segmenter = asyncio.run(scenario())

    assert segmenter.state == ListeningState.LISTENING
    assert segmenter.final_accumulated == ""


def test_manual_flush_returns_utterance():
    async def scenario():
        segmenter, flushed = make_segmenter()
        segmenter.feed([final("  I drank milk  ")])
        segmenter.cancel()
        return segmenter.flush(), flushed

    utterance, flushed = asyncio.run(scenario())

    assert utterance.text == "I drank milk"
    assert flushed == [utterance]
