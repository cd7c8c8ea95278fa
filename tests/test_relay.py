import asyncio

import pytest

from conftest import PCM_100MS
from rt_translate.realtime.relay import NOT_ORIGINATOR, RECORDING_TOO_LARGE, TranslationRelay
from rt_translate.services.sessions import SESSION_NOT_FOUND, SessionError, SessionRegistry


class RecordingHub:
    def __init__(self):
        self.sent = []

    async def emit(self, connection_id, event, data=None):
        self.sent.append((connection_id, event, data))
        return True

    async def emit_to_room(self, room, event, data=None):
        self.sent.append((room, event, data))
        return 1

    def events(self, name):
        return [data for _, event, data in self.sent if event == name]


async def wait_for(predicate, timeout=5.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def registry():
    return SessionRegistry(default_audio_format="pcm_s16le")


def test_interim_jobs_are_dropped_but_final_is_kept(registry, pipeline):
    hub = RecordingHub()
    session = registry.create("origin", "es")

    async def scenario():
        relay = TranslationRelay(hub, registry, lambda: pipeline, interim_every=1, queue_size=1)
        # Nothing yields between these pushes, so the worker cannot drain the queue
        for _ in range(3):
            await relay.push_chunk("origin", session.id, PCM_100MS, False)
        assert relay._queues[session.id].qsize() == 1

        await relay.push_chunk("origin", session.id, PCM_100MS, True)
        await wait_for(lambda: hub.events("translated_audio"))
        await relay.close(session.id)

    asyncio.run(scenario())

    transcriptions = hub.events("transcription")
    assert [t["isFinal"] for t in transcriptions] == [False, True]
    assert pipeline.asr.calls == [1600, 6400]
    assert session.segments == [{
        "start_ms": 0,
        "end_ms": 400,
        "text": "hello world",
        "translated_text": "[es] hello world",
    }]
    assert session.timeline_ms == 400


def test_segments_follow_each_other_on_the_timeline(registry, pipeline):
    hub = RecordingHub()
    session = registry.create("origin", "fr")

    async def scenario():
        relay = TranslationRelay(hub, registry, lambda: pipeline, interim_every=0)
        await relay.push_chunk("origin", session.id, PCM_100MS * 10, True)
        await relay.push_chunk("origin", session.id, PCM_100MS, True)
        await wait_for(lambda: len(hub.events("translated_audio")) == 2)
        await relay.close_all()

    asyncio.run(scenario())

    spans = [(s["start_ms"], s["end_ms"]) for s in session.segments]
    # A 100 ms recording is stretched to the minimum segment length
    assert spans == [(0, 1000), (1000, 1200)]


def test_refuses_non_originator_and_ended_sessions(registry, pipeline):
    hub = RecordingHub()
    session = registry.create("origin", "es")
    registry.join("listener", session.id)

    async def scenario():
        relay = TranslationRelay(hub, registry, lambda: pipeline)
        with pytest.raises(SessionError, match=NOT_ORIGINATOR):
            await relay.push_chunk("listener", session.id, PCM_100MS, False)
        registry.end(session.id)
        with pytest.raises(SessionError, match=SESSION_NOT_FOUND):
            await relay.push_chunk("origin", session.id, PCM_100MS, True)

    asyncio.run(scenario())
    assert hub.sent == []


def test_recording_limit_discards_buffer(registry, pipeline):
    session = registry.create("origin", "es")

    async def scenario():
        relay = TranslationRelay(RecordingHub(), registry, lambda: pipeline, max_recording_bytes=len(PCM_100MS) * 2)
        await relay.push_chunk("origin", session.id, PCM_100MS, False)
        await relay.push_chunk("origin", session.id, PCM_100MS, False)
        assert relay.pending_bytes(session.id) == len(PCM_100MS) * 2
        with pytest.raises(SessionError, match=RECORDING_TOO_LARGE):
            await relay.push_chunk("origin", session.id, PCM_100MS, False)
        assert relay.pending_bytes(session.id) == 0

    asyncio.run(scenario())


def test_close_forgets_buffered_audio(registry, pipeline):
    session = registry.create("origin", "es")

    async def scenario():
        relay = TranslationRelay(RecordingHub(), registry, lambda: pipeline, interim_every=1)
        await relay.push_chunk("origin", session.id, PCM_100MS, False)
        worker = relay._workers[session.id]
        await relay.close(session.id)
        assert worker.cancelled() or worker.done()
        assert relay.pending_bytes(session.id) == 0
        assert session.id not in relay._workers

    asyncio.run(scenario())


def test_pipeline_is_built_once(registry, pipeline):
    built = []

    def factory():
        built.append(1)
        return pipeline

    async def scenario():
        relay = TranslationRelay(RecordingHub(), registry, factory)
        first, second = await asyncio.gather(relay.get_pipeline(), relay.get_pipeline())
        assert first is second is pipeline

    asyncio.run(scenario())
    assert built == [1]
