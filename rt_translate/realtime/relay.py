"""
Audio chunk relay: buffers each session's recording and runs the translation
pipeline on it, streaming results back to the session room.

Each session gets one worker task so results leave in the order recordings
arrived. Interim transcriptions are best-effort and dropped when the worker
falls behind; final jobs always wait for room in the queue.
"""

import asyncio
import base64
import logging
from typing import Callable, Dict, NamedTuple, Optional

from fastapi.concurrency import run_in_threadpool

from ..models.schemas import ErrorMessage, TranslatedAudio, Transcription
from ..services.languages import has_speech
from ..services.pipeline import PipelineError, TranslationPipeline
from ..services.sessions import SessionError, SessionRegistry, TranslationSession
from .hub import ConnectionHub

logger = logging.getLogger("rt_translate")

NOT_ORIGINATOR = "Only the session originator can stream audio"
RECORDING_TOO_LARGE = "Recording too large"
SERVICE_UNAVAILABLE = "Translation service unavailable"
TRANSLATION_FAILED = "Translation failed"
MIN_SEGMENT_MS = 200


class _Job(NamedTuple):
    session_id: str
    audio: bytes
    final: bool


class _Recording:
    def __init__(self):
        self.buffer = bytearray()
        self.chunks = 0


class TranslationRelay:
    def __init__(
        self,
        hub: ConnectionHub,
        registry: SessionRegistry,
        pipeline_factory: Callable[[], TranslationPipeline],
        interim_every: int = 10,
        queue_size: int = 4,
        max_recording_bytes: int = 10 * 1024 * 1024,
    ):
        self.hub = hub
        self.registry = registry
        self.pipeline_factory = pipeline_factory
        self.interim_every = interim_every
        self.queue_size = max(1, queue_size)
        self.max_recording_bytes = max_recording_bytes
        self._pipeline: Optional[TranslationPipeline] = None
        self._pipeline_lock = asyncio.Lock()
        self._recordings: Dict[str, _Recording] = {}
        self._queues: Dict[str, asyncio.Queue] = {}
        self._workers: Dict[str, asyncio.Task] = {}

    async def push_chunk(self, connection_id: str, session_id: str, audio: bytes, is_final: bool) -> None:
        """Accept one chunk from the originator. Raises SessionError when refused."""
        session = self.registry.require_active(session_id)
        if session.originator_id != connection_id:
            raise SessionError(NOT_ORIGINATOR)

        recording = self._recordings.setdefault(session_id, _Recording())
        recording.buffer.extend(audio)
        if len(recording.buffer) > self.max_recording_bytes:
            del self._recordings[session_id]
            logger.warning("relay.recording_too_large sid=%s limit=%d", session_id, self.max_recording_bytes)
            raise SessionError(RECORDING_TOO_LARGE)

        if is_final:
            del self._recordings[session_id]
            logger.info("relay.final sid=%s chunks=%d bytes=%d", session_id, recording.chunks + 1, len(recording.buffer))
            await self._queue_for(session_id).put(_Job(session_id, bytes(recording.buffer), True))
            return

        recording.chunks += 1
        if self.interim_every > 0 and recording.chunks % self.interim_every == 0:
            try:
                self._queue_for(session_id).put_nowait(_Job(session_id, bytes(recording.buffer), False))
            except asyncio.QueueFull:
                logger.debug("relay.interim_dropped sid=%s chunks=%d", session_id, recording.chunks)

    def pending_bytes(self, session_id: str) -> int:
        recording = self._recordings.get(session_id)
        return len(recording.buffer) if recording else 0

    async def close(self, session_id: str) -> None:
        """Forget a session's buffered audio and stop its worker."""
        self._recordings.pop(session_id, None)
        self._queues.pop(session_id, None)
        task = self._workers.pop(session_id, None)
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def close_all(self) -> None:
        for session_id in list(self._workers):
            await self.close(session_id)

    async def get_pipeline(self) -> TranslationPipeline:
        async with self._pipeline_lock:
            if self._pipeline is None:
                self._pipeline = await run_in_threadpool(self.pipeline_factory)
            return self._pipeline

    def _queue_for(self, session_id: str) -> asyncio.Queue:
        queue = self._queues.get(session_id)
        if queue is None:
            queue = asyncio.Queue(maxsize=self.queue_size)
            self._queues[session_id] = queue
            self._workers[session_id] = asyncio.create_task(self._worker(session_id, queue))
        return queue

    async def _worker(self, session_id: str, queue: asyncio.Queue) -> None:
        while True:
            job = await queue.get()
            session = self.registry.get(session_id)
            if session is None or not session.active:
                return
            try:
                await self._process(session, job)
            except PipelineError as e:
                await self.hub.emit(session.originator_id, "error", ErrorMessage(message=str(e)).to_wire())
            except RuntimeError as e:
                logger.error("relay.pipeline_unavailable sid=%s err=%s", session_id, e)
                await self.hub.emit(session.originator_id, "error", ErrorMessage(message=SERVICE_UNAVAILABLE).to_wire())
            except Exception:
                logger.exception("relay.job.failed sid=%s final=%s", session_id, job.final)
                await self.hub.emit(session.originator_id, "error", ErrorMessage(message=TRANSLATION_FAILED).to_wire())

    async def _process(self, session: TranslationSession, job: _Job) -> None:
        pipeline = await self.get_pipeline()
        transcript = await run_in_threadpool(pipeline.transcribe, job.audio, session.audio_format, session.source_language)
        if not session.active:
            return

        if not job.final:
            if transcript.text:
                await self.hub.emit_to_room(session.id, "transcription", Transcription(text=transcript.text).to_wire())
            return

        await self.hub.emit_to_room(session.id, "transcription", Transcription(text=transcript.text, is_final=True).to_wire())

        # Keep the timeline aligned even for silent recordings
        start_ms = session.timeline_ms
        end_ms = start_ms + max(MIN_SEGMENT_MS, int(transcript.duration * 1000))
        session.timeline_ms = end_ms
        if not transcript.text:
            logger.info("relay.asr.empty sid=%s -> skipping translate/tts", session.id)
            return

        translated = await run_in_threadpool(pipeline.translate, transcript.text, session.source_language, session.language)
        session.segments.append({
            "start_ms": start_ms,
            "end_ms": end_ms,
            "text": transcript.text,
            "translated_text": translated,
        })

        audio_b64 = ""
        if has_speech(session.language):
            audio = await run_in_threadpool(pipeline.synthesize, translated, session.language)
            audio_b64 = base64.b64encode(audio).decode("utf-8")
        if not session.active:
            return

        reached = await self.hub.emit_to_room(session.id, "translated_audio", TranslatedAudio(
            session_id=session.id,
            language=session.language,
            audio_data=audio_b64,
            transcription=translated,
            source_text=transcript.text,
            mime=pipeline.mime,
        ).to_wire())
        logger.info("relay.translated sid=%s lang=%s chars=%d audio_b64=%d reached=%d",
                    session.id, session.language, len(translated), len(audio_b64), reached)
