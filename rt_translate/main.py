import logging
from typing import Callable, Optional

from fastapi import FastAPI, HTTPException, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from .config import Settings, settings as default_settings
from .models.schemas import LanguageInfo, LanguagesResponse, SessionInfo
from .realtime.gateway import TranslationGateway
from .realtime.hub import ConnectionHub
from .realtime.relay import TranslationRelay
from .services.languages import get_available_languages
from .services.pipeline import TranslationPipeline, build_pipeline
from .services.sessions import SessionRegistry
from .services.subtitle_builder import render_srt

logger = logging.getLogger("rt_translate")


def setup_logging(level: str = "INFO") -> None:
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s")
        handler.setFormatter(fmt)
        logger.addHandler(handler)
    logger.setLevel(level)


def create_app(
    settings: Optional[Settings] = None,
    pipeline_factory: Optional[Callable[[], TranslationPipeline]] = None,
) -> FastAPI:
    """
    Build the translation service.

    `pipeline_factory` defaults to the configured providers and is only invoked
    when the first recording needs processing, so startup never waits on model loads.
    """
    settings = settings or default_settings
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(title="Real-Time Translation Sessions")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_ORIGIN],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    hub = ConnectionHub()
    registry = SessionRegistry(settings.DEFAULT_SOURCE_LANGUAGE, settings.DEFAULT_AUDIO_FORMAT)
    relay = TranslationRelay(
        hub,
        registry,
        pipeline_factory or (lambda: build_pipeline(settings)),
        interim_every=settings.INTERIM_EVERY_CHUNKS,
        queue_size=settings.JOB_QUEUE_SIZE,
        max_recording_bytes=settings.MAX_RECORDING_BYTES,
    )
    app.state.settings = settings
    app.state.hub = hub
    app.state.registry = registry
    app.state.relay = relay
    app.state.gateway = TranslationGateway(hub, registry, relay)

    @app.on_event("shutdown")
    async def close_relay():
        await relay.close_all()
        logger.info("shutdown sessions=%d connections=%d", len(registry), hub.connection_count())

    @app.websocket("/translation")
    async def translation_channel(websocket: WebSocket):
        await app.state.gateway.serve(websocket)

    @app.get("/api/languages", response_model=LanguagesResponse)
    async def list_languages():
        return LanguagesResponse(languages=[LanguageInfo(**lang) for lang in get_available_languages()])

    @app.get("/api/health")
    async def health():
        return {
            "ok": True,
            "asr_provider": settings.ASR_PROVIDER,
            "connections": hub.connection_count(),
            "active_sessions": len(registry.active_sessions()),
        }

    @app.get("/api/health/translate")
    async def health_translate(src: str = "en", tgt: str = "es"):
        """Probe translation providers. Keys are masked in the response."""
        try:
            pipeline = await relay.get_pipeline()
        except RuntimeError as e:
            return JSONResponse(status_code=503, content={"error": str(e)})
        return pipeline.translator.diagnostics(src, tgt)

    def _session_or_404(session_id: str):
        session = registry.get(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return session

    @app.get("/api/sessions/{session_id}", response_model=SessionInfo, response_model_by_alias=True)
    async def get_session(session_id: str):
        session = _session_or_404(session_id)
        return SessionInfo(
            session_id=session.id,
            language=session.language,
            source_language=session.source_language,
            audio_format=session.audio_format,
            active=session.active,
            listeners=len(session.listeners),
            segments=len(session.segments),
            created_at=session.created_at,
        )

    @app.get("/api/sessions/{session_id}/subtitles", response_class=PlainTextResponse)
    async def get_subtitles(session_id: str, translated: bool = True):
        session = _session_or_404(session_id)
        return PlainTextResponse(render_srt(session.segments, use_translated=translated), media_type="application/x-subrip")

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail, "path": request.url.path})

    return app


app = create_app()
