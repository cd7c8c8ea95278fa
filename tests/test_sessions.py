import re

import pytest

from rt_translate.services.sessions import (
    LANGUAGE_UNAVAILABLE,
    SESSION_NOT_FOUND,
    SessionError,
    SessionRegistry,
    new_session_id,
)


@pytest.fixture
def registry():
    return SessionRegistry(default_source_language="en", default_audio_format="webm")


def test_session_id_format():
    assert re.fullmatch(r"translation_\d+_[0-9a-f]{7}", new_session_id())
    assert new_session_id() != new_session_id()


def test_create_applies_defaults(registry):
    session = registry.create("c1", "es")
    assert session.originator_id == "c1"
    assert session.source_language == "en"
    assert session.audio_format == "webm"
    assert session.active
    assert registry.get(session.id) is session


def test_create_keeps_requested_formats(registry):
    session = registry.create("c1", "fr", source_language="de", audio_format="pcm_s16le")
    assert (session.source_language, session.audio_format) == ("de", "pcm_s16le")


@pytest.mark.parametrize("language", ["", "xx", "ES"])
def test_create_rejects_unknown_language(registry, language):
    with pytest.raises(SessionError, match=LANGUAGE_UNAVAILABLE):
        registry.create("c1", language)
    assert len(registry) == 0


def test_join_adds_listener_once(registry):
    session = registry.create("c1", "es")
    registry.join("c2", session.id)
    registry.join("c2", session.id)
    registry.join("c1", session.id)
    assert session.listeners == {"c2"}
    assert session.participants() == {"c1", "c2"}


def test_join_missing_session(registry):
    with pytest.raises(SessionError, match=SESSION_NOT_FOUND):
        registry.join("c2", "translation_1_abcdef0")


def test_end_removes_and_deactivates(registry):
    session = registry.create("c1", "es")
    assert registry.end(session.id) is session
    assert not session.active
    assert registry.get(session.id) is None
    assert registry.end(session.id) is None
    with pytest.raises(SessionError):
        registry.require_active(session.id)


def test_disconnect_ends_owned_sessions_only(registry):
    owned = registry.create("c1", "es")
    other = registry.create("c2", "de")
    registry.join("c1", other.id)

    ended = registry.disconnect("c1")

    assert ended == [owned]
    assert not owned.active
    assert other.active
    assert other.listeners == set()
    assert registry.active_sessions() == [other]
