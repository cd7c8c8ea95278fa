import pytest
import requests

from rt_translate.services import translate_libre
from rt_translate.services.asr_mistral import MistralASR
from rt_translate.services.translate_libre import DEFAULT_HOSTS, LibreTranslate
from rt_translate.services.translate_orchestrator import TranslatorOrchestrator, _mask


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = str(payload)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


class StubLibre:
    base_urls = ["https://example.test"]
    api_key = "secret-key"

    def __init__(self, result="", error=None):
        self.result = result
        self.error = error

    def translate(self, text, source, target):
        if self.error:
            raise self.error
        return self.result


class StubArgos:
    available = True

    def __init__(self, result=""):
        self.result = result
        self.calls = []

    def translate(self, text, source, target):
        self.calls.append((text, source, target))
        return self.result


def test_libre_hosts_are_deduplicated():
    libre = LibreTranslate("https://mine.test/, https://libretranslate.de")
    assert libre.base_urls[0] == "https://mine.test"
    assert libre.base_urls.count("https://libretranslate.de") == 1
    assert set(DEFAULT_HOSTS) <= set(libre.base_urls)


def test_libre_skips_rate_limited_host(monkeypatch):
    posted = []

    def fake_post(url, json, timeout):
        posted.append(url)
        if len(posted) == 1:
            return FakeResponse(429)
        return FakeResponse(200, {"translatedText": "hola"})

    monkeypatch.setattr(translate_libre.requests, "post", fake_post)
    libre = LibreTranslate("https://first.test", api_key="k")
    assert libre.translate("hello", "en", "es") == "hola"
    assert posted == ["https://first.test/translate", f"{DEFAULT_HOSTS[0]}/translate"]


def test_libre_falls_back_to_mymemory(monkeypatch):
    def failing_post(url, json, timeout):
        raise requests.ConnectionError("down")

    def fake_get(url, params, timeout):
        assert params == {"q": "hello", "langpair": "en|fr"}
        return FakeResponse(200, {"responseData": {"translatedText": "bonjour"}})

    monkeypatch.setattr(translate_libre.requests, "post", failing_post)
    monkeypatch.setattr(translate_libre.requests, "get", fake_get)
    assert LibreTranslate().translate("hello", "en", "fr") == "bonjour"


def test_libre_returns_empty_when_everything_fails(monkeypatch):
    monkeypatch.setattr(translate_libre.requests, "post", lambda *a, **kw: FakeResponse(500))
    monkeypatch.setattr(translate_libre.requests, "get", lambda *a, **kw: FakeResponse(503))
    assert LibreTranslate().translate("hello", "en", "de") == ""


def test_orchestrator_prefers_libre():
    argos = StubArgos("offline")
    translator = TranslatorOrchestrator(StubLibre("hola"), argos)
    assert translator.translate("hello", "en", "es") == "hola"
    assert argos.calls == []


@pytest.mark.parametrize("libre", [StubLibre(""), StubLibre("hello"), StubLibre(error=RuntimeError("boom"))])
def test_orchestrator_falls_back_to_argos(libre):
    argos = StubArgos("hallo")
    assert TranslatorOrchestrator(libre, argos).translate("hello", None, "de") == "hallo"
    assert argos.calls == [("hello", "en", "de")]


def test_orchestrator_returns_source_text_last():
    assert TranslatorOrchestrator(StubLibre(""), StubArgos("")).translate("hello", "en", "fr") == "hello"
    assert TranslatorOrchestrator(StubLibre("")).translate("hello", "en", "fr") == "hello"


def test_orchestrator_skips_same_language():
    libre = StubLibre(error=AssertionError("should not be called"))
    assert TranslatorOrchestrator(libre).translate("hello", "en", "en") == "hello"
    assert TranslatorOrchestrator(libre).translate("", "en", "es") == ""


def test_diagnostics_mask_keys():
    diag = TranslatorOrchestrator(StubLibre("hola")).diagnostics("en", "es")
    assert diag["libre"] == {"urls": ["https://example.test"], "api_key_masked": "sec***ey", "ok": True}
    assert diag["argos"] == {"available": False, "ok": False}


def test_mask():
    assert _mask("") == ""
    assert _mask("abc") == "***"


def test_mistral_parses_text_parts():
    payload = {"choices": [{"message": {"content": [
        {"type": "text", "text": " hello "},
        {"type": "input_audio", "input_audio": "..."},
        {"type": "output_text", "text": "world"},
    ]}}]}
    assert MistralASR.parse_response(payload) == "hello world"
    assert MistralASR.parse_response({"choices": [{"message": {"content": " hi "}}]}) == "hi"
    assert MistralASR.parse_response({"choices": []}) == ""


def test_mistral_language_hint():
    asr = MistralASR("key")
    payload = asr.build_payload("AAAA", "fr")
    content = payload["messages"][0]["content"]
    assert content[0] == {"type": "input_audio", "input_audio": "AAAA"}
    assert "French" in content[1]["text"]


def test_mistral_requires_key():
    with pytest.raises(ValueError):
        MistralASR("")
