import logging
from typing import Optional

from .translate_argos import ArgosTranslate
from .translate_libre import LibreTranslate


def _mask(s: Optional[str]) -> str:
    if not s:
        return ""
    if len(s) <= 5:
        return "***"
    return s[:3] + "***" + s[-2:]


class TranslatorOrchestrator:
    """Try multiple translators in order, never failing the caller.

    Order:
      1) LibreTranslate (multi-host, optional api_key), which itself falls back to MyMemory.
      2) ArgosTranslate (offline), if installed.
      3) The original text.
    """

    def __init__(self, libre: LibreTranslate, argos: Optional[ArgosTranslate] = None):
        self.logger = logging.getLogger("rt_translate")
        self.libre = libre
        self.argos = argos if argos is not None and argos.available else None
        self.logger.info(
            "translator.config libre_urls=%s api_key=%s argos=%s",
            ",".join(libre.base_urls),
            _mask(libre.api_key),
            bool(self.argos),
        )

    def translate(self, text: str, source: Optional[str], target: str) -> str:
        if not text:
            return ""
        if source and source == target:
            return text

        try:
            out = self.libre.translate(text, source, target)
            # An unchanged result across languages means the provider did nothing
            if out and out != text:
                return out
            self.logger.warning("translator.libre.no_result text_len=%d", len(text))
        except Exception as e:
            self.logger.warning("translator.libre.failed err=%s", e)

        if self.argos:
            try:
                out = self.argos.translate(text, source or "en", target)
                if out:
                    return out
            except Exception as e:
                self.logger.warning("translator.argos.failed err=%s", e)

        self.logger.error("translator.all_failed returning source text")
        return text

    def diagnostics(self, source: str = "en", target: str = "es") -> dict:
        """Probe each provider with a tiny sample. API keys are masked."""
        sample = "hello"
        diag = {
            "libre": {"urls": self.libre.base_urls, "api_key_masked": _mask(self.libre.api_key), "ok": False},
            "argos": {"available": bool(self.argos), "ok": False},
        }
        try:
            diag["libre"]["ok"] = bool(self.libre.translate(sample, source, target))
        except Exception as e:
            self.logger.warning("translator.diag.libre_failed err=%s", e)
        if self.argos:
            try:
                diag["argos"]["ok"] = bool(self.argos.translate(sample, source, target))
            except Exception as e:
                self.logger.warning("translator.diag.argos_failed err=%s", e)
        return diag
