import logging
from typing import Set, Tuple

try:
    from argostranslate import package as argos_package
    from argostranslate import translate as argos_translate
    ARGOS_AVAILABLE = True
except ImportError:
    ARGOS_AVAILABLE = False


class ArgosTranslate:
    """
    Offline translation using Argos Translate models.
    Installs the (source -> target) model from the package index on first use.
    """

    def __init__(self, auto_install: bool = True):
        self.logger = logging.getLogger("rt_translate")
        self.auto_install = auto_install
        self._ready: Set[Tuple[str, str]] = set()
        if not ARGOS_AVAILABLE:
            self.logger.warning("argos.unavailable package not installed")

    @property
    def available(self) -> bool:
        return ARGOS_AVAILABLE

    def _is_installed(self, source: str, target: str) -> bool:
        for lang in argos_translate.get_installed_languages():
            if lang.code != source:
                continue
            for tr in lang.translations_from:
                if tr.to_lang.code == target:
                    return True
        return False

    def ensure_model(self, source: str, target: str) -> bool:
        if not ARGOS_AVAILABLE:
            return False
        pair = (source, target)
        if pair in self._ready:
            return True
        if self._is_installed(source, target):
            self._ready.add(pair)
            return True
        if not self.auto_install:
            return False
        self.logger.info("argos.update_index")
        argos_package.update_package_index()
        pkg = next(
            (p for p in argos_package.get_available_packages() if p.from_code == source and p.to_code == target),
            None,
        )
        if pkg is None:
            self.logger.warning("argos.package_not_found pair=%s->%s", source, target)
            return False
        self.logger.info("argos.installing pair=%s->%s", source, target)
        argos_package.install_from_path(pkg.download())
        self._ready.add(pair)
        return True

    def translate(self, text: str, source: str, target: str) -> str:
        if not text:
            return ""
        if not ARGOS_AVAILABLE:
            raise RuntimeError("ArgosTranslate not installed")
        source = source or "en"
        if not self.ensure_model(source, target):
            self.logger.info("argos.model_missing pair=%s->%s", source, target)
            return ""
        return argos_translate.translate(text, source, target) or ""
