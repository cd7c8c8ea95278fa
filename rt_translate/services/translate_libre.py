import logging
from typing import List, Optional

import requests

DEFAULT_HOSTS = [
    "https://libretranslate.com",
    "https://libretranslate.de",
    "https://translate.argosopentech.com",
]
MYMEMORY_URL = "https://api.mymemory.translated.net/get"


class LibreTranslate:
    """
    LibreTranslate over one or more hosts, with MyMemory as a last resort.

    `base_url` may be a comma-separated list; the public default hosts are tried after it.
    Returns "" when every provider failed so callers can pick their own fallback.
    """

    def __init__(self, base_url: str = DEFAULT_HOSTS[0], api_key: str = "", timeout: float = 12.0, use_mymemory: bool = True):
        parts = [p.strip().rstrip("/") for p in (base_url or "").split(",") if p.strip()]
        seen = set()
        self.base_urls: List[str] = []
        for u in parts + DEFAULT_HOSTS:
            if u not in seen:
                self.base_urls.append(u)
                seen.add(u)
        self.api_key = (api_key or "").strip()
        self.timeout = timeout
        self.use_mymemory = use_mymemory
        self.logger = logging.getLogger("rt_translate")

    def _translate_libre(self, text: str, source: Optional[str], target: str) -> str:
        payload = {
            "q": text,
            "source": source or "auto",
            "target": target,
            "format": "text",
        }
        if self.api_key:
            payload["api_key"] = self.api_key
        for base in self.base_urls:
            try:
                resp = requests.post(f"{base}/translate", json=payload, timeout=self.timeout)
                if resp.status_code == 429:
                    self.logger.warning("translate.rate_limited base=%s", base)
                    continue
                resp.raise_for_status()
                out = resp.json().get("translatedText", "")
                if out:
                    return out
                self.logger.warning("translate.empty_response base=%s", base)
            except (requests.RequestException, ValueError) as e:
                self.logger.warning("translate.failed base=%s err=%s", base, e)
        return ""

    def _translate_mymemory(self, text: str, source: Optional[str], target: str) -> str:
        try:
            r = requests.get(MYMEMORY_URL, params={"q": text, "langpair": f"{source or 'en'}|{target}"}, timeout=self.timeout)
            r.raise_for_status()
            out = (r.json().get("responseData") or {}).get("translatedText", "")
            if out:
                self.logger.info("translate.mymemory.used")
            return out or ""
        except (requests.RequestException, ValueError) as e:
            self.logger.warning("translate.mymemory.failed err=%s", e)
            return ""

    def translate(self, text: str, source: Optional[str], target: str) -> str:
        if not text:
            return ""
        out = self._translate_libre(text, source, target)
        if not out and self.use_mymemory:
            out = self._translate_mymemory(text, source, target)
        return out
