"""
Target languages offered to translation clients.
"""

from typing import Dict, List, Optional

# code -> {"name": display name, "speech": whether TTS can voice it}
AVAILABLE_LANGUAGES: Dict[str, Dict] = {
    "en": {"name": "English", "speech": True},
    "es": {"name": "Spanish", "speech": True},
    "fr": {"name": "French", "speech": True},
    "de": {"name": "German", "speech": True},
    "asl": {"name": "American Sign Language", "speech": False},
}


def get_available_languages() -> List[Dict[str, str]]:
    """Language list in the shape sent on `available_languages`."""
    return [{"code": code, "name": lang["name"]} for code, lang in AVAILABLE_LANGUAGES.items()]


def is_supported(code: Optional[str]) -> bool:
    return bool(code) and code in AVAILABLE_LANGUAGES


def has_speech(code: str) -> bool:
    """True when translated text in this language can be voiced."""
    lang = AVAILABLE_LANGUAGES.get(code)
    return bool(lang and lang["speech"])


def get_language_name(code: str) -> str:
    lang = AVAILABLE_LANGUAGES.get(code)
    if lang:
        return lang["name"]
    return code.upper()
