from io import BytesIO

from gtts import gTTS

MIME_TYPE = "audio/mpeg"


class GTTSService:
    mime = MIME_TYPE

    def __init__(self, slow: bool = False):
        self.slow = slow

    def synthesize(self, text: str, lang: str) -> bytes:
        if not text:
            return b""
        fp = BytesIO()
        gTTS(text=text, lang=lang, slow=self.slow).write_to_fp(fp)
        return fp.getvalue()
