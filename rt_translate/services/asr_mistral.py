import base64
import logging
from typing import Dict, List, Optional

import requests

from .languages import get_language_name

DEFAULT_MODEL = "voxtral-mini-latest"
DEFAULT_URL = "https://api.mistral.ai/v1/chat/completions"


class MistralASR:
    """ASR client using Mistral's Voxtral chat-completions endpoint."""

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, api_url: str = DEFAULT_URL, timeout: float = 45.0):
        if not api_key:
            raise ValueError("Mistral API key is required for Mistral ASR")
        self.api_key = api_key
        self.model = model or DEFAULT_MODEL
        self.api_url = api_url or DEFAULT_URL
        self.timeout = timeout
        self.logger = logging.getLogger("rt_translate")

    @staticmethod
    def parse_response(payload: Dict) -> str:
        choices = payload.get("choices") or []
        if not choices:
            return ""
        message = (choices[0] or {}).get("message") or {}
        content = message.get("content")
        if isinstance(content, list):
            texts: List[str] = []
            for part in content:
                if isinstance(part, dict) and part.get("type") in {"text", "output_text"}:
                    txt = part.get("text") or part.get("content") or ""
                    if txt:
                        texts.append(str(txt).strip())
            return " ".join(texts).strip()
        if isinstance(content, str):
            return content.strip()
        if isinstance(message.get("text"), str):
            return message["text"].strip()
        return ""

    def build_payload(self, audio_b64: str, language: Optional[str] = None) -> Dict:
        instruction = "Transcribe the audio accurately. Respond with only the transcript."
        if language:
            instruction += f" The speaker talks in {get_language_name(language)}."
        return {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "input_audio", "input_audio": audio_b64},
                        {"type": "text", "text": instruction},
                    ],
                }
            ],
        }

    def transcribe_wav(self, wav_path: str, language: Optional[str] = None) -> str:
        with open(wav_path, "rb") as f:
            audio_b64 = base64.b64encode(f.read()).decode("utf-8")
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        resp = requests.post(self.api_url, json=self.build_payload(audio_b64, language), headers=headers, timeout=self.timeout)
        try:
            resp.raise_for_status()
        except requests.HTTPError:
            self.logger.error("mistral.asr.http_failed status=%s body=%s", resp.status_code, resp.text[:500])
            raise
        data = resp.json()
        text = self.parse_response(data)
        if not text:
            self.logger.warning("mistral.asr.empty_response payload_keys=%s", list(data.keys()))
        return text
