from typing import Dict, Iterable

MIN_CUE_MS = 200
DEFAULT_CUE_MS = 800


def format_srt_time(ms: int) -> str:
    # SRT uses comma for ms separator
    ms = max(0, int(ms))
    h = ms // 3600000
    ms %= 3600000
    m = ms // 60000
    ms %= 60000
    s = ms // 1000
    ms = ms % 1000
    return f"{h:02d}:{m:02d}:{s:02d},{ms:03d}"


def render_srt(segments: Iterable[Dict], use_translated: bool = True) -> str:
    """
    Render a session's segments as SRT text.

    Each segment is expected to have keys:
      - start_ms: int
      - end_ms: int
      - text: str (original)
      - translated_text: str (translated)
    Segments without text are skipped and do not consume a cue number.
    """
    cues = []
    for seg in segments:
        text = ((seg.get("translated_text") if use_translated else seg.get("text")) or "").strip()
        if not text:
            continue
        start_ms = int(max(0, seg.get("start_ms", 0)))
        end_ms = int(max(start_ms + MIN_CUE_MS, seg.get("end_ms", start_ms + DEFAULT_CUE_MS)))
        cues.append(f"{len(cues) + 1}\n{format_srt_time(start_ms)} --> {format_srt_time(end_ms)}\n{text}\n")
    return "\n".join(cues)
