import logging
import os
import shutil
import subprocess
import tempfile
import wave
from typing import Tuple

logger = logging.getLogger("rt_translate")

# Raw PCM as produced by the Python client (16-bit little endian, mono, 16 kHz)
PCM_FORMAT = "pcm_s16le"
SAMPLE_RATE = 16000
NUM_CHANNELS = 1
SAMPLE_WIDTH = 2


def suffix_for_format(audio_format: str) -> str:
    """Map a declared audio format / MIME type to a file suffix for ffmpeg input."""
    ct = (audio_format or "").lower()
    if "pcm" in ct:
        return ".pcm"
    if "ogg" in ct:
        return ".ogg"
    if "webm" in ct:
        return ".webm"
    if "wav" in ct:
        return ".wav"
    if "mp3" in ct or "mpeg" in ct:
        return ".mp3"
    if "mp4" in ct or "m4a" in ct:
        return ".mp4"
    return ".webm"


def pcm_duration(num_bytes: int) -> float:
    return num_bytes / float(SAMPLE_RATE * NUM_CHANNELS * SAMPLE_WIDTH)


def pcm_to_wav(pcm_bytes: bytes) -> Tuple[str, float, str]:
    """Wrap raw PCM16 mono 16kHz bytes in a WAV file. Returns (wav_path, duration, tmpdir)."""
    tmpdir = tempfile.mkdtemp(prefix="rt_translate_")
    out_path = os.path.join(tmpdir, "out.wav")
    with wave.open(out_path, "wb") as wf:
        wf.setnchannels(NUM_CHANNELS)
        wf.setsampwidth(SAMPLE_WIDTH)
        wf.setframerate(SAMPLE_RATE)
        wf.writeframes(pcm_bytes)
    return out_path, pcm_duration(len(pcm_bytes)), tmpdir


# Transcodes given input bytes (e.g., webm/opus) to WAV PCM16 mono 16kHz
# Returns path to temporary wav file (caller should remove tmpdir) and duration (best-effort)

def transcode_to_wav_mono_16k(input_bytes: bytes, input_suffix: str = ".webm") -> Tuple[str, float, str]:
    tmpdir = tempfile.mkdtemp(prefix="rt_translate_")
    in_path = os.path.join(tmpdir, f"in{input_suffix}")
    out_path = os.path.join(tmpdir, "out.wav")
    with open(in_path, "wb") as f:
        f.write(input_bytes)
    FFMPEG_BIN = os.getenv("FFMPEG_BIN", "ffmpeg")
    FFPROBE_BIN = os.getenv("FFPROBE_BIN", "ffprobe")

    # Chunked webm/ogg recordings need an explicit demuxer
    input_format = None
    if input_suffix == ".webm":
        input_format = "webm"
    elif input_suffix == ".ogg":
        input_format = "ogg"

    cmd = [FFMPEG_BIN, "-y"]
    if input_format:
        cmd.extend(["-f", input_format])
    cmd.extend([
        "-i", in_path,
        "-ac", str(NUM_CHANNELS),
        "-ar", str(SAMPLE_RATE),
        out_path
    ])
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except FileNotFoundError:
        cleanup(tmpdir)
        raise RuntimeError(f"ffmpeg not found: {FFMPEG_BIN}")
    if result.returncode != 0:
        logger.error("ffmpeg.failed returncode=%d stderr=%s", result.returncode, result.stderr)
        cleanup(tmpdir)
        raise RuntimeError(f"FFmpeg transcode failed (exit {result.returncode}): {result.stderr[:500]}")

    dur = 0.0
    try:
        probe = subprocess.run([
            FFPROBE_BIN, "-v", "error", "-show_entries", "format=duration", "-of", "default=noprint_wrappers=1:nokey=1", out_path
        ], capture_output=True, text=True)
        if probe.returncode == 0 and probe.stdout.strip():
            dur = float(probe.stdout.strip())
    except (OSError, ValueError) as e:
        logger.warning("ffprobe.failed err=%s", e)
    return out_path, dur, tmpdir


def to_wav(audio: bytes, audio_format: str) -> Tuple[str, float, str]:
    """Produce a mono 16kHz WAV for any supported input format."""
    suffix = suffix_for_format(audio_format)
    if suffix == ".pcm":
        return pcm_to_wav(audio)
    return transcode_to_wav_mono_16k(audio, suffix)


def cleanup(tmpdir: str) -> None:
    if tmpdir:
        shutil.rmtree(tmpdir, ignore_errors=True)
