#!/usr/bin/env python3
"""
rt-translate
Real-time translation sessions: run the server, or talk to one from a terminal.
"""

import argparse
import sys

from .config import settings
from .download_model import DEFAULT_MODEL_URL, DEFAULT_OUTPUT_DIR
from .main import setup_logging

CLIENT_HELP = """
Commands:
  start [lang]   create a session (default: --language)
  join <id>      listen in on another session
  rec            start recording
  stop           stop recording (sends the final chunk)
  mute           toggle playback mute
  vol <0-100>    set playback volume
  end            end the session
  status         show session state
  quit           leave
"""


def serve(args) -> None:
    import uvicorn

    uvicorn.run(
        "rt_translate.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.LOG_LEVEL.lower(),
    )


def print_state(client) -> None:
    line = f"[{client.status.value}]"
    if client.session_id:
        line += f" session={client.session_id}"
    if client.is_recording:
        line += " (recording)"
    if client.transcription:
        line += f"\n  heard: {client.transcription}"
    if client.translation:
        line += f"\n  translated: {client.translation}"
    if client.error_message:
        line += f"\n  error: {client.error_message}"
    print(line)


def run_client(args) -> None:
    from .client.capture import AudioCapture
    from .client.channel import WebSocketChannel
    from .client.playback import PlaybackController
    from .client.session import TranslationClient

    channel = WebSocketChannel(args.url)
    client = TranslationClient(
        channel,
        capture=AudioCapture(chunk_ms=settings.CHUNK_MS, device=args.device),
        playback=PlaybackController(volume=args.volume),
        language=args.language,
        source_language=args.source_language,
    )
    last_seen = {}

    def on_change(c) -> None:
        snapshot = (c.status, c.session_id, c.transcription, c.translation, c.error_message)
        if snapshot != last_seen.get("state"):
            last_seen["state"] = snapshot
            print_state(c)

    client.subscribe(on_change)
    channel.connect()
    print(CLIENT_HELP)

    try:
        for line in sys.stdin:
            parts = line.split()
            if not parts:
                continue
            cmd, rest = parts[0].lower(), parts[1:]
            if cmd == "start":
                client.create_session(rest[0] if rest else None)
            elif cmd == "join" and rest:
                client.join_session(rest[0])
            elif cmd == "rec":
                client.start_recording()
            elif cmd == "stop":
                client.stop_recording()
            elif cmd == "mute":
                print("muted" if client.toggle_mute() else "unmuted")
            elif cmd == "vol" and rest and rest[0].isdigit():
                print(f"volume {client.set_volume(int(rest[0]))}%")
            elif cmd == "end":
                client.end_session()
            elif cmd == "status":
                print_state(client)
            elif cmd in ("quit", "exit", "q"):
                break
            else:
                print(CLIENT_HELP)
    except KeyboardInterrupt:
        pass
    finally:
        client.end_session()
        channel.disconnect()


def download_model(args) -> None:
    from .download_model import download_vosk_model

    path = download_vosk_model(args.url, args.output)
    print(f"Model extracted to {path}\nSet VOSK_MODEL_PATH={path}")


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(
        prog="rt-translate",
        description="Real-time translation sessions",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="Run the translation server")
    p_serve.add_argument("--host", default=settings.HOST)
    p_serve.add_argument("--port", type=int, default=settings.PORT)
    p_serve.add_argument("--reload", action="store_true")
    p_serve.set_defaults(func=serve)

    p_client = sub.add_parser(
        "client",
        help="Interactive terminal client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=CLIENT_HELP,
    )
    p_client.add_argument("--url", default=f"ws://localhost:{settings.PORT}/translation")
    p_client.add_argument("--language", "-l", default="es", help="Target language code")
    p_client.add_argument("--source-language", "-s", default=None, help="Spoken language code")
    p_client.add_argument("--device", "-d", type=int, default=None, help="Audio input device index")
    p_client.add_argument("--volume", type=int, default=80)
    p_client.set_defaults(func=run_client)

    p_model = sub.add_parser("download-model", help="Download a Vosk ASR model")
    p_model.add_argument("--url", default=DEFAULT_MODEL_URL)
    p_model.add_argument("--output", default=DEFAULT_OUTPUT_DIR)
    p_model.set_defaults(func=download_model)

    args = parser.parse_args(argv)
    setup_logging(settings.LOG_LEVEL)
    args.func(args)


if __name__ == "__main__":
    main()
