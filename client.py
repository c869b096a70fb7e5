"""
Terminal client for the OpenAI Realtime API over WebRTC.

Connects through the relay's token broker, turns on the microphone and prints
transcripts, status changes and face expressions as they arrive.

Usage:
    python client.py [--broker URL] [--voice VOICE] [--server-vad] [--no-mic]

Commands while running:
    v  toggle microphone
    c  clear transcripts
    r  reconnect
    q  quit
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

import dotenv

from realtime_webrtc.client.connection_manager import ConnectionManager
from realtime_webrtc.client.listener import SessionListener
from realtime_webrtc.config.constants import DEFAULT_TOKEN_BROKER_URL
from realtime_webrtc.config.logging_config import configure_logging
from realtime_webrtc.config.variants import get_variant
from realtime_webrtc.models.settings import VOICES, VadMode
from realtime_webrtc.services.negotiation import SdpNegotiator
from realtime_webrtc.services.token_broker import TokenBrokerClient

env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)


class TerminalListener(SessionListener):
    """Prints session updates to stdout."""

    def on_status_change(self, state, status):
        print(f"[{state.value}] {status.value}")

    def on_transcript_update(self, transcript):
        if not transcript.entries:
            return
        entry = transcript.entries[-1]
        if entry.live:
            return
        label = "You" if transcript.side.value == "user" else "AI"
        suffix = f" ({entry.confidence:.0%})" if entry.confidence is not None else ""
        print(f"{label}: {entry.text}{suffix}")

    def on_error(self, message):
        print(f"! {message}", file=sys.stderr)

    def on_emotion(self, expression):
        print(f"* {expression.emotion.value} ({expression.intensity:.1f})")


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Talk to the OpenAI Realtime API over WebRTC")
    parser.add_argument(
        "--broker",
        default=os.getenv("TOKEN_BROKER_URL", DEFAULT_TOKEN_BROKER_URL),
        help="Relay URL (default: TOKEN_BROKER_URL env var or http://localhost:8000)",
    )
    parser.add_argument(
        "--variant",
        default=os.getenv("REALTIME_API_VARIANT"),
        help="Realtime API variant (default: REALTIME_API_VARIANT env var)",
    )
    parser.add_argument("--voice", choices=VOICES, help="Voice for AI responses")
    parser.add_argument("--server-vad", action="store_true", help="Use server VAD instead of semantic VAD")
    parser.add_argument("--confidence", action="store_true", help="Show transcription confidence")
    parser.add_argument("--no-mic", action="store_true", help="Connect without turning on the microphone")
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "WARNING"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )
    return parser.parse_args()


def build_manager(args) -> ConnectionManager:
    variant = get_variant(args.variant)
    changes = {"include_confidence": args.confidence}
    if args.voice:
        changes["voice"] = args.voice
    if args.server_vad:
        changes["vad_mode"] = VadMode.SERVER
    settings = variant.default_settings().with_changes(**changes)

    return ConnectionManager(
        settings=settings,
        listener=TerminalListener(),
        token_broker=TokenBrokerClient(args.broker),
        negotiator=SdpNegotiator(model=variant.model),
    )


async def connect(manager: ConnectionManager, with_mic: bool) -> None:
    result = await manager.connect()
    if result.success and with_mic:
        await manager.start_voice()


async def run(args) -> None:
    manager = build_manager(args)
    await connect(manager, not args.no_mic)

    try:
        while True:
            command = (await asyncio.to_thread(sys.stdin.readline)).strip().lower()
            if command in ("q", "quit", "exit"):
                break
            if command == "v":
                if manager.session.voice_active:
                    await manager.stop_voice()
                else:
                    await manager.start_voice()
            elif command == "c":
                manager.clear_transcripts()
            elif command == "r":
                await manager.disconnect()
                await connect(manager, not args.no_mic)
    finally:
        await manager.disconnect()


def main():
    args = parse_args()
    configure_logging(args.log_level)
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        print("Bye")


if __name__ == "__main__":
    main()
