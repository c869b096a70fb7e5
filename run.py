"""
Run script for starting the realtime WebRTC relay.

The relay serves the token broker endpoint used by clients to obtain
ephemeral Realtime API credentials.

Usage:
    python run.py [--port PORT] [--host HOST] [--variant VARIANT]
"""

import argparse
import os
import sys
from pathlib import Path

import uvicorn

sys.path.append(str(Path(__file__).parent))

from realtime_webrtc.config.logging_config import configure_logging
from realtime_webrtc.config.variants import VARIANTS

logger = configure_logging()


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Start the realtime WebRTC relay"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "8000")),
        help="Port to run the server on (default: 8000 or PORT env var)",
    )
    parser.add_argument(
        "--host",
        default=os.getenv("HOST", "0.0.0.0"),
        help="Host to bind the server to (default: 0.0.0.0 or HOST env var)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    parser.add_argument(
        "--variant",
        default=os.getenv("REALTIME_API_VARIANT"),
        choices=sorted(VARIANTS),
        help="Realtime API variant (default: REALTIME_API_VARIANT env var or 2025-06-03)",
    )
    return parser.parse_args()


def main():
    """Main entry point for starting the relay."""
    args = parse_args()

    if not os.getenv("OPENAI_API_KEY"):
        logger.error("OPENAI_API_KEY environment variable not set")
        print("Error: OPENAI_API_KEY environment variable is required")
        sys.exit(1)

    # The app module reads the variant when it is imported by uvicorn
    if args.variant:
        os.environ["REALTIME_API_VARIANT"] = args.variant

    logger.info(f"Starting relay on http://{args.host}:{args.port}")
    logger.info(f"Log level: {args.log_level}")
    logger.info(f"API variant: {args.variant or 'default'}")

    uvicorn.run(
        "realtime_webrtc.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        http="h11",
        access_log=False,
        reload=os.getenv("ENV", "production").lower() == "development",
    )


if __name__ == "__main__":
    main()
