"""
Configuration module for the realtime WebRTC client and relay.

This module provides centralized configuration management, including
constants, logging setup, and the table of supported API variants.

Key components:
- constants: Application-wide constants such as endpoints, model ids,
  timeouts, event type names and the backoff policy values.
- logging_config: Console and rotating file logging for the named
  application logger.
- variants: Feature flag table describing each supported Realtime API
  variant (model id, VAD defaults, transcription model, noise reduction).

Usage examples:
```python
from realtime_webrtc.config.constants import LOGGER_NAME, DEFAULT_REALTIME_MODEL
from realtime_webrtc.config.logging_config import configure_logging
from realtime_webrtc.config.variants import get_variant

logger = configure_logging()
variant = get_variant("2025-06-03")
logger.info(f"Using model {variant.model}")
```
"""

# Config module initialization
