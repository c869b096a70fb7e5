"""
Models module for data structures and state management of a realtime session.

Key components:
- settings: Immutable snapshot of the user-selectable session settings.
- events: Pydantic models for every server event type received over the
  data channel, plus ``parse_server_event`` to decode raw messages.
- transcript: User and AI transcript buffers with a single live entry each.
- session: Connection state machine states, activity status and the
  per-connection ``SessionState``.

Usage examples:
```python
from realtime_webrtc.models import Settings, VadMode, parse_server_event

settings = Settings(voice="verse", vad_mode=VadMode.SERVER)
event = parse_server_event('{"type": "response.created", "response": {"id": "r1"}}')
print(event.response_id)
```
"""

from realtime_webrtc.models.events import ServerEvent, parse_server_event
from realtime_webrtc.models.session import (
    ActivityStatus,
    ConnectionAttemptResult,
    ConnectionState,
    SessionState,
)
from realtime_webrtc.models.settings import (
    NoiseReduction,
    Settings,
    VadEagerness,
    VadMode,
)
from realtime_webrtc.models.transcript import (
    TranscriptBuffer,
    TranscriptEntry,
    TranscriptSide,
)
