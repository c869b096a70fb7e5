"""
Client module for the realtime WebRTC session.

Key components:
- connection_manager: Owns the peer connection, data channel and microphone
  for one session at a time, and drives the connection state machine.
- dispatcher: Pure function mapping (session state, server event) to a new
  state plus a list of intents for the connection manager to perform.
- backoff: Reconnect backoff with a sticky rate-limit floor, and the rolling
  per-identity attempt window.
- session_config: Builds the ``session.update`` payload from settings.
- emotions: The ``set_face_expression`` tool declaration and its arguments.
- listener: Observer interface for presentation layers.
- microphone, visualizer: Audio capture and spectrum bars.
- errors: Error taxonomy shared by the client and services.

Usage examples:
```python
import asyncio
from realtime_webrtc.client.connection_manager import ConnectionManager

async def talk():
    manager = ConnectionManager()
    result = await manager.connect()
    if result.success:
        await manager.start_voice()
        await asyncio.sleep(30)
    await manager.disconnect()

asyncio.run(talk())
```
"""

# Client module initialization
