import asyncio
import base64

import pytest

from lumina.agents.audio import AudioFrame
from lumina.api.websocket_audio import WebSocketMicrophone, WebSocketSpeaker
from lumina.api.websocket_manager import WebSocketManager
from lumina.utils.errors import PermissionDenied

FRAME = b"\x01\x00" * 4096


async def test_microphone_opens_after_grant():
    microphone = WebSocketMicrophone(16000)
    opening = asyncio.create_task(microphone.open())
    await asyncio.sleep(0)
    microphone.grant()
    await opening

    assert microphone.feed(base64.b64encode(FRAME).decode())
    frame = await microphone.read_frame()
    assert frame.data == FRAME
    assert frame.sample_rate == 16000

    await microphone.close()
    assert await microphone.read_frame() is None


async def test_grant_before_open_is_remembered():
    microphone = WebSocketMicrophone(16000)
    microphone.grant()
    await microphone.open()
    assert microphone.is_open


async def test_microphone_denied():
    microphone = WebSocketMicrophone(16000)
    microphone.deny()
    with pytest.raises(PermissionDenied):
        await microphone.open()


async def test_microphone_permission_timeout():
    microphone = WebSocketMicrophone(16000, permission_timeout=0.01)
    with pytest.raises(PermissionDenied):
        await microphone.open()


def test_frames_dropped_while_closed():
    microphone = WebSocketMicrophone(16000)
    assert microphone.feed(base64.b64encode(FRAME).decode()) is False


async def test_speaker_sends_scheduled_audio():
    sent = []

    async def send(message):
        sent.append(message)

    speaker = WebSocketSpeaker(send)
    handle = await speaker.play(AudioFrame(b"\x00\x00" * 24000, 24000), 1.5)

    assert handle.start_at == 1.5
    assert handle.duration == 1.0
    assert sent[0]["type"] == "audio"
    assert sent[0]["start_at"] == 1.5
    assert base64.b64decode(sent[0]["content"]) == b"\x00\x00" * 24000
    assert speaker.current_time() >= 0


async def test_manager_send_to_unknown_connection():
    manager = WebSocketManager()
    assert await manager.send_message("missing", {"type": "heartbeat_ack"}) is False
    assert manager.get_connection_count() == 0
