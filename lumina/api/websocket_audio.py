"""
WebSocket上的麦克风/扬声器
客户端通过辅导WebSocket上行PCM帧、下行带播放时间的PCM帧。
"""

import asyncio
import base64
import logging
import time
from typing import Awaitable, Callable, Dict, Optional

from lumina.agents.audio import AudioFrame, AudioInput, AudioOutput, PlaybackHandle
from lumina.api.schemas.websocket_schemas import AudioMessage
from lumina.utils.errors import PermissionDenied

logger = logging.getLogger(__name__)

PERMISSION_TIMEOUT = 30


class WebSocketMicrophone(AudioInput):
    """客户端麦克风：等待客户端授权，之后由路由把收到的帧喂进来"""

    def __init__(self, sample_rate: int, permission_timeout: float = PERMISSION_TIMEOUT):
        self.sample_rate = sample_rate
        self.permission_timeout = permission_timeout
        self._permission: Optional[asyncio.Future] = None
        self._frames: asyncio.Queue = asyncio.Queue()
        self.is_open = False

    def _pending(self) -> asyncio.Future:
        if self._permission is None or self._permission.done():
            self._permission = asyncio.get_running_loop().create_future()
        return self._permission

    def grant(self) -> None:
        future = self._pending()
        future.set_result(True)

    def deny(self) -> None:
        future = self._pending()
        future.set_result(False)

    async def open(self) -> None:
        future = self._permission if self._permission and self._permission.done() else self._pending()
        try:
            granted = await asyncio.wait_for(future, self.permission_timeout)
        except asyncio.TimeoutError:
            granted = False
        finally:
            self._permission = None
        if not granted:
            raise PermissionDenied()
        self._frames = asyncio.Queue()
        self.is_open = True

    def feed(self, content: str) -> bool:
        """放入一帧base64 PCM16；麦克风未打开时丢弃"""
        if not self.is_open:
            return False
        self._frames.put_nowait(AudioFrame(base64.b64decode(content), self.sample_rate))
        return True

    async def read_frame(self) -> Optional[AudioFrame]:
        if not self.is_open and self._frames.empty():
            return None
        return await self._frames.get()

    async def close(self) -> None:
        if self.is_open:
            self.is_open = False
            self._frames.put_nowait(None)


class WebSocketSpeaker(AudioOutput):
    """客户端扬声器：时钟为会话开始后的秒数，音频带 start_at 下发，由客户端按时播放"""

    def __init__(self, send: Callable[[Dict], Awaitable]):
        self._send = send
        self._origin = time.monotonic()

    def current_time(self) -> float:
        return time.monotonic() - self._origin

    async def play(self, frame: AudioFrame, start_at: float) -> PlaybackHandle:
        await self._send(AudioMessage(
            content=base64.b64encode(frame.data).decode("ascii"),
            sample_rate=frame.sample_rate,
            start_at=round(start_at, 4),
            duration=round(frame.duration, 4),
        ).model_dump(exclude_none=True))
        return PlaybackHandle(start_at, frame.duration)
