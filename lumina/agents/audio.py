"""
音频基础组件
PCM帧、麦克风/扬声器端口、无缝播放排程、滚动字幕。
"""

import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Callable, List, Optional, Set

logger = logging.getLogger(__name__)

BYTES_PER_SAMPLE = 2  # PCM16


@dataclass
class AudioFrame:
    """一段单声道PCM16音频"""
    data: bytes
    sample_rate: int
    channels: int = 1

    @property
    def duration(self) -> float:
        """时长（秒）"""
        return len(self.data) / (BYTES_PER_SAMPLE * self.channels * self.sample_rate)

    @property
    def mime_type(self) -> str:
        return f"audio/pcm;rate={self.sample_rate}"


class AudioInput(ABC):
    """麦克风端口"""

    @abstractmethod
    async def open(self) -> None:
        """申请麦克风，被拒绝时抛出 PermissionDenied"""

    @abstractmethod
    async def read_frame(self) -> Optional[AudioFrame]:
        """读取下一帧；麦克风关闭后返回None"""

    @abstractmethod
    async def close(self) -> None:
        """释放麦克风"""


class PlaybackHandle:
    """一段已排程的播放"""

    def __init__(self, start_at: float, duration: float, on_stop: Callable[["PlaybackHandle"], None] = None):
        self.start_at = start_at
        self.duration = duration
        self.stopped = False
        self._on_stop = on_stop

    @property
    def end_at(self) -> float:
        return self.start_at + self.duration

    def stop(self) -> None:
        if self.stopped:
            return
        self.stopped = True
        if self._on_stop:
            self._on_stop(self)


class AudioOutput(ABC):
    """扬声器端口：提供播放时钟，按指定时间点播放一帧"""

    @abstractmethod
    def current_time(self) -> float:
        """播放时钟当前时间（秒）"""

    @abstractmethod
    async def play(self, frame: AudioFrame, start_at: float) -> PlaybackHandle:
        """在start_at时刻开始播放frame"""


class PlaybackScheduler:
    """
    无缝顺序播放
    每帧的开始时间取 max(上一帧结束时间, 当前时钟)，帧与帧首尾相接，既无空隙也不重叠。
    """

    def __init__(self, output: AudioOutput):
        self.output = output
        self.next_start_time = 0.0
        self.sources: Set[PlaybackHandle] = set()

    async def schedule(self, frame: AudioFrame) -> float:
        now = self.output.current_time()
        self._prune(now)
        start_at = max(self.next_start_time, now)
        handle = await self.output.play(frame, start_at)
        self.sources.add(handle)
        self.next_start_time = start_at + frame.duration
        return start_at

    def _prune(self, now: float) -> None:
        """移除已播放结束的片段"""
        finished = {h for h in self.sources if h.stopped or h.end_at <= now}
        self.sources -= finished

    def interrupt(self) -> int:
        """打断：停止并丢弃所有已排程的片段，时钟归零。返回停止的片段数"""
        count = len(self.sources)
        for handle in list(self.sources):
            handle.stop()
        self.sources.clear()
        self.next_start_time = 0.0
        logger.debug(f"播放被打断，停止{count}个片段")
        return count


class TranscriptLog:
    """滚动字幕，超过上限时丢弃最旧的条目"""

    def __init__(self, limit: int = 16):
        self._entries = deque(maxlen=limit)

    def add(self, speaker: str, text: str) -> str:
        entry = f"{speaker}: {text}"
        self._entries.append(entry)
        return entry

    def entries(self) -> List[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
