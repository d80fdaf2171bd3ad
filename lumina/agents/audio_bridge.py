#!/usr/bin/env python3
"""
实时语音辅导桥
麦克风PCM帧 -> 实时会话；实时会话返回的语音帧 -> 无缝排程播放；双方字幕 -> 滚动字幕。
只有 IDLE / ACTIVE 两个状态，连接失败或中途断线都直接回到 IDLE 并给出可恢复的错误。
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional

from lumina.agents.audio import AudioFrame, AudioInput, AudioOutput, PlaybackScheduler, TranscriptLog
from lumina.config.settings import settings
from lumina.utils.errors import ConnectionInterrupted, LuminaError, NetworkError, PermissionDenied

logger = logging.getLogger(__name__)

TUTOR_SYSTEM_PROMPT = (
    "You are an expert Socratic Tutor for Year 1-11 students. Your mission is to help them understand "
    "school concepts. RULE: NEVER give the answer immediately. Ask guiding questions, use helpful "
    "analogies, and be very encouraging. If they sound stuck, give them a hint. Keep responses short and spoken."
)


class BridgeState(Enum):
    """语音桥状态"""
    IDLE = "idle"
    ACTIVE = "active"


@dataclass
class LiveMessage:
    """实时会话下行消息"""
    audio: Optional[bytes] = None
    input_transcript: Optional[str] = None   # 学生说的话
    output_transcript: Optional[str] = None  # 老师说的话
    interrupted: bool = False


@dataclass
class BridgeEvent:
    """语音桥对外发布的事件：transcript / audio / interrupted / error / closed"""
    type: str
    data: Dict[str, Any] = field(default_factory=dict)


class LiveSession(ABC):
    """实时会话端口"""

    @abstractmethod
    async def send_audio(self, frame: AudioFrame) -> None:
        """上行一帧麦克风音频"""

    @abstractmethod
    def receive(self) -> AsyncIterator[LiveMessage]:
        """下行消息流；正常关闭时结束，传输错误时抛出"""

    @abstractmethod
    async def close(self) -> None:
        """关闭会话"""


class LiveConnector(ABC):
    """实时会话工厂"""

    @abstractmethod
    async def connect(self, system_prompt: str, voice: str) -> LiveSession:
        """建立会话，失败时抛出异常"""


class RealtimeAudioBridge:
    """实时语音辅导桥"""

    def __init__(self, connector: LiveConnector, microphone: AudioInput, speaker: AudioOutput,
                 system_prompt: str = TUTOR_SYSTEM_PROMPT, voice: str = None,
                 transcript_limit: int = None, output_sample_rate: int = None):
        self.connector = connector
        self.microphone = microphone
        self.speaker = speaker
        self.system_prompt = system_prompt
        self.voice = voice or settings.LIVE_VOICE
        self.output_sample_rate = output_sample_rate or settings.OUTPUT_SAMPLE_RATE

        self.state = BridgeState.IDLE
        self.scheduler = PlaybackScheduler(speaker)
        self.transcript = TranscriptLog(transcript_limit or settings.TRANSCRIPT_LIMIT)
        self.events: asyncio.Queue = asyncio.Queue()
        self.last_error: Optional[LuminaError] = None

        self._session: Optional[LiveSession] = None
        self._mic_open = False
        self._tasks: List[asyncio.Task] = []
        self._stop_done: Optional[asyncio.Event] = None
        self._stop_owner: Optional[asyncio.Task] = None
        self._stopped_tasks: List[asyncio.Task] = []

    @property
    def is_active(self) -> bool:
        return self.state is BridgeState.ACTIVE

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    def _emit(self, event_type: str, **data) -> None:
        self.events.put_nowait(BridgeEvent(event_type, data))

    def _fail(self, error: LuminaError) -> None:
        self.last_error = error
        self.state = BridgeState.IDLE
        self._emit("error", message=error.message, error=type(error).__name__)

    async def start(self) -> None:
        """
        开始辅导会话
        先申请麦克风，再建立实时会话，会话建立后开始上行麦克风帧、处理下行消息。

        Raises:
            PermissionDenied: 麦克风被拒绝
            NetworkError: 无法建立实时会话
        """
        if self.is_active:
            return
        self.last_error = None

        try:
            await self.microphone.open()
        except PermissionDenied as e:
            logger.warning(f"麦克风权限被拒绝: {e}")
            self._fail(e)
            raise
        self._mic_open = True

        try:
            self._session = await self.connector.connect(self.system_prompt, self.voice)
        except Exception as e:
            logger.error(f"实时会话建立失败: {e}")
            await self._release_microphone()
            error = e if isinstance(e, NetworkError) else NetworkError(
                "Could not connect to the tutor. Please try again."
            )
            self._fail(error)
            raise error from e

        self.state = BridgeState.ACTIVE
        self._tasks = [
            asyncio.create_task(self._pump_microphone()),
            asyncio.create_task(self._pump_remote()),
        ]
        logger.info("语音辅导会话已开始")

    async def _pump_microphone(self) -> None:
        """麦克风帧逐帧上行"""
        try:
            while True:
                frame = await self.microphone.read_frame()
                if frame is None:
                    break
                await self._session.send_audio(frame)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await self._connection_lost(e)

    async def _pump_remote(self) -> None:
        """处理下行消息，远端正常关闭时结束会话"""
        try:
            async for message in self._session.receive():
                await self.handle_message(message)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await self._connection_lost(e)
            return
        logger.info("实时会话被远端关闭")
        await self.stop()

    async def handle_message(self, message: LiveMessage) -> None:
        """处理一条下行消息：语音排程、字幕、打断"""
        if message.audio:
            frame = AudioFrame(message.audio, self.output_sample_rate)
            start_at = await self.scheduler.schedule(frame)
            self._emit("audio", start_at=start_at, duration=frame.duration)

        if message.input_transcript:
            entry = self.transcript.add("Student", message.input_transcript)
            self._emit("transcript", speaker="Student", text=message.input_transcript, entry=entry)
        if message.output_transcript:
            entry = self.transcript.add("Tutor", message.output_transcript)
            self._emit("transcript", speaker="Tutor", text=message.output_transcript, entry=entry)

        if message.interrupted:
            stopped = self.scheduler.interrupt()
            self._emit("interrupted", stopped=stopped)

    async def _connection_lost(self, error: Exception) -> None:
        logger.error(f"实时会话传输中断: {error}")
        self._fail(ConnectionInterrupted())
        await self.stop()

    async def _release_microphone(self) -> None:
        if not self._mic_open:
            return
        self._mic_open = False
        await self.microphone.close()

    @staticmethod
    async def _join(tasks: List[asyncio.Task], current: Optional[asyncio.Task], cancel: bool = False) -> None:
        others = [task for task in tasks if task is not current]
        if cancel:
            for task in others:
                task.cancel()
        if others:
            await asyncio.gather(*others, return_exceptions=True)

    async def stop(self) -> None:
        """
        结束会话并释放麦克风；可重复调用
        停止已在其他任务中进行时（如远端关闭触发的停止），等它完成后再返回。
        """
        current = asyncio.current_task()
        if self._stop_done is not None:
            if current is self._stop_owner:
                return
            done, stopped = self._stop_done, self._stopped_tasks
            await done.wait()
            await self._join(stopped, current)
            return

        self._stop_done = asyncio.Event()
        self._stop_owner = current
        try:
            tasks, self._tasks = self._tasks, []
            self._stopped_tasks = tasks
            await self._join(tasks, current, cancel=True)

            session, self._session = self._session, None
            try:
                if session:
                    await session.close()
            except Exception as e:
                logger.warning(f"关闭实时会话失败: {e}")
            finally:
                await self._release_microphone()

            if self.is_active:
                self.state = BridgeState.IDLE
                self._emit("closed")
                logger.info("语音辅导会话已结束")
        finally:
            done, self._stop_done, self._stop_owner = self._stop_done, None, None
            done.set()
