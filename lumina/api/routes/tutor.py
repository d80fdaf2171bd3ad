"""
语音辅导WebSocket
客户端上行麦克风授权结果与PCM帧，服务端下行排好播放时间的语音、字幕、打断与错误事件。
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from lumina.agents.audio_bridge import BridgeEvent, RealtimeAudioBridge
from lumina.api.deps import get_session_service
from lumina.api.schemas.websocket_schemas import (
    AudioFrameMessage, ErrorMessage, HeartbeatAckMessage, InterruptedMessage,
    SessionEndMessage, SessionStartMessage, TranscriptMessage
)
from lumina.api.websocket_audio import WebSocketMicrophone, WebSocketSpeaker
from lumina.api.websocket_manager import websocket_manager
from lumina.config.settings import settings
from lumina.services.session_service import SessionService
from lumina.utils.errors import LuminaError
from lumina.utils.helpers import format_timestamp, generate_id

logger = logging.getLogger(__name__)
router = APIRouter()


def event_message(event: BridgeEvent) -> Optional[Dict[str, Any]]:
    """语音桥事件 -> 下行消息；audio 事件由扬声器直接下发，这里不再重复"""
    timestamp = format_timestamp()
    if event.type == "transcript":
        return TranscriptMessage(timestamp=timestamp, **event.data).model_dump()
    if event.type == "interrupted":
        return InterruptedMessage(timestamp=timestamp, **event.data).model_dump()
    if event.type == "error":
        return ErrorMessage(timestamp=timestamp, **event.data).model_dump()
    if event.type == "closed":
        return SessionEndMessage(timestamp=timestamp, message="Tutor session ended.").model_dump()
    return None


@router.websocket("/ws/tutor")
async def tutor_websocket(websocket: WebSocket, sessions: SessionService = Depends(get_session_service)):
    """
    语音辅导WebSocket端点
    """
    user = sessions.restore_session()
    if not user:
        await websocket.close(code=1008, reason="Please log in first.")
        return

    connector = getattr(websocket.app.state, "live_connector", None)
    if connector is None:
        await websocket.close(code=1011, reason="Tutor is unavailable.")
        return

    await websocket.accept()
    connection_id = generate_id()
    await websocket_manager.connect(websocket, connection_id)
    logger.info(f"用户 {user.id} 语音辅导连接已建立: {connection_id}")

    async def send(message: Dict[str, Any]):
        return await websocket_manager.send_message(connection_id, message)

    microphone = WebSocketMicrophone(settings.INPUT_SAMPLE_RATE)
    bridge = RealtimeAudioBridge(connector, microphone, WebSocketSpeaker(send))

    await send(SessionStartMessage(
        connection_id=connection_id,
        input_sample_rate=settings.INPUT_SAMPLE_RATE,
        output_sample_rate=settings.OUTPUT_SAMPLE_RATE,
        frame_size=settings.INPUT_FRAME_SIZE,
        message="Tutor session is starting. Please allow microphone access.",
        timestamp=format_timestamp(),
    ).model_dump())

    start_task = asyncio.create_task(_start_bridge(bridge, connection_id))
    forward_task = asyncio.create_task(_forward_events(bridge, send))
    try:
        await _handle_messages(websocket, connection_id, microphone, send)
    except WebSocketDisconnect:
        logger.info(f"语音辅导连接断开: {connection_id}")
    finally:
        if not start_task.done():
            start_task.cancel()
        await asyncio.gather(start_task, return_exceptions=True)
        await bridge.stop()
        # 把 closed 事件发出去再停止转发
        await _drain_events(bridge, send)
        forward_task.cancel()
        await asyncio.gather(forward_task, return_exceptions=True)
        websocket_manager.disconnect(connection_id)
        logger.info(f"语音辅导会话资源清理完成: {connection_id}")


async def _start_bridge(bridge: RealtimeAudioBridge, connection_id: str):
    """启动语音桥；失败时错误事件已由语音桥发出"""
    try:
        await bridge.start()
    except LuminaError as e:
        logger.info(f"语音辅导 {connection_id} 启动失败: {e.message}")


async def _forward_events(bridge: RealtimeAudioBridge, send):
    while True:
        event = await bridge.events.get()
        message = event_message(event)
        if message:
            await send(message)


async def _drain_events(bridge: RealtimeAudioBridge, send):
    while not bridge.events.empty():
        message = event_message(bridge.events.get_nowait())
        if message:
            await send(message)


async def _handle_messages(websocket: WebSocket, connection_id: str,
                           microphone: WebSocketMicrophone, send):
    """
    处理客户端消息循环
    """
    while True:
        data = await websocket.receive_text()
        message = _parse_message(data)
        if not message:
            await send(ErrorMessage(
                error="BadMessage", message="Could not read that message.", timestamp=format_timestamp()
            ).model_dump())
            continue

        message_type = message["type"]
        if message_type == "audio_frame":
            try:
                microphone.feed(AudioFrameMessage.model_validate(message).content)
            except ValueError as e:
                logger.warning(f"音频帧解码失败 {connection_id}: {e}")
                await send(ErrorMessage(
                    error="BadAudioFrame", message="Could not read that audio frame.",
                    timestamp=format_timestamp(),
                ).model_dump())
        elif message_type == "mic_ready":
            microphone.grant()
        elif message_type == "mic_denied":
            microphone.deny()
        elif message_type == "heartbeat":
            await send(HeartbeatAckMessage(timestamp=format_timestamp()).model_dump())
        elif message_type == "session_end":
            logger.info(f"客户端主动结束语音辅导: {connection_id}")
            break
        else:
            await send(ErrorMessage(
                error="UnknownMessage",
                message=f"Unknown message type: {message_type}",
                timestamp=format_timestamp(),
            ).model_dump())


def _parse_message(data: str) -> Optional[Dict[str, Any]]:
    """
    解析WebSocket消息，格式错误返回None
    """
    try:
        message = json.loads(data)
    except json.JSONDecodeError:
        logger.error(f"消息JSON解析失败: {data[:100]}")
        return None
    if not isinstance(message, dict) or "type" not in message:
        logger.error("消息缺少type字段")
        return None
    return message
