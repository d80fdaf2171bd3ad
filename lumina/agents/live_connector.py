import logging
from typing import Any, AsyncIterator

from google import genai
from google.genai import types

from lumina.agents.audio import AudioFrame
from lumina.agents.audio_bridge import LiveConnector, LiveMessage, LiveSession
from lumina.config.settings import settings

logger = logging.getLogger(__name__)


def to_live_message(response: Any) -> LiveMessage:
    """把SDK的服务端消息转换为 LiveMessage"""
    content = getattr(response, "server_content", None)
    if content is None:
        return LiveMessage()

    audio = None
    turn = content.model_turn
    if turn and turn.parts:
        inline = turn.parts[0].inline_data
        if inline and inline.data:
            audio = inline.data

    return LiveMessage(
        audio=audio,
        input_transcript=content.input_transcription.text if content.input_transcription else None,
        output_transcript=content.output_transcription.text if content.output_transcription else None,
        interrupted=bool(content.interrupted),
    )


class GeminiLiveSession(LiveSession):
    """google-genai 实时会话的封装"""

    def __init__(self, context_manager, session):
        self._context_manager = context_manager
        self._session = session

    async def send_audio(self, frame: AudioFrame) -> None:
        await self._session.send_realtime_input(
            audio=types.Blob(data=frame.data, mime_type=frame.mime_type)
        )

    async def receive(self) -> AsyncIterator[LiveMessage]:
        # SDK的receive()在每轮对话结束时返回，需要循环读取；一轮都读不到说明连接已关闭
        while True:
            received = False
            async for response in self._session.receive():
                received = True
                yield to_live_message(response)
            if not received:
                return

    async def close(self) -> None:
        await self._context_manager.__aexit__(None, None, None)


class GeminiLiveConnector(LiveConnector):
    """建立 Gemini Live 会话"""

    def __init__(self, api_key: str = None, client: Any = None, model: str = None):
        self.client = client or genai.Client(api_key=api_key or settings.GEMINI_API_KEY)
        self.model = model or settings.LIVE_MODEL

    def build_config(self, system_prompt: str, voice: str) -> types.LiveConnectConfig:
        return types.LiveConnectConfig(
            response_modalities=[types.Modality.AUDIO],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice)
                )
            ),
            system_instruction=system_prompt,
            input_audio_transcription=types.AudioTranscriptionConfig(),
            output_audio_transcription=types.AudioTranscriptionConfig(),
        )

    async def connect(self, system_prompt: str, voice: str) -> LiveSession:
        context_manager = self.client.aio.live.connect(
            model=self.model,
            config=self.build_config(system_prompt, voice),
        )
        session = await context_manager.__aenter__()
        logger.info(f"Gemini Live 会话已建立，模型: {self.model}, 声音: {voice}")
        return GeminiLiveSession(context_manager, session)
