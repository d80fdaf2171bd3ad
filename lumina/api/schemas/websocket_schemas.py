from pydantic import BaseModel
from typing import Optional


class WebSocketMessageBase(BaseModel):
    type: str
    timestamp: Optional[str] = None


class AudioFrameMessage(WebSocketMessageBase):
    type: str = "audio_frame"
    content: str


class SessionEndMessage(WebSocketMessageBase):
    type: str = "session_end"
    message: Optional[str] = None


class SessionStartMessage(WebSocketMessageBase):
    type: str = "session_start"
    connection_id: str
    input_sample_rate: int
    output_sample_rate: int
    frame_size: int
    message: str


class AudioMessage(WebSocketMessageBase):
    type: str = "audio"
    content: str
    sample_rate: int
    start_at: float
    duration: float


class TranscriptMessage(WebSocketMessageBase):
    type: str = "transcript"
    speaker: str
    text: str
    entry: str


class InterruptedMessage(WebSocketMessageBase):
    type: str = "interrupted"
    stopped: int


class HeartbeatAckMessage(WebSocketMessageBase):
    type: str = "heartbeat_ack"


class ErrorMessage(WebSocketMessageBase):
    type: str = "error"
    error: str
    message: str
