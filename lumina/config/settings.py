from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import List


class Settings(BaseSettings):
    """应用配置"""

    # 应用配置
    APP_NAME: str = "Lumina Study Buddy"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # 数据库配置（每个档案一组键值集合，替代浏览器 localStorage）
    DATABASE_URL: str = "sqlite:///./lumina.db"
    STORAGE_PREFIX: str = "lumina_"
    DEFAULT_PROFILE: str = "default"

    # 大模型配置
    GEMINI_API_KEY: str = ""
    # OpenAI 兼容接口，供文本/JSON 生成使用
    GEMINI_OPENAI_BASE: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    TEXT_MODEL: str = "gemini-3-flash-preview"
    IMAGE_MODEL: str = "imagen-4.0-generate-001"
    VIDEO_MODEL: str = "veo-3.1-fast-generate-preview"
    LIVE_MODEL: str = "gemini-2.5-flash-native-audio-preview-12-2025"
    LIVE_VOICE: str = "Charon"
    LLM_MAX_TOKENS: int = 4000
    LLM_TIMEOUT: int = 60

    # 视频生成轮询
    VIDEO_POLL_INTERVAL: int = 10
    VIDEO_TIMEOUT: int = 600

    # 实时语音配置
    INPUT_SAMPLE_RATE: int = 16000
    OUTPUT_SAMPLE_RATE: int = 24000
    INPUT_FRAME_SIZE: int = 4096
    TRANSCRIPT_LIMIT: int = 16

    # 日期统计使用的本地时区
    TIMEZONE: str = "Europe/London"

    # WebSocket配置
    WEBSOCKET_PING_INTERVAL: int = 20
    WEBSOCKET_PING_TIMEOUT: int = 20

    # 日志配置
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"

    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


# 创建全局配置实例
settings = Settings()
