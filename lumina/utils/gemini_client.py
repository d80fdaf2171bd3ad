import asyncio
import base64
import logging
from typing import Any, Dict, List, Optional

import requests
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from tenacity import RetryError, retry, retry_if_result, stop_after_delay, wait_fixed

from lumina.config.settings import settings
from lumina.utils.errors import NetworkError

logger = logging.getLogger(__name__)

ASPECT_RATIOS = ("1:1", "16:9", "9:16")


def _not_done(operation) -> bool:
    return not getattr(operation, "done", False)


class GeminiClient:
    """Gemini 原生接口：联网检索问答、图片、视频"""

    def __init__(self, api_key: str = None, client: Any = None):
        self.api_key = api_key or settings.GEMINI_API_KEY
        self.client = client or genai.Client(api_key=self.api_key)
        logger.info("Gemini客户端初始化完成")

    async def _call(self, description: str, fn):
        """在线程池中执行同步SDK调用，接口错误统一转为NetworkError"""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, fn)
        except genai_errors.APIError as e:
            logger.error(f"{description}失败: {e}")
            raise NetworkError() from e
        except (requests.RequestException, ConnectionError, TimeoutError) as e:
            logger.error(f"{description}网络异常: {e}")
            raise NetworkError() from e

    async def ask_with_search(self, query: str, system_instruction: str,
                              model: str = None) -> Dict[str, Any]:
        """
        开启Google检索的问答

        Returns:
            dict: {"text": 回答文本或None, "sources": [{"title", "uri"}]}（来源按uri去重）
        """
        response = await self._call("联网问答", lambda: self.client.models.generate_content(
            model=model or settings.TEXT_MODEL,
            contents=query,
            config=types.GenerateContentConfig(
                system_instruction=system_instruction,
                tools=[types.Tool(google_search=types.GoogleSearch())],
            ),
        ))
        return {"text": response.text, "sources": self._grounding_sources(response)}

    @staticmethod
    def _grounding_sources(response) -> List[Dict[str, str]]:
        sources, seen = [], set()
        candidates = getattr(response, "candidates", None) or []
        metadata = getattr(candidates[0], "grounding_metadata", None) if candidates else None
        for chunk in getattr(metadata, "grounding_chunks", None) or []:
            web = getattr(chunk, "web", None)
            if not web or not web.uri or web.uri in seen:
                continue
            seen.add(web.uri)
            sources.append({"title": web.title or "Reference Source", "uri": web.uri})
        return sources

    async def generate_image(self, prompt: str, aspect_ratio: str = "1:1") -> str:
        """生成图片，返回data URL"""
        response = await self._call("图片生成", lambda: self.client.models.generate_images(
            model=settings.IMAGE_MODEL,
            prompt=prompt,
            config=types.GenerateImagesConfig(number_of_images=1, aspect_ratio=aspect_ratio),
        ))
        images = getattr(response, "generated_images", None) or []
        if not images or not images[0].image or not images[0].image.image_bytes:
            logger.warning("图片生成返回为空")
            raise NetworkError("Failed to generate image. Please try again.")
        image = images[0].image
        mime_type = getattr(image, "mime_type", None) or "image/png"
        encoded = base64.b64encode(image.image_bytes).decode("ascii")
        return f"data:{mime_type};base64,{encoded}"

    async def start_video(self, prompt: str):
        """发起视频生成，返回长任务operation"""
        operation = await self._call("视频生成", lambda: self.client.models.generate_videos(
            model=settings.VIDEO_MODEL,
            prompt=prompt,
            config=types.GenerateVideosConfig(number_of_videos=1),
        ))
        logger.info(f"视频生成任务已创建: {operation.name}")
        return operation

    async def video_status(self, operation):
        """查询视频任务状态"""
        if isinstance(operation, str):
            operation = types.GenerateVideosOperation(name=operation)
        return await self._call("视频状态查询", lambda: self.client.operations.get(operation))

    async def wait_for_video(self, operation, poll_interval: float = None, timeout: float = None):
        """轮询直到视频任务完成"""
        poll = retry(
            retry=retry_if_result(_not_done),
            wait=wait_fixed(settings.VIDEO_POLL_INTERVAL if poll_interval is None else poll_interval),
            stop=stop_after_delay(settings.VIDEO_TIMEOUT if timeout is None else timeout),
        )(self.video_status)
        try:
            return await poll(operation)
        except RetryError as e:
            logger.error(f"视频生成超时: {getattr(operation, 'name', operation)}")
            raise NetworkError("Video generation is taking too long. Please try again later.") from e

    @staticmethod
    def video_uri(operation) -> Optional[str]:
        response = getattr(operation, "response", None)
        videos = getattr(response, "generated_videos", None) or []
        if not videos or not videos[0].video:
            return None
        return videos[0].video.uri

    async def download_video(self, uri: str) -> bytes:
        """下载生成好的视频（需要附带API key）"""
        def _download():
            response = requests.get(uri, params={"key": self.api_key}, timeout=120)
            response.raise_for_status()
            return response.content

        return await self._call("视频下载", _download)
