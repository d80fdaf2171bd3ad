#!/usr/bin/env python3
"""
生成服务模块
作业答疑（联网检索）、示意图、自由绘图、视频生成的一次性请求封装。
同一档案同一功能只展示最新一次请求的结果，先发后到的结果标记为过期。
"""

import logging
import threading
from typing import Any, Dict, Optional, Tuple

from lumina.utils.errors import NetworkError, ValidationError
from lumina.utils.gemini_client import ASPECT_RATIOS, GeminiClient
from lumina.utils.helpers import RequestSequencer, format_timestamp

logger = logging.getLogger(__name__)

HOMEWORK_SYSTEM_PROMPT = """You are Lumina Study Buddy, a helpful, encouraging tutor for students in Year 1 to Year 11 (ages 5-16).

RULES:
1. **NEVER** give the final answer or write the essay for the student.
2. **ALWAYS** guide them with hints, questions, and simple explanations.
3. If asked for code or math solutions, break down the logic or provide a similar example, but do not solve the specific problem asked.
4. Use simple, age-appropriate language.
5. Use emojis to be friendly.
6. Use bold text for key terms.
7. Verify facts using search."""

HOMEWORK_FALLBACK = "I couldn't find an answer for that. Try rephrasing!"

SUGGESTED_DIAGRAMS = [
    "Structure of an atom",
    "Water cycle diagram",
    "Plate tectonics",
    "Ancient Egyptian pyramid layout",
    "Newton's Third Law illustration",
]

FEATURES = ("homework", "diagram", "image", "video")


def diagram_prompt(topic: str) -> str:
    return (
        f"A clear, high-quality educational diagram or visual aid showing: {topic}. "
        "Educational style, textbook quality, white background where appropriate, labeled clearly."
    )


def _require(text: str, message: str) -> str:
    text = (text or "").strip()
    if not text:
        raise ValidationError(message)
    return text


class GenerationService:
    """一次性生成请求"""

    def __init__(self, gemini_client: GeminiClient, sequencer: RequestSequencer = None):
        self.gemini_client = gemini_client
        self.sequencer = sequencer or RequestSequencer()
        self._latest: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self._lock = threading.Lock()
        logger.info("生成服务初始化完成")

    def latest(self, profile: str, feature: str) -> Optional[Dict[str, Any]]:
        """当前应展示的结果"""
        with self._lock:
            return self._latest.get((profile, feature))

    def _publish(self, profile: str, feature: str, token: int, result: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            stale = not self.sequencer.is_latest(profile, feature, token)
            result = dict(result, sequence=token, stale=stale, created_at=format_timestamp())
            if stale:
                logger.info(f"档案{profile} 的{feature}结果已过期（序号{token}），丢弃")
            else:
                self._latest[(profile, feature)] = result
        return result

    async def ask_homework(self, profile: str, query: str) -> Dict[str, Any]:
        query = _require(query, "Please type your question first.")
        token = self.sequencer.issue(profile, "homework")
        answer = await self.gemini_client.ask_with_search(query, HOMEWORK_SYSTEM_PROMPT)
        return self._publish(profile, "homework", token, {
            "query": query,
            "text": answer.get("text") or HOMEWORK_FALLBACK,
            "sources": answer.get("sources", []),
        })

    async def create_diagram(self, profile: str, topic: str) -> Dict[str, Any]:
        topic = _require(topic, "Please describe the diagram first.")
        token = self.sequencer.issue(profile, "diagram")
        image_url = await self.gemini_client.generate_image(diagram_prompt(topic), "1:1")
        return self._publish(profile, "diagram", token, {"prompt": topic, "image_url": image_url})

    async def create_image(self, profile: str, prompt: str, aspect_ratio: str = "1:1") -> Dict[str, Any]:
        prompt = _require(prompt, "Please describe your picture first.")
        if aspect_ratio not in ASPECT_RATIOS:
            raise ValidationError(f"Aspect ratio must be one of {', '.join(ASPECT_RATIOS)}.")
        token = self.sequencer.issue(profile, "image")
        image_url = await self.gemini_client.generate_image(prompt, aspect_ratio)
        return self._publish(profile, "image", token, {
            "prompt": prompt, "aspect_ratio": aspect_ratio, "image_url": image_url
        })

    async def start_video(self, profile: str, prompt: str) -> Dict[str, Any]:
        """发起视频任务，返回任务名供轮询"""
        prompt = _require(prompt, "Please describe your video first.")
        token = self.sequencer.issue(profile, "video")
        operation = await self.gemini_client.start_video(prompt)
        return self._publish(profile, "video", token, {
            "prompt": prompt,
            "operation": operation.name,
            "done": bool(getattr(operation, "done", False)),
            "video_uri": self.gemini_client.video_uri(operation),
        })

    async def video_status(self, operation_name: str) -> Dict[str, Any]:
        operation = await self.gemini_client.video_status(operation_name)
        done = bool(getattr(operation, "done", False))
        uri = self.gemini_client.video_uri(operation) if done else None
        if done and not uri:
            error = getattr(operation, "error", None)
            logger.error(f"视频任务完成但没有结果: {operation_name}, {error}")
            raise NetworkError("Failed to generate video. Ensure you have a valid paid API key selected.")
        return {"operation": operation_name, "done": done, "video_uri": uri}

    async def generate_video(self, profile: str, prompt: str) -> Dict[str, Any]:
        """发起并等待视频完成"""
        started = await self.start_video(profile, prompt)
        operation = await self.gemini_client.wait_for_video(started["operation"])
        uri = self.gemini_client.video_uri(operation)
        if not uri:
            raise NetworkError("Failed to generate video. Ensure you have a valid paid API key selected.")
        return self._publish(profile, "video", started["sequence"], dict(started, done=True, video_uri=uri))

    async def download_video(self, uri: str) -> bytes:
        return await self.gemini_client.download_video(uri)
