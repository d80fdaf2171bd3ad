import json
import logging
import openai
from typing import List, Dict, Any, Optional
import asyncio
import time

from lumina.config.settings import settings
from lumina.utils.errors import NetworkError

logger = logging.getLogger(__name__)


class LLMClient:
    """大模型文本客户端，走Gemini的OpenAI兼容接口"""

    def __init__(self, api_key: str = None, model: str = None, base_url: str = None):
        self.api_key = api_key or settings.GEMINI_API_KEY
        self.model = model or settings.TEXT_MODEL
        self.base_url = base_url or settings.GEMINI_OPENAI_BASE
        self.max_tokens = settings.LLM_MAX_TOKENS
        self.timeout = settings.LLM_TIMEOUT

        self.client = openai.OpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout
        )

        logger.info(f"LLM客户端初始化完成，模型: {self.model}")

    async def generate_response(self, messages: List[Dict[str, str]],
                                temperature: float = 0.7,
                                max_tokens: Optional[int] = None,
                                response_format: Optional[Dict[str, Any]] = None) -> str:
        """
        调用大模型生成响应（失败不自动重试，由调用方决定是否重新发起）

        Args:
            messages: 消息列表，格式为 [{"role": "user", "content": "Hello"}]
            temperature: 生成温度
            max_tokens: 最大token数
            response_format: 结构化输出约束

        Returns:
            str: 模型生成的响应内容
        """
        logger.debug(f"调用LLM，消息数: {len(messages)}, 温度: {temperature}, 最大token数: {max_tokens or self.max_tokens}")

        kwargs = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens or self.max_tokens,
            "stream": False,
        }
        if response_format:
            kwargs["response_format"] = response_format

        try:
            start_time = time.time()
            loop = asyncio.get_running_loop()
            response = await loop.run_in_executor(
                None,
                lambda: self.client.chat.completions.create(**kwargs)
            )

            content = response.choices[0].message.content or ""
            usage = response.usage

            elapsed_time = time.time() - start_time
            logger.debug(f"LLM调用成功: {len(content)}字符, "
                         f"耗时: {elapsed_time:.2f}s, "
                         f"Token使用: {usage.total_tokens if usage else 'N/A'}")
            return content

        except openai.APITimeoutError as e:
            logger.error(f"LLM调用超时: {e}")
            raise NetworkError() from e
        except openai.APIError as e:
            logger.error(f"LLM API错误: {e}")
            raise NetworkError() from e

    async def generate_json(self, messages: List[Dict[str, str]], schema: Dict[str, Any],
                            name: str = "response", temperature: float = 0.7) -> Dict[str, Any]:
        """按JSON Schema约束生成并解析JSON"""
        content = await self.generate_response(
            messages,
            temperature=temperature,
            response_format={
                "type": "json_schema",
                "json_schema": {"name": name, "schema": schema},
            },
        )
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"LLM返回的JSON无法解析: {content[:200]}")
            raise NetworkError("The tutor sent back something unreadable. Please try again.") from e

    async def check_connection(self) -> bool:
        """检查与大模型的连接是否正常"""
        try:
            test_messages = [{"role": "user", "content": "Hello, respond with 'OK'"}]
            response = await self.generate_response(test_messages, max_tokens=10)
            return bool(response)
        except NetworkError as e:
            logger.error(f"大模型连接检查失败: {e}")
            return False
