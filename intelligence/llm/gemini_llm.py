"""
Google Gemini LLM
支持 Gemini 2.0 / 1.5 系列 (文本 + 图片输入)
"""
from typing import Any, List, Optional
import logging

from .base import BaseLLM, Message, MessageRole, LLMResponse
from utils.exceptions import LLMError


logger = logging.getLogger(__name__)


class GeminiLLM(BaseLLM):
    """
    Google Gemini LLM 实现

    支持模型:
    - gemini-2.0-flash (推荐)
    - gemini-1.5-pro
    - gemini-1.5-flash
    """

    def __init__(
        self,
        model: str = "gemini-2.0-flash",
        api_key: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 2048,
        timeout: float = 45.0,
        **kwargs,
    ):
        super().__init__(model, temperature, max_tokens, timeout, **kwargs)
        self.api_key = api_key

    @property
    def provider(self) -> str:
        return "gemini"

    @staticmethod
    def _message_parts(msg: Message) -> List[Any]:
        parts: List[Any] = [
            {"mime_type": image.mime_type, "data": image.data}
            for image in msg.images
        ]
        if msg.content:
            parts.append(msg.content)
        return parts

    def _convert_messages(self, messages: List[Message]) -> tuple:
        """
        转换消息格式 (Gemini 格式)

        Returns:
            (system_instruction, history, last_parts)
        """
        system_instruction = None
        history = []
        last_parts = None

        for msg in messages:
            if msg.role == MessageRole.SYSTEM:
                system_instruction = msg.content
            elif msg.role == MessageRole.USER:
                if last_parts:
                    history.append({"role": "user", "parts": last_parts})
                last_parts = self._message_parts(msg)
            elif msg.role == MessageRole.ASSISTANT:
                # 添加到历史
                if last_parts:
                    history.append({"role": "user", "parts": last_parts})
                    last_parts = None
                history.append({"role": "model", "parts": [msg.content]})

        return system_instruction, history, last_parts

    async def acomplete(
        self,
        messages: List[Message],
        **kwargs,
    ) -> LLMResponse:
        """异步生成响应"""
        if not self.api_key:
            raise LLMError("Gemini API key is not configured", provider=self.provider)

        import google.generativeai as genai

        genai.configure(api_key=self.api_key)

        system_instruction, history, last_parts = self._convert_messages(messages)

        generation_config = {
            "temperature": kwargs.get("temperature", self.temperature),
            "max_output_tokens": kwargs.get("max_tokens", self.max_tokens),
        }

        model = genai.GenerativeModel(
            model_name=self.model,
            generation_config=generation_config,
            system_instruction=system_instruction,
        )

        chat = model.start_chat(history=history)
        try:
            response = await chat.send_message_async(last_parts or [""])
        except Exception as e:
            raise LLMError(f"Gemini request failed: {e}", provider=self.provider, model=self.model) from e

        content = response.text if response.text else ""

        usage = {}
        if hasattr(response, 'usage_metadata') and response.usage_metadata:
            usage = {
                "prompt_tokens": response.usage_metadata.prompt_token_count,
                "completion_tokens": response.usage_metadata.candidates_token_count,
                "total_tokens": response.usage_metadata.total_token_count,
            }

        return LLMResponse(
            content=content,
            model=self.model,
            usage=usage,
            finish_reason=response.candidates[0].finish_reason.name if response.candidates else None,
            raw_response=response,
        )
