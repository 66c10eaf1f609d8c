"""
LLM 生成服务

通过 OpenAI 兼容的 chat/completions 接口（Ollama、vLLM 等）基于检索上下文生成回答
"""

from typing import List, Optional

import openai
from openai import AsyncOpenAI
from loguru import logger

from film_rag.core.config import settings
from film_rag.core.errors import ProviderError, RateLimitError
from film_rag.rag.gateways.base import Generator
from film_rag.rag.gateways.embedding import create_openai_client
from film_rag.rag.models.candidate import Candidate
from film_rag.rag.retry import retry_on_rate_limit

SYSTEM_PROMPT = """
You are a helpful assistant. Answer strictly based on the provided CONTEXT.
If the answer is not in the context, say "I do not know based on the provided context."
Respond in the same language as the user question.
""".strip()

DISABLED_ANSWER = "LLM call is disabled"


def build_context(candidates: List[Candidate]) -> str:
    """把候选文档拼成 prompt 上下文"""
    blocks = []
    for idx, candidate in enumerate(candidates):
        title = candidate.title or f"Chunk {idx + 1}"
        blocks.append(f"### {title}\n{candidate.description or ''}")
    return "\n\n".join(blocks)


def build_user_prompt(question: str, candidates: List[Candidate]) -> str:
    return f"QUESTION:\n{question}\n\nCONTEXT:\n{build_context(candidates)}".strip()


class ChatGenerator(Generator):
    """
    对话生成服务

    call_enabled=False 时不请求模型，直接返回占位回答（用于联调）
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        call_enabled: Optional[bool] = None,
        temperature: float = 0.2,
        cooldown: Optional[float] = None,
    ):
        if client is None:
            client = create_openai_client(settings.LLM_API_KEY, settings.LLM_API_BASE)
        self.client = client
        self.model = model or settings.LLM_MODEL
        self.call_enabled = settings.LLM_CALL_ENABLED if call_enabled is None else call_enabled
        self.temperature = temperature
        self.cooldown = cooldown
        logger.info(
            f"[ChatGenerator] 初始化完成: model={self.model}, call_enabled={self.call_enabled}"
        )

    async def generate(self, question: str, candidates: List[Candidate]) -> str:
        if not self.call_enabled:
            return DISABLED_ANSWER

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_user_prompt(question, candidates)},
        ]
        logger.info(
            f"[ChatGenerator] 调用 LLM: question_len={len(question)}, context={len(candidates)}"
        )
        return await retry_on_rate_limit(self._complete, messages, cooldown=self.cooldown)

    async def _complete(self, messages: List[dict]) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
            )
        except openai.RateLimitError as e:
            raise RateLimitError("llm", str(e)) from e
        except openai.APIError as e:
            logger.error(f"[ChatGenerator] LLM 调用失败: {e}")
            raise ProviderError("llm", str(e)) from e

        content = response.choices[0].message.content or ""
        return content.strip()
