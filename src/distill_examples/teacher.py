"""Teacher model clients used to generate preferred labels."""

import json
import logging
import os
from typing import Optional, Protocol

from openai import OpenAI

from common.aws import get_bedrock_runtime_client
from common.config import PipelineConfig

logger = logging.getLogger(__name__)

MAX_TOKENS = 200
ANTHROPIC_VERSION = "bedrock-2023-05-31"


class Teacher(Protocol):
    model_id: str

    def generate(self, prompt: str) -> str:
        """Return the teacher's completion for ``prompt``."""
        ...


class BedrockTeacher:
    """Anthropic messages models served by the Bedrock runtime."""

    def __init__(self, model_id: str, client=None, region: Optional[str] = None,
                 timeout_seconds: Optional[float] = None) -> None:
        self.model_id = model_id
        self._client = client or get_bedrock_runtime_client(region, read_timeout=timeout_seconds)

    def generate(self, prompt: str) -> str:
        response = self._client.invoke_model(
            modelId=self.model_id,
            contentType="application/json",
            accept="application/json",
            body=json.dumps({
                "anthropic_version": ANTHROPIC_VERSION,
                "max_tokens": MAX_TOKENS,
                "messages": [{"role": "user", "content": prompt}],
            }),
        )
        body = json.loads(response["body"].read())
        content = body.get("content") or []
        if not content:
            return ""
        return content[0].get("text") or ""


class OpenAITeacher:
    """Chat completion models behind the OpenAI API."""

    def __init__(self, model_id: str, client: Optional[OpenAI] = None,
                 timeout_seconds: Optional[float] = None) -> None:
        self.model_id = model_id
        if client is None:
            kwargs = {"timeout": timeout_seconds} if timeout_seconds is not None else {}
            client = OpenAI(api_key=os.environ.get("OPENAI_API_KEY"), **kwargs)
        self._client = client

    def generate(self, prompt: str) -> str:
        response = self._client.chat.completions.create(
            model=self.model_id,
            max_tokens=MAX_TOKENS,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.choices[0].message.content or ""


def build_teacher(config: PipelineConfig) -> Teacher:
    """Create the teacher client named by ``config.teacher_provider``."""
    provider = config.teacher_provider.lower()
    logger.info("Using %s teacher model %s", provider, config.teacher_model_id)
    if provider == "bedrock":
        return BedrockTeacher(
            config.teacher_model_id,
            region=config.region,
            timeout_seconds=config.teacher_timeout_seconds,
        )
    if provider == "openai":
        return OpenAITeacher(config.teacher_model_id, timeout_seconds=config.teacher_timeout_seconds)
    raise ValueError(f"Unknown teacher provider: {config.teacher_provider}")
