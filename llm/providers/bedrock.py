"""
AWS Bedrock LLM Provider.
"""

import asyncio
import json
import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .base import GenerationError, build_system_prompt

logger = logging.getLogger(__name__)


class BedrockProvider:
    """
    AWS Bedrock LLM provider.

    Supports Claude models via Bedrock. The boto3 client is blocking, so
    calls run in a worker thread.
    """

    DEFAULT_MODEL = "us.anthropic.claude-sonnet-4-20250514-v1:0"

    def __init__(
        self,
        model_id: str = DEFAULT_MODEL,
        region: str = "us-east-1",
        max_tokens: int = 300,
        temperature: float = 0.3,
        timeout: float = 10.0,
    ):
        """
        Initialize Bedrock provider.

        Args:
            model_id: Bedrock model ID
            region: AWS region
            max_tokens: Maximum tokens for response
            temperature: Generation temperature
            timeout: Read timeout in seconds
        """
        self.model_id = model_id
        self.region = region
        self.max_tokens = max_tokens
        self.temperature = temperature

        self._client = boto3.client(
            "bedrock-runtime",
            region_name=region,
            config=Config(read_timeout=timeout, connect_timeout=timeout, retries={"max_attempts": 1}),
        )
        logger.info(f"Bedrock provider initialized: {model_id} in {region}")

    async def generate(self, system_policy: str, context: str, user_message: str) -> str:
        body = {
            "anthropic_version": "bedrock-2023-05-31",
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "system": build_system_prompt(system_policy, context),
            "messages": [
                {
                    "role": "user",
                    "content": [{"type": "text", "text": user_message}]
                }
            ]
        }
        try:
            response_body = await asyncio.to_thread(self._invoke, body)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Bedrock generation failed: {e}")
            raise GenerationError(str(e)) from e

        if "content" in response_body and response_body["content"]:
            return response_body["content"][0]["text"].strip()

        logger.warning("Empty response from Bedrock")
        return ""

    def _invoke(self, body: dict) -> dict:
        response = self._client.invoke_model(
            modelId=self.model_id,
            body=json.dumps(body),
            contentType="application/json",
            accept="application/json",
        )
        return json.loads(response["body"].read())
