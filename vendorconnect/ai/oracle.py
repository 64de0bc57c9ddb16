"""DeepSeek-backed oracle for requests the local matchers cannot place."""

import json
import logging
from typing import Any, Dict, Optional

from openai import AsyncOpenAI, APIError, APITimeoutError

from config import settings
from ..exceptions import AssistantTimeout, CollaboratorUnavailable
from .intent import AssistantAction, ParsedIntent, Resolution, Unresolved
from .prompts import ORACLE_SYSTEM_PROMPT, oracle_user_prompt

logger = logging.getLogger(__name__)


class AssistantOracle:
    """
    Asks the language model to name one action from the vocabulary.

    Single attempt, bounded by oracle_timeout_seconds. Replies that are
    not JSON, or that name an action outside the vocabulary, come back
    as Unresolved carrying the raw text. Transport failures raise
    CollaboratorUnavailable.
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        self.enabled = client is not None or bool(settings.deepseek_api_key)
        self.client = client
        if self.client is None and self.enabled:
            self.client = AsyncOpenAI(
                api_key=settings.deepseek_api_key,
                base_url=settings.deepseek_base_url,
                timeout=settings.oracle_timeout_seconds,
                max_retries=0,
            )
        self.model = model or settings.deepseek_model

    async def _call_api(self, message: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": ORACLE_SYSTEM_PROMPT},
                    {"role": "user", "content": oracle_user_prompt(message)},
                ],
                temperature=0.1,
                max_tokens=500,
                response_format={"type": "json_object"},
            )
        except APITimeoutError as e:
            logger.error(f"DeepSeek oracle timed out: {e}")
            raise AssistantTimeout("The language assistant took too long to respond") from e
        except APIError as e:
            logger.error(f"DeepSeek API error: {e}")
            raise CollaboratorUnavailable("The language assistant is unavailable") from e
        return response.choices[0].message.content or ""

    async def interpret(self, message: str) -> Resolution:
        if not self.enabled:
            logger.debug("DeepSeek oracle disabled (no API key)")
            return Unresolved(reason="language assistant is not configured")

        raw = await self._call_api(message)
        try:
            result: Dict[str, Any] = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Oracle reply was not JSON: {raw[:200]}")
            return Unresolved(raw_text=raw, reason="oracle reply was not JSON")

        if not isinstance(result, dict):
            return Unresolved(raw_text=raw, reason="oracle reply was not an object")

        action = AssistantAction.parse(result.get("action"))
        if action is None:
            logger.info(f"Oracle named unknown action '{result.get('action')}'")
            return Unresolved(raw_text=raw, reason="oracle named an unknown action")

        params = result.get("params") or {}
        if not isinstance(params, dict):
            params = {}
        return ParsedIntent(action, params, source="oracle")


# Singleton
_oracle: Optional[AssistantOracle] = None


def get_oracle() -> AssistantOracle:
    global _oracle
    if _oracle is None:
        _oracle = AssistantOracle()
    return _oracle
