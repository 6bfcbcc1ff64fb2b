"""
LLM client for AI commentary (any OpenAI-compatible endpoint).
"""
from openai import OpenAI
import httpx
from tradejournal.core.config import LLM_API_KEY, LLM_BASE_URL, DEFAULT_LLM_MODEL
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)


class LLMClient:
    """Client for making chat-completion calls."""

    def __init__(
        self,
        api_key: str,
        base_url: str = LLM_BASE_URL,
        default_model: str = DEFAULT_LLM_MODEL,
        timeout: float = 60.0,
    ):
        if not api_key:
            raise ValueError("LLM API key not configured. Set LLM_API_KEY in config_local.py")

        self.api_key = api_key
        self.base_url = base_url

        http_client = httpx.Client(
            timeout=timeout,
            follow_redirects=True,
        )

        self.client = OpenAI(
            api_key=api_key,
            base_url=base_url,
            http_client=http_client,
        )
        self.default_model = default_model

    def call(
        self,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Make an LLM call.

        Args:
            system_prompt: System message/instructions
            user_prompt: User message/content
            model: Model to use (defaults to DEFAULT_LLM_MODEL)
            temperature: Sampling temperature (0-2)
            max_tokens: Maximum tokens to generate

        Returns:
            Dict with 'content', 'model', 'input_tokens', 'output_tokens', 'tokens_used'

        Raises:
            ValueError: if the provider call fails or returns no content
        """
        model = model or self.default_model

        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            logger.error(f"llm_call_failed: model={model}, error_type={type(e).__name__}, error={str(e)}")
            raise ValueError(f"LLM call failed: {str(e)}") from e

        if not response.choices or response.choices[0].message.content is None:
            logger.error(f"llm_call_failed: model={model}, error=empty response")
            raise ValueError("LLM returned an empty response")

        content = response.choices[0].message.content
        if response.usage:
            input_tokens = response.usage.prompt_tokens or 0
            output_tokens = response.usage.completion_tokens or 0
            total_tokens = response.usage.total_tokens or (input_tokens + output_tokens)
        else:
            input_tokens = 0
            output_tokens = 0
            total_tokens = 0

        logger.info(
            f"llm_call_completed: model={model}, input_tokens={input_tokens}, output_tokens={output_tokens}, total_tokens={total_tokens}"
        )

        return {
            "content": content,
            "model": model,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "tokens_used": total_tokens,
        }

    def probe(self, timeout: float) -> bool:
        """List models on the provider. Raises httpx errors on failure."""
        response = httpx.get(
            f"{self.base_url.rstrip('/')}/models",
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=timeout,
        )
        response.raise_for_status()
        return True


def build_llm_client() -> Optional[LLMClient]:
    """Create the process-wide client, or None when no key is configured."""
    if not LLM_API_KEY:
        logger.info("LLM_API_KEY not set, AI commentary will use templated fallbacks")
        return None
    return LLMClient(api_key=LLM_API_KEY)
