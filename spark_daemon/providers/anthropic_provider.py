"""
Anthropic backend (Claude models via the messages API)
"""

from typing import Optional

from .base import BaseProvider, CompletionResult, Usage


class AnthropicProvider(BaseProvider):
    provider_type = "anthropic"
    models = [
        "claude-sonnet-4-5-20250929",
        "claude-haiku-4-5-20251001",
        "claude-opus-4-1-20250805",
        "claude-3-5-haiku-20241022",
    ]

    def _create_client(self, api_key: str):
        import anthropic

        return anthropic.Anthropic(api_key=api_key)

    def _complete(
        self,
        prompt: str,
        system: Optional[str],
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> CompletionResult:
        kwargs = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        response = self._client.messages.create(**kwargs)
        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", "text") == "text"
        )
        return CompletionResult(
            content=text,
            usage=Usage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
            ),
        )
