"""
OpenAI backend (chat completions)
"""

from typing import Optional

from .base import BaseProvider, CompletionResult, Usage


class OpenAIProvider(BaseProvider):
    provider_type = "openai"
    models = ["gpt-4o", "gpt-4o-mini", "gpt-4.1", "gpt-4.1-mini"]

    def _create_client(self, api_key: str):
        from openai import OpenAI

        return OpenAI(api_key=api_key)

    def _complete(
        self,
        prompt: str,
        system: Optional[str],
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> CompletionResult:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        response = self._client.chat.completions.create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=messages,
        )
        usage = response.usage
        return CompletionResult(
            content=response.choices[0].message.content or "",
            usage=Usage(
                input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            ),
        )
