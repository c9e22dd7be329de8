"""
Google Gemini backend
"""

import hashlib
from typing import Dict, Optional

from .base import BaseProvider, CompletionResult, Usage


class GoogleProvider(BaseProvider):
    provider_type = "google"
    models = ["gemini-2.0-flash", "gemini-2.5-flash", "gemini-2.5-pro"]

    def _create_client(self, api_key: str):
        import google.generativeai as genai

        genai.configure(api_key=api_key)
        self._models: Dict[str, object] = {}  # Cache models by (model, system prompt)
        return genai

    def _model_for(self, model: str, system: Optional[str]):
        cache_key = hashlib.md5(f"{model}\0{system or ''}".encode()).hexdigest()
        if cache_key not in self._models:
            kwargs = {"model_name": model}
            if system:
                kwargs["system_instruction"] = system
            self._models[cache_key] = self._client.GenerativeModel(**kwargs)
        return self._models[cache_key]

    def _complete(
        self,
        prompt: str,
        system: Optional[str],
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> CompletionResult:
        response = self._model_for(model, system).generate_content(
            prompt,
            generation_config={"max_output_tokens": max_tokens, "temperature": temperature},
        )
        metadata = getattr(response, "usage_metadata", None)
        return CompletionResult(
            content=response.text,
            usage=Usage(
                input_tokens=getattr(metadata, "prompt_token_count", 0) or 0,
                output_tokens=getattr(metadata, "candidates_token_count", 0) or 0,
            ),
        )
