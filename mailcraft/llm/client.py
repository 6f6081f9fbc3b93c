from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from anthropic import Anthropic
from dotenv import load_dotenv
import google.generativeai as genai
from openai import OpenAI

from mailcraft.errors import ConfigurationError

# Ensure API keys in .env are loaded even if mailcraft.config hasn't been imported yet.
_project_root = Path(__file__).resolve().parents[2]
load_dotenv(_project_root / ".env", override=False)


class LLMClientConfigError(ConfigurationError):
    pass


logger = logging.getLogger(__name__)
_DEFAULT_MODEL = os.getenv("LLM_DEFAULT_MODEL") or "gpt-4o-mini"
_DEFAULT_TIMEOUT = int(os.getenv("LLM_REQUEST_TIMEOUT", "120"))
_MAX_RETRIES = int(os.getenv("LLM_REQUEST_RETRIES", "2"))
_ANTHROPIC_DEFAULT_MAX_TOKENS = 4096


@dataclass
class LLMGenerationParams:
    model: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = 0.2
    json_mode: bool = False


class LLMClient:
    """
    Thin wrapper around the text-completion providers.
    Routes to the appropriate provider client based on the requested model.
    """

    def __init__(self, default_model: Optional[str] = None) -> None:
        self.default_model = default_model or _DEFAULT_MODEL
        self._gemini_configured = False
        self._anthropic_client: Optional[Anthropic] = None
        self._openai_client: Optional[OpenAI] = None

    def complete(
        self,
        system_instruction: str,
        user_instruction: str,
        params: Optional[LLMGenerationParams] = None,
    ) -> str:
        model = params.model if params and params.model else self.default_model
        model = model or _DEFAULT_MODEL
        if self._is_openai_model(model):
            return self._generate_with_openai(system_instruction, user_instruction, model, params)
        if model.startswith("claude"):
            return self._generate_with_anthropic(system_instruction, user_instruction, model, params)
        return self._generate_with_gemini(system_instruction, user_instruction, model, params)

    def _is_openai_model(self, model: str) -> bool:
        lower = model.lower()
        prefixes = ("gpt-", "chatgpt-", "o", "omni-")
        return any(lower.startswith(prefix) for prefix in prefixes)

    def _get_openai_client(self) -> OpenAI:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise LLMClientConfigError("OPENAI_API_KEY not configured")

        if not self._openai_client:
            client_kwargs: dict[str, Any] = {
                "api_key": api_key,
                "timeout": float(_DEFAULT_TIMEOUT),
                "max_retries": _MAX_RETRIES,
            }
            base_url = os.getenv("OPENAI_BASE_URL")
            if base_url:
                client_kwargs["base_url"] = base_url
            self._openai_client = OpenAI(**client_kwargs)
        return self._openai_client

    def _generate_with_openai(
        self,
        system_instruction: str,
        user_instruction: str,
        model: str,
        params: Optional[LLMGenerationParams],
    ) -> str:
        client = self._get_openai_client()

        completion_kwargs: dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_instruction},
                {"role": "user", "content": user_instruction},
            ],
        }
        temperature = params.temperature if params else 0.2
        if temperature is not None:
            completion_kwargs["temperature"] = temperature
        if params and params.max_tokens:
            completion_kwargs["max_tokens"] = params.max_tokens
        if params and params.json_mode:
            completion_kwargs["response_format"] = {"type": "json_object"}

        logger.debug(
            "OpenAI chat completion request",
            extra={"model": model, "json_mode": bool(params and params.json_mode)},
        )
        try:
            completion = client.chat.completions.create(**completion_kwargs)
        except Exception:
            logger.exception("OpenAI chat completion failed", extra={"model": model})
            raise

        if completion and completion.choices:
            message = completion.choices[0].message
            text = getattr(message, "content", None)
        else:
            text = None

        if text:
            return text

        raise RuntimeError(f"OpenAI chat completion returned no content for model {model}")

    def _generate_with_gemini(
        self,
        system_instruction: str,
        user_instruction: str,
        model: str,
        params: Optional[LLMGenerationParams],
    ) -> str:
        api_key = os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise LLMClientConfigError("GEMINI_API_KEY not configured")

        if not self._gemini_configured:
            genai.configure(api_key=api_key)
            self._gemini_configured = True

        generation_config: dict[str, Any] = {
            "temperature": params.temperature if params and params.temperature is not None else 0.2,
        }
        if params and params.max_tokens:
            generation_config["max_output_tokens"] = params.max_tokens
        if params and params.json_mode:
            generation_config["response_mime_type"] = "application/json"

        model_name = model if model.startswith("models/") else f"models/{model}"
        model_client = genai.GenerativeModel(
            model_name=model_name,
            generation_config=generation_config,
            system_instruction=system_instruction,
        )
        try:
            result = model_client.generate_content(
                user_instruction, request_options={"timeout": _DEFAULT_TIMEOUT}
            )
            text = None
            if result and getattr(result, "candidates", None):
                first = result.candidates[0]
                if first and first.content and getattr(first.content, "parts", None):
                    parts = first.content.parts
                    if parts and getattr(parts[0], "text", None):
                        text = parts[0].text
            if not text and hasattr(result, "text"):
                text = result.text
        except Exception:
            logger.exception("Gemini generation failed", extra={"model": model})
            raise

        if text:
            return text

        raise RuntimeError(f"Gemini returned no content for model {model}")

    def _generate_with_anthropic(
        self,
        system_instruction: str,
        user_instruction: str,
        model: str,
        params: Optional[LLMGenerationParams],
    ) -> str:
        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise LLMClientConfigError("ANTHROPIC_API_KEY not configured")

        if not self._anthropic_client:
            self._anthropic_client = Anthropic(
                api_key=api_key,
                timeout=float(_DEFAULT_TIMEOUT),
                max_retries=_MAX_RETRIES,
            )

        max_tokens = params.max_tokens if params and params.max_tokens else _ANTHROPIC_DEFAULT_MAX_TOKENS
        request_kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "system": system_instruction,
            "messages": [{"role": "user", "content": user_instruction}],
        }
        temperature = params.temperature if params else 0.2
        if temperature is not None:
            request_kwargs["temperature"] = temperature

        try:
            response = self._anthropic_client.messages.create(**request_kwargs)
        except Exception:
            logger.exception("Anthropic generation failed", extra={"model": model})
            raise

        text_parts = [content.text for content in response.content if getattr(content, "text", None)]
        text = "".join(text_parts) if text_parts else None
        if text:
            return text

        raise RuntimeError(f"Anthropic returned no content for model {model}")
