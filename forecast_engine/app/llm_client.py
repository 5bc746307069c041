"""
Minimal LLM client wrapper for OpenAI (default) and Google Gemini.

Rationale:
- Keep interface tiny: call_llm(system_prompt, user_prompt, json_schema=...) -> str.
- OpenAI gets the schema as a strict json_schema response_format.
- Gemini only supports a JSON mime type here; the caller validates the shape.
- No retries / no fallback: every provider failure surfaces as RuntimeError.
"""

import json
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

import google.generativeai as genai
from openai import OpenAI

from .config import Settings, get_settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=4)
def _openai_client(api_key: str) -> OpenAI:
    """One client per key; the SDK client pools its own HTTP connections."""
    return OpenAI(api_key=api_key)


def _call_openai(
    settings: Settings,
    system_prompt: str,
    user_prompt: str,
    json_schema: Optional[Dict[str, Any]],
    schema_name: str,
    max_tokens: int,
    temperature: float,
) -> str:
    if not settings.openai_api_key:
        raise RuntimeError("OPENAI_API_KEY must be set in environment")

    kwargs: Dict[str, Any] = {}
    if json_schema is not None:
        kwargs["response_format"] = {
            "type": "json_schema",
            "json_schema": {
                "name": schema_name,
                "strict": True,
                "schema": json_schema,
            },
        }

    try:
        completion = _openai_client(settings.openai_api_key).chat.completions.create(
            model=settings.openai_model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )
    except Exception as e:
        raise RuntimeError(f"OpenAI API error: {str(e)}")

    if not completion.choices:
        raise RuntimeError("OpenAI returned no choices")

    message = completion.choices[0].message
    refusal = getattr(message, "refusal", None)
    if refusal:
        raise RuntimeError(f"OpenAI refused the request: {refusal}")

    content = message.content
    if not content:
        raise RuntimeError("No response")
    return content


def _call_gemini(
    settings: Settings,
    system_prompt: str,
    user_prompt: str,
    json_schema: Optional[Dict[str, Any]],
    max_tokens: int,
    temperature: float,
) -> str:
    if not settings.gemini_api_key:
        raise RuntimeError("GEMINI_API_KEY or LLM_API_KEY must be set in environment")

    if json_schema is not None:
        # Gemini has no strict mode for this schema dialect; spell it out instead
        system_prompt = (
            f"{system_prompt}\n\nRespond with a single JSON object that matches this JSON schema exactly:\n"
            f"{json.dumps(json_schema)}"
        )

    try:
        genai.configure(api_key=settings.gemini_api_key)

        model = genai.GenerativeModel(
            model_name=settings.gemini_model,
            system_instruction=system_prompt,
        )

        config = genai.GenerationConfig(
            max_output_tokens=max_tokens,
            temperature=temperature,
            response_mime_type="application/json" if json_schema is not None else "text/plain",
        )

        response = model.generate_content(user_prompt, generation_config=config)

        try:
            result = response.text
        except ValueError:
            # response.text is unavailable on safety blocks and other finish reasons
            if response.candidates:
                candidate = response.candidates[0]
                if candidate.finish_reason == 2:  # MAX_TOKENS
                    if candidate.content and candidate.content.parts:
                        result = candidate.content.parts[0].text
                    else:
                        raise RuntimeError("Gemini response truncated with no content.")
                else:
                    raise RuntimeError(f"Gemini blocked response. Finish reason: {candidate.finish_reason}")
            else:
                raise RuntimeError("Gemini returned no candidates.")

        if not result:
            raise RuntimeError("Gemini returned empty response")

        return result

    except Exception as e:
        raise RuntimeError(f"Gemini API error: {str(e)}")


def call_llm(
    system_prompt: str,
    user_prompt: str,
    json_schema: Optional[Dict[str, Any]] = None,
    schema_name: str = "response",
    max_tokens: Optional[int] = None,
    temperature: Optional[float] = None,
) -> str:
    """
    Call the configured LLM provider and return the raw text content.

    When json_schema is given the provider is asked for JSON output only.
    """
    settings = get_settings()
    max_tokens = max_tokens if max_tokens is not None else settings.max_tokens
    temperature = temperature if temperature is not None else settings.temperature

    logger.debug(f"Calling LLM provider={settings.llm_provider} max_tokens={max_tokens}")

    if settings.llm_provider == "openai":
        return _call_openai(
            settings, system_prompt, user_prompt, json_schema, schema_name, max_tokens, temperature
        )
    if settings.llm_provider == "gemini":
        return _call_gemini(settings, system_prompt, user_prompt, json_schema, max_tokens, temperature)

    raise RuntimeError(f"Unsupported LLM_PROVIDER: {settings.llm_provider}")
