"""LiteLLM client wrapper for the chat completion backend.

Every model call in Felicia routes through this module. Requests are not
retried automatically (``num_retries=0``); a failure surfaces to the caller,
which decides how to degrade.
"""

from __future__ import annotations

import os
from typing import Callable

import litellm

from felicia.config import CompletionCfg

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]

CompletionFn = Callable[[str, str], str]


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "google": "GOOGLE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "together_ai": "TOGETHERAI_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def provider_of(model: str) -> str:
    return model.split("/")[0].lower() if "/" in model else "openai"


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = provider_of(model)
    env_var = _PROVIDER_ENV.get(provider, _PROVIDER_ENV["openai"])

    if env_var is None:
        return

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


def complete(
    model: str,
    system_prompt: str,
    prompt: str,
    temperature: float = 0.7,
    top_p: float = 0.9,
    api_base: str | None = None,
    num_retries: int = 0,
) -> str:
    """Call litellm.completion() with a persona and one user prompt.

    Args:
        model: LiteLLM model string (provider/model format).
        system_prompt: Fixed persona / system instruction.
        prompt: Assembled user prompt.
        temperature: Sampling temperature.
        top_p: Nucleus-sampling threshold.
        api_base: Backend base URL (e.g. a local Ollama server).
        num_retries: Retries on transient errors; 0 means fail fast.

    Returns:
        The text content of the first choice ("" if the backend sent none).

    Raises:
        litellm.exceptions.APIError: On backend failure.
    """
    kwargs = {}
    if api_base:
        kwargs["api_base"] = api_base
    response = litellm.completion(
        model=model,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ],
        temperature=temperature,
        top_p=top_p,
        num_retries=num_retries,
        **kwargs,
    )
    return response.choices[0].message.content or ""


def make_completion(cfg: CompletionCfg) -> CompletionFn:
    """Bind *cfg* into the ``(system_prompt, prompt) -> text`` callable."""

    def _complete(system_prompt: str, prompt: str) -> str:
        return complete(
            model=cfg.model,
            system_prompt=system_prompt,
            prompt=prompt,
            temperature=cfg.temperature,
            top_p=cfg.top_p,
            api_base=cfg.api_base,
        )

    return _complete
