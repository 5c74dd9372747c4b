"""LLM-backed translation generator via LiteLLM with Ollama auto-pull support."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from dualsub.core.config import TranslationConfig
from dualsub.core.errors import NetworkFailure, RateLimited
from dualsub.core.languages import language_name
from dualsub.translation.prompts import build_messages, clean_response
from dualsub.utils.console import console


@dataclass(frozen=True)
class GenerationContext:
    """Everything a generator needs besides the text itself."""

    video_id: str
    model: str
    source_lang: str
    target_lang: str


class Generator(Protocol):
    async def generate(self, source_text: str, context: GenerationContext) -> str: ...


def _extract_ollama_model(provider: str) -> str | None:
    """Extract the Ollama model name from a LiteLLM provider string.

    Returns None if the provider is not an Ollama model.
    E.g. "ollama_chat/qwen3:8b" -> "qwen3:8b"
    """
    for prefix in ("ollama_chat/", "ollama/"):
        if provider.startswith(prefix):
            return provider[len(prefix) :]
    return None


def ensure_ollama_model(provider: str) -> None:
    """Pull the Ollama model if not already available locally.

    No-op if the provider is not an Ollama model or if ollama package
    is not installed.
    """
    model_name = _extract_ollama_model(provider)
    if model_name is None:
        return

    try:
        import ollama
    except ImportError:
        return

    try:
        available = {m.model for m in ollama.list().models}
    except Exception as e:
        console.print(f"[yellow]Could not list Ollama models:[/yellow] {e}")
        return

    if model_name in available:
        return

    # Ollama stores models as "name:tag"; a bare name matches its :latest tag
    if ":" not in model_name and f"{model_name}:latest" in available:
        return

    console.print(f"[bold]Pulling Ollama model:[/bold] {model_name}")
    try:
        ollama.pull(model_name)
        console.print(f"[green]Model ready:[/green] {model_name}")
    except Exception as e:
        console.print(f"[yellow]Failed to pull model {model_name}:[/yellow] {e}")


class LiteLLMGenerator:
    """Translate one caption line per call through ``litellm.acompletion``.

    Provider failures are re-raised as ``NetworkFailure`` (``RateLimited``
    for 429s) so the cache can treat every backend the same way.
    """

    def __init__(self, config: TranslationConfig) -> None:
        self.config = config

    async def generate(self, source_text: str, context: GenerationContext) -> str:
        try:
            import litellm
        except ImportError:
            raise ImportError("LiteLLM is not installed. Install with: pip install 'dualsub[llm]'")

        messages = build_messages(
            source_text,
            language_name(context.source_lang),
            language_name(context.target_lang),
        )
        kwargs: dict = {}
        if self.config.api_base:
            kwargs["api_base"] = self.config.api_base
        if self.config.api_key:
            kwargs["api_key"] = self.config.api_key

        try:
            response = await litellm.acompletion(
                model=context.model,
                messages=messages,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                **kwargs,
            )
        except litellm.RateLimitError as e:
            raise RateLimited(f"{context.model}: {e}") from e
        except Exception as e:
            raise NetworkFailure(f"{context.model}: {e}") from e

        translation = clean_response(response.choices[0].message.content)
        if not translation:
            raise NetworkFailure(f"{context.model} returned an empty translation")
        return translation
