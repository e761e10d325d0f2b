"""Named LLM provider factories; `LLM_PROVIDER` picks one for the fallback selector."""

from typing import Any, Callable, Dict, Optional

from ..exceptions import ConfigurationError
from .base import LLMClient

ProviderFactory = Callable[..., LLMClient]


class LLMProviderRegistry:
    """Registry for LLM provider factories (keyed by lowercased name)."""

    _providers: Dict[str, ProviderFactory] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[ProviderFactory], ProviderFactory]:
        """Decorator: register `factory(api_key, model, temperature, **kwargs)` under `name`."""
        def decorator(factory: ProviderFactory) -> ProviderFactory:
            cls._providers[name.lower().strip()] = factory
            return factory
        return decorator

    @classmethod
    def create(
        cls,
        provider: str,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        temperature: float = 0.0,
        **kwargs: Any,
    ) -> LLMClient:
        """Build a client. Unknown providers and missing keys raise ConfigurationError."""
        name = (provider or "openai").lower().strip()
        factory = cls._providers.get(name)
        if factory is None:
            raise ConfigurationError(
                "LLM_PROVIDER",
                f"Unknown LLM provider: {name}. Available providers: {', '.join(cls.list_providers())}",
            )
        return factory(api_key=api_key, model=model, temperature=temperature, **kwargs)

    @classmethod
    def list_providers(cls) -> list[str]:
        return sorted(cls._providers)

    @classmethod
    def is_registered(cls, provider: str) -> bool:
        return provider.lower().strip() in cls._providers


@LLMProviderRegistry.register("openai")
def _create_openai(api_key: Optional[str], model: str, temperature: float, **kwargs: Any) -> LLMClient:
    if not api_key:
        raise ConfigurationError("OPENAI_API_KEY", "OPENAI_API_KEY is required for the openai provider")
    from .openai_provider import OpenAILLMProvider

    return OpenAILLMProvider(api_key=api_key, model=model, temperature=temperature, **kwargs)
