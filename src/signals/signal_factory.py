# src/signals/signal_factory.py - v1
"""Factory: instantiate signal adapters from provider names.

Called once at service startup to build the SignalSuite injected into
the moderation pipeline. A provider of "none" leaves the slot empty and
the pipeline reports that signal as missing.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
from dataclasses import dataclass

from contentguard.config.settings import Settings
from contentguard.signals.base_signals import (
    BaseContentSafetyAnalyzer,
    BaseImageClassifier,
    BaseLanguageDetector,
    BaseSentimentAnalyzer,
    SignalAdapter,
)

logger = logging.getLogger(__name__)

SIGNAL_NAMES: tuple[str, ...] = ("sentiment", "language", "content_safety", "image")

# Registry of (signal, provider) -> adapter class path (lazy import).
_ADAPTER_REGISTRY: dict[tuple[str, str], str] = {
    ("sentiment", "http"): "contentguard.signals.adapters.http_adapter.HttpSentimentAnalyzer",
    ("content_safety", "http"): "contentguard.signals.adapters.http_adapter.HttpContentSafetyAnalyzer",
    ("language", "http"): "contentguard.signals.adapters.http_adapter.HttpLanguageDetector",
    ("language", "lingua"): "contentguard.signals.adapters.lingua_adapter.LinguaLanguageDetector",
    ("image", "http"): "contentguard.signals.adapters.http_adapter.HttpImageClassifier",
}


class UnsupportedProviderError(ValueError):
    """Raised when a (signal, provider) pair is not registered."""


@dataclass
class SignalSuite:
    """The remote signal adapters available to one pipeline."""

    sentiment: BaseSentimentAnalyzer | None = None
    language: BaseLanguageDetector | None = None
    content_safety: BaseContentSafetyAnalyzer | None = None
    image: BaseImageClassifier | None = None

    def adapters(self) -> dict[str, SignalAdapter]:
        return {
            name: adapter
            for name in SIGNAL_NAMES
            if (adapter := getattr(self, name)) is not None
        }

    async def initialize_all(self) -> dict[str, bool]:
        """Initialize every adapter concurrently; returns name -> ready."""
        adapters = self.adapters()
        results = await asyncio.gather(*(a.initialize() for a in adapters.values()))
        readiness = dict(zip(adapters, results))
        for name, ready in readiness.items():
            if ready:
                logger.info("Signal %s ready", name)
            else:
                logger.warning("Signal %s not ready, it will be reported missing", name)
        return readiness

    async def close_all(self) -> None:
        for name, adapter in self.adapters().items():
            try:
                await adapter.close()
            except Exception:
                logger.warning("Closing signal %s failed", name, exc_info=True)


def create_signal_adapter(
    signal: str,
    provider: str,
    settings: Settings | None = None,
    **kwargs: object,
) -> SignalAdapter | None:
    """Instantiate the adapter for one signal.

    Args:
        signal: Signal name (sentiment, language, content_safety, image).
        provider: Provider identifier (http, lingua, none).
        settings: Application settings (for endpoints, keys and timeouts).
        **kwargs: Additional adapter-specific arguments.

    Returns:
        Configured adapter, or None for provider "none".

    Raises:
        UnsupportedProviderError: If the pair is not registered.
    """
    if provider == "none":
        return None

    key = (signal, provider)
    if key not in _ADAPTER_REGISTRY:
        available = sorted(p for s, p in _ADAPTER_REGISTRY if s == signal)
        raise UnsupportedProviderError(
            f"Unsupported provider {provider!r} for signal {signal!r}. "
            f"Available: {', '.join(available) or 'none'}"
        )

    adapter_cls = _import_class(_ADAPTER_REGISTRY[key])

    init_kwargs = dict(kwargs)
    if settings is not None and provider == "http":
        init_kwargs.setdefault("endpoint", getattr(settings, f"{signal}_endpoint"))
        init_kwargs.setdefault("api_key", getattr(settings, f"{signal}_api_key"))
        init_kwargs.setdefault("timeout_s", settings.signal_timeout_s)

    logger.debug("Creating signal adapter: signal=%s, provider=%s", signal, provider)
    return adapter_cls(**init_kwargs)


def create_signal_suite(settings: Settings) -> SignalSuite:
    """Build every configured adapter. Adapters still need initialize_all()."""
    return SignalSuite(
        **{
            name: create_signal_adapter(
                name, getattr(settings, f"{name}_provider"), settings
            )
            for name in SIGNAL_NAMES
        }
    )


def register_adapter(signal: str, provider: str, class_path: str) -> None:
    """Register a custom adapter.

    Args:
        signal: Signal name.
        provider: Provider identifier.
        class_path: Fully qualified class path implementing the signal's base class.
    """
    _ADAPTER_REGISTRY[(signal, provider)] = class_path
    logger.info("Registered signal adapter: %s/%s -> %s", signal, provider, class_path)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
