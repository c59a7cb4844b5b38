"""Driver registry: resolves a provider name to its configured driver."""

import logging
from collections.abc import Callable, Mapping

from hookgate.config import ProviderConfig
from hookgate.drivers import BUILTIN_DRIVERS, import_driver
from hookgate.drivers.base import BaseDriver
from hookgate.errors.exceptions import UnknownProviderError

logger = logging.getLogger(__name__)

DriverFactory = Callable[[ProviderConfig], BaseDriver]


class DriverRegistry:
    """Process-wide driver resolver.

    Built once at startup from the provider configuration table and kept on
    ``app.state``. Resolution order for a provider's driver name (``driver``
    config key, defaulting to the provider name):

    1. a factory registered with :meth:`extend`
    2. a built-in driver
    3. a dotted import path to a :class:`BaseDriver` subclass

    Resolved drivers are cached per provider; failed lookups are not.
    """

    def __init__(self, providers: Mapping[str, ProviderConfig | dict]):
        self._providers: dict[str, ProviderConfig] = {
            name: cfg if isinstance(cfg, ProviderConfig) else ProviderConfig.model_validate(cfg)
            for name, cfg in providers.items()
        }
        self._drivers: dict[str, BaseDriver] = {}
        self._custom_drivers: dict[str, DriverFactory] = {}

    def driver(self, provider: str) -> BaseDriver:
        cached = self._drivers.get(provider)
        if cached is not None:
            return cached

        config = self._provider_config(provider)
        driver = self._create_driver(provider, config)
        self._drivers[provider] = driver
        logger.debug("Resolved driver %s for provider %s", type(driver).__name__, provider)
        return driver

    def extend(self, name: str, factory: DriverFactory) -> "DriverRegistry":
        """Register a custom driver factory under ``name``.

        Providers already resolved keep their cached instance.
        """
        self._custom_drivers[name] = factory
        return self

    def has_provider(self, provider: str) -> bool:
        return provider in self._providers

    def providers(self) -> list[str]:
        return list(self._providers)

    def _provider_config(self, provider: str) -> ProviderConfig:
        config = self._providers.get(provider)
        if config is None:
            raise UnknownProviderError(f"Provider [{provider}] is not configured")
        return config

    def _create_driver(self, provider: str, config: ProviderConfig) -> BaseDriver:
        driver_name = config.driver or provider

        factory = self._custom_drivers.get(driver_name)
        if factory is not None:
            return factory(config)

        builtin_path = BUILTIN_DRIVERS.get(driver_name)
        if builtin_path is not None:
            return import_driver(builtin_path)(config)

        driver_class = self._import_driver_class(driver_name)
        if driver_class is not None:
            return driver_class(config)

        raise UnknownProviderError(f"Driver [{driver_name}] for provider [{provider}] not found")

    @staticmethod
    def _import_driver_class(dotted_path: str) -> type[BaseDriver] | None:
        if "." not in dotted_path:
            return None
        try:
            candidate = import_driver(dotted_path)
        except (ImportError, AttributeError, ValueError):
            logger.warning("Driver class %s could not be imported", dotted_path)
            return None
        if isinstance(candidate, type) and issubclass(candidate, BaseDriver):
            return candidate
        logger.warning("%s is not a driver class", dotted_path)
        return None
