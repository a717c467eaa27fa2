"""Scanner options: the service pipeline, the log sink and naming flags.

Options are owned by the caller and stay mutable until a ``ModelInfo`` is
derived from them, at which point they are frozen. Two options objects are
never interchangeable for caching purposes, even with equal contents.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlshaman.core.errors import ConfigError
from sqlshaman.core.logging import EmptyShamanLogger, ShamanLogger
from sqlshaman.scanner.naming import NO_CONVENTION, NamingPolicy
from sqlshaman.services.base import OptionModificationService, ShamanService
from sqlshaman.services.naming import NamingConventionService
from sqlshaman.services.updaters import DEFAULT_SERVICE_TYPES

if TYPE_CHECKING:
    from typing import Self

    from sqlshaman.config.models import ShamanConfig


class ShamanOptions:
    def __init__(
        self,
        *,
        logger: ShamanLogger | None = None,
        default_schema: str | None = None,
    ) -> None:
        self.services: list[ShamanService] | tuple[ShamanService, ...] = []
        self.logger: ShamanLogger = logger or EmptyShamanLogger.instance
        self.naming_policy: NamingPolicy = NO_CONVENTION
        # Overrides the default schema declared by the context type
        self.default_schema = default_schema
        self._frozen = False

    @classmethod
    def default(cls) -> ShamanOptions:
        """Options with an empty pipeline: host conventions only."""
        return cls()

    @classmethod
    def create_shaman_options(
        cls, context_type: type, config: ShamanConfig | None = None
    ) -> ShamanOptions:
        """Default services, then configured naming, then whatever the context type adds."""
        options = cls().with_default_services()
        if config is not None:
            options.default_schema = config.database.default_schema
            naming = config.naming
            if naming.table_prefix or naming.singular_table_names:
                options.with_service(NamingConventionService.from_config(naming))
        hook = getattr(context_type, "configure_shaman_options", None)
        if hook is not None:
            hook(options)
        return options

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        if not self._frozen:
            self.services = tuple(self.services)
            self._frozen = True

    def with_service(self, service: ShamanService | type[ShamanService]) -> Self:
        """Append a service (or an instance of a service class).

        Duplicates are kept; option-modification services run right away.
        """
        if self._frozen:
            raise ConfigError.invalid_value(
                "services", _describe(service), "options are frozen once a model is built"
            )
        if isinstance(service, type):
            service = service()
        if not isinstance(service, ShamanService):
            raise ConfigError.invalid_value(
                "services", _describe(service), "not a ShamanService"
            )
        self.services.append(service)  # type: ignore[union-attr]
        if isinstance(service, OptionModificationService):
            service.modify_shaman_options(self)
        return self

    def with_logger(self, logger: ShamanLogger | None) -> Self:
        self.logger = logger or EmptyShamanLogger.instance
        return self

    def with_default_services(self) -> Self:
        """Install marker support for columns, keys, indexes, tables and defaults."""
        for service_type in DEFAULT_SERVICE_TYPES:
            self.with_service(service_type)
        return self

    def with_naming(self, prefix: str = "", singular: bool = False) -> Self:
        return self.with_service(NamingConventionService(prefix=prefix, singular=singular))

    def services_of(self, capability: type) -> list[Any]:
        return [s for s in self.services if isinstance(s, capability)]

    def __repr__(self) -> str:
        names = ", ".join(type(s).__name__ for s in self.services)
        return f"ShamanOptions(id={id(self):#x}, services=[{names}])"


def _describe(service: Any) -> str:
    return service.__name__ if isinstance(service, type) else type(service).__name__
