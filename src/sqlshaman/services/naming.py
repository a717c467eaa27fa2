"""Naming convention service."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlshaman.scanner.naming import NamingPolicy
from sqlshaman.services.base import OptionModificationService

if TYPE_CHECKING:
    from sqlshaman.config.models import NamingConfig
    from sqlshaman.options import ShamanOptions


class NamingConventionService(OptionModificationService):
    """Installs a table naming policy on the options it is added to."""

    def __init__(self, prefix: str = "", singular: bool = False) -> None:
        self.policy = NamingPolicy(prefix=prefix, singular=singular)

    @classmethod
    def from_config(cls, config: NamingConfig) -> NamingConventionService:
        return cls(prefix=config.table_prefix, singular=config.singular_table_names)

    def modify_shaman_options(self, options: ShamanOptions) -> None:
        options.naming_policy = self.policy

    def __repr__(self) -> str:
        return f"NamingConventionService({self.policy.prefix!r}, singular={self.policy.singular})"
