"""Table name and schema resolution.

Everything here is a pure function of its arguments: resolving the same
entity under two different policies gives two independent answers and no
naming state is shared between contexts.

Precedence, highest first:
1. Explicit ``@table`` marker on the entity
2. Name already fixed by the host (``__tablename__`` on the entity class)
3. Naming policy (singularize, then prefix) applied to the DbSet collection name
4. Raw collection name
"""

from __future__ import annotations

from dataclasses import dataclass

_ES_ENDINGS = ("sses", "xes", "zes", "ches", "shes")


@dataclass(frozen=True, slots=True)
class NamingPolicy:
    prefix: str = ""
    singular: bool = False

    @property
    def is_identity(self) -> bool:
        return not self.prefix and not self.singular

    def apply(self, collection_name: str) -> str:
        name = singularize(collection_name) if self.singular else collection_name
        return f"{self.prefix}{name}"


NO_CONVENTION = NamingPolicy()


def singularize(name: str) -> str:
    """Singular form of an English plural collection name.

    Handles the regular plural forms; irregular nouns are returned unchanged.
    """
    lower = name.lower()
    if lower.endswith("ies") and len(name) > 3:
        return name[:-3] + ("Y" if name[-3].isupper() else "y")
    if lower.endswith(_ES_ENDINGS):
        return name[:-2]
    if lower.endswith("s") and not lower.endswith(("ss", "us", "is")):
        return name[:-1]
    return name


def resolve_table_name(
    collection_name: str,
    policy: NamingPolicy = NO_CONVENTION,
    explicit_name: str | None = None,
    host_name: str | None = None,
) -> str:
    if explicit_name:
        return explicit_name
    if host_name:
        return host_name
    return policy.apply(collection_name)


def resolve_schema(default_schema: str | None, explicit_schema: str | None = None) -> str | None:
    return explicit_schema or default_schema


def host_table_name(entity_type: type) -> str | None:
    """``__tablename__`` declared by the entity class itself, if any."""
    name = entity_type.__dict__.get("__tablename__")
    return name if isinstance(name, str) and name else None
