"""Invintus Sync - Callers & Capabilities."""

from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional


class Capability(str, Enum):
    """What an authenticated caller may do."""

    PUBLISH = "publish"  # create and edit content records
    DELETE = "delete"  # remove content records
    MANAGE_SETTINGS = "manage_settings"


class Principal:
    """The caller of a request, resolved from its API key."""

    def __init__(self, name: str = "anonymous", capabilities: Iterable[Capability] = ()):
        self.name = name
        self.capabilities: FrozenSet[Capability] = frozenset(capabilities)

    @property
    def is_authenticated(self) -> bool:
        return self.name != "anonymous"

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def __repr__(self) -> str:
        caps = ",".join(sorted(c.value for c in self.capabilities))
        return f"<Principal {self.name} [{caps}]>"


ANONYMOUS = Principal()


def principal_for_key(
    api_key: Optional[str], api_keys: Dict[str, List[str]]
) -> Principal:
    """Resolve an API key against the configured key -> capabilities map.

    Unknown capability names are ignored; unknown keys are anonymous.
    """
    if not api_key or api_key not in api_keys:
        return ANONYMOUS
    known = {c.value for c in Capability}
    caps = [Capability(c) for c in api_keys[api_key] if c in known]
    return Principal(name=f"key:{api_key[:4]}", capabilities=caps)
