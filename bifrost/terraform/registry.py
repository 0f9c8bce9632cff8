"""Identifier registry for generated resources."""

from typing import Optional, Union
import structlog

from bifrost.core.errors import NameCollisionError

log = structlog.get_logger()

Key = tuple[str, Optional[str], Optional[str]]


class IdentifierRegistry:
    """Assigns symbolic names to generated resources.

    Names have the shape ``{application}-{role}[-{region}][-{index}]``.
    Reserving the same (role, region, index) twice returns the same name, so
    later sections can look up what earlier sections declared. Two different
    keys that would produce the same literal name raise NameCollisionError.

    A registry lives for exactly one generation run.
    """

    def __init__(self, application_name: str):
        self.application_name = application_name
        self._by_key: dict[Key, str] = {}
        self._by_name: dict[str, Key] = {}

    def reserve(
        self,
        role: str,
        region: Optional[str] = None,
        index: Union[str, int, None] = None,
    ) -> str:
        """Reserve (or return the already reserved) name for a resource role.

        Args:
            role: Logical role, e.g. "subnet" or "instance-template"
            region: Region dimension for per-region resources
            index: Stable index dimension (provider name, workload name, ...)

        Returns:
            The symbolic name

        Raises:
            NameCollisionError: A different key already owns the literal name
        """
        key = self._key(role, region, index)
        existing = self._by_key.get(key)
        if existing is not None:
            return existing

        name = self._build(*key)
        owner = self._by_name.get(name)
        if owner is not None:
            raise NameCollisionError(
                name,
                detail=f"requested as {_describe(key)}, already issued to {_describe(owner)}",
            )

        self._by_key[key] = name
        self._by_name[name] = key
        log.debug("identifier_reserved", name=name, role=role, region=region, index=index)
        return name

    def lookup(
        self,
        role: str,
        region: Optional[str] = None,
        index: Union[str, int, None] = None,
    ) -> Optional[str]:
        """Return the name issued for a key, without reserving it."""
        return self._by_key.get(self._key(role, region, index))

    @property
    def names(self) -> list[str]:
        """All issued names in the order they were reserved."""
        return list(self._by_name)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    def _key(self, role: str, region: Optional[str], index: Union[str, int, None]) -> Key:
        return (role, region, None if index is None else str(index))

    def _build(self, role: str, region: Optional[str], index: Optional[str]) -> str:
        parts = [self.application_name, role]
        if region:
            parts.append(region)
        if index is not None:
            parts.append(index)
        return "-".join(parts)


def _describe(key: Key) -> str:
    role, region, index = key
    text = f"role={role}"
    if region:
        text += f" region={region}"
    if index is not None:
        text += f" index={index}"
    return text
