"""Name/id registries for blocks, biomes and decorators."""

from typing import Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

import structlog

from .errors import RegistryLookupError

logger = structlog.get_logger()

T = TypeVar("T")


class Registry(Generic[T]):
    """
    Ordered mapping from compact numeric ids and names to definitions.

    Ids start at 1 and follow insertion order. Objects must expose a
    ``name`` attribute. Registries are built once during world setup and
    then frozen; a frozen registry is safe to read from many threads.
    """

    def __init__(self, kind: str):
        self.kind = kind
        self._objects: List[T] = []
        self._ids_by_name: Dict[str, int] = {}
        self._frozen = False

    def push_object(self, obj: T) -> int:
        """
        Register a definition.

        Returns:
            The new id

        Raises:
            RuntimeError: If the registry is frozen
            ValueError: If the name is already registered
        """
        if self._frozen:
            raise RuntimeError(f"{self.kind} registry is frozen")
        name = obj.name
        if name in self._ids_by_name:
            raise ValueError(f"{self.kind} {name!r} is already registered")
        self._objects.append(obj)
        registry_id = len(self._objects)
        self._ids_by_name[name] = registry_id
        logger.debug("Registered object", registry=self.kind, name=name, id=registry_id)
        return registry_id

    def freeze(self) -> "Registry[T]":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def lookup_id(self, registry_id: int) -> Optional[T]:
        if 1 <= registry_id <= len(self._objects):
            return self._objects[registry_id - 1]
        return None

    def lookup_name(self, name: str) -> Optional[Tuple[int, T]]:
        registry_id = self._ids_by_name.get(name)
        if registry_id is None:
            return None
        return registry_id, self._objects[registry_id - 1]

    def require(self, name: str) -> Tuple[int, T]:
        """Look up a name that generation cannot proceed without."""
        found = self.lookup_name(name)
        if found is None:
            raise RegistryLookupError(self.kind, name)
        return found

    def require_id(self, registry_id: int) -> T:
        obj = self.lookup_id(registry_id)
        if obj is None:
            raise RegistryLookupError(self.kind, registry_id)
        return obj

    def id_of(self, name: str) -> int:
        return self.require(name)[0]

    def items(self) -> Iterator[Tuple[int, T]]:
        for index, obj in enumerate(self._objects):
            yield index + 1, obj

    def __iter__(self) -> Iterator[T]:
        return iter(self._objects)

    def __len__(self) -> int:
        return len(self._objects)

    def __contains__(self, name: str) -> bool:
        return name in self._ids_by_name
