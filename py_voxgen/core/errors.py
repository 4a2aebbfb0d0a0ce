"""Exceptions raised by chunk generation."""


class GenerationError(Exception):
    """Base class for errors that make a chunk impossible to generate."""


class PartitionError(GenerationError):
    """The local Delaunay/Voronoi partition could not be built."""


class RegistryLookupError(GenerationError, KeyError):
    """A registry name or id that generation depends on is not registered."""

    def __init__(self, registry: str, key):
        self.registry = registry
        self.key = key
        super().__init__(f"{registry} registry has no entry for {key!r}")

    def __str__(self) -> str:
        # KeyError would otherwise quote the whole message
        return self.args[0]
