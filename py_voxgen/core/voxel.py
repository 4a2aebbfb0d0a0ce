"""
Voxel types and chunk storage.

The generator writes into a palette-compressed 16x16x16 block array and
reads column heights back from it. Blocks are identified by a
``BlockEntry`` (registry id plus metadata).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from .registry import Registry

CHUNK_DIM = 16
CHUNK_DIM2 = CHUNK_DIM * CHUNK_DIM
CHUNK_DIM3 = CHUNK_DIM2 * CHUNK_DIM

EMPTY_BLOCK_NAME = "empty"

Position = Tuple[int, int, int]


class BlockEntry(NamedTuple):
    """A placed block variant: registry id plus metadata."""

    id: int
    metadata: int = 0

    def as_packed(self) -> int:
        return (self.id << 32) | (self.metadata & 0xFFFFFFFF)

    @classmethod
    def from_packed(cls, packed: int) -> Optional["BlockEntry"]:
        block_id = (packed >> 32) & 0xFFFFFFFF
        if block_id == 0:
            return None
        return cls(block_id, packed & 0xFFFFFFFF)


class BlockDefinition(BaseModel):
    """Static description of a block type."""

    model_config = ConfigDict(frozen=True)

    name: str
    representative_color: Tuple[int, int, int, int] = (255, 255, 255, 255)
    has_collision_box: bool = True
    has_drawable_mesh: bool = True


EMPTY_BLOCK = BlockDefinition(
    name=EMPTY_BLOCK_NAME,
    representative_color=(0, 0, 0, 0),
    has_collision_box=False,
    has_drawable_mesh=False,
)

BlockRegistry = Registry[BlockDefinition]


def chunk_origin(position: Position) -> Position:
    """Absolute block position of a chunk's (0, 0, 0) voxel."""
    return (position[0] * CHUNK_DIM, position[1] * CHUNK_DIM, position[2] * CHUNK_DIM)


def in_chunk(local: Position) -> bool:
    return all(0 <= c < CHUNK_DIM for c in local)


class PaletteStorage:
    """
    Paletted 16x16x16 block array indexed by in-chunk ``(x, y, z)``.

    Voxels hold indices into a palette of distinct ``BlockEntry`` values.
    Palette index 0 is the fill entry the storage was created with.
    """

    def __init__(self, fill: BlockEntry):
        self.palette: List[BlockEntry] = [fill]
        self._palette_index: Dict[BlockEntry, int] = {fill: 0}
        self.indices = np.zeros((CHUNK_DIM, CHUNK_DIM, CHUNK_DIM), dtype=np.uint16)

    @property
    def fill(self) -> BlockEntry:
        return self.palette[0]

    @staticmethod
    def _check(pos: Position) -> None:
        if not in_chunk(pos):
            raise IndexError(f"position {pos} is outside the chunk")

    def _index_for(self, entry: BlockEntry) -> int:
        index = self._palette_index.get(entry)
        if index is None:
            index = len(self.palette)
            self.palette.append(entry)
            self._palette_index[entry] = index
        return index

    def put(self, pos: Position, entry: BlockEntry) -> None:
        self._check(pos)
        self.indices[pos] = self._index_for(entry)

    def put_if_empty(self, pos: Position, entry: BlockEntry) -> bool:
        """Write only into a voxel still holding the fill entry."""
        self._check(pos)
        if self.indices[pos] != 0:
            return False
        self.indices[pos] = self._index_for(entry)
        return True

    def get(self, pos: Position) -> BlockEntry:
        self._check(pos)
        return self.palette[int(self.indices[pos])]

    def is_empty(self, pos: Position) -> bool:
        self._check(pos)
        return self.indices[pos] == 0

    def column_height(self, x: int, z: int) -> Optional[int]:
        """Highest in-chunk y holding a non-fill block, or None for an empty column."""
        self._check((x, 0, z))
        filled = np.nonzero(self.indices[x, :, z])[0]
        if len(filled) == 0:
            return None
        return int(filled[-1])

    def block_ids(self) -> np.ndarray:
        """Registry id per voxel, shape (16, 16, 16)."""
        ids = np.array([entry.id for entry in self.palette], dtype=np.uint32)
        return ids[self.indices]

    def count(self, entry: BlockEntry) -> int:
        index = self._palette_index.get(entry)
        if index is None:
            return 0
        return int(np.count_nonzero(self.indices == index))

    def to_bytes(self) -> bytes:
        """Canonical serialization independent of palette order."""
        packed = np.array([entry.as_packed() for entry in self.palette], dtype="<u8")
        return packed[self.indices].tobytes()


@dataclass
class Chunk:
    """A generated chunk: its position, blocks and an opaque payload."""

    position: Position
    blocks: PaletteStorage
    extra_data: Any = field(default=None)
