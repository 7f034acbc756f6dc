from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from types import MappingProxyType
from typing import Mapping, Tuple

import numpy as np


EMPTY = 0


class PieceType(IntEnum):
    I = 1
    J = 2
    L = 3
    O = 4
    S = 5
    T = 6
    Z = 7


Mask = np.ndarray
Offset = Tuple[int, int]

ROTATIONS = 4


# Rotation 0 inside the square bounding box; other rotations are clockwise turns.
BASE_SHAPES = {
    PieceType.I: [[0, 0, 0, 0],
                  [1, 1, 1, 1],
                  [0, 0, 0, 0],
                  [0, 0, 0, 0]],
    PieceType.J: [[1, 0, 0],
                  [1, 1, 1],
                  [0, 0, 0]],
    PieceType.L: [[0, 0, 1],
                  [1, 1, 1],
                  [0, 0, 0]],
    PieceType.O: [[1, 1],
                  [1, 1]],
    PieceType.S: [[0, 1, 1],
                  [1, 1, 0],
                  [0, 0, 0]],
    PieceType.T: [[0, 1, 0],
                  [1, 1, 1],
                  [0, 0, 0]],
    PieceType.Z: [[1, 1, 0],
                  [0, 1, 1],
                  [0, 0, 0]],
}


def _check_rotation(rotation: int) -> int:
    if not 0 <= rotation < ROTATIONS:
        raise ValueError(f"rotation must be in 0..{ROTATIONS - 1}, got {rotation}")
    return rotation


def _rotate_cw(mask: Mask, k: int) -> Mask:
    rotated = np.rot90(mask, k, axes=(1, 0))  # clockwise when k>0
    rotated = np.ascontiguousarray(rotated)
    rotated.setflags(write=False)
    return rotated


@dataclass(frozen=True)
class PieceSpec:
    """Precomputed geometry of one piece type.

    Insets are the number of fully empty columns/rows on each side of the
    bounding box at a given rotation.
    """

    kind: PieceType
    dimension: int
    masks: Tuple[Mask, ...]
    offsets: Tuple[Tuple[Offset, ...], ...]
    inset_table: Tuple[Tuple[int, int, int, int], ...]
    spawn_col: int
    spawn_row: int

    def mask(self, rotation: int) -> Mask:
        return self.masks[_check_rotation(rotation)]

    def cells(self, rotation: int) -> Tuple[Offset, ...]:
        """(dx, dy) offsets of the occupied cells at `rotation`."""
        return self.offsets[_check_rotation(rotation)]

    def insets(self, rotation: int) -> Tuple[int, int, int, int]:
        """(left, right, top, bottom) insets at `rotation`."""
        return self.inset_table[_check_rotation(rotation)]

    def left_inset(self, rotation: int) -> int:
        return self.insets(rotation)[0]

    def right_inset(self, rotation: int) -> int:
        return self.insets(rotation)[1]

    def top_inset(self, rotation: int) -> int:
        return self.insets(rotation)[2]

    def bottom_inset(self, rotation: int) -> int:
        return self.insets(rotation)[3]


def _insets(mask: Mask) -> Tuple[int, int, int, int]:
    cols = np.flatnonzero(mask.any(axis=0))
    rows = np.flatnonzero(mask.any(axis=1))
    dim = mask.shape[0]
    return (
        int(cols[0]),
        int(dim - 1 - cols[-1]),
        int(rows[0]),
        int(dim - 1 - rows[-1]),
    )


def _build_spec(kind: PieceType) -> PieceSpec:
    base = np.array(BASE_SHAPES[kind], dtype=bool)
    dimension = base.shape[0]
    masks = tuple(_rotate_cw(base, k) for k in range(ROTATIONS))
    offsets = tuple(
        tuple((int(dx), int(dy)) for dy, dx in np.argwhere(mask))
        for mask in masks
    )
    inset_table = tuple(_insets(mask) for mask in masks)
    return PieceSpec(
        kind=kind,
        dimension=dimension,
        masks=masks,
        offsets=offsets,
        inset_table=inset_table,
        spawn_col=5 - (dimension >> 1),
        spawn_row=inset_table[0][2],
    )


CATALOG: Mapping[PieceType, PieceSpec] = MappingProxyType(
    {kind: _build_spec(kind) for kind in PieceType}
)


def get_spec(kind: int) -> PieceSpec:
    try:
        return CATALOG[PieceType(kind)]
    except ValueError:
        raise ValueError(f"unknown piece type id: {kind}") from None
