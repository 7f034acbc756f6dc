"""Binary save file for a game session.

Layout (big-endian, one record per file)::

    int32 level, int32 score
    int32 column, int32 row, int32 rotation
    int32 current piece id, int32 next piece id   (0 = no piece)
    float32 speed
    bool is_game_over, bool is_new_game           (one byte each)
    int32 rows, int32 columns
    int32 cell[rows][columns]                     (row-major, 0 = empty)

Decoding is all-or-nothing: a `SavedSession` is only produced from a record
that parsed and validated completely, so callers can apply it without ever
leaving a half-loaded game behind.
"""

from __future__ import annotations

import logging
import os
import struct
import tempfile
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from .board import VALID_CELL_VALUES, Board
from .pieces import EMPTY, ROTATIONS, PieceType
from .state import ActivePiece, SessionState


logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

HEADER = struct.Struct(">iiiiiiif??ii")
CELL_DTYPE = np.dtype(">i4")


class SaveFileError(Exception):
    """A save file could not be written, read or understood."""


@dataclass(frozen=True)
class SavedSession:
    level: int
    score: int
    speed: float
    is_game_over: bool
    is_new_game: bool
    piece: Optional[ActivePiece]
    next_kind: Optional[PieceType]
    grid: np.ndarray


def _kind_id(kind: Optional[PieceType]) -> int:
    return EMPTY if kind is None else int(kind)


def _kind_from_id(value: int, field: str) -> Optional[PieceType]:
    if value == EMPTY:
        return None
    try:
        return PieceType(value)
    except ValueError:
        raise SaveFileError(f"invalid {field} piece id: {value}") from None


def encode_session(state: SessionState, grid: np.ndarray) -> bytes:
    cells = np.asarray(grid)
    if cells.ndim != 2:
        raise ValueError(f"grid must be two-dimensional, got shape {cells.shape}")
    rows, columns = cells.shape
    piece = state.piece
    header = HEADER.pack(
        state.level,
        state.score,
        piece.col if piece else 0,
        piece.row if piece else 0,
        piece.rotation if piece else 0,
        _kind_id(piece.kind if piece else None),
        _kind_id(state.next_kind),
        state.speed,
        state.is_game_over,
        state.is_new_game,
        rows,
        columns,
    )
    return header + cells.astype(CELL_DTYPE).tobytes(order="C")


def decode_session(data: bytes, rows: int, columns: int) -> SavedSession:
    """Parse and validate one record for a board of `rows` x `columns`."""
    if len(data) < HEADER.size:
        raise SaveFileError(f"save file truncated: {len(data)} bytes, header needs {HEADER.size}")
    try:
        (level, score, col, row, rotation, current_id, next_id,
         speed, is_game_over, is_new_game, saved_rows, saved_columns) = HEADER.unpack_from(data)
    except struct.error as exc:
        raise SaveFileError(f"malformed save header: {exc}") from exc

    if (saved_rows, saved_columns) != (rows, columns):
        raise SaveFileError(
            f"save file grid is {saved_rows}x{saved_columns}, board is {rows}x{columns}"
        )
    expected = HEADER.size + rows * columns * CELL_DTYPE.itemsize
    if len(data) != expected:
        raise SaveFileError(f"save file size is {len(data)} bytes, expected {expected}")
    if score < 0 or level < 0:
        raise SaveFileError(f"negative score or level in save file: {score}, {level}")
    if not np.isfinite(speed) or speed <= 0:
        raise SaveFileError(f"invalid game speed in save file: {speed}")
    if not 0 <= rotation < ROTATIONS:
        raise SaveFileError(f"invalid rotation in save file: {rotation}")

    current = _kind_from_id(current_id, "current")
    next_kind = _kind_from_id(next_id, "next")
    if not is_new_game and (current is None or next_kind is None):
        raise SaveFileError("save file of a started game has no current or next piece")

    grid = np.frombuffer(data, dtype=CELL_DTYPE, offset=HEADER.size).reshape(rows, columns)
    unknown = set(np.unique(grid).tolist()) - VALID_CELL_VALUES
    if unknown:
        raise SaveFileError(f"save file holds unknown cell values: {sorted(unknown)}")
    grid = grid.astype(np.int8)

    if current is not None and not is_new_game and not is_game_over:
        board = Board(columns, visible_rows=rows, hidden_rows=0)
        board.import_state(grid)
        if not board.is_valid_and_empty(current, col, row, rotation):
            raise SaveFileError(
                f"save file piece {current.name} at column {col}, row {row}, rotation {rotation} "
                "is off the board or overlaps settled cells"
            )

    return SavedSession(
        level=level,
        score=score,
        speed=float(speed),
        is_game_over=bool(is_game_over),
        is_new_game=bool(is_new_game),
        piece=ActivePiece(current, col, row, rotation) if current is not None else None,
        next_kind=next_kind,
        grid=grid,
    )


def save_session(path: PathLike, state: SessionState, grid: np.ndarray) -> None:
    """Write the session, replacing `path` only once the new file is complete."""
    target = os.fspath(path)
    try:
        data = encode_session(state, grid)
    except struct.error as exc:
        raise SaveFileError(f"session does not fit the save file layout: {exc}") from exc
    directory = os.path.dirname(os.path.abspath(target))
    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(prefix=".blockfall-", suffix=".tmp", dir=directory)
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_path, target)
        tmp_path = None
    except OSError as exc:
        raise SaveFileError(f"could not write save file {target}: {exc}") from exc
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
    logger.debug("saved session to %s (%d bytes)", target, len(data))


def load_session(path: PathLike, rows: int, columns: int) -> SavedSession:
    target = os.fspath(path)
    try:
        with open(target, "rb") as fh:
            data = fh.read()
    except OSError as exc:
        raise SaveFileError(f"could not read save file {target}: {exc}") from exc
    saved = decode_session(data, rows, columns)
    logger.debug("loaded session from %s (score=%d, level=%d)", target, saved.score, saved.level)
    return saved
