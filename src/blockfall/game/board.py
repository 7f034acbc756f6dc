from __future__ import annotations

import numpy as np

from .pieces import EMPTY, PieceType, get_spec


VALID_CELL_VALUES = frozenset([EMPTY, *(int(kind) for kind in PieceType)])


class Board:
    """Grid of settled cells.

    Row 0 is the top of the grid. The first `hidden_rows` rows sit above the
    visible field so pieces can spawn there and fall in. Cells hold `EMPTY`
    or the id of the piece type that filled them.
    """

    def __init__(self, columns: int = 10, visible_rows: int = 20, hidden_rows: int = 2) -> None:
        self.columns = int(columns)
        self.visible_rows = int(visible_rows)
        self.hidden_rows = int(hidden_rows)
        self.rows = self.visible_rows + self.hidden_rows
        self._grid = np.zeros((self.rows, self.columns), dtype=np.int8)

    @property
    def shape(self) -> tuple[int, int]:
        return self.rows, self.columns

    def clear(self) -> None:
        self._grid.fill(EMPTY)

    def is_inside(self, col: int, row: int) -> bool:
        return 0 <= col < self.columns and 0 <= row < self.rows

    def is_visible_row(self, row: int) -> bool:
        return self.hidden_rows <= row < self.rows

    def get_cell(self, col: int, row: int) -> int:
        return int(self._grid[row, col])

    def is_occupied(self, col: int, row: int) -> bool:
        return self._grid[row, col] != EMPTY

    def is_valid_and_empty(self, kind: PieceType, col: int, row: int, rotation: int) -> bool:
        for dx, dy in get_spec(kind).cells(rotation):
            x = col + dx
            y = row + dy
            if not self.is_inside(x, y):
                return False
            if self._grid[y, x] != EMPTY:
                return False
        return True

    def add_piece(self, kind: PieceType, col: int, row: int, rotation: int) -> None:
        """Write the piece into the grid. The caller validates the position first."""
        value = int(kind)
        for dx, dy in get_spec(kind).cells(rotation):
            self._grid[row + dy, col + dx] = value

    def check_lines(self) -> int:
        """Remove every full row and collapse the rows above. Returns the count."""
        full = np.all(self._grid != EMPTY, axis=1)
        cleared = int(np.count_nonzero(full))
        if cleared == 0:
            return 0
        kept = self._grid[~full]
        self._grid[:cleared] = EMPTY
        self._grid[cleared:] = kept
        return cleared

    def visible(self) -> np.ndarray:
        view = self._grid[self.hidden_rows:]
        view.flags.writeable = False
        return view

    def export_state(self) -> np.ndarray:
        return self._grid.copy()

    def import_state(self, grid) -> None:
        cells = np.asarray(grid)
        if cells.shape != self.shape:
            raise ValueError(f"grid shape {cells.shape} does not match board {self.shape}")
        values = set(np.unique(cells).tolist())
        unknown = values - VALID_CELL_VALUES
        if unknown:
            raise ValueError(f"grid holds unknown cell values: {sorted(unknown)}")
        self._grid[...] = cells.astype(np.int8)
