from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from .pieces import PieceType


class Phase(Enum):
    NEW_GAME = "new_game"
    PLAYING = "playing"
    PAUSED = "paused"
    GAME_OVER = "game_over"


@dataclass(frozen=True)
class ActivePiece:
    kind: PieceType
    col: int
    row: int
    rotation: int = 0

    def moved(self, dcol: int = 0, drow: int = 0) -> "ActivePiece":
        return replace(self, col=self.col + dcol, row=self.row + drow)

    def rotated_to(self, rotation: int, col: int, row: int) -> "ActivePiece":
        return replace(self, rotation=rotation, col=col, row=row)


@dataclass
class SessionState:
    """Everything about one game that is not the board grid.

    A fresh state is a new game waiting for its start command.
    """

    score: int = 0
    level: int = 1
    speed: float = 1.0
    is_paused: bool = False
    is_new_game: bool = True
    is_game_over: bool = False
    drop_cooldown: int = 0
    piece: Optional[ActivePiece] = None
    next_kind: Optional[PieceType] = None
    soft_drop_held: bool = False
    placed_frames: int = 0
    last_lines_cleared: int = 0
    pieces_locked: int = 0
    lines_cleared_total: int = 0

    @property
    def phase(self) -> Phase:
        if self.is_game_over:
            return Phase.GAME_OVER
        if self.is_new_game:
            return Phase.NEW_GAME
        if self.is_paused:
            return Phase.PAUSED
        return Phase.PLAYING

    @property
    def is_playing(self) -> bool:
        return self.phase is Phase.PLAYING

    def copy(self) -> "SessionState":
        # ActivePiece is frozen, so a shallow copy is a full copy.
        return replace(self)
