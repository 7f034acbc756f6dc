from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

import numpy as np

from .board import Board
from .clock import Clock, TimeSource
from .persistence import PathLike, SavedSession, load_session, save_session
from .pieces import ROTATIONS, PieceType, get_spec
from .rules import GameRules
from .state import ActivePiece, Phase, SessionState


logger = logging.getLogger(__name__)


class Action(IntEnum):
    NONE = 0
    LEFT = 1
    RIGHT = 2
    ROTATE_CW = 3
    ROTATE_CCW = 4
    SOFT_DROP = 5
    SOFT_DROP_RELEASE = 6
    TOGGLE_PAUSE = 7
    RESET = 8


class Rotation(IntEnum):
    CLOCKWISE = 1
    COUNTERCLOCKWISE = -1


@dataclass
class GameConfig:
    columns: int = 10
    visible_rows: int = 20
    hidden_rows: int = 2
    random_seed: Optional[int] = None


class GameController:
    """Drives one game: spawn, fall, lock, clear, speed up, respawn.

    The controller starts in the new-game phase with the clock paused; call
    `start()` to begin. A host calls `tick()` once per frame and forwards user
    actions between frames. Operations return the live `SessionState`.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        rules: Optional[GameRules] = None,
        rng: Optional[random.Random] = None,
        time_source: Optional[TimeSource] = None,
    ) -> None:
        self.config = config or GameConfig()
        self.rules = rules or GameRules()
        self.rng = rng or random.Random(self.config.random_seed)
        self.board = Board(self.config.columns, self.config.visible_rows, self.config.hidden_rows)
        self.state = SessionState(speed=self.rules.start_speed())
        self.clock = Clock(self.state.speed, time_source)
        self.clock.set_paused(True)

    # ----- Read-only accessors -----
    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def is_paused(self) -> bool:
        return self.state.is_paused

    @property
    def is_new_game(self) -> bool:
        return self.state.is_new_game

    @property
    def is_game_over(self) -> bool:
        return self.state.is_game_over

    @property
    def score(self) -> int:
        return self.state.score

    @property
    def level(self) -> int:
        return self.state.level

    @property
    def speed(self) -> float:
        return self.state.speed

    @property
    def piece(self) -> Optional[ActivePiece]:
        return self.state.piece

    @property
    def next_kind(self) -> Optional[PieceType]:
        return self.state.next_kind

    @property
    def piece_just_placed(self) -> bool:
        return self.state.placed_frames > 0

    def board_cells(self) -> np.ndarray:
        return self.board.export_state()

    def snapshot(self) -> SessionState:
        return self.state.copy()

    def get_observation(self) -> np.ndarray:
        """Board grid with the falling piece overlaid as negative ids."""
        grid = self.board.export_state()
        piece = self.state.piece
        if piece is not None and not self.state.is_game_over:
            for dx, dy in get_spec(piece.kind).cells(piece.rotation):
                x, y = piece.col + dx, piece.row + dy
                if self.board.is_inside(x, y):
                    grid[y, x] = -int(piece.kind)
        return grid

    # ----- Frame update -----
    def tick(self) -> SessionState:
        state = self.state
        self.clock.update()
        if self.clock.has_elapsed_cycle() and state.is_playing:
            self._gravity_step()

        if state.drop_cooldown > 0:
            state.drop_cooldown -= 1
        if state.placed_frames > 0:
            state.placed_frames -= 1
        if state.soft_drop_held and state.is_playing and state.drop_cooldown == 0:
            self.clock.set_rate(self.rules.soft_drop_rate)
        return state

    def _gravity_step(self) -> None:
        piece = self.state.piece
        if self.board.is_valid_and_empty(piece.kind, piece.col, piece.row + 1, piece.rotation):
            self.state.piece = piece.moved(drow=1)
        else:
            self._lock_piece()

    def _lock_piece(self) -> None:
        state = self.state
        piece = state.piece
        self.board.add_piece(piece.kind, piece.col, piece.row, piece.rotation)
        state.placed_frames = self.rules.placed_signal_frames
        state.pieces_locked += 1

        cleared = self.board.check_lines()
        state.last_lines_cleared = cleared
        state.lines_cleared_total += cleared
        state.score += self.rules.score_for_lines(cleared)
        if cleared:
            logger.debug("cleared %d line(s), score %d", cleared, state.score)

        state.speed = self.rules.next_speed(state.speed)
        self.clock.set_rate(state.speed)
        self.clock.reset()
        state.drop_cooldown = self.rules.drop_cooldown_frames
        state.level = self.rules.level_for_speed(state.speed)
        self._spawn_piece()

    def _draw_kind(self) -> PieceType:
        return self.rng.choice(list(PieceType))

    def _spawn_piece(self) -> None:
        state = self.state
        kind = state.next_kind
        spec = get_spec(kind)
        state.piece = ActivePiece(kind, spec.spawn_col, spec.spawn_row, 0)
        state.next_kind = self._draw_kind()
        if not self.board.is_valid_and_empty(kind, spec.spawn_col, spec.spawn_row, 0):
            state.is_game_over = True
            self.clock.set_paused(True)
            logger.debug("spawn of %s blocked, game over at score %d", kind.name, state.score)

    # ----- Game lifecycle -----
    def start(self) -> SessionState:
        return self.reset()

    def reset(self, force: bool = False) -> SessionState:
        """Begin a new game. Only from the new-game or game-over phase unless forced."""
        if not force and self.phase not in (Phase.NEW_GAME, Phase.GAME_OVER):
            return self.state
        self.board.clear()
        self.state = SessionState(
            speed=self.rules.start_speed(),
            is_new_game=False,
            next_kind=self._draw_kind(),
        )
        self.clock.set_rate(self.state.speed)
        self.clock.reset()
        self.clock.set_paused(False)
        self._spawn_piece()
        return self.state

    def toggle_pause(self) -> SessionState:
        state = self.state
        if not state.is_game_over and not state.is_new_game:
            state.is_paused = not state.is_paused
            self.clock.set_paused(state.is_paused)
        return state

    # ----- Player input -----
    def move_left(self) -> bool:
        return self._shift(-1)

    def move_right(self) -> bool:
        return self._shift(1)

    def _shift(self, dcol: int) -> bool:
        if not self.state.is_playing:
            return False
        piece = self.state.piece
        if self.board.is_valid_and_empty(piece.kind, piece.col + dcol, piece.row, piece.rotation):
            self.state.piece = piece.moved(dcol=dcol)
            return True
        return False

    def soft_drop_start(self) -> SessionState:
        state = self.state
        state.soft_drop_held = True
        if state.is_playing and state.drop_cooldown == 0:
            self.clock.set_rate(self.rules.soft_drop_rate)
        return state

    def soft_drop_end(self) -> SessionState:
        state = self.state
        state.soft_drop_held = False
        self.clock.set_rate(state.speed)
        self.clock.reset()
        return state

    def rotate(self, direction: Rotation = Rotation.CLOCKWISE) -> bool:
        """Rotate the falling piece, nudging it back inside the walls if needed.

        Returns False and leaves the piece untouched when the rotated piece
        would overlap settled cells.
        """
        if not self.state.is_playing:
            return False
        piece = self.state.piece
        spec = get_spec(piece.kind)
        rotation = (piece.rotation + int(direction)) % ROTATIONS
        left, right, top, bottom = spec.insets(rotation)
        dim = spec.dimension
        col, row = piece.col, piece.row

        if col < -left:
            col = -left
        elif col + dim - 1 - right >= self.board.columns:
            col = self.board.columns - dim + right

        if row < -top:
            row = -top
        elif row + dim - 1 - bottom >= self.board.rows:
            row = self.board.rows - dim + bottom

        if not self.board.is_valid_and_empty(piece.kind, col, row, rotation):
            return False
        self.state.piece = piece.rotated_to(rotation, col, row)
        return True

    def perform(self, action: Action) -> SessionState:
        if action == Action.LEFT:
            self.move_left()
        elif action == Action.RIGHT:
            self.move_right()
        elif action == Action.ROTATE_CW:
            self.rotate(Rotation.CLOCKWISE)
        elif action == Action.ROTATE_CCW:
            self.rotate(Rotation.COUNTERCLOCKWISE)
        elif action == Action.SOFT_DROP:
            self.soft_drop_start()
        elif action == Action.SOFT_DROP_RELEASE:
            self.soft_drop_end()
        elif action == Action.TOGGLE_PAUSE:
            self.toggle_pause()
        elif action == Action.RESET:
            self.reset()
        elif action == Action.NONE:
            pass
        return self.state

    # ----- Persistence -----
    def save(self, path: PathLike) -> None:
        save_session(path, self.state, self.board.export_state())

    def load(self, path: PathLike) -> SessionState:
        """Replace the session with the one stored at `path`.

        Raises `SaveFileError`; on failure the running session is untouched.
        """
        saved = load_session(path, self.board.rows, self.board.columns)
        self._apply_saved(saved)
        return self.state

    def _apply_saved(self, saved: SavedSession) -> None:
        in_progress = not saved.is_game_over and not saved.is_new_game
        self.board.import_state(saved.grid)
        self.state = SessionState(
            score=saved.score,
            level=saved.level,
            speed=saved.speed,
            is_paused=in_progress and self.state.is_paused,
            is_new_game=saved.is_new_game,
            is_game_over=saved.is_game_over,
            piece=saved.piece,
            next_kind=saved.next_kind,
        )
        self.clock.reset()
        self.clock.set_rate(saved.speed)
        self.clock.set_paused(not self.state.is_playing)
