"""Game module for blockfall.

Exports the rules engine of the falling-block game:
- PieceType / CATALOG: Piece shapes, rotations, insets and spawn points
- Board: Settled cells, placement checks and line clearing
- Clock: Gravity cycle accounting driven by a time source
- GameRules: Scoring and speed progression
- GameController: Spawn, fall, lock and player actions
- FrameLoop: Fixed-rate driver with queued input
- save_session / load_session: Binary save file codec
"""

from .pieces import CATALOG, EMPTY, PieceSpec, PieceType, get_spec
from .board import Board
from .clock import Clock, ManualTime
from .rules import GameRules
from .state import ActivePiece, Phase, SessionState
from .persistence import SavedSession, SaveFileError, load_session, save_session
from .core import Action, GameConfig, GameController, Rotation
from .loop import FRAME_TIME, FrameLoop

__all__ = [
    "CATALOG",
    "EMPTY",
    "PieceSpec",
    "PieceType",
    "get_spec",
    "Board",
    "Clock",
    "ManualTime",
    "GameRules",
    "ActivePiece",
    "Phase",
    "SessionState",
    "SavedSession",
    "SaveFileError",
    "load_session",
    "save_session",
    "Action",
    "GameConfig",
    "GameController",
    "Rotation",
    "FRAME_TIME",
    "FrameLoop",
]
