from __future__ import annotations

import random
from typing import Any, Dict, Optional, Tuple

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from blockfall.game import Action, GameConfig, GameController, GameRules, ManualTime, PieceType
from blockfall.game.loop import FRAME_TIME


# Discrete action index -> controller action. Pause and reset stay with the env.
ENV_ACTIONS: Tuple[Action, ...] = (
    Action.NONE,
    Action.LEFT,
    Action.RIGHT,
    Action.ROTATE_CW,
    Action.ROTATE_CCW,
    Action.SOFT_DROP,
    Action.SOFT_DROP_RELEASE,
)


class FallingBlocksEnv(gym.Env):
    """Headless falling-block game driven by synthetic time.

    Each step applies one action, then runs `frames_per_step` frames of
    `FRAME_TIME` seconds. The reward is the score gained during the step.
    """

    metadata = {"render_modes": []}

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        rules: Optional[GameRules] = None,
        frames_per_step: int = 5,
        max_episode_steps: int = 10_000,
    ) -> None:
        super().__init__()
        self.config = config or GameConfig()
        self.rules = rules or GameRules()
        self.frames_per_step = int(frames_per_step)
        self.max_episode_steps = int(max_episode_steps)
        self.time = ManualTime()
        self.game = GameController(self.config, self.rules, random.Random(self.config.random_seed), self.time)

        rows = self.config.visible_rows + self.config.hidden_rows
        cols = self.config.columns
        n_kinds = len(PieceType)
        self.observation_space = spaces.Dict(
            {
                "board": spaces.Box(low=-n_kinds, high=n_kinds, shape=(rows, cols), dtype=np.int8),
                # kind, column, row, rotation; columns/rows may go negative at the walls
                "piece": spaces.Box(
                    low=np.array([0, -4, -4, 0]),
                    high=np.array([n_kinds, cols, rows, 3]),
                    dtype=np.int64,
                ),
                "next": spaces.Discrete(n_kinds + 1),
            }
        )
        self.action_space = spaces.Discrete(len(ENV_ACTIONS))
        self._steps = 0

    def _get_obs(self) -> Dict[str, Any]:
        piece = self.game.piece
        if piece is None:
            piece_vec = np.zeros(4, dtype=np.int64)
        else:
            piece_vec = np.array([int(piece.kind), piece.col, piece.row, piece.rotation], dtype=np.int64)
        next_kind = self.game.next_kind
        return {
            "board": self.game.get_observation().astype(np.int8),
            "piece": piece_vec,
            "next": int(next_kind) if next_kind is not None else 0,
        }

    def _get_info(self) -> Dict[str, Any]:
        state = self.game.state
        return {
            "score": state.score,
            "level": state.level,
            "speed": state.speed,
            "pieces_locked": state.pieces_locked,
            "lines_cleared_total": state.lines_cleared_total,
            "last_lines_cleared": state.last_lines_cleared,
            "steps": self._steps,
        }

    def reset(self, *, seed: Optional[int] = None, options: Optional[dict] = None) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        super().reset(seed=seed)
        if seed is not None:
            self.game.rng.seed(seed)
        self.game.reset(force=True)
        self._steps = 0
        return self._get_obs(), self._get_info()

    def step(self, action: int):
        score_before = self.game.score
        self.game.perform(ENV_ACTIONS[int(action)])
        for _ in range(self.frames_per_step):
            if self.game.is_game_over:
                break
            self.time.advance(FRAME_TIME)
            self.game.tick()
        self._steps += 1

        reward = float(self.game.score - score_before)
        terminated = bool(self.game.is_game_over)
        truncated = self._steps >= self.max_episode_steps and not terminated
        return self._get_obs(), reward, terminated, truncated, self._get_info()

    def render(self) -> None:
        # Presentation belongs to the host shell.
        return None

    def close(self) -> None:
        pass
