from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass
class GameRules:
    line_score_base: int = 50
    initial_speed: float = 1.0
    speed_increment: float = 0.035
    level_factor: float = 1.70
    drop_cooldown_frames: int = 25  # ~0.5s at 50 frames per second
    soft_drop_rate: float = 25.0
    placed_signal_frames: int = 50

    def score_for_lines(self, lines: int) -> int:
        if 1 <= lines <= 4:
            return self.line_score_base << lines
        return 0

    def start_speed(self) -> float:
        return float(np.float32(self.initial_speed))

    def next_speed(self, speed: float) -> float:
        # Speed is kept in float32 so it survives the save file unchanged.
        return float(np.float32(speed) + np.float32(self.speed_increment))

    def level_for_speed(self, speed: float) -> int:
        return int(np.float32(speed) * np.float32(self.level_factor))
