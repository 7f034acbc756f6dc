from __future__ import annotations

import logging
import queue
import time
from typing import Callable, Optional, Union

from .clock import TimeSource
from .core import Action, GameController
from .persistence import SaveFileError


logger = logging.getLogger(__name__)

FRAME_TIME = 1.0 / 50.0

Command = Union[Action, Callable[[GameController], object]]
FrameCallback = Callable[[GameController], None]
ErrorCallback = Callable[[SaveFileError], None]


class FrameLoop:
    """Fixed-rate driver for a controller.

    Inputs may be submitted from any thread; they are queued and applied at
    the start of the next frame, so a tick never sees a half-applied action.
    """

    def __init__(
        self,
        controller: GameController,
        frame_time: float = FRAME_TIME,
        time_source: Optional[TimeSource] = None,
        sleep: Callable[[float], None] = time.sleep,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self.controller = controller
        self.frame_time = frame_time
        self._time_source = time_source or time.perf_counter
        self._sleep = sleep
        self._on_error = on_error
        self._pending: "queue.SimpleQueue[Command]" = queue.SimpleQueue()
        self._running = False
        self.frames = 0

    def submit(self, command: Command) -> None:
        self._pending.put(command)

    def save(self, path) -> None:
        self.submit(lambda game: game.save(path))

    def load(self, path) -> None:
        self.submit(lambda game: game.load(path))

    def stop(self) -> None:
        self._running = False

    def _apply(self, command: Command) -> None:
        if isinstance(command, Action):
            self.controller.perform(command)
            return
        try:
            command(self.controller)
        except SaveFileError as exc:
            logger.warning("save/load failed: %s", exc)
            if self._on_error is not None:
                self._on_error(exc)

    def _drain(self) -> None:
        while True:
            try:
                command = self._pending.get_nowait()
            except queue.Empty:
                return
            self._apply(command)

    def run_frame(self, on_frame: Optional[FrameCallback] = None) -> None:
        self._drain()
        self.controller.tick()
        self.frames += 1
        if on_frame is not None:
            on_frame(self.controller)

    def run(self, frames: Optional[int] = None, on_frame: Optional[FrameCallback] = None) -> int:
        """Run frames until stopped (or `frames` have run). Returns the count."""
        self._running = True
        done = 0
        while self._running and (frames is None or done < frames):
            start = self._time_source()
            self.run_frame(on_frame)
            done += 1
            spent = self._time_source() - start
            if spent < self.frame_time:
                self._sleep(self.frame_time - spent)
        self._running = False
        return done
