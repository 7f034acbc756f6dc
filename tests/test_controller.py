import numpy as np
import pytest

from blockfall.game import (
    Action,
    ActivePiece,
    Phase,
    PieceType,
    Rotation,
    get_spec,
)


def place(game, kind, col, row, rotation=0, next_kind=PieceType.O):
    game.state.piece = ActivePiece(kind, col, row, rotation)
    game.state.next_kind = next_kind


def test_new_game_waits_for_start(harness):
    game = harness.game
    assert game.phase is Phase.NEW_GAME
    assert game.piece is None
    assert game.clock.paused
    harness.frame(10.0)
    assert game.piece is None
    assert not game.move_left()


def test_start_spawns_at_catalog_position(started):
    game = started.game
    assert game.phase is Phase.PLAYING
    piece = game.piece
    assert piece.rotation == 0
    spec = get_spec(piece.kind)
    assert (piece.col, piece.row) == (spec.spawn_col, spec.spawn_row)
    assert game.next_kind in set(PieceType)
    assert (game.score, game.level, game.speed) == (0, 1, 1.0)


def test_i_piece_falls_to_floor_and_locks(started):
    game = started.game
    place(game, PieceType.I, 3, 1)
    cycles = 0
    while game.state.pieces_locked == 0:
        started.cycle()
        cycles += 1
        assert cycles < 100
    # Rows 1..20 take 19 steps, the 20th cycle locks.
    assert cycles == 20
    grid = game.board_cells()
    assert list(grid[21, 3:7]) == [int(PieceType.I)] * 4
    assert int(np.count_nonzero(grid)) == 4
    assert game.state.last_lines_cleared == 0
    assert game.score == 0
    assert game.piece_just_placed
    assert game.piece.kind is PieceType.O


def test_completing_a_row_clears_it(started):
    game = started.game
    grid = game.board_cells()
    grid[21, :9] = int(PieceType.Z)
    grid[20, 0] = int(PieceType.T)
    game.board.import_state(grid)
    # Vertical I occupying column 9, rows 18..21.
    place(game, PieceType.I, 7, 18, rotation=1)

    started.cycle()

    after = game.board_cells()
    assert game.state.last_lines_cleared == 1
    assert game.score == 100
    assert after[21, 0] == int(PieceType.T)
    assert [after[r, 9] for r in (19, 20, 21)] == [int(PieceType.I)] * 3
    assert int(np.count_nonzero(after)) == 4


def test_tetris_scores_800(started):
    game = started.game
    grid = game.board_cells()
    grid[18:22, :9] = int(PieceType.L)
    game.board.import_state(grid)
    place(game, PieceType.I, 7, 18, rotation=1)
    started.cycle()
    assert game.state.last_lines_cleared == 4
    assert game.score == 800
    assert not game.board_cells().any()


def test_lock_speeds_up_and_sets_cooldown(started):
    game = started.game
    rules = game.rules
    place(game, PieceType.O, 0, 20)
    state = started.cycle()
    assert state.pieces_locked == 1
    assert state.speed == rules.next_speed(1.0)
    assert game.clock.rate == pytest.approx(state.speed)
    assert state.level == rules.level_for_speed(state.speed)
    # The lock frame already counted one frame off the cooldown.
    assert state.drop_cooldown == rules.drop_cooldown_frames - 1


def test_speed_increment_ignores_lines_cleared(started):
    game = started.game
    grid = game.board_cells()
    grid[21, :9] = int(PieceType.Z)
    game.board.import_state(grid)
    place(game, PieceType.I, 7, 18, rotation=1)
    started.cycle()
    assert game.speed == game.rules.next_speed(1.0)


def test_blocked_spawn_ends_the_game(started):
    game = started.game
    grid = game.board_cells()
    grid[0:2, 0:9] = int(PieceType.S)
    game.board.import_state(grid)
    place(game, PieceType.O, 0, 20, next_kind=PieceType.T)

    started.cycle()

    assert game.phase is Phase.GAME_OVER
    assert game.clock.paused
    frozen_piece = game.piece
    frozen_grid = game.board_cells()
    for _ in range(10):
        started.frame(5.0)
    assert game.piece == frozen_piece
    assert np.array_equal(game.board_cells(), frozen_grid)
    assert not game.move_right()
    assert not game.rotate()


def test_reset_after_game_over_starts_fresh(started):
    game = started.game
    game.state.is_game_over = True
    game.state.score = 1234
    game.board.add_piece(PieceType.O, 0, 20, 0)
    game.perform(Action.RESET)
    assert game.phase is Phase.PLAYING
    assert game.score == 0
    assert game.level == 1
    assert not game.board_cells().any()
    assert not game.clock.paused


def test_reset_ignored_mid_game_unless_forced(started):
    game = started.game
    game.state.score = 500
    game.reset()
    assert game.score == 500
    game.reset(force=True)
    assert game.score == 0


def test_moves_respect_walls_and_cells(started):
    game = started.game
    place(game, PieceType.O, 0, 10)
    assert not game.move_left()
    assert game.move_right()
    assert game.piece.col == 1
    game.board.add_piece(PieceType.T, 2, 10, 1)
    assert not game.move_right()
    assert game.piece.col == 1


def test_pause_freezes_gravity(started):
    game = started.game
    place(game, PieceType.O, 4, 5)
    game.perform(Action.TOGGLE_PAUSE)
    assert game.phase is Phase.PAUSED
    for _ in range(5):
        started.frame(1.0)
    assert game.piece.row == 5
    assert not game.move_left()
    game.toggle_pause()
    assert game.phase is Phase.PLAYING
    started.frame(0.5)
    assert game.piece.row == 5
    started.frame(0.5)
    assert game.piece.row == 6


def test_pause_ignored_before_start(harness):
    harness.game.toggle_pause()
    assert not harness.game.is_paused


def test_four_rotations_return_to_start(started):
    game = started.game
    for kind in PieceType:
        for direction in (Rotation.CLOCKWISE, Rotation.COUNTERCLOCKWISE):
            place(game, kind, 3, 8)
            before = game.piece
            for _ in range(4):
                assert game.rotate(direction)
            assert game.piece == before


def test_rotation_cycles_index(started):
    game = started.game
    place(game, PieceType.T, 4, 8)
    game.rotate(Rotation.COUNTERCLOCKWISE)
    assert game.piece.rotation == 3
    game.perform(Action.ROTATE_CW)
    game.perform(Action.ROTATE_CW)
    assert game.piece.rotation == 1


def test_rotation_kicks_off_left_wall(started):
    game = started.game
    place(game, PieceType.I, -2, 10, rotation=1)
    assert game.rotate(Rotation.CLOCKWISE)
    assert game.piece == ActivePiece(PieceType.I, 0, 10, 2)


def test_rotation_kicks_off_right_wall(started):
    game = started.game
    place(game, PieceType.I, 7, 10, rotation=1)
    assert game.rotate(Rotation.COUNTERCLOCKWISE)
    assert game.piece == ActivePiece(PieceType.I, 6, 10, 0)


def test_rotation_kicks_up_from_floor(started):
    game = started.game
    place(game, PieceType.I, 3, 20, rotation=0)
    assert game.rotate(Rotation.CLOCKWISE)
    assert game.piece == ActivePiece(PieceType.I, 3, 18, 1)


def test_blocked_rotation_leaves_piece_alone(started):
    game = started.game
    game.board.add_piece(PieceType.O, 5, 18, 0)
    place(game, PieceType.I, 3, 20, rotation=0)
    before = game.piece
    assert not game.rotate(Rotation.CLOCKWISE)
    assert game.piece == before


def test_soft_drop_hold_and_release(started):
    game = started.game
    place(game, PieceType.O, 4, 2)
    game.perform(Action.SOFT_DROP)
    assert game.clock.rate == pytest.approx(game.rules.soft_drop_rate)
    started.frame(0.04)
    assert game.piece.row == 3
    game.perform(Action.SOFT_DROP_RELEASE)
    assert game.clock.rate == pytest.approx(game.speed)
    assert game.clock.elapsed == 0.0


def test_soft_drop_waits_for_cooldown(started):
    game = started.game
    rules = game.rules
    place(game, PieceType.O, 0, 20)
    started.cycle()
    assert game.state.drop_cooldown > 0

    game.soft_drop_start()
    assert game.clock.rate == pytest.approx(game.speed)
    for _ in range(rules.drop_cooldown_frames - 1):
        started.frame(0.0)
    assert game.state.drop_cooldown == 0
    assert game.clock.rate == pytest.approx(rules.soft_drop_rate)


def test_observation_overlays_piece(started):
    game = started.game
    place(game, PieceType.O, 4, 10)
    obs = game.get_observation()
    assert obs[10, 4] == -int(PieceType.O)
    assert int(np.count_nonzero(obs)) == 4
    assert not game.board_cells().any()


def test_snapshot_is_detached(started):
    game = started.game
    snap = game.snapshot()
    game.state.score = 99
    assert snap.score == 0
