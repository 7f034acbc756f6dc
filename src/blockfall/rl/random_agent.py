from __future__ import annotations

import argparse

import gymnasium as gym

import blockfall.env  # noqa: F401
from blockfall.game import SaveFileError


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Play FallingBlocks-v0 with uniformly random actions.")
    p.add_argument("--steps", type=int, default=2_000)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--save", type=str, default=None, help="Write the final game state to this file")
    return p


def run_random(steps: int = 2_000, seed: int | None = None, save_path: str | None = None) -> float:
    env = gym.make("FallingBlocks-v0")
    env.action_space.seed(seed)
    obs, info = env.reset(seed=seed)
    total_reward = 0.0
    episodes = 1
    for _ in range(steps):
        action = env.action_space.sample()
        obs, reward, terminated, truncated, info = env.step(action)
        total_reward += float(reward)
        if terminated or truncated:
            if save_path is None:
                obs, info = env.reset()
                episodes += 1
            else:
                break
    if save_path is not None:
        env.unwrapped.game.save(save_path)
    env.close()
    print(f"Random agent: {episodes} episode(s), total reward {total_reward:.0f}, last score {info['score']}")
    return total_reward


def main() -> None:
    args = build_parser().parse_args()
    try:
        run_random(args.steps, args.seed, args.save)
    except SaveFileError as exc:
        raise SystemExit(f"error: {exc}")


if __name__ == "__main__":  # pragma: no cover
    main()
