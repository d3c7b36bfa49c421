#!/usr/bin/env python3
"""
Fruit Sort Level Generator

Builds a solved board, scrambles it, and keeps the result only when the
breadth-first estimator proves it solvable in at least a minimum number of
pours. Generates level sets for 5 difficulty tiers.
"""

import argparse
import ast
import json
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from board import FRUIT_POOL, GLASS_CAPACITY, MAX_GLASSES, Board, LevelConfig, Move
from logger_config import configure_logging
from obstacles import place_obstacles, serialize_obstacles
from rng import SeededRandom
from solver import DEFAULT_MAX_NODES, SolveResult, depth_bound, estimate_difficulty

logger = logging.getLogger(__name__)

# Default configuration for 5 difficulty tiers
DEFAULT_CONFIG = {
    1: {
        "name": "easy",
        "active": 5,
        "empty": 2,
        "obstacles": 0,
        "full_cover_chance": 0.5,
        "base_points": 500,
        "move_penalty": 5,
        "time_penalty": 1,
    },
    2: {
        "name": "normal",
        "active": 6,
        "empty": 2,
        "obstacles": 0,
        "full_cover_chance": 0.5,
        "base_points": 1000,
        "move_penalty": 10,
        "time_penalty": 2,
    },
    3: {
        "name": "hard",
        "active": 8,
        "empty": 2,
        "obstacles": 1,
        "full_cover_chance": 0.5,
        "base_points": 1500,
        "move_penalty": 10,
        "time_penalty": 2,
    },
    4: {
        "name": "expert",
        "active": 10,
        "empty": 2,
        "obstacles": 2,
        "full_cover_chance": 0.4,
        "base_points": 2000,
        "move_penalty": 12,
        "time_penalty": 3,
    },
    5: {
        "name": "master",
        "active": 12,
        "empty": 2,
        "obstacles": 3,
        "full_cover_chance": 0.3,
        "base_points": 3000,
        "move_penalty": 15,
        "time_penalty": 3,
    },
}


def level_config(tier_config: Dict) -> LevelConfig:
    """LevelConfig for a tier entry: one fruit type per filled glass."""
    return LevelConfig(
        active=tier_config["active"],
        empty=tier_config["empty"],
        types=tier_config["active"] - tier_config["empty"],
        obstacles=tier_config.get("obstacles", 0),
    )


def min_difficulty(config: LevelConfig) -> int:
    return max(2, (3 * config.types) // 4 + max(0, config.active - 6) // 3)


@dataclass
class GeneratorStrategy:
    retries: int = 12
    scramble_moves: Optional[int] = None
    single_fruit: bool = False
    inject_conflicts: bool = True
    max_conflict_moves: int = 3
    conflict_rounds: Optional[int] = None
    min_difficulty: Optional[int] = None
    max_depth: Optional[int] = None
    max_nodes: int = DEFAULT_MAX_NODES


@dataclass
class GeneratedLevel:
    board: Board
    difficulty: Optional[int]
    attempts: int
    fallback: bool = False
    seed: Optional[int] = None
    moves: List[Move] = field(default_factory=list)


def build_solved_board(config: LevelConfig, rng: SeededRandom) -> Board:
    chosen = rng.shuffle(FRUIT_POOL[:])[: config.types]
    glasses = [[fruit] * GLASS_CAPACITY for fruit in chosen]
    glasses.extend([] for _ in range(config.empty))
    # Inert glasses keep the layout fixed; they are never in play.
    while len(glasses) < MAX_GLASSES:
        glasses.append([])
    return Board(glasses, config.active)


def scramble(board: Board, moves: int, rng: SeededRandom, max_attempts: Optional[int] = None,
             single_fruit: bool = False) -> List[Move]:
    """Apply up to ``moves`` random legal pours in place, returning them."""
    if max_attempts is None:
        max_attempts = moves * 4
    applied: List[Move] = []
    previous: Optional[Move] = None
    for _ in range(max_attempts):
        if len(applied) >= moves:
            break
        options = board.legal_moves()
        if single_fruit:
            options = [m for m in options if m.count == 1]
        if not options:
            break
        if previous is not None:
            reverse = Move(previous.dst, previous.src, previous.count)
            fresh = [m for m in options if m != reverse]
            if fresh:
                options = fresh
        move = rng.choice(options)
        board.apply(move)
        applied.append(move)
        previous = move
    return applied


def inject_conflict_moves(board: Board, count: int, rng: SeededRandom) -> List[Move]:
    """Force single top fruits onto empty or mismatched glasses to tangle the board."""
    forced: List[Move] = []
    glasses = board.in_play()
    for _ in range(count):
        candidates = []
        for src, from_stack in enumerate(glasses):
            if not from_stack:
                continue
            for dst, to_stack in enumerate(glasses):
                if dst == src or len(to_stack) >= board.capacity:
                    continue
                if to_stack and to_stack[-1] == from_stack[-1]:
                    continue
                candidates.append(Move(src, dst, 1))
        if not candidates:
            break
        move = rng.choice(candidates)
        board.apply(move)
        forced.append(move)
    return forced


def fallback_board(config: LevelConfig, rng: SeededRandom) -> Board:
    """Solved board with one fruit moved into the first empty glass."""
    board = build_solved_board(config, rng)
    board.apply(Move(0, config.types, 1))
    return board


def _acceptable(result: SolveResult, threshold: int) -> bool:
    return result.depth is not None and result.depth >= threshold


def generate_level(config: LevelConfig, seed: Optional[int] = None,
                   strategy: Optional[GeneratorStrategy] = None) -> GeneratedLevel:
    """Generate a board that needs at least ``min_difficulty`` pours.

    Falls back to a barely scrambled board, with a warning, when no attempt
    within the retry budget meets the threshold. Never returns a solved board.
    """
    strategy = strategy or GeneratorStrategy()
    rng = SeededRandom(seed)
    threshold = strategy.min_difficulty if strategy.min_difficulty is not None else min_difficulty(config)
    max_depth = strategy.max_depth if strategy.max_depth is not None else depth_bound(config)
    base_moves = strategy.scramble_moves if strategy.scramble_moves is not None else config.types * GLASS_CAPACITY
    rounds = strategy.conflict_rounds if strategy.conflict_rounds is not None else config.types

    for attempt in range(1, strategy.retries + 1):
        board = build_solved_board(config, rng)
        history = scramble(board, base_moves + attempt, rng, single_fruit=strategy.single_fruit)
        if board.is_solved():
            logger.debug("attempt %d scrambled back into a solved board", attempt)
            continue

        result = estimate_difficulty(board, max_depth, strategy.max_nodes)

        # Only boards proven too easy get tangled further.
        remaining = rounds if strategy.inject_conflicts else 0
        while remaining > 0 and result.depth is not None and result.depth < threshold:
            remaining -= 1
            history += inject_conflict_moves(board, rng.rand_int(1, strategy.max_conflict_moves), rng)
            if board.is_solved():
                break
            result = estimate_difficulty(board, max_depth, strategy.max_nodes)

        if board.is_solved() or not _acceptable(result, threshold):
            logger.debug("attempt %d rejected (depth=%s, reason=%s)", attempt, result.depth, result.reason)
            continue

        logger.info("generated %s in %d attempt(s), difficulty %d", config, attempt, result.depth)
        return GeneratedLevel(board, result.depth, attempt, seed=seed, moves=history)

    logger.warning("no board reached difficulty %d for %s after %d attempts, using fallback",
                   threshold, config, strategy.retries)
    return GeneratedLevel(fallback_board(config, rng), 1, strategy.retries, fallback=True, seed=seed)


def generate_puzzle(tier_config: Dict, problem_id: int, seed: Optional[int], verbose: bool = False) -> Dict:
    """Generate a single level (board and covers) for a tier"""
    config = level_config(tier_config)
    if verbose:
        print(f"\nGenerating level {problem_id}:")
        print(f"  Glasses: {config.active} ({config.empty} empty), Covers: {config.obstacles}, Seed: {seed}")

    level = generate_level(config, seed)
    cover_rng = SeededRandom(seed + 1 if seed is not None else None)
    covers = place_obstacles(level.board, config.obstacles, cover_rng, tier_config.get("full_cover_chance", 0.5))

    if verbose:
        note = " (fallback)" if level.fallback else ""
        print(f"  Difficulty: {level.difficulty} after {level.attempts} attempt(s){note}")

    return {
        **level.board.to_dict(),
        "obstacles": serialize_obstacles(covers),
        "difficulty": level.difficulty,
        "fallback": level.fallback,
        "seed": seed,
        "tier": tier_config.get("name"),
        "problem_id": problem_id,
    }


def generate_difficulty_set(
    tier_config: Dict,
    n_levels: int,
    start_id: int,
    tier: int,
    rng: SeededRandom,
    verbose: bool = False
) -> List[Dict]:
    """Generate a set of levels for a specific tier"""
    levels = []

    print(f"\nGenerating {n_levels} levels for tier {tier} ({tier_config.get('name', '?')})...")

    for i in range(n_levels):
        # Each level gets its own seed so it can be regenerated on its own
        seed = rng.rand_int(0, 2**32 - 1)
        levels.append(generate_puzzle(tier_config, start_id + i, seed, verbose=verbose))

    return levels


def convert_to_legacy_format(levels: List[Dict]) -> Dict[str, Dict]:
    """Convert list of levels to dict format (problem_id: level_dict)"""
    return {str(level["problem_id"]): level for level in levels}


def main():
    parser = argparse.ArgumentParser(
        description="Generate Fruit Sort levels in JSON format",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument("--difficulties", type=str, required=True,
                        help="Dictionary mapping tier to number of levels. Must be quoted! (e.g., '{1:5, 2:5, 3:5}')")
    parser.add_argument("--config-file", type=str, default=None,
                        help="Path to custom JSON config file with tier configurations")
    parser.add_argument("--start-id", type=int, default=1,
                        help="Starting problem ID")
    parser.add_argument("--output-file", type=str, default="levels.json",
                        help="Output JSON file path")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for reproducibility")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Print detailed generation progress")

    args = parser.parse_args()
    configure_logging("DEBUG" if args.verbose else "WARNING")

    # Parse difficulties dictionary
    try:
        difficulties_dict = ast.literal_eval(args.difficulties)
        if not isinstance(difficulties_dict, dict):
            raise ValueError("--difficulties must be a dictionary")
    except (ValueError, SyntaxError) as e:
        print(f"Error parsing --difficulties: {e}")
        print("Example: --difficulties '{1:5, 2:5, 3:5, 4:5, 5:5}'")
        print("Note: Make sure to wrap the dictionary in quotes!")
        return

    # Load config
    if args.config_file:
        with open(args.config_file, 'r') as f:
            config = json.load(f)
        # Convert string keys to int if necessary
        config = {int(k): v for k, v in config.items()}
    else:
        config = DEFAULT_CONFIG

    # Set random seed
    final_seed = args.seed if args.seed is not None else SeededRandom().rand_int(0, 2**32 - 1)
    rng = SeededRandom(final_seed)
    print(f"Random seed: {final_seed}")

    all_levels = []
    current_id = args.start_id

    for tier, n_levels in sorted(difficulties_dict.items()):
        if n_levels > 0:
            if tier not in config:
                print(f"Warning: Tier {tier} not found in config, skipping")
                continue

            levels = generate_difficulty_set(
                tier_config=config[tier],
                n_levels=n_levels,
                start_id=current_id,
                tier=tier,
                rng=rng,
                verbose=args.verbose
            )

            all_levels.extend(levels)
            current_id += len(levels)

    if not all_levels:
        print("Error: No levels were generated")
        return

    output_data = convert_to_legacy_format(all_levels)

    with open(args.output_file, 'w') as f:
        json.dump(output_data, f, indent=2)

    fallbacks = sum(1 for level in all_levels if level["fallback"])
    print(f"\n✓ Successfully generated {len(all_levels)} total levels")
    print(f"✓ Saved to: {args.output_file}")
    print(f"✓ Problem IDs: {args.start_id} to {current_id - 1}")
    if fallbacks:
        print(f"  Note: {fallbacks} level(s) used the fallback board")

    print("\nBreakdown by tier:")
    for tier, n_levels in sorted(difficulties_dict.items()):
        if n_levels > 0:
            print(f"  Tier {tier}: {n_levels} levels")

if __name__ == "__main__":
    main()
