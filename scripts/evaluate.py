#!/usr/bin/env python3
"""
评估脚本

Usage:
    python scripts/evaluate.py --agent rule --games 100
    python scripts/evaluate.py --tournament --games 200 --players 4
    python scripts/evaluate.py --agent random --house-rules eights_wild --output result.json
"""
import argparse
import logging
import sys
from pathlib import Path
from functools import partial
import json

# 添加项目根目录到路径
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from core import GameConfig, HOUSE_RULES, first_match
from env import BartokEnv
from evaluation import (
    Evaluator,
    RandomAgent,
    RuleBasedAgent,
    Arena,
    MetricsCollector,
    agent_strategy,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def parse_args():
    parser = argparse.ArgumentParser(description="Bartok Evaluation")

    # 模式
    parser.add_argument("--tournament", action="store_true", help="Run automated games")

    # 智能体
    parser.add_argument(
        "--agent",
        type=str,
        default="rule",
        choices=["random", "rule"],
        help="Agent to evaluate",
    )

    # 牌局参数
    parser.add_argument("--games", type=int, default=100, help="Number of games")
    parser.add_argument("--players", type=int, default=4, help="Number of players")
    parser.add_argument("--starting-cards", type=int, default=7, help="Cards dealt per player")
    parser.add_argument(
        "--house-rules",
        nargs="*",
        default=[],
        choices=sorted(HOUSE_RULES),
        help="House rules to enable",
    )
    parser.add_argument(
        "--draw-then-play",
        action="store_true",
        help="Allow playing after drawing in the same turn",
    )
    parser.add_argument("--max-turns", type=int, default=1000, help="Turn limit per game")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")

    # 其他
    parser.add_argument("--output", type=str, help="Output file for results")
    parser.add_argument("--verbose", action="store_true", help="Verbose output")

    return parser.parse_args()


def create_agent(name: str, seed=None):
    if name == "random":
        return RandomAgent("random", seed=seed)
    return RuleBasedAgent("rule")


def evaluate_single(args):
    """评估单个智能体"""
    logger.info(f"Evaluating agent: {args.agent}")

    env_fn = partial(
        BartokEnv,
        num_players=args.players,
        num_starting_cards=args.starting_cards,
        house_rules=tuple(args.house_rules),
        draw_ends_turn=not args.draw_then_play,
        max_turns=args.max_turns,
        seed=args.seed,
    )
    evaluator = Evaluator(env_fn=env_fn)
    agent = create_agent(args.agent, args.seed)

    result = evaluator.evaluate(agent, n_games=args.games, verbose=args.verbose)

    logger.info("=" * 50)
    logger.info("Evaluation Results")
    logger.info("=" * 50)
    logger.info(f"Win Rate: {result.win_rate:.2%}")
    logger.info(f"Average Reward: {result.avg_reward:.2f}")
    logger.info(f"Average Length: {result.avg_length:.1f}")
    if result.extra_stats:
        logger.info(
            f"Length: std {result.extra_stats['length_std']:.1f}, "
            f"min {result.extra_stats['length_min']:.0f}, max {result.extra_stats['length_max']:.0f}"
        )
    logger.info(f"Truncation Rate: {result.truncation_rate:.2%}")
    logger.info("=" * 50)

    if args.output:
        with open(args.output, "w") as f:
            json.dump({
                "agent": args.agent,
                "win_rate": result.win_rate,
                "avg_reward": result.avg_reward,
                "avg_length": result.avg_length,
                "truncation_rate": result.truncation_rate,
                "games_played": result.games_played,
                "extra_stats": result.extra_stats,
            }, f, indent=2)
        logger.info(f"Results saved to {args.output}")

    return result


def run_tournament(args):
    """自动玩家对局统计"""
    names = ["first_match", "random"]
    strategies = [first_match, agent_strategy(RandomAgent("random", seed=args.seed))]
    agents = [
        (f"{names[i % 2]}_{i}", strategies[i % 2])
        for i in range(args.players)
    ]
    logger.info(f"Running {args.games} games with {[name for name, _ in agents]}")

    config = GameConfig(
        num_starting_cards=args.starting_cards,
        house_rules=tuple(args.house_rules),
        draw_ends_turn=not args.draw_then_play,
        max_turns=args.max_turns,
    )
    arena = Arena(config)
    result = arena.round_robin(agents, n_games=args.games, seed=args.seed)

    collector = MetricsCollector()
    for match in result.matches:
        collector.add_game(match)
    summary = collector.compute_metrics()

    logger.info("=" * 50)
    logger.info("Tournament Results")
    logger.info("=" * 50)

    ranking = result.get_ranking()
    for i, (name, win_rate) in enumerate(ranking):
        logger.info(f"{i+1}. {name}: {win_rate:.2%}")

    logger.info(f"Average Length: {summary['avg_length']:.1f} turns")
    logger.info(
        f"Length Range: {summary['length_min']:.0f}-{summary['length_max']:.0f} "
        f"(std {summary['length_std']:.1f})"
    )
    logger.info(f"Average Recycles: {summary['avg_recycles']:.2f}")
    logger.info(f"Truncation Rate: {summary['truncation_rate']:.2%}")
    logger.info("=" * 50)

    if args.output:
        with open(args.output, "w") as f:
            json.dump({
                "rankings": ranking,
                "total_games": result.total_games,
                "summary": summary,
            }, f, indent=2)
        logger.info(f"Results saved to {args.output}")

    return result


def main():
    args = parse_args()

    if args.tournament:
        run_tournament(args)
    else:
        evaluate_single(args)


if __name__ == "__main__":
    main()
