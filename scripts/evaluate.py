#!/usr/bin/env python3
"""
评估脚本

Usage:
    python scripts/evaluate.py --agent nightmare --opponent medium --games 100
    python scripts/evaluate.py --tournament --agents nightmare hard medium easy random
"""
import argparse
import logging
import sys
from pathlib import Path
import json

# 添加项目根目录到路径
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from bot.config import NightmareConfig
from env import RingoEnv
from evaluation import (
    AGENT_TYPES,
    Arena,
    Evaluator,
    MetricsCollector,
    create_agent,
    win_rate_interval,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def parse_args():
    parser = argparse.ArgumentParser(description="RINGO Evaluation")

    # 模式
    parser.add_argument("--tournament", action="store_true", help="Run round-robin tournament")

    # 智能体
    parser.add_argument("--agent", type=str, default="nightmare", choices=AGENT_TYPES, help="Agent to evaluate")
    parser.add_argument("--agents", nargs="+", choices=AGENT_TYPES, help="Agents for tournament")
    parser.add_argument(
        "--opponent",
        type=str,
        default="medium",
        choices=AGENT_TYPES,
        help="Opponent type",
    )

    # 评估参数
    parser.add_argument("--games", type=int, default=100, help="Number of games")
    parser.add_argument("--players", type=int, default=3, help="Players per game")
    parser.add_argument("--max-steps", type=int, default=2000, help="Step cap per game")

    # Nightmare 参数
    parser.add_argument("--num-samples", type=int, default=32)
    parser.add_argument("--horizon", type=int, default=6)

    # 其他
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--output", type=str, help="Output file for results")
    parser.add_argument("--verbose", action="store_true", help="Verbose output")

    return parser.parse_args()


def build_agent(kind: str, name: str, args):
    kwargs = {}
    if kind == "nightmare":
        kwargs["config"] = NightmareConfig(num_samples=args.num_samples, horizon=args.horizon)
    return create_agent(kind, name, **kwargs)


def evaluate_single(args):
    """在环境中评估单个智能体"""
    logger.info(f"Evaluating {args.agent} against {args.players - 1} x {args.opponent}")

    agent = build_agent(args.agent, args.agent, args)
    opponents = [build_agent(args.opponent, f"{args.opponent}_{i}", args) for i in range(1, args.players)]

    evaluator = Evaluator(env_fn=lambda: RingoEnv(
        num_players=args.players,
        opponents=opponents,
        max_steps=args.max_steps,
        seed=args.seed,
    ))
    result = evaluator.evaluate(agent=agent, n_games=args.games, verbose=args.verbose)

    low, high = win_rate_interval(round(result.win_rate * result.games_played), result.games_played)

    logger.info("=" * 50)
    logger.info("Evaluation Results")
    logger.info("=" * 50)
    logger.info(f"Win Rate: {result.win_rate:.2%} (95% CI {low:.2%} - {high:.2%})")
    logger.info(f"Average Reward: {result.avg_reward:.2f}")
    logger.info(f"Average Length: {result.avg_length:.1f}")
    logger.info(f"Stall Rate: {result.stall_rate:.2%}")
    logger.info("=" * 50)

    if args.output:
        with open(args.output, "w") as f:
            json.dump({
                "win_rate": result.win_rate,
                "avg_reward": result.avg_reward,
                "avg_length": result.avg_length,
                "stall_rate": result.stall_rate,
                "games_played": result.games_played,
            }, f, indent=2)
        logger.info(f"Results saved to {args.output}")

    return result


def run_tournament(args):
    """运行循环赛"""
    kinds = args.agents or ["nightmare", "hard", "medium", "easy"]
    logger.info(f"Running tournament with {len(kinds)} agents")

    agents = [build_agent(kind, f"{kind}_{i}", args) for i, kind in enumerate(kinds)]
    arena = Arena(max_steps=args.max_steps, seed=args.seed)

    n_perms = 1
    for k in range(args.players):
        n_perms *= len(agents) - k
    result = arena.round_robin(
        agents,
        num_players=args.players,
        games_per_match=max(1, args.games // max(1, n_perms)),
    )

    collector = MetricsCollector()
    for match in result.matches:
        collector.add_match(match)

    logger.info("=" * 50)
    logger.info("Tournament Results")
    logger.info("=" * 50)

    ranking = result.get_ranking()
    for i, (name, win_rate) in enumerate(ranking):
        metrics = collector.compute_metrics(name)
        logger.info(
            f"{i+1}. {name}: {win_rate:.2%} "
            f"({metrics.get('games', 0)} games, {metrics.get('avg_cards_left', 0.0):.1f} cards left, "
            f"{result.standings[name].get('avg_decision_ms', 0.0):.1f} ms/move)"
        )

    overall = collector.compute_metrics()
    logger.info(f"Average Length: {overall.get('avg_length', 0.0):.1f}")
    logger.info(f"Stall Rate: {overall.get('stall_rate', 0.0):.2%}")
    logger.info("=" * 50)

    if args.output:
        with open(args.output, "w") as f:
            json.dump({
                "rankings": ranking,
                "total_games": result.total_games,
                "standings": result.standings,
            }, f, indent=2)

    return result


def main():
    args = parse_args()

    if args.tournament:
        run_tournament(args)
    else:
        evaluate_single(args)


if __name__ == "__main__":
    main()
