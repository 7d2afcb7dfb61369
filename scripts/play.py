#!/usr/bin/env python3
"""
对战脚本

Usage:
    python scripts/play.py --mode watch                       # 观看机器人对战
    python scripts/play.py --mode play --opponent nightmare   # 与机器人对战
    python scripts/play.py --mode watch --bots nightmare hard medium --games 3
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List
import time

# 添加项目根目录到路径
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from core.cards import cards_to_str
from core.actions import Move
from core.state import GameState, Player
from core.session import GameSession
from bot.config import NightmareConfig
from evaluation import AGENT_TYPES, Agent, create_agent

logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
)
logger = logging.getLogger(__name__)

HUMAN_ID = "you"


def parse_args():
    parser = argparse.ArgumentParser(description="RINGO Play")

    parser.add_argument(
        "--mode",
        type=str,
        default="watch",
        choices=["watch", "play"],
        help="Mode: watch bots or play against bots",
    )
    parser.add_argument(
        "--bots",
        nargs="+",
        default=["nightmare", "hard", "medium"],
        choices=AGENT_TYPES,
        help="Bots in seat order",
    )
    parser.add_argument(
        "--opponent",
        type=str,
        default="medium",
        choices=AGENT_TYPES,
        help="Opponent type in play mode",
    )
    parser.add_argument("--opponents", type=int, default=2, help="Number of opponents in play mode")
    parser.add_argument("--delay", type=float, default=0.5, help="Delay between moves")
    parser.add_argument("--games", type=int, default=1, help="Number of games")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")

    # Nightmare 参数
    parser.add_argument("--num-samples", type=int, default=32)
    parser.add_argument("--horizon", type=int, default=6)

    return parser.parse_args()


def create_agents(kinds: List[str], args) -> List[Agent]:
    """创建智能体"""
    agents = []
    for i, kind in enumerate(kinds):
        kwargs = {}
        if kind == "nightmare":
            kwargs["config"] = NightmareConfig(num_samples=args.num_samples, horizon=args.horizon)
        agents.append(create_agent(kind, f"{kind}_{i}", **kwargs))
    return agents


def print_game_state(state: GameState, viewer_id: str = None):
    """打印游戏状态 (viewer_id 为 None 时显示所有手牌)"""
    print("\n" + "=" * 60)
    print(f"当前玩家: {state.current_player.name}  阶段: {state.turn_phase.value}")
    print("-" * 60)

    for p in state.players:
        marker = ">" if p.id == state.current_player.id else " "
        if viewer_id is None or p.id == viewer_id:
            print(f"{marker}[{p.name}] 手牌 ({len(p.hand)}): {cards_to_str(p.hand)}")
        else:
            print(f"{marker} {p.name}  手牌数: {len(p.hand)}")

    if state.table:
        owner = state.get_player(state.table_owner).name
        print(f"\n桌面: {cards_to_str(state.table)} ({owner})")
    else:
        print("\n桌面: 空")
    if state.drawn_card is not None:
        print(f"摸到: {state.drawn_card}")
    if state.pending_capture is not None:
        print(f"待收: {cards_to_str(state.pending_capture.cards)}")
    print(f"摸牌堆: {len(state.draw_pile)}  弃牌堆: {len(state.discard_pile)}")
    print("=" * 60)


def watch_game(args):
    """观看机器人对战"""
    agents = create_agents(args.bots, args)
    players = [Player(f"seat_{i}", agent.name, is_bot=True) for i, agent in enumerate(agents)]
    session = GameSession("watch", players)
    for agent in agents:
        session.add_observer(agent.observe)
    by_id = {p.id: agent for p, agent in zip(players, agents)}

    for game_idx in range(args.games):
        print(f"\n{'='*60}")
        print(f"Game {game_idx + 1}/{args.games}")
        print("=" * 60)

        state = session.start(args.seed)
        for player_id, agent in by_id.items():
            agent.begin_game(player_id)

        while not state.is_finished:
            print_game_state(state)
            if not state.get_legal_moves():
                print("\n僵局: 无牌可出也无牌可摸")
                break

            player_id = state.current_player.id
            move = by_id[player_id].act(state, player_id)
            print(f"\n{by_id[player_id].name}: {move}")

            result = session.apply(player_id, move)
            if not result.success:
                print(f"非法动作: {result.error}")
                break
            state = result.state

            time.sleep(args.delay)

        print("\n" + "=" * 60)
        if state.winner is not None:
            print(f"游戏结束! 胜者: {state.get_player(state.winner).name}")
        print(f"总步数: {state.step_count}")
        print("=" * 60)


def read_move(moves: List[Move]) -> Move:
    """读取玩家选择的动作"""
    print("\n可选动作:")
    for i, move in enumerate(moves[:30]):  # 只显示前30个
        print(f"  {i}: {move}")
    if len(moves) > 30:
        print(f"  ... 还有 {len(moves) - 30} 个动作")

    while True:
        choice = input("\n请选择动作编号 (或输入 'q' 退出): ")
        if choice.lower() == 'q':
            raise KeyboardInterrupt
        try:
            idx = int(choice)
        except ValueError:
            print("请输入数字")
            continue
        if 0 <= idx < len(moves):
            return moves[idx]
        print("无效选择，请重试")


def play_game(args):
    """与机器人对战"""
    agents = create_agents([args.opponent] * args.opponents, args)
    players = [Player(HUMAN_ID, "你")] + [
        Player(f"seat_{i + 1}", agent.name, is_bot=True) for i, agent in enumerate(agents)
    ]
    session = GameSession("play", players)
    for agent in agents:
        session.add_observer(agent.observe)
    by_id = {p.id: agent for p, agent in zip(players[1:], agents)}

    for game_idx in range(args.games):
        print(f"\n{'='*60}")
        print(f"Game {game_idx + 1}/{args.games}")
        print("=" * 60)

        state = session.start(args.seed)
        for player_id, agent in by_id.items():
            agent.begin_game(player_id)

        while not state.is_finished:
            moves = state.get_legal_moves()
            if not moves:
                print("\n僵局: 无牌可出也无牌可摸")
                break

            player_id = state.current_player.id
            if player_id == HUMAN_ID:
                print_game_state(state, HUMAN_ID)
                try:
                    move = read_move(moves)
                except KeyboardInterrupt:
                    print("退出游戏")
                    return
            else:
                move = by_id[player_id].act(state, player_id)
                print(f"\n{by_id[player_id].name}: {move}")
                time.sleep(args.delay)

            result = session.apply(player_id, move)
            if not result.success:
                print(f"非法动作: {result.error}")
                continue
            state = result.state

        print("\n" + "=" * 60)
        if state.winner == HUMAN_ID:
            print("恭喜你赢了!")
        elif state.winner is not None:
            print(f"你输了! 胜者: {state.get_player(state.winner).name}")
        print("=" * 60)


def main():
    args = parse_args()

    print("=" * 60)
    print("RINGO")
    print("=" * 60)

    if args.mode == "watch":
        watch_game(args)
    elif args.mode == "play":
        play_game(args)


if __name__ == "__main__":
    main()
