"""
评估器

智能体接口与评估流程:
- Agent.act(state, player_id) 返回一个 Move，与人类玩家使用相同的动作入口
- 机器人策略的决策 (BotDecision) 在这里转换为具体动作
"""
from typing import Callable, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
import logging
import random

import numpy as np

from core.actions import Move
from core.state import DRAWN_CARD_PHASES, GameState, TurnPhase
from core.turns import ActionResult
from bot.belief import BotContext
from bot.config import HeuristicConfig, NightmareConfig
from bot.heuristic import BotDifficulty, HeuristicPolicy
from bot.policy import DecisionType, NightmarePolicy
from env.ringo_env import AGENT_ID

logger = logging.getLogger(__name__)


@dataclass
class EvalResult:
    """评估结果"""
    win_rate: float
    avg_reward: float
    avg_length: float
    games_played: int
    stall_rate: float = 0.0
    extra_stats: Dict[str, float] = field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"EvalResult(win_rate={self.win_rate:.2%}, "
            f"avg_reward={self.avg_reward:.2f}, "
            f"games={self.games_played})"
        )


class Agent:
    """智能体基类"""

    def __init__(self, name: str = "agent"):
        self.name = name

    def act(self, state: GameState, player_id: str) -> Move:
        """选择动作"""
        raise NotImplementedError

    def observe(self, before: GameState, player_id: str, move: Move, result: ActionResult) -> None:
        """观察一个被接受的动作 (任何玩家)"""
        pass

    def reset(self):
        """重置内部状态"""
        pass

    def begin_game(self, player_id: str) -> None:
        """新对局开始 (player_id 为本局座位)"""
        self.reset()


class RandomAgent(Agent):
    """随机合法动作"""

    def __init__(self, name: str = "random", seed: Optional[int] = None):
        super().__init__(name)
        self.rng = random.Random(seed)

    def act(self, state: GameState, player_id: str) -> Move:
        moves = state.get_legal_moves()
        if not moves:
            raise ValueError("No legal moves")
        return self.rng.choice(moves)


class PolicyAgent(Agent):
    """
    机器人策略智能体

    根据回合阶段调用策略的四个决策入口，并将决策转换为动作。
    收牌全部插入时按插入计划逐张执行。
    """

    def __init__(self, name: str):
        super().__init__(name)
        self._capture_plan: List[Tuple[int, int]] = []
        self._plan_ids: frozenset = frozenset()

    def policy_for(self, player_id: str):
        raise NotImplementedError

    def reset(self):
        self._capture_plan = []
        self._plan_ids = frozenset()

    def act(self, state: GameState, player_id: str) -> Move:
        policy = self.policy_for(player_id)
        phase = state.turn_phase

        if phase == TurnPhase.WAITING_FOR_PLAY_OR_DRAW:
            decision = policy.decide_turn(state, player_id)
            if decision.action == DecisionType.PLAY:
                return Move.play(decision.indices)
            return Move.draw()

        if phase in DRAWN_CARD_PHASES:
            rescue = state.rescue_option()
            decision = policy.decide_rescue(state, player_id, state.drawn_card, rescue is not None, rescue)
            if decision.action == DecisionType.RESCUE:
                return Move.rescue(decision.indices, decision.position)

            decision = policy.decide_insertion(state, player_id, state.drawn_card)
            if decision.action == DecisionType.INSERT:
                return Move.insert_drawn(decision.position)
            return Move.discard_drawn()

        if phase == TurnPhase.WAITING_FOR_CAPTURE_DECISION:
            return self._capture_move(policy, state, player_id)

        raise ValueError(f"No decision for phase {phase.value}")

    def _capture_move(self, policy, state: GameState, player_id: str) -> Move:
        remaining = frozenset(c.id for c in state.pending_capture.cards)

        if not self._capture_plan or remaining != self._plan_ids:
            decision = policy.decide_capture(state, player_id, state.pending_capture.cards)
            if decision.action == DecisionType.DISCARD_ALL:
                self._capture_plan = []
                return Move.discard_capture()
            self._capture_plan = list(decision.insertions)

        card_id, position = self._capture_plan.pop(0)
        self._plan_ids = remaining - {card_id}
        return Move.insert_capture(card_id, position)


class HeuristicAgent(PolicyAgent):
    """Easy/Medium/Hard 启发式机器人"""

    def __init__(
        self,
        difficulty: BotDifficulty = BotDifficulty.MEDIUM,
        name: Optional[str] = None,
        config: Optional[HeuristicConfig] = None,
        seed: Optional[int] = None,
    ):
        super().__init__(name or difficulty.value.lower())
        self.policy = HeuristicPolicy(difficulty, config, random.Random(seed) if seed is not None else None)

    def policy_for(self, player_id: str) -> HeuristicPolicy:
        return self.policy


class NightmareAgent(PolicyAgent):
    """
    Nightmare 机器人

    每局创建新的决策上下文，并通过 observe 更新对手信念
    """

    def __init__(
        self,
        name: str = "nightmare",
        config: Optional[NightmareConfig] = None,
        room_key: str = "arena",
    ):
        super().__init__(name)
        self.config = config or NightmareConfig()
        self.room_key = room_key
        self.context: Optional[BotContext] = None

    def reset(self):
        super().reset()
        self.context = None

    def begin_game(self, player_id: str) -> None:
        super().begin_game(player_id)
        self.context = BotContext.create(self.room_key, player_id, self.config)

    def policy_for(self, player_id: str) -> NightmarePolicy:
        if self.context is None or self.context.bot_id != player_id:
            self.context = BotContext.create(self.room_key, player_id, self.config)
        return NightmarePolicy(self.context)

    def observe(self, before: GameState, player_id: str, move: Move, result: ActionResult) -> None:
        if self.context is not None:
            self.context.observe(before, player_id, move, result)


class Evaluator:
    """
    评估器

    在 RingoEnv 中评估一个智能体 (坐在智能体座位上)
    """

    def __init__(self, env_fn: Callable):
        self.env_fn = env_fn

    def evaluate(
        self,
        agent: Agent,
        n_games: int = 100,
        verbose: bool = False,
    ) -> EvalResult:
        """
        评估智能体

        Args:
            agent: 待评估智能体
            n_games: 游戏数量
            verbose: 是否输出详情

        Returns:
            评估结果
        """
        env = self.env_fn()

        wins = 0
        stalls = 0
        rewards = []
        lengths = []

        for game_idx in range(n_games):
            agent.begin_game(AGENT_ID)
            obs, info = env.reset()
            done = info.get("truncated", False)
            episode_reward = 0.0

            while not done and not env.state.is_finished:
                state = env.state
                move = agent.act(state, info["current_player"])
                obs, reward, terminated, truncated, info = env.step(move)
                if "error" in info:
                    logger.warning("Agent %s made an illegal move %s: %s", agent.name, move, info["error"])
                    obs, reward, terminated, truncated, info = env.step(env.sample_action())
                episode_reward += reward
                done = terminated or truncated

            winner = env.state.winner
            if winner == AGENT_ID:
                wins += 1
            elif winner is None:
                stalls += 1

            rewards.append(episode_reward)
            lengths.append(env.state.step_count)

            if verbose and (game_idx + 1) % 10 == 0:
                logger.info(f"Game {game_idx + 1}/{n_games}, Win rate: {wins/(game_idx+1):.2%}")

        return EvalResult(
            win_rate=wins / n_games if n_games > 0 else 0.0,
            avg_reward=float(np.mean(rewards)) if rewards else 0.0,
            avg_length=float(np.mean(lengths)) if lengths else 0.0,
            games_played=n_games,
            stall_rate=stalls / n_games if n_games > 0 else 0.0,
        )


AGENT_TYPES = ["random", "easy", "medium", "hard", "nightmare"]


def create_agent(kind: str, name: Optional[str] = None, **kwargs) -> Agent:
    """
    工厂函数：按类型名创建智能体

    Args:
        kind: 智能体类型 ("random", "easy", "medium", "hard", "nightmare")
        name: 智能体名称 (默认为类型名)
        **kwargs: 传给智能体构造函数的参数
    """
    if kind == "random":
        return RandomAgent(name or kind, **kwargs)
    if kind == "nightmare":
        return NightmareAgent(name or kind, **kwargs)
    if kind in ("easy", "medium", "hard"):
        return HeuristicAgent(BotDifficulty(kind.upper()), name, **kwargs)
    raise ValueError(f"Unknown agent type: {kind}")
