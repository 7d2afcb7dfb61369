"""
RINGO Gymnasium 环境

遵循标准 Gymnasium API，智能体控制一个座位，其他座位由对手策略驱动
"""
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union
import logging

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from core.cards import DECK_SIZE, cards_to_str
from core.actions import Move
from core.state import GameConfig, GameState, Player
from core.turns import apply_move, create_game

from .observation import ObservationBuilder
from .reward import RewardCalculator, RewardConfig, RewardType

logger = logging.getLogger(__name__)

# 合法动作下标的上限 (动作为 info["legal_moves"] 中的下标)
# 任一阶段的合法动作数都不超过 牌数 x (牌数 + 1)
MAX_ACTIONS = DECK_SIZE * (DECK_SIZE + 1)

AGENT_ID = "agent"

# 对手策略: (状态, 玩家 id) -> 动作
OpponentFn = Callable[[GameState, str], Move]


class RingoEnv(gym.Env):
    """
    RINGO Gymnasium 环境

    - 智能体坐在 0 号座位，id 为 "agent"
    - 每次 step 执行智能体的一个动作，然后由对手行动直到再次轮到智能体或游戏结束
    - 非法动作给予惩罚并保持状态

    API:
    - reset() -> observation, info
    - step(action) -> observation, reward, terminated, truncated, info
    """

    metadata = {
        "render_modes": ["human", "ansi"],
        "name": "Ringo-v1",
    }

    def __init__(
        self,
        num_players: int = 3,
        opponents: Optional[Sequence[Any]] = None,
        render_mode: Optional[str] = None,
        reward_type: str = "sparse",
        max_steps: int = 2000,
        config: Optional[GameConfig] = None,
        seed: Optional[int] = None,
    ):
        """
        Args:
            num_players: 玩家数 (2-5)
            opponents: 对手 (有 act(state, player_id) 方法的对象或可调用对象)，默认随机合法动作
            render_mode: 渲染模式 ("human", "ansi", None)
            reward_type: 奖励类型 ("sparse", "shaped")
            max_steps: 一局的最大动作数 (超出时截断)
            config: 对局配置
            seed: 随机种子
        """
        super().__init__()

        self.num_players = num_players
        self.render_mode = render_mode
        self.max_steps = max_steps
        self.config = config or GameConfig()
        self._seed = seed

        self._players = [Player(AGENT_ID, "Agent")] + [
            Player(f"opponent_{i}", f"Opponent {i}", is_bot=True)
            for i in range(1, num_players)
        ]
        self._opponents = self._build_opponents(opponents)
        # 有 begin_game / observe 方法的对手会收到对局开始和每个动作的通知
        self._opponent_agents = {
            p.id: opp for p, opp in zip(self._players[1:], opponents or [])
            if hasattr(opp, "begin_game")
        }

        self._obs_builder = ObservationBuilder(max_players=self.config.max_players)
        self._reward_calculator = RewardCalculator(RewardConfig(reward_type=RewardType(reward_type)))

        self._state: Optional[GameState] = None
        self._previous_winner: Optional[str] = None

        self.action_space = spaces.Discrete(MAX_ACTIONS)
        self.observation_space = self._obs_builder.observation_space()

    def _build_opponents(self, opponents: Optional[Sequence[Any]]) -> Dict[str, OpponentFn]:
        ids = [p.id for p in self._players[1:]]
        if opponents is None:
            return {pid: self._random_move for pid in ids}
        if len(opponents) != len(ids):
            raise ValueError(f"Expected {len(ids)} opponents, got {len(opponents)}")
        return {
            pid: (opp.act if hasattr(opp, "act") else opp)
            for pid, opp in zip(ids, opponents)
        }

    def _random_move(self, state: GameState, player_id: str) -> Move:
        moves = state.get_legal_moves()
        return moves[int(self.np_random.integers(len(moves)))]

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Dict[str, np.ndarray], Dict[str, Any]]:
        """
        重置环境

        Args:
            seed: 随机种子
            options: 额外选项 ({"previous_winner": id} 指定先手)

        Returns:
            (observation, info) 元组
        """
        super().reset(seed=seed)

        game_seed = seed if seed is not None else self._seed
        previous_winner = (options or {}).get("previous_winner", self._previous_winner)
        self._state = create_game(self._players, previous_winner, self.config, game_seed)
        for pid, opp in self._opponent_agents.items():
            opp.begin_game(pid)

        # 让对手先行动直到轮到智能体
        _, truncated = self._run_opponents()

        obs = self._build_observation()
        info = self._build_info()
        info["truncated"] = truncated

        if self.render_mode == "human":
            self.render()

        return obs, info

    def step(
        self,
        action: Union[int, Move],
    ) -> Tuple[Dict[str, np.ndarray], float, bool, bool, Dict[str, Any]]:
        """
        执行动作

        Args:
            action: info["legal_moves"] 中的下标或 Move 对象

        Returns:
            (observation, reward, terminated, truncated, info) 元组
        """
        if self._state is None:
            raise RuntimeError("Environment not reset. Call reset() first.")
        if self._state.is_finished:
            raise RuntimeError("Episode is over. Call reset() first.")

        move = self._decode_action(action)
        result = apply_move(self._state, AGENT_ID, move) if move is not None else None

        if result is None or not result.success:
            # 非法动作：给予惩罚并保持状态
            info = self._build_info()
            info["error"] = result.error if result is not None else "Invalid action"
            return self._build_observation(), self._reward_calculator.config.invalid_action_penalty, False, False, info

        prev_state = self._state
        self._notify(prev_state, AGENT_ID, move, result)
        self._state = result.state

        _, truncated = self._run_opponents()

        reward = self._reward_calculator.compute(self._state, prev_state, AGENT_ID)
        terminated = self._state.is_finished
        if terminated:
            self._previous_winner = self._state.winner

        obs = self._build_observation()
        info = self._build_info()

        if self.render_mode == "human":
            self.render()

        return obs, reward, terminated, truncated, info

    def _decode_action(self, action: Union[int, Move]) -> Optional[Move]:
        """解码动作"""
        if isinstance(action, Move):
            return action
        if isinstance(action, (int, np.integer)):
            moves = self._state.get_legal_moves()
            if 0 <= int(action) < len(moves):
                return moves[int(action)]
            return None
        raise ValueError(f"Invalid action type: {type(action)}")

    def _run_opponents(self) -> Tuple[int, bool]:
        """
        对手行动直到轮到智能体或游戏结束

        Returns:
            (对手动作数, 是否截断)
        """
        steps = 0
        while not self._state.is_finished:
            if self._state.step_count >= self.max_steps:
                return steps, True

            player_id = self._state.current_player.id
            if not self._state.get_legal_moves():
                # 无牌可出也无牌可摸
                logger.info("Stalemate at step %d", self._state.step_count)
                return steps, True
            if player_id == AGENT_ID:
                return steps, False

            move = self._opponents[player_id](self._state, player_id)
            result = apply_move(self._state, player_id, move)
            if not result.success:
                logger.warning("Opponent %s made an illegal move %s: %s", player_id, move, result.error)
                move = self._random_move(self._state, player_id)
                result = apply_move(self._state, player_id, move)
            self._notify(self._state, player_id, move, result)
            self._state = result.state
            steps += 1

        return steps, False

    def _notify(self, before: GameState, player_id: str, move: Move, result) -> None:
        for opp in self._opponent_agents.values():
            opp.observe(before, player_id, move, result)

    def _build_observation(self) -> Dict[str, np.ndarray]:
        return self._obs_builder.build(self._state, AGENT_ID).to_dict()

    def _build_info(self) -> Dict[str, Any]:
        legal_moves = self._state.get_legal_moves() if self._state.current_player.id == AGENT_ID else []

        if len(legal_moves) > MAX_ACTIONS:
            logger.warning("%d legal moves exceed the action space, mask truncated", len(legal_moves))
        mask = np.zeros(MAX_ACTIONS, dtype=np.int8)
        mask[:min(len(legal_moves), MAX_ACTIONS)] = 1

        info = {
            "current_player": self._state.current_player.id,
            "phase": self._state.turn_phase.value,
            "legal_moves": legal_moves,
            "legal_action_mask": mask,
            "step_count": self._state.step_count,
        }
        if self._state.is_finished:
            info["winner"] = self._state.winner
        return info

    def render(self) -> Optional[str]:
        if self.render_mode in ("ansi", "human"):
            return self._render_text()
        return None

    def _render_text(self) -> str:
        lines = ["=" * 50]
        lines.append(f"Phase: {self._state.turn_phase.value}")
        lines.append(f"Current Player: {self._state.current_player.id}")
        for p in self._state.players:
            lines.append(f"{p.id}: {cards_to_str(p.hand)} ({len(p.hand)})")
        if self._state.table:
            lines.append(f"Table: {cards_to_str(self._state.table)} by {self._state.table_owner}")
        lines.append(f"Draw pile: {len(self._state.draw_pile)}, discard pile: {len(self._state.discard_pile)}")
        if self._state.is_finished:
            lines.append(f"Winner: {self._state.winner}")
        lines.append("=" * 50)

        output = "\n".join(lines)
        if self.render_mode == "human":
            print(output)
        return output

    @property
    def state(self) -> Optional[GameState]:
        """当前状态 (用于调试)"""
        return self._state

    def get_legal_moves(self) -> List[Move]:
        if self._state is None or self._state.current_player.id != AGENT_ID:
            return []
        return self._state.get_legal_moves()

    def sample_action(self) -> int:
        """随机采样一个合法动作下标"""
        moves = self.get_legal_moves()
        if not moves:
            return 0
        return int(self.np_random.integers(len(moves)))


def make_env(env_id: str = "Ringo-v1", **kwargs) -> RingoEnv:
    """
    工厂函数：创建环境

    Args:
        env_id: 环境 ID
        **kwargs: 环境参数
    """
    return RingoEnv(**kwargs)
