"""
对战竞技场

组织多智能体对战: 每局通过 GameSession 驱动，
与人类玩家相同的动作入口，并在每个动作后检查牌的守恒
"""
from typing import Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field
from collections import defaultdict
from itertools import permutations
import logging
import random
import time

import numpy as np

from core.state import GameConfig, Player
from core.session import GameSession

from .evaluator import Agent
from .metrics import MetricsAggregator

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """对局结果"""
    agents: Tuple[str, ...]  # 按座位顺序
    winner: Optional[str]  # 获胜智能体名，僵局为 None
    winner_seat: Optional[str]
    length: int
    stalled: bool = False
    illegal_moves: int = 0
    hand_sizes: Dict[str, int] = field(default_factory=dict)


@dataclass
class TournamentResult:
    """锦标赛结果"""
    standings: Dict[str, Dict[str, float]]
    total_games: int
    matches: List[MatchResult]

    def get_ranking(self) -> List[Tuple[str, float]]:
        """获取排名"""
        return sorted(
            [(name, stats.get("win_rate", 0.0)) for name, stats in self.standings.items()],
            key=lambda x: x[1],
            reverse=True,
        )

    def __repr__(self) -> str:
        ranking = self.get_ranking()
        lines = [f"Tournament Results ({self.total_games} games):"]
        for i, (name, win_rate) in enumerate(ranking):
            lines.append(f"  {i+1}. {name}: {win_rate:.2%}")
        return "\n".join(lines)


class Arena:
    """
    对战竞技场

    Attributes:
        config: 对局配置
        max_steps: 单局动作上限 (超出判为僵局)
        check_conservation: 是否在每个动作后检查牌的守恒
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        max_steps: int = 2000,
        check_conservation: bool = True,
        seed: Optional[int] = None,
    ):
        self.config = config or GameConfig()
        self.max_steps = max_steps
        self.check_conservation = check_conservation
        self.rng = random.Random(seed)
        # 每个智能体的决策耗时 (毫秒)
        self.decision_times = MetricsAggregator()

    def create_session(self, agents: Sequence[Agent], room_key: str = "arena") -> GameSession:
        """为一组智能体创建房间会话，智能体作为动作观察者"""
        players = [
            Player(f"seat_{i}", agent.name, is_bot=True)
            for i, agent in enumerate(agents)
        ]
        session = GameSession(room_key, players, self.config)
        for agent in agents:
            session.add_observer(agent.observe)
        return session

    def play_game(
        self,
        session: GameSession,
        agents: Sequence[Agent],
        seed: Optional[int] = None,
    ) -> MatchResult:
        """
        进行一局

        Args:
            session: 房间会话 (座位与 agents 一一对应)
            agents: 智能体
            seed: 发牌随机种子

        Returns:
            对局结果
        """
        by_id = {p.id: agent for p, agent in zip(session.players, agents)}

        state = session.start(seed)
        for player_id, agent in by_id.items():
            agent.begin_game(player_id)

        stalled = False
        illegal = 0

        while not state.is_finished:
            if state.step_count >= self.max_steps:
                stalled = True
                break
            legal = state.get_legal_moves()
            if not legal:
                # 无牌可出也无牌可摸
                stalled = True
                break

            player_id = state.current_player.id
            agent = by_id[player_id]
            start = time.perf_counter()
            move = agent.act(state, player_id)
            self.decision_times.add(agent.name, (time.perf_counter() - start) * 1000.0)
            result = session.apply(player_id, move)
            if not result.success:
                illegal += 1
                logger.warning("%s made an illegal move %s: %s", agent.name, move, result.error)
                session.apply(player_id, self.rng.choice(legal))

            state = session.state
            if self.check_conservation:
                state.check_conservation()

        if stalled:
            logger.info("Game stalled after %d steps", state.step_count)

        winner = by_id[state.winner].name if state.winner is not None else None
        return MatchResult(
            agents=tuple(agent.name for agent in agents),
            winner=winner,
            winner_seat=state.winner,
            length=state.step_count,
            stalled=stalled,
            illegal_moves=illegal,
            hand_sizes={by_id[p.id].name: len(p.hand) for p in state.players},
        )

    def play_match(
        self,
        agents: Sequence[Agent],
        n_games: int = 1,
    ) -> List[MatchResult]:
        """
        同一房间连续进行多局 (上一局赢家先手)

        Args:
            agents: 2-5 个智能体，按座位顺序
            n_games: 对局数

        Returns:
            对局结果列表
        """
        if not self.config.min_players <= len(agents) <= self.config.max_players:
            raise ValueError(f"Need {self.config.min_players}-{self.config.max_players} agents, got {len(agents)}")

        session = self.create_session(agents)
        return [self.play_game(session, agents) for _ in range(n_games)]

    def round_robin(
        self,
        agents: List[Agent],
        num_players: int = 3,
        games_per_match: int = 10,
    ) -> TournamentResult:
        """
        循环赛

        每种座位排列都对战

        Args:
            agents: 智能体列表
            num_players: 每局人数
            games_per_match: 每场比赛的对局数

        Returns:
            锦标赛结果
        """
        all_matches = []
        for perm in permutations(range(len(agents)), num_players):
            match_agents = [agents[i] for i in perm]
            all_matches.extend(self.play_match(match_agents, games_per_match))

        return self._standings(agents, all_matches)

    def tournament(
        self,
        agents: List[Agent],
        n_rounds: int = 100,
        num_players: int = 3,
    ) -> TournamentResult:
        """
        锦标赛

        每轮随机选出 num_players 个智能体并随机排座

        Args:
            agents: 智能体列表
            n_rounds: 轮数
            num_players: 每局人数

        Returns:
            锦标赛结果
        """
        all_matches = []
        for _ in range(n_rounds):
            match_agents = self.rng.sample(agents, min(num_players, len(agents)))
            all_matches.extend(self.play_match(match_agents, n_games=1))

        return self._standings(agents, all_matches)

    def _standings(self, agents: Sequence[Agent], matches: List[MatchResult]) -> TournamentResult:
        standings = {agent.name: defaultdict(float) for agent in agents}
        cards_left: Dict[str, List[int]] = defaultdict(list)

        for result in matches:
            for name in result.agents:
                stats = standings[name]
                stats["games"] += 1
                if result.stalled:
                    stats["stalls"] += 1
                if result.winner == name:
                    stats["wins"] += 1
                cards_left[name].append(result.hand_sizes.get(name, 0))

        # 计算胜率
        for name, stats in standings.items():
            if stats["games"] > 0:
                stats["win_rate"] = stats["wins"] / stats["games"]
                stats["avg_cards_left"] = float(np.mean(cards_left[name]))
                stats["avg_decision_ms"] = self.decision_times.get(name).get("mean", 0.0)

        return TournamentResult(
            standings={name: dict(stats) for name, stats in standings.items()},
            total_games=len(matches),
            matches=matches,
        )
