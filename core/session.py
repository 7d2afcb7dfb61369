"""
房间会话

一个房间独占的聚合: 当前对局快照、上一局赢家、机器人上下文。
所有动作在房间锁内串行执行 (同一房间同一时刻只有一个修改者)。
"""
from typing import Any, Callable, Dict, List, Optional, Sequence
import logging
import threading

from .actions import Move
from .state import GameConfig, GameState, Player
from .turns import ActionResult, apply_move, create_game

logger = logging.getLogger(__name__)

# 动作观察者: (动作前状态, 玩家, 动作, 结果)
MoveObserver = Callable[[GameState, str, Move, ActionResult], None]


class GameSession:
    """
    房间会话

    Attributes:
        room_key: 房间标识
        players: 座位上的玩家
        config: 对局配置
        previous_winner: 上一局赢家 (下一局先手)
    """

    def __init__(
        self,
        room_key: str,
        players: Sequence[Player],
        config: Optional[GameConfig] = None,
        context_factory: Optional[Callable[[str, str], Any]] = None,
    ):
        """
        Args:
            room_key: 房间标识
            players: 玩家
            config: 对局配置
            context_factory: 为机器人创建决策上下文的工厂 (room_key, bot_id) -> context
        """
        self.room_key = room_key
        self.players = list(players)
        self.config = config or GameConfig()
        self.previous_winner: Optional[str] = None

        self._context_factory = context_factory
        self._contexts: Dict[str, Any] = {}
        self._observers: List[MoveObserver] = []
        self._lock = threading.RLock()
        self._state: Optional[GameState] = None

    @property
    def state(self) -> Optional[GameState]:
        """当前快照"""
        with self._lock:
            return self._state

    def start(self, seed: Optional[int] = None) -> GameState:
        """开始新对局 (上一局赢家先手)，机器人上下文随对局重建"""
        with self._lock:
            self._state = create_game(self.players, self.previous_winner, self.config, seed)
            self._contexts.clear()
            return self._state

    def context_for(self, bot_id: str) -> Any:
        """获取 (必要时创建) 机器人的决策上下文"""
        with self._lock:
            if bot_id not in self._contexts:
                if self._context_factory is None:
                    raise RuntimeError("Session has no context factory")
                self._contexts[bot_id] = self._context_factory(self.room_key, bot_id)
            return self._contexts[bot_id]

    def add_observer(self, observer: MoveObserver) -> None:
        self._observers.append(observer)

    def apply(self, player_id: str, move: Move) -> ActionResult:
        """
        在房间锁内执行一个动作

        成功时替换快照，更新本房间的机器人上下文并通知观察者；失败时快照不变

        Returns:
            ActionResult
        """
        with self._lock:
            if self._state is None:
                raise RuntimeError("Session has not started")

            before = self._state
            result = apply_move(before, player_id, move)
            if not result.success:
                return result

            self._state = result.state
            if result.state.is_finished:
                self.previous_winner = result.state.winner
                logger.info("Room %s: %s wins", self.room_key, result.state.winner)

            for context in self._contexts.values():
                context.observe(before, player_id, move, result)
            for observer in self._observers:
                observer(before, player_id, move, result)

            return result
