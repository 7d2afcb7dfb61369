"""
决策线程池

在工作线程中执行机器人决策，避免耗时的模拟阻塞其他房间
"""
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable
import logging

from core.state import GameState

from .policy import BotDecision

logger = logging.getLogger(__name__)


class DecisionWorker:
    """
    机器人决策线程池

    同一房间内的决策仍然由调用方串行提交 (每个房间同时只有一个修改者)
    """

    def __init__(self, max_workers: int = 4):
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ringo-bot")

    def submit(self, fn: Callable[..., Any], *args, **kwargs) -> Future:
        return self._executor.submit(fn, *args, **kwargs)

    def decide_turn(self, policy, state: GameState, bot_id: str) -> 'Future[BotDecision]':
        """
        异步出牌决策

        Args:
            policy: NightmarePolicy 或 HeuristicPolicy
            state: 状态快照
            bot_id: 机器人 id

        Returns:
            Future[BotDecision]
        """
        logger.debug("Submitting turn decision for %s", bot_id)
        return self._executor.submit(policy.decide_turn, state, bot_id)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> 'DecisionWorker':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
