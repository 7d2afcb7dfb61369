"""机器人对战集成测试"""
import pytest

from core.actions import Move
from core.session import GameSession
from core.state import Player, TurnPhase
from bot.belief import BotContext
from bot.config import NightmareConfig
from bot.heuristic import BotDifficulty
from bot.policy import DecisionType, NightmarePolicy
from evaluation import Arena, HeuristicAgent, MetricsCollector, NightmareAgent


def _fast_config():
    return NightmareConfig(num_samples=3, horizon=3, decision_horizon=2, max_candidates=4)


class TestBotGames:
    """完整对局测试"""

    def test_nightmare_against_heuristics(self):
        arena = Arena(max_steps=300, seed=0)
        agents = [
            NightmareAgent(config=_fast_config()),
            HeuristicAgent(BotDifficulty.HARD, seed=1),
            HeuristicAgent(BotDifficulty.MEDIUM, seed=2),
        ]
        results = arena.play_match(agents, n_games=2)

        collector = MetricsCollector()
        for result in results:
            assert result.illegal_moves == 0
            assert result.winner is not None or result.stalled
            collector.add_match(result)

        assert collector.compute_metrics()["total_games"] == 2
        assert collector.compute_metrics("nightmare")["games"] == 2

    @pytest.mark.parametrize("num_players", [2, 4, 5])
    def test_player_counts(self, num_players):
        arena = Arena(max_steps=300, seed=num_players)
        difficulties = list(BotDifficulty)
        agents = [
            HeuristicAgent(difficulties[i % 3], name=f"bot_{i}", seed=i)
            for i in range(num_players)
        ]
        result = arena.play_match(agents)[0]

        assert result.illegal_moves == 0
        assert len(result.hand_sizes) == num_players


class TestSessionWithBots:
    """房间会话驱动机器人"""

    def test_bot_contexts_follow_session(self):
        players = [Player("human", "Human"), Player("bot", "Bot", is_bot=True)]
        session = GameSession(
            "room-1",
            players,
            context_factory=lambda room, bot_id: BotContext.create(room, bot_id, _fast_config()),
        )
        state = session.start(seed=4)
        context = session.context_for("bot")

        for _ in range(40):
            if state.is_finished:
                break
            pid = state.current_player.id
            if pid == "bot":
                move = _bot_move(context, state)
            else:
                move = state.get_legal_moves()[-1]
            result = session.apply(pid, move)
            assert result.success, result.error
            state = result.state

        state.check_conservation()
        assert context.tracker.get("human") is not None


def _bot_move(context, state):
    policy = NightmarePolicy(context)
    if state.turn_phase == TurnPhase.WAITING_FOR_PLAY_OR_DRAW:
        decision = policy.decide_turn(state, "bot")
        return Move.play(decision.indices) if decision.action == DecisionType.PLAY else Move.draw()
    return state.get_legal_moves()[-1]
