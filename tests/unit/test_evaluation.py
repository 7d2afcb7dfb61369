"""评估模块测试"""
import pytest

from core.actions import CaptureAction, Move, MoveType
from core.turns import draw
from bot.config import NightmareConfig
from bot.heuristic import BotDifficulty
from evaluation import (
    Arena,
    EvalResult,
    Evaluator,
    GameMetrics,
    HeuristicAgent,
    MatchResult,
    MetricsAggregator,
    MetricsCollector,
    NightmareAgent,
    RandomAgent,
    RunningStats,
    TournamentResult,
    create_agent,
    win_rate_interval,
)
from env import RingoEnv


class TestAgents:
    """智能体测试"""

    def test_random_agent_legal(self, make_state):
        state = make_state(["3 3 4", "1 2"])
        agent = RandomAgent(seed=0)
        for _ in range(5):
            assert agent.act(state, "p0") in state.get_legal_moves()

    def test_random_agent_stuck(self, make_state):
        state = make_state(["1", "2"], table="8 8", table_owner="p1", rest=None)
        with pytest.raises(ValueError):
            RandomAgent().act(state, "p0")

    def test_heuristic_name(self):
        assert HeuristicAgent(BotDifficulty.HARD).name == "hard"
        assert HeuristicAgent(BotDifficulty.EASY, name="rookie").name == "rookie"

    def test_rescue_move(self, make_state):
        state = make_state(["3 6 1", "2 2 4"], table="5 5", table_owner="p1", draw="6").with_draw("p0")
        move = HeuristicAgent(BotDifficulty.MEDIUM).act(state, "p0")

        assert move.move_type == MoveType.RESCUE
        assert move.indices == (1,)

    def test_drawn_card_inserted(self, make_state):
        state = make_state(["1 2", "3 4"], table="8", table_owner="p1", draw="7").with_draw("p0")
        move = HeuristicAgent(BotDifficulty.MEDIUM).act(state, "p0")
        assert move.move_type == MoveType.INSERT_DRAWN

    def test_capture_plan_followed(self, make_state):
        state = make_state(["7 7 1", "2 3"], table="5/6 5/6", table_owner="p1").with_play("p0", [0, 1])
        captured = [c.id for c in state.pending_capture.cards]
        agent = HeuristicAgent(BotDifficulty.MEDIUM)

        first = agent.act(state, "p0")
        assert first.move_type == MoveType.CAPTURE_INSERT_ONE
        state = state.with_capture_resolved("p0", CaptureAction.INSERT_ONE, first.position, first.card_id)

        second = agent.act(state, "p0")
        assert second.move_type == MoveType.CAPTURE_INSERT_ONE
        assert {first.card_id, second.card_id} == set(captured)

    def test_nightmare_context(self, make_state):
        agent = NightmareAgent(config=NightmareConfig(num_samples=2, horizon=2))
        agent.begin_game("p0")
        assert agent.context.bot_id == "p0"

        state = make_state(["1 2", "3 4"], current=1)
        result = draw(state, "p1")
        agent.observe(state, "p1", Move.draw(), result)
        assert agent.context.tracker.get("p1").draw_count == 1

        agent.reset()
        assert agent.context is None

    def test_create_agent(self):
        assert isinstance(create_agent("random"), RandomAgent)
        assert create_agent("medium", "m").name == "m"
        nightmare = create_agent("nightmare", config=NightmareConfig(num_samples=2))
        assert nightmare.config.num_samples == 2
        with pytest.raises(ValueError):
            create_agent("unknown")


class TestArena:
    """Arena 测试"""

    def test_play_match(self):
        arena = Arena(max_steps=400, seed=0)
        agents = [
            HeuristicAgent(BotDifficulty.EASY, name="easy", seed=1),
            HeuristicAgent(BotDifficulty.MEDIUM, name="medium", seed=2),
        ]
        results = arena.play_match(agents, n_games=2)

        assert len(results) == 2
        for result in results:
            assert result.agents == ("easy", "medium")
            assert result.winner in ("easy", "medium") or result.stalled
            if result.winner is not None:
                assert result.hand_sizes[result.winner] == 0

    def test_step_cap_stalls(self):
        arena = Arena(max_steps=1)
        result = arena.play_match([RandomAgent("a", seed=0), RandomAgent("b", seed=1)])[0]

        assert result.stalled
        assert result.winner is None

    def test_agent_count(self):
        with pytest.raises(ValueError):
            Arena().play_match([RandomAgent("solo")])

    def test_round_robin(self):
        arena = Arena(max_steps=200, seed=0)
        agents = [RandomAgent(f"r{i}", seed=i) for i in range(3)]
        result = arena.round_robin(agents, num_players=2, games_per_match=1)

        assert result.total_games == 6
        for name in ("r0", "r1", "r2"):
            assert result.standings[name]["games"] == 4
        assert len(result.get_ranking()) == 3

    def test_decision_times(self):
        arena = Arena(max_steps=100, seed=0)
        result = arena.round_robin([RandomAgent("r0", seed=0), RandomAgent("r1", seed=1)], num_players=2, games_per_match=1)

        assert arena.decision_times.get("r0")["count"] > 0
        assert result.standings["r0"]["avg_decision_ms"] >= 0.0


class TestTournamentResult:
    """TournamentResult 测试"""

    def test_ranking(self):
        result = TournamentResult(
            standings={"a": {"win_rate": 0.2}, "b": {"win_rate": 0.7}, "c": {}},
            total_games=10,
            matches=[],
        )
        assert result.get_ranking() == [("b", 0.7), ("a", 0.2), ("c", 0.0)]
        assert "1. b" in repr(result)


class TestMetrics:
    """指标测试"""

    def _match(self, winner, stalled=False):
        return MatchResult(
            agents=("a", "b"),
            winner=winner,
            winner_seat=None,
            length=10,
            stalled=stalled,
            hand_sizes={"a": 0 if winner == "a" else 3, "b": 0 if winner == "b" else 5},
        )

    def test_collector(self):
        collector = MetricsCollector()
        collector.add_match(self._match("a"))
        collector.add_match(self._match("b"))
        collector.add_game(GameMetrics.from_match(self._match(None, stalled=True)))

        a = collector.compute_metrics("a")
        assert a["games"] == 3
        assert a["win_rate"] == pytest.approx(1 / 3)
        assert a["stall_rate"] == pytest.approx(1 / 3)
        assert a["avg_cards_left"] == pytest.approx(2.0)

        overall = collector.compute_metrics()
        assert overall["total_games"] == 3
        assert overall["avg_length"] == 10

        collector.reset()
        assert collector.compute_metrics() == {}

    def test_running_stats(self):
        stats = RunningStats()
        assert stats.to_dict()["count"] == 0
        for x in (1.0, 2.0, 3.0):
            stats.update(x)

        assert stats.mean == pytest.approx(2.0)
        assert stats.std == pytest.approx(1.0)
        summary = stats.to_dict()
        assert summary["count"] == 3
        assert summary["p50"] == pytest.approx(2.0)
        assert summary["max"] == 3.0

    def test_aggregator(self):
        aggregator = MetricsAggregator()
        aggregator.add("nightmare", 10.0)
        aggregator.add("nightmare", 20.0)
        aggregator.add("easy", 1.0)

        assert aggregator.get("nightmare")["mean"] == pytest.approx(15.0)
        assert set(aggregator.get_all()) == {"nightmare", "easy"}
        assert aggregator.get("missing") == {}

        aggregator.reset()
        assert aggregator.get_all() == {}

    def test_win_rate_interval(self):
        assert win_rate_interval(0, 0) == (0.0, 0.0)

        low, high = win_rate_interval(50, 100)
        assert low < 0.5 < high
        assert low == pytest.approx(0.4038, abs=1e-3)
        assert high == pytest.approx(0.5962, abs=1e-3)

        low, high = win_rate_interval(0, 10)
        assert low == pytest.approx(0.0, abs=1e-9)
        assert high > 0.0


class TestEvaluator:
    """Evaluator 测试"""

    def test_evaluate(self):
        evaluator = Evaluator(env_fn=lambda: RingoEnv(num_players=2, max_steps=300, seed=0))
        result = evaluator.evaluate(RandomAgent(seed=0), n_games=3)

        assert isinstance(result, EvalResult)
        assert result.games_played == 3
        assert 0.0 <= result.win_rate <= 1.0
        assert result.win_rate + result.stall_rate <= 1.0
