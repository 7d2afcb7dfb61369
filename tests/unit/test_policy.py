"""Nightmare 决策测试"""
import pytest

from core.actions import Move
from core.cards import Card
from core.state import GameState, Player
from core.rules import RuleEngine
from core.turns import apply_move
from bot.belief import BotContext
from bot.config import NightmareConfig
from bot.policy import DecisionType, NightmarePolicy
from bot.rollout import CandidateKind, RolloutSimulator, RolloutStats


def _policy(bot_id="p0", **kwargs):
    kwargs.setdefault("num_samples", 4)
    kwargs.setdefault("horizon", 3)
    kwargs.setdefault("decision_horizon", 2)
    kwargs.setdefault("max_candidates", 5)
    return NightmarePolicy(BotContext.create("room", bot_id, NightmareConfig(**kwargs)))


class TestDecideTurn:
    """出牌决策测试"""

    def test_draw_without_combos(self, make_state):
        state = make_state(["1 2", "3 4 5"], table="8 8", table_owner="p1")
        decision = _policy().decide_turn(state, "p0")
        assert decision.action == DecisionType.DRAW

    def test_emergency_smallest_play(self, make_state):
        state = make_state(["3 5 5", "1"], table="2", table_owner="p1")
        decision = _policy().decide_turn(state, "p0")

        assert decision.action == DecisionType.PLAY
        assert decision.indices == (0,)

    def test_immediate_win_chosen(self, make_state):
        state = make_state(["4 4", "1 2 3 5 6", "7 7 8 1 2"])
        decision = _policy().decide_turn(state, "p0")

        assert decision.action == DecisionType.PLAY
        assert decision.indices == (0, 1)

    @pytest.mark.parametrize("seed", range(4))
    def test_decision_always_legal(self, seed):
        state = GameState.initial([Player(f"p{i}", f"P{i}") for i in range(3)], seed=seed)
        bot_id = state.current_player.id
        decision = _policy(bot_id).decide_turn(state, bot_id)

        if decision.action == DecisionType.PLAY:
            move = Move.play(decision.indices)
        else:
            move = Move.draw()
        assert apply_move(state, bot_id, move).success

    def test_pass_probability(self, make_state):
        state = make_state(["1 1 1 1 1", "2 3", "4 5"])
        policy = _policy()
        # 两个对手都少于 5 张
        assert policy.pass_probability(state, "p0", 5) == pytest.approx(0.75 * 0.75)
        assert policy.pass_probability(state, "p0", 1) == pytest.approx(0.4 * 0.4)

        policy.context.tracker.ensure_players(state.players)
        assert policy.pass_probability(state, "p0", 1) == pytest.approx(0.5 * 0.5)


def _fixed_rollouts(monkeypatch, draw_utility):
    """固定模拟结果: 出牌候选效用为 0，摸牌候选效用为 draw_utility"""

    def simulate(self, state, bot_id, candidate, horizon=None, num_samples=None):
        win = draw_utility / self.config.win_weight if candidate.kind == CandidateKind.DRAW else 0.0
        return RolloutStats(win, 0.0, 0.0, 0.0, trials=1)

    monkeypatch.setattr(RolloutSimulator, "simulate", simulate)


class TestDrawMargin:
    """摸牌差值测试"""

    def _state(self, make_state):
        return make_state(["3 6 6 1", "1 2 4 5 7", "1 2 4 5 8"], table="2", table_owner="p1")

    def _best_bonus(self, policy, state):
        combos = RuleEngine.find_valid_combos(state.get_hand("p0"), state.table_combo)
        return max(policy.play_bonus(state, "p0", c) for c in combos)

    def test_draw_beyond_margin(self, make_state, monkeypatch):
        state = self._state(make_state)
        policy = _policy()
        best = self._best_bonus(policy, state)
        _fixed_rollouts(monkeypatch, best + policy.config.draw_margin + 5)

        assert policy.decide_turn(state, "p0").action == DecisionType.DRAW

    def test_play_within_margin(self, make_state, monkeypatch):
        state = self._state(make_state)
        policy = _policy()
        best = self._best_bonus(policy, state)
        _fixed_rollouts(monkeypatch, best + policy.config.draw_margin - 5)

        decision = policy.decide_turn(state, "p0")
        assert decision.action == DecisionType.PLAY
        assert decision.utility == pytest.approx(best)

    def test_empty_table_never_draws(self, make_state, monkeypatch):
        state = make_state(["3 6 6 1", "1 2 4 5 7", "1 2 4 5 8"])
        _fixed_rollouts(monkeypatch, 1000.0)
        assert _policy().decide_turn(state, "p0").action == DecisionType.PLAY


class TestPlayBonus:
    """出牌加成测试"""

    def _combo(self, state, positions):
        combos = RuleEngine.find_valid_combos(state.get_hand("p0"), state.table_combo)
        return next(c for c in combos if c.positions == positions)

    def test_pile_close_only_for_large_combos(self, make_state, monkeypatch):
        state = make_state(["5 5 5 5 1 2", "1 2 3 4 6"])
        policy = _policy()
        sizes = []
        monkeypatch.setattr(
            policy, "pile_close_bonus",
            lambda state, bot_id, size, after: sizes.append(size) or 0.0,
        )

        policy.play_bonus(state, "p0", self._combo(state, (0, 1, 2)))
        assert sizes == []
        policy.play_bonus(state, "p0", self._combo(state, (0, 1, 2, 3)))
        assert sizes == [4]

    def test_pile_close_bonus(self, make_state):
        state = make_state(["5 5 5 5 1 2", "1 2 3 4 6"])
        policy = _policy()
        after = state.get_hand("p0")[4:]
        # 唯一的对手少于 6 张: 通过概率 0.65
        assert policy.pile_close_bonus(state, "p0", 4, after) == pytest.approx(4 * 10 * 0.65)
        assert policy.pile_close_bonus(state, "p0", 4, ()) == 0.0

    def test_pile_close_below_threshold(self, make_state):
        state = make_state(["5 5 5 5 1 2", "1 2 3 4 6 7 8", "1 2 3 4 6 7 8"])
        after = state.get_hand("p0")[4:]
        # 0.4 * 0.4 不超过阈值
        assert _policy().pile_close_bonus(state, "p0", 4, after) == 0.0

    def test_efficient_beat(self, make_state):
        state = make_state(["3 6 6 1", "1 2 4 5 7", "1 2 4 5 8"], table="2", table_owner="p1")
        policy = _policy()
        single = policy.play_bonus(state, "p0", self._combo(state, (0,)))
        pair = policy.play_bonus(state, "p0", self._combo(state, (1, 2)))
        # 单张与桌面同张数，对子更大
        assert single >= 20 + 6 + 12
        assert pair >= 20 + 6 * 2


class TestDecideCapture:
    """收牌决策测试"""

    def test_split_card_taken(self, make_state):
        state = make_state(["7 7 1", "2 3"], table="5/6 5/6", table_owner="p1").with_play("p0", [0, 1])
        captured = state.pending_capture.cards
        decision = _policy().decide_capture(state, "p0", captured)

        assert decision.action == DecisionType.INSERT_ALL
        assert [cid for cid, _ in decision.insertions] == [c.id for c in captured]

    def test_completes_triple(self, make_state):
        state = make_state(["6 6 5 5", "2 3"], table="5", table_owner="p1").with_play("p0", [0, 1])
        decision = _policy().decide_capture(state, "p0", state.pending_capture.cards)
        assert decision.action == DecisionType.INSERT_ALL

    def test_simulated_choice(self, make_state):
        state = make_state(["6 6 1", "2 3 4"], table="5 5", table_owner="p1").with_play("p0", [0, 1])
        decision = _policy().decide_capture(state, "p0", state.pending_capture.cards)
        assert decision.action in (DecisionType.INSERT_ALL, DecisionType.DISCARD_ALL)


class TestDecideInsertion:
    """插入决策测试"""

    def test_useless_card_discarded(self, make_state):
        state = make_state(["1", "2 3"])
        decision = _policy().decide_insertion(state, "p0", Card.standard(2000, 8))
        assert decision.action == DecisionType.DISCARD

    def test_matching_card_inserted(self, make_state):
        state = make_state(["3 5", "2 3"])
        decision = _policy().decide_insertion(state, "p0", Card.standard(2000, 3))

        assert decision.action == DecisionType.INSERT
        assert decision.position == 0


class TestDecideRescue:
    """救援决策测试"""

    def test_no_rescue(self, make_state):
        state = make_state(["1 2", "3 4"], table="8", table_owner="p1", draw="7").with_draw("p0")
        decision = _policy().decide_rescue(state, "p0", state.drawn_card, False, None)
        assert decision.action == DecisionType.INSERT

    def test_large_rescue_taken(self, make_state):
        state = make_state(["3 6 1", "2 2 4"], table="5 5", table_owner="p1", draw="6").with_draw("p0")
        option = state.rescue_option()
        decision = _policy().decide_rescue(state, "p0", state.drawn_card, True, option)

        assert decision.action == DecisionType.RESCUE
        assert decision.indices == (1,)
        assert decision.position == 1

    def test_single_rescue_simulated(self, make_state):
        state = make_state(["1 2 3", "4 4 4"], table="3", table_owner="p1", draw="5").with_draw("p0")
        option = state.rescue_option()
        assert option.size == 1

        decision = _policy().decide_rescue(state, "p0", state.drawn_card, True, option)
        assert decision.action in (DecisionType.RESCUE, DecisionType.INSERT)
        if decision.action == DecisionType.RESCUE:
            assert apply_move(state, "p0", Move.rescue(decision.indices, decision.position)).success
