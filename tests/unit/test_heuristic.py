"""启发式机器人测试"""
import random

import pytest

from core.actions import Move
from core.cards import Card, str_to_cards
from core.state import GameState, Player
from core.turns import apply_move
from bot.config import HeuristicConfig
from bot.heuristic import (
    DIFFICULTY_NAMES,
    BotDifficulty,
    HeuristicPolicy,
    find_best_insert_position,
)
from bot.policy import DecisionType
from bot.worker import DecisionWorker


class TestInsertPosition:
    """插入位置测试"""

    def test_next_to_match(self):
        hand = str_to_cards("1 5 8")
        assert find_best_insert_position(hand, Card.standard(2000, 5), BotDifficulty.MEDIUM) == 1

    def test_empty_hand(self):
        assert find_best_insert_position([], Card.standard(2000, 5), BotDifficulty.EASY) == 0


class TestHeuristicPolicy:
    """HeuristicPolicy 测试"""

    def test_names(self):
        assert DIFFICULTY_NAMES[BotDifficulty.HARD] == "Master"
        assert BotDifficulty("EASY") == BotDifficulty.EASY

    def test_draw_without_combos(self, make_state):
        state = make_state(["1 2", "3"], table="8 8", table_owner="p1")
        for difficulty in BotDifficulty:
            assert HeuristicPolicy(difficulty).decide_turn(state, "p0").action == DecisionType.DRAW

    def test_easy_leads_biggest(self, make_state):
        state = make_state(["3 3 5", "1 2 4"])
        decision = HeuristicPolicy(BotDifficulty.EASY).decide_turn(state, "p0")
        assert decision.indices == (0, 1)

    def test_medium_blocks_short_hand(self, make_state):
        state = make_state(["4 6 6", "1 2"], table="3", table_owner="p1")
        decision = HeuristicPolicy(BotDifficulty.MEDIUM).decide_turn(state, "p0")
        assert decision.indices == (0,)

    @pytest.mark.parametrize("difficulty", list(BotDifficulty))
    @pytest.mark.parametrize("seed", range(3))
    def test_decision_always_legal(self, difficulty, seed):
        state = GameState.initial([Player(f"p{i}", f"P{i}") for i in range(3)], seed=seed)
        bot_id = state.current_player.id
        policy = HeuristicPolicy(difficulty, rng=random.Random(seed))
        decision = policy.decide_turn(state, bot_id)

        move = Move.play(decision.indices) if decision.action == DecisionType.PLAY else Move.draw()
        assert apply_move(state, bot_id, move).success

    def test_easy_discards_capture(self, make_state):
        state = make_state(["6 6 5", "2 3"], table="5 5", table_owner="p1").with_play("p0", [0, 1])
        decision = HeuristicPolicy(BotDifficulty.EASY).decide_capture(state, "p0", state.pending_capture.cards)
        assert decision.action == DecisionType.DISCARD_ALL

    def test_medium_takes_matching_capture(self, make_state):
        state = make_state(["6 6 5", "2 3"], table="5 5", table_owner="p1").with_play("p0", [0, 1])
        captured = state.pending_capture.cards
        decision = HeuristicPolicy(BotDifficulty.MEDIUM).decide_capture(state, "p0", captured)

        assert decision.action == DecisionType.INSERT_ALL
        assert [cid for cid, _ in decision.insertions] == [c.id for c in captured]

    def test_insertion_always_inserts(self, make_state):
        state = make_state(["1", "2"])
        decision = HeuristicPolicy(BotDifficulty.HARD).decide_insertion(state, "p0", Card.standard(2000, 8))
        assert decision.action == DecisionType.INSERT
        assert decision.position in (0, 1)

    def test_rescue(self, make_state):
        state = make_state(["3 6 1", "2 2 4"], table="5 5", table_owner="p1", draw="6").with_draw("p0")
        option = state.rescue_option()

        medium = HeuristicPolicy(BotDifficulty.MEDIUM)
        assert medium.decide_rescue(state, "p0", state.drawn_card, True, option).action == DecisionType.RESCUE

        hard = HeuristicPolicy(BotDifficulty.HARD)
        assert hard.decide_rescue(state, "p0", state.drawn_card, True, option).action == DecisionType.RESCUE

        easy = HeuristicPolicy(BotDifficulty.EASY, HeuristicConfig(easy_rescue_probability=0.0))
        assert easy.decide_rescue(state, "p0", state.drawn_card, True, option).action == DecisionType.INSERT


class TestDecisionWorker:
    """DecisionWorker 测试"""

    def test_decide_in_thread(self, make_state):
        state = make_state(["3 3 5", "1 2 4"])
        with DecisionWorker(max_workers=2) as worker:
            future = worker.decide_turn(HeuristicPolicy(BotDifficulty.EASY), state, "p0")
            decision = future.result(timeout=10)

        assert decision.action == DecisionType.PLAY
        assert decision.indices == (0, 1)
