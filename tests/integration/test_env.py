"""环境层测试"""
import pytest
import numpy as np

from core.actions import Move
from core.state import TurnPhase
from env import (
    AGENT_ID,
    MAX_HAND_OBS,
    ObservationBuilder,
    RewardCalculator,
    RewardConfig,
    RewardType,
    RingoEnv,
    create_reward_calculator,
    make_env,
)
from evaluation import HeuristicAgent, NightmareAgent
from bot.config import NightmareConfig
from bot.heuristic import BotDifficulty


class TestObservationBuilder:
    """ObservationBuilder 测试"""

    def test_build(self, make_state):
        state = make_state(["3 3 5/6", "1 2", "4"], table="7", table_owner="p1")
        obs = ObservationBuilder().build(state, "p0")

        assert obs.hand.sum() == 3
        assert list(obs.hand_sequence[:4]) == [3, 3, 6, 0]
        assert list(obs.split_mask[:3]) == [0, 0, 1]
        assert list(obs.table) == [1, 7, 0]
        assert list(obs.opponent_hand_sizes[:2]) == [2, 1]
        assert obs.phase[list(TurnPhase).index(TurnPhase.WAITING_FOR_PLAY_OR_DRAW)] == 1
        assert obs.legal_moves == state.get_legal_moves()

    def test_other_player_has_no_moves(self, make_state):
        state = make_state(["3", "1 2"])
        assert ObservationBuilder().build(state, "p1").legal_moves == []

    def test_capture_only_for_owner(self, make_state):
        state = make_state(["6 6 1", "2 3"], table="5 5", table_owner="p1").with_play("p0", [0, 1])
        builder = ObservationBuilder()
        assert builder.build(state, "p0").capture.sum() == 2
        assert builder.build(state, "p1").capture.sum() == 0

    def test_in_observation_space(self, make_state):
        builder = ObservationBuilder()
        state = make_state(["3 3 5/6", "1 2"])
        assert builder.observation_space().contains(builder.build(state, "p0").to_dict())

    def test_flat_array(self, make_state):
        flat = ObservationBuilder().build(make_state(["3", "1"]), "p0").to_flat_array()
        assert flat.ndim == 1
        assert flat.dtype == np.float32
        assert flat.shape[0] > 2 * MAX_HAND_OBS


class TestReward:
    """奖励函数测试"""

    def test_sparse(self, make_state):
        state = make_state(["6 6", "2 3"], table="5 5", table_owner="p1")
        finished = state.with_play("p0", [0, 1])
        calculator = RewardCalculator()

        assert calculator.compute(finished, state, "p0") == 1.0
        assert calculator.compute(finished, state, "p1") == -1.0
        assert calculator.compute(state, None, "p0") == 0.0

    def test_shaped(self, make_state):
        state = make_state(["3 3 4", "1 2"])
        after = state.with_play("p0", [0, 1])
        calculator = create_reward_calculator("shaped")
        assert calculator.compute(after, state, "p0") == pytest.approx(0.02)

    def test_config_from_dict(self):
        config = RewardConfig.from_dict({"reward_type": "shaped", "win_reward": 2.0, "extra": 1})
        assert config.reward_type == RewardType.SHAPED
        assert config.win_reward == 2.0


class TestRingoEnv:
    """RingoEnv 测试"""

    def test_reset(self):
        env = RingoEnv(num_players=3, seed=42)
        obs, info = env.reset()

        assert env.observation_space.contains(obs)
        assert info["current_player"] == AGENT_ID or env.state.is_finished or info["truncated"]
        if info["current_player"] == AGENT_ID:
            assert info["legal_moves"]
            assert info["legal_action_mask"].sum() == len(info["legal_moves"])

    def test_reset_reproducible(self):
        env = RingoEnv(num_players=3)
        env.reset(seed=7)
        first = env.state.get_hand(AGENT_ID)
        env.reset(seed=7)
        assert env.state.get_hand(AGENT_ID) == first

    def test_step_by_index(self):
        env = RingoEnv(num_players=2, seed=1)
        _, info = env.reset()
        obs, reward, terminated, truncated, info = env.step(0)

        assert "error" not in info
        assert env.observation_space.contains(obs)

    def test_step_by_move(self):
        env = RingoEnv(num_players=2, seed=1)
        _, info = env.reset()
        move = info["legal_moves"][-1]
        _, _, _, _, info = env.step(move)
        assert "error" not in info

    def test_invalid_index(self):
        env = RingoEnv(num_players=2, seed=1)
        env.reset()
        before = env.state
        _, reward, terminated, truncated, info = env.step(9999)

        assert reward == -1.0
        assert not terminated
        assert "error" in info
        assert env.state is before

    def test_illegal_move(self):
        env = RingoEnv(num_players=2, seed=1)
        env.reset()
        _, reward, _, _, info = env.step(Move.discard_capture())

        assert reward == -1.0
        assert info["error"]

    def test_mask_covers_large_capture(self, make_state):
        # 收下 10 张牌、手里还有 51 张: 10 x 52 + 1 个合法动作
        rest = ["1"] * 7 + ["2", "4", "5", "7", "8"] * 8 + ["1/2", "1/2", "7/8", "7/8"]
        hand = "6 6 6 6 6 6 6 6 5/6 5/6 " + " ".join(rest)
        state = make_state(
            [hand, "1"],
            table="3 3 3 3 3 3 3 3 3/4 3/4",
            table_owner="opp",
            rest=None,
            player_ids=[AGENT_ID, "opp"],
        ).with_play(AGENT_ID, list(range(10)))

        env = RingoEnv(num_players=2, seed=0)
        env.reset()
        env._state = state
        info = env._build_info()

        assert len(info["legal_moves"]) == 521
        assert info["legal_action_mask"].sum() == 521
        assert env.action_space.n >= 521

    def test_step_before_reset(self):
        with pytest.raises(RuntimeError):
            RingoEnv().step(0)

    def test_full_episode(self):
        env = RingoEnv(num_players=3, max_steps=500, seed=3)
        _, info = env.reset()
        done = info["truncated"] or env.state.is_finished

        while not done:
            _, _, terminated, truncated, info = env.step(env.sample_action())
            done = terminated or truncated

        if env.state.is_finished:
            assert info["winner"] == env.state.winner
        env.state.check_conservation()

    def test_render_ansi(self):
        env = RingoEnv(num_players=2, render_mode="ansi", seed=0)
        env.reset()
        text = env.render()
        assert "Phase:" in text
        assert AGENT_ID in text

    def test_opponent_count(self):
        with pytest.raises(ValueError):
            RingoEnv(num_players=3, opponents=[HeuristicAgent()])

    def test_make_env(self):
        assert isinstance(make_env(num_players=4), RingoEnv)

    def test_agent_opponents(self):
        opponents = [
            NightmareAgent(config=NightmareConfig(num_samples=2, horizon=2, decision_horizon=2, max_candidates=3)),
            HeuristicAgent(BotDifficulty.HARD, seed=0),
        ]
        env = RingoEnv(num_players=3, opponents=opponents, max_steps=120, seed=5)
        _, info = env.reset()
        done = info["truncated"] or env.state.is_finished

        while not done:
            _, _, terminated, truncated, info = env.step(env.sample_action())
            done = terminated or truncated

        assert opponents[0].context.bot_id == "opponent_1"
        env.state.check_conservation()
