"""手牌形状评估测试"""
import pytest

from core.cards import Card, str_to_cards, cards_to_str
from bot.shape import (
    CardGroup,
    apply_insertions,
    best_position,
    count_blockers,
    estimate_turns_to_empty,
    find_adjacent_groups,
    find_optimal_insertion,
    group_value,
    hand_cost,
    max_group_size,
    messiness,
)


class TestAdjacentGroups:
    """相邻组测试"""

    def test_groups(self):
        groups = find_adjacent_groups(str_to_cards("3 3/4 4 8"))
        assert groups == [CardGroup(0, 2), CardGroup(3, 3)]

    def test_empty(self):
        assert find_adjacent_groups([]) == []
        assert max_group_size([]) == 0

    def test_group_value(self):
        hand = str_to_cards("3 3/4 4")
        assert group_value(hand, (0, 1)) == 3
        assert group_value(hand, (1, 2)) == 4
        # 链式相邻但没有共同点数
        assert group_value(hand, (0, 1, 2)) == 0


class TestHandCost:
    """手牌代价测试"""

    @pytest.mark.parametrize("hand,cost", [
        ("3 3", -4),
        ("3 5 3", 0),
        ("8 1 2", -2),
        ("5/6 6 6", -11),
        ("", 0),
    ])
    def test_known_costs(self, hand, cost):
        assert hand_cost(str_to_cards(hand)) == cost

    def test_blockers(self):
        assert count_blockers(str_to_cards("3 3")) == 0
        assert count_blockers(str_to_cards("3 5 5 3")) == 2

    def test_edge_pair_not_penalized(self):
        # 成对的高点牌在边缘不扣分
        assert hand_cost(str_to_cards("8 8 1")) == -5


class TestMessiness:
    """混乱度测试"""

    def test_messiness(self):
        hand = str_to_cards("3 5 3")
        assert messiness(hand) == pytest.approx(2.5)
        assert estimate_turns_to_empty(hand) == pytest.approx(4.25)

    def test_single_group(self):
        assert messiness(str_to_cards("2 2 2")) == 0.0
        assert estimate_turns_to_empty(str_to_cards("2 2 2")) == 1.0
        assert estimate_turns_to_empty([]) == 0.0


class TestInsertion:
    """插入位置测试"""

    def test_best_position(self):
        assert best_position(str_to_cards("3 5"), Card.standard(2000, 3)) == (0, -5)

    def test_best_position_empty_hand(self):
        assert best_position([], Card.standard(2000, 3)) == (0, -1)

    def test_single_card(self):
        hand = str_to_cards("3 5")
        card = Card.standard(2000, 5)
        assert find_optimal_insertion(hand, [card]) == [(card, 1)]

    def test_multiple_cards(self):
        hand = str_to_cards("1 8")
        cards = [Card.standard(2000, 1), Card.standard(2001, 8)]
        insertions = find_optimal_insertion(hand, cards)

        assert [c for c, _ in insertions] == cards
        result = apply_insertions(hand, insertions)
        assert cards_to_str(result) == "1 1 8 8"
        assert hand_cost(result) == -8

    def test_no_cards(self):
        assert find_optimal_insertion(str_to_cards("1"), []) == []

    def test_apply_insertions_clamps(self):
        hand = str_to_cards("1")
        result = apply_insertions(hand, [(Card.standard(2000, 2), 10)])
        assert cards_to_str(result) == "1 2"
