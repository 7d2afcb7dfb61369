"""牌定义与编码测试"""
from collections import Counter

import pytest
import numpy as np

from core.cards import (
    Card,
    CardKind,
    FULL_DECK,
    CARD_BY_ID,
    DECK_SIZE,
    SPLIT_PAIRS,
    ENCODING_COLUMNS,
    cards_to_array,
    cards_to_str,
    str_to_cards,
    draw_from_deck,
    shuffle_deck,
    card_ids,
)


class TestFullDeck:
    """完整牌组测试"""

    def test_deck_size(self):
        assert DECK_SIZE == 72
        assert len(FULL_DECK) == 72

    def test_standard_composition(self):
        counter = Counter(c.value for c in FULL_DECK if c.kind == CardKind.STANDARD)
        for value in range(1, 9):
            assert counter[value] == 8

    def test_split_composition(self):
        splits = [c for c in FULL_DECK if c.is_split]
        assert len(splits) == 8
        counter = Counter(c.split_values for c in splits)
        for pair in SPLIT_PAIRS:
            assert counter[pair] == 2

    def test_ids_unique_and_ordered(self):
        assert [c.id for c in FULL_DECK] == list(range(72))
        assert CARD_BY_ID[0].value == 1
        assert CARD_BY_ID[64].is_split

    def test_shuffle_keeps_cards(self):
        shuffled = shuffle_deck(FULL_DECK)
        assert sorted(card_ids(shuffled)) == list(range(72))


class TestCard:
    """Card 测试"""

    def test_standard_candidates(self):
        card = Card.standard(1, 5)
        assert card.candidates == frozenset({5})
        assert card.max_value == 5
        assert not card.is_split

    def test_split_candidates(self):
        card = Card.split(1, 5, 6)
        assert card.candidates == frozenset({5, 6})
        assert card.max_value == 6
        assert card.is_split

    def test_effective_value(self):
        card = Card.split(1, 5, 6)
        assert card.effective_value == 6
        assert card.with_resolution(5).effective_value == 5

    def test_with_resolution_does_not_mutate(self):
        card = Card.split(1, 3, 4)
        resolved = card.with_resolution(3)
        assert card.resolved_value is None
        assert resolved.resolved_value == 3
        assert resolved.unresolved() == card

    def test_invalid_resolution(self):
        with pytest.raises(ValueError):
            Card.split(1, 3, 4).with_resolution(5)

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            Card.standard(1, 9)
        with pytest.raises(ValueError):
            Card.split(1, 2, 3)

    def test_str(self):
        assert str(Card.standard(1, 7)) == "7"
        assert str(Card.split(1, 7, 8)) == "7/8"


class TestCardsToArray:
    """cards_to_array 测试"""

    def test_empty(self):
        arr = cards_to_array([])
        assert arr.shape == (len(ENCODING_COLUMNS),)
        assert arr.sum() == 0

    def test_counts(self):
        arr = cards_to_array(str_to_cards("3 3 5/6 8"))
        assert arr.dtype == np.float32
        assert arr[2] == 2  # 点数 3
        assert arr[7] == 1  # 点数 8
        assert arr[ENCODING_COLUMNS.index("5/6")] == 1
        assert arr.sum() == 4


class TestCardText:
    """文本编码测试"""

    def test_str_to_cards(self):
        cards = str_to_cards("3 3 5/6 8")
        assert len(cards) == 4
        assert cards[2].is_split
        assert [c.id for c in cards] == [1000, 1001, 1002, 1003]

    def test_cards_to_str_keeps_order(self):
        assert cards_to_str(str_to_cards("8 1 5/6")) == "8 1 5/6"

    def test_draw_from_deck(self):
        cards = draw_from_deck("1 1 7/8")
        assert all(c.id in CARD_BY_ID for c in cards)
        assert len({c.id for c in cards}) == 3

    def test_draw_from_deck_exhausted(self):
        with pytest.raises(ValueError):
            draw_from_deck(" ".join(["1"] * 9))

    def test_draw_from_shared_pool(self):
        pool = dict(CARD_BY_ID)
        first = draw_from_deck("2 2", pool)
        second = draw_from_deck("2", pool)
        assert second[0].id not in {c.id for c in first}
        assert len(pool) == 69
