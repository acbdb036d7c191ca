"""Unit tests for Tile and TileSet."""

import pytest

from engine import (
    DuplicateTileError,
    InvalidValueError,
    OutOfRangeError,
    Tile,
    TileSet,
    full_tile_set,
    parse_tile,
    parse_tiles,
)

from conftest import make_set


def strs(tiles):
    return [str(t) for t in tiles]


class TestTile:
    """Tests for tile construction, matching and identity."""

    def test_empty_tile(self) -> None:
        """The default tile is the empty pass tile."""
        t = Tile()
        assert t.is_empty()
        assert not t.is_double()
        assert str(t) == "-|-"

    @pytest.mark.parametrize("left,right", [(-1, 3), (2, -1), (-2, -2), (4, -7)])
    def test_invalid_values_rejected(self, left: int, right: int) -> None:
        """A single empty side or a negative value is not a tile."""
        with pytest.raises(InvalidValueError):
            Tile(left, right)

    def test_equality_ignores_orientation(self) -> None:
        """3|5 and 5|3 are the same tile with the same hash."""
        assert Tile(3, 5) == Tile(5, 3)
        assert hash(Tile(3, 5)) == hash(Tile(5, 3))
        assert Tile(3, 5) != Tile(3, 4)
        assert Tile() == Tile()

    def test_index_is_dense(self) -> None:
        """Canonical index maps the 28 standard tiles onto 0..27."""
        indexes = sorted(Tile(lo, hi).index for hi in range(7) for lo in range(hi + 1))
        assert indexes == list(range(28))
        assert Tile(0, 0).index == 0
        assert Tile(1, 0).index == 1
        assert Tile(1, 1).index == 2
        assert Tile(6, 6).index == 27

    def test_matching(self) -> None:
        """matches/left_matches/right_matches against values and tiles."""
        t = Tile(2, 5)
        assert t.matches(5)
        assert not t.matches(3)
        assert t.matches(Tile(5, 6))
        assert not t.matches(Tile(0, 1))
        assert t.left_matches(2)
        assert not t.left_matches(5)
        assert t.right_matches(Tile(5, 5))
        assert not t.matches(Tile())

    def test_values_and_swap(self) -> None:
        """Totals, extremes, and in-place swap."""
        t = Tile(6, 1)
        assert t.total_value() == 7
        assert t.max_value() == 6
        assert t.min_value() == 1
        t.swap()
        assert (t.left, t.right) == (1, 6)
        assert str(t.swapped()) == "6|1"

    def test_double(self) -> None:
        """Doubles are equal-sided, non-empty tiles."""
        assert Tile(4, 4).is_double()
        assert not Tile(4, 3).is_double()

    def test_parse(self) -> None:
        """Text notation L|R and -|- round through parse_tile."""
        assert parse_tile("3|4") == Tile(3, 4)
        assert parse_tile("-|-").is_empty()
        assert strs(parse_tiles(" 0|1  0|2 2|2 ")) == ["0|1", "0|2", "2|2"]

    @pytest.mark.parametrize("text", ["34", "a|b", "3|", "-|3"])
    def test_parse_rejects_garbage(self, text: str) -> None:
        """Malformed tokens raise InvalidValueError."""
        with pytest.raises(InvalidValueError):
            parse_tile(text)


class TestTileSetMutation:
    """Tests for add/remove and the XOR key."""

    def test_negative_max_value(self) -> None:
        """A negative maximum value is rejected."""
        with pytest.raises(InvalidValueError):
            TileSet(-1)

    def test_duplicate_rejected(self) -> None:
        """Adding a tile twice, in either orientation, fails."""
        s = make_set("2|3")
        with pytest.raises(DuplicateTileError):
            s.add(Tile(3, 2))
        assert len(s) == 1

    @pytest.mark.parametrize("tile", [Tile(7, 1), Tile(0, 9), Tile()])
    def test_out_of_range_rejected(self, tile: Tile) -> None:
        """Values above max_value, and the empty tile, cannot be added."""
        s = TileSet(6)
        with pytest.raises(OutOfRangeError):
            s.add(tile)
        assert len(s) == 0

    def test_remove_absent_is_noop(self) -> None:
        """Removing a missing tile changes nothing."""
        s = make_set("1|2 3|3")
        key = s.hash_value()
        assert s.remove(Tile(4, 5)) is False
        assert s.remove(Tile()) is False
        assert s.hash_value() == key
        assert len(s) == 2
        assert s.score == 9

    def test_add_remove_restores_key(self) -> None:
        """The key is self-inverse under add then remove."""
        s = make_set("0|1 2|6 4|4")
        before = s.hash_value()
        s.add(Tile(5, 3))
        assert s.hash_value() != before
        s.remove(Tile(3, 5))
        assert s.hash_value() == before

    def test_empty_key_is_zero(self) -> None:
        """An empty set has key 0."""
        assert TileSet(6).hash_value() == 0

    def test_key_independent_of_insertion_order(self) -> None:
        """Same contents give the same key and the same string."""
        a = make_set("0|1 5|6 3|3")
        b = make_set("3|3 6|5 1|0")
        assert a.hash_value() == b.hash_value()
        assert str(a) == str(b)
        assert a == b

    def test_keys_seeded_by_max_value(self) -> None:
        """Equal contents under different max values are not hash-comparable."""
        assert make_set("0|1", 6).hash_value() != make_set("0|1", 5).hash_value()

    def test_copy_is_independent(self) -> None:
        """Copies share keys but not storage."""
        s = make_set("0|1 2|2")
        c = s.copy()
        assert c.hash_value() == s.hash_value()
        c.remove(Tile(2, 2))
        assert len(s) == 2
        assert len(c) == 1

    def test_stored_tiles_not_shared(self) -> None:
        """Mutating an added tile does not affect the set."""
        t = Tile(1, 4)
        s = TileSet(6, [t])
        t.swap()
        t.left = 0
        assert str(s) == "1|4"


class TestTileSetQueries:
    """Tests for scores, counts and the matching algorithm."""

    def test_scores(self) -> None:
        """score, min_score and max_score with clamping."""
        s = make_set("0|1 2|3 6|6 1|1")
        assert s.score == 20
        assert s.min_score(2) == 3
        assert s.max_score(2) == 17
        assert s.max_score(1) == 12
        assert s.min_score(0) == 0
        assert s.max_score(0) == 0
        assert s.min_score(10) == 20
        assert s.max_score(10) == 20

    def test_full_set(self) -> None:
        """The double-six set has 28 tiles and 168 pips."""
        s = full_tile_set(6)
        assert len(s) == 28
        assert s.score == 168

    def test_match_count_counts_double_once(self) -> None:
        """match_count is the number of tiles holding the value."""
        s = make_set("3|3 3|4 1|3")
        assert s.match_count(3) == 3
        assert s.match_count(4) == 1
        assert s.match_count(5) == 0
        assert s.match_count(9) == 0

    def test_matches(self) -> None:
        """Value and tile matching against the set."""
        s = make_set("0|2 5|5")
        assert s.matches(2)
        assert not s.matches(3)
        assert not s.matches(-1)
        assert s.matches(Tile(5, 1))
        assert not s.matches(Tile(1, 3))
        assert not s.matches(Tile())

    def test_largest_double(self) -> None:
        """Highest double, or the empty tile."""
        assert str(make_set("1|1 4|4 2|5").largest_double()) == "4|4"
        assert make_set("1|2 3|4").largest_double().is_empty()
        assert str(make_set("0|0 1|2").largest_double()) == "0|0"

    def test_matching_on_empty_board(self) -> None:
        """Empty ends: only the largest double may open."""
        assert strs(make_set("1|1 4|4 2|5").matching_tiles(Tile())) == ["4|4"]
        assert strs(make_set("1|2 3|4").matching_tiles(Tile())) == ["-|-"]

    def test_matching_none(self) -> None:
        """Nothing matches: a single pass."""
        assert strs(make_set("0|1 5|5").matching_tiles(Tile(2, 3))) == ["-|-"]

    def test_matching_puts_duplicate_of_ends_first(self) -> None:
        """A held copy of non-double ends leads, as itself then swapped."""
        s = make_set("3|5 0|2 3|3 2|3")
        assert strs(s.matching_tiles(Tile(2, 3))) == ["2|3", "3|2", "2|0", "3|3", "3|5"]

    def test_duplicate_of_ends_leads_low_high(self) -> None:
        """Tiles are kept low|high, so the leading pair ignores how it was added."""
        for text in ("5|2", "2|5"):
            s = make_set(text)
            assert strs(s.matching_tiles(Tile(2, 5))) == ["2|5", "5|2"]
            assert strs(s.matching_tiles(Tile(5, 2))) == ["2|5", "5|2"]

    def test_matching_orients_match_left(self) -> None:
        """Each match is turned so the matching value is on the left."""
        s = make_set("3|3 4|3 1|2")
        assert strs(s.matching_tiles(Tile(3, 3))) == ["3|3", "3|4"]
        assert strs(s.matching_tiles(Tile(1, 4))) == ["1|2", "4|3"]

    def test_remove_matches(self) -> None:
        """All tiles holding the value are removed and returned."""
        s = make_set("0|3 3|3 1|2")
        removed = s.remove_matches(3)
        assert strs(removed) == ["0|3", "3|3"]
        assert str(s) == "1|2"
        assert s.match_count(3) == 0

    def test_remove_matches_tile(self) -> None:
        """Matching by tile removes tiles holding either value."""
        s = make_set("0|3 4|6 1|2 5|5")
        removed = s.remove_matches(Tile(3, 4))
        assert strs(removed) == ["0|3", "4|6"]
        assert str(s) == "1|2 5|5"

    def test_remove_all(self) -> None:
        """Bulk removal skips tiles that are not held."""
        s = make_set("0|3 3|3 1|2")
        s.remove_all([Tile(3, 0), Tile(5, 5), Tile(2, 1)])
        assert str(s) == "3|3"
        assert s.score == 6

    def test_iteration_order(self) -> None:
        """Iteration and str follow ascending canonical index."""
        s = TileSet(6, [Tile(4, 2), Tile(0, 0), Tile(6, 1)])
        assert str(s) == "0|0 2|4 1|6"
        assert [t.index for t in s] == sorted(t.index for t in s)
