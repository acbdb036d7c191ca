# FILE: engine.py | version: 2026-10-18.v1
# (two-player block dominoes: tiles, tile sets with XOR keys, board with exact undo,
#  candidate tracking by composition, per-player read-only views)

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import IntEnum
from functools import lru_cache
from typing import Any, Deque, Dict, Iterable, Iterator, List, Literal, Optional, Sequence, Tuple, Union

import numpy as np

EMPTY_VALUE = -1
MASK64 = 0xFFFF_FFFF_FFFF_FFFF

BoardSide = Literal["center", "left", "right", "unplaced"]
GameStatus = Literal["open", "ended"]


# =============================================================================
# Errors
# =============================================================================
class InvalidValueError(ValueError):
    pass


class OutOfRangeError(InvalidValueError):
    pass


class DuplicateTileError(ValueError):
    pass


class IllegalMoveError(ValueError):
    pass


class EmptyHistoryError(ValueError):
    pass


class PlayerId(IntEnum):
    FIRST = 0
    SECOND = 1

    def toggle(self) -> "PlayerId":
        return PlayerId.SECOND if self is PlayerId.FIRST else PlayerId.FIRST


# =============================================================================
# Tile
# =============================================================================
class Tile:
    """
    One domino: (left, right), or the empty tile (-1, -1) used for a pass.
    Equality and hash ignore orientation.
    """

    __slots__ = ("left", "right")

    def __init__(self, left: int = EMPTY_VALUE, right: int = EMPTY_VALUE) -> None:
        left, right = int(left), int(right)
        if not (left == EMPTY_VALUE and right == EMPTY_VALUE) and (left < 0 or right < 0):
            raise InvalidValueError(f"Not a valid tile: {left}|{right}")
        self.left = left
        self.right = right

    def is_empty(self) -> bool:
        return self.left == EMPTY_VALUE

    def is_double(self) -> bool:
        return self.left == self.right and not self.is_empty()

    def matches(self, other: Union[int, "Tile"]) -> bool:
        if isinstance(other, Tile):
            return other.matches(self.left) or other.matches(self.right)
        return self.left == other or self.right == other

    def left_matches(self, other: Union[int, "Tile"]) -> bool:
        if isinstance(other, Tile):
            return other.matches(self.left)
        return self.left == other

    def right_matches(self, other: Union[int, "Tile"]) -> bool:
        if isinstance(other, Tile):
            return other.matches(self.right)
        return self.right == other

    def total_value(self) -> int:
        return self.left + self.right

    def max_value(self) -> int:
        return max(self.left, self.right)

    def min_value(self) -> int:
        return min(self.left, self.right)

    @property
    def index(self) -> int:
        hi, lo = self.max_value(), self.min_value()
        return hi * (hi + 1) // 2 + lo

    def copy(self) -> "Tile":
        return Tile(self.left, self.right)

    def swap(self) -> None:
        self.left, self.right = self.right, self.left

    def swapped(self) -> "Tile":
        return Tile(self.right, self.left)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tile):
            return NotImplemented
        return (self.left == other.left and self.right == other.right) or \
               (self.left == other.right and self.right == other.left)

    def __hash__(self) -> int:
        return self.index

    def __str__(self) -> str:
        if self.is_empty():
            return "-|-"
        return f"{self.left}|{self.right}"

    def __repr__(self) -> str:
        return f"Tile({self})"


def tile_count(max_value: int) -> int:
    return (max_value + 1) * (max_value + 2) // 2


def parse_tile(s: str) -> Tile:
    s = (s or "").strip()
    if s in ("-|-", "-"):
        return Tile()
    if "|" not in s:
        raise InvalidValueError(f"Cannot parse tile: {s!r}")
    a, b = s.split("|", 1)
    try:
        left, right = int(a), int(b)
    except ValueError as e:
        raise InvalidValueError(f"Cannot parse tile: {s!r}") from e
    return Tile(left, right)


def parse_tiles(s: str) -> List[Tile]:
    """'0|1 0|2 2|2' -> [Tile(0|1), Tile(0|2), Tile(2|2)]"""
    return [parse_tile(tok) for tok in (s or "").split()]


def tiles_str(tiles: Iterable[Tile]) -> str:
    return " ".join(str(t) for t in tiles)


# =============================================================================
# TileSet
# =============================================================================
@lru_cache(maxsize=None)
def tile_keys(max_value: int) -> Tuple[int, ...]:
    # same max_value -> same table, so sets of equal max_value are hash-comparable
    rng = np.random.default_rng(int(max_value))
    return _draw_keys(rng, tile_count(max_value))


def _draw_keys(rng: np.random.Generator, n: int) -> Tuple[int, ...]:
    keys = rng.integers(0, np.iinfo(np.uint64).max, size=int(n), dtype=np.uint64, endpoint=True)
    return tuple(int(k) for k in keys.tolist())


class TileSet:
    """
    Duplicate-free set of tiles with values in [0, max_value].

    Tiles are stored in canonical orientation (low|high) in a slot per tile index,
    so iteration order is ascending tile index and does not depend on insertion
    order. The XOR key is updated on every add/remove.
    """

    def __init__(self, max_value: int, tiles: Optional[Iterable[Tile]] = None) -> None:
        if int(max_value) < 0:
            raise InvalidValueError(f"Not a valid max value: {max_value}")
        self.max_value = int(max_value)
        self._slots: List[Optional[Tile]] = [None] * tile_count(self.max_value)
        self._count: List[int] = [0] * (self.max_value + 1)
        self._size = 0
        self._score = 0
        self._keys = tile_keys(self.max_value)
        self._key = 0
        if tiles is not None:
            self.update(tiles)

    # ---- mutation ----
    def add(self, tile: Tile) -> None:
        if tile is None:
            raise InvalidValueError("Not a valid tile")
        lo, hi = tile.min_value(), tile.max_value()
        if lo < 0 or hi > self.max_value:
            raise OutOfRangeError(f"Not valid tile values for this set: {tile}")
        idx = tile.index
        if self._slots[idx] is not None:
            raise DuplicateTileError(f"The set already contains tile {tile}")
        self._slots[idx] = Tile(lo, hi)
        self._count[lo] += 1
        self._count[hi] += 1
        self._size += 1
        self._score += lo + hi
        self._key ^= self._keys[idx]

    def update(self, tiles: Iterable[Tile]) -> None:
        for t in tiles:
            self.add(t)

    def remove(self, tile: Tile) -> bool:
        if tile is None or tile.is_empty() or tile.max_value() > self.max_value:
            return False
        idx = tile.index
        held = self._slots[idx]
        if held is None:
            return False
        self._slots[idx] = None
        self._count[held.left] -= 1
        self._count[held.right] -= 1
        self._size -= 1
        self._score -= held.total_value()
        self._key ^= self._keys[idx]
        return True

    def remove_all(self, tiles: Iterable[Tile]) -> None:
        for t in tiles:
            self.remove(t)

    def remove_matches(self, query: Union[int, Tile]) -> List[Tile]:
        """Remove and return every tile sharing a value with `query`."""
        out = [t for t in self if t.matches(query)]
        for t in out:
            self.remove(t)
        return out

    # ---- queries ----
    def contains(self, tile: Tile) -> bool:
        if tile is None or tile.is_empty() or tile.max_value() > self.max_value:
            return False
        return self._slots[tile.index] is not None

    def matches(self, query: Union[int, Tile]) -> bool:
        if isinstance(query, Tile):
            if query.is_empty():
                return False
            return self.matches(query.left) or self.matches(query.right)
        v = int(query)
        return 0 <= v <= self.max_value and self._count[v] > 0

    def match_count(self, value: int) -> int:
        """Number of tiles holding `value` (the double counts once)."""
        v = int(value)
        if v < 0 or v > self.max_value or self._count[v] == 0:
            return 0
        return self._count[v] - (1 if self._slots[Tile(v, v).index] is not None else 0)

    def matching_tiles(self, query: Optional[Tile]) -> List[Tile]:
        """
        Moves available against board ends `query`, each oriented so that its
        matching value is on the left.

        - empty query (empty board): [largest double] (empty tile if none)
        - nothing matches: [empty tile]
        - a non-double query held as-is goes first, low|high then swapped,
          whatever orientation the tile was added in
        """
        if query is None or query.is_empty():
            return [self.largest_double()]
        if not self.matches(query):
            return [Tile()]

        front: List[Tile] = []
        rest: List[Tile] = []
        for t in self:
            if not query.is_double() and t == query:
                front = [t.copy(), t.swapped()]
            elif t.left_matches(query):
                rest.append(t.copy())
            elif t.right_matches(query):
                rest.append(t.swapped())
        return front + rest

    def largest_double(self) -> Tile:
        for v in range(self.max_value, -1, -1):
            held = self._slots[Tile(v, v).index]
            if held is not None:
                return held.copy()
        return Tile()

    @property
    def score(self) -> int:
        return self._score

    def min_score(self, n: int) -> int:
        n = int(n)
        if n <= 0:
            return 0
        totals = sorted(t.total_value() for t in self)
        return sum(totals[:n])

    def max_score(self, n: int) -> int:
        n = int(n)
        if n <= 0:
            return 0
        if n >= self._size:
            return self._score
        totals = sorted((t.total_value() for t in self), reverse=True)
        return sum(totals[:n])

    def hash_value(self) -> int:
        return self._key

    def copy(self) -> "TileSet":
        return TileSet(self.max_value, self)

    def to_list(self) -> List[Tile]:
        return [t.copy() for t in self]

    def __iter__(self) -> Iterator[Tile]:
        for t in self._slots:
            if t is not None:
                yield t

    def __len__(self) -> int:
        return self._size

    def __contains__(self, tile: object) -> bool:
        return isinstance(tile, Tile) and self.contains(tile)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TileSet):
            return NotImplemented
        return self.max_value == other.max_value and self._key == other._key and \
            [t.index for t in self] == [t.index for t in other]

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        return tiles_str(self)

    def __repr__(self) -> str:
        return f"TileSet({self.max_value}, [{self}])"


def full_tile_set(max_value: int) -> TileSet:
    return TileSet(max_value, (Tile(lo, hi) for hi in range(max_value + 1) for lo in range(hi + 1)))


# =============================================================================
# State hashing
# =============================================================================
class StateHasher:
    """
    Zobrist-style keys for (ends, turn, remaining sizes), seeded from both
    initial hands; combined with the two tile-set keys into one board key.
    """

    def __init__(self, first: TileSet, second: TileSet, sizes: Sequence[int]) -> None:
        seed = (first.hash_value() + second.hash_value()) & MASK64
        rng = np.random.default_rng(seed)
        n = max(first.max_value, second.max_value)
        depth = max(int(s) for s in sizes) + 1
        self.ends_keys = _draw_keys(rng, tile_count(n))
        self.turn_keys = _draw_keys(rng, 2)
        self.size_keys = (_draw_keys(rng, depth), _draw_keys(rng, depth))

    def key(self, first: TileSet, second: TileSet, sizes: Sequence[int], turn: PlayerId, ends: Tile) -> int:
        k = first.hash_value() ^ second.hash_value()
        k ^= self.size_keys[0][sizes[0]] ^ self.size_keys[1][sizes[1]]
        k ^= self.turn_keys[int(turn)]
        if not ends.is_empty():
            k ^= self.ends_keys[ends.index]
        return k


# =============================================================================
# Board
# =============================================================================
def _line_ends(tiles: Deque[Tile]) -> Tile:
    if not tiles:
        return Tile()
    return Tile(tiles[0].left, tiles[-1].right)


@dataclass(frozen=True)
class HistoryEntry:
    side: BoardSide
    player: Optional[PlayerId]
    tile: Tile
    ends: Tile

    def to_dict(self) -> Dict[str, Any]:
        return {
            "side": self.side,
            "player": None if self.player is None else self.player.name.lower(),
            "tile": str(self.tile),
            "ends": str(self.ends),
        }


class Board:
    """
    Line-of-play state machine for two hands.

    The board owns both TileSets and mutates them in place. `sizes` are the
    per-player remaining-tile counters; they may start below the real hand size
    to bound a search, and reaching 0 ends the game.
    """

    def __init__(
        self,
        first: TileSet,
        second: TileSet,
        start_tile: Optional[Tile] = None,
        first_size: Optional[int] = None,
        second_size: Optional[int] = None,
    ) -> None:
        self._hands: Tuple[TileSet, TileSet] = (first, second)
        self._tiles: Deque[Tile] = deque()
        self._history: List[HistoryEntry] = []
        self.current_player: PlayerId = PlayerId.FIRST
        self.status: GameStatus = "open"
        self._sizes: List[int] = [len(first), len(second)]
        self._hasher = StateHasher(first, second, self._sizes)

        if start_tile is not None and not start_tile.is_empty():
            self._tiles.append(start_tile.copy())
            self._history.append(HistoryEntry("center", None, start_tile.copy(), start_tile.copy()))
        if first_size is not None:
            self._sizes[0] = min(int(first_size), len(first))
        if second_size is not None:
            self._sizes[1] = min(int(second_size), len(second))

    # ---- transitions ----
    def play_tile(self, tile: Tile) -> GameStatus:
        player = self.current_player
        ends = self.board_ends()

        if tile.is_empty():
            if self.last_was_pass():
                self.status = "ended"
            self._history.append(HistoryEntry("unplaced", player, Tile(), ends))
        else:
            t = tile.copy()
            side: BoardSide
            if t.left_matches(ends.left):
                side = "left"
                self._tiles.appendleft(t.swapped())
            elif t.left_matches(ends.right):
                side = "right"
                self._tiles.append(t)
            else:
                side = "center"
                self._tiles.append(t)
            self._history.append(HistoryEntry(side, player, t.copy(), self.board_ends()))
            self._hands[player].remove(t)
            self._sizes[player] -= 1
            if self._sizes[player] == 0:
                self.status = "ended"

        self.current_player = player.toggle()
        return self.status

    def unplay_tile(self) -> HistoryEntry:
        if not self._history or (len(self._history) == 1 and self._history[0].player is None):
            raise EmptyHistoryError("No move to undo")

        h = self._history.pop()
        assert h.player is not None
        if h.side == "left":
            self._tiles.popleft()
        elif h.side in ("right", "center"):
            self._tiles.pop()
        if not h.tile.is_empty():
            self._hands[h.player].add(h.tile)
            self._sizes[h.player] += 1

        self.status = "open"
        self.current_player = self.current_player.toggle()
        return h

    def validate_move(self, tile: Tile) -> None:
        player = self.current_player
        hand = self._hands[player]
        ends = self.board_ends()

        if self.status == "ended":
            raise IllegalMoveError("The game is over")
        if not tile.is_empty() and not hand.contains(tile):
            raise IllegalMoveError(f"Player {player.name} does not hold tile {tile}")
        if ends.is_empty():
            if not tile.is_double() or tile != hand.largest_double():
                raise IllegalMoveError(f"Illegal opening {tile}: must be the largest double {hand.largest_double()}")
            return
        if tile.is_empty():
            if hand.matches(ends):
                raise IllegalMoveError(f"Player {player.name} cannot pass holding a match for {ends}")
            return
        if not (tile.left_matches(ends.left) or tile.left_matches(ends.right)):
            raise IllegalMoveError(f"Tile {tile} does not match board ends {ends}")

    # ---- queries ----
    def board_ends(self) -> Tile:
        return _line_ends(self._tiles)

    def current_player_moves(self) -> List[Tile]:
        return self._hands[self.current_player].matching_tiles(self.board_ends())

    def current_score(self) -> int:
        return self._hands[PlayerId.SECOND].score - self._hands[PlayerId.FIRST].score

    def score_for(self, player: PlayerId) -> int:
        return self._hands[player.toggle()].score - self._hands[player].score

    def is_over(self) -> bool:
        return self.status == "ended"

    def last_was_pass(self) -> bool:
        return bool(self._history) and self._history[-1].side == "unplaced"

    def hand(self, player: PlayerId) -> TileSet:
        return self._hands[player]

    def remaining(self, player: PlayerId) -> int:
        return self._sizes[player]

    def board_tiles(self) -> List[Tile]:
        return [t.copy() for t in self._tiles]

    def history(self) -> List[HistoryEntry]:
        return list(self._history)

    def hash_value(self) -> int:
        return self._hasher.key(self._hands[0], self._hands[1], self._sizes, self.current_player, self.board_ends())

    def snapshot(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "current_player": self.current_player.name.lower(),
            "board": [str(t) for t in self._tiles],
            "ends": str(self.board_ends()),
            "first_hand": str(self._hands[0]),
            "second_hand": str(self._hands[1]),
            "remaining": list(self._sizes),
            "current_score": self.current_score(),
            "history": [h.to_dict() for h in self._history],
        }


# =============================================================================
# Candidate tracking (restricted information)
# =============================================================================
def _candidates(max_value: int, other: TileSet, top_double: int) -> TileSet:
    out = TileSet(max_value)
    for hi in range(max_value + 1):
        for lo in range(hi + 1):
            t = Tile(lo, hi)
            if other.contains(t) or (lo == hi and hi > top_double):
                continue
            out.add(t)
    return out


class TrackedBoard:
    """
    Authoritative game board that also keeps, for each player, the tiles the
    other player may believe that player still holds.

    Undoing a play re-adds one tile; undoing a pass rebuilds the candidate set
    from history, since one elimination can cover tiles excluded earlier too.
    """

    def __init__(self, first: TileSet, second: TileSet, start_tile: Optional[Tile] = None) -> None:
        self.board = Board(first, second, start_tile)
        top = max(first.largest_double().max_value(), second.largest_double().max_value())
        self._candidates: List[TileSet] = [
            _candidates(first.max_value, second, top),
            _candidates(second.max_value, first, top),
        ]
        self._views = tuple(self._make_view(p) for p in PlayerId)

    def _make_view(self, player: PlayerId) -> "BoardView":
        b = self.board
        return BoardView(player, b.hand(player), self._candidates, b._tiles, b._history, b._sizes)

    def play_tile(self, tile: Tile) -> GameStatus:
        self.board.validate_move(tile)
        player = self.board.current_player
        status = self.board.play_tile(tile)
        if tile.is_empty():
            self._candidates[player].remove_matches(self.board.board_ends())
        else:
            self._candidates[player].remove(tile)
        return status

    def unplay_tile(self) -> HistoryEntry:
        h = self.board.unplay_tile()
        assert h.player is not None
        if h.tile.is_empty():
            self._candidates[h.player] = self._rebuild_candidates(h.player)
        else:
            self._candidates[h.player].add(h.tile)
        return h

    def _rebuild_candidates(self, player: PlayerId) -> TileSet:
        own = self.board.hand(player)
        other = self.board.hand(player.toggle())
        history = self.board.history()
        if history and history[0].player is None:
            top = own.max_value
        elif history:
            top = history[0].tile.max_value()
        else:
            top = max(own.largest_double().max_value(), other.largest_double().max_value())

        out = _candidates(own.max_value, other, top)
        for h in history:
            if h.player == player and h.tile.is_empty():
                out.remove_matches(h.ends)
            else:
                out.remove(h.tile)
        return out

    def candidates(self, player: PlayerId) -> TileSet:
        return self._candidates[player].copy()

    def view(self, player: PlayerId) -> "BoardView":
        return self._views[player]

    # ---- pass-through ----
    @property
    def status(self) -> GameStatus:
        return self.board.status

    @property
    def current_player(self) -> PlayerId:
        return self.board.current_player

    def is_over(self) -> bool:
        return self.board.is_over()

    def current_score(self) -> int:
        return self.board.current_score()

    def board_ends(self) -> Tile:
        return self.board.board_ends()

    def hash_value(self) -> int:
        return self.board.hash_value()

    def snapshot(self) -> Dict[str, Any]:
        snap = self.board.snapshot()
        snap["first_candidates"] = str(self._candidates[0])
        snap["second_candidates"] = str(self._candidates[1])
        return snap


class BoardView:
    """
    What one player may see: own hand, opponent candidates, public history.

    The view holds the player's own TileSet, the shared candidate list, the
    line of play, the history and the remaining counters. It never holds the
    board itself, so the opponent's hand is out of reach.
    """

    def __init__(
        self,
        player: PlayerId,
        hand: TileSet,
        candidates: List[TileSet],
        tiles: Deque[Tile],
        history: List[HistoryEntry],
        sizes: List[int],
    ) -> None:
        self.player_id = player
        self._hand = hand
        # live list: a pass undo swaps in a rebuilt TileSet
        self._candidates = candidates
        self._tiles = tiles
        self._history = history
        self._sizes = sizes

    @property
    def opponent_id(self) -> PlayerId:
        return self.player_id.toggle()

    def hand_size(self, player: PlayerId) -> int:
        return self._sizes[player]

    def opponent_candidates(self) -> List[Tile]:
        return self._candidates[self.opponent_id].to_list()

    def player_tiles(self) -> List[Tile]:
        return self._hand.to_list()

    def player_tile_set(self) -> TileSet:
        return self._hand.copy()

    def board_tiles(self) -> List[Tile]:
        return [t.copy() for t in self._tiles]

    def playable_tiles(self) -> List[Tile]:
        return self._hand.matching_tiles(self.board_ends())

    def history(self) -> List[HistoryEntry]:
        return list(self._history)

    def current_player(self) -> PlayerId:
        if not self._history or self._history[-1].player is None:
            return PlayerId.FIRST
        return self._history[-1].player.toggle()

    def board_ends(self) -> Tile:
        return _line_ends(self._tiles)

    def last_was_pass(self) -> bool:
        return bool(self._history) and self._history[-1].side == "unplaced"

    def last_played_tile(self) -> Tile:
        if not self._history:
            return Tile()
        return self._history[-1].tile.copy()
