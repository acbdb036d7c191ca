"""
Shared pytest fixtures for the domino tests.

Board fixtures are function-scoped: boards and tile sets are mutated in place.
"""

import random
from typing import List, Optional, Tuple

import pytest

from engine import Board, Tile, TileSet, full_tile_set, parse_tiles


def make_set(text: str, max_value: int = 6) -> TileSet:
    return TileSet(max_value, parse_tiles(text))


def random_deal(rng: random.Random, max_value: int, hand_size: int) -> Optional[Tuple[TileSet, TileSet]]:
    """Two random hands, the holder of the larger double first; None if nobody holds a double."""
    tiles: List[Tile] = full_tile_set(max_value).to_list()
    rng.shuffle(tiles)
    a = TileSet(max_value, tiles[:hand_size])
    b = TileSet(max_value, tiles[hand_size:2 * hand_size])
    da, db = a.largest_double(), b.largest_double()
    if da.is_empty() and db.is_empty():
        return None
    return (b, a) if db.max_value() > da.max_value() else (a, b)


@pytest.fixture
def scenario_board() -> Board:
    """
    maxValue=2 search position, searching player to move on a 2|2 opening:
    own hand 1|2 0|1, opponent pool 0|0 1|1 0|2 holding one tile.

    Hand-computed root values: maximax 0, minimax -1, expectimax -2/3.
    """
    return Board(make_set("1|2 0|1", 2), make_set("0|0 1|1 0|2", 2), Tile(2, 2), 2, 1)


def opponent_to_move(pool: TileSet, ends: Tile) -> Board:
    """Search board where the pool side is to move against `ends`."""
    board = Board(TileSet(pool.max_value), pool, ends)
    board.play_tile(Tile())
    return board
