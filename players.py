# FILE: players.py | version: 2026-10-18.v1
# (player contract + strategy registry: greedy baseline and the four search criteria)
#
# Every search player:
# - returns the only playable tile without searching,
# - otherwise builds a private Board (own hand vs opponent candidate pool,
#   seeded with the current ends) and scores each playable tile,
# - breaks ties with the greedy ordering.

from __future__ import annotations

import math
from typing import Callable, Dict, List, Optional, Tuple

from ai import (
    RegretScore,
    SearchInvariantError,
    TranspositionTable,
    expectimax,
    expectimax_tt,
    greedy_prefer,
    maximax,
    maximax_tt,
    minimax,
    minimax_ab,
    minimax_tt,
    minregret,
    minregret_tt,
    played,
    regret_matrix,
)
from engine import Board, BoardView, PlayerId, Tile, TileSet


class Player:
    """initialize(hand, player_id[, verbose]) once per match, then select_move(view) per turn."""

    def __init__(self) -> None:
        self.hand: Optional[TileSet] = None
        self.player_id = PlayerId.FIRST
        self.verbose = False

    def initialize(self, hand: TileSet, player_id: PlayerId, verbose: bool = False) -> None:
        self.hand = hand.copy()
        self.player_id = player_id
        self.verbose = bool(verbose)

    @property
    def opponent_id(self) -> PlayerId:
        return self.player_id.toggle()

    def select_move(self, view: BoardView) -> Tile:
        raise NotImplementedError

    def name(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.name()


class GreedyPlayer(Player):
    def select_move(self, view: BoardView) -> Tile:
        hand = view.player_tile_set()
        tile = Tile()
        for t in view.playable_tiles():
            if greedy_prefer(t, tile, hand) is t:
                tile = t
        return tile

    def name(self) -> str:
        return "Greedy"


# =============================================================================
# Search players
# =============================================================================
class SearchPlayer(Player):
    NAMES: Dict[str, str] = {}

    def __init__(self, variant: str = "tt") -> None:
        super().__init__()
        if variant not in self.NAMES:
            raise ValueError(f"Unknown variant {variant!r} for {type(self).__name__}; expected one of {sorted(self.NAMES)}")
        self.variant = variant

    def name(self) -> str:
        return self.NAMES[self.variant]

    def select_move(self, view: BoardView) -> Tile:
        playable = view.playable_tiles()
        if len(playable) == 1:
            return playable[0]

        ends = view.board_ends()
        mine = view.player_tile_set()
        pool = TileSet(mine.max_value, view.opponent_candidates())
        my_size = view.hand_size(self.player_id)
        op_size = view.hand_size(self.opponent_id)

        if self.verbose:
            print(f"\nOpponent's candidate set: {pool} Size: {op_size}", flush=True)
            print(f"My true set: {mine} Size: {my_size}", flush=True)
            print("My playable tiles: " + " ".join(str(t) for t in playable), flush=True)

        board = Board(mine, pool, ends, my_size, op_size)
        return self._select(board, mine, ends, op_size)

    def _select(self, board: Board, mine: TileSet, ends: Tile, op_size: int) -> Tile:
        table = TranspositionTable() if self.variant != "plain" else None
        tile = Tile()
        best = -math.inf
        for t in mine.matching_tiles(ends):
            with played(board, t):
                score = self._evaluate(board, op_size, table)
            if self.verbose:
                print(f"Evaluating: {t} Score: {score:.3f}", flush=True)
            if best < score or (best == score and greedy_prefer(t, tile, mine) is t):
                best = score
                tile = t

        if self.verbose:
            print(f"Selected tile: {tile} Score: {best:.3f}", flush=True)
            if table is not None:
                print(f"Transpositions: {table.stats()}", flush=True)
        self._check_bound(best)
        return tile

    def _evaluate(self, board: Board, size: int, table: Optional[TranspositionTable]) -> float:
        raise NotImplementedError

    def _check_bound(self, best: float) -> None:
        pass


class MaximaxPlayer(SearchPlayer):
    """
    Optimistic player: assumes the opponent plays to help it. An upper bound
    on what can be achieved, not a worst case.
    """

    NAMES = {"plain": "MaxiMax", "tt": "MaxiMaxTT"}
    bound: float = math.inf

    def initialize(self, hand: TileSet, player_id: PlayerId, verbose: bool = False) -> None:
        super().initialize(hand, player_id, verbose)
        self.bound = math.inf

    def _evaluate(self, board: Board, size: int, table: Optional[TranspositionTable]) -> float:
        if table is None:
            return maximax(board, size)
        return maximax_tt(board, size, table)

    def _check_bound(self, best: float) -> None:
        # the optimistic value can only shrink as the opponent reveals its hand
        if best > self.bound:
            raise SearchInvariantError(f"Best score {best} is above the previous bound {self.bound}")
        self.bound = best


class MinimaxPlayer(SearchPlayer):
    """Worst-case player over every opponent hand consistent with the candidates."""

    NAMES = {"plain": "MiniMax", "ab": "MiniMaxAB", "tt": "MiniMaxTT"}
    bound: float = -math.inf

    def initialize(self, hand: TileSet, player_id: PlayerId, verbose: bool = False) -> None:
        super().initialize(hand, player_id, verbose)
        self.bound = -hand.score

    def _evaluate(self, board: Board, size: int, table: Optional[TranspositionTable]) -> float:
        if self.variant == "plain":
            return minimax(board, size)
        if self.variant == "ab":
            return minimax_ab(board, size)
        assert table is not None
        return minimax_tt(board, size, table)

    def _check_bound(self, best: float) -> None:
        # the guaranteed value can only grow as the game proceeds
        if best < self.bound:
            raise SearchInvariantError(f"Best score {best} is below the previous bound {self.bound}")
        self.bound = best


class ExpectimaxPlayer(SearchPlayer):
    NAMES = {"plain": "ExpectiMax", "tt": "ExpectiMaxTT"}

    def _evaluate(self, board: Board, size: int, table: Optional[TranspositionTable]) -> float:
        if table is None:
            return expectimax(board, size)
        return expectimax_tt(board, size, table)


class MinregretPlayer(SearchPlayer):
    """
    Picks the tile whose worst pairwise regret against any other playable tile
    is smallest; ties go to the higher expected score, then the greedy order.
    """

    NAMES = {"plain": "MinRegret", "tt": "MinRegretTT"}

    def _select(self, board: Board, mine: TileSet, ends: Tile, op_size: int) -> Tile:
        table = TranspositionTable() if self.variant != "plain" else None
        moves = mine.matching_tiles(ends)
        scores: List[RegretScore] = []
        for t in moves:
            with played(board, t):
                scores.append(minregret(board, op_size) if table is None else minregret_tt(board, op_size, table))
            if self.verbose:
                print(f"Evaluating: {t} Score: {scores[-1]}", flush=True)

        regrets = regret_matrix(scores)
        worst = regrets.max(axis=1)
        tile = Tile()
        best = 0
        best_regret = math.inf
        for i, t in enumerate(moves):
            w = float(worst[i])
            if self.verbose:
                row = " ".join(f"{float(r):+.3f}" for j, r in enumerate(regrets[i]) if j != i)
                print(f"{t} {row} Max regret: {w:+.3f}", flush=True)
            e_i, e_best = scores[i].expected(), scores[best].expected()
            if best_regret > w or (best_regret == w and (e_i > e_best or (e_i == e_best and greedy_prefer(t, tile, mine) is t))):
                best_regret = w
                best = i
                tile = t

        if self.verbose:
            print(f"Selected tile: {tile} Regret: {best_regret:+.3f} EU: {scores[best].expected():+.3f}", flush=True)
        return tile


# =============================================================================
# Registry
# =============================================================================
PLAYER_FACTORIES: Dict[str, Callable[[], Player]] = {
    "greedy": GreedyPlayer,
    "maximax": lambda: MaximaxPlayer("plain"),
    "maximax-tt": lambda: MaximaxPlayer("tt"),
    "minimax": lambda: MinimaxPlayer("plain"),
    "minimax-ab": lambda: MinimaxPlayer("ab"),
    "minimax-tt": lambda: MinimaxPlayer("tt"),
    "expectimax": lambda: ExpectimaxPlayer("plain"),
    "expectimax-tt": lambda: ExpectimaxPlayer("tt"),
    "minregret": lambda: MinregretPlayer("plain"),
    "minregret-tt": lambda: MinregretPlayer("tt"),
}

# class-style names pick the memoized variant
PLAYER_ALIASES: Dict[str, str] = {
    "greedyplayer": "greedy",
    "maximaxplayer": "maximax-tt",
    "minimaxplayer": "minimax-tt",
    "expectimaxplayer": "expectimax-tt",
    "minregretplayer": "minregret-tt",
}


def available_players() -> List[str]:
    return sorted(PLAYER_FACTORIES)


def resolve_player_name(name: str) -> str:
    key = (name or "").strip().lower()
    key = PLAYER_ALIASES.get(key, key)
    if key not in PLAYER_FACTORIES:
        raise ValueError(f"Unknown player {name!r}; choose from {available_players()} or {sorted(PLAYER_ALIASES)}")
    return key


def make_player(name: str) -> Player:
    return PLAYER_FACTORIES[resolve_player_name(name)]()


def make_players(names: Tuple[str, str]) -> Tuple[Player, Player]:
    return make_player(names[0]), make_player(names[1])
