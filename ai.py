# FILE: ai.py | version: 2026-10-18.v1
# (hidden-hand search: hypergeometric opponent model + maximax / minimax(ab, tt) /
#  expectimax / minimax-regret over a private Board driven by play/undo guards)
#
# Search board convention:
# - PlayerId.FIRST is the searching player (true hand), PlayerId.SECOND is the
#   opponent's candidate pool; `size` is how many tiles the opponent really holds.
# - The opponent's size budget drops only on its real plays; search ends at
#   ENDED or when the budget reaches 0.
# - Values are Board.current_score() terms: opponent pips minus my pips.

from __future__ import annotations

import math
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Literal, NamedTuple, Optional, Sequence

import numpy as np

from engine import Board, PlayerId, Tile, TileSet

PROB_TOLERANCE = 1e-12

Bound = Literal["exact", "lower", "upper"]


class SearchInvariantError(RuntimeError):
    pass


# =============================================================================
# Play/undo guards (board must be restored on every exit path)
# =============================================================================
@contextmanager
def played(board: Board, tile: Tile) -> Iterator[None]:
    board.play_tile(tile)
    try:
        yield
    finally:
        board.unplay_tile()


@contextmanager
def withheld(hand: TileSet, ends: Tile) -> Iterator[List[Tile]]:
    removed = hand.remove_matches(ends)
    try:
        yield removed
    finally:
        hand.update(removed)


@contextmanager
def blocked(board: Board, size: int) -> Iterator[bool]:
    """
    Opponent pass branch for the bound criteria: withhold every pool tile that
    matches the ends and pass, if a hand of `size` tiles can still be drawn
    from what is left. Yields False (nothing played) otherwise.
    """
    pool = board.hand(PlayerId.SECOND)
    with withheld(pool, board.board_ends()) as removed:
        if removed and len(pool) >= size:
            with played(board, Tile()):
                yield True
        else:
            yield False


@contextmanager
def replied(board: Board, tile: Tile, withhold: bool) -> Iterator[None]:
    if withhold:
        with withheld(board.hand(PlayerId.SECOND), board.board_ends()):
            with played(board, tile):
                yield
    else:
        with played(board, tile):
            yield


def _next_size(tile: Tile, size: int) -> int:
    return size if tile.is_empty() else size - 1


# =============================================================================
# Transposition table
# =============================================================================
class TTEntry(NamedTuple):
    value: float
    flag: Bound


class TranspositionTable:
    """Per-search memo: board hash -> value (and bound flag for alpha-beta)."""

    def __init__(self) -> None:
        self._table: Dict[int, object] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: int) -> Optional[object]:
        hit = self._table.get(key)
        if hit is None:
            self.misses += 1
        else:
            self.hits += 1
        return hit

    def put(self, key: int, value: object) -> None:
        self._table[key] = value

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, key: int) -> bool:
        return key in self._table

    def stats(self) -> Dict[str, int]:
        return {"size": len(self._table), "hits": self.hits, "misses": self.misses}


# =============================================================================
# Probability model
# =============================================================================
def choose(n: int, k: int) -> int:
    """
    Binomial coefficient by float accumulation, truncated to int.
    Exact for domino-sized pools.
    """
    if k < 0 or k > n:
        return 0
    if k > n // 2:
        k = n - k
    num = 1.0
    den = 1.0
    for i in range(1, k + 1):
        den *= i
        num *= n + 1 - i
    return int(num / den)


def tile_play_prob(single: bool, single_size: int, double_size: int, set_size: int, cand_size: int) -> float:
    """
    Probability that a hand of `set_size` tiles drawn from `cand_size` candidates
    holds one given matching tile and picks it, every held option being equally
    likely. A tile equal to non-double ends fits both ends and counts as two
    options ("double" category).
    """
    n = choose(cand_size, set_size)
    if n == 0:
        return 0.0
    nomatch = cand_size - single_size - double_size
    if single:
        single_size -= 1
    else:
        double_size -= 1
    set_size -= 1

    p = 0.0
    for i in range(single_size + 1):
        for j in range(double_size + 1):
            if i + j > set_size:
                break
            set_prob = choose(nomatch, set_size - i - j) * choose(single_size, i) * choose(double_size, j) / n
            pick_prob = 1.0 / ((1 if single else 2) + i + 2 * j)
            p += set_prob * pick_prob
    return p


class TileProb(NamedTuple):
    tile: Tile
    prob: float


def branch_probabilities(board: Board, set_size: int) -> List[TileProb]:
    """Opponent replies with their probabilities; a pass comes last when possible."""
    ends = board.board_ends()
    moves = board.current_player_moves()
    head = moves[0]
    pool_size = len(board.hand(board.current_player))

    double_size = 1 if (not head.is_empty() and not head.is_double() and head == ends) else 0
    single_size = 0 if head.is_empty() else len(moves) - 2 * double_size

    single_prob = tile_play_prob(True, single_size, double_size, set_size, pool_size)
    double_prob = tile_play_prob(False, single_size, double_size, set_size, pool_size)

    out: List[TileProb] = []
    for t in moves:
        if not t.is_double() and t == ends:
            out.append(TileProb(t, double_prob))
        elif not t.is_empty():
            out.append(TileProb(t, single_prob))

    nomatch = pool_size - single_size - double_size
    if nomatch >= set_size:
        out.append(TileProb(Tile(), choose(nomatch, set_size) / choose(pool_size, set_size)))
    return out


def check_normalized(total: float, board: Board) -> None:
    if abs(total - 1.0) > PROB_TOLERANCE:
        raise SearchInvariantError(f"Branch probabilities sum to {total!r} at ends {board.board_ends()}")


# =============================================================================
# Greedy ordering
# =============================================================================
def greedy_prefer(t1: Tile, t2: Tile, hand: TileSet) -> Tile:
    """
    Higher pip total; then more tiles left in hand for the trailing value;
    then the lower trailing value. Returns t2 on a full tie.
    """
    n = t1.total_value() - t2.total_value()
    if n:
        return t1 if n > 0 else t2
    n = hand.match_count(t1.right) - hand.match_count(t2.right)
    if n:
        return t1 if n > 0 else t2
    return t1 if t2.right - t1.right > 0 else t2


# =============================================================================
# Terminal evaluators
# =============================================================================
def min_terminal(board: Board, size: int) -> int:
    mine = board.hand(PlayerId.FIRST).score
    theirs = 0 if size == 0 else board.hand(PlayerId.SECOND).min_score(size)
    return theirs - mine


def max_terminal(board: Board, size: int) -> int:
    mine = board.hand(PlayerId.FIRST).score
    theirs = 0 if size == 0 else board.hand(PlayerId.SECOND).max_score(size)
    return theirs - mine


def avg_terminal(board: Board, size: int) -> float:
    mine = board.hand(PlayerId.FIRST).score
    pool = board.hand(PlayerId.SECOND)
    theirs = 0.0 if size == 0 else 1.0 * pool.score * size / len(pool)
    return theirs - mine


def _is_terminal(board: Board, size: int) -> bool:
    return board.is_over() or size == 0


# =============================================================================
# Maximax (optimistic: opponent treated as cooperating)
# =============================================================================
def maximax(board: Board, size: int) -> int:
    if _is_terminal(board, size):
        return max_terminal(board, size)

    moves = board.current_player_moves()
    best = -math.inf
    if board.current_player is PlayerId.FIRST:
        for t in moves:
            with played(board, t):
                best = max(best, maximax(board, size))
        return int(best)

    for t in moves:
        with played(board, t):
            best = max(best, maximax(board, _next_size(t, size)))
    if not moves[0].is_empty():
        with blocked(board, size) as passed:
            if passed:
                best = max(best, maximax(board, size))
    return int(best)


def maximax_tt(board: Board, size: int, table: TranspositionTable) -> int:
    key = board.hash_value()
    hit = table.get(key)
    if hit is not None:
        return int(hit)  # type: ignore[arg-type]

    if _is_terminal(board, size):
        value = max_terminal(board, size)
        table.put(key, value)
        return value

    moves = board.current_player_moves()
    best = -math.inf
    if board.current_player is PlayerId.FIRST:
        for t in moves:
            with played(board, t):
                best = max(best, maximax_tt(board, size, table))
    else:
        for t in moves:
            with played(board, t):
                best = max(best, maximax_tt(board, _next_size(t, size), table))
        if not moves[0].is_empty():
            with blocked(board, size) as passed:
                if passed:
                    best = max(best, maximax_tt(board, size, table))

    value = int(best)
    table.put(key, value)
    return value


# =============================================================================
# Minimax (worst case), with alpha-beta and with a bounded transposition table
# =============================================================================
def minimax(board: Board, size: int) -> int:
    if _is_terminal(board, size):
        return min_terminal(board, size)

    moves = board.current_player_moves()
    if board.current_player is PlayerId.FIRST:
        best = -math.inf
        for t in moves:
            with played(board, t):
                best = max(best, minimax(board, size))
        return int(best)

    worst = math.inf
    for t in moves:
        with played(board, t):
            worst = min(worst, minimax(board, _next_size(t, size)))
    if not moves[0].is_empty():
        with blocked(board, size) as passed:
            if passed:
                worst = min(worst, minimax(board, size))
    return int(worst)


def minimax_ab(board: Board, size: int, alpha: float = -math.inf, beta: float = math.inf) -> int:
    if _is_terminal(board, size):
        return min_terminal(board, size)

    moves = board.current_player_moves()
    if board.current_player is PlayerId.FIRST:
        value = -math.inf
        for t in moves:
            with played(board, t):
                value = max(value, minimax_ab(board, size, alpha, beta))
            alpha = max(alpha, value)
            if beta <= alpha:
                break
        return int(value)

    value = math.inf
    for t in moves:
        with played(board, t):
            value = min(value, minimax_ab(board, _next_size(t, size), alpha, beta))
        beta = min(beta, value)
        if beta <= alpha:
            break
    if beta > alpha and not moves[0].is_empty():
        with blocked(board, size) as passed:
            if passed:
                value = min(value, minimax_ab(board, size, alpha, beta))
    return int(value)


def minimax_tt(
    board: Board,
    size: int,
    table: TranspositionTable,
    alpha: float = -math.inf,
    beta: float = math.inf,
) -> int:
    key = board.hash_value()
    hit = table.get(key)
    if hit is not None:
        entry: TTEntry = hit  # type: ignore[assignment]
        if entry.flag == "exact":
            return int(entry.value)
        if entry.flag == "lower":
            if entry.value >= beta:
                return int(entry.value)
            alpha = max(alpha, entry.value)
        else:
            if entry.value <= alpha:
                return int(entry.value)
            beta = min(beta, entry.value)

    a, b = alpha, beta
    if _is_terminal(board, size):
        value = min_terminal(board, size)
        table.put(key, TTEntry(value, "exact"))
        return value

    moves = board.current_player_moves()
    if board.current_player is PlayerId.FIRST:
        best = -math.inf
        for t in moves:
            with played(board, t):
                best = max(best, minimax_tt(board, size, table, alpha, beta))
            alpha = max(alpha, best)
            if beta <= alpha:
                break
    else:
        best = math.inf
        for t in moves:
            with played(board, t):
                best = min(best, minimax_tt(board, _next_size(t, size), table, alpha, beta))
            beta = min(beta, best)
            if beta <= alpha:
                break
        if beta > alpha and not moves[0].is_empty():
            with blocked(board, size) as passed:
                if passed:
                    best = min(best, minimax_tt(board, size, table, alpha, beta))

    value = int(best)
    if value <= a:
        flag: Bound = "upper"
    elif value >= b:
        flag = "lower"
    else:
        flag = "exact"
    table.put(key, TTEntry(value, flag))
    return value


# =============================================================================
# Expectimax
# =============================================================================
def _expected_reply(board: Board, size: int, evaluate) -> float:
    probs = branch_probabilities(board, size)
    withhold = len(probs) > 1
    value = 0.0
    total = 0.0
    for tile, prob in probs:
        with replied(board, tile, withhold and tile.is_empty()):
            value += prob * evaluate(_next_size(tile, size))
        total += prob
    check_normalized(total, board)
    return value


def expectimax(board: Board, size: int) -> float:
    if _is_terminal(board, size):
        return avg_terminal(board, size)

    if board.current_player is PlayerId.FIRST:
        best = -math.inf
        for t in board.current_player_moves():
            with played(board, t):
                best = max(best, expectimax(board, size))
        return best

    return _expected_reply(board, size, lambda s: expectimax(board, s))


def expectimax_tt(board: Board, size: int, table: TranspositionTable) -> float:
    key = board.hash_value()
    hit = table.get(key)
    if hit is not None:
        return float(hit)  # type: ignore[arg-type]

    if _is_terminal(board, size):
        value = avg_terminal(board, size)
    elif board.current_player is PlayerId.FIRST:
        value = -math.inf
        for t in board.current_player_moves():
            with played(board, t):
                value = max(value, expectimax_tt(board, size, table))
    else:
        value = _expected_reply(board, size, lambda s: expectimax_tt(board, s, table))

    table.put(key, value)
    return value


# =============================================================================
# Minimax-regret
# =============================================================================
@dataclass
class RegretScore:
    """
    Expected outcome split by sign: probability mass and probability-weighted
    score of the winning (pos) and losing (neg) outcomes. A draw adds its mass
    to both sides.
    """

    pos_prob: float = 0.0
    neg_prob: float = 0.0
    pos_score: float = 0.0
    neg_score: float = 0.0

    def merge(self, other: "RegretScore", prob: float = 1.0) -> None:
        self.pos_prob += prob * other.pos_prob
        self.neg_prob += prob * other.neg_prob
        self.pos_score += prob * other.pos_score
        self.neg_score += prob * other.neg_score

    def expected(self) -> float:
        return self.pos_score + self.neg_score

    def copy(self) -> "RegretScore":
        return RegretScore(self.pos_prob, self.neg_prob, self.pos_score, self.neg_score)

    def __str__(self) -> str:
        return f"[{self.pos_prob:+.3f} {self.neg_prob:+.3f} {self.pos_score:+.3f} {self.neg_score:+.3f}]"


def regret(a: RegretScore, b: RegretScore) -> float:
    return a.neg_prob * b.pos_score - b.pos_prob * a.neg_score


def regret_matrix(scores: Sequence[RegretScore]) -> np.ndarray:
    """R[i, j] = regret(scores[i], scores[j]); the diagonal is -inf."""
    pos_prob = np.array([s.pos_prob for s in scores], dtype=np.float64)
    neg_prob = np.array([s.neg_prob for s in scores], dtype=np.float64)
    pos_score = np.array([s.pos_score for s in scores], dtype=np.float64)
    neg_score = np.array([s.neg_score for s in scores], dtype=np.float64)
    r = np.outer(neg_prob, pos_score) - np.outer(neg_score, pos_prob)
    np.fill_diagonal(r, -np.inf)
    return r


def least_regret_index(scores: Sequence[RegretScore]) -> int:
    """Index with the smallest worst-case regret; ties go to the higher expected score, then the first."""
    worst = regret_matrix(scores).max(axis=1)
    best = 0
    best_regret = math.inf
    for i, s in enumerate(scores):
        w = float(worst[i])
        if best_regret > w or (best_regret == w and s.expected() > scores[best].expected()):
            best_regret = w
            best = i
    return best


def hand_sum_counts(pool: TileSet, size: int) -> np.ndarray:
    """counts[s] = number of `size`-tile hands from `pool` whose pips sum to s."""
    values = [t.total_value() for t in pool]
    top = sum(sorted(values, reverse=True)[:size])
    counts = np.zeros((size + 1, top + 1), dtype=np.int64)
    counts[0, 0] = 1
    for v in values:
        for k in range(size, 0, -1):
            if v == 0:
                counts[k] += counts[k - 1]
            else:
                counts[k, v:] += counts[k - 1, :-v]
    return counts[size]


def regret_terminal(board: Board, size: int) -> RegretScore:
    score = -board.hand(PlayerId.FIRST).score
    if size == 0:
        if score == 0:
            return RegretScore(1.0, 1.0, 0.0, 0.0)
        return RegretScore(0.0, 1.0, 0.0, float(score))

    pool = board.hand(PlayerId.SECOND)
    weight = 1.0 / choose(len(pool), size)
    counts = hand_sum_counts(pool, size)

    out = RegretScore()
    for s in np.flatnonzero(counts):
        total = score + int(s)
        mass = int(counts[s]) * weight
        if total > 0:
            out.pos_prob += mass
            out.pos_score += mass * total
        elif total < 0:
            out.neg_prob += mass
            out.neg_score += mass * total
        else:
            out.pos_prob += mass
            out.neg_prob += mass
    return out


def _regret_reply(board: Board, size: int, evaluate) -> RegretScore:
    probs = branch_probabilities(board, size)
    withhold = len(probs) > 1
    out = RegretScore()
    total = 0.0
    for tile, prob in probs:
        with replied(board, tile, withhold and tile.is_empty()):
            out.merge(evaluate(_next_size(tile, size)), prob)
        total += prob
    check_normalized(total, board)
    return out


def _regret_choice(board: Board, evaluate) -> RegretScore:
    scores: List[RegretScore] = []
    for t in board.current_player_moves():
        with played(board, t):
            scores.append(evaluate())
    return scores[least_regret_index(scores)]


def minregret(board: Board, size: int) -> RegretScore:
    if _is_terminal(board, size):
        return regret_terminal(board, size)
    if board.current_player is PlayerId.FIRST:
        return _regret_choice(board, lambda: minregret(board, size))
    return _regret_reply(board, size, lambda s: minregret(board, s))


def minregret_tt(board: Board, size: int, table: TranspositionTable) -> RegretScore:
    key = board.hash_value()
    hit = table.get(key)
    if hit is not None:
        return hit.copy()  # type: ignore[union-attr]

    if _is_terminal(board, size):
        value = regret_terminal(board, size)
    elif board.current_player is PlayerId.FIRST:
        value = _regret_choice(board, lambda: minregret_tt(board, size, table))
    else:
        value = _regret_reply(board, size, lambda s: minregret_tt(board, s, table))

    table.put(key, value.copy())
    return value


# =============================================================================
# Full-information solver (both hands known)
# =============================================================================
def solve_game(board: Board) -> int:
    """Exact minimax score of a board whose two hands are both real."""
    if board.is_over():
        return board.current_score()

    moves = board.current_player_moves()
    if board.current_player is PlayerId.FIRST:
        best = -math.inf
        for t in moves:
            with played(board, t):
                best = max(best, solve_game(board))
        return int(best)

    worst = math.inf
    for t in moves:
        with played(board, t):
            worst = min(worst, solve_game(board))
    return int(worst)
