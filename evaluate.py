# FILE: evaluate.py | version: 2026-10-18.v1
# Headless match runner for the domino players
#
# Design:
# - engine.TrackedBoard is authoritative: it validates every move and keeps the
#   candidate sets each player's view exposes.
# - Players get copies of their hands; the board owns its own copies.
# - Score = second hand's pips minus first hand's pips at the end, so a
#   positive score is won by the player who moved first.
#
# Modes:
# - single match (optionally replayed with the strategies exchanged: --swap)
# - tournament: random deals until one player's winnings reach --target
# - --solve: exact full-information value of the deal

from __future__ import annotations

import argparse
import json
import os
import random
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from engine import Board, PlayerId, Tile, TileSet, TrackedBoard, parse_tiles, tile_count
from ai import solve_game
import players as players_mod
from players import Player

DEFAULT_MAX_VALUE = int(os.environ.get("DOMINO_MAX_VALUE", "6"))
DEFAULT_HAND_SIZE = int(os.environ.get("DOMINO_HAND_SIZE", "7"))
DEFAULT_TOURNAMENT_TARGET = int(os.environ.get("DOMINO_TOURNAMENT_TARGET", "100"))


@dataclass
class MatchConfig:
    max_value: int = DEFAULT_MAX_VALUE
    hand_size: int = DEFAULT_HAND_SIZE

    # fixed hands (None = deal at random)
    first_hand: Optional[List[Tile]] = None
    second_hand: Optional[List[Tile]] = None

    swap: bool = False
    tournament: bool = False
    target: int = DEFAULT_TOURNAMENT_TARGET
    max_matches: Optional[int] = None  # tournament safety stop

    solve: bool = False
    verbose: bool = False
    seed: Optional[int] = None

    def validate(self) -> None:
        if self.max_value < 0:
            raise ValueError("The maximum tile value cannot be negative")
        if self.hand_size <= 0:
            raise ValueError("Each player should draw at least one tile")
        if 2 * self.hand_size > tile_count(self.max_value):
            raise ValueError(
                f"It is not possible to draw two sets of {self.hand_size} tiles if the maximum value is {self.max_value}"
            )
        for hand in (self.first_hand, self.second_hand):
            if hand is not None and len(hand) != self.hand_size:
                raise ValueError(f"One tile set does not contain {self.hand_size} tiles")


@dataclass
class MatchResult:
    first: str
    second: str
    first_hand: str
    second_hand: str
    score: int
    elapsed_ms: int
    transcript: List[Dict[str, Any]] = field(default_factory=list)

    def line(self) -> str:
        return f"{self.first}\t{self.first_hand}\t{self.second}\t{self.second_hand}\t{self.score}\t{self.elapsed_ms}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "first": self.first,
            "second": self.second,
            "first_hand": self.first_hand,
            "second_hand": self.second_hand,
            "score": int(self.score),
            "elapsed_ms": int(self.elapsed_ms),
            "plies": len(self.transcript),
        }


# =============================================================================
# Dealing
# =============================================================================
def draw_tiles(max_value: int, n: int, rng: random.Random, exclude: Optional[Sequence[Tile]] = None) -> List[Tile]:
    """
    Draw `n` distinct random tiles not in `exclude`. When `exclude` holds no
    double, the draw is forced to contain one so the game can start.
    """
    out: List[Tile] = []
    if exclude is not None and not any(t.is_double() for t in exclude):
        v = rng.randint(0, max_value)
        out.append(Tile(v, v))

    while len(out) != n:
        t = Tile(rng.randint(0, max_value), rng.randint(0, max_value))
        if (exclude is None or t not in exclude) and t not in out:
            out.append(t)
    return out


def order_by_double(
    sets: Tuple[TileSet, TileSet], players: Tuple[Player, Player]
) -> Tuple[Tuple[TileSet, TileSet], Tuple[Player, Player]]:
    """The holder of the larger double moves first; hands and players swap together."""
    d0 = sets[0].largest_double()
    d1 = sets[1].largest_double()
    if d0.is_empty() and d1.is_empty():
        raise ValueError("No player has a double tile: cannot start the game")
    if d1.max_value() > d0.max_value():
        return (sets[1], sets[0]), (players[1], players[0])
    return sets, players


def deal(
    cfg: MatchConfig, players: Tuple[Player, Player], rng: random.Random, fixed: bool = True
) -> Tuple[Tuple[TileSet, TileSet], Tuple[Player, Player]]:
    first = cfg.first_hand if fixed else None
    second = cfg.second_hand if fixed else None
    if first is None and second is None:
        first = draw_tiles(cfg.max_value, cfg.hand_size, rng)
        second = draw_tiles(cfg.max_value, cfg.hand_size, rng, first)
    elif first is None:
        first = draw_tiles(cfg.max_value, cfg.hand_size, rng, second)
    elif second is None:
        second = draw_tiles(cfg.max_value, cfg.hand_size, rng, first)

    assert first is not None and second is not None
    sets = (TileSet(cfg.max_value, first), TileSet(cfg.max_value, second))
    return order_by_double(sets, players)


# =============================================================================
# Matches
# =============================================================================
def play_domino(players: Tuple[Player, Player], board: TrackedBoard, verbose: bool = False) -> Tuple[int, List[Dict[str, Any]]]:
    transcript: List[Dict[str, Any]] = []
    while not board.is_over():
        pid = board.current_player
        p = players[pid]
        if verbose:
            print(json.dumps(board.snapshot(), ensure_ascii=False), flush=True)
            print(f"\n{pid.name} player ({p.name()}) turn", flush=True)
        tile = p.select_move(board.view(pid))
        board.play_tile(tile)
        transcript.append({"player": pid.name.lower(), "tile": str(tile), "ends": str(board.board_ends())})
    if verbose:
        print(json.dumps(board.snapshot(), ensure_ascii=False), flush=True)
    return board.current_score(), transcript


def run_match(players: Tuple[Player, Player], sets: Tuple[TileSet, TileSet], verbose: bool = False) -> MatchResult:
    players[0].initialize(sets[0].copy(), PlayerId.FIRST, verbose)
    players[1].initialize(sets[1].copy(), PlayerId.SECOND, verbose)
    board = TrackedBoard(sets[0].copy(), sets[1].copy())

    t0 = time.time()
    score, transcript = play_domino(players, board, verbose)
    elapsed_ms = int((time.time() - t0) * 1000)
    return MatchResult(
        first=players[0].name(),
        second=players[1].name(),
        first_hand=str(sets[0]),
        second_hand=str(sets[1]),
        score=int(score),
        elapsed_ms=elapsed_ms,
        transcript=transcript,
    )


def single_match(players: Tuple[Player, Player], sets: Tuple[TileSet, TileSet], cfg: MatchConfig) -> List[MatchResult]:
    results = [run_match(players, sets, cfg.verbose)]
    print(results[-1].line(), flush=True)
    if cfg.swap:
        results.append(run_match((players[1], players[0]), sets, cfg.verbose))
        print(results[-1].line(), flush=True)
    return results


def tournament(players: Tuple[Player, Player], cfg: MatchConfig, rng: random.Random) -> Dict[str, Any]:
    """
    Random deals until one player's winnings reach `cfg.target`. A positive
    score goes to whoever moved first, a negative one to the other player.
    """
    p0, p1 = players
    winnings: Dict[int, int] = {id(p0): 0, id(p1): 0}
    seats = players
    results: List[MatchResult] = []

    while max(winnings.values()) < cfg.target:
        if cfg.max_matches is not None and len(results) >= cfg.max_matches:
            print(f"[WARN] tournament stopped after {len(results)} matches", flush=True)
            break
        sets, seats = deal(cfg, seats, rng, fixed=False)
        res = run_match(seats, sets, cfg.verbose)
        results.append(res)
        if res.score > 0:
            winnings[id(seats[0])] += res.score
        else:
            winnings[id(seats[1])] -= res.score
        print(f"{res.first}\t{res.first_hand}\t{res.second}\t{res.second_hand}\t{res.score}"
              f"\t{p0.name()}: {winnings[id(p0)]}\t{p1.name()}: {winnings[id(p1)]}", flush=True)

    s0, s1 = winnings[id(p0)], winnings[id(p1)]
    winner, loser = (p0, p1) if s0 > s1 else (p1, p0)
    return {
        "matches": len(results),
        "scores": {"first": {"name": p0.name(), "score": s0}, "second": {"name": p1.name(), "score": s1}},
        "winner": {"name": winner.name(), "score": max(s0, s1)},
        "loser": {"name": loser.name(), "score": min(s0, s1)},
    }


def solve(sets: Tuple[TileSet, TileSet]) -> Dict[str, Any]:
    t0 = time.time()
    score = solve_game(Board(sets[0].copy(), sets[1].copy()))
    return {
        "first_hand": str(sets[0]),
        "second_hand": str(sets[1]),
        "score": int(score),
        "elapsed_ms": int((time.time() - t0) * 1000),
    }


def run(cfg: MatchConfig, names: Tuple[str, str]) -> Dict[str, Any]:
    cfg.validate()
    rng = random.Random(cfg.seed)
    players = players_mod.make_players(names)

    if cfg.tournament:
        rep: Dict[str, Any] = {"ok": True, "op": "tournament", "target": int(cfg.target)}
        rep.update(tournament(players, cfg, rng))
        return rep

    sets, seats = deal(cfg, players, rng)
    if cfg.solve:
        rep = {"ok": True, "op": "solve"}
        rep.update(solve(sets))
        return rep

    results = single_match(seats, sets, cfg)
    return {"ok": True, "op": "match", "results": [r.to_dict() for r in results]}


# =============================================================================
# CLI
# =============================================================================
def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Play domino players against each other.")
    ap.add_argument("players", nargs=2, help=f"player names: {', '.join(players_mod.available_players())}")
    ap.add_argument("-m", "--max_value", type=int, default=DEFAULT_MAX_VALUE, help="maximum value for a tile")
    ap.add_argument("-n", "--hand_size", type=int, default=DEFAULT_HAND_SIZE, help="number of tiles per player")
    ap.add_argument("-1", "--first", type=str, default=None, help='tiles of the first player, e.g. "0|1 2|2" (default: random)')
    ap.add_argument("-2", "--second", type=str, default=None, help="tiles of the second player (default: random)")
    ap.add_argument("-s", "--swap", action="store_true", help="play again with the strategies exchanged")
    ap.add_argument("-t", "--tournament", action="store_true", help="random deals until one player reaches --target")
    ap.add_argument("-v", "--verbose", action="store_true")
    ap.add_argument("--target", type=int, default=DEFAULT_TOURNAMENT_TARGET)
    ap.add_argument("--max_matches", type=int, default=None)
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--solve", action="store_true", help="print the full-information value of the deal")
    return ap


def config_from_args(args: argparse.Namespace) -> MatchConfig:
    return MatchConfig(
        max_value=int(args.max_value),
        hand_size=int(args.hand_size),
        first_hand=parse_tiles(args.first) if args.first else None,
        second_hand=parse_tiles(args.second) if args.second else None,
        swap=bool(args.swap),
        tournament=bool(args.tournament),
        target=int(args.target),
        max_matches=args.max_matches,
        solve=bool(args.solve),
        verbose=bool(args.verbose),
        seed=args.seed,
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    ap = build_arg_parser()
    args = ap.parse_args(argv)
    cfg = config_from_args(args)

    rep = run(cfg, (args.players[0], args.players[1]))
    print(json.dumps(rep, ensure_ascii=False), flush=True)
    print(json.dumps(rep, ensure_ascii=False, indent=2), flush=True)


if __name__ == "__main__":
    main()
