#!/usr/bin/env python3
"""
Random game corpus with closest-length selection.

Plays seeded, uniformly random chess games to completion, caches each game as
one line of an append-only move log, and picks for every target length the
game whose half-move count is closest to it.
"""

import io
import json
import logging
import os
import random
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

import chess
import chess.pgn
import yaml


logger = logging.getLogger(__name__)

MOVE_COUNT_RE = re.compile(r"[+-]?[0-9]+")


# ============================================================================
# CONSTANTS
# ============================================================================

DEFAULT_BUDGET = 10000
DEFAULT_TARGETS = (10, 25, 50, 100, 250, 500, 750)
DEFAULT_STORAGE_PATH = "./generateStorage.txt"


class GameStatus:
    IN_PROGRESS = "in_progress"
    NO_LEGAL_MOVES = "no_legal_moves"
    # Terminal statuses reported by python-chess are the lowercase
    # chess.Termination names: checkmate, stalemate, fifty_moves, ...


# ============================================================================
# ERRORS
# ============================================================================

class GameLengthError(Exception):
    """Base class for errors raised by this module."""


class ConfigError(GameLengthError):
    pass


class StorageError(GameLengthError):
    """The move log could not be opened, read or written."""


class StorageCorruptError(StorageError):
    """A move log line failed validation.

    Seed indices are line positions, so nothing after a bad line can be
    trusted either.
    """

    def __init__(self, path: str, seed: int, reason: str):
        self.path = path
        self.seed = seed
        self.line_number = seed + 1
        self.reason = reason
        super().__init__(
            f'storage file "{path}" is corrupt at line {self.line_number} (seed #{seed}): {reason}. '
            f"Repair or remove it and restart."
        )


class MoveApplicationError(GameLengthError):
    """The rules engine refused a move it listed as legal."""


# ============================================================================
# PART 1: RULES ENGINE ADAPTER
# ============================================================================

class ChessRules:
    """Adapter over python-chess.

    With ``claim_draw`` (the default) a game also ends as soon as a
    fifty-move or threefold repetition draw could be claimed.
    """

    def __init__(self, claim_draw: bool = True):
        self.claim_draw = claim_draw

    def new_game(self) -> chess.Board:
        return chess.Board()

    def legal_moves(self, board: chess.Board) -> set:
        return set(board.legal_moves)

    def status(self, board: chess.Board) -> str:
        outcome = board.outcome(claim_draw=self.claim_draw)
        if outcome is None:
            return GameStatus.IN_PROGRESS
        return outcome.termination.name.lower()

    def apply_move(self, board: chess.Board, move: chess.Move) -> str:
        if not board.is_legal(move):
            raise MoveApplicationError(f"illegal move {move} in position {board.fen()}")
        board.push(move)
        return self.status(board)

    def notate(self, board: chess.Board, move: chess.Move) -> str:
        return board.san(move)


# ============================================================================
# PART 2: GAME RECORDS
# ============================================================================

@dataclass(frozen=True)
class FullGame:
    """A game played out by the generator."""

    seed: int
    moves: Tuple[str, ...]
    status: str

    @property
    def length(self) -> int:
        return len(self.moves)

    @property
    def is_stub(self) -> bool:
        return False


@dataclass(frozen=True)
class StubGame:
    """A game known only from its move log line."""

    seed: int
    length: int
    moves: Tuple[str, ...] = field(default=())

    def __post_init__(self):
        if self.moves and len(self.moves) != self.length:
            raise ValueError(
                f"stub #{self.seed} declares {self.length} half-moves but has {len(self.moves)}"
            )

    @property
    def is_stub(self) -> bool:
        return True


GameRecord = Union[FullGame, StubGame]


# ============================================================================
# PART 3: SEEDED GAME GENERATOR
# ============================================================================

def generate_game(seed: int, rules=None) -> FullGame:
    """
    Play one uniformly random game to its end.

    The random source depends on ``seed`` only, and legal moves are sorted by
    their string form before drawing, so the same seed always yields the same
    game for a given rules engine.
    """
    if rules is None:
        rules = ChessRules()

    state = rules.new_game()
    rnd = random.Random(seed)
    moves: List[str] = []
    status = GameStatus.IN_PROGRESS

    while status == GameStatus.IN_PROGRESS:
        legal = sorted(rules.legal_moves(state), key=str)
        if not legal:
            status = rules.status(state)
            if status == GameStatus.IN_PROGRESS:
                status = GameStatus.NO_LEGAL_MOVES
            break

        move = legal[rnd.randrange(len(legal))]
        san = rules.notate(state, move)
        status = rules.apply_move(state, move)
        moves.append(san)

    return FullGame(seed=seed, moves=tuple(moves), status=status)


def replay_san(moves: Iterable[str], board: Optional[chess.Board] = None) -> chess.pgn.Game:
    """Rebuild a PGN game tree from SAN moves. Raises ValueError on an illegal move."""
    game = chess.pgn.Game()
    if board is not None:
        game.setup(board)
    node = game
    for san in moves:
        move = node.board().parse_san(san)
        node = node.add_variation(move)
    return game


# ============================================================================
# PART 4: MOVE-LOG STORE
# ============================================================================

def format_log_line(game: GameRecord) -> str:
    return " ".join([str(game.length)] + list(game.moves)) + "\n"


def parse_log_line(line: str, seed: int, path: str = "<memory>") -> StubGame:
    """Parse one move log line into a stub whose seed is its line number."""
    tokens = line.split()
    if not tokens:
        raise StorageCorruptError(path, seed, "empty line")

    if not MOVE_COUNT_RE.fullmatch(tokens[0]):
        raise StorageCorruptError(path, seed, f"cannot parse move count {tokens[0]!r}")
    length = int(tokens[0])

    moves = tuple(tokens[1:])
    if length != len(moves):
        raise StorageCorruptError(
            path, seed,
            f"number of moves {length} does not correspond to number of SAN moves {len(moves)}"
        )
    return StubGame(seed=seed, length=length, moves=moves)


class MoveLog:
    """
    Append-only move log: line N holds the game played with seed N.

    Lines are never rewritten, so the number of lines is the next seed to
    generate.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._writer: Optional[io.TextIOBase] = None

    def __enter__(self) -> "MoveLog":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        """Open (creating if needed) the log for appending."""
        if self._writer is not None:
            return
        try:
            needs_newline = False
            if self.path.exists() and self.path.stat().st_size > 0:
                with open(self.path, 'rb') as f:
                    f.seek(-1, os.SEEK_END)
                    needs_newline = f.read(1) != b'\n'
            self._writer = open(self.path, 'a', encoding='utf-8', newline='\n')
            if needs_newline:
                self._writer.write('\n')
                self._writer.flush()
        except OSError as exc:
            self._writer = None
            raise StorageError(f"error opening/creating storage file {self.path}: {exc}") from exc

    def close(self):
        if self._writer is not None:
            self._writer.close()
            self._writer = None

    def scan(self, limit: Optional[int] = None) -> Iterator[StubGame]:
        """
        Yield stubs in seed order, stopping after ``limit`` lines.

        A missing file scans as empty. The first corrupt line raises
        StorageCorruptError.
        """
        if not self.path.exists():
            return
        try:
            f = open(self.path, 'rb')
        except OSError as exc:
            raise StorageError(f"error reading storage file {self.path}: {exc}") from exc

        with f:
            seed = 0
            while limit is None or seed < limit:
                try:
                    raw = f.readline()
                except OSError as exc:
                    raise StorageError(f"error reading storage file {self.path}: {exc}") from exc
                if not raw:
                    break
                try:
                    line = raw.decode('utf-8')
                except UnicodeDecodeError:
                    raise StorageCorruptError(str(self.path), seed, "invalid UTF-8")
                yield parse_log_line(line, seed, str(self.path))
                seed += 1

    def count(self) -> int:
        """Number of stored games, validating every line."""
        n = 0
        for _ in self.scan():
            n += 1
        return n

    def append(self, game: GameRecord):
        """Write one game durably before the caller moves on to the next seed."""
        self.open()
        try:
            self._writer.write(format_log_line(game))
            self._writer.flush()
        except OSError as exc:
            raise StorageError(f"error storing game #{game.seed} to {self.path}: {exc}") from exc

        try:
            os.fsync(self._writer.fileno())
        except OSError as exc:
            logger.warning("Error syncing storage to disk after game #%d: %s", game.seed, exc)


# ============================================================================
# PART 5: CLOSEST-LENGTH SELECTOR
# ============================================================================

def dist(a: int, b: int) -> int:
    return abs(a - b)


class LengthTable:
    """Best-known game per target length, fed one record at a time in seed order."""

    def __init__(self, targets: Iterable[int]):
        self._best: Dict[int, Optional[GameRecord]] = {t: None for t in sorted(set(targets))}

    def __len__(self) -> int:
        return len(self._best)

    @property
    def targets(self) -> List[int]:
        return list(self._best)

    def consider(self, game: GameRecord):
        for target, current in self._best.items():
            if current is None or dist(target, game.length) < dist(target, current.length):
                self._best[target] = game

    def best(self, target: int) -> Optional[GameRecord]:
        return self._best[target]

    def distance(self, target: int) -> Optional[int]:
        game = self._best[target]
        if game is None:
            return None
        return dist(target, game.length)

    def items(self) -> List[Tuple[int, GameRecord]]:
        return [(t, g) for t, g in self._best.items() if g is not None]


# ============================================================================
# PART 6: RESULT REPORTER
# ============================================================================

def resolve_game(game: GameRecord, rules=None) -> FullGame:
    """Replay a stub from its seed; full games are returned as is."""
    if not game.is_stub:
        return game

    full = generate_game(game.seed, rules)
    if game.moves and tuple(game.moves) != full.moves:
        logger.warning("Storage moves:   %s", " ".join(game.moves))
        logger.warning("Generated moves: %s", " ".join(full.moves))
        logger.warning(
            "Moves for game #%d loaded from storage are not equal to generated moves", game.seed
        )
    return full


def format_result(game: FullGame, target: int) -> str:
    return (
        "{\n"
        f'\t"Random-game-#{game.seed}_half-moves-{game.length}_target-{target}", "",\n'
        f"\t{json.dumps(list(game.moves))},\n"
        "},\n"
    )


def write_results(table: LengthTable, path: Union[str, Path], rules=None) -> List[Tuple[int, FullGame]]:
    """Write one literal block per target, in ascending target order."""
    resolved = []
    with open(path, 'w', encoding='utf-8') as f:
        for target, game in table.items():
            full = resolve_game(game, rules)
            logger.info("Target length: %d | Random game #%d | half moves: %d",
                        target, full.seed, full.length)
            f.write(format_result(full, target))
            resolved.append((target, full))
    return resolved


# ============================================================================
# PART 7: CONFIGURATION
# ============================================================================

@dataclass
class RunConfig:
    budget: int = DEFAULT_BUDGET
    targets: Tuple[int, ...] = DEFAULT_TARGETS
    storage_path: str = DEFAULT_STORAGE_PATH
    result_path: Optional[str] = None
    claim_draw: bool = True

    def __post_init__(self):
        if isinstance(self.budget, bool) or not isinstance(self.budget, int) or self.budget < 0:
            raise ConfigError(f"budget must be a non-negative integer, got {self.budget!r}")
        if not isinstance(self.targets, (list, tuple)):
            raise ConfigError(f"targets must be a list of integers, got {self.targets!r}")
        targets = tuple(self.targets)
        if not targets:
            raise ConfigError("at least one target length is required")
        for t in targets:
            if isinstance(t, bool) or not isinstance(t, int) or t <= 0:
                raise ConfigError(f"target lengths must be positive integers, got {t!r}")
        self.targets = tuple(sorted(set(targets)))
        if not isinstance(self.storage_path, (str, os.PathLike)) or not str(self.storage_path):
            raise ConfigError(f"storage_path must be a non-empty path, got {self.storage_path!r}")
        if self.result_path is not None and not isinstance(self.result_path, (str, os.PathLike)):
            raise ConfigError(f"result_path must be a path, got {self.result_path!r}")
        if not isinstance(self.claim_draw, bool):
            raise ConfigError(f"claim_draw must be true or false, got {self.claim_draw!r}")

    @property
    def resolved_result_path(self) -> str:
        if self.result_path:
            return self.result_path
        return f"./generated_{self.budget}.txt"


def parse_targets(text: str) -> Tuple[int, ...]:
    """Parse a comma separated target list such as ``"10,25,50"``."""
    try:
        return tuple(int(part) for part in text.split(",") if part.strip())
    except ValueError as exc:
        raise ConfigError(f"invalid target list {text!r}") from exc


def load_config(path: Optional[Union[str, Path]], **overrides: Any) -> RunConfig:
    """
    Build a RunConfig from an optional YAML file plus keyword overrides.

    ``None`` overrides are ignored so argparse defaults can be passed straight
    through.
    """
    values: Dict[str, Any] = {}
    if path is not None:
        path = Path(path)
        if not path.exists():
            logger.warning("Config not found: %s (using defaults)", path)
        else:
            with path.open("r", encoding="utf-8") as handle:
                loaded = yaml.safe_load(handle) or {}
            if not isinstance(loaded, dict):
                raise ConfigError(f"config file {path} must contain a mapping")
            unknown = set(loaded) - set(RunConfig.__dataclass_fields__)
            if unknown:
                raise ConfigError(f"unknown config keys in {path}: {', '.join(sorted(unknown))}")
            values.update(loaded)

    values.update({k: v for k, v in overrides.items() if v is not None})
    return RunConfig(**values)


# ============================================================================
# PART 8: PIPELINE
# ============================================================================

@dataclass
class RunSummary:
    loaded: int = 0
    generated: int = 0
    result_path: Optional[str] = None
    results: List[Tuple[int, FullGame]] = field(default_factory=list)


def run(config: RunConfig, rules=None, progress=None) -> RunSummary:
    """
    Load cached games, generate the rest of the budget, and write the report.

    ``progress`` is any object with ``update(current, total)`` and
    ``finish()``.
    """
    if rules is None:
        rules = ChessRules(claim_draw=config.claim_draw)

    table = LengthTable(config.targets)
    summary = RunSummary()

    log = MoveLog(config.storage_path)
    store: Optional[MoveLog] = log
    try:
        for stub in log.scan(limit=config.budget):
            table.consider(stub)
            summary.loaded += 1
    except StorageCorruptError:
        raise
    except StorageError as exc:
        logger.error("%s; generated games will not be stored", exc)
        store = None
    logger.info("Loaded %d games from %s", summary.loaded, config.storage_path)

    if store is not None and summary.loaded < config.budget:
        try:
            log.open()
        except StorageError as exc:
            logger.error("%s; generated games will not be stored", exc)
            store = None

    try:
        for seed in range(summary.loaded, config.budget):
            logger.debug("Generating game with seed #%d", seed)
            game = generate_game(seed, rules)
            logger.debug("GameStatus after %d half-moves: %s", game.length, game.status)
            if store is not None:
                try:
                    store.append(game)
                except StorageError as exc:
                    logger.error("%s; continuing without storage", exc)
                    store.close()
                    store = None
            table.consider(game)
            summary.generated += 1
            if progress is not None:
                progress.update(seed + 1, config.budget)
    finally:
        log.close()
        if progress is not None:
            progress.finish()

    result_path = config.resolved_result_path
    logger.info("Writing results to: %s", result_path)
    try:
        summary.results = write_results(table, result_path, rules)
        summary.result_path = result_path
    except OSError as exc:
        logger.error("Error creating result file %s: %s", result_path, exc)
    return summary
