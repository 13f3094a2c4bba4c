#!/usr/bin/env python3
"""
gamelength CLI - find random games closest to target lengths

Generates seeded random chess games into an append-only move log and reports,
for each target length, the stored game whose half-move count is closest.
"""

import sys
import os
import argparse
import logging
from typing import Optional
import time

import randgames


VERSION = "0.1.0"


# ============================================================================
# PROGRESS REPORTING
# ============================================================================

class ProgressReporter:
    """Progress reporter for long-running generation."""

    def __init__(self, quiet: bool = False):
        self.quiet = quiet
        self.last_update = 0
        self.start_time = time.time()

    def update(self, current: int, total: Optional[int] = None, force: bool = False):
        """Update progress display."""
        if self.quiet:
            return

        now = time.time()
        if not force and now - self.last_update < 0.5:
            return

        self.last_update = now

        if total is not None:
            pct = (current / total * 100) if total > 0 else 0
            bar_width = 30
            filled = int(bar_width * current / total) if total > 0 else 0
            bar = '=' * filled + '>' + ' ' * max(bar_width - filled - 1, 0)

            elapsed = now - self.start_time
            rate = current / elapsed if elapsed > 0 else 0

            print(f"\rSeed: {current:,} / {total:,} [{bar}] {pct:.0f}% ({rate:.1f} games/s)",
                  end='', file=sys.stderr)
        else:
            print(f"\rGenerated: {current:,}", end='', file=sys.stderr)

    def finish(self):
        """Complete progress display."""
        if not self.quiet:
            print(file=sys.stderr)


def format_size(bytes_val: int) -> str:
    """Format bytes as human-readable size."""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if bytes_val < 1024:
            return f"{bytes_val:.1f} {unit}"
        bytes_val /= 1024
    return f"{bytes_val:.1f} TB"


def format_duration(seconds: float) -> str:
    """Format duration as human-readable string."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        mins = int(seconds / 60)
        secs = int(seconds % 60)
        return f"{mins}m {secs}s"
    else:
        hours = int(seconds / 3600)
        mins = int((seconds % 3600) / 60)
        return f"{hours}h {mins}m"


def build_config(args) -> randgames.RunConfig:
    """Merge the optional YAML config with command-line overrides."""
    targets = getattr(args, 'targets', None)
    overrides = {
        'budget': getattr(args, 'budget', None),
        'targets': randgames.parse_targets(targets) if targets else None,
        'storage_path': getattr(args, 'storage', None),
        'result_path': getattr(args, 'output', None),
    }
    if getattr(args, 'no_claim_draw', False):
        overrides['claim_draw'] = False
    return randgames.load_config(args.config, **overrides)


# ============================================================================
# COMMANDS
# ============================================================================

def cmd_run(args):
    """Load stored games, generate the rest of the budget, write results."""
    config = build_config(args)

    if not args.quiet:
        print(f"Storage: {config.storage_path}", file=sys.stderr)
        print(f"Budget: {config.budget:,} games", file=sys.stderr)
        print(f"Targets: {', '.join(str(t) for t in config.targets)}", file=sys.stderr)

    progress = ProgressReporter(quiet=args.quiet)
    summary = randgames.run(config, progress=progress)
    elapsed = time.time() - progress.start_time

    if args.quiet:
        if summary.result_path:
            print(summary.result_path)
    else:
        print(f"Loaded: {summary.loaded:,}", file=sys.stderr)
        print(f"Generated: {summary.generated:,}", file=sys.stderr)
        if summary.result_path:
            print(f"Results: {summary.result_path}", file=sys.stderr)
        print(f"Completed in {format_duration(elapsed)}", file=sys.stderr)

    return 0 if summary.result_path else 1


def cmd_verify(args):
    """Verify move log integrity."""
    config = build_config(args)
    log = randgames.MoveLog(config.storage_path)

    def report(msg):
        if not args.quiet:
            print(msg)

    report(f"Verifying {log.path}...")

    if not log.path.exists():
        report("✓ No storage file yet")
        print()
        print("Store is valid.")
        return 0

    try:
        count = log.count()
    except randgames.StorageCorruptError as e:
        print(f"✗ Line {e.line_number} (seed #{e.seed}): {e.reason}")
        print()
        print("Errors found: 1")
        return 5

    report(f"✓ Checked {count:,} stored games")
    print()
    print("Store is valid.")
    return 0


def cmd_stats(args):
    """Display move log statistics."""
    config = build_config(args)
    log = randgames.MoveLog(config.storage_path)

    size = log.path.stat().st_size if log.path.exists() else 0
    table = randgames.LengthTable(config.targets)
    lengths = []
    for stub in log.scan():
        table.consider(stub)
        lengths.append(stub.length)

    print("Move Log Statistics")
    print()
    print(f"  File:          {log.path}")
    print(f"  Size:          {format_size(size):>10}")
    print(f"  Games:         {len(lengths):>10,}")

    if lengths:
        mean = sum(lengths) / len(lengths)
        print(f"  Shortest:      {min(lengths):>10,} half-moves")
        print(f"  Longest:       {max(lengths):>10,} half-moves")
        print(f"  Mean:          {mean:>10.1f} half-moves")
        print()
        print(f"{'TARGET':<8} {'SEED':<8} {'HALF-MOVES':<12} {'DISTANCE':<8}")
        for target, game in table.items():
            print(f"{target:<8} {game.seed:<8} {game.length:<12} {table.distance(target):<8}")

    return 0


def cmd_show(args):
    """Regenerate one game and print it as PGN."""
    if args.seed < 0:
        print("fatal: seed must be non-negative", file=sys.stderr)
        return 2

    config = build_config(args)
    rules = randgames.ChessRules(claim_draw=config.claim_draw)
    game = randgames.generate_game(args.seed, rules)

    pgn = randgames.replay_san(game.moves)
    pgn.headers['Event'] = f"Random game #{game.seed}"
    pgn.headers['White'] = 'Random'
    pgn.headers['Black'] = 'Random'
    pgn.headers['Result'] = pgn.end().board().result(claim_draw=config.claim_draw)
    pgn.headers['PlyCount'] = str(game.length)
    pgn.headers['Termination'] = game.status

    print(pgn, end='\n\n')
    return 0


# ============================================================================
# MAIN
# ============================================================================

def add_storage_args(parser):
    parser.add_argument('--storage', metavar='<path>', help='Move log file (default: ./generateStorage.txt)')


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='gamelength',
        description='Find random chess games closest to target lengths',
    )

    parser.add_argument('--version', action='version', version=f'gamelength {VERSION}')
    parser.add_argument('--config', metavar='<path>', help='YAML config file')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    # run
    parser_run = subparsers.add_parser('run', help='Generate games and write results')
    parser_run.add_argument('--budget', type=int, help='Number of seeds to explore (default: 10000)')
    parser_run.add_argument('--targets', help='Comma separated target lengths')
    add_storage_args(parser_run)
    parser_run.add_argument('--output', metavar='<path>', help='Result file (default: ./generated_<budget>.txt)')
    parser_run.add_argument('--no-claim-draw', action='store_true',
                            help='Only end games on automatic draws (75 moves, fivefold repetition)')
    parser_run.add_argument('--quiet', action='store_true', help='Suppress progress output')

    # verify
    parser_verify = subparsers.add_parser('verify', help='Verify move log integrity')
    add_storage_args(parser_verify)
    parser_verify.add_argument('--quiet', action='store_true', help='Only output errors')

    # stats
    parser_stats = subparsers.add_parser('stats', help='Display move log statistics')
    add_storage_args(parser_stats)
    parser_stats.add_argument('--targets', help='Comma separated target lengths')

    # show
    parser_show = subparsers.add_parser('show', help='Print the game for a seed as PGN')
    parser_show.add_argument('seed', type=int, help='Seed index')
    parser_show.add_argument('--no-claim-draw', action='store_true',
                             help='Only end games on automatic draws (75 moves, fivefold repetition)')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(levelname)s %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 1

    # Dispatch to command handlers
    commands = {
        'run': cmd_run,
        'verify': cmd_verify,
        'stats': cmd_stats,
        'show': cmd_show,
    }

    try:
        return commands[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except randgames.ConfigError as e:
        print(f"fatal: {e}", file=sys.stderr)
        return 2
    except randgames.StorageCorruptError as e:
        print(f"fatal: {e}", file=sys.stderr)
        return 5
    except Exception as e:
        print(f"fatal: {e}", file=sys.stderr)
        if os.getenv('DEBUG'):
            raise
        return 1


if __name__ == '__main__':
    sys.exit(main())
