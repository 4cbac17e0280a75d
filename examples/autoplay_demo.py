#!/usr/bin/env python3
"""
Demo script that plays geodesic minesweeper with simple deduction rules.
"""

import sys

from py_geomines.core import GameSession, CellState, Outcome
from py_geomines.core.alea_prng import AleaPRNG


def deduce(session):
    """Apply the two basic rules once. Returns True if anything changed."""
    board = session.board
    progress = False
    for cell in board.cells:
        if cell.state != CellState.REVEALED or cell.adjacent_mine_count == 0:
            continue
        hidden = [n for n in cell.neighbors if board.cells[n].state == CellState.HIDDEN]
        flagged = [n for n in cell.neighbors if board.cells[n].state == CellState.FLAGGED]
        if not hidden:
            continue

        # Every hidden neighbor must be a mine
        if len(hidden) + len(flagged) == cell.adjacent_mine_count:
            for n in hidden:
                session.request_flag(n)
            progress = True
        # All mines found: open the rest
        elif len(flagged) == cell.adjacent_mine_count:
            result = session.request_chord(cell.id)
            progress = True
            if result.game_over:
                return True
    return progress


def play_level(session, prng):
    """Play the current board until it is won or lost."""
    board = session.board
    guesses = 0
    while session.outcome == Outcome.IN_PROGRESS:
        if deduce(session):
            continue
        hidden = [c.id for c in board.cells if c.state == CellState.HIDDEN]
        session.request_reveal(hidden[prng.randint(len(hidden))])
        guesses += 1
    return guesses


def main(levels=3, seed="demo"):
    """Play several levels, restarting after each loss."""
    print("GeoMines Autoplay Demo")
    print("=" * 40)

    prng = AleaPRNG(seed)
    session = GameSession()
    session.generate_board(1, seed=f"{seed}-1")
    attempts = 0

    while session.level <= levels:
        attempts += 1
        guesses = play_level(session, prng)
        summary = session.get_session_summary()

        print(f"\nLevel {summary.level} attempt {attempts}: {summary.outcome.value}")
        print(f"  Cells: {summary.total_cells}, mines: {summary.mine_count}")
        print(f"  Revealed: {summary.revealed_count}, flags: {summary.flags_placed}, guesses: {guesses}")
        print(f"  Time: {summary.elapsed_seconds:.3f}s")

        if summary.outcome == Outcome.WON:
            if summary.level == levels:
                break
            session.advance_level(seed=f"{seed}-{summary.level + 1}")
            attempts = 0
        else:
            session.restart(seed=f"{seed}-{summary.level}-{attempts}")

    print(f"\nReached level {session.max_level}")


if __name__ == "__main__":
    main(levels=int(sys.argv[1]) if len(sys.argv) > 1 else 3)
