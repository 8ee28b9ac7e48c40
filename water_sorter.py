"""
water_sorter.py
A solver for the game Water Sort.

This solver uses best-first search, always expanding the state with the
most sorted vials, to find a solution to a given game of Water Sort.
The solution is not guaranteed to be the shortest.

Accepts the puzzle in its compact text form, either as an argument or
from stdin (see `water_puzzle.py` for the format).

Example run:
  $ python water_identifier.py level.png | python water_sorter.py
  $ python water_sorter.py -v "AABB,BBAA,,"
"""

# =============================================================================

import itertools
import sys
import time
from queue import PriorityQueue

from water_puzzle import ColorCountError, ParseError, Puzzle, PuzzleError

# =============================================================================


class NoSolutionError(PuzzleError):
    """The search ran out of states without sorting the puzzle."""


class SolveTimeoutError(PuzzleError):
    """The search did not finish before its deadline."""


# =============================================================================


def _report_solved(vials_solved, moves):
    print(f"... solved {vials_solved} vials!")
    print(", ".join(str(move) for move in moves))


def solve(start, verbose=False, timeout=None):
    """Performs best-first search from the given start puzzle.
    Returns the list of moves that sorts it. Raises `NoSolutionError`
    if every reachable state was explored without sorting the puzzle.

    If `timeout` (in seconds) is given, `SolveTimeoutError` is raised
    once the search runs past it.
    """
    deadline = None if timeout is None else time.monotonic() + timeout
    # the counter keeps equal priorities in insertion order, and keeps
    # the puzzles themselves from being compared
    counter = itertools.count()
    seen = {start}
    queue = PriorityQueue()
    queue.put((-start.vials_solved(), next(counter), start, []))

    max_depth = -1
    max_solved = -1

    while not queue.empty():
        if deadline is not None and time.monotonic() > deadline:
            raise SolveTimeoutError(
                f"no solution found within {timeout} seconds "
                f"({len(seen)} states seen)"
            )
        priority, _, puzzle, moves = queue.get()
        if puzzle.is_solved():
            return moves

        if verbose:
            if len(moves) > max_depth:
                max_depth = len(moves)
                print(f"... to depth {max_depth}")
            if -priority > max_solved:
                max_solved = -priority
                _report_solved(max_solved, moves)

        for move, poured in puzzle.gen_all_moves():
            if poured in seen:
                continue
            seen.add(poured)
            queue.put(
                (-poured.vials_solved(), next(counter), poured, moves + [move])
            )

    raise NoSolutionError("no solution exists for this puzzle")


def replay(start, moves):
    """Applies the moves in order.
    Returns every state along the way, including the start.
    """
    steps = [start]
    for move in moves:
        steps.append(steps[-1].do_move(move))
    return steps


# =============================================================================


class Game:
    """Defines a game of Water Sort."""

    def __init__(self, puzzle):
        self._puzzle = puzzle
        self._solved = False
        self._moves = None
        self._steps = None

    def __str__(self):
        return str(self._puzzle)

    def __repr__(self):
        return f"Game({self._puzzle.serialize()!r})"

    @classmethod
    def from_text(cls, text):
        return cls(Puzzle.deserialize(text))

    @property
    def puzzle(self):
        return self._puzzle

    @property
    def moves(self):
        if not self._solved:
            self.solve()
        return self._moves

    @property
    def steps(self):
        if not self._solved:
            self.solve()
        return self._steps

    @property
    def num_moves(self):
        return len(self.moves)

    def solve(self, verbose=False, timeout=None):
        if self._solved:
            return
        if verbose:
            print("Solving...")
        self._moves = solve(self._puzzle, verbose=verbose, timeout=timeout)
        self._steps = replay(self._puzzle, self._moves)
        self._solved = True

    def print_moves(self):
        start, *steps = self.steps
        print("Start:")
        print(start)
        for i, (move, step) in enumerate(zip(self._moves, steps)):
            print()
            print(
                f"Step {i+1}: Pour vial {move.source+1} into vial {move.dest+1}"
            )
            print(step)
        print()
        print("Num moves:", self.num_moves)


# =============================================================================


def _read_puzzle_text(args):
    if args:
        return args[0]
    for line in sys.stdin:
        line = line.strip()
        if line:
            return line
    return None


def main():
    _, *args = sys.argv
    verbose = False
    show_steps = False
    rest = []
    for arg in args:
        if arg in ("-v", "--verbose"):
            verbose = True
        elif arg in ("-s", "--steps"):
            show_steps = True
        else:
            rest.append(arg)

    text = _read_puzzle_text(rest)
    if text is None:
        print("No puzzle given")
        sys.exit(1)

    try:
        game = Game.from_text(text)
    except ParseError as e:
        print(f"Invalid puzzle: {e}")
        sys.exit(1)

    try:
        game.puzzle.check_color_counts()
    except ColorCountError as e:
        print(f"Warning: {e}")

    print("now solving this puzzle:")
    print(game.puzzle.serialize())
    try:
        game.solve(verbose=verbose)
    except NoSolutionError as e:
        print(e)
        sys.exit(1)

    if show_steps:
        game.print_moves()
        return
    print("solved!")
    for move in game.moves:
        print(move)


if __name__ == "__main__":
    main()
