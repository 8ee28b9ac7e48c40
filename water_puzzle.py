"""
water_puzzle.py
The state model for the game Water Sort.

Vials and puzzles are immutable values: every push, pop, pour, and move
returns a new object, so states can be stored in sets and compared
structurally by the solver.

A puzzle is written in a compact text form: one letter per segment
(`A` is the first color, `B` the second, ...), bottom to top, with the
vials separated by commas. An empty vial is an empty token.

Example:
  AABB,CCDD,ABCD,,
"""

# =============================================================================

from collections import Counter
from enum import Enum
from typing import NamedTuple

# =============================================================================

# The number of segments in a single vial
CAPACITY = 4

# Colors are serialized as the letters A-Z
MAX_COLORS = 26

# =============================================================================


class PuzzleError(Exception):
    """Base class for all puzzle errors."""


class PourException(PuzzleError):
    """An error that occurs while trying to push, pop, or pour."""


class VialFullError(PourException):
    """The vial has no empty slot left."""


class VialEmptyError(PourException):
    """The vial has no segment to remove."""


class ColorMismatchError(PourException):
    """The top color of the vial does not match."""


class MoveIndexError(PuzzleError, IndexError):
    """A move refers to a vial that does not exist."""


class ParseError(PuzzleError, ValueError):
    """The text form of a puzzle is invalid."""


class TooManyColorsError(ParseError):
    """A vial holds more colors than its capacity."""


class UnknownColorSymbolError(ParseError):
    """A character is not a color letter."""


class ColorOutOfRangeError(ParseError):
    """A color letter has no matching color."""


class ColorCountError(PuzzleError, ValueError):
    """A color does not appear a multiple of the vial capacity times."""


# =============================================================================


class Color(Enum):
    """The colors of the game, in serialization order."""

    CORNFLOWER = 0
    GREY = 1
    MINT = 2
    NAVY = 3
    ORANGE = 4
    PICKLE = 5
    PINK = 6
    PURPLE = 7
    RED = 8

    @property
    def ordinal(self):
        return self.value

    @property
    def symbol(self):
        if self.ordinal >= MAX_COLORS:
            raise RuntimeError(f"cannot serialize more than {MAX_COLORS} colors")
        return chr(ord("A") + self.ordinal)

    @classmethod
    def from_symbol(cls, symbol):
        if len(symbol) != 1 or not "A" <= symbol <= "Z":
            raise UnknownColorSymbolError(f"unknown color symbol: {symbol!r}")
        try:
            return cls(ord(symbol) - ord("A"))
        except ValueError:
            raise ColorOutOfRangeError(
                f"color out of range: {symbol!r}"
            ) from None

    @property
    def display_name(self):
        return self.name.lower()

    @property
    def simple_name(self):
        """The coarse hue, as a player would name it."""
        return _SIMPLE_NAMES.get(self, self.display_name)


_SIMPLE_NAMES = {
    Color.CORNFLOWER: "blue",
    Color.NAVY: "blue",
    Color.MINT: "green",
    Color.PICKLE: "green",
}


# =============================================================================


class Move(NamedTuple):
    """A pour from one vial into another, by 0-based index."""

    source: int
    dest: int

    def __str__(self):
        return f"{self.source + 1} -> {self.dest + 1}"


# =============================================================================


class Vial:
    """A stack of colored segments, stored bottom to top."""

    def __init__(self, colors=(), capacity=CAPACITY):
        colors = tuple(colors)
        if len(colors) > capacity:
            raise TooManyColorsError(
                f"too many colors in one vial: {len(colors)} > {capacity}"
            )
        slots = colors + (None,) * (capacity - len(colors))
        # filled slots must be contiguous from the bottom
        filled = sum(1 for color in slots if color is not None)
        if any(color is None for color in slots[:filled]):
            raise ValueError(f"vial has an empty space under a color: {slots}")
        self._slots = slots
        self._filled = filled
        self._hash_value = hash(slots)

    @classmethod
    def empty(cls, capacity=CAPACITY):
        return cls((), capacity)

    def _with_slots(self, colors):
        return self.__class__(colors, self.capacity)

    def __iter__(self):
        return iter(self._slots)

    def __getitem__(self, index):
        return self._slots[index]

    def __len__(self):
        return len(self._slots)

    def __eq__(self, other):
        if self is other:
            return True
        if not isinstance(other, Vial):
            return NotImplemented
        return self._slots == other._slots

    def __hash__(self):
        return self._hash_value

    def __repr__(self):
        return f"Vial({self.serialize()!r})"

    @property
    def capacity(self):
        return len(self._slots)

    @property
    def num_filled(self):
        return self._filled

    @property
    def colors(self):
        """The occupied slots, bottom to top."""
        return self._slots[: self._filled]

    @property
    def top_color(self):
        if self._filled == 0:
            return None
        return self._slots[self._filled - 1]

    def is_solved_or_empty(self):
        first, *rest = self._slots
        return all(color == first for color in rest)

    def is_solved(self):
        return self.is_solved_or_empty() and self._slots[0] is not None

    def is_empty(self):
        return self._filled == 0

    def push(self, color):
        if self._filled == self.capacity:
            raise VialFullError("vial is full")
        return self._with_slots(self.colors + (color,))

    def push_color(self, color):
        """Pushes the color only if the vial is empty or already topped
        by that color.
        """
        top = self.top_color
        if top is not None and top != color:
            raise ColorMismatchError("top color does not match")
        return self.push(color)

    def pop(self):
        if self._filled == 0:
            raise VialEmptyError("vial is empty")
        return self._with_slots(self.colors[:-1])

    def pop_color(self, color):
        if self.top_color != color:
            raise ColorMismatchError("wrong top color")
        return self.pop()

    def pour_into(self, other):
        """Pours the top run of this vial's top color into the other
        vial, as far as it fits.
        Returns the new (source, dest) vials. Raises a `PourException`
        if nothing can be poured.
        """
        color = self.top_color
        if color is None:
            raise VialEmptyError("cannot pour from an empty vial")
        source = self.pop_color(color)
        dest = other.push_color(color)
        while source.top_color == color and dest.num_filled < dest.capacity:
            source = source.pop_color(color)
            dest = dest.push_color(color)
        return source, dest

    def serialize(self):
        return "".join(color.symbol for color in self.colors)

    @classmethod
    def deserialize(cls, text, capacity=CAPACITY):
        if len(text) > capacity:
            raise TooManyColorsError(f"too many colors in one vial: {text!r}")
        return cls((Color.from_symbol(symbol) for symbol in text), capacity)


# =============================================================================


class Puzzle:
    """An ordered sequence of vials."""

    def __init__(self, vials):
        self._vials = tuple(vials)
        self._hash_value = hash(self._vials)

    @classmethod
    def new(cls, capacity=CAPACITY):
        """A puzzle with a single empty vial, to be filled in."""
        return cls([Vial.empty(capacity)])

    def __iter__(self):
        return iter(self._vials)

    def __getitem__(self, index):
        return self._vials[index]

    def __len__(self):
        return len(self._vials)

    def __eq__(self, other):
        if self is other:
            return True
        if not isinstance(other, Puzzle):
            return NotImplemented
        return self._vials == other._vials

    def __hash__(self):
        return self._hash_value

    def __repr__(self):
        return f"Puzzle({self.serialize()!r})"

    def __str__(self):
        rows = [[] for _ in range(2 + self._capacity())]
        for i, vial in enumerate(self._vials):
            # top of the vial is printed first
            col = [str(i + 1), ""]
            for color in reversed(vial):
                col.append("" if color is None else color.display_name)
            col.extend("" for _ in range(len(rows) - len(col)))
            width = max(len(c) for c in col)
            col[1] = "-" * width
            for r, row in enumerate(rows):
                row.append(col[r].center(width))
        return "\n".join("  ".join(row) for row in rows)

    def _capacity(self):
        return max((vial.capacity for vial in self._vials), default=CAPACITY)

    @property
    def vials(self):
        return self._vials

    @property
    def last_vial(self):
        return self._vials[-1]

    def set_vial(self, index, vial):
        vials = list(self._vials)
        vials[index] = vial
        return self.__class__(vials)

    def push_vial(self):
        return self.__class__(self._vials + (Vial.empty(self._capacity()),))

    def pop_vial(self):
        """Removes the last vial, keeping at least one vial around."""
        vials = self._vials[:-1]
        if not vials:
            vials = (Vial.empty(self._capacity()),)
        return self.__class__(vials)

    def push_color(self, color):
        """Pushes the color onto the last vial."""
        return self.set_vial(len(self._vials) - 1, self.last_vial.push(color))

    def serialize(self):
        return ",".join(vial.serialize() for vial in self._vials)

    @classmethod
    def deserialize(cls, text, capacity=CAPACITY):
        return cls(
            Vial.deserialize(token.strip(), capacity) for token in text.split(",")
        )

    def do_move(self, move):
        source, dest = move
        num_vials = len(self._vials)
        for index in (source, dest):
            if not 0 <= index < num_vials:
                raise MoveIndexError(
                    f"vial index {index} out of range for {num_vials} vials"
                )
        if source == dest:
            raise MoveIndexError("cannot pour from and to the same vial")
        new_source, new_dest = self._vials[source].pour_into(self._vials[dest])
        vials = list(self._vials)
        vials[source] = new_source
        vials[dest] = new_dest
        return self.__class__(vials)

    def gen_all_moves(self):
        """Yields every legal move and the puzzle it leads to.
        Solved vials are never poured from or into.
        """
        open_vials = [
            i for i, vial in enumerate(self._vials) if not vial.is_solved()
        ]
        for source in open_vials:
            for dest in open_vials:
                if source == dest:
                    continue
                move = Move(source, dest)
                try:
                    poured = self.do_move(move)
                except PourException:
                    continue
                yield move, poured

    def vials_solved(self):
        return sum(1 for vial in self._vials if vial.is_solved_or_empty())

    def is_solved(self):
        return all(vial.is_solved_or_empty() for vial in self._vials)

    def color_counts(self):
        return Counter(color for vial in self._vials for color in vial.colors)

    def check_color_counts(self):
        capacity = self._capacity()
        for color, count in sorted(
            self.color_counts().items(), key=lambda item: item[0].ordinal
        ):
            if count % capacity != 0:
                raise ColorCountError(
                    f"color {color.display_name!r} appears {count} times, "
                    f"not a multiple of {capacity}"
                )
