"""
water_identifier.py
Extracts the puzzle from a screenshot of the game Water Sort.

Finds the vials by their gray borders, samples the middle of each slot,
and matches the sampled pixels against the known color palette. The
result is printed in the compact text form, which can be used as input
to `water_sorter.py`.

Example run:
  $ python water_identifier.py level.png | python water_sorter.py
"""

# =============================================================================

import itertools
import json
import math
import os
import sys
from enum import Enum
from pathlib import Path
from typing import NamedTuple

from PIL import Image, ImageDraw

from water_puzzle import CAPACITY, Color, Puzzle, Vial

# =============================================================================

DEBUG = False

# =============================================================================

COLORS_FILE = Path(
    os.environ.get(
        'WATER_COLORS_FILE', Path(__file__).with_name('colors.json')))


def load_palette(path=None):
    """Reads the colors file.
    Returns a dict mapping each color to its rgb value.
    """
    path = COLORS_FILE if path is None else Path(path)
    palette = {}
    seen_rgbs = set()
    data = json.loads(path.read_bytes())
    for name, rgb in data.items():
        try:
            color = Color[name.upper()]
        except KeyError:
            raise ValueError(f'unknown color "{name}" in colors file') from None
        invalid_rgb_value_msg = f'invalid rgb value for color "{name}"'
        rgb = tuple(rgb)
        if len(rgb) != 3:
            raise ValueError(f'{invalid_rgb_value_msg}: not length 3')
        for val in rgb:
            if not isinstance(val, int):
                raise ValueError(f'{invalid_rgb_value_msg}: not ints')
            if not _in_range(val, (0, 255)):
                raise ValueError(
                    f'{invalid_rgb_value_msg}: not in range [0, 255]')
        if rgb in seen_rgbs:
            raise ValueError(f'rgb value {rgb} is repeated in colors file')
        seen_rgbs.add(rgb)
        palette[color] = rgb
    return palette


# =============================================================================

BACKGROUND_CUTOFF = 40
VIAL_BORDER_GRAY_RANGE = (185, 190)
# a border run at least this wide is the top (or bottom) of a vial
VIAL_TOP_MIN_WIDTH = 10
# max distance between a sampled pixel and its palette color
COLOR_MATCH_TOLERANCE = 30

# =============================================================================


def _in_range(value, range_):
    return range_[0] <= value <= range_[1]


def is_background(rgb):
    return all(val <= BACKGROUND_CUTOFF for val in rgb)


def is_border(rgb):
    return all(_in_range(val, VIAL_BORDER_GRAY_RANGE) for val in rgb)


def avg_color(colors):
    avg = [0, 0, 0]
    if len(colors) == 0:
        return tuple(avg)
    for rgb in colors:
        for i in range(3):
            avg[i] += rgb[i]
    return tuple(val / len(colors) for val in avg)


def match_color(rgb, palette):
    """Returns the palette color closest to the given rgb value."""
    best_color = None
    best_distance = None
    for color, palette_rgb in palette.items():
        distance = math.dist(rgb, palette_rgb)
        if best_distance is None or distance < best_distance:
            best_color = color
            best_distance = distance
    if best_distance is None or best_distance > COLOR_MATCH_TOLERANCE:
        rounded = tuple(round(val) for val in rgb)
        raise ValueError(f'rgb value {rounded} does not match any color')
    return best_color


# =============================================================================


class PixelType(Enum):
    """The pixel types."""
    BACKGROUND = 1
    BORDER = 2
    COLOR = 3

    @classmethod
    def from_rgb(cls, rgb):
        if is_background(rgb):
            return cls.BACKGROUND
        if is_border(rgb):
            return cls.BORDER
        return cls.COLOR


def group_by_type(row):
    """Groups the pixels into PixelTypes.
    Yields the pixel type, the start column index, and a list of all the
    pixels in the group.
    """
    for pixel_type, group in itertools.groupby(
            enumerate(row), key=lambda x: PixelType.from_rgb(x[1])):
        index_pixels = list(group)
        c, _ = index_pixels[0]
        pixels = [pixel for _, pixel in index_pixels]
        yield pixel_type, c, pixels


# =============================================================================


class VialBox(NamedTuple):
    """Where a vial sits in the screenshot, borders included."""
    top: int
    bottom: int
    left: int
    right: int
    # rows strictly inside the top and bottom borders
    inner_top: int
    inner_bottom: int

    def overlaps(self, r, left, right):
        return (self.top <= r <= self.bottom
                and left <= self.right and self.left <= right)


def load_image_colors(filename):
    """Loads the given file image and returns its colors as a 2D array
    of RGB values.
    """
    with Image.open(filename) as im:
        im = im.convert('RGB')
    pixels = iter(im.getdata())
    return [[next(pixels) for _ in range(im.width)]
            for _ in range(im.height)]


def _measure_vial(colors, top, left, right):
    """Walks down the center column from the top border to find the
    inside and the bottom border of a vial.
    Returns None if the vial is not closed at the bottom.
    """
    height = len(colors)
    center = (left + right) // 2
    r = top
    while r < height and is_border(colors[r][center]):
        r += 1
    inner_top = r
    while r < height and not is_border(colors[r][center]):
        r += 1
    if r >= height:
        return None
    inner_bottom = r - 1
    while r < height and is_border(colors[r][center]):
        r += 1
    if inner_bottom < inner_top:
        return None
    return VialBox(top, r - 1, left, right, inner_top, inner_bottom)


def find_vials(colors):
    """Finds the vials in reading order: line by line, left to right."""
    boxes = []
    for r, row in enumerate(colors):
        for pixel_type, c, pixels in group_by_type(row):
            if pixel_type != PixelType.BORDER:
                continue
            if len(pixels) < VIAL_TOP_MIN_WIDTH:
                # side border
                continue
            left = c
            right = c + len(pixels) - 1
            if any(box.overlaps(r, left, right) for box in boxes):
                continue
            box = _measure_vial(colors, r, left, right)
            if box is not None:
                boxes.append(box)
    return boxes


def read_vial(colors, box, palette, capacity=CAPACITY):
    """Samples the middle row of each slot, bottom to top."""
    slot_height = (box.inner_bottom - box.inner_top + 1) / capacity
    # only use the central half of the row, away from the borders
    quarter = (box.right - box.left + 1) // 4
    slots = []
    for k in range(capacity):
        r = box.inner_bottom - int((k + 0.5) * slot_height)
        rgb = avg_color(colors[r][box.left + quarter:box.right - quarter + 1])
        if is_background(rgb):
            slots.append(None)
        else:
            slots.append(match_color(rgb, palette))
    return Vial(slots, capacity)


def show_boxes(colors, boxes):
    """Show the screenshot with the found vials outlined in red.
    For debugging purposes.
    """
    height = len(colors)
    width = len(colors[0])
    im = Image.new('RGB', (width, height))
    im.putdata([rgb for row in colors for rgb in row])
    draw = ImageDraw.Draw(im)
    for box in boxes:
        draw.rectangle((box.left, box.top, box.right, box.bottom),
                       outline=(255, 0, 0))
        draw.line((box.left, box.inner_top, box.right, box.inner_top),
                  fill=(0, 255, 255))
        draw.line((box.left, box.inner_bottom, box.right, box.inner_bottom),
                  fill=(0, 255, 255))
    im.show()


def identify(filename, palette=None):
    """Reads the puzzle in the given screenshot."""
    if palette is None:
        palette = load_palette()
    colors = load_image_colors(filename)
    boxes = find_vials(colors)
    if DEBUG:
        print('found vials:', boxes)
        show_boxes(colors, boxes)
    if len(boxes) == 0:
        raise ValueError('could not find any vials in the screenshot')
    return Puzzle(read_vial(colors, box, palette) for box in boxes)


# =============================================================================


def main():
    _, *args = sys.argv
    if len(args) == 0:
        print('Missing filename')
        sys.exit(1)
    filename = args[0]

    try:
        puzzle = identify(filename)
    except ValueError as e:
        print(f'Could not extract the puzzle from the screenshot: {e}')
        sys.exit(1)

    print(puzzle.serialize())


if __name__ == '__main__':
    main()
