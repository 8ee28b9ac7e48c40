"""
Tests for reading a puzzle out of a screenshot. The screenshots are
drawn with Pillow: gray-bordered vials on a black background.
"""

import json

import pytest
from PIL import Image, ImageDraw

import water_identifier
from water_identifier import (
    PixelType,
    find_vials,
    identify,
    load_image_colors,
    load_palette,
    match_color,
)
from water_puzzle import Color, Puzzle

BORDER = (187, 187, 187)
BACKGROUND = (10, 10, 12)

VIAL_WIDTH = 40
SIDE = 4
SLOT_HEIGHT = 24


@pytest.fixture
def palette():
    return load_palette()


def draw_screenshot(path, lines, palette):
    """Draws each line of vials below the previous one.
    `lines` holds the compact text form of each line.
    """
    vial_height = 1 + 4 * SLOT_HEIGHT + SIDE
    line_height = vial_height + 30
    num_columns = max(len(text.split(',')) for text in lines)
    im = Image.new('RGB', (20 + num_columns * 60, 10 + len(lines) * line_height),
                   BACKGROUND)
    draw = ImageDraw.Draw(im)
    for n, text in enumerate(lines):
        top = 10 + n * line_height
        inner_top = top + 1
        inner_bottom = inner_top + 4 * SLOT_HEIGHT - 1
        bottom = inner_bottom + SIDE
        for i, vial in enumerate(Puzzle.deserialize(text)):
            left = 20 + i * 60
            right = left + VIAL_WIDTH - 1
            draw.rectangle((left, top, right, bottom), fill=BORDER)
            draw.rectangle((left + SIDE, inner_top, right - SIDE, inner_bottom),
                           fill=BACKGROUND)
            for k, color in enumerate(vial.colors):
                slot_bottom = inner_bottom - k * SLOT_HEIGHT
                draw.rectangle(
                    (left + SIDE, slot_bottom - SLOT_HEIGHT + 1,
                     right - SIDE, slot_bottom),
                    fill=palette[color])
    im.save(path)
    return path


# ========== Palette ==========

def test_default_palette_has_every_color(palette):
    assert set(palette) == set(Color)
    assert palette[Color.RED] == (164, 50, 37)


def write_palette(tmp_path, data):
    path = tmp_path / 'colors.json'
    path.write_text(json.dumps(data), encoding='utf-8')
    return path


@pytest.mark.parametrize('data, message', [
    ({'teal': [1, 2, 3]}, 'unknown color'),
    ({'red': [1, 2]}, 'not length 3'),
    ({'red': [1, 2, 3.5]}, 'not ints'),
    ({'red': [1, 2, 300]}, 'not in range'),
    ({'red': [1, 2, 3], 'pink': [1, 2, 3]}, 'repeated'),
])
def test_invalid_palette(tmp_path, data, message):
    with pytest.raises(ValueError, match=message):
        load_palette(write_palette(tmp_path, data))


def test_custom_palette(tmp_path):
    palette = load_palette(write_palette(tmp_path, {'Mint': [0, 200, 0]}))
    assert palette == {Color.MINT: (0, 200, 0)}


# ========== Pixels ==========

def test_pixel_types():
    assert PixelType.from_rgb((0, 0, 0)) == PixelType.BACKGROUND
    assert PixelType.from_rgb(BORDER) == PixelType.BORDER
    assert PixelType.from_rgb((164, 50, 37)) == PixelType.COLOR


def test_match_color(palette):
    assert match_color((160, 52, 40), palette) == Color.RED
    with pytest.raises(ValueError):
        match_color((255, 255, 0), palette)


# ========== Screenshots ==========

def test_find_vials(tmp_path, palette):
    path = draw_screenshot(tmp_path / 'level.png', ['AB,,C'], palette)
    boxes = find_vials(load_image_colors(path))
    assert len(boxes) == 3
    assert [box.left for box in boxes] == [20, 80, 140]
    for box in boxes:
        assert box.inner_bottom - box.inner_top + 1 == 4 * SLOT_HEIGHT


def test_identify(tmp_path, palette):
    text = 'AABB,CDEF,GHI,,I'
    path = draw_screenshot(tmp_path / 'level.png', [text], palette)
    assert identify(path, palette).serialize() == text


def test_identify_two_lines(tmp_path, palette):
    path = draw_screenshot(tmp_path / 'level.png', ['ABCD,DCBA', 'AB,CD,'],
                           palette)
    assert identify(path, palette).serialize() == 'ABCD,DCBA,AB,CD,'


def test_identify_blank_image(tmp_path, palette):
    path = tmp_path / 'blank.png'
    Image.new('RGB', (50, 50), BACKGROUND).save(path)
    with pytest.raises(ValueError, match='could not find any vials'):
        identify(path, palette)


def test_main_prints_text_form(tmp_path, palette, monkeypatch, capsys):
    path = draw_screenshot(tmp_path / 'level.png', ['AB,BA,,'], palette)
    monkeypatch.setattr(water_identifier.sys, 'argv',
                        ['water_identifier.py', str(path)])
    water_identifier.main()
    assert capsys.readouterr().out == 'AB,BA,,\n'


def test_main_missing_filename(monkeypatch, capsys):
    monkeypatch.setattr(water_identifier.sys, 'argv', ['water_identifier.py'])
    with pytest.raises(SystemExit):
        water_identifier.main()
    assert 'Missing filename' in capsys.readouterr().out
