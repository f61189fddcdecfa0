"""Tests for colors module."""

import numpy as np
from PIL import Image
from image_analyzer.colors import get_dominant_colors, quantize, dequantize
from image_analyzer.detector import Region


def test_quantize_levels():
    """Test channels keep their top 4 bits and map back over 0-255."""
    assert quantize(np.array([0, 15, 16, 255], dtype=np.uint8)).tolist() == [0, 0, 1, 15]
    assert dequantize(0) == 0
    assert dequantize(15) == 255
    assert dequantize(12) == 204


def test_uniform_region_single_color():
    """Test a uniform region has one dominant colour."""
    img = Image.new('RGB', (50, 50), color=(255, 0, 0))
    assert get_dominant_colors(img, Region(0, 0, 50, 50)) == [(255, 0, 0)]


def test_color_is_quantized():
    """Test colours are reported at bucket resolution."""
    img = Image.new('RGB', (10, 10), color=(200, 100, 50))
    assert get_dominant_colors(img, Region(0, 0, 10, 10)) == [(204, 102, 51)]


def test_order_and_threshold():
    """Test colours are ordered by frequency and rare colours are dropped."""
    pixels = np.zeros((10, 10, 3), dtype=np.uint8)
    pixels[0:6] = (255, 255, 255)  # 60 pixels
    pixels[6:9] = (0, 0, 255)      # 30 pixels
    pixels[9] = (255, 0, 0)        # 10 pixels, below 60 // 4

    colors = get_dominant_colors(pixels, Region(0, 0, 10, 10))
    assert colors == [(255, 255, 255), (0, 0, 255)]


def test_ties_ordered_by_value():
    """Test equally frequent colours come out in ascending RGB order."""
    pixels = np.zeros((10, 10, 3), dtype=np.uint8)
    pixels[:5] = (255, 255, 255)

    colors = get_dominant_colors(pixels, Region(0, 0, 10, 10))
    assert colors == [(0, 0, 0), (255, 255, 255)]


def test_capped_at_five():
    """Test at most five colours are returned."""
    pixels = np.zeros((1, 8, 3), dtype=np.uint8)
    for i in range(8):
        pixels[0, i] = (i * 32, 0, 0)

    colors = get_dominant_colors(pixels, Region(0, 0, 8, 1))
    assert len(colors) == 5
    assert colors[0] == (0, 0, 0)


def test_region_restricts_sampling():
    """Test only pixels inside the region are counted."""
    pixels = make_split_image()

    assert get_dominant_colors(pixels, Region(0, 0, 10, 20)) == [(0, 0, 0)]
    assert get_dominant_colors(pixels, Region(10, 0, 10, 20)) == [(255, 255, 255)]


def test_region_clamped_to_image():
    """Test regions extending past the image are clamped."""
    pixels = make_split_image()
    assert get_dominant_colors(pixels, Region(15, -5, 50, 50)) == [(255, 255, 255)]


def test_region_outside_image():
    """Test a region entirely outside the image yields no colours."""
    img = Image.new('RGB', (50, 50), color='white')
    assert get_dominant_colors(img, Region(500, 500, 10, 10)) == []


def make_split_image():
    """20x20 image, left half black and right half white."""
    pixels = np.zeros((20, 20, 3), dtype=np.uint8)
    pixels[:, 10:] = 255
    return pixels


def test_16bit_colors_use_top_bits():
    """Test 16-bit pixels quantise on their own top 4 bits."""
    pixels = np.full((10, 10, 3), 40000, dtype=np.uint16)

    # 40000 >> 12 == 9, 9 * 17 == 153
    assert get_dominant_colors(pixels, Region(0, 0, 10, 10)) == [(153, 153, 153)]
    assert quantize(np.array([65535, 4095, 4096], dtype=np.uint16)).tolist() == [15, 0, 1]
