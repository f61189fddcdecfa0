"""Tests for utils module."""

import os
import tempfile
from PIL import Image
from image_analyzer.utils import (
    is_image_file,
    ensure_directory,
    validate_image_file,
    sanitize_filename,
    get_output_path,
    format_file_size,
    collect_images
)


def test_is_image_file():
    """Test image file detection."""
    assert is_image_file('test.jpg') is True
    assert is_image_file('test.jpeg') is True
    assert is_image_file('test.png') is True
    assert is_image_file('test.webp') is True
    assert is_image_file('test.JPG') is True  # Case insensitive
    assert is_image_file('test.txt') is False
    assert is_image_file('test.bmp') is False


def test_ensure_directory():
    """Test directory creation."""
    with tempfile.TemporaryDirectory() as tmpdir:
        test_dir = os.path.join(tmpdir, 'test', 'nested', 'dir')
        ensure_directory(test_dir)
        assert os.path.isdir(test_dir)


def test_validate_image_file_nonexistent():
    """Test validation of nonexistent file."""
    assert validate_image_file('/nonexistent/file.jpg') is False


def test_validate_image_file_valid():
    """Test validation of valid image."""
    with tempfile.TemporaryDirectory() as tmpdir:
        img_path = os.path.join(tmpdir, 'test.jpg')
        Image.new('RGB', (100, 100), color='red').save(img_path)

        assert validate_image_file(img_path) is True


def test_validate_image_file_invalid():
    """Test validation of invalid image."""
    with tempfile.TemporaryDirectory() as tmpdir:
        img_path = os.path.join(tmpdir, 'test.jpg')
        with open(img_path, 'w') as f:
            f.write('not an image')

        assert validate_image_file(img_path) is False


def test_sanitize_filename():
    """Test invalid characters are replaced."""
    assert sanitize_filename('a/b:c*d') == 'a_b_c_d'
    assert sanitize_filename(' name. ') == 'name'


def test_get_output_path():
    """Test output path keeps the input extension by default."""
    result = get_output_path('/path/to/input/image.png', '/path/to/output')
    assert result == '/path/to/output/image.png'


def test_get_output_path_with_suffix_and_format():
    """Test output path with prefix, suffix and format."""
    result = get_output_path('/path/to/input/image.png', '/path/to/output',
                             suffix='_square', prefix='crop_', fmt='webp')
    assert result == '/path/to/output/crop_image_square.webp'


def test_get_output_path_no_extension():
    """Test inputs without extension default to jpg."""
    assert get_output_path('image', 'out') == os.path.join('out', 'image.jpg')


def test_format_file_size():
    """Test human-readable sizes."""
    assert format_file_size(512) == '512 B'
    assert format_file_size(1024) == '1.0 KB'
    assert format_file_size(1536) == '1.5 KB'
    assert format_file_size(5 * 1024 * 1024) == '5.0 MB'


def test_collect_images():
    """Test image collection, flat and recursive."""
    with tempfile.TemporaryDirectory() as tmpdir:
        os.makedirs(os.path.join(tmpdir, 'sub'))
        for name in ('b.jpg', 'a.png', 'notes.txt', os.path.join('sub', 'c.webp')):
            with open(os.path.join(tmpdir, name), 'wb') as f:
                f.write(b'')

        flat = collect_images(tmpdir)
        assert [os.path.basename(p) for p in flat] == ['a.png', 'b.jpg']

        nested = collect_images(tmpdir, recursive=True)
        assert [os.path.basename(p) for p in nested] == ['a.png', 'b.jpg', 'c.webp']
