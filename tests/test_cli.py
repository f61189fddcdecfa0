"""Tests for cli module."""

import json
import os
import tempfile
from click.testing import CliRunner
from PIL import Image
from image_analyzer.cli import cli
from image_analyzer.config import load_config


def make_input(tmpdir, name='photo.png'):
    path = os.path.join(tmpdir, name)
    img = Image.new('RGB', (400, 300), color='black')
    img.paste((255, 255, 255), (100, 75, 200, 225))
    img.save(path)
    return path


def test_version():
    """Test --version prints the package version."""
    result = CliRunner().invoke(cli, ['--version'])
    assert result.exit_code == 0
    assert '1.0.0' in result.output


def test_analyze_json():
    """Test analyze prints machine-readable results."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = make_input(tmpdir)
        result = CliRunner().invoke(cli, ['analyze', '-i', input_path, '--json'])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data['info']['width'] == 400
    assert data['subjects']


def test_analyze_text():
    """Test analyze human-readable output."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = make_input(tmpdir)
        result = CliRunner().invoke(cli, ['analyze', '-i', input_path, '-v'])

    assert result.exit_code == 0, result.output
    assert 'Image: 400x300' in result.output
    assert 'colors: #' in result.output


def test_crop_with_debug():
    """Test crop writes the requested ratios and debug overlays."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = make_input(tmpdir)
        output_dir = os.path.join(tmpdir, 'out')
        result = CliRunner().invoke(cli, [
            'crop', '-i', input_path, '-o', output_dir,
            '-r', 'square', '-r', '3:2', '--debug'
        ])

        assert result.exit_code == 0, result.output
        assert sorted(os.listdir(output_dir)) == [
            'photo_3x2.jpg', 'photo_3x2_debug.png',
            'photo_square.jpg', 'photo_square_debug.png'
        ]
        with Image.open(os.path.join(output_dir, 'photo_square.jpg')) as img:
            assert img.size == (300, 300)


def test_crop_bad_ratio():
    """Test invalid ratios are a usage error."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = make_input(tmpdir)
        result = CliRunner().invoke(cli, ['crop', '-i', input_path, '-o', tmpdir, '-r', 'banana'])

    assert result.exit_code == 2
    assert 'banana' in result.output


def test_crop_image_too_small():
    """Test small inputs abort with an error."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = os.path.join(tmpdir, 'small.png')
        Image.new('RGB', (40, 40)).save(input_path)
        result = CliRunner().invoke(cli, ['crop', '-i', input_path, '-o', tmpdir])

    assert result.exit_code == 1
    assert 'too small' in result.output


def test_resize():
    """Test resize writes an image of the exact size."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = make_input(tmpdir)
        output_path = os.path.join(tmpdir, 'resized.png')
        result = CliRunner().invoke(cli, [
            'resize', '-i', input_path, '-o', output_path, '-w', '120', '-h', '200'
        ])

        assert result.exit_code == 0, result.output
        with Image.open(output_path) as img:
            assert img.size == (120, 200)


def test_init_config():
    """Test init-config writes defaults and refuses to overwrite."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, 'config.json')
        runner = CliRunner()

        result = runner.invoke(cli, ['init-config', '--path', path])
        assert result.exit_code == 0, result.output
        assert load_config(path).analyzer.default_quality == 85

        result = runner.invoke(cli, ['init-config', '--path', path])
        assert result.exit_code == 1

        result = runner.invoke(cli, ['init-config', '--path', path, '--force'])
        assert result.exit_code == 0


def test_config_option():
    """Test --config values reach the pipeline."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = make_input(tmpdir)
        config_path = os.path.join(tmpdir, 'config.json')
        with open(config_path, 'w') as f:
            json.dump({'vision': {'edge_threshold': 1.0}}, f)

        result = CliRunner().invoke(cli, [
            'analyze', '-i', input_path, '--json', '--config', config_path
        ])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output)['subjects'] == []


def test_invalid_config():
    """Test out-of-range configuration is a usage error."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = make_input(tmpdir)
        config_path = os.path.join(tmpdir, 'config.json')
        with open(config_path, 'w') as f:
            json.dump({'analyzer': {'default_quality': 500}}, f)

        result = CliRunner().invoke(cli, ['analyze', '-i', input_path, '--config', config_path])

    assert result.exit_code == 2


def test_edge_threshold_override():
    """Test --edge-threshold overrides detection settings."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = make_input(tmpdir)
        result = CliRunner().invoke(cli, ['analyze', '-i', input_path, '--json', '-t', '1.0'])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output)['subjects'] == []


def test_config_wrong_type():
    """Test a mistyped config value is a usage error rather than a crash."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = make_input(tmpdir)
        config_path = os.path.join(tmpdir, 'config.json')
        with open(config_path, 'w') as f:
            json.dump({'vision': {'edge_threshold': '0.1'}}, f)

        result = CliRunner().invoke(cli, ['analyze', '-i', input_path, '--config', config_path])

    assert result.exit_code == 2
    assert 'edge_threshold' in result.output
