import json
import re

import pytest
from click.testing import CliRunner
from PIL import Image

from fractgen import __version__
from fractgen.cli.main import main, parse_julia_constant, parse_view
from fractgen.rendering.image_output import ImageExporter


@pytest.fixture
def runner():
    return CliRunner()


def test_version(runner):
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_presets(runner):
    result = runner.invoke(main, ["presets"])
    assert result.exit_code == 0
    assert "patchwork" in result.output
    assert "Seahorse Valley" in result.output
    assert "mandelbrot4" in result.output


def test_presets_json(runner):
    result = runner.invoke(main, ["presets", "--json"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert {"colorPresets", "fractalPresets"} <= set(data)


def test_image(runner, tmp_path):
    output = tmp_path / "mandelbrot.png"
    result = runner.invoke(main, [
        "image", str(output), "--width", "20", "--height", "16", "--max-iter", "30",
        "--center-x=-0.5", "--color-preset", "fire",
    ])
    assert result.exit_code == 0, result.output
    assert "Saved" in result.output
    with Image.open(output) as img:
        assert img.size == (20, 16)
    metadata = ImageExporter.extract_metadata(output)
    assert metadata.center[0] == "-0.5"
    assert metadata.color_palette == "fire"


def test_image_julia_preset_constant(runner, tmp_path):
    output = tmp_path / "julia.jpg"
    result = runner.invoke(main, [
        "image", str(output), "--fractal", "julia", "--julia-c", "dragon",
        "--center-x=0", "--diameter", "3.5", "-w", "16", "-h", "12", "--max-iter", "20",
    ])
    assert result.exit_code == 0, result.output
    with Image.open(output) as img:
        assert img.format == "JPEG"


def test_image_from_fractal_preset_and_config(runner, tmp_path):
    config = tmp_path / "render.yaml"
    config.write_text("render:\n  width: 12\n  height: 10\n  max_iterations: 25\n", encoding="utf-8")
    output = tmp_path / "preset.png"
    result = runner.invoke(main, [
        "image", str(output), "--config", str(config), "--fractal-preset", "Mandelbrot4 Total",
    ])
    assert result.exit_code == 0, result.output
    metadata = ImageExporter.extract_metadata(output)
    assert metadata.fractal_type == "mandelbrot4"
    assert metadata.resolution == (12, 10)
    assert metadata.max_iterations == 25


def test_image_error(runner, tmp_path):
    result = runner.invoke(main, ["image", str(tmp_path / "out.bmp"), "-w", "8", "-h", "8"])
    assert result.exit_code == 1
    assert "Error" in result.output


def test_flight_table(runner):
    result = runner.invoke(main, ["flight", "--start=-0.7,0,4", "--end=-0.7,0,0.01", "--frames", "4"])
    assert result.exit_code == 0, result.output
    lines = [line for line in result.output.splitlines() if re.match(r"\s*\d+\s", line)]
    assert len(lines) == 5
    assert lines[0].split()[-1] == "4.0"


def test_flight_json(runner, tmp_path):
    output = tmp_path / "flight.json"
    result = runner.invoke(main, [
        "flight", "--start=0,0,4", "--end=1,1,1", "--frames", "10", "-o", str(output),
    ])
    assert result.exit_code == 0, result.output
    data = json.loads(output.read_text(encoding="utf-8"))
    assert len(data["frames"]) == 11
    assert float(data["frames"][0]["diameterCX"]) == 4.0
    assert float(data["frames"][-1]["diameterCX"]) == pytest.approx(1.0)
    assert float(data["frames"][-1]["centerCX"]) == pytest.approx(1.0)


def test_flight_digits_follow_bits(runner, tmp_path):
    output = tmp_path / "flight.json"
    for bits, digits in [(128, 38), (64, 19)]:
        result = runner.invoke(main, [
            "flight", "--start=0,0,4", "--end=0,0,1", "--frames", "3", "--bits", str(bits), "-o", str(output),
        ])
        assert result.exit_code == 0, result.output
        factor = json.loads(output.read_text(encoding="utf-8"))["growthFactor"]
        # nstr drops trailing zeros, so allow a few fewer than requested
        assert digits - 3 <= len(re.sub(r"\D", "", factor).lstrip("0")) <= digits

    result = runner.invoke(main, [
        "flight", "--start=0,0,4", "--end=0,0,1", "--frames", "3", "--digits", "5", "-o", str(output),
    ])
    assert json.loads(output.read_text(encoding="utf-8"))["growthFactor"] == "-0.37004"


def test_flight_invalid_view(runner):
    result = runner.invoke(main, ["flight", "--start=0,0", "--end=1,1,1"])
    assert result.exit_code == 1


def test_palette(runner, tmp_path):
    output = tmp_path / "strip.png"
    result = runner.invoke(main, ["palette", str(output), "-w", "64", "-h", "8", "--reverse"])
    assert result.exit_code == 0, result.output
    with Image.open(output) as img:
        assert img.size == (64, 8)


def test_presets_file(runner, tmp_path):
    presets = tmp_path / "presets.json"
    presets.write_text(json.dumps({
        "colorPresets": [{"name": "Mono", "colors": ["#000000", "#ffffff"]}],
    }), encoding="utf-8")
    result = runner.invoke(main, ["--presets-file", str(presets), "presets"])
    assert result.exit_code == 0
    assert "mono" in result.output
    assert "patchwork" not in result.output


def test_parse_helpers():
    assert parse_julia_constant("dragon") == (-0.75, 0.1)
    assert parse_julia_constant("-0.4, 0.6") == (-0.4, 0.6)
    with pytest.raises(ValueError):
        parse_julia_constant("1,2,3")
    assert parse_view(" -0.7 , 0, 4 ") == ("-0.7", "0", "4")
