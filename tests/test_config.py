from pathlib import Path

import pytest
import yaml

from cavegen.config import CaveConfig, ConfigError, config_from_mapping, load_config

CONFIG_FILE = Path(__file__).resolve().parent.parent / "config" / "cave.yaml"


def _write_profiles(tmp_path, text):
    path = tmp_path / "cave.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_are_valid_2d():
    config = CaveConfig().validate()
    assert not config.is_3d
    assert config.shape == (128, 72)
    assert config.padded_shape == (130, 74)


def test_depth_makes_config_3d():
    config = CaveConfig(width=8, height=6, depth=4, border_size=2)
    assert config.is_3d
    assert config.shape == (8, 6, 4)
    assert config.padded_shape == (12, 10, 8)


@pytest.mark.parametrize(
    "overrides",
    [
        {"width": 0},
        {"height": -3},
        {"depth": 0},
        {"border_size": 0},
        {"wall_percent": 101},
        {"wall_percent": -1},
        {"wall_percent": 45, "max_wall_percent": 40},
        {"max_wall_percent": 120},
        {"smooth_iterations": -1},
        {"square_size": 0.0},
        {"wall_height": -1.0},
        {"region_threshold": 0},
        {"passage_radius": -1},
        {"max_vertices_per_chunk": 2},
    ],
)
def test_validate_rejects_bad_settings(overrides):
    with pytest.raises(ConfigError):
        CaveConfig(**overrides).validate()


def test_config_error_is_value_error():
    with pytest.raises(ValueError):
        CaveConfig(width=0).validate()


def test_with_overrides_skips_none():
    config = CaveConfig(seed="abc")
    updated = config.with_overrides(seed=None, width=20)
    assert updated.seed == "abc"
    assert updated.width == 20
    assert config.width == 128


def test_from_mapping_rejects_unknown_keys():
    with pytest.raises(ConfigError):
        config_from_mapping({"width": 10, "colour": "red"}, "cave_2d")


def test_from_mapping_rejects_non_mapping():
    with pytest.raises(ConfigError):
        config_from_mapping([1, 2, 3], "cave_2d")


def test_load_config_reads_profile(tmp_path):
    path = _write_profiles(
        tmp_path,
        "cave_2d:\n  width: 30\n  height: 20\n  seed: hello\n"
        "cave_3d:\n  width: 10\n  height: 10\n  depth: 10\n  max_wall_percent: 40\n  wall_percent: 30\n",
    )
    config_2d = load_config(path, "cave_2d")
    assert config_2d.shape == (30, 20)
    assert config_2d.seed == "hello"
    config_3d = load_config(path, "cave_3d")
    assert config_3d.shape == (10, 10, 10)
    assert config_3d.max_wall_percent == 40


def test_load_config_missing_profile(tmp_path):
    path = _write_profiles(tmp_path, "cave_2d:\n  width: 30\n")
    with pytest.raises(ConfigError):
        load_config(path, "cave_3d")


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml", "cave_2d")


def test_load_config_malformed_yaml(tmp_path):
    path = _write_profiles(tmp_path, "cave_2d: [unclosed\n")
    with pytest.raises(yaml.YAMLError):
        load_config(path, "cave_2d")


def test_load_config_empty_file_has_no_profiles(tmp_path):
    path = _write_profiles(tmp_path, "")
    with pytest.raises(ConfigError):
        load_config(path, "cave_2d")


def test_bundled_profiles_load():
    config_2d = load_config(CONFIG_FILE, "cave_2d")
    config_3d = load_config(CONFIG_FILE, "cave_3d")
    assert not config_2d.is_3d
    assert config_3d.is_3d
    assert config_3d.wall_percent <= config_3d.max_wall_percent <= 40
