import pytest

from main import main

PROFILE = """
cave_2d:
  width: 24
  height: 16
  wall_percent: 0
  smooth_iterations: 2
  region_threshold: 4
  seed: cli
cave_3d:
  width: 10
  height: 10
  depth: 10
  wall_percent: 38
  max_wall_percent: 40
  smooth_limit: 10
  region_threshold: 4
  seed: cli
"""


@pytest.fixture
def profile_file(tmp_path):
    path = tmp_path / "cave.yaml"
    path.write_text(PROFILE, encoding="utf-8")
    return path


def test_cli_writes_exports(profile_file, tmp_path, capsys):
    png = tmp_path / "cave.png"
    obj = tmp_path / "cave.obj"
    main(["--config", str(profile_file), "--ascii", "--png", str(png), "--obj", str(obj)])
    rows = [row for row in capsys.readouterr().out.splitlines() if row and set(row) <= set("#.@")]
    assert len(rows) == 18
    assert all(len(row) == 26 for row in rows)
    assert png.exists()
    assert "o cave" in obj.read_text(encoding="utf-8")


def test_cli_3d_profile(profile_file, tmp_path):
    obj = tmp_path / "cave3d.obj"
    main(["--profile", "3d", "--config", str(profile_file), "--obj", str(obj), "--seed", "other"])
    assert obj.exists()


def test_cli_missing_config_exits(tmp_path):
    with pytest.raises(SystemExit):
        main(["--config", str(tmp_path / "missing.yaml")])


def test_cli_invalid_profile_exits(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("cave_2d:\n  width: -5\n", encoding="utf-8")
    with pytest.raises(SystemExit):
        main(["--config", str(path)])
