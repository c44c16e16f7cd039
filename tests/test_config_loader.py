import pytest
import yaml

from game.config import (
    ConfigError,
    GameSettings,
    NoiseSettings,
    StreamerSettings,
    settings_from_dict,
)
from utils.config_loader import DEFAULT_CONFIG_FILE, load_game_settings, load_yaml_config


def _write(tmp_path, text, name="world.yaml"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_default_config_file_loads():
    assert DEFAULT_CONFIG_FILE.is_file()
    settings = load_game_settings()
    assert isinstance(settings, GameSettings)
    world = settings.world
    assert world.mode == "infinite"
    assert world.seed == 1337
    assert [f.kind for f in world.fields] == ["gradient", "cellular"]
    assert world.biomes.biome_ids == (0, 1, 2, 3)
    assert world.effective_chunk_delete_radius == 2
    assert settings.pathfinding.max_iterations == 500


def test_overrides_from_yaml(tmp_path):
    path = _write(
        tmp_path,
        """
world:
  mode: chunked
  seed: 99
  chunk_size: 8
  fields:
    - kind: cellular
      frequency: 0.2
      cellular_return: cell_value
  rooms:
    enabled: false
pathfinding:
  max_iterations: 50
""",
    )
    settings = load_game_settings(path)
    assert settings.world.mode == "chunked"
    assert settings.world.seed == 99
    assert settings.world.fields == (
        NoiseSettings(kind="cellular", frequency=0.2, cellular_return="cell_value"),
    )
    assert not settings.world.rooms.enabled
    assert settings.world.corridors.enabled
    assert settings.pathfinding.max_iterations == 50


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_yaml_config(tmp_path / "nope.yaml", "World")


def test_empty_file_gives_defaults(tmp_path):
    path = _write(tmp_path, "")
    assert load_yaml_config(path, "World") == {}
    assert load_game_settings(path) == GameSettings()


def test_malformed_yaml_is_reraised(tmp_path):
    path = _write(tmp_path, "world: [unclosed\n")
    with pytest.raises(yaml.YAMLError):
        load_yaml_config(path, "World")


def test_non_mapping_document_is_rejected(tmp_path):
    path = _write(tmp_path, "- 1\n- 2\n")
    with pytest.raises(ValueError):
        load_yaml_config(path, "World")


def test_unknown_keys_are_ignored():
    settings = settings_from_dict({"world": {"seed": 3, "bogus": True}, "extra": 1})
    assert settings.world.seed == 3


@pytest.mark.parametrize(
    "data",
    [
        {"world": {"generation_radius": 10, "deletion_distance": 4}},
        {"world": {"generation_radius": -1}},
        {"world": {"mode": "spiral"}},
        {"world": {"density": 1.5}},
        {"world": {"density": "high"}},
        {"world": {"fields": [{"kind": "simplex"}]}},
        {"world": {"biomes": {"enabled": True, "biome_ids": []}}},
        {"world": {"rooms": "big"}},
        {"world": {"chunk_radius": 3, "chunk_delete_radius": 1}},
        {"pathfinding": {"max_iterations": 0}},
    ],
)
def test_invalid_values_raise_config_error(data):
    with pytest.raises(ConfigError):
        settings_from_dict(data)


def test_config_error_is_a_value_error():
    assert issubclass(ConfigError, ValueError)


def test_settings_overrides_are_validated():
    base = StreamerSettings()
    assert base.with_overrides(seed=9).seed == 9
    assert base.effective_chunk_delete_radius == base.chunk_radius + 1
    with pytest.raises(ConfigError):
        base.with_overrides(deletion_distance=1.0)
