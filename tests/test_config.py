import pytest

from randgames import ConfigError, RunConfig, load_config, parse_targets


def test_defaults():
    config = RunConfig()
    assert config.budget == 10000
    assert config.targets == (10, 25, 50, 100, 250, 500, 750)
    assert config.storage_path == "./generateStorage.txt"
    assert config.resolved_result_path == "./generated_10000.txt"
    assert config.claim_draw is True


def test_targets_sorted_and_deduplicated():
    assert RunConfig(targets=[50, 10, 50]).targets == (10, 50)


@pytest.mark.parametrize("kwargs", [
    {"budget": -1},
    {"budget": "10"},
    {"targets": ()},
    {"targets": (10, 0)},
    {"targets": (10, 2.5)},
    {"targets": 10},
    {"storage_path": 123},
    {"result_path": 5},
    {"claim_draw": "no"},
])
def test_invalid_values(kwargs):
    with pytest.raises(ConfigError):
        RunConfig(**kwargs)


def test_load_yaml_with_overrides(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "budget: 1500\n"
        "targets: [100, 10]\n"
        "storage_path: games.txt\n"
        "claim_draw: false\n"
    )

    config = load_config(path, budget=None, result_path="out.txt")
    assert config.budget == 1500
    assert config.targets == (10, 100)
    assert config.storage_path == "games.txt"
    assert config.resolved_result_path == "out.txt"
    assert config.claim_draw is False

    assert load_config(path, budget=20).budget == 20


def test_missing_config_uses_defaults(tmp_path, caplog):
    config = load_config(tmp_path / "absent.yaml")
    assert config == RunConfig()
    assert "Config not found" in caplog.text


def test_unknown_key_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("budgte: 10\n")
    with pytest.raises(ConfigError, match="budgte"):
        load_config(path)


def test_parse_targets():
    assert parse_targets("10,25, 50") == (10, 25, 50)
    with pytest.raises(ConfigError):
        parse_targets("10,abc")


def test_yaml_scalar_targets_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("targets: 10\nstorage_path: 123\n")
    with pytest.raises(ConfigError, match="targets must be a list"):
        load_config(path)
