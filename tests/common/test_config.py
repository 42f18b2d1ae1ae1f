"""Tests for run configuration loading and layering."""

import argparse
from pathlib import Path

import pytest

from armcal_common.config import (
    RunConfig,
    build_run_config,
    config_from_args,
    config_from_env,
    load_config_file,
    make_run_config,
)
from armcal_common.errors import ConfigError
from armcal_common.types.calibration_types import TransportMode
from armcal_client.main import build_parser

CONFIGS_DIR = Path(__file__).parent.parent.parent / "armcal_client" / "configs"


def parse(*argv):
    return build_parser().parse_args(list(argv))


class TestRunConfig:
    def test_defaults(self):
        config = RunConfig()
        assert config.base_url == "http://localhost:80"
        assert config.robot_id == 0
        assert config.save_dir == Path("/tmp")
        assert config.poll_interval == 2.0
        assert config.force is False
        assert config.mode is TransportMode.LIVE
        assert config.max_polls is not None
        assert config.poll_timeout is not None

    def test_is_immutable(self):
        config = RunConfig()
        with pytest.raises(AttributeError):
            config.force = True

    @pytest.mark.parametrize(
        "overrides",
        [
            {"port": 0},
            {"port": 70000},
            {"robot_id": -1},
            {"poll_interval": -1.0},
            {"max_polls": 0},
            {"poll_timeout": 0.0},
            {"request_timeout": 0.0},
            {"retries": -1},
            {"log_level": "LOUD"},
        ],
    )
    def test_invalid_values(self, overrides):
        with pytest.raises(ConfigError):
            RunConfig(**overrides)

    @pytest.mark.parametrize(
        "host", ["", "bad host", "robot:90", "robot/api", "user@robot", "::1"]
    )
    def test_invalid_host(self, host):
        with pytest.raises(ConfigError, match="Invalid host"):
            RunConfig(host=host)

    @pytest.mark.parametrize("host", ["phosphobot.local", "192.168.1.20", "[::1]"])
    def test_valid_host(self, host):
        assert RunConfig(host=host, port=8080).base_url == f"http://{host}:8080"

    def test_summary_mentions_settings(self):
        summary = RunConfig(host="phosphobot.local", force=True).summary()
        assert "HOST=phosphobot.local" in summary
        assert "FORCE=True" in summary


class TestLayering:
    def test_env_reads_original_variable_names(self):
        settings = config_from_env(
            {"HOST": "robot.local", "PORT": "8080", "RID": "2", "SAVE_DIR": "/var/tmp", "X": "1"}
        )
        assert settings == {
            "host": "robot.local",
            "port": "8080",
            "robot_id": "2",
            "save_dir": "/var/tmp",
        }

    def test_empty_env_values_are_ignored(self):
        assert config_from_env({"HOST": ""}) == {}

    def test_only_given_flags_are_collected(self):
        assert config_from_args(parse()) == {}
        settings = config_from_args(parse("--port", "8000", "--force", "--simulate"))
        assert settings == {"port": 8000, "force": True, "mode": TransportMode.SIMULATE}

    def test_dry_run_wins_over_simulate(self):
        settings = config_from_args(parse("--dry-run", "--simulate"))
        assert settings["mode"] is TransportMode.DRY_RUN

    def test_precedence(self, tmp_path):
        config_file = tmp_path / "armcal.yaml"
        config_file.write_text("host: from-file\nport: 81\nrobot_id: 1\npoll_interval: 5\n")
        args = parse("--config", str(config_file), "--port", "82")

        config = build_run_config(args, environ={"HOST": "from-env", "RID": "3"})

        assert config.host == "from-env"
        assert config.port == 82
        assert config.robot_id == 3
        assert config.poll_interval == 5.0

    def test_values_are_converted(self):
        config = make_run_config({"port": "8080", "save_dir": "/data", "mode": "simulate"})
        assert config.port == 8080
        assert config.save_dir == Path("/data")
        assert config.mode is TransportMode.SIMULATE

    def test_unconvertible_value(self):
        with pytest.raises(ConfigError, match="port"):
            make_run_config({"port": "eighty"})

    def test_no_args_uses_environment_only(self):
        config = build_run_config(None, environ={"POLL_INTERVAL": "0.5"})
        assert config.poll_interval == 0.5


class TestConfigFile:
    def test_shipped_simulation_config(self):
        settings = load_config_file(CONFIGS_DIR / "simulate_progress.yaml")
        config = make_run_config(settings)

        assert config.mode is TransportMode.SIMULATE
        assert len(config.simulate_responses["/calibrate"]) == 3

    def test_empty_file(self, tmp_path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        assert load_config_file(config_file) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Error loading"):
            load_config_file(tmp_path / "missing.yaml")

    def test_unknown_keys(self, tmp_path):
        config_file = tmp_path / "typo.yaml"
        config_file.write_text("hots: localhost\n")
        with pytest.raises(ConfigError, match="hots"):
            load_config_file(config_file)

    def test_not_a_mapping(self, tmp_path):
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config_file(config_file)

    def test_invalid_yaml(self, tmp_path):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("host: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config_file(config_file)

    def test_null_disables_poll_bounds(self, tmp_path):
        config_file = tmp_path / "unbounded.yaml"
        config_file.write_text("max_polls: null\npoll_timeout: null\n")
        config = make_run_config(load_config_file(config_file))
        assert config.max_polls is None
        assert config.poll_timeout is None

    def test_force_from_file(self, tmp_path):
        config_file = tmp_path / "force.yaml"
        config_file.write_text("force: true\n")
        args = argparse.Namespace(config=config_file)
        assert build_run_config(args, environ={}).force is True
