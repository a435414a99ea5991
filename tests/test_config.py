"""Tests for configuration loading and logging setup."""

import logging

import pytest
import yaml

from fusionview.utils.config_loader import (
    DEFAULT_CONFIG,
    DEFAULT_CONFIG_PATH,
    ConfigLoader,
    get_nested,
    load_config,
)
from fusionview.utils.logger import LoggerMixin, get_logger, setup_logger


class TestLoadConfig:

    def test_defaults(self):
        config = load_config()

        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG

    def test_yaml_merged_over_defaults(self, tmp_path):
        path = tmp_path / "viewer.yaml"
        path.write_text("render:\n  point_size: 5\n", encoding="utf-8")

        config = load_config(path)

        assert config["render"]["point_size"] == 5
        assert config["render"]["line_thickness"] == DEFAULT_CONFIG["render"]["line_thickness"]
        assert config["frame"] == DEFAULT_CONFIG["frame"]

    def test_overrides_applied_last(self, tmp_path):
        path = tmp_path / "viewer.yaml"
        path.write_text("render:\n  draw_points: true\n", encoding="utf-8")

        config = load_config(path, {"render": {"draw_points": False}})

        assert config["render"]["draw_points"] is False

    def test_defaults_not_mutated(self):
        config = load_config(overrides={"render": {"point_size": 9}})
        config["frame"]["image_keys"].append("cam_x")

        assert DEFAULT_CONFIG["render"]["point_size"] == 2
        assert "cam_x" not in DEFAULT_CONFIG["frame"]["image_keys"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_defaults_come_from_packaged_yaml(self):
        with open(DEFAULT_CONFIG_PATH) as f:
            packaged = yaml.safe_load(f)

        assert DEFAULT_CONFIG == packaged
        assert load_config() == packaged

    def test_packaged_defaults(self):
        assert DEFAULT_CONFIG_PATH.parent.parent.name == "fusionview"
        assert get_nested(DEFAULT_CONFIG, "frame.calibration_file") == "cameras.cfg"
        assert get_nested(DEFAULT_CONFIG, "frame.use_undistorted") is False
        assert "traffic_2" in get_nested(DEFAULT_CONFIG, "frame.image_keys")
        assert get_nested(DEFAULT_CONFIG, "render.point_size") == 2
        assert get_nested(DEFAULT_CONFIG, "logging.level") == "INFO"


class TestConfigLoader:

    def test_include(self, tmp_path):
        (tmp_path / "render.yaml").write_text("point_size: 4\n", encoding="utf-8")
        path = tmp_path / "main.yaml"
        path.write_text("render: '!include render.yaml'\n", encoding="utf-8")

        config = ConfigLoader().load(path)

        assert config["render"] == {"point_size": 4}

    def test_cache_returns_copies(self, tmp_path):
        path = tmp_path / "main.yaml"
        path.write_text("a: {b: 1}\n", encoding="utf-8")
        loader = ConfigLoader()

        first = loader.load(path)
        first["a"]["b"] = 2

        assert loader.load(path)["a"]["b"] == 1

    def test_clear_cache(self, tmp_path):
        path = tmp_path / "main.yaml"
        path.write_text("a: 1\n", encoding="utf-8")
        loader = ConfigLoader()
        loader.load(path)

        path.write_text("a: 2\n", encoding="utf-8")
        assert loader.load(path)["a"] == 1

        loader.clear_cache()
        assert loader.load(path)["a"] == 2

    def test_relative_to_config_dir(self, tmp_path):
        (tmp_path / "viewer.yaml").write_text("a: 3\n", encoding="utf-8")

        assert ConfigLoader(str(tmp_path)).load("viewer.yaml")["a"] == 3

    def test_merge(self):
        merged = ConfigLoader().merge({"a": {"b": 1, "c": 2}, "d": 1}, {"a": {"b": 5}, "d": {"e": 1}})

        assert merged == {"a": {"b": 5, "c": 2}, "d": {"e": 1}}

    def test_save(self, tmp_path):
        path = tmp_path / "out" / "config_used.yaml"

        ConfigLoader().save(DEFAULT_CONFIG, path)

        with open(path) as f:
            assert yaml.safe_load(f) == DEFAULT_CONFIG


class TestGetNested:

    def test_dot_notation(self):
        assert get_nested(DEFAULT_CONFIG, "render.point_size") == 2

    def test_missing_key(self):
        assert get_nested(DEFAULT_CONFIG, "render.missing", "x") == "x"
        assert get_nested(DEFAULT_CONFIG, "render.point_size.deeper") is None


class TestLogger:

    def test_setup_logger_level(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        logger = setup_logger("fusionview.test_setup", level="DEBUG", log_file=str(log_file), console=False)

        logger.debug("hello")
        for handler in logger.handlers:
            handler.flush()

        assert logger.level == logging.DEBUG
        assert "hello" in log_file.read_text()

    def test_package_loggers_propagate(self):
        logger = get_logger("fusionview.some.module")

        assert logger.handlers == []
        assert logger.propagate

    def test_mixin_logger_name(self):
        class Worker(LoggerMixin):
            pass

        assert Worker().logger.name.endswith("test_config.Worker")
