"""Unit tests for configuration dataclasses, YAML loading and CLI merging."""

import argparse
from pathlib import Path

import pytest

from landsat_ndvi.config import (
    ComparisonConfig,
    CompositeConfig,
    ConfigurationError,
    ExportConfig,
    load_comparison_config,
    load_composite_config,
)
from landsat_ndvi.config.cli import (
    add_comparison_args,
    add_composite_args,
    build_comparison_config,
    build_composite_config,
)


def _composite_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser()
    add_composite_args(parser)
    return parser


def _comparison_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser()
    add_comparison_args(parser)
    return parser


class TestExportConfig:
    """Tests for ExportConfig dataclass."""

    def test_default_values(self):
        """Defaults match the documented values."""
        config = ExportConfig()
        assert config.no_data == -9999.0
        assert config.resolution == 30.0
        assert config.crs == "EPSG:2193"
        assert config.format == "GTiff"

    def test_validate_resolution_positive(self):
        """Resolution must be positive."""
        with pytest.raises(ValueError, match="resolution must be positive"):
            ExportConfig(resolution=0).validate()

    def test_validate_format(self):
        """Only supported output formats validate."""
        with pytest.raises(ValueError, match="format must be one of"):
            ExportConfig(format="png").validate()


class TestCompositeConfig:
    """Tests for CompositeConfig dataclass."""

    def test_default_values(self, tmp_path: Path):
        """Defaults match the documented values."""
        config = CompositeConfig(scenes_dir=tmp_path, output_dir=tmp_path / "out")
        assert config.year == 2024
        assert config.cloud_mask_enabled is False
        assert config.cloud_cover_threshold == 20.0
        assert config.layer == "ndvi"
        config.validate()

    def test_validate_missing_scenes_dir(self, tmp_path: Path):
        """A missing scenes directory fails validation."""
        config = CompositeConfig(scenes_dir=tmp_path / "missing", output_dir=tmp_path)
        with pytest.raises(FileNotFoundError, match="Scenes directory not found"):
            config.validate()

    @pytest.mark.parametrize("year", [1999, 2025])
    def test_validate_year_range(self, tmp_path: Path, year):
        """Years outside 2000-2024 fail validation."""
        config = CompositeConfig(scenes_dir=tmp_path, output_dir=tmp_path, year=year)
        with pytest.raises(ValueError, match=r"year must be in \[2000, 2024\]"):
            config.validate()

    def test_validate_cloud_cover_range(self, tmp_path: Path):
        """Cloud cover must be a percentage."""
        config = CompositeConfig(scenes_dir=tmp_path, output_dir=tmp_path, cloud_cover_threshold=120)
        with pytest.raises(ValueError, match="cloud_cover_threshold"):
            config.validate()

    def test_validate_layer(self, tmp_path: Path):
        """Only known layer keys validate."""
        config = CompositeConfig(scenes_dir=tmp_path, output_dir=tmp_path, layer="evi")
        with pytest.raises(ValueError, match="layer must be one of"):
            config.validate()

    def test_validate_mask_dilation_non_negative(self, tmp_path: Path):
        """mask_dilation cannot be negative."""
        config = CompositeConfig(scenes_dir=tmp_path, output_dir=tmp_path, mask_dilation=-1)
        with pytest.raises(ValueError, match="mask_dilation"):
            config.validate()

    def test_validate_min_clear_obs(self, tmp_path: Path):
        """min_clear_obs must be at least one."""
        config = CompositeConfig(scenes_dir=tmp_path, output_dir=tmp_path, min_clear_obs=0)
        with pytest.raises(ValueError, match="min_clear_obs"):
            config.validate()


class TestComparisonConfig:
    """Tests for ComparisonConfig dataclass."""

    def test_validate_valid_config(self, tmp_path: Path):
        """A config with ordered years validates."""
        ComparisonConfig(
            scenes_dir=tmp_path, output_dir=tmp_path, first_year=2005, last_year=2024
        ).validate()

    def test_validate_year_order(self, tmp_path: Path):
        """first_year must be before last_year."""
        config = ComparisonConfig(
            scenes_dir=tmp_path, output_dir=tmp_path, first_year=2020, last_year=2010
        )
        with pytest.raises(ValueError, match="must be before last_year"):
            config.validate()


class TestYamlCompositeConfig:
    """Tests for loading CompositeConfig from YAML."""

    def test_load_valid_config(self, tmp_path: Path):
        """A complete YAML file loads with relative paths resolved."""
        (tmp_path / "scenes").mkdir()
        config_path = tmp_path / "composite.yaml"
        config_path.write_text(
            "scenes_dir: scenes\n"
            "output_dir: exports\n"
            "year: 2013\n"
            "cloud_mask_enabled: true\n"
            "cloud_cover_threshold: 35\n"
            "layer: false_colour\n"
            "export:\n"
            "  no_data: -1\n"
            "  crs: EPSG:32760\n",
            encoding="utf-8",
        )

        config = load_composite_config(config_path)

        assert config.scenes_dir == tmp_path / "scenes"
        assert config.output_dir == tmp_path / "exports"
        assert config.year == 2013
        assert config.cloud_mask_enabled is True
        assert config.cloud_cover_threshold == 35.0
        assert config.layer == "false_colour"
        assert config.export.no_data == -1.0
        assert config.export.crs == "EPSG:32760"
        assert config.export.resolution == 30.0

    def test_relative_aoi_file_resolved(self, tmp_path: Path):
        """An AOI file path is resolved against the config file."""
        (tmp_path / "scenes").mkdir()
        (tmp_path / "aoi.wkt").write_text("POLYGON ((0 0, 1 0, 1 1, 0 0))", encoding="utf-8")
        config_path = tmp_path / "composite.yaml"
        config_path.write_text(
            "scenes_dir: scenes\noutput_dir: out\naoi: aoi.wkt\n", encoding="utf-8"
        )
        config = load_composite_config(config_path)
        assert config.aoi == str(tmp_path / "aoi.wkt")

    def test_inline_aoi_kept(self, tmp_path: Path):
        """An inline bbox AOI is kept as text."""
        (tmp_path / "scenes").mkdir()
        config_path = tmp_path / "composite.yaml"
        config_path.write_text(
            "scenes_dir: scenes\noutput_dir: out\naoi: '0,0,10,10'\n", encoding="utf-8"
        )
        assert load_composite_config(config_path).aoi == "0,0,10,10"

    def test_missing_required_field(self, tmp_path: Path):
        """A missing scenes_dir raises ConfigurationError."""
        config_path = tmp_path / "composite.yaml"
        config_path.write_text("output_dir: out\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Missing required field: scenes_dir"):
            load_composite_config(config_path)

    def test_file_not_found(self, tmp_path: Path):
        """A missing config file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_composite_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path: Path):
        """Malformed YAML raises ConfigurationError."""
        config_path = tmp_path / "bad.yaml"
        config_path.write_text("scenes_dir: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Failed to parse YAML"):
            load_composite_config(config_path)

    def test_empty_file(self, tmp_path: Path):
        """An empty file raises ConfigurationError."""
        config_path = tmp_path / "empty.yaml"
        config_path.write_text("", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="empty"):
            load_composite_config(config_path)

    def test_non_mapping(self, tmp_path: Path):
        """A YAML list is not a valid config."""
        config_path = tmp_path / "list.yaml"
        config_path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_composite_config(config_path)

    def test_validate_false_skips_checks(self, tmp_path: Path):
        """validate=False returns the config unchecked."""
        config_path = tmp_path / "composite.yaml"
        config_path.write_text("scenes_dir: missing\noutput_dir: out\nyear: 1990\n", encoding="utf-8")
        config = load_composite_config(config_path, validate=False)
        assert config.year == 1990


class TestYamlComparisonConfig:
    """Tests for loading ComparisonConfig from YAML."""

    def test_load_valid_config(self, tmp_path: Path):
        """A complete YAML file loads with relative paths resolved."""
        (tmp_path / "scenes").mkdir()
        config_path = tmp_path / "compare.yaml"
        config_path.write_text(
            "scenes_dir: scenes\n"
            "output_dir: exports\n"
            "first_year: 2005\n"
            "last_year: 2024\n"
            "first_cloud_cover: 30\n",
            encoding="utf-8",
        )
        config = load_comparison_config(config_path)
        assert (config.first_year, config.last_year) == (2005, 2024)
        assert config.first_cloud_cover == 30.0
        assert config.last_cloud_cover == 20.0

    def test_years_required(self, tmp_path: Path):
        """Both years are required for a comparison."""
        config_path = tmp_path / "compare.yaml"
        config_path.write_text("scenes_dir: s\noutput_dir: o\nfirst_year: 2005\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="last_year"):
            load_comparison_config(config_path)


class TestCliConfigBuilding:
    """Tests for merging CLI arguments with YAML configuration."""

    def test_cli_only(self, tmp_path: Path):
        """A config can be built from CLI arguments alone."""
        args = _composite_parser().parse_args([
            "--scenes-dir", str(tmp_path),
            "--output-dir", str(tmp_path / "out"),
            "--year", "2010",
            "--cloud-mask",
            "--layer", "true_colour",
            "--no-data", "-1",
        ])
        config = build_composite_config(args)
        assert config.scenes_dir == tmp_path.resolve()
        assert config.year == 2010
        assert config.cloud_mask_enabled is True
        assert config.layer == "true_colour"
        assert config.export.no_data == -1.0

    def test_cli_requires_directories(self, monkeypatch):
        """Without YAML or env vars both directories are required."""
        monkeypatch.delenv("LANDSAT_SCENES_DIR", raising=False)
        monkeypatch.delenv("LANDSAT_OUTPUT_DIR", raising=False)
        args = _composite_parser().parse_args(["--scenes-dir", "x"])
        args.output_dir = None
        with pytest.raises(ValueError, match="--output-dir"):
            build_composite_config(args)

    def test_cli_overrides_yaml(self, tmp_path: Path):
        """CLI arguments override YAML values."""
        (tmp_path / "scenes").mkdir()
        config_path = tmp_path / "composite.yaml"
        config_path.write_text(
            "scenes_dir: scenes\noutput_dir: out\nyear: 2013\nlayer: ndvi\n", encoding="utf-8"
        )
        args = _composite_parser().parse_args([
            "--config", str(config_path),
            "--year", "2020",
            "--resolution", "10",
        ])
        args.scenes_dir = None
        args.output_dir = None
        config = build_composite_config(args)
        assert config.year == 2020
        assert config.layer == "ndvi"
        assert config.scenes_dir == tmp_path / "scenes"
        assert config.export.resolution == 10.0

    def test_bad_yaml_becomes_value_error(self, tmp_path: Path):
        """YAML loading errors surface as ValueError."""
        config_path = tmp_path / "bad.yaml"
        config_path.write_text("", encoding="utf-8")
        args = _composite_parser().parse_args(["--config", str(config_path)])
        with pytest.raises(ValueError, match="Failed to load config"):
            build_composite_config(args)

    def test_comparison_requires_years(self, tmp_path: Path):
        """The comparison needs --last-year."""
        args = _comparison_parser().parse_args([
            "--scenes-dir", str(tmp_path),
            "--output-dir", str(tmp_path),
            "--first-year", "2005",
        ])
        with pytest.raises(ValueError, match="--last-year"):
            build_comparison_config(args)

    def test_comparison_from_cli(self, tmp_path: Path):
        """Per-year cloud cover thresholds are read from the CLI."""
        args = _comparison_parser().parse_args([
            "--scenes-dir", str(tmp_path),
            "--output-dir", str(tmp_path),
            "--first-year", "2005",
            "--last-year", "2020",
            "--last-cloud-cover", "50",
        ])
        config = build_comparison_config(args)
        assert config.last_cloud_cover == 50.0
        assert config.first_cloud_cover == 20.0

    def test_unknown_layer_rejected_by_parser(self):
        """argparse rejects unknown layer keys."""
        with pytest.raises(SystemExit):
            _composite_parser().parse_args(["--layer", "evi"])
