"""
Tests for the analysis configuration
"""

import pytest

from proteomics_explorer.config import AnalysisConfig, load_config_file


class TestAnalysisConfig:
    """Test defaults and validation"""

    def test_defaults(self):
        config = AnalysisConfig()

        assert config.coverage_fraction == 0.8
        assert config.knn_neighbors == 10
        assert config.cluster_count == 2
        assert config.significance_alpha == 0.01
        assert config.fold_change_threshold == 1.5
        assert config.validate()

    def test_volcano_line_defaults_to_alpha(self):
        assert AnalysisConfig(significance_alpha=0.02).effective_volcano_pvalue_line == 0.02
        assert AnalysisConfig(volcano_pvalue_line=0.05).effective_volcano_pvalue_line == 0.05

    @pytest.mark.parametrize("field,value", [
        ("coverage_fraction", 1.5),
        ("knn_neighbors", 0),
        ("cluster_count", 0),
        ("max_elbow_clusters", 0),
        ("significance_alpha", 0.0),
        ("fold_change_threshold", 0.5),
        ("volcano_pvalue_line", 1.0),
        ("sample_name_delimiter", ""),
    ])
    def test_invalid_values_rejected(self, field, value):
        config = AnalysisConfig(**{field: value})
        with pytest.raises(ValueError, match=field):
            config.validate()

    def test_from_dict_ignores_unknown_keys(self, capsys):
        config = AnalysisConfig.from_dict({"cluster_count": 3, "colour_scheme": "viridis"})

        assert config.cluster_count == 3
        assert "colour_scheme" in capsys.readouterr().out


class TestLoadConfigFile:
    """Test reading Python configuration files"""

    def test_loads_assignments(self, tmp_path):
        path = tmp_path / "my_config.py"
        path.write_text(
            "import os\n"
            "input_path = os.path.join('data', 'proteins.tsv')\n"
            "coverage_fraction = 0.6\n"
            "_private = 'ignored'\n"
        )

        config = load_config_file(str(path))

        assert config.input_path.endswith("proteins.tsv")
        assert config.coverage_fraction == 0.6

    def test_invalid_value_rejected(self, tmp_path):
        path = tmp_path / "bad_config.py"
        path.write_text("significance_alpha = 2\n")

        with pytest.raises(ValueError, match="significance_alpha"):
            load_config_file(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config_file(str(tmp_path / "nope.py"))
