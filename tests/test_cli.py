"""
Tests for the command-line interface.
"""

import json

import pytest
import yaml

from amm_twap_analyzer.cli import build_parser, main


@pytest.fixture
def config_path(tmp_path):
    """Path to a configuration file that does not exist yet."""
    return str(tmp_path / "twap_config.yaml")


@pytest.fixture
def file_args(config_path, pool_state_path, observation_state_path):
    return ["--config", config_path, "analyze",
            "--pool-file", str(pool_state_path), "--obs-file", str(observation_state_path)]


def answer_with(monkeypatch, *answers):
    replies = iter(answers)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(replies))


class TestParser:
    """Test argument parsing."""

    def test_parser_commands(self):
        parser = build_parser()
        args = parser.parse_args(["analyze", "--pool-file", "p.json", "--obs-file", "o.json", "--format", "json"])
        assert args.command == "analyze"
        assert args.pool_file == "p.json"
        assert args.format == "json"

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert "0.1.0" in capsys.readouterr().out

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "analyze" in capsys.readouterr().out


class TestAnalyzeCommand:
    """Test the analyze command."""

    def test_text_report(self, file_args, capsys):
        assert main(file_args) == 0

        out = capsys.readouterr().out
        assert "TWAP CALCULATOR CLI" in out
        assert "Loading data from files" in out
        assert "Token 0 Mint: So11111111111111111111111111111111111111112" in out
        assert "Found 6 valid observations" in out
        assert "Oldest observation: timestamp=1755187080, tick_cumulative=-576701345305" in out
        assert "Newest observation: timestamp=1755188942, tick_cumulative=-576731966831" in out
        assert "Time difference: 1862 seconds (0.52 hours)" in out
        assert "Decimal adjustment factor: 0.001 (decimals0=9, decimals1=6)" in out
        assert "TWAP Tick: -16445.502685" in out
        assert "Manipulation risk: LOW" in out
        assert "Risk factors: NORMAL_MOVEMENT" in out
        assert "✅ Normal market conditions" in out
        assert "ANALYSIS COMPLETE" in out
        assert "Confidence: 65%" in out
        assert "Action required" not in out

    def test_json_report(self, file_args, capsys):
        assert main(file_args + ["--format", "json"]) == 0

        report = json.loads(capsys.readouterr().out)
        assert report["observationCount"] == 6
        assert report["twapTick"] == pytest.approx(-30621526 / 1862)
        assert report["manipulationAnalysis"]["level"] == "LOW"
        assert report["manipulationAnalysis"]["factors"] == ["NORMAL_MOVEMENT"]

    def test_inline_json(self, config_path, pool_state_raw, observation_state_raw, capsys):
        argv = ["--config", config_path, "analyze",
                "--pool-json", json.dumps(pool_state_raw),
                "--obs-json", json.dumps(observation_state_raw),
                "--format", "json"]

        assert main(argv) == 0
        assert json.loads(capsys.readouterr().out)["observationCount"] == 6

    def test_output_file(self, file_args, tmp_path, capsys):
        output = tmp_path / "reports" / "twap.json"

        assert main(file_args + ["--output", str(output)]) == 0

        report = json.loads(output.read_text(encoding="utf-8"))
        assert report["manipulationAnalysis"]["confidence"] == 65
        assert "Report written to" in capsys.readouterr().out

    def test_elevated_risk_summary(self, config_path, capsys):
        pool = {"tick_current": {"type": "i32", "data": 0},
                "mint_decimals_0": {"type": "u8", "data": 6},
                "mint_decimals_1": {"type": "u8", "data": 6}}
        observations = {"observations": {"data": [
            {"block_timestamp": 1, "tick_cumulative": "0"},
            {"block_timestamp": 7201, "tick_cumulative": str(7200 * 5000)},
        ]}}
        argv = ["--config", config_path, "analyze",
                "--pool-json", json.dumps(pool), "--obs-json", json.dumps(observations)]

        assert main(argv) == 0

        out = capsys.readouterr().out
        assert "Manipulation risk: CRITICAL" in out
        assert "WARNING: Extreme price difference detected!" in out
        assert "🚨 DO NOT TRADE - High manipulation risk" in out
        assert "Action required: Check manipulation analysis above" in out

    def test_only_pool_given(self, config_path, pool_state_path, capsys):
        argv = ["--config", config_path, "analyze", "--pool-file", str(pool_state_path)]

        assert main(argv) == 1
        assert "Please provide both pool and observation data" in capsys.readouterr().err

    def test_missing_file(self, config_path, tmp_path, pool_state_path, capsys):
        argv = ["--config", config_path, "analyze",
                "--pool-file", str(pool_state_path), "--obs-file", str(tmp_path / "missing.json")]

        assert main(argv) == 1
        assert "File not found" in capsys.readouterr().err

    def test_insufficient_observations(self, config_path, pool_state_raw, capsys):
        observations = {"observations": {"data": [{"block_timestamp": 5, "tick_cumulative": "1"}]}}
        argv = ["--config", config_path, "analyze",
                "--pool-json", json.dumps(pool_state_raw), "--obs-json", json.dumps(observations)]

        assert main(argv) == 1
        assert "Need at least 2 valid observations" in capsys.readouterr().err

    def test_analysis_failure_reported_once(self, config_path, pool_state_raw, capsys):
        observations = {"observations": {"data": [
            {"block_timestamp": 500, "tick_cumulative": "0"},
            {"block_timestamp": 500, "tick_cumulative": "10"},
        ]}}
        argv = ["--config", config_path, "analyze",
                "--pool-json", json.dumps(pool_state_raw), "--obs-json", json.dumps(observations)]

        assert main(argv) == 1

        err = capsys.readouterr().err
        assert "Fatal error: Observations span no time" in err
        assert err.count("Observations span no time") == 1

    def test_invalid_inline_json(self, config_path, capsys):
        argv = ["--config", config_path, "analyze", "--pool-json", "{", "--obs-json", "{}"]

        assert main(argv) == 1
        assert "Error parsing PoolState JSON" in capsys.readouterr().err

    def test_interactive_with_paths(self, config_path, pool_state_path, observation_state_path,
                                    monkeypatch, capsys):
        answer_with(monkeypatch, str(pool_state_path), str(observation_state_path))

        assert main(["--config", config_path, "analyze", "-i", "--format", "json"]) == 0

        captured = capsys.readouterr()
        assert json.loads(captured.out)["observationCount"] == 6
        assert "Interactive mode" in captured.err
        assert "PoolState (JSON or file path)" in captured.err

    def test_interactive_text_prompts_on_stdout(self, config_path, pool_state_path,
                                                observation_state_path, monkeypatch, capsys):
        answer_with(monkeypatch, str(pool_state_path), str(observation_state_path))

        assert main(["--config", config_path, "analyze", "-i"]) == 0

        captured = capsys.readouterr()
        assert "Interactive mode" in captured.out
        assert "ObservationState (JSON or file path)" in captured.out
        assert "Interactive mode" not in captured.err

    def test_interactive_is_default(self, config_path, pool_state_raw, observation_state_path,
                                    monkeypatch, capsys):
        answer_with(monkeypatch, json.dumps(pool_state_raw), str(observation_state_path))

        assert main(["--config", config_path, "analyze"]) == 0
        assert "ANALYSIS COMPLETE" in capsys.readouterr().out

    def test_interactive_end_of_input(self, config_path, monkeypatch, capsys):
        def no_input(prompt=""):
            raise EOFError

        monkeypatch.setattr("builtins.input", no_input)

        assert main(["--config", config_path, "analyze"]) == 1
        assert "No input provided" in capsys.readouterr().err

    def test_interrupt(self, config_path, monkeypatch, capsys):
        def interrupt(prompt=""):
            raise KeyboardInterrupt

        monkeypatch.setattr("builtins.input", interrupt)

        assert main(["--config", config_path, "analyze", "-i"]) == 130
        assert "cancelled" in capsys.readouterr().err

    def test_configured_default_inputs(self, tmp_path, pool_state_path, observation_state_path, capsys):
        config_file = tmp_path / "twap_config.yaml"
        config_file.write_text(yaml.dump({
            "input": {"pool_file": str(pool_state_path), "obs_file": str(observation_state_path)},
            "output": {"format": "json"},
        }))

        assert main(["--config", str(config_file), "analyze"]) == 0
        assert json.loads(capsys.readouterr().out)["observationCount"] == 6

    def test_precision_from_config(self, tmp_path, pool_state_path, observation_state_path, capsys):
        config_file = tmp_path / "twap_config.yaml"
        config_file.write_text(yaml.dump({"output": {"tick_precision": 2, "show_pool_info": False}}))
        argv = ["--config", str(config_file), "analyze",
                "--pool-file", str(pool_state_path), "--obs-file", str(observation_state_path)]

        assert main(argv) == 0

        out = capsys.readouterr().out
        assert "TWAP Tick: -16445.50\n" in out
        assert "POOL INFORMATION" not in out

    def test_invalid_config_file(self, tmp_path, file_args, capsys):
        config_file = tmp_path / "twap_config.yaml"
        config_file.write_text(yaml.dump({"output": {"format": "xml"}}))

        assert main(file_args) == 1
        assert "Invalid configuration" in capsys.readouterr().err


class TestOtherCommands:
    """Test validate, init and show-config commands."""

    def test_validate(self, config_path, pool_state_path, observation_state_path, capsys):
        argv = ["--config", config_path, "validate",
                "--pool-file", str(pool_state_path), "--obs-file", str(observation_state_path)]

        assert main(argv) == 0

        out = capsys.readouterr().out
        assert "✓ Pool state is valid" in out
        assert "6 of 8 slots used" in out

    def test_validate_reports_missing_field(self, config_path, observation_state_path, capsys):
        argv = ["--config", config_path, "validate",
                "--pool-json", json.dumps({"tick_current": 1, "mint_decimals_0": 6}),
                "--obs-file", str(observation_state_path)]

        assert main(argv) == 1
        assert "Missing required field in PoolState: mint_decimals_1" in capsys.readouterr().err

    def test_init(self, config_path, capsys):
        assert main(["--config", config_path, "init"]) == 0
        assert "Configuration initialized" in capsys.readouterr().out

        with open(config_path) as f:
            assert yaml.safe_load(f)["output"]["format"] == "text"

        assert main(["--config", config_path, "init"]) == 1
        assert "already exists" in capsys.readouterr().out

        assert main(["--config", config_path, "init", "--force"]) == 0

    def test_init_repairs_invalid_config(self, tmp_path):
        config_file = tmp_path / "twap_config.yaml"
        config_file.write_text(yaml.dump({"output": {"format": "xml"}}))

        assert main(["--config", str(config_file), "init", "--force"]) == 0
        assert yaml.safe_load(config_file.read_text())["output"]["format"] == "text"

    def test_show_config_defaults(self, config_path, capsys):
        assert main(["--config", config_path, "show-config"]) == 0

        out = capsys.readouterr().out
        assert "not found, using defaults" in out
        assert yaml.safe_load(out)["output"]["price_precision"] == 8

    def test_show_config_with_env_override(self, config_path, monkeypatch, capsys):
        monkeypatch.setenv("TWAP_PRICE_PRECISION", "12")

        assert main(["--config", config_path, "show-config", "--format", "json"]) == 0
        assert json.loads(capsys.readouterr().out)["output"]["price_precision"] == 12

    def test_validate_config_only(self, tmp_path, capsys):
        config_file = tmp_path / "twap_config.yaml"
        config_file.write_text(yaml.dump({"output": {"price_precision": 4}}))

        assert main(["--config", str(config_file), "validate", "--config-only"]) == 0
        assert "is valid" in capsys.readouterr().out

    def test_validate_config_only_reports_errors(self, tmp_path, capsys):
        config_file = tmp_path / "twap_config.yaml"
        config_file.write_text(yaml.dump({"output": {"format": "xml"}}))

        assert main(["--config", str(config_file), "validate", "--config-only"]) == 1

        err = capsys.readouterr().err
        assert "is invalid" in err
        assert "Configuration validation failed" in err

    def test_validate_config_only_missing_file(self, config_path, capsys):
        assert main(["--config", config_path, "validate", "--config-only"]) == 1
        assert "Configuration file does not exist" in capsys.readouterr().err
