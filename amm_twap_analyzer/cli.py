"""
Command-line interface for the AMM TWAP analyzer.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TextIO, Tuple

import yaml

from amm_twap_analyzer import __version__
from amm_twap_analyzer.analysis.twap_analyzer import TwapAnalyzer
from amm_twap_analyzer.config.manager import DEFAULT_CONFIG_FILE, ConfigManager, config_to_dict
from amm_twap_analyzer.config.models import AnalyzerConfig
from amm_twap_analyzer.models.core import PoolSnapshot, RiskLevel, TwapAnalysis
from amm_twap_analyzer.utils.data_normalizer import (
    AccountDataNormalizer,
    PoolInfo,
    load_json_file,
    load_json_source,
    parse_json_text,
)
from amm_twap_analyzer.utils.error_handling import (
    ConfigurationError,
    InvalidInputError,
    TwapAnalysisError,
)
from amm_twap_analyzer.utils.structured_logging import logging_manager
from amm_twap_analyzer.utils.unicode_utils import UnicodeHandler

logger = logging.getLogger(__name__)

RULE = "=" * 60


def _out(text: str = "") -> None:
    """Print a report line, degrading emoji on consoles that cannot show them."""
    print(UnicodeHandler.console_text(text))


def _add_source_arguments(parser):
    """Add the pool/observation input options shared by analyze and validate."""
    parser.add_argument(
        "--pool-file",
        type=str,
        help="PoolState JSON file"
    )
    parser.add_argument(
        "--obs-file",
        type=str,
        help="ObservationState JSON file"
    )
    parser.add_argument(
        "--pool-json",
        type=str,
        help="PoolState as inline JSON"
    )
    parser.add_argument(
        "--obs-json",
        type=str,
        help="ObservationState as inline JSON"
    )
    parser.add_argument(
        "--interactive", "-i",
        action="store_true",
        help="Prompt for JSON data or file paths"
    )


def _add_analyze_command(subparsers):
    """Add analyze command parser."""
    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Calculate TWAP and manipulation risk",
        description="Calculate the TWAP of a pool and score it for manipulation risk"
    )
    _add_source_arguments(analyze_parser)
    analyze_parser.add_argument(
        "--format",
        choices=["text", "json"],
        help="Report format (default: from configuration)"
    )
    analyze_parser.add_argument(
        "--output", "-o",
        type=str,
        help="Also write the JSON report to this file"
    )


def _add_validate_command(subparsers):
    """Add validate command parser."""
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate pool and observation data",
        description="Check pool and observation data without calculating"
    )
    _add_source_arguments(validate_parser)
    validate_parser.add_argument(
        "--config-only",
        action="store_true",
        help="Validate the configuration file instead of pool data"
    )


def _add_init_command(subparsers):
    """Add init command parser."""
    init_parser = subparsers.add_parser(
        "init",
        help="Create a default configuration file",
        description="Write a configuration file holding the default settings"
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite existing configuration"
    )


def _add_show_config_command(subparsers):
    """Add show-config command parser."""
    show_parser = subparsers.add_parser(
        "show-config",
        help="Show the effective configuration",
        description="Print configuration after environment variable overrides"
    )
    show_parser.add_argument(
        "--format",
        choices=["yaml", "json"],
        default="yaml",
        help="Output format (default: yaml)"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="twap-analyzer",
        description="AMM pool TWAP calculator and manipulation analyzer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  twap-analyzer analyze --pool-file pool.json --obs-file obs.json
  twap-analyzer analyze --pool-json '{...}' --obs-json '{...}' --format json
  twap-analyzer analyze -i                  # Prompt for data
  twap-analyzer validate --pool-file pool.json --obs-file obs.json
  twap-analyzer validate --config-only      # Check the configuration file
  twap-analyzer init --force                # Write default configuration
  twap-analyzer show-config --format json
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"amm-twap-analyzer {__version__}"
    )

    parser.add_argument(
        "--config",
        type=str,
        default=DEFAULT_CONFIG_FILE,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_FILE})"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error log output"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    _add_analyze_command(subparsers)
    _add_validate_command(subparsers)
    _add_init_command(subparsers)
    _add_show_config_command(subparsers)

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        config = _load_config(args)
    except ConfigurationError as e:
        print(UnicodeHandler.console_text(f"❌ {e.message}", sys.stderr), file=sys.stderr)
        return 1

    _setup_logging(args, config)

    command_handlers: Dict[str, Callable[[argparse.Namespace, AnalyzerConfig], int]] = {
        "analyze": analyze_command,
        "validate": validate_command,
        "init": init_command,
        "show-config": show_config_command,
    }

    handler = command_handlers.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args, config)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user.", file=sys.stderr)
        return 130
    except TwapAnalysisError as e:
        print(UnicodeHandler.console_text(f"❌ Fatal error: {e.message}", sys.stderr), file=sys.stderr)
        return 1
    except Exception as e:
        if args.verbose:
            import traceback
            traceback.print_exc()
        else:
            print(f"Error: {e}", file=sys.stderr)
        return 1


def _load_config(args) -> AnalyzerConfig:
    """
    Load configuration. ``init`` and ``validate --config-only`` work from
    defaults so they can repair or diagnose a broken file.
    """
    if args.command == "init" or getattr(args, "config_only", False):
        return AnalyzerConfig()
    return ConfigManager(args.config).load_config()


def _setup_logging(args, config: AnalyzerConfig) -> None:
    if args.quiet:
        level = "ERROR"
    elif args.verbose:
        level = "DEBUG"
    else:
        level = config.logging.level

    logging_manager.setup_logging(
        log_level=level,
        log_file=config.logging.file,
        max_file_size=config.logging.max_file_size,
        backup_count=config.logging.backup_count,
        structured_format=config.logging.structured,
    )


def _resolve_sources(args, config: AnalyzerConfig, announce: bool = True) -> Tuple[Any, Any]:
    """
    Load raw pool and observation data from the command line, the configured
    defaults or an interactive prompt.

    Raises:
        InvalidInputError: If only one of pool and observation data is given
    """
    def say(text):
        if announce:
            _out(text)

    pool_given = bool(args.pool_file or args.pool_json)
    obs_given = bool(args.obs_file or args.obs_json)

    if pool_given and obs_given:
        if args.pool_file and args.obs_file:
            say("📁 Loading data from files...")
        elif args.pool_json and args.obs_json:
            say("📝 Parsing JSON data...")
        else:
            say("📥 Loading data...")

        pool_raw = load_json_file(args.pool_file) if args.pool_file else parse_json_text(args.pool_json, "PoolState")
        obs_raw = load_json_file(args.obs_file) if args.obs_file else parse_json_text(args.obs_json, "ObservationState")
        return pool_raw, obs_raw

    if pool_given or obs_given:
        raise InvalidInputError("Please provide both pool and observation data")

    if not args.interactive and config.input.pool_file and config.input.obs_file:
        say("📁 Loading data from configured files...")
        return load_json_file(config.input.pool_file), load_json_file(config.input.obs_file)

    # keep stdout clean for JSON reports
    return _prompt_for_data(stream=sys.stdout if announce else sys.stderr)


def _prompt_for_data(input_func: Optional[Callable[[str], str]] = None,
                     stream: Optional[TextIO] = None) -> Tuple[Any, Any]:
    """
    Ask for pool and observation data, each as JSON text or a file path.

    Banner and prompts are written to ``stream``, stdout by default.
    """
    input_func = input_func or input
    stream = stream or sys.stdout

    def ask(prompt: str) -> str:
        stream.write(UnicodeHandler.console_text(prompt, stream))
        stream.flush()
        return input_func("")

    print(UnicodeHandler.console_text("📝 Interactive mode - please provide data:", stream), file=stream)
    print("You can paste JSON data or provide file paths", file=stream)

    try:
        pool_input = ask("🏊 PoolState (JSON or file path): ")
        obs_input = ask("📊 ObservationState (JSON or file path): ")
    except EOFError:
        raise InvalidInputError("No input provided")

    if not pool_input.strip() or not obs_input.strip():
        raise InvalidInputError("Please provide both pool and observation data")

    return load_json_source(pool_input), load_json_source(obs_input)


def print_header() -> None:
    _out(RULE)
    _out("🚀 TWAP CALCULATOR CLI - AMM Pool Analysis")
    _out(RULE)


def print_pool_info(info: PoolInfo) -> None:
    _out("\n📊 POOL INFORMATION:")
    _out(f"Token 0 Decimals: {info.decimals0}")
    _out(f"Token 1 Decimals: {info.decimals1}")
    _out(f"Current Tick: {info.current_tick}")
    _out(f"Liquidity: {UnicodeHandler.safe_str(info.liquidity)}")

    if info.token_mint_0 and info.token_mint_1:
        _out(f"Token 0 Mint: {info.token_mint_0}")
        _out(f"Token 1 Mint: {info.token_mint_1}")


def print_twap_results(analysis: TwapAnalysis, pool: PoolSnapshot, config: AnalyzerConfig) -> None:
    twap = analysis.twap
    price_digits = config.output.price_precision
    tick_digits = config.output.tick_precision

    _out(f"Found {twap.observation_count} valid observations")
    _out(f"Time range: {twap.start_timestamp} to {twap.end_timestamp}")
    _out(f"Oldest observation: timestamp={twap.start_timestamp}, tick_cumulative={twap.start_tick_cumulative}")
    _out(f"Newest observation: timestamp={twap.end_timestamp}, tick_cumulative={twap.end_tick_cumulative}")
    _out(f"Time difference: {twap.time_diff_seconds} seconds ({twap.time_period_hours:.2f} hours)")
    _out(f"Tick cumulative difference: {twap.tick_cumulative_diff}")

    _out("\n=== TWAP RESULTS ===")
    _out(f"TWAP Tick: {twap.twap_tick:.{tick_digits}f}")
    _out(f"Raw Price: {twap.raw_price:.12f}")
    _out(
        f"Decimal adjustment factor: {twap.decimal_adjustment:g} "
        f"(decimals0={pool.decimals0}, decimals1={pool.decimals1})"
    )
    _out(f"Adjusted TWAP Price: {twap.twap_price:.{price_digits}f}")
    _out(f"Current Price (for comparison): {twap.current_price:.{price_digits}f}")
    _out(f"Price difference: {twap.signed_price_difference_percent:.4f}%")


def print_manipulation_analysis(analysis: TwapAnalysis) -> None:
    risk = analysis.risk

    _out("\n=== MANIPULATION ANALYSIS ===")
    _out(f"Price difference: {analysis.twap.price_difference_percent:.4f}%")
    _out(f"Manipulation risk: {risk.level.value}")
    _out(f"Confidence: {risk.confidence}%")
    _out(f"Risk factors: {', '.join(f.value for f in risk.factors)}")
    if risk.warning:
        _out(f"⚠️  WARNING: {risk.warning}")

    _out("\n=== RECOMMENDATIONS ===")
    for recommendation in risk.recommendations:
        _out(recommendation)


def print_summary(analysis: TwapAnalysis) -> None:
    risk = analysis.risk

    _out("\n" + RULE)
    _out("📈 ANALYSIS COMPLETE")
    _out(RULE)
    _out("✅ TWAP calculated successfully")
    _out(f"📊 Risk level: {risk.level.value}")
    _out(f"🎯 Confidence: {risk.confidence}%")

    if risk.level != RiskLevel.LOW:
        _out("⚠️  Action required: Check manipulation analysis above")


def write_report(report: Dict[str, Any], output_path: str) -> None:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(report, f, indent=2, ensure_ascii=False)
    logger.info(f"Wrote report to {path}")


def analyze_command(args, config: AnalyzerConfig) -> int:
    """Calculate TWAP and manipulation risk for one pool."""
    output_format = args.format or config.output.format
    text_mode = output_format == "text"
    corr_id = logging_manager.set_correlation_id()
    logger.debug(f"Starting analysis run {corr_id}")

    if text_mode:
        UnicodeHandler.configure_console_encoding()
        print_header()

    pool_raw, obs_raw = _resolve_sources(args, config, announce=text_mode)

    if text_mode:
        _out("✅ Validating data...")
    AccountDataNormalizer.validate_pool_state(pool_raw)
    AccountDataNormalizer.validate_observation_state(obs_raw)

    pool = AccountDataNormalizer.parse_pool_state(pool_raw)
    observations = AccountDataNormalizer.parse_observation_state(obs_raw)

    if text_mode and config.output.show_pool_info:
        print_pool_info(AccountDataNormalizer.extract_pool_info(pool_raw))

    if text_mode:
        _out("\n🧮 Calculating TWAP...")

    analysis = TwapAnalyzer().analyze(pool, observations)
    report = analysis.to_dict()

    if text_mode:
        print_twap_results(analysis, pool, config)
        print_manipulation_analysis(analysis)
        print_summary(analysis)
    else:
        print(json.dumps(report, indent=2, ensure_ascii=False))

    if args.output:
        write_report(report, args.output)
        if text_mode:
            _out(f"\n💾 Report written to {args.output}")

    return 0


def validate_command(args, config: AnalyzerConfig) -> int:
    """Validate pool and observation data without calculating."""
    if args.config_only:
        return _validate_config_file(args.config)

    pool_raw, obs_raw = _resolve_sources(args, config)

    AccountDataNormalizer.validate_pool_state(pool_raw)
    _out("✓ Pool state is valid")

    AccountDataNormalizer.validate_observation_state(obs_raw)
    observations = AccountDataNormalizer.parse_observation_state(obs_raw)
    valid_count = sum(1 for obs in observations if obs.is_valid)
    _out(f"✓ Observation state is valid ({valid_count} of {len(observations)} slots used)")

    return 0


def _validate_config_file(config_path: str) -> int:
    manager = ConfigManager(config_path)
    is_valid, errors = manager.validate_config_file()

    if is_valid:
        _out(f"✓ Configuration file {manager.config_file_path} is valid")
        return 0

    print(f"Configuration file {manager.config_file_path} is invalid:", file=sys.stderr)
    for error in errors:
        print(f"  - {error}", file=sys.stderr)
    return 1


def init_command(args, config: AnalyzerConfig) -> int:
    """Write a default configuration file."""
    manager = ConfigManager(args.config)

    if manager.config_exists and not args.force:
        print(f"Configuration file {args.config} already exists. Use --force to overwrite.")
        return 1

    path = manager.write_default_config(force=args.force)
    print(f"[OK] Configuration initialized at {path}")
    return 0


def show_config_command(args, config: AnalyzerConfig) -> int:
    """Print the effective configuration."""
    manager = ConfigManager(args.config)
    data = config_to_dict(config)

    if args.format == "json":
        print(json.dumps(data, indent=2))
        return 0

    if manager.config_exists:
        print(f"# Configuration file: {manager.config_file_path}")
    else:
        print(f"# Configuration file {manager.config_file_path} not found, using defaults")
    print(yaml.dump(data, default_flow_style=False, indent=2, sort_keys=False), end="")
    return 0


if __name__ == "__main__":
    sys.exit(main())
