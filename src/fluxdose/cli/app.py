"""Command-line interface for fluxdose using argparse."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from fluxdose.physics.dose import ANSI_ANS_6_1_1_1977
from fluxdose.reporting import conversion_table_records, write_csv
from fluxdose.workflows.analysis import DEFAULT_SOURCE_STRENGTH, AnalysisConfig, run_analysis


def _build_config(args: argparse.Namespace) -> AnalysisConfig:
    overrides = {
        "results_path": args.results,
        "detector_path": args.detector,
        "source_strength": args.source_strength,
        "output_dir": args.output_dir,
        "flux_detector": args.flux_detector,
        "step": args.step,
        "top_n": args.top_n,
    }
    if args.no_plots:
        overrides["make_plots"] = False
    if args.config:
        return AnalysisConfig.from_json(args.config, **overrides)

    if args.results is None or args.detector is None:
        raise ValueError("--results and --detector are required without --config")
    config_args = {k: v for k, v in overrides.items() if v is not None}
    return AnalysisConfig(**config_args)


def cmd_analyze(args: argparse.Namespace) -> None:
    config = _build_config(args)
    result = run_analysis(config)
    print(result.report)
    print(f"\nAnalysis complete. Outputs written to {config.output_dir}")


def cmd_ansi_table(args: argparse.Namespace) -> None:
    headers, rows = conversion_table_records(ANSI_ANS_6_1_1_1977)
    path = write_csv(args.output, headers, rows)
    print(f"Wrote {ANSI_ANS_6_1_1_1977.name} table to {path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serpent 2 neutron flux and dose rate post-processing")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug diagnostics")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # SUPPRESS keeps a top-level -v from being reset by the subcommand default
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-v", "--verbose", action="store_true", default=argparse.SUPPRESS, help="Show debug diagnostics"
    )

    analyze = subparsers.add_parser(
        "analyze", parents=[common], help="Normalize detector flux and estimate dose rate"
    )
    analyze.add_argument("--results", type=Path, help="Serpent <case>_res.m file")
    analyze.add_argument("--detector", type=Path, help="Serpent <case>_det0.m file")
    analyze.add_argument("--config", type=Path, help="JSON configuration file")
    analyze.add_argument(
        "--source-strength",
        type=float,
        help=f"Absolute source strength in neutrons/s (default {DEFAULT_SOURCE_STRENGTH:.1e})",
    )
    analyze.add_argument("--flux-detector", help="Detector holding the energy-binned flux (default FluxDet)")
    analyze.add_argument("--step", type=int, help="Result step in the _res.m file (default 0)")
    analyze.add_argument("--top-n", type=int, help="Number of top dose bins to list (default 20)")
    analyze.add_argument("--output-dir", type=Path, help="Directory for CSV, figures and summary")
    analyze.add_argument("--no-plots", action="store_true", help="Skip figure generation")
    analyze.set_defaults(func=cmd_analyze)

    table = subparsers.add_parser("ansi-table", parents=[common], help="Export the ANSI/ANS-6.1.1-1977 conversion table")
    table.add_argument("--output", type=Path, default=Path("ansi_ans_611_1977.csv"))
    table.set_defaults(func=cmd_ansi_table)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )
    try:
        args.func(args)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
