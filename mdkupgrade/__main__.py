from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from typing import List, Optional

from packaging.version import InvalidVersion, Version

from mdkupgrade.core.analysis_options import default_analysis_options, load_analysis_options
from mdkupgrade.core.hosting import FileSolution
from mdkupgrade.core.reporting import project_findings, write_analysis_report
from mdkupgrade.core.upgrades import ScriptUpgrades

logger = logging.getLogger("mdkupgrade")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdkupgrade",
        description="Find and repair script projects that drifted from the installed toolkit.",
    )
    parser.add_argument("solution_dir", help="Folder containing the script projects (*.csproj).")
    parser.add_argument("--config", help="JSON analysis options file.")
    parser.add_argument("--install-path", help="Toolkit install folder (overrides config).")
    parser.add_argument("--game-bin-path", help="Default game binaries folder (overrides config).")
    parser.add_argument("--target-version", help="Version projects should be upgraded to.")
    parser.add_argument("--report", help="Write a JSON report to this path.")
    parser.add_argument("--repair", action="store_true", help="Repair the projects that need it.")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.config:
        options = load_analysis_options(args.config)
    else:
        options = default_analysis_options("", "")
    overrides = {}
    if args.install_path:
        overrides["install_path"] = args.install_path
    if args.game_bin_path:
        overrides["default_game_bin_path"] = args.game_bin_path
    if args.target_version:
        try:
            overrides["target_version"] = Version(args.target_version)
        except InvalidVersion:
            parser.error(f"invalid --target-version: {args.target_version}")
    if overrides:
        options = dataclasses.replace(options, **overrides)
    if not options.install_path:
        parser.error("an install path is required (--install-path or --config)")

    try:
        solution = FileSolution(args.solution_dir)
    except ValueError as e:
        parser.error(str(e))

    service = ScriptUpgrades()
    analysis = service.analyze_solution(solution, options)

    if args.report:
        path = write_analysis_report(analysis, args.report, options.target_version, solution.root)
        logger.info("Report written: %s", path)

    if not analysis.has_script_projects:
        logger.info("No script projects found in %s", solution.root)
        return 0
    if analysis.is_valid:
        logger.info("All script projects are up to date")
        return 0

    for result in analysis.bad_projects:
        for finding in project_findings(result):
            logger.warning("%s: [%s] %s", result.options.name, finding.code, finding.message)

    if not args.repair:
        return 1
    service.upgrade(analysis)
    logger.info("Repaired %d project(s)", len(analysis.bad_projects))
    return 0


if __name__ == "__main__":
    sys.exit(main())
