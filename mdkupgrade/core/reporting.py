from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from packaging.version import Version

from mdkupgrade.config import APP_NAME, APP_VERSION
from mdkupgrade.models import (
    BadReferenceKind,
    ProjectAnalysisResult,
    SolutionAnalysisResult,
    ValidationResult,
)


def project_findings(result: ProjectAnalysisResult) -> List[ValidationResult]:
    findings: List[ValidationResult] = []

    for bad in result.bad_references:
        if bad.kind is BadReferenceKind.ASSEMBLY:
            code = "BAD_ASSEMBLY_REFERENCE"
            what = f"Assembly '{bad.element.get('Include')}'"
        else:
            code = "BAD_FILE_REFERENCE"
            what = "File"
        findings.append(
            ValidationResult(
                "ERROR",
                code,
                f"{what} points to {bad.current_path or '(no hint path)'}; expected {bad.expected_path}",
                bad.current_path,
            )
        )

    whitelist = result.whitelist
    if whitelist is not None:
        if not whitelist.has_valid_whitelist_file:
            findings.append(
                ValidationResult(
                    "ERROR",
                    "WHITELIST_FILE_OUTDATED",
                    "Whitelist cache is missing or older than the installed one.",
                    whitelist.target_whitelist_file_path,
                )
            )
        if not whitelist.has_valid_whitelist_element:
            findings.append(
                ValidationResult(
                    "ERROR",
                    "WHITELIST_ELEMENT_MISSING",
                    "Project does not declare the whitelist cache as AdditionalFiles.",
                    None,
                )
            )

    actual = result.actual_version
    if actual is not None and result.expected_version is not None and actual < result.expected_version:
        findings.append(
            ValidationResult(
                "WARNING",
                "VERSION_OUTDATED",
                f"Project options are at version {actual}; expected {result.expected_version}.",
                result.options.options_path if result.options is not None else None,
            )
        )
    return findings


def build_report_dict(
    tool_name: str,
    tool_version: str,
    target_version: Version,
    analysis: SolutionAnalysisResult,
    solution_root: Optional[str] = None,
) -> Dict[str, Any]:
    if not analysis.has_script_projects:
        status = "NO_SCRIPT_PROJECTS"
    elif analysis.is_valid:
        status = "ALL_VALID"
    else:
        status = "NEEDS_REPAIR"

    projects_out: List[Dict[str, Any]] = []
    for result in analysis.bad_projects:
        projects_out.append(
            {
                "name": result.options.name if result.options is not None else None,
                "file": result.options.file_name if result.options is not None else None,
                "version": str(result.actual_version) if result.actual_version is not None else None,
                "findings": [
                    {
                        "level": r.level,
                        "code": r.code,
                        "message": r.message,
                        "path": r.path,
                    }
                    for r in project_findings(result)
                ],
            }
        )

    return {
        "tool": tool_name,
        "version": tool_version,
        "generated_utc": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "solution_root": solution_root,
        "target_version": str(target_version),
        "status": status,
        "projects": projects_out,
    }


def write_analysis_report(
    analysis: SolutionAnalysisResult,
    report_path: str,
    target_version: Version,
    solution_root: Optional[str] = None,
    tool_name: str = APP_NAME,
    tool_version: str = APP_VERSION,
) -> str:
    """
    Build the report for `analysis` and write it next to its final name first,
    then swap it in, so a previous report is never left half-overwritten.
    """
    report = build_report_dict(tool_name, tool_version, target_version, analysis, solution_root)
    path = Path(report_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    partial = path.with_name(path.name + ".partial")
    partial.write_text(json.dumps(report, indent=2, ensure_ascii=False), encoding="utf-8")
    os.replace(partial, path)
    return str(path)
