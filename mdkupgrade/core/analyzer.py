from __future__ import annotations

import logging
import os

from mdkupgrade.core.analysis_options import ScriptUpgradeAnalysisOptions
from mdkupgrade.core.paths import native_path, trim_trailing_separators
from mdkupgrade.core.project_document import load_document
from mdkupgrade.core.project_options import ProjectOptions
from mdkupgrade.core.references import analyze_files, analyze_references
from mdkupgrade.core.whitelist import verify_whitelist
from mdkupgrade.models import NON_SCRIPT_PROJECT_RESULT, ProjectAnalysisResult

logger = logging.getLogger(__name__)


def analyze_project(project, options: ScriptUpgradeAnalysisOptions) -> ProjectAnalysisResult:
    """
    Analyze one host project against the paths the installed toolkit expects.

    Unloaded projects and projects without a valid options descriptor are
    classified as non-script projects. Document load errors propagate.
    """
    if not project.is_loaded:
        return NON_SCRIPT_PROJECT_RESULT
    project_options = ProjectOptions.load(project.full_name, project.name)
    if not project_options.is_valid:
        return NON_SCRIPT_PROJECT_RESULT

    # relative settings are taken from the working directory once, here;
    # reference checks compare against absolute paths only
    expected_game_path = trim_trailing_separators(os.path.abspath(
        native_path(project_options.get_actual_game_bin_path(options.default_game_bin_path))
    ))
    expected_install_path = trim_trailing_separators(os.path.abspath(native_path(options.install_path)))

    project_dir = os.path.dirname(project_options.file_name)
    # always read from disk; the host's in-memory copy may be stale
    document = load_document(project_options.file_name)

    bad_references = analyze_references(
        document,
        project_dir,
        expected_game_path,
        expected_install_path,
        options.game_assembly_names,
        options.utility_assembly_names,
    )
    bad_references += analyze_files(
        document,
        project_dir,
        expected_game_path,
        expected_install_path,
        options.game_files,
        options.utility_files,
    )
    whitelist = verify_whitelist(document, project_dir, expected_install_path)

    result = ProjectAnalysisResult(
        expected_version=options.target_version,
        project=project,
        options=project_options,
        document=document,
        whitelist=whitelist,
        bad_references=tuple(bad_references),
        is_script_project=True,
    )
    logger.info(
        "Analyzed %s: %d bad reference(s), whitelist %s, version %s (expected %s)",
        project.name,
        len(bad_references),
        "ok" if whitelist.is_valid else "needs repair",
        project_options.version,
        options.target_version,
    )
    return result
