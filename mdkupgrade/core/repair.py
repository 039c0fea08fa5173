from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Sequence

from mdkupgrade.core.errors import CorruptProjectError
from mdkupgrade.core.migrations import UPGRADERS, Upgrader, run_migrations
from mdkupgrade.core.project_document import ms, save_document
from mdkupgrade.core.project_options import repair_options_version
from mdkupgrade.core.whitelist import repair_whitelist
from mdkupgrade.models import BadReferenceKind, ProjectAnalysisResult

logger = logging.getLogger(__name__)


def repair_bad_references(result: ProjectAnalysisResult) -> int:
    for bad in result.bad_references:
        if bad.kind is BadReferenceKind.FILE:
            bad.element.set("Include", bad.expected_path)
        elif bad.kind is BadReferenceKind.ASSEMBLY:
            hint = bad.element.find(ms("HintPath"))
            if hint is None:
                hint = ET.SubElement(bad.element, ms("HintPath"))
            hint.text = bad.expected_path
        else:
            raise CorruptProjectError(f"Unknown bad reference kind: {bad.kind!r}")
        logger.debug("Repaired %s: %s -> %s", bad.kind.value, bad.current_path, bad.expected_path)
    return len(result.bad_references)


def repair_project(result: ProjectAnalysisResult, upgraders: Sequence[Upgrader] = UPGRADERS) -> None:
    """
    Repair one analyzed project in place. Order matters:
      1. bad references
      2. whitelist file + declaration
      3. options descriptor version
      4. migration chain
    then the project document is written back, also when a migration step
    fails, so the earlier repairs are kept.
    """
    options = result.options
    name = options.name

    count = repair_bad_references(result)
    repair_whitelist(result.document, result.whitelist)
    repair_options_version(options.file_name, result.expected_version)
    try:
        run_migrations(options, upgraders)
    finally:
        save_document(result.document, options.file_name)
    logger.info("Repaired project %s (%d reference(s))", name, count)
