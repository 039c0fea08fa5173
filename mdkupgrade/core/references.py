from __future__ import annotations

import logging
import os
from typing import List, Optional, Sequence
from xml.etree.ElementTree import Element, ElementTree

from mdkupgrade.core.paths import join_sub_path, native_path, resolve_path, same_path
from mdkupgrade.core.project_document import child_text, items, ms
from mdkupgrade.models import BadReference, BadReferenceKind

logger = logging.getLogger(__name__)


def check_assembly_reference(
    project_dir: str,
    element: Element,
    expected_root: str,
    hint_path: Optional[str],
    assembly_name: str,
) -> Optional[BadReference]:
    correct_path = os.path.normpath(os.path.join(expected_root, f"{assembly_name}.dll"))
    dll_file = resolve_path(project_dir, hint_path) if hint_path else None
    if dll_file is not None and same_path(dll_file, correct_path):
        return None
    logger.debug("Assembly %s: %s != %s", assembly_name, dll_file, correct_path)
    return BadReference(BadReferenceKind.ASSEMBLY, element, dll_file, correct_path)


def check_file_reference(
    element: Element,
    expected_root: str,
    current_path: str,
    file_name: str,
) -> Optional[BadReference]:
    correct_path = join_sub_path(expected_root, file_name)
    if same_path(current_path, correct_path):
        return None
    logger.debug("File %s: %s != %s", file_name, current_path, correct_path)
    return BadReference(BadReferenceKind.FILE, element, current_path, correct_path)


def _match_suffix(path: str, suffixes: Sequence[str]) -> Optional[str]:
    folded = path.casefold()
    for suffix in suffixes:
        if folded.endswith(native_path(suffix).casefold()):
            return suffix
    return None


def analyze_references(
    document: ElementTree,
    project_dir: str,
    expected_game_path: str,
    expected_install_path: str,
    game_assembly_names: Sequence[str],
    utility_assembly_names: Sequence[str],
) -> List[BadReference]:
    """Check every <Reference> whose Include names a known game or utility assembly."""
    bad: List[BadReference] = []
    for element in items(document):
        if element.tag != ms("Reference"):
            continue
        include = element.get("Include")
        hint_path = child_text(element, "HintPath")

        # Exact name match only: anything else is a user reference we don't own
        if include in game_assembly_names:
            found = check_assembly_reference(project_dir, element, expected_game_path, hint_path, include)
            if found:
                bad.append(found)
        if include in utility_assembly_names:
            found = check_assembly_reference(project_dir, element, expected_install_path, hint_path, include)
            if found:
                bad.append(found)
    return bad


def analyze_files(
    document: ElementTree,
    project_dir: str,
    expected_game_path: str,
    expected_install_path: str,
    game_files: Sequence[str],
    utility_files: Sequence[str],
) -> List[BadReference]:
    """Check every item whose resolved Include ends with a known game or utility file."""
    bad: List[BadReference] = []
    for element in items(document):
        include = element.get("Include")
        if not include:
            continue
        current = resolve_path(project_dir, include)

        game_file = _match_suffix(current, game_files)
        if game_file is not None:
            found = check_file_reference(element, expected_game_path, current, game_file)
            if found:
                bad.append(found)
        utility_file = _match_suffix(current, utility_files)
        if utility_file is not None:
            found = check_file_reference(element, expected_install_path, current, utility_file)
            if found:
                bad.append(found)
    return bad
