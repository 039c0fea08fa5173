from __future__ import annotations

import logging
import os
import shutil
import xml.etree.ElementTree as ET

from mdkupgrade.config import (
    SOURCE_WHITELIST_SUB_PATH,
    TARGET_OPTIONS_SUB_PATH,
    TARGET_WHITELIST_SUB_PATH,
)
from mdkupgrade.core.errors import CorruptProjectError
from mdkupgrade.core.paths import join_sub_path, native_path
from mdkupgrade.core.project_document import child_text, item_groups, items, ms, project_element
from mdkupgrade.models import WhitelistReference

logger = logging.getLogger(__name__)


def _is_sub_path(value, sub_path: str) -> bool:
    if value is None:
        return False
    return native_path(value).casefold() == native_path(sub_path).casefold()


def verify_whitelist(document: ET.ElementTree, project_dir: str, expected_install_path: str) -> WhitelistReference:
    has_element = any(
        element.tag == ms("AdditionalFiles") and _is_sub_path(element.get("Include"), TARGET_WHITELIST_SUB_PATH)
        for element in items(document)
    )

    source = join_sub_path(expected_install_path, SOURCE_WHITELIST_SUB_PATH)
    target = join_sub_path(project_dir, TARGET_WHITELIST_SUB_PATH)

    # the project copy must be at least as new as the installed one
    has_file = (
        os.path.isfile(target)
        and os.path.isfile(source)
        and os.path.getmtime(source) <= os.path.getmtime(target)
    )
    return WhitelistReference(
        has_valid_whitelist_element=has_element,
        has_valid_whitelist_file=has_file,
        source_whitelist_file_path=source,
        target_whitelist_file_path=target,
    )


def repair_whitelist_file(whitelist: WhitelistReference) -> None:
    target = whitelist.target_whitelist_file_path
    os.makedirs(os.path.dirname(target), exist_ok=True)
    # copy2 keeps the source mtime, which is what freshness is measured against
    shutil.copy2(whitelist.source_whitelist_file_path, target)
    logger.info("Whitelist copied: %s -> %s", whitelist.source_whitelist_file_path, target)


def repair_whitelist_element(document: ET.ElementTree) -> ET.Element:
    """
    Replace any stale whitelist declarations with a single
    <AdditionalFiles Include="MDK\\whitelist.cache" />, placed next to the
    options file declaration when there is one.
    """
    root = project_element(document)
    if root is None:
        raise CorruptProjectError("Bad MDK project: no <Project> root element")

    for group in list(item_groups(document)):
        stale = [
            child for child in group
            if isinstance(child.tag, str) and (
                _is_sub_path(child.get("Include"), TARGET_WHITELIST_SUB_PATH)
                or _is_sub_path(child_text(child, "Link"), TARGET_WHITELIST_SUB_PATH)
            )
        ]
        for child in stale:
            group.remove(child)

    target_group = None
    for group in item_groups(document):
        if any(_is_sub_path(child.get("Include"), TARGET_OPTIONS_SUB_PATH) for child in group if isinstance(child.tag, str)):
            target_group = group
            break
    if target_group is None:
        target_group = ET.SubElement(root, ms("ItemGroup"))

    element = ET.SubElement(target_group, ms("AdditionalFiles"))
    element.set("Include", TARGET_WHITELIST_SUB_PATH)
    return element


def repair_whitelist(document: ET.ElementTree, whitelist: WhitelistReference) -> None:
    if not whitelist.has_valid_whitelist_file:
        repair_whitelist_file(whitelist)
    if not whitelist.has_valid_whitelist_element:
        repair_whitelist_element(document)
