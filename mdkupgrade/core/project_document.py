from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Iterator, Optional

from mdkupgrade.config import MSBUILD_XMLNS

# Write MSBuild elements without a prefix: one xmlns declaration on the root.
ET.register_namespace("", MSBUILD_XMLNS)


def ms(local_name: str) -> str:
    return f"{{{MSBUILD_XMLNS}}}{local_name}"


def load_document(path: str) -> ET.ElementTree:
    # Keep comments so a repaired project only differs where it was repaired
    parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True))
    return ET.parse(path, parser=parser)


def save_document(document: ET.ElementTree, path: str) -> None:
    document.write(path, encoding="utf-8", xml_declaration=True)


def project_element(document: ET.ElementTree) -> Optional[ET.Element]:
    root = document.getroot()
    if root is None or root.tag != ms("Project"):
        return None
    return root


def item_groups(document: ET.ElementTree) -> Iterator[ET.Element]:
    root = project_element(document)
    if root is None:
        return
    yield from root.iterfind(ms("ItemGroup"))


def items(document: ET.ElementTree) -> Iterator[ET.Element]:
    """Every MSBuild-namespaced item directly under the project's item groups."""
    prefix = f"{{{MSBUILD_XMLNS}}}"
    for group in item_groups(document):
        for child in group:
            # comments carry a non-string tag
            if isinstance(child.tag, str) and child.tag.startswith(prefix):
                yield child


def child_text(element: ET.Element, local_name: str) -> Optional[str]:
    child = element.find(ms(local_name))
    if child is None:
        return None
    return child.text or ""
