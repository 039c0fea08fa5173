from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
from typing import Optional

from packaging.version import InvalidVersion, Version

from mdkupgrade.config import TARGET_OPTIONS_SUB_PATH
from mdkupgrade.core.paths import join_sub_path

logger = logging.getLogger(__name__)

_ROOT_TAG = "mdk"

# descriptors written before versioning carry no version attribute
UNVERSIONED = Version("0")


def options_path_for(project_file: str) -> str:
    return join_sub_path(os.path.dirname(os.path.abspath(project_file)), TARGET_OPTIONS_SUB_PATH)


def _parse_bool(text: Optional[str], default: bool = False) -> bool:
    if text is None:
        return default
    return text.strip().lower() in ("true", "1", "yes")


def _format_bool(value: bool) -> str:
    return "true" if value else "false"


class ProjectOptions:
    """
    Per-project settings stored in MDK\\MDK.options next to the project file.

    Only `version` is written during an upgrade; everything else is read
    once when the project is analyzed.
    """

    def __init__(
        self,
        file_name: str,
        name: str,
        version: Optional[Version] = None,
        is_valid: bool = False,
        trim: Optional[bool] = None,
        minify: Optional[bool] = None,
        use_manual_game_bin_path: bool = False,
        manual_game_bin_path: Optional[str] = None,
    ):
        self.file_name = file_name
        self.name = name
        self.version = version
        self.is_valid = is_valid
        self.trim = trim
        self.minify = minify
        self.use_manual_game_bin_path = use_manual_game_bin_path
        self.manual_game_bin_path = manual_game_bin_path

    @property
    def options_path(self) -> str:
        return options_path_for(self.file_name)

    @classmethod
    def load(cls, project_file: str, name: str) -> "ProjectOptions":
        project_file = os.path.abspath(project_file)
        options = cls(file_name=project_file, name=name)
        path = options.options_path

        if not os.path.isfile(path):
            logger.debug("No options descriptor for %s (%s)", name, path)
            return options
        try:
            root = ET.parse(path).getroot()
        except ET.ParseError as e:
            logger.warning("Unreadable options descriptor for %s: %s (%s)", name, path, e)
            return options
        if root.tag != _ROOT_TAG:
            logger.debug("Options descriptor for %s has unexpected root <%s>", name, root.tag)
            return options
        raw_version = root.get("version")
        if raw_version is None:
            options.version = UNVERSIONED
        else:
            try:
                options.version = Version(raw_version.strip())
            except InvalidVersion:
                logger.warning("Options descriptor for %s has no usable version: %s", name, path)
                return options

        trim = root.find("trim")
        minify = root.find("minify")
        options.trim = _parse_bool(trim.text) if trim is not None else None
        options.minify = _parse_bool(minify.text) if minify is not None else None

        game_bin = root.find("gamebinpath")
        if game_bin is not None:
            options.use_manual_game_bin_path = _parse_bool(game_bin.get("enabled"))
            options.manual_game_bin_path = (game_bin.text or "").strip() or None

        options.is_valid = True
        return options

    def get_actual_game_bin_path(self, default_path: str) -> str:
        if self.use_manual_game_bin_path and self.manual_game_bin_path:
            return self.manual_game_bin_path
        return default_path

    def save_settings(self) -> None:
        """
        Write trim/minify/gamebinpath back into the descriptor on disk.
        The version attribute is left as it is on disk.
        """
        path = self.options_path
        document = ET.parse(path)
        root = document.getroot()

        for tag, value in (("trim", self.trim), ("minify", self.minify)):
            if value is None:
                continue
            element = root.find(tag)
            if element is None:
                element = ET.SubElement(root, tag)
            element.text = _format_bool(value)

        if self.use_manual_game_bin_path or self.manual_game_bin_path:
            element = root.find("gamebinpath")
            if element is None:
                element = ET.SubElement(root, "gamebinpath")
            element.set("enabled", _format_bool(self.use_manual_game_bin_path))
            element.text = self.manual_game_bin_path or ""

        document.write(path, encoding="utf-8", xml_declaration=True)

    def __repr__(self) -> str:
        return f"ProjectOptions(name={self.name!r}, version={self.version}, valid={self.is_valid})"


def repair_options_version(project_file: str, version: Version) -> bool:
    """
    Stamp `version` onto the descriptor's root. A descriptor without a version
    attribute is left untouched.
    """
    path = options_path_for(project_file)
    document = ET.parse(path)
    root = document.getroot()
    if root.tag != _ROOT_TAG or root.get("version") is None:
        logger.debug("Options descriptor %s has no version attribute; left as is", path)
        return False
    root.set("version", str(version))
    document.write(path, encoding="utf-8", xml_declaration=True)
    logger.info("Options descriptor %s stamped with version %s", path, version)
    return True
