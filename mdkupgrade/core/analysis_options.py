from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

from packaging.version import Version

from mdkupgrade.config import APP_VERSION

GAME_ASSEMBLY_NAMES = (
    "Sandbox.Common",
    "Sandbox.Game",
    "Sandbox.Graphics",
    "SpaceEngineers.Game",
    "SpaceEngineers.ObjectBuilders",
    "VRage",
    "VRage.Audio",
    "VRage.Game",
    "VRage.Input",
    "VRage.Library",
    "VRage.Math",
    "VRage.Render",
    "VRage.Render11",
    "VRage.Scripting",
)
UTILITY_ASSEMBLY_NAMES = ("MDKUtilities",)
GAME_FILES: Tuple[str, ...] = ()
UTILITY_FILES = ("Analyzers\\MDKAnalyzer.dll",)


@dataclass(frozen=True)
class ScriptUpgradeAnalysisOptions:
    target_version: Version
    default_game_bin_path: str
    install_path: str
    game_assembly_names: Tuple[str, ...] = GAME_ASSEMBLY_NAMES
    utility_assembly_names: Tuple[str, ...] = UTILITY_ASSEMBLY_NAMES
    game_files: Tuple[str, ...] = GAME_FILES
    utility_files: Tuple[str, ...] = UTILITY_FILES
    max_workers: Optional[int] = None


def default_analysis_options(install_path: str, default_game_bin_path: str) -> ScriptUpgradeAnalysisOptions:
    return ScriptUpgradeAnalysisOptions(
        target_version=Version(APP_VERSION),
        default_game_bin_path=default_game_bin_path,
        install_path=install_path,
    )


def _clean_list(values: Optional[Iterable[Any]], default: Tuple[str, ...]) -> Tuple[str, ...]:
    if values is None:
        return default
    return tuple(str(v).strip() for v in values if str(v).strip())


def to_json_dict(options: ScriptUpgradeAnalysisOptions) -> Dict[str, Any]:
    return {
        "target_version": str(options.target_version),
        "default_game_bin_path": options.default_game_bin_path,
        "install_path": options.install_path,
        "game_assembly_names": list(options.game_assembly_names),
        "utility_assembly_names": list(options.utility_assembly_names),
        "game_files": list(options.game_files),
        "utility_files": list(options.utility_files),
        "max_workers": options.max_workers,
    }


def from_json_dict(d: Dict[str, Any]) -> ScriptUpgradeAnalysisOptions:
    max_workers = d.get("max_workers")
    return ScriptUpgradeAnalysisOptions(
        target_version=Version(str(d.get("target_version") or APP_VERSION)),
        default_game_bin_path=str(d.get("default_game_bin_path") or ""),
        install_path=str(d.get("install_path") or ""),
        game_assembly_names=_clean_list(d.get("game_assembly_names"), GAME_ASSEMBLY_NAMES),
        utility_assembly_names=_clean_list(d.get("utility_assembly_names"), UTILITY_ASSEMBLY_NAMES),
        game_files=_clean_list(d.get("game_files"), GAME_FILES),
        utility_files=_clean_list(d.get("utility_files"), UTILITY_FILES),
        max_workers=int(max_workers) if max_workers else None,
    )


def load_analysis_options(path: str) -> ScriptUpgradeAnalysisOptions:
    d = json.loads(Path(path).read_text(encoding="utf-8"))
    return from_json_dict(d)


def save_analysis_options(path: str, options: ScriptUpgradeAnalysisOptions) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(to_json_dict(options), indent=2), encoding="utf-8")
    return p
