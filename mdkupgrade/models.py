from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Tuple
from xml.etree.ElementTree import Element, ElementTree

from packaging.version import Version

if TYPE_CHECKING:
    from mdkupgrade.core.project_options import ProjectOptions


@dataclass(frozen=True)
class ValidationResult:
    level: str  # INFO | WARNING | ERROR
    code: str   # stable short identifier (e.g. BAD_FILE_REFERENCE)
    message: str
    path: Optional[str] = None  # file the finding is about, when applicable


class BadReferenceKind(Enum):
    ASSEMBLY = "AssemblyReference"
    FILE = "FileReference"


@dataclass(frozen=True, eq=False)
class BadReference:
    kind: BadReferenceKind
    element: Element        # offending item inside the project document
    current_path: Optional[str]  # None when an assembly has no HintPath at all
    expected_path: str


@dataclass(frozen=True)
class WhitelistReference:
    has_valid_whitelist_element: bool
    has_valid_whitelist_file: bool
    source_whitelist_file_path: str
    target_whitelist_file_path: str

    @property
    def is_valid(self) -> bool:
        return self.has_valid_whitelist_element and self.has_valid_whitelist_file


@dataclass(frozen=True, eq=False)
class ProjectAnalysisResult:
    expected_version: Optional[Version]
    project: Any = None
    options: Optional["ProjectOptions"] = None
    document: Optional[ElementTree] = None
    whitelist: Optional[WhitelistReference] = None
    bad_references: Tuple[BadReference, ...] = ()
    is_script_project: bool = True

    @property
    def actual_version(self) -> Optional[Version]:
        return self.options.version if self.options is not None else None

    @property
    def is_valid(self) -> bool:
        """
        A project is valid when nothing needs repairing:
          - no bad references
          - whitelist file and declaration both up to date
          - recorded version is not older than the expected version
        """
        if self.bad_references:
            return False
        if self.whitelist is None or not self.whitelist.is_valid:
            return False
        actual = self.actual_version
        if actual is None or self.expected_version is None:
            return False
        return not actual < self.expected_version


@dataclass(frozen=True, eq=False)
class SolutionAnalysisResult:
    bad_projects: Tuple[ProjectAnalysisResult, ...] = field(default_factory=tuple)
    has_script_projects: bool = True

    @property
    def is_valid(self) -> bool:
        return not self.bad_projects


NON_SCRIPT_PROJECT_RESULT = ProjectAnalysisResult(expected_version=None, is_script_project=False)
NO_SCRIPT_PROJECTS_RESULT = SolutionAnalysisResult(bad_projects=(), has_script_projects=False)
