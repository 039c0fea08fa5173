from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Set


class ProjectHandle(Protocol):
    def reload(self) -> None:
        ...


class HostProject(Protocol):
    full_name: str
    name: str

    @property
    def is_loaded(self) -> bool:
        ...

    def unload(self) -> ProjectHandle:
        ...


class HostSolution(Protocol):
    @property
    def projects(self) -> Iterable[HostProject]:
        ...


class FileProjectHandle:
    def __init__(self, project: "FileProject"):
        self._project = project

    def reload(self) -> None:
        self._project._loaded = True


class FileProject:
    """A project file on disk standing in for a host IDE project."""

    def __init__(self, path: str, loaded: bool = True):
        p = Path(path).resolve()
        self.full_name = str(p)
        self.name = p.stem
        self._loaded = loaded

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def unload(self) -> FileProjectHandle:
        self._loaded = False
        return FileProjectHandle(self)

    def __repr__(self) -> str:
        return f"FileProject({self.full_name!r})"


_DEFAULT_IGNORE_DIRS = {"bin", "obj", "packages", "node_modules"}


class FileSolution:
    """Every *.csproj below a root folder."""

    def __init__(self, root: str, ignore_dirs: Optional[Set[str]] = None):
        root_path = Path(root).resolve()
        if not root_path.is_dir():
            raise ValueError(f"Solution root is not a directory: {root}")
        self.root = str(root_path)
        self._ignore_dirs = _DEFAULT_IGNORE_DIRS if ignore_dirs is None else ignore_dirs
        self._projects: Optional[List[FileProject]] = None

    def _discover(self) -> List[FileProject]:
        found: List[FileProject] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            # Filter dirnames in-place so os.walk doesn't descend
            dirnames[:] = sorted(
                d for d in dirnames
                if d.lower() not in self._ignore_dirs and not d.startswith(".")
            )
            for fn in sorted(filenames):
                if fn.lower().endswith(".csproj"):
                    found.append(FileProject(os.path.join(dirpath, fn)))
        return found

    @property
    def projects(self) -> List[FileProject]:
        if self._projects is None:
            self._projects = self._discover()
        return self._projects
