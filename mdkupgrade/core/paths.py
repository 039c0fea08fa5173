from __future__ import annotations

import os


def native_path(path: str) -> str:
    """
    MSBuild documents always use backslashes. Translate them to the
    platform separator so paths written on Windows resolve elsewhere too.
    """
    if os.sep == "/":
        return path.replace("\\", "/")
    return path


def resolve_path(base_dir: str, path: str) -> str:
    """
    Resolve `path` relative to `base_dir` (never the process working directory).
    Absolute paths ignore `base_dir` and are only normalized.
    """
    path = native_path(path)
    if os.path.isabs(path):
        return os.path.normpath(path)
    return os.path.normpath(os.path.join(base_dir, path))


def join_sub_path(root: str, sub_path: str) -> str:
    return os.path.normpath(os.path.join(root, native_path(sub_path).lstrip("\\/")))


def trim_trailing_separators(path: str) -> str:
    trimmed = path.rstrip("\\/")
    # keep filesystem roots intact ("/" or "C:\")
    if not trimmed or trimmed.endswith(":"):
        return path
    return trimmed


def same_path(a: str, b: str) -> bool:
    return a.casefold() == b.casefold()
