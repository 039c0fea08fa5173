from __future__ import annotations


class ScriptUpgradeError(Exception):
    pass


class CorruptProjectError(ScriptUpgradeError):
    """The project document is not shaped like a script project (e.g. no Project root)."""


class MigrationError(ScriptUpgradeError):
    def __init__(self, source_version, target_version, message: str = ""):
        self.source_version = source_version
        self.target_version = target_version
        super().__init__(
            message or f"Error upgrading project from {source_version} to {target_version}"
        )
