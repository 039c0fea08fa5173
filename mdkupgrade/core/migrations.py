from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Sequence

from packaging.version import Version

from mdkupgrade.core.errors import MigrationError
from mdkupgrade.core.project_options import ProjectOptions

logger = logging.getLogger(__name__)


class Upgrader(ABC):
    version: Version

    @abstractmethod
    def upgrade(self, options: ProjectOptions) -> None:
        ...


class UpgradeTo110(Upgrader):
    """
    Descriptors written before 1.1 left trim/minify implicit.
    Make the defaults explicit so later tools never have to guess.
    """

    version = Version("1.1.0")

    def upgrade(self, options: ProjectOptions) -> None:
        changed = False
        if options.trim is None:
            options.trim = False
            changed = True
        if options.minify is None:
            options.minify = False
            changed = True
        if changed:
            options.save_settings()


# ascending by version
UPGRADERS: Sequence[Upgrader] = (
    UpgradeTo110(),
)


def run_migrations(options: ProjectOptions, upgraders: Sequence[Upgrader] = UPGRADERS) -> List[Version]:
    """
    Apply every step newer than the options' recorded version, in order,
    advancing the recorded version after each. A failing step aborts the
    chain; versions reached by earlier steps are kept.
    """
    applied: List[Version] = []
    for upgrader in upgraders:
        if options.version is not None and upgrader.version <= options.version:
            continue
        source_version = options.version
        try:
            upgrader.upgrade(options)
        except Exception as e:
            raise MigrationError(source_version, upgrader.version) from e
        options.version = upgrader.version
        applied.append(upgrader.version)
        logger.info("Project %s migrated from %s to %s", options.name, source_version, upgrader.version)
    return applied
