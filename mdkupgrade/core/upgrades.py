from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterable, Optional, Sequence

from mdkupgrade.config import MAX_WORKERS_DEFAULT
from mdkupgrade.core.analysis_options import ScriptUpgradeAnalysisOptions
from mdkupgrade.core.analyzer import analyze_project
from mdkupgrade.core.busy import BusyState
from mdkupgrade.core.migrations import UPGRADERS, Upgrader
from mdkupgrade.core.repair import repair_project
from mdkupgrade.models import (
    NO_SCRIPT_PROJECTS_RESULT,
    ProjectAnalysisResult,
    SolutionAnalysisResult,
)

logger = logging.getLogger(__name__)


def classify_results(results: Iterable[ProjectAnalysisResult]) -> SolutionAnalysisResult:
    """
    No script projects at all -> NO_SCRIPT_PROJECTS_RESULT.
    Otherwise a result holding only the script projects that need repair
    (empty when every script project is already valid).
    """
    script_results = [r for r in results if r.is_script_project]
    if not script_results:
        return NO_SCRIPT_PROJECTS_RESULT
    return SolutionAnalysisResult(bad_projects=tuple(r for r in script_results if not r.is_valid))


class ScriptUpgrades:
    """
    Detects script projects that drifted from the installed toolkit and
    repairs them.

    `busy` reports whether any analysis or upgrade is running.
    """

    def __init__(self, upgraders: Sequence[Upgrader] = UPGRADERS, busy: Optional[BusyState] = None):
        self.upgraders = upgraders
        self.busy = busy or BusyState()
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def is_busy(self) -> bool:
        return self.busy.is_busy

    def _background(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="mdkupgrade")
        return self._executor

    def _submit(self, fn, *args) -> Future:
        guard = self.busy.begin()
        try:
            future = self._background().submit(fn, *args)
        except BaseException:
            guard.release()
            raise
        future.add_done_callback(lambda _f: guard.release())
        return future

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def analyze_solution(self, solution, options: ScriptUpgradeAnalysisOptions) -> SolutionAnalysisResult:
        with self.busy.begin():
            projects = list(solution.projects)
            max_workers = options.max_workers or MAX_WORKERS_DEFAULT
            with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="mdkupgrade-scan") as pool:
                # map re-raises the first failure once every task has finished
                results = list(pool.map(lambda p: analyze_project(p, options), projects))
            outcome = classify_results(results)
            logger.info(
                "Solution scan: %d project(s), %d needing repair",
                len(projects),
                len(outcome.bad_projects),
            )
            return outcome

    def analyze_project(self, project, options: ScriptUpgradeAnalysisOptions) -> SolutionAnalysisResult:
        with self.busy.begin():
            return classify_results([analyze_project(project, options)])

    def analyze_solution_async(self, solution, options: ScriptUpgradeAnalysisOptions) -> "Future[SolutionAnalysisResult]":
        return self._submit(self.analyze_solution, solution, options)

    def analyze_project_async(self, project, options: ScriptUpgradeAnalysisOptions) -> "Future[SolutionAnalysisResult]":
        return self._submit(self.analyze_project, project, options)

    def upgrade(self, analysis: SolutionAnalysisResult) -> None:
        """
        Repair every failing project: unload, repair, reload. The first
        failure stops the run after its project has been reloaded.
        """
        with self.busy.begin():
            for result in analysis.bad_projects:
                handle = result.project.unload()
                try:
                    repair_project(result, self.upgraders)
                finally:
                    handle.reload()
