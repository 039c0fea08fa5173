import dataclasses
import os
import tempfile
import unittest
import xml.etree.ElementTree as ET
from types import SimpleNamespace
from unittest import mock

from packaging.version import Version
from PySide6.QtCore import Qt

from mdkupgrade.core.analyzer import analyze_project
from mdkupgrade.core.errors import CorruptProjectError, MigrationError
from mdkupgrade.core.hosting import FileProject, FileSolution
from mdkupgrade.core.migrations import Upgrader
from mdkupgrade.core.project_document import ms
from mdkupgrade.core.project_options import UNVERSIONED
from mdkupgrade.core.references import check_assembly_reference
from mdkupgrade.core.repair import repair_bad_references, repair_project
from mdkupgrade.core.upgrades import ScriptUpgrades, classify_results
from mdkupgrade.models import (
    NO_SCRIPT_PROJECTS_RESULT,
    NON_SCRIPT_PROJECT_RESULT,
    BadReference,
    BadReferenceKind,
    ProjectAnalysisResult,
    SolutionAnalysisResult,
)

from project_fixtures import Layout


class RecordingStep(Upgrader):
    def __init__(self, version: str):
        self.version = Version(version)
        self.calls = 0

    def upgrade(self, options):
        self.calls += 1


class FailingStep(Upgrader):
    def __init__(self, version: str):
        self.version = Version(version)

    def upgrade(self, options):
        raise RuntimeError("descriptor locked")


class TestClassification(unittest.TestCase):
    def test_no_results_is_no_script_projects(self):
        self.assertIs(classify_results([]), NO_SCRIPT_PROJECTS_RESULT)
        self.assertIs(classify_results([NON_SCRIPT_PROJECT_RESULT] * 3), NO_SCRIPT_PROJECTS_RESULT)

    def test_all_valid_is_empty_but_distinct(self):
        valid = mock.Mock(spec=ProjectAnalysisResult, is_script_project=True, is_valid=True)
        outcome = classify_results([valid, NON_SCRIPT_PROJECT_RESULT])
        self.assertIsNot(outcome, NO_SCRIPT_PROJECTS_RESULT)
        self.assertTrue(outcome.has_script_projects)
        self.assertEqual(outcome.bad_projects, ())
        self.assertTrue(outcome.is_valid)

    def test_only_invalid_script_projects_are_kept(self):
        valid = mock.Mock(spec=ProjectAnalysisResult, is_script_project=True, is_valid=True)
        invalid = mock.Mock(spec=ProjectAnalysisResult, is_script_project=True, is_valid=False)
        outcome = classify_results([valid, invalid, NON_SCRIPT_PROJECT_RESULT])
        self.assertEqual(outcome.bad_projects, (invalid,))


class TestScriptUpgrades(unittest.TestCase):
    def setUp(self):
        self._td = tempfile.TemporaryDirectory()
        self.layout = Layout(self._td.name)
        self.options = self.layout.analysis_options()
        self.service = ScriptUpgrades()

    def tearDown(self):
        self.service.shutdown()
        self._td.cleanup()

    def _solution(self):
        return FileSolution(str(self.layout.root / "Solution"))

    def _write_broken(self, name="Broken"):
        stale_hint = os.path.join(str(self.layout.root), "OldGame", "Sandbox.Game.dll")
        stale_analyzer = os.path.join(str(self.layout.root), "OldMDK", "Analyzers", "MDKAnalyzer.dll")
        return self.layout.write_project(
            name,
            hint_path=stale_hint,
            analyzer_path=stale_analyzer,
            version="1.0.0",
            whitelist_file=False,
            whitelist_element=False,
            extra_items='<None Include="MDK\\whitelist.cache" />',
        )

    def test_solution_without_script_projects(self):
        self.layout.write_plain_project("LibA")
        self.layout.write_plain_project("LibB")
        self.assertIs(self.service.analyze_solution(self._solution(), self.options), NO_SCRIPT_PROJECTS_RESULT)

    def test_solution_with_only_valid_script_projects(self):
        self.layout.write_project("GoodA")
        self.layout.write_project("GoodB")
        self.layout.write_plain_project("Lib")
        outcome = self.service.analyze_solution(self._solution(), self.options)
        self.assertIsNot(outcome, NO_SCRIPT_PROJECTS_RESULT)
        self.assertTrue(outcome.has_script_projects)
        self.assertEqual(outcome.bad_projects, ())

    def test_solution_returns_exactly_the_invalid_subset(self):
        self.layout.write_project("Good")
        self._write_broken("BrokenA")
        self.layout.write_project("BrokenB", version="1.0.0")
        self.layout.write_plain_project("Lib")
        outcome = self.service.analyze_solution(self._solution(), self.options)
        names = sorted(r.options.name for r in outcome.bad_projects)
        self.assertEqual(names, ["BrokenA", "BrokenB"])

    def test_single_project_analysis_uses_same_classification(self):
        good = FileProject(str(self.layout.write_project("Good")))
        broken = FileProject(str(self._write_broken()))
        plain = FileProject(str(self.layout.write_plain_project("Lib")))

        self.assertIs(self.service.analyze_project(plain, self.options), NO_SCRIPT_PROJECTS_RESULT)
        self.assertEqual(self.service.analyze_project(good, self.options).bad_projects, ())
        self.assertEqual(len(self.service.analyze_project(broken, self.options).bad_projects), 1)

    def test_repair_reaches_a_fixpoint(self):
        project_file = self._write_broken()
        before = self.service.analyze_solution(self._solution(), self.options)
        self.assertEqual(len(before.bad_projects), 1)
        self.assertEqual(len(before.bad_projects[0].bad_references), 2)

        self.service.upgrade(before)

        after = analyze_project(FileProject(str(project_file)), self.options)
        self.assertEqual(after.bad_references, ())
        self.assertTrue(after.whitelist.is_valid)
        self.assertEqual(after.actual_version, Version("1.1.0"))
        self.assertTrue(after.is_valid)
        self.assertEqual(self.service.analyze_solution(self._solution(), self.options).bad_projects, ())

        target = project_file.parent / "MDK" / "whitelist.cache"
        self.assertEqual(target.read_bytes(), self.layout.source_whitelist.read_bytes())

        root = ET.parse(project_file).getroot()
        declarations = [
            e for e in root.iter()
            if isinstance(e.tag, str) and (e.get("Include") or "").lower() == "mdk\\whitelist.cache"
        ]
        self.assertEqual(len(declarations), 1)
        self.assertEqual(declarations[0].tag, ms("AdditionalFiles"))

        text = project_file.read_text(encoding="utf-8")
        self.assertEqual(text.count("xmlns="), 1)
        self.assertIn("<!-- script project -->", text)

        options_root = ET.parse(project_file.parent / "MDK" / "MDK.options").getroot()
        self.assertEqual(options_root.get("version"), "1.1.0")

    def test_migration_chain_runs_once_per_outdated_project(self):
        step = RecordingStep("1.1.0")
        service = ScriptUpgrades(upgraders=[step])
        project_file = self.layout.write_project("Old", version="1.0.0")

        outcome = service.analyze_solution(self._solution(), self.options)
        service.upgrade(outcome)
        self.assertEqual(step.calls, 1)
        self.assertEqual(outcome.bad_projects[0].options.version, Version("1.1.0"))

        # the repaired project is valid now, nothing left to migrate
        again = service.analyze_solution(self._solution(), self.options)
        service.upgrade(again)
        self.assertEqual(step.calls, 1)
        self.assertTrue(project_file.exists())

    def test_upgrade_unloads_repairs_and_reloads(self):
        calls = []
        handle = mock.Mock()
        handle.reload.side_effect = lambda: calls.append("reload")
        project = mock.Mock()
        project.unload.side_effect = lambda: calls.append("unload") or handle
        result = SimpleNamespace(project=project)

        with mock.patch("mdkupgrade.core.upgrades.repair_project", side_effect=lambda r, u: calls.append("repair")):
            self.service.upgrade(SolutionAnalysisResult(bad_projects=(result,)))
        self.assertEqual(calls, ["unload", "repair", "reload"])

    def test_relative_install_and_game_paths_reach_a_fixpoint(self):
        good = FileProject(str(self.layout.write_project("Good")))
        broken_file = self._write_broken()
        cwd = os.getcwd()
        try:
            os.chdir(str(self.layout.root))
            relative = dataclasses.replace(
                self.options,
                install_path="Install",
                default_game_bin_path=os.path.join("Game", "Bin64") + os.sep,
            )
            self.assertEqual(analyze_project(good, relative).bad_references, ())

            before = analyze_project(FileProject(str(broken_file)), relative)
            self.assertEqual(len(before.bad_references), 2)
            self.assertEqual(before.bad_references[0].expected_path, self.layout.good_hint_path())
            repair_project(before)
            after = analyze_project(FileProject(str(broken_file)), relative)
        finally:
            os.chdir(cwd)

        self.assertEqual(after.bad_references, ())
        self.assertTrue(after.is_valid)
        hint = ET.parse(broken_file).getroot().find(f"{ms('ItemGroup')}/{ms('Reference')}/{ms('HintPath')}")
        self.assertEqual(hint.text, self.layout.good_hint_path())

    def test_failing_migration_keeps_earlier_repairs(self):
        project_file = self._write_broken()
        result = analyze_project(FileProject(str(project_file)), self.options)
        done = RecordingStep("1.0.5")

        with self.assertRaises(MigrationError) as ctx:
            repair_project(result, [done, FailingStep("1.1.0")])
        self.assertEqual(ctx.exception.source_version, Version("1.0.5"))
        self.assertEqual(done.calls, 1)
        self.assertEqual(result.options.version, Version("1.0.5"))

        after = analyze_project(FileProject(str(project_file)), self.options)
        self.assertEqual(after.bad_references, ())
        self.assertTrue(after.whitelist.is_valid)
        self.assertEqual(after.actual_version, Version("1.1.0"))

    def test_unversioned_project_is_analyzed_and_migrated(self):
        step = RecordingStep("1.1.0")
        project_file = self.layout.write_project("Unversioned", version=None)
        (project_file.parent / "MDK" / "MDK.options").write_text("<mdk><trim>false</trim></mdk>", encoding="utf-8")

        outcome = self.service.analyze_solution(self._solution(), self.options)
        self.assertTrue(outcome.has_script_projects)
        self.assertEqual(len(outcome.bad_projects), 1)
        self.assertEqual(outcome.bad_projects[0].actual_version, UNVERSIONED)

        ScriptUpgrades(upgraders=[step]).upgrade(outcome)
        self.assertEqual(step.calls, 1)
        self.assertEqual(outcome.bad_projects[0].options.version, Version("1.1.0"))
        # no version attribute to stamp: the descriptor is left as written
        self.assertIsNone(ET.parse(project_file.parent / "MDK" / "MDK.options").getroot().get("version"))

    def test_failed_repair_still_reloads_and_propagates(self):
        handle = mock.Mock()
        project = mock.Mock()
        project.unload.return_value = handle
        results = (SimpleNamespace(project=project), SimpleNamespace(project=mock.Mock()))

        with mock.patch("mdkupgrade.core.upgrades.repair_project", side_effect=CorruptProjectError("bad")):
            with self.assertRaises(CorruptProjectError):
                self.service.upgrade(SolutionAnalysisResult(bad_projects=results))
        handle.reload.assert_called_once_with()
        results[1].project.unload.assert_not_called()
        self.assertFalse(self.service.is_busy)

    def test_busy_notifies_only_on_transitions(self):
        changes = []
        self.service.busy.busy_changed.connect(lambda busy: changes.append(busy), Qt.ConnectionType.DirectConnection)
        self.layout.write_project("Good")

        self.service.analyze_solution(self._solution(), self.options)
        self.assertEqual(changes, [True, False])

        with self.service.busy.begin():
            self.service.analyze_solution(self._solution(), self.options)
            self.assertTrue(self.service.is_busy)
        self.assertEqual(changes, [True, False, True, False])
        self.assertFalse(self.service.is_busy)

    def test_busy_released_when_analysis_fails(self):
        project_file = self.layout.write_project("Broken")
        project_file.write_text("<Project", encoding="utf-8")
        with self.assertRaises(ET.ParseError):
            self.service.analyze_solution(self._solution(), self.options)
        self.assertFalse(self.service.is_busy)

    def test_async_analysis_returns_future(self):
        self._write_broken()
        future = self.service.analyze_solution_async(self._solution(), self.options)
        outcome = future.result(timeout=30)
        self.assertEqual(len(outcome.bad_projects), 1)

        single = self.service.analyze_project_async(FileProject(str(self.layout.write_project("Good"))), self.options)
        self.assertEqual(single.result(timeout=30).bad_projects, ())

        self.service.shutdown()
        self.assertFalse(self.service.is_busy)


class TestRepairBadReferences(unittest.TestCase):
    def _reference(self, hint=None):
        element = ET.Element(ms("Reference"), Include="Foo")
        if hint is not None:
            ET.SubElement(element, ms("HintPath")).text = hint
        return element

    def _result(self, *bad):
        return ProjectAnalysisResult(expected_version=Version("1.1.0"), bad_references=tuple(bad))

    def test_assembly_hint_path_is_replaced(self):
        with tempfile.TemporaryDirectory() as td:
            expected = os.path.join(os.path.realpath(td), "Game", "Bin", "Foo.dll")
            element = self._reference(os.path.join(os.path.realpath(td), "Wrong", "Foo.dll"))
            repair_bad_references(self._result(BadReference(BadReferenceKind.ASSEMBLY, element, "x", expected)))
            self.assertEqual(element.find(ms("HintPath")).text, expected)
            self.assertEqual(len(element.findall(ms("HintPath"))), 1)

    def test_assembly_hint_path_is_added_when_missing(self):
        element = self._reference()
        repair_bad_references(self._result(BadReference(BadReferenceKind.ASSEMBLY, element, None, "/game/Foo.dll")))
        self.assertEqual(element.find(ms("HintPath")).text, "/game/Foo.dll")

    def test_file_include_is_replaced(self):
        element = ET.Element(ms("Analyzer"), Include="..\\Old\\MDKAnalyzer.dll")
        repair_bad_references(self._result(BadReference(BadReferenceKind.FILE, element, "x", "/mdk/Analyzers/MDKAnalyzer.dll")))
        self.assertEqual(element.get("Include"), "/mdk/Analyzers/MDKAnalyzer.dll")

    def test_unknown_kind_is_fatal(self):
        bad = BadReference("Mystery", ET.Element(ms("Reference")), None, "/x")
        with self.assertRaises(CorruptProjectError):
            repair_bad_references(self._result(bad))

    def test_hint_path_scenario(self):
        with tempfile.TemporaryDirectory() as td:
            root = os.path.realpath(td)
            project_dir = os.path.join(root, "Projects", "Script")
            wrong = os.path.join(root, "Wrong", "Foo.dll")
            game_bin = os.path.join(root, "Game", "Bin")

            element = self._reference(wrong)
            bad = check_assembly_reference(project_dir, element, game_bin, wrong, "Foo")
            self.assertEqual(bad.current_path, wrong)
            repair_bad_references(self._result(bad))
            self.assertEqual(element.find(ms("HintPath")).text, os.path.join(root, "Game", "Bin", "Foo.dll"))
            self.assertIsNone(check_assembly_reference(project_dir, element, game_bin, element.find(ms("HintPath")).text, "Foo"))

    @unittest.skipUnless(os.name == "nt", "Windows drive paths")
    def test_windows_hint_path_scenario(self):
        element = self._reference("C:\\Wrong\\Foo.dll")
        bad = check_assembly_reference("C:\\Projects\\Script", element, "C:\\Game\\Bin", "C:\\Wrong\\Foo.dll", "Foo")
        repair_bad_references(self._result(bad))
        self.assertEqual(element.find(ms("HintPath")).text, "C:\\Game\\Bin\\Foo.dll")


if __name__ == "__main__":
    unittest.main()
