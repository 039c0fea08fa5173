import tempfile
import unittest
from pathlib import Path

from mdkupgrade.core.hosting import FileProject, FileSolution


class TestFileSolution(unittest.TestCase):
    def test_discovers_projects_and_skips_build_output(self):
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            (root / "A").mkdir()
            (root / "A" / "A.csproj").write_text("<Project />")
            (root / "B" / "Nested").mkdir(parents=True)
            (root / "B" / "Nested" / "B.CSPROJ").write_text("<Project />")
            (root / "A" / "obj").mkdir()
            (root / "A" / "obj" / "Temp.csproj").write_text("<Project />")
            (root / ".vs").mkdir()
            (root / ".vs" / "Hidden.csproj").write_text("<Project />")
            (root / "README.md").write_text("hi")

            names = sorted(p.name for p in FileSolution(td).projects)
            self.assertEqual(names, ["A", "B"])

    def test_missing_root_raises(self):
        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(ValueError):
                FileSolution(str(Path(td) / "missing"))


class TestFileProject(unittest.TestCase):
    def test_unload_and_reload(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "Script.csproj"
            path.write_text("<Project />")
            project = FileProject(str(path))
            self.assertTrue(project.is_loaded)
            self.assertEqual(project.name, "Script")
            self.assertEqual(project.full_name, str(path.resolve()))

            handle = project.unload()
            self.assertFalse(project.is_loaded)
            handle.reload()
            self.assertTrue(project.is_loaded)


if __name__ == "__main__":
    unittest.main()
