from __future__ import annotations

from pathlib import Path

PROJECT = """<?xml version="1.0" encoding="utf-8"?>
<Project ToolsVersion="15.0" xmlns="http://schemas.microsoft.com/developer/msbuild/2003">
  <ItemGroup>
    <Reference Include="Sandbox.Game">
      <HintPath>C:\\OldGame\\Bin64\\Sandbox.Game.dll</HintPath>
    </Reference>
    <Reference Include="System" />
  </ItemGroup>
  <ItemGroup>
    <Analyzer Include="C:\\OldMDK\\Analyzers\\MDKAnalyzer.dll" />
    <AdditionalFiles Include="MDK\\MDK.options" />
    <Compile Include="Program.cs" />
  </ItemGroup>
</Project>
"""

OPTIONS = """<?xml version="1.0" encoding="utf-8"?>
<mdk version="1.0.0" />
"""


def main():
    root = Path("demo_solution")
    project_dir = root / "DemoScript"
    (project_dir / "MDK").mkdir(parents=True, exist_ok=True)
    (project_dir / "DemoScript.csproj").write_text(PROJECT, encoding="utf-8")
    (project_dir / "MDK" / "MDK.options").write_text(OPTIONS, encoding="utf-8")
    (project_dir / "Program.cs").write_text("// dummy script", encoding="utf-8")

    install = root / "install" / "Analyzers"
    install.mkdir(parents=True, exist_ok=True)
    (install / "whitelist.cache").write_bytes(b"dummy_whitelist")
    (install / "MDKAnalyzer.dll").write_bytes(b"dummy_dll")
    (root / "game" / "Bin64").mkdir(parents=True, exist_ok=True)

    print(f"Created demo solution at: {root.resolve()}")
    print(f"  install path: {(root / 'install').resolve()}")
    print(f"  game bin path: {(root / 'game' / 'Bin64').resolve()}")

if __name__ == "__main__":
    main()
