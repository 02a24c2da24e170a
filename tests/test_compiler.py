from __future__ import annotations

import tempfile
import unittest
import zipfile
from pathlib import Path

from assembler import AssetInfo, ExportOptions
from compiler import OutputError, collect_assets, compile_file, main, write_output
from sb3 import load_sb3
from tests.helpers import SAMPLE_ASSETS, make_sb3_bytes, sample_project_json


class CollectAssetsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.project = load_sb3(make_sb3_bytes(sample_project_json()))

    def test_default_paths(self) -> None:
        assets = collect_assets(self.project)
        self.assertEqual(
            assets,
            {
                "Stage/costumes/backdrop1.svg": SAMPLE_ASSETS["abc.svg"],
                "Cat/costumes/cat-a.svg": SAMPLE_ASSETS["def.svg"],
                "Cat/sounds/Meow.wav": SAMPLE_ASSETS["ghi.wav"],
            },
        )

    def test_remote_assets_are_skipped(self) -> None:
        def resolver(asset: AssetInfo) -> str:
            if asset.kind == "sound":
                return f"https://cdn.example/{asset.md5}.{asset.ext}"
            return f"./assets/{asset.md5}.{asset.ext}"

        assets = collect_assets(self.project, ExportOptions(asset_url_resolver=resolver))
        self.assertEqual(set(assets), {"assets/abc.svg", "assets/def.svg"})


class WriteOutputTests(unittest.TestCase):
    files = {"index.html": "<html></html>\n", "Cat/Cat.js": "export default class Cat {}\n"}
    assets = {"Cat/costumes/cat-a.svg": b"<svg/>"}

    def test_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp) / "out"
            write_output(self.files, self.assets, root)
            self.assertEqual((root / "Cat" / "Cat.js").read_text(encoding="utf-8"), self.files["Cat/Cat.js"])
            self.assertEqual((root / "Cat" / "costumes" / "cat-a.svg").read_bytes(), b"<svg/>")

    def test_zip(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            archive = Path(tmp) / "nested" / "game.zip"
            write_output(self.files, self.assets, archive, "leopard-zip")
            with zipfile.ZipFile(archive) as zf:
                self.assertEqual(set(zf.namelist()), {"index.html", "Cat/Cat.js", "Cat/costumes/cat-a.svg"})
                self.assertEqual(zf.read("index.html").decode("utf-8"), self.files["index.html"])

    def test_unknown_output_type(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(OutputError):
                write_output(self.files, self.assets, Path(tmp), "scratch-gui")
            with self.assertRaises(OutputError):
                compile_file(Path(tmp) / "missing.sb3", Path(tmp) / "out", "scratch-gui")


class MainTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.input = self.root / "game.sb3"
        self.input.write_bytes(make_sb3_bytes(sample_project_json()))

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_writes_directory(self) -> None:
        out = self.root / "out"
        self.assertEqual(main([str(self.input), str(out)]), 0)
        self.assertTrue((out / "index.html").is_file())
        self.assertTrue((out / "index.js").is_file())
        self.assertIn("this.move(10);", (out / "Cat" / "Cat.js").read_text(encoding="utf-8"))
        self.assertEqual((out / "Cat" / "costumes" / "cat-a.svg").read_bytes(), SAMPLE_ASSETS["def.svg"])

    def test_writes_zip(self) -> None:
        out = self.root / "game.zip"
        self.assertEqual(main([str(self.input), str(out), "--output-type", "leopard-zip"]), 0)
        with zipfile.ZipFile(out) as zf:
            names = set(zf.namelist())
        self.assertTrue({"index.html", "index.js", "Stage/Stage.js", "Cat/Cat.js", "Cat/sounds/Meow.wav"} <= names)

    def test_options_from_flags(self) -> None:
        out = self.root / "out"
        main([str(self.input), str(out), "--no-autoplay", "--runtime-url", "./lib/leopard.js", "--indent", "4"])
        self.assertNotIn("// Autoplay", (out / "index.html").read_text(encoding="utf-8"))
        cat = (out / "Cat" / "Cat.js").read_text(encoding="utf-8")
        self.assertIn('from "../lib/leopard.js";', cat)
        self.assertIn("\n        super(...args);\n", cat)

    def test_missing_input(self) -> None:
        with self.assertRaises(FileNotFoundError):
            main([str(self.root / "nope.sb3"), str(self.root / "out")])


if __name__ == "__main__":
    unittest.main()
