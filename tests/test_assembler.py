from __future__ import annotations

import unittest

from assembler import (
    DEFAULT_RUNTIME_MODULE_URL,
    AssetInfo,
    ExportOptions,
    assemble,
    is_local,
    relative_url,
    url_path,
)
from jsformat import FormattingOptions
from model import Costume, ListData, Script, Sound, Sprite, Stage, Variable
from opcodes import OpCode
from tests.helpers import block, green_flag, make_project, num, var_ref


MOVE = block(OpCode.motion_movesteps, STEPS=num("10"))


def sample_project():
    stage = Stage(
        costumes=[Costume("backdrop1", md5="abc", ext="svg", center_x=240, center_y=180)],
        variables=[Variable("score", value="0", visible=True, mode="slider", x=5, y=5, slider_max=10)],
    )
    cat = Sprite(
        name="Cat",
        x=10,
        y=-5,
        rotation_style="leftRight",
        costumes=[Costume("cat-a", md5="def", ext="svg", center_x=48, center_y=50)],
        sounds=[Sound("Meow", md5="ghi", ext="wav")],
        variables=[Variable("speed", value="3")],
        lists=[ListData("items", value=["a", "1"])],
        scripts=[green_flag(MOVE)],
    )
    return make_project(cat, stage=stage)


class UrlHelperTests(unittest.TestCase):
    def test_relative_url_between_local_modules(self) -> None:
        base = "https://local.invalid/"
        self.assertEqual(relative_url(base + "Cat/Cat.js", base + "lib/leopard.js"), "../lib/leopard.js")
        self.assertEqual(relative_url(base + "index.html", base + "index.js"), "./index.js")
        self.assertEqual(relative_url(base + "index.js", DEFAULT_RUNTIME_MODULE_URL), DEFAULT_RUNTIME_MODULE_URL)

    def test_locality_and_paths(self) -> None:
        self.assertTrue(is_local("https://local.invalid/js/index.js"))
        self.assertFalse(is_local("https://unpkg.com/leopard"))
        self.assertEqual(url_path("https://local.invalid/js/index.js"), "js/index.js")


class AssembleLayoutTests(unittest.TestCase):
    def test_default_file_keys(self) -> None:
        files = assemble(sample_project())
        self.assertEqual(set(files), {"index.html", "index.js", "Stage/Stage.js", "Cat/Cat.js"})
        for text in files.values():
            self.assertTrue(text.endswith("\n"))

    def test_custom_entry_url_moves_target_files(self) -> None:
        files = assemble(sample_project(), ExportOptions(entry_url="./js/index.js"))
        self.assertEqual(set(files), {"index.html", "js/index.js", "js/Stage/Stage.js", "js/Cat/Cat.js"})
        self.assertIn('import project from "./js/index.js";', files["index.html"])

    def test_duplicate_sprite_names(self) -> None:
        files = assemble(make_project(Sprite(name="Cat"), Sprite(name="Cat")))
        self.assertIn("Cat2/Cat2.js", files)
        self.assertIn('import Cat2 from "./Cat2/Cat2.js";', files["index.js"])
        self.assertIn("  Cat2: new Cat2({", files["index.js"])
        self.assertIn("export default class Cat2 extends Sprite {", files["Cat2/Cat2.js"])

    def test_entry_uses_identifiers_not_author_names(self) -> None:
        files = assemble(make_project(Sprite(name="my cat")))
        self.assertNotIn("my cat", files["index.js"])
        self.assertIn("MyCat: new MyCat({", files["index.js"])

    def test_mismatched_target_paths_warn(self) -> None:
        warnings: list[str] = []
        options = ExportOptions(path_from_target_to_target=lambda name: f"./{name}.js", on_warning=warnings.append)
        assemble(sample_project(), options)
        self.assertTrue(any("path_from_target_to_target" in warning for warning in warnings))

    def test_consistent_paths_do_not_warn(self) -> None:
        warnings: list[str] = []
        assemble(sample_project(), ExportOptions(on_warning=warnings.append))
        self.assertEqual(warnings, [])


class HarnessTests(unittest.TestCase):
    def test_autoplay(self) -> None:
        harness = assemble(sample_project())["index.html"]
        self.assertTrue(harness.startswith("<!DOCTYPE html>\n<html>\n"))
        self.assertIn("// Autoplay", harness)
        self.assertEqual(harness.count("project.greenFlag();"), 2)
        self.assertIn('import project from "./index.js";', harness)

    def test_autoplay_disabled(self) -> None:
        harness = assemble(sample_project(), ExportOptions(autoplay_on_load=False))["index.html"]
        self.assertNotIn("// Autoplay", harness)
        self.assertEqual(harness.count("project.greenFlag();"), 1)


class EntryTests(unittest.TestCase):
    def test_entry_module(self) -> None:
        entry = assemble(sample_project())["index.js"]
        self.assertTrue(entry.startswith(f'import {{ Project, Sprite }} from "{DEFAULT_RUNTIME_MODULE_URL}";\n'))
        self.assertIn('import Stage from "./Stage/Stage.js";', entry)
        self.assertIn('import Cat from "./Cat/Cat.js";', entry)
        self.assertIn("const stage = new Stage({ costumeNumber: 1 });", entry)
        self.assertIn(
            "  Cat: new Cat({\n"
            "    x: 10,\n"
            "    y: -5,\n"
            "    direction: 90,\n"
            "    rotationStyle: Sprite.RotationStyle.LEFT_RIGHT,\n"
            "    costumeNumber: 1,\n"
            "    size: 100,\n"
            "    visible: true,\n"
            "    layerOrder: 0\n"
            "  }),\n",
            entry,
        )
        self.assertTrue(entry.endswith("export default project;\n"))

    def test_relative_runtime_url(self) -> None:
        files = assemble(sample_project(), ExportOptions(runtime_module_url="./lib/leopard.js"))
        self.assertIn('import { Project, Sprite } from "./lib/leopard.js";', files["index.js"])
        self.assertIn('} from "../lib/leopard.js";', files["Cat/Cat.js"])

    def test_absolute_runtime_url_is_verbatim(self) -> None:
        url = "https://example.com/leopard.js"
        files = assemble(sample_project(), ExportOptions(runtime_module_url=url))
        self.assertIn(f'from "{url}";', files["index.js"])
        self.assertIn(f'from "{url}";', files["Cat/Cat.js"])


class TargetFileTests(unittest.TestCase):
    def test_sprite_class(self) -> None:
        cat = assemble(sample_project())["Cat/Cat.js"]
        self.assertTrue(
            cat.startswith(
                f'import {{ Sprite, Trigger, Watcher, Costume, Color, Sound }} from "{DEFAULT_RUNTIME_MODULE_URL}";\n'
                "\n"
                "export default class Cat extends Sprite {\n"
                "  constructor(...args) {\n"
                "    super(...args);\n"
            )
        )
        self.assertIn('      new Costume("cat-a", "./Cat/costumes/cat-a.svg", { x: 48, y: 50 })\n', cat)
        self.assertIn('      new Sound("Meow", "./Cat/sounds/Meow.wav")\n', cat)
        self.assertIn("      new Trigger(Trigger.GREEN_FLAG, this.whenGreenFlagClicked)\n", cat)
        self.assertIn("    this.vars.speed = 3;\n", cat)
        self.assertIn('    this.vars.items = ["a", 1];\n', cat)
        self.assertIn("  *whenGreenFlagClicked() {\n    this.move(10);\n  }\n}\n", cat)
        self.assertNotIn("this.watchers", cat)
        self.assertNotIn("audioEffects.volume", cat)

    def test_stage_class(self) -> None:
        stage = assemble(sample_project())["Stage/Stage.js"]
        self.assertTrue(stage.startswith("import { Stage as StageBase, Trigger, Watcher, Costume, Color, Sound }"))
        self.assertIn("export default class Stage extends StageBase {", stage)
        self.assertIn('new Costume("backdrop1", "./Stage/costumes/backdrop1.svg", { x: 240, y: 180 })', stage)
        self.assertIn("    this.sounds = [\n    ];\n", stage)

    def test_slider_watcher(self) -> None:
        stage = assemble(sample_project())["Stage/Stage.js"]
        self.assertIn(
            "    this.watchers.score = new Watcher({\n"
            '      label: "score",\n'
            '      style: "slider",\n'
            "      visible: true,\n"
            "      value: () => this.vars.score,\n"
            "      setValue: value => {\n"
            "        this.vars.score = value;\n"
            "      },\n"
            "      step: 1,\n"
            "      min: 0,\n"
            "      max: 10,\n"
            "      x: 245,\n"
            "      y: 175\n"
            "    });\n",
            stage,
        )

    def test_watchers_for_data_toggled_by_blocks(self) -> None:
        project = sample_project()
        cat = project.sprites[0]
        lives = Variable("lives")
        project.stage.variables.append(lives)
        cat.scripts.append(
            Script(
                blocks=[
                    block(OpCode.data_showvariable, VARIABLE=var_ref(cat.variables[0])),
                    block(OpCode.data_hidevariable, VARIABLE=var_ref(lives)),
                ]
            )
        )
        files = assemble(project)
        self.assertIn("this.watchers.speed = new Watcher({", files["Cat/Cat.js"])
        self.assertIn('label: "Cat: speed"', files["Cat/Cat.js"])
        self.assertIn("visible: false", files["Cat/Cat.js"])
        self.assertNotIn("this.watchers.items", files["Cat/Cat.js"])
        self.assertIn('label: "lives"', files["Stage/Stage.js"])

    def test_list_watcher_size(self) -> None:
        project = sample_project()
        items = project.sprites[0].lists[0]
        items.visible = True
        items.width = 100
        items.height = 200
        cat = assemble(project)["Cat/Cat.js"]
        self.assertIn('      style: "normal",\n', cat)
        self.assertIn("      width: 100,\n      height: 200\n", cat)

    def test_volume(self) -> None:
        project = sample_project()
        project.sprites[0].volume = 50
        self.assertIn("    this.audioEffects.volume = 50;\n", assemble(project)["Cat/Cat.js"])

    def test_asset_url_resolver(self) -> None:
        def resolver(asset: AssetInfo) -> str:
            return f"./assets/{asset.md5}.{asset.ext}"

        cat = assemble(sample_project(), ExportOptions(asset_url_resolver=resolver))["Cat/Cat.js"]
        self.assertIn('new Costume("cat-a", "./assets/def.svg", { x: 48, y: 50 })', cat)
        self.assertIn('new Sound("Meow", "./assets/ghi.wav")', cat)


class FormattingTests(unittest.TestCase):
    def test_indent_width(self) -> None:
        options = ExportOptions(formatting_options=FormattingOptions(indent_width=4))
        cat = assemble(sample_project(), options)["Cat/Cat.js"]
        self.assertIn("\n        super(...args);\n", cat)
        self.assertIn("\n    *whenGreenFlagClicked() {\n", cat)

    def test_tabs(self) -> None:
        options = ExportOptions(formatting_options=FormattingOptions(use_tabs=True))
        cat = assemble(sample_project(), options)["Cat/Cat.js"]
        self.assertIn("\n\t\tsuper(...args);\n", cat)


class DeterminismTests(unittest.TestCase):
    def test_same_input_same_output(self) -> None:
        project = sample_project()
        self.assertEqual(assemble(project), assemble(project))

    def test_project_is_not_mutated(self) -> None:
        project = make_project(Sprite(name="my cat", variables=[Variable("my score")], scripts=[green_flag(MOVE)]))
        assemble(project)
        sprite = project.sprites[0]
        self.assertEqual(sprite.name, "my cat")
        self.assertEqual(sprite.variables[0].name, "my score")
        self.assertEqual(sprite.scripts[0].name, "when_green_flag_clicked")
        self.assertEqual(len(sprite.scripts[0].blocks), 2)


if __name__ == "__main__":
    unittest.main()
