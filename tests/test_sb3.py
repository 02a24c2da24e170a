from __future__ import annotations

import io
import tempfile
import unittest
import zipfile
from pathlib import Path

from assembler import assemble
from model import ProcedureArgument
from opcodes import OpCode
from sb3 import Sb3Error, _proccode_parts, load_sb3, project_from_json
from tests.helpers import SAMPLE_ASSETS, make_sb3_bytes, sample_project_json


class LoadProjectTests(unittest.TestCase):
    def setUp(self) -> None:
        self.project = load_sb3(make_sb3_bytes(sample_project_json()))
        self.cat = self.project.sprites[0]

    def test_stage_state(self) -> None:
        stage = self.project.stage
        score = stage.variables[0]
        self.assertEqual((score.id, score.name, score.value), ("v1", "score", "0"))
        self.assertTrue(score.visible)
        self.assertEqual(score.mode, "slider")
        self.assertEqual((score.x, score.y, score.slider_max), (5, 5, 10))
        self.assertEqual(stage.lists[0].value, ["a", "1"])
        self.assertEqual(stage.costumes[0].data, SAMPLE_ASSETS["abc.svg"])
        self.assertTrue(self.project.video_on)
        self.assertEqual(self.project.tempo, 60)

    def test_sprite_state(self) -> None:
        self.assertEqual(self.cat.name, "Cat")
        self.assertEqual((self.cat.x, self.cat.y), (10, -5))
        self.assertEqual(self.cat.rotation_style, "leftRight")
        costume = self.cat.costumes[0]
        self.assertEqual((costume.name, costume.md5, costume.ext), ("cat-a", "def", "svg"))
        self.assertEqual((costume.center_x, costume.center_y), (48, 50))
        self.assertEqual(self.cat.sounds[0].data, b"RIFF")

    def test_scripts_are_rebuilt_from_top_level_blocks(self) -> None:
        self.assertEqual(len(self.cat.scripts), 3)
        flag = self.cat.scripts[0]
        self.assertEqual(
            [block.opcode for block in flag.blocks],
            [
                OpCode.event_whenflagclicked,
                OpCode.motion_movesteps,
                OpCode.motion_goto,
                OpCode.data_setvariableto,
                OpCode.control_repeat,
            ],
        )
        move, goto, setvar, repeat = flag.blocks[1:]
        self.assertEqual(move.inputs["STEPS"].type, "number")
        self.assertEqual(move.inputs["STEPS"].value, "10")
        self.assertEqual(goto.inputs["TO"].type, "goToTarget")
        self.assertEqual(goto.inputs["TO"].value, "_mouse_")
        self.assertEqual(setvar.inputs["VARIABLE"].value.id, "v1")
        self.assertEqual(setvar.inputs["VALUE"].value.opcode, OpCode.data_variable)
        self.assertEqual(repeat.inputs["SUBSTACK"].type, "blocks")
        self.assertEqual([block.opcode for block in repeat.inputs["SUBSTACK"].value], [OpCode.looks_say])

    def test_procedure_definition_and_call(self) -> None:
        definition = self.cat.scripts[1]
        self.assertTrue(definition.is_procedure)
        self.assertEqual(definition.proccode, "jump %s")
        self.assertTrue(definition.is_warp)
        self.assertEqual(
            definition.arguments,
            [ProcedureArgument("label", "jump"), ProcedureArgument("numberOrString", "height", "")],
        )
        call = self.cat.scripts[2].blocks[0]
        self.assertEqual(call.literal("PROCCODE"), "jump %s")
        self.assertEqual([value.value for value in call.literal("INPUTS")], ["5"])

    def test_load_from_path(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "game.sb3"
            path.write_bytes(make_sb3_bytes(sample_project_json()))
            project = load_sb3(path)
        self.assertEqual([target.name for target in project.targets], ["Stage", "Cat"])


class ProccodeTests(unittest.TestCase):
    def test_split(self) -> None:
        self.assertEqual(_proccode_parts("move %s steps"), ["move", "%s", "steps"])
        self.assertEqual(_proccode_parts("%n times %b"), ["%n", "times", "%b"])
        self.assertEqual(_proccode_parts("say%s"), ["say", "%s"])
        self.assertEqual(_proccode_parts("reset"), ["reset"])


class LoadErrorTests(unittest.TestCase):
    def test_not_a_zip(self) -> None:
        with self.assertRaises(Sb3Error):
            load_sb3(b"definitely not a zip")

    def test_missing_project_json(self) -> None:
        with self.assertRaises(Sb3Error):
            load_sb3(make_sb3_bytes(None))

    def test_invalid_json(self) -> None:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            zf.writestr("project.json", "{not json")
        with self.assertRaises(Sb3Error):
            load_sb3(buffer.getvalue())

    def test_missing_targets_or_stage(self) -> None:
        with self.assertRaises(Sb3Error):
            project_from_json({})
        with self.assertRaises(Sb3Error):
            project_from_json({"targets": [{"isStage": False, "name": "Cat"}]})

    def test_missing_asset_is_logged(self) -> None:
        data = make_sb3_bytes(sample_project_json(), {"abc.svg": b"<svg/>"})
        with self.assertLogs("sb3", level="WARNING") as logs:
            project = load_sb3(data)
        self.assertIsNone(project.sprites[0].costumes[0].data)
        self.assertTrue(any("def.svg" in line for line in logs.output))


class EndToEndTests(unittest.TestCase):
    def test_sample_compiles(self) -> None:
        files = assemble(load_sb3(make_sb3_bytes(sample_project_json())))
        cat = files["Cat/Cat.js"]
        self.assertIn("    this.move(10);\n", cat)
        self.assertIn("    this.goto(this.mouse.x, this.mouse.y);\n", cat)
        self.assertIn("    this.stage.vars.score = this.stage.vars.score;\n", cat)
        self.assertIn("    for (let i = 0; i < 3; i++) {\n      this.say(\"hi\");\n      yield;\n    }\n", cat)
        self.assertIn("  jump(height) {\n  }\n", cat)
        self.assertIn("    this.jump(5);\n", cat)
        self.assertIn("rotationStyle: Sprite.RotationStyle.LEFT_RIGHT", files["index.js"])
        self.assertIn('label: "score"', files["Stage/Stage.js"])


if __name__ == "__main__":
    unittest.main()
