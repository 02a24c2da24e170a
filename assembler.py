from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from typing import Callable
from urllib.parse import urljoin, urlsplit, urlunsplit

from codegen import compile_target_scripts, js_value, string_literal
from jsformat import FormattingOptions, format_source
from model import Block, DataRef, ListData, Project, Sprite, Target, Variable
from naming import NameTable, TargetNames, assign_names
from opcodes import OpCode


LOG = logging.getLogger(__name__)

DEFAULT_RUNTIME_MODULE_URL = "https://unpkg.com/leopard@^1/dist/index.esm.js"
DEFAULT_RUNTIME_STYLE_URL = "https://unpkg.com/leopard@^1/dist/index.min.css"

# Relative URLs are resolved against this origin to compare and relativize them.
LOCAL_ORIGIN = "https://local.invalid/"

_WATCHER_OPCODES = {
    OpCode.data_showvariable: "VARIABLE",
    OpCode.data_hidevariable: "VARIABLE",
    OpCode.data_showlist: "LIST",
    OpCode.data_hidelist: "LIST",
}

_ROTATION_STYLES = {
    "normal": "Sprite.RotationStyle.ALL_AROUND",
    "leftRight": "Sprite.RotationStyle.LEFT_RIGHT",
    "none": "Sprite.RotationStyle.DONT_ROTATE",
}

_WATCHER_STYLES = {"default": "normal", "large": "large", "slider": "slider"}


@dataclass(frozen=True)
class AssetInfo:
    kind: str  # "costume" or "sound"
    target: str
    name: str
    md5: str
    ext: str


def default_asset_url(asset: AssetInfo) -> str:
    folder = "costumes" if asset.kind == "costume" else "sounds"
    return f"./{asset.target}/{folder}/{asset.name}.{asset.ext}"


def default_path_from_entry_to_target(class_name: str) -> str:
    return f"./{class_name}/{class_name}.js"


def default_path_from_target_to_target(class_name: str) -> str:
    return f"../{class_name}/{class_name}.js"


@dataclass
class ExportOptions:
    """Path policy and presentation settings for one export."""

    entry_url: str = "./index.js"
    harness_url: str = "./index.html"
    runtime_module_url: str = DEFAULT_RUNTIME_MODULE_URL
    runtime_style_url: str = DEFAULT_RUNTIME_STYLE_URL
    path_from_entry_to_target: Callable[[str], str] = default_path_from_entry_to_target
    path_from_target_to_target: Callable[[str], str] = default_path_from_target_to_target
    asset_url_resolver: Callable[[AssetInfo], str] = default_asset_url
    autoplay_on_load: bool = True
    formatting_options: FormattingOptions = field(default_factory=FormattingOptions)
    on_warning: Callable[[str], None] | None = None


def is_local(url: str) -> bool:
    parts = urlsplit(url)
    local = urlsplit(LOCAL_ORIGIN)
    return (parts.scheme, parts.netloc) == (local.scheme, local.netloc)


def url_path(url: str) -> str:
    """File path, relative to the output root, that a local URL points at."""
    return urlsplit(url).path.lstrip("/")


def relative_url(from_url: str, to_url: str) -> str:
    """Specifier that resolves to `to_url` from a module located at `from_url`."""
    if not (is_local(from_url) and is_local(to_url)):
        return to_url
    source = urlsplit(from_url).path
    target = urlsplit(to_url)
    relative = posixpath.relpath(target.path, posixpath.dirname(source))
    if not relative.startswith("../"):
        relative = f"./{relative}"
    return urlunsplit(("", "", relative, target.query, target.fragment))


def assemble(project: Project, options: ExportOptions | None = None) -> dict[str, str]:
    """Compile `project` into Leopard source files keyed by output path."""
    options = options or ExportOptions()
    files = _ProjectAssembler(project, assign_names(project), options).build()
    return {
        path: format_source(text, path, options.formatting_options)
        for path, text in files.items()
    }


class _ProjectAssembler:
    def __init__(self, project: Project, names: NameTable, options: ExportOptions) -> None:
        self.project = project
        self.names = names
        self.options = options
        self.targets = project.targets
        self.harness_url = urljoin(LOCAL_ORIGIN, options.harness_url)
        self.entry_url = urljoin(self.harness_url, options.entry_url)
        self.runtime_url = urljoin(self.entry_url, options.runtime_module_url)

    def build(self) -> dict[str, str]:
        files: dict[str, str] = {}
        files[self._local_path(self.harness_url)] = self._emit_harness()
        files[self._local_path(self.entry_url)] = self._emit_entry()
        self._check_target_paths()
        for index in range(len(self.targets)):
            url = self._target_url(index)
            files[self._local_path(url)] = self._emit_target_file(index, url)
        for path in files:
            LOG.debug("assembled %s", path)
        return files

    def _warn(self, message: str) -> None:
        LOG.debug(message)
        if self.options.on_warning is not None:
            self.options.on_warning(message)

    def _local_path(self, url: str) -> str:
        if not is_local(url):
            self._warn(f"output URL {url} is not relative to the export root")
        return url_path(url)

    def _target_url(self, index: int) -> str:
        class_name = self.names[index].class_name
        return urljoin(self.entry_url, self.options.path_from_entry_to_target(class_name))

    def _check_target_paths(self) -> None:
        if len(self.targets) < 2:
            return
        base = self._target_url(0)
        for index in range(len(self.targets)):
            class_name = self.names[index].class_name
            resolved = urljoin(base, self.options.path_from_target_to_target(class_name))
            if resolved != self._target_url(index):
                self._warn(
                    f"path_from_target_to_target for {class_name} resolves to {resolved}, "
                    f"expected {self._target_url(index)}"
                )

    # -- harness and entry ----------------------------------------------

    def _emit_harness(self) -> str:
        entry = relative_url(self.harness_url, self.entry_url)
        lines = [
            "<!DOCTYPE html>",
            "<html>",
            "  <head>",
            f'    <link rel="stylesheet" href="{self.options.runtime_style_url}" />',
            "  </head>",
            "  <body>",
            '    <button id="greenFlag">Green Flag</button>',
            '    <div id="project"></div>',
            "",
            '    <script type="module">',
            f"      import project from {string_literal(entry)};",
            "",
            '      project.attach("#project");',
            "",
            "      document",
            '        .querySelector("#greenFlag")',
            '        .addEventListener("click", () => {',
            "          project.greenFlag();",
            "        });",
        ]
        if self.options.autoplay_on_load:
            lines += ["", "      // Autoplay", "      project.greenFlag();"]
        lines += ["    </script>", "  </body>", "</html>"]
        return "\n".join(lines)

    def _emit_entry(self) -> str:
        lines = [f"import {{ Project, Sprite }} from {string_literal(self.options.runtime_module_url)};", ""]
        for index in range(len(self.targets)):
            class_name = self.names[index].class_name
            path = self.options.path_from_entry_to_target(class_name)
            lines.append(f"import {class_name} from {string_literal(path)};")
        stage = self.project.stage
        lines += [
            "",
            f"const stage = new {self.names.stage.class_name}({{ costumeNumber: {stage.costume_number + 1} }});",
            "",
            "const sprites = {",
        ]
        for index, sprite in enumerate(self.project.sprites, start=1):
            lines.append(self._emit_sprite_entry(sprite, self.names[index].class_name))
        lines += [
            "};",
            "",
            "const project = new Project(stage, sprites, {",
            "  frameRate: 30 // Set to 60 to make your project run faster",
            "});",
            "export default project;",
        ]
        return "\n".join(lines)

    def _emit_sprite_entry(self, sprite: Sprite, class_name: str) -> str:
        rotation = _ROTATION_STYLES.get(sprite.rotation_style, _ROTATION_STYLES["normal"])
        fields = [
            f"x: {js_value(sprite.x)}",
            f"y: {js_value(sprite.y)}",
            f"direction: {js_value(sprite.direction)}",
            f"rotationStyle: {rotation}",
            f"costumeNumber: {sprite.costume_number + 1}",
            f"size: {js_value(sprite.size)}",
            f"visible: {js_value(sprite.visible)}",
            f"layerOrder: {sprite.layer_order}",
        ]
        body = ",\n".join(fields)
        return f"{class_name}: new {class_name}({{\n{body}\n}}),"

    # -- target files ---------------------------------------------------

    def _emit_target_file(self, index: int, url: str) -> str:
        target = self.targets[index]
        target_names = self.names[index]
        base_class = "StageBase" if target.is_stage else "Sprite"
        imported = "Stage as StageBase" if target.is_stage else "Sprite"
        runtime = relative_url(url, self.runtime_url)
        methods, triggers = compile_target_scripts(
            self.project, self.names, index, on_warning=self.options.on_warning
        )

        lines = [
            f"import {{ {imported}, Trigger, Watcher, Costume, Color, Sound }} from {string_literal(runtime)};",
            "",
            f"export default class {target_names.class_name} extends {base_class} {{",
            "constructor(...args) {",
            "super(...args);",
            "",
            "this.costumes = [",
            ",\n".join(self._emit_costume(target, target_names, costume_index) for costume_index in range(len(target.costumes))),
            "];",
            "",
            "this.sounds = [",
            ",\n".join(self._emit_sound(target, target_names, sound_index) for sound_index in range(len(target.sounds))),
            "];",
            "",
            "this.triggers = [",
            ",\n".join(triggers),
            "];",
            "",
        ]
        if target.volume != 100:
            lines += [f"this.audioEffects.volume = {js_value(target.volume)};", ""]
        for data in [*target.variables, *target.lists]:
            lines.append(f"this.vars.{target_names.data[data.id]} = {js_value(data.value)};")
        lines.append("")
        watched = self._watched_ids(index)
        for data in [*target.variables, *target.lists]:
            if data.visible or data.id in watched:
                lines.append(self._emit_watcher(target, target_names, data))
        lines.append("}")
        for method in methods:
            lines += ["", method.render()]
        lines.append("}")
        return "\n".join(lines)

    def _emit_costume(self, target: Target, target_names: TargetNames, costume_index: int) -> str:
        costume = target.costumes[costume_index]
        asset = AssetInfo("costume", target_names.class_name, costume.name, costume.md5, costume.ext)
        center = js_value({"x": costume.center_x, "y": costume.center_y})
        url = self.options.asset_url_resolver(asset)
        return f"new Costume({string_literal(costume.name)}, {string_literal(url)}, {center})"

    def _emit_sound(self, target: Target, target_names: TargetNames, sound_index: int) -> str:
        sound = target.sounds[sound_index]
        asset = AssetInfo("sound", target_names.class_name, sound.name, sound.md5, sound.ext)
        url = self.options.asset_url_resolver(asset)
        return f"new Sound({string_literal(sound.name)}, {string_literal(url)})"

    def _watched_ids(self, index: int) -> set[str]:
        """Ids of this target's data that some show/hide block refers to."""
        target = self.targets[index]
        scanned = self.targets if target.is_stage else [target]
        refs: list[DataRef] = []
        for other in scanned:
            for block in other.walk():
                ref = _watcher_ref(block)
                if ref is not None:
                    refs.append(ref)
        watched: set[str] = set()
        for data in [*target.variables, *target.lists]:
            for ref in refs:
                if ref.id == data.id or (ref.id is None and ref.name == data.name):
                    watched.add(data.id)
        return watched

    def _emit_watcher(self, target: Target, target_names: TargetNames, data: Variable | ListData) -> str:
        prop = target_names.data[data.id]
        label = data.name if target.is_stage else f"{target.name}: {data.name}"
        fields = [f"label: {string_literal(label)}"]
        slider = isinstance(data, Variable) and data.mode == "slider"
        if isinstance(data, Variable):
            fields.append(f"style: {string_literal(_WATCHER_STYLES.get(data.mode, 'normal'))}")
        else:
            fields.append('style: "normal"')
        fields += [
            f"visible: {js_value(data.visible)}",
            f"value: () => this.vars.{prop}",
        ]
        if slider:
            fields += [
                f"setValue: value => {{\nthis.vars.{prop} = value;\n}}",
                f"step: {'1' if data.is_discrete else '0.01'}",
                f"min: {js_value(data.slider_min)}",
                f"max: {js_value(data.slider_max)}",
            ]
        fields += [f"x: {js_value(data.x + 240)}", f"y: {js_value(180 - data.y)}"]
        if isinstance(data, ListData):
            if data.width is not None:
                fields.append(f"width: {js_value(data.width)}")
            if data.height is not None:
                fields.append(f"height: {js_value(data.height)}")
        body = ",\n".join(fields)
        return f"this.watchers.{prop} = new Watcher({{\n{body}\n}});"


def _watcher_ref(block: Block) -> DataRef | None:
    slot = _WATCHER_OPCODES.get(block.opcode)
    if slot is None:
        return None
    value = block.literal(slot)
    if isinstance(value, DataRef):
        return value
    if value is None:
        return None
    return DataRef(id=None, name=str(value))
