"""
Desktop assemblers wrapping the prebuilt webview shell.

Each shell reads app-config.json ({url, title}) at startup, so packaging
only has to place that file next to the binary.
"""
import io
import json
import re
import tarfile
import zipfile
from xml.sax.saxutils import escape

from ...constants import BuildErrorType, Platform
from ...exceptions import BuildError
from .base import (
    AssemblyResult,
    BaseAssembler,
    ZipTemplateAssembler,
    safe_app_name,
)

SHELL_CONFIG_NAME = "app-config.json"


def shell_config(build) -> bytes:
    return json.dumps(
        {"url": build.url, "title": build.app_name},
        indent=2,
        ensure_ascii=False,
    ).encode("utf-8")


class WindowsAssembler(BaseAssembler):
    """
    Windows: the template is a bare executable; ship it zipped with its
    config.
    """

    platform = Platform.WINDOWS

    def assemble(self, build, icon=None, on_stage=None):
        self._stage(on_stage, "downloading")
        executable = self.load_template()

        self._stage(on_stage, "configuring")
        safe_name = safe_app_name(build.app_name)

        self._stage(on_stage, "packaging")
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            zf.writestr(f"{safe_name}.exe", executable)
            zf.writestr(SHELL_CONFIG_NAME, shell_config(build))
            if icon:
                zf.writestr("icon.png", icon)
        return AssemblyResult(f"{safe_name}.zip", buffer.getvalue())


class MacOSAssembler(ZipTemplateAssembler):
    """
    macOS: zipped .app bundle; config goes to Contents/Resources.
    """

    platform = Platform.MACOS
    marker = "Contents/Info.plist"

    def assemble(self, build, icon=None, on_stage=None):
        self.output_name = f"{safe_app_name(build.app_name)}.app.zip"
        return super().assemble(build, icon=icon, on_stage=on_stage)

    def patch(self, tree, root, build):
        tree.write_bytes(
            f"{root}Contents/Resources/{SHELL_CONFIG_NAME}",
            shell_config(build),
        )

        plist_path = f"{root}Contents/Info.plist"
        name = escape(build.app_name)
        content = re.sub(
            r"<key>CFBundleName</key>\s*<string>[^<]*</string>",
            f"<key>CFBundleName</key>\n\t<string>{name}</string>",
            tree.read_text(plist_path),
        )
        content = re.sub(
            r"<key>CFBundleDisplayName</key>\s*<string>[^<]*</string>",
            f"<key>CFBundleDisplayName</key>\n\t<string>{name}</string>",
            content,
        )
        tree.write_text(plist_path, content)

    def icon_targets(self, root):
        return [f"{root}Contents/Resources/icon.png"]


class LinuxAssembler(BaseAssembler):
    """
    Linux: tar.gz shell; config goes to the resources directory.
    """

    platform = Platform.LINUX

    def assemble(self, build, icon=None, on_stage=None):
        self._stage(on_stage, "downloading")
        template = self.load_template()

        self._stage(on_stage, "extracting")
        try:
            with tarfile.open(fileobj=io.BytesIO(template), mode="r:gz") as tf:
                members = [
                    (info, tf.extractfile(info).read() if info.isfile() else None)
                    for info in tf.getmembers()
                ]
        except tarfile.TarError as e:
            raise BuildError(
                f"Invalid template archive: {e}", BuildErrorType.VALIDATION
            )

        self._stage(on_stage, "configuring")
        resources_dir = self._find_resources_dir(members)
        extra = {f"{resources_dir}{SHELL_CONFIG_NAME}": shell_config(build)}
        if icon:
            extra[f"{resources_dir}icon.png"] = icon

        self._stage(on_stage, "packaging")
        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w:gz", compresslevel=9) as out:
            for info, data in members:
                if info.name in extra:
                    continue
                out.addfile(info, io.BytesIO(data) if data is not None else None)
            for name, data in extra.items():
                info = tarfile.TarInfo(name)
                info.size = len(data)
                info.mode = 0o644
                out.addfile(info, io.BytesIO(data))

        safe_name = safe_app_name(build.app_name)
        return AssemblyResult(f"{safe_name}.tar.gz", buffer.getvalue())

    @staticmethod
    def _find_resources_dir(members) -> str:
        """
        Prefix of the app's resources directory, honouring a single
        wrapping folder in the template.
        """
        names = [info.name.rstrip("/") for info, _ in members]
        for name in names:
            if name == "resources" or name.endswith("/resources"):
                return name + "/"
        top_dirs = {
            name.split("/", 1)[0] for name in names if "/" in name
        }
        if len(top_dirs) == 1:
            return f"{top_dirs.pop()}/resources/"
        return "resources/"
