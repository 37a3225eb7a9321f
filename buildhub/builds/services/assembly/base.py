"""
Base assembler interface for platform packaging.

An assembler turns a BuildRecord into an installable archive by patching a
template stored in build storage. All platform assemblers implement
assemble(); the orchestrator owns status, storage and quota around it.
"""
import io
import json
import re
import zipfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ...conf import get_template_path
from ...constants import BuildErrorType
from ...exceptions import BuildError
from ..storage import download_file

ProgressCallback = Callable[[str], None]


@dataclass
class AssemblyResult:
    """
    Packaged artifact: file name under builds/{id}/ and its bytes.
    """
    file_name: str
    data: bytes


def safe_app_name(app_name: str, keep_spaces: bool = False) -> str:
    """
    Strip characters unsafe for archive file names. Keeps ASCII letters,
    digits and CJK characters; falls back to "App".
    """
    pattern = (
        r"[^a-zA-Z0-9\u4e00-\u9fa5\s]" if keep_spaces
        else r"[^a-zA-Z0-9\u4e00-\u9fa5]"
    )
    return re.sub(pattern, "", app_name or "").strip() or "App"


def parse_version_code(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 1


class ZipTree:
    """
    In-memory view of a zip archive as {member name: bytes}.
    """

    def __init__(self, files: Dict[str, bytes]):
        self.files = files

    @classmethod
    def from_bytes(cls, data: bytes) -> "ZipTree":
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as zf:
                return cls({
                    info.filename: zf.read(info)
                    for info in zf.infolist()
                    if not info.is_dir()
                })
        except zipfile.BadZipFile as e:
            raise BuildError(
                f"Invalid template archive: {e}", BuildErrorType.VALIDATION
            )

    def find_root(self, marker: str) -> Optional[str]:
        """
        Return the prefix under which `marker` lives, searching the
        shallowest match (templates are often wrapped in one folder).
        """
        candidates = [
            name[:-len(marker)] for name in self.files
            if name == marker or name.endswith("/" + marker)
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda p: p.count("/"))

    def exists(self, name: str) -> bool:
        return name in self.files

    def read_text(self, name: str) -> str:
        return self.files[name].decode("utf-8")

    def write_text(self, name: str, text: str) -> None:
        self.files[name] = text.encode("utf-8")

    def read_json(self, name: str) -> dict:
        return json.loads(self.read_text(name))

    def write_json(self, name: str, value: dict) -> None:
        self.write_text(name, json.dumps(value, indent=2, ensure_ascii=False))

    def write_bytes(self, name: str, data: bytes) -> None:
        self.files[name] = data

    def to_bytes(self) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for name in sorted(self.files):
                zf.writestr(name, self.files[name])
        return buffer.getvalue()


class BaseAssembler(ABC):
    """
    Abstract base for platform assemblers.

    Subclasses set `platform` (template key) and implement assemble().
    """

    platform: str = ""

    def load_template(self) -> bytes:
        path = get_template_path(self.platform)
        if not path:
            raise BuildError(
                f"No template configured for platform {self.platform}",
                BuildErrorType.VALIDATION,
            )
        try:
            return download_file(path)
        except FileNotFoundError:
            raise BuildError(
                f"Template not found: {path}", BuildErrorType.STORAGE
            )

    @abstractmethod
    def assemble(
        self,
        build,
        icon: Optional[bytes] = None,
        on_stage: Optional[ProgressCallback] = None,
    ) -> AssemblyResult:
        """
        Produce the installable archive for `build`.

        on_stage is called with stage names (downloading, extracting,
        configuring, ...) so the caller can report progress.
        """
        pass

    @staticmethod
    def _stage(on_stage: Optional[ProgressCallback], stage: str) -> None:
        if on_stage:
            on_stage(stage)


class ZipTemplateAssembler(BaseAssembler):
    """
    Assembler for zip templates: unzip, patch files, inject icon, rezip.

    Subclasses provide `marker` (a file identifying the project root),
    `output_name`, patch() and optionally icon_targets().
    """

    marker: str = ""
    output_name: str = ""

    @abstractmethod
    def patch(self, tree: ZipTree, root: str, build) -> None:
        """
        Apply the build's configuration to the template in place.
        """
        pass

    def icon_targets(self, root: str):
        """
        Archive members the raw icon is written to.
        """
        return []

    def write_privacy_policy(self, tree: ZipTree, path: str, build) -> None:
        if build.privacy_policy:
            tree.write_text(path, build.privacy_policy)

    def assemble(self, build, icon=None, on_stage=None):
        self._stage(on_stage, "downloading")
        template = self.load_template()

        self._stage(on_stage, "extracting")
        tree = ZipTree.from_bytes(template)
        root = tree.find_root(self.marker)
        if root is None:
            raise BuildError(
                f"Invalid template structure: cannot find {self.marker}",
                BuildErrorType.VALIDATION,
            )

        self._stage(on_stage, "configuring")
        self.patch(tree, root, build)

        if icon:
            self._stage(on_stage, "processing_icons")
            for target in self.icon_targets(root):
                tree.write_bytes(target, icon)

        self._stage(on_stage, "packaging")
        return AssemblyResult(self.output_name, tree.to_bytes())
