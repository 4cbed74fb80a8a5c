"""
Entry point discovery for Node.js submissions.

Resolution order (first match wins, order is the tie-break):

1. Conventional files: index.js, server.js, app.js, main.js,
   src/server.js, src/index.js
2. ``main`` declared in package.json, if the file exists
3. ``node <file>.js`` extracted from ``scripts.start``, if the file exists
4. The opaque ``npm start`` when ``scripts.start`` is declared

The conventional file scan always wins over the manifest start script.
"""
import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Tuple, Union

from loguru import logger

from grading.errors import EntryPointNotFound
from grading.models.results import LaunchSpec

CANDIDATE_ENTRY_POINTS: Tuple[str, ...] = (
    "index.js",
    "server.js",
    "app.js",
    "main.js",
    "src/server.js",
    "src/index.js",
)

START_SCRIPT_PATTERN = re.compile(r"\bnode\s+(?:--\S+\s+)*(\S+\.[cm]?js)\b")


@dataclass(frozen=True)
class KnownFile:
    path: str

    def launch_spec(self, resolver: "EntryPointResolver", server_dir: Path, port: int, host: str) -> LaunchSpec:
        return resolver.node_spec(self.path, server_dir, port, host)


@dataclass(frozen=True)
class ManifestMain:
    path: str

    def launch_spec(self, resolver: "EntryPointResolver", server_dir: Path, port: int, host: str) -> LaunchSpec:
        return resolver.node_spec(self.path, server_dir, port, host)


@dataclass(frozen=True)
class ManifestStartScript:
    path: str
    script: str

    def launch_spec(self, resolver: "EntryPointResolver", server_dir: Path, port: int, host: str) -> LaunchSpec:
        return resolver.node_spec(self.path, server_dir, port, host)


@dataclass(frozen=True)
class GenericStartCommand:
    script: str

    def launch_spec(self, resolver: "EntryPointResolver", server_dir: Path, port: int, host: str) -> LaunchSpec:
        return LaunchSpec(
            command=resolver.npm_executable,
            args=("start",),
            cwd=server_dir,
            port=port,
            host=host,
            env=resolver.launch_env(port),
        )


EntryPoint = Union[KnownFile, ManifestMain, ManifestStartScript, GenericStartCommand]


class EntryPointResolver:
    def __init__(
        self,
        manifest_name: str = "package.json",
        node_executable: str = "node",
        npm_executable: str = "npm",
        candidates: Tuple[str, ...] = CANDIDATE_ENTRY_POINTS,
    ):
        self.manifest_name = manifest_name
        self.node_executable = node_executable
        self.npm_executable = npm_executable
        self.candidates = candidates

    def find_entry_point(self, server_dir: Path) -> EntryPoint:
        for candidate in self.candidates:
            if (server_dir / candidate).is_file():
                logger.debug("entry_point_found", server_dir=str(server_dir), entry_point=candidate)
                return KnownFile(path=candidate)

        manifest_path = server_dir / self.manifest_name
        if not manifest_path.is_file():
            raise EntryPointNotFound(f"entry_point_not_found: no candidate file and no {self.manifest_name} in {server_dir}")

        manifest = self._read_manifest(manifest_path)

        main = manifest.get("main")
        if isinstance(main, str) and main and (server_dir / main).is_file():
            logger.debug("entry_point_from_manifest_main", server_dir=str(server_dir), entry_point=main)
            return ManifestMain(path=main)

        scripts = manifest.get("scripts")
        start_script = scripts.get("start") if isinstance(scripts, dict) else None
        if isinstance(start_script, str) and start_script.strip():
            match = START_SCRIPT_PATTERN.search(start_script)
            if match and (server_dir / match.group(1)).is_file():
                logger.debug("entry_point_from_start_script", server_dir=str(server_dir), entry_point=match.group(1))
                return ManifestStartScript(path=match.group(1), script=start_script)

            logger.debug("entry_point_generic_start", server_dir=str(server_dir), script=start_script)
            return GenericStartCommand(script=start_script)

        raise EntryPointNotFound(f"entry_point_not_found: {self.manifest_name} declares no usable main or start script")

    def resolve(self, server_dir: Path, port: int, host: str = "localhost") -> LaunchSpec:
        entry_point = self.find_entry_point(server_dir)
        spec = entry_point.launch_spec(self, server_dir, port, host)
        logger.info(
            "entry_point_resolved",
            server_dir=str(server_dir),
            variant=type(entry_point).__name__,
            command=" ".join(spec.argv),
        )
        return spec

    def node_spec(self, path: str, server_dir: Path, port: int, host: str) -> LaunchSpec:
        return LaunchSpec(
            command=self.node_executable,
            args=(path,),
            cwd=server_dir,
            port=port,
            host=host,
            env=self.launch_env(port),
        )

    def launch_env(self, port: int) -> Tuple[Tuple[str, str], ...]:
        return (("PORT", str(port)),)

    def _read_manifest(self, manifest_path: Path) -> Dict:
        try:
            data = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise EntryPointNotFound(f"manifest_unreadable: {manifest_path}: {e}") from e
        if not isinstance(data, dict):
            raise EntryPointNotFound(f"manifest_unreadable: {manifest_path}: not a JSON object")
        return data
