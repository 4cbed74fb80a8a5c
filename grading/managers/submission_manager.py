import shutil
import subprocess
from pathlib import Path
from typing import Optional

from loguru import logger

from grading.errors import MissingManifest, MissingServerDirectory
from grading.models.results import Submission


class SubmissionManager:
    """Locates, validates and prepares a submission's server directory."""

    def __init__(
        self,
        server_dir_name: str = "backend",
        manifest_name: str = "package.json",
        npm_executable: str = "npm",
        clone_timeout: int = 120,
        install_timeout: int = 300,
    ):
        self.server_dir_name = server_dir_name
        self.manifest_name = manifest_name
        self.npm_executable = npm_executable
        self.clone_timeout = clone_timeout
        self.install_timeout = install_timeout

    def server_dir(self, submission: Submission) -> Path:
        return Path(submission.source_dir) / self.server_dir_name

    def validate_structure(self, submission: Submission) -> Path:
        source_dir = Path(submission.source_dir)
        if not source_dir.is_dir():
            raise MissingServerDirectory(f"repository_not_found: {source_dir}")

        server_dir = self.server_dir(submission)
        if not server_dir.is_dir():
            raise MissingServerDirectory(f"server_directory_not_found: {self.server_dir_name}/ missing in {source_dir}")

        if not (server_dir / self.manifest_name).is_file():
            raise MissingManifest(f"manifest_not_found: {self.manifest_name} missing in {server_dir}")

        logger.debug("submission_structure_valid", submission_id=submission.id, server_dir=str(server_dir))
        return server_dir

    def clone_repository(self, submission: Submission) -> Path:
        clone_path = Path(submission.source_dir)
        if clone_path.exists():
            logger.info("repository_exists", submission_id=submission.id, path=str(clone_path))
            return clone_path
        if not submission.repository_url:
            raise ValueError(f"no_repository_url: {submission.id}")

        clone_path.parent.mkdir(parents=True, exist_ok=True)
        result = subprocess.run(
            ["git", "clone", "--depth", "1", submission.repository_url, str(clone_path)],
            capture_output=True,
            text=True,
            timeout=self.clone_timeout,
        )
        if result.returncode != 0:
            raise ValueError(f"clone_failed: {result.stderr.strip()}")

        logger.info("repository_cloned", submission_id=submission.id, url=submission.repository_url)
        return clone_path

    def install_dependencies(self, server_dir: Path) -> bool:
        if (server_dir / "node_modules").is_dir():
            logger.debug("dependencies_present", server_dir=str(server_dir))
            return False

        npm = shutil.which(self.npm_executable)
        if npm is None:
            raise ValueError(f"command_not_found: {self.npm_executable}")

        result = subprocess.run(
            [npm, "install"],
            cwd=server_dir,
            capture_output=True,
            text=True,
            timeout=self.install_timeout,
        )
        if result.returncode != 0:
            raise ValueError(f"install_failed: {result.stderr.strip()[-2000:]}")

        logger.info("dependencies_installed", server_dir=str(server_dir))
        return True

    def prepare(self, submission: Submission) -> Optional[str]:
        """Clone and install; returns an error message instead of raising."""
        try:
            self.clone_repository(submission)
            server_dir = self.validate_structure(submission)
            self.install_dependencies(server_dir)
            return None
        except (ValueError, MissingServerDirectory, MissingManifest) as e:
            logger.warning("submission_prepare_failed", submission_id=submission.id, error=str(e))
            return str(e)
        except subprocess.TimeoutExpired as e:
            logger.warning("submission_prepare_timeout", submission_id=submission.id, command=str(e.cmd))
            return f"timeout: {e.cmd}"
