import re
from pathlib import Path
from typing import List, Optional

import pandas as pd
from loguru import logger

from grading.errors import RosterError
from grading.models.results import Submission

ID_COLUMNS = ("ID", "Id", "id", "student_id")
NAME_COLUMNS = ("NOM Prénom", "NOM", "Nom", "Name", "name", "student_name")


def _repo_name(url: str) -> str:
    name = url.rstrip("/").rsplit("/", 1)[-1]
    return name[:-4] if name.endswith(".git") else name


def _slug(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]+", "-", value).strip("-") or "submission"


def _find_github_column(df: pd.DataFrame) -> Optional[str]:
    for column in df.columns:
        label = str(column).lower()
        if "github" in label or "http" in label:
            return column
    # Header gives no hint: look for URLs in the values
    for column in df.columns:
        values = df[column].astype(str)
        if values.str.contains("github.com", regex=False).any():
            return column
    return None


def _first_present(row: pd.Series, columns) -> str:
    for column in columns:
        if column in row.index and str(row[column]).strip():
            return str(row[column]).strip()
    return ""


def load_roster(csv_path: Path, repos_path: Path) -> List[Submission]:
    """
    Read a roster CSV and return one submission per row with a GitHub URL.

    Each submission's source directory is ``repos_path/<repo name>``; it is
    populated by ``SubmissionManager.clone_repository``.
    """
    csv_path = Path(csv_path)
    if not csv_path.is_file():
        raise RosterError(f"roster_not_found: {csv_path}")

    df = pd.read_csv(csv_path, dtype=str, keep_default_na=False, encoding="utf-8-sig", skip_blank_lines=True)
    df.columns = [str(column).strip() for column in df.columns]
    if df.empty:
        raise RosterError(f"roster_empty: {csv_path}")

    github_column = _find_github_column(df)
    if github_column is None:
        raise RosterError(f"github_column_not_found: columns={list(df.columns)}")

    submissions: List[Submission] = []
    seen = set()
    for _, row in df.iterrows():
        url = str(row[github_column]).strip()
        if not url or "github" not in url:
            continue
        repo_name = _slug(_repo_name(url))
        submission_id = _first_present(row, ID_COLUMNS) or repo_name
        if submission_id in seen:
            logger.warning("roster_duplicate", submission_id=submission_id, url=url)
            continue
        seen.add(submission_id)
        submissions.append(
            Submission(
                id=submission_id,
                name=_first_present(row, NAME_COLUMNS) or repo_name,
                source_dir=Path(repos_path) / _slug(f"{submission_id}-{repo_name}"),
                repository_url=url,
            )
        )

    logger.info("roster_loaded", path=str(csv_path), rows=len(df), submissions=len(submissions), github_column=github_column)
    return submissions


def discover_submissions(directory: Path) -> List[Submission]:
    """Treat every sub-directory of ``directory`` as an already checked-out submission."""
    directory = Path(directory)
    if not directory.is_dir():
        raise RosterError(f"submissions_directory_not_found: {directory}")

    submissions = [
        Submission(id=path.name, name=path.name, source_dir=path)
        for path in sorted(directory.iterdir())
        if path.is_dir() and not path.name.startswith(".")
    ]
    logger.info("submissions_discovered", directory=str(directory), submissions=len(submissions))
    return submissions
