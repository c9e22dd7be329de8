"""
Path Resolver

Resolves mention values to concrete paths inside the vault. All lookups
return None when the target does not exist; listings are sorted.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional

from ..common.config import AGENTS_DIR, COMMANDS_DIR, INTEGRATIONS_DIR, SPARK_DIR

logger = logging.getLogger("spark.context.path_resolver")

SEARCH_IGNORE = {"node_modules", ".git", ".obsidian"}
VAULT_IGNORE = SEARCH_IGNORE | {SPARK_DIR}


def _ignored(path: Path, root: Path, ignore: Iterable[str]) -> bool:
    parts = path.relative_to(root).parts
    return any(part in ignore for part in parts[:-1])


def _walk_markdown(root: Path, ignore: Iterable[str]) -> List[str]:
    try:
        files = [
            str(path)
            for path in root.rglob("*.md")
            if path.is_file() and not _ignored(path, root, ignore)
        ]
    except OSError as e:
        logger.warning("Failed to list markdown files under %s: %s", root, e)
        return []
    return sorted(files)


class PathResolver:
    """Maps agent, file, folder, command and service names to vault paths"""

    def __init__(self, vault_path):
        self.vault_path = Path(vault_path)

    @property
    def spark_dir(self) -> Path:
        return self.vault_path / SPARK_DIR

    def resolve_agent(self, name: str) -> Optional[str]:
        path = self.spark_dir / AGENTS_DIR / f"{name}.md"
        return str(path) if path.is_file() else None

    def resolve_command(self, name: str) -> Optional[str]:
        path = self.spark_dir / COMMANDS_DIR / f"{name}.md"
        return str(path) if path.is_file() else None

    def resolve_service(self, name: str) -> Optional[str]:
        path = self.spark_dir / INTEGRATIONS_DIR / name / "config.yaml"
        return str(path) if path.is_file() else None

    def resolve_file(self, filename: str) -> Optional[str]:
        """Exact vault-relative path first, then the first basename match in sorted order"""
        exact = self.vault_path / filename
        if exact.is_file():
            return str(exact)

        name = os.path.basename(filename)
        try:
            matches = sorted(
                str(path)
                for path in self.vault_path.rglob(name)
                if path.is_file() and not _ignored(path, self.vault_path, SEARCH_IGNORE)
            )
        except OSError as e:
            logger.warning("File search for %s failed: %s", filename, e)
            return None

        return matches[0] if matches else None

    def resolve_folder(self, folder: str) -> Optional[str]:
        path = self.vault_path / folder
        return str(path) if path.is_dir() else None

    def get_files_in_folder(self, folder_path: str) -> List[str]:
        """Markdown files anywhere under a resolved folder"""
        return _walk_markdown(Path(folder_path), {"node_modules", ".git"})

    def get_all_vault_files(self) -> List[str]:
        """Every markdown file in the vault outside tool directories"""
        return _walk_markdown(self.vault_path, VAULT_IGNORE)
