"""File-system asset index."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

BUNDLED_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


class FileSystemAssetIndex:
    """AssetIndex that searches a set of directories by file name.

    Results are cached per name until refresh() is called. Search roots are
    tried in order, so project-local templates shadow the bundled ones.
    """

    def __init__(self, project_root: Path, extra_roots: list[Path] | None = None) -> None:
        """Initialize the index.

        Args:
            project_root: Unity project root (its Assets/ and Packages/ are searched)
            extra_roots: Further directories searched after the project
        """
        self.project_root = project_root
        self.roots = [project_root / "Assets", project_root / "Packages"]
        self.roots.extend(extra_roots if extra_roots is not None else [BUNDLED_TEMPLATES_DIR])
        self._cache: dict[str, list[Path]] = {}

    def find_assets(self, name: str) -> list[Path]:
        if name not in self._cache:
            matches: list[Path] = []
            for root in self.roots:
                if root.is_dir():
                    matches.extend(sorted(p for p in root.rglob(name) if p.is_file()))
            logger.debug("Asset lookup %s: %d match(es)", name, len(matches))
            self._cache[name] = matches
        return list(self._cache[name])

    def refresh(self) -> None:
        self._cache.clear()
