"""File discovery for batch conversion"""

from pathlib import Path
from typing import List


class TextureScanner:
    """Finds .tex files under a directory, with optional path filters"""

    def __init__(self, path_whitelist: List[str] = None, path_blacklist: List[str] = None):
        """
        Args:
            path_whitelist: Path components that MUST be present (e.g., ["images"])
            path_blacklist: Path components to exclude (e.g., ["minimap"])
        """
        self.path_whitelist = [p.lower() for p in (path_whitelist or [])]
        self.path_blacklist = [p.lower() for p in (path_blacklist or [])]

    def should_process_path(self, path: Path) -> bool:
        """Check a path against the whitelist (all required) and blacklist (none allowed)"""
        path_parts = [p.lower() for p in path.parts]

        for required in self.path_whitelist:
            if not any(required in part for part in path_parts):
                return False

        for blocked in self.path_blacklist:
            if any(blocked in part for part in path_parts):
                return False

        return True

    def find_textures(self, input_dir: Path, patterns: List[str] = None) -> List[Path]:
        """
        Find texture files under input_dir.

        Suffix matching is case-insensitive, so "*.tex" also finds "FOO.TEX"
        on case-sensitive file systems.

        Args:
            input_dir: Root directory to search
            patterns: Suffix patterns like "*.tex" (default: ["*.tex"])

        Returns:
            Sorted list of matching paths
        """
        input_dir = Path(input_dir)
        suffixes = [p.lstrip('*').lower() for p in (patterns or ["*.tex"])]

        found = set()
        for candidate in input_dir.rglob('*'):
            if not candidate.is_file():
                continue
            if not any(candidate.name.lower().endswith(s) for s in suffixes):
                continue
            # Filter on the part below input_dir only
            if self.should_process_path(candidate.relative_to(input_dir)):
                found.add(candidate)

        return sorted(found)
