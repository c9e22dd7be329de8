"""
Proximity Calculator

Ranks documents by directory-tree hop distance. Same directory is 0; every
level up or down adds one.
"""

import os
from typing import Dict, List


class ProximityCalculator:

    def calculate_distance(self, file1: str, file2: str) -> int:
        dir1 = os.path.dirname(file1)
        dir2 = os.path.dirname(file2)
        if dir1 == dir2:
            return 0

        relative = os.path.relpath(dir2, dir1)
        return len([seg for seg in relative.split(os.sep) if seg and seg != "."])

    def rank_files_by_proximity(self, current_file: str, files: List[str]) -> List[str]:
        """Closest first; ties broken by path so output is deterministic"""
        ranked = [
            (self.calculate_distance(current_file, path), path)
            for path in files
            if path != current_file
        ]
        ranked.sort()
        return [path for _, path in ranked]

    def get_files_within_distance(self, current_file: str, files: List[str], max_distance: int) -> List[str]:
        return [
            path
            for path in self.rank_files_by_proximity(current_file, files)
            if self.calculate_distance(current_file, path) <= max_distance
        ]

    def group_files_by_distance(self, current_file: str, files: List[str]) -> Dict[int, List[str]]:
        grouped: Dict[int, List[str]] = {}
        for path in files:
            if path == current_file:
                continue
            grouped.setdefault(self.calculate_distance(current_file, path), []).append(path)
        return grouped
