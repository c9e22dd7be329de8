"""
Frontmatter Parser

Extracts YAML front-matter and tracks per-file changes between saves.
"""

import logging
import re
from typing import Any, Dict, List, Tuple

import yaml

from .types import FrontmatterChange

logger = logging.getLogger("spark.parser.frontmatter")

_FRONTMATTER = re.compile(r"^---\s*\n(.*?)\n---\s*\n?", re.DOTALL)


def split_frontmatter(content: str) -> Tuple[Dict[str, Any], str]:
    """
    Split markdown into (front-matter mapping, body).

    Best-effort: a missing block, malformed YAML or a non-mapping document
    all yield an empty mapping. The body is returned without the block
    whenever the delimiters are present.
    """
    match = _FRONTMATTER.match(content)
    if not match:
        return {}, content

    body = content[match.end():]
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        logger.debug("Invalid front-matter ignored: %s", e)
        return {}, body

    if not isinstance(data, dict):
        return {}, body
    return data, body


def values_equal(a: Any, b: Any) -> bool:
    """Deep structural equality (lists element-wise, mappings key-wise)"""
    if a is None or b is None:
        return a is None and b is None
    # True == 1 in Python; YAML distinguishes them
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, dict) and isinstance(b, dict):
        if a.keys() != b.keys():
            return False
        return all(values_equal(a[key], b[key]) for key in a)
    if isinstance(a, (list, dict)) or isinstance(b, (list, dict)):
        return False
    return a == b


class FrontmatterParser:
    """
    Parses front-matter and diffs it against the last snapshot per path.

    The cache lives for the life of the process and is overwritten on every
    detect_changes call, so the first observation of a file reports every
    field as changed from None.
    """

    def __init__(self):
        self._cache: Dict[str, Dict[str, Any]] = {}

    def extract_frontmatter(self, content: str) -> Dict[str, Any]:
        return split_frontmatter(content)[0]

    def get_content(self, content: str) -> str:
        """Content without the front-matter block"""
        return split_frontmatter(content)[1]

    def detect_changes(self, path: str, content: str) -> List[FrontmatterChange]:
        new = self.extract_frontmatter(content)
        old = self._cache.get(path, {})
        changes: List[FrontmatterChange] = []

        for field_name, new_value in new.items():
            old_value = old.get(field_name)
            if not values_equal(old_value, new_value):
                changes.append(FrontmatterChange(field_name, old_value, new_value))

        for field_name, old_value in old.items():
            if field_name not in new:
                changes.append(FrontmatterChange(field_name, old_value, None))

        self._cache[path] = new
        return changes

    def clear_cache(self, path: str) -> None:
        self._cache.pop(path, None)

    def clear_all_cache(self) -> None:
        self._cache.clear()
