"""
Component tag registry owned by the rendering sandbox.

Mirrors the browser's custom-element registry with the guard the generated
artifact uses: a tag is defined once, later definitions of the same tag are
ignored.
"""

from typing import Dict, List, Optional

from studio.core import get_logger

log = get_logger("registry")


class ComponentRegistry:
    def __init__(self):
        self._definitions: Dict[str, str] = {}

    def register(self, tag: str, class_name: str) -> bool:
        """Register-if-absent. Returns True only when the tag was newly defined."""
        if tag in self._definitions:
            log.debug(f"Tag {tag} already defined as {self._definitions[tag]}")
            return False
        self._definitions[tag] = class_name
        log.info(f"Defined {tag} -> {class_name}")
        return True

    def get(self, tag: str) -> Optional[str]:
        return self._definitions.get(tag)

    def is_registered(self, tag: str) -> bool:
        return tag in self._definitions

    def tags(self) -> List[str]:
        return sorted(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, tag: str) -> bool:
        return self.is_registered(tag)
