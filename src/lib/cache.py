"""
Parsed-component cache

Component files are parsed once and reused across renders until the
embedding application calls invalidate() (e.g. from a file watcher).
Parsing happens outside the lock; when two threads race on the same
path the first stored Component wins and both get that one.
"""

import threading
from pathlib import Path
from typing import Dict, Optional, Union

from ..models.component import Component
from .log import LOG
from .parser import parse


class ComponentCache:
    """Thread-safe path -> Component map"""

    def __init__(self) -> None:
        self._entries: Dict[Path, Component] = {}
        self._lock = threading.Lock()

    def get(self, path: Union[str, Path]) -> Optional[Component]:
        with self._lock:
            return self._entries.get(Path(path))

    def get_or_parse(self, path: Union[str, Path]) -> Component:
        """
        Return the cached Component for path, reading and parsing it on a miss

        Raises:
            OSError: If the file cannot be read
            UnicodeDecodeError: If the file is not valid UTF-8
        """
        key = Path(path)
        cached = self.get(key)
        if cached is not None:
            return cached

        source = key.read_text(encoding='utf-8')
        component = parse(source)
        with self._lock:
            component = self._entries.setdefault(key, component)
        LOG(f"Parsed and cached {key}", level=3)
        return component

    def invalidate(self, path: Optional[Union[str, Path]] = None) -> None:
        """Drop one cached path, or everything when path is None"""
        with self._lock:
            if path is None:
                self._entries.clear()
            else:
                self._entries.pop(Path(path), None)
