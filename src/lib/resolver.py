"""
Component resolver

Maps a capitalized component tag name to the file that defines it.

Lookup order for ComponentResolver.resolve(name):
1. Memoized result of an earlier resolve()
2. Explicit component import (alias -> declared path) of the current file
3. ComponentIndex: name -> path, built once per base directory
4. Sibling file next to the current file: <dir>/<name><extension>

The index is shared (read-only after it is built) between all renders on
a Compiler. Each compiled component gets its own ComponentResolver, so
the "current file" and explicit imports never leak between concurrent
renders.
"""

import os
import re
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..config import appsettings, AppSettings
from ..models.component import Import
from .errors import ResolveError
from .log import LOG

component_ref_regex = re.compile(r'<([A-Z]\w*)')


class ComponentIndex:
    """
    Lazily built name -> path index of every component under a base directory

    Directories named in settings.index_exclude_dirs and hidden directories
    are skipped. When two files share a basename the first one found wins;
    the walk visits directories in sorted order so the winner is stable.
    """

    def __init__(self, base_dir: Path, settings: AppSettings = appsettings) -> None:
        self.base_dir = Path(base_dir)
        self.settings = settings
        self._entries: Optional[Dict[str, Path]] = None
        self._lock = threading.Lock()

    def entries_get(self) -> Dict[str, Path]:
        with self._lock:
            if self._entries is None:
                self._entries = self.index_build()
            return self._entries

    def index_build(self) -> Dict[str, Path]:
        entries: Dict[str, Path] = {}
        excluded = set(self.settings.index_exclude_dirs)
        extension = self.settings.component_extension

        for root, dirs, files in os.walk(self.base_dir):
            dirs[:] = sorted(d for d in dirs if d not in excluded and not d.startswith('.'))
            for filename in sorted(files):
                if not filename.endswith(extension):
                    continue
                name = filename[:-len(extension)]
                if name in entries:
                    LOG(f"Duplicate component {name} at {Path(root) / filename} ignored", level=2)
                    continue
                entries[name] = Path(root) / filename

        LOG(f"Indexed {len(entries)} components under {self.base_dir}", level=2)
        return entries

    def lookup(self, name: str) -> Optional[Path]:
        return self.entries_get().get(name)

    def invalidate(self) -> None:
        """Forget the index; the next lookup rescans the base directory"""
        with self._lock:
            self._entries = None


class ComponentResolver:
    """
    Per-component resolution context

    Holds the file currently being compiled and its explicit component
    imports, and memoizes every successful resolution.

    Example:
        >>> resolver = ComponentResolver(base, index, current_file=base / "pages/index.gxc")
        >>> resolver.resolve("Card")
        PosixPath('.../components/Card.gxc')
    """

    def __init__(
        self,
        base_dir: Path,
        index: Optional[ComponentIndex] = None,
        current_file: Optional[Path] = None,
        imports: Iterable[Import] = (),
        settings: AppSettings = appsettings,
    ) -> None:
        self.base_dir = Path(base_dir)
        self.settings = settings
        self.index = index if index is not None else ComponentIndex(self.base_dir, settings)
        self.current_file = Path(current_file) if current_file else None
        self.explicitPaths: Dict[str, str] = {}
        self.cache: Dict[str, Path] = {}
        self.imports_register(imports)

    def imports_register(self, imports: Iterable[Import]) -> None:
        """Record the component imports (uppercase aliases) of the current file"""
        for imp in imports:
            if imp.isComponent:
                self.explicitPaths[imp.alias] = imp.path

    def resolve(self, name: str) -> Path:
        """
        Resolve a component tag name to a file path

        Raises:
            ResolveError: Explicit import path missing, or name not found anywhere
        """
        if name in self.cache:
            return self.cache[name]

        if name in self.explicitPaths:
            path = self.importPath_resolve(self.explicitPaths[name])
        else:
            path = self.index.lookup(name)
            if path is None:
                path = self.sibling_find(name)
            if path is None:
                raise ResolveError(f"component {name} not found in {self.base_dir}")

        LOG(f"Resolved {name} -> {path}", level=3)
        self.cache[name] = path
        return path

    def importPath_resolve(self, import_path: str) -> Path:
        """
        Resolve an explicit import path

        ./x and ../x are relative to the current file, @/x and bare paths
        relative to the base directory.
        """
        if import_path.startswith(('./', '../')):
            if self.current_file is None:
                raise ResolveError(f"relative import {import_path} requires a current file")
            resolved = self.current_file.parent / import_path
        elif import_path.startswith(self.settings.root_alias):
            resolved = self.base_dir / import_path[len(self.settings.root_alias):]
        else:
            resolved = self.base_dir / import_path

        if not resolved.is_file():
            raise ResolveError(f"import path not found: {import_path}")
        return Path(os.path.normpath(resolved))

    def sibling_find(self, name: str) -> Optional[Path]:
        if self.current_file is None:
            return None
        candidate = self.current_file.parent / f"{name}{self.settings.component_extension}"
        return candidate if candidate.is_file() else None


def componentRefs_extract(template: str) -> List[str]:
    """
    Distinct component tag names referenced by a template, in first-use order

    Example:
        >>> componentRefs_extract('<Card><Button/></Card><Card/>')
        ['Card', 'Button']
    """
    refs: List[str] = []
    for match in component_ref_regex.finditer(template):
        if match.group(1) not in refs:
            refs.append(match.group(1))
    return refs
