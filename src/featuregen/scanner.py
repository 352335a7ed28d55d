"""
Application scanner plugins.

A scanner inspects the compiled application and recommends features. It is
shipped separately and loaded at run time from one of:

- ``package.module:callable``
- ``path/to/scanner.py:callable``
- the name of an entry point in the ``featuregen.scanners`` group

The callable is invoked as
``scan(classes_dirs, ee_level, mp_level, current_features, locale)`` and
returns an iterable of feature identifiers. A scanner that cannot be loaded
or fails while scanning is reported as unavailable, never as an error.
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
from dataclasses import dataclass, field
from importlib.metadata import entry_points
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Protocol, Set, Union

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "featuregen.scanners"

ScanFunction = Callable[..., Iterable[str]]


@dataclass
class ScanRequest:
    """Arguments handed to a scanner."""

    classes_dirs: List[str] = field(default_factory=list)
    ee_level: Optional[str] = None
    mp_level: Optional[str] = None
    current_features: List[str] = field(default_factory=list)
    locale: Optional[str] = None


class FeatureScanner(Protocol):
    def scan(self, request: ScanRequest) -> Optional[Set[str]]:
        """Return recommended features, or None when no result is available."""
        ...


class ScannerLoadError(Exception):
    """Raised when a scanner plugin target cannot be resolved."""
    pass


def _load_from_file(path: Path, attribute: str) -> ScanFunction:
    spec = importlib.util.spec_from_file_location(f"featuregen_scanner_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise ScannerLoadError(f"Cannot load scanner module from {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return getattr(module, attribute)


def _load_from_entry_point(name: str) -> ScanFunction:
    for entry_point in entry_points(group=ENTRY_POINT_GROUP):
        if entry_point.name == name:
            return entry_point.load()
    raise ScannerLoadError(f"No scanner entry point named {name!r} in {ENTRY_POINT_GROUP}")


def load_scan_function(target: str) -> ScanFunction:
    """
    Resolve a scanner target to its callable.

    Raises:
        ScannerLoadError: The target names nothing loadable
        ImportError, AttributeError, OSError: Loading the module failed
    """
    if ":" not in target:
        func = _load_from_entry_point(target)
    else:
        module_ref, _, attribute = target.rpartition(":")
        if module_ref.endswith(".py"):
            func = _load_from_file(Path(module_ref), attribute)
        else:
            func = getattr(importlib.import_module(module_ref), attribute)
    if not callable(func):
        raise ScannerLoadError(f"Scanner target {target!r} is not callable")
    return func


class PluginScanner:
    """Scanner backed by a dynamically loaded callable."""

    def __init__(self, target: Union[str, ScanFunction]):
        self.target = target
        self._func: Optional[ScanFunction] = None if isinstance(target, str) else target

    def _resolve(self) -> Optional[ScanFunction]:
        if self._func is None:
            try:
                self._func = load_scan_function(self.target)
            except (ScannerLoadError, ImportError, AttributeError, OSError, SyntaxError) as e:
                logger.error("Unable to load the binary scanner %s: %s", self.target, e)
                return None
        return self._func

    def scan(self, request: ScanRequest) -> Optional[Set[str]]:
        func = self._resolve()
        if func is None:
            return None
        if not request.classes_dirs:
            logger.debug("Error collecting list of directories to send to binary scanner, list is empty.")
            return None
        logger.debug("The following messages are from the application binary scanner used to generate Liberty features")
        try:
            features = func(
                list(request.classes_dirs),
                request.ee_level,
                request.mp_level,
                list(request.current_features),
                request.locale,
            )
            result = set()
            for feature in features or ():
                if isinstance(feature, str):
                    result.add(feature)
                else:
                    logger.debug("Ignoring scanned feature that is not a string: %r", feature)
        except Exception as e:
            logger.error("Exception: %s", type(e).__name__)
            if e.__cause__ is not None:
                logger.warning("Caused by exception: %s", type(e.__cause__).__name__)
                logger.warning("Caused by exception message: %s", e.__cause__)
            logger.error("%s", e)
            return None
        logger.debug("End of messages from application binary scanner. Features recommended: %s", sorted(result))
        return result


def run_scanner(scanner: Optional[FeatureScanner], request: ScanRequest) -> Optional[Set[str]]:
    """Invoke ``scanner``; a missing scanner or any failure yields None."""
    if scanner is None:
        logger.debug("Unable to find the binary scanner")
        return None
    try:
        return scanner.scan(request)
    except Exception as e:
        logger.warning("Binary scanner failed, continuing without scanned features: %s", e)
        return None


def classes_directories(paths: Iterable[Union[str, Path]]) -> List[str]:
    """
    Return the existing build output directories as absolute paths.

    Order is kept and duplicates are dropped. Directories that do not exist
    (modules without Java sources) are skipped.
    """
    dirs: List[str] = []
    for path in paths:
        candidate = Path(path).expanduser()
        if not candidate.is_dir():
            continue
        try:
            resolved = str(candidate.resolve())
        except OSError:
            resolved = str(candidate.absolute())
            logger.debug("OSError obtaining canonical path for classes directory %s", resolved)
        if resolved not in dirs:
            dirs.append(resolved)
            logger.debug("Found dir: %s", resolved)
    return dirs
