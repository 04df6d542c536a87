"""
Include/load resolution.

``include`` copies a group's steps into a scenario, expanding includes nested
in groups along the way. ``load`` runs the whole pipeline on another file.
Both keep their in-progress state on a ParseContext that lives for a single
top-level parse, so independent parses never share it.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .errors import (
    IncludeCycle,
    Location,
    LoadCycle,
    ScriptError,
    UnknownGroup,
    UnresolvedLoad,
)
from .model import Group, IncludeRef, ScenarioSet, Step
from .options import ParseOptions

logger = logging.getLogger(__name__)


def expand_group(
    groups: Dict[str, Group],
    name: str,
    origin: Location,
    expanding: Tuple[str, ...] = (),
) -> List[Step]:
    """Deep copies of every step of group ``name``, nested includes expanded"""
    if name in expanding:
        raise IncludeCycle(list(expanding) + [name], origin.line, origin.column).locate(origin.path)

    group = groups.get(name)
    if group is None:
        raise UnknownGroup(name, origin.line, origin.column).locate(origin.path)

    logger.debug("expanding group %s (%d items)", name, len(group.items))
    steps: List[Step] = []
    for item in group.items:
        if isinstance(item, IncludeRef):
            nested = Location(item.path, item.line, item.column, via="included from")
            try:
                steps.extend(expand_group(groups, item.name, nested, expanding + (name,)))
            except ScriptError as exc:
                raise exc.add_frame(origin)
        else:
            steps.append(copy.deepcopy(item))
    return steps


class ParseContext:
    """State for one top-level parse: options and the files being loaded"""

    def __init__(self, options: Optional[ParseOptions] = None):
        self.options = options or ParseOptions()
        self.loading: List[Path] = []

    def parse_source(self, source: str, path: Optional[Path] = None) -> ScenarioSet:
        """Scan, classify and build one script"""
        from .builder import ScenarioBuilder  # local import to avoid cycle

        display = str(path) if path is not None else None
        if path is not None:
            self.loading.append(path)
        try:
            return ScenarioBuilder(self, path).build(source)
        except ScriptError as exc:
            raise exc.locate(display)
        finally:
            if path is not None:
                self.loading.pop()

    def resolve_path(self, target: str, current: Optional[Path]) -> Path:
        if current is not None:
            base = current.parent
        else:
            base = self.options.base_dir or Path.cwd()
        return (base / target).resolve()

    def load(self, target: str, origin: Location, current: Optional[Path]) -> ScenarioSet:
        resolved = self.resolve_path(target, current)

        if resolved in self.loading:
            start = self.loading.index(resolved)
            chain = [str(p) for p in self.loading[start:]] + [str(resolved)]
            raise LoadCycle(chain, origin.line, origin.column)

        try:
            source = self.options.read_file(resolved, self.options.encoding)
        except OSError as exc:
            logger.debug("cannot read %s: %s", resolved, exc)
            raise UnresolvedLoad(target, origin.line, origin.column) from exc
        except UnicodeDecodeError as exc:
            reason = f"not valid {self.options.encoding} text"
            raise UnresolvedLoad(target, origin.line, origin.column, reason=reason) from exc

        logger.info("loading %s", resolved)
        try:
            return self.parse_source(source, resolved)
        except ScriptError as exc:
            raise exc.add_frame(origin)
