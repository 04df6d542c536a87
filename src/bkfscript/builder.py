"""
Scenario/group builder

Walks classified statements with a stack of open blocks keyed by depth and
assembles the ScenarioSet: global scope, groups, scenarios and their steps.
"""

from __future__ import annotations

import copy
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Set, Union

from lark import Tree

from .classifier import STEP_KEYWORDS, Statement, classify
from .errors import Location, ParseError
from .model import (
    Binding,
    Config,
    Group,
    IncludeRef,
    Param,
    Scenario,
    ScenarioSet,
    Step,
    StepKind,
)
from .resolver import ParseContext, expand_group
from .scanner import scan
from .tree import call_args, call_name, raw_text, tree_label, variable_refs

logger = logging.getLogger(__name__)

# Settings shared by every level
CONFIG_KEYWORDS = frozenset({
    "auth", "header", "blackfire", "follow_redirects", "warmup", "samples", "wait",
})
STEP_SETTING_KEYWORDS = CONFIG_KEYWORDS | {"name", "method", "body", "param", "json", "expect", "set"}

WARMUP_LITERALS = ("true", "false", "'auto'")
_INTEGER_RE = re.compile(r'\d+$')

Node = Union[Scenario, Group, Step]


@dataclass
class Frame:
    """An open block: the statement depth it sits at and what it builds"""

    depth: int
    node: Node
    scenario: Optional[Scenario] = None
    # names bound before the step opened (scenario frames: names bound so far)
    visible: Set[str] = field(default_factory=set)


class ScenarioBuilder:
    def __init__(self, context: ParseContext, path: Optional[Path] = None):
        self.context = context
        self.path = path
        self.display_path = str(path) if path is not None else None
        self.result = ScenarioSet()
        self.stack: List[Frame] = []

    # ========================================================================
    # Driver
    # ========================================================================

    def build(self, source: str) -> ScenarioSet:
        for scan_line in scan(source, indent_unit=self.context.options.indent_unit):
            self.add(classify(scan_line))

        while self.stack:
            self.close(self.stack.pop())
        return self.result

    def add(self, stmt: Statement) -> None:
        while self.stack and self.stack[-1].depth >= stmt.depth:
            self.close(self.stack.pop())

        parent = self.stack[-1] if self.stack else None
        expected_depth = parent.depth + 1 if parent is not None else 0
        if stmt.depth != expected_depth:
            raise ParseError(f"Unexpected indentation before '{stmt.keyword}'", stmt.line, stmt.column)

        if parent is None:
            frame = self.root_statement(stmt)
        elif isinstance(parent.node, Scenario):
            frame = self.scenario_statement(parent, stmt)
        elif isinstance(parent.node, Group):
            frame = self.group_statement(parent, stmt)
        else:
            self.step_statement(parent, stmt)
            frame = None

        if frame is not None:
            self.stack.append(frame)

    def close(self, frame: Frame) -> None:
        if not isinstance(frame.node, Step) or frame.scenario is None:
            return
        step = frame.node
        self.check_forward_refs(step, frame.visible)
        scenario_frame = self.stack[-1] if self.stack else None
        if scenario_frame is not None:
            scenario_frame.visible.update(b.name for b in step.sets)

    def not_allowed(self, stmt: Statement, where: str) -> ParseError:
        return ParseError(f"'{stmt.keyword}' is not allowed {where}", stmt.line, stmt.column)

    def location(self, stmt: Statement, via: str = "loaded from") -> Location:
        return Location(self.display_path, stmt.line, stmt.column, via=via)

    # ========================================================================
    # Root
    # ========================================================================

    def root_statement(self, stmt: Statement) -> Optional[Frame]:
        kw = stmt.keyword
        result = self.result

        if kw == "set":
            result.bindings[stmt.name] = stmt.expr
        elif kw == "endpoint":
            result.bindings["endpoint"] = stmt.expr
            result.config.endpoint = stmt.expr
        elif kw in CONFIG_KEYWORDS:
            apply_config(result.config, stmt)
        elif kw == "load":
            loaded = self.context.load(stmt.label, self.location(stmt), self.path)
            result.merge(loaded)
        elif kw == "scenario":
            return self.open_scenario(stmt)
        elif kw == "group":
            return self.open_group(stmt)
        else:
            raise self.not_allowed(stmt, "at top level")
        return None

    def open_scenario(self, stmt: Statement) -> Frame:
        scenario = Scenario(
            key=stmt.label,
            bindings=copy.deepcopy(self.result.bindings),
            config=self.result.config.copy(),
            anonymous=not stmt.label,
            line=stmt.line,
            path=self.display_path,
        )
        self.result.scenarios.append(scenario)
        logger.debug("scenario %r opened at line %d", scenario.key or "<anonymous>", stmt.line)
        return Frame(stmt.depth, scenario, scenario, visible=set(scenario.bindings))

    def open_group(self, stmt: Statement) -> Frame:
        group = Group(stmt.label, line=stmt.line, path=self.display_path)
        # registered on open so a group including itself is caught as a cycle
        self.result.groups[group.name] = group
        logger.debug("group %r opened at line %d", group.name, stmt.line)
        return Frame(stmt.depth, group)

    # ========================================================================
    # Scenario / group bodies
    # ========================================================================

    def scenario_statement(self, frame: Frame, stmt: Statement) -> Optional[Frame]:
        scenario = frame.node
        kw = stmt.keyword

        if kw in STEP_KEYWORDS:
            step = self.new_step(stmt)
            scenario.steps.append(step)
            return Frame(stmt.depth, step, scenario, visible=set(frame.visible))

        if kw == "set":
            scenario.bindings[stmt.name] = stmt.expr
            frame.visible.add(stmt.name)
        elif kw == "endpoint":
            scenario.bindings["endpoint"] = stmt.expr
            scenario.config.endpoint = stmt.expr
            frame.visible.add("endpoint")
        elif kw == "name":
            scenario.name = stmt.expr
            scenario.config.name = stmt.expr
        elif kw in CONFIG_KEYWORDS:
            apply_config(scenario.config, stmt)
        elif kw == "include":
            steps = expand_group(self.result.groups, stmt.label, self.location(stmt, via="included from"))
            scenario.steps.extend(steps)
            for step in steps:
                frame.visible.update(b.name for b in step.sets)
        else:
            raise self.not_allowed(stmt, "in a scenario")
        return None

    def group_statement(self, frame: Frame, stmt: Statement) -> Optional[Frame]:
        group = frame.node
        kw = stmt.keyword

        if kw in STEP_KEYWORDS:
            step = self.new_step(stmt)
            group.items.append(step)
            return Frame(stmt.depth, step)

        if kw == "include":
            group.items.append(IncludeRef(stmt.label, stmt.line, stmt.column, self.display_path))
            return None

        raise self.not_allowed(stmt, "in a group")

    def new_step(self, stmt: Statement) -> Step:
        kind = StepKind(stmt.keyword)
        if kind.has_target and stmt.expr is None:
            raise ParseError(f"'{stmt.keyword}' requires a target", stmt.line, stmt.column)
        return Step(kind, target=stmt.expr, line=stmt.line, path=self.display_path)

    # ========================================================================
    # Step body
    # ========================================================================

    def step_statement(self, frame: Frame, stmt: Statement) -> None:
        step = frame.node
        kw = stmt.keyword

        if kw not in STEP_SETTING_KEYWORDS:
            raise self.not_allowed(stmt, "in a step")

        if kw in CONFIG_KEYWORDS or kw == "name":
            apply_config(step.config, stmt)
        elif kw == "method":
            step.method = stmt.expr
        elif kw == "body":
            step.body = stmt.expr
        elif kw == "json":
            step.json = flag_value(stmt)
        elif kw == "param":
            step.params.append(make_param(stmt))
        elif kw == "expect":
            step.expects.append(stmt.expr)
        elif kw == "set":
            step.sets.append(Binding(stmt.name, stmt.expr))

    def check_forward_refs(self, step: Step, visible: Set[str]) -> None:
        """A step may not use a name its own `set` introduces"""
        own = {b.name for b in step.sets} - visible
        if not own:
            return
        for expr in step.expressions():
            for name in variable_refs(expr):
                if name in own:
                    meta = expr.meta
                    raise ParseError(
                        f"'{name}' is set by this step and only usable in later steps",
                        meta.line, meta.column,
                    )


# ============================================================================
# Typed settings
# ============================================================================

def apply_config(config: Config, stmt: Statement) -> None:
    kw = stmt.keyword
    if kw == "header":
        config.headers.append(stmt.expr)
    elif kw == "samples":
        config.samples = samples_value(stmt)
    elif kw == "warmup":
        config.warmup = warmup_value(stmt)
    elif kw == "follow_redirects":
        config.follow_redirects = flag_value(stmt)
    else:
        setattr(config, kw, stmt.expr)


def _bad_value(stmt: Statement, wanted: str) -> ParseError:
    meta = stmt.expr.meta
    return ParseError(f"'{stmt.keyword}' expects {wanted}, got {raw_text(stmt.expr)}", meta.line, meta.column)


def samples_value(stmt: Statement) -> int:
    text = raw_text(stmt.expr)
    if tree_label(stmt.expr) != "number" or not _INTEGER_RE.match(text):
        raise _bad_value(stmt, "a whole number")
    return int(text)


def warmup_value(stmt: Statement) -> str:
    text = raw_text(stmt.expr)
    if tree_label(stmt.expr) not in ("bool", "auto") or text not in WARMUP_LITERALS:
        raise _bad_value(stmt, "true, false or 'auto'")
    return text


def flag_value(stmt: Statement) -> bool:
    if stmt.expr is None:
        return True
    if tree_label(stmt.expr) != "bool":
        raise _bad_value(stmt, "true or false")
    return raw_text(stmt.expr) == "true"


def make_param(stmt: Statement) -> Param:
    value: Tree = stmt.expr
    if call_name(value) == "file" and not 1 <= len(call_args(value)) <= 2:
        meta = value.meta
        raise ParseError("file() takes a path and an optional file name", meta.line, meta.column)
    return Param(stmt.name, value)


def name_anonymous_scenarios(scenarios: ScenarioSet) -> None:
    """Key each unnamed scenario "#<n>" by position, skipping keys a label holds"""
    taken = {sc.key for sc in scenarios if not sc.anonymous}
    for ordinal, scenario in enumerate(scenarios, start=1):
        if not scenario.anonymous:
            continue
        key = f"#{ordinal}"
        suffix = 1
        while key in taken:
            suffix += 1
            key = f"#{ordinal}-{suffix}"
        scenario.key = key
        taken.add(key)
