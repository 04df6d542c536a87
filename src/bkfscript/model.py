"""
Structural model of a parsed scenario script.

Expressions stay as parsed trees; accessors ending in ``_text`` (and
``Scenario.variables``) give the verbatim source text the external
evaluator works from.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union

from lark import Tree

from .tree import call_args, call_name, raw_text


class StepKind(Enum):
    VISIT = "visit"
    CLICK = "click"
    SUBMIT = "submit"
    FOLLOW = "follow"
    RELOAD = "reload"

    @property
    def has_target(self) -> bool:
        return self in (StepKind.VISIT, StepKind.CLICK, StepKind.SUBMIT)


@dataclass
class Config:
    """Settings inherited global -> scenario -> step.

    Scalar settings are overridden by the more specific level; headers
    accumulate, outer level first.
    """

    endpoint: Optional[Tree] = None
    name: Optional[Tree] = None
    auth: Optional[Tree] = None
    headers: List[Tree] = field(default_factory=list)
    blackfire: Optional[Tree] = None
    follow_redirects: Optional[bool] = None
    warmup: Optional[str] = None
    samples: Optional[int] = None
    wait: Optional[Tree] = None

    def copy(self) -> Config:
        return copy.deepcopy(self)

    def merged(self, inner: Config) -> Config:
        result = self.copy()
        for f in fields(self):
            if f.name == "headers":
                continue
            value = getattr(inner, f.name)
            if value is not None:
                setattr(result, f.name, copy.deepcopy(value))
        result.headers.extend(copy.deepcopy(inner.headers))
        return result

    def update(self, other: Config) -> None:
        """Fold the settings of a loaded file into this one."""
        merged = self.merged(other)
        for f in fields(self):
            setattr(self, f.name, getattr(merged, f.name))

    @property
    def header_texts(self) -> List[str]:
        return [raw_text(h) for h in self.headers]


@dataclass
class Binding:
    """``set NAME EXPR`` inside a step: extract a value from the response"""

    name: str
    expr: Tree

    @property
    def text(self) -> str:
        return raw_text(self.expr)


@dataclass
class Param:
    """``param NAME EXPR``; ``file(path[, name])`` values are uploads"""

    name: str
    value: Tree

    @property
    def is_file(self) -> bool:
        return call_name(self.value) == "file"

    @property
    def file_path(self) -> Optional[Tree]:
        if not self.is_file:
            return None
        return call_args(self.value)[0]

    @property
    def file_name(self) -> Optional[Tree]:
        if not self.is_file:
            return None
        args = call_args(self.value)
        return args[1] if len(args) > 1 else None

    @property
    def text(self) -> str:
        return raw_text(self.value)


@dataclass
class Step:
    kind: StepKind
    target: Optional[Tree] = None
    config: Config = field(default_factory=Config)
    method: Optional[Tree] = None
    body: Optional[Tree] = None
    params: List[Param] = field(default_factory=list)
    json: Optional[bool] = None
    expects: List[Tree] = field(default_factory=list)
    sets: List[Binding] = field(default_factory=list)
    line: int = 0
    path: Optional[str] = None

    # Step-level settings, as declared on the step itself
    @property
    def headers(self) -> List[Tree]:
        return self.config.headers

    @property
    def header_texts(self) -> List[str]:
        return self.config.header_texts

    @property
    def samples(self) -> Optional[int]:
        return self.config.samples

    @property
    def warmup(self) -> Optional[str]:
        return self.config.warmup

    @property
    def auth(self) -> Optional[Tree]:
        return self.config.auth

    @property
    def wait(self) -> Optional[Tree]:
        return self.config.wait

    @property
    def follow_redirects(self) -> Optional[bool]:
        return self.config.follow_redirects

    @property
    def blackfire(self) -> Optional[Tree]:
        return self.config.blackfire

    @property
    def name(self) -> Optional[Tree]:
        return self.config.name

    @property
    def target_text(self) -> Optional[str]:
        return raw_text(self.target) if self.target is not None else None

    @property
    def expect_texts(self) -> List[str]:
        return [raw_text(e) for e in self.expects]

    @property
    def set_texts(self) -> List[Tuple[str, str]]:
        return [(b.name, b.text) for b in self.sets]

    def expressions(self) -> Iterator[Tree]:
        """Every expression the step evaluates, `set` values included"""
        if self.target is not None:
            yield self.target
        cfg = self.config
        for expr in (cfg.name, cfg.auth, cfg.blackfire, cfg.wait, self.method, self.body):
            if expr is not None:
                yield expr
        yield from cfg.headers
        for p in self.params:
            yield p.value
        yield from self.expects
        for b in self.sets:
            yield b.expr


@dataclass
class IncludeRef:
    """An ``include`` inside a group, expanded when the group is included"""

    name: str
    line: int
    column: int
    path: Optional[str] = None


GroupItem = Union[Step, IncludeRef]


@dataclass
class Group:
    name: str
    items: List[GroupItem] = field(default_factory=list)
    line: int = 0
    path: Optional[str] = None

    @property
    def steps(self) -> List[Step]:
        return [item for item in self.items if isinstance(item, Step)]


@dataclass
class Scenario:
    key: str
    bindings: Dict[str, Tree] = field(default_factory=dict)
    config: Config = field(default_factory=Config)
    steps: List[Step] = field(default_factory=list)
    name: Optional[Tree] = None
    anonymous: bool = False
    line: int = 0
    path: Optional[str] = None

    @property
    def variables(self) -> Dict[str, str]:
        """Variable name -> raw expression text, in declaration order"""
        return {k: raw_text(v) for k, v in self.bindings.items()}

    @property
    def block_step(self) -> Optional[Step]:
        return self.steps[0] if self.steps else None

    def step_config(self, step: Step) -> Config:
        """Settings in effect for ``step`` once scenario defaults apply"""
        return self.config.merged(step.config)

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)


@dataclass
class ScenarioSet:
    scenarios: List[Scenario] = field(default_factory=list)
    groups: Dict[str, Group] = field(default_factory=dict)
    bindings: Dict[str, Tree] = field(default_factory=dict)
    config: Config = field(default_factory=Config)

    @property
    def variables(self) -> Dict[str, str]:
        return {k: raw_text(v) for k, v in self.bindings.items()}

    def scenario(self, key: str) -> Scenario:
        for sc in self.scenarios:
            if sc.key == key:
                return sc
        raise KeyError(key)

    def merge(self, loaded: ScenarioSet) -> None:
        """Fold a loaded file in: groups (last wins), globals, scenarios"""
        self.groups.update(loaded.groups)
        self.bindings.update(loaded.bindings)
        self.config.update(loaded.config)
        self.scenarios.extend(loaded.scenarios)

    def __len__(self) -> int:
        return len(self.scenarios)

    def __iter__(self) -> Iterator[Scenario]:
        return iter(self.scenarios)

    def __getitem__(self, index: int) -> Scenario:
        return self.scenarios[index]
