from .errors import (
    CycleError,
    IncludeCycle,
    InconsistentIndent,
    LexError,
    LoadCycle,
    Location,
    MissingValue,
    ParseError,
    ScriptError,
    ScriptReferenceError,
    UnbalancedParens,
    UnexpectedToken,
    UnknownGroup,
    UnknownStatement,
    UnresolvedLoad,
    UnterminatedString,
)
from .model import Binding, Config, Group, IncludeRef, Param, Scenario, ScenarioSet, Step, StepKind
from .options import ParseOptions
from .parser_rd import parse_expression
from .runner import parse, parse_file
from .scanner import ScanLine, scan
from .tree import raw_text

__all__ = [
    "Binding",
    "Config",
    "CycleError",
    "Group",
    "IncludeCycle",
    "IncludeRef",
    "InconsistentIndent",
    "LexError",
    "LoadCycle",
    "Location",
    "MissingValue",
    "Param",
    "ParseError",
    "ParseOptions",
    "Scenario",
    "ScenarioSet",
    "ScanLine",
    "ScriptError",
    "ScriptReferenceError",
    "Step",
    "StepKind",
    "UnbalancedParens",
    "UnexpectedToken",
    "UnknownGroup",
    "UnknownStatement",
    "UnresolvedLoad",
    "UnterminatedString",
    "parse",
    "parse_expression",
    "parse_file",
    "raw_text",
    "scan",
]
