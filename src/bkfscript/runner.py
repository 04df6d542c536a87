from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional, Union

from .builder import name_anonymous_scenarios
from .errors import ScriptError
from .model import ScenarioSet, Step
from .options import ParseOptions
from .resolver import ParseContext

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def parse(source: str, path: Optional[PathLike] = None, options: Optional[ParseOptions] = None) -> ScenarioSet:
    """
    Parse script text into a fully resolved ScenarioSet.

    ``path`` names the file the text came from; it anchors relative ``load``
    paths and shows up in error messages. Every call gets its own include and
    load tracking, so separate calls never interfere.
    """
    context = ParseContext(options)
    resolved = Path(path).resolve() if path is not None else None
    result = context.parse_source(source, resolved)
    name_anonymous_scenarios(result)
    logger.info(
        "parsed %s: %d scenarios, %d groups",
        resolved or "<string>", len(result.scenarios), len(result.groups),
    )
    return result


def parse_file(path: PathLike, options: Optional[ParseOptions] = None) -> ScenarioSet:
    options = options or ParseOptions()
    resolved = Path(path).resolve()
    source = options.read_file(resolved, options.encoding)
    return parse(source, resolved, options)


def _describe_step(step: Step, indent: str) -> List[str]:
    head = step.kind.value
    if step.target is not None:
        head += f" {step.target_text}"
    lines = [f"{indent}{head}"]
    inner = indent + "    "
    for text in step.header_texts:
        lines.append(f"{inner}header {text}")
    if step.samples is not None:
        lines.append(f"{inner}samples {step.samples}")
    if step.warmup is not None:
        lines.append(f"{inner}warmup {step.warmup}")
    for param in step.params:
        lines.append(f"{inner}param {param.name} {param.text}")
    for text in step.expect_texts:
        lines.append(f"{inner}expect {text}")
    for name, text in step.set_texts:
        lines.append(f"{inner}set {name} {text}")
    return lines


def describe(scenarios: ScenarioSet) -> str:
    """Human readable dump of a parsed set, for debugging scripts"""
    lines: List[str] = []
    for name, group in scenarios.groups.items():
        lines.append(f"group {name} ({len(group.items)} items)")
    for scenario in scenarios:
        lines.append(f"scenario {scenario.key}")
        for name, text in scenario.variables.items():
            lines.append(f"    set {name} {text}")
        for step in scenario.steps:
            lines.extend(_describe_step(step, "    "))
    return "\n".join(lines)


def _load_source(arg: Optional[str]) -> tuple[str, Optional[Path]]:
    """
    Resolve CLI input into source text.
    - None or "-" => read stdin.
    - Otherwise a script path.
    """

    if arg is None or arg == "-":
        data = sys.stdin.read()
        if not data:
            raise SystemExit("No input provided on stdin")
        return data, None

    candidate = Path(arg)
    if not candidate.exists():
        raise SystemExit(f"No such file: {arg}")
    return candidate.read_text(encoding="utf-8"), candidate


def main() -> None:
    args = sys.argv[1:]
    if len(args) > 1:
        raise SystemExit(f"Unexpected argument: {args[1]}")

    source, path = _load_source(args[0] if args else None)
    try:
        print(describe(parse(source, path)))
    except ScriptError as e:
        print(f"Parse error: {e}", file=sys.stderr)
        sys.exit(1)

if __name__ == "__main__":
    main()
