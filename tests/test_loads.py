from __future__ import annotations

from pathlib import Path
from typing import Dict

import pytest

from bkfscript import ParseOptions, parse, parse_file
from bkfscript.errors import LoadCycle, MissingValue, UnresolvedLoad
from bkfscript.model import StepKind
from bkfscript.resolver import ParseContext

COMMON = """\
set env "prod"
header "X-Common: 1"
samples 5

group login
    visit url('/login')
    submit button('Login')

scenario A
    reload

scenario
    include login
"""


def test_load_merges_scenarios_groups_and_globals(write_scripts) -> None:
    root = write_scripts(
        {
            "common.bkf": COMMON,
            "main.bkf": """\
header "X-Main: 1"
load "common.bkf"

scenario C
    include login
""",
        }
    )
    scenarios = parse_file(root / "main.bkf")

    assert [s.key for s in scenarios] == ["A", "#2", "C"]
    assert list(scenarios.groups) == ["login"]
    assert scenarios.variables == {"env": '"prod"'}
    assert scenarios.config.header_texts == ['"X-Main: 1"', '"X-Common: 1"']
    assert scenarios.config.samples == 5

    c = scenarios.scenario("C")
    assert c.variables == {"env": '"prod"'}
    assert [s.kind for s in c.steps] == [StepKind.VISIT, StepKind.SUBMIT]
    assert c.config.samples == 5
    assert scenarios[0].path == str((root / "common.bkf").resolve())
    assert c.path == str((root / "main.bkf").resolve())


def test_loaded_globals_do_not_reach_earlier_scenarios(write_scripts) -> None:
    root = write_scripts(
        {
            "vars.bkf": 'set env "dev"\n',
            "main.bkf": """\
set env "prod"

scenario before
    reload

load "vars.bkf"

scenario after
    reload
""",
        }
    )
    before, after = parse_file(root / "main.bkf")
    assert before.variables == {"env": '"prod"'}
    assert after.variables == {"env": '"dev"'}


def test_loaded_group_replaces_local_one(write_scripts) -> None:
    root = write_scripts(
        {
            "groups.bkf": "group g\n    visit url('/loaded')\n",
            "main.bkf": """\
group g
    visit url('/local')

load "groups.bkf"

scenario
    include g
""",
        }
    )
    scenarios = parse_file(root / "main.bkf")
    assert scenarios[0].steps[0].target_text == "url('/loaded')"


def test_paths_resolve_against_the_loading_file(write_scripts) -> None:
    root = write_scripts(
        {
            "shared.bkf": "group home\n    visit url('/')\n",
            "sub/inner.bkf": 'load "../shared.bkf"\n',
            "main.bkf": 'load "sub/inner.bkf"\n\nscenario\n    include home\n',
        }
    )
    scenarios = parse_file(root / "main.bkf")
    assert [s.kind for s in scenarios[0].steps] == [StepKind.VISIT]


def test_mutual_load_cycle(write_scripts) -> None:
    root = write_scripts(
        {
            "a.bkf": 'load "b.bkf"\n',
            "b.bkf": 'load "a.bkf"\n',
        }
    )
    a = (root / "a.bkf").resolve()
    b = (root / "b.bkf").resolve()

    with pytest.raises(LoadCycle) as exc_info:
        parse_file(a)

    err = exc_info.value
    assert err.chain == [str(a), str(b), str(a)]
    assert err.path == str(b)
    assert (err.line, err.column) == (1, 1)
    assert [(f.path, f.line, f.via) for f in err.frames] == [(str(a), 1, "loaded from")]


def test_self_load_cycle(write_scripts) -> None:
    root = write_scripts({"self.bkf": 'load "self.bkf"\n'})
    target = (root / "self.bkf").resolve()

    with pytest.raises(LoadCycle) as exc_info:
        parse_file(target)
    assert exc_info.value.chain == [str(target), str(target)]


def test_missing_load_target(write_scripts) -> None:
    root = write_scripts({"main.bkf": 'scenario\n    reload\n\nload "missing.bkf"\n'})

    with pytest.raises(UnresolvedLoad) as exc_info:
        parse_file(root / "main.bkf")

    err = exc_info.value
    assert err.target == "missing.bkf"
    assert (err.line, err.column) == (4, 1)
    assert err.path == str((root / "main.bkf").resolve())
    assert isinstance(err.__cause__, OSError)


def test_error_in_loaded_file_keeps_origin(write_scripts) -> None:
    root = write_scripts(
        {
            "sub/inner.bkf": "scenario\n    visit\n",
            "main.bkf": 'set a 1\n\nload "sub/inner.bkf"\n',
        }
    )
    inner = str((root / "sub" / "inner.bkf").resolve())
    main = str((root / "main.bkf").resolve())

    with pytest.raises(MissingValue) as exc_info:
        parse_file(root / "main.bkf")

    err = exc_info.value
    assert err.path == inner
    assert (err.line, err.column) == (2, 10)
    assert str(err) == f"{inner}:2:10: 'visit' requires a value\n  loaded from {main}:3:1"


def test_base_dir_anchors_loads_from_strings(write_scripts) -> None:
    root = write_scripts({"common.bkf": COMMON})
    scenarios = parse('load "common.bkf"\n', options=ParseOptions(base_dir=root))
    assert [s.key for s in scenarios] == ["A", "#2"]


def test_custom_reader() -> None:
    files: Dict[Path, str] = {
        Path("/virtual/common.bkf"): COMMON,
    }
    seen = []

    def read_file(path: Path, encoding: str) -> str:
        seen.append((path, encoding))
        try:
            return files[path]
        except KeyError:
            raise FileNotFoundError(path) from None

    options = ParseOptions(read_file=read_file, encoding="latin-1")
    scenarios = parse('load "common.bkf"\n', path="/virtual/main.bkf", options=options)

    assert len(scenarios) == 2
    assert seen == [(Path("/virtual/common.bkf"), "latin-1")]

    with pytest.raises(UnresolvedLoad):
        parse('load "other.bkf"\n', path="/virtual/main.bkf", options=options)


def test_context_is_clean_after_an_error(write_scripts) -> None:
    root = write_scripts({"bad.bkf": "scenario\n    visit\n"})
    context = ParseContext(ParseOptions(base_dir=root))

    with pytest.raises(MissingValue):
        context.parse_source('load "bad.bkf"\n')
    assert context.loading == []


def test_independent_invocations(write_scripts) -> None:
    root = write_scripts({"common.bkf": COMMON, "main.bkf": 'load "common.bkf"\n'})

    first = parse_file(root / "main.bkf")
    second = parse_file(root / "main.bkf")

    assert [s.key for s in first] == [s.key for s in second] == ["A", "#2"]
    assert first[0] is not second[0]


def test_undecodable_load_target(tmp_path) -> None:
    (tmp_path / "bad.bkf").write_bytes(b"set a \xff\xfe\n")
    main = tmp_path / "main.bkf"
    main.write_text('scenario\n    reload\n\nload "bad.bkf"\n', encoding="utf-8")

    with pytest.raises(UnresolvedLoad) as exc_info:
        parse_file(main)

    err = exc_info.value
    assert err.target == "bad.bkf"
    assert err.reason == "not valid utf-8 text"
    assert str(err) == f"{main.resolve()}:4:1: Cannot load 'bad.bkf': not valid utf-8 text"
    assert isinstance(err.__cause__, UnicodeDecodeError)
