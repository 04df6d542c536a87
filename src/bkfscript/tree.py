"""Shared helpers for working with the lark Tree/Token nodes that make up
parsed expressions.

Expression variants are tree labels:

    string   [STRING]              "prod", 'http://toto.com'
    number   [NUMBER]              10, -2.5
    bool     [TRUE | FALSE]        true
    auto     [STRING]              'auto'
    var      [IDENT]               env
    current  [AT]                  @
    call     [IDENT, args]         url('/blog/')
    chain    [base, method+]       css(".post").first().attr("href")
    method   [IDENT, args]
    args     [expr*]
    concat   [left, right]         'User-Agent: ' ~ fake('firefox')
    compare  [left, OP, right]     status_code() == 200
"""
from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional, Union

from lark import Token, Tree, Visitor
from lark.tree import Meta
from typing_extensions import TypeAlias, TypeGuard

Node: TypeAlias = Union[Tree, Token]


class Span(Meta):
    """Position info plus the verbatim source text of a node."""

    text: str

    def __init__(self, text: str, line: int, column: int, start_pos: int, end_pos: int):
        super().__init__()
        self.empty = False
        self.text = text
        self.line = line
        self.end_line = line
        self.column = column
        self.end_column = column + (end_pos - start_pos)
        self.start_pos = start_pos
        self.end_pos = end_pos

    def copy(self) -> Span:
        return Span(self.text, self.line, self.column, self.start_pos, self.end_pos)


class ExprTree(Tree):
    """Expression node whose copies get their own Span"""

    def __deepcopy__(self, memo: Dict[int, Any]) -> ExprTree:
        meta = self.meta
        if isinstance(meta, Span):
            meta = meta.copy()
        return type(self)(self.data, copy.deepcopy(self.children, memo), meta=meta)


def is_tree(node: object) -> TypeGuard[Tree]:
    return isinstance(node, Tree)

def is_token(node: object) -> TypeGuard[Token]:
    return isinstance(node, Token)

def tree_label(node: object) -> Optional[str]:
    return node.data if is_tree(node) else None

def tree_children(node: object) -> List[Node]:
    if not is_tree(node):
        return []

    return list(node.children)

def child_by_label(node: Node, label: str) -> Optional[Node]:
    for ch in tree_children(node):
        if tree_label(ch) == label:
            return ch

    return None


def raw_text(node: Node) -> str:
    """Return the exact source text a node was parsed from."""
    if is_token(node):
        return str(node.value)

    meta = getattr(node, "meta", None)
    text = getattr(meta, "text", None)
    if text is None:
        raise ValueError(f"node {tree_label(node)!r} carries no source span")
    return text


def string_value(node: Node) -> Optional[str]:
    """Contents of a string literal between its quotes, escapes untouched."""
    if tree_label(node) not in ("string", "auto"):
        return None
    return raw_text(node)[1:-1]


def call_name(node: Node) -> Optional[str]:
    if tree_label(node) != "call":
        return None
    return str(node.children[0])


def call_args(node: Node) -> List[Tree]:
    """Arguments of a call or method node."""
    args = child_by_label(node, "args")
    return tree_children(args) if args is not None else []


def chain_methods(node: Node) -> List[str]:
    if tree_label(node) != "chain":
        return []
    return [str(m.children[0]) for m in node.children[1:]]


class _VarCollector(Visitor):
    def __init__(self) -> None:
        self.names: List[str] = []

    def var(self, tree: Tree) -> None:
        self.names.append(str(tree.children[0]))


def variable_refs(node: Node) -> List[str]:
    """Variable names referenced anywhere in an expression, in source order."""
    if not is_tree(node):
        return []
    collector = _VarCollector()
    collector.visit_topdown(node)
    return collector.names

