# ==============================
# Safe Expression Evaluator
# ==============================
"""
Restricted grammar for `{{ ... }}` placeholders and `expr` values.

Grammar:
  expr    := call | path | literal
  call    := NAME "(" [expr ("," expr)*] ")"      NAME must be allowlisted
  path    := ROOT ("." IDENT | "[" INT "]")*       ROOT is datasets | props
  literal := STRING | NUMBER | true | false | null

No operators, assignments or attribute access outside the two roots.
Anything outside the grammar raises TemplateEvaluationError for that
expression only. Never calls eval/exec.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from datalys.contracts.errors import TemplateEvaluationError
from datalys.datasets.columns import require_column
from datalys.templating import helpers
from datalys.templating.context import TemplateContext
from datalys.transforms.aggregates import aggregate


PATH_ROOTS = ("datasets", "props")
FORBIDDEN_KEYS = frozenset({"__proto__", "prototype", "constructor"})
LITERAL_WORDS = {"true": True, "false": False, "null": None}

_TOKEN_RE = re.compile(
    r"""
    (?P<WS>\s+)
  | (?P<NUMBER>-?\d+(?:\.\d+)?)
  | (?P<STRING>'(?:\\.|[^'\\])*'|"(?:\\.|[^"\\])*")
  | (?P<IDENT>[A-Za-z_$][A-Za-z0-9_$]*)
  | (?P<DOT>\.)
  | (?P<LBRACK>\[)
  | (?P<RBRACK>\])
  | (?P<LPAREN>\()
  | (?P<RPAREN>\))
  | (?P<COMMA>,)
  | (?P<MISMATCH>.)
    """,
    re.VERBOSE | re.DOTALL,
)


# ==============================
# AST
# ==============================
@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    pos: int


@dataclass(frozen=True)
class LiteralNode:
    value: Any


@dataclass(frozen=True)
class PathNode:
    root: str
    segments: Tuple[Union[str, int], ...]


@dataclass(frozen=True)
class CallNode:
    name: str
    args: Tuple["Node", ...]


Node = Union[LiteralNode, PathNode, CallNode]


# ==============================
# Allowlisted Functions
# ==============================
SafeFunction = Callable[[TemplateContext, List[Any]], Any]


@dataclass(frozen=True)
class FunctionSpec:
    min_args: int
    max_args: int
    impl: SafeFunction


def _count(ctx: TemplateContext, args: List[Any]) -> Any:
    return ctx.table(args[0]).row_count


def _aggregate(op: str) -> SafeFunction:
    def run(ctx: TemplateContext, args: List[Any]) -> Any:
        table = ctx.table(args[0])
        column = args[1]
        if not isinstance(column, (str, int)) or isinstance(column, bool):
            raise TemplateEvaluationError(f"{op}() column must be a name or index, got {column!r}")
        idx = require_column(column, table)
        return aggregate(table, idx, op)  # type: ignore[arg-type]

    return run


def _formatter(fn: Callable[..., Any]) -> SafeFunction:
    def run(ctx: TemplateContext, args: List[Any]) -> Any:
        try:
            return fn(*args)
        except ValueError as exc:
            raise TemplateEvaluationError(str(exc)) from exc

    return run


DEFAULT_FUNCTIONS: Dict[str, FunctionSpec] = {
    "count": FunctionSpec(1, 1, _count),
    "sum": FunctionSpec(2, 2, _aggregate("sum")),
    "avg": FunctionSpec(2, 2, _aggregate("avg")),
    "min": FunctionSpec(2, 2, _aggregate("min")),
    "max": FunctionSpec(2, 2, _aggregate("max")),
    "formatNumber": FunctionSpec(1, 2, _formatter(helpers.format_number)),
    "formatPercent": FunctionSpec(1, 2, _formatter(helpers.format_percent)),
    "formatCurrency": FunctionSpec(1, 3, _formatter(helpers.format_currency)),
    "formatDate": FunctionSpec(1, 2, _formatter(helpers.format_date)),
}


# ==============================
# Parsing
# ==============================
def tokenize(source: str) -> List[Token]:
    tokens: List[Token] = []
    for match in _TOKEN_RE.finditer(source):
        kind = match.lastgroup or "MISMATCH"
        if kind == "WS":
            continue
        if kind == "MISMATCH":
            raise TemplateEvaluationError(
                f"unexpected character {match.group(0)!r} at {match.start()}",
                details={"expression": source},
            )
        tokens.append(Token(kind=kind, text=match.group(0), pos=match.start()))
    return tokens


def _unquote(text: str) -> str:
    quote = text[0]
    inner = text[1:-1]
    out: List[str] = []
    i = 0
    while i < len(inner):
        ch = inner[i]
        if ch == "\\" and i + 1 < len(inner):
            nxt = inner[i + 1]
            out.append(nxt if nxt in (quote, "\\") else ch + nxt)
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def _check_identifier(name: str, source: str) -> None:
    if name.startswith("_") or name in FORBIDDEN_KEYS:
        raise TemplateEvaluationError(f"identifier '{name}' is not allowed", details={"expression": source})


class _Parser:
    def __init__(self, tokens: Sequence[Token], source: str, functions: Mapping[str, FunctionSpec]) -> None:
        self.tokens = tokens
        self.source = source
        self.functions = functions
        self.i = 0

    def _peek(self) -> Optional[Token]:
        return self.tokens[self.i] if self.i < len(self.tokens) else None

    def _next(self, kind: Optional[str] = None) -> Token:
        tok = self._peek()
        if tok is None:
            raise self._error("unexpected end of expression")
        if kind is not None and tok.kind != kind:
            raise self._error(f"expected {kind} at {tok.pos}, found {tok.text!r}")
        self.i += 1
        return tok

    def _error(self, message: str) -> TemplateEvaluationError:
        return TemplateEvaluationError(message, details={"expression": self.source})

    def parse(self) -> Node:
        if not self.tokens:
            raise self._error("empty expression")
        node = self._expr()
        tok = self._peek()
        if tok is not None:
            raise self._error(f"unexpected {tok.text!r} at {tok.pos}")
        return node

    def _expr(self) -> Node:
        tok = self._next()
        if tok.kind == "NUMBER":
            return LiteralNode(float(tok.text) if "." in tok.text else int(tok.text))
        if tok.kind == "STRING":
            return LiteralNode(_unquote(tok.text))
        if tok.kind != "IDENT":
            raise self._error(f"unexpected {tok.text!r} at {tok.pos}")
        if tok.text in LITERAL_WORDS:
            return LiteralNode(LITERAL_WORDS[tok.text])
        nxt = self._peek()
        if nxt is not None and nxt.kind == "LPAREN":
            return self._call(tok)
        return self._path(tok)

    def _call(self, name_tok: Token) -> CallNode:
        name = name_tok.text
        spec = self.functions.get(name)
        if spec is None:
            raise self._error(f"function '{name}' is not allowed")
        self._next("LPAREN")
        args: List[Node] = []
        tok = self._peek()
        if tok is not None and tok.kind == "RPAREN":
            self._next("RPAREN")
        else:
            while True:
                args.append(self._expr())
                tok = self._next()
                if tok.kind == "RPAREN":
                    break
                if tok.kind != "COMMA":
                    raise self._error(f"expected ',' or ')' at {tok.pos}, found {tok.text!r}")
        if not spec.min_args <= len(args) <= spec.max_args:
            raise self._error(f"{name}() takes {spec.min_args}..{spec.max_args} arguments, got {len(args)}")
        return CallNode(name=name, args=tuple(args))

    def _path(self, root_tok: Token) -> PathNode:
        root = root_tok.text
        if root not in PATH_ROOTS:
            raise self._error(f"unknown identifier '{root}'")
        segments: List[Union[str, int]] = []
        while True:
            tok = self._peek()
            if tok is None or tok.kind not in ("DOT", "LBRACK"):
                break
            self._next()
            if tok.kind == "DOT":
                ident = self._next("IDENT").text
                _check_identifier(ident, self.source)
                segments.append(ident)
            else:
                index = self._next("NUMBER").text
                if not index.isdigit():
                    raise self._error(f"index must be a non-negative integer, got {index!r}")
                self._next("RBRACK")
                segments.append(int(index))
        return PathNode(root=root, segments=tuple(segments))


def parse_expression(source: str, functions: Mapping[str, FunctionSpec] = DEFAULT_FUNCTIONS) -> Node:
    return _Parser(tokenize(source), source, functions).parse()


# ==============================
# Evaluation
# ==============================
class SafeEvaluator:
    def __init__(self, ctx: TemplateContext, functions: Optional[Mapping[str, FunctionSpec]] = None) -> None:
        self.ctx = ctx
        self.functions = dict(functions) if functions is not None else DEFAULT_FUNCTIONS

    def evaluate(self, source: str) -> Any:
        node = parse_expression(source, self.functions)
        return self._eval(node, source)

    def _eval(self, node: Node, source: str) -> Any:
        if isinstance(node, LiteralNode):
            return node.value
        if isinstance(node, CallNode):
            args = [self._eval(arg, source) for arg in node.args]
            return self.functions[node.name].impl(self.ctx, args)
        return self._resolve(node, source)

    def _resolve(self, node: PathNode, source: str) -> Any:
        segments = list(node.segments)
        if node.root == "props":
            current: Any = self.ctx.props
        else:
            if not segments:
                return self.ctx.dataset_views()
            dataset_id = segments.pop(0)
            current = self.ctx.table(dataset_id).to_view()
        for seg in segments:
            if isinstance(seg, int):
                if not isinstance(current, (list, tuple)) or seg >= len(current):
                    raise TemplateEvaluationError(f"index [{seg}] out of range in '{source}'")
                current = current[seg]
            else:
                if not isinstance(current, dict) or seg not in current:
                    raise TemplateEvaluationError(f"'{seg}' not found in '{source}'")
                current = current[seg]
        return current
