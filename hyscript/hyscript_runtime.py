"""
Drivers that run hyscript source against host bindings: scripts, single
expressions, autocomplete, and the file filter/sort expressions.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple, Union

from hyscript.hyscript_errors import EvaluationError, ScriptError, Suggestions
from hyscript.hyscript_file import FileValue
from hyscript.hyscript_inference import get_suggestions
from hyscript.hyscript_interpreter import evaluate
from hyscript.hyscript_parser import Parser
from hyscript.hyscript_resolver import StandardResolver
from hyscript.hyscript_scanner import Span
from hyscript.hyscript_serialize import to_value
from hyscript.hyscript_values import BooleanValue, NumberValue, StringValue, Value, unwrap


@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: Optional[Value] = None
    error_message: Optional[str] = None
    error_span: Optional[Span] = None

    def format_error(self, source: Optional[str] = None) -> str:
        """Formats the error with its line and column, plus a source excerpt
        when `source` is given."""
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        if self.error_span is None or source is None:
            return msg
        line, col = line_col(source, self.error_span.start)
        return f"{msg} (line {line}, col {col})\n{source_context(source, self.error_span)}"


def line_col(source: str, offset: int) -> Tuple[int, int]:
    """1-based line and column of `offset`."""
    offset = min(offset, len(source))
    line_start = source.rfind("\n", 0, offset) + 1
    return source.count("\n", 0, line_start) + 1, offset - line_start + 1


def source_context(source: str, span: Span, radius: int = 2) -> str:
    """Numbered lines around `span`. Its first line is marked with `>` and the
    span is underlined, up to the end of that line."""
    line, col = line_col(source, span.start)
    lines = source.split("\n")
    first = max(1, line - radius)
    last = min(len(lines), line + radius)
    width = len(str(last))
    underline = max(1, min(span.end - span.start, len(lines[line - 1]) - col + 1))
    out = []
    for number in range(first, last + 1):
        marker = ">" if number == line else " "
        out.append(f"{marker} {number:>{width}} | {lines[number - 1]}")
        if number == line:
            out.append(f"  {'':>{width}} | {' ' * (col - 1)}{'^' * underline}")
    return "\n".join(out)


def _metadata(item: Any) -> FileValue:
    return item if isinstance(item, FileValue) else FileValue(item)


class ScriptRunner:
    """Parses and executes hyscript code against a fixed set of bindings.

    `bindings` maps global names to Values or plain data (see to_value).
    `file_lookup` is the client the `File` constructor queries, usually a
    HydrusClient; without one `File(...)` fails at run time.
    """

    def __init__(self, bindings: Optional[Mapping[str, Any]] = None, file_lookup: Optional[Any] = None):
        self.bindings: Dict[str, Value] = {name: to_value(v) for name, v in (bindings or {}).items()}
        self.file_lookup = file_lookup

    def resolver(self, **extra: Value) -> StandardResolver:
        """A global namespace of the bindings plus `extra`, with `File` as a builtin."""
        globals = dict(self.bindings)
        globals.update(extra)
        return StandardResolver(globals, file_lookup=self.file_lookup)

    @staticmethod
    def _error(e: ScriptError) -> ExecutionResult:
        return ExecutionResult(status='error', error_message=f"{e.kind}: {e.message}", error_span=e.span)

    async def handle_script(self, source: str) -> ExecutionResult:
        """Runs a statement list. The value is whatever a top-level `return` gave, else Null."""
        try:
            node = Parser(source).parse_script()
            value = await evaluate(self.resolver(), node)
        except ScriptError as e:
            return self._error(e)
        return ExecutionResult(status='success', value=value)

    async def handle_expression(self, source: str) -> ExecutionResult:
        try:
            node = Parser(source).parse_expression()
            value = await evaluate(self.resolver(), node)
        except ScriptError as e:
            return self._error(e)
        return ExecutionResult(status='success', value=value)

    def suggest(self, source: str, cursor: Optional[int] = None,
                script: bool = False) -> Union[Suggestions, ScriptError, None]:
        """Completions at `cursor` (default: end of source) for an expression,
        or a script if `script` is set, that is still being typed. `file` is
        bound to a placeholder record so its members can be offered without
        any lookup."""
        if cursor is None:
            cursor = len(source)
        try:
            parser = Parser(source, allow_partial=True)
            node = parser.parse_script() if script else parser.parse_expression()
        except ScriptError as e:
            return e
        return get_suggestions(self.resolver(file=FileValue.placeholder()), node, cursor)

    async def filter_files(self, expr: str, files: Sequence[Any]) -> List[Any]:
        """Keeps the files for which `expr` is true, with `file` bound to each."""
        node = Parser(expr).parse_expression()
        kept = []
        for item in files:
            result = await evaluate(self.resolver(file=_metadata(item)), node)
            if BooleanValue.from_(result).value:
                kept.append(item)
        return kept

    async def sort_files(self, expr: str, files: Sequence[Any]) -> List[Any]:
        """Stable ascending sort of `files` by the Number or String that `expr`
        yields for each of them."""
        node = Parser(expr).parse_expression()
        keyed = []
        kinds = set()
        for item in files:
            score = unwrap(await evaluate(self.resolver(file=_metadata(item)), node))
            if not isinstance(score, (NumberValue, StringValue)):
                raise EvaluationError(f"Sort expression must produce a Number or String, got {score.name}")
            kinds.add(score.name)
            keyed.append((score.value, item))
        if len(kinds) > 1:
            raise EvaluationError("Sort expression produced both Number and String keys")
        keyed.sort(key=lambda pair: pair[0])
        return [item for _, item in keyed]
