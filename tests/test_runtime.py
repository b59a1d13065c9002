import pytest

from hyscript.hyscript_errors import EvaluationError, ParseError, Suggestions, TypeMismatchError
from hyscript.hyscript_file import FILE_ATTRIBUTES
from hyscript.hyscript_runtime import ExecutionResult, ScriptRunner, line_col, source_context
from hyscript.hyscript_scanner import Span

FILES = [
    {"file_id": 1, "hash": "a", "size": 300, "tags": {"s": {"display_tags": {"0": ["red"]}}}},
    {"file_id": 2, "hash": "b", "size": 100, "tags": {"s": {"display_tags": {"0": ["blue"]}}}},
    {"file_id": 3, "hash": "c", "size": 200, "tags": {"s": {"display_tags": {"0": ["red", "big"]}}}},
]


@pytest.fixture
def runner():
    return ScriptRunner({"limit": 150, "colour": "red"})


@pytest.mark.asyncio
async def test_handle_expression(runner):
    result = await runner.handle_expression("limit * 2")
    assert result.status == "success"
    assert result.value.raw() == 300
    assert result.format_error() == ""


@pytest.mark.asyncio
async def test_handle_script(runner):
    result = await runner.handle_script("let x = limit; x += 1; return x;")
    assert result.status == "success"
    assert result.value.raw() == 151


@pytest.mark.asyncio
async def test_parse_errors_are_reported(runner):
    result = await runner.handle_expression("1 +")
    assert result.status == "error"
    assert result.error_message == "ParseError: No expression was parsed"


@pytest.mark.asyncio
async def test_evaluation_errors_are_reported(runner):
    result = await runner.handle_expression('1 + "a"')
    assert result.error_message == "TypeMismatchError: Expected type Number, but found String."
    assert result.error_span == Span(0, 7)


@pytest.mark.asyncio
async def test_runs_do_not_share_state(runner):
    await runner.handle_script("limit = 0;")
    assert (await runner.handle_expression("limit")).value.raw() == 150


@pytest.mark.asyncio
async def test_format_error_points_at_the_source(runner):
    source = 'let x = 1;\nreturn x + "a";'
    result = await runner.handle_script(source)
    text = result.format_error(source)
    assert text.startswith("TypeMismatchError: Expected type Number, but found String. (line 2, col 8)")
    assert "> 2 | return x + \"a\";" in text
    assert text.endswith("    |        ^^^^^^^")


def test_format_error_without_span():
    result = ExecutionResult(status="error", error_message="boom")
    assert result.format_error("source") == "boom"


def test_line_col():
    source = "ab\ncd\n"
    assert line_col(source, 0) == (1, 1)
    assert line_col(source, 4) == (2, 2)
    assert line_col(source, 6) == (3, 1)
    assert line_col(source, 99) == (3, 1)


def test_source_context_window():
    source = "a\nb\nc\nd\ne\nf"
    assert source_context(source, Span(6, 7), radius=1) == "  3 | c\n> 4 | d\n    | ^\n  5 | e"


def test_source_context_underlines_the_span():
    source = "let total = size +\n  \"x\";"
    assert source_context(source, Span(12, 25)) == (
        "> 1 | let total = size +\n"
        "    |             ^^^^^^\n"
        "  2 |   \"x\";"
    )
    # Zero-width spans still get a caret.
    assert source_context("abc", Span(3, 3)).endswith("| " + " " * 3 + "^")


def test_suggest_file_members(runner):
    result = runner.suggest("file.")
    assert isinstance(result, Suggestions)
    assert result.identifiers == FILE_ATTRIBUTES
    assert result.replace_span == Span(5, 5)


def test_suggest_globals(runner):
    assert runner.suggest("lim").identifiers == ["limit"]
    assert runner.suggest("lim", cursor=1).identifiers == ["limit"]


def test_suggest_in_a_script(runner):
    result = runner.suggest("let big = file.size > limit; bi", script=True)
    assert result.identifiers == ["big"]


def test_suggest_returns_errors(runner):
    assert isinstance(runner.suggest("nope + 1"), Exception)
    assert runner.suggest("1 + 1") is None


@pytest.mark.asyncio
async def test_filter_files(runner):
    kept = await runner.filter_files("file.tags.contains(colour)", FILES)
    assert [f["file_id"] for f in kept] == [1, 3]
    assert kept[0] is FILES[0]


@pytest.mark.asyncio
async def test_filter_requires_a_boolean(runner):
    with pytest.raises(TypeMismatchError):
        await runner.filter_files("file.size", FILES)


@pytest.mark.asyncio
async def test_sort_files(runner):
    by_size = await runner.sort_files("file.size", FILES)
    assert [f["file_id"] for f in by_size] == [2, 3, 1]
    by_hash = await runner.sort_files("file.hash", list(reversed(FILES)))
    assert [f["hash"] for f in by_hash] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_sort_is_stable(runner):
    ordered = await runner.sort_files("file.tags.length", FILES)
    assert [f["file_id"] for f in ordered] == [1, 2, 3]


@pytest.mark.asyncio
async def test_sort_key_errors(runner):
    with pytest.raises(EvaluationError, match="Sort expression must produce a Number or String, got Boolean"):
        await runner.sort_files("file.size > limit", FILES)
    with pytest.raises(EvaluationError, match="produced both Number and String keys"):
        await runner.sort_files('file.size > limit ? file.size : "small"', FILES)


@pytest.mark.asyncio
async def test_sort_propagates_script_errors(runner):
    with pytest.raises(ParseError):
        await runner.sort_files("file.", FILES)


@pytest.mark.asyncio
async def test_file_lookups_use_the_client():
    class Client:
        async def get_file_metadata(self, ids):
            return [{"file_id": ids[0], "hash": "zz"}]

    runner = ScriptRunner(file_lookup=Client())
    result = await runner.handle_expression("File(4).hash")
    assert result.value.raw() == "zz"


@pytest.mark.asyncio
async def test_runaway_recursion_is_reported(runner):
    source = "let f = function (n) { return f(n + 1); }; return f(0);"
    result = await runner.handle_script(source)
    assert result.status == "error"
    assert result.error_message == "EvaluationError: Maximum call depth exceeded"
    assert isinstance(runner.suggest(source + " f.", script=True), EvaluationError)
