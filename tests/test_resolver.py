import pytest

from hyscript.hyscript_errors import NameNotFound
from hyscript.hyscript_file import FileTypeValue
from hyscript.hyscript_resolver import ScopeResolver, SpeculativeResolver, StandardResolver
from hyscript.hyscript_values import NumberValue, StringValue, Variable


@pytest.fixture
def standard():
    return StandardResolver(
        {"limit": NumberValue(5), "name": StringValue("x")},
        {"File": StringValue("builtin"), "limit": NumberValue(0)},
    )


def test_lookup_order(standard):
    assert standard.resolve("limit").value == 5
    assert standard.resolve("File").value == "builtin"
    standard.assign("limit", NumberValue(9))
    assert standard.resolve("limit").value == 9
    # Globals are untouched; assignment lands in the locals table.
    assert standard.globals["limit"].value == 5


def test_unknown_name(standard):
    with pytest.raises(NameNotFound, match="No such value missing") as exc:
        standard.resolve("missing")
    assert exc.value.ident == "missing"


def test_standard_suggestions_are_unique(standard):
    standard.assign("local", NumberValue(1))
    assert standard.suggestions() == ["local", "limit", "name", "File"]


def test_scope_resolver_falls_back_to_parent(standard):
    scope = ScopeResolver(standard)
    scope.assign("name", StringValue("shadow"))
    assert scope.resolve("name").value == "shadow"
    assert scope.resolve("limit").value == 5
    assert standard.resolve("name").value == "x"
    assert scope.suggestions()[0] == "name"
    assert scope.suggestions().count("name") == 1


def test_speculative_resolver_copies_on_read(standard):
    real = Variable(NumberValue(1))
    standard.assign("counter", real)
    shadow = SpeculativeResolver(standard)

    copy = shadow.resolve("counter")
    assert isinstance(copy, Variable)
    assert copy is not real
    copy.assign(NumberValue(42))
    assert shadow.resolve("counter").value.value == 42
    assert real.value.value == 1


def test_speculative_assign_stays_in_shadow(standard):
    shadow = SpeculativeResolver(standard)
    shadow.assign("fresh", NumberValue(1))
    assert shadow.resolve("fresh").value == 1
    with pytest.raises(NameNotFound):
        standard.resolve("fresh")
    assert shadow.suggestions()[0] == "fresh"


def test_file_constructor_is_built_in():
    resolver = StandardResolver()
    assert isinstance(resolver.resolve("File"), FileTypeValue)
    assert resolver.suggestions() == ["File"]
    # Bindings shadow the built-in.
    shadowed = StandardResolver({"File": NumberValue(1)})
    assert shadowed.resolve("File").value == 1


@pytest.mark.asyncio
async def test_file_constructor_uses_the_lookup_client():
    class Client:
        async def get_file_metadata(self, ids):
            return [{"file_id": ids[0], "hash": "h"}]

    file_type = StandardResolver(file_lookup=Client()).resolve("File")
    assert (await file_type.call([NumberValue(2)])).dot("hash").value == "h"
