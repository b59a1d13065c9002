import math

import pytest

from hyscript.hyscript_errors import (
    EvaluationError, InvalidConversionError, InvalidOperationError,
    NoSuchMemberError, TypeMismatchError,
)
from hyscript.hyscript_values import (
    BooleanTypeValue, BooleanValue, FunctionValue, ListValue, NullValue,
    NumberTypeValue, NumberValue, StringListValue, StringTypeValue, StringValue,
    Variable, format_number, js_div, js_rem, js_truthy, string_to_number,
    to_int32, unwrap,
)


# --- Numeric helpers ---

@pytest.mark.parametrize("text, expected", [
    ("12", 12.0),
    ("  12 ", 12.0),
    ("", 0.0),
    ("-1.5", -1.5),
    (".5", 0.5),
    ("1e3", 1000.0),
    ("0x1f", 31.0),
    ("0b101", 5.0),
    ("0o17", 15.0),
    ("Infinity", math.inf),
    ("-Infinity", -math.inf),
])
def test_string_to_number(text, expected):
    assert string_to_number(text) == expected


@pytest.mark.parametrize("text", ["abc", "1.5e", "0x", "1 2", "0b2"])
def test_string_to_number_nan(text):
    assert math.isnan(string_to_number(text))


@pytest.mark.parametrize("value, expected", [
    (1.0, "1"),
    (-0.0, "0"),
    (0.1, "0.1"),
    (1.5e-7, "1.5e-7"),
    (1e21, "1e+21"),
    (123456789.0, "123456789"),
    (math.nan, "NaN"),
    (-math.inf, "-Infinity"),
])
def test_format_number(value, expected):
    assert format_number(value) == expected


def test_to_int32_wraps():
    assert to_int32(2 ** 32 + 5) == 5
    assert to_int32(2 ** 31) == -(2 ** 31)
    assert to_int32(-1.9) == -1
    assert to_int32(math.nan) == 0
    assert to_int32(math.inf) == 0


def test_js_division_and_remainder():
    assert js_div(1, 0) == math.inf
    assert js_div(-1, 0) == -math.inf
    assert math.isnan(js_div(0, 0))
    assert js_rem(-7, 2) == -1
    assert js_rem(7, -3) == 1
    assert math.isnan(js_rem(1, 0))
    assert js_rem(5, math.inf) == 5


def test_js_truthy():
    assert not js_truthy(math.nan)
    assert not js_truthy(0.0)
    assert not js_truthy("")
    assert js_truthy("0")


# --- Scalars ---

def test_number_operators():
    a, b = NumberValue(7), NumberValue(2)
    assert a.add(b).value == 9
    assert a.sub(b).value == 5
    assert a.mul(b).value == 14
    assert a.div(b).value == 3.5
    assert a.rem(b).value == 1
    assert a.lesser(b).value is False
    assert a.greater_equal(b).value is True
    assert a.negate().value == -7
    assert NumberValue(0).not_().value is True


def test_number_bitwise_operators():
    assert NumberValue(5).and_not(NumberValue(3)).value == 4
    assert NumberValue(5).xor(NumberValue(1)).value == 4
    assert NumberValue(1).lsh(NumberValue(33)).value == 2
    assert NumberValue(-1).rsh(NumberValue(1)).value == -1
    assert NumberValue(0).bit_not().value == -1
    assert NumberValue(2 ** 31).or_(NumberValue(0)).value == -(2 ** 31)


def test_number_string_member():
    assert NumberValue(2.5).dot("string").value == "2.5"
    assert NumberValue(1).dot_suggest() == ["string"]


def test_operands_must_match():
    with pytest.raises(TypeMismatchError, match="Expected type Number, but found String."):
        NumberValue(1).add(StringValue("a"))
    with pytest.raises(TypeMismatchError):
        BooleanValue(True).logical_and(NumberValue(1))


def test_unsupported_operations():
    with pytest.raises(InvalidOperationError, match="Operation sub is invalid for type String"):
        StringValue("a").sub(StringValue("b"))
    with pytest.raises(InvalidOperationError, match="Operation call is invalid for type Number"):
        NumberValue(1).call_placeholder([])
    with pytest.raises(InvalidOperationError, match="Operation assign is invalid for type Null"):
        NullValue().assign(NumberValue(1))
    with pytest.raises(NoSuchMemberError, match="Type Boolean has no member x"):
        BooleanValue(True).dot("x")


def test_null_equality():
    assert NullValue().equal(NullValue()).value is True
    assert NullValue().equal(NumberValue(0)).value is False
    assert NullValue().not_equal(Variable(NullValue())).value is False


def test_boolean_into():
    assert BooleanValue.into(NumberValue(math.nan)).value is False
    assert BooleanValue.into(StringValue("x")).value is True
    with pytest.raises(InvalidConversionError, match="Can not convert from type Null to Boolean."):
        BooleanValue.into(NullValue())


def test_number_and_string_into():
    assert NumberValue.into(BooleanValue(True)).value == 1
    assert NumberValue.into(StringValue("0x10")).value == 16
    assert StringValue.into(NumberValue(3)).value == "3"
    assert StringValue.into(BooleanValue(False)).value == "false"


# --- Strings ---

def call(fn, *args):
    return FunctionValue.from_(fn).call_placeholder(list(args))


def test_string_members():
    s = StringValue("hello")
    assert s.dot("length").value == 5
    assert call(s.dot("startsWith"), StringValue("he")).value is True
    assert call(s.dot("endsWith"), StringValue("lo")).value is True
    assert call(s.dot("contains"), StringValue("ell")).value is True
    assert call(s.dot("substring"), NumberValue(1), NumberValue(3)).value == "el"
    assert call(s.dot("substring"), NumberValue(3), NumberValue(1)).value == "el"
    assert call(s.dot("substring"), NumberValue(2)).value == "llo"
    assert call(s.dot("match"), StringValue("l+o$")).value is True


def test_pad_start():
    s = StringValue("5")
    assert call(s.dot("padStart"), NumberValue(3), StringValue("0")).value == "005"
    assert call(s.dot("padStart"), NumberValue(4), StringValue("ab")).value == "aba5"
    assert call(s.dot("padStart"), NumberValue(3)).value == "  5"
    assert call(s.dot("padStart"), NumberValue(0)).value == "5"


def test_string_member_errors():
    s = StringValue("x")
    with pytest.raises(EvaluationError, match="Required argument 0 missing"):
        call(s.dot("startsWith"))
    with pytest.raises(EvaluationError, match="Invalid pattern"):
        call(s.dot("match"), StringValue("("))


@pytest.mark.asyncio
async def test_string_members_run_on_the_real_path():
    fn = StringValue("abc").dot("contains")
    assert (await fn.call([StringValue("b")])).value is True


# --- Lists ---

def test_list_index():
    items = ListValue([StringValue("a"), StringValue("b")])
    assert items.index(NumberValue(1)).value == "b"
    assert items.index(NumberValue(-1)).value == "b"
    with pytest.raises(EvaluationError, match="Index 2 not found in List"):
        items.index(NumberValue(2))
    with pytest.raises(EvaluationError, match="Index 0.5 not found in List"):
        items.index(NumberValue(0.5))
    assert items.raw() == ["a", "b"]


def test_string_list():
    tags = StringListValue(["x", "y"])
    assert tags.dot("length").value == 2
    assert tags.index(NumberValue(0)).value == "x"
    assert call(tags.dot("contains"), StringValue("y")).value is True
    assert tags.dot_suggest() == ["length", "some", "every", "contains"]


def test_list_some_and_every_placeholder_path():
    items = StringListValue(["ab", "b"])
    starts_with_a = FunctionValue.from_pure_sync(
        lambda args: BooleanValue(args[0].value.startswith("a")))
    assert call(items.dot("some"), starts_with_a).value is True
    assert call(items.dot("every"), starts_with_a).value is False
    with pytest.raises(EvaluationError, match="List.some requires an argument"):
        call(items.dot("some"))


@pytest.mark.asyncio
async def test_list_predicate_must_return_boolean():
    items = StringListValue(["a"])
    bad = FunctionValue.from_pure_sync(lambda args: NumberValue(1))
    with pytest.raises(EvaluationError, match="Expected boolean value from predicate, got Number"):
        await items.dot("every").call([bad])


# --- Type constructors ---

@pytest.mark.asyncio
async def test_type_constructors_convert_on_both_paths():
    assert (await NumberTypeValue().call([StringValue("12")])).value == 12
    assert NumberTypeValue().call_placeholder([BooleanValue(True)]).value == 1
    assert (await StringTypeValue().call([NumberValue(1.5)])).value == "1.5"
    assert BooleanTypeValue().call_placeholder([NumberValue(0)]).value is False


def test_type_constructor_missing_argument():
    with pytest.raises(EvaluationError, match="Missing argument in String\\(\\) call"):
        StringTypeValue().call_placeholder([])


# --- Variables ---

def test_variable_forwards_and_tracks_name():
    v = Variable(NumberValue(1))
    assert v.name == "Number"
    assert v.add(NumberValue(2)).value == 3
    v.assign(StringValue("s"))
    assert v.name == "String"
    assert v.dot("length").value == 1
    assert v.raw() == "s"


def test_variables_never_nest():
    inner = Variable(NumberValue(1))
    outer = Variable(inner)
    assert isinstance(outer.value, NumberValue)
    outer.assign(Variable(StringValue("x")))
    assert isinstance(outer.value, StringValue)
    assert unwrap(outer).value == "x"


def test_uninitialized_variable_is_null():
    v = Variable()
    assert isinstance(v.value, NullValue)
    assert v.name == "Null"


# --- Unsupported operator table ---

UNARY_OPERATORS = ["negate", "not_", "bit_not"]
BINARY_OPERATORS = [
    "logical_or", "logical_and", "equal", "not_equal", "lesser", "lesser_equal",
    "greater", "greater_equal", "add", "sub", "or_", "xor", "mul", "div", "rem",
    "lsh", "rsh", "and_", "and_not", "index",
]

# (value, operators it implements)
VARIANTS = [
    (BooleanValue(True), {"not_", "logical_or", "logical_and", "equal", "not_equal"}),
    (NumberValue(1), set(UNARY_OPERATORS + BINARY_OPERATORS) - {"logical_or", "logical_and", "index"}),
    (StringValue("a"), {
        "negate", "not_", "bit_not", "equal", "not_equal", "lesser", "lesser_equal",
        "greater", "greater_equal", "add",
    }),
    (NullValue(), {"equal", "not_equal"}),
    (FunctionValue.from_pure_sync(lambda args: NullValue()), {"call_placeholder"}),
    (ListValue([NumberValue(1)]), {"index"}),
    (StringListValue(["a"]), {"index"}),
    (NumberTypeValue(), {"call_placeholder"}),
]


def _unsupported():
    for value, implemented in VARIANTS:
        for op in UNARY_OPERATORS + BINARY_OPERATORS + ["call_placeholder", "assign"]:
            if op not in implemented:
                yield pytest.param(value, op, id=f"{type(value).__name__}-{op}")


@pytest.mark.parametrize("value, op", list(_unsupported()))
def test_unsupported_operator_names_type_and_operation(value, op):
    operation = "call" if op == "call_placeholder" else op.rstrip("_")
    method = getattr(value, op)
    with pytest.raises(InvalidOperationError) as exc:
        if op in UNARY_OPERATORS:
            method()
        elif op == "call_placeholder":
            method([])
        else:
            method(value)
    assert exc.value.message == f"Operation {operation} is invalid for type {value.name}"
    assert exc.value.type_name == value.name
    assert exc.value.operation == operation


@pytest.mark.asyncio
async def test_real_call_on_non_callable():
    with pytest.raises(InvalidOperationError, match="Operation call is invalid for type List"):
        await ListValue([]).call([])


def test_lists_do_not_convert():
    items = ListValue([NumberValue(1)])
    with pytest.raises(InvalidConversionError, match="Can not convert from type List to Number."):
        NumberValue.into(items)
    with pytest.raises(InvalidConversionError, match="Can not convert from type List to String."):
        StringValue.into(items)


@pytest.mark.asyncio
@pytest.mark.parametrize("method, expected, visited", [
    ("some", True, ["a", "bb"]),
    ("every", False, ["a"]),
])
async def test_list_predicates_agree_on_both_paths(method, expected, visited):
    items = StringListValue(["a", "bb", "c"])
    seen = []

    def is_long(args):
        seen.append(args[0].value)
        return BooleanValue(len(args[0].value) == 2)

    predicate = FunctionValue.from_pure_sync(is_long)
    real = await items.dot(method).call([predicate])
    real_seen, seen[:] = list(seen), []
    speculative = items.dot(method).call_placeholder([predicate])

    assert real.value is speculative.value is expected
    assert real_seen == seen == visited
