"""
The hyscript runtime value model.

Every value derives from BaseValue, which rejects every operator with an
InvalidOperationError; concrete types override only what they support.
Numbers are IEEE doubles with JavaScript-compatible arithmetic, bitwise and
string conversion semantics.
"""
import math
import re
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional

from hyscript.hyscript_errors import (
    EvaluationError, InvalidConversionError, InvalidOperationError,
    NoSuchMemberError, TypeMismatchError,
)


# =================================================================
# JavaScript-compatible numeric helpers
# =================================================================

_DECIMAL_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_RADIX_RE = re.compile(r"^0([xXoObB])([0-9a-fA-F]+)$")
_RADIX = {"x": 16, "o": 8, "b": 2}


def string_to_number(text: str) -> float:
    """Converts a string the way JavaScript's Number() does; NaN on failure."""
    text = text.strip()
    if text == "":
        return 0.0
    if text in ("Infinity", "+Infinity"):
        return math.inf
    if text == "-Infinity":
        return -math.inf
    if _DECIMAL_RE.match(text):
        return float(text)
    m = _RADIX_RE.match(text)
    if m:
        try:
            return float(int(m.group(2), _RADIX[m.group(1).lower()]))
        except ValueError:
            return math.nan
    return math.nan


def format_number(value: float) -> str:
    """Formats a float the way JavaScript's Number#toString does."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == int(value) and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    if "e" in text:
        mantissa, exponent = text.split("e")
        sign = "-" if exponent.startswith("-") else "+"
        return f"{mantissa}e{sign}{exponent.lstrip('+-').lstrip('0') or '0'}"
    return text


def to_int32(value: float) -> int:
    """JavaScript ToInt32: truncate, wrap modulo 2**32, reinterpret as signed."""
    if math.isnan(value) or math.isinf(value):
        return 0
    n = int(value) & 0xFFFFFFFF
    return n - 0x100000000 if n & 0x80000000 else n


def js_div(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def js_rem(a: float, b: float) -> float:
    if b == 0 or math.isnan(a) or math.isnan(b) or math.isinf(a):
        return math.nan
    if math.isinf(b):
        return a
    return math.fmod(a, b)


def js_truthy(value: Any) -> bool:
    if isinstance(value, float) and math.isnan(value):
        return False
    return bool(value)


def _to_integer(value: float) -> int:
    if math.isnan(value):
        return 0
    if math.isinf(value):
        return int(math.copysign(1 << 53, value))
    return int(value)


# =================================================================
# Values
# =================================================================

def unwrap(value: "Value") -> "Value":
    """Returns the value held by a Variable, or the value itself."""
    while isinstance(value, Variable):
        value = value.value
    return value


def required(args: List["Value"], n: int) -> "Value":
    if n >= len(args):
        raise EvaluationError(f"Required argument {n} missing")
    return args[n]


def optional(args: List["Value"], n: int) -> Optional["Value"]:
    if n >= len(args):
        return None
    return args[n]


class BaseValue:
    """Default behaviour for every value: all operators are invalid."""
    name = "Value"

    def __init__(self, value: Any = None):
        self.value = value

    def __repr__(self):
        return f"{type(self).__name__}({self.value!r})"

    def raw(self) -> Any:
        return self.value

    def _invalid(self, operation: str):
        raise InvalidOperationError(self.name, operation)

    def negate(self): self._invalid("negate")
    def not_(self): self._invalid("not")
    def bit_not(self): self._invalid("bit_not")

    def dot(self, ident: str) -> "Value":
        raise NoSuchMemberError(self.name, ident)

    def dot_suggest(self) -> List[str]:
        return []

    def logical_or(self, rhs): self._invalid("logical_or")
    def logical_and(self, rhs): self._invalid("logical_and")
    def equal(self, rhs): self._invalid("equal")
    def not_equal(self, rhs): self._invalid("not_equal")
    def lesser(self, rhs): self._invalid("lesser")
    def lesser_equal(self, rhs): self._invalid("lesser_equal")
    def greater(self, rhs): self._invalid("greater")
    def greater_equal(self, rhs): self._invalid("greater_equal")
    def add(self, rhs): self._invalid("add")
    def sub(self, rhs): self._invalid("sub")
    def or_(self, rhs): self._invalid("or")
    def xor(self, rhs): self._invalid("xor")
    def mul(self, rhs): self._invalid("mul")
    def div(self, rhs): self._invalid("div")
    def rem(self, rhs): self._invalid("rem")
    def lsh(self, rhs): self._invalid("lsh")
    def rsh(self, rhs): self._invalid("rsh")
    def and_(self, rhs): self._invalid("and")
    def and_not(self, rhs): self._invalid("and_not")
    def index(self, rhs): self._invalid("index")

    async def call(self, args: List["Value"]) -> "Value":
        self._invalid("call")

    def call_placeholder(self, args: List["Value"]) -> "Value":
        self._invalid("call")

    def assign(self, value: "Value"):
        self._invalid("assign")


Value = BaseValue


class BooleanValue(BaseValue):
    name = "Boolean"

    @classmethod
    def from_(cls, v: Value) -> "BooleanValue":
        v = unwrap(v)
        if isinstance(v, BooleanValue):
            return v
        raise TypeMismatchError(cls.name, v.name)

    @classmethod
    def into(cls, v: Value) -> "BooleanValue":
        v = unwrap(v)
        if isinstance(v, BooleanValue):
            return v
        if isinstance(v, (NumberValue, StringValue)):
            return BooleanValue(js_truthy(v.value))
        raise InvalidConversionError(v.name, cls.name)

    def not_(self):
        return BooleanValue(not self.value)

    def logical_or(self, rhs):
        return BooleanValue(self.value or BooleanValue.from_(rhs).value)

    def logical_and(self, rhs):
        return BooleanValue(self.value and BooleanValue.from_(rhs).value)

    def equal(self, rhs):
        return BooleanValue(self.value == BooleanValue.from_(rhs).value)

    def not_equal(self, rhs):
        return BooleanValue(self.value != BooleanValue.from_(rhs).value)


class NumberValue(BaseValue):
    name = "Number"

    def __init__(self, value: float):
        super().__init__(float(value))

    @classmethod
    def from_(cls, v: Value) -> "NumberValue":
        v = unwrap(v)
        if isinstance(v, NumberValue):
            return v
        raise TypeMismatchError(cls.name, v.name)

    @classmethod
    def into(cls, v: Value) -> "NumberValue":
        v = unwrap(v)
        if isinstance(v, NumberValue):
            return v
        if isinstance(v, BooleanValue):
            return NumberValue(1.0 if v.value else 0.0)
        if isinstance(v, StringValue):
            return NumberValue(string_to_number(v.value))
        raise InvalidConversionError(v.name, cls.name)

    def _rhs(self, rhs) -> float:
        return NumberValue.from_(rhs).value

    def negate(self):
        return NumberValue(-self.value)

    def not_(self):
        return BooleanValue(not js_truthy(self.value))

    def bit_not(self):
        return NumberValue(~to_int32(self.value))

    def equal(self, rhs):
        return BooleanValue(self.value == self._rhs(rhs))

    def not_equal(self, rhs):
        return BooleanValue(self.value != self._rhs(rhs))

    def lesser(self, rhs):
        return BooleanValue(self.value < self._rhs(rhs))

    def lesser_equal(self, rhs):
        return BooleanValue(self.value <= self._rhs(rhs))

    def greater(self, rhs):
        return BooleanValue(self.value > self._rhs(rhs))

    def greater_equal(self, rhs):
        return BooleanValue(self.value >= self._rhs(rhs))

    def add(self, rhs):
        return NumberValue(self.value + self._rhs(rhs))

    def sub(self, rhs):
        return NumberValue(self.value - self._rhs(rhs))

    def mul(self, rhs):
        return NumberValue(self.value * self._rhs(rhs))

    def div(self, rhs):
        return NumberValue(js_div(self.value, self._rhs(rhs)))

    def rem(self, rhs):
        return NumberValue(js_rem(self.value, self._rhs(rhs)))

    # Bitwise operators work on 32-bit signed integers.
    def or_(self, rhs):
        return NumberValue(to_int32(to_int32(self.value) | to_int32(self._rhs(rhs))))

    def xor(self, rhs):
        return NumberValue(to_int32(to_int32(self.value) ^ to_int32(self._rhs(rhs))))

    def and_(self, rhs):
        return NumberValue(to_int32(self.value) & to_int32(self._rhs(rhs)))

    def and_not(self, rhs):
        return NumberValue(to_int32(self.value) & ~to_int32(self._rhs(rhs)))

    def lsh(self, rhs):
        return NumberValue(to_int32(to_int32(self.value) << (to_int32(self._rhs(rhs)) & 31)))

    def rsh(self, rhs):
        return NumberValue(to_int32(self.value) >> (to_int32(self._rhs(rhs)) & 31))

    def dot(self, ident):
        if ident == "string":
            return StringValue(format_number(self.value))
        return super().dot(ident)

    def dot_suggest(self):
        return super().dot_suggest() + ["string"]


def _pad_start(text: str, length: float, fill: str = " ") -> str:
    target = _to_integer(length)
    if target <= len(text) or fill == "":
        return text
    needed = target - len(text)
    pad = (fill * (needed // len(fill) + 1))[:needed]
    return pad + text


def _substring(text: str, start: float, end: Optional[float] = None) -> str:
    size = len(text)
    a = min(max(_to_integer(start), 0), size)
    b = size if end is None else min(max(_to_integer(end), 0), size)
    if a > b:
        a, b = b, a
    return text[a:b]


def _match(text: str, pattern: str) -> bool:
    try:
        return re.search(pattern, text) is not None
    except re.error as e:
        raise EvaluationError(f"Invalid pattern {pattern!r}: {e}") from e


class StringValue(BaseValue):
    name = "String"

    @classmethod
    def from_(cls, v: Value) -> "StringValue":
        v = unwrap(v)
        if isinstance(v, StringValue):
            return v
        raise TypeMismatchError(cls.name, v.name)

    @classmethod
    def into(cls, v: Value) -> "StringValue":
        v = unwrap(v)
        if isinstance(v, StringValue):
            return v
        if isinstance(v, NumberValue):
            return StringValue(format_number(v.value))
        if isinstance(v, BooleanValue):
            return StringValue("true" if v.value else "false")
        raise InvalidConversionError(v.name, cls.name)

    def _rhs(self, rhs) -> str:
        return StringValue.from_(rhs).value

    def negate(self):
        return NumberValue(-string_to_number(self.value))

    def not_(self):
        return BooleanValue(not self.value)

    def bit_not(self):
        return NumberValue(~to_int32(string_to_number(self.value)))

    def equal(self, rhs):
        return BooleanValue(self.value == self._rhs(rhs))

    def not_equal(self, rhs):
        return BooleanValue(self.value != self._rhs(rhs))

    def lesser(self, rhs):
        return BooleanValue(self.value < self._rhs(rhs))

    def lesser_equal(self, rhs):
        return BooleanValue(self.value <= self._rhs(rhs))

    def greater(self, rhs):
        return BooleanValue(self.value > self._rhs(rhs))

    def greater_equal(self, rhs):
        return BooleanValue(self.value >= self._rhs(rhs))

    def add(self, rhs):
        return StringValue(self.value + self._rhs(rhs))

    def dot(self, ident):
        text = self.value
        match ident:
            case "length":
                return NumberValue(len(text))
            case "padStart":
                def pad_start(args):
                    fill = optional(args, 1)
                    length = NumberValue.from_(required(args, 0)).value
                    if fill is None:
                        return StringValue(_pad_start(text, length))
                    return StringValue(_pad_start(text, length, StringValue.from_(fill).value))
                return FunctionValue.from_pure_sync(pad_start)
            case "startsWith":
                return FunctionValue.from_pure_sync(
                    lambda args: BooleanValue(text.startswith(StringValue.from_(required(args, 0)).value)))
            case "endsWith":
                return FunctionValue.from_pure_sync(
                    lambda args: BooleanValue(text.endswith(StringValue.from_(required(args, 0)).value)))
            case "contains":
                return FunctionValue.from_pure_sync(
                    lambda args: BooleanValue(StringValue.from_(required(args, 0)).value in text))
            case "substring":
                def substring(args):
                    start = NumberValue.from_(required(args, 0)).value
                    end = optional(args, 1)
                    return StringValue(_substring(text, start, None if end is None else NumberValue.from_(end).value))
                return FunctionValue.from_pure_sync(substring)
            case "match":
                return FunctionValue.from_pure_sync(
                    lambda args: BooleanValue(_match(text, StringValue.from_(required(args, 0)).value)))
        return super().dot(ident)

    def dot_suggest(self):
        return super().dot_suggest() + [
            "length", "padStart", "startsWith", "endsWith", "contains", "substring", "match",
        ]


class NullValue(BaseValue):
    name = "Null"

    def __init__(self, value: None = None):
        super().__init__(None)

    def equal(self, rhs):
        return BooleanValue(isinstance(unwrap(rhs), NullValue))

    def not_equal(self, rhs):
        return BooleanValue(not isinstance(unwrap(rhs), NullValue))


# =================================================================
# Functions and lists
# =================================================================

class FunctionValue(BaseValue):
    """A callable with two paths: a real coroutine used by the evaluator and a
    synchronous placeholder used by speculative inference."""
    name = "Function"

    def __init__(self, value: Callable[[List[Value]], Awaitable[Value]],
                 placeholder: Callable[[List[Value]], Value]):
        super().__init__(value)
        self.placeholder = placeholder

    @staticmethod
    def from_pure_sync(fn: Callable[[List[Value]], Value]) -> "FunctionValue":
        """Wraps a side-effect free function so both paths run it."""
        async def call(args):
            return fn(args)
        return FunctionValue(call, fn)

    @classmethod
    def from_(cls, v: Value) -> "FunctionValue":
        v = unwrap(v)
        if isinstance(v, FunctionValue):
            return v
        raise TypeMismatchError(cls.name, v.name)

    async def call(self, args):
        return await self.value(args)

    def call_placeholder(self, args):
        return self.placeholder(args)


def _predicate_result(value: Value) -> bool:
    value = unwrap(value)
    if not isinstance(value, BooleanValue):
        raise EvaluationError(f"Expected boolean value from predicate, got {value.name}")
    return value.value


class BaseListValue(BaseValue, ABC):
    """A list of native items, each exposed to scripts through item_value()."""
    name = "List"

    def __init__(self, value: Optional[list] = None):
        super().__init__(list(value) if value is not None else [])

    @abstractmethod
    def item_value(self, item) -> Value:
        """The script-visible Value for one stored item."""
        ...

    def index(self, rhs):
        i = NumberValue.from_(rhs).value
        if i < 0:
            i += len(self.value)
        if not (i.is_integer() and 0 <= i < len(self.value)):
            raise EvaluationError(f"Index {format_number(i)} not found in {self.name}")
        return self.item_value(self.value[int(i)])

    def _predicate(self, args, method: str) -> FunctionValue:
        if not args:
            raise EvaluationError(f"List.{method} requires an argument")
        return FunctionValue.from_(args[0])

    def _some(self) -> FunctionValue:
        async def call(args):
            predicate = self._predicate(args, "some")
            for item in self.value:
                if _predicate_result(await predicate.call([self.item_value(item)])):
                    return BooleanValue(True)
            return BooleanValue(False)

        def placeholder(args):
            predicate = self._predicate(args, "some")
            return BooleanValue(any(
                _predicate_result(predicate.call_placeholder([self.item_value(item)]))
                for item in self.value))

        return FunctionValue(call, placeholder)

    def _every(self) -> FunctionValue:
        async def call(args):
            predicate = self._predicate(args, "every")
            for item in self.value:
                if not _predicate_result(await predicate.call([self.item_value(item)])):
                    return BooleanValue(False)
            return BooleanValue(True)

        def placeholder(args):
            predicate = self._predicate(args, "every")
            return BooleanValue(all(
                _predicate_result(predicate.call_placeholder([self.item_value(item)]))
                for item in self.value))

        return FunctionValue(call, placeholder)

    def dot(self, ident):
        match ident:
            case "length":
                return NumberValue(len(self.value))
            case "some":
                return self._some()
            case "every":
                return self._every()
        return super().dot(ident)

    def dot_suggest(self):
        return super().dot_suggest() + ["length", "some", "every"]


class ListValue(BaseListValue):
    """A list whose items are already Values."""

    def item_value(self, item):
        return item

    def raw(self):
        return [unwrap(item).raw() for item in self.value]


class StringListValue(BaseListValue):
    """A list of native strings."""

    def item_value(self, item):
        return StringValue(item)

    def dot(self, ident):
        if ident == "contains":
            return FunctionValue.from_pure_sync(
                lambda args: BooleanValue(StringValue.from_(required(args, 0)).value in self.value))
        return super().dot(ident)

    def dot_suggest(self):
        return super().dot_suggest() + ["contains"]


# =================================================================
# Type constructors
# =================================================================

class _TypeConstructor(BaseValue):
    """`Boolean`, `Number` and `String` used as values: calling one converts
    its argument. Conversion is pure, so both call paths agree."""
    target = None

    def __init__(self):
        super().__init__(None)

    def call_placeholder(self, args):
        if not args:
            raise EvaluationError(f"Missing argument in {self.name}() call")
        return self.target.into(args[0])

    async def call(self, args):
        return self.call_placeholder(args)


class BooleanTypeValue(_TypeConstructor):
    name = "Boolean"
    target = BooleanValue


class NumberTypeValue(_TypeConstructor):
    name = "Number"
    target = NumberValue


class StringTypeValue(_TypeConstructor):
    name = "String"
    target = StringValue


# =================================================================
# Variables
# =================================================================

class Variable(BaseValue):
    """A mutable one-slot cell. Forwards every operation to the value it
    holds; `name` always mirrors the held value's name."""

    def __init__(self, value: Optional[Value] = None):
        held = unwrap(value) if value is not None else NullValue()
        super().__init__(held)
        self.name = held.name

    def __repr__(self):
        return f"Variable({self.value!r})"

    def raw(self):
        return self.value.raw()

    def assign(self, value: Value):
        self.value = unwrap(value)
        self.name = self.value.name

    def negate(self): return self.value.negate()
    def not_(self): return self.value.not_()
    def bit_not(self): return self.value.bit_not()
    def dot(self, ident): return self.value.dot(ident)
    def dot_suggest(self): return self.value.dot_suggest()
    def logical_or(self, rhs): return self.value.logical_or(rhs)
    def logical_and(self, rhs): return self.value.logical_and(rhs)
    def equal(self, rhs): return self.value.equal(rhs)
    def not_equal(self, rhs): return self.value.not_equal(rhs)
    def lesser(self, rhs): return self.value.lesser(rhs)
    def lesser_equal(self, rhs): return self.value.lesser_equal(rhs)
    def greater(self, rhs): return self.value.greater(rhs)
    def greater_equal(self, rhs): return self.value.greater_equal(rhs)
    def add(self, rhs): return self.value.add(rhs)
    def sub(self, rhs): return self.value.sub(rhs)
    def or_(self, rhs): return self.value.or_(rhs)
    def xor(self, rhs): return self.value.xor(rhs)
    def mul(self, rhs): return self.value.mul(rhs)
    def div(self, rhs): return self.value.div(rhs)
    def rem(self, rhs): return self.value.rem(rhs)
    def lsh(self, rhs): return self.value.lsh(rhs)
    def rsh(self, rhs): return self.value.rsh(rhs)
    def and_(self, rhs): return self.value.and_(rhs)
    def and_not(self, rhs): return self.value.and_not(rhs)
    def index(self, rhs): return self.value.index(rhs)

    async def call(self, args):
        return await self.value.call(args)

    def call_placeholder(self, args):
        return self.value.call_placeholder(args)
