import json
from pathlib import Path

import pytest
import yaml

from hyscript.hyscript_errors import EvaluationError
from hyscript.hyscript_file import FileListValue, FileValue
from hyscript.hyscript_serialize import deserialize, dump_value, from_value, load_bindings, to_value
from hyscript.hyscript_values import (
    BooleanValue, FunctionValue, ListValue, NullValue, NumberValue,
    StringListValue, StringValue, Variable,
)


def test_deserialize_json_and_yaml():
    assert deserialize(b'{"a": [1, 2]}', content_type="application/json") == {"a": [1, 2]}
    assert deserialize("a: 1\nb: [x]", content_type="application/yaml") == {"a": 1, "b": ["x"]}
    assert deserialize("  \n") is None


def test_deserialize_honours_charset():
    body = '{"name": "café"}'.encode("latin-1")
    assert deserialize(body, content_type="application/json; charset=latin-1") == {"name": "café"}


def test_deserialize_failure():
    with pytest.raises(EvaluationError, match="Could not decode response body"):
        deserialize("{not json")


def test_to_value():
    assert isinstance(to_value(None), NullValue)
    assert to_value(True).value is True
    assert isinstance(to_value(True), BooleanValue)
    assert to_value(3).value == 3
    assert to_value("x").value == "x"
    assert isinstance(to_value({"file_id": 1}), FileValue)
    assert isinstance(to_value(["a", "b"]), StringListValue)
    assert isinstance(to_value([]), StringListValue)
    assert isinstance(to_value([{"file_id": 1}]), FileListValue)
    mixed = to_value([1, "a", None])
    assert isinstance(mixed, ListValue)
    assert mixed.raw() == [1, "a", None]
    same = NumberValue(1)
    assert to_value(same) is same
    with pytest.raises(TypeError):
        to_value(object())


def test_from_value():
    assert from_value(NumberValue(2.0)) == 2
    assert isinstance(from_value(NumberValue(2.0)), int)
    assert from_value(NumberValue(2.5)) == 2.5
    assert from_value(Variable(StringValue("s"))) == "s"
    assert from_value(ListValue([NumberValue(1), StringValue("a")])) == [1, "a"]
    assert from_value(NullValue()) is None
    with pytest.raises(TypeError):
        from_value(FunctionValue.from_pure_sync(lambda args: NullValue()))


def test_load_bindings_from_text():
    bindings = load_bindings("limit: 5\ntags: [a, b]\nname: x")
    assert bindings["limit"].value == 5
    assert bindings["tags"].raw() == ["a", "b"]
    assert bindings["name"].value == "x"
    assert load_bindings("") == {}


def test_load_bindings_from_file(tmp_path):
    path = tmp_path / "bindings.yaml"
    path.write_text("threshold: 0.5\n", encoding="utf-8")
    assert load_bindings(path)["threshold"].value == 0.5
    assert load_bindings(str(path))["threshold"].value == 0.5


def test_load_bindings_requires_a_mapping():
    with pytest.raises(ValueError, match="Bindings must be a mapping"):
        load_bindings("- a\n- b")


def test_dump_value():
    value = ListValue([NumberValue(1), StringValue("a")])
    assert json.loads(dump_value(value)) == [1, "a"]
    assert dump_value(value, pretty=True) == '[\n  1,\n  "a"\n]'
    assert yaml.safe_load(dump_value(value, "yaml")) == [1, "a"]
    with pytest.raises(ValueError, match="Unsupported serialization format"):
        dump_value(value, "xml")
