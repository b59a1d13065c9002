import pytest

from hyscript.hyscript_errors import EvaluationError, TypeMismatchError
from hyscript.hyscript_file import (
    FILE_ATTRIBUTES, FileListValue, FileTypeValue, FileValue, display_tags,
)
from hyscript.hyscript_interpreter import evaluate
from hyscript.hyscript_parser import Parser
from hyscript.hyscript_resolver import StandardResolver
from hyscript.hyscript_values import BooleanValue, NullValue, NumberValue, StringValue


def sample(file_id=7, hash_="abc123", **extra):
    metadata = {
        "file_id": file_id,
        "hash": hash_,
        "size": 2048,
        "width": 640,
        "height": 480,
        "duration": 2500,
        "known_urls": ["https://example.com/a"],
        "tags": {
            "my tags": {"display_tags": {"0": ["a", "b"], "1": ["pending"]}},
            "all known tags": {"display_tags": {"0": ["b", "c"]}},
        },
        "ratings": {"like": True, "stars": 3},
    }
    metadata.update(extra)
    return metadata


class FakeClient:
    def __init__(self, records):
        self.records = records
        self.calls = []

    async def get_file_metadata(self, file_ids):
        self.calls.append(("ids", list(file_ids)))
        return [r for r in self.records if r["file_id"] in file_ids]

    async def get_file_metadata_by_hashes(self, hashes):
        self.calls.append(("hashes", list(hashes)))
        return [r for r in self.records if r["hash"] in hashes]


def test_display_tags_are_current_and_deduplicated():
    assert display_tags(sample()) == ["a", "b", "c"]
    assert display_tags({}) == []


def test_file_members():
    file = FileValue(sample())
    assert file.dot("id").value == 7
    assert file.dot("hash").value == "abc123"
    assert file.dot("size").value == 2048
    assert file.dot("duration").value == 2.5
    assert file.dot("urls").raw() == ["https://example.com/a"]
    assert file.dot("tags").raw() == ["a", "b", "c"]
    assert file.dot("tags").name == "TagsList"
    assert file.dot("numericRating").value == 3
    assert file.dot("hasLike").value is True
    assert file.dot("hasDislike").value is False
    assert file.dot_suggest() == FILE_ATTRIBUTES


def test_missing_metadata_defaults():
    file = FileValue({"file_id": 1, "ratings": {"like": None}})
    assert file.dot("duration").value == 0
    assert file.dot("urls").raw() == []
    assert isinstance(file.dot("numericRating"), NullValue)
    assert file.dot("hasLike").value is False
    assert file.dot("hasDislike").value is False


def test_boolean_ratings_are_not_numeric():
    file = FileValue(sample(ratings={"dislike": False}))
    assert isinstance(file.dot("numericRating"), NullValue)
    assert file.dot("hasDislike").value is True


def test_files_compare_by_hash():
    a = FileValue(sample(file_id=1, hash_="h"))
    b = FileValue(sample(file_id=2, hash_="h"))
    c = FileValue(sample(hash_="other"))
    assert a.equal(b).value is True
    assert a.not_equal(c).value is True
    with pytest.raises(TypeMismatchError):
        a.equal(NumberValue(1))


def test_file_list_items_are_files():
    files = FileListValue([sample(file_id=1), sample(file_id=2)])
    assert files.dot("length").value == 2
    second = files.index(NumberValue(-1))
    assert isinstance(second, FileValue)
    assert second.dot("id").value == 2


@pytest.mark.asyncio
async def test_scripts_see_file_members():
    resolver = StandardResolver({"file": FileValue(sample())})
    node = Parser('file.tags.contains("b") && file.width > file.height').parse_expression()
    assert (await evaluate(resolver, node)).raw() is True


@pytest.mark.asyncio
async def test_constructor_by_id_and_hash():
    client = FakeClient([sample(file_id=3, hash_="ff")])
    ctor = FileTypeValue(client)
    assert (await ctor.call([NumberValue(3)])).dot("hash").value == "ff"
    assert (await ctor.call([StringValue("ff")])).dot("id").value == 3
    assert client.calls == [("ids", [3]), ("hashes", ["ff"])]


@pytest.mark.asyncio
async def test_constructor_not_found():
    ctor = FileTypeValue(FakeClient([]))
    with pytest.raises(EvaluationError, match="File ID 9 not found"):
        await ctor.call([NumberValue(9)])
    with pytest.raises(EvaluationError, match="File hash dead not found"):
        await ctor.call([StringValue("dead")])
    with pytest.raises(EvaluationError, match="File ID 1.5 not found"):
        await ctor.call([NumberValue(1.5)])


@pytest.mark.asyncio
async def test_constructor_argument_errors():
    ctor = FileTypeValue(FakeClient([]))
    with pytest.raises(EvaluationError, match="Missing argument in File\\(\\) call"):
        await ctor.call([])
    with pytest.raises(EvaluationError, match="Unexpected argument type Boolean to File constructor"):
        await ctor.call([BooleanValue(True)])


@pytest.mark.asyncio
async def test_constructor_without_client():
    with pytest.raises(EvaluationError, match="No Hydrus client is configured"):
        await FileTypeValue().call([NumberValue(1)])


def test_placeholder_call_never_looks_up():
    client = FakeClient([])
    file = FileTypeValue(client).call_placeholder([NumberValue(1)])
    assert isinstance(file, FileValue)
    assert file.dot("tags").raw() == [""]
    assert client.calls == []
