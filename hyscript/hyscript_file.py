"""
Hydrus file values: scripts see a file's metadata through `File` members.
"""
from typing import Any, Dict, List, Optional

from hyscript.hyscript_errors import EvaluationError, TypeMismatchError
from hyscript.hyscript_values import (
    BaseListValue, BaseValue, BooleanValue, NullValue, NumberValue,
    StringListValue, StringValue, Value, unwrap,
)

# Content update action for "current" tags.
CURRENT_TAGS = "0"

FILE_ATTRIBUTES = [
    "id", "hash", "size", "width", "height", "duration", "urls", "tags",
    "numericRating", "hasLike", "hasDislike",
]


def _ratings(metadata: Dict[str, Any]) -> List[Any]:
    return list((metadata.get("ratings") or {}).values())


def display_tags(metadata: Dict[str, Any]) -> List[str]:
    """Current display tags across every tag service, deduplicated in order."""
    tags = []
    for service in (metadata.get("tags") or {}).values():
        tags.extend((service.get("display_tags") or {}).get(CURRENT_TAGS) or [])
    return list(dict.fromkeys(tags))


class TagsList(StringListValue):
    name = "TagsList"

    def __init__(self, metadata: Dict[str, Any]):
        super().__init__(display_tags(metadata))


class FileValue(BaseValue):
    """A file's metadata record as returned by /get_files/file_metadata."""
    name = "File"

    @staticmethod
    def placeholder() -> "FileValue":
        """An inert record with every attribute present, for speculative runs."""
        return FileValue({
            "file_id": 0,
            "hash": "",
            "size": 0,
            "mime": "",
            "width": 0,
            "height": 0,
            "duration": 0,
            "num_frames": 0,
            "has_audio": False,
            "known_urls": [""],
            "tags": {
                "": {
                    "storage_tags": {CURRENT_TAGS: [""]},
                    "display_tags": {CURRENT_TAGS: [""]},
                },
            },
            "ratings": {"": 1},
            "notes": {"": ""},
        })

    @classmethod
    def from_(cls, v: Value) -> "FileValue":
        v = unwrap(v)
        if isinstance(v, FileValue):
            return v
        raise TypeMismatchError(cls.name, v.name)

    def equal(self, rhs):
        return BooleanValue(self.value.get("hash") == FileValue.from_(rhs).value.get("hash"))

    def not_equal(self, rhs):
        return BooleanValue(self.value.get("hash") != FileValue.from_(rhs).value.get("hash"))

    def dot(self, ident):
        meta = self.value
        match ident:
            case "id":
                return NumberValue(meta.get("file_id") or 0)
            case "hash":
                return StringValue(meta.get("hash") or "")
            case "size":
                return NumberValue(meta.get("size") or 0)
            case "width":
                return NumberValue(meta.get("width") or 0)
            case "height":
                return NumberValue(meta.get("height") or 0)
            case "duration":
                # Hydrus reports milliseconds.
                return NumberValue((meta.get("duration") or 0) / 1000)
            case "urls":
                return StringListValue(meta.get("known_urls") or [])
            case "tags":
                return TagsList(meta)
            case "numericRating":
                for rating in _ratings(meta):
                    if isinstance(rating, (int, float)) and not isinstance(rating, bool):
                        return NumberValue(rating)
                return NullValue()
            case "hasLike":
                return BooleanValue(any(rating is True for rating in _ratings(meta)))
            case "hasDislike":
                return BooleanValue(any(rating is False for rating in _ratings(meta)))
        return super().dot(ident)

    def dot_suggest(self):
        return super().dot_suggest() + FILE_ATTRIBUTES


class FileListValue(BaseListValue):
    """A list of metadata records."""

    def item_value(self, item):
        return FileValue(item)


class FileTypeValue(BaseValue):
    """The `File` constructor: `File(id)` or `File(hash)`.

    The real call looks the file up through `client`. The speculative call
    only checks the argument and returns FileValue.placeholder().
    """
    name = "File"

    def __init__(self, client: Optional[Any] = None):
        super().__init__(None)
        self.client = client

    def _argument(self, args) -> Value:
        if not args:
            raise EvaluationError("Missing argument in File() call")
        arg = unwrap(args[0])
        if not isinstance(arg, (NumberValue, StringValue)):
            raise EvaluationError(f"Unexpected argument type {arg.name} to File constructor")
        return arg

    def call_placeholder(self, args):
        self._argument(args)
        return FileValue.placeholder()

    async def call(self, args):
        arg = self._argument(args)
        if self.client is None:
            raise EvaluationError("No Hydrus client is configured for File lookups")
        if isinstance(arg, NumberValue):
            if not arg.value.is_integer():
                raise EvaluationError(f"File ID {arg.value} not found")
            metadata = await self.client.get_file_metadata([int(arg.value)])
            label = f"File ID {int(arg.value)}"
        else:
            metadata = await self.client.get_file_metadata_by_hashes([arg.value])
            label = f"File hash {arg.value}"
        if not metadata:
            raise EvaluationError(f"{label} not found")
        return FileValue(metadata[0])
