"""
Name resolution for hyscript.

A Resolver maps identifiers to Values. Resolvers chain through a parent:
StandardResolver is the global namespace, ScopeResolver is a lexical scope
created per evaluation and per function call, and SpeculativeResolver shadows
another resolver so inference runs never touch real state.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from hyscript.hyscript_errors import NameNotFound
from hyscript.hyscript_file import FileTypeValue
from hyscript.hyscript_values import Value, Variable


def _unique(*groups) -> List[str]:
    return list(dict.fromkeys(name for group in groups for name in group))


class Resolver(ABC):
    """Interface for namespaces."""

    @abstractmethod
    def assign(self, ident: str, value: Value) -> None:
        ...

    @abstractmethod
    def resolve(self, ident: str) -> Value:
        """Returns the binding for `ident` or raises NameNotFound."""
        ...

    @abstractmethod
    def suggestions(self) -> List[str]:
        """All names visible from this resolver, without duplicates."""
        ...


class StandardResolver(Resolver):
    """The global namespace: host bindings, then built-in constructors.

    `globals` is fixed at construction; `assign` writes to a separate table of
    locals that shadows it. Unless `builtins` is given, the only built-in is
    the `File` constructor, which looks files up through `file_lookup`.
    """

    def __init__(self, globals: Optional[Mapping[str, Value]] = None,
                 builtins: Optional[Mapping[str, Value]] = None,
                 file_lookup: Optional[Any] = None):
        if builtins is None:
            builtins = {"File": FileTypeValue(file_lookup)}
        self.locals: Dict[str, Value] = {}
        self.globals: Dict[str, Value] = dict(globals or {})
        self.builtins: Dict[str, Value] = dict(builtins)

    def assign(self, ident, value):
        self.locals[ident] = value

    def resolve(self, ident):
        for table in (self.locals, self.globals, self.builtins):
            if ident in table:
                return table[ident]
        raise NameNotFound(ident)

    def suggestions(self):
        return _unique(self.locals, self.globals, self.builtins)


class ScopeResolver(Resolver):
    """A lexical scope. Unknown names are looked up in the parent."""

    def __init__(self, parent: Resolver):
        self.parent = parent
        self.locals: Dict[str, Value] = {}

    def assign(self, ident, value):
        self.locals[ident] = value

    def resolve(self, ident):
        if ident in self.locals:
            return self.locals[ident]
        return self.parent.resolve(ident)

    def suggestions(self):
        return _unique(self.locals, self.parent.suggestions())


class SpeculativeResolver(Resolver):
    """Copy-on-read shadow of another resolver.

    The first read of a name copies the parent's binding into a private
    Variable. Every later read or write sees only that shadow.
    """

    def __init__(self, parent: Resolver):
        self.parent = parent
        self.shadows: Dict[str, Value] = {}

    def assign(self, ident, value):
        self.shadows[ident] = value

    def resolve(self, ident):
        if ident in self.shadows:
            return self.shadows[ident]
        shadow = Variable(self.parent.resolve(ident))
        self.shadows[ident] = shadow
        return shadow

    def suggestions(self):
        return _unique(self.shadows, self.parent.suggestions())
