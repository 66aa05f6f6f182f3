"""Data types of the API model"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping, Optional


class TypeKind(Enum):
    BUFFER = "buffer"
    SCALAR = "scalar"
    ENUM = "enum"


class Direction(Enum):
    IN = "in"
    OUT = "out"


@dataclass(frozen=True)
class TypeDef:
    """Named type: fixed-size byte buffer, unsigned scalar or enum"""
    name: str
    kind: TypeKind
    size: int = 0
    variants: tuple[str, ...] = ()
    module: Optional[str] = None

    @property
    def byte_size(self) -> int:
        """Number of bytes the value occupies when carried in a buffer"""
        if self.kind is TypeKind.ENUM:
            return 1
        return self.size

    @property
    def is_buffer(self) -> bool:
        return self.kind is TypeKind.BUFFER

    @property
    def is_scalar(self) -> bool:
        return self.kind is TypeKind.SCALAR

    @property
    def is_enum(self) -> bool:
        return self.kind is TypeKind.ENUM


@dataclass(frozen=True)
class Parameter:
    """Function parameter"""
    name: str
    type: TypeDef
    direction: Direction = Direction.IN

    @property
    def is_out(self) -> bool:
        return self.direction is Direction.OUT


@dataclass(frozen=True)
class FunctionDef:
    """Library function exposed through every binding"""
    name: str
    module: str
    parameters: tuple[Parameter, ...] = ()
    returns: Optional[TypeDef] = None
    fallible: bool = False

    @property
    def inputs(self) -> tuple[Parameter, ...]:
        return tuple(p for p in self.parameters if not p.is_out)

    @property
    def outputs(self) -> tuple[Parameter, ...]:
        return tuple(p for p in self.parameters if p.is_out)

    @property
    def output_count(self) -> int:
        return len(self.outputs) + (1 if self.returns else 0)


@dataclass(frozen=True)
class Module:
    """Logical grouping of functions (auth, profiles, groups, ...)"""
    name: str
    functions: tuple[FunctionDef, ...] = ()


@dataclass(frozen=True)
class ApiModel:
    """Complete, validated API model. Read-only once built."""
    types: Mapping[str, TypeDef] = field(default_factory=lambda: MappingProxyType({}))
    modules: tuple[Module, ...] = ()

    def functions(self) -> Iterator[FunctionDef]:
        for module in self.modules:
            yield from module.functions

    def buffer_types(self) -> list[TypeDef]:
        return [t for t in self.types.values() if t.is_buffer]

    def enum_types(self) -> list[TypeDef]:
        return [t for t in self.types.values() if t.is_enum]

    def home_module(self, typedef: TypeDef) -> str:
        """Module hosting the value class of a type.

        An explicit placement wins; otherwise the first module (in model
        order) referencing the type, falling back to ``internal``.
        """
        if typedef.module:
            return typedef.module
        for func in self.functions():
            used = [p.type for p in func.parameters] + [func.returns]
            if any(t is not None and t.name == typedef.name for t in used):
                return func.module
        return "internal"

    def module_types(self, module_name: str) -> list[TypeDef]:
        """Buffer and enum types whose value class lives in the given module"""
        return [
            t for t in self.types.values()
            if not t.is_scalar and self.home_module(t) == module_name
        ]

    def value_modules(self) -> list[str]:
        """Module names hosting value classes, in a stable order"""
        names = [m.name for m in self.modules]
        for t in self.types.values():
            if not t.is_scalar:
                home = self.home_module(t)
                if home not in names:
                    names.append(home)
        return [n for n in names if self.module_types(n)]
