"""Marshaling rules shared by every emitter.

Every function crosses the native boundary as the same ordered list of
marshaled parameters: the declared parameters in order, then the return
slot. Buffers (and every output) travel as pointer + explicit length,
scalar and enum inputs travel by value. Emitters only render these rules,
they never decide them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .naming import RETURN_SLOT, length_slot
from .types import FunctionDef, TypeDef, TypeKind


class Role(Enum):
    IN_BUFFER = "in_buffer"
    IN_VALUE = "in_value"
    OUT_BUFFER = "out_buffer"


class SlotKind(Enum):
    IN_POINTER = "in_pointer"
    OUT_POINTER = "out_pointer"
    LENGTH = "length"
    VALUE = "value"


@dataclass(frozen=True)
class MarshalParam:
    """One logical argument at the native boundary"""
    name: str
    type: TypeDef
    role: Role
    is_return: bool = False


@dataclass(frozen=True)
class AbiSlot:
    """One positional argument of the exported C-ABI function"""
    name: str
    kind: SlotKind
    param: MarshalParam


@dataclass(frozen=True)
class ScalarRepr:
    rust: str
    c: str
    java: str
    jni: str
    swift: str


class TypeMapper:
    """Maps model types to per-target representations"""

    SCALARS = {
        1: ScalarRepr(rust="u8", c="uint8_t", java="int", jni="jint", swift="UInt8"),
        2: ScalarRepr(rust="u16", c="uint16_t", java="int", jni="jint", swift="UInt16"),
        4: ScalarRepr(rust="u32", c="uint32_t", java="int", jni="jint", swift="UInt32"),
        8: ScalarRepr(rust="u64", c="uint64_t", java="long", jni="jlong", swift="UInt64"),
    }

    # Enums cross the boundary as their one-byte discriminant
    ENUM_REPR = SCALARS[1]

    RUST_SLOTS = {
        SlotKind.IN_POINTER: "*const u8",
        SlotKind.OUT_POINTER: "*mut u8",
        SlotKind.LENGTH: "u32",
    }

    C_SLOTS = {
        SlotKind.IN_POINTER: "const uint8_t *",
        SlotKind.OUT_POINTER: "uint8_t *",
        SlotKind.LENGTH: "uint32_t",
    }

    @classmethod
    def scalar(cls, typedef: TypeDef) -> ScalarRepr:
        """Representation of a by-value scalar or enum"""
        if typedef.kind is TypeKind.ENUM:
            return cls.ENUM_REPR
        if typedef.kind is not TypeKind.SCALAR:
            raise ValueError(f"{typedef.name} is not passed by value")
        return cls.SCALARS[typedef.size]

    @classmethod
    def marshal_params(cls, func: FunctionDef) -> list[MarshalParam]:
        params = []
        for p in func.parameters:
            if p.is_out:
                role = Role.OUT_BUFFER
            elif p.type.is_buffer:
                role = Role.IN_BUFFER
            else:
                role = Role.IN_VALUE
            params.append(MarshalParam(p.name, p.type, role))
        if func.returns:
            params.append(MarshalParam(RETURN_SLOT, func.returns, Role.OUT_BUFFER, is_return=True))
        return params

    @classmethod
    def abi_slots(cls, func: FunctionDef) -> list[AbiSlot]:
        slots = []
        for mp in cls.marshal_params(func):
            if mp.role is Role.IN_VALUE:
                slots.append(AbiSlot(mp.name, SlotKind.VALUE, mp))
                continue
            pointer = SlotKind.IN_POINTER if mp.role is Role.IN_BUFFER else SlotKind.OUT_POINTER
            slots.append(AbiSlot(mp.name, pointer, mp))
            slots.append(AbiSlot(length_slot(mp.name), SlotKind.LENGTH, mp))
        return slots

    @classmethod
    def rust_slot(cls, slot: AbiSlot) -> str:
        if slot.kind is SlotKind.VALUE:
            return cls.scalar(slot.param.type).rust
        return cls.RUST_SLOTS[slot.kind]

    @classmethod
    def c_slot(cls, slot: AbiSlot) -> str:
        if slot.kind is SlotKind.VALUE:
            return cls.scalar(slot.param.type).c
        return cls.C_SLOTS[slot.kind]

    @classmethod
    def c_param(cls, slot: AbiSlot) -> str:
        c_type = cls.c_slot(slot)
        sep = "" if c_type.endswith("*") else " "
        return f"{c_type}{sep}{slot.name}"

    @classmethod
    def java_native(cls, mp: MarshalParam) -> str:
        """Java type of a marshaled parameter in Native.java"""
        if mp.role is Role.IN_VALUE:
            return cls.scalar(mp.type).java
        return "byte[]"

    @classmethod
    def jni(cls, mp: MarshalParam) -> str:
        if mp.role is Role.IN_VALUE:
            return cls.scalar(mp.type).jni
        return "jbyteArray"

    @classmethod
    def java_value(cls, typedef: Optional[TypeDef]) -> str:
        """Idiomatic Java type of a value at the wrapper level"""
        if typedef is None:
            return "void"
        if typedef.is_scalar:
            return cls.scalar(typedef).java
        return typedef.name

    @classmethod
    def swift_value(cls, typedef: TypeDef) -> str:
        if typedef.is_scalar:
            return cls.scalar(typedef).swift
        return typedef.name

    @classmethod
    def rust_safe(cls, typedef: TypeDef, mutable: bool = False) -> str:
        """Type of a value in the safe Rust layer"""
        if typedef.is_buffer or mutable:
            return "&mut [u8]" if mutable else "&[u8]"
        return cls.scalar(typedef).rust

    @classmethod
    def rust_owned(cls, typedef: TypeDef, length_const: str) -> str:
        """Owned Rust type returned by the safe layer"""
        if typedef.is_buffer:
            return f"[u8; {length_const}]"
        return cls.scalar(typedef).rust
