"""Swift Generator - generates the C header of the shim and the Swift wrappers over it"""

import logging

from .common_generator import CommonGenerator
from .config import GeneratorOptions
from .error_codes import ERROR_CODES, ErrorCodeTable
from .naming import (
    RETURN_SLOT, core_symbol, length_constant, module_class, swift_case,
)
from .type_mapper import MarshalParam, Role, TypeMapper
from .types import ApiModel, FunctionDef, Module, TypeDef

logger = logging.getLogger(__name__)

RESULT_LABEL = "result"


class SwiftGenerator:
    """Generates ``swift/``: C header, error enum, value types, module wrappers"""

    TARGET = "swift"
    OUTPUT_DIRS = ("swift",)

    def __init__(self, model: ApiModel, options: GeneratorOptions,
                 error_codes: ErrorCodeTable = ERROR_CODES):
        self.model = model
        self.options = options
        self.error_codes = error_codes
        self.common = CommonGenerator(options)

    @property
    def header_name(self) -> str:
        return f"{self.options.library_name}.h"

    def generate(self) -> dict[str, str]:
        files = {
            f"swift/{self.header_name}": self.generate_header(),
            "swift/ZkGroupError.swift": self.generate_error_enum(),
            "swift/ByteArray.swift": self.generate_byte_array(),
        }
        for home in self.model.value_modules():
            for typedef in self.model.module_types(home):
                if typedef.is_buffer:
                    files[f"swift/{typedef.name}.swift"] = self.generate_value_type(typedef)
                else:
                    files[f"swift/{typedef.name}.swift"] = self.generate_enum(typedef)
        for module in self.model.modules:
            files[f"swift/{module_class(module.name)}.swift"] = self.generate_module(module)
        logger.debug("swift: %d files", len(files))
        return files

    # ── C header ────────────────────────────────────────────────────────

    def generate_header(self) -> str:
        guard = f"{self.options.library_name.upper()}_H"
        lines = self.common.banner()
        lines.extend([
            f"#ifndef {guard}",
            f"#define {guard}",
            "",
            "#include <stdint.h>",
            "",
            "#ifdef __cplusplus",
            'extern "C" {',
            "#endif",
            "",
        ])
        for code in self.error_codes:
            lines.append(f"#define {code.constant} {code.value}")
        lines.append("")
        for t in self.model.buffer_types():
            lines.append(f"#define {length_constant(t)} {t.size}")
        if self.model.buffer_types():
            lines.append("")
        for module in self.model.modules:
            lines.append(f"/* {module.name} */")
            for func in module.functions:
                lines.append(self._prototype(func))
            lines.append("")
        lines.extend([
            "#ifdef __cplusplus",
            "}",
            "#endif",
            "",
            f"#endif // {guard}",
        ])
        return self.common.render(lines)

    def _prototype(self, func: FunctionDef) -> str:
        params = ", ".join(TypeMapper.c_param(s) for s in TypeMapper.abi_slots(func)) or "void"
        return f"int32_t {core_symbol(func)}({params});"

    # ── Swift support files ─────────────────────────────────────────────

    def generate_error_enum(self) -> str:
        lines = self.common.banner()
        lines.append("public enum ZkGroupError: Int32, Error {")
        for code in self.error_codes.failures:
            lines.append(f"    case {code.swift_case} = {code.value}")
        lines.extend([
            "",
            "    static func check(_ ffiResult: Int32) throws {",
            f"        if ffiResult == {self.error_codes.ok.constant} {{",
            "            return",
            "        }",
            f"        throw ZkGroupError(rawValue: ffiResult) ?? .{self.error_codes.internal_error.swift_case}",
            "    }",
            "}",
        ])
        return self.common.render(lines)

    def generate_byte_array(self) -> str:
        lines = self.common.banner()
        lines.extend([
            "public protocol ByteArrayValue {",
            "    static var SIZE: Int { get }",
            "    var contents: [UInt8] { get }",
            "    init(contents: [UInt8]) throws",
            "}",
            "",
            "extension ByteArrayValue {",
            "    static func checkLength(_ contents: [UInt8]) throws {",
            "        guard contents.count == SIZE else {",
            f"            throw ZkGroupError.{self.error_codes.invalid_input.swift_case}",
            "        }",
            "    }",
            "",
            "    public func serialize() -> [UInt8] {",
            "        return contents",
            "    }",
            "}",
            "",
            "func decodeScalar<T: FixedWidthInteger>(_ bytes: [UInt8]) -> T {",
            "    var value: T = 0",
            "    for byte in bytes.reversed() {",
            "        value = (value << 8) | T(byte)",
            "    }",
            "    return value",
            "}",
            "",
            "func decodeEnum<T: RawRepresentable>(_ bytes: [UInt8]) throws -> T where T.RawValue == UInt8 {",
            "    guard let value = T(rawValue: bytes[0]) else {",
            f"        throw ZkGroupError.{self.error_codes.internal_error.swift_case}",
            "    }",
            "    return value",
            "}",
        ])
        return self.common.render(lines)

    def generate_value_type(self, typedef: TypeDef) -> str:
        lines = self.common.banner()
        lines.extend([
            f"public struct {typedef.name}: ByteArrayValue {{",
            f"    public static let SIZE = Int({length_constant(typedef)})",
            "",
            "    public let contents: [UInt8]",
            "",
            "    public init(contents: [UInt8]) throws {",
            f"        try {typedef.name}.checkLength(contents)",
            "        self.contents = contents",
            "    }",
            "}",
        ])
        return self.common.render(lines)

    def generate_enum(self, typedef: TypeDef) -> str:
        lines = self.common.banner()
        lines.append(f"public enum {typedef.name}: UInt8 {{")
        for i, variant in enumerate(typedef.variants):
            lines.append(f"    case {swift_case(variant)} = {i}")
        lines.append("}")
        return self.common.render(lines)

    # ── Swift module wrappers ───────────────────────────────────────────

    def generate_module(self, module: Module) -> str:
        lines = self.common.banner()
        lines.append(f"public enum {module_class(module.name)} {{")
        lines.append("")
        for func in module.functions:
            lines.extend(self._swift_function(func))
        lines.append("}")
        return self.common.render(lines)

    def _outputs(self, func: FunctionDef) -> list[tuple[str, str, TypeDef]]:
        """(local variable, tuple label, type) for every output in order"""
        outputs = [(p.name, p.name, p.type) for p in func.outputs]
        if func.returns:
            outputs.append((RETURN_SLOT, RESULT_LABEL, func.returns))
        return outputs

    def _return_type(self, func: FunctionDef) -> str:
        outputs = self._outputs(func)
        if not outputs:
            return ""
        if len(outputs) == 1:
            return f" -> {TypeMapper.swift_value(outputs[0][2])}"
        labels = ", ".join(f"{label}: {TypeMapper.swift_value(t)}" for _, label, t in outputs)
        return f" -> ({labels})"

    def _out_size(self, typedef: TypeDef) -> str:
        if typedef.is_buffer:
            return f"{typedef.name}.SIZE"
        return str(typedef.byte_size)

    def _c_args(self, mp: MarshalParam) -> list[str]:
        if mp.role is Role.IN_BUFFER:
            return [f"{mp.name}.contents", f"UInt32({mp.name}.contents.count)"]
        if mp.role is Role.OUT_BUFFER:
            return [f"&{mp.name}", f"UInt32({self._out_size(mp.type)})"]
        if mp.type.is_enum:
            return [f"{mp.name}.rawValue"]
        return [mp.name]

    def _decode(self, local: str, typedef: TypeDef, attempt: str) -> str:
        if typedef.is_buffer:
            return f"{attempt} {typedef.name}(contents: {local})"
        if typedef.is_enum:
            return f"{attempt} decodeEnum({local}) as {typedef.name}"
        return f"decodeScalar({local}) as {TypeMapper.swift_value(typedef)}"

    def _swift_function(self, func: FunctionDef) -> list[str]:
        params = ", ".join(f"{p.name}: {TypeMapper.swift_value(p.type)}" for p in func.inputs)
        throws = " throws" if func.fallible else ""
        lines = [f"    public static func {func.name}({params}){throws}{self._return_type(func)} {{"]

        marshaled = TypeMapper.marshal_params(func)
        for mp in marshaled:
            if mp.role is Role.OUT_BUFFER:
                lines.append(f"        var {mp.name} = [UInt8](repeating: 0, count: {self._out_size(mp.type)})")
        args = ", ".join(arg for mp in marshaled for arg in self._c_args(mp))
        lines.append(f"        let ffiResult = {core_symbol(func)}({args})")

        if func.fallible:
            lines.append("        try ZkGroupError.check(ffiResult)")
        else:
            lines.append(f'        precondition(ffiResult == {self.error_codes.ok.constant}, "{core_symbol(func)} failed")')

        outputs = self._outputs(func)
        attempt = "try" if func.fallible else "try!"
        decoded = [self._decode(local, t, attempt) for local, _, t in outputs]
        if len(decoded) == 1:
            lines.append(f"        return {decoded[0]}")
        elif decoded:
            values = ", ".join(f"{label}: {value}" for (_, label, _), value in zip(outputs, decoded))
            lines.append(f"        return ({values})")
        lines.append("    }")
        lines.append("")
        return lines
