"""Core FFI Generator - generates the Rust C-ABI shim and the safe slice layer it calls"""

import logging
from typing import Optional

from .common_generator import CommonGenerator
from .config import GeneratorOptions
from .error_codes import ERROR_CODES, ErrorCodeTable
from .naming import (
    core_symbol, length_constant, length_slot, library_function, safe_function,
    variant_count_constant,
)
from .type_mapper import MarshalParam, Role, TypeMapper
from .types import ApiModel, FunctionDef, Module, TypeDef

logger = logging.getLogger(__name__)


class CoreGenerator:
    """Generates ``ffiapi/`` (exported symbols) and ``simpleapi/`` (safe layer)"""

    TARGET = "core"
    OUTPUT_DIRS = ("ffiapi", "simpleapi")

    def __init__(self, model: ApiModel, options: GeneratorOptions,
                 error_codes: ErrorCodeTable = ERROR_CODES):
        self.model = model
        self.options = options
        self.error_codes = error_codes
        self.common = CommonGenerator(options)

    def generate(self) -> dict[str, str]:
        files = {"ffiapi/ffiapi.rs": self.generate_prologue()}
        for module in self.model.modules:
            files[f"ffiapi/ffiapi_{module.name}.rs"] = self.generate_module(module)
        files["simpleapi/simpleapi.rs"] = self.generate_simpleapi()
        logger.debug("core: %d files", len(files))
        return files

    # ── ffiapi ──────────────────────────────────────────────────────────

    def generate_prologue(self) -> str:
        codes = self.error_codes
        error_type = self.options.error_type_name
        lines = self.common.banner()
        lines.extend([
            "#![allow(non_snake_case)]",
            "#![allow(clippy::missing_safety_doc)]",
            "",
            f"use {self.options.rust_error_type};",
            "",
        ])
        for code in codes:
            lines.append(f"pub const {code.constant}: i32 = {code.value}; // {code.description}")
        lines.append("")

        for module in self.model.modules:
            lines.append(f'#[path = "ffiapi_{module.name}.rs"]')
            lines.append(f"pub mod {module.name};")
            lines.append(f"pub use self::{module.name}::*;")
        lines.append("")

        lines.append(f"pub(crate) fn ffi_return_code(err: {error_type}) -> i32 {{")
        lines.append("    match err {")
        for code in codes.failures:
            for variant in code.library_variants:
                lines.append(f"        {error_type}::{variant} => {code.constant},")
        lines.extend([
            "        #[allow(unreachable_patterns)]",
            f"        _ => {codes.internal_error.constant},",
            "    }",
            "}",
            "",
            "pub(crate) fn ffi_guard<F>(f: F) -> i32",
            "where",
            "    F: FnOnce() -> Result<(), i32> + std::panic::UnwindSafe,",
            "{",
            "    match std::panic::catch_unwind(f) {",
            f"        Ok(Ok(())) => {codes.ok.constant},",
            "        Ok(Err(code)) => code,",
            f"        Err(_) => {codes.internal_error.constant},",
            "    }",
            "}",
            "",
            "pub(crate) unsafe fn ffi_input(ptr: *const u8, len: u32, expected: usize) -> Result<Vec<u8>, i32> {",
            "    if ptr.is_null() || len as usize != expected {",
            f"        return Err({codes.invalid_input.constant});",
            "    }",
            "    Ok(std::slice::from_raw_parts(ptr, expected).to_vec())",
            "}",
            "",
            "pub(crate) unsafe fn ffi_output<'a>(ptr: *mut u8, len: u32, expected: usize) -> Result<&'a mut [u8], i32> {",
            "    if ptr.is_null() || len as usize != expected {",
            f"        return Err({codes.invalid_input.constant});",
            "    }",
            "    Ok(std::slice::from_raw_parts_mut(ptr, expected))",
            "}",
            "",
            "pub(crate) fn ffi_enum(value: u8, variants: usize) -> Result<u8, i32> {",
            "    if (value as usize) < variants {",
            "        Ok(value)",
            "    } else {",
            f"        Err({codes.invalid_input.constant})",
            "    }",
            "}",
        ])
        return self.common.render(lines)

    def generate_module(self, module: Module) -> str:
        lines = self.common.banner()
        lines.extend([
            "use super::*;",
            f"use {self.options.rust_ffi_path}::simpleapi;",
            "",
        ])
        for func in module.functions:
            lines.extend(self._export(func))
        return self.common.render(lines)

    def _export(self, func: FunctionDef) -> list[str]:
        lines = ["#[no_mangle]", f"pub extern \"C\" fn {core_symbol(func)}("]
        for slot in TypeMapper.abi_slots(func):
            lines.append(f"    {slot.name}: {TypeMapper.rust_slot(slot)},")
        lines.append(") -> i32 {")
        lines.append("    ffi_guard(move || {")

        # Validate every slot before calling into the library. Inputs are copied
        # before any output slice exists, so overlapping caller buffers never alias.
        marshaled = TypeMapper.marshal_params(func)
        ordered = sorted(marshaled, key=lambda mp: mp.role is Role.OUT_BUFFER)
        for mp in ordered:
            if unpack := self._unpack(mp):
                lines.append(f"        {unpack}")

        args = ", ".join(f"&{mp.name}" if mp.role is Role.IN_BUFFER else mp.name
                         for mp in marshaled if not mp.is_return)
        call = f"simpleapi::{safe_function(func)}({args}).map_err(ffi_return_code)?"
        if func.returns:
            lines.append(f"        let result = {call};")
            lines.append(f"        {self._store_result(func.returns)}")
        else:
            lines.append(f"        {call};")
        lines.append("        Ok(())")
        lines.append("    })")
        lines.append("}")
        lines.append("")
        return lines

    def _size_expr(self, typedef: TypeDef) -> str:
        if typedef.is_buffer:
            return f"simpleapi::{length_constant(typedef)}"
        return str(typedef.byte_size)

    def _unpack(self, mp: MarshalParam) -> Optional[str]:
        size = self._size_expr(mp.type)
        length = length_slot(mp.name)
        if mp.role is Role.IN_BUFFER:
            return f"let {mp.name} = unsafe {{ ffi_input({mp.name}, {length}, {size})? }};"
        if mp.role is Role.OUT_BUFFER:
            return f"let {mp.name} = unsafe {{ ffi_output({mp.name}, {length}, {size})? }};"
        if mp.type.is_enum:
            return f"let {mp.name} = ffi_enum({mp.name}, simpleapi::{variant_count_constant(mp.type)})?;"
        return None

    def _store_result(self, typedef: TypeDef) -> str:
        if typedef.is_buffer:
            return "out.copy_from_slice(&result);"
        if typedef.is_enum:
            return "out[0] = result;"
        return "out.copy_from_slice(&result.to_le_bytes());"

    # ── simpleapi ───────────────────────────────────────────────────────

    def generate_simpleapi(self) -> str:
        error_type = self.options.error_type_name
        bad_args = self.error_codes.invalid_input.library_variants[0]
        lines = self.common.banner()
        lines.extend([
            "#![allow(non_snake_case)]",
            "",
            "use std::convert::TryInto;",
            "",
            f"use {self.options.rust_error_type};",
            "",
        ])
        for t in self.model.buffer_types():
            lines.append(f"pub const {length_constant(t)}: usize = {t.size};")
        for t in self.model.enum_types():
            lines.append(f"pub const {variant_count_constant(t)}: usize = {len(t.variants)};")
        lines.extend([
            "",
            f"fn fixed<const N: usize>(bytes: &[u8]) -> Result<[u8; N], {error_type}> {{",
            f"    bytes.try_into().map_err(|_| {error_type}::{bad_args})",
            "}",
            "",
            f"fn check_output(bytes: &[u8], expected: usize) -> Result<(), {error_type}> {{",
            "    if bytes.len() == expected {",
            "        Ok(())",
            "    } else {",
            f"        Err({error_type}::{bad_args})",
            "    }",
            "}",
            "",
        ])
        for func in self.model.functions():
            lines.extend(self._safe_function(func))
        return self.common.render(lines)

    def _safe_function(self, func: FunctionDef) -> list[str]:
        error_type = self.options.error_type_name
        params = []
        for p in func.parameters:
            params.append(f"{p.name}: {TypeMapper.rust_safe(p.type, mutable=p.is_out)}")
        ret = "()"
        if func.returns:
            ret = TypeMapper.rust_owned(func.returns, length_constant(func.returns))
        lines = [f"pub fn {safe_function(func)}({', '.join(params)}) -> Result<{ret}, {error_type}> {{"]

        call_args = []
        for p in func.parameters:
            local = f"{p.name}_value"
            if p.is_out:
                lines.append(f"    check_output({p.name}, {self._out_size(p.type)})?;")
                init = f"[0u8; {length_constant(p.type)}]" if p.type.is_buffer else self._zero(p.type)
                lines.append(f"    let mut {local} = {init};")
                call_args.append(f"&mut {local}")
            elif p.type.is_buffer:
                lines.append(f"    let {local}: [u8; {length_constant(p.type)}] = fixed({p.name})?;")
                call_args.append(f"&{local}")
            else:
                call_args.append(p.name)

        call = f"{library_function(func, self.options.rust_api_path)}({', '.join(call_args)})"
        if func.outputs:
            binding = "let result = " if func.returns else ""
            unwrap = "?" if func.fallible else ""
            lines.append(f"    {binding}{call}{unwrap};")
            for p in func.outputs:
                lines.append(f"    {self._copy_out(p.name, p.type)}")
            lines.append("    Ok(result)" if func.returns else "    Ok(())")
        elif func.fallible:
            lines.append(f"    {call}")
        else:
            lines.append(f"    Ok({call})")
        lines.append("}")
        lines.append("")
        return lines

    def _out_size(self, typedef: TypeDef) -> str:
        return length_constant(typedef) if typedef.is_buffer else str(typedef.byte_size)

    def _zero(self, typedef: TypeDef) -> str:
        return f"0{TypeMapper.scalar(typedef).rust}"

    def _copy_out(self, name: str, typedef: TypeDef) -> str:
        local = f"{name}_value"
        if typedef.is_buffer:
            return f"{name}.copy_from_slice(&{local});"
        if typedef.is_enum:
            return f"{name}[0] = {local};"
        return f"{name}.copy_from_slice(&{local}.to_le_bytes());"
