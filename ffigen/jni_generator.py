"""JNI Generator - generates the Rust JNI glue and the Java binding classes"""

import logging

from .common_generator import CommonGenerator
from .config import GeneratorOptions
from .error_codes import ERROR_CODES, ErrorCodeTable
from .naming import (
    RETURN_SLOT, core_symbol, enum_constant, jni_method, jni_symbol, module_class,
    result_class,
)
from .type_mapper import MarshalParam, Role, TypeMapper
from .types import ApiModel, FunctionDef, Module, TypeDef

logger = logging.getLogger(__name__)

RESULT_FIELD = "result"


class JNIGenerator:
    """Generates ``ffiapijava/`` (JNI exports) and ``java/`` (binding classes)"""

    TARGET = "jvm"
    OUTPUT_DIRS = ("ffiapijava", "java")

    def __init__(self, model: ApiModel, options: GeneratorOptions,
                 error_codes: ErrorCodeTable = ERROR_CODES):
        self.model = model
        self.options = options
        self.error_codes = error_codes
        self.java_package = options.java_package
        self.common = CommonGenerator(options)

    def generate(self) -> dict[str, str]:
        files = {"ffiapijava/ffiapijava.rs": self.generate_jni_glue()}
        files["java/ZkGroupException.java"] = self.generate_base_exception()
        for name in self.error_codes.java_exceptions():
            if name != "ZkGroupException":
                files[f"java/{name}.java"] = self.generate_exception(name)
        files["java/internal/Native.java"] = self.generate_native_class()
        files["java/internal/ByteArray.java"] = self.generate_byte_array()
        for home in self.model.value_modules():
            for typedef in self.model.module_types(home):
                if typedef.is_buffer:
                    files[f"java/{home}/{typedef.name}.java"] = self.generate_value_class(typedef)
                else:
                    files[f"java/{home}/{typedef.name}.java"] = self.generate_enum_class(typedef)
        for module in self.model.modules:
            files[f"java/{module.name}/{module_class(module.name)}.java"] = self.generate_java_class(module)
        logger.debug("jvm: %d files", len(files))
        return files

    def _package(self, module_name: str) -> str:
        return f"{self.java_package}.{module_name}"

    @staticmethod
    def _is_narrow(typedef: TypeDef) -> bool:
        """By-value types carried in a Java int but narrower than it"""
        return not typedef.is_buffer and typedef.byte_size < 4

    # ── Rust JNI glue ───────────────────────────────────────────────────

    def generate_jni_glue(self) -> str:
        codes = self.error_codes
        sys_types = ["jbyteArray", "jint"]
        values = [mp for func in self.model.functions() for mp in TypeMapper.marshal_params(func)
                  if mp.role is Role.IN_VALUE]
        # jlong is only needed when some scalar is 8 bytes wide
        if any(TypeMapper.jni(mp) == "jlong" for mp in values):
            sys_types.append("jlong")
        lines = self.common.banner()
        lines.extend(["#![allow(non_snake_case)]", ""])
        if any(self._is_narrow(mp.type) for mp in values):
            lines.extend(["use std::convert::TryFrom;", ""])
        lines.extend([
            "use jni::objects::JClass;",
            f"use jni::sys::{{{', '.join(sys_types)}}};",
            "use jni::JNIEnv;",
            "",
            f"use {self.options.rust_ffi_path}::ffiapi::*;",
            "",
            "fn jni_read(env: &JNIEnv, array: jbyteArray) -> Result<Vec<u8>, jint> {",
            "    if array.is_null() {",
            f"        return Err({codes.invalid_input.constant});",
            "    }",
            f"    env.convert_byte_array(array).map_err(|_| {codes.invalid_input.constant})",
            "}",
            "",
            "fn jni_alloc(env: &JNIEnv, array: jbyteArray) -> Result<Vec<u8>, jint> {",
            "    if array.is_null() {",
            f"        return Err({codes.invalid_input.constant});",
            "    }",
            "    let len = env",
            "        .get_array_length(array)",
            f"        .map_err(|_| {codes.invalid_input.constant})?;",
            "    Ok(vec![0u8; len as usize])",
            "}",
            "",
            "fn jni_write(env: &JNIEnv, array: jbyteArray, bytes: &[u8]) -> Result<(), jint> {",
            "    let signed: Vec<i8> = bytes.iter().map(|b| *b as i8).collect();",
            "    env.set_byte_array_region(array, 0, &signed)",
            f"        .map_err(|_| {codes.internal_error.constant})",
            "}",
            "",
            "fn jni_call<F: FnOnce() -> Result<jint, jint>>(f: F) -> jint {",
            "    match f() {",
            "        Ok(code) | Err(code) => code,",
            "    }",
            "}",
            "",
        ])
        for func in self.model.functions():
            lines.extend(self._jni_export(func))
        return self.common.render(lines)

    def _jni_export(self, func: FunctionDef) -> list[str]:
        marshaled = TypeMapper.marshal_params(func)
        lines = [
            "#[no_mangle]",
            f"pub extern \"system\" fn {jni_symbol(func, self.java_package)}(",
            "    env: JNIEnv,",
            "    _class: JClass,",
        ]
        for mp in marshaled:
            lines.append(f"    {mp.name}: {TypeMapper.jni(mp)},")
        lines.append(") -> jint {")
        lines.append("    jni_call(|| {")

        args = []
        for mp in marshaled:
            buf = f"{mp.name}_buf"
            if mp.role is Role.IN_BUFFER:
                lines.append(f"        let {buf} = jni_read(&env, {mp.name})?;")
                args.extend([f"{buf}.as_ptr()", f"{buf}.len() as u32"])
            elif mp.role is Role.OUT_BUFFER:
                lines.append(f"        let mut {buf} = jni_alloc(&env, {mp.name})?;")
                args.extend([f"{buf}.as_mut_ptr()", f"{buf}.len() as u32"])
            elif self._is_narrow(mp.type):
                # jint is wider than u8/u16; out-of-range values are rejected, not truncated
                rust = TypeMapper.scalar(mp.type).rust
                lines.append(f"        let {mp.name} = {rust}::try_from({mp.name})"
                             f".map_err(|_| {self.error_codes.invalid_input.constant})?;")
                args.append(mp.name)
            else:
                args.append(f"{mp.name} as {TypeMapper.scalar(mp.type).rust}")

        lines.append(f"        let code = {core_symbol(func)}(")
        for arg in args:
            lines.append(f"            {arg},")
        lines.append("        );")

        outputs = [mp for mp in marshaled if mp.role is Role.OUT_BUFFER]
        if outputs:
            lines.append(f"        if code == {self.error_codes.ok.constant} {{")
            for mp in outputs:
                lines.append(f"            jni_write(&env, {mp.name}, &{mp.name}_buf)?;")
            lines.append("        }")
        lines.append("        Ok(code)")
        lines.append("    })")
        lines.append("}")
        lines.append("")
        return lines

    # ── Java support classes ────────────────────────────────────────────

    def generate_base_exception(self) -> str:
        lines = self.common.banner()
        lines.extend([
            f"package {self.java_package};",
            "",
            "/** Error reported by the native zkgroup library; {@link #getCode()} is the numeric FFI code. */",
            "public class ZkGroupException extends Exception {",
            "",
        ])
        for code in self.error_codes:
            lines.append(f"    public static final int {code.constant} = {code.value};")
        lines.extend([
            "",
            "    private final int code;",
            "",
            "    public ZkGroupException(int code) {",
            '        this(code, "zkgroup error " + code);',
            "    }",
            "",
            "    public ZkGroupException(int code, String message) {",
            "        super(message);",
            "        this.code = code;",
            "    }",
            "",
            "    public int getCode() {",
            "        return code;",
            "    }",
            "",
            "    public static void checkResult(int code) throws ZkGroupException {",
            "        switch (code) {",
            f"            case {self.error_codes.ok.constant}:",
            "                return;",
        ])
        for name in self.error_codes.java_exceptions():
            if name == "ZkGroupException":
                continue
            for code in self.error_codes.failures:
                if code.java_exception == name:
                    lines.append(f"            case {code.constant}:")
            lines.append(f"                throw new {name}(code);")
        lines.extend([
            "            default:",
            "                throw new ZkGroupException(code);",
            "        }",
            "    }",
            "}",
        ])
        return self.common.render(lines)

    def generate_exception(self, name: str) -> str:
        codes = [c.constant for c in self.error_codes.failures if c.java_exception == name]
        lines = self.common.banner()
        lines.extend([
            f"package {self.java_package};",
            "",
            f"/** Raised for {', '.join(codes)}. */",
            f"public class {name} extends ZkGroupException {{",
            "",
            f"    public {name}(int code) {{",
            "        super(code);",
            "    }",
            "",
            f"    public {name}(int code, String message) {{",
            "        super(code, message);",
            "    }",
            "}",
        ])
        return self.common.render(lines)

    def generate_native_class(self) -> str:
        lines = self.common.banner()
        lines.extend([
            f"package {self._package('internal')};",
            "",
            "public final class Native {",
            "",
            "    static {",
            f'        System.loadLibrary("{self.options.jni_library_name}");',
            "    }",
            "",
            "    private Native() {",
            "    }",
            "",
        ])
        for func in self.model.functions():
            lines.append(self._native_method_decl(func))
        lines.append("}")
        return self.common.render(lines)

    def _native_method_decl(self, func: FunctionDef) -> str:
        params = [f"{TypeMapper.java_native(mp)} {mp.name}" for mp in TypeMapper.marshal_params(func)]
        return f"    public static native int {jni_method(func)}({', '.join(params)});"

    def generate_byte_array(self) -> str:
        invalid = self.error_codes.invalid_input
        lines = self.common.banner()
        lines.extend([
            f"package {self._package('internal')};",
            "",
            "import java.util.Arrays;",
            f"import {self.java_package}.{invalid.java_exception};",
            f"import {self.java_package}.ZkGroupException;",
            "",
            "/** Fixed-length byte contents shared by every serialized zkgroup value. */",
            "public abstract class ByteArray {",
            "",
            "    protected final byte[] contents;",
            "",
            f"    protected ByteArray(byte[] contents, int expectedLength) throws {invalid.java_exception} {{",
            "        if (contents == null || contents.length != expectedLength) {",
            f"            throw new {invalid.java_exception}(ZkGroupException.{invalid.constant},",
            '                "expected " + expectedLength + " bytes, got "',
            '                + (contents == null ? "null" : Integer.toString(contents.length)));',
            "        }",
            "        this.contents = contents.clone();",
            "    }",
            "",
            "    public byte[] getInternalContentsForJNI() {",
            "        return contents;",
            "    }",
            "",
            "    public byte[] serialize() {",
            "        return contents.clone();",
            "    }",
            "",
            "    @Override",
            "    public boolean equals(Object other) {",
            "        if (this == other) return true;",
            "        if (other == null || getClass() != other.getClass()) return false;",
            "        return Arrays.equals(contents, ((ByteArray) other).contents);",
            "    }",
            "",
            "    @Override",
            "    public int hashCode() {",
            "        return Arrays.hashCode(contents);",
            "    }",
            "",
            "    /** Little-endian unsigned value of up to four bytes. */",
            "    public static int decodeInt(byte[] bytes) {",
            "        int value = 0;",
            "        for (int i = bytes.length - 1; i >= 0; i--) {",
            "            value = (value << 8) | (bytes[i] & 0xff);",
            "        }",
            "        return value;",
            "    }",
            "",
            "    public static long decodeLong(byte[] bytes) {",
            "        long value = 0;",
            "        for (int i = bytes.length - 1; i >= 0; i--) {",
            "            value = (value << 8) | (bytes[i] & 0xff);",
            "        }",
            "        return value;",
            "    }",
            "}",
        ])
        return self.common.render(lines)

    # ── Java value classes ──────────────────────────────────────────────

    def generate_value_class(self, typedef: TypeDef) -> str:
        invalid = self.error_codes.invalid_input.java_exception
        lines = self.common.banner()
        lines.extend([
            f"package {self._package(self.model.home_module(typedef))};",
            "",
            f"import {self.java_package}.{invalid};",
            f"import {self._package('internal')}.ByteArray;",
            "",
            f"public final class {typedef.name} extends ByteArray {{",
            "",
            f"    public static final int SIZE = {typedef.size};",
            "",
            f"    public {typedef.name}(byte[] contents) throws {invalid} {{",
            "        super(contents, SIZE);",
            "    }",
            "}",
        ])
        return self.common.render(lines)

    def generate_enum_class(self, typedef: TypeDef) -> str:
        invalid = self.error_codes.invalid_input
        lines = self.common.banner()
        lines.extend([
            f"package {self._package(self.model.home_module(typedef))};",
            "",
            f"import {self.java_package}.{invalid.java_exception};",
            f"import {self.java_package}.ZkGroupException;",
            "",
            f"public enum {typedef.name} {{",
        ])
        for i, variant in enumerate(typedef.variants):
            end = "," if i < len(typedef.variants) - 1 else ";"
            lines.append(f"    {enum_constant(variant)}({i}){end}")
        lines.extend([
            "",
            "    private final int value;",
            "",
            f"    {typedef.name}(int value) {{",
            "        this.value = value;",
            "    }",
            "",
            "    public int getValue() {",
            "        return value;",
            "    }",
            "",
            f"    public static {typedef.name} fromValue(int value) throws {invalid.java_exception} {{",
            f"        for ({typedef.name} e : values()) {{",
            "            if (e.value == value) return e;",
            "        }",
            f"        throw new {invalid.java_exception}(ZkGroupException.{invalid.constant},",
            f'            "Unknown {typedef.name} value: " + value);',
            "    }",
            "}",
        ])
        return self.common.render(lines)

    # ── Java module classes ─────────────────────────────────────────────

    def _imports(self, module: Module) -> list[str]:
        imports = set()
        if module.functions:
            imports.update([f"{self.java_package}.ZkGroupException", f"{self._package('internal')}.Native"])
        for func in module.functions:
            used = [p.type for p in func.parameters] + ([func.returns] if func.returns else [])
            for t in used:
                if not t.is_scalar and self.model.home_module(t) != module.name:
                    imports.add(f"{self._package(self.model.home_module(t))}.{t.name}")
            # Scalars only need ByteArray when an output is decoded
            if any(t.is_scalar for _, _, t in self._outputs(func)):
                imports.add(f"{self._package('internal')}.ByteArray")
            if self._range_checked(func) or not func.fallible and self._decode_throws(func):
                imports.add(f"{self.java_package}.{self.error_codes.invalid_input.java_exception}")
        return sorted(imports)

    def generate_java_class(self, module: Module) -> str:
        class_name = module_class(module.name)
        lines = self.common.banner()
        lines.append(f"package {self._package(module.name)};")
        lines.append("")
        lines.extend(f"import {name};" for name in self._imports(module))
        lines.extend([
            "",
            f"public final class {class_name} {{",
            "",
            f"    private {class_name}() {{",
            "    }",
            "",
        ])
        for func in module.functions:
            if func.output_count > 1:
                lines.extend(self._result_class(func))
            lines.extend(self._java_method(func))
        lines.append("}")
        return self.common.render(lines)

    def _outputs(self, func: FunctionDef) -> list[tuple[str, str, TypeDef]]:
        """(local variable, result field, type) for every output in order"""
        outputs = [(p.name, p.name, p.type) for p in func.outputs]
        if func.returns:
            outputs.append((RETURN_SLOT, RESULT_FIELD, func.returns))
        return outputs

    def _decode_throws(self, func: FunctionDef) -> bool:
        return any(not t.is_scalar for _, _, t in self._outputs(func))

    def _range_checked(self, func: FunctionDef) -> list:
        """Scalar inputs narrower than the Java int carrying them"""
        return [p for p in func.inputs if p.type.is_scalar and self._is_narrow(p.type)]

    def _return_type(self, func: FunctionDef) -> str:
        outputs = self._outputs(func)
        if not outputs:
            return "void"
        if len(outputs) == 1:
            return TypeMapper.java_value(outputs[0][2])
        return result_class(func)

    def _result_class(self, func: FunctionDef) -> list[str]:
        name = result_class(func)
        fields = [(field, TypeMapper.java_value(t)) for _, field, t in self._outputs(func)]
        lines = [f"    public static final class {name} {{"]
        for field, java_type in fields:
            lines.append(f"        public final {java_type} {field};")
        lines.append("")
        params = ", ".join(f"{java_type} {field}" for field, java_type in fields)
        lines.append(f"        {name}({params}) {{")
        for field, _ in fields:
            lines.append(f"            this.{field} = {field};")
        lines.append("        }")
        lines.append("    }")
        lines.append("")
        return lines

    def _native_arg(self, mp: MarshalParam) -> str:
        if mp.role is Role.IN_BUFFER:
            return f"{mp.name}.getInternalContentsForJNI()"
        if mp.role is Role.IN_VALUE and mp.type.is_enum:
            return f"{mp.name}.getValue()"
        return mp.name

    def _out_size(self, typedef: TypeDef) -> str:
        if typedef.is_buffer:
            return f"{typedef.name}.SIZE"
        return str(typedef.byte_size)

    def _decode(self, local: str, typedef: TypeDef) -> str:
        if typedef.is_buffer:
            return f"new {typedef.name}({local})"
        if typedef.is_enum:
            return f"{typedef.name}.fromValue({local}[0] & 0xff)"
        if typedef.size == 8:
            return f"ByteArray.decodeLong({local})"
        return f"ByteArray.decodeInt({local})"

    def _java_method(self, func: FunctionDef) -> list[str]:
        """Generate Java public method"""
        ret_type = self._return_type(func)
        params = ", ".join(f"{TypeMapper.java_value(p.type)} {p.name}" for p in func.inputs)
        invalid = self.error_codes.invalid_input
        checked = self._range_checked(func)
        throws = ""
        if func.fallible:
            throws = " throws ZkGroupException"
        elif checked:
            throws = f" throws {invalid.java_exception}"
        lines = [f"    public static {ret_type} {func.name}({params}){throws} {{"]
        for p in checked:
            limit = (1 << (8 * p.type.size)) - 1
            lines.extend([
                f"        if ({p.name} < 0 || {p.name} > 0x{limit:x}) {{",
                f"            throw new {invalid.java_exception}(ZkGroupException.{invalid.constant},",
                f'                "{p.name} out of range: " + {p.name});',
                "        }",
            ])

        marshaled = TypeMapper.marshal_params(func)
        for mp in marshaled:
            if mp.role is Role.OUT_BUFFER:
                lines.append(f"        byte[] {mp.name} = new byte[{self._out_size(mp.type)}];")
        args = ", ".join(self._native_arg(mp) for mp in marshaled)
        lines.append(f"        int ffiResult = Native.{jni_method(func)}({args});")

        if func.fallible:
            lines.append("        ZkGroupException.checkResult(ffiResult);")
        else:
            lines.extend([
                f"        if (ffiResult != ZkGroupException.{self.error_codes.ok.constant}) {{",
                f'            throw new AssertionError("{jni_method(func)} returned " + ffiResult);',
                "        }",
            ])

        outputs = self._outputs(func)
        if outputs:
            decoded = [self._decode(local, t) for local, _, t in outputs]
            if len(decoded) == 1:
                statement = f"return {decoded[0]};"
            else:
                statement = f"return new {result_class(func)}({', '.join(decoded)});"
            if not func.fallible and self._decode_throws(func):
                lines.extend([
                    "        try {",
                    f"            {statement}",
                    f"        }} catch ({self.error_codes.invalid_input.java_exception} e) {{",
                    "            throw new AssertionError(e);",
                    "        }",
                ])
            else:
                lines.append(f"        {statement}")
        lines.append("    }")
        lines.append("")
        return lines
