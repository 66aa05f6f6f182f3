"""Cross-binding checks: every generated binding agrees on symbols, argument
order, error codes and buffer lengths."""

import re

import pytest

from ffigen.core_generator import CoreGenerator
from ffigen.error_codes import ERROR_CODES
from ffigen.jni_generator import JNIGenerator
from ffigen.loader import load_model
from ffigen.naming import core_symbol, jni_method
from ffigen.swift_generator import SwiftGenerator
from ffigen.type_mapper import TypeMapper

_RUST_EXPORT = re.compile(r'pub extern "C" fn (\w+)\(\n((?:    \w+: [^\n]+,\n)*)\) -> i32')
_C_PROTOTYPE = re.compile(r'int32_t (\w+)\(([^)]*)\);')
_JAVA_NATIVE = re.compile(r'public static native int (\w+)\(([^)]*)\);')


def _rust_exports(files):
    exports = {}
    for rel, text in files.items():
        if rel.startswith("ffiapi/"):
            for name, body in _RUST_EXPORT.findall(text):
                exports[name] = [line.strip().split(":")[0] for line in body.splitlines()]
    return exports


def _c_prototypes(header):
    prototypes = {}
    for name, params in _C_PROTOTYPE.findall(header):
        if params == "void":
            prototypes[name] = []
        else:
            prototypes[name] = [p.strip().rsplit(" ", 1)[-1].lstrip("*") for p in params.split(",")]
    return prototypes


@pytest.fixture(params=["mixed", "sample"])
def model_and_options(request, mixed_model, options, sample_idl):
    if request.param == "mixed":
        return mixed_model, options
    return load_model(sample_idl)


@pytest.fixture
def bindings(model_and_options):
    model, options = model_and_options
    return (
        model,
        CoreGenerator(model, options).generate(),
        JNIGenerator(model, options).generate(),
        SwiftGenerator(model, options).generate(),
        options,
    )


class TestConsistency:
    def test_symbols_and_argument_order(self, bindings):
        model, core, jvm, swift, options = bindings
        rust = _rust_exports(core)
        c = _c_prototypes(swift[f"swift/{options.library_name}.h"])
        native = dict(_JAVA_NATIVE.findall(jvm["java/internal/Native.java"]))

        for func in model.functions():
            slots = [s.name for s in TypeMapper.abi_slots(func)]
            marshaled = [mp.name for mp in TypeMapper.marshal_params(func)]
            assert rust[core_symbol(func)] == slots
            assert c[core_symbol(func)] == slots
            java_names = [p.split()[-1] for p in native[jni_method(func)].split(",") if p.strip()]
            assert java_names == marshaled
        assert len(rust) == len(c) == len(native) == sum(1 for _ in model.functions())

    def test_jni_glue_calls_every_export(self, bindings):
        model, _, jvm, _, _ = bindings
        glue = jvm["ffiapijava/ffiapijava.rs"]
        for func in model.functions():
            assert f"        let code = {core_symbol(func)}(\n" in glue

    def test_error_code_values_agree(self, bindings):
        _, core, jvm, swift, options = bindings
        expected = {code.constant: code.value for code in ERROR_CODES}
        rust = re.findall(r'pub const (FFI_RETURN_\w+): i32 = (\d+);', core["ffiapi/ffiapi.rs"])
        java = re.findall(r'public static final int (FFI_RETURN_\w+) = (\d+);', jvm["java/ZkGroupException.java"])
        c = re.findall(r'#define (FFI_RETURN_\w+) (\d+)', swift[f"swift/{options.library_name}.h"])
        for found in (rust, java, c):
            assert {name: int(value) for name, value in found} == expected

        cases = re.findall(r'case (\w+) = (\d+)', swift["swift/ZkGroupError.swift"])
        assert {name: int(value) for name, value in cases} == {
            code.swift_case: code.value for code in ERROR_CODES.failures
        }

    def test_buffer_lengths_agree(self, bindings):
        model, core, jvm, swift, options = bindings
        rust = dict(re.findall(r'pub const (\w+_LEN): usize = (\d+);', core["simpleapi/simpleapi.rs"]))
        c = dict(re.findall(r'#define (\w+_LEN) (\d+)', swift[f"swift/{options.library_name}.h"]))
        assert rust == c
        assert len(rust) == len(model.buffer_types())
        for typedef in model.buffer_types():
            home = model.home_module(typedef)
            java = jvm[f"java/{home}/{typedef.name}.java"]
            assert f"public static final int SIZE = {typedef.size};" in java

    def test_wrong_length_is_invalid_input_everywhere(self, bindings):
        _, core, jvm, swift, _ = bindings
        prologue = core["ffiapi/ffiapi.rs"]
        assert "    if ptr.is_null() || len as usize != expected {\n        return Err(FFI_RETURN_INVALID_INPUT);" in prologue
        byte_array = jvm["java/internal/ByteArray.java"]
        assert "            throw new InvalidInputException(ZkGroupException.FFI_RETURN_INVALID_INPUT," in byte_array
        swift_bytes = swift["swift/ByteArray.swift"]
        assert "        guard contents.count == SIZE else {\n            throw ZkGroupError.invalidInput" in swift_bytes
