"""Tests for the JNI glue and Java binding generator."""

import pytest

from ffigen.config import GeneratorOptions
from ffigen.jni_generator import JNIGenerator


@pytest.fixture
def scenario_files(scenario_model, options):
    return JNIGenerator(scenario_model, options).generate()


@pytest.fixture
def mixed_files(mixed_model, options):
    return JNIGenerator(mixed_model, options).generate()


class TestJNIGenerator:
    def test_file_layout(self, scenario_files):
        assert sorted(scenario_files) == [
            "ffiapijava/ffiapijava.rs",
            "java/InvalidInputException.java",
            "java/VerificationFailedException.java",
            "java/ZkGroupException.java",
            "java/auth/Auth.java",
            "java/auth/Credential.java",
            "java/internal/ByteArray.java",
            "java/internal/Native.java",
        ]

    def test_native_declaration(self, scenario_files):
        native = scenario_files["java/internal/Native.java"]
        assert "package org.signal.zkgroup.internal;" in native
        assert '        System.loadLibrary("zkgroup");' in native
        assert "    public static native int authVerifyCredentialJNI(byte[] credential, byte[] out);" in native

    def test_module_class(self, scenario_files):
        assert scenario_files["java/auth/Auth.java"] == "\n".join([
            "// AUTO-GENERATED - DO NOT EDIT",
            "",
            "package org.signal.zkgroup.auth;",
            "",
            "import org.signal.zkgroup.ZkGroupException;",
            "import org.signal.zkgroup.internal.ByteArray;",
            "import org.signal.zkgroup.internal.Native;",
            "",
            "public final class Auth {",
            "",
            "    private Auth() {",
            "    }",
            "",
            "    public static int verifyCredential(Credential credential) throws ZkGroupException {",
            "        byte[] out = new byte[1];",
            "        int ffiResult = Native.authVerifyCredentialJNI(credential.getInternalContentsForJNI(), out);",
            "        ZkGroupException.checkResult(ffiResult);",
            "        return ByteArray.decodeInt(out);",
            "    }",
            "",
            "}",
        ]) + "\n"

    def test_value_class(self, scenario_files):
        credential = scenario_files["java/auth/Credential.java"]
        assert "public final class Credential extends ByteArray {" in credential
        assert "    public static final int SIZE = 64;" in credential
        assert "    public Credential(byte[] contents) throws InvalidInputException {" in credential

    def test_jni_glue(self, scenario_files):
        glue = scenario_files["ffiapijava/ffiapijava.rs"]
        assert "use jni::sys::{jbyteArray, jint};" in glue
        assert "use crate::ffi::ffiapi::*;" in glue
        assert "\n".join([
            "#[no_mangle]",
            'pub extern "system" fn Java_org_signal_zkgroup_internal_Native_authVerifyCredentialJNI(',
            "    env: JNIEnv,",
            "    _class: JClass,",
            "    credential: jbyteArray,",
            "    out: jbyteArray,",
            ") -> jint {",
            "    jni_call(|| {",
            "        let credential_buf = jni_read(&env, credential)?;",
            "        let mut out_buf = jni_alloc(&env, out)?;",
            "        let code = ffi_auth_verifyCredential(",
            "            credential_buf.as_ptr(),",
            "            credential_buf.len() as u32,",
            "            out_buf.as_mut_ptr(),",
            "            out_buf.len() as u32,",
            "        );",
            "        if code == FFI_RETURN_OK {",
            "            jni_write(&env, out, &out_buf)?;",
            "        }",
            "        Ok(code)",
            "    })",
            "}",
        ]) in glue

    def test_exceptions(self, scenario_files):
        base = scenario_files["java/ZkGroupException.java"]
        assert "public class ZkGroupException extends Exception {" in base
        assert "    public static final int FFI_RETURN_POINT_DECODE_FAILED = 7;" in base
        assert ("            case FFI_RETURN_INVALID_INPUT:\n"
                "            case FFI_RETURN_POINT_DECODE_FAILED:\n"
                "                throw new InvalidInputException(code);") in base
        assert ("            case FFI_RETURN_DECRYPTION_FAILED:\n"
                "            case FFI_RETURN_MAC_VERIFICATION_FAILED:\n"
                "            case FFI_RETURN_PROOF_VERIFICATION_FAILED:\n"
                "            case FFI_RETURN_SIGNATURE_VERIFICATION_FAILED:\n"
                "                throw new VerificationFailedException(code);") in base
        subclass = scenario_files["java/VerificationFailedException.java"]
        assert "public class VerificationFailedException extends ZkGroupException {" in subclass

    def test_several_outputs_use_result_holder(self, mixed_files):
        groups = mixed_files["java/groups/Groups.java"]
        assert "    public static final class DeriveSecretParamsResult {" in groups
        assert "        public final GroupSecretParams secretParams;" in groups
        assert "        public final long result;" in groups
        assert ("    public static DeriveSecretParamsResult deriveSecretParams("
                "GroupMasterKey masterKey, ReceiptLevel level) {") in groups
        assert "        byte[] secretParams = new byte[GroupSecretParams.SIZE];" in groups
        assert "        byte[] out = new byte[8];" in groups
        assert ("        int ffiResult = Native.groupsDeriveSecretParamsJNI("
                "masterKey.getInternalContentsForJNI(), level.getValue(), secretParams, out);") in groups
        assert "            throw new AssertionError(\"groupsDeriveSecretParamsJNI returned \" + ffiResult);" in groups
        assert ("            return new DeriveSecretParamsResult("
                "new GroupSecretParams(secretParams), ByteArray.decodeLong(out));") in groups
        assert "        } catch (InvalidInputException e) {" in groups

    def test_enum_class_and_decode(self, mixed_files):
        level = mixed_files["java/groups/ReceiptLevel.java"]
        assert "public enum ReceiptLevel {" in level
        assert "    BASIC(0)," in level
        assert "    PREMIUM(1);" in level
        groups = mixed_files["java/groups/Groups.java"]
        assert "        return ReceiptLevel.fromValue(out[0] & 0xff);" in groups
        assert "    public static void forget(GroupMasterKey masterKey) {" in groups

    def test_enum_passed_as_int(self, mixed_files):
        native = mixed_files["java/internal/Native.java"]
        assert ("    public static native int groupsDeriveSecretParamsJNI("
                "byte[] masterKey, int level, byte[] secretParams, byte[] out);") in native
        glue = mixed_files["ffiapijava/ffiapijava.rs"]
        assert "    level: jint," in glue
        assert "        let level = u8::try_from(level).map_err(|_| FFI_RETURN_INVALID_INPUT)?;" in glue
        assert "            level,\n" in glue
        assert "use std::convert::TryFrom;" in glue

    def test_wide_scalar_input_imports_jlong(self):
        from ffigen.loader import ModelLoader
        model = ModelLoader({
            "types": [{"name": "Counter", "kind": "scalar", "size": 8}],
            "modules": [{"name": "util", "functions": [
                {"name": "bump", "params": [{"name": "counter", "type": "Counter"}]},
            ]}],
        }).build()
        files = JNIGenerator(model, GeneratorOptions()).generate()
        assert "use jni::sys::{jbyteArray, jint, jlong};" in files["ffiapijava/ffiapijava.rs"]
        assert "    counter: jlong," in files["ffiapijava/ffiapijava.rs"]
        assert "    public static native int utilBumpJNI(long counter);" in files["java/internal/Native.java"]

    def test_java_package_option(self, scenario_model):
        files = JNIGenerator(scenario_model, GeneratorOptions(java_package="org.example.zk_group")).generate()
        assert "package org.example.zk_group.auth;" in files["java/auth/Auth.java"]
        assert ("fn Java_org_example_zk_1group_internal_Native_authVerifyCredentialJNI("
                in files["ffiapijava/ffiapijava.rs"])

    def test_narrow_scalar_input_is_range_checked(self):
        from ffigen.loader import ModelLoader
        model = ModelLoader({
            "types": [{"name": "Small", "kind": "scalar", "size": 1},
                      {"name": "Medium", "kind": "scalar", "size": 2}],
            "modules": [{"name": "util", "functions": [
                {"name": "take", "params": [{"name": "value", "type": "Small"}]},
                {"name": "put", "params": [{"name": "count", "type": "Medium"}], "fallible": True},
            ]}],
        }).build()
        files = JNIGenerator(model, GeneratorOptions()).generate()
        util = files["java/util/Util.java"]
        assert "    public static void take(int value) throws InvalidInputException {" in util
        assert "        if (value < 0 || value > 0xff) {" in util
        assert ("            throw new InvalidInputException(ZkGroupException.FFI_RETURN_INVALID_INPUT,\n"
                "                \"value out of range: \" + value);") in util
        assert "    public static void put(int count) throws ZkGroupException {" in util
        assert "        if (count < 0 || count > 0xffff) {" in util
        assert "import org.signal.zkgroup.InvalidInputException;" in util

        glue = files["ffiapijava/ffiapijava.rs"]
        assert "        let value = u8::try_from(value).map_err(|_| FFI_RETURN_INVALID_INPUT)?;" in glue
        assert "        let count = u16::try_from(count).map_err(|_| FFI_RETURN_INVALID_INPUT)?;" in glue
        assert "value as u8" not in glue

    def test_byte_array_imported_only_for_scalar_outputs(self):
        from ffigen.loader import ModelLoader
        model = ModelLoader({
            "types": [{"name": "Small", "kind": "scalar", "size": 1}],
            "modules": [{"name": "util", "functions": [
                {"name": "take", "params": [{"name": "value", "type": "Small"}]},
            ]}],
        }).build()
        util = JNIGenerator(model, GeneratorOptions()).generate()["java/util/Util.java"]
        assert "ByteArray" not in util
