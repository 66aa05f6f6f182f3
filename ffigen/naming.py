"""Symbol naming shared by every emitter.

Each name is a pure function of model fields, so independently generated
bindings agree on symbols without comparing outputs. Module names carry no
underscores or capitals and function names start lowercase, which keeps
every ``module + function`` combination unambiguous.
"""

import re

from .types import FunctionDef, TypeDef

RETURN_SLOT = "out"


def capitalize(name: str) -> str:
    return name[0].upper() + name[1:]


def snake_case(name: str) -> str:
    """verifyCredential -> verify_credential, AuthCredential -> auth_credential"""
    s = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', name)
    s = re.sub(r'([a-z0-9])([A-Z])', r'\1_\2', s)
    return s.lower()


def core_symbol(func: FunctionDef) -> str:
    """Exported C-ABI symbol of the native shim"""
    return f"ffi_{func.module}_{func.name}"


def safe_function(func: FunctionDef) -> str:
    """Function name in the safe (slice based) Rust layer"""
    return f"{func.module}_{func.name}"


def library_function(func: FunctionDef, api_path: str) -> str:
    """Path of the wrapped library function"""
    return f"{api_path}::{func.module}::{snake_case(func.name)}"


def jni_method(func: FunctionDef) -> str:
    """Name of the static native method declared in Native.java"""
    return f"{func.module}{capitalize(func.name)}JNI"


def jni_escape(identifier: str) -> str:
    """Escape a Java identifier for use in a JNI symbol"""
    return identifier.replace("_", "_1")


def jni_symbol(func: FunctionDef, java_package: str) -> str:
    pkg = "_".join(jni_escape(part) for part in java_package.split("."))
    return f"Java_{pkg}_internal_Native_{jni_escape(jni_method(func))}"


def module_class(module_name: str) -> str:
    """Wrapper class (JVM) / namespace enum (Swift) of a module"""
    return capitalize(module_name)


def result_class(func: FunctionDef) -> str:
    """Holder class for functions with several outputs"""
    return f"{capitalize(func.name)}Result"


def length_constant(typedef: TypeDef) -> str:
    return f"{snake_case(typedef.name).upper()}_LEN"


def variant_count_constant(typedef: TypeDef) -> str:
    return f"{snake_case(typedef.name).upper()}_VARIANTS"


def length_slot(name: str) -> str:
    return f"{name}Len"


def enum_constant(variant: str) -> str:
    """Java enum constant for a variant name"""
    return snake_case(variant).upper()


def swift_case(variant: str) -> str:
    return variant[0].lower() + variant[1:]
