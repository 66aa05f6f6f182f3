"""
FFI Binding Generator Package

Reads one description of a cryptographic library's API (fixed-size byte
buffers, scalars and enums) and generates:
  1. Rust C-ABI shim and its safe slice layer
  2. Rust JNI glue and Java binding classes
  3. C header and Swift wrappers
"""

from .types import TypeKind, Direction, TypeDef, Parameter, FunctionDef, Module, ApiModel
from .errors import (
    FfigenError, DescriptionError, IdlSyntaxError, ConfigError,
    ModelError, ModelErrorKind, GeneratorError,
)
from .error_codes import ErrorCode, ErrorCodeTable, ERROR_CODES
from .config import GeneratorOptions
from .parser import IDLParser
from .loader import ModelLoader, load_description, load_model
from .type_mapper import TypeMapper
from .core_generator import CoreGenerator
from .jni_generator import JNIGenerator
from .swift_generator import SwiftGenerator
from .driver import Driver, DriverState, GENERATORS, TARGETS

__all__ = [
    'TypeKind', 'Direction', 'TypeDef', 'Parameter', 'FunctionDef', 'Module', 'ApiModel',
    'FfigenError', 'DescriptionError', 'IdlSyntaxError', 'ConfigError',
    'ModelError', 'ModelErrorKind', 'GeneratorError',
    'ErrorCode', 'ErrorCodeTable', 'ERROR_CODES',
    'GeneratorOptions', 'IDLParser', 'ModelLoader', 'load_description', 'load_model',
    'TypeMapper', 'CoreGenerator', 'JNIGenerator', 'SwiftGenerator',
    'Driver', 'DriverState', 'GENERATORS', 'TARGETS',
]
