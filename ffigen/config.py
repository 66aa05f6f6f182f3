"""Generator options"""

import dataclasses
import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .errors import ConfigError

logger = logging.getLogger(__name__)

_JAVA_PACKAGE = re.compile(r'[a-z][a-z0-9_]*(\.[a-z][a-z0-9_]*)*')
_IDENTIFIER = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')
_RUST_PATH = re.compile(r'[A-Za-z_][A-Za-z0-9_]*(::[A-Za-z_][A-Za-z0-9_]*)*')


@dataclass(frozen=True)
class GeneratorOptions:
    """Settings that are not part of the API itself"""
    library_name: str = "zkgroup"
    java_package: str = "org.signal.zkgroup"
    jni_library: str = ""
    rust_ffi_path: str = "crate::ffi"
    rust_api_path: str = "crate::api"
    rust_error_type: str = "crate::common::errors::ZkGroupError"
    header_lines: tuple[str, ...] = ()

    def __post_init__(self):
        if not _IDENTIFIER.fullmatch(self.library_name):
            raise ConfigError(f"library_name is not an identifier: {self.library_name!r}")
        if not _JAVA_PACKAGE.fullmatch(self.java_package):
            raise ConfigError(f"java_package is not a package name: {self.java_package!r}")
        for key in ("rust_ffi_path", "rust_api_path", "rust_error_type"):
            if not _RUST_PATH.fullmatch(getattr(self, key)):
                raise ConfigError(f"{key} is not a Rust path: {getattr(self, key)!r}")

    @property
    def jni_library_name(self) -> str:
        return self.jni_library or self.library_name

    @property
    def error_type_name(self) -> str:
        """Last segment of the library error type path"""
        return self.rust_error_type.rsplit("::", 1)[-1]

    @classmethod
    def from_mapping(cls, values: Optional[Mapping[str, Any]]) -> "GeneratorOptions":
        """Build options from a description's ``options`` section"""
        values = dict(values or {})
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigError(f"unknown option(s): {', '.join(unknown)}")
        if "header_lines" in values:
            lines = values["header_lines"]
            if isinstance(lines, str):
                lines = lines.splitlines()
            if not isinstance(lines, (list, tuple)):
                raise ConfigError("header_lines must be a string or a list of strings")
            values["header_lines"] = tuple(str(line) for line in lines)
        for key, value in values.items():
            if key != "header_lines" and not isinstance(value, str):
                raise ConfigError(f"option {key} must be a string")
        return cls(**values)

    def merged(self, **overrides: Any) -> "GeneratorOptions":
        """Copy with every non-empty override applied"""
        changes = {k: v for k, v in overrides.items() if v}
        if changes:
            logger.debug("Option overrides: %s", changes)
        return dataclasses.replace(self, **changes)
