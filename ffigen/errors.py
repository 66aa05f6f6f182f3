"""Exceptions raised by ffigen while loading descriptions and generating code"""

from enum import Enum
from typing import Optional


class FfigenError(Exception):
    """Base class of every error the generator reports"""


class DescriptionError(FfigenError):
    """The API description is malformed (wrong shape, unknown kind, missing key)"""


class IdlSyntaxError(DescriptionError):
    """The IDL text could not be parsed"""

    def __init__(self, message: str, line: int):
        super().__init__(f"line {line}: {message}")
        self.line = line


class ConfigError(FfigenError):
    """Invalid generator options"""


class ModelErrorKind(Enum):
    UNDEFINED_TYPE = "UndefinedType"
    DUPLICATE_NAME = "DuplicateName"
    INVALID_LENGTH = "InvalidLength"
    INVALID_NAME = "InvalidName"
    UNDEFINED_MODULE = "UndefinedModule"


class ModelError(FfigenError):
    """The description parsed but does not form a valid API model"""

    def __init__(self, kind: ModelErrorKind, entity: str, detail: Optional[str] = None):
        message = f"{kind.value}: {entity}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)
        self.kind = kind
        self.entity = entity


class GeneratorError(FfigenError):
    """An emitter failed or the output tree could not be written"""

    def __init__(self, target: str, message: str):
        super().__init__(f"{target}: {message}")
        self.target = target
