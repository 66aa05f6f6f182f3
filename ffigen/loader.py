"""Loads an API description and validates it into an ApiModel.

Descriptions come either as IDL text (``*.idl``) or as YAML/JSON documents
with the same structure the IDL parser produces::

    options: {java_package: org.signal.zkgroup}
    types:
      - {name: AuthCredential, kind: buffer, size: 181, module: auth}
      - {name: Bool8, kind: scalar, size: 1}
      - {name: ReceiptLevel, kind: enum, variants: [Basic, Premium]}
    modules:
      - name: auth
        functions:
          - name: verifyCredential
            params: [{name: credential, type: AuthCredential}]
            returns: Bool8
            fallible: true
"""

import logging
import re
from pathlib import Path
from types import MappingProxyType
from typing import Any, Optional, Union

import yaml

from .config import GeneratorOptions
from .errors import DescriptionError, ModelError, ModelErrorKind
from .naming import enum_constant, module_class, snake_case, swift_case
from .type_mapper import TypeMapper
from .parser import IDLParser
from .types import ApiModel, Direction, FunctionDef, Module, Parameter, TypeDef, TypeKind

logger = logging.getLogger(__name__)

SCALAR_WIDTHS = (1, 2, 4, 8)
MAX_ENUM_VARIANTS = 256

_TYPE_NAME = re.compile(r'[A-Z][A-Za-z0-9]*')
_MODULE_NAME = re.compile(r'[a-z][a-z0-9]*')
_MEMBER_NAME = re.compile(r'[a-z][A-Za-z0-9]*')
_VARIANT_NAME = re.compile(r'[A-Za-z][A-Za-z0-9]*')

# Words that cannot be used as parameter names in at least one target language
RESERVED_WORDS = frozenset({
    # Rust
    "as", "break", "const", "continue", "crate", "else", "enum", "extern", "false", "fn",
    "for", "if", "impl", "in", "let", "loop", "match", "mod", "move", "mut", "pub", "ref",
    "return", "self", "static", "struct", "super", "trait", "true", "type", "unsafe", "use",
    "where", "while", "async", "await", "dyn", "abstract", "box", "do", "final", "macro",
    "override", "priv", "typeof", "unsized", "virtual", "yield", "try",
    # Java
    "assert", "boolean", "byte", "case", "catch", "char", "class", "default", "double",
    "extends", "finally", "float", "goto", "implements", "import", "instanceof", "int",
    "interface", "long", "native", "new", "null", "package", "private", "protected",
    "public", "short", "strictfp", "switch", "synchronized", "this", "throw", "throws",
    "transient", "void", "volatile",
    # Swift / C
    "func", "guard", "init", "inout", "internal", "is", "let", "nil", "operator",
    "protocol", "repeat", "rethrows", "subscript", "throws", "typealias", "var",
    "unsigned", "signed", "sizeof", "register", "auto", "struct", "union",
    # generated locals
    "env", "ffiResult", "result", "code", "e",
    # helpers the generated wrappers call
    "fixed", "simpleapi", "decodeScalar", "decodeEnum", "precondition", "check",
})

# Class names the bindings generate themselves
RESERVED_TYPE_NAMES = frozenset({
    "Native", "ByteArray", "ByteArrayValue", "ZkGroupError", "ZkGroupException",
    "InvalidInputException", "VerificationFailedException", "Self", "Type", "String", "Object",
    "Error",
})


def load_description(path: Union[str, Path]) -> dict[str, Any]:
    """Read a description file into its raw structure"""
    path = Path(path)
    if not path.is_file():
        raise DescriptionError(f"description not found: {path}")
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix == ".idl":
        data = IDLParser(text).parse()
    elif suffix in (".yaml", ".yml", ".json"):
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise DescriptionError(f"{path}: {exc}") from exc
    else:
        raise DescriptionError(f"unsupported description format: {path.suffix or path.name}")
    if not isinstance(data, dict):
        raise DescriptionError(f"{path}: top level must be a mapping")
    logger.debug("Loaded description %s", path)
    return data


def load_model(path: Union[str, Path], **overrides: Any) -> tuple[ApiModel, GeneratorOptions]:
    """Load, validate and build the model and options of a description file"""
    raw = load_description(path)
    loader = ModelLoader(raw)
    model = loader.build()
    options = GeneratorOptions.from_mapping(raw.get("options")).merged(**overrides)
    return model, options


def _require(entry: Any, key: str, where: str, kind: type = str) -> Any:
    if not isinstance(entry, dict):
        raise DescriptionError(f"{where}: expected a mapping, got {type(entry).__name__}")
    if key not in entry:
        raise DescriptionError(f"{where}: missing '{key}'")
    value = entry[key]
    if not isinstance(value, kind) or isinstance(value, bool) and kind is not bool:
        raise DescriptionError(f"{where}: '{key}' must be {kind.__name__}")
    return value


def _list(entry: dict, key: str, where: str) -> list:
    value = entry.get(key) or []
    if not isinstance(value, list):
        raise DescriptionError(f"{where}: '{key}' must be a list")
    return value


class ModelLoader:
    """Validates a raw description and builds the immutable ApiModel.

    Problems are reported in declaration order; the first one aborts.
    """

    def __init__(self, raw: dict[str, Any]):
        self.raw = raw

    def build(self) -> ApiModel:
        module_names = self._check_module_names()
        types = self._build_types(module_names)
        modules = tuple(self._build_module(m, types) for m in _list(self.raw, "modules", "description"))
        model = ApiModel(types=MappingProxyType(types), modules=modules)
        logger.debug("Model has %d types, %d modules, %d functions",
                     len(types), len(modules), sum(1 for _ in model.functions()))
        return model

    def _check_module_names(self) -> list[str]:
        names = []
        for i, entry in enumerate(_list(self.raw, "modules", "description")):
            name = _require(entry, "name", f"modules[{i}]")
            if not _MODULE_NAME.fullmatch(name) or name in RESERVED_WORDS - {"internal"}:
                raise ModelError(ModelErrorKind.INVALID_NAME, name,
                                 "module names are lowercase letters and digits")
            if name in names:
                raise ModelError(ModelErrorKind.DUPLICATE_NAME, name, "module")
            names.append(name)
        return names

    def _build_types(self, module_names: list[str]) -> dict[str, TypeDef]:
        types: dict[str, TypeDef] = {}
        class_names = {module_class(m) for m in module_names}
        # Constant stems (FOO_LEN) and file names (Foo.java) must stay distinct
        stems: dict[str, str] = {}
        files = {c.lower(): c for c in class_names | RESERVED_TYPE_NAMES}
        for i, entry in enumerate(_list(self.raw, "types", "description")):
            where = f"types[{i}]"
            name = _require(entry, "name", where)
            kind_name = _require(entry, "kind", where)
            try:
                kind = TypeKind(kind_name)
            except ValueError:
                raise DescriptionError(f"{where}: unknown kind {kind_name!r}") from None

            if not _TYPE_NAME.fullmatch(name) or name in RESERVED_TYPE_NAMES:
                raise ModelError(ModelErrorKind.INVALID_NAME, name, "type names are UpperCamelCase")
            if name in class_names:
                raise ModelError(ModelErrorKind.INVALID_NAME, name, "clashes with a module class")
            if name in types:
                raise ModelError(ModelErrorKind.DUPLICATE_NAME, name, "type")
            stem = snake_case(name).upper()
            if stem in stems:
                raise ModelError(ModelErrorKind.DUPLICATE_NAME, name,
                                 f"constants clash with {stems[stem]} ({stem}_*)")
            if name.lower() in files:
                raise ModelError(ModelErrorKind.DUPLICATE_NAME, name,
                                 f"file name clashes with {files[name.lower()]}")
            stems[stem] = name
            files[name.lower()] = name

            module = entry.get("module")
            if module is not None and module not in module_names and module != "internal":
                raise ModelError(ModelErrorKind.UNDEFINED_MODULE, f"{name}.module={module}")

            if kind is TypeKind.ENUM:
                variants = self._check_variants(name, _list(entry, "variants", where))
                types[name] = TypeDef(name, kind, variants=variants, module=module)
                continue

            size = entry.get("size")
            if not isinstance(size, int) or isinstance(size, bool) or size <= 0:
                raise ModelError(ModelErrorKind.INVALID_LENGTH, name, f"size={size!r}")
            if kind is TypeKind.SCALAR:
                if size not in SCALAR_WIDTHS:
                    raise ModelError(ModelErrorKind.INVALID_LENGTH, name,
                                     f"scalar width must be one of {SCALAR_WIDTHS}")
                if module is not None:
                    raise DescriptionError(f"{where}: scalar types have no module placement")
            types[name] = TypeDef(name, kind, size=size, module=module)
        return types

    def _check_variants(self, name: str, variants: list) -> tuple[str, ...]:
        if not variants or len(variants) > MAX_ENUM_VARIANTS:
            raise ModelError(ModelErrorKind.INVALID_LENGTH, name,
                             f"enums need 1..{MAX_ENUM_VARIANTS} variants")
        seen = []
        generated = set()
        for v in variants:
            if not isinstance(v, str) or not _VARIANT_NAME.fullmatch(v):
                raise ModelError(ModelErrorKind.INVALID_NAME, f"{name}.{v}")
            if swift_case(v) in RESERVED_WORDS:
                raise ModelError(ModelErrorKind.INVALID_NAME, f"{name}.{v}",
                                 f"'{swift_case(v)}' is a reserved word")
            if v in seen:
                raise ModelError(ModelErrorKind.DUPLICATE_NAME, f"{name}.{v}", "enum variant")
            # Basic and basic are the same Swift case, FooBar and FOOBar the same Java constant
            for generated_name in (swift_case(v), enum_constant(v)):
                if generated_name in generated:
                    raise ModelError(ModelErrorKind.DUPLICATE_NAME, f"{name}.{v}",
                                     f"generates {generated_name} twice")
            generated.update((swift_case(v), enum_constant(v)))
            seen.append(v)
        return tuple(seen)

    def _resolve(self, types: dict[str, TypeDef], type_name: Any, entity: str) -> TypeDef:
        if not isinstance(type_name, str) or type_name not in types:
            raise ModelError(ModelErrorKind.UNDEFINED_TYPE, f"{entity}: {type_name}")
        return types[type_name]

    def _build_module(self, entry: dict, types: dict[str, TypeDef]) -> Module:
        module_name = entry["name"]
        functions = []
        for i, fentry in enumerate(_list(entry, "functions", module_name)):
            name = _require(fentry, "name", f"{module_name}.functions[{i}]")
            qualified = f"{module_name}.{name}"
            if not _MEMBER_NAME.fullmatch(name) or name in RESERVED_WORDS:
                raise ModelError(ModelErrorKind.INVALID_NAME, qualified)
            if any(f.name == name for f in functions):
                raise ModelError(ModelErrorKind.DUPLICATE_NAME, qualified, "function")

            params = []
            for j, pentry in enumerate(_list(fentry, "params", qualified)):
                pname = _require(pentry, "name", f"{qualified}.params[{j}]")
                entity = f"{qualified}.{pname}"
                if not _MEMBER_NAME.fullmatch(pname) or pname in RESERVED_WORDS:
                    raise ModelError(ModelErrorKind.INVALID_NAME, entity)
                if any(p.name == pname for p in params):
                    raise ModelError(ModelErrorKind.DUPLICATE_NAME, entity, "parameter")
                try:
                    direction = Direction(pentry.get("direction", "in"))
                except ValueError:
                    raise DescriptionError(f"{entity}: direction must be 'in' or 'out'") from None
                ptype = self._resolve(types, pentry.get("type"), entity)
                params.append(Parameter(pname, ptype, direction))

            returns: Optional[TypeDef] = None
            if fentry.get("returns") not in (None, "void"):
                returns = self._resolve(types, fentry["returns"], f"{qualified} -> return")

            fallible = fentry.get("fallible", False)
            if not isinstance(fallible, bool):
                raise DescriptionError(f"{qualified}: 'fallible' must be true or false")

            func = FunctionDef(name, module_name, tuple(params), returns, fallible)
            self._check_slots(func, qualified)
            functions.append(func)
        return Module(module_name, tuple(functions))

    def _check_slots(self, func: FunctionDef, qualified: str):
        """Generated argument names (``fooLen``, ``out``) must not collide"""
        seen = set()
        for slot in TypeMapper.abi_slots(func):
            if slot.name in seen:
                raise ModelError(ModelErrorKind.DUPLICATE_NAME, f"{qualified}.{slot.name}",
                                 "clashes with a generated argument")
            seen.add(slot.name)
