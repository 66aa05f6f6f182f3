"""IDL parser.

Turns the C-like description language into the raw description structure
shared with the YAML/JSON loader::

    option java_package = "org.signal.zkgroup";
    buffer AuthCredential[181] in auth;
    scalar Bool8[1];
    enum ReceiptLevel { Basic, Premium };
    module auth {
        fallible verifyCredential(ServerPublicParams params, AuthCredential credential) -> Bool8;
    };
"""

import re
from typing import Any

from .errors import IdlSyntaxError

_ESCAPES = {"n": "\n", "t": "\t"}

_WS = re.compile(r'\s*')

_OPTION = re.compile(r'option\s+(\w+)\s*=\s*"((?:[^"\\]|\\.)*)"\s*;')
_BUFFER = re.compile(r'buffer\s+(\w+)\s*\[\s*(-?\d+)\s*\](?:\s+in\s+(\w+))?\s*;')
_SCALAR = re.compile(r'scalar\s+(\w+)\s*\[\s*(-?\d+)\s*\]\s*;')
_ENUM = re.compile(r'enum\s+(\w+)(?:\s+in\s+(\w+))?\s*\{([^}]*)\}\s*;?')
_MODULE = re.compile(r'module\s+(\w+)\s*\{([^}]*)\}\s*;?')

_FUNCTION = re.compile(r'(fallible\s+)?(\w+)\s*\(([^)]*)\)\s*(?:->\s*(\w+))?\s*$')
_PARAM = re.compile(r'(?:(in|out)\s+)?(\w+)\s+(\w+)$')


class IDLParser:
    """Parses the ffigen IDL"""

    def __init__(self, content: str):
        self.content = self._strip_comments(content)

    def _strip_comments(self, content: str) -> str:
        # Keep newlines so error messages report the right line
        content = re.sub(r'//.*$', '', content, flags=re.MULTILINE)
        content = re.sub(r'/\*.*?\*/', lambda m: '\n' * m.group(0).count('\n'), content, flags=re.DOTALL)
        return content

    def _line(self, pos: int) -> int:
        return self.content.count('\n', 0, pos) + 1

    def parse(self) -> dict[str, Any]:
        result: dict[str, Any] = {"options": {}, "types": [], "modules": []}
        pos = _WS.match(self.content).end()
        while pos < len(self.content):
            if m := _OPTION.match(self.content, pos):
                name, value = m.groups()
                if name in result["options"]:
                    raise IdlSyntaxError(f"option {name} set twice", self._line(pos))
                result["options"][name] = self._unescape(value)
            elif m := _BUFFER.match(self.content, pos):
                name, size, module = m.groups()
                entry = {"name": name, "kind": "buffer", "size": int(size)}
                if module:
                    entry["module"] = module
                result["types"].append(entry)
            elif m := _SCALAR.match(self.content, pos):
                name, size = m.groups()
                result["types"].append({"name": name, "kind": "scalar", "size": int(size)})
            elif m := _ENUM.match(self.content, pos):
                name, module, body = m.groups()
                entry = {"name": name, "kind": "enum", "variants": self._parse_variants(body, pos)}
                if module:
                    entry["module"] = module
                result["types"].append(entry)
            elif m := _MODULE.match(self.content, pos):
                name, body = m.groups()
                result["modules"].append({
                    "name": name,
                    "functions": self._parse_module_body(body, m.start(2)),
                })
            else:
                snippet = self.content[pos:].split('\n', 1)[0].strip()
                raise IdlSyntaxError(f"unexpected input: {snippet!r}", self._line(pos))
            pos = _WS.match(self.content, m.end()).end()
        return result

    def _unescape(self, value: str) -> str:
        return re.sub(r'\\(.)', lambda m: _ESCAPES.get(m.group(1), m.group(1)), value)

    def _parse_variants(self, body: str, pos: int) -> list[str]:
        variants = [v.strip() for v in body.split(',')]
        # Allow a trailing comma
        if variants and not variants[-1]:
            variants.pop()
        for v in variants:
            if not re.fullmatch(r'\w+', v):
                raise IdlSyntaxError(f"bad enum variant: {v!r}", self._line(pos))
        return variants

    def _parse_module_body(self, body: str, offset: int) -> list[dict[str, Any]]:
        functions = []
        consumed = 0
        for decl in body.split(';'):
            line = self._line(offset + consumed + len(decl) - len(decl.lstrip()))
            consumed += len(decl) + 1
            decl = decl.strip()
            if not decl:
                continue
            m = _FUNCTION.match(decl)
            if not m:
                raise IdlSyntaxError(f"bad function declaration: {decl!r}", line)
            fallible, name, params_str, returns = m.groups()
            functions.append({
                "name": name,
                "params": self._parse_params(params_str, line),
                "returns": returns,
                "fallible": fallible is not None,
            })
        return functions

    def _parse_params(self, params_str: str, line: int) -> list[dict[str, str]]:
        params = []
        if not params_str.strip():
            return params

        for p in params_str.split(','):
            p = ' '.join(p.split())
            m = _PARAM.match(p)
            if not m:
                raise IdlSyntaxError(f"bad parameter: {p!r}", line)
            direction, param_type, param_name = m.groups()
            params.append({
                "name": param_name,
                "type": param_type,
                "direction": direction or "in",
            })
        return params
