"""Pieces of generated text shared by every emitter"""

from .config import GeneratorOptions

GENERATED_MARKER = "AUTO-GENERATED - DO NOT EDIT"


class CommonGenerator:
    """Banner and file assembly used by all emitters"""

    def __init__(self, options: GeneratorOptions):
        self.options = options

    def banner(self, comment: str = "//") -> list[str]:
        """File header: configured header lines, then the generated marker"""
        lines = []
        for line in self.options.header_lines:
            lines.append(f"{comment} {line}".rstrip())
        if lines:
            lines.append(comment)
        lines.append(f"{comment} {GENERATED_MARKER}")
        lines.append("")
        return lines

    @staticmethod
    def render(lines: list[str]) -> str:
        """Join lines into file text with exactly one trailing newline"""
        text = "\n".join(line.rstrip() for line in lines)
        return text.rstrip("\n") + "\n"
