"""Generation driver.

Loads the model once, renders every target in memory, stages the files in a
scratch directory next to the outputs and only then swaps the target
directories into place. A failure at any step leaves previous outputs as
they were.
"""

import logging
import os
import shutil
import tempfile
import time
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any, Iterable, Optional, Sequence, Union

from .config import GeneratorOptions
from .core_generator import CoreGenerator
from .error_codes import ERROR_CODES, ErrorCodeTable
from .errors import FfigenError, GeneratorError
from .jni_generator import JNIGenerator
from .loader import load_model
from .swift_generator import SwiftGenerator
from .types import ApiModel

logger = logging.getLogger(__name__)

GENERATORS = (CoreGenerator, JNIGenerator, SwiftGenerator)
TARGETS = tuple(g.TARGET for g in GENERATORS)


class DriverState(Enum):
    IDLE = "idle"
    MODEL_LOADED = "model_loaded"
    EMITTING = "emitting"
    DONE = "done"
    FAILED = "failed"


class Driver:
    """Runs every selected emitter over one description, all or nothing"""

    def __init__(self, description: Union[str, Path], output_dir: Union[str, Path],
                 targets: Optional[Iterable[str]] = None,
                 option_overrides: Optional[dict[str, Any]] = None,
                 generators: Sequence[type] = GENERATORS,
                 error_codes: ErrorCodeTable = ERROR_CODES):
        self.description = Path(description)
        self.output_dir = Path(output_dir)
        self.option_overrides = option_overrides or {}
        self.error_codes = error_codes
        wanted = list(targets) if targets else [g.TARGET for g in generators]
        unknown = sorted(set(wanted) - {g.TARGET for g in generators})
        if unknown:
            raise GeneratorError(",".join(unknown), "unknown target")
        # Fixed order regardless of how targets were requested
        self.generators = [g for g in generators if g.TARGET in wanted]
        self.state = DriverState.IDLE
        self.current_target: Optional[str] = None
        self.model: Optional[ApiModel] = None
        self.options: Optional[GeneratorOptions] = None

    def load(self) -> ApiModel:
        try:
            self.model, self.options = load_model(self.description, **self.option_overrides)
        except FfigenError:
            self.state = DriverState.FAILED
            raise
        self.state = DriverState.MODEL_LOADED
        logger.info("Loaded %s", self.description)
        return self.model

    def emit(self) -> dict[str, dict[str, str]]:
        """Render every target in memory: target -> relative path -> text"""
        if self.state is not DriverState.MODEL_LOADED:
            self.load()
        rendered = {}
        for generator_cls in self.generators:
            target = generator_cls.TARGET
            self.state = DriverState.EMITTING
            self.current_target = target
            logger.debug("Emitting %s", target)
            try:
                files = generator_cls(self.model, self.options, self.error_codes).generate()
                self._check_layout(generator_cls, files)
            except GeneratorError:
                self.state = DriverState.FAILED
                raise
            except Exception as exc:
                self.state = DriverState.FAILED
                raise GeneratorError(target, f"emitter failed: {exc}") from exc
            rendered[target] = files
        self.current_target = None
        return rendered

    def _check_layout(self, generator_cls: type, files: dict[str, str]):
        for rel in files:
            path = PurePosixPath(rel)
            if path.is_absolute() or ".." in path.parts or len(path.parts) < 2:
                raise GeneratorError(generator_cls.TARGET, f"bad output path {rel!r}")
            if path.parts[0] not in generator_cls.OUTPUT_DIRS:
                raise GeneratorError(generator_cls.TARGET,
                                     f"{rel!r} is outside {', '.join(generator_cls.OUTPUT_DIRS)}")

    def run(self) -> list[Path]:
        """Generate and write every target. Returns the written files."""
        start_time = time.perf_counter()
        rendered = self.emit()
        written = self._write(rendered)
        self.state = DriverState.DONE
        elapsed = time.perf_counter() - start_time
        logger.info("Generation completed in %.2f ms", elapsed * 1000)
        return written

    def _write(self, rendered: dict[str, dict[str, str]]) -> list[Path]:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=".ffigen-", dir=self.output_dir))
        try:
            new_root = staging / "new"
            for target, files in rendered.items():
                self.current_target = target
                for rel, content in files.items():
                    path = new_root / rel
                    path.parent.mkdir(parents=True, exist_ok=True)
                    with open(path, "w", encoding="utf-8", newline="\n") as f:
                        f.write(content)
            self.current_target = None
            written = self._swap(staging, rendered)
        except OSError as exc:
            self.state = DriverState.FAILED
            raise GeneratorError(self.current_target or "output", f"could not write outputs: {exc}") from exc
        finally:
            shutil.rmtree(staging, ignore_errors=True)
        for path in written:
            logger.info("Generated: %s", path)
        return written

    def _swap(self, staging: Path, rendered: dict[str, dict[str, str]]) -> list[Path]:
        """Move staged directories over the outputs, restoring them on failure"""
        dirs = [d for g in self.generators if g.TARGET in rendered for d in g.OUTPUT_DIRS]
        old_root = staging / "old"
        old_root.mkdir()
        moved_old, placed = [], []
        try:
            for name in dirs:
                dest = self.output_dir / name
                if dest.exists():
                    os.replace(dest, old_root / name)
                    moved_old.append(name)
                src = staging / "new" / name
                if not src.exists():
                    src.mkdir(parents=True)
                os.replace(src, dest)
                placed.append(name)
        except OSError:
            for name in placed:
                shutil.rmtree(self.output_dir / name, ignore_errors=True)
            for name in moved_old:
                os.replace(old_root / name, self.output_dir / name)
            raise
        return sorted(self.output_dir / rel for files in rendered.values() for rel in files)
