#!/usr/bin/env python3
"""
FFI Binding Generator

Reads an API description and generates:
  1. ffiapi/ + simpleapi/  - Rust C-ABI shim and safe layer
  2. ffiapijava/ + java/   - Rust JNI glue and Java classes
  3. swift/                - C header and Swift wrappers

Usage:
    python generate_ffi.py zkgroup.idl --output-dir generated/
    python generate_ffi.py zkgroup.yaml -o generated/ --target jvm --java-package org.signal.zkgroup
"""

import sys
from pathlib import Path

# Add parent directory to path so ffigen package can be found
sys.path.insert(0, str(Path(__file__).parent.parent))

from ffigen.cli import main


if __name__ == "__main__":
    sys.exit(main())
