"""The numeric error-code table shared by every generated binding.

Numbers are part of the ABI: an entry keeps its value forever and new
entries are only appended.
"""

from dataclasses import dataclass
from typing import Iterator, Optional


@dataclass(frozen=True)
class ErrorCode:
    name: str
    value: int
    description: str
    library_variants: tuple[str, ...] = ()
    java_exception: Optional[str] = None
    swift_case: Optional[str] = None

    @property
    def constant(self) -> str:
        """Constant name used in Rust, C and Java"""
        return f"FFI_RETURN_{self.name}"

    @property
    def is_ok(self) -> bool:
        return self.value == 0


class ErrorCodeTable:
    """Immutable, ordered collection of error codes"""

    def __init__(self, codes: tuple[ErrorCode, ...]):
        values = [c.value for c in codes]
        names = [c.name for c in codes]
        if len(set(values)) != len(values) or len(set(names)) != len(names):
            raise ValueError("error codes must have unique names and values")
        if 0 not in values:
            raise ValueError("error code table needs an OK entry with value 0")
        variants = [v for c in codes for v in c.library_variants]
        if len(set(variants)) != len(variants):
            raise ValueError("a library error variant maps to more than one code")
        self._codes = tuple(sorted(codes, key=lambda c: c.value))

    def __iter__(self) -> Iterator[ErrorCode]:
        return iter(self._codes)

    def __len__(self) -> int:
        return len(self._codes)

    def __getitem__(self, name: str) -> ErrorCode:
        for code in self._codes:
            if code.name == name:
                return code
        raise KeyError(name)

    @property
    def ok(self) -> ErrorCode:
        return next(c for c in self._codes if c.is_ok)

    @property
    def invalid_input(self) -> ErrorCode:
        return self["INVALID_INPUT"]

    @property
    def internal_error(self) -> ErrorCode:
        return self["INTERNAL_ERROR"]

    @property
    def failures(self) -> tuple[ErrorCode, ...]:
        """Every non-OK code"""
        return tuple(c for c in self._codes if not c.is_ok)

    def java_exceptions(self) -> list[str]:
        """Distinct Java exception class names, in table order"""
        names = []
        for code in self.failures:
            if code.java_exception and code.java_exception not in names:
                names.append(code.java_exception)
        return names


ERROR_CODES = ErrorCodeTable((
    ErrorCode("OK", 0, "Success"),
    ErrorCode("INTERNAL_ERROR", 1, "Unexpected failure inside the native library",
              java_exception="ZkGroupException", swift_case="internalError"),
    ErrorCode("INVALID_INPUT", 2, "Argument of the wrong length, null pointer or bad enum value",
              ("BadArgs",), "InvalidInputException", "invalidInput"),
    ErrorCode("DECRYPTION_FAILED", 3, "Ciphertext did not decrypt",
              ("DecryptionFailure",), "VerificationFailedException", "decryptionFailed"),
    ErrorCode("MAC_VERIFICATION_FAILED", 4, "Credential MAC did not verify",
              ("MacVerificationFailure",), "VerificationFailedException", "macVerificationFailed"),
    ErrorCode("PROOF_VERIFICATION_FAILED", 5, "Zero-knowledge proof did not verify",
              ("ProofVerificationFailure",), "VerificationFailedException", "proofVerificationFailed"),
    ErrorCode("SIGNATURE_VERIFICATION_FAILED", 6, "Signature did not verify",
              ("SignatureVerificationFailure",), "VerificationFailedException", "signatureVerificationFailed"),
    ErrorCode("POINT_DECODE_FAILED", 7, "Bytes do not encode a valid group element",
              ("PointDecodeFailure",), "InvalidInputException", "pointDecodeFailed"),
))
