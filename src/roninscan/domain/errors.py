from __future__ import annotations


class RoninScanError(Exception):
    """Base class for every error raised by roninscan."""


class ConfigurationError(RoninScanError, ValueError):
    """Invalid run configuration; raised before any I/O happens."""


class ConnectivityError(RoninScanError):
    """The chain source or the record store cannot be reached."""


class RpcError(RoninScanError):
    """The node answered with a JSON-RPC error payload."""

    def __init__(self, method: str, code: int | None, message: str | None) -> None:
        super().__init__(f"{method} RPC error code={code} message={message}")
        self.method = method
        self.code = code
        self.message = message


class DecodeError(RoninScanError):
    """A raw log does not decode against the expected event signature."""


class SignatureMismatch(DecodeError):
    """topic0 is not the signature's topic hash (not the event we asked for)."""


class ShapeMismatch(DecodeError):
    """Topic count or data length disagrees with the signature."""


class TypeMismatch(DecodeError):
    """A word cannot be coerced to the parameter's declared type."""


class ScanAborted(RoninScanError):
    """A run stopped mid-way; everything before `block` is persisted."""

    def __init__(self, message: str, block: int | None) -> None:
        super().__init__(message)
        self.block = block
