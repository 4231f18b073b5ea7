from typing import Optional


class PoolGuardError(Exception):
    """Base class for every error raised by poolguard."""


class TransientFetchError(PoolGuardError):
    """Network or RPC failure, including timeouts."""


class RpcError(TransientFetchError):
    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message if code is None else f"RPC error {code}: {message}")
        self.code = code


class DecodeError(PoolGuardError):
    """Account data is missing or does not match the expected layout."""


class ConfigurationError(PoolGuardError):
    """Invalid thresholds or pipeline setup. Raised before any network call."""


class InvalidPoolError(PoolGuardError):
    """The pool identity is incomplete or holds invalid addresses."""


class PoolNotFoundError(PoolGuardError):
    """The pool or its market account does not exist on chain."""
