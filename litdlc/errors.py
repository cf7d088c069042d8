# litdlc/errors.py
"""
Error types for the DLC lifecycle.

Everything raised by this package derives from DlcError so the CLI has a
single place to catch, report and exit.
"""


class DlcError(RuntimeError):
    pass


class ConfigError(DlcError):
    """Key material or settings that cannot be used."""


class RpcError(DlcError):
    def __init__(self, method, message):
        self.method = method
        self.message = message
        super().__init__(f"{method}: {message}")


class RpcTransportError(RpcError):
    """Node unreachable, timed out, or answered with something that is not JSON-RPC."""


class RpcRemoteError(RpcError):
    """The node processed the call and returned an error (invalid index, state, duplicate...)."""


class OracleApiError(DlcError):
    pass


class NoContractToAccept(DlcError):
    def __init__(self, message="No contract found to accept"):
        super().__init__(message)


class ActivationTimeout(DlcError):
    pass


class Cancelled(DlcError):
    pass


class PhaseError(DlcError):
    """A collaborator failure, tagged with the lifecycle phase it happened in."""

    def __init__(self, phase, cause):
        self.phase = phase
        self.cause = cause
        super().__init__(f"{phase}: {cause}")
