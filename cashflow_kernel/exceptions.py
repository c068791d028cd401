"""
Typed Exception Hierarchy for the Cashflow Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from CashflowKernelError:

    CashflowKernelError (base)
    |
    +-- ValidationError
    |   +-- DuplicateRecordError
    |
    +-- TransientNetworkError
    |
    +-- StorageError
    |
    +-- RemoteNotConfiguredError
    |
    +-- RemoteRejectedError
    |
    +-- AuthenticationError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                     | When Raised                          | Reaches caller?
-------------------------|--------------------------------------|----------------
VALIDATION_ERROR         | amount <= 0, blank description/kind  | yes (rejected)
DUPLICATE_RECORD         | id already present in the collection | yes (rejected)
TRANSIENT_NETWORK_ERROR  | remote timeout / connection / 5xx    | no, absorbed
STORAGE_ERROR            | local durable read/write failed      | yes
REMOTE_NOT_CONFIGURED    | remote operation without endpoint    | yes
REMOTE_REJECTED          | remote refused a one-off request     | yes
AUTHENTICATION_FAILED    | wrong user id or password            | yes
CONFIGURATION_ERROR      | invalid settings file                | yes

===============================================================================
PROPAGATION POLICY
===============================================================================

Network-layer failures are absorbed by the SyncEngine and converted into an
``accepted-local`` outcome.  Only validation and local-storage failures reach
the caller of ``submit``.  A submission never appears to fail because of
connectivity alone.

Every exception carries a class-level ``code`` (machine-readable) and stores
its context as attributes, so the structured log formatter can emit them as
``exc_<field>`` keys.
"""


class CashflowKernelError(Exception):
    """Base exception for all cashflow kernel errors."""

    code: str = "CASHFLOW_KERNEL_ERROR"


class ValidationError(CashflowKernelError):
    """
    A record (or other input) violates its invariants.

    Never retried.  ``field_errors`` maps each offending field to a
    human-readable reason.
    """

    code: str = "VALIDATION_ERROR"

    def __init__(self, field_errors: dict[str, str]):
        self.field_errors = dict(field_errors)
        detail = "; ".join(f"{k}: {v}" for k, v in self.field_errors.items())
        super().__init__(f"Validation failed: {detail}")


class DuplicateRecordError(ValidationError):
    """A record with the same id already exists in the collection."""

    code: str = "DUPLICATE_RECORD"

    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__({"id": f"{record_id} already exists in {collection}"})


class TransientNetworkError(CashflowKernelError):
    """Remote backend unreachable, timed out, or failed server-side."""

    code: str = "TRANSIENT_NETWORK_ERROR"

    def __init__(self, endpoint: str, reason: str):
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"Remote endpoint {endpoint} unavailable: {reason}")


class StorageError(CashflowKernelError):
    """
    The local durable store failed.

    Fatal to the operation: there is no further fallback layer below local
    storage.
    """

    code: str = "STORAGE_ERROR"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Local storage failure for key {key!r}: {reason}")


class RemoteNotConfiguredError(CashflowKernelError):
    """A remote-only operation was requested without a configured endpoint."""

    code: str = "REMOTE_NOT_CONFIGURED"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Remote backend not configured for {operation}")


class RemoteRejectedError(CashflowKernelError):
    """The remote answered but refused a request that is not queued for replay."""

    code: str = "REMOTE_REJECTED"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Remote refused {operation}: {reason}")


class AuthenticationError(CashflowKernelError):
    """Login rejected."""

    code: str = "AUTHENTICATION_FAILED"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"Invalid user or password for {user_id!r}")


class ConfigurationError(CashflowKernelError):
    """Settings could not be parsed or are inconsistent."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, setting: str, reason: str):
        self.setting = setting
        self.reason = reason
        super().__init__(f"Invalid setting {setting!r}: {reason}")
