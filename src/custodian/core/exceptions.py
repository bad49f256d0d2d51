"""Core exceptions for the retention engine and its collaborators."""

from custodian.utils.exceptions import ConfigurationError, CustodianError


class ActorNotSetError(CustodianError):
    """Raised when no acting identity is bound and no default is configured.

    This indicates a programming error: operations that stamp archive or
    hold records are being called outside of an actor_context().
    """

    def __init__(self, message: str = "Current actor is not set"):
        super().__init__(message)


class MalformedPolicyConfigError(ConfigurationError):
    """Raised when a retention policy configuration cannot be used.

    Surfaced once when policies are loaded, never per governed record.

    Attributes:
        policy_id: Identifier of the offending policy (None if unsaved)
        policy_name: Name of the offending policy, if known
        reason: What is wrong with it
    """

    def __init__(self, policy_id: int | None, reason: str, policy_name: str | None = None):
        super().__init__(reason)
        self.policy_id = policy_id
        self.policy_name = policy_name
        self.reason = reason

    def __str__(self) -> str:
        label = self.policy_name or "<unnamed>"
        return f"MalformedPolicyConfigError(policy={self.policy_id}, name={label}): {self.reason}"


class RecordStoreUnavailableError(CustodianError):
    """Raised when the record store cannot complete an operation.

    Attributes:
        collection: Collection (record type) the operation targeted
        operation: Store operation name (get, query, update, add, delete)
        record_id: Target record id, if the operation had one
    """

    def __init__(
        self,
        message: str,
        collection: str,
        operation: str,
        record_id: int | None = None,
    ):
        super().__init__(message)
        self.collection = collection
        self.operation = operation
        self.record_id = record_id

    def __str__(self) -> str:
        target = self.collection if self.record_id is None else f"{self.collection} {self.record_id}"
        return f"RecordStoreUnavailableError({self.operation} {target}): {self.args[0]}"


class RecordNotFoundError(RecordStoreUnavailableError):
    """Raised when a record id does not exist in its collection."""

    def __init__(self, collection: str, record_id: int, operation: str = "get"):
        super().__init__(
            f"{collection} record {record_id} not found",
            collection=collection,
            operation=operation,
            record_id=record_id,
        )


class LegalHoldNotFoundError(CustodianError):
    """Raised when releasing a legal hold that does not exist.

    Attributes:
        hold_id: The requested hold id
    """

    def __init__(self, hold_id: int):
        super().__init__(f"Legal hold {hold_id} not found")
        self.hold_id = hold_id
