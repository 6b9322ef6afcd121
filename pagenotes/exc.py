class DoesNotExist(Exception):  # noqa: N818
    """Exception raised when a resource does not exist."""

    def __init__(self, resource_type: str, resource_id: int | str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f'{resource_type} with ID "{resource_id!s}" does not exist')


class AlreadyExists(Exception):  # noqa: N818
    """Exception raised when a resource already exists."""

    def __init__(self, resource_type: str, resource_id: int | str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f'{resource_type} with ID "{resource_id!s}" already exists')


class StorageUnavailable(Exception):  # noqa: N818
    """Exception raised when the key-value storage cannot be read or written."""

    def __init__(self, backend: str, reason: str):
        self.backend = backend
        self.reason = reason
        super().__init__(f"{backend} storage unavailable: {reason}")


class RangeConstructionRejected(Exception):  # noqa: N818
    """Exception raised when a text range cannot be built from its bounds."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Range rejected: {reason}")


class HighlightRejected(Exception):  # noqa: N818
    """Exception raised when a range cannot be enclosed by a single wrapper."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Highlight rejected: {reason}")


class InvalidNoteRecord(Exception):  # noqa: N818
    """Exception raised when a persisted note record cannot be decoded."""

    def __init__(self, record: object, reason: str):
        self.record = record
        self.reason = reason
        super().__init__(f"Invalid note record: {reason}")
