class MemoryStoreError(Exception):
    pass


class MemoryConflictError(MemoryStoreError):
    """Persisted revision moved since it was read (another writer won)."""

    def __init__(self, expected: int | None, actual: int | None) -> None:
        super().__init__(f"revision conflict: expected {expected}, found {actual}")
        self.expected = expected
        self.actual = actual


class MemoryPersistError(MemoryStoreError):
    """A mutating operation could not write the memory document back."""

    def __init__(self, operation: str, cause: BaseException) -> None:
        super().__init__(f"{operation} failed: could not persist memory: {cause}")
        self.operation = operation
        self.cause = cause
