from typing import Optional


class StoreNotInitialized(Exception):
    """Raised when a Local Store operation runs before the store is open."""

    def __init__(self, message: str = "Database is not initialized"):
        self.message = message
        super().__init__(self.message)


class StoreOpenFailed(Exception):
    """Raised when the store cannot be opened even after one recreation."""

    def __init__(self, message: str = "Local store could not be opened", cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(self.message)


class RecordNotFound(Exception):
    def __init__(self, collection: str, key: object):
        self.collection = collection
        self.key = key
        super().__init__(f"{collection} record not found: {key!r}")


class RemoteCallFailed(Exception):
    """A backend call (analysis or recommendation phase) did not succeed."""

    def __init__(self, message: str, *, phase: str, status: Optional[int] = None):
        self.message = message
        self.phase = phase
        self.status = status
        super().__init__(self.message)


class NoClothingDetected(Exception):
    def __init__(
        self,
        message: str = "No clothing items detected. Please upload images of clothing, footwear, or accessories.",
    ):
        self.message = message
        super().__init__(self.message)
