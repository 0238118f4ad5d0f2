"""Domain errors that Protean does not provide.

Validation failures use ``protean.exceptions.ValidationError`` and unknown
records use ``protean.exceptions.ObjectNotFoundError``. The classes here
follow the same shape: a ``messages`` dict keyed by field or ``_entity``.
"""


class OrderingError(Exception):
    def __init__(self, messages: dict | str):
        if isinstance(messages, str):
            messages = {"_entity": [messages]}
        self.messages = messages
        super().__init__(messages)

    @property
    def detail(self) -> str:
        """First message, for HTTP responses."""
        for values in self.messages.values():
            if values:
                return values[0] if isinstance(values, list) else str(values)
        return self.__class__.__name__


class ConflictError(OrderingError):
    """The operation is not allowed in the record's current state."""


class ForbiddenError(OrderingError):
    """The caller does not own the record it tried to change."""


class InsufficientStockError(OrderingError):
    """A reservation or placement asked for more than the ledger holds."""

    def __init__(self, available: int, requested: int, size: str | None = None):
        self.available = available
        self.requested = requested
        self.size = size
        super().__init__({"quantity": ["That's all we have for now"]})


class CollaboratorError(OrderingError):
    """An external collaborator (carrier, mail relay) failed."""

    retryable = False


class CarrierError(CollaboratorError):
    """The carrier rejected the request."""

    def __init__(self, messages: dict | str, retryable: bool | None = None):
        super().__init__(messages)
        if retryable is not None:
            self.retryable = retryable


class CarrierUnavailableError(CarrierError):
    """The carrier could not be reached in time."""

    retryable = True
