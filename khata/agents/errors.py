"""Advisory errors."""


class AdvisoryError(Exception):
    """Base exception for the spending advisory."""
    pass


class AdvisoryLockedError(AdvisoryError):
    """Not enough transactions yet. No request was made."""

    def __init__(self, count: int, required: int):
        self.count = count
        self.required = required
        self.remaining = max(required - count, 0)
        super().__init__(
            f"Advisory needs {required} transactions, have {count}"
        )


class AdvisoryUnavailableError(AdvisoryError):
    """The generative model could not be reached or gave no answer."""
    pass
