class InvalidIndex(ValueError):
    """Raised for negative record indices."""

    def __init__(self, index: int) -> None:
        super().__init__(f"Line index out of range: {index}")
        self.index = index


class StoreUnavailable(RuntimeError):
    """The shared cache store cannot be reached or queried."""
