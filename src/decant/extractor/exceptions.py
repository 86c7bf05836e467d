"""Exceptions raised by the extraction pipeline."""


class DecantError(Exception):
    """Base exception for decant errors."""

    pass


class InputStructureError(DecantError):
    """The input cannot be interpreted as an HTML document at all."""

    pass


class DocumentTooLargeError(InputStructureError):
    """The document holds more elements than the configured parse limit."""

    def __init__(self, element_count: int, limit: int) -> None:
        super().__init__(f"Document has {element_count} elements, limit is {limit}")
        self.element_count = element_count
        self.limit = limit
