class CategorizerError(Exception):
    """Base class for errors raised by household_categorizer."""


class UnknownBankFormatError(CategorizerError, KeyError):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown bank format: '{self.name}'"


class ImportSubmissionError(CategorizerError):
    """The persistence API rejected (or never received) an import batch."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
