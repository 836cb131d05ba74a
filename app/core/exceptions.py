from typing import Optional


class RunImportError(Exception):
    """Base class for every error that rejects a run workbook import."""


class InvalidTimezoneError(RunImportError):
    def __init__(self, timezone: str):
        self.timezone = timezone
        super().__init__(
            f'Invalid timezone "{timezone}". Please use an IANA timezone like "America/Chicago".'
        )


class UnexpectedSheetFormatError(RunImportError):
    """The workbook's layout is not recognized.

    Carries the sheet name, the 1-based row number and the offending cell text
    when they are known so the caller can point the user at the bad row.
    """

    def __init__(
        self,
        message: str,
        *,
        sheet: Optional[str] = None,
        row: Optional[int] = None,
        value: Optional[str] = None,
    ):
        self.sheet = sheet
        self.row = row
        self.value = value
        super().__init__(message)

    def describe(self) -> str:
        context = []
        if self.sheet:
            context.append(f'sheet "{self.sheet}"')
        if self.row:
            context.append(f"row {self.row}")
        if not context:
            return str(self)
        return f"{self} ({', '.join(context)})"


class NoPickEntriesError(RunImportError):
    def __init__(self, message: str = "Workbook did not contain any pick entries to import."):
        super().__init__(message)


class RunPersistenceError(RunImportError):
    """The import could not be written; nothing from it was committed."""
