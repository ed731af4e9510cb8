"""Exception types for the Inspection Forms tool.

Validation problems are returned as message lists, not raised. The types
below cover configuration mistakes, locked forms and collaborator failures.
"""

from __future__ import annotations


class InspectionFormsError(Exception):
    """Base class for every error raised by the tool."""


class ConfigurationError(InspectionFormsError):
    """Static form definitions are inconsistent (raised at startup)."""


class DuplicateSchemaError(ConfigurationError):
    def __init__(self, form_id: str) -> None:
        super().__init__(f"Form schema registered twice: {form_id}")
        self.form_id = form_id


class FormLockedError(InspectionFormsError):
    """A mutation was attempted on an archived form or completed inspection."""


class MissingParentFieldsError(InspectionFormsError):
    """The parent inspection lacks company, facility name and/or address."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__("Campos obrigatórios da inspeção ausentes: " + ", ".join(self.missing))


class RendererError(InspectionFormsError):
    """The PDF renderer could not produce a document."""


class PersistenceError(InspectionFormsError):
    """The records backend rejected a request or could not be reached."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code

    def display_message(self) -> str:
        """Message with the machine code appended in brackets, if any."""
        if self.code:
            return f"{self.message} [{self.code}]"
        return self.message


class DateParseError(InspectionFormsError, ValueError):
    """A date value is not in any accepted representation."""
