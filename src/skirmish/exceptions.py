from __future__ import annotations


class SkirmishError(Exception):
    """Base exception for the Skirmish combat engine."""


class InvalidIntent(SkirmishError):
    """Raised when an intent is not allowed in the current session phase."""


class SessionBusy(InvalidIntent):
    """Raised when an intent arrives while another step of the same session is in flight."""


class CapacityExceeded(SkirmishError):
    """Raised when granted items would not fit into the inventory."""

    def __init__(self, current: int, incoming: int, capacity: int) -> None:
        super().__init__(
            f"Inventory cannot hold {incoming} more item(s): {current}/{capacity} slots used"
        )
        self.current = current
        self.incoming = incoming
        self.capacity = capacity


class CollaboratorFailure(SkirmishError):
    """Raised when the catalog or state store fails underneath an encounter."""


class CatalogError(SkirmishError):
    """Raised for unknown catalog ids or catalog documents that fail validation."""

    def __init__(self, message: str, errors: list | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []

    def to_human(self) -> str:
        parts = [str(self)]
        for e in self.errors:
            path = "/".join(str(p) for p in e.path) or "<root>"
            parts.append(f" - at {path}: {e.message}")
        return "\n".join(parts)


class SettingsError(SkirmishError):
    """Raised when a settings file names keys the settings tree does not have."""
