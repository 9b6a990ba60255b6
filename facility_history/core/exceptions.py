"""Custom exceptions for facility history lookups and exports."""


class FacilityHistoryError(Exception):
    """Base class for errors whose message is safe to show to the caller."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationError(FacilityHistoryError):
    """Raised when a requested window or query is malformed or contradictory."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class NotFoundError(FacilityHistoryError):
    """Raised when no facility clears the match threshold."""

    def __init__(self, query: str, message: str | None = None):
        self.query = query
        super().__init__(
            message
            or (
                f'Nenhuma sala encontrada que corresponda a "{query}". '
                "Por favor, verifique o nome e tente novamente."
            )
        )


class CapExceededError(FacilityHistoryError):
    """Raised when an export would process more records than the cap allows."""

    def __init__(self, cap: int, processed: int):
        self.cap = cap
        self.processed = processed
        super().__init__(
            f"Limite de {cap} registros excedido; "
            f"exportação interrompida após {processed} registros."
        )


class StorageError(FacilityHistoryError):
    """Raised when the record store or blob storage cannot be reached."""

    def __init__(self, message: str | None = None):
        super().__init__(
            f"Storage failure: {message}" if message else "Storage failure"
        )


class FormattingError(FacilityHistoryError):
    """Raised when a single history entry cannot be turned into a row."""

    def __init__(self, entry_id: str | None, message: str | None = None):
        self.entry_id = entry_id
        detail = f": {message}" if message else ""
        super().__init__(f"Could not format entry {entry_id or '?'}{detail}")


class ArtifactNotFoundError(FacilityHistoryError):
    """Raised when an artifact has expired or was already deleted."""

    def __init__(self, artifact_id: str):
        self.artifact_id = artifact_id
        super().__init__(f"Arquivo {artifact_id} não encontrado ou expirado.")


class InvalidTransitionError(RuntimeError):
    """Raised when an export job is moved along an edge its state machine lacks."""

    pass
