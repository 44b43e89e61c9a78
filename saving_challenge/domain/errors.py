"""Error taxonomy shared by the engagement engine."""


class NotFoundError(LookupError):
    """Referenced user or challenge does not exist."""

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} #{entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class StorageError(RuntimeError):
    """Storage read/write failed."""


class InvalidPreferenceError(ValueError):
    """Stored notification preferences could not be parsed."""


class SavingValidationError(ValueError):
    pass
