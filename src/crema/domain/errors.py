"""Exceptions raised by domain service implementations."""


class EntityNotFoundError(Exception):
    def __init__(self, entity_type: str, entity_id: int) -> None:
        super().__init__(f"{entity_type} with ID {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationError(Exception):
    def __init__(self, errors: dict[str, list[str]]) -> None:
        super().__init__("Validation failed")
        self.errors = errors
