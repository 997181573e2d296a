"""Error taxonomy shared by admission, prediction and storage layers."""

from __future__ import annotations


class TaskManagerError(RuntimeError):
    """Base error carrying a stable machine-checkable kind."""

    kind = "task_manager_error"


class InvalidRequestError(TaskManagerError):
    """Malformed or contradictory caller input."""

    kind = "invalid_request"


class EntityNotFoundError(TaskManagerError):
    """Referenced entity is absent from the store."""

    kind = "entity_not_found"

    def __init__(self, entity_name: str, entity_id: int) -> None:
        super().__init__(f"{entity_name} with ID {entity_id} not found")
        self.entity_name = entity_name
        self.entity_id = entity_id


class ConfigurationError(TaskManagerError):
    """System-level precondition is not met."""

    kind = "configuration_error"


class StoreUnavailableError(TaskManagerError):
    """Entity store could not serve the request."""

    kind = "store_unavailable"


class PredictionError(TaskManagerError):
    """Oracle response could not be decoded into a skill prediction."""

    kind = "prediction_error"
