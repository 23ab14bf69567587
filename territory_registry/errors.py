"""
Territory error taxonomy.

All errors are locally recoverable:
- ValidationError: malformed human input (coordinates, amounts, payloads)
- InvalidTransitionError: lifecycle operation from the wrong source state
- LayerNotFoundError: operation referencing an unknown layer id
- RegistryInvariantError: a transition produced an inconsistent registry
"""


class TerritoryError(Exception):
    """Base class for recoverable territory engine errors."""
    pass


class ValidationError(TerritoryError, ValueError):
    """Raised when form or payload input cannot be parsed."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class InvalidTransitionError(TerritoryError):
    """Raised when a layer is not in the state an operation requires."""

    def __init__(self, operation: str, layer_id: int, reason: str):
        self.operation = operation
        self.layer_id = layer_id
        self.reason = reason
        super().__init__(f"Cannot {operation} layer {layer_id}: {reason}")


class LayerNotFoundError(TerritoryError, KeyError):
    """Raised when a layer id is absent from the registry."""

    def __init__(self, layer_id):
        self.layer_id = layer_id
        super().__init__(layer_id)

    def __str__(self) -> str:
        return f"Layer '{self.layer_id}' not found"


class RegistryInvariantError(TerritoryError):
    """Raised when a state would break the registry invariants."""
    pass
