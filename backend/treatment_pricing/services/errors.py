"""Typed failures raised by the pricing engines.

Everything derives from ValueError so callers that already guard pricing
calls with ``except ValueError`` keep working.
"""


class PricingError(ValueError):
    """Base class for all pricing-engine failures."""


class InvalidDimensionError(PricingError):
    """A required length (rail width, drop, wall or roll size) is zero or negative."""

    def __init__(self, field: str, value):
        self.field = field
        self.value = value
        super().__init__(f"{field} must be greater than 0; received {value!r}")


class UnresolvedFabricWidthError(InvalidDimensionError):
    """Widths-required is mandatory for this calculation but no fabric width is known."""

    def __init__(self, fabric_name: str = ""):
        super().__init__("fabric_width_cm", None)
        label = f" for '{fabric_name}'" if fabric_name else ""
        self.args = (f"Fabric width{label} is required to calculate widths but was not set",)


class ExpressionError(PricingError):
    """Base class for formula evaluation failures."""


class InvalidExpressionError(ExpressionError):
    """Malformed formula or a character outside the allowed set."""


class UnknownVariableError(ExpressionError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown variable '{name}' in expression")


class DivisionByZeroError(ExpressionError):
    def __init__(self, expression: str = ""):
        self.expression = expression
        suffix = f" in '{expression}'" if expression else ""
        super().__init__(f"Division by zero{suffix}")
