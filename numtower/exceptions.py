from __future__ import annotations

class NumtowerException(Exception):
    "Base exception for errors raised by the numeric tower."
    pass

class ConstructionError(NumtowerException, ValueError):
    "A problem was encountered creating a numeric value or context."
    pass

class NumericConversionError(NumtowerException, TypeError):
    "A quantity could not be converted to numeric form."
    pass

class CoercionError(NumtowerException):
    "A requested conversion between numeric kinds is not representable."

    def __init__(self, message: str, source=None, target=None):
        super().__init__(message)
        self.source = source
        self.target = target

class NumericArithmeticError(NumtowerException, ArithmeticError):
    "A mathematically undefined operation was requested."
    pass

class DivisionByZeroError(NumericArithmeticError, ZeroDivisionError):
    "Division by the additive identity of some numeric kind."
    pass

class ParseError(NumtowerException, ValueError):
    "Malformed textual input for a numeric value."
    pass

class ConstantError(NumtowerException):
    "Base exception for failures of the constant registry."
    pass

class NotFoundError(ConstantError, LookupError):
    "No constant (or constant branch) is registered under the requested name."
    pass

class UnsupportedPrecisionError(ConstantError):
    "A constant cannot be produced at the requested precision."
    pass
