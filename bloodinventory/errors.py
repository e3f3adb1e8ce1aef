"""
Error taxonomy for inventory and eligibility operations
"""

from typing import Optional


class InventoryError(Exception):
    """Base class for every error raised by the inventory core"""


class NotFound(InventoryError):
    """Referenced blood type or donor has no backing record"""


class InsufficientStock(InventoryError):
    """Available or reserved units do not cover the requested amount"""

    def __init__(self, blood_type: str, requested: int, current: int, pool: str = 'available'):
        self.blood_type = blood_type
        self.requested = requested
        self.current = current
        self.pool = pool
        if pool == 'reserved':
            message = f"Not enough reserved units of {blood_type}: requested {requested}, reserved {current}"
        else:
            message = f"Insufficient units available of {blood_type}: requested {requested}, available {current}"
        super().__init__(message)

    @property
    def shortage(self) -> int:
        return max(0, self.requested - self.current)


class InvalidInput(InventoryError, ValueError):
    """Malformed date, unknown blood type or non-positive unit count"""


class TransientIOError(InventoryError):
    """Persistence read or write failed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class StaleWriteError(TransientIOError):
    """Stock row kept changing between read and write"""


def user_message(error: Exception) -> str:
    """Turn any error into a sentence that can be shown to the user."""
    if isinstance(error, InsufficientStock):
        return str(error)

    text = str(error)
    if 'violates row-level security' in text:
        return 'Access denied. Please check your permissions.'
    if 'duplicate key' in text:
        return 'This record already exists.'
    if 'violates foreign key' in text:
        return 'Cannot complete operation due to related records.'
    if isinstance(error, NotFound) or 'not found' in text.lower():
        return text or 'Record not found.'
    if isinstance(error, StaleWriteError):
        return 'Stock changed while saving. Please try again.'
    return text or 'An error occurred. Please try again.'
