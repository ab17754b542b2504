class PlanningError(Exception):
    """Base exception for Production Planning engine errors."""

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or "An error occurred in the Production Planning engine"
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        """String representation of the error."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to a dictionary."""
        error_dict = {
            'error': self.__class__.__name__,
            'message': self.message,
        }

        if self.code:
            error_dict['code'] = self.code

        if self.details:
            error_dict['details'] = self.details

        return error_dict


class InfrastructureError(PlanningError):
    """Exception raised when the storage layer cannot be reached or fails."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Storage access error"
        super().__init__(message, code, details)


class ValidationError(PlanningError):
    """Exception raised for data validation errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Validation error"
        super().__init__(message, code, details)


class NotFoundError(PlanningError):
    """Exception raised when a requested resource is not found."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Resource not found"
        super().__init__(message, code, details)


class NoComponentsError(PlanningError):
    """Exception raised when a product has no bill of materials defined."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Product has no components defined"
        super().__init__(message, code, details)


class InventoryError(PlanningError):
    """Exception raised for inventory movement errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Inventory error"
        super().__init__(message, code, details)


class InsufficientInventoryError(InventoryError):
    """Exception raised when stock cannot cover a production run.

    Carries every short component, not only the first one found.
    """

    def __init__(self, shortages, message=None, code=None):
        self.shortages = list(shortages)
        if message is None:
            parts = ', '.join(s.part_number for s in self.shortages)
            message = f"Insufficient inventory for {len(self.shortages)} component(s): {parts}"
        details = {'shortages': [s.to_dict() for s in self.shortages]}
        super().__init__(message, code or 'INSUFFICIENT_INVENTORY', details)


class SchedulingError(PlanningError):
    """Exception raised for schedule generation errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Scheduling error"
        super().__init__(message, code, details)


class MRPError(PlanningError):
    """Exception raised for material requirements planning errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "MRP calculation error"
        super().__init__(message, code, details)


class AlertError(PlanningError):
    """Exception raised for alert management errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Alert error"
        super().__init__(message, code, details)
