"""Custom exceptions for the point-of-sale application."""


class PosError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class ValidationError(PosError):
    """Bad user input: non-positive amounts, out-of-range percentages, missing selections."""
    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)


class NotFoundError(PosError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class StockConflictError(PosError):
    """Raised when a sale cannot be settled because inventory changed under the cart."""
    def __init__(self, product_name, required, available):
        self.product_name = product_name
        self.required = required
        self.available = available
        message = (
            f"No hay suficiente stock para el producto {product_name}: "
            f"se requieren {required}, disponible {available}"
        )
        super().__init__(message, 409, {
            'product_name': product_name,
            'required': required,
            'available': available,
        })


class FundBalanceError(PosError):
    """Raised when an advance exceeds the available fund balance."""
    def __init__(self, message="No hay suficiente balance en el fondo para este avance", payload=None):
        super().__init__(message, 409, payload)


class AuthError(PosError):
    """Raised when there is no authenticated user."""
    def __init__(self, message="Debes iniciar sesión para continuar"):
        super().__init__(message, 401)


class ForbiddenError(PosError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="No tienes permisos para realizar esta acción"):
        super().__init__(message, 403)


class PersistenceError(PosError):
    """Storage layer failure; the operation is treated as failed in full."""
    def __init__(self, message="Error de base de datos"):
        super().__init__(message, 500)
