"""Custom exceptions for the garage application."""
from decimal import Decimal


class GarageError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="Une erreur interne est survenue", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        rv['error'] = self.__class__.__name__
        return rv


class BusinessLogicError(GarageError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=409, payload=None):
        super().__init__(message, status_code, payload)


class ValidationError(GarageError):
    """Malformed input, rejected before any computation or persistence."""
    def __init__(self, message="Données invalides", payload=None):
        super().__init__(message, 400, payload)


class NotFoundError(GarageError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Ressource introuvable", payload=None):
        super().__init__(message, 404, payload)


class Forbidden(GarageError):
    """Raised when the access policy denies an action."""
    def __init__(self, message="Accès refusé à cette ressource"):
        super().__init__(message, 403)


class InvalidTransition(BusinessLogicError):
    """Requested status change is not allowed from the current status."""
    def __init__(self, current, target):
        self.current = current
        self.target = target
        message = (
            f"Transition de statut impossible : {_status_value(current)} → {_status_value(target)}"
        )
        super().__init__(message, payload={'from': _status_value(current), 'to': _status_value(target)})


class ImmutableInvoiceError(BusinessLogicError):
    """Attempt to edit a paid or canceled invoice."""
    def __init__(self, message="Impossible de modifier une facture payée ou annulée. Créez un avoir."):
        super().__init__(message)


class CannotDeletePaidInvoice(BusinessLogicError):
    def __init__(self):
        super().__init__("Impossible de supprimer une facture payée. Créez un avoir.")


class CannotDeleteIssuedInvoice(BusinessLogicError):
    def __init__(self):
        super().__init__("Impossible de supprimer une facture émise. Annulez-la d'abord.")


class InsufficientStockError(BusinessLogicError):
    """Raised when an issuance would push a part below zero stock."""
    def __init__(self, part_name, required, available):
        from garage.utils.formatters import num_fr
        message = (
            f"Stock insuffisant pour {part_name} : {num_fr(required)} requis, "
            f"{num_fr(available)} disponible"
        )
        super().__init__(message, payload={'required': str(Decimal(required)), 'available': str(Decimal(available))})


def _status_value(status):
    return getattr(status, 'value', status)
