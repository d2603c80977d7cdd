"""
Error kinds raised by marketplace services.

Views translate these into HTTP responses; services never build responses
themselves.
"""

from rest_framework import status


class MarketplaceError(Exception):
    """Base class for rejected marketplace operations."""

    code = 'error'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'The request could not be processed.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_response_data(self):
        return {'detail': self.message, 'code': self.code}


class NotFound(MarketplaceError):
    """Referenced product or transaction does not exist or is soft-deleted."""

    code = 'not_found'
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Not found.'


class Forbidden(MarketplaceError):
    """Caller lacks the relationship the operation requires."""

    code = 'forbidden'
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'You do not have permission to perform this action.'


class Conflict(MarketplaceError):
    """Rejected because of the current state of the product."""

    code = 'conflict'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'The request conflicts with the current state of the product.'


class InvalidInput(MarketplaceError):
    """Malformed identifiers or missing fields for the transaction type."""

    code = 'invalid_input'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Invalid input.'
