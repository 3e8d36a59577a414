"""
Custom exceptions for the application
"""


class QueueUnavailableError(Exception):
    """Raised when the Redis-backed queue cannot be reached"""

    def __init__(self, message: str, queue_name: str = None, original_error: Exception = None):
        self.message = message
        self.queue_name = queue_name
        self.original_error = original_error
        super().__init__(message)


class ConnectionRefusedFatalError(QueueUnavailableError):
    """Raised when Redis actively refuses the connection; not retried"""


class PayloadDecodeError(Exception):
    """Raised when a webhook payload carries a message of an unexpected shape"""


class DuplicateListingError(Exception):
    """Raised when a listing for the same WhatsApp message ID already exists"""

    def __init__(self, message: str, whatsapp_message_id: str = None):
        self.message = message
        self.whatsapp_message_id = whatsapp_message_id
        super().__init__(message)


class ListingNotFoundError(Exception):
    """Raised when a listing does not exist"""


class InvalidStatusTransitionError(Exception):
    """Raised when a listing is not in the state an operation requires"""

    def __init__(self, message: str, current_status: str = None):
        self.message = message
        self.current_status = current_status
        super().__init__(message)
