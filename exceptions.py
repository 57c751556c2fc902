class ReceiptError(Exception):
    """Base error for the receipt pipeline, rendered as {"error": message}."""
    status_code = 500

    def __init__(self, message, status_code=None):
        super(ReceiptError, self).__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

class InvalidRequest(ReceiptError):
    status_code = 400

class NotFound(ReceiptError):
    status_code = 404

class ReceiptConflict(ReceiptError):
    status_code = 409

class UpstreamFailure(ReceiptError):
    status_code = 500

class RenderFailure(ReceiptError):
    status_code = 500

    def __init__(self, message, order_id=None):
        super(RenderFailure, self).__init__(message)
        self.order_id = order_id
