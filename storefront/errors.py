"""Error taxonomy shared by the services and the JSON API."""


class StorefrontError(Exception):
    """Base class for errors that map onto an HTTP response."""
    status_code = 400
    message = 'Request could not be processed'

    def __init__(self, message=None, **payload):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.payload = payload

    def to_dict(self):
        body = {'error': self.message}
        body.update(self.payload)
        return body


class NotFound(StorefrontError):
    status_code = 404
    message = 'Resource not found'


class ValidationFailed(StorefrontError):
    status_code = 400
    message = 'Validation Error'

    def __init__(self, message=None, errors=None):
        super().__init__(message, details=errors or {})
        self.errors = errors or {}


class ProductUnavailable(StorefrontError):
    status_code = 400

    def __init__(self, product_name):
        super().__init__(f'Product {product_name} is no longer available')
        self.product_name = product_name


class InsufficientStock(StorefrontError):
    status_code = 400

    def __init__(self, product_name, available):
        super().__init__(
            f'Insufficient stock for {product_name}. Available: {available}',
            availableStock=available,
        )
        self.product_name = product_name
        self.available = available


class EmptyCart(StorefrontError):
    status_code = 400
    message = 'Cart is empty'


class InvalidState(StorefrontError):
    status_code = 409
    message = 'Operation not allowed in the current state'


class SignatureInvalid(StorefrontError):
    status_code = 400
    message = 'Webhook signature verification failed'


class PaymentProviderError(StorefrontError):
    status_code = 502
    message = 'Payment provider is unavailable, please try again'


class PersistenceFailure(StorefrontError):
    status_code = 500
    message = 'Internal Server Error'
