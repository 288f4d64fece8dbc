class DomainException(Exception):
    pass


class EmptyCartError(DomainException):
    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class NoValidItemsError(DomainException):
    def __init__(self, message: str = "No valid items in cart"):
        super().__init__(message)


class InvalidRequiredTimeError(DomainException):
    pass


class InvalidQuantityError(DomainException):
    pass


class InvalidMenuItemError(DomainException):
    pass


class PaymentVerificationFailedError(DomainException):
    pass


class InvalidTransitionError(DomainException):
    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move order from {current.value} to {requested.value}")


class PaymentCollectionRequiredError(DomainException):
    """Cash order cannot be completed before the cash handoff is confirmed"""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Cash payment for order {order_id} must be confirmed before completion")


class OrderNotFoundError(DomainException):
    pass


class MenuItemNotFoundError(DomainException):
    pass


class PermissionDeniedError(DomainException):
    pass


class ServiceUnavailableError(DomainException):
    pass


class InvalidPushTokenError(DomainException):
    pass


class DuplicateOrderError(DomainException):
    """Another order of the same user already carries this idempotency key"""

    def __init__(self, user_id: str, idempotency_key: str):
        self.user_id = user_id
        self.idempotency_key = idempotency_key
        super().__init__(f"Order with idempotency key {idempotency_key} already exists")
