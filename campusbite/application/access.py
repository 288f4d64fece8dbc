from campusbite.domain.models import Identity, Order
from campusbite.domain.exceptions import PermissionDeniedError


def require_staff(identity: Identity) -> None:
    if not identity.is_staff:
        raise PermissionDeniedError("Staff role required")


def require_owner_or_staff(identity: Identity, order: Order) -> None:
    if not identity.is_staff and order.user_id != identity.user_id:
        raise PermissionDeniedError("Order belongs to another user")
