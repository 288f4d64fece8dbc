from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status

from campusbite.config import settings
from campusbite.database import AsyncSessionLocal
from campusbite.domain.models import Identity, OrderStatus, Role
from campusbite.domain.exceptions import (
    DomainException,
    EmptyCartError,
    NoValidItemsError,
    InvalidRequiredTimeError,
    InvalidQuantityError,
    InvalidMenuItemError,
    InvalidPushTokenError,
    PaymentVerificationFailedError,
    PermissionDeniedError,
    OrderNotFoundError,
    MenuItemNotFoundError,
    InvalidTransitionError,
    PaymentCollectionRequiredError,
    DuplicateOrderError,
    ServiceUnavailableError,
)
from campusbite.presentation.schemas import (
    AddToCartRequest, AvailabilityRequest, CartResponse, CheckoutRequest, ErrorResponse,
    MenuItemCreateRequest, MenuItemResponse, MenuItemUpdateRequest, OrderResponse,
    PushTokenRequest, StatusUpdateRequest, UpdateQuantityRequest
)
from campusbite.application.catalog_snapshot import CatalogSnapshotResolver
from campusbite.application.get_order import GetOrderUseCase, ListAllOrdersUseCase, ListMyOrdersUseCase
from campusbite.application.manage_cart import (
    AddToCartUseCase, ClearCartUseCase, GetCartUseCase, RemoveFromCartUseCase, UpdateCartQuantityUseCase
)
from campusbite.application.manage_menu import (
    CreateMenuItemUseCase, DeleteMenuItemUseCase, GetMenuItemUseCase, ListMenuUseCase,
    MenuItemDTO, MenuItemPatchDTO, SetMenuItemAvailabilityUseCase, UpdateMenuItemUseCase
)
from campusbite.application.notify_status import NotificationDispatcher
from campusbite.application.place_order import PlaceOrderDTO, PlaceOrderUseCase
from campusbite.application.push_tokens import RegisterPushTokenUseCase, UnregisterPushTokenUseCase
from campusbite.application.update_order_status import ConfirmCashCollectedUseCase, UpdateOrderStatusUseCase
from campusbite.infrastructure.http_clients import HTTPPaymentAuthorizer, HTTPPushTransport
from campusbite.infrastructure.unit_of_work import UnitOfWork

router = APIRouter()

ERROR_STATUS = {
    EmptyCartError: status.HTTP_400_BAD_REQUEST,
    NoValidItemsError: status.HTTP_400_BAD_REQUEST,
    InvalidRequiredTimeError: status.HTTP_400_BAD_REQUEST,
    InvalidQuantityError: status.HTTP_400_BAD_REQUEST,
    InvalidMenuItemError: status.HTTP_400_BAD_REQUEST,
    InvalidPushTokenError: status.HTTP_400_BAD_REQUEST,
    PaymentVerificationFailedError: status.HTTP_402_PAYMENT_REQUIRED,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    OrderNotFoundError: status.HTTP_404_NOT_FOUND,
    MenuItemNotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    PaymentCollectionRequiredError: status.HTTP_409_CONFLICT,
    DuplicateOrderError: status.HTTP_409_CONFLICT,
    ServiceUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def http_error(e: DomainException) -> HTTPException:
    code = ERROR_STATUS.get(type(e), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=code, detail=str(e))


# Collaborators
def get_unit_of_work():
    return UnitOfWork(AsyncSessionLocal)


def get_payment_authorizer():
    return HTTPPaymentAuthorizer(settings.PAYMENTS_BASE_URL, settings.API_TOKEN, settings.PAYMENT_VERIFY_TIMEOUT)


def get_push_transport():
    return HTTPPushTransport(settings.PUSH_BASE_URL, settings.API_TOKEN)


async def get_identity(
    x_user_id: Optional[str] = Header(default=None),
    x_user_email: str = Header(default=""),
    x_user_role: str = Header(default=Role.STUDENT.value)
) -> Identity:
    """Identity as verified by the upstream identity provider"""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    try:
        role = Role(x_user_role.strip().lower())
    except ValueError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Unknown role {x_user_role}")
    return Identity(user_id=x_user_id, email=x_user_email, role=role)


# Use case factories
def get_place_order_use_case(uow=Depends(get_unit_of_work), payments=Depends(get_payment_authorizer)):
    return PlaceOrderUseCase(
        uow,
        payments,
        resolver=CatalogSnapshotResolver(exclude_unavailable=settings.EXCLUDE_UNAVAILABLE_ITEMS),
        min_lead=timedelta(minutes=settings.ORDER_MIN_LEAD_MINUTES),
        max_lead=timedelta(hours=settings.ORDER_MAX_LEAD_HOURS),
        payment_timeout=settings.PAYMENT_VERIFY_TIMEOUT
    )


def get_update_status_use_case(uow=Depends(get_unit_of_work), transport=Depends(get_push_transport)):
    return UpdateOrderStatusUseCase(uow, listeners=[NotificationDispatcher(uow, transport)])


def get_confirm_cash_use_case(uow=Depends(get_unit_of_work), transport=Depends(get_push_transport)):
    return ConfirmCashCollectedUseCase(uow, listeners=[NotificationDispatcher(uow, transport)])


# Menu
@router.get("/menu", response_model=List[MenuItemResponse])
async def list_menu(
    category: Optional[str] = None,
    available_only: bool = False,
    uow=Depends(get_unit_of_work),
    identity: Identity = Depends(get_identity)
):
    """Menu, optionally filtered by category"""
    try:
        items = await ListMenuUseCase(uow)(category=category, available_only=available_only)
        return [MenuItemResponse.from_domain(item) for item in items]
    except DomainException as e:
        raise http_error(e)


@router.get("/menu/{item_id}", response_model=MenuItemResponse, responses=ERROR_RESPONSES)
async def get_menu_item(item_id: str, uow=Depends(get_unit_of_work), identity: Identity = Depends(get_identity)):
    try:
        return MenuItemResponse.from_domain(await GetMenuItemUseCase(uow)(item_id))
    except DomainException as e:
        raise http_error(e)


@router.post(
    "/menu",
    response_model=MenuItemResponse,
    responses=ERROR_RESPONSES,
    status_code=status.HTTP_201_CREATED
)
async def create_menu_item(
    request: MenuItemCreateRequest,
    uow=Depends(get_unit_of_work),
    identity: Identity = Depends(get_identity)
):
    """Add a menu item (staff)"""
    try:
        item = await CreateMenuItemUseCase(uow)(identity, MenuItemDTO(**request.model_dump()))
        return MenuItemResponse.from_domain(item)
    except DomainException as e:
        raise http_error(e)


@router.patch("/menu/{item_id}", response_model=MenuItemResponse, responses=ERROR_RESPONSES)
async def update_menu_item(
    item_id: str,
    request: MenuItemUpdateRequest,
    uow=Depends(get_unit_of_work),
    identity: Identity = Depends(get_identity)
):
    """Edit a menu item (staff)"""
    try:
        dto = MenuItemPatchDTO(**request.model_dump(exclude_unset=True))
        return MenuItemResponse.from_domain(await UpdateMenuItemUseCase(uow)(identity, item_id, dto))
    except DomainException as e:
        raise http_error(e)


@router.put("/menu/{item_id}/availability", response_model=MenuItemResponse, responses=ERROR_RESPONSES)
async def set_menu_item_availability(
    item_id: str,
    request: AvailabilityRequest,
    uow=Depends(get_unit_of_work),
    identity: Identity = Depends(get_identity)
):
    try:
        item = await SetMenuItemAvailabilityUseCase(uow)(identity, item_id, request.is_available)
        return MenuItemResponse.from_domain(item)
    except DomainException as e:
        raise http_error(e)


@router.delete("/menu/{item_id}", status_code=status.HTTP_204_NO_CONTENT, responses=ERROR_RESPONSES)
async def delete_menu_item(item_id: str, uow=Depends(get_unit_of_work), identity: Identity = Depends(get_identity)):
    try:
        await DeleteMenuItemUseCase(uow)(identity, item_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainException as e:
        raise http_error(e)


# Cart
@router.get("/cart", response_model=CartResponse)
async def get_cart(uow=Depends(get_unit_of_work), identity: Identity = Depends(get_identity)):
    try:
        return CartResponse.from_domain(await GetCartUseCase(uow)(identity))
    except DomainException as e:
        raise http_error(e)


@router.post("/cart/items", response_model=CartResponse, responses=ERROR_RESPONSES)
async def add_to_cart(
    request: AddToCartRequest,
    uow=Depends(get_unit_of_work),
    identity: Identity = Depends(get_identity)
):
    """Add an item to the cart, merging with an existing line"""
    try:
        view = await AddToCartUseCase(uow)(identity, request.item_id, request.quantity)
        return CartResponse.from_domain(view)
    except DomainException as e:
        raise http_error(e)


@router.put("/cart/items/{item_id}", response_model=CartResponse, responses=ERROR_RESPONSES)
async def update_cart_quantity(
    item_id: str,
    request: UpdateQuantityRequest,
    uow=Depends(get_unit_of_work),
    identity: Identity = Depends(get_identity)
):
    try:
        view = await UpdateCartQuantityUseCase(uow)(identity, item_id, request.quantity)
        return CartResponse.from_domain(view)
    except DomainException as e:
        raise http_error(e)


@router.delete("/cart/items/{item_id}", response_model=CartResponse, responses=ERROR_RESPONSES)
async def remove_from_cart(item_id: str, uow=Depends(get_unit_of_work), identity: Identity = Depends(get_identity)):
    try:
        return CartResponse.from_domain(await RemoveFromCartUseCase(uow)(identity, item_id))
    except DomainException as e:
        raise http_error(e)


@router.delete("/cart", status_code=status.HTTP_204_NO_CONTENT, responses=ERROR_RESPONSES)
async def clear_cart(uow=Depends(get_unit_of_work), identity: Identity = Depends(get_identity)):
    try:
        await ClearCartUseCase(uow)(identity)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainException as e:
        raise http_error(e)


# Orders
@router.post(
    "/orders/checkout",
    response_model=OrderResponse,
    responses={**ERROR_RESPONSES, 402: {"model": ErrorResponse}},
    status_code=status.HTTP_201_CREATED
)
async def checkout(
    request: CheckoutRequest,
    identity: Identity = Depends(get_identity),
    use_case: PlaceOrderUseCase = Depends(get_place_order_use_case)
):
    """Place an order from the current cart"""
    try:
        dto = PlaceOrderDTO(
            identity=identity,
            required_by=request.required_by,
            payment_method=request.payment_method,
            payment_reference=request.payment_reference,
            idempotency_key=request.idempotency_key
        )
        order = await use_case(dto)
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise http_error(e)


@router.get("/orders", response_model=List[OrderResponse])
async def list_my_orders(uow=Depends(get_unit_of_work), identity: Identity = Depends(get_identity)):
    try:
        orders = await ListMyOrdersUseCase(uow)(identity)
        return [OrderResponse.from_domain(order) for order in orders]
    except DomainException as e:
        raise http_error(e)


@router.get("/orders/all", response_model=List[OrderResponse], responses=ERROR_RESPONSES)
async def list_all_orders(
    order_status: Optional[str] = None,
    uow=Depends(get_unit_of_work),
    identity: Identity = Depends(get_identity)
):
    """All orders for the staff dashboard"""
    try:
        status_filter = OrderStatus(order_status) if order_status else None
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown status {order_status}")
    try:
        orders = await ListAllOrdersUseCase(uow)(identity, status_filter)
        return [OrderResponse.from_domain(order) for order in orders]
    except DomainException as e:
        raise http_error(e)


@router.get("/orders/{order_id}", response_model=OrderResponse, responses=ERROR_RESPONSES)
async def get_order(order_id: str, uow=Depends(get_unit_of_work), identity: Identity = Depends(get_identity)):
    try:
        return OrderResponse.from_domain(await GetOrderUseCase(uow)(identity, order_id))
    except DomainException as e:
        raise http_error(e)


@router.put(
    "/orders/{order_id}/status",
    response_model=OrderResponse,
    responses={**ERROR_RESPONSES, 409: {"model": ErrorResponse}}
)
async def update_order_status(
    order_id: str,
    request: StatusUpdateRequest,
    identity: Identity = Depends(get_identity),
    use_case: UpdateOrderStatusUseCase = Depends(get_update_status_use_case)
):
    """Move an order to a new status (staff)"""
    try:
        return OrderResponse.from_domain(await use_case(identity, order_id, request.status))
    except DomainException as e:
        raise http_error(e)


@router.post(
    "/orders/{order_id}/confirm-cash",
    response_model=OrderResponse,
    responses={**ERROR_RESPONSES, 409: {"model": ErrorResponse}}
)
async def confirm_cash_collected(
    order_id: str,
    identity: Identity = Depends(get_identity),
    use_case: ConfirmCashCollectedUseCase = Depends(get_confirm_cash_use_case)
):
    """Confirm the cash handoff and complete the order (staff)"""
    try:
        return OrderResponse.from_domain(await use_case(identity, order_id))
    except DomainException as e:
        raise http_error(e)


# Push tokens
@router.post("/push-tokens", status_code=status.HTTP_204_NO_CONTENT, responses=ERROR_RESPONSES)
async def register_push_token(
    request: PushTokenRequest,
    uow=Depends(get_unit_of_work),
    identity: Identity = Depends(get_identity)
):
    try:
        await RegisterPushTokenUseCase(uow)(identity, request.token)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainException as e:
        raise http_error(e)


@router.delete("/push-tokens/{token}", status_code=status.HTTP_204_NO_CONTENT, responses=ERROR_RESPONSES)
async def unregister_push_token(token: str, uow=Depends(get_unit_of_work), identity: Identity = Depends(get_identity)):
    try:
        await UnregisterPushTokenUseCase(uow)(identity, token)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainException as e:
        raise http_error(e)
