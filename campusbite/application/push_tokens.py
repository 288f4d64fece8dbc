import logging

from campusbite.domain.models import Identity
from campusbite.domain.exceptions import InvalidPushTokenError

logger = logging.getLogger(__name__)


class RegisterPushTokenUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, identity: Identity, token: str) -> None:
        token = (token or "").strip()
        if not token:
            raise InvalidPushTokenError("token is required")
        async with self._uow() as uow:
            await uow.push_tokens.add(identity.user_id, token)
            await uow.commit()
        logger.info(f"Push token registered for user {identity.user_id}")


class UnregisterPushTokenUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, identity: Identity, token: str) -> None:
        async with self._uow() as uow:
            await uow.push_tokens.remove(identity.user_id, token)
            await uow.commit()
