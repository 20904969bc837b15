from poscore.core.config import settings
from poscore.core.errors import AuthenticationError
from poscore.services.assembler import OrderAssembler
from poscore.services.checkout import CommitCoordinator
from poscore.services.order_numbers import OrderNumberGenerator
from poscore.services.order_store import OrderStore
from poscore.services.status import StatusTransition


def get_order_store() -> OrderStore:
    return OrderStore()


def get_order_assembler() -> OrderAssembler:
    return OrderAssembler(amount_tolerance=settings.amount_tolerance)


def get_commit_coordinator() -> CommitCoordinator:
    return CommitCoordinator(
        numbers=OrderNumberGenerator(prefix=settings.order_number_prefix),
        max_attempts=settings.order_commit_max_attempts,
        retry_backoff=settings.order_commit_retry_backoff,
    )


def get_status_transition() -> StatusTransition:
    return StatusTransition()


def require_user_id(user_id: object) -> str:
    # Sessions are issued elsewhere; the POS client forwards the cashier id.
    if user_id is None or not str(user_id).strip():
        raise AuthenticationError()
    return str(user_id).strip()
