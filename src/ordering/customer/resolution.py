"""Resolve-or-create the customer an order belongs to."""

import structlog
from protean import current_domain
from protean.exceptions import ValidationError

from ordering.customer.customer import Customer

logger = structlog.get_logger(__name__)

SIGN_IN_MESSAGE = "A customer with this email or phone already exists, please sign in"


def find_collision(email: str | None, phone: str | None) -> Customer | None:
    """Return an existing customer sharing the email or the phone, if any."""
    repo = current_domain.repository_for(Customer)
    return repo.find_by_email(email) or repo.find_by_phone(phone)


def assert_guest_allowed(email: str | None, phone: str | None) -> None:
    """Reject guest checkout for contact details that belong to an existing customer."""
    if find_collision(email, phone) is not None:
        logger.info("guest_checkout_collision", email=email)
        raise ValidationError({"email": [SIGN_IN_MESSAGE]})


def resolve_customer(
    email: str,
    phone: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    auth_user_id: str | None = None,
) -> Customer:
    """Find the customer for this checkout or build a new one.

    Authenticated buyers are matched by account, then by email. A guest whose
    email or phone is already on file is attached to that customer: by the
    time an order is written the payment has been captured, so the sign-in
    rule is enforced earlier, by ``assert_guest_allowed`` before payment.
    A newly built customer is returned unsaved; the caller persists it in the
    same unit of work as the order.
    """
    repo = current_domain.repository_for(Customer)

    if auth_user_id:
        existing = repo.find_by_auth_user(auth_user_id) or repo.find_by_email(email)
        if existing is not None:
            return existing
        return Customer.create(
            email=email,
            phone=phone,
            first_name=first_name,
            last_name=last_name,
            auth_user_id=auth_user_id,
        )

    existing = find_collision(email, phone)
    if existing is not None:
        logger.info("guest_order_attached_to_customer", customer_id=str(existing.id))
        return existing
    return Customer.create(email=email, phone=phone, first_name=first_name, last_name=last_name)
