"""Customer record referenced by orders.

Customers are created lazily at checkout, either linked to an authenticated
account or as guests. Email and phone are stored normalized so collision
checks are exact matches.
"""

import re
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, String

from ordering.domain import ordering

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: str | None) -> str | None:
    if not email:
        return None
    return email.strip().lower()


def normalize_phone(phone: str | None) -> str | None:
    """Strip formatting from a phone number, keeping a leading ``+``."""
    if not phone:
        return None
    phone = phone.strip()
    digits = re.sub(r"\D", "", phone)
    if not digits:
        return None
    return f"+{digits}" if phone.startswith("+") else digits


@ordering.aggregate
class Customer:
    email = String(required=True, max_length=254, unique=True)
    phone = String(max_length=40)
    first_name = String(max_length=100)
    last_name = String(max_length=100)
    auth_user_id = String(max_length=255)
    is_guest = Boolean(default=True)
    created_at = DateTime()

    @invariant.post
    def email_must_be_well_formed(self):
        if self.email and not _EMAIL_PATTERN.match(self.email):
            raise ValidationError({"email": ["Invalid email address format"]})

    @classmethod
    def create(cls, email, phone=None, first_name=None, last_name=None, auth_user_id=None):
        return cls(
            email=normalize_email(email),
            phone=normalize_phone(phone),
            first_name=first_name,
            last_name=last_name,
            auth_user_id=auth_user_id,
            is_guest=auth_user_id is None,
            created_at=datetime.now(UTC),
        )

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


@ordering.repository(part_of=Customer)
class CustomerRepository:
    def find_by_auth_user(self, auth_user_id: str) -> Customer | None:
        return self._dao.query.filter(auth_user_id=auth_user_id).all().first

    def find_by_email(self, email: str) -> Customer | None:
        email = normalize_email(email)
        if not email:
            return None
        return self._dao.query.filter(email=email).all().first

    def find_by_phone(self, phone: str) -> Customer | None:
        phone = normalize_phone(phone)
        if not phone:
            return None
        return self._dao.query.filter(phone=phone).all().first
