"""Address validation with correction suggestions.

The provider is asked once per call; there is no caching or retry.
Validation is advisory for the buyer but a hard gate for finalization: an
address must come back valid and complete, or the buyer must explicitly
override it.
"""

from dataclasses import asdict, dataclass, field

import structlog
from protean.exceptions import ValidationError

from ordering.carrier.port import Address, CarrierPort
from ordering.errors import UpstreamError, UpstreamUnavailable

logger = structlog.get_logger(__name__)

_COMPARED_FIELDS = ("address1", "city", "state", "postal_code", "country")
_REQUIRED_FIELDS = ("address1", "city", "postal_code", "country")


@dataclass(frozen=True)
class AddressValidationResult:
    is_valid: bool
    is_complete: bool
    messages: tuple[str, ...] = field(default_factory=tuple)
    suggested: Address | None = None
    normalized: Address | None = None
    retryable: bool = False

    @property
    def passed(self) -> bool:
        return self.is_valid and self.is_complete

    def to_dict(self) -> dict:
        return asdict(self)


def _clean(value) -> str:
    return (value or "").strip().lower()


def differs(candidate: Address, original: Address) -> bool:
    """True when the candidate changes street, city, region, postal code or country."""
    return any(_clean(getattr(candidate, name)) != _clean(getattr(original, name)) for name in _COMPARED_FIELDS)


def check_address_fields(address: Address) -> None:
    errors = {}
    for name in _REQUIRED_FIELDS:
        if not (getattr(address, name) or "").strip():
            errors[name] = ["This field is required"]
    if address.country and len(address.country.strip()) != 2:
        errors["country"] = ["Use a two-letter ISO country code"]
    if errors:
        raise ValidationError(errors)


class AddressValidator:
    def __init__(self, carrier: CarrierPort):
        self.carrier = carrier

    def validate(self, address: Address) -> AddressValidationResult:
        """Verify ``address`` with the carrier and work out any correction to offer.

        ``normalized`` is set whenever the provider's candidate differs from
        the input. ``suggested`` is set only when it differs *and* the address
        is incomplete, which is when the buyer has to choose before paying.
        Provider failures come back as ``is_valid=False`` with a message;
        ``retryable`` tells "try again" apart from "this address is wrong".
        """
        check_address_fields(address)

        try:
            verdict = self.carrier.verify_address(address)
        except UpstreamError as exc:
            logger.info("address_validation_failed", provider=exc.provider, error=exc.message)
            return AddressValidationResult(
                is_valid=False,
                is_complete=False,
                messages=(f"Address validation failed: {exc.message}",),
                retryable=isinstance(exc, UpstreamUnavailable),
            )

        candidate = verdict.candidate
        changed = candidate is not None and differs(candidate, address)
        return AddressValidationResult(
            is_valid=verdict.is_valid,
            is_complete=verdict.is_complete,
            messages=tuple(verdict.messages),
            suggested=candidate if changed and not verdict.is_complete else None,
            normalized=candidate if changed else None,
        )


def get_address_validator() -> AddressValidator:
    from ordering.carrier import get_carrier

    return AddressValidator(get_carrier())
