"""
Registration service.

Creates a user and, when a referral code is given, up to three referral
records with their pending bonuses, all in one unit of work.
"""

from dataclasses import dataclass, field

from ybs.config.business_constants import (
    PASSWORD_MIN_LENGTH,
    REFERRAL_CODE_MAX_ATTEMPTS,
)
from ybs.config.settings import Settings, settings as default_settings
from ybs.database.unit_of_work import UnitOfWork, UnitOfWorkFactory
from ybs.models.enums import AccountStatus
from ybs.models.referral import Referral
from ybs.models.user import User
from ybs.services.base_service import BaseService, ledger_operation
from ybs.services.referral.chain_resolver import ReferralChainResolver
from ybs.utils.codes import generate_referral_code
from ybs.utils.exceptions import ConflictError, ValidationError
from ybs.utils.validation import normalize_phone_number, validate_email


@dataclass
class RegistrationOutcome:
    """Created user and the referral records attached to them."""

    user: User
    referrals: list[Referral] = field(default_factory=list)


def split_full_name(full_name: str | None) -> tuple[str | None, str | None]:
    """Split "First Middle Last" into ("First", "Middle Last")."""
    if not full_name or not full_name.strip():
        return None, None
    parts = full_name.split()
    return parts[0], " ".join(parts[1:]) or None


class RegistrationService(BaseService):
    """User registration under an optional referrer."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        settings: Settings | None = None,
    ) -> None:
        """
        Initialize registration service.

        Args:
            uow_factory: Unit of work factory
            settings: Settings (defaults to the global settings)
        """
        super().__init__(uow_factory)
        self.settings = settings or default_settings

    @ledger_operation
    async def register(
        self,
        phone_number: str,
        password: str,
        referral_code: str | None = None,
        email: str | None = None,
        full_name: str | None = None,
    ) -> RegistrationOutcome:
        """
        Register a new user.

        Args:
            phone_number: Raw phone number (normalized to 254XXXXXXXXX)
            password: Plain text password
            referral_code: Optional referrer code
            email: Optional email
            full_name: Optional full name

        Returns:
            ServiceResult with a RegistrationOutcome. Failure kinds:
            VALIDATION (bad input), CONFLICT (duplicate phone/email,
            self-referral), NOT_FOUND (unknown referral code).
        """
        phone = normalize_phone_number(phone_number)
        email_normalized = validate_email(email)
        if not password or len(password) < PASSWORD_MIN_LENGTH:
            raise ValidationError(
                f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
            )
        code = referral_code.strip().upper() if referral_code else None
        first_name, last_name = split_full_name(full_name)

        # Hash outside the transaction
        user = User(
            phone_number=phone,
            email=email_normalized,
            first_name=first_name,
            last_name=last_name,
            referred_by=code,
            account_status=AccountStatus.UNVERIFIED.value,
        )
        user.set_password(password, rounds=self.settings.bcrypt_rounds)

        async with self.uow_factory() as uow:
            await self._ensure_unique_identity(uow, phone, email_normalized)

            resolver = ReferralChainResolver(uow)
            referrer = None
            if code:
                referrer = await resolver.resolve_referrer(
                    code, phone, email_normalized
                )

            user.referral_code = await self._allocate_referral_code(uow)
            uow.session.add(user)
            await uow.flush()

            records: list[Referral] = []
            if referrer is not None:
                records = await resolver.attach(user, referrer)

            await uow.commit()

        self.logger.info(
            "User registered",
            extra={
                "user_id": user.id,
                "referred_by": code,
                "referral_levels": len(records),
            },
        )
        return RegistrationOutcome(user=user, referrals=records)

    async def _ensure_unique_identity(
        self, uow: UnitOfWork, phone: str, email: str | None
    ) -> None:
        if await uow.users.get_by_phone(phone) is not None:
            raise ConflictError("Phone number already registered", phone=phone)
        if email is not None and await uow.users.get_by_email(email) is not None:
            raise ConflictError("Email address already registered", email=email)

    async def _allocate_referral_code(self, uow: UnitOfWork) -> str:
        for _ in range(REFERRAL_CODE_MAX_ATTEMPTS):
            code = generate_referral_code()
            if not await uow.users.referral_code_exists(code):
                return code
        raise ConflictError("Could not allocate a unique referral code")
