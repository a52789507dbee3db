import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from ..core.config import Settings
from ..core.database import Database, DuplicateKeyError
from ..core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)
from ..core.mailer import EmailSender, verification_email
from ..core.security import create_access_token, get_password_hash, verify_password
from ..schemas.user import Address, UserCreate, UserRole

logger = logging.getLogger(__name__)

PRIVATE_FIELDS = ("password", "push_token")


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """Strip credentials and device tokens from a user row."""
    return {key: value for key, value in user.items() if key not in PRIVATE_FIELDS}


class UserService:
    def __init__(self, db: Database, settings: Settings, email_sender: EmailSender):
        self.db = db
        self.settings = settings
        self.email_sender = email_sender

    async def get_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        user = await self.db.execute_query(
            table="users",
            query_type="select",
            filters={"id": user_id}
        )
        return user[0] if user else None

    async def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        user = await self.db.execute_query(
            table="users",
            query_type="select",
            filters={"email": email.lower()}
        )
        return user[0] if user else None

    async def register(self, user_data: UserCreate) -> Dict[str, Any]:
        """
        Create an unverified user and email them a verification link.

        Returns the stored user (without credentials) and whether the
        verification email went out. A failed send does not undo the
        registration; the user can ask for a new link later.
        """
        if len(user_data.password) < self.settings.password_min_length:
            raise ValidationError(
                f"Password must be at least {self.settings.password_min_length} characters"
            )

        email = user_data.email.lower()
        existing_user = await self.db.execute_query(
            table="users",
            query_type="select",
            filters={"email": email}
        ) or await self.db.execute_query(
            table="users",
            query_type="select",
            filters={"phone": user_data.phone}
        )
        if existing_user:
            raise ConflictError("Email or phone number is already registered")

        now = datetime.now(timezone.utc).isoformat()
        user_row = {
            **user_data.model_dump(exclude={"password"}),
            "id": str(uuid.uuid4()),
            "role": user_data.role.value,
            "email": email,
            "password": get_password_hash(user_data.password),
            "email_verified": False,
            "push_token": None,
            "created_at": now,
            "updated_at": now,
        }

        try:
            new_user = await self.db.execute_query(
                table="users",
                query_type="insert",
                data=user_row
            )
        except DuplicateKeyError:
            # Lost a race with a concurrent registration
            raise ConflictError("Email or phone number is already registered")

        user = new_user[0]
        token = await self._issue_verification_token(user)
        email_sent = await self._send_verification_email(user["email"], token)
        if not email_sent:
            logger.warning("Registered user %s but the verification email was not sent", user["id"])

        return {"user": public_user(user), "email_sent": email_sent}

    async def _issue_verification_token(self, user: Dict[str, Any]) -> str:
        # One live token per user
        await self.db.execute_query(
            table="email_verifications",
            query_type="delete",
            filters={"user_id": user["id"]}
        )

        now = datetime.now(timezone.utc)
        token = uuid.uuid4().hex
        await self.db.execute_query(
            table="email_verifications",
            query_type="insert",
            data={
                "user_id": user["id"],
                "email": user["email"],
                "token": token,
                "expires_at": (now + timedelta(hours=self.settings.verification_token_ttl_hours)).isoformat(),
                "created_at": now.isoformat(),
            }
        )
        return token

    async def _send_verification_email(self, email: str, token: str) -> bool:
        verification_url = f"{self.settings.api_url}{self.settings.api_v1_prefix}/users/verify-email?token={token}"
        body = verification_email(verification_url, self.settings.verification_token_ttl_hours)
        return await asyncio.to_thread(self.email_sender.send, email, "Azik - Verify Your Email", body)

    def _session(self, user: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "token": create_access_token(user, self.settings),
            "token_type": "bearer",
            "user": public_user(user),
        }

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        user = await self.get_by_email(email)

        # Same answer for unknown email and wrong password
        if not user or not verify_password(password, user["password"]):
            raise AuthenticationError("Invalid email or password")

        if not user.get("email_verified"):
            raise AuthenticationError(
                "Your email address has not been verified yet",
                extra={"requiresVerification": True}
            )

        logger.info("User %s logged in", user["id"])
        return self._session(user)

    async def verify_email(self, token: str) -> Dict[str, Any]:
        """
        Consume a verification token and log the user in.

        Logging in on verification skips the password step; it is a UX
        shortcut, not a security property.
        """
        verification = await self.db.execute_query(
            table="email_verifications",
            query_type="select",
            filters={"token": token}
        )
        if not verification:
            raise ValidationError("Invalid verification token", extra={"reason": "invalid_token"})
        verification = verification[0]

        if datetime.fromisoformat(verification["expires_at"]) < datetime.now(timezone.utc):
            await self.db.execute_query(
                table="email_verifications",
                query_type="delete",
                filters={"id": verification["id"]}
            )
            raise ValidationError("Verification token has expired", extra={"reason": "expired_token"})

        updated_user = await self.db.execute_query(
            table="users",
            query_type="update",
            filters={"id": verification["user_id"]},
            data={"email_verified": True, "updated_at": datetime.now(timezone.utc).isoformat()}
        )
        await self.db.execute_query(
            table="email_verifications",
            query_type="delete",
            filters={"id": verification["id"]}
        )
        if not updated_user:
            raise ValidationError("Invalid verification token", extra={"reason": "invalid_token"})

        logger.info("User %s verified their email", verification["user_id"])
        return self._session(updated_user[0])

    async def resend_verification(self, email: str) -> None:
        user = await self.get_by_email(email)
        if not user:
            raise NotFoundError("No user is registered with this email address")
        if user.get("email_verified"):
            raise ConflictError("This email address is already verified")

        token = await self._issue_verification_token(user)
        if not await self._send_verification_email(user["email"], token):
            raise ServiceUnavailableError("Verification email could not be sent")

    async def update_address(self, user_id: str, address: Address) -> Dict[str, Any]:
        updated_user = await self.db.execute_query(
            table="users",
            query_type="update",
            filters={"id": user_id},
            data={**address.model_dump(), "updated_at": datetime.now(timezone.utc).isoformat()}
        )
        if not updated_user:
            raise NotFoundError("User not found")
        return public_user(updated_user[0])

    async def save_push_token(self, user_id: str, push_token: str) -> None:
        updated_user = await self.db.execute_query(
            table="users",
            query_type="update",
            filters={"id": user_id},
            data={"push_token": push_token, "updated_at": datetime.now(timezone.utc).isoformat()}
        )
        if not updated_user:
            raise NotFoundError("User not found")

    async def list_users(self) -> List[Dict[str, Any]]:
        users = await self.db.execute_query(
            table="users",
            query_type="select",
            order_by={"created_at": "desc"}
        )
        return [public_user(user) for user in users]

    async def delete_user(self, user_id: str) -> None:
        """Delete a user together with their listings, offers, notifications and verification records."""
        if not await self.get_by_id(user_id):
            raise NotFoundError("User not found")

        listings = await self.db.execute_query(
            table="food_listings",
            query_type="select",
            filters={"user_id": user_id}
        )
        listing_ids = [listing["id"] for listing in listings]
        if listing_ids:
            await self.db.execute_query(
                table="exchange_offers",
                query_type="delete",
                filters={"listing_id": {"in": listing_ids}}
            )
            await self.db.execute_query(
                table="food_listings",
                query_type="delete",
                filters={"user_id": user_id}
            )

        for table, column in (
            ("exchange_offers", "offerer_id"),
            ("notifications", "user_id"),
            ("email_verifications", "user_id"),
            ("users", "id"),
        ):
            await self.db.execute_query(
                table=table,
                query_type="delete",
                filters={column: user_id}
            )

        logger.info("Deleted user %s and %d listings", user_id, len(listing_ids))

    async def promote_to_admin(self, email: str) -> Dict[str, Any]:
        updated_user = await self.db.execute_query(
            table="users",
            query_type="update",
            filters={"email": email.lower()},
            data={"role": UserRole.ADMIN.value, "updated_at": datetime.now(timezone.utc).isoformat()}
        )
        if not updated_user:
            raise NotFoundError("No user is registered with this email address")
        return public_user(updated_user[0])
