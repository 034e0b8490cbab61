"""User service - Business logic for promoter candidates"""

import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...errors import DuplicateEmail, NotFoundError
from ...models import USER_PENDING, USER_SCHEDULED, User
from ...shared.user_states import transition_user
from ..slots.service import RegistrationResult, SlotService
from .repository import UserRepository
from .schemas import UserCreate, UserImportRow

logger = logging.getLogger(__name__)


def _format_row_error(error: PydanticValidationError) -> str:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "row"
    return f"{field}: {first.get('msg')}"


class UserService:
    """Service layer for user business logic"""

    def __init__(self, db: Session, slot_service: Optional[SlotService] = None):
        self.db = db
        self.repo = UserRepository()
        self.slot_service = slot_service or SlotService(db)

    def list_users(self, state: Optional[str] = None) -> list[User]:
        return self.repo.get_users(self.db, state)

    def get_user(self, user_id: int) -> User:
        user = self.repo.get_user_by_id(self.db, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def create_user(self, data: UserCreate) -> User:
        """Create a candidate from the registration form"""
        logger.info(f"📥 Creating user: {data.email}")

        if self.repo.get_user_by_email(self.db, data.email):
            logger.warning(f"⚠️ Duplicate email: {data.email}")
            raise DuplicateEmail()

        try:
            user = self.repo.create_user(self.db, **self._user_fields(data), state=USER_PENDING)
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateEmail() from e

        logger.info(f"✅ User created: {user.id}")
        return user

    def delete_user(self, user_id: int) -> None:
        """Delete a user with their registrations and attendance records"""
        user = self.get_user(user_id)

        for registration in list(user.registrations):
            slot = registration.slot
            if slot is not None:
                slot.registrations.remove(registration)
                slot.sync_status()

        self.db.delete(user)
        self.db.commit()
        logger.info(f"🗑️ User {user_id} deleted")

    def import_users(self, rows: list[dict]) -> dict:
        """
        Import candidates in bulk.

        Each row is validated on its own; duplicates and invalid rows are
        skipped with a "Row N: ..." message and never abort the import.
        """
        imported = 0
        errors = []

        for index, row in enumerate(rows, start=1):
            try:
                data = UserImportRow.model_validate(row)
            except PydanticValidationError as e:
                errors.append(f"Row {index}: {_format_row_error(e)}")
                continue

            if self.repo.get_user_by_email(self.db, data.email):
                errors.append(f"Row {index}: Email {data.email} already exists")
                continue

            try:
                self.repo.create_user(self.db, **self._user_fields(data), state=USER_PENDING, imported=True)
                imported += 1
            except IntegrityError:
                self.db.rollback()
                errors.append(f"Row {index}: Email {data.email} already exists")

        logger.info(f"✅ Import finished: {imported} imported, {len(errors)} error(s)")
        return {"imported": imported, "errors": len(errors), "errorDetails": errors}

    def validate_invitation_email(self, email: str) -> User:
        """Look up an invited candidate by email"""
        user = self.repo.get_user_by_email(self.db, email)
        if not user:
            raise NotFoundError("No user found with this email")
        return user

    async def assign_to_slot(self, user_id: int, slot_id: int) -> RegistrationResult:
        self.get_user(user_id)
        return await self.slot_service.register(slot_id, user_id)

    def release_from_slot(self, user_id: int) -> User:
        """Remove a user from their current slot; users without one are returned unchanged"""
        user = self.get_user(user_id)
        if user.slot_id is not None:
            self.slot_service.unregister(user.slot_id, user.id)
            self.db.refresh(user)

        if user.slot_id is not None:
            # Stale pointer without a registration row
            user.slot_id = None
            if user.state == USER_SCHEDULED:
                transition_user(user, USER_PENDING)
            self.db.commit()
            self.db.refresh(user)
        return user

    @staticmethod
    def _user_fields(data) -> dict:
        return {
            "name": data.name.strip(),
            "surname": data.surname.strip(),
            "email": data.email,
            "phone": data.phone,
            "age": data.age,
            "city": data.city,
            "zip_code": data.zipCode,
            "experience": data.experience,
            "motivation": data.motivation,
            "availability": data.availability,
            "languages": data.languages or ["Español"],
        }
