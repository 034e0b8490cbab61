import pytest
from pydantic import ValidationError

from promoter_slots.domain.slots.service import SlotService
from promoter_slots.domain.users.schemas import UserCreate
from promoter_slots.domain.users.service import UserService
from promoter_slots.errors import DuplicateEmail, NotFoundError
from promoter_slots.models import SlotRegistration, User

from .helpers import make_config, make_slot, make_user, make_users


def registration_form(**overrides) -> UserCreate:
    data = {
        "name": " Ana ",
        "surname": "García",
        "email": "Ana.Garcia@Example.com",
        "phone": "(55) 1234-5678",
        "age": 27,
        "city": "Guadalajara",
        "experience": "Eventos en supermercados",
        "motivation": "Crecer profesionalmente",
        "availability": "Mañanas",
    }
    data.update(overrides)
    return UserCreate(**data)


@pytest.fixture
def service(db_session, meeting_provider, notifier):
    return UserService(db_session, SlotService(db_session, meeting_provider=meeting_provider, notifier=notifier))


class TestCreateUser:
    def test_create_user_starts_pending(self, service):
        user = service.create_user(registration_form())

        assert user.name == "Ana"
        assert user.email == "ana.garcia@example.com"
        assert user.state == "pending"
        assert user.languages == ["Español"]
        assert user.imported is False

    def test_duplicate_email_is_case_insensitive(self, service):
        service.create_user(registration_form())

        with pytest.raises(DuplicateEmail):
            service.create_user(registration_form(email="ANA.GARCIA@example.com"))

    def test_invitation_lookup(self, service):
        service.create_user(registration_form())

        assert service.validate_invitation_email("ANA.garcia@example.com").surname == "García"
        with pytest.raises(NotFoundError):
            service.validate_invitation_email("nadie@example.com")


class TestImport:
    def test_import_skips_invalid_and_duplicate_rows(self, db_session, service):
        make_user(db_session, "existente@example.com")

        result = service.import_users(
            [
                {"name": "Luisa", "surname": "Pérez", "email": "luisa@example.com"},
                {"name": "Rosa", "surname": "Díaz", "email": "no-es-un-correo"},
                {"name": "Eva", "surname": "Ruiz", "email": "EXISTENTE@example.com"},
                {"surname": "Sin Nombre", "email": "sin@example.com"},
                {"name": "Marta", "surname": "León", "email": "marta@example.com", "phone": "5512345678"},
            ]
        )

        assert result["imported"] == 2
        assert result["errors"] == 3
        details = result["errorDetails"]
        assert details[0].startswith("Row 2: email")
        assert details[1] == "Row 3: Email existente@example.com already exists"
        assert details[2].startswith("Row 4: name")
        imported = db_session.query(User).filter(User.imported.is_(True)).all()
        assert sorted(u.email for u in imported) == ["luisa@example.com", "marta@example.com"]

    def test_import_rejects_blank_email_and_drops_blank_phone(self, db_session, service):
        result = service.import_users(
            [
                {"name": "Rosa", "surname": "Díaz", "email": ""},
                {"name": "Luisa", "surname": "Pérez", "email": "luisa@example.com", "phone": "  "},
            ]
        )

        assert result["imported"] == 1
        assert result["errorDetails"][0].startswith("Row 1: email")
        assert db_session.query(User).one().phone is None

    def test_blank_email_is_rejected_on_signup(self):
        with pytest.raises(ValidationError):
            registration_form(email="")
        with pytest.raises(ValidationError):
            registration_form(phone="   ")


class TestSlotAssignment:
    async def test_assign_and_release(self, db_session, service):
        slot = make_slot(db_session, make_config(db_session))
        user = make_user(db_session, "ana@example.com")

        await service.assign_to_slot(user.id, slot.id)
        released = service.release_from_slot(user.id)

        assert released.slot_id is None
        assert released.state == "pending"
        db_session.refresh(slot)
        assert slot.registered_count == 0

    def test_release_clears_stale_pointer(self, db_session, service):
        slot = make_slot(db_session, make_config(db_session))
        user = make_user(db_session, "ana@example.com", state="scheduled")
        user.slot_id = slot.id
        db_session.commit()

        released = service.release_from_slot(user.id)

        assert released.slot_id is None
        assert released.state == "pending"

    def test_delete_user_reopens_slot(self, db_session, service):
        slot = make_slot(db_session, make_config(db_session), capacity=10)
        users = make_users(db_session, 10)
        for user in users:
            slot.registrations.append(SlotRegistration(user_id=user.id))
        slot.status = "full"
        db_session.commit()

        service.delete_user(users[0].id)

        db_session.refresh(slot)
        assert slot.registered_count == 9
        assert slot.status == "available"
        assert db_session.query(User).count() == 9
