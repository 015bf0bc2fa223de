"""Domain Entities - Auth"""
from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from typing import Optional

from domain.enums import UserRole


class User(BaseModel):
    """User Entity"""
    user_id: UUID = Field(default_factory=uuid4)
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: UserRole = UserRole.GUEST
    disabled: bool = False

    class Config:
        from_attributes = True

    def to_principal(self) -> "Principal":
        return Principal(id=self.user_id, role=self.role)


class UserInDB(User):
    """User with hashed password for DB storage"""
    hashed_password: str


class Principal(BaseModel):
    """Authenticated actor handed to lifecycle operations"""
    id: UUID
    role: UserRole

    @property
    def is_staff(self) -> bool:
        """Staff or admin"""
        return self.role in (UserRole.STAFF, UserRole.ADMIN)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def owns(self, owner_id: UUID) -> bool:
        return self.id == owner_id

    class Config:
        frozen = True
