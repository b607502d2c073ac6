# tests/mocks/mock_user_repository.py
from typing import Any, Callable, Dict, List, Optional

from bookstop.models.user_model import User


class FakeUserRepository:
    """In-memory stand-in for UserRepository; the `db` argument is ignored."""

    def __init__(self, users: Optional[List[User]] = None):
        self.users: List[User] = list(users or [])

    def _first(self, match: Callable[[User], bool]) -> Optional[User]:
        return next((user for user in self.users if match(user)), None)

    async def get(self, db, *, obj_id: int) -> Optional[User]:
        return self._first(lambda user: user.id == obj_id)

    async def get_by_email(self, db, *, email: str) -> Optional[User]:
        return self._first(lambda user: user.email.lower() == email.lower())

    async def get_by_username(self, db, *, username: str) -> Optional[User]:
        return self._first(lambda user: user.username.lower() == username.lower())

    async def create(self, db, *, obj_in: User) -> User:
        if obj_in.id is None:
            obj_in.id = max((user.id for user in self.users), default=0) + 1
        self.users.append(obj_in)
        return obj_in

    async def update(self, db, *, user: User, fields_to_update: Dict[str, Any]) -> User:
        for field, value in fields_to_update.items():
            setattr(user, field, value)
        return user

    async def delete(self, db, *, obj_id: int) -> None:
        self.users = [user for user in self.users if user.id != obj_id]
