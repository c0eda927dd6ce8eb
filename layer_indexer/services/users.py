# layer_indexer/services/users.py

from typing import Iterable, List

from ..core.logging import LoggingMixin
from ..store import EntityStoreInterface
from ..types import User, EntityId, ZERO_ADDRESS
from ..types.ids import normalize_address


class UserRegistry(LoggingMixin):
    """Users are created on first reference and never deleted"""

    def __init__(self, store: EntityStoreInterface):
        self.store = store

    def get_or_create(self, address) -> User:
        user_id = EntityId(normalize_address(address))
        user = self.store.load(User, user_id)
        if user is None:
            user = User(id=user_id)
            self.log_debug("User created", user=user_id)
        return user

    def save(self, user: User) -> None:
        self.store.save(user)

    def touch(self, addresses: Iterable) -> List[EntityId]:
        """Make sure a user exists for every non-zero address and return their ids"""
        touched = []
        for address in addresses:
            address = normalize_address(address)
            if address == ZERO_ADDRESS:
                continue
            user = self.store.load(User, address)
            if user is None:
                user = User(id=EntityId(address))
                self.store.save(user)
            touched.append(user.id)
        return touched
