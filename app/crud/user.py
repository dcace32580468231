from app.crud.base import CRUDBase
from app.models.user import User
from pydantic import BaseModel


class CRUDUser(CRUDBase[User, BaseModel, BaseModel]):
    pass


user = CRUDUser(User)
