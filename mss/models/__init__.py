from mss.models.token import Token, TokenType
from mss.models.user import ROLE_PERMISSIONS, Permission, Role, User, authorities_for

__all__ = [
    "Token",
    "TokenType",
    "User",
    "Role",
    "Permission",
    "ROLE_PERMISSIONS",
    "authorities_for",
]
