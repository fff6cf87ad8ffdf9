from .jwt_auth import PasswordHasher, PasswordPolicy, TokenIssuer
from .permissions import OrganizationAuthorizer, OrgRequirement

__all__ = [
    "PasswordHasher",
    "PasswordPolicy",
    "TokenIssuer",
    "OrganizationAuthorizer",
    "OrgRequirement",
]
