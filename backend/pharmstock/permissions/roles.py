# Overview: Fixed user role constants.


class Role:
    """
    The six roles a user can hold. Values are the display strings stored
    on User.role and accepted by the API.
    """
    CEO = "CEO"
    MARKETER = "Marketer"
    SALES_MANAGER = "Sales Manager"
    STOCK_MANAGER = "Stock Manager"
    ADMIN = "Admin"
    MEDICAL_REP = "Medical Rep"


ALL_ROLES = (
    Role.CEO,
    Role.MARKETER,
    Role.SALES_MANAGER,
    Role.STOCK_MANAGER,
    Role.ADMIN,
    Role.MEDICAL_REP,
)

DEFAULT_ROLE = Role.MEDICAL_REP
