from enum import StrEnum


class Permission(StrEnum):
    # Product catalogue permissions
    VIEW_PRODUCTS = "view_products"
    CREATE_PRODUCT = "create_product"
    UPDATE_PRODUCT = "update_product"
    DELETE_PRODUCT = "delete_product"

    # Stock permissions
    VIEW_INVENTORY = "view_inventory"
    ADJUST_INVENTORY = "adjust_inventory"
    TRANSFER_INVENTORY = "transfer_inventory"

    # User management permissions
    VIEW_USERS = "view_users"
    CREATE_USER = "create_user"
    UPDATE_USER = "update_user"
    DELETE_USER = "delete_user"

    # Reporting permissions
    VIEW_REPORTS = "view_reports"
    GENERATE_REPORTS = "generate_reports"

    # Audit permissions
    VIEW_AUDIT_LOGS = "view_audit_logs"
    EXPORT_AUDIT_LOGS = "export_audit_logs"
