# Domain-level error the controller can surface directly (notice label)
class DomainError(Exception):
    pass
