"""Exception hierarchy shared by the services, storage and API layers."""


class JewelryStoreError(Exception):
    """Base class for all application errors."""


class UnknownCategoryError(JewelryStoreError):
    """The requested product collection does not exist."""

    def __init__(self, category: str):
        super().__init__(f"Unknown product category '{category}'")
        self.category = category


class ProductNotFoundError(JewelryStoreError):
    """A product id or slug did not resolve to a record."""

    def __init__(self, table: str, identifier: str):
        super().__init__(f"No record '{identifier}' in {table}")
        self.table = table
        self.identifier = identifier


class StoreError(JewelryStoreError):
    """The product store failed to answer a query."""


class InvalidProductError(JewelryStoreError):
    """An admin write was rejected before reaching the store."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []


class CustomizationError(JewelryStoreError):
    """Base class for failures while composing a custom ring."""


class InvalidSelectionError(CustomizationError):
    """The customization selection is incomplete or contradictory."""


class ComponentLookupError(CustomizationError):
    """The setting or stone referenced by a selection could not be loaded."""


class MetalOptionNotFoundError(CustomizationError):
    """The selected metal is not offered by the setting."""

    def __init__(self, setting_id: str, metal: str):
        super().__init__(f"Setting '{setting_id}' has no '{metal}' metal option")
        self.setting_id = setting_id
        self.metal = metal


class WizardTransitionError(CustomizationError):
    """A wizard action is not allowed from the current state."""
