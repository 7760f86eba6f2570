"""Crisis resource catalog."""

from crisisline.services.resources.resource_catalog import (
    BUILT_IN_RESOURCES,
    ResourceCatalog,
    resource_from_dict,
)

__all__ = ["BUILT_IN_RESOURCES", "ResourceCatalog", "resource_from_dict"]
