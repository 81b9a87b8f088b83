from typing import Optional

from ..core.models import SightingDraft, Role, CrowdLevel, InventoryLevel, is_coordinate

_CROWD_LEVELS = {c.value for c in CrowdLevel}
_INVENTORY_LEVELS = {i.value for i in InventoryLevel}

def validate_draft(draft: SightingDraft) -> Optional[str]:
    """
    Returns None if valid, or a reason string if the draft must be rejected
    before anything is written.
    """
    if not (draft.food_truck_name or "").strip():
        return "missing_truck_name"
    if not (draft.cuisine_type or "").strip():
        return "missing_cuisine_type"

    is_vendor = draft.role == Role.VENDOR
    crowd = (draft.crowd_level or "").strip()
    if not crowd:
        if not is_vendor:
            return "missing_crowd_level"
    elif crowd not in _CROWD_LEVELS:
        return "invalid_crowd_level"

    inventory = (draft.inventory_level or "").strip()
    if inventory:
        if not is_vendor:
            return "inventory_level_vendor_only"
        if inventory not in _INVENTORY_LEVELS:
            return "invalid_inventory_level"

    if draft.latitude is None or draft.longitude is None:
        return "missing_location"
    if not (is_coordinate(draft.latitude) and is_coordinate(draft.longitude)):
        return "invalid_location"
    if not (-90 <= draft.latitude <= 90 and -180 <= draft.longitude <= 180):
        return "out_of_bounds_location"

    return None
