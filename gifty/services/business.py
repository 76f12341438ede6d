from typing import Optional

from gifty.errors import MissingColumnError
from gifty.services.record_store import RecordStore


BUSINESS_TABLE = "businesses"
DEFAULT_BUSINESS_NAME = "Business"


def lookup_business_name(
    store: RecordStore,
    business_id: Optional[str] = None,
    slug: Optional[str] = None,
) -> Optional[str]:
    """Display name of a merchant by id, else by slug. None if neither matches."""
    for column, value in (("id", business_id), ("slug", slug)):
        if not value:
            continue
        try:
            row = store.table(BUSINESS_TABLE).eq(column, value).maybe_single()
        except MissingColumnError:
            continue
        if row and row.get("name"):
            return row["name"]
    return None
