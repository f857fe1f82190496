"""Per-owner fragment listing over the metadata store."""

from typing import Any, Dict, List, Union

from fragments.storage.base import StorageBackend


async def list_fragments(
    store: StorageBackend,
    owner_id: str,
    expand: bool = False,
) -> List[Union[str, Dict[str, Any]]]:
    """
    List an owner's fragments.

    Args:
        store: Storage backend
        owner_id: Owner whose fragments are listed
        expand: Return full metadata records instead of ids

    Returns:
        Fragment ids, or metadata records when expand is True. Order is not
        guaranteed; an owner without fragments gets an empty list.
    """
    records = await store.metadata.query(owner_id)
    if expand:
        return records
    return [record["id"] for record in records]
