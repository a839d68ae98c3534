"""
Asset element updates.
"""
import logging

from assetdb.connection import Connection
from assetdb.types import SqlType, arg, nullable

__all__ = ['update_asset_element']

logger = logging.getLogger(__name__)


def update_asset_element(cn: Connection, element_id: int, parent_id: int | None,
                         status: str, priority: int, asset_tag: str) -> int:
    """Update the mutable fields of one asset element.

    A `parent_id` of 0 or None detaches the element from its parent
    (``id_parent`` becomes NULL).

    Returns
        Number of affected rows; 0 when no element has `element_id`
    """
    logger.debug(f'Updating asset element {element_id}: parent={parent_id} status={status!r} '
                 f'priority={priority} asset_tag={asset_tag!r}')
    sql = """
UPDATE t_bios_asset_element
SET asset_tag = :asset_tag,
    id_parent = :id_parent,
    status = :status,
    priority = :priority
WHERE id_asset_element = :id
"""
    affected = cn.prepare(sql).bind(
        arg('id', element_id, SqlType.UINT32),
        arg('id_parent', nullable(bool(parent_id), parent_id), SqlType.UINT32),
        arg('status', status, SqlType.STRING),
        arg('priority', priority, SqlType.UINT16),
        arg('asset_tag', asset_tag, SqlType.STRING),
        ).execute()
    logger.debug(f'[t_asset_element]: updated {affected} rows')
    return affected
