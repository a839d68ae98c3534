"""
Discovery configuration storage.

Each asset owns an ordered list of driver configurations
(``t_bios_nut_configuration``); the lowest ``priority`` value is tried
first. A configuration's effective key/value settings are the default
attributes of its configuration type overridden by its own attributes.

Every function takes a `Connection` first. Lookups of unknown assets or
configurations raise NotFound; input that contradicts the stored state
raises ValidationError.
"""
import logging
from typing import NamedTuple

from assetdb.connection import Connection
from assetdb.exceptions import NotFound, ValidationError
from assetdb.sql import insert_ignore_sql, multi_insert
from assetdb.transaction import Transaction
from assetdb.types import SqlType, arg

__all__ = [
    'ConfigurationInfo',
    'DeviceConfiguration',
    'get_asset_id',
    'get_candidate_config',
    'get_candidate_config_list',
    'get_all_config_list',
    'get_config_working',
    'set_config_working',
    'modify_config_priorities',
    'insert_config',
    'remove_config',
    'get_configuration_from_type',
]

logger = logging.getLogger(__name__)

DeviceConfiguration = dict[str, str]

WHERE_CANDIDATE_CONFIG = """
WHERE config.id_asset_element = :asset_id
  AND config.is_working = TRUE
  AND config.is_enabled = TRUE
"""

WHERE_ALL_CONFIG = """
WHERE config.id_asset_element = :asset_id
"""

ORDER_BY_PRIORITY = """
ORDER BY config.priority ASC, config.id_nut_configuration
"""

SELECT_CONFIG_IDS = """
SELECT config.id_nut_configuration
FROM t_bios_nut_configuration config
"""

SELECT_DEFAULT_ATTRIBUTES = """
SELECT config.id_nut_configuration, conf_def_attr.keytag, conf_def_attr.value
FROM t_bios_nut_configuration config
INNER JOIN t_bios_nut_configuration_default_attribute conf_def_attr
  ON conf_def_attr.id_nut_configuration_type = config.id_nut_configuration_type
"""

SELECT_ASSET_ATTRIBUTES = """
SELECT config.id_nut_configuration, conf_attr.keytag, conf_attr.value
FROM t_bios_nut_configuration config
INNER JOIN t_bios_nut_configuration_attribute conf_attr
  ON conf_attr.id_nut_configuration = config.id_nut_configuration
"""


class ConfigurationInfo(NamedTuple):
    """Static description of one configuration type."""
    config_type: int
    name: str
    driver: str
    port: str
    default_attributes: DeviceConfiguration
    document_types: list[str]


def get_asset_id(cn: Connection, asset_name: str) -> int:
    """Return the id of the asset element named `asset_name`.

    Raises NotFound when no asset has that name.
    """
    sql = """
SELECT id_asset_element
FROM t_bios_asset_element
WHERE name = :asset_name
"""
    try:
        return cn.select_row(sql, asset_name=asset_name).get_int64(0)
    except NotFound:
        raise NotFound(f'Element {asset_name} not found') from None


def _request_configs(cn: Connection, sql: str, asset_id: int) -> dict[int, DeviceConfiguration]:
    """Group (config id, keytag, value) rows by configuration, in row order."""
    configs: dict[int, DeviceConfiguration] = {}
    for row in cn.select(sql, arg('asset_id', asset_id, SqlType.INT64)):
        config = configs.setdefault(row.get_int64('id_nut_configuration'), {})
        keytag = row.get_string('keytag')
        if keytag:
            config[keytag] = row.get_string('value')
    return configs


def _merge(default_config: DeviceConfiguration, asset_config: DeviceConfiguration) -> DeviceConfiguration:
    """Asset attributes override the defaults of the configuration type."""
    return {**default_config, **asset_config}


def get_candidate_config(cn: Connection, asset_name: str) -> tuple[int, DeviceConfiguration]:
    """Return the highest priority working and enabled configuration.

    Raises NotFound when the asset has no candidate configuration, and
    ValidationError when the default and asset attributes resolve to
    different configurations.
    """
    asset_id = get_asset_id(cn, asset_name)
    defaults = _request_configs(cn, SELECT_DEFAULT_ATTRIBUTES + WHERE_CANDIDATE_CONFIG + ORDER_BY_PRIORITY, asset_id)
    assets = _request_configs(cn, SELECT_ASSET_ATTRIBUTES + WHERE_CANDIDATE_CONFIG + ORDER_BY_PRIORITY, asset_id)

    default_id = next(iter(defaults), None)
    asset_config_id = next(iter(assets), None)
    if default_id is None and asset_config_id is None:
        raise NotFound(f'No candidate configuration for {asset_name}')
    if default_id != asset_config_id:
        raise ValidationError(f'Default config id {default_id} different of asset config id {asset_config_id}')
    return default_id, _merge(defaults[default_id], assets[asset_config_id])


def _get_config_list(cn: Connection, where: str, asset_name: str) -> list[tuple[int, DeviceConfiguration]]:
    asset_id = get_asset_id(cn, asset_name)
    config_ids = [row.get_int64(0) for row in cn.select(SELECT_CONFIG_IDS + where + ORDER_BY_PRIORITY, asset_id=asset_id)]
    defaults = _request_configs(cn, SELECT_DEFAULT_ATTRIBUTES + where + ORDER_BY_PRIORITY, asset_id)
    assets = _request_configs(cn, SELECT_ASSET_ATTRIBUTES + where + ORDER_BY_PRIORITY, asset_id)
    return [(config_id, _merge(defaults.get(config_id, {}), assets.get(config_id, {})))
            for config_id in config_ids]


def get_candidate_config_list(cn: Connection, asset_name: str) -> list[tuple[int, DeviceConfiguration]]:
    """Every working and enabled configuration of an asset, by priority."""
    return _get_config_list(cn, WHERE_CANDIDATE_CONFIG, asset_name)


def get_all_config_list(cn: Connection, asset_name: str) -> list[tuple[int, DeviceConfiguration]]:
    """Every configuration of an asset, by priority."""
    return _get_config_list(cn, WHERE_ALL_CONFIG, asset_name)


def get_config_working(cn: Connection, config_id: int) -> bool:
    sql = """
SELECT is_working
FROM t_bios_nut_configuration
WHERE id_nut_configuration = :config_id
"""
    try:
        return cn.select_row(sql, config_id=config_id).get_bool('is_working')
    except NotFound:
        raise NotFound(f'Configuration {config_id} not found') from None


def set_config_working(cn: Connection, config_id: int, working: bool) -> int:
    """Set the working flag of a configuration, returning affected rows."""
    sql = """
UPDATE t_bios_nut_configuration
SET is_working = :working_value
WHERE id_nut_configuration = :config_id
"""
    return cn.execute(sql, working_value=bool(working), config_id=config_id)


def modify_config_priorities(cn: Connection, asset_name: str, config_ids: list[int]) -> None:
    """Reorder the configurations of an asset.

    The first id in `config_ids` gets priority 0, the next 1, and so on.
    The list must name every configuration of the asset exactly once.

    Priorities are first moved above the current maximum and then shifted
    back down, so no two configurations share a priority at any point.
    """
    asset_id = get_asset_id(cn, asset_name)
    config_ids = [int(config_id) for config_id in config_ids]
    if len(set(config_ids)) != len(config_ids):
        raise ValidationError(f'Duplicate configuration id in priority list for {asset_name}')

    with Transaction(cn):
        rows = cn.select("""
SELECT id_nut_configuration, priority
FROM t_bios_nut_configuration
WHERE id_asset_element = :asset_id
""", asset_id=asset_id)
        current_ids = {row.get_int64('id_nut_configuration') for row in rows}
        max_priority = max((row.get_int32('priority') for row in rows), default=-1)

        unlisted = current_ids - set(config_ids)
        if unlisted:
            raise ValidationError(f'Configuration ids {sorted(unlisted)} not found in input configuration list for {asset_name}')
        unknown = [config_id for config_id in config_ids if config_id not in current_ids]
        if unknown:
            raise ValidationError(f'Configuration ids {unknown} not found in database for {asset_name}')

        offset = max_priority + 1
        st = cn.prepare("""
UPDATE t_bios_nut_configuration
SET priority = :priority
WHERE id_asset_element = :asset_id AND id_nut_configuration = :config_id
""")
        for priority, config_id in enumerate(config_ids, start=offset):
            st.bind(priority=priority, asset_id=asset_id, config_id=config_id).execute()
        if offset > 0:
            cn.execute("""
UPDATE t_bios_nut_configuration
SET priority = priority - :offset
WHERE id_asset_element = :asset_id
""", offset=offset, asset_id=asset_id)
    logger.debug(f'New priorities for {asset_name}: {config_ids}')


def insert_config(cn: Connection, asset_name: str, config_type: int, is_working: bool,
                  is_enabled: bool, attributes: DeviceConfiguration) -> int:
    """Add a configuration after the existing ones of an asset.

    Its attributes are inserted in the same transaction; attributes that
    already exist for the new configuration are skipped.

    Returns
        The new configuration id
    """
    asset_id = get_asset_id(cn, asset_name)
    with Transaction(cn):
        row = cn.select_row("""
SELECT MAX(priority)
FROM t_bios_nut_configuration
WHERE id_asset_element = :asset_id
""", asset_id=asset_id)
        # MAX over no rows is NULL
        priority = row.get_int32(0) + 1 if not row.is_null(0) else 0

        cn.execute("""
INSERT INTO t_bios_nut_configuration
(id_nut_configuration_type, id_asset_element, priority, is_enabled, is_working)
VALUES (:config_type, :asset_id, :priority, :is_enabled, :is_working)
""", config_type=config_type, asset_id=asset_id, priority=priority,
                   is_enabled=bool(is_enabled), is_working=bool(is_working))
        config_id = cn.last_insert_id()

        if attributes:
            items = sorted(attributes.items())
            columns = ['id_nut_configuration', 'keytag', 'value']
            sql = insert_ignore_sql(cn.dialect, 't_bios_nut_configuration_attribute', columns,
                                    multi_insert(['config_id', 'key', 'value'], len(items)))
            st = cn.prepare(sql)
            for i, (key, value) in enumerate(items):
                st.bind_multi(i, config_id=config_id, key=key, value=value)
            st.execute()
    logger.debug(f'Inserted configuration {config_id} for {asset_name} with {len(attributes)} attributes')
    return config_id


def remove_config(cn: Connection, config_id: int) -> None:
    """Delete a configuration with its documents and attributes."""
    with Transaction(cn):
        for table in ('t_bios_nut_configuration_secw_document',
                      't_bios_nut_configuration_attribute',
                      't_bios_nut_configuration'):
            cn.execute(f'DELETE FROM {table} WHERE id_nut_configuration = :config_id',
                       config_id=config_id)
    logger.debug(f'Removed configuration {config_id}')


def get_configuration_from_type(cn: Connection) -> list[ConfigurationInfo]:
    """Describe every configuration type with its defaults and required documents."""
    types = cn.select("""
SELECT id_nut_configuration_type, configuration_name, driver, port
FROM t_bios_nut_configuration_type
ORDER BY id_nut_configuration_type
""")
    attributes = cn.prepare("""
SELECT keytag, value
FROM t_bios_nut_configuration_default_attribute
WHERE id_nut_configuration_type = :config_type
""")
    documents = cn.prepare("""
SELECT id_secw_document_type
FROM t_bios_nut_configuration_type_secw_document_type_requirements
WHERE id_nut_configuration_type = :config_type
ORDER BY id_secw_document_type
""")
    infos = []
    for row in types:
        config_type = row.get_int32('id_nut_configuration_type')
        defaults = {r.get_string('keytag'): r.get_string('value')
                    for r in attributes.bind(config_type=config_type).select()}
        document_types = [r.get_string(0) for r in documents.bind(config_type=config_type).select()]
        infos.append(ConfigurationInfo(config_type, row.get_string('configuration_name'),
                                       row.get_string('driver'), row.get_string('port'),
                                       defaults, document_types))
    return infos
