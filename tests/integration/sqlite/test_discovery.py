"""
Discovery configuration storage against the seeded SQLite schema.
"""
import pytest
from assetdb import NotFound, ValidationError
from assetdb import discovery
from tests.fixtures.discovery import EXPECTED_CANDIDATES


def _priorities(cn, asset_name):
    rows = cn.select('SELECT id_nut_configuration, priority FROM t_bios_nut_configuration '
                     'WHERE id_asset_element = :asset_id ORDER BY priority ASC',
                     asset_id=discovery.get_asset_id(cn, asset_name))
    return [(r.get_int64(0), r.get_int32(1)) for r in rows]


def test_get_asset_id(discovery_conn):
    assert discovery.get_asset_id(discovery_conn, 'ups-1') == 2
    with pytest.raises(NotFound, match='ups-9'):
        discovery.get_asset_id(discovery_conn, 'ups-9')


@pytest.mark.parametrize('asset_name', sorted(EXPECTED_CANDIDATES))
def test_get_candidate_config(discovery_conn, asset_name):
    config_id, config = discovery.get_candidate_config(discovery_conn, asset_name)
    assert (config_id, config) == EXPECTED_CANDIDATES[asset_name][0]


@pytest.mark.parametrize('asset_name', sorted(EXPECTED_CANDIDATES))
def test_get_candidate_config_list(discovery_conn, asset_name):
    assert discovery.get_candidate_config_list(discovery_conn, asset_name) == EXPECTED_CANDIDATES[asset_name]


@pytest.mark.parametrize('asset_name', sorted(EXPECTED_CANDIDATES))
def test_get_all_config_list(discovery_conn, asset_name):
    configs = discovery.get_all_config_list(discovery_conn, asset_name)
    assert len(configs) == 3
    # lowest priority value first
    assert [config_id for config_id, _ in configs] == [cid for cid, _ in _priorities(discovery_conn, asset_name)]


def test_all_config_list_merges_defaults(discovery_conn):
    configs = dict(discovery.get_all_config_list(discovery_conn, 'ups-1'))
    # configuration 3 has only the defaults of type 3
    assert configs[3] == {'protocol': '{asset.protocol.http:http}', 'pollfreq': '30', 'snmp_retries': '300'}


def test_candidate_config_unknown_asset(discovery_conn):
    with pytest.raises(NotFound):
        discovery.get_candidate_config(discovery_conn, 'nope')


def test_candidate_config_none_available(discovery_conn):
    discovery_conn.execute('UPDATE t_bios_nut_configuration SET is_enabled = FALSE WHERE id_asset_element = :a', a=3)
    with pytest.raises(NotFound):
        discovery.get_candidate_config(discovery_conn, 'ups-2')
    assert discovery.get_candidate_config_list(discovery_conn, 'ups-2') == []


def test_candidate_config_mismatch(discovery_conn):
    """Default and asset attributes resolving to different configurations"""
    discovery_conn.execute('DELETE FROM t_bios_nut_configuration_attribute WHERE id_nut_configuration = 2')
    with pytest.raises(ValidationError):
        discovery.get_candidate_config(discovery_conn, 'ups-1')


def test_config_working(discovery_conn):
    initial = discovery.get_config_working(discovery_conn, 1)
    assert initial is True
    assert discovery.set_config_working(discovery_conn, 1, not initial) == 1
    assert discovery.set_config_working(discovery_conn, 1, not initial) == 1
    assert discovery.get_config_working(discovery_conn, 1) is (not initial)
    discovery.set_config_working(discovery_conn, 1, initial)
    assert discovery.get_config_working(discovery_conn, 1) is initial


def test_config_working_unknown(discovery_conn):
    with pytest.raises(NotFound):
        discovery.get_config_working(discovery_conn, 999)
    assert discovery.set_config_working(discovery_conn, 999, True) == 0


def test_not_working_config_leaves_candidates(discovery_conn):
    discovery.set_config_working(discovery_conn, 2, False)
    config_id, _ = discovery.get_candidate_config(discovery_conn, 'ups-1')
    assert config_id == 1


def test_modify_config_priorities(discovery_conn):
    initial = [config_id for config_id, _ in _priorities(discovery_conn, 'ups-1')]
    assert initial == [3, 2, 1]

    reverse = list(reversed(initial))
    discovery.modify_config_priorities(discovery_conn, 'ups-1', reverse)
    assert _priorities(discovery_conn, 'ups-1') == [(1, 0), (2, 1), (3, 2)]

    discovery.modify_config_priorities(discovery_conn, 'ups-1', initial)
    assert _priorities(discovery_conn, 'ups-1') == [(3, 0), (2, 1), (1, 2)]


@pytest.mark.parametrize('config_ids', [
    [3, 2],         # stored id 1 not listed
    [3, 2, 1, 4],   # id 4 belongs to another asset
    [3, 2, 2, 1],   # duplicate
])
def test_modify_config_priorities_rejects_inconsistent_list(discovery_conn, config_ids):
    before = _priorities(discovery_conn, 'ups-1')
    with pytest.raises(ValidationError):
        discovery.modify_config_priorities(discovery_conn, 'ups-1', config_ids)
    assert _priorities(discovery_conn, 'ups-1') == before
    assert not discovery_conn.in_transaction


def test_insert_and_remove_config(discovery_conn):
    attributes = {'Key1': 'Val1', 'Key2': 'Val2', 'Key3': 'Val3'}
    config_id = discovery.insert_config(discovery_conn, 'ups-1', 1, True, True, attributes)
    assert config_id == 10
    assert _priorities(discovery_conn, 'ups-1')[-1] == (10, 3)

    configs = dict(discovery.get_all_config_list(discovery_conn, 'ups-1'))
    assert configs[10] == {'mibs': 'eaton_ups', 'pollfreq': '10', 'snmp_retries': '100',
                           'snmp_version': 'v1', **attributes}

    discovery.remove_config(discovery_conn, config_id)
    assert 10 not in dict(discovery.get_all_config_list(discovery_conn, 'ups-1'))
    rows = discovery_conn.select('SELECT keytag FROM t_bios_nut_configuration_attribute '
                                 'WHERE id_nut_configuration = :id', id=config_id)
    assert rows.empty()


def test_insert_config_first_for_asset(discovery_conn):
    discovery_conn.execute("INSERT INTO t_bios_asset_element (id_asset_element, name, status) VALUES (5, 'ups-4', 'active')")
    config_id = discovery.insert_config(discovery_conn, 'ups-4', 2, True, False, {})
    assert _priorities(discovery_conn, 'ups-4') == [(config_id, 0)]
    assert discovery.get_candidate_config_list(discovery_conn, 'ups-4') == []


def test_insert_config_unknown_asset(discovery_conn):
    with pytest.raises(NotFound):
        discovery.insert_config(discovery_conn, 'nope', 1, True, True, {'a': 'b'})


def test_remove_config_with_documents(discovery_conn):
    discovery.remove_config(discovery_conn, 1)
    for table in ('t_bios_nut_configuration_secw_document',
                  't_bios_nut_configuration_attribute',
                  't_bios_nut_configuration'):
        rows = discovery_conn.select(f'SELECT 1 FROM {table} WHERE id_nut_configuration = 1')
        assert rows.empty()
    # documents themselves are kept
    assert discovery_conn.select('SELECT 1 FROM t_bios_secw_document').size() == 3


def test_get_configuration_from_type(discovery_conn):
    infos = discovery.get_configuration_from_type(discovery_conn)
    assert [info.config_type for info in infos] == [1, 2, 3]

    snmpv3 = infos[1]
    assert snmpv3.name == 'Driver snmpv3 ups'
    assert snmpv3.driver == 'snmp-ups'
    assert snmpv3.port == '{asset.ip.1}:{asset.port.snmpv3:161}'
    assert snmpv3.default_attributes == {'mibs': 'eaton_ups', 'pollfreq': '20', 'snmp_version': 'v3'}
    assert snmpv3.document_types == ['Snmpv1', 'Snmpv3']
    assert infos[2].document_types == ['UserAndPassword']
