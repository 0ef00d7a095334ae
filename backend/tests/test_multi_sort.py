from tests.test_utils_seed import admin_headers
from tests.test_lifecycle_helpers import create_vendor, create_material


def test_vendors_multi_sort(client):
    headers = admin_headers(client)
    for name in ('Gamma', 'Beta', 'AlphaVendor'):
        create_vendor(client, headers, name)
    beta = client.get('/ledger/vendors?name=Beta', headers=headers).get_json()['data'][0]
    client.post(f"/ledger/vendors/{beta['id']}/deactivate", headers=headers)
    resp = client.get('/ledger/vendors?sort=-name', headers=headers)
    assert resp.status_code == 200
    assert [v['name'] for v in resp.get_json()['data']] == ['Gamma', 'Beta', 'AlphaVendor']
    resp = client.get('/ledger/vendors?sort=status,name', headers=headers)
    assert [v['name'] for v in resp.get_json()['data']] == ['AlphaVendor', 'Gamma', 'Beta']


def test_materials_default_alphabetical_and_filters(client):
    headers = admin_headers(client)
    v = create_vendor(client, headers, 'Only')
    create_material(client, headers, 'Straw', vendor_ids=[v['id']])
    create_material(client, headers, 'Bran')
    create_material(client, headers, 'Lime', vendor_ids=[v['id']])
    names = [m['name'] for m in client.get('/ledger/materials', headers=headers).get_json()['data']]
    assert names == ['Bran', 'Lime', 'Straw']
    mapped = client.get(f"/ledger/materials?vendorId={v['id']}", headers=headers).get_json()
    assert [m['name'] for m in mapped['data']] == ['Lime', 'Straw']
    assert client.get('/ledger/materials?vendorId=abc', headers=headers).status_code == 400


def test_camel_case_sort_keys_and_duplicates(client):
    headers = admin_headers(client)
    create_vendor(client, headers, 'Zed')
    create_vendor(client, headers, 'Ace')
    ordered = client.get('/ledger/vendors?sort=-updatedAt,name', headers=headers)
    assert ordered.status_code == 200
    dup = client.get('/ledger/vendors?sort=name,-name', headers=headers)
    assert dup.status_code == 400
    assert dup.get_json()['error']['detail'] == 'Duplicate sort field name'
