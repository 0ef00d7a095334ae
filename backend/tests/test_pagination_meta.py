from tests.test_utils_seed import admin_headers
from tests.test_lifecycle_helpers import create_vendor


def test_vendor_pagination_meta(client):
    headers = admin_headers(client)
    for i in range(5):
        create_vendor(client, headers, f'PagVendor{i}')
    resp = client.get('/ledger/vendors?limit=2&offset=1', headers=headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['pagination'] == {'total': 5, 'limit': 2, 'offset': 1, 'returned': 2}
    assert [v['name'] for v in body['data']] == ['PagVendor1', 'PagVendor2']
    # limit is clamped rather than rejected
    clamped = client.get('/ledger/vendors?limit=100000', headers=headers).get_json()
    assert clamped['pagination']['limit'] == 200
    assert client.get('/ledger/vendors?limit=abc', headers=headers).status_code == 400
