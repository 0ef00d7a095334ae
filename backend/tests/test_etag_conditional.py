from tests.test_utils_seed import admin_headers
from tests.test_lifecycle_helpers import create_vendor, create_material


def test_etag_conditional_vendors(client):
    headers = admin_headers(client)
    create_vendor(client, headers, 'ETag Vendor')
    first = client.get('/ledger/vendors?limit=5', headers=headers)
    assert first.status_code == 200
    etag = first.headers.get('ETag')
    assert etag
    # Conditional request
    second = client.get('/ledger/vendors?limit=5', headers={**headers, 'If-None-Match': etag})
    assert second.status_code == 304
    assert second.headers.get('ETag') == etag
    # If-Modified-Since should also 304 when using Last-Modified from first response
    lm = first.headers.get('Last-Modified')
    if lm:
        third = client.get('/ledger/vendors?limit=5', headers={**headers, 'If-Modified-Since': lm})
        assert third.status_code == 304


def test_etag_changes_after_write(client):
    headers = admin_headers(client)
    create_material(client, headers, 'Straw')
    etag = client.get('/ledger/materials', headers=headers).headers['ETag']
    create_material(client, headers, 'Lime')
    fresh = client.get('/ledger/materials', headers={**headers, 'If-None-Match': etag})
    assert fresh.status_code == 200
    assert fresh.headers['ETag'] != etag


def test_single_resource_head_and_conditional(client):
    headers = admin_headers(client)
    vendor = create_vendor(client, headers, 'Head Vendor')
    url = f"/ledger/vendors/{vendor['id']}"
    head = client.head(url, headers=headers)
    assert head.status_code == 200
    assert head.data == b''
    etag = head.headers['ETag']
    assert client.get(url, headers={**headers, 'If-None-Match': etag}).status_code == 304
    list_head = client.head('/ledger/vendors', headers=headers)
    assert list_head.status_code == 200
    assert 'ETag' in list_head.headers
