def test_openapi_spec_available(client):
    resp = client.get('/openapi.json')
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['openapi'].startswith('3.')
    assert '/iam/auth/login' in body['paths']
    assert '/grow/rooms/status' in body['paths']


def test_docs_page(client):
    resp = client.get('/docs')
    assert resp.status_code == 200
    assert b'redoc' in resp.data


def test_sort_parameter_components_and_usage(client):
    spec = client.get('/openapi.json').get_json()
    comps = spec['components']['parameters']
    path_map = {
        '/iam/roles': 'SortRoleParam',
        '/iam/users': 'SortUserParam',
        '/ledger/vendors': 'SortVendorParam',
        '/ledger/materials': 'SortMaterialParam',
        '/ledger/vouchers': 'SortVoucherParam',
        '/grow/stages': 'SortStageParam',
        '/grow/rooms': 'SortGrowingRoomParam',
    }
    for p, comp in path_map.items():
        assert comp in comps, f"Missing parameter component: {comp}"
        params = spec['paths'][p]['get'].get('parameters', [])
        assert any(pr.get('$ref', '').endswith(comp) for pr in params), f"{p} missing ref to {comp}"


def test_list_caching_headers_documented(client):
    spec = client.get('/openapi.json').get_json()
    for p in ['/ledger/vendors', '/ledger/vouchers', '/grow/rooms']:
        hdrs = spec['paths'][p]['get']['responses']['200'].get('headers', {})
        for h in ['ETag', 'Last-Modified', 'X-Last-Modified-ISO']:
            assert h in hdrs, f"{p} missing header doc {h}"


def test_action_permissions_documented(client):
    spec = client.get('/openapi.json').get_json()
    move = spec['paths']['/grow/rooms/{room_id}/move-stage']['post']
    assert move['x-required-permissions'] == ['roomStages.edit']
    pay = spec['paths']['/ledger/vouchers/{voucher_id}/payment-status']['post']
    assert pay['x-required-permissions'] == ['vouchers.edit']
    assert spec['paths']['/reports/dashboard']['get']['x-required-permissions'] == ['dashboard.view']
    op_ids = [op['operationId'] for ops in spec['paths'].values() for op in ops.values()]
    assert len(op_ids) == len(set(op_ids))
