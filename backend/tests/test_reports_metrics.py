import pytest
from tests.test_utils_seed import admin_headers, user_headers
from tests.test_lifecycle_helpers import create_vendor, create_material, create_voucher


def _ledger(client, headers):
    a = create_vendor(client, headers, 'Agro')
    b = create_vendor(client, headers, 'Bio')
    straw = create_material(client, headers, 'Straw', vendor_ids=[a['id'], b['id']])
    lime = create_material(client, headers, 'Lime', vendor_ids=[b['id']])
    create_voucher(client, headers, a['id'], [{'materialId': straw['id'], 'quantity': 10, 'pricePerUnit': 5}],
                   dateOfPurchase='2024-01-10', taxPercent=10, paymentStatus='Paid', paymentMethod='Cash')
    create_voucher(client, headers, b['id'], [
        {'materialId': straw['id'], 'quantity': 2, 'pricePerUnit': 5},
        {'materialId': lime['id'], 'quantity': 4, 'pricePerUnit': 50},
    ], dateOfPurchase='2024-02-10')
    return a, b, straw, lime


def test_vendor_expenses_and_material_summary(client):
    headers = admin_headers(client)
    a, b, straw, lime = _ledger(client, headers)
    vendors = client.get('/reports/vendor-expenses', headers=headers).get_json()['data']
    assert [(r['vendorName'], r['voucherCount']) for r in vendors] == [('Bio', 1), ('Agro', 1)]
    assert vendors[0]['totalSpend'] == pytest.approx(210)
    assert vendors[1]['totalSpend'] == pytest.approx(55)

    materials = client.get('/reports/material-summary', headers=headers).get_json()['data']
    by_name = {r['materialName']: r for r in materials}
    assert by_name['Straw']['totalQuantity'] == pytest.approx(12)
    assert by_name['Straw']['totalSpend'] == pytest.approx(60)
    assert by_name['Lime']['unit'] == 'kg'
    assert materials[0]['materialName'] == 'Lime'


def test_expense_and_tax_reports_with_date_window(client):
    headers = admin_headers(client)
    _ledger(client, headers)
    totals = client.get('/reports/expenses', headers=headers).get_json()
    assert totals['voucherCount'] == 2
    assert totals['totalSpend'] == pytest.approx(265)
    assert totals['totalTax'] == pytest.approx(5)
    january = client.get('/reports/expenses?start=2024-01-01&end=2024-01-31', headers=headers).get_json()
    assert january['voucherCount'] == 1

    tax = client.get('/reports/tax-payments', headers=headers).get_json()
    assert tax['tax'] == {'totalTax': pytest.approx(5), 'totalPayable': pytest.approx(265)}
    assert {row['key']: row['count'] for row in tax['paymentStatus']} == {'Paid': 1, 'Pending': 1}
    assert {row['key'] for row in tax['paymentMethod']} == {'Cash', 'Bank Transfer'}
    assert client.get('/reports/expenses?start=yesterday', headers=headers).status_code == 400


def test_dashboard_and_report_permissions(client):
    admin = admin_headers(client)
    _ledger(client, admin)
    dash_only = user_headers(client, 'dash@example.com', ['dashboard.view'])
    body = client.get('/reports/dashboard', headers=dash_only).get_json()
    assert body['expenses']['voucherCount'] == 2
    assert body['topVendors'][0]['vendorName'] == 'Bio'
    assert len(body['topMaterials']) == 2
    assert client.get('/reports/expenses', headers=dash_only).status_code == 403
