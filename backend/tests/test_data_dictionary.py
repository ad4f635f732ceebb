import pytest

from mdm import get_db
from mdm.models.data_dictionary import DataDictionary
from tests.test_utils_seed import auth_headers


@pytest.fixture()
def dictionary_rows():
    session = get_db()
    specs = [
        dict(column_name='dd_sku', display_name='DD SKU', category='DDIdentity', required_for_active=True,
             maintenance_role='product_marketing', in_product_mdm=True, in_ecommerce=True, sort_order=1,
             description='Stock keeping unit', max_length=64, is_system_field=True),
        dict(column_name='dd_price', display_name='DD Price', data_type='number', category='DDPricing',
             maintenance_role='product_finance', in_pricing_mdm=True, sort_order=2, description=None),
        dict(column_name='dd_tax', display_name='DD Tax Code', category='DDPricing', required_for_active=True,
             maintenance_role='product_finance', in_pricing_mdm=True, sort_order=3,
             allowed_values=['P0000000', 'SW054000']),
    ]
    for spec in specs:
        if not session.query(DataDictionary).filter_by(column_name=spec['column_name']).one_or_none():
            session.add(DataDictionary(**spec))
    session.commit()
    return [s['column_name'] for s in specs]


def _names(body):
    return [e['columnName'] for e in body['dataDictionary'] if e['columnName'].startswith('dd_')]


def test_list_shape_and_order(client, app_instance, dictionary_rows):
    headers = auth_headers(app_instance, ['DICT.READ'])
    body = client.get('/api/data-dictionary', headers=headers).get_json()
    assert body['source'] == 'api'
    assert _names(body) == ['dd_sku', 'dd_price', 'dd_tax']
    sku = next(e for e in body['dataDictionary'] if e['columnName'] == 'dd_sku')
    assert sku['schemas'] == ['ProductMDM', 'Ecommerce']
    assert sku['maintenanceRoleLabel'] == 'Product Marketing'
    assert sku['canEdit'] is False


def test_filters(client, app_instance, dictionary_rows):
    headers = auth_headers(app_instance, ['DICT.READ'])
    get = lambda qs: client.get(f'/api/data-dictionary?{qs}', headers=headers).get_json()
    assert _names(get('category=DDPricing')) == ['dd_price', 'dd_tax']
    assert _names(get('category=DDPricing&requiredOnly=true')) == ['dd_tax']
    assert _names(get('schema=PricingMDM')) == ['dd_price', 'dd_tax']
    assert _names(get('maintenanceRole=product_marketing')) == ['dd_sku']
    assert _names(get('category=all&schema=all')) == ['dd_sku', 'dd_price', 'dd_tax']
    assert client.get('/api/data-dictionary?schema=Warehouse', headers=headers).status_code == 400


def test_search_skips_null_descriptions(client, app_instance, dictionary_rows):
    headers = auth_headers(app_instance, ['DICT.READ'])
    body = client.get('/api/data-dictionary?search=keeping', headers=headers).get_json()
    assert _names(body) == ['dd_sku']
    body = client.get('/api/data-dictionary', query_string={'search': 'dd price'}, headers=headers).get_json()
    assert _names(body) == ['dd_price']


def test_categories_rules_and_item(client, app_instance, dictionary_rows):
    headers = auth_headers(app_instance, ['DICT.READ'])
    cats = client.get('/api/data-dictionary/categories', headers=headers).get_json()['categories']
    assert {'DDIdentity', 'DDPricing'} <= set(cats)
    assert cats == sorted(cats)
    rules = client.get('/api/data-dictionary/validation-rules', headers=headers).get_json()['validationRules']
    assert rules['dd_sku']['required'] is True and rules['dd_sku']['maxLength'] == 64
    assert rules['dd_tax']['allowedValues'] == ['P0000000', 'SW054000']
    entry = get_db().query(DataDictionary).filter_by(column_name='dd_price').one()
    item = client.get(f'/api/data-dictionary/{entry.id}', headers=headers)
    assert item.status_code == 200 and item.get_json()['dataType'] == 'number'
    assert client.get('/api/data-dictionary/999999', headers=headers).status_code == 404
