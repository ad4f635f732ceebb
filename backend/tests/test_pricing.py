import pytest

from mdm.services.pricing import calculate_final_price, infer_mode, normalize_pricing, pricing_badge


def test_final_price_per_mode():
    assert calculate_final_price(100.0, 80.0, 0, 'override') == 80.0
    assert calculate_final_price(100.0, None, 15, 'discount') == 85.0
    assert calculate_final_price(19.99, None, 10, 'discount') == 17.99
    assert calculate_final_price(100.0, None, 0, 'none') == 100.0
    # override does not need a base price
    assert calculate_final_price(None, 42.0, 0, 'override') == 42.0
    assert calculate_final_price(None, None, 10, 'discount') is None


def test_infer_mode_prefers_override():
    assert infer_mode(50.0, 20.0) == 'override'
    assert infer_mode(None, 20.0) == 'discount'
    assert infer_mode(0, 0) == 'none'
    assert infer_mode(None, None) == 'none'


def test_pricing_badge():
    assert pricing_badge(50.0, None) == 'Override'
    assert pricing_badge(None, 15.0) == '15% Disc.'
    assert pricing_badge(None, 12.5) == '12.5% Disc.'
    assert pricing_badge(None, 0) == 'Base'
    # persisted mode wins over populated values
    assert pricing_badge(50.0, 10.0, mode='discount') == '10% Disc.'
    assert pricing_badge(None, None, mode='bogus') == 'Base'


def test_normalize_pricing_keeps_single_mode():
    assert normalize_pricing('override', 70.0, 25.0) == ('override', 70.0, 0.0)
    assert normalize_pricing('discount', 70.0, 25.0) == ('discount', None, 25.0)
    assert normalize_pricing('none', 70.0, 25.0) == ('none', None, 0.0)
    assert normalize_pricing(None, 70.0, 0) == ('override', 70.0, 0.0)
    assert normalize_pricing(None, None, 25.0) == ('discount', None, 25.0)
    assert normalize_pricing(None, 0, 25.0) == ('discount', None, 25.0)


@pytest.mark.parametrize('mode,override,pct', [
    (None, 70.0, 25.0),
    ('override', None, 0),
    ('override', -1.0, 0),
    ('discount', None, 101),
    ('discount', None, -5),
    ('tiered', None, 0),
])
def test_normalize_pricing_rejects(mode, override, pct):
    with pytest.raises(ValueError):
        normalize_pricing(mode, override, pct)
