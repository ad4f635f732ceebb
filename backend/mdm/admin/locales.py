"""Locale creation defaults and guarded deletion for the hierarchy screen."""
from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List

from mdm.admin.client import ApiClient, ApiError

log = logging.getLogger(__name__)

# country -> language, currency and formatting used to prefill a new locale
COUNTRY_DEFAULTS: Dict[str, Dict[str, Any]] = {
    'US': {'languageCode': 'en', 'languageName': 'English', 'currency': 'USD', 'dateFormat': 'MM/dd/yyyy'},
    'CA': {'languageCode': 'en', 'languageName': 'English', 'currency': 'CAD', 'dateFormat': 'MM/dd/yyyy'},
    'MX': {'languageCode': 'es', 'languageName': 'Spanish', 'currency': 'MXN', 'dateFormat': 'dd/MM/yyyy'},
    'FR': {'languageCode': 'fr', 'languageName': 'French', 'currency': 'EUR', 'dateFormat': 'dd/MM/yyyy'},
    'DE': {'languageCode': 'de', 'languageName': 'German', 'currency': 'EUR', 'dateFormat': 'dd.MM.yyyy'},
    'GB': {'languageCode': 'en', 'languageName': 'English', 'currency': 'GBP', 'dateFormat': 'dd/MM/yyyy'},
    'IT': {'languageCode': 'it', 'languageName': 'Italian', 'currency': 'EUR', 'dateFormat': 'dd/MM/yyyy'},
    'ES': {'languageCode': 'es', 'languageName': 'Spanish', 'currency': 'EUR', 'dateFormat': 'dd/MM/yyyy'},
    'CH': {'languageCode': 'de', 'languageName': 'German', 'currency': 'CHF', 'dateFormat': 'dd.MM.yyyy'},
    'JP': {'languageCode': 'ja', 'languageName': 'Japanese', 'currency': 'JPY', 'dateFormat': 'yyyy/MM/dd'},
    'CN': {'languageCode': 'zh', 'languageName': 'Chinese', 'currency': 'CNY', 'dateFormat': 'yyyy/MM/dd'},
    'AU': {'languageCode': 'en', 'languageName': 'English', 'currency': 'AUD', 'dateFormat': 'dd/MM/yyyy'},
    'BR': {'languageCode': 'pt', 'languageName': 'Portuguese', 'currency': 'BRL', 'dateFormat': 'dd/MM/yyyy'},
    'RU': {'languageCode': 'ru', 'languageName': 'Russian', 'currency': 'RUB', 'dateFormat': 'dd.MM.yyyy'},
}
FALLBACK_COUNTRY = 'US'


class PrimaryLocaleError(ValueError):
    pass


def country_defaults(country_code: str) -> Dict[str, Any]:
    return dict(COUNTRY_DEFAULTS.get((country_code or '').upper(), COUNTRY_DEFAULTS[FALLBACK_COUNTRY]), isRtl=False)


def generate_unique_locale_code(language_code: str, country_code: str, existing_codes: Iterable[str]) -> str:
    """`<lang>_<COUNTRY>`, suffixed _1, _2, ... until it collides with nothing.

    Comparison is case-insensitive.
    """
    base = f'{language_code.lower()}_{country_code.upper()}'
    taken = {c.lower() for c in existing_codes if c}
    if base.lower() not in taken:
        return base
    n = 1
    while f'{base}_{n}'.lower() in taken:
        n += 1
    return f'{base}_{n}'


def locale_codes(tree: List[Dict[str, Any]]) -> List[str]:
    """Codes of every locale node in a loaded tree."""
    out = []
    stack = list(tree)
    while stack:
        node = stack.pop()
        if node.get('type') == 'locale':
            code = (node.get('metadata') or {}).get('code')
            if code:
                out.append(code)
        stack.extend(node.get('children') or [])
    return out


def locale_form_defaults(country_node: Dict[str, Any], existing_codes: Iterable[str]) -> Dict[str, Any]:
    country_code = (country_node.get('metadata') or {}).get('code') or FALLBACK_COUNTRY
    d = country_defaults(country_code)
    return {
        'name': f"{d['languageName']} ({country_node.get('name')})",
        'code': generate_unique_locale_code(d['languageCode'], country_code, existing_codes),
        'languageCode': d['languageCode'],
        'currency': d['currency'],
        'isRtl': d['isRtl'],
        'dateFormat': d['dateFormat'],
        'numberFormat': {},
        'priority': len(country_node.get('children') or []) + 1,
    }


class LocaleManager:

    def __init__(self, client: ApiClient):
        self.client = client

    def create_locale(self, country_node: Dict[str, Any], existing_codes: Iterable[str], **overrides):
        form = dict(locale_form_defaults(country_node, existing_codes), **overrides)
        props = {k: form[k] for k in ('languageCode', 'currency', 'isRtl', 'dateFormat', 'numberFormat', 'priority')}
        return self.client.create_node('locale', form['name'], form['code'], country_node['id'], props)

    def delete_locale(self, locale_node: Dict[str, Any]):
        """Delete one locale; a primary locale is refused without calling the API."""
        if (locale_node.get('metadata') or {}).get('isPrimary'):
            raise PrimaryLocaleError('Cannot delete the primary locale for this country. '
                                     'Set another locale as primary first.')
        result = self.client.bulk_tree_operation('delete', [locale_node['id']])
        outcome = result['results'][0]
        if not outcome['success']:
            raise ApiError(409, outcome.get('message') or 'Delete failed')
        log.info('Deleted locale %s', locale_node['id'])
        return outcome
