"""Trade compliance screening for countries and regions.

Screening queries the trade.gov consolidated screening list by country code
and by fuzzy country name. The static SCREENING_LIST extract stands in under
the demo key and whenever the live lookup fails or returns an HTML page. Stored
CountryCompliance rows, when present, take precedence for tree
annotations; the screen is used for countries with no stored profile.
"""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

log = logging.getLogger(__name__)

SOURCE = 'US Trade.gov Consolidated Screening List'
SCREENING_API_URL = 'https://api.trade.gov/consolidated_screening_list/search'
DEMO_API_KEY = 'demo-key'

SANCTIONS_SOURCES = (
    'Specially Designated Nationals (SDN) - Treasury Department',
    'Sectoral Sanctions Identifications List (SSI) - Treasury Department',
    'Foreign Sanctions Evaders (FSE) - Treasury Department',
    'Cuban Assets Control Regulations - Treasury Department',
)
EXPORT_RESTRICTION_SOURCES = (
    'Entity List (EL) - Bureau of Industry and Security',
    'Denied Persons List (DPL) - Bureau of Industry and Security',
    'Unverified List (UVL) - Bureau of Industry and Security',
)

SCREENING_LIST: Dict[str, List[Dict[str, Any]]] = {
    'IR': [
        {'name': 'Iran Sanctions', 'source': SANCTIONS_SOURCES[0], 'startDate': '2020-01-01', 'score': 100},
        {'name': 'Iran Financial Sanctions', 'source': SANCTIONS_SOURCES[1], 'startDate': '2020-01-01', 'score': 95},
    ],
    'KP': [
        {'name': 'North Korea Export Restrictions', 'source': EXPORT_RESTRICTION_SOURCES[0], 'startDate': '2018-01-01', 'score': 100},
    ],
    'RU': [
        {'name': 'Russian Federation Sanctions', 'source': SANCTIONS_SOURCES[0], 'startDate': '2022-02-24', 'score': 98},
    ],
    'VE': [
        {'name': 'Venezuela Sectoral Sanctions', 'source': SANCTIONS_SOURCES[1], 'startDate': '2019-01-28', 'score': 95},
    ],
    'CU': [
        {'name': 'Cuba Trade Embargo', 'source': SANCTIONS_SOURCES[3], 'startDate': '1963-02-07', 'score': 92},
    ],
    'MM': [
        {'name': 'Myanmar Military Sanctions', 'source': SANCTIONS_SOURCES[0], 'startDate': '2021-02-01', 'score': 88},
    ],
}

REGION_COUNTRIES = {
    'AMER': [('US', 'United States'), ('CA', 'Canada')],
    'LATAM': [('MX', 'Mexico'), ('BR', 'Brazil'), ('AR', 'Argentina'), ('CL', 'Chile'),
              ('CO', 'Colombia'), ('PE', 'Peru'), ('VE', 'Venezuela'), ('CU', 'Cuba')],
    'EMEA': [('GB', 'United Kingdom'), ('DE', 'Germany'), ('FR', 'France'), ('IT', 'Italy'),
             ('ES', 'Spain'), ('NL', 'Netherlands'), ('RU', 'Russia'), ('CH', 'Switzerland'),
             ('IR', 'Iran'), ('EG', 'Egypt')],
    'APAC': [('JP', 'Japan'), ('AU', 'Australia'), ('SG', 'Singapore'), ('KR', 'South Korea'),
             ('IN', 'India'), ('CN', 'China'), ('KP', 'North Korea'), ('MM', 'Myanmar')],
}

# Countries always surfaced on the alerts feed
ALERT_COUNTRIES = ('IR', 'KP', 'CU', 'SY', 'AF')


class UnknownRegionError(ValueError):
    pass


def is_sanctions_source(source: str) -> bool:
    return any(s.lower() in (source or '').lower() for s in SANCTIONS_SOURCES)


def is_export_restriction_source(source: str) -> bool:
    return any(s.lower() in (source or '').lower() for s in EXPORT_RESTRICTION_SOURCES)


def assess_risk_level(matches: List[Dict[str, Any]]) -> str:
    if not matches:
        return 'Low'
    if any(is_sanctions_source(m['source']) for m in matches):
        return 'High'
    if any(is_export_restriction_source(m['source']) for m in matches) or len(matches) > 3:
        return 'Medium'
    return 'Low'


def recommendations(matches: List[Dict[str, Any]], country_code: str) -> List[str]:
    if not matches:
        return ['No compliance issues detected - proceed with standard due diligence']
    out = []
    if any(is_sanctions_source(m['source']) for m in matches):
        out.append('CRITICAL: Sanctions detected - DO NOT PROCEED without legal review')
        out.append('Required: Consult with compliance team before any business activities')
    if any(is_export_restriction_source(m['source']) for m in matches):
        out.append('Export restrictions apply - verify licensing requirements')
        out.append('Required: Check specific export control regulations')
    if len(matches) > 5:
        out.append('Multiple matches found - conduct enhanced due diligence')
    out.append('Verify against source agency websites for most current information')
    out.append(f'Country-specific regulations may apply for {country_code}')
    return out


class ComplianceScreeningService:

    def __init__(self, screening_list: Optional[Dict[str, List[Dict[str, Any]]]] = None,
                 api_key: str = DEMO_API_KEY, api_url: str = SCREENING_API_URL, timeout: float = 30.0,
                 session: Optional[requests.Session] = None):
        self.screening_list = screening_list if screening_list is not None else SCREENING_LIST
        self.api_key = api_key or DEMO_API_KEY
        self.api_url = api_url or SCREENING_API_URL
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def live(self) -> bool:
        return self.api_key != DEMO_API_KEY

    def _static_matches(self, country_code: str) -> List[Dict[str, Any]]:
        code = (country_code or '').upper()
        return [dict(m, type='Country', countries=[code]) for m in self.screening_list.get(code, [])]

    def _search(self, params: Dict[str, str]) -> Optional[List[Dict[str, Any]]]:
        """One consolidated-list query; None when the live answer is unusable."""
        try:
            resp = self.session.get(self.api_url, params=dict(params, api_key=self.api_key), timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            log.warning('Compliance API request failed (%s); using static screening list', e)
            return None
        body = (resp.text or '').lstrip()
        if body.startswith('<') or '<html' in body:
            log.warning('Compliance API returned HTML instead of JSON; using static screening list')
            return None
        try:
            results = resp.json().get('results') or []
        except (ValueError, AttributeError):
            log.warning('Compliance API returned unreadable JSON; using static screening list')
            return None
        return [
            {
                'name': r.get('name', ''),
                'source': r.get('source', ''),
                'startDate': r.get('start_date'),
                'score': r.get('score'),
                'type': r.get('type', ''),
                'countries': r.get('countries') or [],
            }
            for r in results
        ]

    def _matches(self, country_code: str, country_name: Optional[str] = None) -> List[Dict[str, Any]]:
        code = (country_code or '').upper()
        if not self.live:
            return self._static_matches(code)
        by_code = self._search({'countries': code})
        if by_code is None:
            return self._static_matches(code)
        if not country_name or country_name.upper() == code:
            return by_code
        by_name = self._search({'name': country_name, 'fuzzy_name': 'true'})
        return by_code + (by_name or [])

    def screen_country(self, country_code: str, country_name: Optional[str] = None) -> Dict[str, Any]:
        code = (country_code or '').upper()
        name = country_name or code
        log.info('Screening country %s (%s) for compliance issues', code, name)
        matches = self._matches(code, country_name)
        return {
            'entitySearched': f'{name} ({code})',
            'searchType': 'Country',
            'riskLevel': assess_risk_level(matches),
            'totalMatches': len(matches),
            'matches': matches[:10],
            'hasSanctions': any(is_sanctions_source(m['source']) for m in matches),
            'hasExportRestrictions': any(is_export_restriction_source(m['source']) for m in matches),
            'recommendations': recommendations(matches, code),
            'screenedAt': datetime.now(timezone.utc).isoformat(),
            'source': SOURCE,
        }

    def assess_region(self, region_code: str) -> Dict[str, Any]:
        code = (region_code or '').upper()
        if code not in REGION_COUNTRIES:
            raise UnknownRegionError(f"Invalid region code '{region_code}'. Valid codes: {', '.join(REGION_COUNTRIES)}")
        results = [(c, n, self.screen_country(c, n)) for c, n in REGION_COUNTRIES[code]]
        high = sum(1 for _, _, r in results if r['riskLevel'] == 'High')
        medium = sum(1 for _, _, r in results if r['riskLevel'] == 'Medium')
        overall = 'High' if high > 0 else ('Medium' if medium > 1 else 'Low')
        return {
            'regionCode': code,
            'overallRisk': overall,
            'totalCountries': len(results),
            'highRiskCountries': high,
            'mediumRiskCountries': medium,
            'totalSanctionMatches': sum(r['totalMatches'] for _, _, r in results),
            'countryDetails': [
                {'countryCode': c, 'countryName': n, 'riskLevel': r['riskLevel'],
                 'matchCount': r['totalMatches'], 'hasSanctions': r['hasSanctions']}
                for c, n, r in results
            ],
            'assessedAt': datetime.now(timezone.utc).isoformat(),
        }

    def active_alerts(self) -> List[Dict[str, Any]]:
        alerts = []
        for code in ALERT_COUNTRIES:
            result = self.screen_country(code)
            if result['totalMatches'] == 0:
                continue
            alerts.append({
                'id': f'country-{code.lower()}',
                'type': 'Country Sanctions',
                'severity': result['riskLevel'],
                'countryCode': code,
                'title': f'Sanctions in effect for {code}',
                'matchCount': result['totalMatches'],
                'createdAt': result['screenedAt'],
            })
        return alerts

    def annotation(self, country_code: str) -> Dict[str, Any]:
        """Tree-node compliance fields for a country without a stored profile."""
        result = self.screen_country(country_code)
        return {
            'complianceRisk': result['riskLevel'],
            'hasSanctions': result['hasSanctions'],
            'hasExportRestrictions': result['hasExportRestrictions'],
            'regulatoryNotes': None,
        }
