"""Reference data: countries, regions and flavourful names.

Names and cities come from Faker providers matching each country's locale.
Every helper takes the caller's :class:`~bankgen.rng.RandomStream` so the
output stays reproducible for a given seed.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Sequence

from faker import Faker

from .models import BusinessType
from .rng import RandomStream


@dataclass(frozen=True)
class Country:
    """A country customers and branches can be located in."""

    code: str
    name: str
    region: str
    timezone: str
    currency: str
    locale: str
    weight: int


def _list_from_block(block: str) -> list[str]:
    """Turn a newline separated text block into a list of unique entries."""

    seen: set[str] = set()
    values: list[str] = []
    for raw in block.splitlines():
        item = raw.strip()
        if not item or item.startswith("#"):
            continue
        if item in seen:
            continue
        seen.add(item)
        values.append(item)
    return values


# Weight approximates banking activity; selection is weight-proportional.
COUNTRIES: Sequence[Country] = (
    Country("US", "United States", "NA", "America/New_York", "USD", "en_US", 30),
    Country("CA", "Canada", "NA", "America/Toronto", "CAD", "en_CA", 5),
    Country("MX", "Mexico", "NA", "America/Mexico_City", "MXN", "es_MX", 4),
    Country("BR", "Brazil", "SA", "America/Sao_Paulo", "BRL", "pt_BR", 5),
    Country("AR", "Argentina", "SA", "America/Argentina/Buenos_Aires", "ARS", "es_AR", 2),
    Country("CL", "Chile", "SA", "America/Santiago", "CLP", "es_CL", 1),
    Country("CO", "Colombia", "SA", "America/Bogota", "COP", "es_CO", 1),
    Country("GB", "United Kingdom", "EU", "Europe/London", "GBP", "en_GB", 8),
    Country("DE", "Germany", "EU", "Europe/Berlin", "EUR", "de_DE", 7),
    Country("FR", "France", "EU", "Europe/Paris", "EUR", "fr_FR", 6),
    Country("IT", "Italy", "EU", "Europe/Rome", "EUR", "it_IT", 4),
    Country("ES", "Spain", "EU", "Europe/Madrid", "EUR", "es_ES", 4),
    Country("NL", "Netherlands", "EU", "Europe/Amsterdam", "EUR", "nl_NL", 3),
    Country("BE", "Belgium", "EU", "Europe/Brussels", "EUR", "nl_BE", 1),
    Country("CH", "Switzerland", "EU", "Europe/Zurich", "CHF", "de_CH", 2),
    Country("AT", "Austria", "EU", "Europe/Vienna", "EUR", "de_AT", 1),
    Country("SE", "Sweden", "EU", "Europe/Stockholm", "SEK", "sv_SE", 1),
    Country("NO", "Norway", "EU", "Europe/Oslo", "NOK", "no_NO", 1),
    Country("DK", "Denmark", "EU", "Europe/Copenhagen", "DKK", "da_DK", 1),
    Country("PL", "Poland", "EU", "Europe/Warsaw", "PLN", "pl_PL", 2),
    Country("PT", "Portugal", "EU", "Europe/Lisbon", "EUR", "pt_PT", 1),
    Country("IE", "Ireland", "EU", "Europe/Dublin", "EUR", "en_IE", 1),
    Country("AU", "Australia", "OC", "Australia/Sydney", "AUD", "en_AU", 3),
    Country("NZ", "New Zealand", "OC", "Pacific/Auckland", "NZD", "en_NZ", 1),
    Country("IN", "India", "AS", "Asia/Kolkata", "INR", "en_IN", 6),
    Country("JP", "Japan", "AS", "Asia/Tokyo", "JPY", "ja_JP", 5),
    Country("CN", "China", "AS", "Asia/Shanghai", "CNY", "zh_CN", 6),
    Country("KR", "South Korea", "AS", "Asia/Seoul", "KRW", "ko_KR", 2),
    Country("TW", "Taiwan", "AS", "Asia/Taipei", "TWD", "zh_TW", 1),
    Country("ID", "Indonesia", "AS", "Asia/Jakarta", "IDR", "id_ID", 2),
    Country("TH", "Thailand", "AS", "Asia/Bangkok", "THB", "th_TH", 1),
    Country("ZA", "South Africa", "AF", "Africa/Johannesburg", "ZAR", "en_GB", 1),
    Country("EG", "Egypt", "AF", "Africa/Cairo", "EGP", "ar_EG", 1),
)

COUNTRIES_BY_CODE: dict[str, Country] = {country.code: country for country in COUNTRIES}
TOTAL_WEIGHT = sum(country.weight for country in COUNTRIES)

_REGIONS: dict[str, str] = {
    **dict.fromkeys(("US", "CA", "MX"), "NA"),
    **dict.fromkeys(("BR", "AR", "CL", "CO", "PE"), "SA"),
    **dict.fromkeys(
        (
            "GB", "DE", "FR", "IT", "ES", "NL", "BE", "CH", "AT", "SE",
            "NO", "DK", "FI", "PL", "PT", "IE", "CZ", "GR", "HU", "RO",
        ),
        "EU",
    ),
    **dict.fromkeys(("AU", "NZ"), "OC"),
    **dict.fromkeys(("ZA", "NG", "EG", "KE", "MA"), "AF"),
}


def region_for(country_code: str) -> str:
    """Coarse geographic region for an ISO country code (Asia when unknown)."""

    return _REGIONS.get(country_code, "AS")


def pick_country(rng: RandomStream) -> Country:
    """Select a country with probability proportional to its weight."""

    target = rng.int_range(1, TOTAL_WEIGHT)
    cumulative = 0
    for country in COUNTRIES:
        cumulative += country.weight
        if target <= cumulative:
            return country
    return COUNTRIES[-1]


@lru_cache(maxsize=None)
def _faker(locale: str) -> Faker:
    return Faker(locale)


def _seeded_faker(rng: RandomStream, locale: str) -> Faker:
    faker = _faker(locale)
    faker.random = rng.random
    return faker


def random_person_name(rng: RandomStream, country: Country) -> tuple[str, str]:
    """Return a (first, last) tuple from the country's Faker locale."""

    faker = _seeded_faker(rng, country.locale)
    return faker.first_name(), faker.last_name()


def random_city(rng: RandomStream, country: Country) -> str:
    return _seeded_faker(rng, country.locale).city()


EMPLOYER_CORES = _list_from_block(
    """
    Aegis
    Aether
    Andromeda
    Apollo
    Argo
    Artemis
    Atlas
    Aurora
    Helios
    Hermes
    Hyperion
    Icarus
    Nereus
    Orion
    Pegasus
    Perseus
    Prometheus
    Selene
    Titan
    Triton
    """
)

EMPLOYER_SUFFIXES = [
    "Technologies", "Industries", "Solutions", "Systems", "Dynamics",
    "Enterprises", "Holdings", "Group", "Partners", "Associates",
    "Consulting", "Services", "Manufacturing", "Development", "Logistics",
]

LEGAL_SUFFIXES = ["Inc.", "Corp.", "LLC", "Ltd.", "Co.", ""]

MERCHANT_KINDS = [
    "Supermarket", "Grocery", "Department Store", "Electronics", "Fashion",
    "Hardware", "Pharmacy", "Books", "Sports", "Home Goods",
    "Restaurant", "Cafe", "Bakery", "Pizza", "Coffee Shop",
    "Auto Parts", "Gas Station", "Dry Cleaning", "Salon", "Gym",
]

MERCHANT_WORDS = [
    "Quick", "Fresh", "Metro", "Urban", "City", "Express", "Plus",
    "Best", "Value", "Smart", "Super", "Mega", "Prime", "Gold",
]

MERCHANT_TEMPLATES = ["{word} {kind}", "{word}'s {kind}", "The {word} {kind}", "{word} {kind} Center"]

UTILITY_PREFIXES = ["National", "Regional", "Metro", "City", "Central"]
UTILITY_KINDS = [
    "Electric Company", "Power & Light", "Gas Company", "Water Authority", "Telecom",
    "Cable Services", "Internet Services", "Energy", "Utilities",
]

GOVERNMENT_AGENCIES = [
    "Tax Authority", "Revenue Service", "Motor Vehicles Department",
    "Social Security Administration", "Immigration Services", "Customs Authority",
    "Municipal Treasury", "Property Tax Office", "Business Licensing", "Building Permits",
]


def random_company_name(rng: RandomStream, business_type: BusinessType, country: Country) -> str:
    """Construct a business name that fits ``business_type``."""

    if business_type is BusinessType.EMPLOYER:
        name = f"{rng.choice(EMPLOYER_CORES)} {rng.choice(EMPLOYER_SUFFIXES)}"
        legal = rng.choice(LEGAL_SUFFIXES)
        return f"{name} {legal}" if legal else name
    if business_type is BusinessType.MERCHANT:
        template = rng.choice(MERCHANT_TEMPLATES)
        return template.format(word=rng.choice(MERCHANT_WORDS), kind=rng.choice(MERCHANT_KINDS))
    if business_type is BusinessType.UTILITY:
        prefix = rng.choice([country.name, *UTILITY_PREFIXES])
        return f"{prefix} {rng.choice(UTILITY_KINDS)}"
    if business_type is BusinessType.GOVERNMENT:
        return f"{country.name} {rng.choice(GOVERNMENT_AGENCIES)}"
    last = _seeded_faker(rng, country.locale).last_name()
    return f"{last} {rng.choice(['& Associates', 'Enterprises', 'Holdings', 'Group', 'Partners', '& Co.'])}"
