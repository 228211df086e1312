"""Build the static entity tables every generation phase relies on.

Entities are produced once, sequentially, from dedicated forks of the run's
root stream. Workers only ever read them.
"""
from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Sequence

from .models import (
    ATM,
    Account,
    AccountType,
    Branch,
    BusinessType,
    Customer,
    CustomerSegment,
)
from .patterns import ActivityDistribution
from .reference import (
    COUNTRIES_BY_CODE,
    Country,
    pick_country,
    random_city,
    random_company_name,
    random_person_name,
)
from .rng import RandomStream

ATM_SITES = [
    "Main Street",
    "Shopping Mall",
    "Airport",
    "Train Station",
    "Gas Station",
    "Supermarket",
    "Hospital",
    "University",
    "City Center",
    "Business Park",
]

# (cumulative threshold, segment) for retail customers.
SEGMENT_THRESHOLDS: tuple[tuple[float, CustomerSegment], ...] = (
    (0.70, CustomerSegment.REGULAR),
    (0.85, CustomerSegment.PREMIUM),
    (0.90, CustomerSegment.PRIVATE),
    (0.98, CustomerSegment.BUSINESS),
    (1.00, CustomerSegment.CORPORATE),
)

BUSINESS_TYPE_THRESHOLDS: tuple[tuple[float, BusinessType], ...] = (
    (0.40, BusinessType.EMPLOYER),
    (0.75, BusinessType.MERCHANT),
    (0.90, BusinessType.UTILITY),
    (1.00, BusinessType.GOVERNMENT),
)

MIN_ACTIVITY_SCORE = 0.1
CUSTOMER_HISTORY = timedelta(days=5 * 365)

_PRIVATE = CustomerSegment.PRIVATE
_PREMIUM = CustomerSegment.PREMIUM
_CORPORATE = CustomerSegment.CORPORATE
_BUSINESS = CustomerSegment.BUSINESS

# Opening balance bounds in minor units, per account type then segment.
BALANCE_RANGES: dict[AccountType, dict[object, tuple[int, int]]] = {
    AccountType.CHECKING: {
        _PRIVATE: (5_000_000, 50_000_000),
        _PREMIUM: (1_000_000, 10_000_000),
        _CORPORATE: (10_000_000, 100_000_000),
        _BUSINESS: (500_000, 5_000_000),
        None: (50_000, 1_000_000),
    },
    AccountType.SAVINGS: {
        _PRIVATE: (10_000_000, 100_000_000),
        _PREMIUM: (2_500_000, 25_000_000),
        _CORPORATE: (50_000_000, 500_000_000),
        _BUSINESS: (1_000_000, 10_000_000),
        None: (100_000, 2_500_000),
    },
    AccountType.CREDIT_CARD: {
        _PRIVATE: (-5_000_000, 0),
        _PREMIUM: (-2_000_000, 0),
        None: (-500_000, 0),
    },
    AccountType.LOAN: {None: (-2_500_000, -500_000)},
    AccountType.MORTGAGE: {None: (-50_000_000, -10_000_000)},
    AccountType.INVESTMENT: {
        _PRIVATE: (50_000_000, 500_000_000),
        _PREMIUM: (10_000_000, 100_000_000),
        None: (1_000_000, 10_000_000),
    },
    AccountType.BUSINESS: {None: (1_000_000, 50_000_000)},
    AccountType.MERCHANT: {None: (500_000, 5_000_000)},
    AccountType.PAYROLL: {None: (10_000_000, 500_000_000)},
}

# Interest rate bounds in basis points.
INTEREST_RANGES: dict[AccountType, tuple[int, int]] = {
    AccountType.SAVINGS: (100, 500),
    AccountType.CHECKING: (0, 50),
    AccountType.CREDIT_CARD: (1_500, 2_500),
    AccountType.LOAN: (500, 1_200),
    AccountType.MORTGAGE: (300, 700),
    AccountType.INVESTMENT: (0, 0),
}
DEFAULT_INTEREST_RANGE = (50, 200)

CREDIT_LIMITS: dict[CustomerSegment, int] = {
    _PRIVATE: 5_000_000,
    _PREMIUM: 2_000_000,
}
DEFAULT_CREDIT_LIMIT = 500_000


@dataclass(frozen=True)
class CounterpartyPools:
    """Read-only lookups shared by every transaction worker."""

    merchant_accounts: tuple[int, ...] = ()
    payroll_accounts: tuple[int, ...] = ()
    utility_accounts: tuple[int, ...] = ()
    branch_ids: tuple[int, ...] = ()
    atm_ids: tuple[int, ...] = ()
    atm_locations: dict[int, str] = field(default_factory=dict)


@dataclass
class EntitySet:
    branches: list[Branch]
    atms: list[ATM]
    customers: list[Customer]
    businesses: list[Customer]
    accounts: list[Account]

    @property
    def owners(self) -> list[Customer]:
        """Retail customers followed by businesses, in id order."""

        return [*self.customers, *self.businesses]

    def owners_by_id(self) -> dict[int, Customer]:
        return {owner.id: owner for owner in self.owners}

    def accounts_by_customer(self) -> dict[int, list[Account]]:
        grouped: dict[int, list[Account]] = {}
        for account in self.accounts:
            grouped.setdefault(account.customer_id, []).append(account)
        return grouped

    def counterparty_pools(self) -> CounterpartyPools:
        merchant = tuple(a.id for a in self.accounts if a.type is AccountType.MERCHANT)
        payroll = tuple(a.id for a in self.accounts if a.type is AccountType.PAYROLL)
        by_owner = self.accounts_by_customer()
        utility = tuple(
            by_owner[business.id][0].id
            for business in self.businesses
            if business.business_type is BusinessType.UTILITY and by_owner.get(business.id)
        )
        return CounterpartyPools(
            merchant_accounts=merchant,
            payroll_accounts=payroll,
            utility_accounts=utility,
            branch_ids=tuple(branch.id for branch in self.branches),
            atm_ids=tuple(atm.id for atm in self.atms),
            atm_locations={atm.id: atm.location for atm in self.atms},
        )


def _pick(thresholds: Sequence[tuple[float, object]], draw: float):
    for threshold, value in thresholds:
        if draw < threshold:
            return value
    return thresholds[-1][1]


def _ascii_slug(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value)
    ascii_name = normalized.encode("ascii", "ignore").decode("ascii")
    slug = ascii_name.lower().replace(" ", ".").replace("'", "").replace("-", ".")
    return "".join(ch for ch in slug if ch.isalnum() or ch == ".").strip(".")


def sanitize_email(name: str, idx: int) -> str:
    slug = _ascii_slug(name) or "customer"
    return f"{slug}{idx:06d}@example.com"


def username_for(name: str, idx: int) -> str:
    slug = _ascii_slug(name).replace(".", "_") or "user"
    return f"{slug}_{idx}"


def build_branches(rng: RandomStream, count: int, history_start: datetime) -> list[Branch]:
    branches: list[Branch] = []
    for branch_id in range(1, count + 1):
        country = pick_country(rng)
        city = random_city(rng, country)
        opened_at = history_start - timedelta(days=rng.int_range(365, 20 * 365))
        branches.append(
            Branch(
                id=branch_id,
                code=f"BR{branch_id:05d}",
                name=f"{city} Branch",
                country=country.code,
                city=city,
                timezone=country.timezone,
                opened_at=opened_at,
            )
        )
    return branches


def build_atms(rng: RandomStream, count: int, branches: Sequence[Branch]) -> list[ATM]:
    atms: list[ATM] = []
    for atm_id in range(1, count + 1):
        branch = rng.choice(branches)
        atms.append(
            ATM(
                id=atm_id,
                branch_id=branch.id,
                location=f"{rng.choice(ATM_SITES)}, {branch.city}",
                country=branch.country,
            )
        )
    return atms


def _home_branch(rng: RandomStream, country: Country, branches_by_country: dict[str, list[Branch]], branches: Sequence[Branch]) -> Branch:
    local = branches_by_country.get(country.code)
    return rng.choice(local) if local else rng.choice(branches)


def _branches_by_country(branches: Sequence[Branch]) -> dict[str, list[Branch]]:
    grouped: dict[str, list[Branch]] = {}
    for branch in branches:
        grouped.setdefault(branch.country, []).append(branch)
    return grouped


def build_customers(
    rng: RandomStream,
    count: int,
    branches: Sequence[Branch],
    history_start: datetime,
    activity: ActivityDistribution,
) -> list[Customer]:
    """Create retail customers with Pareto-skewed activity scores."""

    by_country = _branches_by_country(branches)
    horizon = int(CUSTOMER_HISTORY.total_seconds())
    customers: list[Customer] = []
    for customer_id in range(1, count + 1):
        country = pick_country(rng)
        first, last = random_person_name(rng, country)
        segment = _pick(SEGMENT_THRESHOLDS, rng.float64())
        score = max(MIN_ACTIVITY_SCORE, activity.activity_score(rng.float64()))
        branch = _home_branch(rng, country, by_country, branches)
        created_at = history_start - timedelta(seconds=rng.int_range(0, horizon))
        full_name = f"{first} {last}"
        customers.append(
            Customer(
                id=customer_id,
                first_name=first,
                last_name=last,
                email=sanitize_email(full_name, customer_id),
                username=username_for(full_name, customer_id),
                country=country.code,
                timezone=country.timezone,
                currency=country.currency,
                segment=segment,
                activity_score=score,
                home_branch_id=branch.id,
                created_at=created_at,
            )
        )
    return customers


def _business_segment(rng: RandomStream, business_type: BusinessType) -> CustomerSegment:
    if business_type in (BusinessType.UTILITY, BusinessType.GOVERNMENT):
        return CustomerSegment.CORPORATE
    if business_type is BusinessType.EMPLOYER and rng.probability(0.3):
        return CustomerSegment.CORPORATE
    return CustomerSegment.BUSINESS


def build_businesses(
    rng: RandomStream,
    count: int,
    first_id: int,
    branches: Sequence[Branch],
    history_start: datetime,
) -> list[Customer]:
    """Create employers, merchants, utilities and agencies.

    Businesses share the customer id space, starting at ``first_id``.
    """

    by_country = _branches_by_country(branches)
    horizon = int(CUSTOMER_HISTORY.total_seconds())
    businesses: list[Customer] = []
    for offset in range(count):
        business_id = first_id + offset
        country = pick_country(rng)
        business_type = _pick(BUSINESS_TYPE_THRESHOLDS, rng.float64())
        name = random_company_name(rng, business_type, country)
        segment = _business_segment(rng, business_type)
        branch = _home_branch(rng, country, by_country, branches)
        created_at = history_start - timedelta(seconds=rng.int_range(0, horizon))
        businesses.append(
            Customer(
                id=business_id,
                first_name="",
                last_name="",
                email=sanitize_email(name, business_id),
                username=username_for(name, business_id),
                country=country.code,
                timezone=country.timezone,
                currency=country.currency,
                segment=segment,
                activity_score=rng.float_range(0.7, 1.0),
                home_branch_id=branch.id,
                created_at=created_at,
                business_type=business_type,
                business_name=name,
            )
        )
    return businesses


def account_types_for(rng: RandomStream, owner: Customer) -> list[AccountType]:
    """Decide which products ``owner`` holds."""

    if owner.business_type is not None:
        types = [AccountType.BUSINESS]
        if owner.business_type is BusinessType.EMPLOYER:
            types.append(AccountType.PAYROLL)
        elif owner.business_type is BusinessType.MERCHANT:
            types.append(AccountType.MERCHANT)
        if rng.probability(0.6):
            types.append(AccountType.SAVINGS)
        return types

    types = [AccountType.CHECKING]
    if rng.probability(0.7):
        types.append(AccountType.SAVINGS)
    if owner.segment in (CustomerSegment.PREMIUM, CustomerSegment.PRIVATE):
        if rng.probability(0.5):
            types.append(AccountType.INVESTMENT)
        if rng.probability(0.8):
            types.append(AccountType.CREDIT_CARD)
    else:
        if rng.probability(0.4):
            types.append(AccountType.CREDIT_CARD)
        if rng.probability(0.1):
            types.append(AccountType.LOAN)
    return types


def opening_balance(rng: RandomStream, account_type: AccountType, segment: CustomerSegment) -> int:
    ranges = BALANCE_RANGES[account_type]
    low, high = ranges.get(segment, ranges[None])
    return rng.int_range(low, high)


def interest_rate(rng: RandomStream, account_type: AccountType) -> int:
    low, high = INTEREST_RANGES.get(account_type, DEFAULT_INTEREST_RANGE)
    return rng.int_range(low, high)


def build_accounts(rng: RandomStream, owners: Sequence[Customer]) -> list[Account]:
    accounts: list[Account] = []
    next_id = 1
    for owner in owners:
        country = COUNTRIES_BY_CODE.get(owner.country)
        country_code = country.code if country else owner.country
        for account_type in account_types_for(rng, owner):
            credit_limit = 0
            overdraft_limit = 0
            if account_type is AccountType.CREDIT_CARD:
                credit_limit = CREDIT_LIMITS.get(owner.segment, DEFAULT_CREDIT_LIMIT)
            elif account_type is AccountType.CHECKING and owner.segment in (_PREMIUM, _PRIVATE):
                overdraft_limit = 100_000
            accounts.append(
                Account(
                    id=next_id,
                    account_number=f"{country_code}-{rng.numeric_string(5)}-{next_id:010d}",
                    customer_id=owner.id,
                    type=account_type,
                    currency=owner.currency,
                    balance=opening_balance(rng, account_type, owner.segment),
                    interest_rate=interest_rate(rng, account_type),
                    branch_id=owner.home_branch_id,
                    opened_at=owner.created_at + timedelta(days=rng.int_range(0, 30)),
                    credit_limit=credit_limit,
                    overdraft_limit=overdraft_limit,
                )
            )
            next_id += 1
    return accounts


def build_entities(
    root: RandomStream,
    *,
    num_customers: int,
    num_businesses: int,
    num_branches: int,
    num_atms: int,
    history_start: datetime,
    pareto_ratio: float,
) -> EntitySet:
    """Generate every entity table from four successive forks of ``root``."""

    site_rng, customer_rng, business_rng, account_rng = root.fork_n(4)
    branches = build_branches(site_rng, num_branches, history_start)
    atms = build_atms(site_rng, num_atms, branches)
    customers = build_customers(
        customer_rng,
        num_customers,
        branches,
        history_start,
        ActivityDistribution.pareto(pareto_ratio),
    )
    businesses = build_businesses(business_rng, num_businesses, num_customers + 1, branches, history_start)
    accounts = build_accounts(account_rng, [*customers, *businesses])
    return EntitySet(branches=branches, atms=atms, customers=customers, businesses=businesses, accounts=accounts)
