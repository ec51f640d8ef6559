"""Property-name heuristics for realistic string values.

Lookups are case-insensitive: an exact table match wins, then the ordered
substring rules are tried in turn.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Optional

from faker import Faker

type StringFactory = Callable[[Faker], str]

_STATUS_VALUES: tuple[str, ...] = ("active", "inactive", "pending")


def _email(fake: Faker) -> str:
    return fake.email(domain="example.com")


def _paragraphs(fake: Faker) -> str:
    return "\n".join(fake.paragraphs(nb=2))


_EXACT: dict[str, StringFactory] = {
    "firstname": lambda fake: fake.first_name(),
    "first_name": lambda fake: fake.first_name(),
    "lastname": lambda fake: fake.last_name(),
    "last_name": lambda fake: fake.last_name(),
    "fullname": lambda fake: fake.name(),
    "full_name": lambda fake: fake.name(),
    "username": lambda fake: fake.user_name(),
    "email": _email,
    "phone": lambda fake: fake.phone_number(),
    "phonenumber": lambda fake: fake.phone_number(),
    "phone_number": lambda fake: fake.phone_number(),
    "avatar": lambda fake: fake.image_url(),
    "image": lambda fake: fake.image_url(),
    "photo": lambda fake: fake.image_url(),
    "picture": lambda fake: fake.image_url(),
    "city": lambda fake: fake.city(),
    "state": lambda fake: fake.state(),
    "country": lambda fake: fake.country(),
    "zipcode": lambda fake: fake.postcode(),
    "zip_code": lambda fake: fake.postcode(),
    "zip": lambda fake: fake.postcode(),
    "street": lambda fake: fake.street_name(),
    "company": lambda fake: fake.company(),
    "companyname": lambda fake: fake.company(),
    "company_name": lambda fake: fake.company(),
    "title": lambda fake: fake.job(),
    "jobtitle": lambda fake: fake.job(),
    "job_title": lambda fake: fake.job(),
    "bio": lambda fake: fake.paragraph(),
    "description": lambda fake: fake.paragraph(),
    "summary": lambda fake: fake.sentence(),
    "content": _paragraphs,
    "website": lambda fake: fake.url(),
    "url": lambda fake: fake.url(),
    "color": lambda fake: fake.color_name(),
    "currency": lambda fake: fake.currency_code(),
    "iban": lambda fake: fake.iban(),
    "status": lambda fake: fake.random_element(_STATUS_VALUES),
}

_CONTAINS: tuple[tuple[tuple[str, ...], StringFactory], ...] = (
    (("phone",), lambda fake: fake.phone_number()),
    (("email",), _email),
    (("address", "street"), lambda fake: fake.street_address()),
    (("city",), lambda fake: fake.city()),
    (("country",), lambda fake: fake.country()),
    (("avatar", "image", "photo"), lambda fake: fake.image_url()),
    (("url", "website", "link"), lambda fake: fake.url()),
    (("description", "bio", "about"), lambda fake: fake.paragraph()),
    (("title",), lambda fake: fake.job()),
    (("company",), lambda fake: fake.company()),
)


def lookup_property_heuristic(property_name: Optional[str]) -> Optional[StringFactory]:
    """Return the string factory matching a property name, if any.

    Args:
        property_name (Optional[str]): Key the value is generated for.

    Returns:
        Optional[StringFactory]: Factory producing a value from a ``Faker`` instance.
    """
    if not property_name:
        return None
    key = property_name.lower()

    exact = _EXACT.get(key)
    if exact is not None:
        return exact

    if key.endswith("name"):
        return lambda fake: fake.name()
    for needles, factory in _CONTAINS:
        if any(needle in key for needle in needles):
            return factory
    return None
