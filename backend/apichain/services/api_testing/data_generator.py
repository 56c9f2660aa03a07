"""Value generators for dynamic data repository variables."""

import json
from typing import Callable

from faker import Faker

from apichain.schemas.data_repository import (
    DATA_VARIABLE_TYPES,
    DynamicPasswordConfig,
    EmailDomainConfig,
    GeneratorConfig,
    StaticPasswordConfig,
)

fake = Faker()

LOWERCASE = "abcdefghijklmnopqrstuvwxyz"
UPPERCASE = LOWERCASE.upper()
DIGITS = "0123456789"

Generator = Callable[[GeneratorConfig | None], str]


def generate_password(length: int, special_chars: str) -> str:
    """Random password with at least one lowercase, uppercase, digit and special char."""
    rng = fake.random
    chars = LOWERCASE + UPPERCASE + DIGITS + special_chars
    password = [
        rng.choice(LOWERCASE),
        rng.choice(UPPERCASE),
        rng.choice(DIGITS),
        rng.choice(special_chars),
    ]
    while len(password) < length:
        password.append(rng.choice(chars))
    rng.shuffle(password)
    return "".join(password)


def _alphanumeric(length: int, alphabet: str = LOWERCASE + UPPERCASE + DIGITS) -> str:
    return "".join(fake.random.choices(alphabet, k=length))


def _email_local_part() -> str:
    return f"{_alphanumeric(10, LOWERCASE + DIGITS)}_aut"


def _email(config: GeneratorConfig | None) -> str:
    return f"{_email_local_part()}@{fake.domain_name()}"


def _email_with_domain(config: GeneratorConfig | None) -> str:
    if isinstance(config, EmailDomainConfig) and config.email_domain:
        return f"{_email_local_part()}@{config.email_domain}"
    return _email(config)


def _static_password(config: GeneratorConfig | None) -> str:
    if isinstance(config, StaticPasswordConfig):
        return config.static_value
    return ""


def _dynamic_password(config: GeneratorConfig | None) -> str:
    if not isinstance(config, DynamicPasswordConfig):
        config = DynamicPasswordConfig()
    return generate_password(config.password_length, config.special_chars)


def _object(config: GeneratorConfig | None) -> str:
    return json.dumps({
        "id": fake.uuid4(),
        "name": fake.name(),
        "email": fake.email(),
    })


GENERATORS: dict[str, Generator] = {
    "string": lambda config: fake.word(),
    "number": lambda config: str(fake.random_int(min=1, max=1000)),
    "singleDigit": lambda config: str(fake.random_digit()),
    "boolean": lambda config: str(fake.pybool()).lower(),
    "object": _object,
    "firstName": lambda config: fake.first_name(),
    "lastName": lambda config: fake.last_name(),
    "fullName": lambda config: fake.name(),
    "email": _email,
    "emailWithDomain": _email_with_domain,
    "staticPassword": _static_password,
    "dynamicPassword": _dynamic_password,
    "phoneNumber": lambda config: fake.phone_number(),
    "date": lambda config: fake.date_time_between(start_date="-1d", end_date="now").isoformat(),
    "pastDate": lambda config: fake.past_datetime(start_date="-365d").isoformat(),
    "futureDate": lambda config: fake.future_datetime(end_date="+365d").isoformat(),
    "city": lambda config: fake.city(),
    "state": lambda config: fake.state(),
    "country": lambda config: fake.country(),
    "countryCode": lambda config: fake.country_code(),
    "zipCode": lambda config: fake.postcode(),
    "uuid": lambda config: fake.uuid4(),
    "color": lambda config: fake.rgb_css_color(),
    "url": lambda config: fake.url(),
    "ipv4": lambda config: fake.ipv4(),
    "ipv6": lambda config: fake.ipv6(),
    "alphanumeric": lambda config: _alphanumeric(10),
}

_missing = set(DATA_VARIABLE_TYPES) - set(GENERATORS)
if _missing:
    raise RuntimeError(f"No generator registered for data variable types: {sorted(_missing)}")


def generate_dynamic_value(var_type: str, config: GeneratorConfig | None = None) -> str:
    """Generate a fresh value for a data variable type."""
    generator = GENERATORS.get(var_type)
    if generator is None:
        return ""
    return generator(config)
