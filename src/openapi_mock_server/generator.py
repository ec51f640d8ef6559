"""Schema-driven fake data generation."""

from __future__ import annotations

import base64
import itertools
import math
import secrets
import threading
import zlib
from collections.abc import Callable
from copy import deepcopy
from dataclasses import dataclass, replace
from datetime import timezone
from random import Random
from typing import Optional

from faker import Faker

from .heuristics import lookup_property_heuristic
from .json_types import JSONArray, JSONValue, MutableJSONObject
from .resolver import Resolver
from .schema_model import (
    AllOfSchema,
    ArraySchema,
    BooleanSchema,
    ChoiceSchema,
    IntegerSchema,
    NullSchema,
    NumberSchema,
    ObjectSchema,
    RefSchema,
    SchemaNode,
    StringSchema,
)

MAX_OBJECT_DEPTH = 10
MAX_ARRAY_SIZE = 100
MAX_NESTING = 64

_DEFAULT_ARRAY_SIZE = 5
_DEFAULT_MIN_LENGTH = 1
_DEFAULT_MAX_LENGTH = 50
_DEFAULT_MINIMUM = 0
_DEFAULT_MAXIMUM = 1000
_NULL_PROBABILITY = 0.10
_OPTIONAL_PROPERTY_PROBABILITY = 0.80


def _date_time(fake: Faker) -> str:
    moment = fake.date_time_between(start_date="-30d", end_date="now", tzinfo=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _byte(fake: Faker) -> str:
    return base64.b64encode(fake.word().encode("utf-8")).decode("ascii")


_FORMATS: dict[str, Callable[[Faker], str]] = {
    "uuid": lambda fake: fake.uuid4(),
    "email": lambda fake: fake.email(domain="example.com"),
    "uri": lambda fake: fake.url(),
    "url": lambda fake: fake.url(),
    "hostname": lambda fake: fake.domain_name(),
    "ipv4": lambda fake: fake.ipv4(),
    "ipv6": lambda fake: fake.ipv6(),
    "date-time": _date_time,
    "date": lambda fake: fake.date_between(start_date="-30d", end_date="today").isoformat(),
    "time": lambda fake: fake.time(pattern="%H:%M:%S"),
    "password": lambda fake: fake.password(length=12),
    "byte": _byte,
    "binary": lambda fake: fake.word(),
}


class GenerationSession:
    """Random source owned by one generation run.

    Each session owns a seeded ``random.Random``; one seed reproduces the whole
    run. The ``Faker`` instance may be shared between sessions: every access
    through :attr:`fake` binds it to this session's stream first.
    """

    def __init__(self, seed: int, *, fake: Optional[Faker] = None, locale: str = "en_US") -> None:
        self.seed = seed
        self._random = Random(seed)
        self._fake = fake if fake is not None else Faker(locale)

    @property
    def random(self) -> Random:
        """The ``random.Random`` instance backing this session."""
        return self._random

    @property
    def fake(self) -> Faker:
        """The ``Faker`` instance, drawing from this session's random stream."""
        self._fake.random = self._random
        return self._fake

    def new_id(self) -> str:
        """Return a fresh UUID string."""
        return self.fake.uuid4()


@dataclass(frozen=True)
class GenerationContext:
    """Position of the node being generated.

    ``depth`` counts object nesting; ``nesting`` counts every recursive step
    and caps recursion through arrays and compositions as well.
    """

    session: GenerationSession
    path: tuple[str, ...] = ()
    depth: int = 0
    index: Optional[int] = None
    property_name: Optional[str] = None
    nesting: int = 0

    def for_property(self, name: str) -> GenerationContext:
        """Context for an object member."""
        return replace(
            self,
            path=(*self.path, name),
            depth=self.depth + 1,
            index=None,
            property_name=name,
            nesting=self.nesting + 1,
        )

    def for_item(self, index: int) -> GenerationContext:
        """Context for an array element."""
        return replace(
            self,
            path=(*self.path, str(index)),
            index=index,
            nesting=self.nesting + 1,
        )

    def nested(self) -> GenerationContext:
        """Context for a composition member or an expanded reference."""
        return replace(self, nesting=self.nesting + 1)


def stable_seed(key: str) -> int:
    """Derive a process-independent seed from a text key."""
    return zlib.crc32(key.encode("utf-8"))


class ValueGenerator:
    """Produce synthetic values that satisfy typed schema nodes."""

    def __init__(self, resolver: Resolver, *, seed: Optional[int] = None, locale: str = "en_US") -> None:
        self._resolver = resolver
        self._seed = seed
        self._locale = locale
        self._sequence = itertools.count()
        self._fakers = threading.local()

    @property
    def resolver(self) -> Resolver:
        """Resolver used to expand cyclic references."""
        return self._resolver

    def new_context(self, *, stable_key: Optional[str] = None) -> GenerationContext:
        """Open a generation session and return its root context.

        Args:
            stable_key (Optional[str]): When set, every session opened with the
                same key replays the same random stream.

        Returns:
            GenerationContext: Root context with a freshly seeded session.
        """
        if stable_key is not None:
            seed = stable_seed(stable_key)
        elif self._seed is not None:
            seed = stable_seed(f"{self._seed}:{next(self._sequence)}")
        else:
            seed = secrets.randbits(64)
        return GenerationContext(session=GenerationSession(seed, fake=self._thread_faker()))

    def _thread_faker(self) -> Faker:
        # One Faker per thread; sessions rebind its random stream on every access.
        fake = getattr(self._fakers, "fake", None)
        if fake is None:
            fake = Faker(self._locale)
            self._fakers.fake = fake
        return fake

    def generate(self, schema: SchemaNode, ctx: GenerationContext) -> JSONValue:
        """Generate one value for a schema node."""
        if ctx.nesting > MAX_NESTING:
            return {"id": ctx.session.new_id()}

        if isinstance(schema, RefSchema):
            return self.generate(self._resolver.resolve_ref(schema.ref), ctx.nested())

        rng = ctx.session.random
        if schema.has_example:
            return deepcopy(schema.example)
        if schema.nullable and rng.random() < _NULL_PROBABILITY:
            return None
        if schema.enum:
            return deepcopy(rng.choice(schema.enum))

        if isinstance(schema, AllOfSchema):
            return self._generate_all_of(schema, ctx)
        if isinstance(schema, ChoiceSchema):
            return self.generate(rng.choice(schema.members), ctx.nested())
        if isinstance(schema, StringSchema):
            return self._generate_string(schema, ctx)
        if isinstance(schema, IntegerSchema):
            return self._generate_integer(schema, ctx)
        if isinstance(schema, NumberSchema):
            return self._generate_number(schema, ctx)
        if isinstance(schema, BooleanSchema):
            return rng.random() < 0.5
        if isinstance(schema, NullSchema):
            return None
        if isinstance(schema, ArraySchema):
            return self._generate_array(schema, ctx)
        if isinstance(schema, ObjectSchema):
            return self._generate_object(schema, ctx)
        return ctx.session.fake.word()

    def _generate_all_of(self, schema: AllOfSchema, ctx: GenerationContext) -> JSONValue:
        merged: MutableJSONObject = {}
        for member in schema.members:
            value = self.generate(member, ctx.nested())
            if isinstance(value, dict):
                merged.update(value)
        if merged:
            return merged
        return self.generate(schema.members[0], ctx.nested())

    def _generate_string(self, schema: StringSchema, ctx: GenerationContext) -> str:
        fake = ctx.session.fake
        min_length = schema.min_length if schema.min_length is not None else _DEFAULT_MIN_LENGTH
        max_length = schema.max_length if schema.max_length is not None else _DEFAULT_MAX_LENGTH
        max_length = max(max_length, min_length)

        factory = _FORMATS.get(schema.format) if schema.format else None
        if factory is None and schema.pattern is not None:
            # Patterns are not interpreted; a plain word stands in.
            return _clamp_text(fake.word(), fake, min_length, max_length)
        if factory is None:
            factory = lookup_property_heuristic(ctx.property_name)
        if factory is not None:
            candidate = factory(fake)
            if _fits_declared_length(candidate, schema):
                return candidate

        words = fake.words(nb=ctx.session.random.randint(1, 5))
        return _clamp_text(" ".join(words), fake, min_length, max_length)

    def _generate_integer(self, schema: IntegerSchema, ctx: GenerationContext) -> int:
        minimum, maximum = _numeric_bounds(schema)
        low = math.ceil(minimum)
        high = math.floor(maximum)
        if high < low:
            return int(low)
        return ctx.session.random.randint(low, high)

    def _generate_number(self, schema: NumberSchema, ctx: GenerationContext) -> float:
        minimum, maximum = _numeric_bounds(schema)
        value = round(ctx.session.random.uniform(minimum, maximum), 2)
        return min(max(value, minimum), maximum)

    def _generate_array(self, schema: ArraySchema, ctx: GenerationContext) -> JSONArray:
        lower = schema.min_items if schema.min_items is not None else 1
        upper = schema.max_items if schema.max_items is not None else _DEFAULT_ARRAY_SIZE
        lower = max(0, min(lower, MAX_ARRAY_SIZE))
        upper = max(min(upper, MAX_ARRAY_SIZE), lower)
        count = ctx.session.random.randint(lower, upper)

        if schema.items is None:
            return []
        return [self.generate(schema.items, ctx.for_item(index)) for index in range(count)]

    def _generate_object(self, schema: ObjectSchema, ctx: GenerationContext) -> MutableJSONObject:
        if ctx.depth > MAX_OBJECT_DEPTH:
            return {"id": ctx.session.new_id()}

        rng = ctx.session.random
        result: MutableJSONObject = {}
        for name, child in schema.properties.items():
            if name in schema.required or rng.random() < _OPTIONAL_PROPERTY_PROBABILITY:
                result[name] = self.generate(child, ctx.for_property(name))
        return result


def _numeric_bounds(schema: NumberSchema) -> tuple[float, float]:
    minimum = schema.minimum if schema.minimum is not None else _DEFAULT_MINIMUM
    maximum = schema.maximum if schema.maximum is not None else _DEFAULT_MAXIMUM
    if maximum < minimum:
        maximum = minimum
    return minimum, maximum


def _fits_declared_length(value: str, schema: StringSchema) -> bool:
    if schema.min_length is not None and len(value) < schema.min_length:
        return False
    if schema.max_length is not None and len(value) > schema.max_length:
        return False
    return True


def _clamp_text(value: str, fake: Faker, min_length: int, max_length: int) -> str:
    while len(value) < min_length:
        value = f"{value} {fake.word()}"
    value = value[:max_length].strip()
    while len(value) < min_length:
        value += fake.random_lowercase_letter()
    return value
