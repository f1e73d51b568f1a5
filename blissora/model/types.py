# blissora/model/types.py
from dataclasses import asdict, dataclass, fields

from sqlalchemy.types import JSON, TypeDecorator

from ..errors import ValidationError


@dataclass(frozen=True)
class Address:
    name: str
    phone: str
    line1: str
    city: str
    country: str
    zip_code: str
    line2: str = ""
    state: str = ""

    REQUIRED = ("name", "phone", "line1", "city", "country", "zip_code")

    @classmethod
    def from_dict(cls, data, label="address"):
        if not isinstance(data, dict):
            raise ValidationError(f"{label} must be an object")
        known = {f.name for f in fields(cls)}
        values = {k: str(v).strip() for k, v in data.items() if k in known and v is not None}
        missing = [k for k in cls.REQUIRED if not values.get(k)]
        if missing:
            raise ValidationError(f"{label} is missing: {', '.join(missing)}")
        return cls(**values)

    def to_dict(self):
        return asdict(self)


class AddressType(TypeDecorator):
    """Stores an ``Address`` as JSON and hands back an ``Address``."""
    impl = JSON
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, Address):
            return value.to_dict()
        return Address.from_dict(value).to_dict()

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Address(**value)
