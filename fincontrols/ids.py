import uuid

from fincontrols.exceptions import ValidationError


def parse_uuid(value, field_name: str) -> uuid.UUID:
    """Parse an identifier from a path, body or token; raise ValidationError if malformed."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(
            f"{field_name} is not a valid identifier", details={"field": field_name}
        )
