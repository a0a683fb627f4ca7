"""Helpers shared by the partial-update schemas."""

from pydantic import ValidationInfo, field_validator


def reject_null(*fields: str):
    """
    Refuse an explicit ``null`` for columns that cannot be empty.

    Update schemas declare every field optional so that omitted fields stay
    untouched; a field sent as ``null`` is a different request and is only
    accepted where the column is nullable.
    """
    def check(cls, value, info: ValidationInfo):
        if value is None:
            raise ValueError(f"Le champ '{info.field_name}' ne peut pas être vide")
        return value

    return field_validator(*fields)(check)
