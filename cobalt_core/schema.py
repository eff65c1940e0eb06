"""Shared pydantic base models.

Exports are dumped in camelCase for other clients while Python code uses
snake_case attributes.  Persisted blobs keep the snake_case field names.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Immutable record with camelCase aliases.

    Accepts either field names or aliases on input.  Replace instances
    with ``model_copy(update=...)`` instead of mutating them.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )
