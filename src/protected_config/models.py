"""Base Pydantic model for protected-config settings.

Example:
    >>> from protected_config.models import ProtectedConfigBaseModel
    >>>
    >>> class MyModel(ProtectedConfigBaseModel):
    ...     name: str
    >>>
    >>> MyModel(name="test").model_dump()
    {'name': 'test'}
"""

from pydantic import BaseModel, ConfigDict


class ProtectedConfigBaseModel(BaseModel):
    """Base model for all settings models.

    - extra="forbid": Rejects any fields not defined in the model
    - frozen=True: Makes instances immutable
    """

    model_config = ConfigDict(extra="forbid", frozen=True)
